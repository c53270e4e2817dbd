"""
cscrub/matchers.py
══════════════════

Composable line matchers shared by the checkers and the transformer.

Every matcher here works on *masked* text (see :mod:`cscrub.lexer`) so that
string contents and comments never produce false matches; because masked
text is column-aligned with the real text, spans can be spliced back with
:func:`splice_sub`.

License: MIT
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, List, Match, Optional, Pattern, Sequence, Tuple

from cscrub.lexer import LineView, mask_text

TYPE_ALT = "int|float|char|double|long|short"
RETURN_ALT = TYPE_ALT + "|void"

EXIT_RE = re.compile(r"\b(?:break|return|goto)\b|\b(?:exit|abort)\s*\(")
ALL_CAPS_RE = re.compile(r"^[A-Z_][A-Z0-9_]*$")


@lru_cache(maxsize=1024)
def word_re(name: str) -> Pattern[str]:
    """Compiled ``\\bname\\b`` pattern."""
    return re.compile(rf"\b{re.escape(name)}\b")


def has_word(text: str, name: str) -> bool:
    return word_re(name).search(text) is not None


# ═════════════════════════════════════════════════════════════════════════
#  PART 1 — BALANCED GROUPS
# ═════════════════════════════════════════════════════════════════════════

_PAIRS = {"(": ")", "[": "]", "{": "}"}


def find_matching(text: str, open_index: int) -> int:
    """Index of the delimiter closing ``text[open_index]``, or -1."""
    opener = text[open_index]
    closer = _PAIRS[opener]
    depth = 0
    for k in range(open_index, len(text)):
        ch = text[k]
        if ch == opener:
            depth += 1
        elif ch == closer:
            depth -= 1
            if depth == 0:
                return k
    return -1


def split_args(masked: str, start: int, stop: int) -> List[Tuple[int, int]]:
    """Top-level comma-separated spans of ``masked[start:stop]``."""
    spans: List[Tuple[int, int]] = []
    depth = 0
    seg = start
    for k in range(start, stop):
        ch = masked[k]
        if ch in "([{":
            depth += 1
        elif ch in ")]}":
            depth -= 1
        elif ch == "," and depth == 0:
            spans.append((seg, k))
            seg = k + 1
    spans.append((seg, stop))
    return spans


def strip_span(text: str, span: Tuple[int, int]) -> Tuple[int, int]:
    """Shrink *span* so it excludes surrounding whitespace."""
    a, b = span
    while a < b and text[a].isspace():
        a += 1
    while b > a and text[b - 1].isspace():
        b -= 1
    return a, b


def splice_sub(
    pattern: Pattern[str],
    text: str,
    repl: Callable[[Match[str], str], Optional[str]],
    masked: Optional[str] = None,
) -> Tuple[str, int]:
    """
    ``re.sub`` that matches on the masked rendering of *text*.

    *repl* receives the masked match and the real text and returns the
    replacement, or None to keep the match unchanged.  Returns the new text
    and the number of replacements made.
    """
    if masked is None:
        masked = mask_text(text)
    out: List[str] = []
    last = 0
    count = 0
    for m in pattern.finditer(masked):
        replacement = repl(m, text)
        if replacement is None:
            continue
        out.append(text[last:m.start()])
        out.append(replacement)
        last = m.end()
        count += 1
    if not count:
        return text, 0
    out.append(text[last:])
    return "".join(out), count


def real_group(m: Match[str], text: str, group: int = 0) -> str:
    """Text of *group* of a masked match, read back from the real text."""
    return text[m.start(group):m.end(group)]


# ═════════════════════════════════════════════════════════════════════════
#  PART 2 — CONTROL HEADERS
# ═════════════════════════════════════════════════════════════════════════

_CONTROL_HEAD_RE = re.compile(r"\b(if|while|for|switch)\s*\(")


@dataclass(frozen=True)
class ControlHeader:
    """``keyword ( condition )`` found on one line."""
    keyword: str
    start: int
    open: int
    close: int          # -1 when the parenthesis is not closed on the line
    condition: str

    @property
    def end(self) -> int:
        return self.close + 1 if self.close >= 0 else self.open + 1 + len(self.condition)


def control_headers(masked: str, keywords: Sequence[str] = ("if", "while", "for", "switch")) -> List[ControlHeader]:
    headers: List[ControlHeader] = []
    for m in _CONTROL_HEAD_RE.finditer(masked):
        if m.group(1) not in keywords:
            continue
        open_idx = m.end() - 1
        close = find_matching(masked, open_idx)
        cond = masked[open_idx + 1:close] if close >= 0 else masked[open_idx + 1:]
        headers.append(ControlHeader(m.group(1), m.start(), open_idx, close, cond))
    return headers


def is_do_while_tail(masked: str, header: ControlHeader) -> bool:
    """``} while (cond);`` closing a ``do`` loop."""
    if header.keyword != "while" or header.close < 0:
        return False
    before = masked[:header.start].strip()
    after = masked[header.close + 1:].strip()
    return before.endswith("}") and after.startswith(";")


def for_clauses(header: ControlHeader) -> List[str]:
    """The ``;``-separated clauses of a ``for`` header, nesting aware."""
    clauses: List[str] = []
    depth = 0
    current: List[str] = []
    for ch in header.condition:
        if ch in "([{":
            depth += 1
        elif ch in ")]}":
            depth -= 1
        if ch == ";" and depth == 0:
            clauses.append("".join(current))
            current = []
            continue
        current.append(ch)
    clauses.append("".join(current))
    return clauses


# ═════════════════════════════════════════════════════════════════════════
#  PART 3 — FOR LOOPS WITH LITERAL BOUNDS
# ═════════════════════════════════════════════════════════════════════════

_FOR_LOOP_RE = re.compile(
    r"\bfor\s*\(\s*(?:(?:int|long|short|unsigned)\s+)*(?P<init>[A-Za-z_]\w*)\s*=\s*(?P<start>-?\d+)\s*;"
    r"\s*(?P<cond>[A-Za-z_]\w*)\s*(?P<op><=|>=|<|>)\s*(?P<bound>-?\d+)\s*;"
    r"\s*(?:(?P<post>[A-Za-z_]\w*)\s*(?P<postop>\+\+|--|[-+]=\s*\d+)"
    r"|(?P<preop>\+\+|--)\s*(?P<pre>[A-Za-z_]\w*))\s*\)"
)


@dataclass(frozen=True)
class ForLoop:
    """``for (v = start; v OP bound; v STEP)`` with literal start and bound."""
    var: str
    start: int
    op: str
    bound: int
    step: int
    span: Tuple[int, int]
    bound_span: Tuple[int, int]
    op_span: Tuple[int, int]

    @property
    def is_contradictory(self) -> bool:
        """Condition holds forever given the start value and step direction."""
        if self.op in (">=", ">") and self.step > 0:
            return self.start >= self.bound
        if self.op in ("<=", "<") and self.step < 0:
            return self.start <= self.bound
        return False

    @property
    def max_index(self) -> Optional[int]:
        """Projected maximum index visited; unit steps only."""
        if abs(self.step) != 1:
            return None
        if self.op == "<":
            return self.bound - 1
        if self.op == "<=":
            return self.bound
        return self.start


def parse_for_loop(masked: str) -> Optional[ForLoop]:
    m = _FOR_LOOP_RE.search(masked)
    if m is None:
        return None
    step_var = m.group("post") or m.group("pre")
    if not (m.group("init") == m.group("cond") == step_var):
        return None
    step_op = (m.group("postop") or m.group("preop")).replace(" ", "")
    if step_op == "++":
        step = 1
    elif step_op == "--":
        step = -1
    else:
        amount = int(step_op[2:])
        step = amount if step_op.startswith("+") else -amount
    return ForLoop(
        var=m.group("init"),
        start=int(m.group("start")),
        op=m.group("op"),
        bound=int(m.group("bound")),
        step=step,
        span=(m.start(), m.end()),
        bound_span=(m.start("bound"), m.end("bound")),
        op_span=(m.start("op"), m.end("op")),
    )


# ═════════════════════════════════════════════════════════════════════════
#  PART 4 — LOOP BODIES
# ═════════════════════════════════════════════════════════════════════════

@dataclass
class LoopBody:
    """Masked text of a loop body, clipped to a lookahead window."""
    segments: List[Tuple[int, str]]
    closed: bool

    @property
    def text(self) -> str:
        return "\n".join(seg for _, seg in self.segments)

    def has_exit(self) -> bool:
        return EXIT_RE.search(self.text) is not None


def loop_body(views: Sequence[LineView], index: int, header: ControlHeader, window: int) -> LoopBody:
    """
    Collect the body following *header* on ``views[index]``.

    A braced body is followed until its braces balance; an unbraced body is
    the single statement after the header.  Scanning never goes past
    ``index + window`` lines.
    """
    limit = min(len(views), index + window)
    masked = views[index].masked
    after = header.end
    rest = masked[after:]
    brace_line, brace_col = index, -1
    if rest.strip():
        stripped = rest.lstrip()
        if stripped.startswith(";"):
            return LoopBody([], True)
        if not stripped.startswith("{"):
            return LoopBody([(views[index].number, rest)], True)
        brace_col = after + rest.index("{")
    else:
        j = index + 1
        while j < limit and not views[j].masked.strip():
            j += 1
        if j >= limit:
            return LoopBody([], False)
        nxt = views[j].masked
        if not nxt.lstrip().startswith("{"):
            return LoopBody([(views[j].number, nxt)], True)
        brace_line, brace_col = j, nxt.index("{")

    segments: List[Tuple[int, str]] = []
    depth = 0
    for j in range(brace_line, limit):
        text = views[j].masked
        seg_start = brace_col if j == brace_line else 0
        for k in range(seg_start, len(text)):
            if text[k] == "{":
                depth += 1
            elif text[k] == "}":
                depth -= 1
                if depth == 0:
                    segments.append((views[j].number, text[seg_start:k + 1]))
                    return LoopBody(segments, True)
        segments.append((views[j].number, text[seg_start:]))
    return LoopBody(segments, False)


@dataclass(frozen=True)
class BlockSpan:
    """A ``{ ... }`` block; indices are 0-based into the view list."""
    open_index: int
    open_col: int
    close_index: int
    close_col: int

    def inner_text(self, views: Sequence[LineView]) -> str:
        """Masked text strictly between the braces."""
        if self.open_index == self.close_index:
            return views[self.open_index].masked[self.open_col + 1:self.close_col]
        parts = [views[self.open_index].masked[self.open_col + 1:]]
        parts.extend(views[j].masked for j in range(self.open_index + 1, self.close_index))
        parts.append(views[self.close_index].masked[:self.close_col])
        return "\n".join(parts)


def block_span(views: Sequence[LineView], index: int, start_col: int = 0) -> Optional[BlockSpan]:
    """Follow the first ``{`` at or after ``views[index]`` column *start_col*."""
    depth = 0
    open_at: Optional[Tuple[int, int]] = None
    for j in range(index, len(views)):
        text = views[j].masked
        for k in range(start_col if j == index else 0, len(text)):
            ch = text[k]
            if ch == "{":
                if open_at is None:
                    open_at = (j, k)
                depth += 1
            elif ch == "}" and open_at is not None:
                depth -= 1
                if depth == 0:
                    return BlockSpan(open_at[0], open_at[1], j, k)
    return None


# ═════════════════════════════════════════════════════════════════════════
#  PART 5 — STATEMENT SHAPES
# ═════════════════════════════════════════════════════════════════════════

_EXEMPT_HEAD_RE = re.compile(r"^(?:if|else|while|for|switch|do)\b\s*[({]?|^else$")
FUNC_HEADER_RE = re.compile(
    rf"^(?:(?:static|inline|extern|unsigned|signed|const)\s+)*(?:{RETURN_ALT})\s+\**\s*[A-Za-z_]\w*\s*\([^()]*\)\s*\{{?$"
)
_CONTINUATION_ENDINGS = (",", "(", "&&", "||", "\\")

_SHAPES: List[Tuple[str, Pattern[str], str]] = [
    ("declaration",
     re.compile(rf"^(?:(?:unsigned|signed|const|static)\s+)*(?:{TYPE_ALT})\s+\**\s*[A-Za-z_]\w*(?:\s*\[[^\]]*\])*\s*(?:=\s*[^;{{]+)?$"),
     "Missing semicolon after variable declaration"),
    ("return",
     re.compile(r"^return\b[^;]*$"),
     "Missing semicolon after return statement"),
    ("jump",
     re.compile(r"^(?:break|continue)$"),
     "Missing semicolon after jump statement"),
    ("increment",
     re.compile(r"^(?:[A-Za-z_]\w*\s*(?:\+\+|--)|(?:\+\+|--)\s*[A-Za-z_]\w*)$"),
     "Missing semicolon after increment/decrement"),
    ("assignment",
     re.compile(r"^\**[A-Za-z_][\w.\[\]>-]*\s*(?:[-+*/%&|^]|<<|>>)?=(?!=)\s*[^;{]+$"),
     "Missing semicolon after assignment"),
    ("call",
     re.compile(r"^[A-Za-z_]\w*\s*\(.*\)$"),
     "Missing semicolon after function call"),
]


@dataclass(frozen=True)
class StatementShape:
    kind: str
    message: str


def is_statement_exempt(code: str) -> bool:
    """Lines that never take a terminator (*code* is stripped, masked)."""
    if not code or code.startswith("#"):
        return True
    if code.endswith((";", "{", "}")) or code.startswith("}"):
        return True
    if code.endswith(_CONTINUATION_ENDINGS):
        return True
    if _EXEMPT_HEAD_RE.match(code):
        return True
    return FUNC_HEADER_RE.match(code) is not None


def missing_terminator(code: str) -> Optional[StatementShape]:
    """
    Shape of a statement on *code* that lacks its ``;``, if any.

    *code* is the stripped, masked code portion of one line.
    """
    if is_statement_exempt(code):
        return None
    for kind, pattern, message in _SHAPES:
        if not pattern.match(code):
            continue
        if kind == "call":
            head = code.index("(")
            if find_matching(code, head) != len(code) - 1:
                continue
        return StatementShape(kind, message)
    return None


# ═════════════════════════════════════════════════════════════════════════
#  PART 6 — printf / scanf
# ═════════════════════════════════════════════════════════════════════════

PRINTF_BARE_RE = re.compile(r"\bprintf\s*\(\s*([A-Za-z_]\w*)\s*\)")
_SCANF_HEAD_RE = re.compile(r"\bscanf\s*\(")
_SCANF_SPEC_RE = re.compile(r"%%|%(\*)?\d*(?:hh|h|ll|l|L|j|z|t)?([diouxXeEfFgGaAcspn]|\[[^\]]*\])")
_IDENT_ONLY_RE = re.compile(r"^[A-Za-z_]\w*$")


@dataclass(frozen=True)
class ScanfCall:
    """A ``scanf("fmt", args...)`` call located on one line."""
    start: int
    end: int
    fmt: str
    specifiers: Tuple[str, ...]
    args: Tuple[Tuple[int, int], ...]   # stripped spans of the real text

    def bare_arguments(self, text: str) -> List[Tuple[Tuple[int, int], str, str]]:
        """``(span, arg, specifier)`` for arguments that need an ``&``."""
        found = []
        for spec, span in zip(self.specifiers, self.args):
            arg = text[span[0]:span[1]]
            if spec == "%s" or spec.startswith("%["):
                continue
            if _IDENT_ONLY_RE.match(arg):
                found.append((span, arg, spec))
        return found


def scanf_calls(text: str, masked: Optional[str] = None) -> List[ScanfCall]:
    if masked is None:
        masked = mask_text(text)
    calls: List[ScanfCall] = []
    for m in _SCANF_HEAD_RE.finditer(masked):
        open_idx = m.end() - 1
        close = find_matching(masked, open_idx)
        if close < 0:
            continue
        spans = [strip_span(masked, s) for s in split_args(masked, open_idx + 1, close)]
        if len(spans) < 2:
            continue
        fmt_raw = text[spans[0][0]:spans[0][1]]
        if not (fmt_raw.startswith('"') and fmt_raw.endswith('"')):
            continue
        specs = []
        for sm in _SCANF_SPEC_RE.finditer(fmt_raw):
            if sm.group() == "%%" or sm.group(1):
                continue
            conv = sm.group(2)
            specs.append("%" + conv)
        calls.append(ScanfCall(
            start=m.start(),
            end=close + 1,
            fmt=fmt_raw,
            specifiers=tuple(specs),
            args=tuple(spans[1:]),
        ))
    return calls


def printf_format_for(type_name: Optional[str], is_char_array: bool = False) -> str:
    """Conversion specifier for printing a value of *type_name*."""
    if is_char_array:
        return "%s"
    return {
        "float": "%f",
        "double": "%lf",
        "char": "%c",
        "long": "%ld",
    }.get(type_name or "", "%d")


__all__ = [
    "TYPE_ALT",
    "RETURN_ALT",
    "EXIT_RE",
    "ALL_CAPS_RE",
    "word_re",
    "has_word",
    "find_matching",
    "split_args",
    "strip_span",
    "splice_sub",
    "real_group",
    "ControlHeader",
    "control_headers",
    "is_do_while_tail",
    "for_clauses",
    "ForLoop",
    "parse_for_loop",
    "LoopBody",
    "BlockSpan",
    "block_span",
    "loop_body",
    "FUNC_HEADER_RE",
    "StatementShape",
    "is_statement_exempt",
    "missing_terminator",
    "PRINTF_BARE_RE",
    "ScanfCall",
    "scanf_calls",
    "printf_format_for",
]
