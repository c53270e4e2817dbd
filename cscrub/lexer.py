"""
cscrub/lexer.py
═══════════════

Line splitting and the per-line views every pass reads.

The dialect is never parsed into a tree; instead each physical line gets a
:class:`LineView` with three aligned renderings of the same text:

  raw     int c = 'x'; printf("%d", c); // show
  code    int c = 'x'; printf("%d", c);
  masked  int c = ' '; printf("  ", c);

``code`` blanks comments and ``masked`` additionally blanks the contents of
string and character literals.  All renderings have the same length as
``raw``, so a match found on ``masked`` can be spliced back into ``raw``.
Block comments are tracked across lines.

License: MIT
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import FrozenSet, Iterator, List, NamedTuple, Tuple


# ═════════════════════════════════════════════════════════════════════════
#  PART 1 — VOCABULARY
# ═════════════════════════════════════════════════════════════════════════

TYPE_KEYWORDS: Tuple[str, ...] = ("int", "float", "char", "double", "long", "short")
RETURN_TYPES: Tuple[str, ...] = TYPE_KEYWORDS + ("void",)

CONTROL_KEYWORDS: FrozenSet[str] = frozenset({
    "if", "else", "while", "for", "do", "switch", "case", "default",
    "return", "break", "continue", "goto", "sizeof",
})

QUALIFIERS: FrozenSet[str] = frozenset({
    "unsigned", "signed", "const", "static", "volatile", "extern",
    "register", "auto", "inline", "struct", "union", "enum", "typedef",
})

STDLIB_FUNCTIONS: FrozenSet[str] = frozenset({
    "printf", "scanf", "malloc", "free", "strlen", "strcpy", "strcmp",
    "fopen", "fclose", "fread", "fwrite", "fprintf", "fscanf",
    "getchar", "putchar", "gets", "puts", "exit", "abs", "sqrt",
    "pow", "sin", "cos", "tan", "log", "exp", "rand", "srand", "time",
    "memset", "memcpy", "memmove", "atoi", "atof", "sizeof",
})

RESERVED_WORDS: FrozenSet[str] = (
    CONTROL_KEYWORDS | frozenset(RETURN_TYPES) | QUALIFIERS
    | frozenset({"true", "false", "NULL"})
)


# ═════════════════════════════════════════════════════════════════════════
#  PART 2 — LINE VIEWS
# ═════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class LineView:
    """
    One physical source line.

    Attributes
    ----------
    number           : 1-based line number
    raw              : the line as written (without the newline)
    code             : ``raw`` with comments blanked
    masked           : ``code`` with literal contents blanked
    comment          : trailing ``//`` comment text, or ""
    in_block_comment : the line starts inside a ``/* ... */`` comment
    """
    number: int
    raw: str
    code: str
    masked: str
    comment: str = ""
    in_block_comment: bool = False

    @property
    def stripped(self) -> str:
        return self.raw.strip()

    @property
    def code_text(self) -> str:
        return self.code.strip()

    @property
    def masked_text(self) -> str:
        return self.masked.strip()

    @property
    def is_blank(self) -> bool:
        return not self.raw.strip()

    @property
    def is_comment(self) -> bool:
        """Non-blank line with no code outside comments."""
        return not self.is_blank and not self.code.strip()

    @property
    def is_preprocessor(self) -> bool:
        return self.code.lstrip().startswith("#")

    @property
    def opens_comment(self) -> bool:
        s = self.raw.lstrip()
        return s.startswith("//") or s.startswith("/*")


def _blank(buf: List[str], start: int, stop: int) -> None:
    for k in range(start, stop):
        buf[k] = " "


def _scan_line(raw: str, in_block: bool) -> Tuple[str, str, str, bool]:
    """Return (code, masked, trailing_comment, still_in_block) for *raw*."""
    code = list(raw)
    masked = list(raw)
    comment = ""
    n = len(raw)
    i = 0
    quote = ""
    while i < n:
        if in_block:
            end = raw.find("*/", i)
            stop = n if end < 0 else end + 2
            _blank(code, i, stop)
            _blank(masked, i, stop)
            in_block = end < 0
            i = stop
            continue
        ch = raw[i]
        if quote:
            if ch == "\\" and i + 1 < n:
                _blank(masked, i, i + 2)
                i += 2
                continue
            if ch == quote:
                quote = ""
            else:
                masked[i] = " "
            i += 1
            continue
        if raw.startswith("//", i):
            comment = raw[i:]
            _blank(code, i, n)
            _blank(masked, i, n)
            break
        if raw.startswith("/*", i):
            end = raw.find("*/", i + 2)
            stop = n if end < 0 else end + 2
            _blank(code, i, stop)
            _blank(masked, i, stop)
            in_block = end < 0
            i = stop
            continue
        if ch in "\"'":
            quote = ch
        i += 1
    return "".join(code), "".join(masked), comment, in_block


def split_lines(source: str) -> List[LineView]:
    """Split *source* on newlines and build a :class:`LineView` per line."""
    views: List[LineView] = []
    in_block = False
    for idx, raw in enumerate(source.split("\n"), 1):
        if raw.endswith("\r"):
            raw = raw[:-1]
        starts_in_block = in_block
        code, masked, comment, in_block = _scan_line(raw, in_block)
        views.append(LineView(
            number=idx,
            raw=raw,
            code=code,
            masked=masked,
            comment=comment,
            in_block_comment=starts_in_block,
        ))
    return views


def mask_text(text: str) -> str:
    """Mask comments and literal contents of a single fragment of code."""
    return _scan_line(text, False)[1]


def split_comment(text: str) -> Tuple[str, str]:
    """Split *text* into (code, trailing ``//`` comment); code is right-stripped."""
    comment = _scan_line(text, False)[2]
    if not comment:
        return text.rstrip(), ""
    return text[: len(text) - len(comment)].rstrip(), comment


def iter_code_chars(text: str, track_chars: bool = True) -> Iterator[Tuple[int, str]]:
    """
    Yield ``(column, char)`` for characters of *text* outside literals.

    Literal state toggles on unescaped double quotes, and on single quotes
    too when *track_chars* is set.  *text* should already have comments
    blanked (use ``LineView.code``).
    """
    quote = ""
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if quote:
            if ch == "\\":
                i += 2
                continue
            if ch == quote:
                quote = ""
            i += 1
            continue
        if ch == '"' or (track_chars and ch == "'"):
            quote = ch
        else:
            yield i, ch
        i += 1


# ═════════════════════════════════════════════════════════════════════════
#  PART 3 — TOKENS
# ═════════════════════════════════════════════════════════════════════════

class Token(NamedTuple):
    kind: str   # ident | number | string | char | op | punct | other
    text: str
    start: int

    @property
    def end(self) -> int:
        return self.start + len(self.text)


_TOKEN_RE = re.compile(r"""
    (?P<string>"(?:\\.|[^"\\])*"?)
  | (?P<char>'(?:\\.|[^'\\])*'?)
  | (?P<number>(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?[uUlLfF]*)
  | (?P<ident>[A-Za-z_]\w*)
  | (?P<op>->|\+\+|--|<<=|>>=|<<|>>|<=|>=|==|!=|&&|\|\||[-+*/%&|^]=|[-+*/%=<>!&|^~?:.])
  | (?P<punct>[()\[\]{},;#\\])
  | (?P<space>\s+)
  | (?P<other>.)
""", re.VERBOSE)


def tokenize(text: str) -> List[Token]:
    """Split a fragment of code into tokens, dropping whitespace."""
    tokens: List[Token] = []
    for m in _TOKEN_RE.finditer(text):
        kind = m.lastgroup or "other"
        if kind == "space":
            continue
        tokens.append(Token(kind, m.group(), m.start()))
    return tokens


_IDENT_RE = re.compile(r"[A-Za-z_]\w*")


def count_identifier(views: List[LineView], name: str) -> int:
    """Occurrences of identifier *name* outside comments and literals."""
    total = 0
    for view in views:
        for m in _IDENT_RE.finditer(view.masked):
            if m.group() == name:
                total += 1
    return total


__all__ = [
    "TYPE_KEYWORDS",
    "RETURN_TYPES",
    "CONTROL_KEYWORDS",
    "QUALIFIERS",
    "STDLIB_FUNCTIONS",
    "RESERVED_WORDS",
    "LineView",
    "split_lines",
    "mask_text",
    "split_comment",
    "iter_code_chars",
    "Token",
    "tokenize",
    "count_identifier",
]
