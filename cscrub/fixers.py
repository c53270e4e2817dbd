"""
cscrub/fixers.py
════════════════

Single-line rewrites applied by the transformer.

Every fixer takes the current text of one line and returns
``(new_text, applied)`` where *applied* is the number of fixes made; the
transformer turns that into statistics.  Matching always happens on the
masked rendering, so string contents and comments are never rewritten.

  fix_brace_paren       if (x > 0} {  ->  if (x > 0) {       conditions_fixed
  add_initializer       int x;  ->  int x = 0;               conditions_fixed
  add_semicolon         x = 1  ->  x = 1;                    expressions_simplified
  close_brackets        int a[5;  ->  int a[5];              expressions_simplified
  type_parameters       f(a, b)  ->  f(int a, int b)         expressions_simplified
  fix_assignment_if     if (x = 5)  ->  if (x == 5)          conditions_fixed
  tighten_loop_bound    i <= 10  ->  i < 10                  conditions_fixed
  fix_printf            printf(x)  ->  printf("%d", x)       expressions_simplified
  fix_scanf             scanf("%d", x)  ->  &x               expressions_simplified
  fold_constants        2 * 3 + 1  ->  7                     constants_folded
  simplify_identities   x + 0, x * 1  ->  x                  expressions_simplified
  rename_identifiers    x  ->  counter                       variables_renamed

License: MIT
"""

from __future__ import annotations

import re
from typing import Dict, Match, Optional, Sequence, Set, Tuple

from cscrub.bounds_checks import overflowing_accesses
from cscrub.expression_checks import default_initializer
from cscrub.function_checks import is_valid_parameter
from cscrub.lexer import LineView, iter_code_chars, mask_text, split_comment, tokenize
from cscrub.matchers import (
    ALL_CAPS_RE,
    PRINTF_BARE_RE,
    RETURN_ALT,
    TYPE_ALT,
    missing_terminator,
    parse_for_loop,
    printf_format_for,
    real_group,
    scanf_calls,
    splice_sub,
)
from cscrub.symbols import ArrayInfo, SymbolTable

FixResult = Tuple[str, int]


def _with_comment(code: str, comment: str) -> str:
    return f"{code} {comment}" if comment else code


# ═════════════════════════════════════════════════════════════════════════
#  PART 1 — STRUCTURAL FIXES
# ═════════════════════════════════════════════════════════════════════════

_BRACE_FOR_PAREN_OPEN_RE = re.compile(r"\(\s*([^(){}]+?)\s*\}\s*\{")
_BRACE_FOR_PAREN_RE = re.compile(r"\(\s*([^(){}]+?)\s*\}")
_MISSING_PAREN_RE = re.compile(r"\b(while|if)\s*\(\s*([^(){};]+?)\s*\{")


def fix_brace_paren(text: str) -> FixResult:
    """``}`` typed for ``)`` and conditions missing their ``)``; one fix per line."""
    total = 0
    for pattern, template in (
        (_BRACE_FOR_PAREN_OPEN_RE, "({}) {{"),
        (_BRACE_FOR_PAREN_RE, "({})"),
    ):
        text, n = splice_sub(pattern, text, lambda m, t, tpl=template: tpl.format(real_group(m, t, 1)))
        total += n
    text, n = splice_sub(
        _MISSING_PAREN_RE, text,
        lambda m, t: f"{real_group(m, t, 1)} ({real_group(m, t, 2)}) {{",
    )
    total += n
    return text, min(total, 1)


def add_initializer(text: str, name: str, type_name: str) -> FixResult:
    """Give the declarator *name* on this line a zero initializer."""
    pattern = re.compile(rf"(?<![\w.>]){re.escape(name)}(?=\s*[;,])")
    value = default_initializer(type_name)
    done = []

    def repl(m: Match[str], t: str) -> Optional[str]:
        if done:
            return None
        before = mask_text(t)[:m.start()].rstrip()
        if before.endswith("="):
            return None
        done.append(m.start())
        return f"{name} = {value}"

    return splice_sub(pattern, text, repl)


def add_semicolon(text: str) -> FixResult:
    code, comment = split_comment(text)
    masked = mask_text(code).strip()
    if not masked or missing_terminator(masked) is None:
        return text, 0
    return _with_comment(code + ";", comment), 1


_ARRAY_DECL_HEAD_RE = re.compile(rf"^\s*(?:{TYPE_ALT})\s+\w+\s*\[")


def close_brackets(text: str) -> FixResult:
    """Insert the ``]`` an unclosed ``[`` is missing."""
    code, comment = split_comment(text)
    opens = closes = 0
    for _col, ch in iter_code_chars(code):
        if ch == "[":
            opens += 1
        elif ch == "]":
            closes += 1
    if opens <= closes:
        return text, 0
    missing = "]" * (opens - closes)
    semi = mask_text(code).rfind(";")
    if semi > 0:
        fixed = code[:semi] + missing + code[semi:]
    elif _ARRAY_DECL_HEAD_RE.match(code):
        fixed = code.rstrip() + missing + ";"
    else:
        fixed = code.rstrip() + missing
    return _with_comment(fixed, comment), 1


_FUNC_LINE_RE = re.compile(
    rf"^(\s*)((?:{RETURN_ALT})\s+\**\s*)([A-Za-z_]\w*)\s*\(([^()]*)\)\s*(\{{?)\s*$"
)
_BARE_NAME_RE = re.compile(r"^[A-Za-z_]\w*$")


def type_parameters(text: str) -> FixResult:
    """Default untyped parameters of a function header to ``int``."""
    code, comment = split_comment(text)
    m = _FUNC_LINE_RE.match(mask_text(code))
    if m is None or not m.group(4).strip():
        return text, 0
    params = [p.strip() for p in code[m.start(4):m.end(4)].split(",")]
    fixed = 0
    for i, param in enumerate(params):
        if _BARE_NAME_RE.match(param) and not is_valid_parameter(param):
            params[i] = f"int {param}"
            fixed += 1
    if not fixed:
        return text, 0
    header = f"{m.group(1)}{code[m.start(2):m.end(2)].rstrip()} {m.group(3)}({', '.join(params)})"
    if m.group(5):
        header += " {"
    return _with_comment(header, comment), fixed


# ═════════════════════════════════════════════════════════════════════════
#  PART 2 — CONDITIONS
# ═════════════════════════════════════════════════════════════════════════

_ASSIGN_IF_RE = re.compile(r"\bif\s*\(\s*([A-Za-z_]\w*)\s*=\s*([^=()]+?)\s*\)")


def fix_assignment_if(text: str) -> FixResult:
    def repl(m: Match[str], t: str) -> Optional[str]:
        value = real_group(m, t, 2)
        if any(c in m.group(2) for c in "=!<>"):
            return None
        return f"if ({real_group(m, t, 1)} == {value.strip()})"

    return splice_sub(_ASSIGN_IF_RE, text, repl)


def tighten_loop_bound(
    text: str,
    views: Sequence[LineView],
    index: int,
    arrays: Dict[str, ArrayInfo],
    window: int,
) -> FixResult:
    """
    Rewrite ``i < N`` / ``i <= N`` to ``i < size`` when the loop indexes an
    array past its end within the next *window* lines.
    """
    loop = parse_for_loop(mask_text(text))
    if loop is None or loop.op not in ("<", "<="):
        return text, 0
    hits = overflowing_accesses(views, index, loop, arrays, window, stop_at_close=True)
    if not hits:
        return text, 0
    size = hits[0].size
    a, b = loop.op_span[0], loop.bound_span[1]
    return f"{text[:a]}< {size}{text[b:]}", 1


# ═════════════════════════════════════════════════════════════════════════
#  PART 3 — printf / scanf
# ═════════════════════════════════════════════════════════════════════════

def fix_printf(text: str, symbols: SymbolTable) -> FixResult:
    def repl(m: Match[str], t: str) -> Optional[str]:
        arg = m.group(1)
        if ALL_CAPS_RE.match(arg):
            return None
        fmt = printf_format_for(symbols.type_of(arg), symbols.is_char_array(arg))
        return f'printf("{fmt}", {arg})'

    return splice_sub(PRINTF_BARE_RE, text, repl)


def fix_scanf(text: str) -> FixResult:
    fixed = 0
    for call in reversed(scanf_calls(text)):
        bare = call.bare_arguments(text)
        for (a, _b), _arg, _spec in reversed(bare):
            text = text[:a] + "&" + text[a:]
        if bare:
            fixed += 1
    return text, fixed


# ═════════════════════════════════════════════════════════════════════════
#  PART 4 — ARITHMETIC
# ═════════════════════════════════════════════════════════════════════════

_MUL_RE = re.compile(r"(?<![\w.])(\d+)\s*\*\s*(\d+)(?![\w.])")
_ADD_RE = re.compile(r"(?<![\w.])(\d+)\s*\+\s*(\d+)(?![\w.])")
# characters that bind tighter than the folded operator when found before
# the left operand or after the right one
_MUL_BLOCK_BEFORE = set("/%!~")
_ADD_BLOCK_BEFORE = set("*/%-!~")
_ADD_BLOCK_AFTER = set("*/%")


def _neighbours(masked: str, m: Match[str]) -> Tuple[str, str]:
    before = masked[:m.start()].rstrip()[-1:]
    after = masked[m.end():].lstrip()[:1]
    return before, after


def _fold_once(text: str, pattern: re.Pattern, op: str) -> FixResult:
    masked = mask_text(text)

    def repl(m: Match[str], t: str) -> Optional[str]:
        before, after = _neighbours(masked, m)
        a, b = int(m.group(1)), int(m.group(2))
        if op == "*":
            if before in _MUL_BLOCK_BEFORE:
                return None
            return str(a * b)
        if before in _ADD_BLOCK_BEFORE or after in _ADD_BLOCK_AFTER:
            return None
        return str(a + b)

    return splice_sub(pattern, text, repl, masked)


def fold_constants(text: str) -> FixResult:
    """Fold literal ``a*b`` then ``a+b`` until nothing changes."""
    total = 0
    while True:
        text, n_mul = _fold_once(text, _MUL_RE, "*")
        text, n_add = (text, 0) if n_mul else _fold_once(text, _ADD_RE, "+")
        if not (n_mul or n_add):
            return text, total
        total += n_mul + n_add


_ADD_ZERO_RE = re.compile(r"(?<![\w.>])([A-Za-z_]\w*|\d+)\s*\+\s*0(?![\w.])(?!\s*[*/%])")
_MUL_ONE_RE = re.compile(r"(?<![\w.>])([A-Za-z_]\w*|\d+)\s*\*\s*1(?![\w.])")


def simplify_identities(text: str) -> FixResult:
    """``x + 0`` and ``x * 1`` become ``x``."""
    total = 0
    for pattern in (_ADD_ZERO_RE, _MUL_ONE_RE):
        text, n = splice_sub(pattern, text, lambda m, t: real_group(m, t, 1))
        total += n
    return text, total


# ═════════════════════════════════════════════════════════════════════════
#  PART 5 — RENAMING
# ═════════════════════════════════════════════════════════════════════════

def rename_identifiers(text: str, rename: Dict[str, str]) -> Tuple[str, Set[str]]:
    """
    Apply *rename* to identifier tokens of *text*.

    Members after ``.``/``->`` and names followed by ``(`` are left alone.
    Returns the new text and the set of names renamed.
    """
    if not rename or text.lstrip().startswith("#"):
        return text, set()
    tokens = tokenize(mask_text(text))
    edits = []
    for i, tok in enumerate(tokens):
        if tok.kind != "ident" or tok.text not in rename:
            continue
        if i > 0 and tokens[i - 1].text in (".", "->"):
            continue
        if i + 1 < len(tokens) and tokens[i + 1].text == "(":
            continue
        edits.append(tok)
    for tok in reversed(edits):
        text = text[:tok.start] + rename[tok.text] + text[tok.end:]
    return text, {tok.text for tok in edits}


__all__ = [
    "fix_brace_paren",
    "add_initializer",
    "add_semicolon",
    "close_brackets",
    "type_parameters",
    "fix_assignment_if",
    "tighten_loop_bound",
    "fix_printf",
    "fix_scanf",
    "fold_constants",
    "simplify_identities",
    "rename_identifiers",
]
