"""
cscrub/symbols.py
═════════════════

Symbol extraction: variables, arrays, functions and call sites.

There is no scope model.  A name declared twice keeps its last declaration;
function parameters are not variables; arrays are only modelled when their
size is an integer literal.

License: MIT
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set, Tuple

from cscrub.lexer import (
    RESERVED_WORDS,
    STDLIB_FUNCTIONS,
    TYPE_KEYWORDS,
    LineView,
)
from cscrub.matchers import RETURN_ALT, find_matching

_log = logging.getLogger(__name__)


# ═════════════════════════════════════════════════════════════════════════
#  PART 1 — TABLE ENTRIES
# ═════════════════════════════════════════════════════════════════════════

@dataclass
class VariableInfo:
    name: str
    type: str
    line: int
    column: int = 0
    initialized: bool = False


@dataclass
class ArrayInfo:
    name: str
    element_type: str
    size: int
    line: int
    column: int = 0

    @property
    def valid_range(self) -> str:
        return f"0-{self.size - 1}"


@dataclass
class FunctionInfo:
    """
    A function definition or prototype.

    ``has_body`` follows the one-line rule (brace after the header or on the
    next line); ``body_line`` is where the opening brace was actually found
    within the header line and the two after it, or None.
    """
    name: str
    return_type: str
    params: str
    line: int
    column: int = 0
    has_body: bool = False
    body_line: Optional[int] = None
    is_prototype: bool = False

    @property
    def parameters(self) -> List[str]:
        raw = self.params.strip()
        if not raw:
            return []
        return [p.strip() for p in raw.split(",")]


@dataclass
class SymbolTable:
    variables: Dict[str, VariableInfo] = field(default_factory=dict)
    arrays: Dict[str, ArrayInfo] = field(default_factory=dict)
    functions: Dict[str, FunctionInfo] = field(default_factory=dict)
    call_sites: Dict[str, List[int]] = field(default_factory=dict)
    macros: Set[str] = field(default_factory=set)
    # (line, column) of every declarator, used to tell declarations from uses
    declaration_sites: Set[Tuple[int, int]] = field(default_factory=set)

    def is_defined(self, name: str) -> bool:
        return name in self.functions or name in self.macros

    def is_standard(self, name: str) -> bool:
        return name in STDLIB_FUNCTIONS

    def type_of(self, name: str) -> Optional[str]:
        if name in self.variables:
            return self.variables[name].type
        if name in self.arrays:
            return self.arrays[name].element_type
        return None

    def is_char_array(self, name: str) -> bool:
        info = self.arrays.get(name)
        return info is not None and info.element_type == "char" and name not in self.variables

    def add_call(self, name: str, line: int) -> None:
        sites = self.call_sites.setdefault(name, [])
        if line not in sites:
            sites.append(line)


# ═════════════════════════════════════════════════════════════════════════
#  PART 2 — PATTERNS
# ═════════════════════════════════════════════════════════════════════════

FUNC_DEF_RE = re.compile(
    rf"\b({RETURN_ALT})\s+(\*\s*)?([A-Za-z_]\w*)\s*\(([^()]*)\)"
)
_CALL_RE = re.compile(r"\b([A-Za-z_]\w*)\s*\(")
_MACRO_RE = re.compile(r"^\s*#\s*define\s+([A-Za-z_]\w*)\(")
_TYPE_WORD_RE = re.compile(r"\b(?:" + "|".join(TYPE_KEYWORDS) + r")\b")
_WORD_RE = re.compile(r"[A-Za-z_]\w*")
_FOR_OPEN_RE = re.compile(r"\bfor\s*$")


def _resolve_type(words: Sequence[str]) -> str:
    for candidate in ("double", "float", "char", "long", "short"):
        if candidate in words:
            return candidate
    return "int"


def _skip_ws(text: str, k: int) -> int:
    while k < len(text) and text[k].isspace():
        k += 1
    return k


def _enclosing_paren(masked: str, pos: int) -> int:
    """Index of the innermost unclosed ``(`` before *pos*, or -1."""
    stack: List[int] = []
    for k in range(pos):
        if masked[k] == "(":
            stack.append(k)
        elif masked[k] == ")" and stack:
            stack.pop()
    return stack[-1] if stack else -1


def _skip_initializer(masked: str, k: int) -> int:
    """Advance past an initializer to the next top-level ``,`` or ``;``."""
    depth = 0
    while k < len(masked):
        ch = masked[k]
        if ch in "([{":
            depth += 1
        elif ch in ")]}":
            if depth == 0:
                return k
            depth -= 1
        elif ch in ",;" and depth == 0:
            return k
        k += 1
    return k


# ═════════════════════════════════════════════════════════════════════════
#  PART 3 — EXTRACTION
# ═════════════════════════════════════════════════════════════════════════

def _collect_functions(views: Sequence[LineView], table: SymbolTable) -> Dict[int, Set[int]]:
    """Record function headers; return {line: {name columns}} for call filtering."""
    def_columns: Dict[int, Set[int]] = {}
    for idx, view in enumerate(views):
        if view.is_preprocessor:
            continue
        masked = view.masked
        for m in FUNC_DEF_RE.finditer(masked):
            name = m.group(3)
            if name in RESERVED_WORDS or name in STDLIB_FUNCTIONS:
                continue
            def_columns.setdefault(view.number, set()).add(m.start(3))
            after = masked[m.end():]
            is_prototype = after.strip().startswith(";")
            same_line_brace = "{" in after.split(";", 1)[0] if not is_prototype else False
            has_body = same_line_brace or (
                not is_prototype and idx + 1 < len(views) and "{" in views[idx + 1].masked
            )
            body_line: Optional[int] = None
            if same_line_brace:
                body_line = view.number
            elif not is_prototype:
                for j in range(idx + 1, min(idx + 3, len(views))):
                    if "{" in views[j].masked:
                        body_line = views[j].number
                        break
            info = FunctionInfo(
                name=name,
                return_type=m.group(1),
                params=m.group(4),
                line=view.number,
                column=m.start(3),
                has_body=has_body,
                body_line=body_line,
                is_prototype=is_prototype,
            )
            existing = table.functions.get(name)
            if existing is not None and is_prototype and not existing.is_prototype:
                continue
            table.functions[name] = info
    return def_columns


def _collect_calls(
    views: Sequence[LineView],
    table: SymbolTable,
    def_columns: Dict[int, Set[int]],
) -> None:
    for view in views:
        if view.is_preprocessor:
            macro = _MACRO_RE.match(view.code)
            if macro:
                table.macros.add(macro.group(1))
            continue
        masked = view.masked
        skip = def_columns.get(view.number, set())
        for m in _CALL_RE.finditer(masked):
            name = m.group(1)
            if name in RESERVED_WORDS or m.start(1) in skip:
                continue
            before = masked[:m.start(1)].rstrip()
            if before.endswith(".") or before.endswith("->"):
                continue
            table.add_call(name, view.number)


def _collect_declarations(views: Sequence[LineView], table: SymbolTable) -> None:
    for view in views:
        if view.is_preprocessor:
            continue
        masked = view.masked
        for m in _TYPE_WORD_RE.finditer(masked):
            prev = masked[:m.start()].rstrip()
            if prev and (prev[-1].isalnum() or prev[-1] == "_"):
                # second word of "long int", "unsigned char", ...
                words = _WORD_RE.findall(prev.split()[-1])
                if words and words[-1] in TYPE_KEYWORDS:
                    continue
            paren = _enclosing_paren(masked, m.start())
            if paren >= 0 and not _FOR_OPEN_RE.search(masked[:paren]):
                continue
            _parse_declarators(view, m.end(), m.group(), table)


def _parse_declarators(view: LineView, k: int, first_word: str, table: SymbolTable) -> None:
    masked = view.masked
    words = [first_word]
    while True:
        k = _skip_ws(masked, k)
        wm = _WORD_RE.match(masked, k)
        if wm and wm.group() in TYPE_KEYWORDS:
            words.append(wm.group())
            k = wm.end()
            continue
        break
    type_name = _resolve_type(words)

    while k < len(masked):
        k = _skip_ws(masked, k)
        while k < len(masked) and masked[k] in "* ":
            k += 1
        wm = _WORD_RE.match(masked, k)
        if wm is None or wm.group() in RESERVED_WORDS:
            return
        name, column = wm.group(), wm.start()
        k = _skip_ws(masked, wm.end())
        if k < len(masked) and masked[k] == "(":
            return  # function header or prototype
        size: Optional[int] = None
        is_array = False
        while k < len(masked) and masked[k] == "[":
            close = find_matching(masked, k)
            if close < 0:
                close = len(masked)
            if not is_array:
                literal = masked[k + 1:close].strip()
                size = int(literal) if literal.isdigit() else None
            is_array = True
            k = _skip_ws(masked, close + 1)
        initialized = k < len(masked) and masked[k] == "=" and masked[k + 1:k + 2] != "="
        if initialized:
            k = _skip_initializer(masked, k + 1)
        table.declaration_sites.add((view.number, column))
        if is_array:
            if size is not None:
                table.arrays[name] = ArrayInfo(name, type_name, size, view.number, column)
        else:
            table.variables[name] = VariableInfo(name, type_name, view.number, column, initialized)
        if k < len(masked) and masked[k] == ",":
            k += 1
            continue
        return


def extract_symbols(views: Sequence[LineView]) -> SymbolTable:
    """Build the symbol table for one run."""
    table = SymbolTable()
    def_columns = _collect_functions(views, table)
    _collect_calls(views, table, def_columns)
    _collect_declarations(views, table)
    _log.debug(
        "symbols: %d variables, %d arrays, %d functions, %d called names",
        len(table.variables), len(table.arrays),
        len(table.functions), len(table.call_sites),
    )
    return table


__all__ = [
    "VariableInfo",
    "ArrayInfo",
    "FunctionInfo",
    "SymbolTable",
    "FUNC_DEF_RE",
    "extract_symbols",
]
