"""
cscrub/naming.py
════════════════

Rename map for short variable names.

A variable keeps its name when the name is already descriptive (on the
clear list, or longer than three characters).  Any other variable takes
the next free name from the pool for its declared type.  A pool name is
free when it is neither assigned already nor an identifier that appears
anywhere in the program, so the map is always injective and never
captures an existing name.

License: MIT
"""

from __future__ import annotations

import re
from typing import Dict, FrozenSet, Iterable, Sequence, Set, Tuple

from cscrub.lexer import LineView
from cscrub.symbols import SymbolTable

CLEAR_NAMES: FrozenSet[str] = frozenset({
    "result", "count", "index", "value", "total", "sum", "main", "argc", "argv",
})

_INT_POOL = ("counter", "number", "value", "index", "count")

NAME_POOLS: Dict[str, Tuple[str, ...]] = {
    "int": _INT_POOL,
    "long": _INT_POOL,
    "short": _INT_POOL,
    "float": ("decimal", "ratio", "amount", "rate"),
    "double": ("preciseValue", "calculation"),
    "char": ("character", "letter", "symbol"),
}

_IDENT_RE = re.compile(r"[A-Za-z_]\w*")


def is_clear_name(name: str) -> bool:
    return name in CLEAR_NAMES or len(name) > 3


def program_identifiers(views: Iterable[LineView]) -> Set[str]:
    """Every identifier outside comments and literals."""
    names: Set[str] = set()
    for view in views:
        names.update(_IDENT_RE.findall(view.masked))
    return names


def _next_free(pool: Sequence[str], taken: Set[str]) -> str:
    for candidate in pool:
        if candidate not in taken:
            return candidate
    n = len(pool) + 1
    while f"{pool[0]}{n}" in taken:
        n += 1
    return f"{pool[0]}{n}"


def build_rename_map(symbols: SymbolTable, views: Sequence[LineView]) -> Dict[str, str]:
    """
    Map short variable names to descriptive ones.

    Variables are visited in declaration order; functions, arrays and
    parameters are never renamed.
    """
    taken = program_identifiers(views)
    rename: Dict[str, str] = {}
    for name, info in symbols.variables.items():
        if is_clear_name(name) or name in symbols.functions:
            continue
        pool = NAME_POOLS.get(info.type, _INT_POOL)
        new_name = _next_free(pool, taken)
        taken.add(new_name)
        rename[name] = new_name
    return rename


__all__ = [
    "CLEAR_NAMES",
    "NAME_POOLS",
    "is_clear_name",
    "program_identifiers",
    "build_rename_map",
]
