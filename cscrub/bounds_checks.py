"""
cscrub/bounds_checks.py
═══════════════════════

Array bounds checker.

Two independent rules, both limited to arrays whose declared size is an
integer literal:

  (a) a literal index outside ``0 .. size-1``
  (b) a ``for`` loop with literal start, literal bound and unit step whose
      projected maximum index reaches past an array it indexes

License: MIT
"""

from __future__ import annotations

import re
from typing import ClassVar, Dict, FrozenSet, List, Sequence, Tuple

from cscrub.checkers import Checker
from cscrub.context import AnalysisContext
from cscrub.defects import DefectCategory, Severity
from cscrub.lexer import LineView
from cscrub.matchers import ForLoop, parse_for_loop
from cscrub.symbols import ArrayInfo

_LITERAL_INDEX_RE = re.compile(r"\b([A-Za-z_]\w*)\s*\[\s*(-?\d+)\s*\]")


def indexed_arrays(text: str, var: str) -> List[str]:
    """Names of arrays indexed by exactly ``[var]`` in *text*."""
    pattern = re.compile(rf"\b([A-Za-z_]\w*)\s*\[\s*{re.escape(var)}\s*\]")
    return [m.group(1) for m in pattern.finditer(text)]


def overflowing_accesses(
    views: Sequence[LineView],
    index: int,
    loop: ForLoop,
    arrays: Dict[str, ArrayInfo],
    window: int,
    stop_at_close: bool = False,
) -> List[ArrayInfo]:
    """
    Arrays indexed by the loop variable that the loop runs past.

    Scans ``views[index:index + window]``; with *stop_at_close* the scan
    also ends at the first line holding only ``}``.
    """
    max_index = loop.max_index
    if max_index is None:
        return []
    found: List[ArrayInfo] = []
    for j in range(index, min(index + window, len(views))):
        masked = views[j].masked
        for name in indexed_arrays(masked, loop.var):
            info = arrays.get(name)
            if info is not None and max_index >= info.size and info not in found:
                found.append(info)
        if stop_at_close and j > index and masked.strip() == "}":
            break
    return found


class ArrayBoundsChecker(Checker):
    name: ClassVar[str] = "array-bounds"
    description: ClassVar[str] = "Constant and loop-driven out-of-bounds array accesses"
    categories: ClassVar[FrozenSet[DefectCategory]] = frozenset({DefectCategory.ARRAY_OUT_OF_BOUNDS})
    default_severity: ClassVar[Severity] = Severity.CRITICAL

    def __init__(self) -> None:
        super().__init__()
        self._literal: List[Tuple[int, ArrayInfo, int]] = []
        self._loops: List[Tuple[int, ForLoop, ArrayInfo, int]] = []

    def collect_evidence(self, ctx: AnalysisContext) -> None:
        arrays = ctx.symbols.arrays
        if not arrays:
            return
        sites = ctx.symbols.declaration_sites
        for idx, view in enumerate(ctx.views):
            masked = view.masked
            for m in _LITERAL_INDEX_RE.finditer(masked):
                info = arrays.get(m.group(1))
                if info is None or (view.number, m.start(1)) in sites:
                    continue
                value = int(m.group(2))
                if value < 0 or value >= info.size:
                    self._literal.append((view.number, info, value))

            loop = parse_for_loop(masked)
            if loop is None or loop.max_index is None:
                continue
            for info in overflowing_accesses(ctx.views, idx, loop, arrays, ctx.options.bounds_window):
                self._loops.append((view.number, loop, info, loop.max_index))

    def diagnose(self, ctx: AnalysisContext) -> None:
        for line, info, value in self._literal:
            if value < 0:
                self._emit(
                    DefectCategory.ARRAY_OUT_OF_BOUNDS, line,
                    f"Array '{info.name}' accessed at negative index {value}",
                    "Use a non-negative index",
                    "Negative array indices cause undefined behavior.",
                )
            else:
                self._emit(
                    DefectCategory.ARRAY_OUT_OF_BOUNDS, line,
                    f"Array '{info.name}' accessed at index {value}, but size is "
                    f"{info.size} (valid indices: {info.valid_range})",
                    f"Use an index less than {info.size}",
                    "Accessing array out of bounds causes undefined behavior "
                    "and can crash the program.",
                )
        for line, loop, info, max_index in self._loops:
            self._emit(
                DefectCategory.ARRAY_OUT_OF_BOUNDS, line,
                f"Loop may access '{info.name}[{max_index}]' but array size is "
                f"{info.size} (valid: {info.valid_range})",
                f"Change loop condition to '{loop.var} < {info.size}'",
                "The loop iterates beyond the array bounds which causes "
                "undefined behavior.",
            )


__all__ = ["ArrayBoundsChecker", "indexed_arrays", "overflowing_accesses"]
