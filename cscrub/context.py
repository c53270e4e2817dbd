"""
cscrub/context.py
═════════════════

Per-call analysis context.

Every call to :func:`cscrub.analyze` / :func:`cscrub.analyze_and_transform`
builds one :class:`AnalysisContext`; nothing in it outlives the call.  The
checkers communicate through its side collections, which are filled in
checker order and read by later checkers and by the transformer:

  undefined_functions      ← FunctionChecker
  unused_functions         ← FunctionChecker
  uninitialized_variables  ← VariableLifecycleChecker
  unused_variables         ← VariableLifecycleChecker
  analyses["loop_verdicts"] ← InfiniteLoopChecker

All collections are insertion ordered so output never depends on hashing.

License: MIT
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from cscrub.config import EngineOptions
from cscrub.defects import DefectRegistry
from cscrub.lexer import LineView, split_lines
from cscrub.symbols import SymbolTable, extract_symbols


@dataclass(frozen=True)
class UninitializedUse:
    """A variable read before anything was assigned to it."""
    name: str
    declaration_line: int
    first_use_line: int
    type: str


@dataclass
class AnalysisContext:
    """
    Shared state passed to every checker during one run.

    Attributes
    ----------
    source   : the input text
    views    : one LineView per input line
    symbols  : SymbolTable extracted before any checker runs
    registry : DefectRegistry the checkers emit into
    options  : EngineOptions for this run
    analyses : named results one checker leaves for later readers
    stats    : timing statistics filled by the runner
    """
    source: str
    views: List[LineView]
    symbols: SymbolTable
    options: EngineOptions = field(default_factory=EngineOptions)
    registry: DefectRegistry = field(default_factory=DefectRegistry)
    undefined_functions: Dict[str, List[int]] = field(default_factory=dict)
    unused_functions: Dict[str, int] = field(default_factory=dict)
    unused_variables: Dict[str, int] = field(default_factory=dict)
    uninitialized_variables: Dict[str, UninitializedUse] = field(default_factory=dict)
    analyses: Dict[str, Any] = field(default_factory=dict)
    stats: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_source(cls, source: str, options: Optional[EngineOptions] = None) -> AnalysisContext:
        views = split_lines(source)
        return cls(
            source=source,
            views=views,
            symbols=extract_symbols(views),
            options=options or EngineOptions(),
        )

    @property
    def line_count(self) -> int:
        return len(self.views)

    def view(self, line: int) -> LineView:
        """The view of 1-based *line*."""
        return self.views[line - 1]

    def get_analysis(self, name: str) -> Any:
        return self.analyses.get(name)

    def set_analysis(self, name: str, result: Any) -> None:
        """Store a result for sharing between checkers."""
        self.analyses[name] = result


__all__ = ["AnalysisContext", "UninitializedUse"]
