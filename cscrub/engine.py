"""
cscrub/engine.py
════════════════

Public entry points.

  analyze(source)                ──▶ AnalysisResult(defects)
  analyze_and_transform(source)  ──▶ TransformResult(defects,
                                                     transformed_source,
                                                     stats)

Each call builds a fresh :class:`AnalysisContext`, runs the default checker
pipeline over it and, for ``analyze_and_transform``, hands the populated
context to the :class:`Transformer`.  Nothing is shared between calls.

License: MIT
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple, Type

from cscrub.bounds_checks import ArrayBoundsChecker
from cscrub.checkers import Checker, CheckerRegistry, CheckerRunner
from cscrub.config import EngineOptions
from cscrub.context import AnalysisContext
from cscrub.defects import DefectRecord, Severity, count_by_severity
from cscrub.expression_checks import (
    AssignmentInConditionChecker,
    ExpressionChecker,
    FormatCallChecker,
    VariableLifecycleChecker,
)
from cscrub.flow_checks import EmptyBodyChecker, MissingReturnChecker, UnreachableChecker
from cscrub.function_checks import FunctionChecker
from cscrub.loop_checks import InfiniteLoopChecker
from cscrub.syntax_checks import (
    BraceChecker,
    BracketChecker,
    MalformedSyntaxChecker,
    MissingSemicolonChecker,
    ParenthesisChecker,
)
from cscrub.transform import Transformer, TransformStats

_log = logging.getLogger(__name__)

NOTHING_TO_SHOW = "/* nothing to show */"

# Registration order is execution order.
ALL_CHECKERS: Tuple[Type[Checker], ...] = (
    BracketChecker,
    ParenthesisChecker,
    BraceChecker,
    MalformedSyntaxChecker,
    MissingSemicolonChecker,
    FunctionChecker,
    MissingReturnChecker,
    AssignmentInConditionChecker,
    VariableLifecycleChecker,
    UnreachableChecker,
    ExpressionChecker,
    FormatCallChecker,
    ArrayBoundsChecker,
    InfiniteLoopChecker,
    EmptyBodyChecker,
)


def default_registry() -> CheckerRegistry:
    """A new registry holding every built-in checker."""
    registry = CheckerRegistry()
    for cls in ALL_CHECKERS:
        registry.register(cls)
    return registry


# ═════════════════════════════════════════════════════════════════════════
#  RESULTS
# ═════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class AnalysisResult:
    """Defects of one program, sorted by line."""
    defects: Tuple[DefectRecord, ...] = ()

    def counts(self) -> Dict[str, int]:
        return count_by_severity(self.defects)

    @property
    def has_errors(self) -> bool:
        return any(d.severity in (Severity.CRITICAL, Severity.ERROR) for d in self.defects)

    def summary(self) -> str:
        if not self.defects:
            return "No defects found"
        counts = self.counts()
        return (
            f"{len(self.defects)} defects "
            f"({counts['critical']} critical, {counts['error']} errors, "
            f"{counts['warning']} warnings, {counts['info']} info)"
        )

    def to_json_lines(self) -> str:
        return "\n".join(d.to_json_str() for d in self.defects)

    def to_gcc_format(self, filename: str = "<input>") -> List[str]:
        return [d.to_gcc_format(filename) for d in self.defects]

    def __len__(self) -> int:
        return len(self.defects)


@dataclass(frozen=True)
class TransformResult(AnalysisResult):
    """Defects plus the rewritten program and what the rewrite did."""
    transformed_source: str = ""
    stats: TransformStats = field(default_factory=TransformStats)

    @property
    def is_empty(self) -> bool:
        return not self.transformed_source.strip()

    def rendered_source(self) -> str:
        """The transformed program, or a placeholder when nothing is left."""
        return NOTHING_TO_SHOW if self.is_empty else self.transformed_source


# ═════════════════════════════════════════════════════════════════════════
#  ENTRY POINTS
# ═════════════════════════════════════════════════════════════════════════

def _checked_context(
    source: str,
    options: Optional[EngineOptions],
    checkers: Optional[Sequence[str]],
) -> AnalysisContext:
    ctx = AnalysisContext.from_source(source, options)
    results = CheckerRunner(default_registry()).run(ctx, checkers)
    _log.info("analysed %d lines: %d defects", ctx.line_count, len(results.defects))
    return ctx


def analyze(
    source: str,
    options: Optional[EngineOptions] = None,
    checkers: Optional[Sequence[str]] = None,
) -> AnalysisResult:
    """
    Run every detection pass over *source*.

    Parameters
    ----------
    source   : program text (may be empty)
    options  : EngineOptions, defaults when None
    checkers : restrict the run to these checker names

    Raises
    ------
    ConfigurationError
        For unknown checker names.
    """
    ctx = _checked_context(source, options, checkers)
    return AnalysisResult(defects=ctx.registry.snapshot())


def analyze_and_transform(
    source: str,
    options: Optional[EngineOptions] = None,
) -> TransformResult:
    """
    Analyse *source*, then rewrite it using the findings.

    Raises
    ------
    TransformInvariantError
        If the transformation state machine reaches an impossible state.
    """
    ctx = _checked_context(source, options, None)
    transformer = Transformer(ctx)
    transformed = transformer.run()
    _log.info("transformed: %s", transformer.stats.summary_line())
    return TransformResult(
        defects=ctx.registry.snapshot(),
        transformed_source=transformed,
        stats=transformer.stats,
    )


__all__ = [
    "ALL_CHECKERS",
    "NOTHING_TO_SHOW",
    "AnalysisResult",
    "TransformResult",
    "default_registry",
    "analyze",
    "analyze_and_transform",
]
