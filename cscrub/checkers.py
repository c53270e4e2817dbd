"""
cscrub/checkers.py
══════════════════

Checker framework: the ordered pipeline of detection passes.

Architecture
────────────

  ┌─────────────────────────────────────────────────────────┐
  │                   CheckerRunner                         │
  │  ┌──────────────┐  ┌──────────────┐  ┌──────────────┐  │
  │  │ Delimiter    │  │ Function     │  │ InfiniteLoop │  │
  │  │  Checkers    │→ │  Checker     │→ │  Checker  …  │  │
  │  └──────┬───────┘  └──────┬───────┘  └──────┬───────┘  │
  │         │                 │                  │          │
  │  ┌──────▼─────────────────▼──────────────────▼───────┐  │
  │  │     AnalysisContext (views, symbols, side sets)   │  │
  │  └──────────────────────────┬────────────────────────┘  │
  │                             │                           │
  │  ┌──────────────────────────▼────────────────────────┐  │
  │  │           SuppressionManager                      │  │
  │  │  // cscrub-suppress  │  global (options / CLI)    │  │
  │  └──────────────────────────┬────────────────────────┘  │
  │                             │                           │
  │  ┌──────────────────────────▼────────────────────────┐  │
  │  │      DefectRegistry (dedup, sorted snapshot)      │  │
  │  └──────────────────────────────────────────────────┘  │
  └─────────────────────────────────────────────────────────┘

Checkers run strictly in registration order: later checkers read the side
collections earlier ones fill in.  Each checker follows a four-phase
lifecycle:

  1. **configure()**        — read options
  2. **collect_evidence()** — scan lines, gather suspicious sites
  3. **diagnose()**         — turn evidence into DefectRecords
  4. **report()**           — return records that survive suppressions

License: MIT
"""

from __future__ import annotations

import logging
import re
import time
from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import dataclass, field
from typing import (
    ClassVar,
    Dict,
    FrozenSet,
    Iterable,
    List,
    Optional,
    Sequence,
    Set,
    Type,
)

from cscrub.context import AnalysisContext
from cscrub.defects import DefectCategory, DefectRecord, Severity, count_by_severity
from cscrub.errors import ConfigurationError, ErrorCodes
from cscrub.lexer import LineView

_log = logging.getLogger(__name__)


# ═════════════════════════════════════════════════════════════════════════
#  PART 1 — SUPPRESSION MANAGER
# ═════════════════════════════════════════════════════════════════════════

_SUPPRESS_RE = re.compile(r"cscrub-suppress\s+([\w*]+(?:\s*,\s*[\w*]+)*)")


class SuppressionManager:
    """
    Manages defect suppressions.

    Sources:
      1. Inline comments: ``// cscrub-suppress MissingSemicolon`` on the
         flagged line or the line before it (``*`` matches any category)
      2. Global suppressions (options or command line)

    Usage
    -----
    >>> sm = SuppressionManager()
    >>> sm.load_inline_suppressions(ctx.views)
    >>> sm.add_global_suppression("UnusedVariable")
    >>> if not sm.is_suppressed(record):
    ...     registry.add(record)
    """

    def __init__(self) -> None:
        # line → set of category tags suppressed at that line
        self._inline: Dict[int, Set[str]] = defaultdict(set)
        self._global: Set[str] = set()

    def load_inline_suppressions(self, views: Iterable[LineView]) -> None:
        """Scan comments for ``cscrub-suppress`` markers."""
        for view in views:
            if "cscrub-suppress" not in view.raw:
                continue
            for m in _SUPPRESS_RE.finditer(view.raw):
                # only markers inside comments count
                if view.code[m.start()] != " ":
                    continue
                for tag in m.group(1).split(","):
                    self._inline[view.number].add(tag.strip())

    def add_global_suppression(self, category: str) -> None:
        """Globally suppress a category tag."""
        self._global.add(category)

    def is_suppressed(self, record: DefectRecord) -> bool:
        tag = record.category.value
        if tag in self._global or "*" in self._global:
            return True
        for line_offset in (0, 1):
            tags = self._inline.get(record.line - line_offset, set())
            if tag in tags or "*" in tags:
                return True
        return False

    def filter_records(self, records: Iterable[DefectRecord]) -> List[DefectRecord]:
        """Return only non-suppressed records."""
        return [r for r in records if not self.is_suppressed(r)]


# ═════════════════════════════════════════════════════════════════════════
#  PART 2 — CHECKER BASE CLASS
# ═════════════════════════════════════════════════════════════════════════

class Checker(ABC):
    """
    Abstract base class for all checkers.

    Subclass Contract
    ─────────────────
      - Override ``name``, ``description``, ``categories``
      - Implement ``collect_evidence()`` and ``diagnose()``
      - Optionally override ``configure()`` for custom setup
    """

    name: ClassVar[str] = "base-checker"
    description: ClassVar[str] = ""
    categories: ClassVar[FrozenSet[DefectCategory]] = frozenset()
    default_severity: ClassVar[Severity] = Severity.ERROR

    def __init__(self) -> None:
        self._records: List[DefectRecord] = []
        self._suppressions: Optional[SuppressionManager] = None

    @property
    def records(self) -> List[DefectRecord]:
        return list(self._records)

    def configure(self, ctx: AnalysisContext) -> None:
        """Called before evidence collection.  Default does nothing."""

    @abstractmethod
    def collect_evidence(self, ctx: AnalysisContext) -> None:
        ...

    @abstractmethod
    def diagnose(self, ctx: AnalysisContext) -> None:
        """Append records via :meth:`_emit`."""
        ...

    def report(self, ctx: AnalysisContext) -> List[DefectRecord]:
        """Return final records, filtered by suppressions."""
        if self._suppressions is None:
            return list(self._records)
        return self._suppressions.filter_records(self._records)

    def _emit(
        self,
        category: DefectCategory,
        line: int,
        message: str,
        suggestion: Optional[str] = None,
        rationale: Optional[str] = None,
        severity: Optional[Severity] = None,
    ) -> None:
        """Helper to create and store a record."""
        self._records.append(DefectRecord(
            category=category,
            severity=severity or self.default_severity,
            line=line,
            message=message,
            suggestion=suggestion,
            rationale=rationale,
            checker=self.name,
        ))

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} '{self.name}'>"


# ═════════════════════════════════════════════════════════════════════════
#  PART 3 — CHECKER REGISTRY
# ═════════════════════════════════════════════════════════════════════════

class CheckerRegistry:
    """
    Ordered registry of checker classes.

    Registration order is execution order.

    Usage
    -----
    >>> registry = CheckerRegistry()
    >>> registry.register(BracketChecker)
    >>> registry.register(ParenthesisChecker)
    >>> checkers = registry.get_enabled()
    """

    def __init__(self) -> None:
        self._checkers: Dict[str, Type[Checker]] = {}
        self._disabled: Set[str] = set()

    def register(self, checker_cls: Type[Checker]) -> None:
        self._checkers[checker_cls.name] = checker_cls

    def disable(self, name: str) -> None:
        if name not in self._checkers:
            raise ConfigurationError(
                f"unknown checker: {name!r}", code=ErrorCodes.UNKNOWN_CHECKER,
            )
        self._disabled.add(name)

    def enable(self, name: str) -> None:
        self._disabled.discard(name)

    def get_all(self) -> List[Type[Checker]]:
        return list(self._checkers.values())

    def get_enabled(self, extra_disabled: Iterable[str] = ()) -> List[Type[Checker]]:
        """Enabled checker classes in execution order."""
        disabled = self._disabled | set(extra_disabled)
        return [
            cls for name, cls in self._checkers.items()
            if name not in disabled
        ]

    def get_by_name(self, name: str) -> Optional[Type[Checker]]:
        return self._checkers.get(name)

    def filter_by_category(self, category: DefectCategory) -> List[Type[Checker]]:
        """Checkers that can produce *category*."""
        return [
            cls for cls in self._checkers.values()
            if category in cls.categories
        ]

    @property
    def names(self) -> List[str]:
        return list(self._checkers.keys())

    def __contains__(self, name: object) -> bool:
        return name in self._checkers

    def __len__(self) -> int:
        return len(self._checkers)


# ═════════════════════════════════════════════════════════════════════════
#  PART 4 — CHECKER RUNNER
# ═════════════════════════════════════════════════════════════════════════

@dataclass
class CheckerRunResults:
    """
    Results of running the checker pipeline once.

    Attributes
    ----------
    defects       : sorted snapshot of the registry after the run
    by_checker    : records each checker contributed (after dedup)
    stats         : per-checker timing in milliseconds
    checker_names : names of checkers that ran, in order
    """
    defects: tuple = ()
    by_checker: Dict[str, List[DefectRecord]] = field(default_factory=dict)
    stats: Dict[str, float] = field(default_factory=dict)
    checker_names: List[str] = field(default_factory=list)

    def counts(self) -> Dict[str, int]:
        return count_by_severity(self.defects)

    def by_severity(self, severity: Severity) -> List[DefectRecord]:
        return [d for d in self.defects if d.severity is severity]

    def summary(self) -> str:
        counts = self.counts()
        lines = [
            f"Checker run complete: {len(self.defects)} defects "
            f"({counts['critical']} critical, {counts['error']} errors, "
            f"{counts['warning']} warnings, {counts['info']} info)",
        ]
        for name in self.checker_names:
            count = len(self.by_checker.get(name, []))
            elapsed = self.stats.get(f"{name}_elapsed_ms", 0.0)
            lines.append(f"  {name}: {count} findings ({elapsed:.1f}ms)")
        return "\n".join(lines)


class CheckerRunner:
    """
    Runs the checker pipeline against an :class:`AnalysisContext`.

    Usage
    -----
    >>> ctx = AnalysisContext.from_source(src)
    >>> results = CheckerRunner().run(ctx)
    >>> print(results.summary())

    Parameters for constructor
    ─────────────────────────
    registry     : CheckerRegistry — source of checker classes
    suppressions : SuppressionManager — pre-loaded suppression rules
    """

    def __init__(
        self,
        registry: Optional[CheckerRegistry] = None,
        suppressions: Optional[SuppressionManager] = None,
    ) -> None:
        if registry is None:
            from cscrub.engine import default_registry
            registry = default_registry()
        self.registry = registry
        self.suppressions = suppressions or SuppressionManager()

    def _select(self, ctx: AnalysisContext, checkers: Optional[Sequence[str]]) -> List[Type[Checker]]:
        unknown = [n for n in ctx.options.disabled_checkers if n not in self.registry]
        if checkers is not None:
            unknown += [n for n in checkers if n not in self.registry]
        if unknown:
            raise ConfigurationError(
                f"unknown checkers: {', '.join(sorted(unknown))}",
                code=ErrorCodes.UNKNOWN_CHECKER,
            )
        enabled = self.registry.get_enabled(ctx.options.disabled_checkers)
        if checkers is None:
            return enabled
        wanted = set(checkers)
        return [cls for cls in enabled if cls.name in wanted]

    def run(
        self,
        ctx: AnalysisContext,
        checkers: Optional[Sequence[str]] = None,
    ) -> CheckerRunResults:
        """
        Run checkers against *ctx* in registration order.

        Parameters
        ----------
        ctx      : AnalysisContext for this call
        checkers : names of checkers to run (None = all enabled)

        Returns
        -------
        CheckerRunResults
        """
        results = CheckerRunResults()
        self.suppressions.load_inline_suppressions(ctx.views)
        for tag in ctx.options.suppressed_categories:
            self.suppressions.add_global_suppression(tag)

        for cls in self._select(ctx, checkers):
            checker = cls()
            checker._suppressions = self.suppressions
            checker_name = cls.name
            results.checker_names.append(checker_name)

            t0 = time.monotonic()
            try:
                checker.configure(ctx)
                checker.collect_evidence(ctx)
                checker.diagnose(ctx)
                records = checker.report(ctx)
            except Exception as exc:
                # Graceful degradation: report the failure, don't crash
                _log.exception("checker %s failed", checker_name)
                records = [DefectRecord(
                    category=DefectCategory.INTERNAL_ERROR,
                    severity=Severity.INFO,
                    line=1,
                    message=f"Checker '{checker_name}' failed: {exc}",
                    checker=checker_name,
                )]
            elapsed_ms = (time.monotonic() - t0) * 1000.0

            kept = [r for r in records if ctx.registry.add(r)]
            results.by_checker[checker_name] = kept
            results.stats[f"{checker_name}_elapsed_ms"] = elapsed_ms
            _log.debug("%s: %d records in %.1fms", checker_name, len(kept), elapsed_ms)

        ctx.stats.update(results.stats)
        results.defects = ctx.registry.snapshot()
        return results


__all__ = [
    "SuppressionManager",
    "Checker",
    "CheckerRegistry",
    "CheckerRunner",
    "CheckerRunResults",
]
