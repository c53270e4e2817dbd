"""
cscrub/config.py
════════════════

Engine options.

Lookahead windows bound the work done by loop and bounds heuristics; they
are limits, not correctness parameters.  Report side outputs (SARIF / HTML)
are configured through environment variables read by
:mod:`cscrub.reporter`, not here.

License: MIT
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, FrozenSet, Iterable

from cscrub.defects import DefectCategory
from cscrub.errors import ConfigurationError, ErrorCodes

DEFAULT_WHILE_TRUE_WINDOW = 20
DEFAULT_LOOP_BODY_WINDOW = 30
DEFAULT_BOUNDS_WINDOW = 10
DEFAULT_FIX_BOUNDS_WINDOW = 15
DEFAULT_INDENT_UNIT = "    "


@dataclass(frozen=True)
class EngineOptions:
    """
    Tunables for one analysis run.

    Attributes
    ----------
    while_true_window     : lines searched for an exit after ``while(1)``/``for(;;)``
    loop_body_window      : lines searched in ``while(var ...)`` bodies
    bounds_window         : lines searched for loop-indexed array accesses
    fix_bounds_window     : same, when tightening a ``for`` bound
    indent_unit           : one level of indentation in formatted output
    rename_variables      : apply the rename map during transformation
    disabled_checkers     : checker names to skip
    suppressed_categories : category tags dropped globally
    """
    while_true_window: int = DEFAULT_WHILE_TRUE_WINDOW
    loop_body_window: int = DEFAULT_LOOP_BODY_WINDOW
    bounds_window: int = DEFAULT_BOUNDS_WINDOW
    fix_bounds_window: int = DEFAULT_FIX_BOUNDS_WINDOW
    indent_unit: str = DEFAULT_INDENT_UNIT
    rename_variables: bool = True
    disabled_checkers: FrozenSet[str] = field(default_factory=frozenset)
    suppressed_categories: FrozenSet[str] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        for name in ("while_true_window", "loop_body_window",
                     "bounds_window", "fix_bounds_window"):
            value = getattr(self, name)
            if not isinstance(value, int) or value < 1:
                raise ConfigurationError(
                    f"{name} must be a positive integer, got {value!r}",
                    code=ErrorCodes.INVALID_OPTION,
                )
        if not self.indent_unit or self.indent_unit.strip(" \t"):
            raise ConfigurationError(
                f"indent_unit must be non-empty whitespace, got {self.indent_unit!r}",
                code=ErrorCodes.INVALID_OPTION,
            )
        known = set(DefectCategory.tags())
        unknown = sorted(set(self.suppressed_categories) - known)
        if unknown:
            raise ConfigurationError(
                f"unknown defect categories: {', '.join(unknown)}",
                code=ErrorCodes.UNKNOWN_CATEGORY,
            )
        # Accept any iterable from callers; store frozensets.
        object.__setattr__(self, "disabled_checkers", frozenset(self.disabled_checkers))
        object.__setattr__(self, "suppressed_categories", frozenset(self.suppressed_categories))

    def with_overrides(self, **changes: Any) -> EngineOptions:
        return replace(self, **changes)

    def suppressing(self, categories: Iterable[str]) -> EngineOptions:
        return replace(
            self,
            suppressed_categories=self.suppressed_categories | frozenset(categories),
        )


__all__ = [
    "EngineOptions",
    "DEFAULT_WHILE_TRUE_WINDOW",
    "DEFAULT_LOOP_BODY_WINDOW",
    "DEFAULT_BOUNDS_WINDOW",
    "DEFAULT_FIX_BOUNDS_WINDOW",
    "DEFAULT_INDENT_UNIT",
]
