"""
cscrub/defects.py
═════════════════

Defect model and the deduplicating registry every checker writes into.

  ┌──────────┐   emit   ┌────────────────────┐  snapshot()  ┌─────────────┐
  │ Checker  │ ───────▶ │   DefectRegistry   │ ───────────▶ │ tuple[...]  │
  └──────────┘          │ dedup (line,cat,msg)│             │ sorted/line │
                        └────────────────────┘              └─────────────┘

Severity and category are closed enumerations so the registry's identity
key and every renderer switch are exhaustive.

License: MIT
"""

from __future__ import annotations

import enum
import json
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Optional, Set, Tuple


# ═════════════════════════════════════════════════════════════════════════
#  SEVERITY ENUM
# ═════════════════════════════════════════════════════════════════════════

class Severity(enum.Enum):
    """
    Defect severity levels.

    Each carries:
      • label       — the string exposed in records and reports
      • color       — termcolor colour name
      • sarif_level — SARIF 2.1.0 ``level`` string
    """

    CRITICAL = ("critical", "magenta", "error")
    ERROR = ("error", "red", "error")
    WARNING = ("warning", "yellow", "warning")
    INFO = ("info", "cyan", "note")

    def __init__(self, label: str, color: str, sarif_level: str) -> None:
        self.label = label
        self.color = color
        self.sarif_level = sarif_level

    @classmethod
    def from_string(cls, s: str) -> Severity:
        """Parse a severity from its label (case-insensitive)."""
        s_low = s.strip().lower()
        for member in cls:
            if member.label == s_low:
                return member
        raise ValueError(f"unknown severity: {s!r}")

    def __str__(self) -> str:
        return self.label


# ═════════════════════════════════════════════════════════════════════════
#  CATEGORY ENUM
# ═════════════════════════════════════════════════════════════════════════

class DefectCategory(enum.Enum):
    """Closed set of defect kinds the engine can report."""

    MISSING_SEMICOLON = "MissingSemicolon"
    MISMATCHED_BRACKET = "MismatchedBracket"
    MISMATCHED_PARENTHESIS = "MismatchedParenthesis"
    MISMATCHED_BRACE = "MismatchedBrace"
    MALFORMED_SYNTAX = "MalformedSyntax"
    UNDEFINED_FUNCTION = "UndefinedFunction"
    UNUSED_FUNCTION = "UnusedFunction"
    UNCALLED_FUNCTIONS_SUMMARY = "UncalledFunctionsSummary"
    MISSING_FUNCTION_BODY = "MissingFunctionBody"
    INVALID_PARAMETER = "InvalidParameter"
    MISSING_RETURN = "MissingReturn"
    ASSIGNMENT_IN_CONDITION = "AssignmentInCondition"
    UNINITIALIZED_VARIABLE = "UninitializedVariable"
    UNUSED_VARIABLE = "UnusedVariable"
    UNREACHABLE_CODE = "UnreachableCode"
    REDUNDANT_EXPRESSION = "RedundantExpression"
    CONSTANT_CONDITION = "ConstantCondition"
    DIVISION_BY_ZERO = "DivisionByZero"
    SELF_ASSIGNMENT = "SelfAssignment"
    INVALID_PRINTF = "InvalidPrintf"
    INVALID_SCANF = "InvalidScanf"
    ARRAY_OUT_OF_BOUNDS = "ArrayOutOfBounds"
    INFINITE_LOOP = "InfiniteLoop"
    EMPTY_BODY = "EmptyBody"
    EMPTY_FUNCTION = "EmptyFunction"
    INTERNAL_ERROR = "InternalError"

    @classmethod
    def from_tag(cls, tag: str) -> DefectCategory:
        """Look a category up by its tag (``"MissingSemicolon"``)."""
        for member in cls:
            if member.value == tag:
                return member
        raise ValueError(f"unknown defect category: {tag!r}")

    @classmethod
    def tags(cls) -> List[str]:
        return [member.value for member in cls]

    def __str__(self) -> str:
        return self.value


# ═════════════════════════════════════════════════════════════════════════
#  DEFECT RECORD
# ═════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class DefectRecord:
    """
    A single reported finding.

    Attributes
    ----------
    category   : DefectCategory
    severity   : Severity
    line       : 1-based source line
    message    : Human-readable description
    suggestion : Optional suggested fix
    rationale  : Optional explanation of why this matters
    checker    : Name of the checker that produced it (not part of identity)
    """
    category: DefectCategory
    severity: Severity
    line: int
    message: str
    suggestion: Optional[str] = None
    rationale: Optional[str] = None
    checker: str = field(default="", compare=False)

    @property
    def key(self) -> Tuple[int, DefectCategory, str]:
        """Deduplication identity."""
        return (self.line, self.category, self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category.value,
            "severity": self.severity.label,
            "line": self.line,
            "message": self.message,
            "suggestion": self.suggestion,
            "rationale": self.rationale,
        }

    def to_json_str(self) -> str:
        """Single-line JSON string."""
        return json.dumps(self.to_dict())

    def to_gcc_format(self, filename: str = "<input>") -> str:
        """GCC-style diagnostic string: file:line: severity: message [category]."""
        return (
            f"{filename}:{self.line}: {self.severity.label}: "
            f"{self.message} [{self.category.value}]"
        )

    def one_liner(self, filename: str = "<input>") -> str:
        """Classic one-liner: ``[file:line]: (severity) message [category]``."""
        return (
            f"[{filename}:{self.line}]: ({self.severity.label}) "
            f"{self.message} [{self.category.value}]"
        )


# ═════════════════════════════════════════════════════════════════════════
#  DEFECT REGISTRY
# ═════════════════════════════════════════════════════════════════════════

class DefectRegistry:
    """
    Collects records from every checker of one run.

    A record whose (line, category, message) was already seen is dropped
    silently.  :meth:`snapshot` returns the records sorted by line; ties keep
    insertion order, which already follows checker order.
    """

    def __init__(self) -> None:
        self._records: List[DefectRecord] = []
        self._seen: Set[Tuple[int, DefectCategory, str]] = set()

    def add(self, record: DefectRecord) -> bool:
        """Store *record*; return False if it was a duplicate."""
        if record.key in self._seen:
            return False
        self._seen.add(record.key)
        self._records.append(record)
        return True

    def extend(self, records: Iterable[DefectRecord]) -> int:
        return sum(1 for r in records if self.add(r))

    def snapshot(self) -> Tuple[DefectRecord, ...]:
        return tuple(sorted(self._records, key=lambda r: r.line))

    def by_category(self, category: DefectCategory) -> List[DefectRecord]:
        return [r for r in self._records if r.category is category]

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[DefectRecord]:
        return iter(self.snapshot())


def count_by_severity(records: Iterable[DefectRecord]) -> Dict[str, int]:
    """Per-severity counts keyed by label, every severity present."""
    counts = {sev.label: 0 for sev in Severity}
    for rec in records:
        counts[rec.severity.label] += 1
    return counts


__all__ = [
    "Severity",
    "DefectCategory",
    "DefectRecord",
    "DefectRegistry",
    "count_by_severity",
]
