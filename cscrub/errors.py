# cscrub/errors.py
"""
cscrub Error Types
══════════════════

Exception hierarchy for the analysis-and-transformation engine.

Detection never raises on odd input: a construct that does not match any
heuristic simply produces no defect.  The exceptions below cover the two
situations that *are* fatal to a call:

  ┌──────────────────────────────────────────────────────────────────┐
  │  CscrubError (base)                                              │
  │  ├── ConfigurationError     - bad EngineOptions / CLI selection   │
  │  └── TransformInvariantError - rewrite state machine corrupted    │
  └──────────────────────────────────────────────────────────────────┘

Error codes follow the pattern ``CSCRUB-NNNN``:
  - 1000-1999: configuration errors
  - 9000-9999: internal invariant violations

License: MIT
"""

from __future__ import annotations

from typing import Optional


class ErrorCode:
    """A structured ``CSCRUB-NNNN`` error code with a short title."""

    __slots__ = ("number", "title")

    def __init__(self, number: int, title: str) -> None:
        self.number = number
        self.title = title

    @property
    def code(self) -> str:
        return f"CSCRUB-{self.number:04d}"

    def __str__(self) -> str:
        return self.code

    def __repr__(self) -> str:
        return f"ErrorCode({self.code!r}, {self.title!r})"

    def __hash__(self) -> int:
        return hash(self.number)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, ErrorCode):
            return self.number == other.number
        if isinstance(other, str):
            return self.code == other
        return False


class ErrorCodes:
    """Predefined error codes."""

    # ── configuration (1000-1999) ─────────────────────────────────────
    INVALID_OPTION = ErrorCode(1001, "invalid engine option")
    UNKNOWN_CHECKER = ErrorCode(1002, "unknown checker name")
    UNKNOWN_CATEGORY = ErrorCode(1003, "unknown defect category")

    # ── internal (9000-9999) ──────────────────────────────────────────
    BRACE_UNDERFLOW = ErrorCode(9001, "brace balance underflow")
    INVALID_STATE = ErrorCode(9002, "invalid transformer state")


class CscrubError(Exception):
    """
    Base exception for all cscrub errors.

    Carries an :class:`ErrorCode` and, where it makes sense, the 1-based
    source line that triggered the failure.
    """

    default_code: ErrorCode = ErrorCodes.INVALID_STATE

    def __init__(
        self,
        message: str,
        code: Optional[ErrorCode] = None,
        line: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.line = line

    def __str__(self) -> str:
        where = f" (line {self.line})" if self.line is not None else ""
        return f"{self.code}: {self.message}{where}"


class ConfigurationError(CscrubError):
    """Raised for invalid options, unknown checkers or unknown categories."""

    default_code = ErrorCodes.INVALID_OPTION


class TransformInvariantError(CscrubError):
    """
    The transformation engine reached an impossible state.

    This is the only condition under which :func:`cscrub.analyze_and_transform`
    raises; callers are expected to catch it and show a single error.
    """

    default_code = ErrorCodes.BRACE_UNDERFLOW


__all__ = [
    "ErrorCode",
    "ErrorCodes",
    "CscrubError",
    "ConfigurationError",
    "TransformInvariantError",
]
