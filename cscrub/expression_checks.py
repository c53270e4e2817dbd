"""
cscrub/expression_checks.py
═══════════════════════════

Expression-level checkers.

  AssignmentInConditionChecker — ``if (x = 5)``
  VariableLifecycleChecker     — read before write, never used
  ExpressionChecker            — redundant arithmetic, constant conditions,
                                 division by zero, self-assignment
  FormatCallChecker            — ``printf(x)`` and ``scanf("%d", x)``

All patterns run on masked code.

License: MIT
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import ClassVar, FrozenSet, List, Optional, Pattern, Tuple

from cscrub.checkers import Checker
from cscrub.context import AnalysisContext, UninitializedUse
from cscrub.defects import DefectCategory, Severity
from cscrub.lexer import count_identifier
from cscrub.matchers import (
    ALL_CAPS_RE,
    PRINTF_BARE_RE,
    control_headers,
    for_clauses,
    has_word,
    is_do_while_tail,
    printf_format_for,
    scanf_calls,
)
from cscrub.symbols import VariableInfo


# ═════════════════════════════════════════════════════════════════════════
#  PART 1 — ASSIGNMENT IN CONDITION
# ═════════════════════════════════════════════════════════════════════════

_SINGLE_EQ_RE = re.compile(r"(?<![=!<>])=(?!=)")
_COMPARISON_RE = re.compile(r"==|!=|<=|>=")


def is_assignment_condition(condition: str) -> bool:
    """A lone ``=`` with no comparison anywhere in *condition*."""
    return bool(_SINGLE_EQ_RE.search(condition)) and not _COMPARISON_RE.search(condition)


class AssignmentInConditionChecker(Checker):
    name: ClassVar[str] = "assignment-in-condition"
    description: ClassVar[str] = "'=' where '==' was meant"
    categories: ClassVar[FrozenSet[DefectCategory]] = frozenset({DefectCategory.ASSIGNMENT_IN_CONDITION})
    default_severity: ClassVar[Severity] = Severity.WARNING

    def __init__(self) -> None:
        super().__init__()
        self._lines: List[int] = []

    def collect_evidence(self, ctx: AnalysisContext) -> None:
        for view in ctx.views:
            for header in control_headers(view.masked, ("if", "while", "for")):
                if header.keyword == "for":
                    clauses = for_clauses(header)
                    condition = clauses[1] if len(clauses) == 3 else ""
                else:
                    condition = header.condition
                if is_assignment_condition(condition):
                    self._lines.append(view.number)

    def diagnose(self, ctx: AnalysisContext) -> None:
        for line in self._lines:
            self._emit(
                DefectCategory.ASSIGNMENT_IN_CONDITION, line,
                "Assignment '=' used instead of comparison '==' in condition",
                "Change '=' to '==' for comparison",
                "Using '=' performs assignment, not comparison.",
            )


# ═════════════════════════════════════════════════════════════════════════
#  PART 2 — VARIABLE LIFECYCLE
# ═════════════════════════════════════════════════════════════════════════

def default_initializer(type_name: str) -> str:
    """Zero value written for a variable of *type_name*."""
    if type_name == "char":
        return "'\\0'"
    if type_name in ("float", "double"):
        return "0.0"
    return "0"


def _first_uninitialized_use(ctx: AnalysisContext, info: VariableInfo) -> Optional[int]:
    """Line of the first read of *info* before any write, or None."""
    name = re.escape(info.name)
    assign_re = re.compile(rf"(?:^|[;{{}}\s(,])\s*{name}\s*=(?!=)")
    address_re = re.compile(rf"&\s*{name}\b")
    for view in ctx.views[info.line:]:
        masked = view.masked
        assign = assign_re.search(masked)
        if assign:
            rhs = masked[assign.end():].split(";", 1)[0]
            return view.number if has_word(rhs, info.name) else None
        if address_re.search(masked):
            return None
        if has_word(masked, info.name):
            return view.number
    return None


class VariableLifecycleChecker(Checker):
    """
    Uninitialized reads and unused variables.

    A variable counts as written by a plain assignment or by having its
    address taken (``scanf("%d", &x)``).  A variable is unused when its
    name occurs at most once outside comments and literals.
    """

    name: ClassVar[str] = "variable-lifecycle"
    description: ClassVar[str] = "Uninitialized and unused variables"
    categories: ClassVar[FrozenSet[DefectCategory]] = frozenset({
        DefectCategory.UNINITIALIZED_VARIABLE,
        DefectCategory.UNUSED_VARIABLE,
    })

    def __init__(self) -> None:
        super().__init__()
        self._uninitialized: List[UninitializedUse] = []
        self._unused: List[VariableInfo] = []

    def collect_evidence(self, ctx: AnalysisContext) -> None:
        for name, info in ctx.symbols.variables.items():
            if not info.initialized:
                use_line = _first_uninitialized_use(ctx, info)
                if use_line is not None:
                    use = UninitializedUse(name, info.line, use_line, info.type)
                    self._uninitialized.append(use)
                    ctx.uninitialized_variables[name] = use
            if count_identifier(ctx.views, name) <= 1:
                self._unused.append(info)
                ctx.unused_variables[name] = info.line

    def diagnose(self, ctx: AnalysisContext) -> None:
        for use in self._uninitialized:
            self._emit(
                DefectCategory.UNINITIALIZED_VARIABLE, use.first_use_line,
                f"Variable '{use.name}' is used without being initialized",
                f"Initialize '{use.name}' to {default_initializer(use.type)} "
                f"at declaration (line {use.declaration_line})",
                "Using uninitialized variables causes undefined behavior - "
                "contains garbage value.",
            )
        for info in self._unused:
            self._emit(
                DefectCategory.UNUSED_VARIABLE, info.line,
                f"Variable '{info.name}' is declared but never used",
                "Remove the unused variable or use it",
                "Unused variables waste memory.",
                severity=Severity.WARNING,
            )


# ═════════════════════════════════════════════════════════════════════════
#  PART 3 — REDUNDANT / CONSTANT / DIVISION / SELF-ASSIGNMENT
# ═════════════════════════════════════════════════════════════════════════

_OPERAND = r"[\w\])]"
_REDUNDANT: List[Tuple[Pattern[str], str]] = [
    (re.compile(rf"{_OPERAND}\s*\+\s*0(?![\w.])"), "Adding 0 has no effect"),
    (re.compile(rf"{_OPERAND}\s*-\s*0(?![\w.])"), "Subtracting 0 has no effect"),
    (re.compile(rf"{_OPERAND}\s*\*\s*1(?![\w.])"), "Multiplying by 1 has no effect"),
    (re.compile(rf"{_OPERAND}\s*/\s*1(?![\w.])"), "Dividing by 1 has no effect"),
    (re.compile(rf"{_OPERAND}\s*\*\s*0(?![\w.])"), "Multiplying by 0 always gives 0"),
]
_DIV_ZERO_RE = re.compile(r"/=?\s*0(?![\w.])")
_MOD_ZERO_RE = re.compile(r"%=?\s*0(?![\w.])")
SELF_ASSIGN_RE = re.compile(r"(?<![\w.>])([A-Za-z_]\w*)\s*=\s*\1\s*;")


@dataclass(frozen=True)
class _Finding:
    category: DefectCategory
    line: int
    message: str
    suggestion: str
    rationale: str
    severity: Severity


class ExpressionChecker(Checker):
    """Arithmetic that does nothing, conditions that never change, ``x / 0``, ``x = x;``."""

    name: ClassVar[str] = "expressions"
    description: ClassVar[str] = "Redundant, constant and dangerous expressions"
    categories: ClassVar[FrozenSet[DefectCategory]] = frozenset({
        DefectCategory.REDUNDANT_EXPRESSION,
        DefectCategory.CONSTANT_CONDITION,
        DefectCategory.DIVISION_BY_ZERO,
        DefectCategory.SELF_ASSIGNMENT,
    })
    default_severity: ClassVar[Severity] = Severity.WARNING

    def __init__(self) -> None:
        super().__init__()
        self._findings: List[_Finding] = []

    def _add(self, category: DefectCategory, line: int, message: str,
             suggestion: str, rationale: str, severity: Severity) -> None:
        self._findings.append(_Finding(category, line, message, suggestion, rationale, severity))

    def collect_evidence(self, ctx: AnalysisContext) -> None:
        for view in ctx.views:
            masked = view.masked
            if view.is_preprocessor or not masked.strip():
                continue
            n = view.number

            for pattern, message in _REDUNDANT:
                if pattern.search(masked):
                    self._add(DefectCategory.REDUNDANT_EXPRESSION, n, message,
                              "Simplify the expression",
                              "Redundant operations can be removed.", Severity.INFO)

            for header in control_headers(masked, ("if", "while")):
                cond = header.condition.strip()
                if header.keyword == "if" and cond in ("0", "false"):
                    self._add(DefectCategory.CONSTANT_CONDITION, n,
                              "Condition is always false - code never executes",
                              "Remove the dead code block",
                              "Code inside this block will never execute - dead code.",
                              Severity.WARNING)
                elif header.keyword == "if" and cond in ("1", "true"):
                    self._add(DefectCategory.CONSTANT_CONDITION, n,
                              "Condition is always true",
                              "Remove the condition and keep the body",
                              "Consider simplifying the condition.",
                              Severity.INFO)
                elif (header.keyword == "while" and cond in ("0", "false")
                      and not is_do_while_tail(masked, header)):
                    self._add(DefectCategory.CONSTANT_CONDITION, n,
                              "Loop condition is always false - code never executes",
                              "Remove the dead code block",
                              "Code inside this block will never execute - dead code.",
                              Severity.WARNING)

            if _DIV_ZERO_RE.search(masked):
                self._add(DefectCategory.DIVISION_BY_ZERO, n,
                          "Division by zero detected", "Use a non-zero divisor",
                          "Division by zero causes runtime errors.", Severity.CRITICAL)
            if _MOD_ZERO_RE.search(masked):
                self._add(DefectCategory.DIVISION_BY_ZERO, n,
                          "Modulo by zero detected", "Use a non-zero divisor",
                          "Division by zero causes runtime errors.", Severity.CRITICAL)

            for m in SELF_ASSIGN_RE.finditer(masked):
                var = m.group(1)
                self._add(DefectCategory.SELF_ASSIGNMENT, n,
                          f"Self-assignment detected: '{var} = {var}'",
                          "Remove the redundant assignment",
                          "Assigning a variable to itself has no effect.",
                          Severity.WARNING)

    def diagnose(self, ctx: AnalysisContext) -> None:
        for f in self._findings:
            self._emit(f.category, f.line, f.message, f.suggestion, f.rationale, f.severity)


# ═════════════════════════════════════════════════════════════════════════
#  PART 4 — printf / scanf
# ═════════════════════════════════════════════════════════════════════════

class FormatCallChecker(Checker):
    """
    ``printf`` called with a bare variable, ``scanf`` given a value where
    it needs an address.

    ALL_CAPS arguments are taken for macros and left alone.
    """

    name: ClassVar[str] = "format-calls"
    description: ClassVar[str] = "printf/scanf argument shapes"
    categories: ClassVar[FrozenSet[DefectCategory]] = frozenset({
        DefectCategory.INVALID_PRINTF,
        DefectCategory.INVALID_SCANF,
    })

    def __init__(self) -> None:
        super().__init__()
        self._printf: List[Tuple[int, str, str]] = []
        self._scanf: List[Tuple[int, str, str]] = []

    def collect_evidence(self, ctx: AnalysisContext) -> None:
        symbols = ctx.symbols
        for view in ctx.views:
            for m in PRINTF_BARE_RE.finditer(view.masked):
                arg = m.group(1)
                if ALL_CAPS_RE.match(arg):
                    continue
                fmt = printf_format_for(symbols.type_of(arg), symbols.is_char_array(arg))
                self._printf.append((view.number, arg, fmt))

            for call in scanf_calls(view.raw, view.masked):
                bare = call.bare_arguments(view.raw)
                if not bare:
                    continue
                original = view.raw[call.start:call.end]
                fixed = original
                for (a, _b), _arg, _spec in reversed(bare):
                    offset = a - call.start
                    fixed = fixed[:offset] + "&" + fixed[offset:]
                suggestion = f"Use {fixed}; instead of {original};"
                for _span, arg, _spec in bare:
                    self._scanf.append((view.number, arg, suggestion))

    def diagnose(self, ctx: AnalysisContext) -> None:
        for line, arg, fmt in self._printf:
            self._emit(
                DefectCategory.INVALID_PRINTF, line,
                f"printf() requires a format string, got variable '{arg}' directly",
                f'Use printf("{fmt}", {arg}); instead of printf({arg});',
                "printf's first argument must be a format string like \"%d\" or \"Hello\".",
            )
        for line, arg, suggestion in self._scanf:
            self._emit(
                DefectCategory.INVALID_SCANF, line,
                f"scanf() requires address of variable, missing '&' before '{arg}'",
                suggestion,
                "scanf needs memory address (pointer) to store input value.",
            )


__all__ = [
    "is_assignment_condition",
    "default_initializer",
    "SELF_ASSIGN_RE",
    "AssignmentInConditionChecker",
    "VariableLifecycleChecker",
    "ExpressionChecker",
    "FormatCallChecker",
]
