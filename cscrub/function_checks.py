"""
cscrub/function_checks.py
═════════════════════════

Function-level checker: calls to undefined functions, functions nobody
calls, definitions without a body and malformed parameters.

Side collections written to the context
───────────────────────────────────────
  ctx.undefined_functions  {name: [call lines]}
  ctx.unused_functions     {name: declaration line}

Both are read later by the transformer, which drops undefined calls and
removes unused functions.

License: MIT
"""

from __future__ import annotations

import re
from typing import ClassVar, Dict, FrozenSet, List, Optional, Sequence, Tuple

from cscrub.checkers import Checker
from cscrub.context import AnalysisContext
from cscrub.defects import DefectCategory, Severity
from cscrub.lexer import LineView
from cscrub.matchers import RETURN_ALT, BlockSpan, block_span
from cscrub.symbols import FunctionInfo

_PARAM_RE = re.compile(
    rf"^(?:(?:const|unsigned|signed|register)\s+)*(?:{RETURN_ALT})(?:\s+(?:{RETURN_ALT}))*"
    r"(?:\s*\*+\s*|\s+)[A-Za-z_]\w*(?:\s*\[[^\]]*\])*$"
)
# type-only parameters are legal in prototypes: int f(int, char *);
_PROTO_PARAM_RE = re.compile(
    rf"^(?:(?:const|unsigned|signed)\s+)*(?:{RETURN_ALT})(?:\s+(?:{RETURN_ALT}))*\s*\**$"
)


def is_valid_parameter(param: str, prototype: bool = False) -> bool:
    """``type name``, ``type *name``, ``void`` or ``...``."""
    if param in ("void", "..."):
        return True
    if _PARAM_RE.match(param):
        return True
    return prototype and _PROTO_PARAM_RE.match(param) is not None


def function_body(views: Sequence[LineView], info: FunctionInfo) -> Optional[BlockSpan]:
    """The braces of *info*'s body, or None for prototypes and unclosed bodies."""
    if info.is_prototype or info.body_line is None:
        return None
    start_col = info.column if info.body_line == info.line else 0
    return block_span(views, info.body_line - 1, start_col)


class FunctionChecker(Checker):
    """
    Checks function definitions against their call sites.

    Undefined calls are reported at every call site.  Unused functions
    (``main`` excepted) are reported at their declaration, and one summary
    record at line 1 lists all of them.
    """

    name: ClassVar[str] = "functions"
    description: ClassVar[str] = "Undefined, unused and malformed functions"
    categories: ClassVar[FrozenSet[DefectCategory]] = frozenset({
        DefectCategory.UNDEFINED_FUNCTION,
        DefectCategory.UNUSED_FUNCTION,
        DefectCategory.UNCALLED_FUNCTIONS_SUMMARY,
        DefectCategory.MISSING_FUNCTION_BODY,
        DefectCategory.INVALID_PARAMETER,
    })

    def __init__(self) -> None:
        super().__init__()
        self._undefined: Dict[str, List[int]] = {}
        self._unused: Dict[str, int] = {}
        self._bodiless: List[FunctionInfo] = []
        self._bad_params: List[Tuple[FunctionInfo, str]] = []

    def collect_evidence(self, ctx: AnalysisContext) -> None:
        symbols = ctx.symbols
        for name, lines in symbols.call_sites.items():
            if symbols.is_defined(name) or symbols.is_standard(name):
                continue
            self._undefined[name] = list(lines)

        for name, info in symbols.functions.items():
            if name != "main" and name not in symbols.call_sites:
                self._unused[name] = info.line
            if not info.is_prototype and info.body_line is None:
                self._bodiless.append(info)
            for param in info.parameters:
                if param and not is_valid_parameter(param, info.is_prototype):
                    self._bad_params.append((info, param))

        ctx.undefined_functions.update(self._undefined)
        ctx.unused_functions.update(self._unused)

    def diagnose(self, ctx: AnalysisContext) -> None:
        for name, lines in self._undefined.items():
            for line in lines:
                self._emit(
                    DefectCategory.UNDEFINED_FUNCTION, line,
                    f"Function '{name}' is called but not defined",
                    f"Remove the call or define the function '{name}'",
                    "Functions must be defined before they can be called.",
                )

        for info in self._bodiless:
            self._emit(
                DefectCategory.MISSING_FUNCTION_BODY, info.line,
                f"Function '{info.name}' is declared but has no body '{{}}'",
                "Add function body with '{' and '}' or add ';' for declaration",
                "Functions need a body to be defined.",
            )

        for info, param in self._bad_params:
            self._emit(
                DefectCategory.INVALID_PARAMETER, info.line,
                f"Invalid parameter '{param}' in function '{info.name}'",
                "Parameters should be: type name (e.g., 'int x')",
                "Function parameters need both type and name.",
            )

        for name, line in self._unused.items():
            self._emit(
                DefectCategory.UNUSED_FUNCTION, line,
                f"Function '{name}' is defined but never called",
                f"Add '{name}();' in main() or remove the function",
                "Unused functions increase code size without providing value.",
                severity=Severity.WARNING,
            )
        if self._unused:
            self._emit(
                DefectCategory.UNCALLED_FUNCTIONS_SUMMARY, 1,
                f"Uncalled functions: {', '.join(self._unused)}",
                "Consider calling these functions in main() or remove them if not needed",
                "These functions are defined but never used in the program.",
                severity=Severity.INFO,
            )


__all__ = ["FunctionChecker", "is_valid_parameter", "function_body"]
