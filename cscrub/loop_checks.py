"""
cscrub/loop_checks.py
═════════════════════

Infinite-loop checker.

Loop termination is undecidable; these are pattern heuristics over a
bounded lookahead window.  They will miss loops that never end and flag
loops whose exit depends on something the body does through a pointer or
a call.

Shapes recognised
─────────────────
  while (1) / while (true)     without break/return/goto/exit()/abort()
  for (;;)                     always
  for (i = 0; i >= 0; i++)     condition can never become false
  while (x)                    body only ever increments x
  while (x < 10)               body never modifies x

The checker stores its verdicts per line under :data:`LOOP_VERDICTS`; the
transformer reads them back and removes the loops that have no exit in
the lookahead.

License: MIT
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import ClassVar, Dict, FrozenSet, List, Optional, Sequence

from cscrub.checkers import Checker
from cscrub.config import EngineOptions
from cscrub.context import AnalysisContext
from cscrub.defects import DefectCategory, Severity
from cscrub.lexer import LineView
from cscrub.matchers import (
    ControlHeader,
    control_headers,
    for_clauses,
    is_do_while_tail,
    loop_body,
    parse_for_loop,
)

_TRUE_CONDITIONS = ("1", "true")
_BARE_VAR_RE = re.compile(r"^\s*([A-Za-z_]\w*)\s*$")
_COMPARE_LITERAL_RE = re.compile(r"^\s*([A-Za-z_]\w*)\s*(?:<=?|>=?|==|!=)\s*-?\d+\s*$")
_NOT_VARIABLES = frozenset({"true", "false", "NULL"})

# Key of the {line: [LoopVerdict]} table the checker leaves on the context.
LOOP_VERDICTS = "loop_verdicts"


@dataclass(frozen=True)
class LoopVerdict:
    """A loop header classified as (probably) infinite."""
    line: int
    header: ControlHeader
    kind: str
    message: str
    suggestion: str
    rationale: str
    has_exit: bool = False


def _increment_re(var: str) -> re.Pattern:
    v = re.escape(var)
    return re.compile(
        rf"\b{v}\s*\+\+|\+\+\s*{v}\b|\b{v}\s*\+=|\b{v}\s*=\s*{v}\s*\+"
    )


def _other_write_re(var: str) -> re.Pattern:
    """Writes to *var* that are not increments."""
    v = re.escape(var)
    return re.compile(
        rf"\b{v}\s*--|--\s*{v}\b|\b{v}\s*(?:-=|\*=|/=|%=|&=|\|=|\^=|<<=|>>=)"
        rf"|(?<![=!<>])\b{v}\s*=(?!=)(?!\s*{v}\s*\+)|&\s*{v}\b"
    )


def _any_write_re(var: str) -> re.Pattern:
    v = re.escape(var)
    return re.compile(
        rf"\b{v}\s*(?:\+\+|--|[-+*/%&|^]=|<<=|>>=|=(?!=))|(?:\+\+|--)\s*{v}\b|&\s*{v}\b"
    )


def _classify(
    views: Sequence[LineView],
    index: int,
    header: ControlHeader,
    options: EngineOptions,
) -> Optional[LoopVerdict]:
    line = views[index].number
    cond = header.condition.strip()

    if header.keyword == "for":
        clauses = for_clauses(header)
        body = loop_body(views, index, header, options.while_true_window)
        if len(clauses) == 3 and not any(c.strip() for c in clauses):
            return LoopVerdict(
                line, header, "for-ever",
                "Infinite loop detected (for(;;))",
                "Add loop conditions or remove the loop",
                "Infinite loops can hang the program.",
                has_exit=body.has_exit(),
            )
        loop = parse_for_loop(views[index].masked[header.start:header.end])
        if loop is None or not loop.is_contradictory:
            return None
        if loop.step > 0:
            reason = (f"'{loop.var}' starts at {loop.start}, condition "
                      f"'{loop.var} {loop.op} {loop.bound}' is always true while incrementing")
        else:
            reason = (f"'{loop.var}' starts at {loop.start}, condition "
                      f"'{loop.var} {loop.op} {loop.bound}' while decrementing never terminates")
        return LoopVerdict(
            line, header, "contradictory",
            f"Infinite loop detected: {reason}",
            "Fix the loop condition or change the increment/decrement",
            "The loop condition will never become false.",
            has_exit=body.has_exit(),
        )

    if header.keyword != "while" or is_do_while_tail(views[index].masked, header):
        return None

    if cond in _TRUE_CONDITIONS:
        body = loop_body(views, index, header, options.while_true_window)
        if body.has_exit():
            return None
        return LoopVerdict(
            line, header, "while-true",
            "Potential infinite loop (while(1) without break)",
            "Add a break condition or remove the loop",
            "Infinite loops can hang the program.",
        )

    bare = _BARE_VAR_RE.match(cond)
    if bare and bare.group(1) not in _NOT_VARIABLES:
        var = bare.group(1)
        body = loop_body(views, index, header, options.loop_body_window)
        text = body.text
        if body.has_exit() or not _increment_re(var).search(text):
            return None
        if _other_write_re(var).search(text):
            return None
        return LoopVerdict(
            line, header, "only-increments",
            f"Potential infinite loop: '{var}' only increases, never becomes 0/false",
            "Add a decrement, break condition, or change the loop logic",
            "while(x) loops exit when x becomes 0/false. "
            "Incrementing moves away from termination.",
        )

    compare = _COMPARE_LITERAL_RE.match(cond)
    if compare:
        var = compare.group(1)
        body = loop_body(views, index, header, options.loop_body_window)
        if body.has_exit() or _any_write_re(var).search(body.text):
            return None
        return LoopVerdict(
            line, header, "never-modified",
            f"Infinite loop: '{var}' is never modified inside the loop",
            f"Add '{var}++' or '{var}--' inside the loop body",
            "Loop variable must change for the condition to eventually become false.",
        )
    return None


def classify_loops(
    views: Sequence[LineView],
    index: int,
    options: EngineOptions,
) -> List[LoopVerdict]:
    """Verdicts for every loop header on ``views[index]``."""
    verdicts: List[LoopVerdict] = []
    for header in control_headers(views[index].masked, ("while", "for")):
        verdict = _classify(views, index, header, options)
        if verdict is not None:
            verdicts.append(verdict)
    return verdicts


class InfiniteLoopChecker(Checker):
    name: ClassVar[str] = "infinite-loop"
    description: ClassVar[str] = "Loops that can never terminate"
    categories: ClassVar[FrozenSet[DefectCategory]] = frozenset({DefectCategory.INFINITE_LOOP})
    default_severity: ClassVar[Severity] = Severity.WARNING

    def __init__(self) -> None:
        super().__init__()
        self._verdicts: List[LoopVerdict] = []

    def collect_evidence(self, ctx: AnalysisContext) -> None:
        for idx, view in enumerate(ctx.views):
            if "while" in view.masked or "for" in view.masked:
                self._verdicts.extend(classify_loops(ctx.views, idx, ctx.options))
        by_line: Dict[int, List[LoopVerdict]] = {}
        for v in self._verdicts:
            by_line.setdefault(v.line, []).append(v)
        ctx.set_analysis(LOOP_VERDICTS, by_line)

    def diagnose(self, ctx: AnalysisContext) -> None:
        for v in self._verdicts:
            self._emit(DefectCategory.INFINITE_LOOP, v.line, v.message, v.suggestion, v.rationale)


__all__ = ["LOOP_VERDICTS", "LoopVerdict", "classify_loops", "InfiniteLoopChecker"]
