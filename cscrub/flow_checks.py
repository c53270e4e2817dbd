"""
cscrub/flow_checks.py
═════════════════════

Control-flow checkers.

  MissingReturnChecker — non-void functions whose body never returns
  UnreachableChecker   — statements after a ``return`` in the same block
  EmptyBodyChecker     — control statements and functions with empty bodies

The after-return state machine (:class:`AfterReturnTracker`) and the
empty-body matcher (:func:`block_head`) are shared with the transformer.

License: MIT
"""

from __future__ import annotations

import re
from typing import ClassVar, FrozenSet, List, Optional, Sequence, Tuple

from cscrub.checkers import Checker
from cscrub.context import AnalysisContext
from cscrub.defects import DefectCategory, Severity
from cscrub.function_checks import function_body
from cscrub.lexer import LineView
from cscrub.matchers import find_matching, has_word


# ═════════════════════════════════════════════════════════════════════════
#  PART 1 — SHARED MATCHERS
# ═════════════════════════════════════════════════════════════════════════

_LABEL_RE = re.compile(r"^(?:case\b|default\s*:|[A-Za-z_]\w*\s*:(?!:))")
_RETURN_STMT_RE = re.compile(r"^return\b.*;$")
_BRACELESS_HEAD_RE = re.compile(r"(?:^|\W)else$|\)$")


class AfterReturnTracker:
    """
    Line-by-line after-return state machine.

    A line beginning with ``return`` and ending with ``;`` arms the tracker;
    every later statement line is unreachable until a ``}`` or a ``case`` /
    ``default`` / goto label resets it.  Blank, comment-only and
    preprocessor lines never change the state.  A ``return`` that is the
    body of a brace-less ``if``/``else``/loop does not arm it.
    """

    def __init__(self) -> None:
        self.armed = False
        self.run_length = 0     # unreachable lines since arming
        self._previous = ""

    def step(self, code: str) -> bool:
        """Feed one line of masked code; True if the line is unreachable."""
        text = code.strip()
        if not text or text.startswith("#"):
            return False
        previous, self._previous = self._previous, text
        if "}" in text or _LABEL_RE.match(text):
            self.armed = False
            return False
        if self.armed:
            self.run_length += 1
            return True
        if _RETURN_STMT_RE.match(text) and not _BRACELESS_HEAD_RE.search(previous):
            self.armed = True
            self.run_length = 0
        return False


_LEAD_RE = re.compile(r"^(?:(\})\s*)?(else\b)?\s*")
_KEYWORD_RE = re.compile(r"(if|while|for)\s*\(")
_EMPTY_BRACES_RE = re.compile(r"^\{\s*\}")


def block_head(text: str) -> Optional[Tuple[str, str]]:
    """
    ``(kind, rest)`` when stripped masked *text* starts a control body.

    *kind* is ``if``, ``else if``, ``else``, ``while`` or ``for``; *rest* is
    the stripped text following the header.  The tail of a ``do`` loop
    (``} while (...);``) is not a head.
    """
    lead = _LEAD_RE.match(text)
    closes_block, is_else = bool(lead.group(1)), bool(lead.group(2))
    pos = lead.end()
    km = _KEYWORD_RE.match(text, pos)
    if km is None:
        if is_else:
            return "else", text[pos:].strip()
        return None
    keyword = km.group(1)
    if closes_block and not is_else:
        return None
    if is_else and keyword != "if":
        return None
    close = find_matching(text, km.end() - 1)
    if close < 0:
        return None
    return ("else if" if is_else else keyword), text[close + 1:].strip()


def empty_single_line_kind(text: str, whole_line: bool = False) -> Optional[str]:
    """
    Kind of control statement with an empty body on this line.

    ``if (c);`` and ``if (c) {}`` qualify; with *whole_line* the empty body
    must also end the line.
    """
    head = block_head(text)
    if head is None:
        return None
    kind, rest = head
    if rest == ";":
        return kind
    m = _EMPTY_BRACES_RE.match(rest)
    if m and (not whole_line or m.end() == len(rest)):
        return kind
    return None


def empty_block_kind(views: Sequence[LineView], index: int) -> Optional[str]:
    """
    Kind of a multi-line empty block starting at ``views[index]``.

    Either ``head {`` followed by a line holding only ``}``, or ``head``
    followed by ``{`` and ``}`` on the next two lines.
    """
    head = block_head(views[index].masked_text)
    if head is None:
        return None
    kind, rest = head

    def line_is(offset: int, token: str) -> bool:
        j = index + offset
        return j < len(views) and views[j].masked_text == token

    if rest == "{" and line_is(1, "}"):
        return kind
    if rest == "" and line_is(1, "{") and line_is(2, "}"):
        return kind
    return None


# ═════════════════════════════════════════════════════════════════════════
#  PART 2 — MISSING RETURN
# ═════════════════════════════════════════════════════════════════════════

class MissingReturnChecker(Checker):
    """Non-void, non-``main`` function whose body has no ``return``."""

    name: ClassVar[str] = "missing-return"
    description: ClassVar[str] = "Non-void functions that never return a value"
    categories: ClassVar[FrozenSet[DefectCategory]] = frozenset({DefectCategory.MISSING_RETURN})
    default_severity: ClassVar[Severity] = Severity.WARNING

    def __init__(self) -> None:
        super().__init__()
        self._missing: List[Tuple[str, str, int]] = []

    def collect_evidence(self, ctx: AnalysisContext) -> None:
        for name, info in ctx.symbols.functions.items():
            if name == "main" or info.return_type == "void":
                continue
            span = function_body(ctx.views, info)
            if span is None:
                continue
            if not has_word(span.inner_text(ctx.views), "return"):
                self._missing.append((name, info.return_type, span.close_index + 1))

    def diagnose(self, ctx: AnalysisContext) -> None:
        for name, return_type, close_line in self._missing:
            self._emit(
                DefectCategory.MISSING_RETURN, close_line,
                f"Function '{name}' has return type '{return_type}' but may not return a value",
                "Add 'return value;' before the closing '}'",
                "Non-void functions should return a value.",
            )


# ═════════════════════════════════════════════════════════════════════════
#  PART 3 — UNREACHABLE CODE
# ═════════════════════════════════════════════════════════════════════════

class UnreachableChecker(Checker):
    """First statement after a ``return`` in the same block."""

    name: ClassVar[str] = "unreachable"
    description: ClassVar[str] = "Statements after return"
    categories: ClassVar[FrozenSet[DefectCategory]] = frozenset({DefectCategory.UNREACHABLE_CODE})
    default_severity: ClassVar[Severity] = Severity.WARNING

    def __init__(self) -> None:
        super().__init__()
        self._lines: List[int] = []

    def collect_evidence(self, ctx: AnalysisContext) -> None:
        tracker = AfterReturnTracker()
        for view in ctx.views:
            if tracker.step(view.masked) and tracker.run_length == 1:
                self._lines.append(view.number)

    def diagnose(self, ctx: AnalysisContext) -> None:
        for line in self._lines:
            self._emit(
                DefectCategory.UNREACHABLE_CODE, line,
                "Unreachable code after return statement",
                "Remove the unreachable code",
                "Code after return will never execute.",
            )


# ═════════════════════════════════════════════════════════════════════════
#  PART 4 — EMPTY BODIES
# ═════════════════════════════════════════════════════════════════════════

class EmptyBodyChecker(Checker):
    """Empty control bodies and empty function bodies."""

    name: ClassVar[str] = "empty-body"
    description: ClassVar[str] = "Control statements and functions with empty bodies"
    categories: ClassVar[FrozenSet[DefectCategory]] = frozenset({
        DefectCategory.EMPTY_BODY,
        DefectCategory.EMPTY_FUNCTION,
    })
    default_severity: ClassVar[Severity] = Severity.WARNING

    def __init__(self) -> None:
        super().__init__()
        self._single: List[Tuple[int, str]] = []
        self._blocks: List[Tuple[int, str]] = []
        self._functions: List[Tuple[int, str]] = []

    def collect_evidence(self, ctx: AnalysisContext) -> None:
        views = ctx.views
        for idx, view in enumerate(views):
            text = view.masked_text
            if not text:
                continue
            kind = empty_single_line_kind(text)
            if kind is not None:
                self._single.append((view.number, kind))
                continue
            kind = empty_block_kind(views, idx)
            if kind is not None:
                self._blocks.append((view.number, kind))

        for name, info in ctx.symbols.functions.items():
            span = function_body(views, info)
            if span is not None and not span.inner_text(views).strip():
                self._functions.append((info.line, name))

    def diagnose(self, ctx: AnalysisContext) -> None:
        for line, kind in self._single:
            self._emit(
                DefectCategory.EMPTY_BODY, line,
                f"Empty {kind} body detected",
                "Add code to the body or remove the statement",
                "Empty control structures are usually unintentional.",
            )
        for line, kind in self._blocks:
            self._emit(
                DefectCategory.EMPTY_BODY, line,
                f"Empty {kind} block detected (body has no statements)",
                "Add code to the body or remove the block",
                "Empty control structures are usually unintentional.",
            )
        for line, name in self._functions:
            self._emit(
                DefectCategory.EMPTY_FUNCTION, line,
                f"Function '{name}' has an empty body",
                "Add code to the function or remove it",
                "Empty functions serve no purpose.",
            )


__all__ = [
    "AfterReturnTracker",
    "block_head",
    "empty_single_line_kind",
    "empty_block_kind",
    "MissingReturnChecker",
    "UnreachableChecker",
    "EmptyBodyChecker",
]
