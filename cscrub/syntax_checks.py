"""
cscrub/syntax_checks.py
═══════════════════════

Syntax-level checkers: delimiter matching, malformed control structures and
missing statement terminators.

Checkers provided
─────────────────
  BracketChecker          — ``[`` / ``]`` matching
  ParenthesisChecker      — ``(`` / ``)`` matching
  BraceChecker            — ``{`` / ``}`` matching
  MalformedSyntaxChecker  — ``}`` closing a condition, bad ``for`` headers, …
  MissingSemicolonChecker — statements that lack their ``;``

The delimiter checkers use an explicit stack of openers; a closer with an
empty stack is reported where it appears, openers left on the stack at the
end are reported where they were opened.

License: MIT
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import ClassVar, FrozenSet, List, Optional, Tuple

from cscrub.checkers import Checker
from cscrub.context import AnalysisContext
from cscrub.defects import DefectCategory, Severity
from cscrub.lexer import iter_code_chars
from cscrub.matchers import control_headers, for_clauses, missing_terminator


# ═════════════════════════════════════════════════════════════════════════
#  PART 1 — DELIMITER MATCHING
# ═════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class _DelimiterSite:
    line: int
    column: int
    unexpected: bool    # True for a closer with nothing to close


class _DelimiterChecker(Checker):
    """Shared stack walk; subclasses pick the pair and literal handling."""

    opener: ClassVar[str] = ""
    closer: ClassVar[str] = ""
    noun: ClassVar[str] = ""
    category: ClassVar[DefectCategory] = DefectCategory.MISMATCHED_BRACKET
    # char literals are tracked as literals (braces only track strings)
    track_chars: ClassVar[bool] = True
    skip_comment_lines: ClassVar[bool] = False

    def __init__(self) -> None:
        super().__init__()
        self._sites: List[_DelimiterSite] = []

    def collect_evidence(self, ctx: AnalysisContext) -> None:
        stack: List[Tuple[int, int]] = []
        for view in ctx.views:
            if self.skip_comment_lines and view.opens_comment:
                continue
            for col, ch in iter_code_chars(view.code, track_chars=self.track_chars):
                if ch == self.opener:
                    stack.append((view.number, col))
                elif ch == self.closer:
                    if stack:
                        stack.pop()
                    else:
                        self._sites.append(_DelimiterSite(view.number, col, True))
        for line, col in stack:
            self._sites.append(_DelimiterSite(line, col, False))

    def diagnose(self, ctx: AnalysisContext) -> None:
        o, c, noun = self.opener, self.closer, self.noun
        for site in self._sites:
            if site.unexpected:
                self._emit(
                    self.category, site.line,
                    f"Unexpected closing {noun} '{c}' without matching '{o}'",
                    f"Remove the extra '{c}' or add matching '{o}'",
                    f"Every '{c}' must have a corresponding '{o}'.",
                )
            else:
                self._emit(
                    self.category, site.line,
                    f"Unclosed {noun} '{o}' - missing '{c}'",
                    f"Add matching '{c}' for the '{o}' on line {site.line}",
                    f"Every '{o}' must have a corresponding '{c}'.",
                )


class BracketChecker(_DelimiterChecker):
    name: ClassVar[str] = "bracket-match"
    description: ClassVar[str] = "Unmatched '[' or ']'"
    categories: ClassVar[FrozenSet[DefectCategory]] = frozenset({DefectCategory.MISMATCHED_BRACKET})
    opener, closer, noun = "[", "]", "bracket"
    category = DefectCategory.MISMATCHED_BRACKET
    skip_comment_lines = True


class ParenthesisChecker(_DelimiterChecker):
    name: ClassVar[str] = "paren-match"
    description: ClassVar[str] = "Unmatched '(' or ')'"
    categories: ClassVar[FrozenSet[DefectCategory]] = frozenset({DefectCategory.MISMATCHED_PARENTHESIS})
    opener, closer, noun = "(", ")", "parenthesis"
    category = DefectCategory.MISMATCHED_PARENTHESIS


class BraceChecker(_DelimiterChecker):
    name: ClassVar[str] = "brace-match"
    description: ClassVar[str] = "Unmatched '{' or '}'"
    categories: ClassVar[FrozenSet[DefectCategory]] = frozenset({DefectCategory.MISMATCHED_BRACE})
    opener, closer, noun = "{", "}", "brace"
    category = DefectCategory.MISMATCHED_BRACE
    track_chars = False


# ═════════════════════════════════════════════════════════════════════════
#  PART 2 — MALFORMED CONTROL STRUCTURES
# ═════════════════════════════════════════════════════════════════════════

_BRACE_CLOSES_PAREN_RE = re.compile(r"\([^()]*\}")
_OPEN_BRACE_IN_COND_RE = re.compile(r"\b(?:while|if|for)\s*\([^)]*\{")
_CLOSE_BRACE_IN_COND_RE = re.compile(r"\b(?:while|if|for)\s*\([^)]*\}")
_KEYWORD_NO_PAREN_RE = re.compile(r"\b(?:while|if)\s+[^(\s]")
_KEYWORD_PAREN_RE = re.compile(r"\b(?:while|if)\s*\(")
_SWITCH_NO_PAREN_RE = re.compile(r"\bswitch\s+[^(\s]")
_SWITCH_PAREN_RE = re.compile(r"\bswitch\s*\(")

# (pattern, message, suggestion, rationale)
_MALFORMED_RULES: List[Tuple[re.Pattern, str, str, str]] = [
    (_BRACE_CLOSES_PAREN_RE,
     "'}' used instead of ')' to close condition/expression",
     "Replace '}' with ')' to close the parenthesis",
     "Parentheses () must be closed with ')' not '}'."),
    (_OPEN_BRACE_IN_COND_RE,
     "Malformed control structure: '{' found inside condition parentheses",
     "Check for missing ')' before '{'",
     "Control structures like while(condition) must have proper "
     "parentheses before the body."),
    (_CLOSE_BRACE_IN_COND_RE,
     "Malformed control structure: '}' found instead of ')' in condition",
     "Change '}' to ')' to properly close the condition",
     "Conditions cannot contain braces. Use ')' to close."),
]


class MalformedSyntaxChecker(Checker):
    """
    Control structures whose punctuation is wrong.

    All rules run on masked code, so braces in strings and comments are
    never mistaken for structure.  Preprocessor lines are skipped, which
    keeps ``#if FOO`` from looking like an ``if`` without ``(``.
    """

    name: ClassVar[str] = "malformed-syntax"
    description: ClassVar[str] = "Malformed control structures"
    categories: ClassVar[FrozenSet[DefectCategory]] = frozenset({DefectCategory.MALFORMED_SYNTAX})

    def __init__(self) -> None:
        super().__init__()
        self._hits: List[Tuple[int, str, str, str]] = []

    def collect_evidence(self, ctx: AnalysisContext) -> None:
        for view in ctx.views:
            if view.is_preprocessor:
                continue
            text = view.masked_text
            if not text:
                continue
            for pattern, message, suggestion, rationale in _MALFORMED_RULES:
                if pattern.search(text):
                    self._hits.append((view.number, message, suggestion, rationale))
            if _KEYWORD_NO_PAREN_RE.search(text) and not _KEYWORD_PAREN_RE.search(text):
                self._hits.append((
                    view.number,
                    "Control structure missing '(' after keyword",
                    "Add '(' after while/if keyword",
                    "Syntax: while(condition) or if(condition).",
                ))
            for header in control_headers(text, ("for",)):
                if header.close < 0:
                    continue
                found = len(for_clauses(header)) - 1
                if found != 2:
                    self._hits.append((
                        view.number,
                        f"for loop must have exactly 2 semicolons, found {found}",
                        "Use format: for(init; condition; update)",
                        "for loops require: initialization; condition; update.",
                    ))
            if _SWITCH_NO_PAREN_RE.search(text) and not _SWITCH_PAREN_RE.search(text):
                self._hits.append((
                    view.number,
                    "switch statement missing '(' after keyword",
                    "Add '(' after switch keyword",
                    "Syntax: switch(expression).",
                ))

    def diagnose(self, ctx: AnalysisContext) -> None:
        for line, message, suggestion, rationale in self._hits:
            self._emit(DefectCategory.MALFORMED_SYNTAX, line, message, suggestion, rationale)


# ═════════════════════════════════════════════════════════════════════════
#  PART 3 — MISSING SEMICOLON
# ═════════════════════════════════════════════════════════════════════════

class MissingSemicolonChecker(Checker):
    """One record per line whose statement shape lacks a ``;``."""

    name: ClassVar[str] = "missing-semicolon"
    description: ClassVar[str] = "Statements without a terminating ';'"
    categories: ClassVar[FrozenSet[DefectCategory]] = frozenset({DefectCategory.MISSING_SEMICOLON})
    default_severity: ClassVar[Severity] = Severity.ERROR

    def __init__(self) -> None:
        super().__init__()
        self._hits: List[Tuple[int, str, Optional[str]]] = []

    def collect_evidence(self, ctx: AnalysisContext) -> None:
        for view in ctx.views:
            if view.is_blank or view.is_comment:
                continue
            shape = missing_terminator(view.masked_text)
            if shape is not None:
                self._hits.append((view.number, shape.message, view.code_text))

    def diagnose(self, ctx: AnalysisContext) -> None:
        for line, message, code in self._hits:
            self._emit(
                DefectCategory.MISSING_SEMICOLON, line, message,
                f"Add ';' at the end: {code};",
                "Every statement in C must end with a semicolon.",
            )


__all__ = [
    "BracketChecker",
    "ParenthesisChecker",
    "BraceChecker",
    "MalformedSyntaxChecker",
    "MissingSemicolonChecker",
]
