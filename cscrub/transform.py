"""
cscrub/transform.py
═══════════════════

The transformation engine: rewrites a program using what the checkers found.

Pipeline
────────

  original lines ──▶ pass 1: state machine + line fixers
                 ──▶ pass 2: unreachable-code elimination
                 ──▶ pass 3: formatter

Pass 1 states
─────────────

  NORMAL                 apply removals and rewrites to the line
  SKIP_DEAD_BLOCK        drop a dead or infinite block until its braces balance
  SKIP_UNUSED_FUNCTION   drop an unused function until its braces balance
  SKIP_NEXT_LINE         drop exactly one line (the ``}`` of an empty block)

Skip states track brace balance character by character; text after the
closing brace on the same line is processed again in NORMAL.  A skip that
starts before its body has been seen waits for it: a ``{`` opens a braced
body, anything else is a single-statement body ending at ``;``.

Transformations follow fixed policies and do not preserve semantics in
general: dead blocks, calls to undefined functions and infinite loops are
removed, not repaired.

License: MIT
"""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import asdict, dataclass
from typing import Dict, List, Optional, Pattern, Set, Tuple

from cscrub.context import AnalysisContext, UninitializedUse
from cscrub.errors import ErrorCodes, TransformInvariantError
from cscrub.expression_checks import SELF_ASSIGN_RE
from cscrub.fixers import (
    add_initializer,
    add_semicolon,
    close_brackets,
    fix_assignment_if,
    fix_brace_paren,
    fix_printf,
    fix_scanf,
    fold_constants,
    rename_identifiers,
    simplify_identities,
    tighten_loop_bound,
    type_parameters,
)
from cscrub.flow_checks import AfterReturnTracker, block_head, empty_single_line_kind
from cscrub.formatter import format_source
from cscrub.lexer import RESERVED_WORDS, mask_text, split_comment, split_lines
from cscrub.loop_checks import LOOP_VERDICTS, LoopVerdict
from cscrub.matchers import RETURN_ALT, TYPE_ALT, control_headers, find_matching, splice_sub
from cscrub.naming import build_rename_map

_log = logging.getLogger(__name__)


# ═════════════════════════════════════════════════════════════════════════
#  PART 1 — STATE AND STATISTICS
# ═════════════════════════════════════════════════════════════════════════

class TransformState(enum.Enum):
    NORMAL = "normal"
    SKIP_DEAD_BLOCK = "skip-dead-block"
    SKIP_UNUSED_FUNCTION = "skip-unused-function"
    SKIP_NEXT_LINE = "skip-next-line"


@dataclass
class TransformStats:
    """Counters, one per applied fix; ``variables_renamed`` counts distinct variables."""
    constants_folded: int = 0
    dead_code_removed: int = 0
    expressions_simplified: int = 0
    conditions_fixed: int = 0
    unused_removed: int = 0
    functions_added: int = 0
    variables_renamed: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)

    @property
    def total(self) -> int:
        return sum(self.to_dict().values())

    def summary_line(self) -> str:
        parts = [f"{k.replace('_', ' ')}: {v}" for k, v in self.to_dict().items() if v]
        return ", ".join(parts) if parts else "no changes"


class _BlockSkipper:
    """Brace accounting for the two block-skipping states."""

    def __init__(self, state: TransformState, line: int, balance: int = 0,
                 dead_if: bool = False) -> None:
        if balance < 0:
            raise TransformInvariantError(
                f"cannot skip a block with negative brace balance {balance}",
                code=ErrorCodes.BRACE_UNDERFLOW, line=line,
            )
        self.state = state
        self.line = line
        self.balance = balance
        self.awaiting_body = balance == 0
        self.in_statement = False
        self.depth = 0
        self.dead_if = dead_if

    def feed(self, masked: str) -> Optional[int]:
        """Consume *masked*; return the column just past the block, or None."""
        for k, ch in enumerate(masked):
            if self.awaiting_body:
                if ch.isspace():
                    continue
                self.awaiting_body = False
                if ch == "{":
                    self.balance = 1
                    continue
                self.in_statement = True
            if self.in_statement:
                if ch in "([":
                    self.depth += 1
                elif ch in ")]":
                    self.depth -= 1
                elif ch == "{":
                    self.in_statement = False
                    self.balance = 1
                elif self.depth == 0 and ch == "}":
                    return k
                elif self.depth == 0 and ch == ";":
                    return k + 1
                continue
            if ch == "{":
                self.balance += 1
            elif ch == "}":
                if self.balance == 0:
                    raise TransformInvariantError(
                        "brace balance underflow while skipping a block",
                        code=ErrorCodes.BRACE_UNDERFLOW, line=self.line,
                    )
                self.balance -= 1
                if self.balance == 0:
                    return k + 1
        return None


# ═════════════════════════════════════════════════════════════════════════
#  PART 2 — LINE PATTERNS
# ═════════════════════════════════════════════════════════════════════════

_DEAD_HEAD_RE = re.compile(r"^\s*(\}\s*)?(else\s+)?(if|while)\s*\(\s*(?:0|false)\s*\)")
_LEADING_ELSE_RE = re.compile(r"^\s*else\b\s*")
_RHS_CALL_RE = re.compile(r"\b([A-Za-z_]\w*)\s*\(")


def _brace_profile(masked: str) -> Tuple[int, int]:
    """(closers with no opener on the line, openers left open)."""
    depth = 0
    unmatched = 0
    for ch in masked:
        if ch == "{":
            depth += 1
        elif ch == "}":
            if depth:
                depth -= 1
            else:
                unmatched += 1
    return unmatched, depth


def _unused_function_re(name: str) -> Pattern[str]:
    return re.compile(
        rf"^\s*(?:(?:static|inline|extern)\s+)*(?:{RETURN_ALT})\s+\**\s*{re.escape(name)}\s*\("
    )


def _unused_declaration_re(name: str) -> Pattern[str]:
    return re.compile(
        rf"^\s*(?:(?:const|static|unsigned|signed|register|volatile)\s+)*(?:{TYPE_ALT})"
        rf"\s+\**\s*{re.escape(name)}\s*(?:=\s*([^;]+))?;\s*$"
    )


def _has_call(expr: str) -> bool:
    return any(m.group(1) not in RESERVED_WORDS for m in _RHS_CALL_RE.finditer(expr))


# ═════════════════════════════════════════════════════════════════════════
#  PART 3 — TRANSFORMER
# ═════════════════════════════════════════════════════════════════════════

class Transformer:
    """
    One-shot rewriter for an analysed :class:`AnalysisContext`.

    Usage
    -----
    >>> ctx = AnalysisContext.from_source(src)
    >>> CheckerRunner().run(ctx)
    >>> transformer = Transformer(ctx)
    >>> new_source = transformer.run()
    >>> transformer.stats.dead_code_removed
    """

    def __init__(self, ctx: AnalysisContext) -> None:
        self.ctx = ctx
        self.options = ctx.options
        self.stats = TransformStats()
        self.rename: Dict[str, str] = (
            build_rename_map(ctx.symbols, ctx.views) if ctx.options.rename_variables else {}
        )
        self.state = TransformState.NORMAL
        self._skipper: Optional[_BlockSkipper] = None
        self._drop_else = False
        self._out: List[str] = []
        self._renamed: Set[str] = set()

        self._unused_functions = [_unused_function_re(n) for n in ctx.unused_functions]
        self._undefined_calls = [
            re.compile(rf"\b{re.escape(n)}\s*\(") for n in ctx.undefined_functions
        ]
        self._unused_declarations = [_unused_declaration_re(n) for n in ctx.unused_variables]
        self._uninitialized: Dict[int, List[UninitializedUse]] = {}
        for use in ctx.uninitialized_variables.values():
            self._uninitialized.setdefault(use.declaration_line, []).append(use)
        self._loops: Dict[int, List[LoopVerdict]] = ctx.get_analysis(LOOP_VERDICTS) or {}

    # ─────────────────────────────────────────────────────────────────
    #  Entry point
    # ─────────────────────────────────────────────────────────────────

    def run(self) -> str:
        lines = self._rewrite_lines()
        lines = self._remove_unreachable(lines)
        joined = "\n".join(lines)
        formatted = format_source(joined, self.options.indent_unit)
        _log.debug("transform: %s", self.stats.summary_line())
        return formatted or joined

    # ─────────────────────────────────────────────────────────────────
    #  Pass 1
    # ─────────────────────────────────────────────────────────────────

    def _rewrite_lines(self) -> List[str]:
        for idx, view in enumerate(self.ctx.views):
            self._line(view.raw, view.masked, idx)
        if self._skipper is not None:
            _log.debug("input ended inside a skipped block opened on line %d", self._skipper.line)
            self._finish_skip()
        return self._out

    def _line(self, text: str, masked: str, idx: int) -> None:
        if self.state is TransformState.SKIP_NEXT_LINE:
            self.state = TransformState.NORMAL
            self.stats.dead_code_removed += 1
            return
        if self._skipper is not None:
            end = self._skipper.feed(masked)
            if end is None:
                return
            self._finish_skip()
            self._resume(text, masked, end, idx)
            return
        self._normal(text, masked, idx, whole=True)

    def _resume(self, text: str, masked: str, start: int, idx: int) -> None:
        if text[start:].strip():
            self._normal(text[start:], masked[start:], idx, whole=False)

    def _enter_skip(self, state: TransformState, text: str, masked: str, start: int,
                    idx: int, balance: int = 0, dead_if: bool = False) -> None:
        self._skipper = _BlockSkipper(state, idx + 1, balance, dead_if)
        self.state = state
        end = self._skipper.feed(masked[start:])
        if end is None:
            return
        self._finish_skip()
        self._resume(text, masked, start + end, idx)

    def _finish_skip(self) -> None:
        skipper = self._skipper
        if skipper.state is TransformState.SKIP_UNUSED_FUNCTION:
            self.stats.unused_removed += 1
        else:
            self.stats.dead_code_removed += 1
        self._drop_else = skipper.dead_if
        self._skipper = None
        self.state = TransformState.NORMAL

    def _emit_leading_close(self, masked: str) -> None:
        if masked.lstrip().startswith("}"):
            self._out.append("}")

    def _normal(self, text: str, masked: str, idx: int, whole: bool) -> None:
        if not masked.strip():
            self._out.append(text)
            return
        if self._drop_else:
            self._drop_else = False
            m = _LEADING_ELSE_RE.match(masked)
            if m:
                text, masked = text[m.end():], masked[m.end():]
                if not masked.strip():
                    return

        if self._remove_unused_function(text, masked, idx):
            return
        if self._remove_undefined_call(masked, idx):
            return

        text = self._structural_rewrites(text, idx)
        masked = mask_text(text)
        text = self._remove_dead_code(text, masked, idx, whole)
        if text is None:
            return

        text = self._line_fixes(text, idx, whole)
        self._out.append(text)

    # ─────────────────────────────────────────────────────────────────
    #  Removals
    # ─────────────────────────────────────────────────────────────────

    def _remove_unused_function(self, text: str, masked: str, idx: int) -> bool:
        for pattern in self._unused_functions:
            m = pattern.match(masked)
            if m is None:
                continue
            open_paren = m.end() - 1
            close = find_matching(masked, open_paren)
            if close >= 0 and masked[close + 1:].lstrip().startswith(";"):
                # prototype: drop through its ';'
                semi = masked.index(";", close)
                self.stats.unused_removed += 1
                self._resume(text, masked, semi + 1, idx)
                return True
            start = close + 1 if close >= 0 else open_paren
            self._enter_skip(TransformState.SKIP_UNUSED_FUNCTION, text, masked, start, idx)
            return True
        return False

    def _remove_undefined_call(self, masked: str, idx: int) -> bool:
        if not any(p.search(masked) for p in self._undefined_calls):
            return False
        unmatched, still_open = _brace_profile(masked)
        if unmatched:
            self._out.append("}" * unmatched)
        if still_open:
            self._skipper = _BlockSkipper(TransformState.SKIP_DEAD_BLOCK, idx + 1, still_open)
            self.state = TransformState.SKIP_DEAD_BLOCK
        else:
            self.stats.dead_code_removed += 1
        return True

    def _remove_dead_code(self, text: str, masked: str, idx: int, whole: bool) -> Optional[str]:
        """The line as it survives removals, or None once it has been consumed."""
        stats = self.stats
        code = masked.strip()

        dead = _DEAD_HEAD_RE.match(masked)
        if dead and not (dead.group(3) == "while" and dead.group(1) and not dead.group(2)):
            if dead.group(1):
                self._out.append("}")
            dead_if = dead.group(3) == "if" and not dead.group(2)
            self._enter_skip(TransformState.SKIP_DEAD_BLOCK, text, masked, dead.end(), idx,
                             dead_if=dead_if)
            return None

        for pattern in self._unused_declarations:
            m = pattern.match(masked)
            if m and not (m.group(1) and _has_call(m.group(1))):
                stats.unused_removed += 1
                return None

        new_text, n = splice_sub(SELF_ASSIGN_RE, text, lambda m, t: "", masked)
        if n:
            stats.expressions_simplified += n
            code_part, comment = split_comment(new_text)
            remaining = mask_text(code_part).strip()
            head = block_head(remaining) if remaining else None
            if not remaining or (head is not None and not head[1]):
                if head is not None:
                    stats.dead_code_removed += 1
                    self._emit_leading_close(remaining)
                    self._drop_else = head[0] == "if"
                elif comment:
                    self._out.append(comment)
                return None
            # keep going with the stripped line
            text, masked, code = new_text, mask_text(new_text), remaining

        kind = empty_single_line_kind(code, whole_line=True)
        if kind is not None:
            stats.dead_code_removed += 1
            self._emit_leading_close(code)
            self._drop_else = kind == "if"
            return None

        if whole:
            head = block_head(code)
            views = self.ctx.views
            if (head is not None and head[1] == "{" and idx + 1 < len(views)
                    and views[idx + 1].masked_text == "}"):
                self._emit_leading_close(code)
                self.state = TransformState.SKIP_NEXT_LINE
                self._drop_else = head[0] == "if"
                return None

            for verdict in self._loops.get(idx + 1, []):
                if verdict.has_exit:
                    continue
                header = self._locate_header(masked, verdict.header.keyword,
                                             verdict.header.condition)
                if header is None:
                    continue
                prefix = masked[:header.start].strip()
                if prefix not in ("", "}"):
                    continue
                if prefix:
                    self._out.append("}")
                self._enter_skip(TransformState.SKIP_DEAD_BLOCK, text, masked, header.end, idx)
                return None

        return text

    @staticmethod
    def _locate_header(masked: str, keyword: str, condition: str):
        for header in control_headers(masked, (keyword,)):
            if header.condition.strip() == condition.strip():
                return header
        return None

    # ─────────────────────────────────────────────────────────────────
    #  Rewrites
    # ─────────────────────────────────────────────────────────────────

    def _structural_rewrites(self, text: str, idx: int) -> str:
        stats = self.stats
        text, n = fix_brace_paren(text)
        stats.conditions_fixed += n
        for use in self._uninitialized.get(idx + 1, []):
            text, n = add_initializer(text, use.name, use.type)
            stats.conditions_fixed += n
        return text

    def _line_fixes(self, text: str, idx: int, whole: bool) -> str:
        stats = self.stats
        symbols = self.ctx.symbols

        text, n = add_semicolon(text)
        stats.expressions_simplified += n
        text, n = close_brackets(text)
        stats.expressions_simplified += n
        text, n = type_parameters(text)
        stats.expressions_simplified += n

        text, n = fix_assignment_if(text)
        stats.conditions_fixed += n
        if whole and symbols.arrays:
            text, n = tighten_loop_bound(text, self.ctx.views, idx, symbols.arrays,
                                         self.options.fix_bounds_window)
            stats.conditions_fixed += n

        text, n = fix_printf(text, symbols)
        stats.expressions_simplified += n
        text, n = fix_scanf(text)
        stats.expressions_simplified += n

        text, n = fold_constants(text)
        stats.constants_folded += n
        text, n = simplify_identities(text)
        stats.expressions_simplified += n

        text, renamed = rename_identifiers(text, self.rename)
        self._renamed.update(renamed)
        stats.variables_renamed = len(self._renamed)
        return text

    # ─────────────────────────────────────────────────────────────────
    #  Pass 2
    # ─────────────────────────────────────────────────────────────────

    def _remove_unreachable(self, lines: List[str]) -> List[str]:
        tracker = AfterReturnTracker()
        kept: List[str] = []
        for view in split_lines("\n".join(lines)):
            if tracker.step(view.masked):
                if tracker.run_length == 1:
                    self.stats.dead_code_removed += 1
                continue
            kept.append(view.raw)
        return kept


__all__ = ["TransformState", "TransformStats", "Transformer"]
