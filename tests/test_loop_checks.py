# tests/test_loop_checks.py
"""
Tests for InfiniteLoopChecker, the loop classifier and the verdicts left on
the context.
"""

import pytest

from cscrub.checkers import CheckerRegistry, CheckerRunner
from cscrub.config import EngineOptions
from cscrub.defects import DefectCategory, Severity
from cscrub.lexer import split_lines
from cscrub.loop_checks import LOOP_VERDICTS, InfiniteLoopChecker, classify_loops
from tests.conftest import (
    BREAKING_LOOP_PROGRAM,
    CLEAN_PROGRAM,
    INFINITE_LOOP_PROGRAM,
    context_for,
    messages,
    run_checker,
)


def wrap(body):
    """Place *body* lines inside main()."""
    inner = "\n".join(f"    {line}" for line in body.splitlines())
    return f"int main() {{\n    int count = 1;\n{inner}\n    return 0;\n}}\n"


class TestInfiniteLoopChecker:
    """Shapes of non-terminating loops."""

    def test_while_true_without_exit(self):
        records = run_checker(InfiniteLoopChecker, INFINITE_LOOP_PROGRAM)
        assert messages(records) == ["Potential infinite loop (while(1) without break)"]
        assert records[0].line == 3
        assert records[0].category is DefectCategory.INFINITE_LOOP
        assert records[0].severity is Severity.WARNING

    def test_while_true_with_break(self):
        assert run_checker(InfiniteLoopChecker, BREAKING_LOOP_PROGRAM) == []

    @pytest.mark.parametrize("exit_stmt", ["return 1;", "exit(1);", "abort();", "goto done;"])
    def test_other_exits(self, exit_stmt):
        src = wrap(f"while (true) {{\n    {exit_stmt}\n}}")
        assert run_checker(InfiniteLoopChecker, src) == []

    def test_for_ever_always_reported(self):
        src = wrap("for (;;) {\n    break;\n}")
        assert messages(run_checker(InfiniteLoopChecker, src)) == [
            "Infinite loop detected (for(;;))"
        ]

    def test_contradictory_for(self):
        src = wrap("for (count = 0; count >= 0; count++) {\n    puts(\"x\");\n}")
        assert messages(run_checker(InfiniteLoopChecker, src)) == [
            "Infinite loop detected: 'count' starts at 0, condition 'count >= 0' "
            "is always true while incrementing"
        ]

    def test_only_increments(self):
        src = wrap("while (count) {\n    count++;\n}")
        assert messages(run_checker(InfiniteLoopChecker, src)) == [
            "Potential infinite loop: 'count' only increases, never becomes 0/false"
        ]

    def test_decrement_terminates(self):
        src = wrap("while (count) {\n    count++;\n    count -= 2;\n}")
        assert run_checker(InfiniteLoopChecker, src) == []

    def test_never_modified(self):
        src = wrap("while (count < 10) {\n    puts(\"x\");\n}")
        assert messages(run_checker(InfiniteLoopChecker, src)) == [
            "Infinite loop: 'count' is never modified inside the loop"
        ]

    def test_modified_loop_variable(self):
        src = wrap("while (count < 10) {\n    count += 3;\n}")
        assert run_checker(InfiniteLoopChecker, src) == []

    def test_do_while_tail_ignored(self):
        src = wrap("do {\n    count++;\n} while (1);")
        assert run_checker(InfiniteLoopChecker, src) == []

    def test_clean_program(self):
        assert run_checker(InfiniteLoopChecker, CLEAN_PROGRAM) == []


class TestClassifyLoops:
    """The classifier behind InfiniteLoopChecker."""

    def test_for_ever_records_exit(self):
        views = split_lines(wrap("for (;;) {\n    break;\n}"))
        verdicts = classify_loops(views, 2, EngineOptions())
        assert len(verdicts) == 1
        assert verdicts[0].kind == "for-ever"
        assert verdicts[0].has_exit

    def test_exit_past_window_not_seen(self):
        body = "\n".join(["while (1) {"] + ["    count++;"] * 5 + ["    break;", "}"])
        views = split_lines(wrap(body))
        options = EngineOptions(while_true_window=3)
        assert [v.kind for v in classify_loops(views, 2, options)] == ["while-true"]
        assert classify_loops(views, 2, EngineOptions()) == []


class TestStoredVerdicts:
    """Verdicts the checker leaves on the context for the transformer."""

    def _run(self, source):
        registry = CheckerRegistry()
        registry.register(InfiniteLoopChecker)
        ctx = context_for(source)
        CheckerRunner(registry).run(ctx)
        return ctx.get_analysis(LOOP_VERDICTS)

    def test_keyed_by_line(self):
        verdicts = self._run(INFINITE_LOOP_PROGRAM)
        assert list(verdicts) == [3]
        assert [v.kind for v in verdicts[3]] == ["while-true"]

    def test_terminating_loop_leaves_empty_table(self):
        assert self._run(BREAKING_LOOP_PROGRAM) == {}

    def test_absent_when_checker_not_run(self):
        assert context_for(INFINITE_LOOP_PROGRAM).get_analysis(LOOP_VERDICTS) is None
