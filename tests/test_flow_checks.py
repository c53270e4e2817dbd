# tests/test_flow_checks.py
"""
Tests for cscrub.flow_checks: the after-return tracker, block heads and the
missing-return, unreachable-code and empty-body checkers.
"""

import pytest

from cscrub.defects import DefectCategory, Severity
from cscrub.flow_checks import (
    AfterReturnTracker,
    EmptyBodyChecker,
    MissingReturnChecker,
    UnreachableChecker,
    block_head,
    empty_single_line_kind,
)
from tests.conftest import CLEAN_PROGRAM, UNREACHABLE_PROGRAM, messages, run_checker


class TestAfterReturnTracker:
    """Line-level after-return state machine."""

    def test_arms_on_return(self):
        t = AfterReturnTracker()
        assert not t.step("return 0;")
        assert t.step("x = 1;")
        assert t.run_length == 1
        assert t.step("y = 2;")
        assert t.run_length == 2

    def test_closing_brace_resets(self):
        t = AfterReturnTracker()
        t.step("return 0;")
        assert not t.step("}")
        assert not t.armed
        assert not t.step("x = 1;")

    def test_blank_and_preprocessor_lines_neutral(self):
        t = AfterReturnTracker()
        t.step("return 0;")
        assert not t.step("   ")
        assert not t.step("#endif")
        assert t.armed

    def test_braceless_if_body_does_not_arm(self):
        t = AfterReturnTracker()
        t.step("if (done)")
        assert not t.step("return 1;")
        assert not t.step("x = 2;")

    @pytest.mark.parametrize("label", ["case 2:", "default:", "retry:"])
    def test_labels_reset(self, label):
        t = AfterReturnTracker()
        t.step("return 0;")
        assert not t.step(label)
        assert not t.armed


class TestBlockHead:
    """Control-body heads on one line."""

    @pytest.mark.parametrize("text,expected", [
        ("if (x) {", ("if", "{")),
        ("while (n > 0)", ("while", "")),
        ("for (;;);", ("for", ";")),
        ("} else {", ("else", "{")),
        ("else", ("else", "")),
        ("} else if (y) x++;", ("else if", "x++;")),
    ])
    def test_heads(self, text, expected):
        assert block_head(text) == expected

    @pytest.mark.parametrize("text", ["} while (x);", "x = 1;", "if (x", "return 0;"])
    def test_not_heads(self, text):
        assert block_head(text) is None

    @pytest.mark.parametrize("text,whole,expected", [
        ("if (x);", False, "if"),
        ("while (x) {}", False, "while"),
        ("if (x) {} else { y(); }", False, "if"),
        ("if (x) {} else { y(); }", True, None),
        ("if (x) { y(); }", False, None),
    ])
    def test_empty_single_line_kind(self, text, whole, expected):
        assert empty_single_line_kind(text, whole_line=whole) == expected


class TestMissingReturnChecker:
    """Non-void functions without a return."""

    def test_reported_at_closing_brace(self):
        src = "int compute(int value) {\n    value++;\n}\n"
        records = run_checker(MissingReturnChecker, src)
        assert messages(records) == [
            "Function 'compute' has return type 'int' but may not return a value"
        ]
        assert records[0].line == 3
        assert records[0].severity is Severity.WARNING

    def test_void_and_main_exempt(self):
        src = "void log_it() {\n    puts(\"x\");\n}\nint main() {\n    log_it();\n}\n"
        assert run_checker(MissingReturnChecker, src) == []

    def test_prototype_exempt(self):
        assert run_checker(MissingReturnChecker, "int compute(int value);") == []

    def test_clean_program(self):
        assert run_checker(MissingReturnChecker, CLEAN_PROGRAM) == []


class TestUnreachableChecker:
    """First statement after a return."""

    def test_first_line_after_return(self):
        records = run_checker(UnreachableChecker, UNREACHABLE_PROGRAM)
        assert messages(records) == ["Unreachable code after return statement"]
        assert records[0].line == 4

    def test_only_first_line_of_a_run(self):
        src = "int main() {\n    return 0;\n    a = 1;\n    b = 2;\n}"
        records = run_checker(UnreachableChecker, src)
        assert [r.line for r in records] == [3]

    def test_return_at_block_end(self):
        assert run_checker(UnreachableChecker, CLEAN_PROGRAM) == []


class TestEmptyBodyChecker:
    """Empty control and function bodies."""

    SOURCE = """\
int main() {
    int x = 1;
    if (x > 0);
    while (x) {}
    for (x = 0; x < 3; x++) {
    }
    return 0;
}
"""

    def test_control_bodies(self):
        records = run_checker(EmptyBodyChecker, self.SOURCE)
        assert [(r.line, r.message) for r in records] == [
            (3, "Empty if body detected"),
            (4, "Empty while body detected"),
            (5, "Empty for block detected (body has no statements)"),
        ]
        assert all(r.category is DefectCategory.EMPTY_BODY for r in records)

    def test_brace_on_its_own_line(self):
        src = "int main() {\n    if (ready)\n    {\n    }\n    return 0;\n}"
        records = run_checker(EmptyBodyChecker, src)
        assert messages(records) == ["Empty if block detected (body has no statements)"]
        assert records[0].line == 2

    def test_empty_function(self):
        src = "void noop() {\n}\nint main() {\n    noop();\n    return 0;\n}"
        records = run_checker(EmptyBodyChecker, src)
        assert messages(records) == ["Function 'noop' has an empty body"]
        assert records[0].category is DefectCategory.EMPTY_FUNCTION
        assert records[0].line == 1

    def test_clean_program(self):
        assert run_checker(EmptyBodyChecker, CLEAN_PROGRAM) == []
