# tests/test_function_checks.py
"""
Tests for FunctionChecker: undefined calls, unused functions, missing
bodies and untyped parameters.
"""

import pytest

from cscrub.checkers import CheckerRegistry, CheckerRunner
from cscrub.defects import DefectCategory, Severity
from cscrub.function_checks import FunctionChecker, is_valid_parameter
from tests.conftest import (
    CLEAN_PROGRAM,
    UNUSED_FUNCTION_PROGRAM,
    context_for,
    messages,
    run_checker,
    tags,
)

UNDEFINED = """\
int main() {
    launch();
    launch();
    return 0;
}
"""

UNTYPED = """\
int area(width, height) {
    return width * height;
}
int main() {
    return area(2, 3);
}
"""


class TestIsValidParameter:
    """Parameter shapes."""

    @pytest.mark.parametrize("param", [
        "int x",
        "char *name",
        "const char *s",
        "unsigned int n",
        "int values[]",
        "double matrix[3][3]",
        "void",
        "...",
    ])
    def test_valid(self, param):
        assert is_valid_parameter(param)

    @pytest.mark.parametrize("param", ["x", "int", "name value", "struct"])
    def test_invalid(self, param):
        assert not is_valid_parameter(param)

    @pytest.mark.parametrize("param", ["int", "char *", "const char*"])
    def test_type_only_valid_in_prototypes(self, param):
        assert is_valid_parameter(param, prototype=True)


class TestUndefinedFunctions:
    """Calls to names that are never defined."""

    def test_every_call_site_reported(self):
        records = run_checker(FunctionChecker, UNDEFINED)
        undefined = [r for r in records if r.category is DefectCategory.UNDEFINED_FUNCTION]
        assert [r.line for r in undefined] == [2, 3]
        assert undefined[0].message == "Function 'launch' is called but not defined"
        assert undefined[0].severity is Severity.ERROR

    def test_standard_library_is_defined(self):
        assert run_checker(FunctionChecker, CLEAN_PROGRAM) == []

    def test_macros_are_defined(self):
        src = "#define TWICE(x) ((x) * 2)\nint main() {\n    return TWICE(2);\n}"
        assert run_checker(FunctionChecker, src) == []

    def test_context_side_table(self):
        registry = CheckerRegistry()
        registry.register(FunctionChecker)
        ctx = context_for(UNDEFINED)
        CheckerRunner(registry).run(ctx)
        assert ctx.undefined_functions == {"launch": [2, 3]}


class TestUnusedFunctions:
    """Functions defined but never called."""

    def test_unused_and_summary(self):
        records = run_checker(FunctionChecker, UNUSED_FUNCTION_PROGRAM)
        assert tags(records) == ["UnusedFunction", "UncalledFunctionsSummary"]
        unused, summary = records
        assert unused.line == 1
        assert unused.severity is Severity.WARNING
        assert unused.message == "Function 'unused' is defined but never called"
        assert summary.line == 1
        assert summary.severity is Severity.INFO
        assert summary.message == "Uncalled functions: unused"

    def test_summary_lists_every_function(self):
        src = "void a() {\n}\nvoid b() {\n}\nint main() {\n    return 0;\n}"
        summary = [r for r in run_checker(FunctionChecker, src)
                   if r.category is DefectCategory.UNCALLED_FUNCTIONS_SUMMARY]
        assert messages(summary) == ["Uncalled functions: a, b"]

    def test_main_is_never_unused(self):
        assert run_checker(FunctionChecker, "int main() {\n    return 0;\n}") == []

    def test_context_side_table(self):
        registry = CheckerRegistry()
        registry.register(FunctionChecker)
        ctx = context_for(UNUSED_FUNCTION_PROGRAM)
        CheckerRunner(registry).run(ctx)
        assert ctx.unused_functions == {"unused": 1}


class TestMissingBody:
    """Headers with no body and no terminating ';'."""

    def test_header_without_body(self):
        records = run_checker(FunctionChecker, "int helper(int value)\n")
        missing = [r for r in records if r.category is DefectCategory.MISSING_FUNCTION_BODY]
        assert messages(missing) == ["Function 'helper' is declared but has no body '{}'"]
        assert missing[0].line == 1

    def test_prototype_has_no_body_by_design(self):
        records = run_checker(FunctionChecker, "int helper(int value);\n")
        assert DefectCategory.MISSING_FUNCTION_BODY not in [r.category for r in records]

    def test_brace_two_lines_later(self):
        src = "int helper(int value)\n\n{\n    return value;\n}"
        records = run_checker(FunctionChecker, src)
        assert DefectCategory.MISSING_FUNCTION_BODY not in [r.category for r in records]


class TestInvalidParameters:
    """Untyped parameters."""

    def test_each_untyped_parameter(self):
        records = [r for r in run_checker(FunctionChecker, UNTYPED)
                   if r.category is DefectCategory.INVALID_PARAMETER]
        assert messages(records) == [
            "Invalid parameter 'width' in function 'area'",
            "Invalid parameter 'height' in function 'area'",
        ]
        assert all(r.line == 1 for r in records)

    def test_prototype_type_only_parameters(self):
        records = run_checker(FunctionChecker, "int add(int, int);\nint main() {\n    return add(1, 2);\n}")
        assert DefectCategory.INVALID_PARAMETER not in [r.category for r in records]
