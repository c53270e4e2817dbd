# tests/test_fixers.py
"""
Tests for the single-line rewrites in cscrub.fixers.
"""

import pytest

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
from cscrub.lexer import split_lines
from cscrub.symbols import extract_symbols
from tests.conftest import LOOP_BOUNDS_PROGRAM


class TestStructuralFixes:

    @pytest.mark.parametrize("text,expected", [
        ("if (x > 0} {", "if (x > 0) {"),
        ("while (n > 0 {", "while (n > 0) {"),
        ("y = (a + b};", "y = (a + b);"),
    ])
    def test_fix_brace_paren(self, text, expected):
        assert fix_brace_paren(text) == (expected, 1)

    def test_fix_brace_paren_leaves_good_code(self):
        assert fix_brace_paren("if (x > 0) {") == ("if (x > 0) {", 0)

    @pytest.mark.parametrize("text,name,type_name,expected", [
        ("int x;", "x", "int", "int x = 0;"),
        ("char c;", "c", "char", "char c = '\\0';"),
        ("double d;", "d", "double", "double d = 0.0;"),
        ("int a, b;", "b", "int", "int a, b = 0;"),
    ])
    def test_add_initializer(self, text, name, type_name, expected):
        assert add_initializer(text, name, type_name) == (expected, 1)

    def test_add_initializer_already_initialized(self):
        assert add_initializer("int x = 5;", "x", "int") == ("int x = 5;", 0)

    @pytest.mark.parametrize("text,expected,n", [
        ("return 0", "return 0;", 1),
        ("x++ // bump", "x++; // bump", 1),
        ("if (x)", "if (x)", 0),
        ("x = 1;", "x = 1;", 0),
    ])
    def test_add_semicolon(self, text, expected, n):
        assert add_semicolon(text) == (expected, n)

    @pytest.mark.parametrize("text,expected", [
        ("int a[5;", "int a[5];"),
        ("int a[5", "int a[5];"),
        ("x = b[2;", "x = b[2];"),
    ])
    def test_close_brackets(self, text, expected):
        assert close_brackets(text) == (expected, 1)

    def test_close_brackets_ignores_strings(self):
        assert close_brackets('puts("[");') == ('puts("[");', 0)

    def test_type_parameters(self):
        assert type_parameters("int area(width, height) {") == (
            "int area(int width, int height) {", 2
        )

    def test_type_parameters_partial(self):
        assert type_parameters("int area(int w, h)") == ("int area(int w, int h)", 1)

    def test_type_parameters_typed(self):
        assert type_parameters("int area(int w, int h) {") == ("int area(int w, int h) {", 0)


class TestConditionFixes:

    def test_fix_assignment_if(self):
        assert fix_assignment_if("if (x = 5) {") == ("if (x == 5) {", 1)

    def test_fix_assignment_if_comparison_untouched(self):
        assert fix_assignment_if("if (x == 5)") == ("if (x == 5)", 0)

    def test_tighten_loop_bound(self):
        views = split_lines(LOOP_BOUNDS_PROGRAM)
        arrays = extract_symbols(views).arrays
        text = views[2].raw
        assert tighten_loop_bound(text, views, 2, arrays, 15) == (
            "    for (int i = 0; i < 5; i++) {", 1
        )

    def test_tighten_loop_bound_fitting_loop(self):
        views = split_lines(LOOP_BOUNDS_PROGRAM.replace("i <= 5", "i < 5"))
        arrays = extract_symbols(views).arrays
        text = views[2].raw
        assert tighten_loop_bound(text, views, 2, arrays, 15) == (text, 0)


class TestFormatCallFixes:

    def test_fix_printf_uses_declared_type(self):
        symbols = extract_symbols(split_lines("float rate = 1.0;"))
        assert fix_printf("printf(rate);", symbols) == ('printf("%f", rate);', 1)

    def test_fix_printf_macro_untouched(self):
        symbols = extract_symbols(split_lines(""))
        assert fix_printf("printf(BANNER);", symbols) == ("printf(BANNER);", 0)

    def test_fix_scanf(self):
        assert fix_scanf('scanf("%d", n);') == ('scanf("%d", &n);', 1)

    def test_fix_scanf_multiple_arguments(self):
        assert fix_scanf('scanf("%d %f", a, b);') == ('scanf("%d %f", &a, &b);', 1)


class TestArithmetic:

    @pytest.mark.parametrize("text,expected,n", [
        ("int x = 2 * 3 + 1;", "int x = 7;", 2),
        ("int x = 1 + 2 * 3;", "int x = 7;", 2),
        ("int x = 10 - 2 + 3;", "int x = 10 - 2 + 3;", 0),
        ("int x = 2 + 3 * y;", "int x = 2 + 3 * y;", 0),
        ("int x = 8 / 2 * 3;", "int x = 8 / 2 * 3;", 0),
        ('printf("1 + 2");', 'printf("1 + 2");', 0),
    ])
    def test_fold_constants(self, text, expected, n):
        assert fold_constants(text) == (expected, n)

    @pytest.mark.parametrize("text,expected,n", [
        ("y = x + 0;", "y = x;", 1),
        ("y = x * 1;", "y = x;", 1),
        ("y = x + 0 * z;", "y = x + 0 * z;", 0),
        ("y = x * 10;", "y = x * 10;", 0),
    ])
    def test_simplify_identities(self, text, expected, n):
        assert simplify_identities(text) == (expected, n)


class TestRenameIdentifiers:

    def test_rename_skips_members_and_calls(self):
        text, names = rename_identifiers("x = x + s.x + f(x);", {"x": "counter"})
        assert text == "counter = counter + s.x + f(counter);"
        assert names == {"x"}

    def test_rename_skips_literals(self):
        text, _ = rename_identifiers('printf("x", x);', {"x": "counter"})
        assert text == 'printf("x", counter);'

    def test_rename_skips_function_names(self):
        assert rename_identifiers("x(1);", {"x": "c"}) == ("x(1);", set())

    def test_rename_skips_preprocessor(self):
        assert rename_identifiers("#define LIMIT x", {"x": "c"}) == ("#define LIMIT x", set())
