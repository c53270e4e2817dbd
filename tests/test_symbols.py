# tests/test_symbols.py
"""
Tests for cscrub.symbols: variables, arrays, functions, call sites and
macros extracted from a program.
"""

import pytest

from cscrub.lexer import split_lines
from cscrub.symbols import extract_symbols


def symbols_of(source):
    return extract_symbols(split_lines(source))


class TestVariables:
    """Scalar declarations."""

    def test_multiple_declarators(self):
        table = symbols_of("int a, b = 2;")
        assert not table.variables["a"].initialized
        assert table.variables["b"].initialized
        assert table.variables["a"].line == table.variables["b"].line == 1

    @pytest.mark.parametrize("decl,expected", [
        ("unsigned long total;", "long"),
        ("double ratio = 1.5;", "double"),
        ("char letter;", "char"),
        ("short small;", "short"),
        ("float *rate;", "float"),
    ])
    def test_resolved_type(self, decl, expected):
        name = decl.rstrip(";").split("=")[0].split()[-1].lstrip("*")
        assert symbols_of(decl).variables[name].type == expected

    def test_last_declaration_wins(self):
        info = symbols_of("int x;\nfloat x;").variables["x"]
        assert (info.type, info.line) == ("float", 2)

    def test_parameters_are_not_variables(self):
        table = symbols_of("int add(int a, int b) {\n    return a + b;\n}")
        assert "a" not in table.variables
        assert "b" not in table.variables

    def test_for_init_declaration(self):
        table = symbols_of("for (int i = 0; i < 3; i++) {\n}")
        assert table.variables["i"].initialized

    def test_declaration_sites(self):
        table = symbols_of("int data[10];")
        assert (1, 4) in table.declaration_sites


class TestArrays:
    """Array declarations with literal sizes."""

    def test_literal_size(self):
        info = symbols_of("int data[10];").arrays["data"]
        assert info.size == 10
        assert info.valid_range == "0-9"

    def test_symbolic_size_ignored(self):
        table = symbols_of("char name[SIZE];")
        assert "name" not in table.arrays
        assert "name" not in table.variables

    def test_char_array(self):
        table = symbols_of("char buf[8];")
        assert table.type_of("buf") == "char"
        assert table.is_char_array("buf")


class TestFunctions:
    """Function headers, prototypes and call sites."""

    def test_definition(self):
        info = symbols_of("int add(int a, int b) {\n    return a + b;\n}").functions["add"]
        assert info.return_type == "int"
        assert info.parameters == ["int a", "int b"]
        assert info.has_body
        assert info.body_line == 1
        assert not info.is_prototype

    def test_brace_on_next_line(self):
        info = symbols_of("void run(void)\n{\n}").functions["run"]
        assert info.has_body
        assert info.body_line == 2

    def test_prototype(self):
        info = symbols_of("int add(int, int);").functions["add"]
        assert info.is_prototype
        assert info.body_line is None

    def test_definition_beats_prototype(self):
        src = "int add(int a, int b);\nint add(int a, int b) {\n    return a + b;\n}"
        info = symbols_of(src).functions["add"]
        assert not info.is_prototype
        assert info.line == 2

    def test_call_sites(self):
        table = symbols_of("int main() {\n    foo(1);\n    foo(2);\n}")
        assert table.call_sites["foo"] == [2, 3]

    def test_definition_is_not_a_call(self):
        table = symbols_of("int helper() {\n    return 1;\n}")
        assert "helper" not in table.call_sites

    def test_member_calls_ignored(self):
        table = symbols_of("s.run();\np->stop();")
        assert "run" not in table.call_sites
        assert "stop" not in table.call_sites

    def test_keywords_are_not_calls(self):
        table = symbols_of("if (x) {\n    while (y) {}\n}")
        assert not table.call_sites

    def test_function_like_macro(self):
        table = symbols_of("#define SQUARE(x) ((x) * (x))")
        assert "SQUARE" in table.macros
        assert table.is_defined("SQUARE")
