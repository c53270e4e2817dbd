# tests/test_syntax_checks.py
"""
Tests for the syntax checkers: delimiter matching, malformed control
structures and missing semicolons.
"""

import pytest

from cscrub.defects import DefectCategory, Severity
from cscrub.syntax_checks import (
    BraceChecker,
    BracketChecker,
    MalformedSyntaxChecker,
    MissingSemicolonChecker,
    ParenthesisChecker,
)
from tests.conftest import CLEAN_PROGRAM, messages, run_checker


class TestDelimiterCheckers:
    """Stack walk for (), [] and {}."""

    @pytest.mark.parametrize("cls", [BracketChecker, ParenthesisChecker, BraceChecker])
    def test_clean_program_balanced(self, cls):
        assert run_checker(cls, CLEAN_PROGRAM) == []

    def test_unclosed_parenthesis(self):
        records = run_checker(ParenthesisChecker, "int main() {\n    return (1 + 2;\n}")
        assert len(records) == 1
        assert records[0].line == 2
        assert records[0].message == "Unclosed parenthesis '(' - missing ')'"
        assert records[0].category is DefectCategory.MISMATCHED_PARENTHESIS
        assert records[0].severity is Severity.ERROR

    def test_unexpected_closing_parenthesis(self):
        records = run_checker(ParenthesisChecker, "int main() {\n    return 1 + 2);\n}")
        assert messages(records) == ["Unexpected closing parenthesis ')' without matching '('"]
        assert records[0].line == 2

    def test_unclosed_bracket(self):
        records = run_checker(BracketChecker, "int a[5;")
        assert messages(records) == ["Unclosed bracket '[' - missing ']'"]

    def test_unexpected_closing_brace(self):
        records = run_checker(BraceChecker, "int main() {\n}\n}")
        assert messages(records) == ["Unexpected closing brace '}' without matching '{'"]
        assert records[0].line == 3

    def test_unclosed_brace_reported_at_opener(self):
        records = run_checker(BraceChecker, "int main() {\n    if (x) {\n}")
        assert [r.line for r in records] == [1]

    def test_delimiters_in_strings_ignored(self):
        assert run_checker(ParenthesisChecker, 'printf("(");') == []
        assert run_checker(BraceChecker, 'printf("{");') == []

    def test_char_literal_parenthesis_ignored(self):
        assert run_checker(ParenthesisChecker, "char c = '(';") == []

    def test_char_literal_brace_counted(self):
        # brace matching only skips string literals
        records = run_checker(BraceChecker, "int main() {\n    char c = '}';\n}")
        assert messages(records) == ["Unexpected closing brace '}' without matching '{'"]
        assert records[0].line == 3

    def test_comments_ignored(self):
        assert run_checker(BracketChecker, "int x; // a[") == []
        assert run_checker(BraceChecker, "/* { */ int x;") == []


class TestMalformedSyntaxChecker:
    """Control-structure punctuation."""

    def test_brace_closing_condition(self):
        found = messages(run_checker(MalformedSyntaxChecker, "if (x > 0} {"))
        assert "'}' used instead of ')' to close condition/expression" in found
        assert "Malformed control structure: '}' found instead of ')' in condition" in found

    def test_brace_inside_condition(self):
        found = messages(run_checker(MalformedSyntaxChecker, "if (x > 0 {"))
        assert found == ["Malformed control structure: '{' found inside condition parentheses"]

    def test_keyword_without_parenthesis(self):
        found = messages(run_checker(MalformedSyntaxChecker, "while x < 5 {"))
        assert found == ["Control structure missing '(' after keyword"]

    def test_switch_without_parenthesis(self):
        found = messages(run_checker(MalformedSyntaxChecker, "switch value {"))
        assert found == ["switch statement missing '(' after keyword"]

    @pytest.mark.parametrize("header,found", [
        ("for (i = 0; i < 5) {", 1),
        ("for (i = 0; i < 5; i++; j++) {", 3),
    ])
    def test_for_semicolon_count(self, header, found):
        assert messages(run_checker(MalformedSyntaxChecker, header)) == [
            f"for loop must have exactly 2 semicolons, found {found}"
        ]

    @pytest.mark.parametrize("line", [
        "for (;;) {",
        "for (i = 0; i < 5; i++) {",
        "if (x > 0) {",
        "#if DEBUG",
        'printf("if x {");',
        "switch (value) {",
    ])
    def test_well_formed(self, line):
        assert run_checker(MalformedSyntaxChecker, line) == []


class TestMissingSemicolonChecker:
    """Statement shapes missing their terminator."""

    @pytest.mark.parametrize("line,message", [
        ("int x = 5", "Missing semicolon after variable declaration"),
        ("char name[10]", "Missing semicolon after variable declaration"),
        ("return 0", "Missing semicolon after return statement"),
        ("break", "Missing semicolon after jump statement"),
        ("x++", "Missing semicolon after increment/decrement"),
        ("total += 2", "Missing semicolon after assignment"),
        ('printf("hi")', "Missing semicolon after function call"),
    ])
    def test_flagged(self, line, message):
        records = run_checker(MissingSemicolonChecker, line)
        assert messages(records) == [message]
        assert records[0].suggestion == f"Add ';' at the end: {line};"
        assert records[0].severity is Severity.ERROR

    @pytest.mark.parametrize("line", [
        "if (x > 0)",
        "int main()",
        "else",
        "do",
        "#include <stdio.h>",
        "// return 0",
        "total = add(1,",
        "x = 1; // done",
        "}",
    ])
    def test_not_flagged(self, line):
        assert run_checker(MissingSemicolonChecker, line) == []

    def test_statement_before_closing_brace_exempt(self):
        # a line ending in '}' is never checked, so one-line bodies pass
        src = "int main(){ int x; printf(x); return 0 }"
        assert run_checker(MissingSemicolonChecker, src) == []

    def test_trailing_comment_kept_out_of_suggestion(self):
        records = run_checker(MissingSemicolonChecker, "return 0 // done")
        assert records[0].suggestion == "Add ';' at the end: return 0;"

    def test_clean_program(self):
        assert run_checker(MissingSemicolonChecker, CLEAN_PROGRAM) == []
