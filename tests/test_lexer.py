# tests/test_lexer.py
"""
Tests for cscrub.lexer: line views, masking, comment splitting and the
tokenizer every other pass builds on.
"""

import pytest

from cscrub.lexer import (
    count_identifier,
    iter_code_chars,
    mask_text,
    split_comment,
    split_lines,
    tokenize,
)


class TestSplitLines:
    """LineView construction."""

    def test_one_view_per_line(self):
        views = split_lines("int a;\nint b;\n")
        assert [v.number for v in views] == [1, 2, 3]
        assert views[2].is_blank

    def test_renderings_are_aligned(self):
        raw = 'printf("a;b", x); // done'
        view = split_lines(raw)[0]
        assert len(view.raw) == len(view.code) == len(view.masked)

    def test_comment_blanked_in_code(self):
        view = split_lines("x = 1; // set x")[0]
        assert view.code_text == "x = 1;"
        assert view.comment == "// set x"

    def test_literal_contents_masked(self):
        view = split_lines('s = "a;b{";')[0]
        assert view.masked.count(";") == 1
        assert "{" not in view.masked
        assert "{" in view.code

    def test_char_literal_masked(self):
        view = split_lines("char c = '{';")[0]
        assert "{" not in view.masked

    def test_block_comment_spans_lines(self):
        views = split_lines("/* start\n   still comment\n*/ int x;")
        assert views[1].in_block_comment
        assert views[1].is_comment
        assert views[2].code_text == "int x;"

    def test_carriage_return_stripped(self):
        views = split_lines("int a;\r\nint b;\r\n")
        assert views[0].raw == "int a;"

    @pytest.mark.parametrize("text,attr", [
        ("  #define X 1", "is_preprocessor"),
        ("// just a note", "is_comment"),
        ("   ", "is_blank"),
    ])
    def test_line_kinds(self, text, attr):
        assert getattr(split_lines(text)[0], attr)


class TestFragments:
    """mask_text / split_comment / iter_code_chars on single fragments."""

    def test_mask_text_keeps_length(self):
        text = 'printf("%d\\n", v);'
        assert len(mask_text(text)) == len(text)

    def test_split_comment(self):
        assert split_comment("x = 1; // set") == ("x = 1;", "// set")

    def test_split_comment_ignores_slashes_in_strings(self):
        assert split_comment('s = "//"; // real') == ('s = "//";', "// real")

    def test_split_comment_without_comment(self):
        assert split_comment("x = 1;   ") == ("x = 1;", "")

    def test_iter_code_chars_skips_strings(self):
        assert [c for _, c in iter_code_chars('a"(b"c')] == ["a", "c"]

    def test_iter_code_chars_without_char_tracking(self):
        chars = [c for _, c in iter_code_chars("'{'", track_chars=False)]
        assert chars == ["'", "{", "'"]


class TestTokenize:
    """Token splitting."""

    def test_multi_char_operators(self):
        assert [t.text for t in tokenize("x->y++ >= 10")] == ["x", "->", "y", "++", ">=", "10"]

    def test_kinds(self):
        kinds = [t.kind for t in tokenize('f("s", 2);')]
        assert kinds == ["ident", "punct", "string", "punct", "number", "punct", "punct"]

    def test_token_offsets(self):
        tok = tokenize("  value = 3;")[0]
        assert (tok.start, tok.end) == (2, 7)

    def test_count_identifier_ignores_comments_and_strings(self):
        views = split_lines('int x;\nx = x + 1; // x\nprintf("x");')
        assert count_identifier(views, "x") == 3
