"""Tests for the summum lexer."""

from __future__ import annotations

import pytest

from summum.errors import CompileError
from summum.lexer import Lexer, tokens_of
from summum.tokens import Delimiter, Group, TokenKind


def lex(source: str) -> list[tuple[TokenKind, str]]:
    """Helper: lex source and return (kind, value) pairs of the top level."""
    trees = Lexer(source).lex()
    return [(t.kind, t.value) for t in trees if not isinstance(t, Group)]


class TestLexerBasic:
    def test_empty_source(self):
        assert Lexer("").lex() == []

    def test_identifier(self):
        assert lex("hello") == [(TokenKind.IDENT, "hello")]

    def test_raw_identifier(self):
        assert lex("r#type") == [(TokenKind.IDENT, "r#type")]

    def test_lifetime(self):
        assert lex("'a") == [(TokenKind.LIFETIME, "'a")]

    def test_static_lifetime(self):
        assert lex("'static") == [(TokenKind.LIFETIME, "'static")]

    def test_char_literal(self):
        assert lex("'x'") == [(TokenKind.LITERAL, "'x'")]

    def test_escaped_char_literal(self):
        assert lex(r"'\n'") == [(TokenKind.LITERAL, r"'\n'")]

    def test_string_literal(self):
        assert lex('"hi there"') == [(TokenKind.LITERAL, '"hi there"')]

    def test_string_with_escaped_quote(self):
        assert lex(r'"a\"b"') == [(TokenKind.LITERAL, r'"a\"b"')]

    def test_raw_string(self):
        assert lex('r#"say "hi""#') == [(TokenKind.LITERAL, 'r#"say "hi""#')]

    def test_byte_string(self):
        assert lex('b"abc"') == [(TokenKind.LITERAL, 'b"abc"')]

    def test_integer_with_suffix(self):
        assert lex("42u8") == [(TokenKind.LITERAL, "42u8")]

    def test_float_with_exponent(self):
        assert lex("1.5e-3") == [(TokenKind.LITERAL, "1.5e-3")]

    def test_hex(self):
        assert lex("0xFF") == [(TokenKind.LITERAL, "0xFF")]

    def test_punctuation_is_single_char(self):
        assert lex("::") == [(TokenKind.PUNCT, ":"), (TokenKind.PUNCT, ":")]

    def test_joint_punctuation(self):
        trees = Lexer("-> x").lex()
        assert trees[0].joint
        assert not trees[1].joint

    def test_separated_punctuation_not_joint(self):
        trees = Lexer(": :").lex()
        assert not trees[0].joint


class TestWhitespace:
    def test_no_space(self):
        trees = Lexer("a.b").lex()
        assert [t.ws for t in trees] == ["", "", ""]

    def test_space(self):
        trees = Lexer("a b").lex()
        assert trees[1].ws == " "

    def test_newline_wins_over_space(self):
        trees = Lexer("a  \n   b").lex()
        assert trees[1].ws == "\n"

    def test_comment_counts_as_space(self):
        trees = Lexer("a /* note */b").lex()
        assert trees[1].ws == " "

    def test_line_comment_skipped(self):
        assert lex("a // trailing\nb") == [(TokenKind.IDENT, "a"), (TokenKind.IDENT, "b")]

    def test_nested_block_comment(self):
        assert lex("a /* x /* y */ z */ b") == [(TokenKind.IDENT, "a"), (TokenKind.IDENT, "b")]


class TestGroups:
    def test_nested_groups(self):
        trees = Lexer("f(a, [b])").lex()
        assert len(trees) == 2
        group = trees[1]
        assert isinstance(group, Group)
        assert group.delimiter == Delimiter.PAREN
        inner = group.children[-1]
        assert isinstance(inner, Group)
        assert inner.delimiter == Delimiter.BRACKET
        assert inner.children[0].value == "b"

    def test_group_span_covers_delimiters(self):
        trees = Lexer("{\n  x\n}").lex()
        span = trees[0].span
        assert (span.start_line, span.start_col) == (1, 1)
        assert (span.end_line, span.end_col) == (3, 1)

    def test_close_ws_records_newline(self):
        trees = Lexer("{\n  x\n}").lex()
        assert trees[0].close_ws == "\n"

    def test_token_spans(self):
        trees = Lexer("ab cd").lex()
        assert (trees[1].span.start_col, trees[1].span.end_col) == (4, 5)


class TestDocComments:
    def test_outer_doc_becomes_attribute(self):
        trees = Lexer("/// Hello\nx").lex()
        assert trees[0].is_punct("#")
        attr = trees[1]
        assert isinstance(attr, Group)
        assert attr.delimiter == Delimiter.BRACKET
        assert [c.value for c in attr.children] == ["doc", "=", '" Hello"']
        assert trees[2].value == "x"

    def test_inner_doc_has_bang(self):
        trees = Lexer("//! crate docs").lex()
        assert trees[0].is_punct("#")
        assert trees[1].is_punct("!")

    def test_four_slashes_is_plain_comment(self):
        assert lex("//// not docs\nx") == [(TokenKind.IDENT, "x")]


class TestLexerErrors:
    def test_unclosed_delimiter(self):
        with pytest.raises(CompileError) as exc:
            Lexer("fn f() {").lex()
        assert exc.value.diagnostics[0].code == "E100"
        assert "unclosed delimiter" in exc.value.diagnostics[0].message

    def test_mismatched_delimiter(self):
        with pytest.raises(CompileError) as exc:
            Lexer("(]").lex()
        assert "mismatched" in exc.value.diagnostics[0].message

    def test_unexpected_closer(self):
        with pytest.raises(CompileError):
            Lexer(")").lex()

    def test_unterminated_string(self):
        with pytest.raises(CompileError) as exc:
            Lexer('"abc').lex()
        assert "unterminated string" in exc.value.diagnostics[0].message

    def test_unterminated_block_comment(self):
        with pytest.raises(CompileError):
            Lexer("/* open").lex()


class TestTokensOf:
    def test_generated_snippet(self):
        trees = tokens_of("Name<'a, T>")
        assert [t.value for t in trees] == ["Name", "<", "'a", ",", "T", ">"]
        assert trees[0].span.file == "<generated>"
