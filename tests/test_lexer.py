from __future__ import annotations

import pytest

from gomodpy import ParseError
from gomodpy.lexer import lex, tokenize
from gomodpy.tokens import TokenKind as K


def _kinds(src: str) -> list[K]:
    return [t.kind for t in tokenize(src)]


def test_require_line_tokens() -> None:
    toks = tokenize("require example.com/x v1.0.0 // c\n")
    assert [t.kind for t in toks] == [K.REQUIRE, K.IDENT, K.IDENT, K.NEWLINE, K.EOF]
    assert toks[1].lexeme == "example.com/x"
    assert toks[2].lexeme == "v1.0.0"
    assert toks[3].span.start.offset == 33


def test_missing_final_newline_is_synthesized() -> None:
    toks = tokenize("module m")
    assert [t.kind for t in toks] == [K.MODULE, K.IDENT, K.NEWLINE, K.EOF]
    nl = toks[2]
    assert nl.span.start == nl.span.end
    assert nl.span.start.offset == 8
    assert nl.lexeme == ""


def test_empty_input() -> None:
    assert _kinds("") == [K.NEWLINE, K.EOF]


def test_keywords_are_whole_words() -> None:
    assert _kinds("modules go1.21 go") == [K.IDENT, K.IDENT, K.GO, K.NEWLINE, K.EOF]


def test_slashes_inside_identifiers() -> None:
    toks, comments = lex("a/b//c\nx/*y*/z\n")
    assert [t.lexeme for t in toks if t.kind is K.IDENT] == ["a/b", "x", "z"]
    assert [c.text for c in comments] == ["c", "y"]


def test_punctuation_and_arrow() -> None:
    assert _kinds("k = v => x [a, b] ()") == [
        K.IDENT,
        K.EQ,
        K.IDENT,
        K.ARROW,
        K.IDENT,
        K.LBRACKET,
        K.IDENT,
        K.COMMA,
        K.IDENT,
        K.RBRACKET,
        K.LPAREN,
        K.RPAREN,
        K.NEWLINE,
        K.EOF,
    ]


def test_equals_inside_identifier_but_not_arrow() -> None:
    toks = tokenize("k=v a=>b =x")
    assert [(t.kind, t.lexeme) for t in toks[:-2]] == [
        (K.IDENT, "k=v"),
        (K.IDENT, "a"),
        (K.ARROW, "=>"),
        (K.IDENT, "b"),
        (K.EQ, "="),
        (K.IDENT, "x"),
    ]


@pytest.mark.parametrize(
    "word",
    ["C:\\src\\x", "..\\lib", "../my@dir", "v1.0.0-pre!1", "example.com/x:y", "héllo/wörld", "a#b;c'd"],
)
def test_bare_identifiers_take_any_non_blank_text(word: str) -> None:
    toks = tokenize(f"{word} // c\n")
    assert [t.kind for t in toks] == [K.IDENT, K.NEWLINE, K.EOF]
    assert toks[0].lexeme == word


def test_identifier_stops_before_line_continuation() -> None:
    toks = tokenize("a\\b \\\nc\\\n")
    assert [t.lexeme for t in toks if t.kind is K.IDENT] == ["a\\b", "c"]


def test_string_tokens() -> None:
    toks = tokenize('"a\\tb" `c\\d`')
    assert toks[0].kind is K.STRING
    assert toks[0].value == "a\tb"
    assert toks[0].lexeme == '"a\\tb"'
    assert toks[1].kind is K.RAW_STRING
    assert toks[1].value is None
    assert toks[1].lexeme == "`c\\d`"


def test_comment_standalone_flag() -> None:
    _, comments = lex("// a\nmodule m // b\n  /* c */\n")
    assert [(c.text, c.standalone) for c in comments] == [("a", True), ("b", False), ("c", True)]


def test_line_continuation_with_crlf() -> None:
    toks = tokenize("a \\\r\nb\r\n")
    assert [t.kind for t in toks] == [K.IDENT, K.IDENT, K.NEWLINE, K.EOF]
    assert (toks[1].span.start.line, toks[1].span.start.column) == (2, 1)


def test_positions_after_multiline_block_comment() -> None:
    toks = tokenize("/* x\nyy\nzzz */ go\n")
    go = toks[0]
    assert go.kind is K.GO
    assert (go.span.start.offset, go.span.start.line, go.span.start.column) == (15, 3, 8)


@pytest.mark.parametrize(
    "src, message",
    [
        ('"\\400"', "invalid octal escape"),
        ('"\\12"', "invalid octal escape"),
        ('"\\u12"', "invalid \\u escape"),
        ('"\\U00110000"', "escape \\U00110000 is not a valid code point"),
        ('"abc\\', "unterminated string escape"),
        ("`abc", "unterminated raw string"),
        ("\v", "unexpected character '\\x0b'"),
    ],
)
def test_lexical_errors(src: str, message: str) -> None:
    with pytest.raises(ParseError) as e:
        tokenize(src, file="x.mod")
    assert e.value.message == message
    assert e.value.span.file == "x.mod"
