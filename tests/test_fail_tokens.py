"""FAIL tokenizer tests."""

import pytest

from ramfail.diagnostics import E_NUMBER_OUT_OF_RANGE, E_UNEXPECTED_CHARACTER, TokenizeError
from ramfail.fail.tokens import (
    TK_ARROW,
    TK_ASSIGN,
    TK_EOF,
    TK_IDENT,
    TK_INCREMENT,
    TK_KEYWORD,
    TK_NUMBER,
    TK_OPERATOR,
    TK_PUNCT,
    TK_SELF_ASSIGN,
    tokenize,
)


def lexemes(source: str) -> list[tuple[str, object]]:
    return [(t.kind, t.value) for t in tokenize(source) if t.kind != TK_EOF]


def test_keywords_and_identifiers():
    assert lexemes("var int bool if else while break continue new fn return") == [
        (TK_KEYWORD, w)
        for w in ["var", "int", "bool", "if", "else", "while", "break", "continue", "new", "fn", "return"]
    ]
    assert lexemes("integer If _x x1") == [
        (TK_IDENT, "integer"),
        (TK_IDENT, "If"),
        (TK_IDENT, "_x"),
        (TK_IDENT, "x1"),
    ]


def test_declaration():
    assert lexemes("int x = 42;") == [
        (TK_KEYWORD, "int"),
        (TK_IDENT, "x"),
        (TK_ASSIGN, "="),
        (TK_NUMBER, 42),
        (TK_PUNCT, ";"),
    ]


@pytest.mark.parametrize(
    "source,kind",
    [
        ("->", TK_ARROW),
        ("==", TK_OPERATOR),
        ("!=", TK_OPERATOR),
        (">=", TK_OPERATOR),
        ("<=", TK_OPERATOR),
        ("+=", TK_SELF_ASSIGN),
        ("-=", TK_SELF_ASSIGN),
        ("*=", TK_SELF_ASSIGN),
        ("/=", TK_SELF_ASSIGN),
        ("++", TK_INCREMENT),
        ("--", TK_INCREMENT),
    ],
)
def test_two_character_operators_win(source: str, kind: str):
    assert lexemes("a" + source + "b") == [(TK_IDENT, "a"), (kind, source), (TK_IDENT, "b")]


def test_single_character_operators():
    assert [v for _, v in lexemes("+ - * / > < = ( ) { } [ ] ; ,")] == [
        "+", "-", "*", "/", ">", "<", "=", "(", ")", "{", "}", "[", "]", ";", ",",
    ]


def test_greedy_pairs_from_left():
    # "=== " lexes as "==" then "="
    assert [v for _, v in lexemes("a === b")] == ["a", "==", "=", "b"]
    assert [v for _, v in lexemes("x---y")] == ["x", "--", "-", "y"]


def test_comments():
    assert lexemes("x// comment\ny // another\n// only") == [(TK_IDENT, "x"), (TK_IDENT, "y")]
    assert lexemes("a / b") == [(TK_IDENT, "a"), (TK_OPERATOR, "/"), (TK_IDENT, "b")]


def test_positions():
    tokens = tokenize("int x = 1;\n  while (x < 10)")
    assert [(t.raw, t.line, t.col, t.length) for t in tokens[:5]] == [
        ("int", 1, 1, 3),
        ("x", 1, 5, 1),
        ("=", 1, 7, 1),
        ("1", 1, 9, 1),
        (";", 1, 10, 1),
    ]
    assert (tokens[5].raw, tokens[5].line, tokens[5].col) == ("while", 2, 3)
    assert (tokens[8].raw, tokens[8].col) == ("<", 12)


def test_eof_token_closes_stream():
    tokens = tokenize("x;\ny")
    assert tokens[-1].kind == TK_EOF
    assert (tokens[-1].line, tokens[-1].col, tokens[-1].length) == (2, 2, 0)
    assert [t.kind for t in tokenize("")] == [TK_EOF]


def test_round_trip_spans():
    source = "fn add(int a, int b) -> int {\n    return a + b; // sum\n}\nint r = add(1, 2);\n"
    lines = source.split("\n")
    tokens = tokenize(source)
    for tok in tokens:
        if tok.kind == TK_EOF:
            continue
        line = lines[tok.line - 1]
        assert line[tok.col - 1 : tok.col - 1 + tok.length] == tok.raw
    stripped = "".join("".join(line.split("//")[0].split()) for line in lines)
    assert "".join(tok.raw for tok in tokens) == stripped


def test_unexpected_character():
    with pytest.raises(TokenizeError) as info:
        tokenize("int x = 1;\nx = $;")
    err = info.value
    assert err.code == E_UNEXPECTED_CHARACTER
    assert (err.line, err.col) == (2, 5)
    assert err.kind == "Syntax"


def test_bang_alone_is_not_an_operator():
    with pytest.raises(TokenizeError):
        tokenize("!x")


def test_number_out_of_range():
    assert lexemes("4294967295") == [(TK_NUMBER, 4294967295)]
    with pytest.raises(TokenizeError) as info:
        tokenize("x = 4294967296;")
    assert info.value.code == E_NUMBER_OUT_OF_RANGE
    assert info.value.col == 5


def test_lexeme_at_end_of_input():
    assert lexemes("int x = 42") == [
        (TK_KEYWORD, "int"),
        (TK_IDENT, "x"),
        (TK_ASSIGN, "="),
        (TK_NUMBER, 42),
    ]
    tokens = tokenize("x // note")
    assert [(t.kind, t.col) for t in tokens] == [(TK_IDENT, 1), (TK_EOF, 10)]
    with pytest.raises(TokenizeError) as info:
        tokenize("x = 4294967296")
    assert info.value.code == E_NUMBER_OUT_OF_RANGE
    assert info.value.col == 5
