"""RAM tokenizer tests."""

import pytest

from ramfail.diagnostics import (
    E_MISSING_NUMBER,
    E_NUMBER_OUT_OF_RANGE,
    E_UNEXPECTED_CHARACTER,
    E_UNEXPECTED_END_OF_CODE,
    TokenizeError,
)
from ramfail.ram.tokens import (
    TK_ADDRESS,
    TK_ADDRESS_POINTER,
    TK_IMMEDIATE,
    TK_LABEL,
    TK_LABEL_REFERENCE,
    TK_OPCODE,
    tokenize,
)

PROGRAM = """\
// sum 1..3 into register 2
START:
    LOAD #1      // counter
    store 1
loop:   LOAD 1
    ADD 2
    STORE 2
    LOAD *1
    JNZERO loop
    GOTO end_1
END_1: END
"""


def kinds(source: str) -> list[str]:
    return [tok.kind for tok in tokenize(source)]


def test_instruction_tokens():
    tokens = tokenize("LOAD #5\n")
    assert [(t.kind, t.value) for t in tokens] == [(TK_OPCODE, "LOAD"), (TK_IMMEDIATE, 5)]
    assert (tokens[1].line, tokens[1].col, tokens[1].length, tokens[1].raw) == (1, 6, 2, "#5")


def test_operand_forms():
    tokens = tokenize("ADD 3\nSTORE *4\nGOTO somewhere\n")
    assert [(t.kind, t.value) for t in tokens] == [
        (TK_OPCODE, "ADD"),
        (TK_ADDRESS, 3),
        (TK_OPCODE, "STORE"),
        (TK_ADDRESS_POINTER, 4),
        (TK_OPCODE, "GOTO"),
        (TK_LABEL_REFERENCE, "SOMEWHERE"),
    ]
    assert tokens[3].line == 2
    assert tokens[3].col == 7
    assert tokens[3].raw == "*4"


def test_opcodes_are_case_insensitive():
    assert [t.value for t in tokenize("load #1 Jzero x end\n")] == ["LOAD", 1, "JZERO", "X", "END"]
    assert kinds("load #1 Jzero x end\n") == [
        TK_OPCODE,
        TK_IMMEDIATE,
        TK_OPCODE,
        TK_LABEL_REFERENCE,
        TK_OPCODE,
    ]


def test_label_token_spans_colon():
    tok = tokenize("  start_2:")[0]
    assert tok.kind == TK_LABEL
    assert tok.value == "START_2"
    assert (tok.line, tok.col, tok.length, tok.raw) == (1, 3, 8, "start_2:")


def test_label_directly_followed_by_instruction():
    assert kinds("A:LOAD #1\n") == [TK_LABEL, TK_OPCODE, TK_IMMEDIATE]


def test_comment_terminates_lexeme():
    tokens = tokenize("LOAD #12// trailing\nEND//x")
    assert [t.value for t in tokens] == ["LOAD", 12, "END"]
    assert tokens[2].line == 2


def test_comments_and_blank_lines_are_skipped():
    assert tokenize("// nothing here\n\n   \t\n// LOAD #1\n") == []


def test_line_and_column_tracking():
    tokens = tokenize("\n\n   LOAD   7\n\tEND\n")
    assert [(t.line, t.col) for t in tokens] == [(3, 4), (3, 11), (4, 2)]


def test_round_trip_spans():
    tokens = tokenize(PROGRAM)
    lines = PROGRAM.split("\n")
    for tok in tokens:
        line = lines[tok.line - 1]
        assert line[tok.col - 1 : tok.col - 1 + tok.length] == tok.raw
    stripped = "".join(
        "".join(line.split("//")[0].split()) for line in lines
    )
    assert "".join(tok.raw for tok in tokens) == stripped


def test_unexpected_character_position():
    with pytest.raises(TokenizeError) as info:
        tokenize("LOAD @")
    err = info.value
    assert err.code == E_UNEXPECTED_CHARACTER
    assert (err.line, err.col) == (1, 6)
    assert err.token.raw == "@"
    assert str(err) == "Unexpected character '@' at line 1 col 6"


def test_unexpected_character_inside_number():
    with pytest.raises(TokenizeError) as info:
        tokenize("LOAD #12x")
    assert (info.value.line, info.value.col) == (1, 9)


def test_unexpected_character_inside_text():
    with pytest.raises(TokenizeError) as info:
        tokenize("\nLO-AD #1")
    assert (info.value.line, info.value.col) == (2, 3)


@pytest.mark.parametrize(
    "source,col",
    [("LOAD #\n", 6), ("STORE *\n", 7), ("LOAD # 5", 6), ("LOAD #// c", 6)],
)
def test_missing_number(source: str, col: int):
    with pytest.raises(TokenizeError) as info:
        tokenize(source)
    assert info.value.code == E_MISSING_NUMBER
    assert info.value.col == col


def test_number_out_of_range():
    tokenize("LOAD #4294967295\n")
    with pytest.raises(TokenizeError) as info:
        tokenize("LOAD #4294967296\n")
    assert info.value.code == E_NUMBER_OUT_OF_RANGE
    assert info.value.token.raw == "#4294967296"


@pytest.mark.parametrize(
    "source,raw,col",
    [("LOAD #5", "#5", 6), ("LOAD #", "#", 6), ("END", "END", 1), ("GOTO x", "x", 6), ("\nSTORE *3", "*3", 7)],
)
def test_input_ending_inside_lexeme(source: str, raw: str, col: int):
    with pytest.raises(TokenizeError) as info:
        tokenize(source)
    err = info.value
    assert err.code == E_UNEXPECTED_END_OF_CODE
    assert err.token.raw == raw
    assert err.col == col


def test_input_may_end_in_comment_or_after_label():
    assert kinds("END // done") == [TK_OPCODE]
    assert kinds("END\nDONE:") == [TK_OPCODE, TK_LABEL]
