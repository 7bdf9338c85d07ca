"""RAM tokenizer — a character-driven state machine over assembly source."""

from __future__ import annotations

from ..diagnostics import (
    E_MISSING_NUMBER,
    E_NUMBER_OUT_OF_RANGE,
    E_UNEXPECTED_CHARACTER,
    E_UNEXPECTED_END_OF_CODE,
    Token,
    TokenizeError,
    error_token,
)


# Token kind constants
TK_LABEL = "LABEL"
TK_OPCODE = "OPCODE"
TK_LABEL_REFERENCE = "LABEL_REFERENCE"
TK_IMMEDIATE = "IMMEDIATE"
TK_ADDRESS = "ADDRESS"
TK_ADDRESS_POINTER = "ADDRESS_POINTER"

OPCODES: tuple[str, ...] = (
    "LOAD",
    "STORE",
    "ADD",
    "SUB",
    "MUL",
    "DIV",
    "GOTO",
    "JZERO",
    "JNZERO",
    "END",
)

U32_MAX = 0xFFFFFFFF

# Tokenizer states
_START = "start"
_TEXT = "text"
_IMMEDIATE = "immediate"
_ADDRESS = "address"
_ADDRESS_POINTER = "address_pointer"
_COMMENT = "comment"

_NUMBER_KINDS: dict[str, str] = {
    _IMMEDIATE: TK_IMMEDIATE,
    _ADDRESS: TK_ADDRESS,
    _ADDRESS_POINTER: TK_ADDRESS_POINTER,
}


def _is_digit(c: str) -> bool:
    return c >= "0" and c <= "9"


def _is_alpha(c: str) -> bool:
    return (c >= "a" and c <= "z") or (c >= "A" and c <= "Z") or c == "_"


def _is_space(c: str) -> bool:
    return c == " " or c == "\t" or c == "\r" or c == "\n"


def tokenize(source: str) -> list[Token]:
    """Tokenize RAM assembly into an ordered token list.

    Raises TokenizeError on the first character that cannot start or
    continue a lexeme in the current state.
    """
    tokens: list[Token] = []
    text = source
    length = len(text)
    state = _START
    buffer = ""
    start = 0
    start_line = 1
    start_col = 1
    line = 1
    col = 1
    pos = 0

    while pos < length:
        c = text[pos]
        c_line = line
        c_col = col
        if c == "\n":
            line += 1
            col = 1
        else:
            col += 1

        if state == _COMMENT:
            if c == "\n":
                state = _START
            pos += 1
            continue

        comment = c == "/" and pos + 1 < length and text[pos + 1] == "/"
        terminator = comment or _is_space(c)

        if state == _START:
            if comment:
                state = _COMMENT
                pos += 2
                col += 1
                continue
            if _is_space(c):
                pos += 1
                continue
            start = pos
            start_line = c_line
            start_col = c_col
            if _is_alpha(c):
                buffer = c
                state = _TEXT
            elif _is_digit(c):
                buffer = c
                state = _ADDRESS
            elif c == "#":
                buffer = ""
                state = _IMMEDIATE
            elif c == "*":
                buffer = ""
                state = _ADDRESS_POINTER
            else:
                raise TokenizeError(
                    "Unexpected character '" + c + "'",
                    error_token(c, c_line, c_col),
                    E_UNEXPECTED_CHARACTER,
                )
            pos += 1
            continue

        if state == _TEXT:
            if _is_alpha(c) or _is_digit(c):
                buffer += c
                pos += 1
                continue
            if c == ":":
                raw = text[start : pos + 1]
                tokens.append(
                    Token(TK_LABEL, buffer.upper(), start_line, start_col, len(raw), raw)
                )
                state = _START
                pos += 1
                continue
            if terminator:
                raw = text[start:pos]
                word = buffer.upper()
                kind = TK_OPCODE if word in OPCODES else TK_LABEL_REFERENCE
                tokens.append(Token(kind, word, start_line, start_col, len(raw), raw))
                state = _START
                # Reprocess the terminator from the start state.
                line = c_line
                col = c_col
                continue
            raise TokenizeError(
                "Unexpected character '" + c + "'",
                error_token(c, c_line, c_col),
                E_UNEXPECTED_CHARACTER,
            )

        # Immediate, address or address pointer: digits until a terminator.
        if _is_digit(c):
            buffer += c
            pos += 1
            continue
        if terminator:
            raw = text[start:pos]
            if buffer == "":
                raise TokenizeError(
                    "Operand is missing its number",
                    error_token(raw, start_line, start_col),
                    E_MISSING_NUMBER,
                )
            number = int(buffer)
            if number > U32_MAX:
                raise TokenizeError(
                    "Number " + buffer + " does not fit in 32 bits",
                    error_token(raw, start_line, start_col),
                    E_NUMBER_OUT_OF_RANGE,
                )
            tokens.append(
                Token(_NUMBER_KINDS[state], number, start_line, start_col, len(raw), raw)
            )
            state = _START
            line = c_line
            col = c_col
            continue
        raise TokenizeError(
            "Unexpected character '" + c + "'",
            error_token(c, c_line, c_col),
            E_UNEXPECTED_CHARACTER,
        )

    # A comment may run to the end of input; a lexeme may not.
    if state != _START and state != _COMMENT:
        raise TokenizeError(
            "Unexpected state at end of file",
            error_token(text[start:], start_line, start_col),
            E_UNEXPECTED_END_OF_CODE,
        )
    return tokens
