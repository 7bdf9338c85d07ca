"""FAIL tokenizer — lexes source into a flat token list."""

from __future__ import annotations

from ..diagnostics import (
    E_NUMBER_OUT_OF_RANGE,
    E_UNEXPECTED_CHARACTER,
    Token,
    TokenizeError,
    error_token,
)


# Token kind constants
TK_NUMBER = "NUMBER"
TK_IDENT = "IDENT"
TK_KEYWORD = "KEYWORD"
TK_OPERATOR = "OPERATOR"  # binary operators
TK_ASSIGN = "ASSIGN"  # =
TK_SELF_ASSIGN = "SELF_ASSIGN"  # += -= *= /=
TK_INCREMENT = "INCREMENT"  # ++ --
TK_ARROW = "ARROW"  # ->
TK_PUNCT = "PUNCT"  # ( ) { } [ ] ; ,
TK_EOF = "EOF"

KEYWORDS: set[str] = {
    "var",
    "int",
    "bool",
    "if",
    "else",
    "while",
    "break",
    "continue",
    "new",
    "fn",
    "return",
}

TYPE_KEYWORDS: set[str] = {"var", "int", "bool"}

# Two-character lexemes take precedence over their one-character prefixes.
MULTI_OPS: dict[str, str] = {
    "->": TK_ARROW,
    "==": TK_OPERATOR,
    "!=": TK_OPERATOR,
    ">=": TK_OPERATOR,
    "<=": TK_OPERATOR,
    "+=": TK_SELF_ASSIGN,
    "-=": TK_SELF_ASSIGN,
    "*=": TK_SELF_ASSIGN,
    "/=": TK_SELF_ASSIGN,
    "++": TK_INCREMENT,
    "--": TK_INCREMENT,
}

SINGLE_OPS: dict[str, str] = {
    "+": TK_OPERATOR,
    "-": TK_OPERATOR,
    "*": TK_OPERATOR,
    "/": TK_OPERATOR,
    ">": TK_OPERATOR,
    "<": TK_OPERATOR,
    "=": TK_ASSIGN,
    "(": TK_PUNCT,
    ")": TK_PUNCT,
    "{": TK_PUNCT,
    "}": TK_PUNCT,
    "[": TK_PUNCT,
    "]": TK_PUNCT,
    ";": TK_PUNCT,
    ",": TK_PUNCT,
}

U32_MAX = 0xFFFFFFFF

# Tokenizer states
_START = "start"
_TEXT = "text"
_NUMBER = "number"
_COMMENT = "comment"


def _is_digit(c: str) -> bool:
    return c >= "0" and c <= "9"


def _is_alpha(c: str) -> bool:
    return (c >= "a" and c <= "z") or (c >= "A" and c <= "Z") or c == "_"


def _word_token(word: str, line: int, col: int) -> Token:
    kind = TK_KEYWORD if word in KEYWORDS else TK_IDENT
    return Token(kind, word, line, col, len(word), word)


def _number_token(raw: str, line: int, col: int) -> Token:
    value = int(raw)
    if value > U32_MAX:
        raise TokenizeError(
            "Number " + raw + " does not fit in 32 bits",
            error_token(raw, line, col),
            E_NUMBER_OUT_OF_RANGE,
        )
    return Token(TK_NUMBER, value, line, col, len(raw), raw)


def tokenize(source: str) -> list[Token]:
    """Tokenize FAIL source into an ordered token list ending with TK_EOF."""
    tokens: list[Token] = []
    text = source
    length = len(text)
    state = _START
    start = 0
    start_line = 1
    start_col = 1
    line = 1
    col = 1
    pos = 0

    while pos < length:
        c = text[pos]

        if state == _COMMENT:
            if c == "\n":
                state = _START
                line += 1
                col = 1
            else:
                col += 1
            pos += 1
            continue

        if state == _TEXT:
            if _is_alpha(c) or _is_digit(c):
                pos += 1
                col += 1
                continue
            tokens.append(_word_token(text[start:pos], start_line, start_col))
            state = _START
            continue

        if state == _NUMBER:
            if _is_digit(c):
                pos += 1
                col += 1
                continue
            tokens.append(_number_token(text[start:pos], start_line, start_col))
            state = _START
            continue

        # Start state
        if c == "\n":
            pos += 1
            line += 1
            col = 1
            continue
        if c == " " or c == "\t" or c == "\r":
            pos += 1
            col += 1
            continue
        if c == "/" and pos + 1 < length and text[pos + 1] == "/":
            state = _COMMENT
            pos += 2
            col += 2
            continue

        start = pos
        start_line = line
        start_col = col

        if _is_alpha(c):
            state = _TEXT
            pos += 1
            col += 1
            continue
        if _is_digit(c):
            state = _NUMBER
            pos += 1
            col += 1
            continue

        pair = text[pos : pos + 2]
        if pair in MULTI_OPS:
            tokens.append(Token(MULTI_OPS[pair], pair, line, col, 2, pair))
            pos += 2
            col += 2
            continue
        if c in SINGLE_OPS:
            tokens.append(Token(SINGLE_OPS[c], c, line, col, 1, c))
            pos += 1
            col += 1
            continue

        raise TokenizeError(
            "Unexpected character `" + c + "`",
            error_token(c, line, col),
            E_UNEXPECTED_CHARACTER,
        )

    # A word or number may run up to the end of input.
    if state == _TEXT:
        tokens.append(_word_token(text[start:], start_line, start_col))
    elif state == _NUMBER:
        tokens.append(_number_token(text[start:], start_line, start_col))
    last_newline = source.rfind("\n")
    tokens.append(
        Token(TK_EOF, None, source.count("\n") + 1, len(source) - last_newline, 0, "")
    )
    return tokens
