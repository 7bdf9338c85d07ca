"""Shared token type and the error hierarchy for both pipelines."""

from __future__ import annotations


# ============================================================
# TOKEN
# ============================================================


class Token:
    """A lexeme with its decoded value and source span (1-indexed)."""

    def __init__(
        self,
        kind: str,
        value: str | int | None,
        line: int,
        col: int,
        length: int,
        raw: str,
    ):
        self.kind: str = kind
        self.value: str | int | None = value
        self.line: int = line
        self.col: int = col
        self.length: int = length
        self.raw: str = raw

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Token):
            return NotImplemented
        return (
            self.kind == other.kind
            and self.value == other.value
            and self.line == other.line
            and self.col == other.col
            and self.length == other.length
            and self.raw == other.raw
        )

    def __hash__(self) -> int:
        return hash((self.kind, self.value, self.line, self.col, self.length))

    def __repr__(self) -> str:
        return (
            "Token("
            + self.kind
            + ", "
            + repr(self.value)
            + ", "
            + str(self.line)
            + ", "
            + str(self.col)
            + ", "
            + str(self.length)
            + ")"
        )


TK_ERROR = "ERROR"


def error_token(raw: str, line: int, col: int) -> Token:
    """Token standing in for a lexeme that could not be recognised."""
    return Token(TK_ERROR, None, line, col, len(raw), raw)


# ============================================================
# ERRORS
# ============================================================

KIND_SYNTAX = "Syntax"
KIND_SEMANTIC = "Semantic"
KIND_TYPE = "Type"

# Numeric codes, stable across releases.
E_UNEXPECTED_CHARACTER = 1001
E_UNEXPECTED_END_OF_CODE = 1002
E_WRONG_STATEMENT_START = 1003
E_WRONG_STATEMENT_END = 1004
E_WRONG_BLOCK_START = 1005
E_WRONG_BLOCK_END = 1006
E_WRONG_TOKEN = 1007
E_DECLARATION_MISSING_IDENTIFIER = 1008
E_DECLARATION_NEEDING_INITIALIZATION = 1009
E_ASSIGNMENT_MISSING_OPERATOR = 1010
E_ARRAY_ACCESSOR_MISSING_CLOSING_BRACE = 1011
E_CLOSING_PARENTHESIS_MISSING = 1012
E_TYPE_NEEDED_FOR_INITIALIZATION = 1013
E_INVALID_EXPRESSION = 1014
E_IF_MISSING_OPENING_PARENTHESIS = 1015
E_WHILE_MISSING_OPENING_PARENTHESIS = 1016
E_CONDITION_MUST_RETURN_BOOLEAN = 1017
E_BREAK_MUST_BE_INSIDE_LOOP = 1018
E_CONTINUE_MUST_BE_INSIDE_LOOP = 1019
E_FUNCTION_NEEDING_IDENTIFIER = 1020
E_FUNCTION_WITH_RETURN_NEEDING_RETURN_TYPE = 1021
E_RETURN_MUST_BE_INSIDE_FUNCTION = 1022
E_FUNCTION_NOT_FOUND = 1023
E_FUNCTION_ARGUMENT_MISMATCH = 1024
E_IDENTIFIER_NOT_DECLARED = 1025
E_IDENTIFIER_ALREADY_DECLARED = 1026
E_FUNCTION_ALREADY_DECLARED = 1027
E_RECURSIVE_FUNCTION = 1028
E_NUMBER_OUT_OF_RANGE = 1029
E_MISSING_NUMBER = 1030
E_INVALID_ARGUMENT = 1031
E_MISSING_ARGUMENT = 1032
E_DUPLICATE_LABEL = 1033
E_LABEL_NOT_FOUND = 1034
E_REGISTER_OUT_OF_BOUNDS = 1035


class RamfailError(Exception):
    """Base for every error a pipeline stage reports.

    Carries the offending token so callers can point at the exact span.
    """

    kind: str = KIND_SYNTAX

    def __init__(self, msg: str, token: Token | None, code: int = 0, kind: str | None = None):
        self.msg: str = msg
        self.token: Token | None = token
        self.code: int = code
        if kind is not None:
            self.kind = kind
        if token is None:
            super().__init__(msg)
        else:
            super().__init__(msg + " at line " + str(token.line) + " col " + str(token.col))

    @property
    def line(self) -> int:
        return self.token.line if self.token is not None else 0

    @property
    def col(self) -> int:
        return self.token.col if self.token is not None else 0

    def describe(self) -> str:
        """Multi-line rendering used by the CLI."""
        head = self.kind + " Error"
        if self.code:
            head += " (E" + str(self.code) + ")"
        text = head + ": " + self.msg
        if self.token is not None:
            text += (
                "\n  at "
                + str(self.token.line)
                + ":"
                + str(self.token.col)
                + " ("
                + str(self.token.length)
                + ")"
            )
        return text


class TokenizeError(RamfailError):
    """Lexical error in either language."""


class ParseError(RamfailError):
    """Syntax error in either language."""


class LabelError(RamfailError):
    """Reference to a label that is never defined."""

    kind = KIND_SEMANTIC


class BoundsError(RamfailError):
    """Register operand outside the configured register bank."""

    kind = KIND_SEMANTIC


class ResolveError(RamfailError):
    """Function call that cannot be bound to a declaration."""

    kind = KIND_SEMANTIC


class TypeCheckError(RamfailError):
    """Static type violation."""

    kind = KIND_TYPE


class MachineFault(Exception):
    """Fatal interpreter state that a checked program can never reach."""
