"""RAM parser — turns the token stream into a Program."""

from __future__ import annotations

from ..diagnostics import (
    E_DUPLICATE_LABEL,
    E_INVALID_ARGUMENT,
    E_MISSING_ARGUMENT,
    E_WRONG_TOKEN,
    ParseError,
    Token,
)
from .program import (
    ARITHMETIC_OPS,
    JUMP_OPS,
    OP_END,
    OP_STORE,
    Address,
    AddressPointer,
    Argument,
    Immediate,
    Instruction,
    Label,
    LabelReference,
    Program,
)
from .tokens import (
    TK_ADDRESS,
    TK_ADDRESS_POINTER,
    TK_IMMEDIATE,
    TK_LABEL,
    TK_LABEL_REFERENCE,
    TK_OPCODE,
)


class Parser:
    """Consumes tokens front to back; stops at the first error."""

    def __init__(self, tokens: list[Token]):
        self.tokens: list[Token] = tokens
        self.pos: int = 0

    def at_end(self) -> bool:
        return self.pos >= len(self.tokens)

    def advance(self) -> Token:
        tok = self.tokens[self.pos]
        self.pos += 1
        return tok

    def parse_program(self) -> Program:
        program = Program()
        while not self.at_end():
            tok = self.advance()
            if tok.kind == TK_LABEL:
                name = str(tok.value)
                if program.find_label(name) is not None:
                    raise ParseError(
                        "Label '" + name + "' is already defined", tok, E_DUPLICATE_LABEL
                    )
                program.labels.append(Label(name, len(program.instructions), tok))
                continue
            program.instructions.append(self.parse_instruction(tok))
        return program

    def parse_instruction(self, tok: Token) -> Instruction:
        if tok.kind != TK_OPCODE:
            raise ParseError("Unexpected token type: " + tok.kind, tok, E_WRONG_TOKEN)
        opcode = str(tok.value)
        if opcode == OP_END:
            return Instruction(opcode, None, tok)
        if self.at_end():
            raise ParseError(
                "Missing argument for opcode " + opcode, tok, E_MISSING_ARGUMENT
            )
        arg_tok = self.advance()
        argument = self.parse_argument(arg_tok)
        value = argument.value
        if opcode in JUMP_OPS:
            valid = isinstance(value, LabelReference)
        elif opcode == OP_STORE:
            valid = isinstance(value, (Address, AddressPointer))
        elif opcode in ARITHMETIC_OPS:
            valid = not isinstance(value, LabelReference)
        else:
            raise ParseError("Unknown opcode: " + opcode, tok, E_WRONG_TOKEN)
        if not valid:
            raise ParseError(
                "Invalid argument type for opcode " + opcode + ": " + str(value),
                arg_tok,
                E_INVALID_ARGUMENT,
            )
        return Instruction(opcode, argument, tok)

    def parse_argument(self, tok: Token) -> Argument:
        if tok.kind == TK_IMMEDIATE:
            return Argument(Immediate(int(tok.value)), tok)
        if tok.kind == TK_ADDRESS:
            return Argument(Address(int(tok.value)), tok)
        if tok.kind == TK_ADDRESS_POINTER:
            return Argument(AddressPointer(int(tok.value)), tok)
        if tok.kind == TK_LABEL_REFERENCE:
            return Argument(LabelReference(str(tok.value)), tok)
        raise ParseError("Unexpected token type: " + tok.kind, tok, E_WRONG_TOKEN)


def parse(tokens: list[Token]) -> Program:
    """Parse a RAM token list into an unresolved Program."""
    return Parser(tokens).parse_program()
