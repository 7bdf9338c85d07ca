"""FAIL parser — recursive descent for statements, precedence climbing for expressions."""

from __future__ import annotations

from typing import Callable

from ..diagnostics import (
    E_ARRAY_ACCESSOR_MISSING_CLOSING_BRACE,
    E_ASSIGNMENT_MISSING_OPERATOR,
    E_BREAK_MUST_BE_INSIDE_LOOP,
    E_CLOSING_PARENTHESIS_MISSING,
    E_CONDITION_MUST_RETURN_BOOLEAN,
    E_CONTINUE_MUST_BE_INSIDE_LOOP,
    E_DECLARATION_MISSING_IDENTIFIER,
    E_DECLARATION_NEEDING_INITIALIZATION,
    E_FUNCTION_ALREADY_DECLARED,
    E_FUNCTION_NEEDING_IDENTIFIER,
    E_FUNCTION_WITH_RETURN_NEEDING_RETURN_TYPE,
    E_IDENTIFIER_ALREADY_DECLARED,
    E_IDENTIFIER_NOT_DECLARED,
    E_IF_MISSING_OPENING_PARENTHESIS,
    E_INVALID_EXPRESSION,
    E_RETURN_MUST_BE_INSIDE_FUNCTION,
    E_TYPE_NEEDED_FOR_INITIALIZATION,
    E_WHILE_MISSING_OPENING_PARENTHESIS,
    E_WRONG_BLOCK_END,
    E_WRONG_BLOCK_START,
    E_WRONG_STATEMENT_END,
    E_WRONG_STATEMENT_START,
    E_WRONG_TOKEN,
    KIND_SEMANTIC,
    ParseError,
    Token,
    TypeCheckError,
)
from .ast import (
    INCREMENT_OPERATORS,
    LEVEL_TERM,
    LEVEL_TEST,
    OPERATOR_LEVELS,
    SELF_ASSIGN_OPERATORS,
    ArgumentDefinition,
    Array,
    ArrayAccessor,
    Assignment,
    BinaryOperation,
    Body,
    Break,
    Continue,
    ElementType,
    Expression,
    FunctionCall,
    FunctionDeclaration,
    Identifier,
    If,
    Number,
    Return,
    Scope,
    Statement,
    TypeInitialization,
    While,
    is_comparison,
)
from .tokens import (
    TK_ARROW,
    TK_ASSIGN,
    TK_EOF,
    TK_IDENT,
    TK_INCREMENT,
    TK_KEYWORD,
    TK_NUMBER,
    TK_OPERATOR,
    TK_SELF_ASSIGN,
    TYPE_KEYWORDS,
)

SCALAR_TYPES: set[str] = {"int", "bool"}


def _declares(name: str) -> Callable[[Statement], bool]:
    def predicate(statement: Statement) -> bool:
        if isinstance(statement, Assignment) and statement.is_initial:
            return isinstance(statement.target, Identifier) and statement.target.name == name
        if isinstance(statement, ArgumentDefinition):
            return statement.identifier.name == name
        return False

    return predicate


def declares_function(name: str) -> Callable[[Statement], bool]:
    def predicate(statement: Statement) -> bool:
        return isinstance(statement, FunctionDeclaration) and statement.name == name

    return predicate


def _declared_identifier(statement: Statement) -> Identifier:
    if isinstance(statement, ArgumentDefinition):
        return statement.identifier
    assert isinstance(statement, Assignment) and isinstance(statement.target, Identifier)
    return statement.target


class Parser:
    """Recursive descent parser for FAIL.

    `in_loop` and `in_function` are threaded through statement parsing so
    break/continue/return are checked where they appear.
    """

    def __init__(self, tokens: list[Token]):
        self.tokens: list[Token] = tokens
        self.pos: int = 0

    # ── Helpers ──────────────────────────────────────────────

    def current(self) -> Token:
        return self.tokens[self.pos]

    def advance(self) -> Token:
        tok = self.tokens[self.pos]
        if tok.kind != TK_EOF:
            self.pos += 1
        return tok

    def at(self, value: str) -> bool:
        tok = self.current()
        return tok.kind != TK_NUMBER and tok.value == value

    def at_kind(self, kind: str) -> bool:
        return self.current().kind == kind

    def error(self, msg: str, code: int, kind: str | None = None) -> ParseError:
        return ParseError(msg, self.current(), code, kind)

    def _found(self) -> str:
        tok = self.current()
        if tok.kind == TK_EOF:
            return "end of code"
        return "'" + tok.raw + "'"

    def expect(self, value: str, code: int = E_WRONG_TOKEN) -> Token:
        if not self.at(value):
            raise self.error("Expected '" + value + "', found " + self._found(), code)
        return self.advance()

    def expect_end(self) -> Token:
        if not self.at(";"):
            raise self.error(
                "Expected ';' at end of statement, found " + self._found(),
                E_WRONG_STATEMENT_END,
            )
        return self.advance()

    def reference(self, scope: Scope, tok: Token) -> Identifier:
        name = str(tok.value)
        found = scope.search(_declares(name))
        if found is None:
            raise ParseError(
                "Identifier '" + name + "' is not declared",
                tok,
                E_IDENTIFIER_NOT_DECLARED,
                KIND_SEMANTIC,
            )
        return Identifier(tok, name, declaration=_declared_identifier(found))

    # ── Top Level ────────────────────────────────────────────

    def parse_program(self) -> Scope:
        scope = Scope()
        while not self.at_kind(TK_EOF):
            scope.statements.append(self.parse_statement(scope, False, False))
        return scope

    def parse_statement(self, scope: Scope, in_loop: bool, in_function: bool) -> Statement:
        tok = self.current()
        if tok.kind == TK_KEYWORD:
            if tok.value in TYPE_KEYWORDS:
                return self.parse_declaration(scope)
            if tok.value == "if":
                return self.parse_if(scope, in_loop, in_function)
            if tok.value == "while":
                return self.parse_while(scope, in_function)
            if tok.value == "break":
                if not in_loop:
                    raise self.error("Break statement must be inside a loop", E_BREAK_MUST_BE_INSIDE_LOOP)
                self.advance()
                self.expect_end()
                return Break(tok)
            if tok.value == "continue":
                if not in_loop:
                    raise self.error(
                        "Continue statement must be inside a loop", E_CONTINUE_MUST_BE_INSIDE_LOOP
                    )
                self.advance()
                self.expect_end()
                return Continue(tok)
            if tok.value == "fn":
                return self.parse_function(scope)
            if tok.value == "return":
                return self.parse_return(scope, in_function)
        if tok.kind == TK_IDENT:
            return self.parse_identifier_statement(scope)
        if self.at("{"):
            return self.parse_block(scope, in_loop, in_function)
        raise self.error(
            "Unexpected " + self._found() + " at start of statement", E_WRONG_STATEMENT_START
        )

    # ── Declarations and Assignments ─────────────────────────

    def parse_declaration(self, scope: Scope) -> Assignment:
        """Decl = ('var' | 'int' | 'bool') IDENT '=' Expr ';'"""
        type_tok = self.advance()
        declared: ElementType | None = None
        if type_tok.value != "var":
            declared = ElementType(type_tok, str(type_tok.value))
        if not self.at_kind(TK_IDENT):
            raise self.error(
                "Declaration is missing an identifier",
                E_DECLARATION_MISSING_IDENTIFIER,
                KIND_SEMANTIC,
            )
        name_tok = self.advance()
        name = str(name_tok.value)
        if scope.search_local(_declares(name)) is not None:
            raise ParseError(
                "Identifier '" + name + "' is already declared",
                name_tok,
                E_IDENTIFIER_ALREADY_DECLARED,
                KIND_SEMANTIC,
            )
        if not self.at_kind(TK_ASSIGN):
            raise self.error(
                "Declaration needs initialization",
                E_DECLARATION_NEEDING_INITIALIZATION,
                KIND_SEMANTIC,
            )
        self.advance()
        expr = self.parse_expression(scope)
        if isinstance(expr, TypeInitialization):
            declared = expr.type
        self.expect_end()
        return Assignment(type_tok, Identifier(name_tok, name, declared), expr, True)

    def parse_identifier_statement(self, scope: Scope) -> Statement:
        """Assignment, self-assignment, increment, element write or call."""
        name_tok = self.advance()
        if self.at("("):
            call = self.parse_call(scope, name_tok)
            self.expect_end()
            return call
        target: Identifier | ArrayAccessor = self.reference(scope, name_tok)
        if self.at("["):
            target = self.parse_accessor(scope, target)
        tok = self.current()
        if tok.kind == TK_ASSIGN:
            self.advance()
            expr = self.parse_expression(scope)
        elif tok.kind == TK_SELF_ASSIGN:
            self.advance()
            right = self.parse_expression(scope)
            expr = BinaryOperation(tok, SELF_ASSIGN_OPERATORS[str(tok.value)], target, right)
        elif tok.kind == TK_INCREMENT:
            self.advance()
            expr = BinaryOperation(tok, INCREMENT_OPERATORS[str(tok.value)], target, Number(tok, 1))
        else:
            raise self.error(
                "Incomplete assignment, missing assignment operator",
                E_ASSIGNMENT_MISSING_OPERATOR,
            )
        self.expect_end()
        return Assignment(name_tok, target, expr)

    # ── Control Flow ─────────────────────────────────────────

    def parse_condition(self, scope: Scope) -> Expression:
        cond = self.parse_expression(scope)
        if not (isinstance(cond, BinaryOperation) and is_comparison(cond.operator)):
            raise TypeCheckError(
                "Condition must return a boolean value",
                cond.token,
                E_CONDITION_MUST_RETURN_BOOLEAN,
            )
        self.expect(")", E_CLOSING_PARENTHESIS_MISSING)
        return cond

    def parse_if(self, scope: Scope, in_loop: bool, in_function: bool) -> If:
        """If = 'if' '(' Cond ')' Body ( 'else' Body )?"""
        if_tok = self.advance()
        if not self.at("("):
            raise self.error(
                "If statement is missing opening parenthesis for its condition",
                E_IF_MISSING_OPENING_PARENTHESIS,
            )
        self.advance()
        cond = self.parse_condition(scope)
        body = self.parse_body(scope, in_loop, in_function)
        else_body: Body | None = None
        if self.at("else"):
            self.advance()
            # `else if` falls out of the single-statement body form.
            else_body = self.parse_body(scope, in_loop, in_function)
        return If(if_tok, cond, body, else_body)

    def parse_while(self, scope: Scope, in_function: bool) -> While:
        """While = 'while' '(' Cond ')' Body"""
        while_tok = self.advance()
        if not self.at("("):
            raise self.error(
                "While statement is missing opening parenthesis for its condition",
                E_WHILE_MISSING_OPENING_PARENTHESIS,
            )
        self.advance()
        cond = self.parse_condition(scope)
        body = self.parse_body(scope, True, in_function)
        return While(while_tok, cond, body)

    def parse_body(self, scope: Scope, in_loop: bool, in_function: bool) -> Body:
        """Body = Block | Statement"""
        if self.at("{"):
            return self.parse_block(scope, in_loop, in_function)
        tok = self.current()
        child = Scope([], [scope])
        child.statements.append(self.parse_statement(child, in_loop, in_function))
        return Body(tok, child)

    def parse_block(self, scope: Scope, in_loop: bool, in_function: bool) -> Body:
        """Block = '{' Statement* '}'"""
        open_tok = self.advance()
        child = Scope([], [scope])
        while not self.at("}"):
            if self.at_kind(TK_EOF):
                raise self.error("Expected '}' at end of block, found end of code", E_WRONG_BLOCK_END)
            child.statements.append(self.parse_statement(child, in_loop, in_function))
        self.advance()
        return Body(open_tok, child)

    # ── Functions ────────────────────────────────────────────

    def parse_function(self, scope: Scope) -> FunctionDeclaration:
        """Fn = 'fn' IDENT '(' Params? ')' ( '->' Type )? Block"""
        fn_tok = self.advance()
        if not self.at_kind(TK_IDENT):
            raise self.error(
                "Function declaration is missing an identifier",
                E_FUNCTION_NEEDING_IDENTIFIER,
                KIND_SEMANTIC,
            )
        name_tok = self.advance()
        name = str(name_tok.value)
        if scope.search_local(declares_function(name)) is not None:
            raise ParseError(
                "Function '" + name + "' is already declared",
                name_tok,
                E_FUNCTION_ALREADY_DECLARED,
                KIND_SEMANTIC,
            )
        self.expect("(")
        arguments = Scope([], [scope])
        if not self.at(")"):
            arguments.statements.append(self.parse_parameter(arguments))
            while self.at(","):
                self.advance()
                arguments.statements.append(self.parse_parameter(arguments))
        self.expect(")", E_CLOSING_PARENTHESIS_MISSING)
        return_type: ElementType | None = None
        if self.at_kind(TK_ARROW):
            self.advance()
            type_tok = self.current()
            if type_tok.kind != TK_KEYWORD or type_tok.value not in SCALAR_TYPES:
                raise self.error(
                    "Function declaration with '->' needs a return type",
                    E_FUNCTION_WITH_RETURN_NEEDING_RETURN_TYPE,
                    KIND_SEMANTIC,
                )
            self.advance()
            return_type = ElementType(type_tok, str(type_tok.value))
        if not self.at("{"):
            raise self.error(
                "Expected '{' at start of function body, found " + self._found(),
                E_WRONG_BLOCK_START,
            )
        body = self.parse_block(arguments, False, True)
        return FunctionDeclaration(fn_tok, Identifier(name_tok, name), arguments, body, return_type)

    def parse_parameter(self, arguments: Scope) -> ArgumentDefinition:
        """Param = ('var' | 'int' | 'bool') IDENT"""
        type_tok = self.current()
        if type_tok.kind != TK_KEYWORD or type_tok.value not in TYPE_KEYWORDS:
            raise self.error("Expected parameter type, found " + self._found(), E_WRONG_TOKEN)
        self.advance()
        declared: ElementType | None = None
        if type_tok.value != "var":
            declared = ElementType(type_tok, str(type_tok.value))
        if not self.at_kind(TK_IDENT):
            raise self.error(
                "Declaration is missing an identifier",
                E_DECLARATION_MISSING_IDENTIFIER,
                KIND_SEMANTIC,
            )
        name_tok = self.advance()
        name = str(name_tok.value)
        if arguments.search_local(_declares(name)) is not None:
            raise ParseError(
                "Identifier '" + name + "' is already declared",
                name_tok,
                E_IDENTIFIER_ALREADY_DECLARED,
                KIND_SEMANTIC,
            )
        return ArgumentDefinition(type_tok, Identifier(name_tok, name, declared), declared)

    def parse_return(self, scope: Scope, in_function: bool) -> Return:
        if not in_function:
            raise self.error("Return statement must be inside a function", E_RETURN_MUST_BE_INSIDE_FUNCTION)
        return_tok = self.advance()
        expr = self.parse_expression(scope)
        self.expect_end()
        return Return(return_tok, expr)

    # ── Expressions ──────────────────────────────────────────

    def parse_expression(self, scope: Scope, level: int = LEVEL_TEST) -> Expression:
        """Level(n) = Level(n-1) ( op(n) Level(n-1) )*, left-associative."""
        if level == LEVEL_TERM:
            return self.parse_term(scope)
        left = self.parse_expression(scope, level - 1)
        while self.at_kind(TK_OPERATOR) and OPERATOR_LEVELS[str(self.current().value)] == level:
            op = str(self.advance().value)
            right = self.parse_expression(scope, level - 1)
            left = BinaryOperation(left.token, op, left, right)
        return left

    def parse_term(self, scope: Scope) -> Expression:
        """Term = NUMBER | IDENT ( Call | Accessor )? | '(' Expr ')' | New"""
        tok = self.current()
        if tok.kind == TK_NUMBER:
            self.advance()
            return Number(tok, int(tok.value))
        if tok.kind == TK_IDENT:
            self.advance()
            if self.at("("):
                return self.parse_call(scope, tok)
            ident = self.reference(scope, tok)
            if self.at("["):
                return self.parse_accessor(scope, ident)
            return ident
        if self.at("("):
            self.advance()
            expr = self.parse_expression(scope)
            self.expect(")", E_CLOSING_PARENTHESIS_MISSING)
            return expr
        if tok.kind == TK_KEYWORD and tok.value == "new":
            return self.parse_new()
        raise self.error("Invalid expression at " + self._found(), E_INVALID_EXPRESSION)

    def parse_new(self) -> TypeInitialization:
        """New = 'new' ('int' | 'bool') ( '[' NUMBER ']' )?"""
        new_tok = self.advance()
        type_tok = self.current()
        if type_tok.kind != TK_KEYWORD or type_tok.value not in SCALAR_TYPES:
            raise self.error(
                "Type needed for initialization",
                E_TYPE_NEEDED_FOR_INITIALIZATION,
                KIND_SEMANTIC,
            )
        self.advance()
        element = ElementType(type_tok, str(type_tok.value))
        if not self.at("["):
            return TypeInitialization(new_tok, element)
        open_tok = self.advance()
        if not self.at_kind(TK_NUMBER):
            raise self.error("Array size must be a number literal", E_INVALID_EXPRESSION)
        size = int(self.advance().value)
        self.expect("]", E_ARRAY_ACCESSOR_MISSING_CLOSING_BRACE)
        return TypeInitialization(new_tok, ElementType(open_tok, Array(open_tok, element, size)))

    def parse_accessor(self, scope: Scope, ident: Identifier) -> ArrayAccessor:
        self.advance()
        index = self.parse_expression(scope)
        self.expect("]", E_ARRAY_ACCESSOR_MISSING_CLOSING_BRACE)
        return ArrayAccessor(ident.token, ident, index)

    def parse_call(self, scope: Scope, name_tok: Token) -> FunctionCall:
        """Call = IDENT '(' ( Expr ( ',' Expr )* )? ')'"""
        self.advance()
        arguments = Scope([], [scope])
        if not self.at(")"):
            arguments.statements.append(self.parse_expression(scope))
            while self.at(","):
                self.advance()
                arguments.statements.append(self.parse_expression(scope))
        self.expect(")", E_CLOSING_PARENTHESIS_MISSING)
        name = str(name_tok.value)
        return FunctionCall(name_tok, Identifier(name_tok, name), arguments)


def parse(tokens: list[Token]) -> Scope:
    """Parse a FAIL token list into the top-level Scope."""
    return Parser(tokens).parse_program()
