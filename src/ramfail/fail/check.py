"""FAIL type checker — back-fills inferred types on declarations and functions.

Shallow: a declaration without a fixed type takes the type of
its initializer, and a function without `-> type` takes the type of its
first return expression. Mismatches are not rejected here; the only type
rule enforced anywhere is that if/while conditions are comparisons, which
the parser checks.
"""

from __future__ import annotations

from .ast import (
    ArrayAccessor,
    Assignment,
    BinaryOperation,
    ElementType,
    FunctionCall,
    FunctionDeclaration,
    Identifier,
    Number,
    Return,
    Scope,
    Statement,
    TypeInitialization,
    is_comparison,
    walk,
)


def infer(expr: Statement) -> ElementType | None:
    """Type of `expr`, or None when nothing is known about it."""
    if isinstance(expr, Number):
        return ElementType(expr.token, "int")
    if isinstance(expr, Identifier):
        return expr.declared.type
    if isinstance(expr, BinaryOperation):
        return ElementType(expr.token, "bool" if is_comparison(expr.operator) else "int")
    if isinstance(expr, ArrayAccessor):
        array_type = expr.identifier.declared.type
        if array_type is not None and array_type.is_array:
            return array_type.name.element_type
        return ElementType(expr.token, "int")
    if isinstance(expr, TypeInitialization):
        return expr.type
    if isinstance(expr, FunctionCall):
        if expr.resolved_function is None:
            return None
        return expr.resolved_function.return_type
    return None


class Checker:
    def check_scope(self, scope: Scope, function: FunctionDeclaration | None) -> None:
        for statement in scope.statements:
            self.check_statement(statement, function)

    def check_statement(self, statement: Statement, function: FunctionDeclaration | None) -> None:
        if isinstance(statement, FunctionDeclaration):
            self.check_scope(statement.body.scope, statement)
            return
        if isinstance(statement, Assignment):
            target = statement.target
            if statement.is_initial and isinstance(target, Identifier) and target.type is None:
                target.type = infer(statement.expr)
        elif isinstance(statement, Return) and function is not None:
            if function.return_type is None:
                function.return_type = infer(statement.expr)
        for child in statement.children():
            self.check_statement(child, function)


def check_types(scope: Scope) -> Scope:
    """Infer declaration and return types in place. Returns `scope`."""
    checker = Checker()
    # Functions first, so calls ahead of a declaration see its return type.
    for node in walk(scope):
        if isinstance(node, FunctionDeclaration):
            checker.check_scope(node.body.scope, node)
    checker.check_scope(scope, None)
    return scope
