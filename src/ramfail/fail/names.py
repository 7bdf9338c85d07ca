"""Identifier resolver — binds every call site to its function declaration."""

from __future__ import annotations

from ..diagnostics import (
    E_FUNCTION_ARGUMENT_MISMATCH,
    E_FUNCTION_NOT_FOUND,
    E_RECURSIVE_FUNCTION,
    ResolveError,
)
from .ast import FunctionCall, FunctionDeclaration, Scope, Statement, walk
from .parse import declares_function


def _calls_in(statements: list[Statement]) -> list[FunctionCall]:
    """Call sites in `statements`, not descending into nested function bodies."""
    calls: list[FunctionCall] = []
    stack: list[Statement] = list(reversed(statements))
    while stack:
        node = stack.pop()
        if isinstance(node, FunctionDeclaration):
            continue
        if isinstance(node, FunctionCall):
            calls.append(node)
        stack.extend(reversed(node.children()))
    return calls


class Resolver:
    def __init__(self) -> None:
        # id(FunctionDeclaration) -> 0 visiting, 1 done
        self.marks: dict[int, int] = {}

    def resolve_call(self, call: FunctionCall) -> None:
        # The argument scope shares the scope the call appears in.
        found = call.arguments.search(declares_function(call.name))
        if found is None:
            raise ResolveError(
                "Function '" + call.name + "' not found", call.token, E_FUNCTION_NOT_FOUND
            )
        assert isinstance(found, FunctionDeclaration)
        expected = len(found.parameters)
        given = len(call.arguments.statements)
        if expected != given:
            raise ResolveError(
                "Function '"
                + call.name
                + "' has mismatched arguments: expected "
                + str(expected)
                + ", got "
                + str(given),
                call.token,
                E_FUNCTION_ARGUMENT_MISMATCH,
            )
        call.resolved_function = found

    def check_acyclic(self, fn: FunctionDeclaration) -> None:
        """Depth-first over resolved calls; a back edge means recursion."""
        key = id(fn)
        mark = self.marks.get(key)
        if mark == 1:
            return
        self.marks[key] = 0
        for call in _calls_in(fn.body.scope.statements):
            callee = call.resolved_function
            if callee is None:
                continue
            if self.marks.get(id(callee)) == 0:
                raise ResolveError(
                    "Function '" + callee.name + "' is called recursively and cannot be inlined",
                    call.token,
                    E_RECURSIVE_FUNCTION,
                )
            self.check_acyclic(callee)
        self.marks[key] = 1


def resolve_identifiers(scope: Scope) -> Scope:
    """Attach the declaration to every FunctionCall under `scope`.

    Raises ResolveError for unknown functions, argument count mismatches and
    call cycles. Returns `scope`.
    """
    resolver = Resolver()
    functions: list[FunctionDeclaration] = []
    for node in walk(scope):
        if isinstance(node, FunctionCall):
            resolver.resolve_call(node)
        elif isinstance(node, FunctionDeclaration):
            functions.append(node)
    for fn in functions:
        resolver.check_acyclic(fn)
    return scope
