"""FAIL AST — parse-time node definitions and lexical scopes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Iterator, Union

from ..diagnostics import Token


# ============================================================
# OPERATORS
# ============================================================

# Precedence classes, tightest first.
LEVEL_TERM = 1
LEVEL_DOT = 2
LEVEL_STROKE = 3
LEVEL_TEST = 4

OPERATOR_LEVELS: dict[str, int] = {
    "*": LEVEL_DOT,
    "/": LEVEL_DOT,
    "+": LEVEL_STROKE,
    "-": LEVEL_STROKE,
    "==": LEVEL_TEST,
    "!=": LEVEL_TEST,
    ">": LEVEL_TEST,
    "<": LEVEL_TEST,
    ">=": LEVEL_TEST,
    "<=": LEVEL_TEST,
}

# a op= b  and  a++ / a--  desugar to  a = a op b
SELF_ASSIGN_OPERATORS: dict[str, str] = {"+=": "+", "-=": "-", "*=": "*", "/=": "/"}
INCREMENT_OPERATORS: dict[str, str] = {"++": "+", "--": "-"}


def is_comparison(operator: str) -> bool:
    return OPERATOR_LEVELS.get(operator) == LEVEL_TEST


# ============================================================
# SCOPE
# ============================================================


@dataclass
class Scope:
    """A flat statement list plus the parent scopes it may search.

    Parents are borrowed for lookups only; a scope never adds to them.
    """

    statements: list[Statement] = field(default_factory=list)
    shared_scopes: list[Scope] = field(default_factory=list, repr=False, compare=False)

    def search(self, predicate: Callable[[Statement], bool]) -> Statement | None:
        """Local statements first, then each shared scope depth-first."""
        for statement in self.statements:
            if predicate(statement):
                return statement
        for parent in self.shared_scopes:
            found = parent.search(predicate)
            if found is not None:
                return found
        return None

    def search_local(self, predicate: Callable[[Statement], bool]) -> Statement | None:
        for statement in self.statements:
            if predicate(statement):
                return statement
        return None

    def declarations(self) -> Iterator[Assignment]:
        """Initial assignments made directly in this scope."""
        for statement in self.statements:
            if isinstance(statement, Assignment) and statement.is_initial:
                yield statement

    def __str__(self) -> str:
        return "\n".join(str(s) for s in self.statements)


# ============================================================
# STATEMENTS
# ============================================================


@dataclass
class Statement:
    """Base for every node; `token` is where the node starts in source."""

    token: Token = field(repr=False, compare=False)

    def children(self) -> list[Statement]:
        return []


@dataclass
class Array(Statement):
    """Fixed-size register-backed array: element_type[size]."""

    element_type: ElementType
    size: int

    def __str__(self) -> str:
        return str(self.element_type) + "[" + str(self.size) + "]"


@dataclass
class ElementType(Statement):
    """A scalar type name ("int", "bool") or an Array."""

    name: str | Array

    @property
    def is_array(self) -> bool:
        return isinstance(self.name, Array)

    def __str__(self) -> str:
        return str(self.name)


@dataclass
class Identifier(Statement):
    """A variable name. `declaration` links a reference to its declaring node."""

    name: str
    type: ElementType | None = None
    declaration: Identifier | None = field(default=None, repr=False, compare=False)

    @property
    def declared(self) -> Identifier:
        return self.declaration if self.declaration is not None else self

    def __str__(self) -> str:
        return self.name


@dataclass
class Number(Statement):
    value: int

    def __str__(self) -> str:
        return str(self.value)


@dataclass
class TypeInitialization(Statement):
    """new int / new int[5]."""

    type: ElementType

    def __str__(self) -> str:
        return "new " + str(self.type)


@dataclass
class ArrayAccessor(Statement):
    identifier: Identifier
    index: Expression

    def children(self) -> list[Statement]:
        return [self.identifier, self.index]

    def __str__(self) -> str:
        return str(self.identifier) + "[" + str(self.index) + "]"


@dataclass
class BinaryOperation(Statement):
    operator: str
    left: Expression
    right: Expression

    @property
    def level(self) -> int:
        return OPERATOR_LEVELS[self.operator]

    def children(self) -> list[Statement]:
        return [self.left, self.right]

    def __str__(self) -> str:
        return _operand_str(self.left, self.level) + " " + self.operator + " " + _operand_str(self.right, self.level - 1)


def _operand_str(expr: Statement, level: int) -> str:
    if isinstance(expr, BinaryOperation) and expr.level > level:
        return "(" + str(expr) + ")"
    return str(expr)


@dataclass
class Assignment(Statement):
    """target = expr; `is_initial` marks a declaration."""

    target: Identifier | ArrayAccessor
    expr: Expression
    is_initial: bool = False

    def children(self) -> list[Statement]:
        return [self.target, self.expr]

    def __str__(self) -> str:
        if self.is_initial and isinstance(self.target, Identifier):
            declared = "var" if self.target.type is None else str(self.target.type)
            return declared + " " + str(self.target) + " = " + str(self.expr)
        return str(self.target) + " = " + str(self.expr)


@dataclass
class Body(Statement):
    """A nested block; its scope shares the enclosing scope."""

    scope: Scope

    def children(self) -> list[Statement]:
        return list(self.scope.statements)

    def __str__(self) -> str:
        return "{ " + "; ".join(str(s) for s in self.scope.statements) + " }"


@dataclass
class If(Statement):
    condition: Expression
    body: Body
    else_body: Body | None = None

    def children(self) -> list[Statement]:
        nodes: list[Statement] = [self.condition, self.body]
        if self.else_body is not None:
            nodes.append(self.else_body)
        return nodes

    def __str__(self) -> str:
        text = "if (" + str(self.condition) + ") " + str(self.body)
        if self.else_body is not None:
            text += " else " + str(self.else_body)
        return text


@dataclass
class While(Statement):
    condition: Expression
    body: Body

    def children(self) -> list[Statement]:
        return [self.condition, self.body]

    def __str__(self) -> str:
        return "while (" + str(self.condition) + ") " + str(self.body)


@dataclass
class Break(Statement):
    def __str__(self) -> str:
        return "break"


@dataclass
class Continue(Statement):
    def __str__(self) -> str:
        return "continue"


@dataclass
class ArgumentDefinition(Statement):
    identifier: Identifier
    type: ElementType | None

    def __str__(self) -> str:
        declared = "var" if self.type is None else str(self.type)
        return declared + " " + str(self.identifier)


@dataclass
class FunctionDeclaration(Statement):
    identifier: Identifier
    arguments: Scope
    body: Body
    return_type: ElementType | None = None

    @property
    def name(self) -> str:
        return self.identifier.name

    @property
    def parameters(self) -> list[ArgumentDefinition]:
        return [s for s in self.arguments.statements if isinstance(s, ArgumentDefinition)]

    def children(self) -> list[Statement]:
        return list(self.arguments.statements) + [self.body]

    def __str__(self) -> str:
        head = "fn " + self.name + "(" + ", ".join(str(p) for p in self.parameters) + ")"
        if self.return_type is not None:
            head += " -> " + str(self.return_type)
        return head + " " + str(self.body)


@dataclass
class Return(Statement):
    expr: Expression

    def children(self) -> list[Statement]:
        return [self.expr]

    def __str__(self) -> str:
        return "return " + str(self.expr)


@dataclass
class FunctionCall(Statement):
    identifier: Identifier
    arguments: Scope
    resolved_function: FunctionDeclaration | None = field(default=None, repr=False, compare=False)

    @property
    def name(self) -> str:
        return self.identifier.name

    def children(self) -> list[Statement]:
        return list(self.arguments.statements)

    def __str__(self) -> str:
        return self.name + "(" + ", ".join(str(a) for a in self.arguments.statements) + ")"


Expression = Union[Identifier, Number, BinaryOperation, ArrayAccessor, TypeInitialization, FunctionCall]


# ============================================================
# TRAVERSAL
# ============================================================


def walk(scope: Scope) -> Iterator[Statement]:
    """Every node reachable from `scope`, parents before children.

    Does not follow shared scopes or resolved functions.
    """
    stack: list[Statement] = list(reversed(scope.statements))
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children()))
