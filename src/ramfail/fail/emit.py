"""FAIL emitter — lowers a checked Scope into RAM assembly text.

Registers are allocated statically: every declaration, parameter and
temporary gets a register from a first-fit map that is threaded explicitly
through the recursive emit calls. Function calls are inlined; there is no
call stack, so recursion must already have been rejected by the resolver.

The RAM machine only branches on zero / non-zero, so every comparison is
lowered to a short SUB / JZERO / JNZERO sequence that leaves 1 or 0 in the
accumulator.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from ..ram.program import (
    OP_ADD,
    OP_DIV,
    OP_END,
    OP_GOTO,
    OP_JNZERO,
    OP_JZERO,
    OP_LOAD,
    OP_MUL,
    OP_STORE,
    OP_SUB,
)
from .ast import (
    ArrayAccessor,
    Assignment,
    BinaryOperation,
    Body,
    Break,
    Continue,
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

ARITHMETIC: dict[str, str] = {"+": OP_ADD, "-": OP_SUB, "*": OP_MUL, "/": OP_DIV}


# ============================================================
# REGISTER ALLOCATION
# ============================================================


class RegisterMap:
    """First-fit allocation of contiguous register runs, starting at 1.

    Keys are `id()` of declaring Identifier nodes, so two variables with the
    same name never share a register while both are live.
    """

    def __init__(self) -> None:
        self._slots: dict[object, tuple[int, int]] = {}
        self._used: set[int] = set()
        self.high_water: int = 0

    def lookup(self, key: object) -> int | None:
        slot = self._slots.get(key)
        if slot is None:
            return None
        return slot[0]

    def reserve(self, key: object, size: int = 1) -> int:
        """Base register for `key`, reserving `size` registers on first use."""
        slot = self._slots.get(key)
        if slot is not None:
            return slot[0]
        base = 1
        while any(r in self._used for r in range(base, base + size)):
            base += 1
        for r in range(base, base + size):
            self._used.add(r)
        self._slots[key] = (base, size)
        if base + size - 1 > self.high_water:
            self.high_water = base + size - 1
        return base

    def release(self, key: object) -> None:
        slot = self._slots.pop(key, None)
        if slot is None:
            return
        base, size = slot
        for r in range(base, base + size):
            self._used.discard(r)

    def temporary(self) -> int:
        """A scratch register; give it back with `free`."""
        base = 1
        while base in self._used:
            base += 1
        return self.reserve(("temp", base))

    def free(self, register: int) -> None:
        self.release(("temp", register))


# ============================================================
# RESULT
# ============================================================


@dataclass
class Emission:
    """Assembly text plus what a runner needs to execute it."""

    text: str
    # top-level variable name -> base register
    symbols: dict[str, int] = field(default_factory=dict)
    # general registers the program touches (accumulator not counted)
    register_count: int = 0


@dataclass(frozen=True)
class _Context:
    loop_start: str | None = None
    loop_end: str | None = None
    return_label: str | None = None


# ============================================================
# EMITTER
# ============================================================


class _Emitter:
    _INDENT = "    "

    def __init__(self) -> None:
        self._lines: list[str] = []
        self._label_count: int = 0

    def emit_program(self, scope: Scope) -> Emission:
        self._lines = []
        self._label_count = 0
        regs = RegisterMap()
        for statement in scope.statements:
            self._emit_statement(statement, regs, _Context())
        symbols: dict[str, int] = {}
        for decl in scope.declarations():
            target = decl.target
            assert isinstance(target, Identifier)
            register = regs.lookup(id(target))
            if register is not None:
                symbols[target.name] = register
        self._emit(OP_END)
        self._release_scope(scope, regs)
        return Emission("\n".join(self._lines) + "\n", symbols, regs.high_water)

    # ── Output ───────────────────────────────────────────────

    def _emit(self, opcode: str, operand: str | int | None = None) -> None:
        if operand is None:
            self._lines.append(self._INDENT + opcode)
        else:
            self._lines.append(self._INDENT + opcode + " " + str(operand))

    def _comment(self, text: str) -> None:
        self._lines.append(self._INDENT + "// " + text)

    def _new_label(self, prefix: str) -> str:
        name = prefix + "_" + str(self._label_count)
        self._label_count += 1
        return name

    def _place(self, label: str) -> None:
        self._lines.append(label + ":")

    # ── Statements ───────────────────────────────────────────

    def _emit_statement(self, stmt: Statement, regs: RegisterMap, ctx: _Context) -> None:
        if isinstance(stmt, FunctionDeclaration):
            return
        if isinstance(stmt, Body):
            self._emit_body(stmt, regs, ctx)
        elif isinstance(stmt, Assignment):
            self._comment(str(stmt))
            self._emit_assignment(stmt, regs)
        elif isinstance(stmt, If):
            self._comment("if (" + str(stmt.condition) + ")")
            self._emit_if(stmt, regs, ctx)
        elif isinstance(stmt, While):
            self._comment("while (" + str(stmt.condition) + ")")
            self._emit_while(stmt, regs, ctx)
        elif isinstance(stmt, Break):
            self._comment("break")
            self._emit(OP_GOTO, ctx.loop_end)
        elif isinstance(stmt, Continue):
            self._comment("continue")
            self._emit(OP_GOTO, ctx.loop_start)
        elif isinstance(stmt, Return):
            self._comment(str(stmt))
            self._emit_expression(stmt.expr, regs)
            self._emit(OP_GOTO, ctx.return_label)
        elif isinstance(stmt, FunctionCall):
            self._comment(str(stmt))
            self._emit_call(stmt, regs)
        else:
            raise ValueError("cannot emit " + type(stmt).__name__)

    def _emit_body(self, body: Body, regs: RegisterMap, ctx: _Context) -> None:
        for statement in body.scope.statements:
            self._emit_statement(statement, regs, ctx)
        self._release_scope(body.scope, regs)

    def _release_scope(self, scope: Scope, regs: RegisterMap) -> None:
        for decl in scope.declarations():
            regs.release(id(decl.target))

    def _emit_assignment(self, stmt: Assignment, regs: RegisterMap) -> None:
        target = stmt.target
        if isinstance(target, ArrayAccessor):
            self._emit_element_write(target, stmt.expr, regs)
            return
        key = id(target.declared)
        typ = target.type if stmt.is_initial else None
        if typ is not None and typ.is_array:
            size = typ.name.size
            if isinstance(stmt.expr, TypeInitialization):
                base = regs.reserve(key, size)
                self._emit(OP_LOAD, "#0")
                for i in range(size):
                    self._emit(OP_STORE, base + i)
                return
            if isinstance(stmt.expr, Identifier):
                source = regs.reserve(id(stmt.expr.declared))
                base = regs.reserve(key, size)
                for i in range(size):
                    self._emit(OP_LOAD, source + i)
                    self._emit(OP_STORE, base + i)
                return
        self._emit_expression(stmt.expr, regs)
        self._emit(OP_STORE, regs.reserve(key))

    def _element_address(self, accessor: ArrayAccessor, regs: RegisterMap) -> int:
        """Compute base + index into a fresh temporary and return it."""
        base = regs.reserve(id(accessor.identifier.declared))
        self._emit_expression(accessor.index, regs)
        self._emit(OP_ADD, "#" + str(base))
        pointer = regs.temporary()
        self._emit(OP_STORE, pointer)
        return pointer

    def _emit_element_write(self, accessor: ArrayAccessor, value: Statement, regs: RegisterMap) -> None:
        pointer = self._element_address(accessor, regs)
        self._emit_expression(value, regs)
        self._emit(OP_STORE, "*" + str(pointer))
        regs.free(pointer)

    def _emit_if(self, stmt: If, regs: RegisterMap, ctx: _Context) -> None:
        self._emit_expression(stmt.condition, regs)
        if stmt.else_body is None:
            end = self._new_label("IF_END")
            self._emit(OP_JZERO, end)
            self._emit_body(stmt.body, regs, ctx)
            self._place(end)
            return
        else_label = self._new_label("IF_ELSE")
        end = self._new_label("IF_END")
        self._emit(OP_JZERO, else_label)
        self._emit_body(stmt.body, regs, ctx)
        self._emit(OP_GOTO, end)
        self._place(else_label)
        self._emit_body(stmt.else_body, regs, ctx)
        self._place(end)

    def _emit_while(self, stmt: While, regs: RegisterMap, ctx: _Context) -> None:
        start = self._new_label("WHILE_START")
        end = self._new_label("WHILE_END")
        self._place(start)
        self._emit_expression(stmt.condition, regs)
        self._emit(OP_JZERO, end)
        loop_ctx = _Context(start, end, ctx.return_label)
        self._emit_body(stmt.body, regs, loop_ctx)
        self._emit(OP_GOTO, start)
        self._place(end)

    def _emit_call(self, call: FunctionCall, regs: RegisterMap) -> None:
        """Inline the callee: bind arguments to parameter registers, emit its body."""
        fn = call.resolved_function
        if fn is None:
            raise ValueError("call to '" + call.name + "' was never resolved")
        operands: list[str] = []
        temps: list[int] = []
        for arg in call.arguments.statements:
            operand = self._operand(arg, regs)
            if operand is None:
                self._emit_expression(arg, regs)
                temp = regs.temporary()
                self._emit(OP_STORE, temp)
                temps.append(temp)
                operand = str(temp)
            operands.append(operand)
        params = fn.parameters
        for param, operand in zip(params, operands):
            self._emit(OP_LOAD, operand)
            self._emit(OP_STORE, regs.reserve(id(param.identifier)))
        for temp in temps:
            regs.free(temp)
        return_label = self._new_label("RETURN_" + fn.name.upper())
        self._emit_body(fn.body, regs, _Context(return_label=return_label))
        self._place(return_label)
        for param in params:
            regs.release(id(param.identifier))

    # ── Expressions ──────────────────────────────────────────

    def _operand(self, expr: Statement, regs: RegisterMap) -> str | None:
        """Direct operand text for literals and variables, else None."""
        if isinstance(expr, Number):
            return "#" + str(expr.value)
        if isinstance(expr, Identifier):
            return str(regs.reserve(id(expr.declared)))
        return None

    def _emit_expression(self, expr: Statement, regs: RegisterMap) -> None:
        """Leave the value of `expr` in the accumulator."""
        if isinstance(expr, (Number, Identifier)):
            self._emit(OP_LOAD, self._operand(expr, regs))
        elif isinstance(expr, TypeInitialization):
            self._emit(OP_LOAD, "#0")
        elif isinstance(expr, ArrayAccessor):
            pointer = self._element_address(expr, regs)
            self._emit(OP_LOAD, "*" + str(pointer))
            regs.free(pointer)
        elif isinstance(expr, FunctionCall):
            self._emit_call(expr, regs)
        elif isinstance(expr, BinaryOperation):
            self._emit_binary(expr, regs)
        else:
            raise ValueError("cannot emit expression " + type(expr).__name__)

    def _emit_binary(self, expr: BinaryOperation, regs: RegisterMap) -> None:
        # Right first, so the left side ends up in the accumulator.
        temps: list[int] = []
        right = self._operand(expr.right, regs)
        if right is None:
            self._emit_expression(expr.right, regs)
            temp = regs.temporary()
            self._emit(OP_STORE, temp)
            temps.append(temp)
            right = str(temp)
        if not is_comparison(expr.operator):
            self._emit_expression(expr.left, regs)
            self._emit(ARITHMETIC[expr.operator], right)
        else:
            left = self._operand(expr.left, regs)
            if left is None:
                self._emit_expression(expr.left, regs)
                temp = regs.temporary()
                self._emit(OP_STORE, temp)
                temps.append(temp)
                left = str(temp)
            else:
                self._emit(OP_LOAD, left)
            self._emit_comparison(expr.operator, left, right)
        for temp in temps:
            regs.free(temp)

    # ── Comparisons ──────────────────────────────────────────
    # Each expects the left operand in the accumulator and leaves 1 or 0.

    def _emit_comparison(self, operator: str, left: str, right: str) -> None:
        if operator == "==":
            self._emit_equal(left, right)
        elif operator == "!=":
            self._emit_equal(left, right)
            self._emit_not()
        elif operator == ">":
            self._emit_greater(right)
        elif operator == "<":
            self._emit_less(left, right)
        elif operator == ">=":
            self._emit_less(left, right)
            self._emit_not()
        elif operator == "<=":
            self._emit_greater(right)
            self._emit_not()
        else:
            raise ValueError("unknown comparison " + operator)

    def _emit_equal(self, left: str, right: str) -> None:
        # L - R and R - L both clamp to zero only when L == R.
        failed = self._new_label("EQUAL_FAILED")
        end = self._new_label("EQUAL_END")
        self._emit(OP_SUB, right)
        self._emit(OP_JNZERO, failed)
        self._emit(OP_LOAD, right)
        self._emit(OP_SUB, left)
        self._emit(OP_JNZERO, failed)
        self._emit(OP_LOAD, "#1")
        self._emit(OP_GOTO, end)
        self._place(failed)
        self._emit(OP_LOAD, "#0")
        self._place(end)

    def _emit_greater(self, right: str) -> None:
        end = self._new_label("GREATER_END")
        self._emit(OP_SUB, right)
        self._emit(OP_JZERO, end)
        self._emit(OP_LOAD, "#1")
        self._place(end)

    def _emit_less(self, left: str, right: str) -> None:
        # L < R  ==  R > L  and not  L == R
        end = self._new_label("LESS_END")
        self._emit(OP_LOAD, right)
        self._emit_greater(left)
        self._emit(OP_JZERO, end)
        self._emit(OP_LOAD, left)
        self._emit_equal(left, right)
        self._emit_not()
        self._place(end)

    def _emit_not(self) -> None:
        true = self._new_label("NOT_TRUE")
        end = self._new_label("NOT_END")
        self._emit(OP_JZERO, true)
        self._emit(OP_LOAD, "#0")
        self._emit(OP_GOTO, end)
        self._place(true)
        self._emit(OP_LOAD, "#1")
        self._place(end)


def emit_program(scope: Scope) -> Emission:
    """Lower a resolved and type-checked Scope into RAM assembly."""
    return _Emitter().emit_program(scope)


def emit(scope: Scope) -> str:
    """Assembly text for `scope`."""
    return emit_program(scope).text
