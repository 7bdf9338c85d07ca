"""RAM program model — instructions, operands and labels."""

from __future__ import annotations

from dataclasses import dataclass, field

from ..diagnostics import Token


# ============================================================
# OPCODES
# ============================================================

OP_LOAD = "LOAD"
OP_STORE = "STORE"
OP_ADD = "ADD"
OP_SUB = "SUB"
OP_MUL = "MUL"
OP_DIV = "DIV"
OP_GOTO = "GOTO"
OP_JZERO = "JZERO"
OP_JNZERO = "JNZERO"
OP_END = "END"

ARITHMETIC_OPS: set[str] = {OP_LOAD, OP_ADD, OP_SUB, OP_MUL, OP_DIV}
JUMP_OPS: set[str] = {OP_GOTO, OP_JZERO, OP_JNZERO}


# ============================================================
# OPERANDS
# ============================================================


@dataclass(frozen=True)
class Immediate:
    """#n — the literal value n."""

    value: int

    def __str__(self) -> str:
        return "#" + str(self.value)


@dataclass(frozen=True)
class Address:
    """n — the value held in register n."""

    value: int

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class AddressPointer:
    """*n — the register whose index is held in register n."""

    value: int

    def __str__(self) -> str:
        return "*" + str(self.value)


@dataclass(frozen=True)
class Label:
    """NAME: — marks the address of the instruction that follows it."""

    name: str
    address: int
    token: Token = field(compare=False)

    def __str__(self) -> str:
        return self.name + " at " + str(self.address)


@dataclass(frozen=True)
class LabelReference:
    """A jump target by name; `label` is set once the reference is resolved."""

    name: str
    label: Label | None = None

    def __str__(self) -> str:
        return self.name


Operand = Immediate | Address | AddressPointer | LabelReference


@dataclass(frozen=True)
class Argument:
    value: Operand
    token: Token = field(compare=False)

    def __str__(self) -> str:
        return str(self.value)


# ============================================================
# INSTRUCTIONS
# ============================================================


@dataclass(frozen=True)
class Instruction:
    opcode: str
    argument: Argument | None
    token: Token = field(compare=False)

    def __str__(self) -> str:
        if self.argument is None:
            return self.opcode
        return self.opcode + " " + str(self.argument)


@dataclass
class Program:
    """A parsed RAM scope: ordered instructions plus the label table."""

    instructions: list[Instruction] = field(default_factory=list)
    labels: list[Label] = field(default_factory=list)

    def find_label(self, name: str) -> Label | None:
        for label in self.labels:
            if label.name == name:
                return label
        return None

    def __str__(self) -> str:
        by_address: dict[int, list[str]] = {}
        for label in self.labels:
            by_address.setdefault(label.address, []).append(label.name)
        lines: list[str] = []
        i = 0
        while i <= len(self.instructions):
            for name in by_address.get(i, []):
                lines.append(name + ":")
            if i < len(self.instructions):
                lines.append("    " + str(self.instructions[i]))
            i += 1
        return "\n".join(lines)
