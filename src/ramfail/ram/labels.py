"""Label resolver — binds every jump operand to its Label."""

from __future__ import annotations

from dataclasses import replace

from ..diagnostics import E_LABEL_NOT_FOUND, LabelError
from .program import Argument, Instruction, LabelReference, Program


def resolve_labels(program: Program) -> Program:
    """Return a copy of `program` whose label references carry their Label.

    Raises LabelError naming the first reference with no matching label.
    """
    instructions: list[Instruction] = []
    for instruction in program.instructions:
        argument = instruction.argument
        if argument is None or not isinstance(argument.value, LabelReference):
            instructions.append(instruction)
            continue
        name = argument.value.name
        label = program.find_label(name)
        if label is None:
            raise LabelError("Label '" + name + "' not found", argument.token, E_LABEL_NOT_FOUND)
        resolved = Argument(LabelReference(name, label), argument.token)
        instructions.append(replace(instruction, argument=resolved))
    return Program(instructions, list(program.labels))
