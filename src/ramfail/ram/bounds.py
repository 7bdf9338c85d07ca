"""Bounds checker — rejects register operands outside the register bank."""

from __future__ import annotations

from ..diagnostics import E_REGISTER_OUT_OF_BOUNDS, BoundsError
from .program import Address, AddressPointer, Program


def check_bounds(program: Program, register_count: int) -> Program:
    """Validate that every direct or pointer operand is below `register_count`.

    `register_count` is the size of the whole bank, accumulator included.
    Returns `program` unchanged.
    """
    for instruction in program.instructions:
        argument = instruction.argument
        if argument is None:
            continue
        value = argument.value
        if isinstance(value, (Address, AddressPointer)) and value.value >= register_count:
            raise BoundsError(
                "Register " + str(value.value) + " out of bounds",
                argument.token,
                E_REGISTER_OUT_OF_BOUNDS,
            )
    return program
