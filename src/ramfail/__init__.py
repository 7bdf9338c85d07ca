"""RAM assembly toolchain and the FAIL language that compiles to it — public API."""

from __future__ import annotations

import asyncio

from .diagnostics import (
    BoundsError as BoundsError,
    LabelError as LabelError,
    MachineFault as MachineFault,
    ParseError as ParseError,
    RamfailError as RamfailError,
    ResolveError as ResolveError,
    Token as Token,
    TokenizeError as TokenizeError,
    TypeCheckError as TypeCheckError,
)
from .fail import Emission, compile_source
from .ram import Interpreter, Program, assemble
from .ram.machine import DEFAULT_REGISTER_COUNT, DEFAULT_SPEED


def load(
    source: str,
    register_count: int = DEFAULT_REGISTER_COUNT,
    speed: float = DEFAULT_SPEED,
    real_time: bool = False,
) -> Interpreter:
    """Assemble RAM source and return an Interpreter with the program loaded."""
    program = assemble(source, register_count)
    machine = Interpreter(speed, real_time, register_count)
    machine.load_program(program, register_count)
    return machine


def load_fail(
    source: str, speed: float = DEFAULT_SPEED, real_time: bool = False
) -> tuple[Interpreter, Emission]:
    """Compile FAIL source and load the result into a fresh Interpreter."""
    emission = compile_source(source)
    return load(emission.text, emission.register_count, speed, real_time), emission


def run(source: str, register_count: int = DEFAULT_REGISTER_COUNT) -> Interpreter:
    """Assemble and run RAM source to completion without delays."""
    machine = load(source, register_count, real_time=True)
    asyncio.run(machine.execute())
    return machine


__all__ = [
    "DEFAULT_REGISTER_COUNT",
    "DEFAULT_SPEED",
    "BoundsError",
    "Emission",
    "Interpreter",
    "LabelError",
    "MachineFault",
    "ParseError",
    "Program",
    "RamfailError",
    "ResolveError",
    "Token",
    "TokenizeError",
    "TypeCheckError",
    "assemble",
    "compile_source",
    "load",
    "load_fail",
    "run",
]
