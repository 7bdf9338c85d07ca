"""RAM assembly — tokenizer, parser, label resolver, bounds checker, interpreter."""

from __future__ import annotations

import logging

from .bounds import check_bounds
from .labels import resolve_labels
from .machine import DEFAULT_REGISTER_COUNT, Interpreter
from .parse import parse
from .program import Program
from .tokens import tokenize

logger = logging.getLogger(__name__)


def assemble(source: str, register_count: int = DEFAULT_REGISTER_COUNT) -> Program:
    """Tokenize, parse, resolve and bounds-check RAM source.

    `register_count` counts general registers; the accumulator comes on top.
    """
    tokens = tokenize(source)
    program = parse(tokens)
    program = resolve_labels(program)
    program = check_bounds(program, register_count + 1)
    logger.debug(
        "assembled %d instructions, %d labels",
        len(program.instructions),
        len(program.labels),
    )
    return program


__all__ = [
    "DEFAULT_REGISTER_COUNT",
    "Interpreter",
    "Program",
    "assemble",
    "check_bounds",
    "parse",
    "resolve_labels",
    "tokenize",
]
