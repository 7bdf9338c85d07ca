"""FAIL compiler — tokenizer, parser, resolver, type checker, emitter."""

from __future__ import annotations

import logging

from .ast import Scope
from .check import check_types
from .emit import Emission, emit, emit_program
from .names import resolve_identifiers
from .parse import Parser, parse
from .tokens import tokenize

logger = logging.getLogger(__name__)


def parse_source(source: str) -> Scope:
    """Tokenize and parse FAIL source into its top-level Scope."""
    return parse(tokenize(source))


def compile_source(source: str) -> Emission:
    """Run the whole FAIL pipeline and return the emitted assembly."""
    scope = parse_source(source)
    resolve_identifiers(scope)
    check_types(scope)
    emission = emit_program(scope)
    logger.debug(
        "compiled %d statements into %d lines using %d registers",
        len(scope.statements),
        emission.text.count("\n"),
        emission.register_count,
    )
    return emission


__all__ = [
    "Emission",
    "Parser",
    "Scope",
    "check_types",
    "compile_source",
    "emit",
    "emit_program",
    "parse",
    "parse_source",
    "resolve_identifiers",
    "tokenize",
]
