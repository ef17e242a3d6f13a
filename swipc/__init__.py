"""
swipc: front end for the SwIPC interface definition language.

Tokenizes, parses and validates IDL text describing IPC interfaces, their
numbered methods and wire types, and hands back an immutable AST for code
generators to consume. Name resolution and code generation are left to the
caller.

    from swipc import compile_idl
    doc = compile_idl(text, "sm.id")
"""

from typing import List, Optional

from .config import ConfigError, Options, parse_config
from .diagnostics import (
    CompileError, Diagnostic, IdlError, LexError, ParseError, Position,
    Severity, ValidationError,
)
from .lexer import Lexer, tokenize
from .model import Document
from .parser import Parser
from .printer import format_document
from .validator import Validator


def compile_idl(text: str, source: str = "<input>",
                options: Optional[Options] = None) -> Document:
    """
    Lex, parse and validate ``text``.

    Returns the validated Document. Raises CompileError carrying every
    diagnostic found; lexing stops at the first bad byte, parsing and
    validation report as much as they can.
    """
    options = options or Options()
    try:
        tokens = tokenize(text, source)
        doc = Parser(tokens, source, max_nesting=options.max_nesting).parse()
    except (LexError, ParseError) as e:
        raise CompileError(e.diagnostics) from e

    reporter = Validator(
        source,
        max_service_name_length=options.max_service_name_length,
        max_managed_port_name_length=options.max_managed_port_name_length,
    ).check(doc)
    if reporter.has_errors:
        raise CompileError(reporter.diagnostics)
    return doc


def check(text: str, source: str = "<input>",
          options: Optional[Options] = None) -> List[Diagnostic]:
    """Return the diagnostics for ``text``; empty when it compiles cleanly."""
    try:
        compile_idl(text, source, options)
    except CompileError as e:
        return e.diagnostics
    return []


__all__ = [
    "CompileError", "ConfigError", "Diagnostic", "Document", "IdlError",
    "LexError", "Lexer", "Options", "ParseError", "Parser", "Position",
    "Severity", "ValidationError", "Validator", "check", "compile_idl",
    "format_document", "parse_config", "tokenize",
]
