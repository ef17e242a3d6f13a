"""
Decorator resolver: turns ``@name`` / ``@name(...)`` into Decorator nodes.

The parser hands over the decorator name token and the raw tokens found
between the parentheses (``None`` when there were no parentheses). Names
other than ``version``, ``undocumented`` and ``managedport`` are kept as
``UnknownDecorator`` with their arguments as plain strings, so new
decorators do not need a grammar change.
"""

from typing import List, Optional, Sequence

from .diagnostics import Diagnostic, ParseError, UNEXPECTED_TOKEN
from .lexer import Token, TOK_NUMBER, TOK_SYMBOL, parse_number
from .model import (
    Decorator, ManagedPort, OPEN_ENDED, Undocumented, UnknownDecorator,
    Version, VersionNumber,
)

PRODUCTION = "decorator"


def _error(tok: Token, message: str, source: str) -> ParseError:
    return ParseError([Diagnostic(kind=UNEXPECTED_TOKEN, message=message,
                                  position=tok.position, source=source,
                                  production=PRODUCTION)])


class _VersionReader:
    """Reads the argument of @version: ``a.b.c``, ``a.b.c+``, ``a.b.c-x.y.z``, ``-x.y.z``."""

    def __init__(self, name_tok: Token, args: Sequence[Token], source: str):
        self.name_tok = name_tok
        self.args = args
        self.pos = 0
        self.source = source

    def at_symbol(self, value: str) -> bool:
        return (self.pos < len(self.args)
                and self.args[self.pos].kind == TOK_SYMBOL
                and self.args[self.pos].value == value)

    def current(self) -> Token:
        if self.pos < len(self.args):
            return self.args[self.pos]
        return self.args[-1] if self.args else self.name_tok

    def number(self) -> int:
        if self.pos >= len(self.args):
            raise _error(self.current(), "incomplete version number",
                         self.source)
        if self.args[self.pos].kind != TOK_NUMBER:
            raise _error(self.current(),
                         f"expected version number component, got {self.current()}",
                         self.source)
        tok = self.args[self.pos]
        self.pos += 1
        return parse_number(tok.value)

    def version(self) -> VersionNumber:
        parts = [self.number()]
        while len(parts) < 3:
            if not self.at_symbol("."):
                raise _error(self.current(),
                             "expected '.' in version number "
                             "(versions are written major.minor.patch)",
                             self.source)
            self.pos += 1
            parts.append(self.number())
        return VersionNumber(*parts)

    def read(self) -> Version:
        pos = self.name_tok.position
        if not self.args:
            return Version(None, None, position=pos)

        if self.at_symbol("-"):
            self.pos += 1
            upper = self.version()
            self.finish()
            return Version(None, upper, position=pos)

        lower = self.version()
        if self.at_symbol("+"):
            self.pos += 1
            self.finish()
            return Version(lower, OPEN_ENDED, position=pos)
        if self.at_symbol("-"):
            self.pos += 1
            upper = self.version()
            self.finish()
            return Version(lower, upper, position=pos)
        self.finish()
        return Version(lower, lower, position=pos)

    def finish(self):
        if self.pos < len(self.args):
            tok = self.args[self.pos]
            raise _error(tok, f"unexpected {tok} after version range",
                         self.source)


def _split_arguments(args: Sequence[Token], source: str) -> List[str]:
    """Split raw tokens on top-level commas and rebuild each argument's text."""
    out: List[str] = []
    current: List[Token] = []
    depth = 0
    for tok in args:
        if tok.kind == TOK_SYMBOL and tok.value == "," and depth == 0:
            if not current:
                raise _error(tok, "empty decorator argument", source)
            out.append(_join(current))
            current = []
            continue
        if tok.kind == TOK_SYMBOL and tok.value in "([<":
            depth += 1
        elif tok.kind == TOK_SYMBOL and tok.value in ")]>" and depth:
            depth -= 1
        current.append(tok)
    if current:
        out.append(_join(current))
    return out


def _join(tokens: Sequence[Token]) -> str:
    # String literals contribute their contents; quotes are never kept.
    text = ""
    prev: Optional[Token] = None
    for tok in tokens:
        if prev is not None and TOK_SYMBOL not in (prev.kind, tok.kind):
            text += " "
        text += tok.value
        prev = tok
    return text


def resolve(name_tok: Token, args: Optional[Sequence[Token]],
            source: str = "<input>") -> Decorator:
    """
    Build the Decorator for ``@<name_tok>(<args>)``.

    Raises ParseError when a known decorator is given arguments it does not
    take, or when a version range is malformed. An empty ``@version()`` is
    accepted here and left for the validator to reject.
    """
    name = name_tok.value
    pos = name_tok.position

    if name == "version":
        if args is None:
            raise _error(name_tok, "@version requires a version range, "
                         "e.g. @version(1.0.0+)", source)
        return _VersionReader(name_tok, args, source).read()

    if name in ("undocumented", "managedport"):
        if args:
            raise _error(args[0], f"@{name} takes no arguments", source)
        if name == "undocumented":
            return Undocumented(position=pos)
        return ManagedPort(position=pos)

    arguments = tuple(_split_arguments(args, source)) if args else ()
    return UnknownDecorator(name, arguments, position=pos)
