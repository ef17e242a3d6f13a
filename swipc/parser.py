"""
Parser: recursive-descent parser that builds an AST from a token stream.
"""

import functools
from typing import Iterable, List, Optional, Tuple

from . import decorators
from .diagnostics import (
    Diagnostic, DiagnosticReporter, ParseError,
    DUPLICATE_TEMPLATE_PARAMETER, EMPTY_DOCUMENT, NESTING_TOO_DEEP,
    UNEXPECTED_END_OF_INPUT, UNEXPECTED_TOKEN, UNKNOWN_HANDLE_KIND,
)
from .lexer import (
    Token, TOK_DOC, TOK_EOF, TOK_IDENT, TOK_NUMBER, TOK_SYMBOL, parse_number,
)
from .model import (
    Align, Array, Buffer, Bytes, Decorator, Document, EnumField, Enumeration,
    FunctionDef, Handle, HandleKind, Interface, NamedReference, NamedTuple,
    NamedType, Number, Object, Ownership, Pid, ServiceNameEntry, StructField,
    Structure, TypeDefinition, TypeExpr,
)
from .types import is_name, is_service_name, is_word

DEFAULT_MAX_NESTING = 64

_KIND_NAMES = {
    TOK_IDENT: "identifier",
    TOK_NUMBER: "number",
    TOK_SYMBOL: "symbol",
}

_HANDLE_KINDS = {k.value: k for k in HandleKind}


def _production(name: str):
    """Record ``name`` as the production in progress while the method runs."""
    def wrap(method):
        @functools.wraps(method)
        def run(self, *args, **kwargs):
            self._productions.append(name)
            try:
                return method(self, *args, **kwargs)
            finally:
                self._productions.pop()
        return run
    return wrap


class Parser:
    """
    Recursive-descent parser for SwIPC IDL.

    Expects a token list produced by ``tokenize()``. Builds a ``Document``
    of ``TypeDefinition`` and ``Interface`` nodes.

    A syntax error abandons the definition (or, inside an interface, the
    function) being parsed; the parser then skips to the next ``;`` or
    closing ``}`` and carries on so that one pass reports every independent
    error. ``parse()`` raises ParseError holding all of them.
    """

    def __init__(self, tokens: Iterable[Token], source: str = "<input>",
                 max_nesting: int = DEFAULT_MAX_NESTING):
        self.tokens = list(tokens)
        self.pos = 0
        self.source = source
        self.max_nesting = max_nesting
        self.reporter = DiagnosticReporter(source)
        self._depth = 0
        self._productions: List[str] = []

    # ── Token helpers ────────────────────────────────────────────────

    def peek(self) -> Token:
        return self.tokens[self.pos]

    def advance(self) -> Token:
        tok = self.tokens[self.pos]
        if tok.kind != TOK_EOF:
            self.pos += 1
        return tok

    def at(self, value: str) -> bool:
        tok = self.peek()
        return tok.kind == TOK_SYMBOL and tok.value == value

    def at_word(self, value: str) -> bool:
        tok = self.peek()
        return tok.kind == TOK_IDENT and tok.value == value

    def expect(self, kind: str, value: Optional[str] = None) -> Token:
        tok = self.peek()
        if tok.kind != kind or (value is not None and tok.value != value):
            raise self._unexpected(
                tok, repr(value) if value is not None else _KIND_NAMES[kind])
        return self.advance()

    def _error(self, kind: str, message: str, tok: Token) -> ParseError:
        production = self._productions[-1] if self._productions else None
        return ParseError([Diagnostic(kind=kind, message=message,
                                      position=tok.position,
                                      source=self.source,
                                      production=production)])

    def _unexpected(self, tok: Token, expected: str) -> ParseError:
        if tok.kind == TOK_EOF:
            return self._error(UNEXPECTED_END_OF_INPUT,
                               f"expected {expected}, got end of input", tok)
        return self._error(UNEXPECTED_TOKEN,
                           f"expected {expected}, got {tok}", tok)

    def _expect_ident(self, what: str, check) -> Token:
        tok = self.peek()
        if tok.kind != TOK_IDENT or not check(tok.value):
            raise self._unexpected(tok, what)
        return self.advance()

    def _take_docs(self) -> Tuple[str, ...]:
        docs = []
        while self.peek().kind == TOK_DOC:
            docs.append(self.advance().value)
        return tuple(docs)

    def _synchronize(self, start: int, failed_at: int, inside_block: bool):
        """
        Skip past the construct that started at token ``start``.

        Stops after the first ``;`` at brace depth zero that is not before
        the failing token. Inside an interface body, an unmatched ``}`` ends
        the skip without being consumed so the body can close normally.
        """
        depth = 0
        i = start
        while True:
            tok = self.tokens[i]
            if tok.kind == TOK_EOF:
                break
            if tok.kind == TOK_SYMBOL:
                if tok.value == "{":
                    depth += 1
                elif tok.value == "}":
                    if depth == 0:
                        if inside_block:
                            break
                        if i >= failed_at:
                            i += 1
                            break
                    else:
                        depth -= 1
                        if depth == 0 and not inside_block and i >= failed_at:
                            i += 1
                            # "type t = struct { ... };" ends at the ';'
                            nxt = self.tokens[i]
                            if nxt.kind == TOK_SYMBOL and nxt.value == ";":
                                i += 1
                            break
                elif tok.value == ";" and depth == 0 and i >= failed_at:
                    i += 1
                    break
            i += 1
        self.pos = i

    # ── Top-level ────────────────────────────────────────────────────

    def parse(self) -> Document:
        definitions = []

        while True:
            start = self.pos
            docs = self._take_docs()
            if self.peek().kind == TOK_EOF:
                break
            try:
                definitions.append(self._parse_definition(docs))
            except ParseError as e:
                self.reporter.extend(e.diagnostics)
                self._synchronize(start, self.pos, inside_block=False)

        if not definitions and not self.reporter.has_errors:
            self.reporter.error(EMPTY_DOCUMENT,
                                "expected at least one 'type' or "
                                "'interface' definition",
                                self.peek().position, "document")

        if self.reporter.has_errors:
            raise ParseError(self.reporter.diagnostics)

        return Document(tuple(definitions), source=self.source)

    @_production("definition")
    def _parse_definition(self, docs: Tuple[str, ...]):
        if self.at_word("type"):
            return self._parse_typedef(docs)
        if self.at_word("interface"):
            return self._parse_interface(docs)
        raise self._unexpected(self.peek(), "'type' or 'interface'")

    @_production("typeDef")
    def _parse_typedef(self, docs: Tuple[str, ...]) -> TypeDefinition:
        self.expect(TOK_IDENT, "type")
        name_tok = self._expect_ident("type name", is_name)
        self.expect(TOK_SYMBOL, "=")
        ty = self._parse_type()
        self.expect(TOK_SYMBOL, ";")
        return TypeDefinition(name_tok.value, ty, docs,
                              position=name_tok.position)

    # ── Interfaces ───────────────────────────────────────────────────

    @_production("interface")
    def _parse_interface(self, docs: Tuple[str, ...]) -> Interface:
        self.expect(TOK_IDENT, "interface")
        name_tok = self._expect_ident("interface name", is_name)

        service_names = None
        if self.at_word("is"):
            self.advance()
            service_names = self._parse_service_names()

        self.expect(TOK_SYMBOL, "{")
        functions: List[FunctionDef] = []
        while True:
            start = self.pos
            fdocs = self._take_docs()
            if self.at("}"):
                break
            if self.peek().kind == TOK_EOF:
                raise self._unexpected(self.peek(), "'}'")
            try:
                functions.append(self._parse_function(fdocs))
            except ParseError as e:
                self.reporter.extend(e.diagnostics)
                self._synchronize(start, self.pos, inside_block=True)
        self.expect(TOK_SYMBOL, "}")

        return Interface(name_tok.value, tuple(functions), service_names,
                         docs, position=name_tok.position)

    @_production("serviceNameList")
    def _parse_service_names(self) -> Tuple[ServiceNameEntry, ...]:
        entries: List[ServiceNameEntry] = []
        while True:
            decs = self._parse_decorators()
            tok = self._expect_ident("service name", is_service_name)
            entries.append(ServiceNameEntry(tok.value, decs,
                                            position=tok.position))
            if not self.at(","):
                break
            self.advance()
            if self.at("{"):
                break  # trailing comma
        return tuple(entries)

    @_production("funcDef")
    def _parse_function(self, docs: Tuple[str, ...]) -> FunctionDef:
        decs = self._parse_decorators()
        open_tok = self.expect(TOK_SYMBOL, "[")
        method_id = self._parse_number()
        self.expect(TOK_SYMBOL, "]")
        name_tok = self._expect_ident("function name", is_word)
        inputs = self._parse_named_tuple()

        output = None
        if self.at("->"):
            self.advance()
            # One token of lookahead picks the return form.
            if self.at("("):
                output = self._parse_named_tuple()
            else:
                output = self._parse_named_type()
        self.expect(TOK_SYMBOL, ";")

        return FunctionDef(method_id, name_tok.value, inputs, output, decs,
                           docs, position=open_tok.position)

    @_production("decorator")
    def _parse_decorators(self) -> Tuple[Decorator, ...]:
        decs: List[Decorator] = []
        while self.at("@"):
            self.advance()
            name_tok = self._expect_ident("decorator name", is_word)
            args = None
            if self.at("("):
                args = self._collect_decorator_args()
            decs.append(decorators.resolve(name_tok, args, self.source))
        return tuple(decs)

    def _collect_decorator_args(self) -> List[Token]:
        self.expect(TOK_SYMBOL, "(")
        args: List[Token] = []
        depth = 1
        while True:
            tok = self.peek()
            if tok.kind in (TOK_EOF, TOK_DOC):
                raise self._unexpected(tok, "')'")
            if tok.kind == TOK_SYMBOL and tok.value == "(":
                depth += 1
            elif tok.kind == TOK_SYMBOL and tok.value == ")":
                depth -= 1
                if depth == 0:
                    self.advance()
                    return args
            args.append(self.advance())

    # ── Tuples ───────────────────────────────────────────────────────

    @_production("namedTuple")
    def _parse_named_tuple(self) -> NamedTuple:
        self.expect(TOK_SYMBOL, "(")
        items: List[NamedType] = []
        while not self.at(")"):
            items.append(self._parse_named_type())
            if not self.at(","):
                break
            self.advance()
        self.expect(TOK_SYMBOL, ")")
        return NamedTuple(tuple(items))

    @_production("namedType")
    def _parse_named_type(self) -> NamedType:
        ty = self._parse_type()
        name = None
        if self.peek().kind == TOK_IDENT:
            name = self._expect_ident("parameter name", is_word).value
        return NamedType(ty, name)

    # ── Types ────────────────────────────────────────────────────────

    @_production("ty")
    def _parse_type(self) -> TypeExpr:
        tok = self.peek()
        if self._depth >= self.max_nesting:
            raise self._error(NESTING_TOO_DEEP,
                              f"type nesting deeper than {self.max_nesting}",
                              tok)
        self._depth += 1
        try:
            if tok.kind != TOK_IDENT:
                raise self._unexpected(tok, "a type")
            if tok.value == "struct":
                return self._parse_struct()
            if tok.value == "enum":
                return self._parse_enum()
            return self._parse_alias()
        finally:
            self._depth -= 1

    def _parse_number(self) -> Number:
        tok = self.expect(TOK_NUMBER)
        base = 16 if tok.value[:2] in ("0x", "0X") else 10
        return Number(parse_number(tok.value), base)

    @_production("structure")
    def _parse_struct(self) -> Structure:
        struct_tok = self.expect(TOK_IDENT, "struct")

        size = None
        if self.at("<"):
            self.advance()
            size = self._parse_number()
            if self.at(","):
                raise self._error(DUPLICATE_TEMPLATE_PARAMETER,
                                  "struct takes a single size parameter",
                                  self.peek())
            self.expect(TOK_SYMBOL, ">")
            if self.at("<"):
                raise self._error(DUPLICATE_TEMPLATE_PARAMETER,
                                  "struct size given twice", self.peek())

        self.expect(TOK_SYMBOL, "{")
        fields: List[StructField] = []
        while True:
            docs = self._take_docs()
            if self.at("}") and fields:
                break
            ty = self._parse_type()
            name_tok = self._expect_ident("field name", is_word)
            self.expect(TOK_SYMBOL, ";")
            fields.append(StructField(ty, name_tok.value, docs))
        self.expect(TOK_SYMBOL, "}")

        return Structure(tuple(fields), size, position=struct_tok.position)

    @_production("enumeration")
    def _parse_enum(self) -> Enumeration:
        self.expect(TOK_IDENT, "enum")
        self.expect(TOK_SYMBOL, "<")
        underlying = self._expect_ident("underlying type name", is_name).value
        self.expect(TOK_SYMBOL, ">")

        self.expect(TOK_SYMBOL, "{")
        fields: List[EnumField] = []
        while True:
            docs = self._take_docs()
            if self.at("}") and fields:
                break
            name_tok = self._expect_ident("enumerator name", is_word)
            self.expect(TOK_SYMBOL, "=")
            value = self._parse_number()
            self.expect(TOK_SYMBOL, ";")
            fields.append(EnumField(name_tok.value, value, docs))
        self.expect(TOK_SYMBOL, "}")

        return Enumeration(underlying, tuple(fields))

    @_production("alias")
    def _parse_alias(self) -> TypeExpr:
        tok = self.advance()
        word = tok.value

        if word == "array":
            self.expect(TOK_SYMBOL, "<")
            element = self._parse_type()
            self.expect(TOK_SYMBOL, ",")
            length = self._parse_number()
            self.expect(TOK_SYMBOL, ">")
            return Array(element, length)

        if word == "buffer":
            self.expect(TOK_SYMBOL, "<")
            element = self._parse_type()
            self.expect(TOK_SYMBOL, ",")
            size = self._parse_number()
            alignment = None
            if self.at(","):
                self.advance()
                alignment = self._parse_number()
            self.expect(TOK_SYMBOL, ">")
            return Buffer(element, size, alignment, position=tok.position)

        if word == "object":
            self.expect(TOK_SYMBOL, "<")
            iface = self._expect_ident("interface name", is_name)
            self.expect(TOK_SYMBOL, ">")
            return Object(iface.value, position=iface.position)

        if word == "bytes":
            if not self.at("<"):
                return Bytes()
            self.advance()
            size = self._parse_number()
            self.expect(TOK_SYMBOL, ">")
            return Bytes(size)

        if word == "align":
            self.expect(TOK_SYMBOL, "<")
            boundary = self._parse_number()
            self.expect(TOK_SYMBOL, ",")
            inner = self._parse_type()
            self.expect(TOK_SYMBOL, ">")
            return Align(boundary, inner, position=tok.position)

        if word == "pid":
            return Pid()

        if word == "handle":
            return self._parse_handle(tok)

        if not is_name(word):
            raise self._unexpected(tok, "a type name")
        return NamedReference(word, position=tok.position)

    def _parse_handle(self, handle_tok: Token) -> Handle:
        self.expect(TOK_SYMBOL, "<")
        own_tok = self.peek()
        if own_tok.kind != TOK_IDENT or own_tok.value not in ("copy", "move"):
            raise self._unexpected(own_tok, "'copy' or 'move'")
        self.advance()

        kind = None
        if self.at(","):
            self.advance()
            kind_tok = self.expect(TOK_IDENT)
            if kind_tok.value not in _HANDLE_KINDS:
                raise self._error(UNKNOWN_HANDLE_KIND,
                                  f"unknown handle kind {kind_tok.value!r}",
                                  kind_tok)
            kind = _HANDLE_KINDS[kind_tok.value]
        self.expect(TOK_SYMBOL, ">")

        return Handle(Ownership(own_tok.value), kind,
                      position=handle_tok.position)
