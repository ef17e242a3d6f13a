"""
Lexer: tokenizes SwIPC IDL source text into a stream of tokens.
"""

from dataclasses import dataclass
from typing import Iterator, List

from .diagnostics import (
    Diagnostic, LexError, Position,
    MALFORMED_NUMBER, UNRECOGNIZED_CHARACTER, UNTERMINATED_COMMENT,
    UNTERMINATED_STRING,
)

# Token kinds.
TOK_IDENT  = "IDENT"
TOK_NUMBER = "NUMBER"
TOK_STRING = "STRING"
TOK_DOC    = "DOC"      # "# text" documentation comment
TOK_SYMBOL = "SYMBOL"
TOK_EOF    = "EOF"

# Words the parser treats as keywords. The lexer emits them as IDENT.
KEYWORDS = {
    "type", "interface", "is", "struct", "enum",
    "array", "buffer", "object", "bytes", "align", "pid", "handle",
}

SYMBOLS = "{}()[]<>,;=@.+-"
HEX_DIGITS = "0123456789abcdefABCDEF"


@dataclass(frozen=True)
class Token:
    kind: str
    value: str
    position: Position

    @property
    def line(self) -> int:
        return self.position.line

    def __str__(self) -> str:
        if self.kind == TOK_EOF:
            return "end of input"
        if self.kind == TOK_DOC:
            return "doc comment"
        return repr(self.value)


def _ident_start(c: str) -> bool:
    return c.isascii() and (c.isalpha() or c == "_")


def _ident_char(c: str) -> bool:
    return c.isascii() and (c.isalnum() or c in "_:")


class Lexer:
    """
    Lazy scanner over one source text.

    Iterating yields tokens up to and including a single EOF token. Each new
    iteration starts again from the beginning of the text. Raises LexError
    at the first byte that cannot start a token.
    """

    def __init__(self, text: str, source: str = "<input>"):
        self.text = text
        self.source = source

    def __iter__(self) -> Iterator[Token]:
        return self._scan()

    def _scan(self) -> Iterator[Token]:
        text = self.text
        n = len(text)
        i = 0
        line = 1
        line_start = 0
        # Byte offset of text[mark], advanced lazily so the scan stays linear.
        mark = 0
        mark_bytes = 0

        def pos(at: int) -> Position:
            nonlocal mark, mark_bytes
            mark_bytes += len(text[mark:at].encode("utf-8"))
            mark = at
            return Position(line, at - line_start + 1, mark_bytes)

        def fail(kind: str, message: str, at: int):
            raise LexError([Diagnostic(kind=kind, message=message,
                                       position=pos(at), source=self.source,
                                       production="token")])

        while i < n:
            c = text[i]

            # Newlines
            if c == "\n":
                line += 1
                i += 1
                line_start = i
                continue

            # Whitespace
            if c in " \t\r":
                i += 1
                continue

            # Single-line comment
            if text.startswith("//", i):
                while i < n and text[i] != "\n":
                    i += 1
                continue

            # Block comment
            if text.startswith("/*", i):
                end = text.find("*/", i + 2)
                if end == -1:
                    fail(UNTERMINATED_COMMENT, "unterminated block comment", i)
                for j in range(i, end):
                    if text[j] == "\n":
                        line += 1
                        line_start = j + 1
                i = end + 2
                continue

            # Documentation comment
            if c == "#":
                j = text.find("\n", i)
                if j == -1:
                    j = n
                body = text[i+1:j].rstrip()
                if body.startswith(" "):
                    body = body[1:]
                yield Token(TOK_DOC, body, pos(i))
                i = j
                continue

            # Arrow, before '-' is taken as a symbol
            if text.startswith("->", i):
                yield Token(TOK_SYMBOL, "->", pos(i))
                i += 2
                continue

            if c in SYMBOLS:
                yield Token(TOK_SYMBOL, c, pos(i))
                i += 1
                continue

            # String literal (decorator arguments)
            if c == '"':
                j = i + 1
                while j < n and text[j] not in '"\n':
                    j += 1
                if j >= n or text[j] != '"':
                    fail(UNTERMINATED_STRING, "unterminated string literal", i)
                yield Token(TOK_STRING, text[i+1:j], pos(i))
                i = j + 1
                continue

            # Number: 0x1f or 31
            if c.isascii() and c.isdigit():
                j = i
                if text.startswith(("0x", "0X"), i):
                    j = i + 2
                    while j < n and text[j] in HEX_DIGITS:
                        j += 1
                    if j == i + 2:
                        fail(MALFORMED_NUMBER,
                             "hexadecimal literal has no digits after '0x'", i)
                else:
                    while j < n and text[j].isascii() and text[j].isdigit():
                        j += 1
                yield Token(TOK_NUMBER, text[i:j], pos(i))
                i = j
                continue

            # Identifier / keyword / service name
            if _ident_start(c):
                j = i + 1
                while j < n:
                    if _ident_char(text[j]):
                        j += 1
                    elif text[j] == "-" and not text.startswith("->", j):
                        j += 1
                    else:
                        break
                yield Token(TOK_IDENT, text[i:j], pos(i))
                i = j
                continue

            fail(UNRECOGNIZED_CHARACTER, f"unexpected character {c!r}", i)

        yield Token(TOK_EOF, "", pos(n))


def tokenize(text: str, source: str = "<input>") -> List[Token]:
    """
    Convert IDL source text into a list of tokens ending with EOF.

    Handles: identifiers, decimal and hex numbers, symbols, string literals,
    doc comments (#), single-line comments (//), block comments (/* ... */),
    and whitespace. Raises LexError on malformed or unterminated constructs
    and on characters that cannot start a token.
    """
    return list(Lexer(text, source))


def parse_number(value: str) -> int:
    if value[:2] in ("0x", "0X"):
        return int(value[2:], 16)
    return int(value)
