"""
Diagnostics: source positions, error records, and the exceptions that carry them.

Every failure the front end can produce is described by a ``Diagnostic``.
Lexing stops at the first bad byte; parsing and validation keep going and
accumulate into a ``DiagnosticReporter`` so that one run reports as many
independent problems as it can find.
"""

import enum
from dataclasses import dataclass
from typing import Iterable, List, Optional

# Lex errors.
MALFORMED_NUMBER = "MalformedNumber"
UNTERMINATED_COMMENT = "UnterminatedComment"
UNTERMINATED_STRING = "UnterminatedString"
UNRECOGNIZED_CHARACTER = "UnrecognizedCharacter"

# Parse errors.
UNEXPECTED_TOKEN = "UnexpectedToken"
UNEXPECTED_END_OF_INPUT = "UnexpectedEndOfInput"
EMPTY_DOCUMENT = "EmptyDocument"
UNKNOWN_HANDLE_KIND = "UnknownHandleKind"
DUPLICATE_TEMPLATE_PARAMETER = "DuplicateTemplateParameter"
NESTING_TOO_DEEP = "NestingTooDeep"

# Validation errors.
DUPLICATE_METHOD_ID = "DuplicateMethodId"
INVERTED_VERSION_RANGE = "InvertedVersionRange"
EMPTY_VERSION_RANGE = "EmptyVersionRange"
UNRESOLVABLE_LOCAL_CONSTRAINT = "UnresolvableLocalConstraint"
INVALID_IDENTIFIER = "InvalidIdentifier"


class Severity(enum.Enum):
    ERROR = "error"


@dataclass(frozen=True)
class Position:
    """1-based line and column, plus the 0-based UTF-8 byte offset."""
    line: int
    column: int
    byte_offset: int

    def __str__(self) -> str:
        return f"{self.line}:{self.column}"


@dataclass(frozen=True)
class Diagnostic:
    kind: str
    message: str
    position: Optional[Position] = None
    severity: Severity = Severity.ERROR
    source: str = "<input>"
    production: Optional[str] = None

    def __str__(self) -> str:
        where = self.source
        if self.position is not None:
            where = f"{where}:{self.position}"
        return f"{where}: {self.severity.value}: {self.message} [{self.kind}]"


def render(diag: Diagnostic, text: Optional[str] = None) -> str:
    """
    Format a diagnostic for a terminal.

    When the source text is given, the offending line is quoted under the
    message with a caret at the reported column.
    """
    out = str(diag)
    if text is None or diag.position is None:
        return out
    lines = text.splitlines()
    if 1 <= diag.position.line <= len(lines):
        src = lines[diag.position.line - 1].expandtabs(1)
        out += f"\n    {src}\n    {' ' * (diag.position.column - 1)}^"
    return out


class IdlError(Exception):
    """Base class for every error the front end raises."""

    def __init__(self, diagnostics: List[Diagnostic]):
        self.diagnostics = list(diagnostics)
        super().__init__("\n".join(str(d) for d in self.diagnostics))


class LexError(IdlError):
    """Raised when the source text cannot be tokenized."""

    @property
    def diagnostic(self) -> Diagnostic:
        return self.diagnostics[0]


class ParseError(IdlError):
    """Raised when the token stream does not match the grammar."""


class ValidationError(IdlError):
    """Raised when a structurally valid document breaks a semantic rule."""


class CompileError(IdlError):
    """Raised by ``compile_idl`` with everything found in one pass."""


class DiagnosticReporter:
    """Collects diagnostics for one source."""

    def __init__(self, source: str = "<input>"):
        self.source = source
        self.diagnostics: List[Diagnostic] = []

    def error(self, kind: str, message: str,
              position: Optional[Position] = None,
              production: Optional[str] = None) -> Diagnostic:
        diag = Diagnostic(kind=kind, message=message, position=position,
                          source=self.source, production=production)
        self.diagnostics.append(diag)
        return diag

    def extend(self, diags: Iterable[Diagnostic]):
        self.diagnostics.extend(diags)

    @property
    def has_errors(self) -> bool:
        return any(d.severity is Severity.ERROR for d in self.diagnostics)

    def __len__(self) -> int:
        return len(self.diagnostics)
