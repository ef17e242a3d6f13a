"""
AST for SwIPC interface definitions.

Nodes are frozen dataclasses holding tuples, built once by the parser and
never mutated. Types and interfaces refer to each other by name only
(``NamedReference``, ``Object``); resolving those names is left to whoever
consumes the ``Document``.

Source positions ride along on the nodes that diagnostics point at, but are
excluded from comparison so two parses of equivalent text compare equal.
"""

import enum
import typing
from dataclasses import dataclass, field
from typing import Optional, Tuple, Union

from .diagnostics import Position


# ── Literals ─────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Number:
    """Unsigned integer literal. ``base`` is 16 for ``0x`` literals, else 10."""
    value: int
    base: int = field(default=10, compare=False)

    def __int__(self) -> int:
        return self.value

    def __index__(self) -> int:
        return self.value

    def __str__(self) -> str:
        if self.base == 16:
            return f"0x{self.value:x}"
        return str(self.value)


class VersionNumber(typing.NamedTuple):
    major: int
    minor: int
    patch: int

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


# Upper bound of ``@version(a.b.c+)``.
OPEN_ENDED = "open-ended"


# ── Decorators ───────────────────────────────────────────────────────

class Decorator:
    """Base class for ``@name`` annotations."""


@dataclass(frozen=True)
class Version(Decorator):
    """Range of system versions a function or service exists in."""
    lower: Optional[VersionNumber] = None
    upper: Union[None, VersionNumber, str] = None
    position: Optional[Position] = field(default=None, compare=False)


@dataclass(frozen=True)
class Undocumented(Decorator):
    position: Optional[Position] = field(default=None, compare=False)


@dataclass(frozen=True)
class ManagedPort(Decorator):
    position: Optional[Position] = field(default=None, compare=False)


@dataclass(frozen=True)
class UnknownDecorator(Decorator):
    name: str
    arguments: Tuple[str, ...] = ()
    position: Optional[Position] = field(default=None, compare=False)


# ── Type expressions ─────────────────────────────────────────────────

class Ownership(enum.Enum):
    COPY = "copy"
    MOVE = "move"


class HandleKind(enum.Enum):
    PROCESS = "process"
    THREAD = "thread"
    DEBUG = "debug"
    CODE_MEMORY = "code_memory"
    TRANSFER_MEMORY = "transfer_memory"
    SHARED_MEMORY = "shared_memory"
    SERVER_PORT = "server_port"
    CLIENT_PORT = "client_port"
    SERVER_SESSION = "server_session"
    CLIENT_SESSION = "client_session"
    SERVER_LIGHT_SESSION = "server_light_session"
    CLIENT_LIGHT_SESSION = "client_light_session"
    READABLE_EVENT = "readable_event"
    WRITABLE_EVENT = "writable_event"
    IRQ_EVENT = "irq_event"
    DEVICE_ADDRESS_SPACE = "device_address_space"


class TypeExpr:
    """Base class for everything that can appear in type position."""


class Alias(TypeExpr):
    """Base class for wire-encoding wrappers and named references."""


@dataclass(frozen=True)
class StructField:
    ty: TypeExpr
    name: str
    doc: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Structure(TypeExpr):
    fields: Tuple[StructField, ...]
    size: Optional[Number] = None
    position: Optional[Position] = field(default=None, compare=False)


@dataclass(frozen=True)
class EnumField:
    name: str
    value: Number
    doc: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Enumeration(TypeExpr):
    underlying: str
    fields: Tuple[EnumField, ...]


@dataclass(frozen=True)
class Array(Alias):
    element: TypeExpr
    length: Number


@dataclass(frozen=True)
class Buffer(Alias):
    element: TypeExpr
    size: Number
    alignment: Optional[Number] = None
    position: Optional[Position] = field(default=None, compare=False)


@dataclass(frozen=True)
class Object(Alias):
    interface: str
    position: Optional[Position] = field(default=None, compare=False)


@dataclass(frozen=True)
class Bytes(Alias):
    size: Optional[Number] = None


@dataclass(frozen=True)
class Align(Alias):
    boundary: Number
    inner: TypeExpr
    position: Optional[Position] = field(default=None, compare=False)


@dataclass(frozen=True)
class Pid(Alias):
    pass


@dataclass(frozen=True)
class Handle(Alias):
    ownership: Ownership
    kind: Optional[HandleKind] = None
    position: Optional[Position] = field(default=None, compare=False)


@dataclass(frozen=True)
class NamedReference(Alias):
    name: str
    position: Optional[Position] = field(default=None, compare=False)


# ── Functions and interfaces ─────────────────────────────────────────

@dataclass(frozen=True)
class NamedType:
    ty: TypeExpr
    name: Optional[str] = None


@dataclass(frozen=True)
class NamedTuple:
    """Positional parameter list; names are documentation only."""
    items: Tuple[NamedType, ...] = ()

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self):
        return iter(self.items)

    def __getitem__(self, index):
        return self.items[index]


@dataclass(frozen=True)
class FunctionDef:
    method_id: Number
    name: str
    inputs: NamedTuple
    output: Union[None, NamedType, NamedTuple] = None
    decorators: Tuple[Decorator, ...] = ()
    doc: Tuple[str, ...] = ()
    position: Optional[Position] = field(default=None, compare=False)

    @property
    def outputs(self) -> Tuple[NamedType, ...]:
        """Return values as a tuple, whichever form the source used."""
        if self.output is None:
            return ()
        if isinstance(self.output, NamedType):
            return (self.output,)
        return self.output.items


@dataclass(frozen=True)
class ServiceNameEntry:
    name: str
    decorators: Tuple[Decorator, ...] = ()
    position: Optional[Position] = field(default=None, compare=False)


@dataclass(frozen=True)
class Interface:
    name: str
    functions: Tuple[FunctionDef, ...] = ()
    service_names: Optional[Tuple[ServiceNameEntry, ...]] = None
    doc: Tuple[str, ...] = ()
    position: Optional[Position] = field(default=None, compare=False)

    def function(self, name: str) -> Optional[FunctionDef]:
        for f in self.functions:
            if f.name == name:
                return f
        return None


@dataclass(frozen=True)
class TypeDefinition:
    name: str
    ty: TypeExpr
    doc: Tuple[str, ...] = ()
    position: Optional[Position] = field(default=None, compare=False)


Definition = Union[TypeDefinition, Interface]


@dataclass(frozen=True)
class Document:
    definitions: Tuple[Definition, ...]
    source: str = field(default="<input>", compare=False)

    @property
    def interfaces(self) -> Tuple[Interface, ...]:
        return tuple(d for d in self.definitions if isinstance(d, Interface))

    @property
    def types(self) -> Tuple[TypeDefinition, ...]:
        return tuple(d for d in self.definitions
                     if isinstance(d, TypeDefinition))

    def interface(self, name: str) -> Optional[Interface]:
        for i in self.interfaces:
            if i.name == name:
                return i
        return None

    def type(self, name: str) -> Optional[TypeDefinition]:
        for t in self.types:
            if t.name == name:
                return t
        return None
