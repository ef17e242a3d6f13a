"""
Semantic checks over a parsed (or hand-built) Document.

The validator never changes the tree. It walks every definition and
reports each rule violation it finds; ``validate()`` raises once, with all
of them, after the walk.
"""

from typing import Dict, Iterable, Optional

from .diagnostics import (
    DiagnosticReporter, Position, ValidationError,
    DUPLICATE_METHOD_ID, EMPTY_VERSION_RANGE, INVALID_IDENTIFIER,
    INVERTED_VERSION_RANGE, UNKNOWN_HANDLE_KIND, UNRESOLVABLE_LOCAL_CONSTRAINT,
)
from .model import (
    Align, Array, Buffer, Decorator, Document, Enumeration, FunctionDef,
    Handle, HandleKind, Interface, ManagedPort, NamedReference, NamedTuple,
    NamedType, Object, ServiceNameEntry, Structure,
    TypeDefinition, TypeExpr, Version, VersionNumber,
)
from .types import (
    MANAGED_PORT_NAME_MAX_LEN, SERVICE_NAME_MAX_LEN, is_name, is_service_name,
    is_word,
)


def _is_power_of_two(n: int) -> bool:
    return n > 0 and (n & (n - 1)) == 0


class Validator:

    def __init__(self, source: str = "<input>",
                 max_service_name_length: int = SERVICE_NAME_MAX_LEN,
                 max_managed_port_name_length: int = MANAGED_PORT_NAME_MAX_LEN):
        self.reporter = DiagnosticReporter(source)
        self.max_service_name_length = max_service_name_length
        self.max_managed_port_name_length = max_managed_port_name_length

    def _error(self, kind: str, message: str, position: Optional[Position],
               production: str):
        self.reporter.error(kind, message, position, production)

    # ── Definitions ──────────────────────────────────────────────────

    def check(self, doc: Document) -> DiagnosticReporter:
        for d in doc.definitions:
            if isinstance(d, Interface):
                self._check_interface(d)
            else:
                self._check_typedef(d)
        return self.reporter

    def _check_typedef(self, td: TypeDefinition):
        if not is_name(td.name):
            self._error(INVALID_IDENTIFIER,
                        f"invalid type name {td.name!r}", td.position,
                        "typeDef")
        self._check_type(td.ty, td.position)

    def _check_interface(self, iface: Interface):
        if not is_name(iface.name):
            self._error(INVALID_IDENTIFIER,
                        f"invalid interface name {iface.name!r}",
                        iface.position, "interface")

        for entry in iface.service_names or ():
            self._check_service_name(entry)

        seen: Dict[int, FunctionDef] = {}
        for func in iface.functions:
            cmd = int(func.method_id)
            if cmd in seen:
                first = seen[cmd]
                self._error(DUPLICATE_METHOD_ID,
                            f"method id {cmd} of {iface.name}.{func.name} "
                            f"is already used by {iface.name}.{first.name}",
                            func.position, "funcDef")
            else:
                seen[cmd] = func
            self._check_function(func)

    def _check_service_name(self, entry: ServiceNameEntry):
        if not is_service_name(entry.name):
            self._error(INVALID_IDENTIFIER,
                        f"invalid service name {entry.name!r}",
                        entry.position, "serviceNameList")
        self._check_decorators(entry.decorators)

        managed = any(isinstance(d, ManagedPort) for d in entry.decorators)
        limit = (self.max_managed_port_name_length if managed
                 else self.max_service_name_length)
        size = len(entry.name.encode("utf-8"))
        if size > limit:
            what = "managed port name" if managed else "service name"
            self._error(UNRESOLVABLE_LOCAL_CONSTRAINT,
                        f"{what} {entry.name!r} is {size} bytes, "
                        f"max {limit}",
                        entry.position, "serviceNameList")

    def _check_function(self, func: FunctionDef):
        if not is_word(func.name):
            self._error(INVALID_IDENTIFIER,
                        f"invalid function name {func.name!r}",
                        func.position, "funcDef")
        self._check_decorators(func.decorators)
        self._check_tuple(func.inputs, func.position)
        if isinstance(func.output, NamedType):
            self._check_type(func.output.ty, func.position)
        elif isinstance(func.output, NamedTuple):
            self._check_tuple(func.output, func.position)

    def _check_tuple(self, items: Iterable[NamedType],
                     position: Optional[Position]):
        for item in items:
            self._check_type(item.ty, position)

    # ── Decorators ───────────────────────────────────────────────────

    def _check_decorators(self, decs: Iterable[Decorator]):
        for d in decs:
            if isinstance(d, Version):
                self._check_version(d)

    def _check_version(self, v: Version):
        if v.lower is None and v.upper is None:
            self._error(EMPTY_VERSION_RANGE,
                        "@version() needs at least one bound",
                        v.position, "decorator")
            return
        if (isinstance(v.lower, VersionNumber)
                and isinstance(v.upper, VersionNumber)
                and v.lower > v.upper):
            self._error(INVERTED_VERSION_RANGE,
                        f"version range {v.lower}-{v.upper} is inverted",
                        v.position, "decorator")

    # ── Types ────────────────────────────────────────────────────────

    def _check_type(self, ty: TypeExpr, position: Optional[Position]):
        """Recurse through ``ty``; ``position`` is the nearest located ancestor."""
        position = getattr(ty, "position", None) or position

        if isinstance(ty, Structure):
            if ty.size is not None and int(ty.size) < 0:
                self._error(UNRESOLVABLE_LOCAL_CONSTRAINT,
                            f"structure size {int(ty.size)} is negative",
                            position, "structure")
            for f in ty.fields:
                self._check_type(f.ty, position)
        elif isinstance(ty, Enumeration):
            # Enumerator values may repeat and need not be ordered.
            if not is_name(ty.underlying):
                self._error(INVALID_IDENTIFIER,
                            f"invalid enum underlying type {ty.underlying!r}",
                            position, "enumeration")
        elif isinstance(ty, Array):
            self._check_type(ty.element, position)
        elif isinstance(ty, Buffer):
            self._check_type(ty.element, position)
        elif isinstance(ty, Align):
            if not _is_power_of_two(int(ty.boundary)):
                self._error(UNRESOLVABLE_LOCAL_CONSTRAINT,
                            f"alignment {ty.boundary} is not a power of two",
                            position, "alias")
            self._check_type(ty.inner, position)
        elif isinstance(ty, Handle):
            if ty.kind is not None and not isinstance(ty.kind, HandleKind):
                self._error(UNKNOWN_HANDLE_KIND,
                            f"unknown handle kind {ty.kind!r}",
                            position, "alias")
        elif isinstance(ty, Object):
            if not is_name(ty.interface):
                self._error(INVALID_IDENTIFIER,
                            f"invalid interface name {ty.interface!r}",
                            position, "alias")
        elif isinstance(ty, NamedReference):
            if not is_name(ty.name):
                self._error(INVALID_IDENTIFIER,
                            f"invalid type name {ty.name!r}",
                            position, "alias")


def validate(doc: Document, **options) -> Document:
    """
    Check ``doc`` and return it unchanged.

    Raises ValidationError listing every violation found.
    """
    reporter = Validator(doc.source, **options).check(doc)
    if reporter.has_errors:
        raise ValidationError(reporter.diagnostics)
    return doc
