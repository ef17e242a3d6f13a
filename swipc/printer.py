"""
Printer: renders a Document back to canonical IDL text.

Output re-parses to a Document equal to the one printed. Numbers keep the
base they were written in; doc comments and decorators are preserved.
"""

from typing import Iterable, List, Optional, Union

from .model import (
    Align, Array, Buffer, Bytes, Decorator, Document, Enumeration,
    FunctionDef, Handle, Interface, ManagedPort, NamedReference, NamedTuple,
    NamedType, Object, OPEN_ENDED, Pid, Structure, TypeDefinition, TypeExpr,
    Undocumented, UnknownDecorator, Version,
)
from .types import is_word

INDENT = "    "


def _docs(doc: Iterable[str], indent: str) -> List[str]:
    return [f"{indent}# {line}".rstrip() for line in doc]


def format_decorator(dec: Decorator) -> str:
    if isinstance(dec, Undocumented):
        return "@undocumented"
    if isinstance(dec, ManagedPort):
        return "@managedport"
    if isinstance(dec, Version):
        if dec.lower is None and dec.upper is None:
            return "@version()"
        if dec.lower is None:
            return f"@version(-{dec.upper})"
        if dec.upper == OPEN_ENDED:
            return f"@version({dec.lower}+)"
        if dec.lower == dec.upper:
            return f"@version({dec.lower})"
        return f"@version({dec.lower}-{dec.upper})"
    if isinstance(dec, UnknownDecorator):
        if not dec.arguments:
            return f"@{dec.name}"
        args = ", ".join(a if is_word(a) or a.isdigit() else f'"{a}"'
                         for a in dec.arguments)
        return f"@{dec.name}({args})"
    raise TypeError(f"cannot format decorator {dec!r}")


def format_type(ty: TypeExpr, indent: str = "") -> str:
    """Render a type expression. Structures and enums span several lines."""
    if isinstance(ty, Structure):
        head = "struct" if ty.size is None else f"struct<{ty.size}>"
        lines = [f"{head} {{"]
        inner = indent + INDENT
        for f in ty.fields:
            lines += _docs(f.doc, inner)
            lines.append(f"{inner}{format_type(f.ty, inner)} {f.name};")
        lines.append(f"{indent}}}")
        return "\n".join(lines)
    if isinstance(ty, Enumeration):
        lines = [f"enum<{ty.underlying}> {{"]
        inner = indent + INDENT
        for f in ty.fields:
            lines += _docs(f.doc, inner)
            lines.append(f"{inner}{f.name} = {f.value};")
        lines.append(f"{indent}}}")
        return "\n".join(lines)
    if isinstance(ty, Array):
        return f"array<{format_type(ty.element, indent)}, {ty.length}>"
    if isinstance(ty, Buffer):
        args = f"{format_type(ty.element, indent)}, {ty.size}"
        if ty.alignment is not None:
            args += f", {ty.alignment}"
        return f"buffer<{args}>"
    if isinstance(ty, Object):
        return f"object<{ty.interface}>"
    if isinstance(ty, Bytes):
        return "bytes" if ty.size is None else f"bytes<{ty.size}>"
    if isinstance(ty, Align):
        return f"align<{ty.boundary}, {format_type(ty.inner, indent)}>"
    if isinstance(ty, Pid):
        return "pid"
    if isinstance(ty, Handle):
        if ty.kind is None:
            return f"handle<{ty.ownership.value}>"
        return f"handle<{ty.ownership.value}, {ty.kind.value}>"
    if isinstance(ty, NamedReference):
        return ty.name
    raise TypeError(f"cannot format type {ty!r}")


def _named_type(nt: NamedType, indent: str) -> str:
    text = format_type(nt.ty, indent)
    return text if nt.name is None else f"{text} {nt.name}"


def _named_tuple(tup: NamedTuple, indent: str) -> str:
    return "(" + ", ".join(_named_type(nt, indent) for nt in tup) + ")"


def format_function(func: FunctionDef, indent: str = INDENT) -> str:
    lines = _docs(func.doc, indent)
    lines += [f"{indent}{format_decorator(d)}" for d in func.decorators]
    text = (f"{indent}[{func.method_id}] {func.name}"
            f"{_named_tuple(func.inputs, indent)}")
    output: Optional[Union[NamedType, NamedTuple]] = func.output
    if isinstance(output, NamedTuple):
        text += f" -> {_named_tuple(output, indent)}"
    elif isinstance(output, NamedType):
        text += f" -> {_named_type(output, indent)}"
    lines.append(text + ";")
    return "\n".join(lines)


def format_interface(iface: Interface) -> str:
    lines = _docs(iface.doc, "")
    head = f"interface {iface.name}"
    if iface.service_names:
        names = []
        for entry in iface.service_names:
            decs = "".join(f"{format_decorator(d)} " for d in entry.decorators)
            names.append(f"{decs}{entry.name}")
        head += " is " + ", ".join(names)
    lines.append(head + " {")
    lines += [format_function(f) for f in iface.functions]
    lines.append("}")
    return "\n".join(lines)


def format_typedef(td: TypeDefinition) -> str:
    lines = _docs(td.doc, "")
    lines.append(f"type {td.name} = {format_type(td.ty)};")
    return "\n".join(lines)


def format_document(doc: Document) -> str:
    parts = []
    for d in doc.definitions:
        if isinstance(d, Interface):
            parts.append(format_interface(d))
        else:
            parts.append(format_typedef(d))
    return "\n\n".join(parts) + "\n"
