"""
Identifier classes and service-name encoding.
"""

import re

# Type and interface names: "nn::fssrv::sf::IFileSystem", "u64".
NAME_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_:]*\Z")

# Service names additionally allow '-': "fsp-srv", "twili:m".
SERVICE_NAME_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_:\-]*\Z")

# Parameter, field and decorator names.
WORD_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*\Z")


# sm: registers services by a u64; managed ports are named by the kernel.
SERVICE_NAME_MAX_LEN = 8
MANAGED_PORT_NAME_MAX_LEN = 12


def is_name(s: str) -> bool:
    return NAME_RE.match(s) is not None


def is_service_name(s: str) -> bool:
    return SERVICE_NAME_RE.match(s) is not None


def is_word(s: str) -> bool:
    return WORD_RE.match(s) is not None


def service_id(name: str) -> int:
    """Pack a service name into the little-endian u64 the service manager uses."""
    raw = name.encode("utf-8")
    if len(raw) > SERVICE_NAME_MAX_LEN:
        raise ValueError(
            f"service name {name!r} is {len(raw)} bytes, "
            f"max {SERVICE_NAME_MAX_LEN}")
    h = 0
    for i, b in enumerate(raw):
        h |= b << (8 * i)
    return h
