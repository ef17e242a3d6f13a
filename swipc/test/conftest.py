"""Shared fixtures for swipc tests."""

import pytest
import sys
import os

# Add the project root to sys.path so 'swipc' is importable without installing
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", ".."))

from swipc import compile_idl
from swipc.lexer import tokenize
from swipc.parser import Parser


TWILI_IDL = """\
# Twili service, hands out the stdio pipes of processes it launched.
interface ITwiliService is twili {
    # Recover the stdin, stdout and stderr pipes of the given process.
    [0] open_pipes(pid) -> (object<IPipe> stdin, object<IPipe> stdout, object<IPipe> stderr);
    # Ask twili to reboot the board.
    [1] reboot();
}

interface ITwiliManagerService is twili:m {
    [0] open_pipes(u64 pid) -> (object<IPipe> stdin, object<IPipe> stdout, object<IPipe> stderr);
    [1] create_generic_process(u64 size) -> object<IPipe>;
}

interface IPipe {
    # Read up to 6 bytes from the pipe.
    [0] read() -> (u64 size, array<u8, 0x6> buf);
    [1] write(array<u8, 0x5> buf);
}
"""


TYPED_IDL = """\
# Result code wrapper.
type result = u32;
type nn::sm::ServiceName = bytes<8>;

type KernelStats = struct<0x18> {
    # Number of live processes.
    u64 processes;
    u64 threads;
    array<u8, 8> reserved;
};

type ExitReason = enum<u32> {
    Normal = 0;
    Killed = 0x1;
    Crashed = 2;
};

type AlignedBuf = align<0x10, array<u8, 0x20>>;

# Service manager, the first service every process talks to.
interface sunrise::IUserInterface is @managedport sm:, @version(1.0.0+) sm:u, {
    @version(1.0.0-2.0.0)
    [0] initialize(pid, u64 reserved);
    @undocumented
    [1] get_service(nn::sm::ServiceName name) -> handle<move, client_session>;
    [2] register_service(u64 name, bool is_light, u32 max_handles) -> handle<move, server_port>;
    [3] wait_for_event() -> (handle<copy, readable_event> event,);
    [4] send_buffer(buffer<u8, 0x5, 0x100> data);
    @deprecated("use send_buffer") @category(kernel, 2)
    [5] send_bytes(bytes<0x40> data);
}
"""


def parse_text(text, **kwargs):
    """Lex and parse without validating."""
    return Parser(tokenize(text), **kwargs).parse()


@pytest.fixture
def twili_doc():
    """Validated twili Document."""
    return compile_idl(TWILI_IDL, "twili.id")


@pytest.fixture
def typed_doc():
    """Validated Document with type definitions and decorators."""
    return compile_idl(TYPED_IDL, "sm.id")
