"""Tests for semantic validation."""

import pytest

from swipc import CompileError, Options, check, compile_idl
from swipc.diagnostics import (
    ValidationError,
    DUPLICATE_METHOD_ID, EMPTY_VERSION_RANGE, INVALID_IDENTIFIER,
    INVERTED_VERSION_RANGE, UNKNOWN_HANDLE_KIND, UNRESOLVABLE_LOCAL_CONSTRAINT,
)
from swipc.model import (
    Align, Document, FunctionDef, Handle, Interface, NamedReference,
    NamedTuple, NamedType, Number, Object, Ownership, ServiceNameEntry,
    StructField, Structure, TypeDefinition, Version, VersionNumber,
)
from swipc.types import is_name, is_service_name, is_word, service_id
from swipc.validator import Validator, validate

from conftest import TYPED_IDL


def kinds(text, **kwargs):
    return [d.kind for d in check(text, **kwargs)]


def typedef(ty):
    return Document((TypeDefinition("t", ty),))


# -- Method ids -------------------------------------------------------------

class TestMethodIds:
    def test_duplicate_rejected(self):
        text = "interface I { [0] a(); [0] b(); }"
        assert kinds(text) == [DUPLICATE_METHOD_ID]

    def test_duplicate_message_names_both(self):
        (diag,) = check("interface I { [0] a(); [0] b(); }")
        assert "I.b" in diag.message
        assert "I.a" in diag.message

    def test_duplicate_points_at_second(self):
        (diag,) = check("interface I {\n  [0] a();\n  [0] b();\n}")
        assert diag.position.line == 3

    def test_hex_and_decimal_collide(self):
        assert kinds("interface I { [0x1] a(); [1] b(); }") == [DUPLICATE_METHOD_ID]

    def test_same_id_in_different_interfaces(self):
        assert kinds("interface A { [0] a(); } interface B { [0] a(); }") == []

    def test_every_interface_reported(self):
        text = ("interface A { [0] a(); [0] b(); }\n"
                "interface B { [1] a(); [1] b(); [1] c(); }")
        assert kinds(text) == [DUPLICATE_METHOD_ID] * 3


# -- Versions ---------------------------------------------------------------

class TestVersions:
    def test_inverted_range(self):
        text = "interface I { @version(1.2.3-1.0.0) [0] a(); }"
        assert kinds(text) == [INVERTED_VERSION_RANGE]

    def test_forward_range(self):
        assert kinds("interface I { @version(1.0.0-1.2.3) [0] a(); }") == []

    def test_equal_bounds(self):
        assert kinds("interface I { @version(1.0.0-1.0.0) [0] a(); }") == []

    def test_open_ranges(self):
        text = "interface I { @version(1.0.0+) [0] a(); @version(-2.0.0) [1] b(); }"
        assert kinds(text) == []

    def test_empty_range(self):
        assert kinds("interface I { @version() [0] a(); }") == [EMPTY_VERSION_RANGE]

    def test_on_service_name(self):
        text = "interface I is @version(2.0.0-1.0.0) foo {}"
        assert kinds(text) == [INVERTED_VERSION_RANGE]


# -- Service names ----------------------------------------------------------

class TestServiceNames:
    def test_too_long(self):
        text = "interface I is toolongname {}"
        assert kinds(text) == [UNRESOLVABLE_LOCAL_CONSTRAINT]

    def test_eight_bytes_fit(self):
        assert kinds("interface I is abcdefgh {}") == []

    def test_managed_port_limit(self):
        assert kinds("interface I is @managedport toolongname {}") == []
        text = "interface I is @managedport muchtoolongname {}"
        assert kinds(text) == [UNRESOLVABLE_LOCAL_CONSTRAINT]

    def test_limit_from_options(self):
        options = Options(max_service_name_length=16)
        assert kinds("interface I is toolongname {}", options=options) == []


# -- Types ------------------------------------------------------------------

class TestTypes:
    def test_enum_duplicates_allowed(self):
        assert kinds("type e = enum<u8> { A = 1; B = 1; C = 0; };") == []

    def test_align_power_of_two(self):
        assert kinds("type a = align<3, u8>;") == [UNRESOLVABLE_LOCAL_CONSTRAINT]
        assert kinds("type a = align<0x8, u8>;") == []

    def test_buffer_alignment_unchecked(self):
        assert kinds("type b = buffer<u8, 0x5, 3>;") == []

    def test_nested_align_checked(self):
        text = "interface I { [0] f(array<align<6, u8>, 2> x); }"
        assert kinds(text) == [UNRESOLVABLE_LOCAL_CONSTRAINT]

    def test_named_references_not_resolved(self):
        assert kinds("type a = does::not::Exist;") == []
        assert kinds("interface I { [0] f() -> object<Nowhere>; }") == []


# -- Hand-built trees -------------------------------------------------------

class TestProgrammaticAst:
    def test_bogus_handle_kind(self):
        reporter = Validator().check(typedef(Handle(Ownership.COPY, "bogus_kind")))
        assert [d.kind for d in reporter.diagnostics] == [UNKNOWN_HANDLE_KIND]

    def test_bad_reference_name(self):
        reporter = Validator().check(typedef(NamedReference("not-a-name")))
        assert [d.kind for d in reporter.diagnostics] == [INVALID_IDENTIFIER]

    def test_bad_object_name(self):
        reporter = Validator().check(typedef(Object("1Pipe")))
        assert [d.kind for d in reporter.diagnostics] == [INVALID_IDENTIFIER]

    def test_negative_struct_size(self):
        ty = Structure((StructField(NamedReference("u8"), "a"),), Number(-1))
        reporter = Validator().check(typedef(ty))
        assert [d.kind for d in reporter.diagnostics] == [UNRESOLVABLE_LOCAL_CONSTRAINT]

    def test_bad_align(self):
        reporter = Validator().check(typedef(Align(Number(12), NamedReference("u8"))))
        assert [d.kind for d in reporter.diagnostics] == [UNRESOLVABLE_LOCAL_CONSTRAINT]

    def test_all_errors_collected(self):
        func = FunctionDef(Number(0), "f", NamedTuple((NamedType(Handle(Ownership.MOVE, "x")),)),
                           decorators=(Version(VersionNumber(2, 0, 0),
                                               VersionNumber(1, 0, 0)),))
        iface = Interface("bad name", (func, func),
                          (ServiceNameEntry("fine"),))
        reporter = Validator().check(Document((iface,)))
        assert sorted(d.kind for d in reporter.diagnostics) == sorted([
            INVALID_IDENTIFIER, DUPLICATE_METHOD_ID,
            UNKNOWN_HANDLE_KIND, UNKNOWN_HANDLE_KIND,
            INVERTED_VERSION_RANGE, INVERTED_VERSION_RANGE,
        ])

    def test_validate_returns_document(self, twili_doc):
        assert validate(twili_doc) is twili_doc

    def test_validate_raises(self):
        doc = typedef(Align(Number(3), NamedReference("u8")))
        with pytest.raises(ValidationError) as exc:
            validate(doc)
        assert exc.value.diagnostics[0].kind == UNRESOLVABLE_LOCAL_CONSTRAINT


# -- Entry points -----------------------------------------------------------

class TestCompile:
    def test_compile_raises_with_all_diagnostics(self):
        text = ("interface A { [0] a(); [0] b(); }\n"
                "interface B { @version() [0] a(); }")
        with pytest.raises(CompileError) as exc:
            compile_idl(text, "bad.id")
        assert [d.kind for d in exc.value.diagnostics] == [
            DUPLICATE_METHOD_ID, EMPTY_VERSION_RANGE]
        assert all(d.source == "bad.id" for d in exc.value.diagnostics)

    def test_compile_wraps_lex_errors(self):
        with pytest.raises(CompileError) as exc:
            compile_idl("type a = 0x;")
        assert exc.value.diagnostics[0].kind == "MalformedNumber"

    def test_check_clean(self):
        assert check(TYPED_IDL) == []

    def test_parse_errors_stop_before_validation(self):
        text = "interface I { [0] a(); [0] b(); [1] c() -> ; }"
        assert kinds(text) == ["UnexpectedToken"]

    def test_diagnostic_is_structured(self):
        (diag,) = check("interface I { [0] a(); [0] b(); }", source="x.id")
        assert diag.severity.value == "error"
        assert diag.position.line == 1
        assert diag.position.column == 24
        assert diag.position.byte_offset == 23
        assert str(diag).startswith("x.id:1:24: error:")


# -- Identifier classes -----------------------------------------------------

class TestIdentifiers:
    def test_name(self):
        assert is_name("nn::sm::IUserInterface")
        assert not is_name("fsp-srv")
        assert not is_name("9lives")

    def test_service_name(self):
        assert is_service_name("fsp-srv")
        assert is_service_name("twili:m")
        assert not is_service_name("-srv")

    def test_word(self):
        assert is_word("max_handles")
        assert not is_word("a::b")

    def test_service_id(self):
        assert service_id("sm:") == 0x3a6d73
        assert service_id("") == 0

    def test_service_id_too_long(self):
        with pytest.raises(ValueError):
            service_id("toolongname")
