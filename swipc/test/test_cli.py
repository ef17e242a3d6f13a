"""Tests for the swipc command line."""

import os

from swipc import compile_idl
from swipc.__main__ import main
from swipc.types import service_id

from conftest import TWILI_IDL, TYPED_IDL


def write(tmp_path, name, text):
    path = tmp_path / name
    path.write_text(text)
    return str(path)


class TestCheck:
    def test_ok_summary(self, tmp_path, capsys):
        path = write(tmp_path, "twili.id", TWILI_IDL)
        assert main([path]) == 0
        out = capsys.readouterr().out
        assert f"ok {path}: 3 interfaces, 0 types" in out
        assert f"ITwiliService is twili (serviceId=0x{service_id('twili'):016x})" in out

    def test_managed_port_summary(self, tmp_path, capsys):
        path = write(tmp_path, "sm.id", TYPED_IDL)
        assert main([path]) == 0
        out = capsys.readouterr().out
        assert "sunrise::IUserInterface is sm: (managed port)" in out
        assert "5 types" in out

    def test_errors_reported(self, tmp_path, capsys):
        path = write(tmp_path, "bad.id", "interface I {\n  [0] a();\n  [0] b();\n}\n")
        assert main([path]) == 1
        err = capsys.readouterr().err
        assert f"{path}:3:3: error:" in err
        assert "[DuplicateMethodId]" in err
        assert "    [0] b();\n      ^" in err
        assert "1 of 1 files had errors" in err

    def test_keeps_going_after_bad_file(self, tmp_path, capsys):
        bad = write(tmp_path, "bad.id", "type t = ;")
        good = write(tmp_path, "twili.id", TWILI_IDL)
        assert main([bad, good]) == 1
        captured = capsys.readouterr()
        assert f"ok {good}" in captured.out
        assert "[UnexpectedToken]" in captured.err

    def test_missing_file(self, tmp_path, capsys):
        assert main([str(tmp_path / "nope.id")]) == 1
        assert "error:" in capsys.readouterr().err


class TestOptions:
    def test_config_file(self, tmp_path, capsys):
        config = write(tmp_path, "swipc.yaml",
                       "validator:\n  max_service_name_length: 16\n")
        path = write(tmp_path, "long.id", "interface I is toolongname {}\n")
        assert main([path]) == 1
        assert main([path, "--config", config]) == 0

    def test_bad_config(self, tmp_path, capsys):
        config = write(tmp_path, "swipc.yaml", "bogus: 1\n")
        path = write(tmp_path, "twili.id", TWILI_IDL)
        assert main([path, "--config", config]) == 2
        assert "Unknown section" in capsys.readouterr().err

    def test_max_nesting_flag(self, tmp_path, capsys):
        path = write(tmp_path, "deep.id", "type t = array<array<u8, 1>, 1>;\n")
        assert main([path, "--max-nesting", "2"]) == 1
        assert "[NestingTooDeep]" in capsys.readouterr().err
        assert main([path, "--max-nesting", "3"]) == 0

    def test_bad_max_nesting(self, tmp_path, capsys):
        path = write(tmp_path, "twili.id", TWILI_IDL)
        assert main([path, "--max-nesting", "0"]) == 2


class TestFormat:
    def test_stdout(self, tmp_path, capsys):
        path = write(tmp_path, "twili.id", TWILI_IDL)
        assert main([path, "--format"]) == 0
        out = capsys.readouterr().out
        assert compile_idl(out) == compile_idl(TWILI_IDL)

    def test_outdir(self, tmp_path, capsys):
        path = write(tmp_path, "sm.id", TYPED_IDL)
        outdir = tmp_path / "formatted"
        assert main([path, "--format", "--outdir", str(outdir)]) == 0
        out_path = os.path.join(str(outdir), "sm.id")
        assert f"wrote {out_path}" in capsys.readouterr().out
        with open(out_path) as f:
            assert compile_idl(f.read()) == compile_idl(TYPED_IDL)
