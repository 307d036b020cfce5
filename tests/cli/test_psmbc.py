#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

from pathlib import Path

import pytest

import psmbc
from psmb_context import LogLevel
from psmb_paths import DEFAULT_MAX_DEPTH


def _patch_handlers(monkeypatch):
    calls = []

    def _mk_handler(name):
        def _handler(args):
            calls.append((name, args))
            return 0

        return _handler

    monkeypatch.setattr(psmbc, "cmd_build", _mk_handler("build"))
    monkeypatch.setattr(psmbc, "cmd_check", _mk_handler("check"))
    monkeypatch.setattr(psmbc, "cmd_tok", _mk_handler("tok"))
    return calls


def _run_main(argv):
    with pytest.raises(SystemExit) as exc:
        psmbc.main(argv)
    return exc.value.code


def test_build_arguments(monkeypatch):
    calls = _patch_handlers(monkeypatch)

    rc = _run_main(["-vvv", "build", "-o", "out/My.psm1", "--known-alias", "gf=Get-File", "src"])

    assert rc == 0
    name, args = calls[0]
    assert name == "build"
    assert args.root == "src"
    assert args.output == "out/My.psm1"
    assert args.max_depth == DEFAULT_MAX_DEPTH
    assert psmbc.build_context(args).log_level is LogLevel.DEBUG
    assert psmbc.build_context(args).external_alias_target("GF") == "Get-File"


def test_max_depth_defaults_from_environment(monkeypatch):
    monkeypatch.setenv("PSMB_MAX_DEPTH", "3")
    calls = _patch_handlers(monkeypatch)

    _run_main(["check", "src"])

    _, args = calls[0]
    assert args.max_depth == 3


def test_tok_alias(monkeypatch):
    calls = _patch_handlers(monkeypatch)

    _run_main(["tokens", "file.ps1"])

    assert calls[0][0] == "tok"
    assert calls[0][1].file == "file.ps1"


def test_default_verbosity_reports_warnings():
    args = psmbc.argparse.Namespace(verbosity=0, log=False, known_alias=[])

    assert psmbc.build_context(args).log_level is LogLevel.WARNING


def test_build_writes_module(write_ps1, source_root: Path, tmp_path: Path):
    write_ps1("Get-Foo.ps1", "param()\n'foo'\n")
    output = tmp_path / "Foo.psm1"

    rc = _run_main(["build", "-o", str(output), str(source_root)])

    assert rc == 0
    assert "function Get-Foo {" in output.read_text(encoding="utf-8")


def test_build_failure_prints_diagnostic(write_ps1, source_root: Path, tmp_path: Path, capsys):
    write_ps1("bad.ps1", "Write-Host 'side effect'\n")
    output = tmp_path / "Foo.psm1"

    rc = _run_main(["build", "-o", str(output), str(source_root)])

    assert rc == 1
    assert not output.exists()
    err = capsys.readouterr().err
    assert "[CLS-0010]" in err
    assert "    1 | Write-Host 'side effect'" in err
    assert "^" in err


def test_check_prints_module(write_ps1, source_root: Path, capsys):
    write_ps1("Helper.ps1", "function Helper { }\n")

    rc = _run_main(["check", "--print", str(source_root)])

    assert rc == 0
    assert "#region Function\nfunction Helper { }\n#endregion" in capsys.readouterr().out


def test_tok_dumps_tokens(write_ps1, capsys):
    path = write_ps1("Get-Foo.ps1", "param()\n")

    rc = _run_main(["tok", str(path)])

    assert rc == 0
    out = capsys.readouterr().out
    assert ":1:1:\tPARAM" in out
    assert "EOF" not in out
