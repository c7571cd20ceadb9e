# tests/test_cli.py
"""
Command-line behaviour: one-shot runs, commands and error exit codes.
"""

from __future__ import annotations

import sys
import threading

import pytest

from machinpi import config, runtime
from machinpi.cli import _resolve_inputs, main
from machinpi.output_manager import OutputManager, run_filename
from machinpi.utility import UserInputError, validate_output_setting
from machinpi.workspace import workspace_dir

PI_HEAD = "243f6a8885a308d3 13198a2e03707344"


@pytest.mark.parametrize("items,expected", [
    ([], (None, None)),
    (["64"], (None, 64)),
    (["quick"], ("quick", None)),
    (["quick", "8"], ("quick", 8)),
    (["8", "quick"], (None, 8)),
    (["quick", "fast"], ("quick", None)),
])
def test_resolve_inputs(items, expected):
    assert _resolve_inputs(items) == expected


def test_one_shot_digits(capsys):
    assert main(["8"]) == 0
    out = capsys.readouterr().out
    assert "Machin" in out
    assert PI_HEAD in out
    assert "arctan(1/5)" in out
    assert "arctan(1/239)" in out


def test_quick_profile_verifies(capsys):
    assert main(["quick"]) == 0
    out = capsys.readouterr().out
    assert "Reference check" in out
    assert "OK" in out
    assert config.read_current_profile() == "quick"


def test_no_hex_and_verify_flags(capsys):
    assert main(["4", "--no-hex", "--verify"]) == 0
    out = capsys.readouterr().out
    assert "Reference check" in out
    assert PI_HEAD not in out


def test_quiet_prints_nothing(capsys):
    assert main(["4", "--quiet"]) == 0
    assert capsys.readouterr().out == ""


def test_output_file_gets_plain_text(capsys):
    assert main(["4", "--quiet", "--output", "runs/pi.txt"]) == 0
    text = (workspace_dir() / "runs" / "pi.txt").read_text(encoding="utf-8")
    assert PI_HEAD in text
    assert "\x1b[" not in text


def test_output_directory_gets_one_file_per_run(capsys):
    assert main(["4", "--quiet", "--output", "results/"]) == 0
    assert main(["4", "--quiet", "--output", "results/"]) == 0
    files = sorted(p.name for p in (workspace_dir() / "results").iterdir())
    assert files == ["pi_4d.txt", "pi_4d_2.txt"]


def test_forbidden_output_name(capsys):
    assert main(["4", "--output", "notes.py"]) == 2
    assert "--output" in capsys.readouterr().err


def test_invalid_digit_count(capsys):
    assert main(["0"]) == 2
    assert "digit count" in capsys.readouterr().err


def test_unknown_profile(capsys):
    assert main(["nosuchprofile"]) == 2
    assert "Unknown profile" in capsys.readouterr().out


def test_where_and_profiles_commands(capsys):
    assert main(["where"]) == 0
    out = capsys.readouterr().out
    assert str(workspace_dir()) in out
    assert main(["profiles"]) == 0
    out = capsys.readouterr().out
    assert "quick" in out
    assert "reference" in out


def test_init_overwrite_needs_dev_flag(capsys, monkeypatch):
    monkeypatch.delenv("MACHINPI_DEV", raising=False)
    assert main(["init", "overwrite"]) == 2
    monkeypatch.setenv("MACHINPI_DEV", "1")
    assert main(["init", "overwrite"]) == 0
    assert "overwrote" in capsys.readouterr().out


def test_debug_lists_settings(capsys, monkeypatch):
    monkeypatch.setattr(sys, "excepthook", sys.excepthook)
    monkeypatch.setattr(threading, "excepthook", threading.excepthook)
    assert main(["quick", "2", "--debug", "--no-hex"]) == 0
    err = capsys.readouterr().err
    assert "[debug]" in err
    assert "PRECISION.DIGITS" in err


def test_validate_output_setting():
    assert validate_output_setting(None) is None
    assert validate_output_setting("results/") == "results/"
    assert validate_output_setting("out/pi.txt") == "out/pi.txt"
    with pytest.raises(ValueError):
        validate_output_setting("pyproject.toml")
    with pytest.raises(ValueError):
        validate_output_setting("nul.txt")


def test_output_manager_buffers_and_splits():
    om = OutputManager(output_file="split/", quiet=True, run_name="pi 8d")
    om.write("\x1b[32mhello\x1b[0m")
    assert om.getvalue() == "\x1b[32mhello\x1b[0m\n"
    om.close()
    assert om.path.endswith("pi_8d.txt")
    with open(om.path, encoding="utf-8") as fh:
        assert fh.read() == "hello\n"


def test_output_manager_requires_run_name_for_directories():
    with pytest.raises(ValueError):
        OutputManager(output_file="split/")


def test_run_filename():
    assert run_filename("pi_1000d") == "pi_1000d.txt"
    assert run_filename("///") == "run.txt"


def test_user_input_error_is_exception():
    assert issubclass(UserInputError, Exception)


def test_missing_backend_is_reported_before_import(capsys, monkeypatch):
    real_find_spec = runtime.find_spec
    monkeypatch.setattr(runtime, "find_spec", lambda name: None if name == "sympy" else real_find_spec(name))
    assert main(["4"]) == 1
    out = capsys.readouterr().out
    assert "Missing dependencies" in out
    assert "pip install sympy" in out
