"""Tests for command library."""

from pathlib import Path

import pytest

from apm.command import Command, run
from apm.exceptions import CommandException


def test_command() -> None:
    """Test stdout parsing of a command."""
    result = run(Command(["echo", "Hello"]))
    assert result == "Hello\n"


def test_command_cwd_and_env(tmp_path: Path) -> None:
    """Test the working directory and environment of a command."""
    (tmp_path / "build.sh").write_text("echo $APM_TEST\n")
    result = run(Command(["bash", "build.sh"], cwd=tmp_path, env={"APM_TEST": "1"}))
    assert result == "1\n"


def test_failed_command() -> None:
    """Test a failing command."""
    with pytest.raises(CommandException, match="return code 1"):
        run(Command(["/bin/false"]))


def test_failed_command_custom_exception() -> None:
    """Test the exception raised for a failing command can be overridden."""

    class BuildError(CommandException):
        pass

    with pytest.raises(BuildError, match="boom"):
        run(Command(["bash", "-c", "echo boom >&2; exit 2"], exc=BuildError))


def test_command_timeout() -> None:
    """Test a command that does not finish in time."""
    with pytest.raises(CommandException, match="timed out"):
        run(Command(["sleep", "5"], timeout=0.1))


def test_command_not_found() -> None:
    """Test a command that can't be started."""
    with pytest.raises(CommandException, match="could not be started"):
        run(Command(["/does/not/exist"]))
