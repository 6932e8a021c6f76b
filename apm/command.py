"""Library for running install scripts and returning the result."""

import logging
import os
import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path

from .exceptions import CommandException

_LOGGER = logging.getLogger(__name__)

_TIMEOUT = 30 * 60.0


# No public API
__all__: list[str] = []


def format_path(path: Path) -> str:
    """Format path for debugging."""
    if path.is_absolute():
        cwd = Path.cwd()
        if path.is_relative_to(cwd):
            rel_path = str(path.relative_to(cwd))
            return f"{rel_path} (abs)"
    return str(path)


@dataclass
class Command:
    """An instance of a command to run."""

    cmd: list[str]
    """Array of command line arguments."""

    cwd: Path | None = None
    """Current working directory."""

    exc: type[CommandException] = CommandException
    """Exception to throw in case of an error."""

    env: dict[str, str] | None = None
    """Environment variables for the subprocess."""

    timeout: float = _TIMEOUT
    """Seconds to wait for the command to finish."""

    @property
    def string(self) -> str:
        """Render the command as a single string."""
        return " ".join([shlex.quote(arg) for arg in self.cmd])

    def __str__(self) -> str:
        """Render as a debug string."""
        cwd: str = ""
        if self.cwd:
            cwd = f"({format_path(self.cwd)}) "
        return f"{cwd}{self.string}"

    def run(self) -> str:
        """Run the command, returning stdout."""
        _LOGGER.debug("Running command: %s", self)
        env = {
            **os.environ,
            **(self.env if self.env else {}),
        }
        try:
            proc = subprocess.run(
                self.cmd,
                capture_output=True,
                cwd=self.cwd,
                env=env,
                timeout=self.timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as err:
            raise self.exc(f"Command '{self}' timed out") from err
        except OSError as err:
            raise self.exc(f"Command '{self}' could not be started: {err}") from err
        if proc.returncode:
            errors = [f"Command '{self}' failed with return code {proc.returncode}"]
            if proc.stdout:
                errors.append(proc.stdout.decode("utf-8", "replace"))
            if proc.stderr:
                errors.append(proc.stderr.decode("utf-8", "replace"))
            _LOGGER.debug("\n".join(errors))
            raise self.exc("\n".join(errors))
        return proc.stdout.decode("utf-8", "replace")


def run(cmd: Command) -> str:
    """Run the specified command and return stdout."""
    return cmd.run()
