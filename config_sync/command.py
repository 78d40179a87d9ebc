"""Library for issuing commands using asyncio and returning the result.

Commands are awaited one at a time by callers. No timeout is applied here:
cancelling the awaiting task terminates the child process.
"""

import asyncio
import logging
import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path
import os

from .exceptions import CommandException

_LOGGER = logging.getLogger(__name__)


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

    async def run(self, stdin: bytes | None = None) -> bytes:
        """Run the command, returning stdout."""
        _LOGGER.debug("Running command: %s", self)
        env = {
            **os.environ,
            **(self.env if self.env else {}),
        }
        proc = await asyncio.create_subprocess_exec(
            *self.cmd,
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            cwd=self.cwd,
            env=env,
        )
        try:
            out, err = await proc.communicate(stdin)
        except asyncio.CancelledError:
            _LOGGER.debug("Cancelled, killing command: %s", self)
            proc.kill()
            await proc.wait()
            raise
        if proc.returncode:
            errors = [f"Command '{self}' failed with return code {proc.returncode}"]
            if out:
                errors.append(out.decode("utf-8"))
            if err:
                errors.append(err.decode("utf-8"))
            _LOGGER.debug("\n".join(errors))
            raise self.exc("\n".join(errors))
        return out


async def run(cmd: Command, stdin: bytes | None = None) -> str:
    """Run the specified command and return stdout."""
    out = await cmd.run(stdin)
    return out.decode("utf-8") if out else ""
