"""Subprocess execution with enforced timeouts."""

import shutil
import subprocess
from dataclasses import dataclass

from tidydisk.errors import OperationTimeout


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Result of an external command.

    Attributes:
        stdout: Standard output from the command.
        stderr: Standard error from the command.
        returncode: Exit code of the command.
    """

    stdout: str
    stderr: str
    returncode: int

    @property
    def success(self) -> bool:
        return self.returncode == 0


def run_command(
    args: list[str],
    *,
    timeout: float,
    operation: str | None = None,
    cwd: str | None = None,
) -> CommandResult:
    """Run a command, killing it if it outlives its timeout.

    Args:
        args: Command and arguments to execute.
        timeout: Maximum time in seconds to wait for the command.
        operation: Name reported in OperationTimeout (defaults to the program name).
        cwd: Working directory for the command.

    Returns:
        CommandResult with stdout, stderr, and returncode.

    Raises:
        OperationTimeout: If the command exceeds its timeout. The child is killed.
        FileNotFoundError: If the executable is not found.
    """
    try:
        result = subprocess.run(
            args,
            capture_output=True,
            text=True,
            timeout=timeout,
            cwd=cwd,
        )
    except subprocess.TimeoutExpired:
        raise OperationTimeout(operation or args[0], timeout) from None
    return CommandResult(
        stdout=result.stdout,
        stderr=result.stderr,
        returncode=result.returncode,
    )


def command_exists(name: str) -> bool:
    """Check if a command exists in the system PATH."""
    return shutil.which(name) is not None
