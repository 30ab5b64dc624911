"""External command execution used for platform probing and line configuration."""

from dataclasses import dataclass
from typing import Callable, Optional, Sequence
import logging
import subprocess

logger = logging.getLogger(__name__)

# Exit code reported when a command could not be launched or timed out
LAUNCH_FAILED = -1


@dataclass(frozen=True)
class CommandResult:
    """Outcome of an external command.

    Attributes:
        exit_code: Process exit status (-1 if the process never completed)
        stdout: Captured standard output
        stderr: Captured standard error
    """
    exit_code: int
    stdout: bytes = b""
    stderr: bytes = b""

    @property
    def succeeded(self) -> bool:
        """True when the command exited with status 0."""
        return self.exit_code == 0


CommandRunner = Callable[..., CommandResult]


def run_command(argv: Sequence[str], timeout: Optional[float] = None) -> CommandResult:
    """Run an external command and capture its output.

    The caller only relies on the exit code; output is kept for diagnostics.

    Args:
        argv: Program and arguments (no shell interpretation)
        timeout: Seconds to wait before giving up (default: no limit)

    Returns:
        CommandResult for the finished process. A command that cannot be
        launched or exceeds the timeout yields exit code -1.

    Example:
        >>> result = run_command(["stty", "--version"])
        >>> result.succeeded
        True
    """
    command = list(argv)
    logger.debug("Running command: %s", " ".join(command))

    try:
        completed = subprocess.run(
            command,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            timeout=timeout,
            check=False
        )
    except subprocess.TimeoutExpired as e:
        logger.debug("Command timed out after %ss: %s", timeout, command[0])
        return CommandResult(LAUNCH_FAILED, e.stdout or b"", e.stderr or b"")
    except OSError as e:
        logger.debug("Command could not be launched: %s (%s)", command[0], e)
        return CommandResult(LAUNCH_FAILED, b"", str(e).encode("utf-8"))

    logger.debug("Command exited with status %d", completed.returncode)
    return CommandResult(completed.returncode, completed.stdout, completed.stderr)
