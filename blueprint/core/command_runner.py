"""Execution of external commands (systemctl, podman, journalctl)."""
import os
import subprocess
from dataclasses import dataclass
from typing import Callable, Optional

from blueprint.core.config import get_config
from blueprint.core.errors import CommandError, is_absent_error
from blueprint.core.logger import get_logger

logger = get_logger(__name__)


class CommandRunner:
    """Runs shell commands and surfaces failures as CommandError."""

    def __init__(self, mock: bool = False, timeout: Optional[int] = None):
        self.mock = mock or os.environ.get('BLUEPRINT_MOCK', '').lower() in ('1', 'true')
        self.timeout = timeout if timeout is not None else get_config().command_timeout

    def run(self, command: str, input: Optional[str] = None) -> str:
        """Run a shell command and return its stdout.

        Args:
            command: Shell command line
            input: Optional text piped to the command's stdin (used for secret values)

        Returns:
            Captured stdout

        Raises:
            CommandError: If the command exits non-zero or times out
        """
        logger.debug(f"$ {command}")

        if self.mock:
            logger.info(f"MOCK: Would run: {command}")
            return ""

        try:
            result = subprocess.run(
                command,
                shell=True,
                input=input,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise CommandError(command, -1, stderr=f"timed out after {e.timeout}s") from e

        if result.returncode != 0:
            raise CommandError(command, result.returncode, result.stdout, result.stderr)

        return result.stdout


@dataclass
class StepResult:
    """Outcome of a best-effort step.

    Attributes:
        ok: The step succeeded
        error: The error raised, if any
        absent: The error only meant the target was already gone
    """
    ok: bool
    error: Optional[BaseException] = None
    absent: bool = False

    @property
    def unexpected(self) -> bool:
        return not self.ok and not self.absent


def attempt(description: str, action: Callable[[], object]) -> StepResult:
    """Run a best-effort step, classifying and logging any failure.

    Already-absent targets are logged at debug level only; anything else is
    logged as a warning. The error is returned, never raised.
    """
    try:
        action()
    except (CommandError, OSError) as e:
        if is_absent_error(e):
            logger.debug(f"{description}: already absent")
            return StepResult(ok=False, error=e, absent=True)
        logger.warning(f"{description} failed: {e}")
        return StepResult(ok=False, error=e)
    return StepResult(ok=True)
