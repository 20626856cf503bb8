"""Execution engine base types and interfaces."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

DEFAULT_MAX_OUTPUT_BYTES = 32 * 1024 * 1024


class OutputLimitExceeded(RuntimeError):
    """Raised when a command writes more output than the executor accepts."""


@dataclass(frozen=True)
class ExecutionResult:
    """Result of executing a command.

    Attributes:
        command: The command executed as a list of strings.
        stdout: Captured standard output.
        stderr: Captured standard error.
        exit_code: Exit code returned by the process.
        duration_s: Duration of the execution in seconds.
    """

    command: list[str]
    stdout: str
    stderr: str
    exit_code: int
    duration_s: float

    @property
    def combined_output(self) -> str:
        """Return stderr and stdout joined, in that order."""

        return "\n".join(part for part in (self.stderr, self.stdout) if part)


class CommandExecutor(ABC):
    """Abstract base class for command execution engines."""

    @abstractmethod
    def run(
        self,
        command: list[str],
        cwd: Path | None = None,
        timeout_s: int | None = None,
        env: dict[str, str] | None = None,
        *,
        visible: bool = False,
    ) -> ExecutionResult:
        """Run a command and capture its results.

        Args:
            command: The command to execute as an argument vector.
            cwd: Optional working directory for the command.
            timeout_s: Optional timeout in seconds.
            env: Optional environment variables to include.
            visible: Whether the process may show a window (for credential prompts).

        Returns:
            ExecutionResult containing stdout, stderr, exit code, and duration.
        """
