"""Local execution engine implementation."""

from __future__ import annotations

import locale
import os
import subprocess
import sys
import tempfile
import time
from pathlib import Path
from typing import IO

from vstfs.execution.base import (
    DEFAULT_MAX_OUTPUT_BYTES,
    CommandExecutor,
    ExecutionResult,
    OutputLimitExceeded,
)
from vstfs.util.logging import get_logger


class LocalExecutor(CommandExecutor):
    """Execute commands on the local host.

    Output is spooled to temporary files rather than pipes so that a runaway
    command cannot grow process memory past ``max_output_bytes``.
    """

    def __init__(
        self,
        *,
        encoding: str | None = None,
        max_output_bytes: int = DEFAULT_MAX_OUTPUT_BYTES,
    ) -> None:
        """Initialize the executor.

        Args:
            encoding: Encoding used to decode output. Defaults to the locale encoding.
            max_output_bytes: Largest accepted size for each output stream.
        """

        self._encoding = encoding or locale.getpreferredencoding(False)
        self._max_output_bytes = max_output_bytes
        self._logger = get_logger(self.__class__.__name__)

    def run(
        self,
        command: list[str],
        cwd: Path | None = None,
        timeout_s: int | None = None,
        env: dict[str, str] | None = None,
        *,
        visible: bool = False,
    ) -> ExecutionResult:
        """Run a command locally and capture its output.

        Args:
            command: The command to execute.
            cwd: Optional working directory.
            timeout_s: Optional timeout in seconds.
            env: Optional environment variables to include.
            visible: Whether to let the process open a console window.

        Returns:
            ExecutionResult with stdout, stderr, exit code, and duration.
        """

        if not command:
            raise ValueError("Command must contain at least one argument.")

        merged_env = os.environ.copy()
        if env:
            merged_env.update(env)

        start = time.monotonic()
        with tempfile.TemporaryFile() as out_file, tempfile.TemporaryFile() as err_file:
            completed = subprocess.run(
                command,
                cwd=str(cwd) if cwd is not None else None,
                env=merged_env,
                stdout=out_file,
                stderr=err_file,
                timeout=timeout_s,
                check=False,
                creationflags=_creation_flags(visible),
            )
            stdout = self._read_stream(out_file, "stdout")
            stderr = self._read_stream(err_file, "stderr")
        duration = time.monotonic() - start
        self._logger.debug(
            "Command %s finished with exit code %s in %.2fs.",
            command[0],
            completed.returncode,
            duration,
        )

        return ExecutionResult(
            command=list(command),
            stdout=stdout,
            stderr=stderr,
            exit_code=completed.returncode,
            duration_s=duration,
        )

    def _read_stream(self, handle: IO[bytes], label: str) -> str:
        handle.seek(0, os.SEEK_END)
        size = handle.tell()
        if size > self._max_output_bytes:
            raise OutputLimitExceeded(
                f"Command {label} exceeded {self._max_output_bytes} bytes ({size} bytes written)."
            )
        handle.seek(0)
        data = handle.read()
        return data.decode(self._encoding, errors="replace")


def _creation_flags(visible: bool) -> int:
    if visible or sys.platform != "win32":
        return 0
    return subprocess.CREATE_NO_WINDOW
