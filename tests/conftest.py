from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from vstfs.execution.base import CommandExecutor, ExecutionResult

Response = tuple[int, str, str]


class ScriptedExecutor(CommandExecutor):
    """Executor that answers each command from a handler instead of a process."""

    def __init__(self, handler: Callable[[list[str]], Response]) -> None:
        self._handler = handler
        self.commands: list[list[str]] = []
        self.visible_flags: list[bool] = []

    def run(
        self,
        command: list[str],
        cwd: Path | None = None,
        timeout_s: int | None = None,
        env: dict[str, str] | None = None,
        *,
        visible: bool = False,
    ) -> ExecutionResult:
        self.commands.append(list(command))
        self.visible_flags.append(visible)
        exit_code, stdout, stderr = self._handler(list(command))
        return ExecutionResult(
            command=list(command),
            stdout=stdout,
            stderr=stderr,
            exit_code=exit_code,
            duration_s=0.0,
        )

    def args(self) -> list[list[str]]:
        """Return recorded commands without the binary path."""

        return [command[1:] for command in self.commands]


def queue(*responses: Response) -> Callable[[list[str]], Response]:
    """Return a handler that replays ``responses`` in order."""

    pending = list(responses)

    def handler(command: list[str]) -> Response:
        if not pending:
            raise AssertionError(f"Unexpected command: {command}")
        return pending.pop(0)

    return handler


@pytest.fixture
def scripted() -> type[ScriptedExecutor]:
    return ScriptedExecutor


@pytest.fixture
def replay() -> Callable[..., Callable[[list[str]], Response]]:
    return queue
