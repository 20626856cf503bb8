"""Best-effort mapping of the working directory into a TFVC workspace."""

from __future__ import annotations

from vstfs.util.logging import get_logger
from vstfs.version_control.base import ExecutionFailure, WorkspaceBindingError
from vstfs.version_control.runner import TfCommandRunner


class WorkspaceBindingResolver:
    """Ensure the working directory is mapped before stateful operations.

    The steps are: probe ``tf workfold``; map the server path; if mapping
    fails, create a server workspace and map again. Nothing is rolled back
    when a later step fails.
    """

    def __init__(self, runner: TfCommandRunner, workspace: str, server_path: str) -> None:
        self._runner = runner
        self._workspace = workspace.strip()
        self._server_path = server_path.strip()
        self._logger = get_logger(self.__class__.__name__)

    @property
    def enabled(self) -> bool:
        return self._runner.has_server and bool(self._workspace) and bool(self._server_path)

    def ensure_bound(self) -> None:
        """Map the working directory, creating the workspace if needed.

        Raises:
            WorkspaceBindingError: If neither mapping nor workspace creation succeeds.
        """

        if not self.enabled:
            return

        cwd = str(self._runner.working_dir)
        try:
            probe = self._runner.run(["workfold"])
            if cwd in probe.stdout or self._workspace in probe.stdout:
                return
            self._map()
            self._logger.info(
                "Mapped %s -> %s for workspace %s", self._server_path, cwd, self._workspace
            )
            return
        except ExecutionFailure as exc:
            self._logger.warning("Failed to map existing workspace: %s", exc)

        step = "workspace /new"
        try:
            self._runner.run(
                [
                    "workspace",
                    "/new",
                    self._workspace,
                    f"/collection:{self._runner.collection}",
                    "/location:server",
                ]
            )
            step = "workfold /map"
            self._map()
        except ExecutionFailure as exc:
            raise WorkspaceBindingError(
                f"Cannot configure TFVC workspace ({step} failed): {exc}"
            ) from exc
        self._logger.info(
            "Created workspace %s and mapped %s -> %s", self._workspace, self._server_path, cwd
        )

    def _map(self) -> None:
        self._runner.run(
            [
                "workfold",
                "/map",
                self._server_path,
                str(self._runner.working_dir),
                f"/workspace:{self._workspace}",
                f"/collection:{self._runner.collection}",
            ]
        )
