"""Invocation of ``TF.exe`` with one authentication retry."""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Final
from urllib.parse import urlsplit

from vstfs.execution.base import CommandExecutor, ExecutionResult, OutputLimitExceeded
from vstfs.util.logging import get_logger
from vstfs.util.observability import ObservabilityManager, create_observability_manager
from vstfs.version_control.base import (
    AuthenticationRequired,
    ConfigurationError,
    ExecutionFailure,
)

# Subcommands that accept a /collection: argument.
COLLECTION_COMMANDS: Final[frozenset[str]] = frozenset(
    {
        "workspaces",
        "workspace",
        "configure",
        "login",
        "logout",
        "permission",
        "status",
        "history",
        "changeset",
    }
)
AUTH_FAILURE_MARKERS: Final[tuple[str, ...]] = ("tf30063", "not authorized", "unauthorized", "401")


def collection_url(server_url: str) -> str:
    """Derive the project collection URL from a configured server URL.

    ``https://dev.azure.com/org/project`` becomes ``https://dev.azure.com/org``,
    ``*.visualstudio.com`` URLs keep only the host, and other URLs are kept
    without a trailing slash.
    """

    raw = server_url.strip()
    parts = urlsplit(raw)
    if not parts.scheme or not parts.netloc:
        return raw.rstrip("/")
    host = f"{parts.scheme}://{parts.netloc}"
    hostname = (parts.hostname or "").lower()
    if hostname == "dev.azure.com":
        segments = [segment for segment in parts.path.split("/") if segment]
        return f"{host}/{segments[0]}" if segments else host
    if hostname.endswith(".visualstudio.com"):
        return host
    path = parts.path.rstrip("/")
    return host + path


def is_auth_failure(output: str) -> bool:
    """Return whether tool output matches a known authentication failure."""

    lowered = (output or "").lower()
    return any(marker in lowered for marker in AUTH_FAILURE_MARKERS)


class TfCommandRunner:
    """Build and run ``TF.exe`` argument vectors.

    Arguments are always passed as discrete list elements; nothing is joined
    into a shell string. A call that fails with an authentication signature
    triggers one visible sign-in and exactly one retry.
    """

    def __init__(
        self,
        executor: CommandExecutor,
        tf_path: str,
        working_dir: Path,
        *,
        server_url: str = "",
        env: dict[str, str] | None = None,
        timeout_s: int | None = None,
        observability: ObservabilityManager | None = None,
    ) -> None:
        """Initialize the runner.

        Args:
            executor: Executor used to launch the tool.
            tf_path: Path to ``TF.exe``.
            working_dir: Working directory for every invocation.
            server_url: Configured server URL; enables collection arguments and sign-in.
            env: Extra environment variables.
            timeout_s: Optional timeout per invocation.
            observability: Event and metrics sink.
        """

        self._executor = executor
        self._tf_path = tf_path
        self._working_dir = working_dir
        self._server_url = server_url.strip()
        self._env = dict(env or {})
        self._timeout_s = timeout_s
        self._observability = observability or create_observability_manager()
        self._logger = get_logger(self.__class__.__name__)

    @property
    def working_dir(self) -> Path:
        return self._working_dir

    @property
    def has_server(self) -> bool:
        return bool(self._server_url)

    @property
    def collection(self) -> str:
        return collection_url(self._server_url)

    def build_command(self, args: list[str], *, with_collection: bool = False) -> list[str]:
        """Return the full argument vector for ``args``."""

        command = [self._tf_path, *args]
        if with_collection and self.has_server and args and args[0] in COLLECTION_COMMANDS:
            command.append(f"/collection:{self.collection}")
        return command

    def run(self, args: list[str], *, with_collection: bool = False) -> ExecutionResult:
        """Run the tool, signing in and retrying once on authentication failure.

        Raises:
            ExecutionFailure: If the command (or its single retry) fails.
        """

        command = self.build_command(args, with_collection=with_collection)
        try:
            return self._run_once(command)
        except AuthenticationRequired as exc:
            if not self.has_server:
                raise ExecutionFailure(
                    str(exc),
                    args_list=exc.args_list,
                    exit_code=exc.exit_code,
                    stdout=exc.stdout,
                    stderr=exc.stderr,
                ) from exc
            self._logger.info("Authentication required. Opening sign-in and retrying.")
            self._observability.metrics.increment("tf.auth_retries")
            self.sign_in()

        try:
            return self._run_once(command)
        except AuthenticationRequired as exc:
            raise ExecutionFailure(
                str(exc),
                args_list=exc.args_list,
                exit_code=exc.exit_code,
                stdout=exc.stdout,
                stderr=exc.stderr,
            ) from exc

    def sign_in(self) -> None:
        """Run a visible command against the collection so the credential prompt can appear.

        Raises:
            ConfigurationError: If no server URL is configured.
        """

        if not self.has_server:
            raise ConfigurationError("serverUrl is not configured. Set it in .vstfs.json or VSTFS_SERVER_URL.")
        collection = self.collection
        self._logger.info("Initiating sign-in for collection %s", collection)
        try:
            self._run_once(
                [self._tf_path, "workspaces", f"/collection:{collection}"],
                visible=True,
            )
        except ExecutionFailure as exc:
            # The prompt may have been shown even when the helper exits non-zero.
            self._logger.info("Sign-in helper returned an error (continuing): %s", exc)

    def _run_once(self, command: list[str], *, visible: bool = False) -> ExecutionResult:
        args = command[1:]
        subcommand = args[0] if args else ""
        self._logger.debug("Running TF.exe with args: %s", " ".join(args))
        self._observability.metrics.increment("tf.commands")
        try:
            with self._observability.track_duration(f"tf.{subcommand}"):
                result = self._executor.run(
                    command,
                    cwd=self._working_dir,
                    timeout_s=self._timeout_s,
                    env=self._env,
                    visible=visible,
                )
        except subprocess.TimeoutExpired as exc:
            self._observability.metrics.increment("tf.failures")
            raise ExecutionFailure(
                f"tf {subcommand} timed out after {exc.timeout}s.", args_list=args
            ) from exc
        except OutputLimitExceeded as exc:
            self._observability.metrics.increment("tf.failures")
            raise ExecutionFailure(str(exc), args_list=args) from exc

        self._observability.log_event(
            "tf.command",
            {
                "args": args,
                "exit_code": result.exit_code,
                "duration_s": round(result.duration_s, 3),
                "visible": visible,
            },
        )
        if result.exit_code == 0:
            return result

        self._observability.metrics.increment("tf.failures")
        message = result.stderr.strip() or result.stdout.strip() or f"tf {subcommand} failed."
        error_type = AuthenticationRequired if is_auth_failure(result.combined_output) else ExecutionFailure
        raise error_type(
            message,
            args_list=args,
            exit_code=result.exit_code,
            stdout=result.stdout,
            stderr=result.stderr,
        )
