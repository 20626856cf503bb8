"""Application wiring and multi-step workflows used by the CLI."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

from vstfs.config import VstfsConfig, config_to_dict, load_config, update_root
from vstfs.execution.base import CommandExecutor
from vstfs.execution.local_exec import LocalExecutor
from vstfs.util.logging import get_logger
from vstfs.util.observability import ObservabilityManager, create_observability_manager
from vstfs.version_control.paths import strip_changeset_suffix
from vstfs.version_control.runner import TfCommandRunner
from vstfs.version_control.tfvc_service import TfvcService
from vstfs.workspace.manager import WorkspaceManager

CONFIG_FILE_NAME = ".vstfs.json"


class AppConfigError(RuntimeError):
    """Raised when configuration or runtime setup fails."""


@dataclass(frozen=True)
class RuntimeContext:
    """Services shared by one CLI invocation.

    Passed explicitly to every workflow; nothing is kept in module globals.
    """

    config: VstfsConfig
    version_control: TfvcService
    workspace: WorkspaceManager
    observability: ObservabilityManager


@dataclass(frozen=True)
class RevisionDiff:
    """A diff between a materialized revision and another version of a file.

    Attributes:
        left: Older side, a materialized temporary file.
        right: Newer side, or None when the working file is missing.
        diff: Unified diff text.
    """

    left: Path
    right: Path | None
    diff: str


_LOGGER = get_logger("vstfs.app")


def initialize_config(workspace: Path, *, server_url: str = "", workspace_name: str = "") -> Path:
    """Create a default ``.vstfs.json`` in the workspace.

    Raises:
        AppConfigError: If the config file already exists.
    """

    workspace = workspace.resolve()
    config_path = workspace / CONFIG_FILE_NAME
    if config_path.exists():
        raise AppConfigError(
            f"Config file already exists at {config_path}. Remove it or choose another "
            "workspace."
        )
    config = VstfsConfig(root=workspace, server_url=server_url, workspace=workspace_name)
    config_path.write_text(json.dumps(config_to_dict(config), indent=2), encoding="utf-8")
    _LOGGER.info("Initialized configuration at %s", config_path)
    return config_path


def load_runtime(config_path: Path | None = None, root: Path | None = None) -> RuntimeContext:
    """Load configuration and build a runtime context.

    Args:
        config_path: Config file or directory to search; defaults to the current directory.
        root: Optional override for the working directory.
    """

    try:
        config = load_config(config_path)
    except ValueError as exc:
        raise AppConfigError(str(exc)) from exc
    if root is not None:
        config = update_root(config, root.resolve())
    _LOGGER.info("Using working directory %s", config.root)
    return build_runtime(config)


def build_runtime(
    config: VstfsConfig,
    *,
    executor: CommandExecutor | None = None,
    temp_dir: Path | None = None,
) -> RuntimeContext:
    """Build runtime services from configuration.

    Args:
        config: Application configuration.
        executor: Optional pre-built executor (for testing).
        temp_dir: Optional directory for materialized revisions.
    """

    observability = create_observability_manager(
        context={"workspace": config.workspace, "server_url": config.server_url}
    )
    executor_instance = executor or LocalExecutor(
        encoding=config.encoding,
        max_output_bytes=config.max_output_bytes,
    )
    runner = TfCommandRunner(
        executor_instance,
        config.tf_path,
        config.root,
        server_url=config.server_url,
        env=config.env,
        timeout_s=config.timeout_s,
        observability=observability,
    )
    service = TfvcService(
        runner,
        workspace=config.workspace,
        server_path=config.server_path,
        temp_dir=temp_dir,
    )
    return RuntimeContext(
        config=config,
        version_control=service,
        workspace=WorkspaceManager(config.root),
        observability=observability,
    )


def diff_with_previous(runtime: RuntimeContext, file: str, changeset_id: int) -> RevisionDiff | None:
    """Diff ``file`` at ``changeset_id`` against its previous revision.

    Returns:
        The diff, or None when no previous revision could be found.
    """

    service = runtime.version_control
    previous_id = service.previous_changeset_for_file(file, changeset_id)
    if previous_id is None:
        return None
    previous = service.get_file_at_changeset(file, previous_id)
    current = service.get_file_at_changeset(file, changeset_id)
    diff = runtime.workspace.compute_unified_diff(
        previous.read_text(encoding="utf-8"),
        current.read_text(encoding="utf-8"),
        from_label=f"{_name(file)};C{previous_id}",
        to_label=f"{_name(file)};C{changeset_id}",
    )
    return RevisionDiff(left=previous, right=current, diff=diff)


def diff_with_working(runtime: RuntimeContext, file: str, changeset_id: int) -> RevisionDiff:
    """Diff ``file`` at ``changeset_id`` against the working copy.

    When the working file does not exist the result has ``right=None`` and an
    empty diff.
    """

    service = runtime.version_control
    revision = service.get_file_at_changeset(file, changeset_id)
    working = Path(service.normalizer.to_local(file))
    if not runtime.workspace.file_exists(working):
        _LOGGER.warning("Working file not found: %s", working)
        return RevisionDiff(left=revision, right=None, diff="")
    diff = runtime.workspace.compute_unified_diff(
        revision.read_text(encoding="utf-8"),
        runtime.workspace.read_text(working),
        from_label=f"{_name(file)};C{changeset_id}",
        to_label=str(working),
    )
    return RevisionDiff(left=revision, right=working, diff=diff)


def revert_file_to_changeset(runtime: RuntimeContext, file: str, changeset_id: int) -> Path:
    """Overwrite the working copy of ``file`` with its content at ``changeset_id``.

    The result is a local edit that still has to be checked in.
    """

    service = runtime.version_control
    revision = service.get_file_at_changeset(file, changeset_id)
    working = Path(service.normalizer.to_local(file))
    return runtime.workspace.replace_with(working, revision)


def _name(file: str) -> str:
    return strip_changeset_suffix(file).replace("\\", "/").rstrip("/").rsplit("/", 1)[-1]
