"""TFVC version control service backed by the ``TF.exe`` CLI."""

from __future__ import annotations

import re
import tempfile
from collections.abc import Callable
from pathlib import Path

from vstfs.execution.base import ExecutionResult
from vstfs.util.logging import get_logger
from vstfs.version_control.base import (
    ExecutionFailure,
    HistoryEntry,
    PendingChange,
    VersionControlError,
    VersionControlService,
)
from vstfs.version_control.binding import WorkspaceBindingResolver
from vstfs.version_control.parsers import (
    parse_branches,
    parse_history,
    parse_pending_brief,
    parse_pending_detailed,
)
from vstfs.version_control.paths import PathNormalizer, strip_changeset_suffix
from vstfs.version_control.runner import TfCommandRunner

_UNSAFE_FILENAME_CHARS = re.compile(r'[\\/:*?"<>|]')


class TfvcService(VersionControlService):
    """Version control service backed by the TFVC command line tool.

    Operations that change or depend on workspace state first run the
    workspace binding resolver and receive a ``/collection:`` argument when
    the subcommand accepts one.
    """

    def __init__(
        self,
        runner: TfCommandRunner,
        *,
        workspace: str = "",
        server_path: str = "",
        binding: WorkspaceBindingResolver | None = None,
        normalizer: PathNormalizer | None = None,
        temp_dir: Path | None = None,
    ) -> None:
        """Initialize the TFVC service.

        Args:
            runner: Runner used for every ``TF.exe`` invocation.
            workspace: TFVC workspace name.
            server_path: Server path mapped to the working directory.
            binding: Resolver run before stateful operations.
            normalizer: Mapper from server paths to local paths.
            temp_dir: Directory for files materialized by ``view``.
        """

        self._runner = runner
        self._workspace = workspace
        self._server_path = server_path
        self._binding = binding or WorkspaceBindingResolver(runner, workspace, server_path)
        self._normalizer = normalizer or PathNormalizer(runner.working_dir, server_path)
        self._temp_dir = temp_dir or Path(tempfile.gettempdir())
        self._logger = get_logger(self.__class__.__name__)

    @property
    def normalizer(self) -> PathNormalizer:
        return self._normalizer

    def sign_in(self) -> None:
        """Open the tool's interactive sign-in for the configured collection."""

        self._runner.sign_in()

    def get_latest(self, target: str = ".") -> None:
        """Get the latest version of ``target`` recursively."""

        self._run(["get", target, "/recursive"])

    def pending_changes(self) -> list[PendingChange]:
        """Return pending changes with local paths.

        Tries progressively more qualified status queries and returns the
        first non-empty result. Returns an empty list when every query fails.
        """

        self._logger.info("Detecting pending changes.")
        attempts: list[tuple[str, bool, list[str], Callable[[str], list[PendingChange]]]] = [
            ("detailed", False, ["status", "/recursive", "/format:detailed"], parse_pending_detailed),
            ("basic", False, ["status", "/recursive", "/format:brief"], parse_pending_brief),
            (
                "workspace",
                False,
                ["status", f"/workspace:{self._workspace}", "/recursive", "/format:brief"],
                parse_pending_brief,
            ),
            (
                "collection",
                True,
                ["status", ".", "/recursive", "/format:brief", "/noprompt"],
                parse_pending_brief,
            ),
        ]
        for label, qualified, args, parser in attempts:
            try:
                result = self._run(args) if qualified else self._runner.run(args)
            except VersionControlError as exc:
                self._logger.info("Status (%s) failed: %s", label, exc)
                continue
            items = [
                PendingChange(file=self._normalizer.to_local(item.file), action=item.action)
                for item in parser(result.stdout)
            ]
            if items:
                self._log_pending(label, items)
                return items
            self._logger.debug("Status (%s) yielded no pending changes.", label)
        return []

    def add(self, target: str = ".") -> None:
        """Pend adds for new files under ``target``."""

        self._run(["add", target, "/recursive", "/noprompt"])

    def check_in(self, comment: str, files: list[str] | None = None) -> None:
        """Check in pending changes.

        New files are pended as adds first; a failure of that step is logged
        and ignored since it usually means there was nothing to add.
        """

        try:
            self.add(".")
        except VersionControlError as exc:
            self._logger.info("Auto-add before check-in: %s", exc)

        args = ["checkin"]
        if files:
            args.extend(files)
        else:
            args.extend([".", "/recursive"])
        args.extend([f"/comment:{comment or ''}", "/noprompt"])
        self._run(args)

    def undo(self, items: list[str] | None = None) -> None:
        """Undo pending changes for ``items``, or everything under the working directory."""

        if items:
            self._run(["undo", *items, "/noprompt"])
            return
        self._run(["undo", ".", "/recursive", "/noprompt"])

    def list_branches(self) -> list[str]:
        """Return branch paths below the mapped server path."""

        item = self._server_path or str(self._runner.working_dir)
        result = self._run(["branches", item])
        return parse_branches(result.stdout)

    def create_branch(self, source: str, destination: str) -> None:
        """Branch ``source`` to ``destination`` recursively."""

        self._run(["branch", source, destination, "/recursive"])

    def merge(
        self,
        source: str,
        destination: str,
        *,
        changeset_from: int | None = None,
        changeset_to: int | None = None,
    ) -> None:
        """Merge ``source`` into ``destination``, optionally limited to a changeset range."""

        args = ["merge", source, destination]
        if changeset_from and changeset_to:
            args.append(f"/version:C{changeset_from}~C{changeset_to}")
        self._run(args)

    def resolve(self) -> bool:
        """Auto-merge conflicts.

        Returns:
            True when the tool resolved the conflicts, False when manual
            resolution (``tf resolve``) is required.
        """

        try:
            self._run(["resolve", "/auto:AutoMerge"])
        except ExecutionFailure as exc:
            self._logger.warning("Automatic resolve failed: %s", exc)
            return False
        return True

    def history(self, target: str = ".", max_items: int = 50) -> list[HistoryEntry]:
        """Return up to ``max_items`` history entries for ``target``."""

        item = self._default_item() if target == "." else target
        result = self._run(
            [
                "history",
                item,
                "/recursive",
                "/format:detailed",
                f"/stopafter:{max_items}",
                "/noprompt",
            ]
        )
        return parse_history(result.stdout)

    def changeset(self, changeset_id: int) -> HistoryEntry | None:
        """Return the changeset with ``changeset_id``, or None when the tool reports no such entry."""

        result = self._run(
            [
                "history",
                self._default_item(),
                "/recursive",
                "/format:detailed",
                "/noprompt",
                f"/version:C{changeset_id}~C{changeset_id}",
            ]
        )
        entries = parse_history(result.stdout)
        return next((entry for entry in entries if entry.changeset_id == changeset_id), None)

    def get_file_at_changeset(self, file: str, changeset_id: int) -> Path:
        """Write ``file`` as of ``changeset_id`` to a temporary file and return its path."""

        local_target = self._normalizer.to_local(file)
        name = _UNSAFE_FILENAME_CHARS.sub("_", _basename(local_target))
        target = self._temp_dir / f"vstfs-C{changeset_id}-{name}"

        result = self._run(["view", f"{strip_changeset_suffix(file)};C{changeset_id}", "/noprompt"])
        target.write_text(result.stdout.replace("\r\n", "\n"), encoding="utf-8")
        return target

    def rollback_to_changeset(self, changeset_id: int) -> None:
        """Pend a rollback of ``changeset_id`` as local changes."""

        self._run(["rollback", f"/changeset:C{changeset_id}"])

    def previous_changeset_for_file(self, file: str, changeset_id: int) -> int | None:
        """Return the changeset that last touched ``file`` before ``changeset_id``.

        This scans only a two-entry history window and matches items by file
        name, so it is approximate for sparse or renamed history.
        """

        try:
            result = self._run(
                [
                    "history",
                    file,
                    "/format:detailed",
                    "/stopafter:2",
                    f"/version:C1~C{changeset_id}",
                    "/noprompt",
                ]
            )
        except VersionControlError as exc:
            self._logger.info(
                "Could not find previous changeset for %s at C%s: %s", file, changeset_id, exc
            )
            return None

        name = _basename(strip_changeset_suffix(file)).lower()
        candidates = sorted(
            (
                entry
                for entry in parse_history(result.stdout)
                if any(name in change.path.lower() for change in entry.files)
            ),
            key=lambda entry: entry.changeset_id,
            reverse=True,
        )
        below = next((entry for entry in candidates if entry.changeset_id < changeset_id), None)
        return below.changeset_id if below is not None else None

    def _run(self, args: list[str]) -> ExecutionResult:
        self._binding.ensure_bound()
        return self._runner.run(args, with_collection=True)

    def _default_item(self) -> str:
        return self._server_path or str(self._runner.working_dir) or "."

    def _log_pending(self, label: str, items: list[PendingChange]) -> None:
        self._logger.info("Pending (%s): %s item(s)", label, len(items))
        for item in items:
            self._logger.debug(" - %s %s", item.action.value.upper(), item.file)


def _basename(path: str) -> str:
    return re.split(r"[\\/]", path.rstrip("\\/"))[-1]
