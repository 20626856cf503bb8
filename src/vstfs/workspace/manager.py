"""Working-copy file helpers bounded to the workspace root."""

from __future__ import annotations

import shutil
from dataclasses import dataclass
from difflib import unified_diff
from pathlib import Path


class WorkspacePathError(ValueError):
    """Raised when a path escapes the workspace root."""


class WorkspaceWriteError(RuntimeError):
    """Raised when a write is attempted but writes are disabled."""


@dataclass(frozen=True)
class WorkspaceManager:
    """Manage working-copy files under a workspace root.

    Attributes:
        root: The local directory mapped to the server path.
        allow_write: Whether working files may be overwritten.
    """

    root: Path
    allow_write: bool = True

    def __post_init__(self) -> None:
        """Normalize the workspace root path."""

        object.__setattr__(self, "root", self.root.resolve())

    def read_text(self, path: Path) -> str:
        """Read a working file, replacing undecodable bytes."""

        resolved = self.resolve_path(path)
        return resolved.read_text(encoding="utf-8", errors="replace")

    def file_exists(self, path: Path) -> bool:
        """Return whether a working file exists."""

        return self.resolve_path(path).exists()

    def replace_with(self, path: Path, source: Path) -> Path:
        """Overwrite a working file with the contents of ``source``.

        Args:
            path: Working file to overwrite.
            source: File whose contents are copied, typically a materialized revision.

        Returns:
            The resolved working file path.
        """

        if not self.allow_write:
            raise WorkspaceWriteError("Workspace is read-only; writes are disabled.")
        resolved = self.resolve_path(path)
        resolved.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, resolved)
        return resolved

    def compute_unified_diff(
        self,
        old: str,
        new: str,
        *,
        from_label: str,
        to_label: str,
    ) -> str:
        """Compute a unified diff between two texts.

        Args:
            old: Original text content.
            new: Updated text content.
            from_label: Label for the original side (e.g. ``Foo.cs;C41``).
            to_label: Label for the updated side.

        Returns:
            Unified diff text, empty when the texts are identical.
        """

        diff = unified_diff(
            old.splitlines(keepends=True),
            new.splitlines(keepends=True),
            fromfile=from_label,
            tofile=to_label,
        )
        return "".join(diff)

    def resolve_path(self, path: Path) -> Path:
        """Resolve a path to an absolute path within the workspace.

        Raises:
            WorkspacePathError: If the resolved path escapes the workspace root.
        """

        candidate = (self.root / path).resolve()
        if not candidate.is_relative_to(self.root):
            raise WorkspacePathError(f"Path '{path}' escapes workspace root")
        return candidate
