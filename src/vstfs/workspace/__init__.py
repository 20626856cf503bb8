"""Working-copy helpers."""

from vstfs.workspace.manager import WorkspaceManager, WorkspacePathError, WorkspaceWriteError

__all__ = ["WorkspaceManager", "WorkspacePathError", "WorkspaceWriteError"]
