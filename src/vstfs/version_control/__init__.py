"""Version control abstractions and the TFVC implementation."""

from vstfs.version_control.base import (
    AuthenticationRequired,
    ChangeKind,
    ConfigurationError,
    ExecutionFailure,
    FileChange,
    HistoryEntry,
    PendingChange,
    Unparsed,
    VersionControlError,
    VersionControlService,
    WorkspaceBindingError,
)
from vstfs.version_control.binding import WorkspaceBindingResolver
from vstfs.version_control.paths import PathNormalizer
from vstfs.version_control.runner import TfCommandRunner
from vstfs.version_control.tfvc_service import TfvcService

__all__ = [
    "AuthenticationRequired",
    "ChangeKind",
    "ConfigurationError",
    "ExecutionFailure",
    "FileChange",
    "HistoryEntry",
    "PathNormalizer",
    "PendingChange",
    "TfCommandRunner",
    "TfvcService",
    "Unparsed",
    "VersionControlError",
    "VersionControlService",
    "WorkspaceBindingError",
    "WorkspaceBindingResolver",
]
