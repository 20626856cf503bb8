"""Records, errors and the abstract interface for version control services."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path


class VersionControlError(RuntimeError):
    """Raised when version control operations fail."""


class ConfigurationError(VersionControlError):
    """Raised when an operation needs configuration that is missing."""


class ExecutionFailure(VersionControlError):
    """Raised when the external tool exits with a non-zero status.

    Attributes:
        args_list: Arguments passed to the tool, excluding the binary.
        exit_code: Exit code of the process.
        stdout: Captured standard output.
        stderr: Captured standard error.
    """

    def __init__(
        self,
        message: str,
        *,
        args_list: list[str] | None = None,
        exit_code: int | None = None,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        super().__init__(message)
        self.args_list = list(args_list or [])
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr


class AuthenticationRequired(ExecutionFailure):
    """Raised when tool output matches a known authentication failure."""


class WorkspaceBindingError(VersionControlError):
    """Raised when the working directory cannot be mapped to a workspace."""


class ChangeKind(str, Enum):
    """Kinds of change reported by the tool."""

    EDIT = "edit"
    ADD = "add"
    DELETE = "delete"
    RENAME = "rename"
    MERGE = "merge"
    BRANCH = "branch"
    UNKNOWN = "unknown"

    @classmethod
    def from_text(cls, text: str) -> ChangeKind:
        """Return the kind named by ``text``, or UNKNOWN."""

        try:
            return cls(text.strip().lower())
        except ValueError:
            return cls.UNKNOWN


@dataclass(frozen=True)
class PendingChange:
    """A local modification not yet checked in."""

    file: str
    action: ChangeKind


@dataclass(frozen=True)
class FileChange:
    """A single item touched by a changeset."""

    path: str
    change: ChangeKind


@dataclass(frozen=True)
class HistoryEntry:
    """A committed changeset as reported by the server.

    Attributes:
        changeset_id: Server-assigned changeset number.
        author: User who checked in the changeset.
        timestamp: Parsed check-in date, or None when the locale format was not understood.
        comment: Check-in comment, possibly empty.
        files: Items touched by the changeset, in reported order.
    """

    changeset_id: int
    author: str
    timestamp: datetime | None
    comment: str
    files: tuple[FileChange, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class Unparsed:
    """Marker for input a parser skipped."""

    text: str
    reason: str


class VersionControlService(ABC):
    """Abstract interface for version control operations."""

    @abstractmethod
    def get_latest(self, target: str = ".") -> None:
        """Update the working copy to the latest server version."""

    @abstractmethod
    def pending_changes(self) -> list[PendingChange]:
        """Return the local pending changes."""

    @abstractmethod
    def check_in(self, comment: str, files: list[str] | None = None) -> None:
        """Check in all pending changes, or only ``files`` when given."""

    @abstractmethod
    def undo(self, items: list[str] | None = None) -> None:
        """Undo pending changes."""

    @abstractmethod
    def list_branches(self) -> list[str]:
        """Return server branch paths."""

    @abstractmethod
    def create_branch(self, source: str, destination: str) -> None:
        """Branch ``source`` to ``destination``."""

    @abstractmethod
    def merge(
        self,
        source: str,
        destination: str,
        *,
        changeset_from: int | None = None,
        changeset_to: int | None = None,
    ) -> None:
        """Merge ``source`` into ``destination``."""

    @abstractmethod
    def history(self, target: str = ".", max_items: int = 50) -> list[HistoryEntry]:
        """Return history entries, newest first."""

    @abstractmethod
    def changeset(self, changeset_id: int) -> HistoryEntry | None:
        """Return a single changeset, or None when it does not exist."""

    @abstractmethod
    def get_file_at_changeset(self, file: str, changeset_id: int) -> Path:
        """Materialize a file at a changeset into a temporary file."""

    @abstractmethod
    def rollback_to_changeset(self, changeset_id: int) -> None:
        """Pend a rollback of a changeset."""
