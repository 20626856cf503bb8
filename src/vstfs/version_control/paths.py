"""Mapping of server paths to local working-copy paths."""

from __future__ import annotations

import ntpath
import posixpath
import re
from pathlib import Path

_CHANGESET_SUFFIX = re.compile(r";C\d+$", re.IGNORECASE)
_DRIVE_PATH = re.compile(r"^[A-Za-z]:\\")


def strip_changeset_suffix(path: str) -> str:
    """Remove a trailing ``;C<id>`` version qualifier."""

    return _CHANGESET_SUFFIX.sub("", path)


class PathNormalizer:
    """Map ``$/`` server paths and local paths to one canonical local path.

    Windows working directories are handled with :mod:`ntpath` so results are
    the same on any host; other working directories use POSIX separators.
    """

    def __init__(self, working_dir: str | Path, server_root: str = "") -> None:
        """Initialize the normalizer.

        Args:
            working_dir: Local directory the server root is mapped to.
            server_root: Mapped server path, e.g. ``$/Project/Main``.
        """

        self._working_dir = str(working_dir)
        self._server_root = server_root.rstrip("/")
        windows = bool(_DRIVE_PATH.match(self._working_dir)) or "\\" in self._working_dir
        self._pathmod = ntpath if windows else posixpath

    @property
    def working_dir(self) -> str:
        return self._working_dir

    def to_local(self, path: str) -> str:
        """Return the local filesystem path for ``path``."""

        cleaned = strip_changeset_suffix(path.strip())
        if _DRIVE_PATH.match(cleaned):
            return cleaned

        if self._server_root and self._under_server_root(cleaned):
            relative = cleaned[len(self._server_root) :].lstrip("/")
            return self._join(relative)

        if cleaned.startswith("$/"):
            return self._join(cleaned[2:])

        return self._join(cleaned)

    def _under_server_root(self, path: str) -> bool:
        root = self._server_root.lower()
        lowered = path.lower()
        return lowered == root or lowered.startswith(root + "/")

    def _join(self, relative: str) -> str:
        sep = self._pathmod.sep
        relative = relative.replace("\\", "/").replace("/", sep)
        if not relative:
            return self._pathmod.normpath(self._working_dir)
        return self._pathmod.normpath(self._pathmod.join(self._working_dir, relative))
