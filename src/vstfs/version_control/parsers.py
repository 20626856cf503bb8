"""Parsers for the plain-text output of ``tf status``, ``tf history`` and ``tf branches``.

``TF.exe`` prints locale- and version-sensitive tables meant for people, not
programs. Each parser here is a pure function of its input string: lines it
cannot interpret are skipped, never raised. Line and block level helpers
return either a fully populated record or an :class:`Unparsed` marker.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Final

from vstfs.util.logging import get_logger
from vstfs.version_control.base import (
    ChangeKind,
    FileChange,
    HistoryEntry,
    PendingChange,
    Unparsed,
)

MAX_ROW_BUFFER: Final[int] = 500

_KINDS = "add|edit|delete|rename|merge|branch"

_SEPARATOR = re.compile(r"^-{3,}")
_HEADER = re.compile(r"^File\s+name\s+Change\s+Local\s+path", re.IGNORECASE)
_NO_CHANGES = re.compile(r"^There are no pending changes\.?$", re.IGNORECASE)
_BANNER = re.compile(r"^(Collection|Workspace|User):", re.IGNORECASE)
_SERVER_PATH = re.compile(r"^\$/")
_DRIVE_PATH = re.compile(r"^[A-Za-z]:\\")
_COLUMN_GAP = re.compile(r"\s{2,}")
_NAME_FRAGMENT = re.compile(r"\.(cs|asset|mat|png|jpg|prefab|meta)$", re.IGNORECASE)

_TABLE_ROW = re.compile(r"^(.+?)\s{2,}([A-Za-z, ]+?)\s{2,}(.+)$")
_TABLE_ROW_LOOSE = re.compile(r"^(.+?)\s+([A-Za-z, ]+?)\s{2,}(.+)$")
_KIND_WORD = re.compile(rf"\b({_KINDS})\b", re.IGNORECASE)
_KIND_THEN_PATH = re.compile(rf"^({_KINDS})\s+(.+)$", re.IGNORECASE)
_SERVER_PATH_THEN_KIND = re.compile(rf"^(\$/.*?);\s*({_KINDS})\s*$", re.IGNORECASE)
_LOCAL_PATH_THEN_KIND = re.compile(rf"^(.:\\[^-]+?)\s*-\s+({_KINDS})\s*$", re.IGNORECASE)
_KIND_THEN_LOCAL_PATH = re.compile(rf"\b({_KINDS})\b\s+([A-Za-z]:\\.+)$", re.IGNORECASE)

_DETAILED_ITEM = re.compile(r"^(\$/|[A-Za-z]:\\)")
_DETAILED_CHANGE = re.compile(rf"^change\s*:\s*({_KINDS})\b", re.IGNORECASE)

_HISTORY_SEPARATOR = re.compile(r"^-{5,}\s*$", re.MULTILINE)
_CHANGESET = re.compile(r"^\s*Changeset:\s*(\d+)", re.MULTILINE | re.IGNORECASE)
_USER = re.compile(r"^\s*User:\s*(.+)$", re.MULTILINE | re.IGNORECASE)
_DATE = re.compile(r"^\s*Date:\s*(.+)$", re.MULTILINE | re.IGNORECASE)
_COMMENT = re.compile(r"^\s*Comment:\s*(.*?)^\s*Items:", re.MULTILINE | re.IGNORECASE | re.DOTALL)
_ITEMS = re.compile(r"^\s*Items:\s*$", re.MULTILINE | re.IGNORECASE)
_ITEM_ROW = re.compile(rf"^\s*({_KINDS})(?:\s*,\s*[A-Za-z ]+?)*\s+(\S.*)$", re.IGNORECASE)
# Unindented labels such as "Check-in Notes:" end the Items section.
_SECTION_LABEL = re.compile(r"^\S[^:]*:\s*$")

_BRANCHES_HEADER = re.compile(r"^Branches:$", re.IGNORECASE)

# Formats seen from TF.exe across en-US, en-GB, de-DE and invariant locales.
_DATE_FORMATS: Final[tuple[str, ...]] = (
    "%A, %B %d, %Y %I:%M:%S %p",
    "%A, %d %B %Y %H:%M:%S",
    "%m/%d/%Y %I:%M:%S %p",
    "%m/%d/%Y %H:%M:%S",
    "%d/%m/%Y %H:%M:%S",
    "%d.%m.%Y %H:%M:%S",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S",
)

_LOGGER = get_logger(__name__)


def _lines(text: str) -> list[str]:
    return text.replace("\x00", "").splitlines()


def parse_pending_row(row: str, current_folder: str | None = None) -> PendingChange | Unparsed:
    """Parse one row of the brief status table.

    Args:
        row: A single (possibly re-joined) table row.
        current_folder: Server folder header seen above the row, if any.

    Returns:
        The pending change, or an Unparsed marker.
    """

    trimmed = row.strip()
    table = _TABLE_ROW.match(trimmed) or _TABLE_ROW_LOOSE.match(trimmed)
    if table:
        name_col, change_col, local_col = (group.strip() for group in table.groups())
        kind_match = _KIND_WORD.search(change_col)
        action = ChangeKind.from_text(kind_match.group(1)) if kind_match else ChangeKind.UNKNOWN
        if _DRIVE_PATH.match(local_col):
            file = local_col
        elif current_folder:
            folder = current_folder.replace("\\", "/").rstrip("/")
            file = f"{folder}/{name_col}"
        else:
            file = name_col
        return PendingChange(file=file, action=action)

    match = _KIND_THEN_PATH.match(trimmed)
    if match:
        return PendingChange(file=match.group(2).strip(), action=ChangeKind.from_text(match.group(1)))

    match = _SERVER_PATH_THEN_KIND.match(trimmed) or _LOCAL_PATH_THEN_KIND.match(trimmed)
    if match:
        return PendingChange(file=match.group(1).strip(), action=ChangeKind.from_text(match.group(2)))

    return Unparsed(text=trimmed, reason="not a status row")


def parse_pending_brief(text: str) -> list[PendingChange]:
    """Parse ``tf status /format:brief`` output.

    Tolerates column-wrapped rows by buffering unrecognized lines and
    re-trying the joined text, up to ``MAX_ROW_BUFFER`` characters.
    """

    items: list[PendingChange] = []
    current_folder: str | None = None
    buffer = ""
    name_fragment: str | None = None

    for raw in _lines(text):
        line = raw.strip()
        if not line:
            continue
        if (
            _SEPARATOR.match(line)
            or _HEADER.match(line)
            or _NO_CHANGES.match(line)
            or _BANNER.match(line)
        ):
            continue

        if _SERVER_PATH.match(line) and not _COLUMN_GAP.search(line):
            current_folder = line
            buffer = ""
            name_fragment = None
            continue

        if not _COLUMN_GAP.search(line) and _NAME_FRAGMENT.search(line.removesuffix("...")):
            name_fragment = line
            continue

        if name_fragment is not None:
            paired = _KIND_THEN_LOCAL_PATH.search(line)
            if paired:
                items.append(
                    PendingChange(file=paired.group(2).strip(), action=ChangeKind.from_text(paired.group(1)))
                )
                name_fragment = None
                continue

        parsed = parse_pending_row(line, current_folder)
        if isinstance(parsed, PendingChange):
            items.append(parsed)
            buffer = ""
            name_fragment = None
            continue

        buffer = _join_fragment(buffer, line)
        parsed = parse_pending_row(buffer, current_folder)
        # A re-joined row must name a known change kind.
        if isinstance(parsed, PendingChange) and parsed.action is not ChangeKind.UNKNOWN:
            items.append(parsed)
            buffer = ""
            name_fragment = None
            continue

        if len(buffer) > MAX_ROW_BUFFER:
            _LOGGER.debug("Dropping oversized status row buffer: %s...", buffer[:120])
            buffer = ""
            name_fragment = None

    return items


def _join_fragment(buffer: str, line: str) -> str:
    if not buffer:
        return line
    # Only a wrapped local or server path column starts a new column.
    if _DRIVE_PATH.match(line) or _SERVER_PATH.match(line):
        return f"{buffer}  {line}"
    return f"{buffer} {line}"


def parse_pending_detailed(text: str) -> list[PendingChange]:
    """Parse ``tf status /format:detailed`` output.

    A path line opens an item block and the following ``change:`` line
    closes it. A separator discards any open block.
    """

    items: list[PendingChange] = []
    current_path: str | None = None

    for raw in _lines(text):
        line = raw.strip()
        if not line:
            continue
        if _DETAILED_ITEM.match(line):
            current_path = line
            continue
        change = _DETAILED_CHANGE.match(line)
        if change and current_path is not None:
            items.append(PendingChange(file=current_path, action=ChangeKind.from_text(change.group(1))))
            current_path = None
            continue
        if _SEPARATOR.match(line):
            current_path = None

    return items


def parse_history_block(block: str) -> HistoryEntry | Unparsed:
    """Parse one ``/format:detailed`` history block."""

    changeset = _CHANGESET.search(block)
    if not changeset:
        return Unparsed(text=block, reason="no Changeset line")

    user = _USER.search(block)
    date = _DATE.search(block)
    comment = _COMMENT.search(block)
    items_part = _ITEMS.split(block, maxsplit=1)

    files: list[FileChange] = []
    if len(items_part) > 1:
        for line in items_part[1].splitlines():
            if _SECTION_LABEL.match(line):
                break
            row = _ITEM_ROW.match(line)
            if row:
                files.append(FileChange(path=row.group(2).strip(), change=ChangeKind.from_text(row.group(1))))

    return HistoryEntry(
        changeset_id=int(changeset.group(1)),
        author=user.group(1).strip() if user else "",
        timestamp=parse_tf_date(date.group(1)) if date else None,
        comment=_clean_comment(comment.group(1)) if comment else "",
        files=tuple(files),
    )


def parse_history(text: str) -> list[HistoryEntry]:
    """Parse ``tf history /format:detailed`` output into entries, in output order."""

    entries: list[HistoryEntry] = []
    normalized = "\n".join(_lines(text))
    for block in _HISTORY_SEPARATOR.split(normalized):
        block = block.strip()
        if not block:
            continue
        parsed = parse_history_block(block)
        if isinstance(parsed, HistoryEntry):
            entries.append(parsed)
    return entries


def parse_branches(text: str) -> list[str]:
    """Parse ``tf branches`` output into branch paths."""

    branches: list[str] = []
    for raw in _lines(text):
        line = raw.strip()
        if not line or "no items found" in line.lower() or _BRANCHES_HEADER.match(line):
            continue
        branches.append(line)
    return branches


def parse_tf_date(value: str) -> datetime | None:
    """Parse a locale-formatted date printed by the tool.

    No timezone normalization is applied; the result is naive local time.
    """

    text = value.strip()
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def _clean_comment(raw: str) -> str:
    return "\n".join(line.strip() for line in raw.strip().splitlines()).strip()
