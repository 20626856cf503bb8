"""Plain-text rendering of version control records."""

from __future__ import annotations

from collections.abc import Iterable

from vstfs.version_control.base import HistoryEntry, PendingChange

NO_COMMENT = "No comment"


def render_pending(items: Iterable[PendingChange]) -> str:
    """Render pending changes as ``ACTION  path`` lines."""

    rows = [f"{item.action.value.upper():<8}{item.file}" for item in items]
    if not rows:
        return "There are no pending changes."
    return "\n".join(rows)


def render_history_row(entry: HistoryEntry) -> str:
    """Render a one-line summary of a changeset."""

    first_line = entry.comment.splitlines()[0] if entry.comment else NO_COMMENT
    return f"C{entry.changeset_id} - {entry.author}  {_format_date(entry)}  {first_line}"


def render_history(entries: Iterable[HistoryEntry]) -> str:
    """Render history entries, one per line."""

    rows = [render_history_row(entry) for entry in entries]
    if not rows:
        return "No history found."
    return "\n".join(rows)


def render_changeset(entry: HistoryEntry) -> str:
    """Render full changeset details including its items."""

    lines = [
        f"Changeset C{entry.changeset_id}",
        f"Author: {entry.author}",
        f"Date: {_format_date(entry)}",
        f"Files: {len(entry.files)}",
        f"Comment: {entry.comment or NO_COMMENT}",
        "",
        "Items:",
    ]
    lines.extend(f"  {change.change.value:<8}{change.path}" for change in entry.files)
    return "\n".join(lines)


def render_branches(branches: Iterable[str]) -> str:
    rows = list(branches)
    if not rows:
        return "No branches found."
    return "\n".join(rows)


def _format_date(entry: HistoryEntry) -> str:
    if entry.timestamp is None:
        return "unknown date"
    return entry.timestamp.strftime("%Y-%m-%d %H:%M:%S")
