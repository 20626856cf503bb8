"""Text views of version control records."""

from vstfs.views.render import (
    render_branches,
    render_changeset,
    render_history,
    render_history_row,
    render_pending,
)

__all__ = [
    "render_branches",
    "render_changeset",
    "render_history",
    "render_history_row",
    "render_pending",
]
