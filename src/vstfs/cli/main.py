"""CLI entrypoints for vstfs."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

import typer

from vstfs.app import (
    AppConfigError,
    RuntimeContext,
    diff_with_previous,
    diff_with_working,
    initialize_config,
    load_runtime,
    revert_file_to_changeset,
)
from vstfs.util.logging import configure_logging, get_logger
from vstfs.version_control.base import VersionControlError
from vstfs.views.render import (
    render_branches,
    render_changeset,
    render_history,
    render_pending,
)
from vstfs.workspace.manager import WorkspacePathError, WorkspaceWriteError

app = typer.Typer(help="TFVC (TF.exe) workflows from the command line.")
_LOGGER = get_logger("vstfs.cli")


@app.callback()
def main(
    ctx: typer.Context,
    log_level: str = typer.Option(
        "WARNING",
        "--log-level",
        help="Logging level (e.g., DEBUG, INFO, WARNING).",
    ),
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        help="Config file or directory containing .vstfs.json.",
    ),
    root: Optional[Path] = typer.Option(
        None,
        "--root",
        "-r",
        help="Override the local working directory.",
    ),
) -> None:
    """Configure CLI-level options."""

    configure_logging(log_level)
    ctx.obj = {"config": config, "root": root}


@contextmanager
def _reporting_errors() -> Iterator[None]:
    try:
        yield
    except (
        VersionControlError,
        AppConfigError,
        WorkspacePathError,
        WorkspaceWriteError,
    ) as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc


def _runtime(ctx: typer.Context) -> RuntimeContext:
    options = ctx.obj or {}
    runtime = load_runtime(options.get("config"), options.get("root"))
    ctx.call_on_close(lambda: _log_metrics(runtime))
    return runtime


def _log_metrics(runtime: RuntimeContext) -> None:
    _LOGGER.debug("TF.exe metrics: %s", runtime.observability.metrics.snapshot())


@app.command()
def init(
    workspace: Path = typer.Argument(Path(".")),
    server_url: str = typer.Option("", "--server-url", help="Server or organization URL."),
    workspace_name: str = typer.Option("", "--workspace-name", help="TFVC workspace name."),
) -> None:
    """Create a .vstfs.json configuration in a working directory."""

    with _reporting_errors():
        config_path = initialize_config(
            workspace, server_url=server_url, workspace_name=workspace_name
        )
    typer.echo(f"Created configuration at {config_path}")


@app.command("signin")
def sign_in_command(ctx: typer.Context) -> None:
    """Open the TFVC sign-in for the configured collection."""

    with _reporting_errors():
        _runtime(ctx).version_control.sign_in()
    typer.echo("Sign-in completed.")


@app.command("get")
def get_command(ctx: typer.Context, target: str = typer.Argument(".")) -> None:
    """Get the latest version from the server."""

    with _reporting_errors():
        _runtime(ctx).version_control.get_latest(target)
    typer.echo("Get Latest completed.")


@app.command("status")
def status_command(ctx: typer.Context) -> None:
    """List pending changes."""

    with _reporting_errors():
        items = _runtime(ctx).version_control.pending_changes()
    typer.echo(render_pending(items))


@app.command("add")
def add_command(ctx: typer.Context, target: str = typer.Argument(".")) -> None:
    """Pend adds for new files."""

    with _reporting_errors():
        _runtime(ctx).version_control.add(target)
    typer.echo("Add completed.")


@app.command("checkin")
def checkin_command(
    ctx: typer.Context,
    files: Optional[list[str]] = typer.Argument(None, help="Files to check in; all when omitted."),
    comment: str = typer.Option(..., "--comment", "-c", prompt="Check-in comment"),
) -> None:
    """Check in pending changes."""

    with _reporting_errors():
        _runtime(ctx).version_control.check_in(comment, files or None)
    typer.echo("Check In completed.")


@app.command("undo")
def undo_command(
    ctx: typer.Context,
    items: Optional[list[str]] = typer.Argument(None, help="Items to undo; all when omitted."),
) -> None:
    """Undo pending changes."""

    with _reporting_errors():
        _runtime(ctx).version_control.undo(items or None)
    typer.echo("Undo completed.")


@app.command("branches")
def branches_command(ctx: typer.Context) -> None:
    """List branches under the mapped server path."""

    with _reporting_errors():
        branches = _runtime(ctx).version_control.list_branches()
    typer.echo(render_branches(branches))


@app.command("branch")
def branch_command(
    ctx: typer.Context,
    source: str = typer.Argument(..., help="Source branch path."),
    destination: str = typer.Argument(..., help="Destination branch path."),
) -> None:
    """Create a branch."""

    with _reporting_errors():
        _runtime(ctx).version_control.create_branch(source, destination)
    typer.echo(f"Created branch {destination}")


@app.command("merge")
def merge_command(
    ctx: typer.Context,
    source: str = typer.Argument(..., help="Source branch path."),
    destination: str = typer.Argument(..., help="Target branch path."),
    changeset_from: Optional[int] = typer.Option(None, "--from", help="First changeset to merge."),
    changeset_to: Optional[int] = typer.Option(None, "--to", help="Last changeset to merge."),
) -> None:
    """Merge one branch into another."""

    with _reporting_errors():
        _runtime(ctx).version_control.merge(
            source,
            destination,
            changeset_from=changeset_from,
            changeset_to=changeset_to,
        )
    typer.echo("Merge completed. Resolve conflicts if any.")


@app.command("resolve")
def resolve_command(ctx: typer.Context) -> None:
    """Auto-merge conflicts."""

    with _reporting_errors():
        resolved = _runtime(ctx).version_control.resolve()
    if resolved:
        typer.echo("Conflicts resolved.")
    else:
        typer.echo("Conflicts detected. Run 'tf resolve' to handle them manually.")


@app.command("history")
def history_command(
    ctx: typer.Context,
    target: str = typer.Argument(".", help="File or folder; the mapped server path by default."),
    max_items: int = typer.Option(100, "--max", help="Maximum number of changesets."),
) -> None:
    """Show changeset history."""

    with _reporting_errors():
        entries = _runtime(ctx).version_control.history(target, max_items)
    typer.echo(render_history(entries))


@app.command("changeset")
def changeset_command(ctx: typer.Context, changeset_id: int = typer.Argument(...)) -> None:
    """Show changeset details."""

    with _reporting_errors():
        entry = _runtime(ctx).version_control.changeset(changeset_id)
    if entry is None:
        typer.echo(f"Changeset {changeset_id} not found.")
        raise typer.Exit(code=1)
    typer.echo(render_changeset(entry))


@app.command("view")
def view_command(
    ctx: typer.Context,
    file: str = typer.Argument(..., help="Server or local path."),
    changeset_id: int = typer.Argument(...),
) -> None:
    """Write a file as of a changeset to a temporary file."""

    with _reporting_errors():
        path = _runtime(ctx).version_control.get_file_at_changeset(file, changeset_id)
    typer.echo(str(path))


@app.command("diff-previous")
def diff_previous_command(
    ctx: typer.Context,
    file: str = typer.Argument(..., help="Server or local path."),
    changeset_id: int = typer.Argument(...),
) -> None:
    """Diff a file at a changeset against its previous revision."""

    with _reporting_errors():
        result = diff_with_previous(_runtime(ctx), file, changeset_id)
    if result is None:
        typer.echo(f"No previous version found for {file} before C{changeset_id}.")
        raise typer.Exit(code=1)
    typer.echo(result.diff or "Files are identical.")


@app.command("diff-working")
def diff_working_command(
    ctx: typer.Context,
    file: str = typer.Argument(..., help="Server or local path."),
    changeset_id: int = typer.Argument(...),
) -> None:
    """Diff a file at a changeset against the working copy."""

    with _reporting_errors():
        result = diff_with_working(_runtime(ctx), file, changeset_id)
    if result.right is None:
        typer.echo(f"Working file not found. Showing file from C{changeset_id}: {result.left}")
        return
    typer.echo(result.diff or "Files are identical.")


@app.command("revert-file")
def revert_file_command(
    ctx: typer.Context,
    file: str = typer.Argument(..., help="Server or local path."),
    changeset_id: int = typer.Argument(...),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
) -> None:
    """Overwrite a working file with its content at a changeset."""

    if not yes:
        typer.confirm(f"Revert {file} to C{changeset_id}? Local changes are discarded.", abort=True)
    with _reporting_errors():
        working = revert_file_to_changeset(_runtime(ctx), file, changeset_id)
    typer.echo(f"Reverted {working.name} to C{changeset_id}. Remember to Check In.")


@app.command("rollback")
def rollback_command(
    ctx: typer.Context,
    changeset_id: int = typer.Argument(...),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation."),
) -> None:
    """Pend a rollback of a changeset."""

    if not yes:
        typer.confirm(
            f"Rollback to C{changeset_id}? This will stage a rollback (pending changes).",
            abort=True,
        )
    with _reporting_errors():
        _runtime(ctx).version_control.rollback_to_changeset(changeset_id)
    typer.echo(f"Rolled back to C{changeset_id}. Review and Check In.")
