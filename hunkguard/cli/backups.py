"""CLI commands for inspecting and restoring backups."""

from pathlib import Path
from typing import Optional

import typer

from hunkguard.exceptions import HunkGuardError
from hunkguard.cli.utils import get_workspace

# Subcommand group for backup management
backups_app = typer.Typer(
    name="backups",
    help="Inspect, prune and restore pre-change backups",
    add_completion=False,
)


@backups_app.command("list")
def backups_list(
    ctx: typer.Context,
    path: Optional[str] = typer.Argument(
        None,
        help="Only list backups of this workspace file",
    ),
) -> None:
    """List stored backups, oldest first."""
    try:
        workspace = get_workspace(ctx)
        if path:
            handles = workspace.backups.list_backups(workspace.resolve(path))
        else:
            handles = workspace.backups.list_all()
    except HunkGuardError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    if not handles:
        typer.echo("No backups found.")
        return

    for handle in handles:
        meta = handle.metadata
        state = "existed" if meta.existed_before else "absent"
        typer.echo(
            f"{handle.backup_id}  {meta.timestamp}  tx={meta.transaction_id}  "
            f"{state}  {meta.original_path}"
        )
    typer.echo()
    typer.echo(f"Total: {len(handles)} backup(s)")


@backups_app.command("prune")
def backups_prune(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="Workspace file whose backups to prune"),
    keep: Optional[int] = typer.Option(
        None,
        "--keep",
        "-k",
        min=0,
        help="Number of most recent backups to keep (defaults to backup_retention)",
    ),
) -> None:
    """Remove all but the most recent backups of a file."""
    try:
        workspace = get_workspace(ctx)
        keep_count = keep if keep is not None else workspace.config.backup_retention
        removed = workspace.backups.prune(workspace.resolve(path), keep_count)
    except (HunkGuardError, OSError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(f"Removed {len(removed)} backup(s) of {path}")


@backups_app.command("restore")
def backups_restore(
    ctx: typer.Context,
    backup_id: str = typer.Argument(..., help="Backup id as shown by 'backups list'"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    """Restore a file from one backup (manual recovery)."""
    try:
        workspace = get_workspace(ctx)
        handle = workspace.backups.load(backup_id)
        target = Path(handle.metadata.original_path)
        action = "overwrite" if handle.existed_before else "delete"
        if not yes and not typer.confirm(f"This will {action} {target}. Continue?"):
            typer.echo("Cancelled.")
            return
        workspace.backups.restore(handle)
    except HunkGuardError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(f"Restored {target} from {backup_id}")
