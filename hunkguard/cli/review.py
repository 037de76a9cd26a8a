"""CLI commands for reviewing and applying proposed changes."""

from typing import List, Optional

import typer

from hunkguard.diff.models import HunkStatus
from hunkguard.exceptions import HunkGuardError
from hunkguard.transaction.coordinator import apply_changes
from hunkguard.transaction.models import Failed
from hunkguard.cli.utils import (
    display_file_diff,
    display_result,
    get_workspace,
    read_raw_output,
)


def show_command(
    ctx: typer.Context,
    source: str = typer.Argument(
        ...,
        help="File holding the provider output, or - for stdin",
    ),
    parser: Optional[str] = typer.Option(
        None,
        "--parser",
        "-p",
        help="Output format (unified_diff, code_blocks, json_changes, claude_json, regex)",
    ),
    snippets: bool = typer.Option(
        True,
        "--snippets/--no-snippets",
        help="Show the changed lines of each hunk",
    ),
) -> None:
    """Show the files and hunks proposed in provider output."""
    try:
        workspace = get_workspace(ctx)
        diff_model = workspace.propose(read_raw_output(source), parser)
    except HunkGuardError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    for file_diff in diff_model:
        display_file_diff(file_diff, show_snippets=snippets)
        typer.echo()

    total = sum(diff_model.status_summary().values())
    typer.echo(f"Total: {total} hunk(s) in {len(diff_model)} file(s)")


def apply_command(
    ctx: typer.Context,
    source: str = typer.Argument(
        ...,
        help="File holding the provider output, or - for stdin",
    ),
    parser: Optional[str] = typer.Option(
        None,
        "--parser",
        "-p",
        help="Output format (defaults to the configured parser)",
    ),
    accept_all: bool = typer.Option(
        False,
        "--all",
        "-a",
        help="Accept every hunk (combine with --reject to leave some out)",
    ),
    accept: Optional[List[str]] = typer.Option(
        None,
        "--accept",
        help="Accept a hunk by id (repeatable)",
    ),
    reject: Optional[List[str]] = typer.Option(
        None,
        "--reject",
        help="Reject a hunk by id (repeatable)",
    ),
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Do not ask for confirmation, even if confirm_before_apply is set",
    ),
) -> None:
    """Apply the accepted hunks of provider output as one transaction."""
    try:
        workspace = get_workspace(ctx)
        diff_model = workspace.propose(read_raw_output(source), parser)

        if accept_all:
            diff_model.accept_all()
        for hunk_id in accept or []:
            diff_model.accept(hunk_id)
        for hunk_id in reject or []:
            diff_model.reject(hunk_id)

        accepted = diff_model.status_summary()[HunkStatus.ACCEPTED]
        if accepted == 0:
            typer.echo("No hunks accepted; nothing to apply.")
            workspace.cancel()
            return

        for file_diff in diff_model:
            display_file_diff(file_diff, show_snippets=False)

        if workspace.config.confirm_before_apply and not yes:
            if not typer.confirm(f"Apply {accepted} hunk(s)?"):
                workspace.cancel()
                typer.echo("Cancelled; no files were changed.")
                return

        result = apply_changes(workspace, diff_model)
    except HunkGuardError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    display_result(result)
    if isinstance(result, Failed):
        raise typer.Exit(2 if result.requires_manual_recovery else 1)
