"""Shared utility functions for CLI commands."""

import logging
import sys
from pathlib import Path

import typer

from hunkguard.diff.models import AggregateStatus, FileDiff, Hunk, HunkStatus
from hunkguard.transaction.models import Committed, Failed, TransactionResult
from hunkguard.transaction.workspace import Workspace


_STATUS_MARKERS = {
    HunkStatus.PENDING: "[ ]",
    HunkStatus.ACCEPTED: "[+]",
    HunkStatus.REJECTED: "[-]",
}

_AGGREGATE_LABELS = {
    AggregateStatus.ACCEPTED: "accepted",
    AggregateStatus.REJECTED: "rejected",
    AggregateStatus.MIXED: "mixed",
}


def configure_logging(verbose: bool) -> None:
    """Send hunkguard log records to stderr; DEBUG with --verbose, WARNING otherwise."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def get_root(ctx: typer.Context) -> Path:
    """Workspace root given to the main callback, or the current directory."""
    root = ctx.obj.get("root") if ctx.obj else None
    return Path(root) if root else Path.cwd()


def get_workspace(ctx: typer.Context) -> Workspace:
    """Build the Workspace for the current command."""
    return Workspace(get_root(ctx))


def read_raw_output(source: str) -> str:
    """Read provider output from a file, or from stdin when source is "-".

    The bytes are decoded as UTF-8 without newline translation, so "\\r\\n"
    line endings reach the parsers unchanged.

    Raises:
        typer.Exit: If the input cannot be read or is not UTF-8
    """
    try:
        if source == "-":
            stdin = getattr(sys.stdin, "buffer", None)
            if stdin is None:
                return sys.stdin.read()
            return stdin.read().decode("utf-8")
        return Path(source).read_bytes().decode("utf-8")
    except (OSError, UnicodeDecodeError) as e:
        typer.echo(f"Error: cannot read {source}: {e}", err=True)
        raise typer.Exit(1)


def format_hunk_line(hunk: Hunk) -> str:
    """One-line description of a hunk for listings."""
    return (
        f"{_STATUS_MARKERS[hunk.status]} {hunk.id}  {hunk.location}  "
        f"-{len(hunk.removed)} +{len(hunk.replacement)}"
    )


def display_file_diff(file_diff: FileDiff, show_snippets: bool = True) -> None:
    """Print a file with its aggregate status and hunks."""
    label = _AGGREGATE_LABELS[file_diff.aggregate_status]
    kind = ""
    if file_diff.is_new_file:
        kind = " (new file)"
    elif file_diff.is_deleted_file:
        kind = " (delete)"
    typer.echo(f"{file_diff.file_path}{kind} [{label}]")
    for hunk in file_diff.hunks:
        typer.echo(f"  {format_hunk_line(hunk)}")
        if show_snippets:
            for line in hunk.snippet().split("\n"):
                typer.echo(f"      {line}")


def display_result(result: TransactionResult) -> None:
    """Print a Committed or Failed transaction result."""
    if isinstance(result, Committed):
        if not result.files:
            typer.echo("Nothing was applied.")
            return
        typer.echo(f"Applied {result.hunks_applied} hunk(s) to {len(result.files)} file(s):")
        for outcome in result.files:
            typer.echo(
                f"  {outcome.kind.value:<8} {outcome.file_path} "
                f"({outcome.hunks_applied} applied, {outcome.hunks_rejected} rejected)"
            )
        return

    if isinstance(result, Failed):
        typer.echo(result.describe(), err=True)
