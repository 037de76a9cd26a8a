"""Main CLI callback: global options shared by every command."""

from typing import Optional

import typer

from hunkguard import __version__
from hunkguard.cli.utils import configure_logging


def main_command(
    ctx: typer.Context,
    root: Optional[str] = typer.Option(
        None,
        "--root",
        "-C",
        help="Workspace root (defaults to the current directory)",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Log every transaction step to stderr",
    ),
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit",
        is_eager=True,
    ),
) -> None:
    """Review AI-proposed changes hunk by hunk and apply them atomically."""
    if version:
        typer.echo(f"hunkguard {__version__}")
        raise typer.Exit()

    configure_logging(verbose)
    ctx.obj = {"root": root, "verbose": verbose}

    if ctx.invoked_subcommand is None:
        typer.echo(ctx.get_help())
