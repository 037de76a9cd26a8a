"""CLI entry point for hunkguard.

This module provides the main CLI application that combines all commands
and subcommands into a single unified interface.
"""

import typer

from hunkguard.cli.backups import backups_app
from hunkguard.cli.config import config_app
from hunkguard.cli.review import apply_command, show_command
from hunkguard.cli.main import main_command

# Main application
app = typer.Typer(
    name="hunkguard",
    help="hunkguard: transactional review and apply of AI-proposed file changes",
    add_completion=False,
)

# Add subcommand groups
app.add_typer(backups_app, name="backups")
app.add_typer(config_app, name="config")

# Add individual commands
app.command("show")(show_command)
app.command("apply")(apply_command)

# Set the main callback for global options
app.callback(invoke_without_command=True)(main_command)


__all__ = ["app"]
