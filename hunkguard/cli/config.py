"""CLI commands for workspace configuration management."""

import typer

from hunkguard.config import get_config_file, load_config, set_config_value
from hunkguard.exceptions import ConfigError
from hunkguard.parsers import PARSER_DESCRIPTIONS
from hunkguard.cli.utils import get_root

# Subcommand group for configuration management
config_app = typer.Typer(
    name="config",
    help="Manage workspace configuration in .hunkguard/config.yaml",
    add_completion=False,
)


@config_app.command("show")
def config_show(ctx: typer.Context) -> None:
    """Show the effective workspace configuration."""
    root = get_root(ctx)
    try:
        config = load_config(root)
    except ConfigError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    config_file = get_config_file(root)
    source = str(config_file) if config_file.exists() else "defaults (no config file)"
    typer.echo(f"Configuration from {source}:")
    typer.echo()
    for key, value in config.model_dump().items():
        typer.echo(f"  {key}: {value}")
    typer.echo()
    typer.echo("Available parsers:")
    for name, description in PARSER_DESCRIPTIONS.items():
        typer.echo(f"  {name:<13} {description}")


@config_app.command("set")
def config_set(
    ctx: typer.Context,
    key: str = typer.Argument(..., help="Configuration key, e.g. backup_retention"),
    value: str = typer.Argument(..., help="New value (parsed as YAML)"),
) -> None:
    """Set a workspace configuration value."""
    try:
        config = set_config_value(get_root(ctx), key, value)
    except ConfigError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    typer.echo(f"Set {key} = {getattr(config, key)}")
