"""Workspace configuration management for hunkguard.

Handles reading and writing the .hunkguard/config.yaml file in each workspace.
Missing keys fall back to DEFAULT_CONFIG; values are validated by
WorkspaceConfig.
"""

from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from hunkguard.exceptions import ConfigError


CONFIG_DIR_NAME = ".hunkguard"

# Default configuration values
DEFAULT_CONFIG: dict[str, Any] = {
    "backup_retention": 5,
    "confirm_before_apply": True,
    "context_lines": 3,
    "wrap_navigation": False,
    "parser": "unified_diff",
    "regex_pattern": None,
    "backup_dir": f"{CONFIG_DIR_NAME}/backups",
    "keep_failed_backups": True,
}


class WorkspaceConfig(BaseModel):
    """Validated workspace settings."""

    backup_retention: int = Field(default=5, ge=0)
    confirm_before_apply: bool = True
    context_lines: int = Field(default=3, ge=0)
    wrap_navigation: bool = False
    parser: str = "unified_diff"
    regex_pattern: Optional[str] = None
    backup_dir: str = f"{CONFIG_DIR_NAME}/backups"
    keep_failed_backups: bool = True

    def backup_root(self, root: Path) -> Path:
        """Resolve backup_dir against the workspace root (absolute paths are kept)."""
        backup_dir = Path(self.backup_dir).expanduser()
        if backup_dir.is_absolute():
            return backup_dir
        return root / backup_dir


def get_config_dir(root: Path) -> Path:
    """Return the workspace config directory (not created)."""
    return root / CONFIG_DIR_NAME


def get_config_file(root: Path) -> Path:
    """Return path to the config.yaml file.

    Args:
        root: The workspace root directory.

    Returns:
        Path to .hunkguard/config.yaml.
    """
    return get_config_dir(root) / "config.yaml"


def load_config_dict(root: Path) -> dict:
    """Load the raw configuration, merged over the defaults.

    Unlike load_config, a missing file is not created.

    Raises:
        ConfigError: If the file exists but is not valid YAML
    """
    config_file = get_config_file(root)
    config = DEFAULT_CONFIG.copy()
    if not config_file.exists():
        return config

    try:
        with open(config_file, "r") as f:
            loaded = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to load config from {config_file}: {e}")

    if not isinstance(loaded, dict):
        raise ConfigError(f"Config in {config_file} must be a mapping")
    config.update(loaded)
    return config


def load_config(root: Path) -> WorkspaceConfig:
    """Load and validate the workspace configuration.

    Args:
        root: The workspace root directory.

    Returns:
        WorkspaceConfig with defaults for any missing keys.

    Raises:
        ConfigError: If the file is unreadable or a value is invalid
    """
    config = load_config_dict(root)
    try:
        return WorkspaceConfig(**config)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {get_config_file(root)}: {e}")


def save_config(root: Path, config: dict) -> None:
    """Save the configuration to config.yaml.

    Args:
        root: The workspace root directory.
        config: Configuration dictionary to save.
    """
    config_file = get_config_file(root)
    config_file.parent.mkdir(exist_ok=True)

    with open(config_file, "w") as f:
        yaml.dump(
            config,
            f,
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
        )


def set_config_value(root: Path, key: str, raw_value: str) -> WorkspaceConfig:
    """Set a single key from a command-line string and save it.

    The value is parsed as YAML, so "true", "3" and "null" get their natural types.

    Raises:
        ConfigError: If the key is unknown or the resulting config is invalid
    """
    if key not in DEFAULT_CONFIG:
        raise ConfigError(f"Unknown config key: {key}")

    try:
        value = yaml.safe_load(raw_value)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid value for {key}: {e}")

    config = load_config_dict(root)
    config[key] = value
    try:
        validated = WorkspaceConfig(**config)
    except ValidationError as e:
        raise ConfigError(f"Invalid value for {key}: {e}")

    save_config(root, config)
    return validated
