"""Backup store path utilities for hunkguard.

Contains functions for locating backup files:
- get_path_key: Directory name that identifies one original path
- get_entry_dir: Directory holding every backup of one original path
- get_data_file: Path to a backup's raw bytes
- get_metadata_file: Path to a backup's JSON metadata
"""

import hashlib
import re
from pathlib import Path

_UNSAFE_CHARS_RE = re.compile(r"[^A-Za-z0-9._-]+")


def get_path_key(target: Path) -> str:
    """Return the store key for an original file path.

    The key keeps the file name readable and adds a hash of the absolute
    path, so two files with the same name never share a directory.

    Args:
        target: The original file path.

    Returns:
        Key such as "main.py-3f2a9c1b7d4e".
    """
    absolute = str(target.absolute())
    digest = hashlib.sha256(absolute.encode()).hexdigest()[:12]
    name = _UNSAFE_CHARS_RE.sub("_", target.name) or "file"
    return f"{name}-{digest}"


def get_entry_dir(backup_root: Path, target: Path) -> Path:
    """Return the directory holding all backups of target (not created)."""
    return backup_root / get_path_key(target)


def get_data_file(entry_dir: Path, stem: str) -> Path:
    """Return path to the raw bytes of a backup."""
    return entry_dir / f"{stem}.bak"


def get_metadata_file(entry_dir: Path, stem: str) -> Path:
    """Return path to the metadata record of a backup."""
    return entry_dir / f"{stem}.json"
