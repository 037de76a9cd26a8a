"""Backup module for hunkguard.

This package snapshots files before they are mutated:
- models: BackupMetadata, BackupHandle
- paths: Functions for locating backups in the store
- manager: BackupManager (backup, restore, list, prune, discard)
"""

# Models
from hunkguard.backup.models import (
    BackupHandle,
    BackupMetadata,
)

# Path utilities
from hunkguard.backup.paths import (
    get_data_file,
    get_entry_dir,
    get_metadata_file,
    get_path_key,
)

# Manager
from hunkguard.backup.manager import (
    BackupManager,
)


__all__ = [
    # Models
    "BackupHandle",
    "BackupMetadata",
    # Path utilities
    "get_data_file",
    "get_entry_dir",
    "get_metadata_file",
    "get_path_key",
    # Manager
    "BackupManager",
]
