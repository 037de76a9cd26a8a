"""Backup data models for hunkguard.

Contains:
- BackupMetadata: Pydantic record stored next to each backup's raw bytes
- BackupHandle: Reference to one stored backup
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from pydantic import BaseModel


class BackupMetadata(BaseModel):
    """Metadata stored alongside the raw pre-mutation bytes."""

    original_path: str  # Absolute path of the backed-up file
    existed_before: bool  # False means restore deletes the file
    transaction_id: str
    timestamp: str  # ISO format timestamp
    created_ns: int  # Monotonic per store; orders backups of the same path
    size: int = 0
    sha256: Optional[str] = None
    mode: Optional[int] = None  # Permission bits of the original file


@dataclass
class BackupHandle:
    """Reference to a stored backup, returned by BackupManager.backup()."""

    target: Path
    metadata: BackupMetadata
    metadata_file: Path
    data_file: Optional[Path] = None  # None when the file did not exist

    @property
    def backup_id(self) -> str:
        """Identifier of the backup within its store: <path-key>/<stem>."""
        return f"{self.metadata_file.parent.name}/{self.metadata_file.stem}"

    @property
    def existed_before(self) -> bool:
        return self.metadata.existed_before
