"""Backup manager for hunkguard.

Contains:
- BackupManager: Snapshot files before mutation, restore them, enforce retention
"""

import hashlib
import logging
import threading
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from hunkguard.backup.models import BackupHandle, BackupMetadata
from hunkguard.backup.paths import (
    get_data_file,
    get_entry_dir,
    get_metadata_file,
)
from hunkguard.exceptions import BackupError, RestoreError
from hunkguard.fs import atomic_write_bytes, ensure_parent_dirs

logger = logging.getLogger(__name__)


class BackupManager:
    """Stores pre-mutation snapshots under a backup root directory.

    Each backup is two files in a per-path directory:
    <created_ns>_<transaction_id>.bak holds the raw bytes (absent when the
    file did not exist) and <created_ns>_<transaction_id>.json holds the
    BackupMetadata record.
    """

    def __init__(self, backup_root: Path):
        self.backup_root = backup_root
        self._clock_lock = threading.Lock()
        self._last_ns = 0

    def _next_ns(self) -> int:
        """Strictly increasing timestamp, so backups of one path never tie."""
        with self._clock_lock:
            now = max(time.time_ns(), self._last_ns + 1)
            self._last_ns = now
            return now

    # ------------------------------------------------------------------
    # Snapshot and restore
    # ------------------------------------------------------------------

    def backup(self, path: Path, transaction_id: str) -> BackupHandle:
        """Capture the current on-disk state of path.

        Args:
            path: File to snapshot; it does not need to exist
            transaction_id: Id of the transaction taking the snapshot

        Returns:
            BackupHandle for restore()

        Raises:
            BackupError: If the source cannot be read or the store cannot be written
        """
        existed = path.exists()
        data: Optional[bytes] = None
        mode: Optional[int] = None
        if existed:
            if not path.is_file():
                raise BackupError(f"Not a regular file: {path}", path=path)
            try:
                data = path.read_bytes()
                mode = path.stat().st_mode & 0o7777
            except OSError as e:
                raise BackupError(f"Failed to read {path} for backup: {e}", path=path) from e

        created_ns = self._next_ns()
        entry_dir = get_entry_dir(self.backup_root, path)
        stem = f"{created_ns:020d}_{transaction_id}"
        data_file = get_data_file(entry_dir, stem) if existed else None
        metadata_file = get_metadata_file(entry_dir, stem)

        metadata = BackupMetadata(
            original_path=str(path.absolute()),
            existed_before=existed,
            transaction_id=transaction_id,
            timestamp=datetime.now(timezone.utc).isoformat(),
            created_ns=created_ns,
            size=len(data) if data is not None else 0,
            sha256=hashlib.sha256(data).hexdigest() if data is not None else None,
            mode=mode,
        )

        try:
            entry_dir.mkdir(parents=True, exist_ok=True)
            if data_file is not None:
                atomic_write_bytes(data_file, data, mode=0o600)
            atomic_write_bytes(metadata_file, metadata.model_dump_json(indent=2).encode(), mode=0o600)
        except OSError as e:
            for leftover in (data_file, metadata_file):
                if leftover is None:
                    continue
                try:
                    leftover.unlink(missing_ok=True)
                except OSError as cleanup_error:
                    logger.warning("Could not remove partial backup %s: %s", leftover, cleanup_error)
            raise BackupError(f"Failed to write backup of {path}: {e}", path=path) from e

        logger.debug("Backed up %s (existed=%s) as %s", path, existed, stem)
        return BackupHandle(
            target=path,
            metadata=metadata,
            metadata_file=metadata_file,
            data_file=data_file,
        )

    def restore(self, handle: BackupHandle) -> None:
        """Put a file back exactly as it was when the backup was taken.

        Writes the captured bytes back atomically, or deletes the file if it
        did not exist before.

        Raises:
            RestoreError: If the backup cannot be read or the file cannot be restored
        """
        target = handle.target
        try:
            if not handle.existed_before:
                target.unlink(missing_ok=True)
                logger.debug("Restored %s by removing it", target)
                return

            if handle.data_file is None:
                raise RestoreError(f"Backup of {target} has no data file", path=target)
            data = handle.data_file.read_bytes()
            if handle.metadata.sha256 and hashlib.sha256(data).hexdigest() != handle.metadata.sha256:
                raise RestoreError(f"Backup of {target} is corrupt (checksum mismatch)", path=target)
            ensure_parent_dirs(target)
            atomic_write_bytes(target, data, mode=handle.metadata.mode)
        except OSError as e:
            raise RestoreError(f"Failed to restore {target}: {e}", path=target) from e

        logger.debug("Restored %s from %s", target, handle.backup_id)

    # ------------------------------------------------------------------
    # Listing and retention
    # ------------------------------------------------------------------

    def list_backups(self, path: Path) -> list[BackupHandle]:
        """Return the backups of path, oldest first."""
        return self._load_entry_dir(get_entry_dir(self.backup_root, path))

    def list_all(self) -> list[BackupHandle]:
        """Return every backup in the store, oldest first."""
        if not self.backup_root.exists():
            return []
        handles: list[BackupHandle] = []
        for entry_dir in sorted(p for p in self.backup_root.iterdir() if p.is_dir()):
            handles.extend(self._load_entry_dir(entry_dir))
        handles.sort(key=lambda h: h.metadata.created_ns)
        return handles

    def load(self, backup_id: str) -> BackupHandle:
        """Load a backup by the id shown in listings (<path-key>/<stem>).

        Raises:
            BackupError: If no such backup exists or its metadata is unreadable
        """
        key, _, stem = backup_id.partition("/")
        metadata_file = get_metadata_file(self.backup_root / key, stem)
        if not key or not stem or not metadata_file.exists():
            raise BackupError(f"No such backup: {backup_id}")
        handle = self._load_handle(metadata_file)
        if handle is None:
            raise BackupError(f"Backup metadata is unreadable: {backup_id}")
        return handle

    def prune(self, path: Path, keep: int) -> list[BackupHandle]:
        """Keep only the `keep` most recent backups of path, removing the oldest first.

        Returns:
            The handles that were removed
        """
        handles = self.list_backups(path)
        excess = len(handles) - max(keep, 0)
        if excess <= 0:
            return []
        removed = handles[:excess]
        for handle in removed:
            self.discard(handle)
        logger.debug("Pruned %d backup(s) of %s", len(removed), path)
        return removed

    def discard(self, handle: BackupHandle) -> None:
        """Delete a backup's files from the store."""
        for stored in (handle.data_file, handle.metadata_file):
            if stored is not None:
                stored.unlink(missing_ok=True)
        entry_dir = handle.metadata_file.parent
        if entry_dir.exists() and not any(entry_dir.iterdir()):
            entry_dir.rmdir()

    def _load_entry_dir(self, entry_dir: Path) -> list[BackupHandle]:
        if not entry_dir.exists():
            return []
        handles = []
        for metadata_file in entry_dir.glob("*.json"):
            handle = self._load_handle(metadata_file)
            if handle is not None:
                handles.append(handle)
        handles.sort(key=lambda h: h.metadata.created_ns)
        return handles

    @staticmethod
    def _load_handle(metadata_file: Path) -> Optional[BackupHandle]:
        try:
            metadata = BackupMetadata.model_validate_json(metadata_file.read_text())
        except (OSError, ValidationError) as e:
            logger.warning("Skipping unreadable backup metadata %s: %s", metadata_file, e)
            return None
        data_file = None
        if metadata.existed_before:
            data_file = get_data_file(metadata_file.parent, metadata_file.stem)
        return BackupHandle(
            target=Path(metadata.original_path),
            metadata=metadata,
            metadata_file=metadata_file,
            data_file=data_file,
        )
