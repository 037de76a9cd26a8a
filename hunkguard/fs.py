"""Filesystem helpers for hunkguard.

Contains:
- atomic_write_bytes: Write a file via a sibling temp file and an atomic rename
- ensure_parent_dirs: Create missing parent directories, reporting which were created
- remove_empty_dirs: Remove directories created for a file, if they are empty
"""

import os
import tempfile
from pathlib import Path
from typing import Optional


def ensure_parent_dirs(path: Path, created: Optional[list[Path]] = None) -> list[Path]:
    """Create the missing parent directories of path.

    Args:
        path: File whose parent directories should exist
        created: List to append each directory to as soon as it is made,
            so a failure partway still reports what already exists

    Returns:
        Directories that were created, outermost first

    Raises:
        OSError: If a directory cannot be created
    """
    missing: list[Path] = []
    parent = path.parent
    while not parent.exists():
        missing.append(parent)
        if parent.parent == parent:
            break
        parent = parent.parent

    missing.reverse()
    for directory in missing:
        directory.mkdir()
        if created is not None:
            created.append(directory)
    return missing


def remove_empty_dirs(directories: list[Path]) -> None:
    """Remove directories innermost first, keeping any that are not empty."""
    for directory in reversed(directories):
        try:
            directory.rmdir()
        except OSError:
            continue


def atomic_write_bytes(path: Path, data: bytes, mode: Optional[int] = None) -> None:
    """Write data to path atomically.

    The data goes to a temp file in the same directory, is flushed to disk,
    and is moved into place with os.replace. The temp file is removed on
    every exit path, whether or not the rename succeeded.

    Args:
        path: Destination file (its directory must exist)
        data: Bytes to write
        mode: Permission bits for the file; the existing file's mode is kept if None

    Raises:
        OSError: If writing, syncing or renaming fails
    """
    if mode is None and path.exists():
        mode = path.stat().st_mode & 0o7777

    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        if mode is not None:
            os.chmod(tmp_path, mode)
        os.replace(tmp_path, path)
    finally:
        if tmp_path.exists():
            tmp_path.unlink()

    _fsync_dir(path.parent)


def _fsync_dir(directory: Path) -> None:
    """Flush directory metadata so the rename survives a crash, where supported."""
    try:
        dir_fd = os.open(directory, os.O_RDONLY)
    except OSError:
        return
    try:
        os.fsync(dir_fd)
    except OSError:
        pass
    finally:
        os.close(dir_fd)
