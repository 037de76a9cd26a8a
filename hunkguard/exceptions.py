"""Exception classes for hunkguard.

Contains the error taxonomy shared by every stage of applying a change set:
- HunkGuardError: Base exception for all hunkguard errors
- ParseError: Provider output could not be turned into hunks
- SelectionInvariantViolation: Hunks overlap, are misordered or duplicated
- UnknownHunkError: A selection operation named a hunk that does not exist
- ReconstructionError: Target content could not be computed safely
- BackupError: A pre-mutation snapshot could not be taken
- WriteError: Writing or renaming a target file failed
- RestoreError: Rolling a file back from its backup failed
- TransactionInProgress: Another transaction is applying in the workspace
- ConfigError: Workspace configuration is invalid
"""

from pathlib import Path
from typing import Optional


class HunkGuardError(Exception):
    """Base exception for hunkguard errors."""

    pass


class ParseError(HunkGuardError):
    """Raised when provider output is malformed. No transaction is started."""

    pass


class SelectionInvariantViolation(HunkGuardError):
    """Raised when hunks within a file overlap or are out of order."""

    pass


class UnknownHunkError(HunkGuardError):
    """Raised when a hunk id is unknown or ambiguous within a DiffModel."""

    pass


class FileOperationError(HunkGuardError):
    """Base for errors tied to a single file path."""

    def __init__(self, message: str, path: Optional[Path] = None):
        super().__init__(message)
        self.path = path


class ReconstructionError(FileOperationError):
    """Raised when a file's target content cannot be computed without guessing."""

    pass


class BackupError(FileOperationError):
    """Raised when a snapshot cannot be read from disk or written to the store."""

    pass


class WriteError(FileOperationError):
    """Raised when the temp write, rename or removal of a target file fails."""

    pass


class RestoreError(FileOperationError):
    """Raised when a file cannot be restored from its backup.

    A failed rollback needs manual recovery; the backup files are left in
    place so that the content can be recovered by hand.
    """

    pass


class TransactionInProgress(HunkGuardError):
    """Raised when apply() is called while another transaction is applying."""

    pass


class ConfigError(HunkGuardError):
    """Raised when the workspace configuration cannot be loaded or is invalid."""

    pass
