"""Data models for hunkguard transactions.

Contains:
- TransactionState: Lifecycle states of a transaction
- ChangeKind: What happened to a file in a committed transaction
- Transaction: One atomic attempt to apply a selection to disk
- FileOutcome: Per-file summary of a committed transaction
- Committed: Result of a transaction whose files all landed
- Failed: Result of a transaction that was rolled back
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Optional, Union

from hunkguard.backup.models import BackupHandle
from hunkguard.exceptions import HunkGuardError


class TransactionState(Enum):
    """Lifecycle states of a transaction."""

    PENDING = "pending"
    APPLYING = "applying"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self not in (TransactionState.PENDING, TransactionState.APPLYING)


_ALLOWED_TRANSITIONS = {
    TransactionState.PENDING: {TransactionState.APPLYING},
    TransactionState.APPLYING: {
        TransactionState.COMMITTED,
        TransactionState.ROLLED_BACK,
        TransactionState.FAILED,
    },
}


class ChangeKind(Enum):
    """What a committed transaction did to a file."""

    CREATED = "created"
    MODIFIED = "modified"
    DELETED = "deleted"


def new_transaction_id() -> str:
    """Return a short unique transaction id."""
    return uuid.uuid4().hex[:12]


@dataclass
class Transaction:
    """One atomic attempt to apply a selection of hunks across files."""

    id: str = field(default_factory=new_transaction_id)
    targets: list[str] = field(default_factory=list)  # Fixed processing order
    state: TransactionState = TransactionState.PENDING
    backups: dict[str, BackupHandle] = field(default_factory=dict)
    mutated: list[str] = field(default_factory=list)  # In mutation order
    created_dirs: list[Path] = field(default_factory=list)  # Outermost first
    started_at: Optional[str] = None
    finished_at: Optional[str] = None

    def transition(self, new_state: TransactionState) -> None:
        """Move to a new state, enforcing the state machine.

        Raises:
            RuntimeError: If the transition is not allowed
        """
        if new_state not in _ALLOWED_TRANSITIONS.get(self.state, set()):
            raise RuntimeError(
                f"Transaction {self.id} cannot go from {self.state.value} to {new_state.value}"
            )
        now = datetime.now(timezone.utc).isoformat()
        if new_state == TransactionState.APPLYING:
            self.started_at = now
        elif new_state.is_terminal:
            self.finished_at = now
        self.state = new_state


@dataclass
class FileOutcome:
    """Per-file summary of a committed transaction."""

    file_path: str
    kind: ChangeKind
    hunks_applied: int
    hunks_rejected: int = 0


@dataclass
class Committed:
    """Every targeted file reached its selected content."""

    transaction_id: str
    files: list[FileOutcome] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return True

    @property
    def hunks_applied(self) -> int:
        return sum(f.hunks_applied for f in self.files)


@dataclass
class Failed:
    """A file failed; every file already mutated was rolled back.

    restored lists files restored from their backups (in restore order);
    restore_failed maps files that could not be restored to the reason.
    """

    transaction_id: str
    error: HunkGuardError
    failing_file: Optional[str]
    restored: list[str] = field(default_factory=list)
    restore_failed: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return False

    @property
    def requires_manual_recovery(self) -> bool:
        return bool(self.restore_failed)

    def describe(self) -> str:
        """Human-readable summary naming the failing file and the rollback."""
        where = f" in {self.failing_file}" if self.failing_file else ""
        lines = [f"Transaction {self.transaction_id} failed{where}: {self.error}"]
        if self.restored:
            lines.append(f"Restored: {', '.join(self.restored)}")
        else:
            lines.append("Restored: (no files had been modified)")
        for path, reason in self.restore_failed.items():
            lines.append(f"RESTORE FAILED: {path}: {reason}")
        if self.requires_manual_recovery:
            lines.append("Manual recovery required; backups were kept.")
        return "\n".join(lines)


TransactionResult = Union[Committed, Failed]
