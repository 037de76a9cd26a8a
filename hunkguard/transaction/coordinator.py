"""Transaction coordinator for hunkguard.

Contains:
- TransactionCoordinator: Apply a DiffModel to a workspace atomically
- apply_changes: Apply a DiffModel to a workspace in one call
"""

import hashlib
import logging
from typing import Optional

from hunkguard.diff.models import HunkStatus, find_order_violation
from hunkguard.diff.selection import DiffModel, SelectionSnapshot
from hunkguard.exceptions import (
    HunkGuardError,
    ReconstructionError,
    RestoreError,
    SelectionInvariantViolation,
    WriteError,
)
from hunkguard.fs import atomic_write_bytes, ensure_parent_dirs, remove_empty_dirs
from hunkguard.reconstruct import Outcome, reconstruct_file
from hunkguard.transaction.models import (
    ChangeKind,
    Committed,
    Failed,
    FileOutcome,
    Transaction,
    TransactionResult,
    TransactionState,
)
from hunkguard.transaction.workspace import Workspace

logger = logging.getLogger(__name__)


class TransactionCoordinator:
    """Applies the selected hunks of a DiffModel to a workspace.

    Files are processed one at a time in sorted path order. For each file the
    coordinator (a) backs it up, (b) computes its target content, (c) writes
    the content to a temp file beside it and (d) renames the temp file into
    place, or removes the file for a deletion. If any step fails for any file,
    the files already mutated are restored from their backups in reverse
    order and a Failed result is returned.
    """

    def __init__(self, workspace: Workspace):
        self.workspace = workspace

    def apply(
        self,
        diff_model: DiffModel,
        selection: Optional[SelectionSnapshot] = None,
    ) -> TransactionResult:
        """Apply a selection of hunks across all files as one transaction.

        Args:
            diff_model: The proposed change set
            selection: Frozen selection; taken from the model now when omitted

        Returns:
            Committed, or Failed after rolling back

        Raises:
            TransactionInProgress: If a transaction is already applying (no I/O is done)
            SelectionInvariantViolation: If hunks overlap or the selection names
                unknown hunks (nothing is written)
            ReconstructionError: If a file's target content cannot be computed
                (nothing is written)
        """
        with self.workspace.apply_slot():
            if selection is None:
                selection = diff_model.snapshot()
            targets = self._preflight(diff_model, selection)

            transaction = Transaction(targets=targets)
            self.workspace.mark_active(transaction)
            transaction.transition(TransactionState.APPLYING)
            logger.info(
                "Transaction %s applying %d file(s) in %s",
                transaction.id, len(targets), self.workspace.root,
            )

            result = self._run(transaction, diff_model, selection)

        if self.workspace.pending is diff_model:
            self.workspace.pending = None
        return result

    # ------------------------------------------------------------------
    # Pre-flight
    # ------------------------------------------------------------------

    def _preflight(self, diff_model: DiffModel, selection: SelectionSnapshot) -> list[str]:
        """Validate the model and selection before any I/O.

        Returns:
            Paths with at least one accepted hunk, in processing order
        """
        known = {
            (file_diff.file_path, hunk.id)
            for file_diff in diff_model
            for hunk in file_diff.hunks
        }
        unknown = [key for key in selection.statuses if key not in known]
        if unknown:
            path, hunk_id = unknown[0]
            raise SelectionInvariantViolation(
                f"Selection refers to unknown hunk {hunk_id} in {path}"
            )

        targets: list[str] = []
        for file_diff in diff_model:
            violation = find_order_violation(file_diff.hunks)
            if violation:
                raise SelectionInvariantViolation(f"{file_diff.file_path}: {violation}")
            if any(
                selection.status_of(file_diff.file_path, h.id) == HunkStatus.ACCEPTED
                for h in file_diff.hunks
            ):
                # Dry run before any write
                reconstruct_file(file_diff, selection)
                targets.append(file_diff.file_path)

        return sorted(targets)

    # ------------------------------------------------------------------
    # Apply and roll back
    # ------------------------------------------------------------------

    def _run(
        self,
        transaction: Transaction,
        diff_model: DiffModel,
        selection: SelectionSnapshot,
    ) -> TransactionResult:
        outcomes: list[FileOutcome] = []
        for file_path in transaction.targets:
            try:
                outcome = self._apply_file(transaction, diff_model, selection, file_path)
            except HunkGuardError as e:
                return self._roll_back(transaction, e, file_path)
            except Exception as e:
                # Anything unexpected still has to leave the tree as it was
                error = WriteError(f"Unexpected error applying {file_path}: {e}")
                error.__cause__ = e
                return self._roll_back(transaction, error, file_path)
            if outcome is not None:
                outcomes.append(outcome)

        return self._commit(transaction, outcomes)

    def _apply_file(
        self,
        transaction: Transaction,
        diff_model: DiffModel,
        selection: SelectionSnapshot,
        file_path: str,
    ) -> Optional[FileOutcome]:
        file_diff = diff_model.get_file(file_path)
        target = self.workspace.resolve(file_path)
        backups = self.workspace.backups

        # (a) backup
        handle = backups.backup(target, transaction.id)
        transaction.backups[file_path] = handle
        _check_unchanged_since_proposal(file_path, file_diff.original, handle.metadata.sha256)

        # (b) target content
        reconstruction = reconstruct_file(file_diff, selection)
        logger.debug(
            "%s: %s (%d applied, %d rejected)",
            file_path, reconstruction.outcome.value,
            reconstruction.hunks_applied, reconstruction.hunks_rejected,
        )

        if reconstruction.outcome == Outcome.SKIP:
            return None

        if reconstruction.outcome == Outcome.DELETE:
            try:
                target.unlink()
            except OSError as e:
                raise WriteError(f"Failed to remove {file_path}: {e}", path=target) from e
            transaction.mutated.append(file_path)
            return FileOutcome(file_path, ChangeKind.DELETED, reconstruction.hunks_applied, 0)

        # (c) temp write and (d) rename; the temp file never outlives the call
        try:
            ensure_parent_dirs(target, created=transaction.created_dirs)
            atomic_write_bytes(target, reconstruction.content.encode("utf-8"))
        except OSError as e:
            raise WriteError(f"Failed to write {file_path}: {e}", path=target) from e
        transaction.mutated.append(file_path)

        kind = ChangeKind.MODIFIED if handle.existed_before else ChangeKind.CREATED
        return FileOutcome(
            file_path, kind, reconstruction.hunks_applied, reconstruction.hunks_rejected
        )

    def _commit(self, transaction: Transaction, outcomes: list[FileOutcome]) -> Committed:
        transaction.transition(TransactionState.COMMITTED)
        logger.info("Transaction %s committed %d file(s)", transaction.id, len(outcomes))

        retention = self.workspace.config.backup_retention
        for file_path in transaction.targets:
            try:
                self.workspace.backups.prune(self.workspace.resolve(file_path), retention)
            except OSError as e:
                # Pruning never undoes a commit
                logger.warning("Failed to prune backups of %s: %s", file_path, e)

        return Committed(transaction_id=transaction.id, files=outcomes)

    def _roll_back(
        self,
        transaction: Transaction,
        error: HunkGuardError,
        failing_file: str,
    ) -> Failed:
        """Restore every mutated file in reverse mutation order."""
        logger.warning(
            "Transaction %s failed on %s: %s; rolling back %d file(s)",
            transaction.id, failing_file, error, len(transaction.mutated),
        )
        backups = self.workspace.backups
        restored: list[str] = []
        restore_failed: dict[str, str] = {}

        for file_path in reversed(transaction.mutated):
            try:
                backups.restore(transaction.backups[file_path])
                restored.append(file_path)
            except RestoreError as e:
                logger.error("Failed to restore %s: %s", file_path, e)
                restore_failed[file_path] = str(e)

        remove_empty_dirs(transaction.created_dirs)

        if restore_failed:
            transaction.transition(TransactionState.FAILED)
            logger.error(
                "Transaction %s left %d file(s) unrestored; manual recovery required",
                transaction.id, len(restore_failed),
            )
        else:
            transaction.transition(TransactionState.ROLLED_BACK)
            logger.info("Transaction %s rolled back", transaction.id)
            if not self.workspace.config.keep_failed_backups:
                for handle in transaction.backups.values():
                    backups.discard(handle)

        return Failed(
            transaction_id=transaction.id,
            error=error,
            failing_file=failing_file,
            restored=restored,
            restore_failed=restore_failed,
        )


def _check_unchanged_since_proposal(
    file_path: str, original: Optional[str], on_disk_sha256: Optional[str]
) -> None:
    """Refuse to apply hunks computed against content that is no longer on disk.

    Raises:
        ReconstructionError: If the file changed since the diff was proposed
    """
    expected = hashlib.sha256(original.encode("utf-8")).hexdigest() if original is not None else None
    if expected != on_disk_sha256:
        raise ReconstructionError(
            f"{file_path} changed on disk since the changes were proposed"
        )


def apply_changes(
    workspace: Workspace,
    diff_model: DiffModel,
    selection: Optional[SelectionSnapshot] = None,
) -> TransactionResult:
    """Apply a DiffModel to a workspace. See TransactionCoordinator.apply."""
    return TransactionCoordinator(workspace).apply(diff_model, selection)
