"""Tests for hunkguard.transaction package."""

from pathlib import Path

import pytest

from hunkguard.backup import BackupManager
from hunkguard.config import WorkspaceConfig
from hunkguard.diff import HunkStatus, SelectionSnapshot
from hunkguard.exceptions import (
    ReconstructionError,
    RestoreError,
    SelectionInvariantViolation,
    TransactionInProgress,
    WriteError,
)
from hunkguard.fs import atomic_write_bytes
from hunkguard.transaction import (
    ChangeKind,
    Committed,
    Failed,
    Transaction,
    TransactionState,
    Workspace,
    apply_changes,
)


def fail_writes_to(name):
    """atomic_write_bytes replacement that fails for one file name."""

    def _write(path, data, mode=None):
        if path.name == name:
            raise OSError(f"simulated write failure for {name}")
        atomic_write_bytes(path, data, mode)

    return _write


@pytest.fixture
def three_files(write_files):
    """f1.txt, f2.txt and f3.txt with known content."""
    return write_files({"f1.txt": "one\n", "f2.txt": "two\n", "f3.txt": "three\n"})


class TestCommit:
    """Tests for successful transactions."""

    def test_applies_all_kinds(self, workspace, write_files, propose, temp_dir):
        """Test modify, create, nested create and delete in one transaction."""
        write_files({"a.txt": "a\n", "gone.txt": "bye\n"})
        model = propose({
            "a.txt": "A\n",
            "new.txt": "fresh\n",
            "pkg/sub/mod.py": "x = 1\n",
            "gone.txt": None,
        })
        model.accept_all()

        result = apply_changes(workspace, model)

        assert isinstance(result, Committed)
        assert result.ok
        assert (temp_dir / "a.txt").read_text() == "A\n"
        assert (temp_dir / "new.txt").read_text() == "fresh\n"
        assert (temp_dir / "pkg" / "sub" / "mod.py").read_text() == "x = 1\n"
        assert not (temp_dir / "gone.txt").exists()
        kinds = {outcome.file_path: outcome.kind for outcome in result.files}
        assert kinds == {
            "a.txt": ChangeKind.MODIFIED,
            "new.txt": ChangeKind.CREATED,
            "pkg/sub/mod.py": ChangeKind.CREATED,
            "gone.txt": ChangeKind.DELETED,
        }

    def test_partial_selection_on_disk(
        self, workspace, write_files, propose, temp_dir, three_hunk_original, three_hunk_proposed
    ):
        """Test only accepted hunks reach the file."""
        write_files({"f.txt": three_hunk_original})
        model = propose({"f.txt": three_hunk_proposed})
        first, second, third = model.get_file("f.txt").hunks
        model.accept(first.id)
        model.reject(second.id)
        model.accept(third.id)

        result = apply_changes(workspace, model)

        content = (temp_dir / "f.txt").read_text()
        assert "LINE2\n" in content and "line5\n" in content and "LINE9\n" in content
        assert result.files[0].hunks_applied == 2
        assert result.files[0].hunks_rejected == 1

    def test_files_without_accepted_hunks_untouched(self, workspace, three_files, propose, temp_dir):
        """Test rejected and pending files are not backed up or written."""
        model = propose({"f1.txt": "ONE\n", "f2.txt": "TWO\n", "f3.txt": "THREE\n"})
        model.accept_all("f2.txt")
        model.reject_all("f3.txt")

        result = apply_changes(workspace, model)

        assert [f.file_path for f in result.files] == ["f2.txt"]
        assert (temp_dir / "f1.txt").read_text() == "one\n"
        assert (temp_dir / "f3.txt").read_text() == "three\n"
        assert workspace.backups.list_backups(temp_dir / "f1.txt") == []

    def test_empty_selection_commits_nothing(self, workspace, three_files, propose):
        """Test applying with nothing accepted is an empty commit."""
        model = propose({"f1.txt": "ONE\n"})

        result = apply_changes(workspace, model)

        assert isinstance(result, Committed)
        assert result.files == []
        assert workspace.backups.list_all() == []

    def test_state_and_history(self, workspace, three_files, propose):
        """Test the transaction ends COMMITTED and is recorded."""
        model = propose({"f1.txt": "ONE\n"})
        model.accept_all()

        result = apply_changes(workspace, model)

        transaction = workspace.history[-1]
        assert transaction.id == result.transaction_id
        assert transaction.state == TransactionState.COMMITTED
        assert transaction.finished_at is not None
        assert workspace.active is None
        assert not workspace.is_applying

    def test_uses_given_snapshot(self, workspace, three_files, propose, temp_dir):
        """Test a snapshot taken earlier decides, not the live selection."""
        model = propose({"f1.txt": "ONE\n"})
        model.accept_all()
        snapshot = model.snapshot()
        model.reject_all()

        apply_changes(workspace, model, snapshot)

        assert (temp_dir / "f1.txt").read_text() == "ONE\n"

    def test_clears_pending_model(self, workspace, three_files, temp_dir):
        """Test a committed pending model is consumed."""
        diff = "--- a/f1.txt\n+++ b/f1.txt\n@@ -1 +1 @@\n-one\n+uno\n"
        model = workspace.propose(diff)
        model.accept_all()

        apply_changes(workspace, model)

        assert workspace.pending is None
        assert (temp_dir / "f1.txt").read_text() == "uno\n"

    def test_backup_retention(self, temp_dir, write_files, propose):
        """Test only the configured number of backups survive N+1 commits."""
        workspace = Workspace(temp_dir, config=WorkspaceConfig(backup_retention=2))
        write_files({"a.txt": "v0\n"})
        for version in range(1, 4):
            model = propose({"a.txt": f"v{version}\n"})
            model.accept_all()
            assert apply_changes(workspace, model).ok

        handles = workspace.backups.list_backups(temp_dir / "a.txt")

        assert len(handles) == 2
        assert [h.data_file.read_text() for h in handles] == ["v1\n", "v2\n"]

    def test_prune_failure_does_not_fail_commit(self, workspace, three_files, propose, temp_dir, mocker):
        """Test a retention failure is logged, not raised."""
        mocker.patch.object(workspace.backups, "prune", side_effect=OSError("busy"))
        model = propose({"f1.txt": "ONE\n"})
        model.accept_all()

        assert apply_changes(workspace, model).ok
        assert (temp_dir / "f1.txt").read_text() == "ONE\n"


class TestRollback:
    """Tests for failed transactions."""

    def test_middle_write_failure_restores_everything(
        self, workspace, three_files, propose, temp_dir, mocker
    ):
        """Test a failing second file leaves all three files as they were."""
        model = propose({"f1.txt": "ONE\n", "f2.txt": "TWO\n", "f3.txt": "THREE\n"})
        model.accept_all()
        mocker.patch(
            "hunkguard.transaction.coordinator.atomic_write_bytes",
            side_effect=fail_writes_to("f2.txt"),
        )

        result = apply_changes(workspace, model)

        assert isinstance(result, Failed)
        assert not result.ok
        assert result.failing_file == "f2.txt"
        assert isinstance(result.error, WriteError)
        assert result.restored == ["f1.txt"]
        assert not result.requires_manual_recovery
        assert (temp_dir / "f1.txt").read_text() == "one\n"
        assert (temp_dir / "f2.txt").read_text() == "two\n"
        assert (temp_dir / "f3.txt").read_text() == "three\n"
        assert workspace.history[-1].state == TransactionState.ROLLED_BACK
        assert "f2.txt" in result.describe()

    def test_rollback_removes_created_files_and_dirs(
        self, workspace, write_files, propose, temp_dir, mocker
    ):
        """Test files and directories created before the failure are removed."""
        write_files({"zz.txt": "last\n"})
        model = propose({"pkg/sub/mod.py": "x = 1\n", "zz.txt": "LAST\n"})
        model.accept_all()
        mocker.patch(
            "hunkguard.transaction.coordinator.atomic_write_bytes",
            side_effect=fail_writes_to("zz.txt"),
        )

        result = apply_changes(workspace, model)

        assert result.failing_file == "zz.txt"
        assert not (temp_dir / "pkg").exists()
        assert (temp_dir / "zz.txt").read_text() == "last\n"

    def test_rollback_removes_dirs_from_failed_mkdir(
        self, workspace, propose, temp_dir, mocker
    ):
        """Test directories made before a failing mkdir are removed on rollback."""
        model = propose({"pkg/sub/mod.py": "x = 1\n"})
        model.accept_all()
        real_mkdir = Path.mkdir

        def flaky_mkdir(self, *args, **kwargs):
            if self.name == "sub":
                raise OSError("simulated mkdir failure")
            return real_mkdir(self, *args, **kwargs)

        mocker.patch.object(Path, "mkdir", flaky_mkdir)

        result = apply_changes(workspace, model)

        assert isinstance(result, Failed)
        assert result.failing_file == "pkg/sub/mod.py"
        assert isinstance(result.error, WriteError)
        assert not (temp_dir / "pkg").exists()

    def test_rollback_restores_deleted_file(self, workspace, write_files, propose, temp_dir, mocker):
        """Test a deletion is undone when a later file fails."""
        write_files({"a_gone.txt": "keep me\n", "b.txt": "b\n"})
        model = propose({"a_gone.txt": None, "b.txt": "B\n"})
        model.accept_all()
        mocker.patch(
            "hunkguard.transaction.coordinator.atomic_write_bytes",
            side_effect=fail_writes_to("b.txt"),
        )

        result = apply_changes(workspace, model)

        assert result.restored == ["a_gone.txt"]
        assert (temp_dir / "a_gone.txt").read_text() == "keep me\n"

    def test_restore_failure_requires_manual_recovery(
        self, workspace, three_files, propose, temp_dir, mocker
    ):
        """Test a failed restore ends in FAILED and keeps the backups."""
        model = propose({"f1.txt": "ONE\n", "f2.txt": "TWO\n"})
        model.accept_all()
        mocker.patch(
            "hunkguard.transaction.coordinator.atomic_write_bytes",
            side_effect=fail_writes_to("f2.txt"),
        )
        mocker.patch.object(
            workspace.backups, "restore", side_effect=RestoreError("store unreadable")
        )

        result = apply_changes(workspace, model)

        assert result.requires_manual_recovery
        assert result.restore_failed == {"f1.txt": "store unreadable"}
        assert workspace.history[-1].state == TransactionState.FAILED
        assert len(workspace.backups.list_backups(temp_dir / "f1.txt")) == 1
        assert "Manual recovery required" in result.describe()

    def test_backup_failure_fails_before_writing(
        self, workspace, three_files, propose, temp_dir, mocker
    ):
        """Test a failed backup of a later file rolls back earlier ones."""
        model = propose({"f1.txt": "ONE\n", "f2.txt": "TWO\n"})
        model.accept_all()
        real_backup = workspace.backups.backup

        def backup(path, transaction_id):
            if path.name == "f2.txt":
                from hunkguard.exceptions import BackupError

                raise BackupError("store full", path=path)
            return real_backup(path, transaction_id)

        mocker.patch.object(workspace.backups, "backup", side_effect=backup)

        result = apply_changes(workspace, model)

        assert result.failing_file == "f2.txt"
        assert (temp_dir / "f1.txt").read_text() == "one\n"
        assert (temp_dir / "f2.txt").read_text() == "two\n"

    def test_unexpected_error_is_rolled_back(
        self, workspace, three_files, propose, temp_dir, mocker
    ):
        """Test errors outside the taxonomy still roll back."""
        model = propose({"f1.txt": "ONE\n", "f2.txt": "TWO\n"})
        model.accept_all()
        real_write = atomic_write_bytes

        def write(path, data, mode=None):
            if path.name == "f2.txt":
                raise ValueError("bug")
            real_write(path, data, mode)

        mocker.patch("hunkguard.transaction.coordinator.atomic_write_bytes", side_effect=write)

        result = apply_changes(workspace, model)

        assert isinstance(result.error, WriteError)
        assert (temp_dir / "f1.txt").read_text() == "one\n"

    def test_discards_backups_when_configured(self, temp_dir, three_files, propose, mocker):
        """Test keep_failed_backups=False removes backups after a clean rollback."""
        workspace = Workspace(temp_dir, config=WorkspaceConfig(keep_failed_backups=False))
        model = propose({"f1.txt": "ONE\n", "f2.txt": "TWO\n"})
        model.accept_all()
        mocker.patch(
            "hunkguard.transaction.coordinator.atomic_write_bytes",
            side_effect=fail_writes_to("f2.txt"),
        )

        apply_changes(workspace, model)

        assert workspace.backups.list_all() == []

    def test_stale_file_is_not_overwritten(self, workspace, three_files, propose, temp_dir):
        """Test a file edited after the proposal is left alone."""
        model = propose({"f1.txt": "ONE\n"})
        model.accept_all()
        (temp_dir / "f1.txt").write_text("edited by hand\n")

        result = apply_changes(workspace, model)

        assert isinstance(result, Failed)
        assert isinstance(result.error, ReconstructionError)
        assert (temp_dir / "f1.txt").read_text() == "edited by hand\n"


class TestPreflight:
    """Tests for validation before any I/O."""

    def test_overlapping_hunks_raise_before_io(self, workspace, write_files, propose, temp_dir):
        """Test corrupt hunk order is refused with nothing backed up."""
        write_files({"f.txt": "a\nb\nc\nd\n"})
        model = propose({"f.txt": "A\nb\nC\nd\n"})
        model.accept_all()
        first, second = model.get_file("f.txt").hunks
        second.old_start = first.old_start

        with pytest.raises(SelectionInvariantViolation):
            apply_changes(workspace, model)

        assert workspace.backups.list_all() == []
        assert workspace.history == []
        assert (temp_dir / "f.txt").read_text() == "a\nb\nc\nd\n"

    def test_unknown_selection_key_raises(self, workspace, three_files, propose):
        """Test a snapshot naming unknown hunks is refused."""
        model = propose({"f1.txt": "ONE\n"})
        snapshot = SelectionSnapshot({("nope.txt", "H1"): HunkStatus.ACCEPTED})

        with pytest.raises(SelectionInvariantViolation, match="unknown hunk"):
            apply_changes(workspace, model, snapshot)

    def test_mismatched_hunk_raises_before_io(self, workspace, three_files, propose, temp_dir):
        """Test a hunk that does not match the snapshot fails the dry run."""
        model = propose({"f1.txt": "ONE\n", "f2.txt": "TWO\n"})
        model.accept_all()
        model.get_file("f2.txt").hunks[0].removed = ["something else\n"]

        with pytest.raises(ReconstructionError):
            apply_changes(workspace, model)

        assert (temp_dir / "f1.txt").read_text() == "one\n"
        assert workspace.backups.list_all() == []

    def test_apply_while_applying_raises(self, workspace, three_files, propose, temp_dir):
        """Test a second apply is refused while the slot is held."""
        model = propose({"f1.txt": "ONE\n"})
        model.accept_all()

        with workspace.apply_slot():
            with pytest.raises(TransactionInProgress):
                apply_changes(workspace, model)

        assert (temp_dir / "f1.txt").read_text() == "one\n"

    def test_reentrant_apply_refused(self, workspace, three_files, propose, temp_dir, mocker):
        """Test an apply started during another apply is refused and the first completes."""
        model = propose({"f1.txt": "ONE\n"})
        model.accept_all()
        other = propose({"f3.txt": "THREE\n"})
        other.accept_all()
        real_backup = workspace.backups.backup
        refused = []

        def backup(path, transaction_id):
            try:
                apply_changes(workspace, other)
            except TransactionInProgress as e:
                refused.append(e)
            return real_backup(path, transaction_id)

        mocker.patch.object(workspace.backups, "backup", side_effect=backup)

        result = apply_changes(workspace, model)

        assert result.ok
        assert len(refused) == 1
        assert (temp_dir / "f3.txt").read_text() == "three\n"


class TestTransactionModel:
    """Tests for Transaction state machine and results."""

    def test_valid_transitions(self):
        """Test PENDING -> APPLYING -> COMMITTED."""
        transaction = Transaction()
        transaction.transition(TransactionState.APPLYING)
        assert transaction.started_at is not None
        transaction.transition(TransactionState.COMMITTED)
        assert transaction.state.is_terminal

    def test_invalid_transition_raises(self):
        """Test terminal states are final."""
        transaction = Transaction()
        with pytest.raises(RuntimeError):
            transaction.transition(TransactionState.COMMITTED)
        transaction.transition(TransactionState.APPLYING)
        transaction.transition(TransactionState.ROLLED_BACK)
        with pytest.raises(RuntimeError):
            transaction.transition(TransactionState.APPLYING)

    def test_unique_ids(self):
        """Test transactions get distinct ids."""
        assert Transaction().id != Transaction().id

    def test_committed_counts(self):
        """Test hunk totals."""
        from hunkguard.transaction import FileOutcome

        result = Committed("tx", [
            FileOutcome("a", ChangeKind.MODIFIED, 2, 1),
            FileOutcome("b", ChangeKind.CREATED, 1),
        ])
        assert result.hunks_applied == 3


class TestWorkspace:
    """Tests for Workspace class."""

    def test_loads_config_from_root(self, temp_dir):
        """Test config.yaml is read when no config is given."""
        from hunkguard.config import save_config

        save_config(temp_dir, {"backup_retention": 1, "backup_dir": "bk"})
        workspace = Workspace(temp_dir)

        assert workspace.config.backup_retention == 1
        assert workspace.backups.backup_root == temp_dir.absolute() / "bk"

    def test_custom_backup_manager(self, temp_dir):
        """Test an injected BackupManager is used."""
        manager = BackupManager(temp_dir / "elsewhere")
        assert Workspace(temp_dir, backup_manager=manager).backups is manager

    def test_propose_and_cancel(self, workspace, three_files):
        """Test the pending model lifecycle."""
        model = workspace.propose('[{"path": "f1.txt", "content": "x\\n"}]', "json_changes")
        assert workspace.pending is model
        workspace.cancel()
        assert workspace.pending is None

    def test_cancel_while_applying_raises(self, workspace):
        """Test cancel is refused once applying starts."""
        with workspace.apply_slot():
            with pytest.raises(TransactionInProgress):
                workspace.cancel()
