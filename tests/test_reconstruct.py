"""Tests for hunkguard.reconstruct module."""

import pytest

from hunkguard.diff import FileDiff, Hunk, HunkCounter, HunkStatus, build_file_diff, split_lines
from hunkguard.exceptions import ReconstructionError
from hunkguard.reconstruct import Outcome, reconstruct_file, reconstruct_lines


def diff_of(original, proposed, path="f.txt"):
    return build_file_diff(path, original, proposed, HunkCounter())


def set_statuses(file_diff, statuses):
    for hunk, status in zip(file_diff.hunks, statuses):
        hunk.status = status


A, R, P = HunkStatus.ACCEPTED, HunkStatus.REJECTED, HunkStatus.PENDING


class TestReconstructFile:
    """Tests for reconstruct_file function."""

    @pytest.mark.parametrize(
        "original,proposed",
        [
            ("a\nb\nc\n", "a\nB\nc\n"),
            ("a\nb\nc\n", "c\n"),
            ("a\nb\n", "a\nb\nc\nd\n"),
            ("a\nb", "a\nb\n"),
            ("one\r\ntwo\r\n", "one\r\n2\r\n"),
            ("x\n", ""),
        ],
    )
    def test_all_accepted_gives_proposed(self, original, proposed):
        """Test accepting everything reproduces the proposal byte for byte."""
        file_diff = diff_of(original, proposed)
        set_statuses(file_diff, [A] * len(file_diff.hunks))

        result = reconstruct_file(file_diff)

        assert result.outcome == Outcome.WRITE
        assert result.content == proposed
        assert result.hunks_applied == len(file_diff.hunks)

    def test_all_rejected_gives_original(self, three_hunk_original, three_hunk_proposed):
        """Test rejecting everything reproduces the original byte for byte."""
        file_diff = diff_of(three_hunk_original, three_hunk_proposed)
        set_statuses(file_diff, [R, R, R])

        result = reconstruct_file(file_diff)

        assert result.content == three_hunk_original
        assert result.hunks_applied == 0
        assert result.hunks_rejected == 3

    def test_pending_treated_as_rejected(self, three_hunk_original, three_hunk_proposed):
        """Test pending hunks are not applied."""
        file_diff = diff_of(three_hunk_original, three_hunk_proposed)
        assert reconstruct_file(file_diff).content == three_hunk_original

    def test_partial_selection(self, three_hunk_original, three_hunk_proposed):
        """Test accepting hunks 1 and 3 while rejecting hunk 2."""
        file_diff = diff_of(three_hunk_original, three_hunk_proposed)
        set_statuses(file_diff, [A, R, A])

        result = reconstruct_file(file_diff)

        expected = three_hunk_original.replace("line2\n", "LINE2\n").replace("line9\n", "LINE9\n")
        assert result.content == expected
        assert "line5\n" in result.content
        assert (result.hunks_applied, result.hunks_rejected) == (2, 1)

    def test_uses_snapshot_over_live_status(self, three_hunk_original, three_hunk_proposed):
        """Test a snapshot decides, not the hunks' current status."""
        from hunkguard.diff import DiffModel

        file_diff = diff_of(three_hunk_original, three_hunk_proposed)
        model = DiffModel([file_diff])
        model.accept_all()
        snapshot = model.snapshot()
        model.reject_all()

        assert reconstruct_file(file_diff, snapshot).content == three_hunk_proposed

    def test_new_file_accepted(self):
        """Test a new file with its hunk accepted is written."""
        file_diff = diff_of(None, "hello\n", path="new.txt")
        set_statuses(file_diff, [A])

        result = reconstruct_file(file_diff)

        assert result.outcome == Outcome.WRITE
        assert result.content == "hello\n"

    def test_new_file_rejected_is_skipped(self):
        """Test a new file with nothing accepted is not created."""
        file_diff = diff_of(None, "hello\n", path="new.txt")
        set_statuses(file_diff, [R])

        result = reconstruct_file(file_diff)

        assert result.outcome == Outcome.SKIP
        assert result.content is None

    def test_deleted_file_accepted(self):
        """Test an accepted full deletion removes the file."""
        file_diff = diff_of("a\nb\n", None)
        set_statuses(file_diff, [A])

        result = reconstruct_file(file_diff)

        assert result.outcome == Outcome.DELETE
        assert result.content is None

    def test_deleted_file_rejected_keeps_file(self):
        """Test a rejected deletion leaves the original content."""
        file_diff = diff_of("a\nb\n", None)
        set_statuses(file_diff, [R])

        result = reconstruct_file(file_diff)

        assert result.outcome == Outcome.WRITE
        assert result.content == "a\nb\n"

    def test_overlapping_hunks_raise(self):
        """Test overlapping hunks are never applied."""
        hunks = [
            Hunk("H1", "f.txt", 1, 2, ["a\n", "b\n"], ["x\n"], status=A),
            Hunk("H2", "f.txt", 2, 1, ["b\n"], ["y\n"], status=A),
        ]
        file_diff = FileDiff("f.txt", hunks, original="a\nb\nc\n")

        with pytest.raises(ReconstructionError, match="f.txt"):
            reconstruct_file(file_diff)

    def test_stale_removed_lines_raise(self):
        """Test an accepted hunk that no longer matches the original raises."""
        hunks = [Hunk("H1", "f.txt", 2, 1, ["changed\n"], ["x\n"], status=A)]
        file_diff = FileDiff("f.txt", hunks, original="a\nb\nc\n")

        with pytest.raises(ReconstructionError, match="does not match"):
            reconstruct_file(file_diff)


class TestReconstructLines:
    """Tests for reconstruct_lines function."""

    def test_range_beyond_end_raises(self):
        """Test a hunk past the end of the original raises."""
        hunks = [Hunk("H1", "f.txt", 3, 2, ["c\n", "d\n"], [], status=A)]
        with pytest.raises(ReconstructionError, match="only 3 lines"):
            reconstruct_lines(split_lines("a\nb\nc\n"), hunks, [A])

    def test_insertion_after_line(self):
        """Test an insertion goes after line old_start."""
        hunks = [Hunk("H1", "f.txt", 1, 0, [], ["new\n"])]
        lines, applied = reconstruct_lines(["a\n", "b\n"], hunks, [A])
        assert lines == ["a\n", "new\n", "b\n"]
        assert applied == 1

    def test_insertion_at_top(self):
        """Test an insertion after line 0 goes first."""
        hunks = [Hunk("H1", "f.txt", 0, 0, [], ["top\n"])]
        lines, _ = reconstruct_lines(["a\n"], hunks, [A])
        assert lines == ["top\n", "a\n"]
