"""Hunk selection for hunkguard diff module.

Contains:
- SelectionSnapshot: Frozen view of every hunk's status
- DiffModel: One proposed change set with per-hunk selection and a cursor
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Iterator, Mapping, Optional

from hunkguard.diff.models import (
    AggregateStatus,
    FileDiff,
    Hunk,
    HunkStatus,
    find_order_violation,
)
from hunkguard.exceptions import SelectionInvariantViolation, UnknownHunkError


HunkKey = tuple[str, str]  # (file_path, hunk_id)


@dataclass(frozen=True)
class SelectionSnapshot:
    """Immutable copy of the selection state, keyed by (file_path, hunk_id)."""

    statuses: Mapping[HunkKey, HunkStatus]

    def status_of(self, file_path: str, hunk_id: str) -> HunkStatus:
        """Status recorded for a hunk; hunks missing from the snapshot count as pending."""
        return self.statuses.get((file_path, hunk_id), HunkStatus.PENDING)

    def __len__(self) -> int:
        return len(self.statuses)


def _flip(status: HunkStatus) -> HunkStatus:
    if status == HunkStatus.ACCEPTED:
        return HunkStatus.REJECTED
    return HunkStatus.ACCEPTED


class DiffModel:
    """All FileDiffs proposed in one AI turn, plus selection and navigation.

    The model is mutated only through the selection operations. Navigation
    keeps a (file index, hunk index) cursor over files that have hunks.
    """

    def __init__(self, file_diffs: list[FileDiff], wrap: bool = False):
        self._files: dict[str, FileDiff] = {}
        for file_diff in file_diffs:
            if file_diff.file_path in self._files:
                raise SelectionInvariantViolation(
                    f"Duplicate file in change set: {file_diff.file_path}"
                )
            _validate_file_diff(file_diff)
            self._files[file_diff.file_path] = file_diff
        self.wrap = wrap
        self._file_index = 0
        self._hunk_index = 0

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------

    @property
    def files(self) -> list[FileDiff]:
        return list(self._files.values())

    @property
    def paths(self) -> list[str]:
        return list(self._files.keys())

    def __len__(self) -> int:
        return len(self._files)

    def __iter__(self) -> Iterator[FileDiff]:
        return iter(self._files.values())

    def __contains__(self, file_path: str) -> bool:
        return file_path in self._files

    def get_file(self, file_path: str) -> FileDiff:
        try:
            return self._files[file_path]
        except KeyError:
            raise UnknownHunkError(f"No proposed changes for file: {file_path}") from None

    def iter_hunks(self) -> Iterator[Hunk]:
        for file_diff in self._files.values():
            yield from file_diff.hunks

    def find_hunk(self, hunk_id: str, file_path: Optional[str] = None) -> Hunk:
        """Look up a hunk by id, optionally restricted to one file.

        Raises:
            UnknownHunkError: If no hunk matches, or the id is ambiguous across files
        """
        if file_path is not None:
            hunk = self.get_file(file_path).get_hunk(hunk_id)
            if hunk is None:
                raise UnknownHunkError(f"Unknown hunk {hunk_id} in {file_path}")
            return hunk

        matches = [h for h in self.iter_hunks() if h.id == hunk_id]
        if not matches:
            raise UnknownHunkError(f"Unknown hunk: {hunk_id}")
        if len(matches) > 1:
            raise UnknownHunkError(
                f"Hunk id {hunk_id} exists in several files; pass the file path"
            )
        return matches[0]

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def toggle(self, hunk_id: str, file_path: Optional[str] = None) -> HunkStatus:
        """Toggle a hunk's decision.

        Toggling twice returns the hunk to the status it had before the
        first toggle, including PENDING.

        Returns:
            The new status of the hunk
        """
        hunk = self.find_hunk(hunk_id, file_path)
        if hunk.toggled_from is not None:
            hunk.status, hunk.toggled_from = hunk.toggled_from, None
        else:
            hunk.toggled_from = hunk.status
            hunk.status = _flip(hunk.status)
        return hunk.status

    def accept(self, hunk_id: str, file_path: Optional[str] = None) -> None:
        self._set(self.find_hunk(hunk_id, file_path), HunkStatus.ACCEPTED)

    def reject(self, hunk_id: str, file_path: Optional[str] = None) -> None:
        self._set(self.find_hunk(hunk_id, file_path), HunkStatus.REJECTED)

    def accept_all(self, file_path: Optional[str] = None) -> None:
        """Accept every hunk in one file, or in the whole model."""
        for hunk in self._scope(file_path):
            self._set(hunk, HunkStatus.ACCEPTED)

    def reject_all(self, file_path: Optional[str] = None) -> None:
        """Reject every hunk in one file, or in the whole model."""
        for hunk in self._scope(file_path):
            self._set(hunk, HunkStatus.REJECTED)

    def aggregate_status(self, file_path: str) -> AggregateStatus:
        return self.get_file(file_path).aggregate_status

    def snapshot(self) -> SelectionSnapshot:
        """Capture the current selection so later toggles do not affect an apply."""
        statuses = {
            (file_diff.file_path, hunk.id): hunk.status
            for file_diff in self._files.values()
            for hunk in file_diff.hunks
        }
        return SelectionSnapshot(statuses=MappingProxyType(statuses))

    def status_summary(self) -> dict[HunkStatus, int]:
        """Count hunks per status, for status bars."""
        summary = {status: 0 for status in HunkStatus}
        for hunk in self.iter_hunks():
            summary[hunk.status] += 1
        return summary

    def _scope(self, file_path: Optional[str]) -> Iterator[Hunk]:
        if file_path is not None:
            return iter(self.get_file(file_path).hunks)
        return self.iter_hunks()

    @staticmethod
    def _set(hunk: Hunk, status: HunkStatus) -> None:
        hunk.status = status
        hunk.toggled_from = None

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def _navigable(self) -> list[FileDiff]:
        return [f for f in self._files.values() if f.hunks]

    def current(self) -> Optional[tuple[FileDiff, Hunk]]:
        """Return the (file, hunk) under the cursor, or None for an empty model."""
        files = self._navigable()
        if not files:
            return None
        self._clamp_cursor(files)
        file_diff = files[self._file_index]
        return file_diff, file_diff.hunks[self._hunk_index]

    def position(self) -> tuple[int, int]:
        """Cursor as (file index, hunk index within the file)."""
        files = self._navigable()
        if files:
            self._clamp_cursor(files)
        return self._file_index, self._hunk_index

    def next_hunk(self) -> bool:
        """Move to the next hunk, crossing into the next file. Returns whether the cursor moved."""
        files = self._navigable()
        if not files:
            return False
        self._clamp_cursor(files)
        if self._hunk_index < len(files[self._file_index].hunks) - 1:
            self._hunk_index += 1
            return True
        if self._file_index < len(files) - 1:
            self._file_index += 1
            self._hunk_index = 0
            return True
        if self.wrap:
            return self._move_to(0, 0)
        return False

    def prev_hunk(self) -> bool:
        """Move to the previous hunk, crossing into the previous file."""
        files = self._navigable()
        if not files:
            return False
        self._clamp_cursor(files)
        if self._hunk_index > 0:
            self._hunk_index -= 1
            return True
        if self._file_index > 0:
            self._file_index -= 1
            self._hunk_index = len(files[self._file_index].hunks) - 1
            return True
        if self.wrap:
            return self._move_to(len(files) - 1, len(files[-1].hunks) - 1)
        return False

    def next_file(self) -> bool:
        """Move to the first hunk of the next file."""
        files = self._navigable()
        if not files:
            return False
        self._clamp_cursor(files)
        if self._file_index < len(files) - 1:
            return self._move_to(self._file_index + 1, 0)
        if self.wrap:
            return self._move_to(0, 0)
        return False

    def prev_file(self) -> bool:
        """Move to the first hunk of the previous file."""
        files = self._navigable()
        if not files:
            return False
        self._clamp_cursor(files)
        if self._file_index > 0:
            return self._move_to(self._file_index - 1, 0)
        if self.wrap:
            return self._move_to(len(files) - 1, 0)
        return False

    def first_hunk(self) -> bool:
        files = self._navigable()
        if not files:
            return False
        self._clamp_cursor(files)
        return self._move_to(0, 0)

    def last_hunk(self) -> bool:
        files = self._navigable()
        if not files:
            return False
        self._clamp_cursor(files)
        return self._move_to(len(files) - 1, len(files[-1].hunks) - 1)

    def toggle_current(self) -> Optional[HunkStatus]:
        current = self.current()
        if current is None:
            return None
        file_diff, hunk = current
        return self.toggle(hunk.id, file_diff.file_path)

    def accept_current(self) -> None:
        current = self.current()
        if current is not None:
            self._set(current[1], HunkStatus.ACCEPTED)

    def reject_current(self) -> None:
        current = self.current()
        if current is not None:
            self._set(current[1], HunkStatus.REJECTED)

    def _move_to(self, file_index: int, hunk_index: int) -> bool:
        moved = (file_index, hunk_index) != (self._file_index, self._hunk_index)
        self._file_index = file_index
        self._hunk_index = hunk_index
        return moved

    def _clamp_cursor(self, files: list[FileDiff]) -> None:
        self._file_index = min(max(self._file_index, 0), len(files) - 1)
        last_hunk = len(files[self._file_index].hunks) - 1
        self._hunk_index = min(max(self._hunk_index, 0), last_hunk)


def _validate_file_diff(file_diff: FileDiff) -> None:
    """Enforce per-file invariants when a FileDiff enters a model."""
    seen: set[str] = set()
    for hunk in file_diff.hunks:
        if hunk.id in seen:
            raise SelectionInvariantViolation(
                f"Duplicate hunk id {hunk.id} in {file_diff.file_path}"
            )
        seen.add(hunk.id)
        if hunk.file_path != file_diff.file_path:
            raise SelectionInvariantViolation(
                f"Hunk {hunk.id} belongs to {hunk.file_path}, not {file_diff.file_path}"
            )

    violation = find_order_violation(file_diff.hunks)
    if violation:
        raise SelectionInvariantViolation(f"{file_diff.file_path}: {violation}")
