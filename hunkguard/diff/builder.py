"""Hunk builder for hunkguard diff module.

Contains functions for turning whole-file proposals into hunks:
- build_file_diff: Diff original and proposed content into a FileDiff
- HunkCounter: Hands out model-wide hunk numbers
"""

import difflib
from typing import Optional

from hunkguard.diff.models import FileDiff, Hunk, make_hunk_id, split_lines


class HunkCounter:
    """Sequential hunk numbering shared by every file parsed in one turn."""

    def __init__(self, start: int = 1):
        self._next = start

    def take(self) -> int:
        number = self._next
        self._next += 1
        return number


def build_file_diff(
    file_path: str,
    original: Optional[str],
    proposed: Optional[str],
    counter: HunkCounter,
    context_lines: int = 3,
) -> Optional[FileDiff]:
    """Diff original and proposed content into a FileDiff of minimal hunks.

    Args:
        file_path: Path of the file relative to the workspace root
        original: Current content, or None if the file does not exist
        proposed: Proposed content, or None to delete the file
        counter: Shared counter used to number hunks
        context_lines: Number of surrounding lines kept for display

    Returns:
        FileDiff, or None if the proposal changes nothing
    """
    old_lines = split_lines(original)

    if proposed is None:
        if original is None:
            return None
        # Full-file removal: one hunk covering every original line
        hunk = _make_hunk(counter, file_path, old_lines, 0, len(old_lines), [], context_lines)
        return FileDiff(
            file_path=file_path,
            hunks=[hunk] if old_lines else [],
            original=original,
            is_deleted_file=True,
        )

    new_lines = split_lines(proposed)

    if original is None:
        hunk = _make_hunk(counter, file_path, [], 0, 0, new_lines, context_lines)
        return FileDiff(file_path=file_path, hunks=[hunk], original=None)

    matcher = difflib.SequenceMatcher(None, old_lines, new_lines, autojunk=False)
    hunks: list[Hunk] = []
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            continue
        hunks.append(
            _make_hunk(counter, file_path, old_lines, i1, i2, new_lines[j1:j2], context_lines)
        )

    if not hunks:
        return None

    return FileDiff(file_path=file_path, hunks=hunks, original=original)


def _make_hunk(
    counter: HunkCounter,
    file_path: str,
    old_lines: list[str],
    begin: int,
    end: int,
    replacement: list[str],
    context_lines: int,
) -> Hunk:
    """Create a Hunk for original lines [begin, end) replaced by replacement."""
    removed = old_lines[begin:end]
    old_len = end - begin
    # Unified diff convention: insertions are placed after line old_start
    old_start = begin if old_len == 0 else begin + 1
    return Hunk(
        id=make_hunk_id(counter.take(), removed + replacement),
        file_path=file_path,
        old_start=old_start,
        old_len=old_len,
        removed=removed,
        replacement=list(replacement),
        context_before=old_lines[max(0, begin - context_lines):begin],
        context_after=old_lines[end:end + context_lines],
    )
