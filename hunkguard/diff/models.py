"""Data models for hunkguard diff module.

Contains:
- HunkStatus: Review status of a single hunk
- AggregateStatus: Derived status of a whole file
- Hunk: A minimal contiguous proposed change within one file
- FileDiff: The ordered hunks proposed for one file
- find_order_violation: Check that hunks are sorted and non-overlapping
- split_lines: Split text into lines that keep their terminators
"""

import hashlib
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class HunkStatus(Enum):
    """Review status of a hunk."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class AggregateStatus(Enum):
    """Status of a file derived from the statuses of its hunks."""

    ACCEPTED = "accepted"
    REJECTED = "rejected"
    MIXED = "mixed"


def split_lines(text: Optional[str]) -> list[str]:
    """Split text into lines, keeping line terminators.

    Only "\\n" ends a line, the same rule unified diff bodies follow. A
    "\\r" before it stays part of the line, and form feeds or other
    Unicode line separators are ordinary characters. Joining the result
    gives back the exact input, which is what makes reconstruction
    byte-identical.

    Args:
        text: Text to split, or None for an absent file

    Returns:
        List of lines (empty for None or empty text)
    """
    if not text:
        return []
    parts = text.split("\n")
    lines = [part + "\n" for part in parts[:-1]]
    if parts[-1]:
        lines.append(parts[-1])
    return lines


def make_hunk_id(number: int, lines: list[str]) -> str:
    """Build a stable hunk id like H3_1a2b3c from a counter and the hunk lines."""
    content_hash = hashlib.md5(
        "".join(lines).encode(), usedforsecurity=False
    ).hexdigest()[:6]
    return f"H{number}_{content_hash}"


@dataclass
class Hunk:
    """A single proposed change to a contiguous range of original lines.

    The range follows unified diff conventions: old_start is 1-based, and a
    pure insertion (old_len == 0) goes after line old_start.
    """

    id: str
    file_path: str
    old_start: int
    old_len: int
    removed: list[str]  # Original lines covered by the range
    replacement: list[str]  # Lines that replace them when accepted
    context_before: list[str] = field(default_factory=list)
    context_after: list[str] = field(default_factory=list)
    status: HunkStatus = HunkStatus.PENDING
    # Status to return to on the next toggle (set by toggle, cleared by accept/reject)
    toggled_from: Optional[HunkStatus] = field(default=None, repr=False, compare=False)

    @property
    def span(self) -> tuple[int, int]:
        """Half-open 0-based (begin, end) range over the original lines."""
        begin = self.old_start if self.old_len == 0 else self.old_start - 1
        return begin, begin + self.old_len

    @property
    def is_insertion(self) -> bool:
        return self.old_len == 0

    @property
    def new_len(self) -> int:
        return len(self.replacement)

    @property
    def location(self) -> str:
        """Where the hunk sits in the original file, for display."""
        if self.is_insertion:
            return f"after line {self.old_start}"
        if self.old_len == 1:
            return f"line {self.old_start}"
        return f"lines {self.old_start}-{self.old_start + self.old_len - 1}"

    def snippet(self, max_lines: int = 5) -> str:
        """Get a snippet of the hunk content for display."""
        content_lines = ["-" + ln.rstrip("\r\n") for ln in self.removed]
        content_lines += ["+" + ln.rstrip("\r\n") for ln in self.replacement]
        if len(content_lines) <= max_lines:
            return "\n".join(content_lines)
        return "\n".join(content_lines[:max_lines]) + f"\n... ({len(content_lines) - max_lines} more lines)"


@dataclass
class FileDiff:
    """Diff for a single file containing ordered hunks."""

    file_path: str
    hunks: list[Hunk] = field(default_factory=list)
    original: Optional[str] = None  # None means the file does not exist yet
    is_deleted_file: bool = False

    @property
    def is_new_file(self) -> bool:
        return self.original is None

    @property
    def aggregate_status(self) -> AggregateStatus:
        """ACCEPTED only if every hunk is accepted, REJECTED only if every hunk is rejected."""
        if not self.hunks:
            return AggregateStatus.REJECTED
        statuses = {hunk.status for hunk in self.hunks}
        if statuses == {HunkStatus.ACCEPTED}:
            return AggregateStatus.ACCEPTED
        if statuses == {HunkStatus.REJECTED}:
            return AggregateStatus.REJECTED
        return AggregateStatus.MIXED

    def get_hunk(self, hunk_id: str) -> Optional[Hunk]:
        for hunk in self.hunks:
            if hunk.id == hunk_id:
                return hunk
        return None


def find_order_violation(hunks: list[Hunk]) -> Optional[str]:
    """Check that hunks are sorted by original position and never overlap.

    Two hunks starting at the same original line are treated as overlapping,
    since their relative order in the output would be ambiguous.

    Args:
        hunks: Hunks in the order they will be applied

    Returns:
        Description of the first violation found, or None if the order is valid
    """
    prev: Optional[Hunk] = None
    for hunk in hunks:
        begin, end = hunk.span
        if hunk.old_start < 0 or hunk.old_len < 0:
            return f"Hunk {hunk.id} has a negative range"
        if hunk.old_len and hunk.old_start == 0:
            return f"Hunk {hunk.id} replaces lines starting at line 0"
        if prev is not None:
            prev_begin, prev_end = prev.span
            if begin < prev_begin:
                return f"Hunk {hunk.id} starts before preceding hunk {prev.id}"
            if begin < prev_end or begin == prev_begin:
                return f"Hunk {hunk.id} overlaps hunk {prev.id}"
        prev = hunk
    return None
