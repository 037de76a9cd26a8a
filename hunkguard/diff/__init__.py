"""Diff model for hunkguard - proposed hunks and their selection state.

This package provides:
- models: HunkStatus, AggregateStatus, Hunk, FileDiff, find_order_violation
- selection: DiffModel, SelectionSnapshot
- builder: build_file_diff, HunkCounter
"""

# Models
from hunkguard.diff.models import (
    AggregateStatus,
    FileDiff,
    Hunk,
    HunkStatus,
    find_order_violation,
    make_hunk_id,
    split_lines,
)

# Selection
from hunkguard.diff.selection import (
    DiffModel,
    SelectionSnapshot,
)

# Builder
from hunkguard.diff.builder import (
    HunkCounter,
    build_file_diff,
)


__all__ = [
    # Models
    "AggregateStatus",
    "FileDiff",
    "Hunk",
    "HunkStatus",
    "find_order_violation",
    "make_hunk_id",
    "split_lines",
    # Selection
    "DiffModel",
    "SelectionSnapshot",
    # Builder
    "HunkCounter",
    "build_file_diff",
]
