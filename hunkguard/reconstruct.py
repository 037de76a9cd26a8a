"""File content reconstruction for hunkguard.

Contains:
- Outcome: What the coordinator must do with a file
- Reconstruction: Result of reconstructing one file
- reconstruct_lines: Apply a selection of hunks to original lines
- reconstruct_file: Compute the target state of a FileDiff under a selection
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from hunkguard.diff.models import FileDiff, Hunk, HunkStatus, find_order_violation, split_lines
from hunkguard.diff.selection import SelectionSnapshot
from hunkguard.exceptions import ReconstructionError

logger = logging.getLogger(__name__)


class Outcome(Enum):
    """Target state of a file after reconstruction."""

    WRITE = "write"  # Write content to the file
    DELETE = "delete"  # Remove the file
    SKIP = "skip"  # New file with nothing accepted; do not create it


@dataclass
class Reconstruction:
    """Result of reconstructing a single file."""

    file_path: str
    outcome: Outcome
    content: Optional[str]
    hunks_applied: int
    hunks_rejected: int


def reconstruct_lines(
    original_lines: list[str],
    hunks: list[Hunk],
    statuses: list[HunkStatus],
) -> tuple[list[str], int]:
    """Walk the original lines and the hunks in lockstep.

    Untouched spans are copied verbatim. An accepted hunk's range is replaced
    by its replacement lines; a rejected or pending hunk's range is copied
    unchanged.

    Args:
        original_lines: Original file lines with terminators
        hunks: Hunks in ascending original position
        statuses: Status for each hunk, in the same order

    Returns:
        Tuple of (output lines, number of hunks applied)

    Raises:
        ReconstructionError: If hunks overlap, are out of order, fall outside
            the original, or an accepted hunk does not match the original
    """
    violation = find_order_violation(hunks)
    if violation:
        raise ReconstructionError(violation)

    output: list[str] = []
    pos = 0
    applied = 0
    for hunk, status in zip(hunks, statuses):
        begin, end = hunk.span
        if end > len(original_lines):
            raise ReconstructionError(
                f"Hunk {hunk.id} covers lines {begin + 1}-{end} but the original "
                f"has only {len(original_lines)} lines"
            )

        output.extend(original_lines[pos:begin])
        if status == HunkStatus.ACCEPTED:
            if hunk.removed != original_lines[begin:end]:
                raise ReconstructionError(
                    f"Hunk {hunk.id} does not match the original content at line {hunk.old_start}"
                )
            output.extend(hunk.replacement)
            applied += 1
        else:
            output.extend(original_lines[begin:end])
        pos = end

    output.extend(original_lines[pos:])
    return output, applied


def reconstruct_file(
    file_diff: FileDiff,
    selection: Optional[SelectionSnapshot] = None,
) -> Reconstruction:
    """Compute the target state of a file under a selection.

    Args:
        file_diff: The file's original snapshot and hunks
        selection: Frozen selection; the hunks' live status is used when omitted

    Returns:
        Reconstruction describing whether to write, delete or skip the file

    Raises:
        ReconstructionError: If the selection state is corrupt
    """
    hunks = file_diff.hunks
    if selection is not None:
        statuses = [selection.status_of(file_diff.file_path, h.id) for h in hunks]
    else:
        statuses = [h.status for h in hunks]
    accepted = sum(1 for s in statuses if s == HunkStatus.ACCEPTED)
    rejected = len(hunks) - accepted

    if file_diff.is_new_file:
        violation = find_order_violation(hunks)
        if violation:
            raise ReconstructionError(f"{file_diff.file_path}: {violation}")
        if accepted == 0:
            return Reconstruction(file_diff.file_path, Outcome.SKIP, None, 0, rejected)
        content = "".join(
            line
            for hunk, status in zip(hunks, statuses)
            if status == HunkStatus.ACCEPTED
            for line in hunk.replacement
        )
        return Reconstruction(file_diff.file_path, Outcome.WRITE, content, accepted, rejected)

    try:
        lines, applied = reconstruct_lines(split_lines(file_diff.original), hunks, statuses)
    except ReconstructionError as e:
        raise ReconstructionError(f"{file_diff.file_path}: {e}") from e

    if file_diff.is_deleted_file and hunks and accepted == len(hunks):
        logger.debug("Reconstructed %s as a deletion", file_diff.file_path)
        return Reconstruction(file_diff.file_path, Outcome.DELETE, None, applied, 0)

    return Reconstruction(file_diff.file_path, Outcome.WRITE, "".join(lines), applied, rejected)
