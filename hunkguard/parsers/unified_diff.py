"""Unified diff parser for hunkguard.

Contains functions for parsing unified diffs (git diff, Aider, patch output):
- parse_unified_diff: Parse a unified diff into a DiffModel
- _split_file_sections: Split the diff into per-file sections
- _parse_block: Parse one @@ block into minimal hunks
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Optional

from hunkguard.diff.builder import HunkCounter
from hunkguard.diff.models import FileDiff, Hunk, make_hunk_id, split_lines
from hunkguard.diff.selection import DiffModel
from hunkguard.exceptions import ParseError
from hunkguard.parsers.base import (
    ParseContext,
    finish_model,
    normalize_path,
    read_original,
    strip_code_fences,
)

logger = logging.getLogger(__name__)

# Format: @@ -old_start,old_len +new_start,new_len @@ optional context
_BLOCK_HEADER_RE = re.compile(r"^@@ -(\d+)(?:,(\d+))? \+(\d+)(?:,(\d+))? @@")
_DEV_NULL = "/dev/null"
_NO_NEWLINE_MARKER = "\\ No newline at end of file"


@dataclass
class _FileSection:
    """Lines of one file's diff, from its ---/+++ header to the next file."""

    old_path: str
    new_path: str
    lines: list[str] = field(default_factory=list)
    is_binary: bool = False


def parse_unified_diff(raw: str, context: ParseContext) -> DiffModel:
    """Parse a unified diff into a DiffModel.

    Each @@ block is split into minimal hunks: every run of removed and added
    lines becomes one hunk, and the surrounding context lines are checked
    against the file's current content.

    Args:
        raw: Raw provider output containing a unified diff
        context: Parse context

    Returns:
        DiffModel with one FileDiff per file in the diff

    Raises:
        ParseError: If the diff is malformed or does not match the files on disk
    """
    sections = _split_file_sections(strip_code_fences(raw))
    counter = HunkCounter()
    file_diffs: list[FileDiff] = []
    seen: set[str] = set()

    for section in sections:
        if section.is_binary:
            logger.warning("Binary file skipped: %s", section.new_path)
            continue
        file_diff = _parse_section(section, counter, context)
        if file_diff.file_path in seen:
            raise ParseError(f"File appears more than once in the diff: {file_diff.file_path}")
        seen.add(file_diff.file_path)
        if file_diff.hunks:
            file_diffs.append(file_diff)

    return finish_model(file_diffs, context)


def _strip_diff_path(raw_path: str) -> str:
    """Extract the path from a ---/+++ header value."""
    path = raw_path.split("\t", 1)[0].strip()
    if path == _DEV_NULL:
        return path
    if path.startswith(("a/", "b/")):
        path = path[2:]
    return path


def _split_file_sections(diff_text: str) -> list[_FileSection]:
    """Split a diff into file sections starting at each ---/+++ header pair."""
    lines = diff_text.split("\n")
    sections: list[_FileSection] = []
    current: Optional[_FileSection] = None
    remaining_old = remaining_new = 0
    i = 0

    while i < len(lines):
        line = lines[i]
        in_block = remaining_old > 0 or remaining_new > 0

        if not in_block and line.startswith("--- ") and i + 1 < len(lines) and lines[i + 1].startswith("+++ "):
            current = _FileSection(
                old_path=_strip_diff_path(line[4:]),
                new_path=_strip_diff_path(lines[i + 1][4:]),
            )
            sections.append(current)
            i += 2
            continue

        if not in_block and line.startswith("Binary files "):
            match = re.match(r"Binary files (?:a/)?(.*?) and (?:b/)?(.*?) differ", line)
            if match:
                sections.append(
                    _FileSection(old_path=match.group(1), new_path=match.group(2), is_binary=True)
                )
            current = None
            i += 1
            continue

        if current is not None:
            header = _BLOCK_HEADER_RE.match(line) if not in_block else None
            if header:
                remaining_old = int(header.group(2)) if header.group(2) is not None else 1
                remaining_new = int(header.group(4)) if header.group(4) is not None else 1
                current.lines.append(line)
            elif in_block:
                current.lines.append(line)
                tag = line[:1]
                if tag in (" ", ""):
                    remaining_old -= 1
                    remaining_new -= 1
                elif tag == "-":
                    remaining_old -= 1
                elif tag == "+":
                    remaining_new -= 1
                elif tag == "\\":
                    pass
                else:
                    raise ParseError(f"Unexpected line in diff hunk: {line!r}")
                if remaining_old < 0 or remaining_new < 0:
                    raise ParseError(f"Hunk line counts do not match its header near: {line!r}")
            elif line.startswith(_NO_NEWLINE_MARKER) and current.lines:
                current.lines.append(line)
        i += 1

    if remaining_old > 0 or remaining_new > 0:
        raise ParseError("Diff ends in the middle of a hunk")
    if not sections:
        raise ParseError("No file headers (---/+++) found in provider output")
    return sections


def _parse_section(section: _FileSection, counter: HunkCounter, context: ParseContext) -> FileDiff:
    """Parse one file section into a FileDiff checked against the file on disk."""
    is_new = section.old_path == _DEV_NULL
    is_deleted = section.new_path == _DEV_NULL
    if is_new and is_deleted:
        raise ParseError("Diff section has /dev/null on both sides")
    if not is_new and not is_deleted and section.old_path != section.new_path:
        raise ParseError(f"Renames are not supported: {section.old_path} -> {section.new_path}")

    file_path = normalize_path(section.old_path if is_deleted else section.new_path)
    original = read_original(context.root, file_path)
    if is_new and original is not None:
        raise ParseError(f"Diff creates {file_path}, but it already exists")
    if not is_new and original is None:
        raise ParseError(f"Diff modifies {file_path}, but it does not exist")

    original_lines = split_lines(original)
    hunks: list[Hunk] = []
    block: list[str] = []
    for line in section.lines + ["@@"]:
        if line.startswith("@@") and block:
            hunks.extend(_parse_block(block, file_path, original_lines, counter, context))
            block = []
        if line.startswith("@@") and line != "@@":
            block = [line]
        elif block:
            block.append(line)

    if is_deleted:
        covered = sum(len(h.removed) for h in hunks)
        if covered != len(original_lines) or any(h.replacement for h in hunks):
            raise ParseError(f"Deletion of {file_path} does not remove the whole file")
        if len(hunks) > 1:
            hunks = [_merge_deletion(hunks, counter)]

    return FileDiff(
        file_path=file_path,
        hunks=hunks,
        original=original,
        is_deleted_file=is_deleted,
    )


def _parse_block(
    block: list[str],
    file_path: str,
    original_lines: list[str],
    counter: HunkCounter,
    context: ParseContext,
) -> list[Hunk]:
    """Parse one @@ block into minimal hunks.

    Args:
        block: The @@ header followed by its body lines
        file_path: Workspace-relative path of the file
        original_lines: Current file lines, used to verify the block
        counter: Shared hunk counter
        context: Parse context

    Returns:
        Hunks for each run of changed lines in the block
    """
    header = _BLOCK_HEADER_RE.match(block[0])
    old_start = int(header.group(1))
    old_len = int(header.group(2)) if header.group(2) is not None else 1
    base = old_start - 1 if old_len > 0 else old_start

    # Attach "\ No newline at end of file" to the line it follows
    body: list[tuple[str, str]] = []
    for line in block[1:]:
        if line.startswith("\\"):
            if body:
                tag, text = body[-1]
                body[-1] = (tag, text[:-1] if text.endswith("\n") else text)
            continue
        tag = line[:1] or " "
        body.append((tag, line[1:] + "\n"))

    old_side = [text for tag, text in body if tag in (" ", "-")]
    if old_side != original_lines[base:base + len(old_side)]:
        raise ParseError(
            f"Diff for {file_path} does not match its current content at line {old_start}"
        )

    hunks: list[Hunk] = []
    old_pos = base
    removed: list[str] = []
    added: list[str] = []
    group_begin = base

    def flush() -> None:
        if not removed and not added:
            return
        end = group_begin + len(removed)
        hunks.append(
            Hunk(
                id=make_hunk_id(counter.take(), removed + added),
                file_path=file_path,
                old_start=group_begin + 1 if removed else group_begin,
                old_len=len(removed),
                removed=list(removed),
                replacement=list(added),
                context_before=original_lines[max(0, group_begin - context.context_lines):group_begin],
                context_after=original_lines[end:end + context.context_lines],
            )
        )
        removed.clear()
        added.clear()

    for tag, text in body:
        if tag == " ":
            flush()
            old_pos += 1
            group_begin = old_pos
        elif tag == "-":
            if added and removed:
                # "-" after a "-"/"+" run starts a new change run; after a
                # "+"-only run it joins it at the same position
                flush()
                group_begin = old_pos
            removed.append(text)
            old_pos += 1
        elif tag == "+":
            added.append(text)
    flush()

    return hunks


def _merge_deletion(hunks: list[Hunk], counter: HunkCounter) -> Hunk:
    """Combine the hunks of a whole-file deletion into one hunk."""
    removed = [line for hunk in hunks for line in hunk.removed]
    return Hunk(
        id=make_hunk_id(counter.take(), removed),
        file_path=hunks[0].file_path,
        old_start=1,
        old_len=len(removed),
        removed=removed,
        replacement=[],
    )
