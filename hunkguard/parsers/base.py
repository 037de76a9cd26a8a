"""Shared parser types and helpers for hunkguard parsers.

Contains:
- ParseContext: Workspace information every parser needs
- ParserSpec: The parse capability of one provider output format
- normalize_path: Validate a proposed path and make it workspace-relative
- resolve_target: Resolve a workspace-relative path against the root
- read_original: Read a file's current content as the diff snapshot
- build_model: Turn whole-file proposals into a DiffModel
- strip_code_fences: Remove markdown fences around a raw response
"""

from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Callable, Optional

from hunkguard.diff.builder import HunkCounter, build_file_diff
from hunkguard.diff.models import FileDiff
from hunkguard.diff.selection import DiffModel
from hunkguard.exceptions import ParseError, SelectionInvariantViolation


@dataclass
class ParseContext:
    """Where proposed paths are resolved and how hunks are built."""

    root: Path
    context_lines: int = 3
    wrap_navigation: bool = False


@dataclass(frozen=True)
class ParserSpec:
    """One supported provider output format.

    Formats are plain values holding a parse function, selected by name from
    configuration. parse(raw, context) returns a DiffModel or raises ParseError.
    """

    name: str
    description: str
    parse: Callable[[str, ParseContext], DiffModel]


def normalize_path(raw_path: str) -> str:
    """Normalize a proposed path to a workspace-relative POSIX path.

    Raises:
        ParseError: If the path is empty, absolute, or escapes the workspace
    """
    cleaned = raw_path.strip().strip("`'\"")
    if not cleaned:
        raise ParseError("Empty file path in provider output")

    path = PurePosixPath(cleaned.replace("\\", "/"))
    if path.is_absolute():
        raise ParseError(f"Absolute paths are not allowed: {raw_path}")
    if ".." in path.parts:
        raise ParseError(f"Path escapes the workspace: {raw_path}")

    parts = [part for part in path.parts if part != "."]
    if not parts:
        raise ParseError(f"Invalid file path: {raw_path}")
    return "/".join(parts)


def resolve_target(root: Path, file_path: str) -> Path:
    """Return the absolute location of a workspace-relative path."""
    return root / Path(*PurePosixPath(file_path).parts)


def read_original(root: Path, file_path: str) -> Optional[str]:
    """Read the current content of a workspace file.

    Returns:
        The file's text, or None if it does not exist

    Raises:
        ParseError: If the path is not a regular file or is not UTF-8 text
    """
    target = resolve_target(root, file_path)
    if not target.exists():
        return None
    if not target.is_file():
        raise ParseError(f"Not a regular file: {file_path}")
    try:
        return target.read_bytes().decode("utf-8")
    except UnicodeDecodeError:
        raise ParseError(f"File is not UTF-8 text: {file_path}")
    except OSError as e:
        raise ParseError(f"Failed to read {file_path}: {e}")


def build_model(
    proposals: list[tuple[str, Optional[str]]],
    context: ParseContext,
) -> DiffModel:
    """Build a DiffModel from whole-file proposals.

    Args:
        proposals: (raw path, proposed content or None for deletion) pairs
        context: Parse context

    Returns:
        DiffModel with one FileDiff per changed file

    Raises:
        ParseError: If a path is invalid, repeated, or nothing would change
    """
    counter = HunkCounter()
    file_diffs: list[FileDiff] = []
    seen: set[str] = set()

    for raw_path, proposed in proposals:
        file_path = normalize_path(raw_path)
        if file_path in seen:
            raise ParseError(f"File proposed more than once: {file_path}")
        seen.add(file_path)

        original = read_original(context.root, file_path)
        if proposed is None and original is None:
            raise ParseError(f"Cannot delete missing file: {file_path}")

        file_diff = build_file_diff(
            file_path, original, proposed, counter, context_lines=context.context_lines
        )
        if file_diff is not None:
            file_diffs.append(file_diff)

    return finish_model(file_diffs, context)


def finish_model(file_diffs: list[FileDiff], context: ParseContext) -> DiffModel:
    """Wrap parsed FileDiffs in a DiffModel, rejecting empty change sets."""
    if not file_diffs:
        raise ParseError("No file changes detected in provider output")
    try:
        return DiffModel(file_diffs, wrap=context.wrap_navigation)
    except SelectionInvariantViolation as e:
        raise ParseError(f"Provider output has inconsistent hunks: {e}") from e


def strip_code_fences(raw: str) -> str:
    """Remove a markdown fence wrapped around the whole response, if present."""
    cleaned = raw.strip()
    if not cleaned.startswith("```"):
        return raw
    lines = cleaned.split("\n")
    lines = lines[1:]
    if lines and lines[-1].strip() == "```":
        lines = lines[:-1]
    return "\n".join(lines) + "\n"
