"""Shared test fixtures and configuration."""

import tempfile
from pathlib import Path

import pytest

from hunkguard.config import WorkspaceConfig
from hunkguard.parsers.base import ParseContext, build_model
from hunkguard.transaction.workspace import Workspace


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def write_files(temp_dir):
    """Write {relative path: content} into the temp dir."""

    def _write(files):
        for rel, content in files.items():
            target = temp_dir / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content)
        return temp_dir

    return _write


@pytest.fixture
def workspace(temp_dir):
    """Workspace rooted at the temp dir, applying without confirmation."""
    return Workspace(temp_dir, config=WorkspaceConfig(confirm_before_apply=False))


@pytest.fixture
def propose(temp_dir):
    """Build a DiffModel from {relative path: proposed content or None}."""

    def _propose(files, context_lines=3, wrap=False):
        context = ParseContext(root=temp_dir, context_lines=context_lines, wrap_navigation=wrap)
        return build_model(list(files.items()), context)

    return _propose


@pytest.fixture
def three_hunk_original():
    """Ten-line file used by tests that need several separated hunks."""
    return "".join(f"line{i}\n" for i in range(1, 11))


@pytest.fixture
def three_hunk_proposed():
    """Edits lines 2, 5 and 9 of three_hunk_original."""
    lines = [f"line{i}\n" for i in range(1, 11)]
    lines[1] = "LINE2\n"
    lines[4] = "LINE5\n"
    lines[8] = "LINE9\n"
    return "".join(lines)
