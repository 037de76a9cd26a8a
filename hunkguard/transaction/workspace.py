"""Workspace handle for hunkguard.

A Workspace ties together a root directory, its configuration, its backup
store and its single apply slot. Every transaction API takes a Workspace, so
several workspaces can be used in one process without shared state.
"""

import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from hunkguard.backup.manager import BackupManager
from hunkguard.config import WorkspaceConfig, load_config
from hunkguard.diff.selection import DiffModel
from hunkguard.exceptions import TransactionInProgress
from hunkguard.parsers import get_configured_parser, get_parser
from hunkguard.parsers.base import ParseContext, resolve_target
from hunkguard.transaction.models import Transaction

logger = logging.getLogger(__name__)


class Workspace:
    """A directory tree that change sets are applied to."""

    def __init__(
        self,
        root: Path,
        config: Optional[WorkspaceConfig] = None,
        backup_manager: Optional[BackupManager] = None,
    ):
        self.root = root.absolute()
        self.config = config if config is not None else load_config(self.root)
        self.backups = backup_manager or BackupManager(self.config.backup_root(self.root))
        self.pending: Optional[DiffModel] = None
        self.history: list[Transaction] = []
        self._slot = threading.Lock()
        self._active: Optional[Transaction] = None

    def resolve(self, file_path: str) -> Path:
        """Absolute location of a workspace-relative path."""
        return resolve_target(self.root, file_path)

    def parse_context(self) -> ParseContext:
        return ParseContext(
            root=self.root,
            context_lines=self.config.context_lines,
            wrap_navigation=self.config.wrap_navigation,
        )

    def propose(self, raw: str, parser_name: Optional[str] = None) -> DiffModel:
        """Parse provider output into the workspace's pending DiffModel.

        Args:
            raw: Raw provider output
            parser_name: Output format; the configured one is used when omitted

        Raises:
            ParseError: If the output cannot be parsed
        """
        if parser_name is None:
            parser = get_configured_parser(self.config)
        else:
            parser = get_parser(parser_name, regex_pattern=self.config.regex_pattern)
        diff_model = parser.parse(raw, self.parse_context())
        self.pending = diff_model
        logger.info(
            "Parsed %d file(s) with %s parser", len(diff_model), parser.name
        )
        return diff_model

    def cancel(self) -> None:
        """Discard the pending DiffModel. Only possible before applying starts.

        Raises:
            TransactionInProgress: If a transaction is applying
        """
        if self.is_applying:
            raise TransactionInProgress(
                "Cannot cancel: a transaction is already applying in this workspace"
            )
        self.pending = None

    @property
    def active(self) -> Optional[Transaction]:
        """The transaction currently applying, if any."""
        return self._active

    @property
    def is_applying(self) -> bool:
        return self._slot.locked()

    @contextmanager
    def apply_slot(self) -> Iterator[None]:
        """Hold the workspace's single apply slot without waiting.

        Raises:
            TransactionInProgress: If another transaction holds the slot
        """
        if not self._slot.acquire(blocking=False):
            active = self._active.id if self._active else "unknown"
            raise TransactionInProgress(
                f"Transaction {active} is already applying in {self.root}"
            )
        try:
            yield
        finally:
            self._active = None
            self._slot.release()

    def mark_active(self, transaction: Transaction) -> None:
        self._active = transaction
        self.history.append(transaction)
