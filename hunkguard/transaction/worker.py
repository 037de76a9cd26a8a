"""Background apply worker for hunkguard.

Runs transactions on a single background thread so that the disk work of
backup, write, rename and restore never blocks the interactive layer.
Completion is reported through the returned Future and an optional callback.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Optional

from hunkguard.diff.selection import DiffModel, SelectionSnapshot
from hunkguard.exceptions import TransactionInProgress
from hunkguard.transaction.coordinator import TransactionCoordinator
from hunkguard.transaction.models import TransactionResult
from hunkguard.transaction.workspace import Workspace

logger = logging.getLogger(__name__)


class ApplyWorker:
    """Dispatches applies for one workspace to a background thread.

    Submitting while an apply is queued or running raises
    TransactionInProgress immediately; requests are never queued.
    """

    def __init__(self, workspace: Workspace):
        self.coordinator = TransactionCoordinator(workspace)
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="hunkguard-apply")
        self._lock = threading.Lock()
        self._current: Optional[Future] = None

    @property
    def busy(self) -> bool:
        with self._lock:
            return self._current is not None and not self._current.done()

    def submit(
        self,
        diff_model: DiffModel,
        on_done: Optional[Callable[[Future], None]] = None,
    ) -> "Future[TransactionResult]":
        """Start applying diff_model in the background.

        The selection is snapshotted now, so toggles made while the apply
        runs do not change what is written.

        Args:
            diff_model: The change set to apply
            on_done: Called with the finished Future (on the worker thread)

        Returns:
            Future resolving to Committed/Failed, or raising the pre-flight error

        Raises:
            TransactionInProgress: If an apply is already queued or running
        """
        selection: SelectionSnapshot = diff_model.snapshot()
        with self._lock:
            if (self._current is not None and not self._current.done()) or self.coordinator.workspace.is_applying:
                raise TransactionInProgress("An apply is already running for this workspace")
            future = self._executor.submit(self.coordinator.apply, diff_model, selection)
            self._current = future

        if on_done is not None:
            future.add_done_callback(on_done)
        return future

    def shutdown(self, wait: bool = True) -> None:
        """Stop the worker thread; a running transaction always completes first."""
        self._executor.shutdown(wait=wait)
