"""Transactions for hunkguard - apply a selection of hunks atomically.

This package provides:
- models: TransactionState, ChangeKind, Transaction, FileOutcome, Committed, Failed
- workspace: Workspace (root, configuration, backup store, apply slot)
- coordinator: TransactionCoordinator, apply_changes
- worker: ApplyWorker (background dispatch)
"""

# Models
from hunkguard.transaction.models import (
    ChangeKind,
    Committed,
    Failed,
    FileOutcome,
    Transaction,
    TransactionResult,
    TransactionState,
)

# Workspace
from hunkguard.transaction.workspace import (
    Workspace,
)

# Coordinator
from hunkguard.transaction.coordinator import (
    TransactionCoordinator,
    apply_changes,
)

# Worker
from hunkguard.transaction.worker import (
    ApplyWorker,
)


__all__ = [
    # Models
    "ChangeKind",
    "Committed",
    "Failed",
    "FileOutcome",
    "Transaction",
    "TransactionResult",
    "TransactionState",
    # Workspace
    "Workspace",
    # Coordinator
    "TransactionCoordinator",
    "apply_changes",
    # Worker
    "ApplyWorker",
]
