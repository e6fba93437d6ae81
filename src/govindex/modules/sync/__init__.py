"""Ledger-to-index synchronization and its scheduler."""

from __future__ import annotations

from .locks import SingleFlightGuard
from .scheduler import SchedulerStatus, SyncScheduler, TriggerOutcome
from .service import (
    DatasetSynchronizer,
    SyncFailure,
    SyncFailureKind,
    SyncReport,
)

__all__ = [
    "DatasetSynchronizer",
    "SchedulerStatus",
    "SingleFlightGuard",
    "SyncFailure",
    "SyncFailureKind",
    "SyncReport",
    "SyncScheduler",
    "TriggerOutcome",
]
