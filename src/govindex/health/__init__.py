"""Health reporting for :mod:`govindex` dependencies."""

from __future__ import annotations

from .checks import (
    check_embeddings,
    check_ledger,
    check_scheduler,
    check_vector_store,
)
from .models import (
    HealthDetail,
    HealthReport,
    HealthSnapshot,
    HealthStatus,
    build_snapshot,
    worst_status,
)

__all__ = [
    "HealthDetail",
    "HealthReport",
    "HealthSnapshot",
    "HealthStatus",
    "build_snapshot",
    "check_embeddings",
    "check_ledger",
    "check_scheduler",
    "check_vector_store",
    "worst_status",
]
