"""Per-dependency health checks."""

from __future__ import annotations

from govindex.errors import GovIndexError
from govindex.ledger import LedgerClient
from govindex.modules.embeddings import EmbeddingsProvider
from govindex.modules.index import QdrantGateway
from govindex.modules.sync import SchedulerStatus

from .models import HealthReport, HealthStatus

__all__ = [
    "check_embeddings",
    "check_ledger",
    "check_scheduler",
    "check_vector_store",
]


def check_vector_store(gateway: QdrantGateway) -> HealthReport:
    """The store answers and the collection exists."""

    try:
        collections = gateway.list_collections()
    except GovIndexError as exc:
        return HealthReport(
            name="vector-store",
            status=HealthStatus.ERROR,
            summary=str(exc),
            actions=(
                f"Check that Qdrant is reachable at {gateway.settings.url}.",
            ),
        )
    if gateway.collection_name not in collections:
        return HealthReport(
            name="vector-store",
            status=HealthStatus.DEGRADED,
            summary=f"Collection {gateway.collection_name!r} is missing.",
            actions=("Restart the service or run `govindex sync`.",),
        )
    return HealthReport(
        name="vector-store",
        status=HealthStatus.OK,
        summary=f"Collection {gateway.collection_name!r} available.",
    )


def check_ledger(ledger: LedgerClient) -> HealthReport:
    """An unreachable ledger only degrades the service; the next pass retries."""

    try:
        ledger.ping()
    except GovIndexError as exc:
        return HealthReport(
            name="ledger",
            status=HealthStatus.DEGRADED,
            summary=str(exc),
            actions=(f"Check that the ledger API answers at {ledger.url}.",),
        )
    return HealthReport(
        name="ledger",
        status=HealthStatus.OK,
        summary=f"Ledger reachable at {ledger.url}.",
    )


def check_embeddings(provider: EmbeddingsProvider) -> HealthReport:
    described = provider.describe()
    if described.provider == "fallback":
        return HealthReport(
            name="embeddings",
            status=HealthStatus.DEGRADED,
            summary=(
                "Deterministic fallback embeddings active; search results "
                "carry no semantic similarity."
            ),
            actions=("Set OPENAI_API_KEY and restart the service.",),
        )
    return HealthReport(
        name="embeddings",
        status=HealthStatus.OK,
        summary=f"{described.key} (dim={described.dim})",
    )


def check_scheduler(status: SchedulerStatus | None) -> HealthReport:
    if status is None or status.passes == 0:
        return HealthReport(
            name="scheduler",
            status=HealthStatus.UNKNOWN,
            summary="No sync pass has completed yet.",
        )
    if status.last_pass_failed:
        return HealthReport(
            name="scheduler",
            status=HealthStatus.DEGRADED,
            summary=f"Last sync pass failed: {status.last_error}",
            actions=("Inspect the logs for `sync-pass-failed`.",),
            last_refresh_at=status.last_finished_at,
        )
    report = status.last_report
    summary = "Last sync pass succeeded."
    if report is not None:
        summary = (
            f"Last sync pass indexed {report.indexed} of {report.fetched} "
            f"datasets ({report.failed} failed)."
        )
    return HealthReport(
        name="scheduler",
        status=HealthStatus.OK,
        summary=summary,
        last_refresh_at=status.last_finished_at,
    )
