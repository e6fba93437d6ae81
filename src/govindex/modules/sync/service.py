"""Pull the ledger catalog into the vector index."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable

from govindex.core.logging import Logger, get_logger
from govindex.ledger import Dataset, LedgerClient
from govindex.modules.embeddings import (
    EmbeddingProviderError,
    EmbeddingsProvider,
)
from govindex.modules.index import (
    IndexRequestError,
    PointIdError,
    QdrantGateway,
    build_point,
)

__all__ = [
    "DatasetSynchronizer",
    "SyncFailure",
    "SyncFailureKind",
    "SyncReport",
]


def _default_now() -> datetime:
    return datetime.now(timezone.utc)


class SyncFailureKind(str, Enum):
    """Why a single dataset was left out of the index."""

    INVALID_ID = "invalid-id"
    EMBEDDING = "embedding"
    UPSERT = "upsert"


@dataclass(frozen=True, slots=True)
class SyncFailure:
    kind: SyncFailureKind
    dataset_id: str
    message: str

    def to_mapping(self) -> dict[str, str]:
        return {
            "kind": self.kind.value,
            "dataset_id": self.dataset_id,
            "message": self.message,
        }


@dataclass(slots=True)
class SyncReport:
    """Outcome of one sync pass."""

    started_at: datetime
    finished_at: datetime | None = None
    fetched: int = 0
    indexed: int = 0
    failures: list[SyncFailure] = field(default_factory=list)
    next_key: str | None = None
    total: int = 0
    pages: int = 0

    @property
    def failed(self) -> int:
        return len(self.failures)

    @property
    def ok(self) -> bool:
        return not self.failures

    def to_mapping(self) -> dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(),
            "finished_at": (
                self.finished_at.isoformat() if self.finished_at else None
            ),
            "fetched": self.fetched,
            "indexed": self.indexed,
            "failed": self.failed,
            "failures": [failure.to_mapping() for failure in self.failures],
            "next_key": self.next_key,
            "total": self.total,
            "pages": self.pages,
        }


@dataclass(slots=True)
class DatasetSynchronizer:
    """Embed and upsert every dataset the ledger currently lists.

    Per-record failures are logged and collected in the report; only ledger
    failures escape :meth:`sync`.
    """

    ledger: LedgerClient
    provider: EmbeddingsProvider
    gateway: QdrantGateway
    logger: Logger | None = None
    now: Callable[[], datetime] = _default_now

    def __post_init__(self) -> None:
        if self.logger is None:
            self.logger = get_logger(__name__, component="sync")

    def sync(self) -> SyncReport:
        """Run one pass.

        Raises:
            LedgerConnectionError: The ledger is unreachable or non-200.
            LedgerDecodeError: The catalog body is malformed.
        """

        report = SyncReport(started_at=self.now())
        self.logger.info(
            "sync-start",
            ledger=self.ledger.url,
            collection=self.gateway.collection_name,
        )

        snapshot = self.ledger.fetch_catalog()
        report.fetched = len(snapshot.datasets)
        report.next_key = snapshot.next_key
        report.total = snapshot.total
        report.pages = snapshot.pages

        for dataset in snapshot.datasets:
            failure = self._index_one(dataset)
            if failure is None:
                report.indexed += 1
            else:
                report.failures.append(failure)

        report.finished_at = self.now()
        self.logger.info(
            "sync-complete",
            fetched=report.fetched,
            indexed=report.indexed,
            failed=report.failed,
            total=report.total,
            next_key=report.next_key,
            duration=(report.finished_at - report.started_at).total_seconds(),
        )
        return report

    def _index_one(self, dataset: Dataset) -> SyncFailure | None:
        try:
            vector = self.provider.embed(dataset.searchable_text())
        except EmbeddingProviderError as exc:
            return self._record(SyncFailureKind.EMBEDDING, dataset, exc)

        try:
            point = build_point(dataset, vector)
        except PointIdError as exc:
            return self._record(SyncFailureKind.INVALID_ID, dataset, exc)

        try:
            self.gateway.upsert(point)
        except IndexRequestError as exc:
            return self._record(SyncFailureKind.UPSERT, dataset, exc)

        self.logger.debug("sync-dataset-indexed", dataset_id=dataset.id)
        return None

    def _record(
        self,
        kind: SyncFailureKind,
        dataset: Dataset,
        exc: Exception,
    ) -> SyncFailure:
        self.logger.warning(
            "sync-dataset-failed",
            kind=kind.value,
            dataset_id=dataset.id,
            title=dataset.title,
            error=str(exc),
        )
        return SyncFailure(kind=kind, dataset_id=dataset.id, message=str(exc))
