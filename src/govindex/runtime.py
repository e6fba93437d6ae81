"""Process-wide wiring of the indexer's shared services."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import httpx
from qdrant_client import QdrantClient

from govindex import SERVICE_NAME
from govindex.core.config import AppConfig
from govindex.core.logging import Logger, get_logger
from govindex.health import (
    HealthSnapshot,
    build_snapshot,
    check_embeddings,
    check_ledger,
    check_scheduler,
    check_vector_store,
)
from govindex.ledger import LedgerClient
from govindex.modules.embeddings import (
    EmbeddingsProvider,
    ProviderRegistry,
    create_embedding_provider,
)
from govindex.modules.index import QdrantGateway
from govindex.modules.search import QueryEngine, SearchRequest, SearchResult
from govindex.modules.sync import (
    DatasetSynchronizer,
    SyncReport,
    SyncScheduler,
    TriggerOutcome,
)

__all__ = [
    "IndexerRuntime",
    "build_runtime",
]


@dataclass(slots=True)
class IndexerRuntime:
    """Shared clients plus the services built on them.

    Construct with :func:`build_runtime`; call :meth:`close` once on
    shutdown.
    """

    config: AppConfig
    logger: Logger
    ledger: LedgerClient
    provider: EmbeddingsProvider
    gateway: QdrantGateway
    synchronizer: DatasetSynchronizer
    scheduler: SyncScheduler
    engine: QueryEngine

    def search(self, request: SearchRequest) -> SearchResult:
        return self.engine.search(request)

    def sync_now(self) -> SyncReport:
        """Run one pass on the calling thread, propagating ledger errors."""

        return self.synchronizer.sync()

    def reindex(self) -> TriggerOutcome:
        """Start a background pass and return without waiting for it."""

        outcome = self.scheduler.trigger()
        self.logger.info("reindex-requested", outcome=outcome.value)
        return outcome

    def collection_info(self) -> dict[str, Any]:
        described = self.provider.describe()
        return {
            "name": self.gateway.collection_name,
            "count": self.gateway.count(),
            "embeddingModel": described.name,
            "dim": described.dim,
        }

    def health(self, *, include_ledger: bool = True) -> HealthSnapshot:
        reports = [
            check_vector_store(self.gateway),
            check_embeddings(self.provider),
            check_scheduler(self.scheduler.status()),
        ]
        if include_ledger:
            reports.insert(1, check_ledger(self.ledger))
        return build_snapshot(reports, service=SERVICE_NAME)

    def close(self) -> None:
        self.scheduler.stop()
        self.ledger.close()
        self.gateway.close()
        self.logger.info("runtime-closed")


def build_runtime(
    config: AppConfig,
    *,
    logger: Logger | None = None,
    http_client: httpx.Client | None = None,
    qdrant_client: QdrantClient | None = None,
    registry: ProviderRegistry | None = None,
    provider: EmbeddingsProvider | None = None,
) -> IndexerRuntime:
    """Build every shared service and prepare the collection.

    Raises:
        IndexConnectionError: The vector store never answered.
        IndexRequestError: The collection could not be created.
        EmbeddingConfigurationError: The remote provider cannot be built.
    """

    logger = logger or get_logger(__name__, component="runtime")

    provider = provider or create_embedding_provider(
        config.embeddings,
        logger=get_logger("govindex.embeddings", component="embeddings"),
        registry=registry,
    )
    gateway = QdrantGateway(
        config.vector_store,
        dim=provider.dim,
        client=qdrant_client,
        logger=get_logger("govindex.index", component="index"),
    )
    gateway.connect()
    gateway.ensure_collection()

    ledger = LedgerClient(
        config.ledger,
        client=http_client,
        logger=get_logger("govindex.ledger", component="ledger"),
    )
    synchronizer = DatasetSynchronizer(
        ledger=ledger,
        provider=provider,
        gateway=gateway,
    )
    scheduler = SyncScheduler(
        synchronizer,
        interval=config.scheduler.interval,
        key=config.vector_store.collection_name,
        run_on_start=config.scheduler.run_on_start,
    )
    engine = QueryEngine(provider=provider, gateway=gateway)

    logger.info(
        "runtime-ready",
        collection=gateway.collection_name,
        ledger=ledger.url,
        provider=provider.describe().key,
    )
    return IndexerRuntime(
        config=config,
        logger=logger,
        ledger=ledger,
        provider=provider,
        gateway=gateway,
        synchronizer=synchronizer,
        scheduler=scheduler,
        engine=engine,
    )
