"""Qdrant-backed vector index gateway."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Mapping

from qdrant_client import QdrantClient, models

from govindex.core.config import VectorStoreSettings
from govindex.core.logging import Logger, get_logger
from govindex.modules.embeddings import EmbeddingVector

from .errors import IndexConnectionError, IndexRequestError
from .points import IndexedPoint

__all__ = [
    "MEMORY_LOCATION",
    "QdrantGateway",
    "ScoredHit",
    "build_qdrant_client",
]

MEMORY_LOCATION = ":memory:"


@dataclass(frozen=True, slots=True)
class ScoredHit:
    """One query hit in rank order."""

    id: int | str
    score: float
    payload: Mapping[str, Any]


def build_qdrant_client(settings: VectorStoreSettings) -> QdrantClient:
    """Return a client for ``settings.url`` (``:memory:`` runs in-process)."""

    if settings.url == MEMORY_LOCATION:
        return QdrantClient(location=MEMORY_LOCATION)
    return QdrantClient(
        url=settings.url,
        timeout=max(1, int(round(settings.timeout))),
    )


class QdrantGateway:
    """Create, write and query the single dataset collection.

    The gateway holds no state beyond the client's connection pool and may be
    shared between the scheduler thread and request handlers.
    """

    def __init__(
        self,
        settings: VectorStoreSettings,
        *,
        dim: int,
        client: QdrantClient | None = None,
        logger: Logger | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.settings = settings
        self.dim = dim
        self.logger = logger or get_logger(__name__, component="index")
        self._sleep = sleep
        self._client = client or build_qdrant_client(settings)

    @property
    def collection_name(self) -> str:
        return self.settings.collection_name

    def _request_error(
        self,
        operation: str,
        exc: Exception,
    ) -> IndexRequestError:
        return IndexRequestError(
            f"Vector store {operation} failed for "
            f"{self.collection_name!r}: {exc}",
            operation=operation,
            collection=self.collection_name,
        )

    def list_collections(self) -> set[str]:
        try:
            response = self._client.get_collections()
        except Exception as exc:
            raise self._request_error("list-collections", exc) from exc
        return {collection.name for collection in response.collections}

    def connect(self) -> None:
        """Probe the store until it answers or attempts run out.

        Raises:
            IndexConnectionError: The store never answered.
        """

        attempts = self.settings.connect_attempts
        for attempt in range(1, attempts + 1):
            try:
                self.list_collections()
            except IndexRequestError as exc:
                if attempt >= attempts:
                    raise IndexConnectionError(
                        (
                            f"Vector store at {self.settings.url} unreachable "
                            f"after {attempts} attempts: {exc}"
                        ),
                        url=self.settings.url,
                        attempts=attempts,
                        collection=self.collection_name,
                    ) from exc
                self.logger.warning(
                    "index-connect-retry",
                    url=self.settings.url,
                    attempt=attempt,
                    max_attempts=attempts,
                    retry_delay=self.settings.connect_retry_delay,
                    error=str(exc),
                )
                self._sleep(self.settings.connect_retry_delay)
            else:
                self.logger.info(
                    "index-connected",
                    url=self.settings.url,
                    attempts=attempt,
                )
                return

    def ensure_collection(self) -> bool:
        """Create the collection when absent; return ``True`` if created.

        Raises:
            IndexRequestError: The existing collection stores vectors of a
                different size than ``dim``.
        """

        if self.collection_name in self.list_collections():
            self._check_vector_size()
            self.logger.debug(
                "index-collection-exists",
                collection=self.collection_name,
            )
            return False

        try:
            self._client.create_collection(
                collection_name=self.collection_name,
                vectors_config=models.VectorParams(
                    size=self.dim,
                    distance=models.Distance.COSINE,
                ),
            )
        except Exception as exc:
            # Another creator may have won the race.
            if self.collection_name in self.list_collections():
                self.logger.info(
                    "index-collection-created-concurrently",
                    collection=self.collection_name,
                )
                return False
            raise self._request_error("create-collection", exc) from exc

        self.logger.info(
            "index-collection-created",
            collection=self.collection_name,
            dim=self.dim,
            distance="cosine",
        )
        return True

    def vector_size(self) -> int | None:
        """Return the stored collection's vector size.

        ``None`` when the collection uses named vectors.
        """

        try:
            info = self._client.get_collection(self.collection_name)
        except Exception as exc:
            raise self._request_error("get-collection", exc) from exc
        vectors = info.config.params.vectors
        if isinstance(vectors, models.VectorParams):
            return vectors.size
        return None

    def _check_vector_size(self) -> None:
        size = self.vector_size()
        if size is None or size == self.dim:
            return
        raise IndexRequestError(
            (
                f"Collection {self.collection_name!r} stores {size}-dimensional "
                f"vectors, embeddings have {self.dim}."
            ),
            operation="ensure-collection",
            collection=self.collection_name,
        )

    def upsert(self, point: IndexedPoint) -> None:
        """Write ``point``, replacing any stored point with the same id."""

        try:
            self._client.upsert(
                collection_name=self.collection_name,
                points=[point.to_struct()],
                wait=True,
            )
        except Exception as exc:
            raise self._request_error("upsert", exc) from exc

    def query(
        self,
        vector: EmbeddingVector,
        *,
        query_filter: models.Filter | None = None,
        limit: int = 10,
    ) -> list[ScoredHit]:
        """Return up to ``limit`` hits by descending cosine similarity."""

        try:
            response = self._client.query_points(
                collection_name=self.collection_name,
                query=list(vector),
                query_filter=query_filter,
                limit=limit,
                with_payload=True,
            )
        except Exception as exc:
            raise self._request_error("query", exc) from exc
        return [
            ScoredHit(id=hit.id, score=hit.score, payload=hit.payload or {})
            for hit in response.points
        ]

    def count(self) -> int:
        """Return the exact number of stored points."""

        try:
            result = self._client.count(
                collection_name=self.collection_name,
                exact=True,
            )
        except Exception as exc:
            raise self._request_error("count", exc) from exc
        return result.count

    def close(self) -> None:
        self._client.close()
