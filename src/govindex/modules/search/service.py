"""Free-text search over the dataset index."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from govindex.core.logging import Logger, get_logger
from govindex.ledger import Dataset
from govindex.modules.embeddings import EmbeddingsProvider
from govindex.modules.index import (
    QdrantGateway,
    build_filter,
    dataset_from_payload,
)

from .errors import SearchValidationError

__all__ = [
    "DEFAULT_LIMIT",
    "QueryEngine",
    "SearchRequest",
    "SearchResult",
]

DEFAULT_LIMIT = 10


@dataclass(frozen=True, slots=True)
class SearchRequest:
    """A query plus optional equality filters.

    Example:
        >>> SearchRequest(query="air quality", limit=0).effective_limit
        10
    """

    query: str
    limit: int = DEFAULT_LIMIT
    agency: str | None = None
    category: str | None = None

    @property
    def effective_limit(self) -> int:
        return self.limit if self.limit > 0 else DEFAULT_LIMIT


@dataclass(frozen=True, slots=True)
class SearchResult:
    query: str
    count: int
    results: tuple[Dataset, ...]

    def to_mapping(self) -> dict[str, Any]:
        return {
            "query": self.query,
            "count": self.count,
            "results": [dataset.to_payload() for dataset in self.results],
        }


@dataclass(slots=True)
class QueryEngine:
    """Embed the query, ask the index, rebuild datasets in rank order."""

    provider: EmbeddingsProvider
    gateway: QdrantGateway
    logger: Logger | None = None

    def __post_init__(self) -> None:
        if self.logger is None:
            self.logger = get_logger(__name__, component="search")

    def search(self, request: SearchRequest) -> SearchResult:
        """Run ``request``.

        Raises:
            SearchValidationError: The query is empty.
            EmbeddingProviderError: The query could not be embedded.
            IndexRequestError: The vector store query failed.
        """

        if not request.query or not request.query.strip():
            raise SearchValidationError("Query parameter 'q' is required")

        limit = request.effective_limit
        query_filter = build_filter(request.agency, request.category)
        vector = self.provider.embed(request.query)
        hits = self.gateway.query(
            vector,
            query_filter=query_filter,
            limit=limit,
        )
        results = tuple(dataset_from_payload(hit.payload) for hit in hits)

        self.logger.info(
            "search-complete",
            query=request.query,
            limit=limit,
            agency=request.agency or None,
            category=request.category or None,
            count=len(results),
        )
        return SearchResult(
            query=request.query,
            count=len(results),
            results=results,
        )
