"""Query engine for the dataset index."""

from __future__ import annotations

from .errors import SearchValidationError
from .service import DEFAULT_LIMIT, QueryEngine, SearchRequest, SearchResult

__all__ = [
    "DEFAULT_LIMIT",
    "QueryEngine",
    "SearchRequest",
    "SearchResult",
    "SearchValidationError",
]
