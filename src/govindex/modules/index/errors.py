"""Errors raised by the vector index gateway."""

from __future__ import annotations

from govindex.errors import (
    GovIndexConnectionError,
    GovIndexError,
    GovIndexValidationError,
)

__all__ = [
    "IndexConnectionError",
    "VectorIndexError",
    "IndexRequestError",
    "PointIdError",
]


class VectorIndexError(GovIndexError):
    """Base error for vector index failures."""

    def __init__(self, message: str, *, collection: str | None = None) -> None:
        super().__init__(message)
        self.collection = collection


class IndexConnectionError(VectorIndexError, GovIndexConnectionError):
    """Raised when the vector store cannot be reached at startup."""

    def __init__(
        self,
        message: str,
        *,
        url: str,
        attempts: int,
        collection: str | None = None,
    ) -> None:
        super().__init__(message, collection=collection)
        self.url = url
        self.attempts = attempts


class IndexRequestError(VectorIndexError):
    """Raised when a single vector store call fails."""

    def __init__(
        self,
        message: str,
        *,
        operation: str,
        collection: str | None = None,
    ) -> None:
        super().__init__(message, collection=collection)
        self.operation = operation


class PointIdError(GovIndexValidationError):
    """Raised when a dataset id is not an unsigned 64-bit integer."""

    def __init__(self, message: str, *, dataset_id: str) -> None:
        super().__init__(message)
        self.dataset_id = dataset_id
