"""Typed error hierarchy for embedding providers."""

from __future__ import annotations

from govindex.errors import GovIndexConnectionError, GovIndexError

__all__ = [
    "EmbeddingConfigurationError",
    "EmbeddingConnectionError",
    "EmbeddingDimensionError",
    "EmbeddingProviderError",
    "EmbeddingRateLimitError",
    "EmbeddingRetryExceededError",
]


class EmbeddingProviderError(GovIndexError):
    """Base error raised by embedding providers."""

    def __init__(
        self,
        message: str,
        *,
        provider: str,
        model: str,
        status_code: int | None = None,
        request_id: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.provider = provider
        self.model = model
        self.status_code = status_code
        self.request_id = request_id


class EmbeddingConfigurationError(EmbeddingProviderError):
    """Raised when the provider cannot be constructed from configuration."""


class EmbeddingConnectionError(EmbeddingProviderError, GovIndexConnectionError):
    """Raised for transport or server-side failures that outlived retries."""


class EmbeddingRateLimitError(EmbeddingConnectionError):
    """Raised when the provider keeps answering with a rate limit."""


class EmbeddingRetryExceededError(EmbeddingProviderError):
    """Raised when retry attempts are exhausted."""

    def __init__(self, message: str, *, attempts: int, **kwargs) -> None:
        super().__init__(message, **kwargs)
        self.attempts = attempts


class EmbeddingDimensionError(EmbeddingProviderError):
    """Raised when a vector's length differs from the collection dimension."""

    def __init__(
        self,
        message: str,
        *,
        expected: int,
        actual: int,
        **kwargs,
    ) -> None:
        super().__init__(message, **kwargs)
        self.expected = expected
        self.actual = actual
