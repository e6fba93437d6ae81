"""Remote embeddings through the OpenAI API, one text per request."""

from __future__ import annotations

import random
import threading
import time
from typing import Callable, Mapping

import httpx
from openai import (
    APIConnectionError,
    APIStatusError,
    APITimeoutError,
    OpenAI,
    RateLimitError,
)

from govindex.core.logging import Logger

from . import EmbeddingProviderModel, EmbeddingVector, ProviderInitContext
from .errors import (
    EmbeddingConfigurationError,
    EmbeddingConnectionError,
    EmbeddingDimensionError,
    EmbeddingProviderError,
    EmbeddingRateLimitError,
    EmbeddingRetryExceededError,
)

__all__ = [
    "OpenAIEmbeddingsProvider",
    "backoff_delay",
    "openai_provider_factory",
]

PROVIDER_KEY = "openai"
DEFAULT_MODEL = "text-embedding-ada-002"

_TRANSIENT = (
    RateLimitError,
    APITimeoutError,
    APIConnectionError,
    httpx.TimeoutException,
    httpx.NetworkError,
)


def backoff_delay(
    attempt: int,
    rng: random.Random,
    *,
    base: float = 0.5,
    cap: float = 8.0,
    jitter: float = 0.2,
) -> float:
    """Seconds to wait after failed ``attempt`` (1-based).

    Doubles from ``base`` up to ``cap`` and spreads by ``±jitter``.

    Example:
        >>> rng = random.Random(0)
        >>> 0.4 <= backoff_delay(1, rng) <= 0.6
        True
    """

    delay = min(base * 2 ** (attempt - 1), cap)
    return round(delay * rng.uniform(1.0 - jitter, 1.0 + jitter), 2)


def _status_code(exc: BaseException) -> int | None:
    status = getattr(exc, "status_code", None)
    return status if isinstance(status, int) else None


def _request_id(exc: BaseException) -> str | None:
    value = getattr(exc, "request_id", None)
    return value if isinstance(value, str) else None


def _is_transient(exc: BaseException) -> bool:
    if isinstance(exc, _TRANSIENT):
        return True
    status = _status_code(exc)
    return (
        isinstance(exc, APIStatusError)
        and status is not None
        and status >= 500
    )


def _positive(config: Mapping[str, object], key: str, default):
    value = config.get(key)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        if value > 0:
            return type(default)(value)
    return default


class OpenAIEmbeddingsProvider:
    """Embed dataset and query texts with an OpenAI embedding model.

    The SDK's own retries are disabled; transient failures (rate limits,
    timeouts, connection drops, 5xx) are retried here up to
    ``max_attempts`` with :func:`backoff_delay` between tries. Anything else
    fails on the first attempt.
    """

    provider_key = PROVIDER_KEY

    def __init__(
        self,
        *,
        logger: Logger,
        config: Mapping[str, object] | None = None,
        client: OpenAI | None = None,
        sleep: Callable[[float], None] = time.sleep,
        now: Callable[[], float] = time.perf_counter,
    ) -> None:
        settings = dict(config or {})
        self.logger = logger
        self.model = str(settings.get("model") or DEFAULT_MODEL).strip()
        self.dim: int = _positive(settings, "dim", 1536)
        self.max_attempts: int = _positive(settings, "max_attempts", 3)
        self._sleep = sleep
        self._now = now
        self._rng = random.Random()
        self._stats = {"requests": 0, "retries": 0, "failures": 0}
        self._stats_lock = threading.Lock()
        self._client = client or self._connect(settings)

    def _connect(self, settings: Mapping[str, object]) -> OpenAI:
        api_key = settings.get("api_key")
        if not isinstance(api_key, str) or not api_key:
            raise EmbeddingConfigurationError(
                "An OpenAI API key is required for remote embeddings.",
                provider=PROVIDER_KEY,
                model=self.model,
            )
        base_url = settings.get("base_url")
        return OpenAI(
            api_key=api_key,
            base_url=base_url if isinstance(base_url, str) else None,
            timeout=_positive(settings, "timeout", 30.0),
            max_retries=0,
        )

    @property
    def stats(self) -> Mapping[str, int]:
        """Successful requests, retries and failed embeds so far."""

        with self._stats_lock:
            return dict(self._stats)

    def _record(self, counter: str) -> None:
        # The scheduler thread and request handlers share one provider.
        with self._stats_lock:
            self._stats[counter] += 1

    def describe(self) -> EmbeddingProviderModel:
        return EmbeddingProviderModel(
            provider=PROVIDER_KEY,
            name=self.model,
            dim=self.dim,
        )

    def embed(self, text: str) -> EmbeddingVector:
        """Return the embedding of ``text``.

        Raises:
            EmbeddingProviderError: The API failed, or answered with no
                vector.
            EmbeddingDimensionError: The vector length is not ``dim``.
        """

        data = self._create(text)
        if not data:
            self._record("failures")
            raise EmbeddingProviderError(
                "No embedding returned from OpenAI.",
                provider=PROVIDER_KEY,
                model=self.model,
            )
        vector = tuple(float(v) for v in data[0].embedding)
        if len(vector) != self.dim:
            self._record("failures")
            raise EmbeddingDimensionError(
                f"OpenAI returned {len(vector)} dimensions, "
                f"the collection uses {self.dim}.",
                provider=PROVIDER_KEY,
                model=self.model,
                expected=self.dim,
                actual=len(vector),
            )
        return vector

    def _create(self, text: str) -> list:
        for attempt in range(1, self.max_attempts + 1):
            started = self._now()
            try:
                response = self._client.embeddings.create(
                    model=self.model,
                    input=text,
                )
            except Exception as exc:
                if attempt >= self.max_attempts or not _is_transient(exc):
                    self._record("failures")
                    raise self._failure(exc, attempt) from exc
                delay = backoff_delay(attempt, self._rng)
                self.logger.warning(
                    "openai-embed-retry",
                    model=self.model,
                    attempt=attempt,
                    max_attempts=self.max_attempts,
                    retry_delay=delay,
                    error_type=type(exc).__name__,
                    status_code=_status_code(exc),
                    request_id=_request_id(exc),
                )
                self._record("retries")
                self._sleep(delay)
                continue

            self._record("requests")
            self.logger.debug(
                "openai-embed-request",
                model=self.model,
                attempts=attempt,
                latency=self._now() - started,
            )
            return list(response.data or ())
        raise EmbeddingRetryExceededError(
            "OpenAI embedding failed on every attempt.",
            provider=PROVIDER_KEY,
            model=self.model,
            attempts=self.max_attempts,
        )

    def _failure(
        self,
        exc: Exception,
        attempts: int,
    ) -> EmbeddingProviderError:
        message = str(exc) or type(exc).__name__
        context = {
            "provider": PROVIDER_KEY,
            "model": self.model,
            "status_code": _status_code(exc),
            "request_id": _request_id(exc),
        }
        if isinstance(exc, RateLimitError):
            return EmbeddingRateLimitError(message, **context)
        if _is_transient(exc) or isinstance(exc, httpx.HTTPError):
            return EmbeddingConnectionError(message, **context)
        if attempts > 1:
            return EmbeddingRetryExceededError(
                message,
                attempts=attempts,
                **context,
            )
        return EmbeddingProviderError(message, **context)


def openai_provider_factory(
    context: ProviderInitContext,
) -> OpenAIEmbeddingsProvider:
    return OpenAIEmbeddingsProvider(
        logger=context.logger,
        config=context.config,
    )
