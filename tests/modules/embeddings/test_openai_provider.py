"""Tests for :mod:`govindex.modules.embeddings.openai`."""

from __future__ import annotations

import threading
from types import SimpleNamespace
from typing import Iterable, Sequence

import httpx
import pytest
from openai import APIConnectionError, BadRequestError, RateLimitError
from structlog import get_logger

from govindex.modules.embeddings import (
    EmbeddingConfigurationError,
    EmbeddingConnectionError,
    EmbeddingDimensionError,
    EmbeddingProviderError,
    EmbeddingRateLimitError,
)
from govindex.modules.embeddings.openai import OpenAIEmbeddingsProvider

_REQUEST = httpx.Request("POST", "https://example.com/embeddings")


class _FakeEmbeddingsAPI:
    """Stub embeddings API returning scripted responses."""

    def __init__(self, script: Iterable[Sequence[Sequence[float]] | Exception]):
        self._script = list(script)
        self.calls: list[tuple[str, str]] = []

    def create(self, *, model: str, input: str) -> SimpleNamespace:
        self.calls.append((model, input))
        if not self._script:
            raise AssertionError("unexpected OpenAI call")
        next_item = self._script.pop(0)
        if isinstance(next_item, Exception):
            raise next_item
        data = [SimpleNamespace(embedding=list(vector)) for vector in next_item]
        return SimpleNamespace(data=data)


class _FakeOpenAIClient:
    def __init__(self, script: Iterable[Sequence[Sequence[float]] | Exception]):
        self.embeddings = _FakeEmbeddingsAPI(script)


def _provider(
    script: Iterable[Sequence[Sequence[float]] | Exception],
    *,
    dim: int = 4,
    max_attempts: int = 3,
) -> tuple[OpenAIEmbeddingsProvider, _FakeOpenAIClient, list[float]]:
    client = _FakeOpenAIClient(script)
    sleeps: list[float] = []
    provider = OpenAIEmbeddingsProvider(
        logger=get_logger("test.openai.provider"),
        config={"dim": dim, "max_attempts": max_attempts},
        client=client,  # type: ignore[arg-type]
        sleep=sleeps.append,
        now=lambda: 0.0,
    )
    return provider, client, sleeps


def _rate_limit() -> RateLimitError:
    response = httpx.Response(status_code=429, request=_REQUEST)
    return RateLimitError(message="slow down", response=response, body=None)


def test_embed_sends_single_text_with_default_model() -> None:
    provider, client, _ = _provider([[(0.1, 0.2, 0.3, 0.4)]])

    vector = provider.embed("Air Quality")

    assert vector == (0.1, 0.2, 0.3, 0.4)
    assert client.embeddings.calls == [("text-embedding-ada-002", "Air Quality")]
    assert provider.describe().key == "openai:text-embedding-ada-002"


def test_zero_vectors_raise_provider_error() -> None:
    provider, _, _ = _provider([[]])

    with pytest.raises(EmbeddingProviderError, match="No embedding"):
        provider.embed("anything")


def test_dimension_mismatch_raises() -> None:
    provider, _, _ = _provider([[(0.1, 0.2)]])

    with pytest.raises(EmbeddingDimensionError) as exc_info:
        provider.embed("anything")

    assert exc_info.value.expected == 4
    assert exc_info.value.actual == 2


def test_transient_errors_are_retried_with_backoff() -> None:
    provider, client, sleeps = _provider(
        [
            _rate_limit(),
            APIConnectionError(request=_REQUEST),
            [(1.0, 0.0, 0.0, 0.0)],
        ]
    )

    assert provider.embed("retry me") == (1.0, 0.0, 0.0, 0.0)
    assert len(client.embeddings.calls) == 3
    assert len(sleeps) == 2
    assert all(delay > 0 for delay in sleeps)
    assert provider.stats["retries"] == 2


def test_rate_limit_surfaces_after_attempts_exhausted() -> None:
    provider, client, _ = _provider([_rate_limit() for _ in range(3)])

    with pytest.raises(EmbeddingRateLimitError):
        provider.embed("alpha")

    assert len(client.embeddings.calls) == 3
    assert provider.stats["failures"] == 1


def test_connection_error_maps_to_connection_error() -> None:
    provider, _, _ = _provider(
        [APIConnectionError(request=_REQUEST)],
        max_attempts=1,
    )

    with pytest.raises(EmbeddingConnectionError):
        provider.embed("alpha")


def test_bad_request_is_not_retried() -> None:
    response = httpx.Response(status_code=400, request=_REQUEST)
    provider, client, sleeps = _provider(
        [BadRequestError(message="bad input", response=response, body=None)]
    )

    with pytest.raises(EmbeddingProviderError) as exc_info:
        provider.embed("alpha")

    assert not isinstance(exc_info.value, EmbeddingConnectionError)
    assert exc_info.value.status_code == 400
    assert len(client.embeddings.calls) == 1
    assert sleeps == []


def test_missing_api_key_is_a_configuration_error() -> None:
    with pytest.raises(EmbeddingConfigurationError):
        OpenAIEmbeddingsProvider(
            logger=get_logger("test.openai.provider"),
            config={"api_key": ""},
        )


def test_stats_count_every_request_across_threads() -> None:
    provider, _, _ = _provider([[(0.1, 0.2, 0.3, 0.4)]] * 400)

    def _embed_many() -> None:
        for _ in range(50):
            provider.embed("Grid Load")

    workers = [threading.Thread(target=_embed_many) for _ in range(8)]
    for worker in workers:
        worker.start()
    for worker in workers:
        worker.join()

    assert provider.stats == {"requests": 400, "retries": 0, "failures": 0}
