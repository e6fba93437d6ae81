"""Tests for the HTTP surface in :mod:`govindex.api`."""

from __future__ import annotations

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from govindex.api import create_api
from govindex.modules.index import IndexRequestError
from govindex.runtime import IndexerRuntime
from support import LedgerStub


def _request_error(operation: str):
    def _raise(*args, **kwargs):
        raise IndexRequestError(
            f"Vector store {operation} failed",
            operation=operation,
            collection="test_datasets",
        )

    return _raise


@pytest.fixture
def client(runtime: IndexerRuntime) -> Iterator[TestClient]:
    runtime.sync_now()
    with TestClient(create_api(runtime)) as test_client:
        yield test_client


def test_health_reports_degraded_fallback(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["service"] == "govchain-indexer"
    assert body["status"] == "degraded"
    assert [d["name"] for d in body["details"]] == [
        "vector-store",
        "ledger",
        "embeddings",
        "scheduler",
    ]


def test_health_is_503_when_store_fails(
    client: TestClient,
    runtime: IndexerRuntime,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr(
        runtime.gateway,
        "list_collections",
        _request_error("list-collections"),
    )

    response = client.get("/health")

    assert response.status_code == 503
    assert response.json()["status"] == "error"


def test_health_stays_up_when_ledger_is_down(
    client: TestClient,
    ledger_stub: LedgerStub,
) -> None:
    ledger_stub.status_code = 502
    ledger_stub.raw_body = b"bad gateway"

    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "degraded"
    ledger = next(d for d in body["details"] if d["name"] == "ledger")
    assert ledger["status"] == "degraded"
    assert "502" in ledger["summary"]


@pytest.mark.parametrize("params", [{}, {"q": ""}, {"q": "   "}])
def test_search_requires_query(client: TestClient, params: dict) -> None:
    response = client.get("/search", params=params)

    assert response.status_code == 400
    assert response.json() == {"error": "Query parameter 'q' is required"}


def test_search_returns_ranked_payloads(client: TestClient) -> None:
    response = client.get("/search", params={"q": "air quality"})

    assert response.status_code == 200
    body = response.json()
    assert body["query"] == "air quality"
    assert body["count"] == 2
    assert {r["id"] for r in body["results"]} == {"42", "43"}
    assert "fileSize" in body["results"][0]


@pytest.mark.parametrize("limit", ["abc", "0", "-1", ""])
def test_search_limit_is_lenient(client: TestClient, limit: str) -> None:
    response = client.get("/search", params={"q": "data", "limit": limit})

    assert response.status_code == 200
    assert response.json()["count"] == 2


def test_search_limit_and_filters(client: TestClient) -> None:
    limited = client.get("/search", params={"q": "data", "limit": " 1 "})
    filtered = client.get(
        "/search",
        params={"q": "data", "agency": "DOE", "category": "Energy"},
    )

    assert limited.json()["count"] == 1
    assert [r["id"] for r in filtered.json()["results"]] == ["43"]


def test_search_store_failure_is_500(
    client: TestClient,
    runtime: IndexerRuntime,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr(runtime.gateway, "query", _request_error("query"))

    response = client.get("/search", params={"q": "data"})

    assert response.status_code == 500
    assert "query failed" in response.json()["error"]


def test_reindex_starts_background_pass(
    client: TestClient,
    runtime: IndexerRuntime,
) -> None:
    response = client.post("/reindex")
    runtime.scheduler.wait_idle(5)

    assert response.status_code == 200
    assert response.json() == {
        "message": "Reindexing started",
        "outcome": "started",
    }
    assert runtime.scheduler.status().passes == 1


def test_collection_info(client: TestClient) -> None:
    response = client.get("/collection/info")

    assert response.status_code == 200
    assert response.json() == {
        "name": "test_datasets",
        "count": 2,
        "embeddingModel": "deterministic-fallback",
        "dim": 8,
    }


def test_collection_info_failure_is_500(
    client: TestClient,
    runtime: IndexerRuntime,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setattr(runtime.gateway, "count", _request_error("count"))

    response = client.get("/collection/info")

    assert response.status_code == 500
    assert "error" in response.json()


def test_cors_allows_any_origin(client: TestClient) -> None:
    response = client.get(
        "/collection/info",
        headers={"Origin": "https://explorer.example"},
    )

    assert response.headers["access-control-allow-origin"] == "*"


def test_lifespan_manages_scheduler(runtime: IndexerRuntime) -> None:
    app = create_api(runtime, manage_scheduler=True)

    with TestClient(app):
        assert runtime.scheduler.status().running

    assert not runtime.scheduler.status().running
