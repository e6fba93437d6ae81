"""Builders shared by the test modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

import httpx

TEST_DIM = 8
LEDGER_BASE_URL = "http://ledger.test"


def make_dataset(**overrides: Any) -> dict[str, Any]:
    """Return a ledger-shaped dataset payload (64-bit ints as strings)."""

    payload: dict[str, Any] = {
        "id": "42",
        "title": "Air Quality Measurements",
        "description": "Hourly PM2.5 readings from urban monitors",
        "ipfsCid": "bafybeigdyrzt5sfp7udm7hu76uh7y26nf3efuylqabf3oclgtqy55fbzdi",
        "fileSize": "2048",
        "checksumSha256": "ab" * 32,
        "agency": "EPA",
        "category": "Environment",
        "submitter": "cosmos1submitter",
        "timestamp": "1700000000",
        "pinCount": "3",
    }
    payload.update(overrides)
    return payload


def catalog_body(
    datasets: list[Mapping[str, Any]],
    *,
    next_key: str | None = None,
    total: int | None = None,
) -> dict[str, Any]:
    return {
        "Dataset": list(datasets),
        "pagination": {
            "next_key": next_key,
            "total": str(len(datasets) if total is None else total),
        },
    }


@dataclass
class LedgerStub:
    """Scriptable ledger backed by :class:`httpx.MockTransport`.

    ``pages`` maps a pagination key (``None`` for the first page) to a
    response body.
    """

    pages: dict[str | None, Any] = field(default_factory=dict)
    status_code: int = 200
    raw_body: bytes | None = None
    error: Exception | None = None
    requests: list[httpx.Request] = field(default_factory=list)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if self.raw_body is not None:
            return httpx.Response(self.status_code, content=self.raw_body)
        key = request.url.params.get("pagination.key")
        return httpx.Response(
            self.status_code,
            json=self.pages.get(key, catalog_body([])),
        )

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self.handler))
