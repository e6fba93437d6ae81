"""Shared pytest fixtures for the indexer test-suite."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Any, Mapping

import pytest
from qdrant_client import QdrantClient
from structlog import get_logger

from govindex.core.config import AppConfig, load_config, load_packaged_defaults
from govindex.core.logging import Logger
from govindex.runtime import IndexerRuntime, build_runtime
from support import LEDGER_BASE_URL, TEST_DIM, LedgerStub, catalog_body, make_dataset


@pytest.fixture
def ledger_stub() -> LedgerStub:
    """Ledger listing dataset 42 (EPA) and dataset 43 (DOE)."""

    return LedgerStub(
        pages={
            None: catalog_body(
                [
                    make_dataset(),
                    make_dataset(
                        id="43",
                        title="Grid Load Forecasts",
                        description="Regional electricity demand forecasts",
                        agency="DOE",
                        category="Energy",
                        fileSize="0",
                        pinCount="0",
                    ),
                ]
            )
        }
    )


@pytest.fixture
def config_overrides() -> dict[str, Any]:
    return {
        "ledger": {"base_url": LEDGER_BASE_URL},
        "vector_store": {
            "url": ":memory:",
            "collection_name": "test_datasets",
            "connect_attempts": 1,
            "connect_retry_delay": 0.0,
        },
        "embeddings": {"dim": TEST_DIM},
        "scheduler": {
            "interval": 3600.0,
            "run_on_start": False,
            "enabled": False,
        },
    }


@pytest.fixture
def app_config(config_overrides: Mapping[str, Any]) -> AppConfig:
    """Config for an in-memory store, fallback embeddings and a stub ledger."""

    return load_config(
        defaults=load_packaged_defaults(),
        cli_overrides=config_overrides,
    )


@pytest.fixture
def bound_logger() -> Logger:
    return get_logger("govindex.tests")


@pytest.fixture
def runtime_factory(
    ledger_stub: LedgerStub,
) -> Callable[[AppConfig, Logger], IndexerRuntime]:
    """Build runtimes wired to ``ledger_stub`` and a fresh in-memory store."""

    def _factory(config: AppConfig, logger: Logger) -> IndexerRuntime:
        return build_runtime(
            config,
            logger=logger,
            http_client=ledger_stub.client(),
            qdrant_client=QdrantClient(location=":memory:"),
        )

    return _factory


@pytest.fixture
def runtime(
    app_config: AppConfig,
    bound_logger: Logger,
    runtime_factory: Callable[[AppConfig, Logger], IndexerRuntime],
) -> Iterator[IndexerRuntime]:
    instance = runtime_factory(app_config, bound_logger)
    try:
        yield instance
    finally:
        instance.close()
