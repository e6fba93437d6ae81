"""HTTP surface for search, reindex and diagnostics."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from govindex import SERVICE_NAME, __version__
from govindex.errors import GovIndexError
from govindex.health import HealthStatus
from govindex.modules.search import SearchRequest, SearchValidationError
from govindex.modules.sync import TriggerOutcome
from govindex.runtime import IndexerRuntime

__all__ = ["create_api"]

_REINDEX_MESSAGES: dict[TriggerOutcome, str] = {
    TriggerOutcome.STARTED: "Reindexing started",
    TriggerOutcome.COALESCED: (
        "Reindex coalesced into the pass already in progress"
    ),
}


def _parse_limit(raw: str | None) -> int:
    """Lenient limit parsing; anything unusable selects the default."""

    if raw is None:
        return 0
    try:
        return int(raw.strip())
    except ValueError:
        return 0


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _runtime(request: Request) -> IndexerRuntime:
    return request.app.state.runtime


def create_api(
    runtime: IndexerRuntime,
    *,
    manage_scheduler: bool | None = None,
) -> FastAPI:
    """Return the application bound to ``runtime``.

    When ``manage_scheduler`` is true (default: ``scheduler.enabled``), the
    lifespan starts the periodic scheduler and stops it on shutdown.
    """

    if manage_scheduler is None:
        manage_scheduler = runtime.config.scheduler.enabled

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        if manage_scheduler:
            runtime.scheduler.start()
        try:
            yield
        finally:
            if manage_scheduler:
                runtime.scheduler.stop()

    app = FastAPI(
        title="GovChain dataset indexer",
        description="Semantic search over the ledger's dataset catalog.",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.runtime = runtime
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(runtime.config.server.cors_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    def health(request: Request) -> JSONResponse:
        snapshot = _runtime(request).health()
        status_code = 503 if snapshot.status is HealthStatus.ERROR else 200
        return JSONResponse(
            status_code=status_code,
            content=snapshot.to_mapping(),
        )

    @app.get("/search")
    def search(
        request: Request,
        q: str | None = Query(default=None),
        limit: str | None = Query(default=None),
        agency: str | None = Query(default=None),
        category: str | None = Query(default=None),
    ) -> JSONResponse:
        runtime = _runtime(request)
        search_request = SearchRequest(
            query=q or "",
            limit=_parse_limit(limit),
            agency=agency,
            category=category,
        )
        try:
            result = runtime.search(search_request)
        except SearchValidationError as exc:
            return _error(400, str(exc))
        except GovIndexError as exc:
            runtime.logger.error("search-failed", query=q, error=str(exc))
            return _error(500, str(exc))
        return JSONResponse(content=result.to_mapping())

    @app.post("/reindex")
    def reindex(request: Request) -> JSONResponse:
        outcome = _runtime(request).reindex()
        return JSONResponse(
            content={
                "message": _REINDEX_MESSAGES[outcome],
                "outcome": outcome.value,
            }
        )

    @app.get("/collection/info")
    def collection_info(request: Request) -> JSONResponse:
        runtime = _runtime(request)
        try:
            info = runtime.collection_info()
        except GovIndexError as exc:
            runtime.logger.error("collection-info-failed", error=str(exc))
            return _error(500, str(exc))
        return JSONResponse(content=info)

    runtime.logger.debug("api-created", service=SERVICE_NAME)
    return app
