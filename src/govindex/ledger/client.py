"""HTTP client for the ledger's dataset catalog endpoint."""

from __future__ import annotations

from dataclasses import dataclass

import httpx
from pydantic import ValidationError

from govindex.core.config import LedgerSettings
from govindex.core.logging import Logger, get_logger
from govindex.ledger.errors import LedgerConnectionError, LedgerDecodeError
from govindex.ledger.models import CatalogPage, Dataset

__all__ = [
    "CatalogSnapshot",
    "LedgerClient",
]

# Cosmos SDK query parameter carrying the pagination cursor.
_PAGINATION_KEY_PARAM = "pagination.key"
_PAGINATION_LIMIT_PARAM = "pagination.limit"
_ERROR_BODY_PREVIEW = 200


@dataclass(frozen=True, slots=True)
class CatalogSnapshot:
    """Datasets gathered by one catalog fetch."""

    datasets: tuple[Dataset, ...]
    next_key: str | None
    total: int
    pages: int


class LedgerClient:
    """Fetch the dataset catalog from the ledger's read API.

    The client owns its :class:`httpx.Client` unless one is injected; call
    :meth:`close` (or use the instance as a context manager) to release it.
    """

    def __init__(
        self,
        settings: LedgerSettings,
        *,
        logger: Logger | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self.settings = settings
        self.logger = logger or get_logger(__name__, component="ledger")
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=settings.timeout)

    @property
    def url(self) -> str:
        return self.settings.dataset_url

    def fetch_page(
        self,
        *,
        key: str | None = None,
        limit: int | None = None,
    ) -> CatalogPage:
        """Fetch and decode one catalog page.

        ``limit`` caps the page size; the ledger's default applies when
        omitted.

        Raises:
            LedgerConnectionError: The request failed or returned non-200.
            LedgerDecodeError: The body is not a valid catalog payload.
        """

        params: dict[str, str] = {}
        if key:
            params[_PAGINATION_KEY_PARAM] = key
        if limit is not None:
            params[_PAGINATION_LIMIT_PARAM] = str(limit)
        try:
            response = self._client.get(
                self.url,
                params=params or None,
                timeout=self.settings.timeout,
            )
        except httpx.HTTPError as exc:
            raise LedgerConnectionError(
                f"Failed to fetch datasets from {self.url}: {exc}",
                url=self.url,
            ) from exc

        if response.status_code != httpx.codes.OK:
            preview = response.text[:_ERROR_BODY_PREVIEW]
            raise LedgerConnectionError(
                (
                    f"Ledger API returned status {response.status_code}: "
                    f"{preview}"
                ),
                url=self.url,
                status_code=response.status_code,
            )

        try:
            return CatalogPage.model_validate_json(response.content)
        except ValidationError as exc:
            raise LedgerDecodeError(
                f"Failed to decode ledger response from {self.url}: {exc}",
                url=self.url,
            ) from exc

    def fetch_catalog(self) -> CatalogSnapshot:
        """Fetch the catalog, following the cursor only when configured."""

        page = self.fetch_page()
        datasets = list(page.datasets)
        pages = 1
        next_key = page.pagination.next_key

        if self.settings.follow_pagination:
            while next_key and pages < self.settings.max_pages:
                page = self.fetch_page(key=next_key)
                datasets.extend(page.datasets)
                pages += 1
                next_key = page.pagination.next_key
            if next_key:
                self.logger.warning(
                    "ledger-max-pages-reached",
                    max_pages=self.settings.max_pages,
                    next_key=next_key,
                )
        elif next_key:
            self.logger.info(
                "ledger-pagination-not-followed",
                next_key=next_key,
                total=page.pagination.total,
                fetched=len(datasets),
            )

        return CatalogSnapshot(
            datasets=tuple(datasets),
            next_key=next_key,
            total=page.pagination.total,
            pages=pages,
        )

    def ping(self) -> None:
        """Raise :class:`LedgerConnectionError` unless the endpoint answers.

        Requests a single record so health probes stay cheap.
        """

        self.fetch_page(limit=1)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> "LedgerClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
