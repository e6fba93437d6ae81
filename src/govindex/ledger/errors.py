"""Errors raised while reading the ledger's dataset catalog."""

from __future__ import annotations

from govindex.errors import GovIndexConnectionError, GovIndexError


class LedgerError(GovIndexError):
    """Base error for ledger catalog failures."""


class LedgerConnectionError(LedgerError, GovIndexConnectionError):
    """Raised when the ledger cannot be reached or answers with non-200."""

    def __init__(
        self,
        message: str,
        *,
        url: str,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class LedgerDecodeError(LedgerError):
    """Raised when the ledger response body cannot be decoded."""

    def __init__(self, message: str, *, url: str) -> None:
        super().__init__(message)
        self.url = url


__all__ = [
    "LedgerConnectionError",
    "LedgerDecodeError",
    "LedgerError",
]
