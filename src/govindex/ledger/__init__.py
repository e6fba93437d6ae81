"""Ledger (system of record) catalog access."""

from __future__ import annotations

from .client import CatalogSnapshot, LedgerClient
from .errors import LedgerConnectionError, LedgerDecodeError, LedgerError
from .models import CatalogPage, Dataset, Pagination

__all__ = [
    "CatalogPage",
    "CatalogSnapshot",
    "Dataset",
    "LedgerClient",
    "LedgerConnectionError",
    "LedgerDecodeError",
    "LedgerError",
    "Pagination",
]
