"""Errors raised by the query engine."""

from __future__ import annotations

from govindex.errors import GovIndexValidationError

__all__ = ["SearchValidationError"]


class SearchValidationError(GovIndexValidationError):
    """Raised when a search request is rejected before any I/O."""
