"""Root of the :mod:`govindex` error hierarchy.

Every module keeps its own ``errors`` subtree; each subtree derives from
:class:`GovIndexError` so callers at the process boundary (scheduler loop,
HTTP handlers, CLI commands) can isolate steady-state failures with a single
``except`` clause.
"""

from __future__ import annotations


class GovIndexError(RuntimeError):
    """Base error raised by :mod:`govindex` components."""


class GovIndexConnectionError(GovIndexError):
    """Raised when a collaborator (ledger, store, provider) is unreachable."""


class GovIndexValidationError(GovIndexError, ValueError):
    """Raised when a single record or request fails validation."""


__all__ = [
    "GovIndexConnectionError",
    "GovIndexError",
    "GovIndexValidationError",
]
