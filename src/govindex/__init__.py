"""Top-level package for the :mod:`govindex` dataset search indexer.

The package exposes version metadata so the health probe and CLI can surface
the installed build.

Example:
    >>> from govindex import __version__
    >>> __version__.split(".")[0]
    '0'
"""

from importlib import metadata

try:
    __version__ = metadata.version("govindex")
except metadata.PackageNotFoundError:  # pragma: no cover - source checkouts
    __version__ = "0.0.0"

SERVICE_NAME = "govchain-indexer"

__all__ = ["SERVICE_NAME", "__version__"]
