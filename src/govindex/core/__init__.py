"""Core utilities shared across :mod:`govindex` modules.

The core namespace provides the configuration stack and logging setup so the
sync and search modules stay focused on their pipelines.

Example:
    >>> from govindex.core import get_logger
    >>> logger = get_logger(__name__)
    >>> isinstance(logger, object)
    True
"""

from __future__ import annotations

from .config import AppConfig, load_app_config, load_config
from .logging import Logger, configure_logging, get_logger

__all__ = [
    "AppConfig",
    "Logger",
    "configure_logging",
    "get_logger",
    "load_app_config",
    "load_config",
]
