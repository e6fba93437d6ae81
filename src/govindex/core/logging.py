"""Structured logging for the indexer.

Application code logs kebab-case events through structlog; stdlib records
(uvicorn, httpx, qdrant-client) pass through the same formatters. The
console gets Rich output, or JSON lines under container log collectors, and
an optional ``log_dir`` receives a JSON file rotated daily with gzip
archives.
"""

from __future__ import annotations

import gzip
import logging
import shutil
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Any

import structlog
from rich.console import Console
from rich.logging import RichHandler

Logger = structlog.stdlib.BoundLogger

LOG_FILENAME = "govindex.log"
ARCHIVE_DAYS = 7

# Libraries that log every HTTP request at INFO.
_CHATTY_LOGGERS = ("httpx", "httpcore", "openai", "uvicorn.access")

_TIMESTAMPER = structlog.processors.TimeStamper(fmt="iso", utc=True)
_SHARED_PROCESSORS: tuple[Any, ...] = (
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    _TIMESTAMPER,
)


def _level_number(level: str) -> int:
    """Map a level name such as ``"debug"`` to its :mod:`logging` constant.

    Raises:
        ValueError: The name is not a standard level.
    """

    levels = logging.getLevelNamesMapping()
    try:
        return levels[level.strip().upper()]
    except KeyError:
        raise ValueError(f"Unsupported log level: {level!r}") from None


def _formatter(renderer: Any) -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        processor=renderer,
        foreign_pre_chain=list(_SHARED_PROCESSORS),
    )


class _GzipRotatingFileHandler(TimedRotatingFileHandler):
    """Rotate at UTC midnight and gzip each archived day."""

    def __init__(self, path: Path) -> None:
        super().__init__(
            path,
            when="midnight",
            backupCount=ARCHIVE_DAYS,
            utc=True,
            encoding="utf-8",
            delay=True,
        )
        self.suffix = "%Y-%m-%d"
        self.namer = self._archive_name
        self.rotator = self._compress

    @staticmethod
    def _archive_name(default_name: str) -> str:
        return f"{default_name}.gz"

    @staticmethod
    def _compress(source: str, dest: str) -> None:
        with open(source, "rb") as raw, gzip.open(dest, "wb") as packed:
            shutil.copyfileobj(raw, packed)
        Path(source).unlink(missing_ok=True)


def _console_handler(
    *,
    json_output: bool,
    console: Console | None,
) -> logging.Handler:
    if json_output:
        handler: logging.Handler = logging.StreamHandler()
        handler.setFormatter(
            _formatter(structlog.processors.JSONRenderer(sort_keys=True))
        )
        return handler

    handler = RichHandler(
        console=console or Console(stderr=True),
        rich_tracebacks=True,
        show_path=False,
        markup=False,
        enable_link_path=False,
        log_time_format="%Y-%m-%d %H:%M:%S",
    )
    handler.setFormatter(_formatter(structlog.dev.ConsoleRenderer(colors=False)))
    return handler


def _file_handler(log_dir: str | Path) -> logging.Handler:
    directory = Path(log_dir).expanduser().resolve(strict=False)
    directory.mkdir(parents=True, exist_ok=True)
    handler = _GzipRotatingFileHandler(directory / LOG_FILENAME)
    handler.setFormatter(
        _formatter(structlog.processors.JSONRenderer(sort_keys=True))
    )
    return handler


def _install(root: logging.Logger, handlers: list[logging.Handler]) -> None:
    for old in list(root.handlers):
        root.removeHandler(old)
        old.close()
    for handler in handlers:
        root.addHandler(handler)


def configure_logging(
    *,
    level: str = "INFO",
    log_dir: str | Path | None = None,
    json_console: bool = False,
    console: Console | None = None,
) -> None:
    """Route structlog and stdlib logging to the console and ``log_dir``.

    Args:
        level: Level name for the root logger (case-insensitive).
        log_dir: Directory for the rotating JSON log file; omitted when
            ``None``.
        json_console: One JSON object per line on stderr instead of Rich.
        console: Rich console to render into, mainly for tests.

    Raises:
        ValueError: ``level`` is not a standard level name.
    """

    number = _level_number(level)

    structlog.reset_defaults()
    structlog.configure(
        processors=[
            *_SHARED_PROCESSORS,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handlers = [_console_handler(json_output=json_console, console=console)]
    if log_dir is not None:
        handlers.append(_file_handler(log_dir))
    for handler in handlers:
        handler.setLevel(number)

    root = logging.getLogger()
    root.setLevel(number)
    _install(root, handlers)

    library_level = number if number <= logging.DEBUG else logging.WARNING
    for name in _CHATTY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)

    logging.captureWarnings(True)


def get_logger(name: str | None = None, **initial_context: Any) -> Logger:
    """Return a logger with ``initial_context`` bound to every event.

    Example:
        >>> logger = get_logger(__name__, component="sync")
        >>> isinstance(logger, structlog.stdlib.BoundLogger)
        True
    """

    return structlog.get_logger(name).bind(**initial_context)


__all__ = ["Logger", "configure_logging", "get_logger"]
