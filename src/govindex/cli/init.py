"""Helpers for the ``govindex init`` command."""

from __future__ import annotations

from pathlib import Path
from typing import Mapping

from govindex.core.config import (
    AppConfig,
    load_config,
    load_packaged_defaults,
    render_user_config,
)


class ConfigExistsError(FileExistsError):
    """Raised when ``init`` would overwrite a config without ``--force``."""


def init_config(
    *,
    path: Path,
    force: bool = False,
    overrides: Mapping[str, object] | None = None,
) -> AppConfig:
    """Write a commented ``govindex.toml`` at ``path``.

    Only packaged defaults and ``overrides`` feed the file; the environment
    is ignored so secrets never land on disk.

    Example:
        >>> from pathlib import Path
        >>> config = init_config(path=Path("/tmp/govindex-example.toml"),
        ...                      force=True)
        >>> config.server.port
        3000

    Raises:
        ConfigExistsError: ``path`` exists and ``force`` is false.
    """

    if path.exists() and not force:
        raise ConfigExistsError(
            f"Config file already exists at {path}; use --force to overwrite."
        )

    config = load_config(
        defaults=load_packaged_defaults(),
        cli_overrides=overrides,
    )
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_user_config(config), encoding="utf-8")
    return config


__all__ = ["ConfigExistsError", "init_config"]
