"""Command-line interface for :mod:`govindex`.

This module exposes the Typer application behind the ``govindex`` console
script. Every command resolves configuration through
:func:`govindex.core.config.load_app_config`, so flags override environment
variables, which override ``govindex.toml`` and the packaged defaults.

Example:
    >>> import typer
    >>> from govindex.cli import create_app
    >>> app = create_app()
    >>> isinstance(app, typer.Typer)
    True
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

import typer
import uvicorn

from govindex.cli.init import ConfigExistsError, init_config
from govindex.cli.output import (
    EXIT_CODES,
    emit_collection_info,
    emit_error,
    emit_health,
    emit_json,
    emit_search_result,
    emit_sync_report,
)
from govindex.core.config import (
    AppConfig,
    load_app_config,
    resolve_config_path,
)
from govindex.core.logging import Logger, configure_logging, get_logger
from govindex.errors import GovIndexError
from govindex.health import HealthStatus
from govindex.ledger import LedgerError
from govindex.modules.index import IndexConnectionError
from govindex.modules.search import SearchRequest, SearchValidationError
from govindex.runtime import IndexerRuntime, build_runtime

_app_help = (
    "Keep a semantic index of the ledger's dataset catalog in sync and "
    "search it."
    "\n\n"
    "Use `govindex init` to write a `govindex.toml`, then `govindex serve`."
)

RuntimeFactory = Callable[[AppConfig, Logger], IndexerRuntime]
ServeFunction = Callable[..., None]


def _default_runtime_factory(
    config: AppConfig,
    logger: Logger,
) -> IndexerRuntime:
    return build_runtime(config, logger=logger)


@dataclass(slots=True)
class CLIState:
    """Options gathered by the top-level callback."""

    config_path: Path | None = None
    overrides: dict[str, Any] = field(default_factory=dict)


def _state(ctx: typer.Context) -> CLIState:
    state = getattr(ctx, "obj", None)
    if not isinstance(state, CLIState):
        state = CLIState()
        ctx.obj = state
    return state


def _merge(
    target: dict[str, Any],
    section: str,
    values: dict[str, Any],
) -> None:
    cleaned = {k: v for k, v in values.items() if v is not None}
    if cleaned:
        target.setdefault(section, {}).update(cleaned)


def _load_config(
    state: CLIState,
    extra: dict[str, Any] | None = None,
) -> AppConfig:
    overrides = dict(state.overrides)
    for section, values in (extra or {}).items():
        if isinstance(values, dict):
            _merge(overrides, section, values)
        elif values is not None:
            overrides[section] = values
    try:
        return load_app_config(
            config_path=state.config_path,
            cli_overrides=overrides or None,
        )
    except ValueError as exc:
        emit_error(f"Configuration error: {exc}")
        raise typer.Exit(code=1) from exc


def _setup_logging(config: AppConfig, *, command: str) -> Logger:
    configure_logging(
        level=config.log_level,
        log_dir=config.log_dir,
        json_console=config.log_json,
    )
    return get_logger("govindex.cli", command=command)


def create_app(
    *,
    runtime_factory: RuntimeFactory | None = None,
    serve: ServeFunction | None = None,
) -> "typer.Typer":
    """Return the Typer application powering the ``govindex`` CLI.

    Args:
        runtime_factory: Builds the runtime for commands that need one.
        serve: Replacement for :func:`uvicorn.run`.
    """

    factory = runtime_factory or _default_runtime_factory
    serve_fn = serve or uvicorn.run

    app = typer.Typer(
        help=_app_help,
        no_args_is_help=True,
        rich_markup_mode="rich",
        invoke_without_command=False,
        cls=typer.core.TyperGroup,
    )

    def _open_runtime(config: AppConfig, logger: Logger) -> IndexerRuntime:
        try:
            return factory(config, logger)
        except IndexConnectionError as exc:
            logger.error("startup-failed", error=str(exc))
            emit_error(str(exc))
            raise typer.Exit(code=1) from exc
        except GovIndexError as exc:
            logger.error("startup-failed", error=str(exc))
            emit_error(f"Startup failed: {exc}")
            raise typer.Exit(code=1) from exc

    @app.callback()
    def main_callback(
        ctx: typer.Context,
        config: Path | None = typer.Option(
            None,
            "--config",
            "-c",
            help=(
                "Config file (default: $GOVINDEX_CONFIG or ./govindex.toml)."
            ),
        ),
        log_level: str | None = typer.Option(
            None,
            "--log-level",
            "-l",
            help="Override the logging level (DEBUG/INFO/WARNING/ERROR).",
        ),
        log_json: bool | None = typer.Option(
            None,
            "--log-json/--no-log-json",
            help="Emit JSON log lines on the console.",
        ),
    ) -> None:
        """Resolve global options shared by every command."""

        state = _state(ctx)
        state.config_path = config
        if log_level is not None:
            state.overrides["log_level"] = log_level
        if log_json is not None:
            state.overrides["log_json"] = log_json

    @app.command("init", help="Write a commented govindex.toml.")
    def init_command(
        ctx: typer.Context,
        force: bool = typer.Option(
            False,
            "--force",
            "-f",
            help="Overwrite an existing config file.",
        ),
    ) -> None:
        state = _state(ctx)
        path = resolve_config_path(state.config_path)
        try:
            config = init_config(
                path=path,
                force=force,
                overrides=state.overrides or None,
            )
        except ConfigExistsError as exc:
            emit_error(str(exc))
            raise typer.Exit(code=1) from exc

        logger = _setup_logging(config, command="init")
        logger.info("init-complete", path=str(path))
        typer.secho("Config written", fg=typer.colors.GREEN, bold=True)
        typer.echo(f"  path: {path}")
        typer.echo("  credential: set OPENAI_API_KEY in the environment")

    @app.command("serve", help="Run the scheduler and the HTTP API.")
    def serve_command(
        ctx: typer.Context,
        host: str | None = typer.Option(None, "--host", help="Bind address."),
        port: int | None = typer.Option(
            None,
            "--port",
            "-p",
            help="Bind port.",
        ),
        interval: float | None = typer.Option(
            None,
            "--interval",
            help="Seconds between periodic sync passes.",
        ),
        scheduler: bool | None = typer.Option(
            None,
            "--scheduler/--no-scheduler",
            help="Start the periodic scheduler alongside the API.",
        ),
    ) -> None:
        from govindex.api import create_api

        config = _load_config(
            _state(ctx),
            {
                "server": {"host": host, "port": port},
                "scheduler": {"interval": interval, "enabled": scheduler},
            },
        )
        logger = _setup_logging(config, command="serve")
        runtime = _open_runtime(config, logger)
        try:
            api = create_api(runtime)
            logger.info(
                "serve-start",
                host=config.server.host,
                port=config.server.port,
                scheduler=config.scheduler.enabled,
            )
            serve_fn(
                api,
                host=config.server.host,
                port=config.server.port,
                log_config=None,
            )
        finally:
            runtime.close()

    @app.command("sync", help="Run one sync pass and print the report.")
    def sync_command(
        ctx: typer.Context,
        as_json: bool = typer.Option(False, "--json", help="Emit JSON."),
        follow: bool | None = typer.Option(
            None,
            "--follow-pagination/--first-page",
            help="Follow the ledger's pagination cursor.",
        ),
    ) -> None:
        config = _load_config(
            _state(ctx),
            {"ledger": {"follow_pagination": follow}},
        )
        logger = _setup_logging(config, command="sync")
        runtime = _open_runtime(config, logger)
        try:
            report = runtime.sync_now()
        except LedgerError as exc:
            logger.error("sync-failed", error=str(exc))
            emit_error(f"Sync failed: {exc}")
            raise typer.Exit(code=1) from exc
        finally:
            runtime.close()

        if as_json:
            emit_json(report.to_mapping())
        else:
            emit_sync_report(report)

    @app.command("search", help="Search the index from the command line.")
    def search_command(
        ctx: typer.Context,
        query: str = typer.Argument(..., help="Free-text query."),
        limit: int = typer.Option(10, "--limit", "-n", help="Max results."),
        agency: str | None = typer.Option(
            None,
            "--agency",
            help="Agency filter.",
        ),
        category: str | None = typer.Option(
            None,
            "--category",
            help="Category filter.",
        ),
        as_json: bool = typer.Option(False, "--json", help="Emit JSON."),
    ) -> None:
        config = _load_config(_state(ctx))
        logger = _setup_logging(config, command="search")
        runtime = _open_runtime(config, logger)
        request = SearchRequest(
            query=query,
            limit=limit,
            agency=agency,
            category=category,
        )
        try:
            result = runtime.search(request)
        except SearchValidationError as exc:
            raise typer.BadParameter(str(exc), param_hint="QUERY") from exc
        except GovIndexError as exc:
            logger.error("search-failed", query=query, error=str(exc))
            emit_error(f"Search failed: {exc}")
            raise typer.Exit(code=1) from exc
        finally:
            runtime.close()

        if as_json:
            emit_json(result.to_mapping())
        else:
            emit_search_result(result)

    @app.command("checkhealth", help="Check every dependency.")
    def checkhealth_command(
        ctx: typer.Context,
        as_json: bool = typer.Option(False, "--json", help="Emit JSON."),
    ) -> None:
        config = _load_config(
            _state(ctx),
            {"vector_store": {"connect_attempts": 1}},
        )
        logger = _setup_logging(config, command="checkhealth")
        try:
            runtime = factory(config, logger)
        except GovIndexError as exc:
            logger.error("checkhealth-startup-failed", error=str(exc))
            emit_error(f"Startup failed: {exc}")
            raise typer.Exit(code=EXIT_CODES[HealthStatus.ERROR]) from exc
        try:
            snapshot = runtime.health()
        finally:
            runtime.close()

        logger.info("checkhealth-complete", status=snapshot.status.value)
        if as_json:
            emit_json(snapshot.to_mapping())
        else:
            emit_health(snapshot)
        raise typer.Exit(code=EXIT_CODES[snapshot.status])

    @app.command("info", help="Show collection information.")
    def info_command(
        ctx: typer.Context,
        as_json: bool = typer.Option(False, "--json", help="Emit JSON."),
    ) -> None:
        config = _load_config(_state(ctx))
        logger = _setup_logging(config, command="info")
        runtime = _open_runtime(config, logger)
        try:
            info = runtime.collection_info()
        except GovIndexError as exc:
            emit_error(f"Failed to read collection info: {exc}")
            raise typer.Exit(code=1) from exc
        finally:
            runtime.close()

        if as_json:
            emit_json(info)
        else:
            emit_collection_info(info)

    return app


__all__ = ["CLIState", "create_app"]
