"""Integration tests for the Typer application exposed by :mod:`govindex.cli`."""

from __future__ import annotations

import json
import tomllib
from pathlib import Path
from typing import Any, Callable

import pytest
from typer.testing import CliRunner

from govindex.cli import create_app
from govindex.cli.init import init_config
from govindex.core.config import ENV_VARIABLES, AppConfig
from govindex.core.logging import Logger
from govindex.modules.index import IndexConnectionError
from govindex.runtime import IndexerRuntime
from support import LedgerStub

RuntimeFactory = Callable[[AppConfig, Logger], IndexerRuntime]


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def config_file(tmp_path: Path, config_overrides: dict[str, Any]) -> Path:
    path = tmp_path / "govindex.toml"
    init_config(path=path, overrides=config_overrides)
    return path


def _env(config_path: Path) -> dict[str, str | None]:
    env: dict[str, str | None] = {name: None for name in ENV_VARIABLES}
    env["GOVINDEX_CONFIG"] = str(config_path)
    return env


def _invoke(
    runner: CliRunner,
    args: list[str],
    *,
    config_path: Path,
    runtime_factory: RuntimeFactory | None = None,
    serve: Callable[..., None] | None = None,
):
    app = create_app(runtime_factory=runtime_factory, serve=serve)
    return runner.invoke(
        app,
        ["--log-level", "ERROR", *args],
        env=_env(config_path),
        catch_exceptions=False,
    )


def test_init_writes_config_and_refuses_overwrite(
    runner: CliRunner,
    tmp_path: Path,
) -> None:
    path = tmp_path / "conf" / "govindex.toml"

    first = _invoke(runner, ["init"], config_path=path)
    assert first.exit_code == 0, first.output
    assert "Config written" in first.stdout
    parsed = tomllib.loads(path.read_text(encoding="utf-8"))
    assert parsed["vector_store"]["collection_name"] == "govchain_datasets"
    assert parsed["server"]["port"] == 3000
    assert "api_key" not in parsed["embeddings"]

    second = _invoke(runner, ["init"], config_path=path)
    assert second.exit_code == 1
    assert "already exists" in second.output

    forced = _invoke(runner, ["init", "--force"], config_path=path)
    assert forced.exit_code == 0, forced.output


def test_invalid_config_file_is_reported(
    runner: CliRunner,
    tmp_path: Path,
) -> None:
    path = tmp_path / "govindex.toml"
    path.write_text("log_level = [unterminated", encoding="utf-8")

    result = _invoke(runner, ["info"], config_path=path)

    assert result.exit_code == 1
    assert "Configuration error" in result.output


def test_sync_json_reports_counts(
    runner: CliRunner,
    config_file: Path,
    runtime_factory: RuntimeFactory,
) -> None:
    result = _invoke(
        runner,
        ["sync", "--json"],
        config_path=config_file,
        runtime_factory=runtime_factory,
    )

    assert result.exit_code == 0, result.output
    report = json.loads(result.stdout)
    assert report["fetched"] == 2
    assert report["indexed"] == 2
    assert report["failures"] == []


def test_sync_text_output(
    runner: CliRunner,
    config_file: Path,
    runtime_factory: RuntimeFactory,
) -> None:
    result = _invoke(
        runner,
        ["sync"],
        config_path=config_file,
        runtime_factory=runtime_factory,
    )

    assert result.exit_code == 0, result.output
    assert "Indexed 2 of 2 datasets" in result.stdout


def test_sync_ledger_failure_exits_nonzero(
    runner: CliRunner,
    config_file: Path,
    ledger_stub: LedgerStub,
    runtime_factory: RuntimeFactory,
) -> None:
    ledger_stub.status_code = 500
    ledger_stub.raw_body = b"internal error"

    result = _invoke(
        runner,
        ["sync"],
        config_path=config_file,
        runtime_factory=runtime_factory,
    )

    assert result.exit_code == 1
    assert "Sync failed" in result.output


def test_search_prints_ranked_results(
    runner: CliRunner,
    config_file: Path,
    runtime_factory: RuntimeFactory,
) -> None:
    def synced_factory(config: AppConfig, logger: Logger) -> IndexerRuntime:
        runtime = runtime_factory(config, logger)
        runtime.sync_now()
        return runtime

    as_json = _invoke(
        runner,
        ["search", "grid load", "--agency", "DOE", "--json"],
        config_path=config_file,
        runtime_factory=synced_factory,
    )
    as_text = _invoke(
        runner,
        ["search", "air", "-n", "1"],
        config_path=config_file,
        runtime_factory=synced_factory,
    )

    assert as_json.exit_code == 0, as_json.output
    body = json.loads(as_json.stdout)
    assert body["count"] == 1
    assert body["results"][0]["title"] == "Grid Load Forecasts"
    assert as_text.exit_code == 0, as_text.output
    assert "1 result(s) for 'air'" in as_text.stdout


def test_search_blank_query_is_usage_error(
    runner: CliRunner,
    config_file: Path,
    runtime_factory: RuntimeFactory,
) -> None:
    result = _invoke(
        runner,
        ["search", "   "],
        config_path=config_file,
        runtime_factory=runtime_factory,
    )

    assert result.exit_code == 2
    assert "'q' is required" in result.output


def test_checkhealth_exits_with_degraded_code(
    runner: CliRunner,
    config_file: Path,
    runtime_factory: RuntimeFactory,
) -> None:
    result = _invoke(
        runner,
        ["checkhealth", "--json"],
        config_path=config_file,
        runtime_factory=runtime_factory,
    )

    assert result.exit_code == 1
    snapshot = json.loads(result.stdout)
    assert snapshot["status"] == "degraded"
    embeddings = next(
        d for d in snapshot["details"] if d["name"] == "embeddings"
    )
    assert embeddings["status"] == "degraded"


def test_checkhealth_startup_failure_is_error(
    runner: CliRunner,
    config_file: Path,
) -> None:
    seen: list[AppConfig] = []

    def failing_factory(config: AppConfig, logger: Logger) -> IndexerRuntime:
        seen.append(config)
        raise IndexConnectionError(
            "Vector store unreachable",
            url=config.vector_store.url,
            attempts=config.vector_store.connect_attempts,
        )

    result = _invoke(
        runner,
        ["checkhealth"],
        config_path=config_file,
        runtime_factory=failing_factory,
    )

    assert result.exit_code == 2
    assert "Startup failed" in result.output
    assert seen[0].vector_store.connect_attempts == 1


def test_info_reports_collection(
    runner: CliRunner,
    config_file: Path,
    runtime_factory: RuntimeFactory,
) -> None:
    result = _invoke(
        runner,
        ["info", "--json"],
        config_path=config_file,
        runtime_factory=runtime_factory,
    )

    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout) == {
        "name": "test_datasets",
        "count": 0,
        "embeddingModel": "deterministic-fallback",
        "dim": 8,
    }


def test_serve_passes_flags_to_server(
    runner: CliRunner,
    config_file: Path,
    runtime_factory: RuntimeFactory,
) -> None:
    calls: list[tuple[Any, dict[str, Any]]] = []

    def fake_serve(app: Any, **kwargs: Any) -> None:
        calls.append((app, kwargs))

    result = _invoke(
        runner,
        ["serve", "--host", "127.0.0.1", "--port", "8080"],
        config_path=config_file,
        runtime_factory=runtime_factory,
        serve=fake_serve,
    )

    assert result.exit_code == 0, result.output
    ((app, kwargs),) = calls
    assert kwargs == {"host": "127.0.0.1", "port": 8080, "log_config": None}
    assert app.state.runtime.config.server.port == 8080
