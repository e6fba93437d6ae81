"""Tests for :mod:`govindex.core.config`."""

from __future__ import annotations

from pathlib import Path

import pytest
import tomllib

from govindex.core.config import (
    AppConfig,
    env_overrides,
    load_app_config,
    load_config,
    load_packaged_defaults,
    read_user_config,
    render_user_config,
    resolve_config_path,
)


def test_packaged_defaults_validate() -> None:
    config = load_config(defaults=load_packaged_defaults())

    assert config.log_level == "INFO"
    assert config.vector_store.collection_name == "govchain_datasets"
    assert config.embeddings.model == "text-embedding-ada-002"
    assert config.embeddings.dim == 1536
    assert config.embeddings.provider_key == "fallback"
    assert config.scheduler.interval == 30.0
    assert config.server.port == 3000
    assert config.ledger.follow_pagination is False
    assert (
        config.ledger.dataset_url
        == "http://localhost:1317/govchain/datasets/dataset"
    )


def test_layers_apply_in_precedence_order() -> None:
    config = load_config(
        defaults=load_packaged_defaults(),
        user_config={"server": {"port": 4000}, "log_level": "warning"},
        env_config={"server": {"port": "5000"}},
        cli_overrides={"log_level": "debug"},
    )

    assert config.server.port == 5000
    assert config.server.host == "0.0.0.0"
    assert config.log_level == "DEBUG"


def test_env_overrides_map_known_variables_and_skip_blank() -> None:
    layer = env_overrides(
        {
            "QDRANT_URL": "qdrant:6333",
            "COLLECTION_NAME": "datasets_v2",
            "BLOCKCHAIN_API": "http://node:1317/",
            "OPENAI_API_KEY": "   ",
            "PORT": "",
            "UNRELATED": "ignored",
        }
    )

    assert layer == {
        "vector_store": {"url": "qdrant:6333", "collection_name": "datasets_v2"},
        "ledger": {"base_url": "http://node:1317/"},
    }


def test_bare_host_port_vector_url_gets_scheme() -> None:
    config = load_config(
        defaults=load_packaged_defaults(),
        env_config={"vector_store": {"url": "qdrant:6333"}},
    )

    assert config.vector_store.url == "http://qdrant:6333"


def test_api_key_selects_remote_provider() -> None:
    config = load_config(
        defaults=load_packaged_defaults(),
        env_config=env_overrides({"OPENAI_API_KEY": "sk-test"}),
    )

    assert config.embeddings.provider_key == "openai"
    assert config.embeddings.api_key is not None
    assert config.embeddings.api_key.get_secret_value() == "sk-test"
    assert "sk-test" not in repr(config)


def test_blank_catalog_path_is_rejected() -> None:
    with pytest.raises(ValueError):
        load_config(
            defaults=load_packaged_defaults(),
            user_config={"ledger": {"catalog_path": "/"}},
        )


def test_resolve_config_path_precedence(tmp_path: Path) -> None:
    explicit = tmp_path / "explicit.toml"
    from_env = tmp_path / "env.toml"

    assert (
        resolve_config_path(explicit, environ={"GOVINDEX_CONFIG": str(from_env)})
        == explicit
    )
    assert resolve_config_path(environ={"GOVINDEX_CONFIG": str(from_env)}) == (
        from_env
    )
    assert resolve_config_path(environ={}).name == "govindex.toml"


def test_read_user_config_handles_missing_and_invalid(tmp_path: Path) -> None:
    assert read_user_config(tmp_path / "missing.toml") is None

    broken = tmp_path / "broken.toml"
    broken.write_text("log_level = [", encoding="utf-8")
    with pytest.raises(ValueError, match="Failed to parse config file"):
        read_user_config(broken)


def test_load_app_config_reads_file_then_environment(tmp_path: Path) -> None:
    path = tmp_path / "govindex.toml"
    path.write_text(
        '[scheduler]\ninterval = 60.0\n[server]\nport = 8080\n',
        encoding="utf-8",
    )

    config = load_app_config(
        config_path=path,
        environ={"GOVINDEX_SYNC_INTERVAL": "15", "PORT": "9090"},
    )

    assert config.scheduler.interval == 15.0
    assert config.server.port == 9090


def test_render_user_config_round_trips_without_secret() -> None:
    config = load_config(
        defaults=load_packaged_defaults(),
        env_config={"embeddings": {"api_key": "sk-secret"}},
    )

    rendered = render_user_config(config)

    assert "sk-secret" not in rendered
    assert "OPENAI_API_KEY" in rendered
    reparsed = AppConfig.model_validate(tomllib.loads(rendered))
    assert reparsed.server.port == config.server.port
    assert reparsed.vector_store.url == config.vector_store.url
    assert reparsed.embeddings.api_key is None
