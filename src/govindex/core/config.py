"""Configuration models and loaders for :mod:`govindex`."""

from __future__ import annotations

import os
from collections.abc import Mapping as MappingABC
from pathlib import Path
from typing import Any, Mapping

import tomllib
import tomlkit
from pydantic import BaseModel, Field, SecretStr, field_validator, model_validator

from govindex.resources import get_resource


class LedgerSettings(BaseModel):
    """Where and how the dataset catalog is fetched."""

    base_url: str = Field(
        default="http://localhost:1317",
        description="Base URL of the ledger's REST (LCD) endpoint.",
    )
    catalog_path: str = Field(
        default="govchain/datasets",
        description="Module route prefix; datasets live under <path>/dataset.",
    )
    timeout: float = Field(
        default=30.0,
        gt=0.0,
        description="Seconds allowed for one catalog request.",
    )
    follow_pagination: bool = Field(
        default=False,
        description=(
            "Follow the pagination cursor across pages. Disabled by default; "
            "only the first page is indexed."
        ),
    )
    max_pages: int = Field(
        default=100,
        ge=1,
        description="Upper bound on pages fetched when following the cursor.",
    )

    model_config = {
        "str_strip_whitespace": True,
        "validate_assignment": True,
    }

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("catalog_path")
    @classmethod
    def _strip_slashes(cls, value: str) -> str:
        normalized = value.strip("/")
        if not normalized:
            raise ValueError("catalog_path cannot be blank")
        return normalized

    @property
    def dataset_url(self) -> str:
        """Return the fully-qualified dataset listing URL."""

        return f"{self.base_url}/{self.catalog_path}/dataset"


class VectorStoreSettings(BaseModel):
    """Qdrant connection and collection settings."""

    url: str = Field(
        default="http://localhost:6333",
        description="Qdrant HTTP endpoint.",
    )
    collection_name: str = Field(
        default="govchain_datasets",
        description="Collection holding one point per dataset.",
    )
    timeout: float = Field(
        default=10.0,
        gt=0.0,
        description="Seconds allowed for one vector store call.",
    )
    connect_attempts: int = Field(
        default=5,
        ge=1,
        description="Startup connection attempts before giving up.",
    )
    connect_retry_delay: float = Field(
        default=2.0,
        ge=0.0,
        description="Seconds between startup connection attempts.",
    )

    model_config = {
        "str_strip_whitespace": True,
        "validate_assignment": True,
    }

    @field_validator("url")
    @classmethod
    def _normalize_url(cls, value: str) -> str:
        if "://" not in value and value != ":memory:":
            # Accept the bare host:port form used by older deployments.
            value = f"http://{value}"
        return value.rstrip("/")

    @field_validator("collection_name")
    @classmethod
    def _require_name(cls, value: str) -> str:
        if not value:
            raise ValueError("collection_name cannot be blank")
        return value


class EmbeddingSettings(BaseModel):
    """Embedding provider selection and model metadata."""

    api_key: SecretStr | None = Field(
        default=None,
        description=(
            "Provider credential; when absent the deterministic fallback "
            "embedding is used for the whole process lifetime."
        ),
    )
    model: str = Field(
        default="text-embedding-ada-002",
        description="Remote embedding model name.",
    )
    dim: int = Field(
        default=1536,
        ge=1,
        description="Vector dimensionality shared by both embedding modes.",
    )
    base_url: str | None = Field(
        default=None,
        description="Optional OpenAI-compatible API base URL.",
    )
    timeout: float = Field(
        default=30.0,
        gt=0.0,
        description="Seconds allowed for one embedding request.",
    )
    max_attempts: int = Field(
        default=3,
        ge=1,
        description="Attempts per embedding before the record is skipped.",
    )

    model_config = {
        "str_strip_whitespace": True,
        "validate_assignment": True,
    }

    @field_validator("api_key", mode="before")
    @classmethod
    def _blank_key_is_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def provider_key(self) -> str:
        """Return the registry key of the provider this config selects."""

        return "openai" if self.api_key is not None else "fallback"


class SchedulerSettings(BaseModel):
    """Periodic synchronization settings."""

    interval: float = Field(
        default=30.0,
        gt=0.0,
        description="Seconds between periodic sync passes.",
    )
    run_on_start: bool = Field(
        default=True,
        description="Run one sync pass immediately when the scheduler starts.",
    )
    enabled: bool = Field(
        default=True,
        description="Start the periodic scheduler alongside the API server.",
    )

    model_config = {"validate_assignment": True}


class ServerSettings(BaseModel):
    """HTTP surface settings."""

    host: str = Field(default="0.0.0.0", description="Bind address.")
    port: int = Field(default=3000, ge=1, le=65535, description="Bind port.")
    cors_origins: tuple[str, ...] = Field(
        default=("*",),
        description="Origins allowed by the CORS middleware.",
    )

    model_config = {
        "str_strip_whitespace": True,
        "validate_assignment": True,
    }


class AppConfig(BaseModel):
    """Root configuration for the :mod:`govindex` service."""

    log_level: str = Field(
        default="INFO",
        description="Default logging level for the application runtime.",
    )
    log_dir: Path | None = Field(
        default=None,
        description="Optional directory for rotating JSON log files.",
    )
    log_json: bool = Field(
        default=False,
        description="Emit JSON log lines on the console.",
    )
    ledger: LedgerSettings = Field(default_factory=LedgerSettings)
    vector_store: VectorStoreSettings = Field(
        default_factory=VectorStoreSettings,
    )
    embeddings: EmbeddingSettings = Field(default_factory=EmbeddingSettings)
    scheduler: SchedulerSettings = Field(default_factory=SchedulerSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)

    model_config = {
        "str_strip_whitespace": True,
        "validate_assignment": True,
    }

    @model_validator(mode="after")
    def _post_process(self) -> "AppConfig":
        object.__setattr__(self, "log_level", self.log_level.upper())
        if self.log_dir is not None:
            object.__setattr__(self, "log_dir", self.log_dir.expanduser())
        return self


DEFAULTS_RESOURCE_NAME = "govindex.defaults.toml"
CONFIG_FILENAME = "govindex.toml"

# Environment variable -> dotted config path. The unprefixed names match the
# variables deployments of the indexer already export.
ENV_VARIABLES: Mapping[str, str] = {
    "GOVINDEX_LOG_LEVEL": "log_level",
    "GOVINDEX_LOG_DIR": "log_dir",
    "QDRANT_URL": "vector_store.url",
    "COLLECTION_NAME": "vector_store.collection_name",
    "BLOCKCHAIN_API": "ledger.base_url",
    "OPENAI_API_KEY": "embeddings.api_key",
    "OPENAI_BASE_URL": "embeddings.base_url",
    "GOVINDEX_SYNC_INTERVAL": "scheduler.interval",
    "PORT": "server.port",
}


def read_packaged_defaults_text() -> str:
    """Return the raw packaged defaults TOML content."""

    resource = get_resource(DEFAULTS_RESOURCE_NAME)
    return resource.read_text(encoding="utf-8")


def load_packaged_defaults() -> dict[str, Any]:
    """Load the packaged defaults as a plain dictionary.

    Example:
        >>> defaults = load_packaged_defaults()
        >>> defaults["log_level"]
        'INFO'
    """

    return tomllib.loads(read_packaged_defaults_text())


def _deep_merge(
    base: Mapping[str, Any],
    overlay: Mapping[str, Any],
) -> dict[str, Any]:
    """Recursively merge ``overlay`` into ``base`` returning a new dict."""

    merged: dict[str, Any] = dict(base)
    for key, value in overlay.items():
        if (
            key in merged
            and isinstance(merged[key], MappingABC)
            and isinstance(value, MappingABC)
        ):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _assign_dotted(target: dict[str, Any], dotted: str, value: Any) -> None:
    *parents, leaf = dotted.split(".")
    cursor = target
    for part in parents:
        cursor = cursor.setdefault(part, {})
    cursor[leaf] = value


def env_overrides(environ: Mapping[str, str] | None = None) -> dict[str, Any]:
    """Translate recognized environment variables into a config layer.

    Empty values are ignored so an exported-but-blank variable never masks a
    file setting.

    Example:
        >>> env_overrides({"QDRANT_URL": "qdrant:6333", "PORT": ""})
        {'vector_store': {'url': 'qdrant:6333'}}
    """

    source = os.environ if environ is None else environ
    layer: dict[str, Any] = {}
    for variable, dotted in ENV_VARIABLES.items():
        raw = source.get(variable)
        if raw is None or not raw.strip():
            continue
        _assign_dotted(layer, dotted, raw.strip())
    return layer


def resolve_config_path(
    override: Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
) -> Path:
    """Resolve the user config file location.

    Precedence: explicit ``override`` > ``GOVINDEX_CONFIG`` > ``./govindex.toml``.
    The returned path may not exist.
    """

    source = os.environ if environ is None else environ
    if override is not None:
        return Path(override).expanduser()
    env_value = source.get("GOVINDEX_CONFIG")
    if env_value:
        return Path(env_value).expanduser()
    return Path.cwd() / CONFIG_FILENAME


def read_user_config(path: Path) -> dict[str, Any] | None:
    """Parse the user TOML file at ``path``; ``None`` when it is absent.

    Raises:
        ValueError: If the file exists but is not valid TOML.
    """

    if not path.exists():
        return None
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return None
    try:
        return tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        raise ValueError(f"Failed to parse config file {path}: {exc}") from exc


def load_config(
    *,
    defaults: Mapping[str, Any],
    user_config: Mapping[str, Any] | None = None,
    env_config: Mapping[str, Any] | None = None,
    cli_overrides: Mapping[str, Any] | None = None,
) -> AppConfig:
    """Load configuration according to the precedence stack.

    Args:
        defaults: Packaged defaults shipped with the application.
        user_config: Parsed user ``govindex.toml`` content.
        env_config: Settings derived from environment variables.
        cli_overrides: Settings supplied via CLI flags.

    Returns:
        A validated :class:`AppConfig` instance.
    """

    stack = dict(defaults)
    for layer in (user_config, env_config, cli_overrides):
        if layer:
            stack = _deep_merge(stack, layer)
    return AppConfig.model_validate(stack)


def load_app_config(
    *,
    config_path: Path | None = None,
    cli_overrides: Mapping[str, Any] | None = None,
    environ: Mapping[str, str] | None = None,
) -> AppConfig:
    """Resolve every configuration layer and return the validated config."""

    path = resolve_config_path(config_path, environ=environ)
    return load_config(
        defaults=load_packaged_defaults(),
        user_config=read_user_config(path),
        env_config=env_overrides(environ),
        cli_overrides=cli_overrides,
    )


def render_user_config(
    config: AppConfig,
    *,
    include_comments: bool = True,
) -> str:
    """Render a ``govindex.toml`` file for users to customize.

    The embedding credential is never written; it belongs in
    ``OPENAI_API_KEY``.
    """

    document = tomlkit.document()

    if include_comments:
        document.add(tomlkit.comment("Generated by govindex init"))
        document.add(
            tomlkit.comment(
                "Precedence: CLI flags > env vars > govindex.toml > defaults"
            )
        )
        document.add(tomlkit.comment("Environment overrides:"))
        for variable, dotted in ENV_VARIABLES.items():
            document.add(tomlkit.comment(f"  {variable} -> {dotted}"))
        document.add(tomlkit.nl())

    document["log_level"] = config.log_level
    if config.log_dir is not None:
        document["log_dir"] = str(config.log_dir)
    document["log_json"] = config.log_json

    ledger = tomlkit.table()
    ledger["base_url"] = config.ledger.base_url
    ledger["catalog_path"] = config.ledger.catalog_path
    ledger["timeout"] = config.ledger.timeout
    ledger["follow_pagination"] = config.ledger.follow_pagination
    ledger["max_pages"] = config.ledger.max_pages
    document["ledger"] = ledger

    store = tomlkit.table()
    store["url"] = config.vector_store.url
    store["collection_name"] = config.vector_store.collection_name
    store["timeout"] = config.vector_store.timeout
    store["connect_attempts"] = config.vector_store.connect_attempts
    store["connect_retry_delay"] = config.vector_store.connect_retry_delay
    document["vector_store"] = store

    embeddings = tomlkit.table()
    if include_comments:
        embeddings.add(
            tomlkit.comment("Set OPENAI_API_KEY to enable remote embeddings.")
        )
    embeddings["model"] = config.embeddings.model
    embeddings["dim"] = config.embeddings.dim
    if config.embeddings.base_url is not None:
        embeddings["base_url"] = config.embeddings.base_url
    embeddings["timeout"] = config.embeddings.timeout
    embeddings["max_attempts"] = config.embeddings.max_attempts
    document["embeddings"] = embeddings

    scheduler = tomlkit.table()
    scheduler["interval"] = config.scheduler.interval
    scheduler["run_on_start"] = config.scheduler.run_on_start
    scheduler["enabled"] = config.scheduler.enabled
    document["scheduler"] = scheduler

    server = tomlkit.table()
    server["host"] = config.server.host
    server["port"] = config.server.port
    server["cors_origins"] = list(config.server.cors_origins)
    document["server"] = server

    return tomlkit.dumps(document)


__all__ = [
    "AppConfig",
    "CONFIG_FILENAME",
    "DEFAULTS_RESOURCE_NAME",
    "ENV_VARIABLES",
    "EmbeddingSettings",
    "LedgerSettings",
    "SchedulerSettings",
    "ServerSettings",
    "VectorStoreSettings",
    "env_overrides",
    "load_app_config",
    "load_config",
    "load_packaged_defaults",
    "read_packaged_defaults_text",
    "read_user_config",
    "render_user_config",
    "resolve_config_path",
]
