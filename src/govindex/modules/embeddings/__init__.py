"""Embedding provider abstractions and registry."""

from __future__ import annotations

from dataclasses import dataclass
from importlib import import_module
from types import MappingProxyType
from typing import (
    TYPE_CHECKING,
    Callable,
    Mapping,
    Protocol,
    runtime_checkable,
)

from govindex.core.config import EmbeddingSettings
from govindex.core.logging import Logger

from .errors import (
    EmbeddingConfigurationError,
    EmbeddingConnectionError,
    EmbeddingDimensionError,
    EmbeddingProviderError,
    EmbeddingRateLimitError,
    EmbeddingRetryExceededError,
)

__all__ = [
    "EmbeddingConfigurationError",
    "EmbeddingConnectionError",
    "EmbeddingDimensionError",
    "EmbeddingProviderError",
    "EmbeddingProviderModel",
    "EmbeddingRateLimitError",
    "EmbeddingRetryExceededError",
    "EmbeddingVector",
    "EmbeddingsProvider",
    "FallbackEmbeddingsProvider",
    "OpenAIEmbeddingsProvider",
    "ProviderFactory",
    "ProviderInitContext",
    "ProviderNotRegisteredError",
    "ProviderRegistry",
    "ProviderRegistryError",
    "create_default_provider_registry",
    "create_embedding_provider",
    "register_builtin_providers",
]

EmbeddingVector = tuple[float, ...]


@dataclass(frozen=True, slots=True)
class EmbeddingProviderModel:
    """Which provider and model produce the collection's vectors."""

    provider: str
    name: str
    dim: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "provider", self.provider.strip().lower())
        object.__setattr__(self, "name", self.name.strip())
        if not self.provider or not self.name:
            raise ValueError("provider and model name are required")
        if self.dim < 1:
            raise ValueError("dim must be >= 1")

    @property
    def key(self) -> str:
        """``provider:model``, as shown in logs and health output."""

        return f"{self.provider}:{self.name}"


@runtime_checkable
class EmbeddingsProvider(Protocol):
    """Turns one text into one vector of ``dim`` floats.

    Both modes honour the same length, so the synchronizer and the query
    engine never need to know which one is active.
    """

    dim: int

    def describe(self) -> EmbeddingProviderModel:
        ...

    def embed(self, text: str) -> EmbeddingVector:
        ...


@dataclass(frozen=True, slots=True)
class ProviderInitContext:
    """Logger and read-only settings handed to a provider factory."""

    logger: Logger
    config: Mapping[str, object] | None = None

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "config",
            MappingProxyType(dict(self.config or {})),
        )


ProviderFactory = Callable[[ProviderInitContext], EmbeddingsProvider]


class ProviderRegistryError(RuntimeError):
    """Raised for duplicate or malformed provider keys."""


class ProviderNotRegisteredError(ProviderRegistryError):
    """Raised when no factory exists for an embedding mode."""


class ProviderRegistry:
    """Embedding modes by key (``openai``, ``fallback``) and their factories.

    Example:
        >>> registry = ProviderRegistry()
        >>> registry.register("Fallback", lambda context: None)
        >>> sorted(registry.snapshot())
        ['fallback']
    """

    def __init__(
        self,
        factories: Mapping[str, ProviderFactory] | None = None,
    ) -> None:
        self._factories: dict[str, ProviderFactory] = {}
        for key, factory in (factories or {}).items():
            self.register(key, factory)

    @staticmethod
    def _key(raw: str) -> str:
        key = raw.strip().lower()
        if not key:
            raise ProviderRegistryError("embedding provider key is blank")
        return key

    def register(self, key: str, factory: ProviderFactory) -> None:
        key = self._key(key)
        if key in self._factories:
            raise ProviderRegistryError(
                f"Embedding provider {key!r} is already registered",
            )
        self._factories[key] = factory

    def get_factory(self, key: str) -> ProviderFactory:
        key = self._key(key)
        factory = self._factories.get(key)
        if factory is None:
            known = ", ".join(sorted(self._factories)) or "none"
            raise ProviderNotRegisteredError(
                f"Unknown embedding provider {key!r} (known: {known})",
            )
        return factory

    def create(
        self,
        key: str,
        *,
        logger: Logger,
        config: Mapping[str, object] | None = None,
    ) -> EmbeddingsProvider:
        """Build the provider for ``key`` from ``config``."""

        factory = self.get_factory(key)
        return factory(ProviderInitContext(logger=logger, config=config))

    def snapshot(self) -> Mapping[str, ProviderFactory]:
        return MappingProxyType(dict(self._factories))


if TYPE_CHECKING:
    from .fallback import FallbackEmbeddingsProvider
    from .openai import OpenAIEmbeddingsProvider

# Provider classes load on first access; the remote one pulls in the SDK.
_LAZY_EXPORTS = {
    "FallbackEmbeddingsProvider": ".fallback",
    "OpenAIEmbeddingsProvider": ".openai",
}


def __getattr__(name: str) -> object:
    module_name = _LAZY_EXPORTS.get(name)
    if module_name is None:
        raise AttributeError(
            f"module {__name__!r} has no attribute {name!r}"
        )
    module = import_module(module_name, __name__)
    return getattr(module, name)


def __dir__() -> list[str]:
    return sorted({*globals(), *__all__})


def register_builtin_providers(
    registry: ProviderRegistry,
) -> ProviderRegistry:
    """Add the ``openai`` and ``fallback`` factories unless already present."""

    from .fallback import fallback_provider_factory
    from .openai import openai_provider_factory

    builtins: dict[str, ProviderFactory] = {
        "openai": openai_provider_factory,
        "fallback": fallback_provider_factory,
    }
    registered = registry.snapshot()
    for key, factory in builtins.items():
        if key not in registered:
            registry.register(key, factory)
    return registry


def create_default_provider_registry() -> ProviderRegistry:
    return register_builtin_providers(ProviderRegistry())


def create_embedding_provider(
    settings: EmbeddingSettings,
    *,
    logger: Logger,
    registry: ProviderRegistry | None = None,
) -> EmbeddingsProvider:
    """Select and build the provider for the whole process lifetime.

    A configured credential selects the remote provider; otherwise the
    deterministic fallback is used and a warning is logged once.
    """

    registry = registry or create_default_provider_registry()
    key = settings.provider_key
    config: dict[str, object] = {
        "model": settings.model,
        "dim": settings.dim,
        "timeout": settings.timeout,
        "max_attempts": settings.max_attempts,
    }
    if settings.api_key is not None:
        config["api_key"] = settings.api_key.get_secret_value()
    if settings.base_url is not None:
        config["base_url"] = settings.base_url

    provider = registry.create(key, logger=logger, config=config)
    described = provider.describe()
    if key == "fallback":
        logger.warning(
            "embedding-fallback-active",
            provider=described.provider,
            dim=described.dim,
            hint="Set OPENAI_API_KEY to enable semantic embeddings.",
        )
    else:
        logger.info(
            "embedding-provider-selected",
            provider=described.provider,
            model=described.name,
            dim=described.dim,
        )
    return provider
