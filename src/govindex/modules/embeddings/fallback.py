"""Deterministic, network-free embedding used when no credential is set.

The vector is a pure function of the lower-cased input text, so an index
built in fallback mode stays self-consistent across restarts. It carries no
semantic signal; nearest-neighbor results are only meaningful for identical
(case-insensitive) texts.
"""

from __future__ import annotations

import numpy as np

from govindex.core.logging import Logger

from . import EmbeddingProviderModel, EmbeddingVector, ProviderInitContext

__all__ = [
    "FALLBACK_MODEL_NAME",
    "FallbackEmbeddingsProvider",
    "fallback_provider_factory",
    "fold_hash",
    "raw_components",
]

FALLBACK_MODEL_NAME = "deterministic-fallback"

_HASH_MULTIPLIER = 31
_HASH_MASK = 0xFFFFFFFF
# Added to the sum of squares before inverting; part of the vector contract.
SCALE_EPSILON = 1e-4


def fold_hash(text: str) -> int:
    """Return the 32-bit polynomial hash of ``text``.

    Example:
        >>> fold_hash("")
        0
        >>> fold_hash("ab")
        3105
    """

    value = 0
    for char in text:
        value = (value * _HASH_MULTIPLIER + ord(char)) & _HASH_MASK
    return value


def raw_components(text: str, dim: int) -> np.ndarray:
    """Return the unscaled uniform draws in ``[-1, 1)`` for ``text``."""

    rng = np.random.default_rng(fold_hash(text.lower()))
    return rng.random(dim) * 2.0 - 1.0


class FallbackEmbeddingsProvider:
    """Seeded pseudo-random vectors scaled by the inverse sum of squares."""

    provider_key = "fallback"

    def __init__(self, *, dim: int, logger: Logger | None = None) -> None:
        if dim < 1:
            raise ValueError("dim must be >= 1")
        self.dim = dim
        self.logger = logger

    def describe(self) -> EmbeddingProviderModel:
        return EmbeddingProviderModel(
            provider=self.provider_key,
            name=FALLBACK_MODEL_NAME,
            dim=self.dim,
        )

    def embed(self, text: str) -> EmbeddingVector:
        raw = raw_components(text, self.dim)
        scale = 1.0 / (float(np.dot(raw, raw)) + SCALE_EPSILON)
        return tuple(float(value) for value in raw * scale)


def fallback_provider_factory(
    context: ProviderInitContext,
) -> FallbackEmbeddingsProvider:
    """Factory registered with the provider registry."""

    return FallbackEmbeddingsProvider(
        dim=int(context.config.get("dim", 1536)),
        logger=context.logger,
    )
