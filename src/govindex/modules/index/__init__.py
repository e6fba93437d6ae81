"""Vector index gateway and point conversions."""

from __future__ import annotations

from .errors import (
    IndexConnectionError,
    IndexRequestError,
    PointIdError,
    VectorIndexError,
)
from .gateway import MEMORY_LOCATION, QdrantGateway, ScoredHit
from .points import (
    IndexedPoint,
    build_filter,
    build_point,
    dataset_from_payload,
    parse_point_id,
)

__all__ = [
    "IndexConnectionError",
    "IndexRequestError",
    "IndexedPoint",
    "MEMORY_LOCATION",
    "PointIdError",
    "QdrantGateway",
    "ScoredHit",
    "VectorIndexError",
    "build_filter",
    "build_point",
    "dataset_from_payload",
    "parse_point_id",
]
