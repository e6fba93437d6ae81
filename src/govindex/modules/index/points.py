"""Conversions between datasets and vector store points."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Mapping

from qdrant_client import models

from govindex.ledger.models import Dataset
from govindex.modules.embeddings import EmbeddingVector

from .errors import PointIdError

__all__ = [
    "IndexedPoint",
    "build_filter",
    "build_point",
    "dataset_from_payload",
    "parse_point_id",
]

_UINT64_LIMIT = 2**64
_DIGITS = re.compile(r"^[0-9]+$")

_STRING_FIELDS: Mapping[str, str] = {
    "id": "id",
    "title": "title",
    "description": "description",
    "ipfsCid": "ipfs_cid",
    "checksumSha256": "checksum_sha256",
    "agency": "agency",
    "category": "category",
    "submitter": "submitter",
}
_INTEGER_FIELDS: Mapping[str, str] = {
    "fileSize": "file_size",
    "timestamp": "timestamp",
    "pinCount": "pin_count",
}


@dataclass(frozen=True, slots=True)
class IndexedPoint:
    """A vector plus the flat dataset payload, keyed by numeric id."""

    id: int
    vector: EmbeddingVector
    payload: Mapping[str, Any]

    def to_struct(self) -> models.PointStruct:
        return models.PointStruct(
            id=self.id,
            vector=list(self.vector),
            payload=dict(self.payload),
        )


def parse_point_id(dataset_id: str) -> int:
    """Parse ``dataset_id`` as an unsigned 64-bit integer.

    Example:
        >>> parse_point_id("42")
        42

    Raises:
        PointIdError: If the id is not a base-10 integer in ``[0, 2**64)``.
    """

    candidate = dataset_id.strip() if isinstance(dataset_id, str) else ""
    if not _DIGITS.match(candidate):
        raise PointIdError(
            f"Dataset id {dataset_id!r} is not an unsigned integer",
            dataset_id=str(dataset_id),
        )
    value = int(candidate)
    if value >= _UINT64_LIMIT:
        raise PointIdError(
            f"Dataset id {dataset_id!r} exceeds the 64-bit range",
            dataset_id=dataset_id,
        )
    return value


def build_point(dataset: Dataset, vector: EmbeddingVector) -> IndexedPoint:
    """Return the point for ``dataset``; raises :class:`PointIdError`."""

    return IndexedPoint(
        id=parse_point_id(dataset.id),
        vector=vector,
        payload=dataset.to_payload(),
    )


def build_filter(
    agency: str | None = None,
    category: str | None = None,
) -> models.Filter | None:
    """Return a conjunctive equality filter, or ``None`` without criteria.

    Blank values add no clause.
    """

    must: list[models.Condition] = []
    if agency:
        must.append(
            models.FieldCondition(
                key="agency",
                match=models.MatchValue(value=agency),
            )
        )
    if category:
        must.append(
            models.FieldCondition(
                key="category",
                match=models.MatchValue(value=category),
            )
        )
    if not must:
        return None
    return models.Filter(must=must)


def _as_string(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _as_integer(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return 0


def dataset_from_payload(payload: Mapping[str, Any] | None) -> Dataset:
    """Rebuild a :class:`Dataset` from a stored payload.

    Missing or mistyped strings become ``""`` and missing numbers become
    ``0``. A stored ``0`` and an absent value are therefore indistinguishable.
    """

    payload = payload or {}
    values: dict[str, Any] = {}
    for wire, attribute in _STRING_FIELDS.items():
        values[attribute] = _as_string(payload.get(wire))
    for wire, attribute in _INTEGER_FIELDS.items():
        values[attribute] = _as_integer(payload.get(wire))
    for attribute in ("file_size", "pin_count"):
        values[attribute] = max(values[attribute], 0)
    return Dataset(**values)
