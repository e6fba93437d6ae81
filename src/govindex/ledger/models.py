"""Typed representations of the ledger's dataset catalog."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

__all__ = [
    "CatalogPage",
    "Dataset",
    "Pagination",
]


class Dataset(BaseModel):
    """A dataset record as published on the ledger.

    Attribute names are snake_case; the wire (and vector payload) names are
    the camelCase aliases. The ledger encodes 64-bit integers as JSON
    strings, which pydantic's lax mode coerces.

    Example:
        >>> dataset = Dataset.model_validate(
        ...     {"id": "42", "title": "Air Quality", "fileSize": "1024"}
        ... )
        >>> dataset.file_size
        1024
    """

    id: str = Field(default="", description="Ledger identifier (numeric).")
    title: str = ""
    description: str = ""
    ipfs_cid: str = Field(default="", alias="ipfsCid")
    file_size: int = Field(default=0, ge=0, alias="fileSize")
    checksum_sha256: str = Field(default="", alias="checksumSha256")
    agency: str = ""
    category: str = ""
    submitter: str = ""
    timestamp: int = Field(default=0, description="Seconds since epoch.")
    pin_count: int = Field(default=0, ge=0, alias="pinCount")

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        coerce_numbers_to_str=True,
        extra="ignore",
    )

    @field_validator(
        "id",
        "title",
        "description",
        "ipfs_cid",
        "checksum_sha256",
        "agency",
        "category",
        "submitter",
        mode="before",
    )
    @classmethod
    def _null_text_is_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("file_size", "timestamp", "pin_count", mode="before")
    @classmethod
    def _null_number_is_zero(cls, value: Any) -> Any:
        return 0 if value is None else value

    def searchable_text(self) -> str:
        """Return the text embedded for this dataset.

        Field order is fixed; it feeds the fallback embedding's hash.

        Example:
            >>> Dataset(id="1", title="T", description="D", agency="A",
            ...         category="C").searchable_text()
            'T D A C'
        """

        return " ".join(
            (self.title, self.description, self.agency, self.category)
        )

    def to_payload(self) -> dict[str, Any]:
        """Return the flat payload stored alongside the vector."""

        return self.model_dump(by_alias=True)


class Pagination(BaseModel):
    """Cosmos-style pagination envelope."""

    next_key: str | None = None
    total: int = 0

    model_config = ConfigDict(frozen=True, extra="ignore")

    @field_validator("next_key", mode="before")
    @classmethod
    def _blank_key_is_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value:
            return None
        return value

    @field_validator("total", mode="before")
    @classmethod
    def _null_total_is_zero(cls, value: Any) -> Any:
        return 0 if value is None else value


class CatalogPage(BaseModel):
    """One decoded ``GET .../dataset`` response."""

    datasets: tuple[Dataset, ...] = Field(default=(), alias="Dataset")
    pagination: Pagination = Field(default_factory=Pagination)

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        extra="ignore",
    )

    @field_validator("datasets", mode="before")
    @classmethod
    def _null_list_is_empty(cls, value: Any) -> Any:
        return () if value is None else value
