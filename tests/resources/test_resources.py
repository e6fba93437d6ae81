"""Tests for :mod:`govindex.resources`."""

from __future__ import annotations

import tomllib

import pytest

from govindex.core.config import DEFAULTS_RESOURCE_NAME, AppConfig
from govindex.resources import get_resource


def test_get_resource_missing_file_raises() -> None:
    with pytest.raises(FileNotFoundError):
        get_resource("does-not-exist.toml")


def test_packaged_defaults_validate() -> None:
    text = get_resource(DEFAULTS_RESOURCE_NAME).read_text(encoding="utf-8")

    config = AppConfig.model_validate(tomllib.loads(text))

    assert config.embeddings.dim == 1536
    assert config.vector_store.collection_name == "govchain_datasets"
    assert config.embeddings.api_key is None
