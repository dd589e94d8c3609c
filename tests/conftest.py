"""Shared test fixtures and configuration."""

from __future__ import annotations

from collections.abc import Callable
import json
import logging
import os
from pathlib import Path
from typing import Any

import pytest


# Pin every setting the tests depend on so a developer's .env or shell never leaks in
TEST_ENV = {
    "SITE_SEARCH_RESULTS_PER_PAGE": "20",
    "SITE_SEARCH_MAX_RESULTS": "100",
    "SITE_SEARCH_MIN_QUERY_LENGTH": "2",
    "SITE_SEARCH_MIN_TERM_LENGTH": "2",
    "SITE_SEARCH_LOG_LEVEL": "info",
    "SITE_SEARCH_LOG_JSON": "false",
    "SITE_SEARCH_MASK_ERROR_DETAILS": "true",
    "SITE_SEARCH_CORS_ALLOW_ORIGINS": "*",
}

for key, value in TEST_ENV.items():
    os.environ[key] = value

from site_search.config import Settings, get_settings
from site_search.index_builder import IndexBuilder


SAMPLE_DOCUMENTS: list[dict[str, Any]] = [
    {
        "id": "alpha",
        "title": "Alpha Guide",
        "href": "/docs/alpha/",
        "content": "A practical guide to configuring the alpha pipeline with cats and dogs.",
        "summary": "Getting started with the alpha guide",
        "date": "2024-01-01",
        "section": "docs",
        "tags": ["guide", "alpha"],
        "categories": ["tutorials"],
    },
    {
        "id": "beta",
        "title": "Beta Notes",
        "href": "/blog/beta/",
        "content": "Release notes for beta. This release mentions the guide only in passing.",
        "summary": "What changed in beta",
        "date": "2024-06-01",
        "section": "blog",
        "tags": ["release"],
        "categories": ["news"],
    },
    {
        "id": "gamma",
        "title": "Gamma Reference",
        "url": "/docs/gamma/",
        "content": "Reference material for gamma rays and python tooling.",
        "summary": "",
        "date": "2023-03-15",
        "section": "docs",
        "tags": [],
        "categories": [],
    },
]


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Reset test env vars and the cached settings for every test."""
    for key, value in TEST_ENV.items():
        monkeypatch.setenv(key, value)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def restore_root_logging():
    """Undo handler changes made by configure_logging() inside a test."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def write_feed(tmp_path: Path) -> Callable[[Any], Path]:
    """Write a JSON feed file and return its path."""

    def _write(payload: Any, name: str = "index.json") -> Path:
        path = tmp_path / name
        path.write_text(json.dumps(payload), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def build_index(tmp_path: Path, write_feed: Callable[[Any], Path]) -> Callable[[list[Any]], Path]:
    """Build a real FTS5 database from a list of feed items and return its path."""

    def _build(documents: list[Any], name: str = "search.db") -> Path:
        feed_path = write_feed(documents, name=f"{name}.json")
        db_path = tmp_path / name
        IndexBuilder(db_path, feed_path).build()
        return db_path

    return _build


@pytest.fixture
def sample_db(build_index: Callable[[list[Any]], Path]) -> Path:
    return build_index(SAMPLE_DOCUMENTS)


@pytest.fixture
def settings_for(tmp_path: Path) -> Callable[..., Settings]:
    """Settings pointing at a given database, with optional overrides."""

    def _settings(db_path: Path, **overrides: Any) -> Settings:
        return Settings(db_path=db_path, feed_path=tmp_path / "index.json", **overrides)

    return _settings
