"""Unit tests for settings loading and helpers."""

from __future__ import annotations

from pathlib import Path

from pydantic import ValidationError
import pytest

from site_search.config import Settings, get_settings


def test_defaults():
    settings = Settings()

    assert settings.db_path == Path("search.db")
    assert settings.feed_path == Path("public/search-data/index.json")
    assert settings.results_per_page == 20
    assert settings.max_results == 100
    assert settings.snippet_open == "<mark>"
    assert settings.port == 8080


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("SITE_SEARCH_DB_PATH", "/srv/www/search.db")
    monkeypatch.setenv("SITE_SEARCH_RESULTS_PER_PAGE", "10")
    monkeypatch.setenv("site_search_port", "9000")

    settings = Settings()

    assert settings.db_path == Path("/srv/www/search.db")
    assert settings.results_per_page == 10
    assert settings.port == 9000


def test_page_size_cannot_exceed_hard_cap():
    with pytest.raises(ValidationError, match="cannot exceed max_results"):
        Settings(results_per_page=200, max_results=100)


@pytest.mark.parametrize(
    ("requested", "expected"),
    [(None, 20), (5, 5), (0, 0), (-3, 0), (50, 20), (500, 20)],
)
def test_effective_page_size(requested, expected):
    assert Settings().effective_page_size(requested) == expected


def test_effective_page_size_respects_hard_cap():
    settings = Settings(results_per_page=100, max_results=100)

    assert settings.effective_page_size(1000) == 100


def test_cors_origins_are_split():
    assert Settings(cors_allow_origins="https://a.test, https://b.test ,").get_cors_allow_origins() == [
        "https://a.test",
        "https://b.test",
    ]
    assert Settings(cors_allow_origins="").get_cors_allow_origins() == []


def test_get_settings_is_cached():
    assert get_settings() is get_settings()
