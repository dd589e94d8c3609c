"""Centralized configuration for site-search using Pydantic Settings."""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Strictly typed configuration loaded from environment variables.

    Every field can be overridden with a ``SITE_SEARCH_`` prefixed variable,
    e.g. ``SITE_SEARCH_DB_PATH=/srv/www/search.db``.
    """

    model_config = SettingsConfigDict(
        env_prefix="SITE_SEARCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        extra="ignore",
    )

    # Storage locations
    db_path: Path = Field(default=Path("search.db"), description="SQLite FTS5 database file")
    feed_path: Path = Field(
        default=Path("public/search-data/index.json"),
        description="JSON array of site documents consumed by the index builder",
    )

    # Query settings
    results_per_page: int = Field(default=20, ge=0, description="Default (and maximum) page size")
    max_results: int = Field(default=100, ge=1, description="Hard cap on page size regardless of caller input")
    min_query_length: int = Field(default=2, ge=1, description="Queries shorter than this return no results")
    min_term_length: int = Field(default=2, ge=1, description="Plain terms shorter than this are discarded")

    # Snippet / highlight markup
    snippet_tokens: int = Field(default=32, ge=1, le=64, description="Tokens per FTS5 content snippet")
    snippet_open: str = Field(default="<mark>", description="Opening marker for snippet matches")
    snippet_close: str = Field(default="</mark>", description="Closing marker for snippet matches")
    snippet_ellipsis: str = Field(default="...", description="Ellipsis used around truncated snippets")
    highlight_open: str = Field(default="<mark>", description="Opening marker for title/summary highlights")
    highlight_close: str = Field(default="</mark>", description="Closing marker for title/summary highlights")

    # Server settings
    host: str = Field(default="127.0.0.1", description="HTTP server host")
    port: int = Field(default=8080, ge=1, le=65535, description="HTTP server port")
    cors_allow_origins: str = Field(default="*", description="Comma-separated CORS origins")

    # Logging
    log_level: str = Field(default="info", description="Logging level")
    log_json: bool = Field(default=True, description="Emit structured JSON logs")
    access_log: bool = Field(default=False, description="Keep uvicorn access logs enabled")

    # Security
    mask_error_details: bool = Field(
        default=True, description="Mask internal error details in responses (security best practice)"
    )

    @model_validator(mode="after")
    def _check_page_bounds(self) -> "Settings":
        if self.results_per_page > self.max_results:
            raise ValueError(
                f"results_per_page ({self.results_per_page}) cannot exceed max_results ({self.max_results})"
            )
        return self

    def get_cors_allow_origins(self) -> list[str]:
        """Get list of allowed CORS origins (comma-separated)."""
        if not self.cors_allow_origins:
            return []
        return [origin.strip() for origin in self.cors_allow_origins.split(",") if origin.strip()]

    def effective_page_size(self, requested: int | None) -> int:
        """Clamp a requested page size to ``[0, results_per_page]`` and the hard cap.

        Args:
            requested: Caller-supplied limit, or None for the configured default

        Returns:
            Page size actually used for offset/limit math
        """
        if requested is None:
            requested = self.results_per_page
        return max(0, min(requested, self.results_per_page, self.max_results))


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
