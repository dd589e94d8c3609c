"""Exception hierarchy for site-search.

Fatal setup problems (feed, store) are raised; per-record and per-field
problems are reported as values and never escape their loops.
"""

from __future__ import annotations


class SiteSearchError(Exception):
    """Base class for all site-search errors."""


class FeedError(SiteSearchError):
    """Raised when the document feed is missing, unreadable or not a JSON array."""


class StoreError(SiteSearchError):
    """Raised when the SQLite store cannot be created, opened or queried."""


class StoreUnavailableError(StoreError):
    """Raised when the read-only store does not exist or cannot be opened."""


class RecordError(SiteSearchError):
    """Raised while decoding a single feed record."""

    def __init__(self, message: str, *, doc_id: str | None = None) -> None:
        super().__init__(message)
        self.doc_id = doc_id
