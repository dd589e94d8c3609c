"""Domain models for search requests and parsed queries.

Following Cosmic Python principles:
- Value Objects are immutable (frozen=True)
- Domain logic lives in domain layer
- No infrastructure dependencies
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from site_search.search.sanitizer import sanitize


SEARCHABLE_FIELDS = ("title", "tags", "categories", "content", "summary")


class SortOrder(str, Enum):
    """Result ordering requested by the caller."""

    RELEVANCE = "relevance"
    DATE_DESC = "date_desc"
    DATE_ASC = "date_asc"

    @classmethod
    def parse(cls, value: str | None) -> SortOrder:
        """Map a raw parameter to a sort order, falling back to relevance."""
        try:
            return cls((value or "").strip())
        except ValueError:
            return cls.RELEVANCE


class FieldSearch(BaseModel):
    """A ``field:term`` clause restricted to one FTS column."""

    model_config = ConfigDict(frozen=True)

    field: str
    term: str


class ParsedQuery(BaseModel):
    """Value object holding the structure extracted from a raw query string."""

    model_config = ConfigDict(frozen=True)

    terms: list[str] = Field(default_factory=list)
    phrases: list[str] = Field(default_factory=list)
    field_searches: list[FieldSearch] = Field(default_factory=list)
    after: str | None = None
    before: str | None = None
    operators: list[str] = Field(default_factory=list)

    @property
    def has_or(self) -> bool:
        return "OR" in self.operators

    @property
    def first_term(self) -> str | None:
        return self.terms[0] if self.terms else None

    def highlight_terms(self) -> list[str]:
        """Terms and phrases to mark up in titles and summaries."""
        out: list[str] = []
        for candidate in (*self.terms, *self.phrases):
            cleaned = candidate.rstrip("*").strip()
            if cleaned and cleaned not in out:
                out.append(cleaned)
        return out

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


def _coerce_int(value: Any, default: int | None) -> int | None:
    if value is None:
        return default
    try:
        return int(str(value).strip())
    except ValueError:
        return default


class SearchRequest(BaseModel):
    """Immutable request context passed through the query pipeline."""

    model_config = ConfigDict(frozen=True)

    query: str = ""
    page: int = 1
    section: str = ""
    sort: SortOrder = SortOrder.RELEVANCE
    limit: int | None = None
    action: Literal["search", "sections"] = "search"

    @classmethod
    def from_query_params(cls, params: Mapping[str, str]) -> SearchRequest:
        """Build a request from HTTP query parameters.

        Never raises. Control characters are stripped from ``q``; malformed
        numbers fall back to defaults and unknown ``sort``/``action`` values
        fall back to ``relevance``/``search``.
        """
        page = _coerce_int(params.get("page"), 1) or 1
        action = "sections" if (params.get("action") or "").strip() == "sections" else "search"
        return cls(
            query=sanitize(params.get("q")).strip(),
            page=max(1, page),
            section=(params.get("section") or "").strip(),
            sort=SortOrder.parse(params.get("sort")),
            limit=_coerce_int(params.get("limit"), None),
            action=action,
        )
