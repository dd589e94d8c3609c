"""Persisted document entity.

A ``Document`` is decoded from one item of the site's JSON feed. Absent and
``null`` fields are treated the same way: the field takes its default.
"""

from __future__ import annotations

from collections.abc import Mapping
import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from site_search.exceptions import RecordError
from site_search.search.sanitizer import sanitize, sanitize_structured, validate_date


_TEXT_FIELDS = ("title", "content", "summary", "section")


def _text_field(item: Mapping[str, Any], key: str, *, doc_id: str | None) -> str:
    value = item.get(key)
    if value is None:
        return ""
    if isinstance(value, (Mapping, list, tuple, set)):
        raise RecordError(f"field '{key}' must be a string, got {type(value).__name__}", doc_id=doc_id)
    return sanitize(value)


class Document(BaseModel):
    """Value object for one searchable page of the site."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    title: str = ""
    url: str = ""
    content: str = ""
    summary: str = ""
    date: str = ""
    section: str = ""
    tags: list[Any] = Field(default_factory=list)
    categories: list[Any] = Field(default_factory=list)

    @classmethod
    def from_feed(cls, item: Any) -> tuple[Document, list[str]]:
        """Decode a feed item, returning the document and any non-fatal warnings.

        Raises:
            RecordError: when the item cannot produce a valid document
        """
        if not isinstance(item, Mapping):
            raise RecordError(f"record must be an object, got {type(item).__name__}")

        raw_id = item.get("id")
        if isinstance(raw_id, (Mapping, list, tuple, set)):
            raise RecordError("field 'id' must be a string")
        doc_id = sanitize(raw_id).strip()
        if not doc_id:
            raise RecordError("missing document id")

        warnings: list[str] = []
        fields = {key: _text_field(item, key, doc_id=doc_id) for key in _TEXT_FIELDS}

        # Hugo exports the permalink as 'href'; older feeds use 'url'
        link_key = "href" if item.get("href") is not None else "url"
        url = _text_field(item, link_key, doc_id=doc_id)

        doc_date = _text_field(item, "date", doc_id=doc_id).strip()
        if doc_date and not validate_date(doc_date):
            warnings.append(f"invalid date {doc_date!r} replaced with empty date")
            doc_date = ""

        return (
            cls(
                id=doc_id,
                url=url,
                date=doc_date,
                tags=json.loads(sanitize_structured(item.get("tags"))),
                categories=json.loads(sanitize_structured(item.get("categories"))),
                **fields,
            ),
            warnings,
        )

    def to_row(self) -> tuple[str, ...]:
        """Return column values in ``search_content`` order."""
        return (
            self.id,
            self.title,
            self.url,
            self.content,
            self.summary,
            self.date,
            self.section,
            sanitize_structured(self.tags),
            sanitize_structured(self.categories),
        )
