"""Shape stored rows into search results.

Decodes the JSON-encoded tags/categories columns, injects highlight markup
into titles and summaries, and normalizes the backend relevance score.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
import json
import logging
import re
from typing import Any

from site_search.search.sanitizer import bounded_int


logger = logging.getLogger(__name__)

MARKUP_PATTERN = re.compile(r"(<[^>]+>)")
STRUCTURED_FIELDS = ("tags", "categories")


def _parse_int(digits: str) -> int | str:
    return bounded_int(int(digits))


def decode_structured(raw: Any, *, record_id: str, field: str) -> list[Any]:
    """Decode a stored JSON array; malformed values become ``[]`` with a warning."""
    if raw is None or raw == "":
        return []
    try:
        decoded = json.loads(raw, parse_int=_parse_int)
    except (TypeError, ValueError) as exc:
        logger.warning("Malformed %s for record %s: %s", field, record_id, exc)
        return []
    if not isinstance(decoded, list):
        logger.warning("Non-array %s for record %s: %s", field, record_id, type(decoded).__name__)
        return []
    return decoded


def build_highlight_pattern(terms: Sequence[str]) -> re.Pattern[str] | None:
    """Compile one case-insensitive alternation, longest terms first."""
    unique = sorted({term for term in terms if term}, key=len, reverse=True)
    if not unique:
        return None
    return re.compile("|".join(re.escape(term) for term in unique), re.IGNORECASE)


def highlight_terms(
    text: str | None,
    terms: Sequence[str],
    *,
    open_tag: str = "<mark>",
    close_tag: str = "</mark>",
) -> str | None:
    """Wrap each occurrence of ``terms`` in highlight markup.

    Embedded HTML tags are left untouched; only the text between them is
    highlighted, so attributes and tag names never gain markup.
    """
    if not text:
        return text
    pattern = build_highlight_pattern(terms)
    if pattern is None:
        return text

    parts = MARKUP_PATTERN.split(text)
    for index, part in enumerate(parts):
        if not part or MARKUP_PATTERN.fullmatch(part):
            continue
        parts[index] = pattern.sub(lambda m: f"{open_tag}{m.group(0)}{close_tag}", part)
    return "".join(parts)


def relevance_score(raw_score: Any) -> float:
    """Non-negative, human-readable magnitude of the backend score."""
    try:
        return round(abs(float(raw_score)), 2)
    except (TypeError, ValueError):
        return 0.0


def format_result(
    row: Mapping[str, Any],
    terms: Sequence[str],
    *,
    open_tag: str = "<mark>",
    close_tag: str = "</mark>",
) -> dict[str, Any]:
    """Turn a stored row into the public result shape."""
    result = dict(row)
    record_id = str(result.get("id", ""))
    for field in STRUCTURED_FIELDS:
        result[field] = decode_structured(result.get(field), record_id=record_id, field=field)

    result["title_highlighted"] = highlight_terms(
        result.get("title"), terms, open_tag=open_tag, close_tag=close_tag
    )
    result["summary_highlighted"] = highlight_terms(
        result.get("summary"), terms, open_tag=open_tag, close_tag=close_tag
    )
    result["relevance_score"] = relevance_score(result.get("relevance"))
    return result
