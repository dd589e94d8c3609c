"""Parser for the small search DSL typed into the site search box.

Supported syntax, extracted in this order (each stage removes what it
consumed before the next one runs):

1. ``"exact phrase"``
2. ``after:YYYY-MM-DD`` / ``before:YYYY-MM-DD`` (first occurrence of each)
3. ``title:term``, ``tags:term``, ``categories:term``, ``content:term``, ``summary:term``
4. Remaining whitespace-separated words; ``AND``/``OR``/``NOT`` are recorded
   as operators, other words become plain terms.

Parsing is total: every string yields a ``ParsedQuery``.
"""

from __future__ import annotations

import re

from site_search.domain.search import SEARCHABLE_FIELDS, FieldSearch, ParsedQuery
from site_search.search.sanitizer import sanitize, validate_date


PHRASE_PATTERN = re.compile(r'"([^"]+)"')
AFTER_PATTERN = re.compile(r"after:(\d{4}-\d{2}-\d{2})")
BEFORE_PATTERN = re.compile(r"before:(\d{4}-\d{2}-\d{2})")
FIELD_PATTERN = re.compile(r"(" + "|".join(SEARCHABLE_FIELDS) + r"):(\S+)")

OPERATORS = ("AND", "OR", "NOT")
DEFAULT_MIN_TERM_LENGTH = 2


def _extract_date(pattern: re.Pattern[str], text: str) -> tuple[str | None, str]:
    match = pattern.search(text)
    if match is None:
        return None, text
    remaining = text.replace(match.group(0), " ")
    value = match.group(1)
    return (value if validate_date(value) else None), remaining


def parse_query(raw_query: str, *, min_term_length: int = DEFAULT_MIN_TERM_LENGTH) -> ParsedQuery:
    """Parse a raw search string into a ``ParsedQuery``.

    Args:
        raw_query: Text exactly as typed by the user
        min_term_length: Plain terms shorter than this are dropped

    Returns:
        Immutable parsed representation
    """
    text = sanitize(raw_query)

    phrases = PHRASE_PATTERN.findall(text)
    text = PHRASE_PATTERN.sub(" ", text)

    after, text = _extract_date(AFTER_PATTERN, text)
    before, text = _extract_date(BEFORE_PATTERN, text)

    field_searches = [FieldSearch(field=field, term=term) for field, term in FIELD_PATTERN.findall(text)]
    text = FIELD_PATTERN.sub(" ", text)

    terms: list[str] = []
    operators: list[str] = []
    for word in text.split():
        upper = word.upper()
        if upper in OPERATORS:
            if upper not in operators:
                operators.append(upper)
        elif len(word) >= min_term_length:
            terms.append(word)

    return ParsedQuery(
        terms=terms,
        phrases=phrases,
        field_searches=field_searches,
        after=after,
        before=before,
        operators=operators,
    )
