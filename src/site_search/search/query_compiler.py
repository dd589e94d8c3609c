"""Compile a ``ParsedQuery`` into an SQLite FTS5 MATCH expression.

Clause categories are ANDed at the top level: field clauses, then phrases,
then plain terms. Plain terms are ANDed individually unless the query used
``OR``, in which case they form one parenthesized OR group.
"""

from __future__ import annotations

from dataclasses import dataclass
import re

from site_search.domain.search import ParsedQuery


# Characters with FTS5 query meaning that force a quoted, exact term
SPECIAL_CHARACTERS = frozenset('"()[]:+-^*')
RESERVED_WORDS = frozenset({"AND", "OR", "NOT"})
# FTS5 barewords: ASCII letters, digits, underscore, 0x1A and anything non-ASCII
_BAREWORD = re.compile(r"[A-Za-z0-9_\x1a\u0080-\U0010ffff]+")


@dataclass(frozen=True, slots=True)
class MatchFilter:
    """Structured predicate handed to the store: MATCH expression plus column filters."""

    fts_query: str
    section: str | None = None
    after: str | None = None
    before: str | None = None


def quote(text: str) -> str:
    """Wrap text as an FTS5 string, doubling embedded quotes."""
    return '"' + text.replace('"', '""') + '"'


def _needs_quoting(term: str) -> bool:
    if term.upper() in RESERVED_WORDS:
        return True
    if any(char in SPECIAL_CHARACTERS for char in term):
        return True
    return _BAREWORD.fullmatch(term) is None


def escape_term(term: str) -> str:
    """Render a single term for FTS5.

    Plain words become prefix queries (``cat`` -> ``cat*``); a trailing ``*``
    typed by the user already asks for that and is not doubled. Words that
    FTS5 would misread are quoted and matched exactly, without a wildcard.
    Returns ``""`` when nothing searchable remains.
    """
    stem = term.rstrip("*")
    if not stem:
        return ""
    if _needs_quoting(stem):
        return quote(stem)
    return stem + "*"


def compile_query(parsed: ParsedQuery) -> str:
    """Build the FTS5 expression for ``parsed``; ``""`` means nothing to search."""
    parts: list[str] = []

    for clause in parsed.field_searches:
        escaped = escape_term(clause.term)
        if escaped:
            parts.append(f"{clause.field}:{escaped}")

    for phrase in parsed.phrases:
        if phrase.strip():
            parts.append(quote(phrase))

    term_parts = [escaped for escaped in (escape_term(term) for term in parsed.terms) if escaped]
    if term_parts:
        if parsed.has_or:
            parts.append("(" + " OR ".join(term_parts) + ")")
        else:
            parts.extend(term_parts)

    return " AND ".join(parts)


def build_match_filter(parsed: ParsedQuery, fts_query: str, *, section: str = "") -> MatchFilter:
    """Combine a compiled expression with the request's structured filters."""
    return MatchFilter(
        fts_query=fts_query,
        section=section or None,
        after=parsed.after,
        before=parsed.before,
    )
