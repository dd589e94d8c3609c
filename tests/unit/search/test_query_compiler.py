"""Unit tests for FTS5 expression compilation."""

from __future__ import annotations

import pytest

from site_search.domain.search import FieldSearch, ParsedQuery
from site_search.search.query_compiler import MatchFilter, build_match_filter, compile_query, escape_term, quote
from site_search.search.query_parser import parse_query


@pytest.mark.parametrize(
    ("term", "expected"),
    [
        ("cat", "cat*"),
        ("cat*", "cat*"),
        ("cat**", "cat*"),
        ("AND", '"AND"'),
        ("or", '"or"'),
        ("Not", '"Not"'),
        ("c++", '"c++"'),
        ("tag:foo", '"tag:foo"'),
        ("(x)", '"(x)"'),
        ("don't", '"don\'t"'),
        ('say"hi', '"say""hi"'),
        ("naïve", "naïve*"),
        ("snake_case", "snake_case*"),
        ("*", ""),
        ("", ""),
    ],
)
def test_escape_term(term, expected):
    assert escape_term(term) == expected


def test_quote_doubles_embedded_quotes():
    assert quote('a "b" c') == '"a ""b"" c"'


def test_plain_terms_are_conjoined():
    assert compile_query(parse_query("foo bar")) == "foo* AND bar*"


def test_or_groups_all_terms():
    assert compile_query(parse_query("foo OR bar")) == "(foo* OR bar*)"
    assert compile_query(parse_query("foo bar or baz")) == "(foo* OR bar* OR baz*)"


def test_clause_order_is_fields_phrases_terms():
    parsed = parse_query('release "exact words" title:guide')

    assert compile_query(parsed) == 'title:guide* AND "exact words" AND release*'


def test_not_is_reported_but_does_not_negate():
    parsed = parse_query("python NOT java")

    assert parsed.operators == ["NOT"]
    assert compile_query(parsed) == "python* AND java*"


def test_empty_and_operator_only_queries_compile_to_nothing():
    assert compile_query(ParsedQuery()) == ""
    assert compile_query(parse_query("AND OR")) == ""


def test_blank_phrase_and_star_only_fields_are_skipped():
    parsed = ParsedQuery(phrases=["   "], field_searches=[FieldSearch(field="title", term="**")])

    assert compile_query(parsed) == ""


def test_build_match_filter_carries_structured_filters():
    parsed = parse_query("after:2024-01-01 before:2024-12-31 guide")

    match = build_match_filter(parsed, "guide*", section="docs")

    assert match == MatchFilter(fts_query="guide*", section="docs", after="2024-01-01", before="2024-12-31")


def test_build_match_filter_treats_empty_section_as_absent():
    match = build_match_filter(ParsedQuery(terms=["guide"]), "guide*")

    assert match.section is None
