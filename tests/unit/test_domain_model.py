"""Unit tests for domain value objects."""

from __future__ import annotations

from pydantic import ValidationError
import pytest

from site_search.domain.model import Document
from site_search.domain.search import SearchRequest, SortOrder
from site_search.exceptions import RecordError


class TestDocumentFromFeed:
    def test_full_record(self):
        document, warnings = Document.from_feed(
            {
                "id": "post-1",
                "title": "Hello",
                "href": "/hello/",
                "url": "/ignored/",
                "content": "Body",
                "summary": "Short",
                "date": "2024-05-01",
                "section": "blog",
                "tags": ["a", "b"],
                "categories": '["news"]',
            }
        )

        assert warnings == []
        assert document.url == "/hello/"
        assert document.tags == ["a", "b"]
        assert document.categories == ["news"]
        assert document.to_row() == (
            "post-1",
            "Hello",
            "/hello/",
            "Body",
            "Short",
            "2024-05-01",
            "blog",
            '["a","b"]',
            '["news"]',
        )

    def test_missing_and_null_fields_take_defaults(self):
        document, warnings = Document.from_feed({"id": "bare", "title": None, "tags": None})

        assert warnings == []
        assert document.title == ""
        assert document.url == ""
        assert document.date == ""
        assert document.tags == []
        assert document.categories == []

    def test_url_used_when_href_absent_or_null(self):
        document, _ = Document.from_feed({"id": "x", "href": None, "url": "/fallback/"})

        assert document.url == "/fallback/"

    def test_scalars_are_stringified(self):
        document, _ = Document.from_feed({"id": 17, "title": 3.5, "section": True})

        assert document.id == "17"
        assert document.title == "3.5"
        assert document.section == "True"

    def test_text_is_sanitized(self):
        document, _ = Document.from_feed({"id": "x", "title": "Bad\x00Title", "content": "ok\x07"})

        assert document.title == "BadTitle"
        assert document.content == "ok"

    def test_invalid_date_becomes_warning(self):
        document, warnings = Document.from_feed({"id": "x", "date": "2024-02-30"})

        assert document.date == ""
        assert len(warnings) == 1
        assert "2024-02-30" in warnings[0]

    def test_string_tags_are_wrapped(self):
        document, _ = Document.from_feed({"id": "x", "tags": "python"})

        assert document.tags == ["python"]

    @pytest.mark.parametrize(
        ("item", "message"),
        [
            ("not an object", "record must be an object"),
            ({"title": "no id"}, "missing document id"),
            ({"id": "   "}, "missing document id"),
            ({"id": ["a"]}, "field 'id' must be a string"),
        ],
    )
    def test_unusable_records_raise(self, item, message):
        with pytest.raises(RecordError, match=message):
            Document.from_feed(item)

    def test_container_in_text_field_fails_record_with_id(self):
        with pytest.raises(RecordError) as excinfo:
            Document.from_feed({"id": "x", "title": {"en": "Hello"}})

        assert excinfo.value.doc_id == "x"

    def test_document_is_frozen(self):
        document, _ = Document.from_feed({"id": "x"})

        with pytest.raises(ValidationError):
            document.title = "changed"


class TestSearchRequest:
    def test_defaults(self):
        request = SearchRequest.from_query_params({})

        assert request == SearchRequest()
        assert request.sort is SortOrder.RELEVANCE
        assert request.limit is None
        assert request.action == "search"

    def test_parses_all_parameters(self):
        request = SearchRequest.from_query_params(
            {"q": "  guide ", "page": "3", "section": "docs", "sort": "date_asc", "limit": "5", "action": "sections"}
        )

        assert request.query == "guide"
        assert request.page == 3
        assert request.section == "docs"
        assert request.sort is SortOrder.DATE_ASC
        assert request.limit == 5
        assert request.action == "sections"

    @pytest.mark.parametrize(("raw", "expected"), [("0", 1), ("-4", 1), ("abc", 1), ("", 1), ("2", 2)])
    def test_page_is_clamped(self, raw, expected):
        assert SearchRequest.from_query_params({"page": raw}).page == expected

    def test_junk_limit_falls_back_to_default(self):
        assert SearchRequest.from_query_params({"limit": "many"}).limit is None

    def test_unknown_sort_and_action_fall_back(self):
        request = SearchRequest.from_query_params({"sort": "random", "action": "delete"})

        assert request.sort is SortOrder.RELEVANCE
        assert request.action == "search"

    def test_control_characters_are_stripped_from_query(self):
        assert SearchRequest.from_query_params({"q": "gui\x00de\x1b "}).query == "guide"
