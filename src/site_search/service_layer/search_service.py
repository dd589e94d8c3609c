"""Search service orchestration layer.

Runs the per-request pipeline: parse -> compile -> count -> ranked page ->
format. Ordering and paging happen in SQLite, so only one page of rows is
read. Each call opens its own read-only store connection, so requests share
no mutable state.
"""

from __future__ import annotations

import logging
from typing import Any

from site_search.config import Settings
from site_search.domain.search import ParsedQuery, SearchRequest
from site_search.observability import SEARCH_LATENCY, SEARCH_RESULTS, create_span, track_latency
from site_search.search.formatter import format_result
from site_search.search.query_compiler import build_match_filter, compile_query
from site_search.search.query_parser import parse_query
from site_search.search.ranking import Pagination, plan_ranking
from site_search.search.sqlite_storage import SqliteSearchStore


logger = logging.getLogger(__name__)


class SearchService:
    """High-level search orchestration over the FTS5 store."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def open_store(self) -> SqliteSearchStore:
        return SqliteSearchStore.open_readonly(self.settings.db_path)

    def _empty_response(
        self,
        request: SearchRequest,
        per_page: int,
        *,
        parsed: ParsedQuery | None = None,
    ) -> dict[str, Any]:
        return {
            "results": [],
            "total": 0,
            "page": request.page,
            "per_page": per_page,
            "total_pages": 0,
            "query": request.query,
            "parsed_query": parsed.to_dict() if parsed is not None else None,
            "fts_query": "",
        }

    def search(self, request: SearchRequest) -> dict[str, Any]:
        """Execute a search request and return the response envelope.

        Raises:
            StoreUnavailableError: when the database cannot be opened
            StoreError: when the backend rejects a query
        """
        per_page = self.settings.effective_page_size(request.limit)
        query = request.query.strip()

        if len(query) < self.settings.min_query_length:
            return self._empty_response(request, per_page)

        with create_span("search.parse", attributes={"search.query_length": len(query)}):
            parsed = parse_query(query, min_term_length=self.settings.min_term_length)
            fts_query = compile_query(parsed)

        if not fts_query:
            logger.debug("Query %r compiled to nothing searchable", query)
            return self._empty_response(request, per_page, parsed=parsed)

        match = build_match_filter(parsed, fts_query, section=request.section)

        with create_span("search.execute", attributes={"search.sort": request.sort.value}):
            with track_latency(SEARCH_LATENCY, stage="execute"), self.open_store() as store:
                total = store.count(match)
                pagination = Pagination.build(page=request.page, per_page=per_page, total=total)
                plan = plan_ranking(request.sort, first_term=parsed.first_term)
                rows: list[dict[str, Any]] = []
                if not pagination.is_past_end:
                    rows = store.search_page(
                        match,
                        plan,
                        limit=pagination.per_page,
                        offset=pagination.offset,
                        snippet_open=self.settings.snippet_open,
                        snippet_close=self.settings.snippet_close,
                        snippet_ellipsis=self.settings.snippet_ellipsis,
                        snippet_tokens=self.settings.snippet_tokens,
                    )

        with create_span("search.format", attributes={"search.page_size": len(rows)}):
            terms = parsed.highlight_terms()
            results = [
                format_result(
                    row,
                    terms,
                    open_tag=self.settings.highlight_open,
                    close_tag=self.settings.highlight_close,
                )
                for row in rows
            ]

        SEARCH_RESULTS.observe(total)
        logger.info(
            "Search %r matched %d documents (page %d, %d results)",
            query,
            total,
            pagination.page,
            len(results),
        )
        return {
            "results": results,
            "total": total,
            "page": pagination.page,
            "per_page": per_page,
            "total_pages": pagination.total_pages,
            "query": request.query,
            "parsed_query": parsed.to_dict(),
            "fts_query": fts_query,
        }

    def sections(self) -> dict[str, Any]:
        """List distinct non-empty sections for the section filter UI."""
        with self.open_store() as store:
            return {"sections": store.list_sections()}

    def document_count(self) -> int:
        with self.open_store() as store:
            return store.record_count()
