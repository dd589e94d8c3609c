"""SQLite FTS5 storage for site documents.

The builder writes a fresh database on every run (tables are dropped and
recreated); the query service opens it read-only, one connection per request.

Schema:
- ``search_content``: one row per document, structured fields stored as JSON text
- ``search_fts``: external-content FTS5 table (porter stemming) kept in sync by triggers

Queries are ordered and paged inside SQLite; connections register a
Unicode-aware ``casefold()`` SQL function used by the title boost.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
import logging
from pathlib import Path
import sqlite3
from typing import Any

from site_search.domain.model import Document
from site_search.domain.search import SortOrder
from site_search.exceptions import RecordError, StoreError, StoreUnavailableError
from site_search.search.query_compiler import MatchFilter
from site_search.search.ranking import RankingPlan
from site_search.search.sqlite_pragmas import apply_read_pragmas, apply_write_pragmas


logger = logging.getLogger(__name__)

CONTENT_TABLE = "search_content"
FTS_TABLE = "search_fts"
# Column index of ``content`` inside search_fts, used for snippets
SNIPPET_COLUMN = 1

_RESULT_COLUMNS = ("id", "title", "url", "summary", "date", "section", "tags", "categories")

_SCHEMA_SQL = """
    DROP TABLE IF EXISTS search_fts;
    DROP TABLE IF EXISTS search_content;

    CREATE TABLE search_content (
        id TEXT PRIMARY KEY,
        title TEXT NOT NULL,
        url TEXT NOT NULL,
        content TEXT,
        summary TEXT,
        date TEXT,
        section TEXT,
        tags TEXT,
        categories TEXT
    );

    CREATE VIRTUAL TABLE search_fts USING fts5(
        title,
        content,
        summary,
        tags,
        categories,
        content='search_content',
        content_rowid='rowid',
        tokenize='porter'
    );

    CREATE TRIGGER search_content_ai AFTER INSERT ON search_content BEGIN
        INSERT INTO search_fts(rowid, title, content, summary, tags, categories)
        VALUES (new.rowid, new.title, new.content, new.summary, new.tags, new.categories);
    END;

    CREATE TRIGGER search_content_ad AFTER DELETE ON search_content BEGIN
        INSERT INTO search_fts(search_fts, rowid, title, content, summary, tags, categories)
        VALUES ('delete', old.rowid, old.title, old.content, old.summary, old.tags, old.categories);
    END;

    CREATE TRIGGER search_content_au AFTER UPDATE ON search_content BEGIN
        INSERT INTO search_fts(search_fts, rowid, title, content, summary, tags, categories)
        VALUES ('delete', old.rowid, old.title, old.content, old.summary, old.tags, old.categories);
        INSERT INTO search_fts(rowid, title, content, summary, tags, categories)
        VALUES (new.rowid, new.title, new.content, new.summary, new.tags, new.categories);
    END;

    CREATE INDEX idx_section ON search_content(section);
    CREATE INDEX idx_date ON search_content(date);
    CREATE INDEX idx_section_date ON search_content(section, date);
"""

_INSERT_SQL = """
    INSERT INTO search_content (id, title, url, content, summary, date, section, tags, categories)
    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
"""

_JOIN_SQL = f"FROM {CONTENT_TABLE} c JOIN {FTS_TABLE} f ON c.rowid = f.rowid"


def _where_clause(match: MatchFilter) -> tuple[str, dict[str, Any]]:
    """Render the shared predicate for count and page queries."""
    clauses = ["f.search_fts MATCH :fts_query"]
    params: dict[str, Any] = {"fts_query": match.fts_query}
    if match.section:
        clauses.append("c.section = :section")
        params["section"] = match.section
    if match.after:
        clauses.append("c.date >= :after")
        params["after"] = match.after
    if match.before:
        clauses.append("c.date <= :before")
        params["before"] = match.before
    return "WHERE " + " AND ".join(clauses), params


def _order_clause(plan: RankingPlan) -> tuple[str, dict[str, Any]]:
    if plan.sort is SortOrder.DATE_DESC:
        return "ORDER BY c.date DESC, relevance, c.rowid", {}
    if plan.sort is SortOrder.DATE_ASC:
        return "ORDER BY c.date ASC, relevance, c.rowid", {}
    if plan.boosts_title:
        return (
            "ORDER BY CASE WHEN instr(casefold(c.title), :title_needle) > 0 THEN 0 ELSE 1 END, "
            "relevance, c.date DESC, c.rowid",
            {"title_needle": plan.title_needle},
        )
    return "ORDER BY relevance, c.date DESC, c.rowid", {}


def _casefold(value: Any) -> Any:
    return value.casefold() if isinstance(value, str) else value


class SqliteSearchStore:
    """Repository over the FTS5 database.

    Use :meth:`create` for the builder's writable connection and
    :meth:`open_readonly` for query-time access.
    """

    def __init__(self, conn: sqlite3.Connection, db_path: Path, *, readonly: bool) -> None:
        self._conn = conn
        self.db_path = db_path
        self.readonly = readonly
        # SQL lower() only folds ASCII
        conn.create_function("casefold", 1, _casefold, deterministic=True)

    # ----- construction -----

    @classmethod
    def create(cls, db_path: str | Path) -> SqliteSearchStore:
        """Open (creating if needed) a writable database for an index rebuild."""
        path = Path(db_path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(path)
            apply_write_pragmas(conn)
        except (OSError, sqlite3.Error) as exc:
            raise StoreError(f"Cannot create search database {path}: {exc}") from exc
        conn.row_factory = sqlite3.Row
        return cls(conn, path, readonly=False)

    @classmethod
    def open_readonly(cls, db_path: str | Path) -> SqliteSearchStore:
        """Open an existing database without write access."""
        path = Path(db_path)
        if not path.is_file():
            raise StoreUnavailableError(f"Search database not found: {path}")
        try:
            conn = sqlite3.connect(path.resolve().as_uri() + "?mode=ro", uri=True, check_same_thread=False)
            apply_read_pragmas(conn)
        except sqlite3.Error as exc:
            raise StoreUnavailableError(f"Cannot open search database {path}: {exc}") from exc
        conn.row_factory = sqlite3.Row
        return cls(conn, path, readonly=True)

    def close(self) -> None:
        try:
            self._conn.close()
        except sqlite3.Error as exc:
            logger.warning("Failed to close SQLite connection for %s: %s", self.db_path, exc)

    def __enter__(self) -> SqliteSearchStore:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ----- write path -----

    def reset_schema(self) -> None:
        """Drop any previous index and create empty tables, triggers and indexes."""
        try:
            self._conn.executescript(_SCHEMA_SQL)
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to create search schema: {exc}") from exc

    def insert_document(self, document: Document) -> None:
        """Insert one document; the FTS table is populated by trigger.

        Raises:
            RecordError: when the row violates a constraint (e.g. duplicate id)
            StoreError: for any other database failure
        """
        try:
            self._conn.execute(_INSERT_SQL, document.to_row())
        except sqlite3.IntegrityError as exc:
            raise RecordError(f"rejected by database: {exc}", doc_id=document.id) from exc
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to insert document {document.id}: {exc}") from exc

    def commit(self) -> None:
        try:
            self._conn.commit()
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to commit search database: {exc}") from exc

    def optimize(self) -> None:
        """Merge FTS segments, refresh planner statistics and compact the file."""
        try:
            self._conn.execute(f"INSERT INTO {FTS_TABLE}({FTS_TABLE}) VALUES('optimize')")
            self._conn.commit()
            self._conn.execute("ANALYZE")
            self._conn.commit()
            self._conn.execute("VACUUM")
        except sqlite3.Error as exc:
            raise StoreError(f"Failed to optimize search database: {exc}") from exc

    def iter_structured_fields(self) -> Iterator[tuple[str, str, Any]]:
        """Yield ``(doc_id, field, raw_value)`` for every stored tags/categories value."""
        cursor = self._execute(f"SELECT id, tags, categories FROM {CONTENT_TABLE} ORDER BY rowid")
        for row in cursor:
            yield row["id"], "tags", row["tags"]
            yield row["id"], "categories", row["categories"]

    # ----- read path -----

    def record_count(self) -> int:
        row = self._execute(f"SELECT COUNT(*) FROM {CONTENT_TABLE}").fetchone()
        return int(row[0]) if row else 0

    def count(self, match: MatchFilter) -> int:
        """Number of rows matching the filter, independent of ordering or paging."""
        where, params = _where_clause(match)
        row = self._execute(f"SELECT COUNT(*) {_JOIN_SQL} {where}", params).fetchone()
        return int(row[0]) if row else 0

    def search_page(
        self,
        match: MatchFilter,
        plan: RankingPlan,
        *,
        limit: int,
        offset: int = 0,
        snippet_open: str = "<mark>",
        snippet_close: str = "</mark>",
        snippet_ellipsis: str = "...",
        snippet_tokens: int = 32,
    ) -> list[dict[str, Any]]:
        """One ordered page of matches with stored fields, score and content snippet."""
        if limit <= 0:
            return []
        where, params = _where_clause(match)
        order_by, order_params = _order_clause(plan)
        params.update(order_params)
        params.update(
            limit=limit,
            offset=max(0, offset),
            snippet_open=snippet_open,
            snippet_close=snippet_close,
            snippet_ellipsis=snippet_ellipsis,
            snippet_tokens=snippet_tokens,
        )
        columns = ", ".join(f"c.{name}" for name in _RESULT_COLUMNS)
        sql = (
            f"SELECT {columns}, bm25(f.search_fts) AS relevance, "
            f"snippet(f.search_fts, {SNIPPET_COLUMN}, :snippet_open, :snippet_close, "
            f":snippet_ellipsis, :snippet_tokens) AS content_snippet "
            f"{_JOIN_SQL} {where} {order_by} LIMIT :limit OFFSET :offset"
        )
        return [dict(row) for row in self._execute(sql, params)]

    def list_sections(self) -> list[str]:
        """Distinct non-empty section names, sorted."""
        cursor = self._execute(
            f"SELECT DISTINCT section FROM {CONTENT_TABLE} WHERE section != '' ORDER BY section"
        )
        return [row[0] for row in cursor]

    def _execute(self, sql: str, params: dict[str, Any] | Sequence[Any] = ()) -> sqlite3.Cursor:
        try:
            return self._conn.execute(sql, params)
        except sqlite3.Error as exc:
            raise StoreError(f"Search database query failed: {exc}") from exc
