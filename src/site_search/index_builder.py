"""Build the SQLite FTS5 search index from a site's JSON document feed.

Usage:
    site-search-build [DB_PATH] [FEED_PATH] [--json] [--log-level LEVEL]

Every run replaces the whole index. Malformed records are reported and
skipped; a missing or invalid feed aborts the build with exit code 1.
"""

from __future__ import annotations

import argparse
from collections.abc import Sequence
from dataclasses import asdict, dataclass, field
import json
import logging
from pathlib import Path
import sys
import time
from typing import Any

from site_search.config import get_settings
from site_search.domain.model import Document
from site_search.exceptions import FeedError, RecordError, SiteSearchError
from site_search.observability import INDEX_RECORDS, configure_logging, create_span
from site_search.search.formatter import decode_structured
from site_search.search.sqlite_storage import SqliteSearchStore


logger = logging.getLogger(__name__)


@dataclass(slots=True)
class RecordOutcome:
    """Result of ingesting a single feed record."""

    index: int
    doc_id: str | None
    ok: bool
    error: str | None = None
    warnings: list[str] = field(default_factory=list)


@dataclass(slots=True)
class BuildReport:
    """Structured result of one index build."""

    db_path: str
    feed_path: str
    records_seen: int = 0
    records_indexed: int = 0
    records_failed: int = 0
    warnings: int = 0
    integrity_errors: int = 0
    record_count: int = 0
    duration_s: float = 0.0
    failures: list[RecordOutcome] = field(default_factory=list)

    @property
    def status(self) -> str:
        if self.records_seen and not self.records_indexed:
            return "error"
        if self.records_failed or self.warnings or self.integrity_errors:
            return "degraded"
        return "ok"

    def add(self, outcome: RecordOutcome) -> None:
        self.records_seen += 1
        self.warnings += len(outcome.warnings)
        if outcome.ok:
            self.records_indexed += 1
        else:
            self.records_failed += 1
        if not outcome.ok or outcome.warnings:
            self.failures.append(outcome)

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["status"] = self.status
        return payload


def load_feed(feed_path: Path) -> list[Any]:
    """Read the whole feed into memory.

    Raises:
        FeedError: when the file is missing, unreadable, not JSON or not an array
    """
    if not feed_path.is_file():
        raise FeedError(f"Search data file not found: {feed_path}")
    try:
        raw = feed_path.read_bytes()
    except OSError as exc:
        raise FeedError(f"Cannot read search data file {feed_path}: {exc}") from exc
    try:
        data = json.loads(raw.decode("utf-8", errors="replace"))
    except ValueError as exc:
        raise FeedError(f"Invalid JSON data: {exc}") from exc
    if not isinstance(data, list):
        raise FeedError(f"Invalid JSON data: expected an array of documents, got {type(data).__name__}")
    return data


def ingest_record(store: SqliteSearchStore, index: int, item: Any) -> RecordOutcome:
    """Decode and insert one feed item, reporting failure instead of raising."""
    raw_id = item.get("id") if isinstance(item, dict) else None
    try:
        document, warnings = Document.from_feed(item)
        store.insert_document(document)
    except RecordError as exc:
        return RecordOutcome(index=index, doc_id=exc.doc_id or _display_id(raw_id), ok=False, error=str(exc))
    return RecordOutcome(index=index, doc_id=document.id, ok=True, warnings=warnings)


def _display_id(raw_id: Any) -> str | None:
    if raw_id is None or raw_id == "":
        return None
    return str(raw_id)


def verify_structured_fields(store: SqliteSearchStore) -> int:
    """Decode every stored tags/categories value and count the ones that fail."""
    failures = 0
    for doc_id, field_name, raw in store.iter_structured_fields():
        try:
            decoded = json.loads(raw) if raw else []
        except (TypeError, ValueError):
            decoded = None
        if not isinstance(decoded, list):
            failures += 1
            # Same diagnostic the query path emits for this record
            decode_structured(raw, record_id=doc_id, field=field_name)
    return failures


class IndexBuilder:
    """Single-pass batch job: load feed, rebuild schema, insert, optimize, verify."""

    def __init__(self, db_path: str | Path, feed_path: str | Path) -> None:
        self.db_path = Path(db_path)
        self.feed_path = Path(feed_path)

    def build(self) -> BuildReport:
        """Run the build.

        Raises:
            FeedError: when the feed cannot be loaded
            StoreError: when the database cannot be created or written
        """
        start = time.perf_counter()
        report = BuildReport(db_path=str(self.db_path), feed_path=str(self.feed_path))

        with create_span("index.build", attributes={"index.db_path": str(self.db_path)}):
            items = load_feed(self.feed_path)

            with SqliteSearchStore.create(self.db_path) as store:
                store.reset_schema()
                logger.info("Database tables created with FTS5 support.")

                for index, item in enumerate(items):
                    outcome = ingest_record(store, index, item)
                    report.add(outcome)
                    INDEX_RECORDS.labels(outcome="indexed" if outcome.ok else "failed").inc()
                    _log_outcome(outcome)
                store.commit()
                logger.info("Loaded %d records.", report.records_indexed)

                store.optimize()
                logger.info("Database optimized (ANALYZE + VACUUM completed).")

                report.integrity_errors = verify_structured_fields(store)
                if report.integrity_errors:
                    logger.warning(
                        "Integrity check found %d undecodable tags/categories values", report.integrity_errors
                    )
                report.record_count = store.record_count()

        report.duration_s = time.perf_counter() - start
        return report


def _log_outcome(outcome: RecordOutcome) -> None:
    label = outcome.doc_id or f"#{outcome.index}"
    if not outcome.ok:
        logger.warning("Skipped record %s: %s", label, outcome.error)
    for warning in outcome.warnings:
        logger.warning("Record %s: %s", label, warning)


def build_argument_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(
        description="Build the SQLite FTS5 search index from a JSON document feed",
    )
    parser.add_argument(
        "db_path",
        nargs="?",
        type=Path,
        default=settings.db_path,
        help=f"Path of the search database to (re)create (default: {settings.db_path})",
    )
    parser.add_argument(
        "feed_path",
        nargs="?",
        type=Path,
        default=settings.feed_path,
        help=f"JSON array of site documents (default: {settings.feed_path})",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the build report as a single JSON line",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (default: INFO)",
    )
    return parser


def _format_report(report: BuildReport) -> str:
    return (
        f"status={report.status} indexed={report.records_indexed} failed={report.records_failed}"
        f" warnings={report.warnings} integrity_errors={report.integrity_errors}"
        f" duration={report.duration_s:.2f}s"
    )


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entry point; returns the process exit code."""
    args = build_argument_parser().parse_args(argv)
    configure_logging(args.log_level, json_output=False)

    logger.info("Building search index...")
    try:
        report = IndexBuilder(args.db_path, args.feed_path).build()
    except SiteSearchError as exc:
        logger.error("Error building search index: %s", exc)
        return 1

    logger.info("Search index built successfully!")
    logger.info("Database: %s", report.db_path)
    logger.info("Records: %d", report.record_count)
    logger.info(_format_report(report))
    if args.json:
        sys.stdout.write(json.dumps(report.to_dict(), sort_keys=True) + "\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
