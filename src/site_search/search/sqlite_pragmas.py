"""Shared SQLite PRAGMA helpers for consistent performance tuning."""

from __future__ import annotations

import sqlite3


def apply_read_pragmas(
    conn: sqlite3.Connection,
    *,
    cache_size_kb: int = -16384,
    mmap_size_bytes: int = 134217728,
    temp_store: str = "MEMORY",
    query_only: bool = True,
    busy_timeout_ms: int | None = 5000,
) -> None:
    """Apply read-optimized PRAGMAs for per-request connections."""
    if busy_timeout_ms is not None:
        conn.execute(f"PRAGMA busy_timeout = {busy_timeout_ms}")
    conn.execute(f"PRAGMA cache_size = {cache_size_kb}")
    conn.execute(f"PRAGMA mmap_size = {mmap_size_bytes}")
    conn.execute(f"PRAGMA temp_store = {temp_store}")
    if query_only:
        conn.execute("PRAGMA query_only = 1")


def apply_write_pragmas(
    conn: sqlite3.Connection,
    *,
    cache_size_kb: int = -65536,
    temp_store: str = "MEMORY",
    journal_mode: str = "DELETE",
    synchronous: str = "NORMAL",
) -> None:
    """Apply write-optimized PRAGMAs for a full index rebuild.

    Uses the rollback journal so the finished index is one self-contained file.
    """
    conn.execute(f"PRAGMA journal_mode = {journal_mode}")
    conn.execute(f"PRAGMA synchronous = {synchronous}")
    conn.execute(f"PRAGMA cache_size = {cache_size_kb}")
    conn.execute(f"PRAGMA temp_store = {temp_store}")
    conn.execute("PRAGMA foreign_keys = ON")
