"""Query parsing, compilation, ranking and SQLite FTS5 storage."""
