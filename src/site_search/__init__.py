"""site-search: a static-site full-text search index builder and JSON query service."""

__version__ = "0.1.0"
