"""Domain models for documents and search requests."""
