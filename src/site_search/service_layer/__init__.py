"""Service layer coordinating the search pipeline."""

from site_search.service_layer.search_service import SearchService


__all__ = ["SearchService"]
