"""Prometheus metrics for search traffic and index builds."""

from __future__ import annotations

from contextlib import contextmanager
import time
from typing import TYPE_CHECKING

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest


if TYPE_CHECKING:
    from collections.abc import Generator


SEARCH_REQUESTS = Counter(
    "search_requests_total",
    "Total search API requests",
    ["action", "status"],
)

SEARCH_LATENCY = Histogram(
    "search_latency_seconds",
    "Search pipeline latency in seconds",
    ["stage"],
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0),
)

SEARCH_RESULTS = Histogram(
    "search_results_total",
    "Total matches per search request",
    buckets=(0, 1, 5, 10, 20, 50, 100, 500, 1000),
)

INDEX_RECORDS = Counter(
    "index_records_total",
    "Feed records processed by the index builder",
    ["outcome"],
)


@contextmanager
def track_latency(histogram: Histogram, **labels: str) -> Generator[None, None, None]:
    """Context manager to track operation latency."""
    start = time.perf_counter()
    try:
        yield
    finally:
        target = histogram.labels(**labels) if labels else histogram
        target.observe(time.perf_counter() - start)


def get_metrics() -> bytes:
    """Generate Prometheus metrics output."""
    return generate_latest()


def get_metrics_content_type() -> str:
    """Get content type for metrics endpoint."""
    return CONTENT_TYPE_LATEST
