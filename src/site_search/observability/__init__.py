"""Observability module for structured logging, tracing and Prometheus metrics."""

from site_search.observability.context import (
    bind_request_fields,
    get_trace_context,
    request_context,
    request_fields,
    start_request,
)
from site_search.observability.logging import JsonFormatter, configure_logging
from site_search.observability.metrics import (
    INDEX_RECORDS,
    SEARCH_LATENCY,
    SEARCH_REQUESTS,
    SEARCH_RESULTS,
    get_metrics,
    get_metrics_content_type,
    track_latency,
)
from site_search.observability.tracing import TraceContextMiddleware, create_span, get_tracer, init_tracing


__all__ = [
    "INDEX_RECORDS",
    "SEARCH_LATENCY",
    "SEARCH_REQUESTS",
    "SEARCH_RESULTS",
    "JsonFormatter",
    "TraceContextMiddleware",
    "bind_request_fields",
    "configure_logging",
    "create_span",
    "get_metrics",
    "get_metrics_content_type",
    "get_trace_context",
    "get_tracer",
    "init_tracing",
    "request_context",
    "request_fields",
    "start_request",
    "track_latency",
]
