"""ASGI application serving the search API.

Routes:
    GET /api/search   search (default) or ``action=sections``
    GET /health       database status, always 200
    GET /metrics      Prometheus exposition

Usage:
    site-search
    SITE_SEARCH_DB_PATH=/srv/www/search.db site-search
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import orjson
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from site_search.config import Settings, get_settings
from site_search.domain.search import SearchRequest
from site_search.exceptions import StoreUnavailableError
from site_search.observability import (
    SEARCH_LATENCY,
    SEARCH_REQUESTS,
    TraceContextMiddleware,
    bind_request_fields,
    configure_logging,
    get_metrics,
    get_metrics_content_type,
    init_tracing,
    track_latency,
)
from site_search.service_layer import SearchService


logger = logging.getLogger(__name__)

ENCODING_ERROR_BODY = b'{"error":"Internal encoding error"}'


class PrettyJSONResponse(JSONResponse):
    """JSON response indented by two spaces."""

    def render(self, content: Any) -> bytes:
        return orjson.dumps(content, option=orjson.OPT_INDENT_2)


def _json_response(content: Any, status_code: int = 200, *, pretty: bool = True) -> Response:
    response_class = PrettyJSONResponse if pretty else JSONResponse
    try:
        return response_class(content, status_code=status_code)
    except (TypeError, ValueError) as exc:
        logger.error("Failed to encode response: %s", exc, exc_info=True)
        return Response(ENCODING_ERROR_BODY, status_code=500, media_type="application/json")


def _error_response(settings: Settings, prefix: str, exc: Exception) -> Response:
    status_code = 503 if isinstance(exc, StoreUnavailableError) else 500
    message = prefix if settings.mask_error_details else f"{prefix}: {exc}"
    return _json_response({"error": message}, status_code, pretty=False)


def create_app(settings: Settings | None = None) -> Starlette:
    """Create the search API application.

    Args:
        settings: Explicit settings, defaults to the cached environment settings

    Returns:
        Starlette application with CORS and trace-context middleware installed
    """
    settings = settings or get_settings()
    service = SearchService(settings)

    async def search_endpoint(request: Request) -> Response:
        search_request = SearchRequest.from_query_params(request.query_params)
        action = search_request.action
        bind_request_fields(action=action)

        try:
            with track_latency(SEARCH_LATENCY, stage=action):
                if action == "sections":
                    payload = await asyncio.to_thread(service.sections)
                else:
                    payload = await asyncio.to_thread(service.search, search_request)
        except Exception as exc:
            SEARCH_REQUESTS.labels(action=action, status="error").inc()
            if action == "sections":
                logger.error("Error getting sections: %s", exc, exc_info=True)
                return _error_response(settings, "Error getting sections", exc)
            logger.error("Search failed for %r: %s", search_request.query, exc, exc_info=True)
            return _error_response(settings, "Search error", exc)

        SEARCH_REQUESTS.labels(action=action, status="ok").inc()
        return _json_response(payload)

    async def health_check(request: Request) -> JSONResponse:
        """Report whether the index database can be opened."""
        try:
            documents: int | None = await asyncio.to_thread(service.document_count)
            status = "healthy"
        except Exception as exc:
            logger.warning("Health check could not read %s: %s", settings.db_path, exc)
            documents = None
            status = "degraded"

        return JSONResponse(
            {"status": status, "database": str(settings.db_path), "documents": documents},
            status_code=200,  # Always 200, check "status" field for degraded state
        )

    async def metrics_endpoint(request: Request) -> Response:
        return Response(get_metrics(), media_type=get_metrics_content_type())

    routes = [
        Route("/api/search", endpoint=search_endpoint, methods=["GET"]),
        Route("/health", endpoint=health_check, methods=["GET"]),
        Route("/metrics", endpoint=metrics_endpoint, methods=["GET"]),
    ]
    middleware = [
        Middleware(TraceContextMiddleware),
        Middleware(
            CORSMiddleware,
            allow_origins=settings.get_cors_allow_origins(),
            allow_methods=["GET"],
            allow_headers=["Content-Type"],
        ),
    ]

    app = Starlette(
        debug=settings.log_level.lower() == "debug",
        routes=routes,
        middleware=middleware,
    )
    app.state.settings = settings
    app.state.search_service = service
    return app


def main() -> None:
    """Entry point for the search API server."""
    import uvicorn

    settings = get_settings()
    configure_logging(settings.log_level, json_output=settings.log_json, access_log=settings.access_log)
    init_tracing("site-search")

    logger.info("Starting site-search on %s:%d", settings.host, settings.port)
    logger.info("Database: %s", settings.db_path)
    logger.info("Health check: http://%s:%d/health", settings.host, settings.port)

    uvicorn.run(
        create_app(settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        log_config=None,  # Don't let uvicorn override our logging config
        access_log=settings.access_log,
    )


if __name__ == "__main__":
    main()
