"""Request-scoped context shared by logging and tracing.

One ``ContextVar`` holds the current request's ``trace_id`` and ``span_id``
plus any fields bound with :func:`bind_request_fields` (``path``, ``action``).
``JsonFormatter`` copies all of them onto every log line emitted while the
request runs, including lines logged from ``asyncio.to_thread`` workers,
which inherit a copy of the context.
"""

from __future__ import annotations

from contextvars import ContextVar
import secrets
from typing import Any


ID_FIELDS = ("trace_id", "span_id")

request_context: ContextVar[dict[str, Any] | None] = ContextVar("site_search_request_context", default=None)


def new_trace_id() -> str:
    """32 hex characters, the W3C trace-id width."""
    return secrets.token_hex(16)


def new_span_id() -> str:
    return secrets.token_hex(8)


def start_request(trace_id: str | None = None, **fields: Any) -> dict[str, Any]:
    """Replace the current context with a fresh one for a new unit of work.

    Args:
        trace_id: Caller-supplied trace id (e.g. from ``x-trace-id``); generated when empty
        **fields: Initial request fields such as ``path``

    Returns:
        The new context mapping
    """
    ctx = {"trace_id": trace_id or new_trace_id(), "span_id": new_span_id()}
    ctx.update({key: value for key, value in fields.items() if value is not None})
    request_context.set(ctx)
    return ctx


def get_trace_context() -> dict[str, Any]:
    """Current context, starting one lazily outside of a request."""
    ctx = request_context.get()
    if not ctx or not ctx.get("trace_id"):
        return start_request()
    return ctx


def bind_request_fields(**fields: Any) -> None:
    """Attach fields to the current context without touching its ids."""
    ctx = {**get_trace_context()}
    for key, value in fields.items():
        if key in ID_FIELDS or value is None:
            continue
        ctx[key] = value
    request_context.set(ctx)


def request_fields() -> dict[str, Any]:
    """Bound fields of the current context, without the ids."""
    return {key: value for key, value in get_trace_context().items() if key not in ID_FIELDS}


def update_span_id(span_id: str) -> None:
    request_context.set({**get_trace_context(), "span_id": span_id})
