"""
Correlation IDs for request and background-task tracing.

The middleware reads X-Correlation-ID / X-Request-ID (or generates one),
exposes it through a context variable for logging, and echoes it in the
response. Background tasks (embedding backfills started by the scheduler)
open a CorrelationContext so their logs stay attributable.
"""

import contextvars
import uuid
from typing import Callable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response


_correlation_id_ctx: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "correlation_id",
    default=None,
)

CORRELATION_HEADERS = [
    "X-Correlation-ID",
    "X-Request-ID",
    "X-Trace-ID",
]

RESPONSE_HEADER = "X-Correlation-ID"


def get_correlation_id() -> Optional[str]:
    """Correlation ID of the current request or task, if any."""
    return _correlation_id_ctx.get()


def generate_correlation_id() -> str:
    """Short random id (first 8 chars of a UUID4)."""
    return str(uuid.uuid4())[:8]


class CorrelationMiddleware(BaseHTTPMiddleware):
    """Attach a correlation ID to every request and response."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = None
        for header in CORRELATION_HEADERS:
            correlation_id = request.headers.get(header)
            if correlation_id:
                break

        if not correlation_id:
            correlation_id = generate_correlation_id()

        request.state.correlation_id = correlation_id
        token = _correlation_id_ctx.set(correlation_id)

        try:
            response = await call_next(request)
            response.headers[RESPONSE_HEADER] = correlation_id
            return response
        finally:
            _correlation_id_ctx.reset(token)


def propagate_correlation_headers(
    headers: Optional[dict] = None,
    correlation_id: Optional[str] = None,
) -> dict:
    """
    Copy `headers` and add X-Correlation-ID for an outgoing call.

    Args:
        headers: Existing headers dict to extend (not modified)
        correlation_id: Explicit ID; defaults to the current context's ID
    """
    headers = dict(headers) if headers else {}

    cid = correlation_id or get_correlation_id()
    if cid:
        headers[RESPONSE_HEADER] = cid

    return headers


class CorrelationContext:
    """
    Set a correlation ID outside of a request.

    Example:
        with CorrelationContext(f"task-{task_id}"):
            await runner.run_to_completion(job_id)
    """

    def __init__(self, correlation_id: Optional[str] = None):
        self.correlation_id = correlation_id or generate_correlation_id()
        self._token: Optional[contextvars.Token] = None

    def __enter__(self) -> str:
        self._token = _correlation_id_ctx.set(self.correlation_id)
        return self.correlation_id

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._token is not None:
            _correlation_id_ctx.reset(self._token)
