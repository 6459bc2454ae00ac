"""
Correlation ID Middleware

Tags every request with a correlation id so log lines from the API, the
domain services and the cache layer can be tied back to one request.

The id is taken from the first recognized request header or generated as
a UUID v4, bound into structlog's context variables for the duration of
the request, attached to the current span and echoed in the response.
"""

import logging
import re
import time
import uuid
from typing import Awaitable, Callable, Optional

import structlog
from fastapi import Request
from opentelemetry import trace
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)

CORRELATION_HEADERS = (
    "x-correlation-id",
    "correlation-id",
    "x-request-id",
    "request-id",
)

_VALID_ID = re.compile(r"^[a-zA-Z0-9\-_\.]{8,255}$")


def get_request_correlation_id(request: Request) -> Optional[str]:
    """Return the correlation id carried by request headers, if any."""
    for header_name in CORRELATION_HEADERS:
        value = request.headers.get(header_name, "").strip()
        if value:
            return value
    return None


def is_valid_correlation_id(correlation_id: str) -> bool:
    return bool(correlation_id) and bool(_VALID_ID.match(correlation_id))


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Generate or propagate a correlation id per request."""

    def __init__(self, app: ASGIApp, header_name: str = "x-correlation-id"):
        super().__init__(app)
        self.header_name = header_name.lower()

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        correlation_id = get_request_correlation_id(request)
        if correlation_id is None or not is_valid_correlation_id(correlation_id):
            correlation_id = str(uuid.uuid4())

        request.state.correlation_id = correlation_id
        structlog.contextvars.bind_contextvars(correlation_id=correlation_id)
        trace.get_current_span().set_attribute("correlation_id", correlation_id)

        logger.debug(
            "Request started",
            extra={
                "correlation_id": correlation_id,
                "method": request.method,
                "path": request.url.path,
            },
        )

        started = time.perf_counter()
        try:
            response = await call_next(request)
        finally:
            structlog.contextvars.unbind_contextvars("correlation_id")

        response.headers[self.header_name] = correlation_id

        logger.info(
            "Request completed",
            extra={
                "correlation_id": correlation_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": round((time.perf_counter() - started) * 1000, 2),
            },
        )
        return response


__all__ = [
    "CorrelationIdMiddleware",
    "get_request_correlation_id",
    "is_valid_correlation_id",
]
