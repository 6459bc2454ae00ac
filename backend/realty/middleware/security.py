"""
Security Headers Middleware

Adds browser hardening headers to every API response, error responses
included. The API serves JSON only, so the content security policy denies
everything.
"""

from typing import Callable, Dict

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = structlog.get_logger()

SECURITY_HEADERS: Dict[str, str] = {
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'",
    "Referrer-Policy": "no-referrer",
    "Cache-Control": "no-store",
}


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Attach SECURITY_HEADERS to all responses."""

    def __init__(self, app, hsts: bool = True):
        super().__init__(app)
        self.headers = dict(SECURITY_HEADERS)
        if not hsts:
            # Plain HTTP in development
            self.headers.pop("Strict-Transport-Security")

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        for name, value in self.headers.items():
            response.headers.setdefault(name, value)

        logger.debug(
            "Security headers added", path=request.url.path, method=request.method
        )
        return response
