"""
HTTP middleware - Security headers, access logging and the last-resort
error envelope.
"""

import logging
import time
from collections.abc import Awaitable, Callable

from fastapi import Request, status
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from activation_service.api.errors import INTERNAL_ERROR_MESSAGE, error_response

logger = logging.getLogger("activation_service.access")
error_logger = logging.getLogger(__name__)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add conservative security headers to every response."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        response = await call_next(request)
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        return response


class AccessLogMiddleware(BaseHTTPMiddleware):
    """Log one line per request: client, method, path, status, duration."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        client = request.client.host if request.client else "unknown"
        logger.info(
            "%s %s %s %d %.1fms",
            client,
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
        )
        return response


class UnhandledErrorMiddleware(BaseHTTPMiddleware):
    """
    Turn unexpected exceptions into the 500 error envelope.

    Registered innermost so the response still passes through the
    security header, CORS and access log middleware.
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        try:
            return await call_next(request)
        except Exception:
            error_logger.exception("Unhandled error on %s %s", request.method, request.url.path)
            return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, INTERNAL_ERROR_MESSAGE)
