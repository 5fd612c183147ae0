"""Logging Redaction Middleware.

Invariant: bearer tokens (Supabase JWTs) and cookies never appear in logs.

The middleware stores a redacted copy of the request headers on
``request.state``; handlers that need to log headers (e.g. the unhandled
exception handler) use ``get_safe_headers`` instead of ``request.headers``.
The real headers are untouched, so authentication still sees them.
"""

import logging
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)


class LoggingRedactionMiddleware(BaseHTTPMiddleware):
    """Attach a redacted header map to each request for logging."""

    SENSITIVE_HEADERS = {
        "authorization",
        "proxy-authorization",
        "cookie",
        "x-api-key",
    }

    REDACTED_PLACEHOLDER = "[REDACTED]"

    def __init__(self, app):
        super().__init__(app)
        logger.info(
            "LoggingRedactionMiddleware initialized",
            extra={
                "event": "middleware.logging_redaction.init",
                "redacted_headers": sorted(self.SENSITIVE_HEADERS),
            },
        )

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request.state.redacted_headers = redact_headers(request.headers.items())
        return await call_next(request)


def redact_headers(items) -> dict[str, str]:
    return {
        name: (
            LoggingRedactionMiddleware.REDACTED_PLACEHOLDER
            if name.lower() in LoggingRedactionMiddleware.SENSITIVE_HEADERS
            else value
        )
        for name, value in items
    }


def get_safe_headers(request: Request) -> dict:
    """Headers safe for logging (sensitive values redacted).

    Falls back to redacting on the spot when the middleware did not run.
    """
    if hasattr(request.state, "redacted_headers"):
        return request.state.redacted_headers
    return redact_headers(request.headers.items())
