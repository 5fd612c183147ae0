"""Middleware modules."""

from .logging_redaction import LoggingRedactionMiddleware, get_safe_headers

__all__ = [
    "LoggingRedactionMiddleware",
    "get_safe_headers",
]
