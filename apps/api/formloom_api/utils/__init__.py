"""Utility functions and helpers."""

from formloom_api.utils.logging import JSONFormatter, configure_json_logging
from formloom_api.utils.slugs import base36, generate_id, generate_slug

__all__ = [
    "JSONFormatter",
    "configure_json_logging",
    "base36",
    "generate_id",
    "generate_slug",
]
