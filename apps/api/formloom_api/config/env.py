"""Environment variable resolution utilities.

Canonical env names + fail-fast validation for required values.
"""

import os
from typing import Optional

DEFAULT_OPENAI_BASE_URL = "https://api.openai.com/v1"
DEFAULT_OPENAI_MODEL = "gpt-4o-mini"
DEFAULT_LOCAL_DATABASE_URL = "sqlite:///./formloom.db"


def get_formloom_env() -> str:
    """Get environment name.

    Priority:
    1. FORMLOOM_ENV (canonical)
    2. Default: "local"

    Returns:
        Environment name (lowercase)
    """
    return (os.getenv("FORMLOOM_ENV") or "local").lower()


def is_production_env() -> bool:
    """True when FORMLOOM_ENV is prod/production."""
    return get_formloom_env() in {"prod", "production"}


def get_database_url() -> str:
    """Get database URL from environment.

    DATABASE_URL is mandatory in production. Local/test environments fall
    back to a SQLite file in the working directory.

    Raises:
        RuntimeError: If DATABASE_URL is missing in production
    """
    url = os.getenv("DATABASE_URL")
    if url:
        return url
    if is_production_env():
        raise RuntimeError(
            "DATABASE_URL environment variable is required in production (FORMLOOM_ENV=prod). "
            "Check deployment configuration and secrets injection."
        )
    return DEFAULT_LOCAL_DATABASE_URL


def get_db_pool_mode() -> str:
    """Connection pool mode: "nullpool" (default) or "queuepool"."""
    mode = (os.getenv("FORMLOOM_DB_POOL") or "nullpool").lower()
    if mode not in {"nullpool", "queuepool"}:
        raise ValueError(
            f"FORMLOOM_DB_POOL must be 'nullpool' or 'queuepool', got '{mode}'."
        )
    return mode


def get_openai_api_key() -> Optional[str]:
    """Get the AI provider API key (None when not configured).

    Callers decide how to fail; the AI layer reports a configuration error.
    """
    return os.getenv("OPENAI_API_KEY") or None


def get_openai_base_url() -> str:
    return (os.getenv("OPENAI_BASE_URL") or DEFAULT_OPENAI_BASE_URL).rstrip("/")


def get_openai_model() -> str:
    return os.getenv("OPENAI_MODEL") or DEFAULT_OPENAI_MODEL


def get_ai_token_prices() -> tuple[int, int]:
    """Estimated provider price per 1K tokens in USD micros.

    Returns:
        (prompt_price, completion_price)
    """
    prompt_price = int(os.getenv("AI_COST_PER_1K_PROMPT_TOKENS_USD_MICROS", "150"))
    completion_price = int(os.getenv("AI_COST_PER_1K_COMPLETION_TOKENS_USD_MICROS", "600"))
    if prompt_price < 0 or completion_price < 0:
        raise ValueError("AI token prices must be non-negative integers (USD micros).")
    return prompt_price, completion_price


def get_cors_allowed_origins() -> list[str]:
    """CORS allowlist.

    Production: explicit comma-separated CORS_ALLOWED_ORIGINS.
    Dev fallback: localhost variants.
    """
    raw = os.getenv("CORS_ALLOWED_ORIGINS", "")
    if raw:
        return [origin.strip() for origin in raw.split(",") if origin.strip()]
    return [
        "http://localhost:3000",
        "http://localhost:8000",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:8000",
    ]


def json_logs_enabled() -> bool:
    """Structured JSON logs are on unless FORMLOOM_JSON_LOGS=false."""
    return os.getenv("FORMLOOM_JSON_LOGS", "true").lower() != "false"


def get_log_level() -> str:
    return os.getenv("LOG_LEVEL", "INFO").upper()
