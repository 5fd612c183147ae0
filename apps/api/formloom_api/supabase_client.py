"""Supabase client configuration for session verification.

Formloom does not manage passwords or signups itself. The web app signs users
in with Supabase Auth and sends the resulting access token; the API only
verifies it through ``auth.get_user``.

KEY NAMING:
- New Supabase UI (2024+): SB_PUBLISHABLE_KEY
- Legacy (pre-2024): SUPABASE_ANON_KEY
- Falls back to the legacy name if the new name is not set
"""

import logging
import os
from functools import lru_cache

from supabase import Client, create_client

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_supabase_url() -> str:
    """Get Supabase project URL from environment.

    Raises:
        RuntimeError: If SUPABASE_URL not set
    """
    url = os.getenv("SUPABASE_URL")
    if not url:
        raise RuntimeError(
            "SUPABASE_URL environment variable not set. "
            "Required to verify session tokens."
        )
    return url


@lru_cache(maxsize=1)
def get_supabase_api_key() -> str:
    """Get Supabase publishable (anon) key from environment.

    Priority:
    1. SB_PUBLISHABLE_KEY
    2. SUPABASE_ANON_KEY (legacy)

    Raises:
        RuntimeError: If neither key is set
    """
    key = os.getenv("SB_PUBLISHABLE_KEY")
    if key:
        return key

    key = os.getenv("SUPABASE_ANON_KEY")
    if key:
        logger.info(
            "Using legacy SUPABASE_ANON_KEY (consider migrating to SB_PUBLISHABLE_KEY)"
        )
        return key

    raise RuntimeError(
        "Neither SB_PUBLISHABLE_KEY nor SUPABASE_ANON_KEY environment variable is set. "
        "Set SB_PUBLISHABLE_KEY (recommended) or SUPABASE_ANON_KEY (legacy)."
    )


@lru_cache(maxsize=1)
def get_supabase_client() -> Client:
    """Get the shared Supabase client used for JWT verification.

    Raises:
        RuntimeError: If environment variables not set
    """
    url = get_supabase_url()
    api_key = get_supabase_api_key()

    # Never log the key itself
    logger.info(
        "Initializing Supabase client",
        extra={
            "event": "supabase.client.init",
            "supabase_url": url,
            "key_type": "publishable",
        },
    )

    return create_client(url, api_key)
