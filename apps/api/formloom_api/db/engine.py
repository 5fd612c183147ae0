"""Database engine builder shared by the app, migrations and tests.

- Default: NullPool (client-side pooling disabled, suits PgBouncer/Supabase pooler)
- ENV: FORMLOOM_DB_POOL=nullpool|queuepool (default: nullpool)
- SQLite (local/test): check_same_thread disabled, foreign keys enforced
- Postgres: application_name tagging for observability
"""

import logging
import os
import re
from typing import Any, Optional

from sqlalchemy import Engine, NullPool, create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from formloom_api.config.env import get_database_url, get_db_pool_mode

logger = logging.getLogger(__name__)


def _mask_password(url: str) -> str:
    """Mask password in database URL for safe logging."""
    return re.sub(r"://([^:]+):([^@]+)@", r"://\1:***@", url)


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def _enable_sqlite_foreign_keys(engine: Engine) -> None:
    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):  # noqa: ARG001
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def build_engine(database_url: Optional[str] = None) -> Engine:
    """
    Build SQLAlchemy engine with the pool policy.

    Args:
        database_url: Database URL. If None, resolved from environment.

    Returns:
        SQLAlchemy Engine instance.

    Raises:
        ValueError: If FORMLOOM_DB_POOL is invalid.
        RuntimeError: If DATABASE_URL is missing in production.

    Environment Variables:
        DATABASE_URL: Runtime connection string
        FORMLOOM_DB_POOL: Pool mode - "nullpool" (default) | "queuepool"
        FORMLOOM_DB_POOL_SIZE: QueuePool size (default: 5, only for queuepool)
        FORMLOOM_DB_MAX_OVERFLOW: QueuePool overflow (default: 10, only for queuepool)
    """
    url = database_url or get_database_url()

    connect_args: dict[str, Any] = {}
    if _is_sqlite(url):
        connect_args["check_same_thread"] = False
    else:
        app_name = os.getenv("FORMLOOM_DB_APPLICATION_NAME", "formloom-api")
        if app_name:
            connect_args["application_name"] = app_name

    pool_mode = get_db_pool_mode()

    if pool_mode == "nullpool":
        engine = create_engine(
            url,
            poolclass=NullPool,
            pool_pre_ping=True,
            connect_args=connect_args,
        )
    else:
        pool_size = int(os.getenv("FORMLOOM_DB_POOL_SIZE", "5"))
        max_overflow = int(os.getenv("FORMLOOM_DB_MAX_OVERFLOW", "10"))
        engine = create_engine(
            url,
            pool_pre_ping=True,
            pool_size=pool_size,
            max_overflow=max_overflow,
            connect_args=connect_args,
        )

    if _is_sqlite(url):
        _enable_sqlite_foreign_keys(engine)

    logger.debug(
        "Database engine created: pool=%s, url=%s",
        engine.pool.__class__.__name__,
        _mask_password(url),
    )

    return engine


def build_sessionmaker(engine: Engine) -> sessionmaker[Session]:
    """
    Build SQLAlchemy sessionmaker.

    Args:
        engine: SQLAlchemy Engine instance.

    Returns:
        sessionmaker instance configured with autocommit=False, autoflush=False.
    """
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)
