"""
Database session management for RosterMatch.

Provides the SQLAlchemy engine and session factory with connection
pooling configured from config.py. The engine is created lazily, so
importing this module never touches the database driver.

Usage:
    from rostermatch.db import get_session
    from rostermatch.players import PlayerDeduplicationService

    with get_session() as session:
        service = PlayerDeduplicationService(session)
        result = service.find_match(candidate)
        # Commits automatically on exit, rolls back on exception
"""

from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from rostermatch.config import settings


def get_engine(database_url: Optional[str] = None) -> Engine:
    """
    Create SQLAlchemy engine with connection pooling.

    The engine is configured with:
    - Connection pool for efficient reuse (server databases only)
    - Echo mode disabled (set LOG_LEVEL=DEBUG for SQL logging)
    - Pre-ping to verify connections before use (handles stale connections)
    """
    url = database_url or settings.database_url
    options = {
        "pool_pre_ping": True,
        "echo": settings.log_level == "DEBUG",
    }
    # SQLite uses a single-connection pool that rejects sizing arguments
    if not url.startswith("sqlite"):
        options["pool_size"] = settings.db_pool_size
        options["max_overflow"] = settings.db_max_overflow
    return create_engine(url, **options)


# Created on first use (singleton via module-level variable)
_engine: Optional[Engine] = None


def _get_engine() -> Engine:
    """Get or create the singleton engine instance."""
    global _engine
    if _engine is None:
        _engine = get_engine()
    return _engine


# Session factory - bound to the engine when a session is opened
SessionLocal = sessionmaker(
    autocommit=False,  # Commits are explicit
    autoflush=False,  # Don't auto-flush before queries (more control)
)


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """
    Context manager for database sessions.

    Automatically commits on successful exit, rolls back on exception.

    Raises:
        Any exception from the database operation (after rollback)
    """
    session = SessionLocal(bind=_get_engine())
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
