"""
Storage - Database.

============================================================
RESPONSIBILITY
============================================================
Engine and session management for the import service.

- Builds the SQLAlchemy engine from DATABASE_URL
- Hands out sessions (caller-managed or scoped)
- Creates the schema on startup
- Checks that the database is reachable

============================================================
CONFIGURATION
============================================================
DATABASE_URL    SQLAlchemy URL, read from the environment
                (a .env file is honoured).
                Defaults to a local SQLite file.

============================================================
"""

import logging
import os
from contextlib import contextmanager
from typing import Generator, Optional

from dotenv import load_dotenv
from sqlalchemy import Engine, create_engine, event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from storage.models.base import Base


logger = logging.getLogger(__name__)


DEFAULT_DATABASE_URL = "sqlite:///./trade_import.db"
IN_MEMORY_URLS = {"sqlite://", "sqlite:///:memory:"}

_engine: Optional[Engine] = None
_SessionFactory: Optional[sessionmaker] = None


# =============================================================
# ENGINE
# =============================================================


def get_database_url() -> str:
    """Get database URL from environment."""
    load_dotenv()
    url = os.getenv("DATABASE_URL")
    if not url:
        logger.warning(f"DATABASE_URL not set, using default: {DEFAULT_DATABASE_URL}")
        url = DEFAULT_DATABASE_URL
    return url


def create_database_engine(
    url: Optional[str] = None,
    pool_size: int = 5,
    max_overflow: int = 10,
    pool_recycle: int = 1800,
    echo: bool = False,
) -> Engine:
    """
    Create a new SQLAlchemy engine.

    Pool sizing applies to server databases only.

    Args:
        url: Database URL, defaults to get_database_url()
        pool_size: Connections kept in the pool
        max_overflow: Connections allowed beyond pool_size
        pool_recycle: Recycle connections after N seconds
        echo: Log SQL statements

    Returns:
        SQLAlchemy Engine
    """
    url = url or get_database_url()
    logger.info(f"Creating database engine for: {url.split('@')[-1]}")

    if url.startswith("sqlite"):
        options = {"connect_args": {"check_same_thread": False}}
        if url in IN_MEMORY_URLS:
            # In-memory databases live on one shared connection
            options["poolclass"] = StaticPool
        engine = create_engine(url, echo=echo, **options)
    else:
        engine = create_engine(
            url,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_recycle=pool_recycle,
            pool_pre_ping=True,
            echo=echo,
        )

    @event.listens_for(engine, "connect")
    def on_connect(dbapi_conn, connection_record):
        logger.debug("Database connection established")

    return engine


def get_engine() -> Engine:
    """Get the process-wide engine, creating it on first use."""
    global _engine
    if _engine is None:
        _engine = create_database_engine()
    return _engine


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(
        bind=engine,
        autoflush=False,
        expire_on_commit=False,
    )


def get_session_factory() -> sessionmaker:
    """Get the session factory bound to the process-wide engine."""
    global _SessionFactory
    if _SessionFactory is None:
        _SessionFactory = create_session_factory(get_engine())
    return _SessionFactory


# =============================================================
# SESSION MANAGEMENT
# =============================================================


@contextmanager
def get_db_session(factory: Optional[sessionmaker] = None) -> Generator[Session, None, None]:
    """
    Session with automatic rollback on error and cleanup.

    The caller commits.

    Usage:
        with get_db_session() as session:
            session.add(trade)
            session.commit()
    """
    session = (factory or get_session_factory())()
    try:
        yield session
    except SQLAlchemyError as e:
        logger.error(f"Database error, rolling back: {e}")
        session.rollback()
        raise
    finally:
        session.close()


@contextmanager
def transaction_scope(factory: Optional[sessionmaker] = None) -> Generator[Session, None, None]:
    """
    Session that commits when the block exits cleanly and
    rolls back on any exception.
    """
    session = (factory or get_session_factory())()
    try:
        yield session
        session.commit()
        logger.debug("Database transaction committed")
    except Exception as e:
        logger.error(f"Database transaction failed, rolling back: {e}")
        session.rollback()
        raise
    finally:
        session.close()


# =============================================================
# INITIALIZATION
# =============================================================


def create_all_tables(engine: Optional[Engine] = None) -> None:
    """Create all tables registered on Base.metadata if missing."""
    # Register models with the metadata
    from storage import models  # noqa: F401

    engine = engine or get_engine()
    logger.info("Creating database tables...")
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ready")


def verify_database_connection(engine: Optional[Engine] = None) -> bool:
    """
    Run SELECT 1 against the database.

    Returns:
        True if the database answered, False otherwise
    """
    engine = engine or get_engine()
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1")).fetchone()
        return True
    except SQLAlchemyError as e:
        logger.error(f"Database connection failed: {e}")
        return False


__all__ = [
    "DEFAULT_DATABASE_URL",
    "get_database_url",
    "create_database_engine",
    "get_engine",
    "create_session_factory",
    "get_session_factory",
    "get_db_session",
    "transaction_scope",
    "create_all_tables",
    "verify_database_connection",
]
