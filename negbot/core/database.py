"""
Database utilities and connection management.

WHAT: SQLAlchemy engine, session factory, and schema bootstrap
WHY: Durable store shared by every concurrently running negotiation
HOW: SQLAlchemy sync engine v2 with WAL mode, session management
"""

from sqlalchemy import create_engine, text, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool
from contextlib import contextmanager
from pathlib import Path

from .config import settings
from ..utils.logger import get_logger

logger = get_logger(__name__)

# Base for models
Base = declarative_base()


def _is_memory_url(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:")


def create_db_engine(url: str, *, echo: bool = False) -> Engine:
    """
    Create an engine for the given database URL.

    WHAT: Engine factory shared by the app and the tests
    WHY: Sessions and tests must be able to point at different databases
    HOW: SQLite gets WAL + foreign keys on every connection; in-memory
         databases share one connection so all sessions see the same data

    Args:
        url: SQLAlchemy database URL
        echo: Log emitted SQL

    Returns:
        Engine
    """
    kwargs = {"echo": echo, "future": True}

    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if _is_memory_url(url):
            kwargs["poolclass"] = StaticPool
        else:
            # Ensure data directory exists
            data_dir = Path(url.replace("sqlite:///", "")).parent
            data_dir.mkdir(parents=True, exist_ok=True)

    db_engine = create_engine(url, **kwargs)

    if url.startswith("sqlite"):
        @event.listens_for(db_engine, "connect")
        def set_sqlite_pragma(dbapi_conn, connection_record):
            """Enable WAL mode for better concurrency."""
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA foreign_keys=ON")  # Enable FK constraints
            cursor.close()

    return db_engine


def make_session_factory(db_engine: Engine) -> sessionmaker:
    """Build a session factory bound to an engine."""
    return sessionmaker(
        bind=db_engine,
        expire_on_commit=False,
        autoflush=False,
        autocommit=False
    )


# Default engine and session factory from settings
engine = create_db_engine(settings.DATABASE_URL, echo=settings.DEBUG)
SessionLocal = make_session_factory(engine)


@contextmanager
def get_db(session_factory: sessionmaker | None = None):
    """
    Context manager for database session.

    Usage:
        with get_db() as db:
            # use db session
            pass

    Args:
        session_factory: Factory to open the session from (defaults to SessionLocal)

    Yields:
        Session: SQLAlchemy session
    """
    session = (session_factory or SessionLocal)()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def ping_database(db_engine: Engine | None = None) -> dict:
    """
    Check database connectivity.

    Returns:
        Dict with status and info
    """
    db_engine = db_engine or engine
    try:
        with db_engine.connect() as conn:
            result = conn.execute(text("SELECT 1"))
            result.fetchone()

        return {
            "available": True,
            "url": db_engine.url.render_as_string(hide_password=True),
            "error": None
        }
    except Exception as e:
        logger.error(f"Database ping failed: {e}")
        return {
            "available": False,
            "url": db_engine.url.render_as_string(hide_password=True),
            "error": str(e)
        }


def init_db(db_engine: Engine | None = None):
    """Create all tables."""
    # Register models on Base.metadata
    from . import models  # noqa: F401

    db_engine = db_engine or engine
    Base.metadata.create_all(bind=db_engine)
    logger.info(f"Database initialized ({db_engine.url.render_as_string(hide_password=True)})")


def close_db(db_engine: Engine | None = None):
    """Close database connections."""
    (db_engine or engine).dispose()
    logger.info("Database connections closed")
