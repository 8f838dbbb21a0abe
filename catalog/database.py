import logging
import sqlite3
from pathlib import Path
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from .models import Base

logger = logging.getLogger(__name__)

# Global state for the current database
_current_engine: Engine | None = None
_current_session_factory: sessionmaker | None = None


@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_connection, connection_record):
    """Enable foreign keys for SQLite."""
    if not isinstance(dbapi_connection, sqlite3.Connection):
        return
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _engine_options(db_url: str) -> dict:
    """Driver options; SQLite needs cross-thread access under the threadpool."""
    if not db_url.startswith("sqlite"):
        return {"pool_pre_ping": True}
    options = {"connect_args": {"check_same_thread": False}}
    if db_url in ("sqlite://", "sqlite:///:memory:"):
        # One shared connection, otherwise every session sees an empty database
        options["poolclass"] = StaticPool
    return options


def init_db(db_url: str) -> None:
    """
    Connect to the catalog database.

    Creates the tables if they don't exist. For a SQLite file URL the parent
    directory is created as well.
    """
    global _current_engine, _current_session_factory

    if _current_engine is not None:
        close_db()

    if db_url.startswith("sqlite:///") and db_url != "sqlite:///:memory:":
        Path(db_url[len("sqlite:///"):]).parent.mkdir(parents=True, exist_ok=True)

    _current_engine = create_engine(db_url, echo=False, **_engine_options(db_url))
    _current_session_factory = sessionmaker(bind=_current_engine)

    # Create tables if they don't exist
    Base.metadata.create_all(_current_engine)
    logger.info("Connected to database %s", _current_engine.url.render_as_string(hide_password=True))


def close_db() -> None:
    """Dispose of the current engine."""
    global _current_engine, _current_session_factory

    if _current_engine is not None:
        _current_engine.dispose()
        _current_engine = None
        _current_session_factory = None


def get_session() -> Session:
    """Get a new database session."""
    if _current_session_factory is None:
        raise RuntimeError("Database is not initialised")
    return _current_session_factory()


def get_db():
    """FastAPI dependency for database sessions."""
    session = get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def is_db_ready() -> bool:
    """Check if a database connection has been set up."""
    return _current_engine is not None
