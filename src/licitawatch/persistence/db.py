"""
Database connection and session management.

Provides sync database access with connection pooling and a session
scope that commits on success, rolls back on error and reports
database failures as PersistenceError.
"""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Callable, ContextManager, Generator

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .models import Base

DEFAULT_DATABASE_URL = "sqlite:///data/licitawatch.db"

SessionScope = Callable[[], ContextManager[Session]]


class PersistenceError(Exception):
    """The store failed or is unreachable."""


# =============================================================================
# Global Engine References
# =============================================================================

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


# =============================================================================
# SQLite Configuration
# =============================================================================


def _is_memory_sqlite(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:")


def _configure_sqlite(engine: Engine, *, wal: bool = True) -> None:
    """Per-connection pragmas. WAL only applies to file databases.

    pysqlite's own transaction handling is switched off and SQLAlchemy
    emits BEGIN, so SAVEPOINTs (``Session.begin_nested``) nest correctly.
    """
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        if wal:
            cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.close()

    @event.listens_for(engine, "begin")
    def begin_transaction(conn):
        conn.exec_driver_sql("BEGIN")


# =============================================================================
# Engine Creation
# =============================================================================


def create_db_engine(
    url: str = DEFAULT_DATABASE_URL,
    echo: bool = False,
    pool_size: int = 5,
) -> Engine:
    """Create a new engine without touching the global one.

    In-memory SQLite shares a single connection so every session sees
    the same database.
    """
    if url.startswith("sqlite"):
        if _is_memory_sqlite(url):
            engine = create_engine(
                url,
                echo=echo,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
            _configure_sqlite(engine, wal=False)
            return engine

        if url.startswith("sqlite:///"):
            db_path = url.replace("sqlite:///", "", 1)
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)

        engine = create_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False},
        )
        _configure_sqlite(engine)
        return engine

    return create_engine(
        url,
        echo=echo,
        pool_size=pool_size,
        max_overflow=10,
        pool_pre_ping=True,
    )


def make_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )


def get_engine(
    url: str = DEFAULT_DATABASE_URL,
    echo: bool = False,
    pool_size: int = 5,
) -> Engine:
    """The process-wide engine, created on first call.

    Later calls return the same engine whatever ``url`` they pass.
    """
    global _engine, _session_factory

    if _engine is not None:
        return _engine

    _engine = create_db_engine(url, echo=echo, pool_size=pool_size)
    _session_factory = make_session_factory(_engine)

    return _engine


# =============================================================================
# Session Management
# =============================================================================


@contextmanager
def session_scope(factory: sessionmaker[Session] | None = None) -> Generator[Session, None, None]:
    """One unit of work against ``factory`` (default: the global engine).

    Commits when the block exits cleanly and rolls back otherwise.
    SQLAlchemy errors are re-raised as PersistenceError.
    """
    if factory is None:
        if _session_factory is None:
            get_engine()  # Initialize with defaults
        factory = _session_factory

    assert factory is not None
    session = factory()

    try:
        yield session
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        raise PersistenceError(str(e)) from e
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_session() -> ContextManager[Session]:
    """Session scope bound to the global engine."""
    return session_scope()


def scope_for(factory: sessionmaker[Session]) -> SessionScope:
    """A zero-argument session scope bound to ``factory``."""
    def scope() -> ContextManager[Session]:
        return session_scope(factory)

    return scope


# =============================================================================
# Database Initialization
# =============================================================================


def init_db(url: str = DEFAULT_DATABASE_URL, echo: bool = False) -> None:
    """Create all tables that don't exist yet."""
    engine = get_engine(url, echo=echo)
    try:
        Base.metadata.create_all(bind=engine)
    except SQLAlchemyError as e:
        raise PersistenceError(f"Cannot initialize database: {e}") from e


def drop_db(url: str = DEFAULT_DATABASE_URL) -> None:
    """Drop every table. All stored notices and runs are lost."""
    engine = get_engine(url)
    try:
        Base.metadata.drop_all(bind=engine)
    except SQLAlchemyError as e:
        raise PersistenceError(f"Cannot drop database: {e}") from e


def check_connection(engine: Engine | None = None) -> None:
    """Round-trip a trivial query.

    Raises:
        PersistenceError: If the store is unreachable
    """
    engine = engine or get_engine()
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        raise PersistenceError(f"Database unreachable: {e}") from e


# =============================================================================
# Cleanup
# =============================================================================


def dispose_engines() -> None:
    """Release pooled connections and forget the global engine."""
    global _engine, _session_factory

    if _engine is not None:
        _engine.dispose()
        _engine = None
        _session_factory = None
