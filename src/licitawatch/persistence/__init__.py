"""Database persistence layer."""

from .db import (
    PersistenceError,
    check_connection,
    get_engine,
    get_session,
    init_db,
    session_scope,
)
from .models import Base, IngestionRun, Notice, RunStatus, RunType, ScrapeStatus
from .repo import NoticeFilter, NoticeRepository, RunRepository

__all__ = [
    "PersistenceError",
    "check_connection",
    "get_engine",
    "get_session",
    "init_db",
    "session_scope",
    "Base",
    "Notice",
    "IngestionRun",
    "ScrapeStatus",
    "RunType",
    "RunStatus",
    "NoticeFilter",
    "NoticeRepository",
    "RunRepository",
]
