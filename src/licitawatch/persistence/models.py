"""
SQLAlchemy ORM models for LicitaWatch.

Defines the database schema:
- Notices: procurement notices with their detail-page enrichment
- IngestionRuns: execution log of feed syncs and scrape cycles
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


# =============================================================================
# Status Values
# =============================================================================


class ScrapeStatus:
    """Detail-scrape state of a notice. Only NOT_SCRAPED -> SCRAPED is allowed."""

    NOT_SCRAPED = "not_scraped"
    SCRAPED = "scraped"


class RunType:
    FEED_SYNC = "feed_sync"
    SCRAPE = "scrape"


class RunStatus:
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


# =============================================================================
# Base Class
# =============================================================================


class Base(DeclarativeBase):
    """Base class for all ORM models."""


# =============================================================================
# Mixins
# =============================================================================


class TimestampMixin:
    """Mixin providing created_at and updated_at columns."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        nullable=False,
        index=True,
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime,
        default=None,
        onupdate=datetime.utcnow,
        nullable=True,
    )


# =============================================================================
# Notice Model
# =============================================================================


class Notice(Base, TimestampMixin):
    """A procurement notice from the feed, enriched from its detail page."""

    __tablename__ = "notices"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    identifier: Mapped[str] = mapped_column(String(1000), unique=True, nullable=False)

    # Feed fields
    title: Mapped[str | None] = mapped_column(Text, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    published_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    source_link: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Detail fields; text values are as long as labels.max_value_chars allows
    organization: Mapped[str | None] = mapped_column(Text, nullable=True, index=True)
    sub_unit: Mapped[str | None] = mapped_column(Text, nullable=True)
    notice_type: Mapped[str | None] = mapped_column(Text, nullable=True, index=True)
    opening_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    opening_location: Mapped[str | None] = mapped_column(Text, nullable=True)
    delivery_location: Mapped[str | None] = mapped_column(Text, nullable=True)
    document_price: Mapped[str | None] = mapped_column(Text, nullable=True)
    extension_deadline: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    clarification_deadline: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    resolution_state: Mapped[str | None] = mapped_column(Text, nullable=True)
    resolution_number: Mapped[str | None] = mapped_column(Text, nullable=True)
    resolution_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    total_amount: Mapped[float | None] = mapped_column(Float, nullable=True)
    revolving_funds: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    contact_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    contact_email: Mapped[str | None] = mapped_column(Text, nullable=True)
    contact_phone: Mapped[str | None] = mapped_column(Text, nullable=True)
    attachment_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Classification
    category: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    classified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Scrape state
    scrape_status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ScrapeStatus.NOT_SCRAPED,
    )
    last_scrape_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_scrape_attempt_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    scrape_attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    __table_args__ = (
        Index("ix_notice_status_published", "scrape_status", "published_at"),
    )

    def __repr__(self) -> str:
        return f"<Notice(id={self.id}, identifier='{self.identifier[:40]}', status='{self.scrape_status}')>"


# =============================================================================
# Ingestion Run Model
# =============================================================================


class IngestionRun(Base):
    """Execution log for a feed sync or a scrape cycle."""

    __tablename__ = "ingestion_runs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    run_type: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=RunStatus.RUNNING,
        index=True,
    )

    # Timing
    started_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    finished_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    # Statistics
    items_seen: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    items_new: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    items_succeeded: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    items_failed: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    @property
    def duration_seconds(self) -> float | None:
        if self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()

    def __repr__(self) -> str:
        return f"<IngestionRun(id={self.id}, type='{self.run_type}', status='{self.status}')>"
