"""
Repository pattern for database operations.

Provides the notice store operations the pipeline and the CLI rely on:
insert-or-ignore ingestion, the pending-scrape queue, guarded enrichment
updates, and the filter/aggregate queries.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Sequence

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .models import IngestionRun, Notice, RunStatus, ScrapeStatus


@dataclass
class NoticeFilter:
    """Filters for listing notices. Unset fields are ignored."""

    category: str | None = None
    organization: str | None = None
    notice_type: str | None = None
    published_from: datetime | None = None
    published_to: datetime | None = None
    text: str | None = None
    scrape_status: str | None = None

    def conditions(self) -> list[Any]:
        conditions: list[Any] = []
        if self.category:
            conditions.append(Notice.category == self.category)
        if self.organization:
            conditions.append(Notice.organization.ilike(f"%{self.organization}%"))
        if self.notice_type:
            conditions.append(Notice.notice_type.ilike(f"%{self.notice_type}%"))
        if self.published_from is not None:
            conditions.append(Notice.published_at >= self.published_from)
        if self.published_to is not None:
            conditions.append(Notice.published_at <= self.published_to)
        if self.text:
            pattern = f"%{self.text}%"
            conditions.append(
                or_(
                    Notice.title.ilike(pattern),
                    Notice.description.ilike(pattern),
                    Notice.organization.ilike(pattern),
                )
            )
        if self.scrape_status:
            conditions.append(Notice.scrape_status == self.scrape_status)
        return conditions


# =============================================================================
# Notice Repository
# =============================================================================


class NoticeRepository:
    """Repository for Notice operations."""

    def __init__(self, session: Session):
        self.session = session

    def get_by_id(self, notice_id: int) -> Notice | None:
        """Get notice by ID."""
        return self.session.get(Notice, notice_id)

    def get_by_identifier(self, identifier: str) -> Notice | None:
        """Get notice by its dedup identifier."""
        stmt = select(Notice).where(Notice.identifier == identifier)
        return self.session.execute(stmt).scalar_one_or_none()

    # -------------------------------------------------------------------------
    # Ingestion
    # -------------------------------------------------------------------------

    def insert_or_ignore(
        self,
        identifier: str,
        published_at: datetime,
        title: str | None = None,
        description: str | None = None,
        source_link: str | None = None,
    ) -> bool:
        """Insert a notice unless its identifier already exists.

        Returns:
            True if a row was inserted
        """
        values = {
            "identifier": identifier,
            "title": title,
            "description": description,
            "published_at": published_at,
            "source_link": source_link,
        }

        dialect = self.session.get_bind().dialect.name
        if dialect == "sqlite":
            stmt = sqlite_insert(Notice).values(**values).on_conflict_do_nothing(
                index_elements=["identifier"]
            )
        elif dialect == "postgresql":
            stmt = pg_insert(Notice).values(**values).on_conflict_do_nothing(
                index_elements=["identifier"]
            )
        else:
            return self._insert_if_absent(values)

        result = self.session.execute(stmt)
        return result.rowcount == 1

    def _insert_if_absent(self, values: dict[str, Any]) -> bool:
        if self.get_by_identifier(values["identifier"]) is not None:
            return False
        try:
            with self.session.begin_nested():
                self.session.add(Notice(**values))
        except IntegrityError:
            return False
        return True

    # -------------------------------------------------------------------------
    # Scrape queue
    # -------------------------------------------------------------------------

    def _pending_conditions(self, max_attempts: int | None) -> list[Any]:
        conditions: list[Any] = [Notice.scrape_status == ScrapeStatus.NOT_SCRAPED]
        if max_attempts is not None:
            conditions.append(Notice.scrape_attempts < max_attempts)
        return conditions

    def select_pending(self, limit: int, max_attempts: int | None = None) -> Sequence[Notice]:
        """Un-scraped notices, most recently published first.

        Args:
            limit: Maximum notices to return
            max_attempts: Skip notices that already used this many attempts
        """
        stmt = (
            select(Notice)
            .where(and_(*self._pending_conditions(max_attempts)))
            .order_by(Notice.published_at.desc(), Notice.id.desc())
            .limit(limit)
        )
        return self.session.execute(stmt).scalars().all()

    def count_pending(self, max_attempts: int | None = None) -> int:
        stmt = select(func.count(Notice.id)).where(and_(*self._pending_conditions(max_attempts)))
        return self.session.execute(stmt).scalar_one()

    def mark_scraped(
        self,
        notice_id: int,
        detail: dict[str, Any],
        category: str,
        attempted_at: datetime,
    ) -> bool:
        """Write a full enrichment in one update.

        Only applies to a notice that is still un-scraped.

        Returns:
            True if the notice was updated
        """
        stmt = (
            update(Notice)
            .where(
                Notice.id == notice_id,
                Notice.scrape_status == ScrapeStatus.NOT_SCRAPED,
            )
            .values(
                **detail,
                category=category,
                classified=True,
                scrape_status=ScrapeStatus.SCRAPED,
                last_scrape_error=None,
                last_scrape_attempt_at=attempted_at,
                scrape_attempts=Notice.scrape_attempts + 1,
            )
        )
        return self.session.execute(stmt).rowcount == 1

    def mark_failed(self, notice_id: int, error: str, attempted_at: datetime) -> bool:
        """Record a failed attempt; the notice stays in the queue."""
        stmt = (
            update(Notice)
            .where(
                Notice.id == notice_id,
                Notice.scrape_status == ScrapeStatus.NOT_SCRAPED,
            )
            .values(
                last_scrape_error=error,
                last_scrape_attempt_at=attempted_at,
                scrape_attempts=Notice.scrape_attempts + 1,
            )
        )
        return self.session.execute(stmt).rowcount == 1

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def list_notices(
        self,
        filters: NoticeFilter | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Sequence[Notice]:
        """List notices with filters, newest first."""
        stmt = select(Notice)

        conditions = filters.conditions() if filters else []
        if conditions:
            stmt = stmt.where(and_(*conditions))

        stmt = stmt.order_by(Notice.published_at.desc(), Notice.id.desc())
        stmt = stmt.limit(limit).offset(offset)

        return self.session.execute(stmt).scalars().all()

    def count_notices(self, filters: NoticeFilter | None = None) -> int:
        stmt = select(func.count(Notice.id))
        conditions = filters.conditions() if filters else []
        if conditions:
            stmt = stmt.where(and_(*conditions))
        return self.session.execute(stmt).scalar_one()

    def count_by_category(self) -> dict[str, int]:
        """Count classified notices grouped by category."""
        stmt = (
            select(Notice.category, func.count(Notice.id))
            .where(Notice.category.is_not(None))
            .group_by(Notice.category)
            .order_by(func.count(Notice.id).desc())
        )
        return {category: count for category, count in self.session.execute(stmt).all()}

    def count_by_type(self) -> dict[str, int]:
        """Count notices grouped by notice type."""
        stmt = (
            select(Notice.notice_type, func.count(Notice.id))
            .where(Notice.notice_type.is_not(None))
            .group_by(Notice.notice_type)
            .order_by(func.count(Notice.id).desc())
        )
        return {notice_type: count for notice_type, count in self.session.execute(stmt).all()}

    def count_by_status(self) -> dict[str, int]:
        stmt = select(Notice.scrape_status, func.count(Notice.id)).group_by(Notice.scrape_status)
        return {status: count for status, count in self.session.execute(stmt).all()}

    def list_created_since(self, since: datetime, limit: int | None = None) -> Sequence[Notice]:
        """Notices first seen at or after ``since``, newest first."""
        stmt = (
            select(Notice)
            .where(Notice.created_at >= since)
            .order_by(Notice.published_at.desc(), Notice.id.desc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        return self.session.execute(stmt).scalars().all()


# =============================================================================
# Run Repository
# =============================================================================


class RunRepository:
    """Repository for IngestionRun operations."""

    def __init__(self, session: Session):
        self.session = session

    def create(self, run_type: str, started_at: datetime | None = None) -> IngestionRun:
        """Create a new run in RUNNING state."""
        run = IngestionRun(
            run_type=run_type,
            status=RunStatus.RUNNING,
            started_at=started_at or datetime.utcnow(),
        )
        self.session.add(run)
        self.session.flush()
        return run

    def get_by_id(self, run_id: int) -> IngestionRun | None:
        """Get run by ID."""
        return self.session.get(IngestionRun, run_id)

    def complete(
        self,
        run_id: int,
        status: str = RunStatus.COMPLETED,
        error_message: str | None = None,
        items_seen: int | None = None,
        items_new: int | None = None,
        items_succeeded: int | None = None,
        items_failed: int | None = None,
    ) -> None:
        """Mark a run as finished and store its counts."""
        run = self.get_by_id(run_id)
        if not run:
            return

        run.status = status
        run.finished_at = datetime.utcnow()
        run.error_message = error_message

        if items_seen is not None:
            run.items_seen = items_seen
        if items_new is not None:
            run.items_new = items_new
        if items_succeeded is not None:
            run.items_succeeded = items_succeeded
        if items_failed is not None:
            run.items_failed = items_failed

    def get_recent(self, run_type: str | None = None, limit: int = 20) -> Sequence[IngestionRun]:
        """Get recent runs."""
        stmt = select(IngestionRun)

        if run_type is not None:
            stmt = stmt.where(IngestionRun.run_type == run_type)

        stmt = stmt.order_by(IngestionRun.started_at.desc(), IngestionRun.id.desc())
        stmt = stmt.limit(limit)

        return self.session.execute(stmt).scalars().all()
