"""
Ingestion coordinator.

Coordinates the two pipeline activities: feed syncs (poll → insert new
notices) and scrape cycles (pending notices → detail page → classify →
persist). At most one scrape cycle runs per coordinator; triggers that
arrive while one is active return immediately instead of queueing.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Callable

from ...persistence.db import PersistenceError, SessionScope, session_scope
from ...persistence.models import Notice, RunStatus, RunType
from ...persistence.repo import NoticeRepository, RunRepository
from ..backends.base import Backend, RateLimitError
from ..backends.http_backend import HttpBackend
from ..classify.classifier import Classifier
from ..config.models import AppConfig
from ..extract.base import NoticeDetail
from ..extract.detail import DetailExtractor, DetailScraper
from ..feed.fetcher import FeedFetcher, SyncResult
from ..fetch.throttling import PolitenessThrottle, SleepFunc, ThrottleConfig
from ..logging import get_contextual_logger

logger = logging.getLogger(__name__)


@dataclass
class SyncStatus:
    """What the last successful feed sync did."""

    last_sync_at: datetime | None = None
    last_sync_started_at: datetime | None = None
    last_new_count: int = 0
    last_total_parsed: int = 0
    sync_count: int = 0
    last_error: str | None = None


@dataclass
class ScrapeCycleResult:
    """Statistics for one scrape cycle."""

    skipped: bool = False
    selected: int = 0
    succeeded: int = 0
    failed: int = 0
    rate_limited: int = 0
    run_id: int | None = None

    started_at: datetime = field(default_factory=datetime.utcnow)
    finished_at: datetime | None = None

    errors: list[str] = field(default_factory=list)

    @property
    def duration_seconds(self) -> float | None:
        """Get cycle duration in seconds."""
        if self.finished_at:
            return (self.finished_at - self.started_at).total_seconds()
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "skipped": self.skipped,
            "selected": self.selected,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "rate_limited": self.rate_limited,
            "run_id": self.run_id,
            "duration_seconds": self.duration_seconds,
        }


@dataclass(frozen=True)
class PendingNotice:
    """Detached copy of the notice fields a scrape cycle needs."""

    id: int
    identifier: str
    title: str | None
    description: str | None
    source_link: str | None

    @classmethod
    def from_model(cls, notice: Notice) -> "PendingNotice":
        return cls(
            id=notice.id,
            identifier=notice.identifier,
            title=notice.title,
            description=notice.description,
            source_link=notice.source_link,
        )


class IngestionCoordinator:
    """Run feed syncs and scrape cycles against the notice store.

    Items in a scrape cycle are processed strictly one after another with
    a politeness pause between them. Each item's outcome is written in
    its own transaction, so an interrupted cycle leaves every unfinished
    notice un-scraped and eligible for the next one.
    """

    def __init__(
        self,
        feed_fetcher: FeedFetcher,
        scraper: DetailScraper,
        classifier: Classifier | None = None,
        throttle: PolitenessThrottle | None = None,
        *,
        scope: SessionScope = session_scope,
        batch_size: int = 20,
        max_scrape_attempts: int | None = None,
        classifier_fields: list[str] | None = None,
        scrape_after_sync: bool = True,
        clock: Callable[[], datetime] = datetime.utcnow,
    ) -> None:
        """Initialize the coordinator.

        Args:
            feed_fetcher: Feed poller
            scraper: Detail-page scraper
            classifier: Category scorer (default categories if None)
            throttle: Inter-item politeness throttle
            scope: Session scope factory for every store access
            batch_size: Default number of notices per scrape cycle
            max_scrape_attempts: Stop selecting notices after this many attempts
            classifier_fields: Detail fields fed to the classifier with title
                and description (every text field if None)
            scrape_after_sync: Run a cycle after a sync that found new notices
            clock: Source of "now" for timestamps
        """
        self.feed_fetcher = feed_fetcher
        self.scraper = scraper
        self.classifier = classifier or Classifier()
        self.throttle = throttle or PolitenessThrottle()
        self.scope = scope
        self.batch_size = batch_size
        self.max_scrape_attempts = max_scrape_attempts
        self.classifier_fields = classifier_fields
        self.scrape_after_sync = scrape_after_sync
        self.clock = clock

        self.sync_status = SyncStatus()
        self._scrape_lock = asyncio.Lock()
        self._tasks: set[asyncio.Task[Any]] = set()

    @property
    def scrape_in_progress(self) -> bool:
        return self._scrape_lock.locked()

    # -------------------------------------------------------------------------
    # Run bookkeeping
    # -------------------------------------------------------------------------

    def _start_run(self, run_type: str, started_at: datetime) -> int:
        with self.scope() as session:
            return RunRepository(session).create(run_type, started_at=started_at).id

    def _finish_run(self, run_id: int, status: str, error: str | None = None, **counts: int) -> None:
        with self.scope() as session:
            RunRepository(session).complete(run_id, status=status, error_message=error, **counts)

    def _fail_run(self, run_id: int, error: BaseException) -> None:
        """Best-effort FAILED mark; the original error is what callers see."""
        try:
            self._finish_run(run_id, RunStatus.FAILED, error=str(error))
        except PersistenceError:
            logger.exception("Could not mark run %d as failed", run_id)

    # -------------------------------------------------------------------------
    # Feed sync
    # -------------------------------------------------------------------------

    async def run_feed_sync(self) -> SyncResult:
        """Poll the feed and insert new notices.

        Raises:
            FetchError, ParseError, PersistenceError: Propagated from the fetcher
        """
        started_at = self.clock()
        run_id = self._start_run(RunType.FEED_SYNC, started_at)
        log = get_contextual_logger("orchestrator", run_id=run_id)

        try:
            result = await self.feed_fetcher.sync()
        except Exception as e:
            self.sync_status.last_error = str(e)
            log.error("Feed sync failed: %s", e)
            self._fail_run(run_id, e)
            raise

        self._finish_run(
            run_id,
            RunStatus.COMPLETED,
            items_seen=result.total_parsed,
            items_new=result.newly_inserted,
            items_failed=result.skipped,
        )

        self.sync_status.last_sync_started_at = started_at
        self.sync_status.last_sync_at = result.finished_at or self.clock()
        self.sync_status.last_new_count = result.newly_inserted
        self.sync_status.last_total_parsed = result.total_parsed
        self.sync_status.sync_count += 1
        self.sync_status.last_error = None

        log.info("Sync complete: %d new of %d", result.newly_inserted, result.total_parsed)
        return result

    # -------------------------------------------------------------------------
    # Scrape cycle
    # -------------------------------------------------------------------------

    async def run_scrape_cycle(self, batch_size: int | None = None) -> ScrapeCycleResult:
        """Scrape, classify and persist a batch of pending notices.

        Returns a result with ``skipped=True`` and touches nothing when a
        cycle is already running.

        Raises:
            PersistenceError: The store failed; the cycle is aborted
        """
        if self._scrape_lock.locked():
            logger.info("Scrape cycle already running, trigger ignored")
            return ScrapeCycleResult(skipped=True, finished_at=datetime.utcnow())

        async with self._scrape_lock:
            return await self._scrape_batch(batch_size or self.batch_size)

    def _select_pending(self, limit: int) -> list[PendingNotice]:
        with self.scope() as session:
            notices = NoticeRepository(session).select_pending(limit, self.max_scrape_attempts)
            return [PendingNotice.from_model(n) for n in notices]

    async def _scrape_batch(self, limit: int) -> ScrapeCycleResult:
        result = ScrapeCycleResult()

        pending = self._select_pending(limit)
        result.selected = len(pending)

        if not pending:
            logger.debug("No pending notices")
            result.finished_at = datetime.utcnow()
            return result

        run_id = self._start_run(RunType.SCRAPE, self.clock())
        result.run_id = run_id
        log = get_contextual_logger("orchestrator", run_id=run_id)
        log.info("Scrape cycle started: %d notices", len(pending))

        try:
            for index, notice in enumerate(pending):
                rate_limited = await self._process_notice(notice, result, log)

                if index < len(pending) - 1:
                    if rate_limited:
                        await self.throttle.backoff()
                    else:
                        await self.throttle.pause()
        except PersistenceError as e:
            log.error("Scrape cycle aborted: %s", e)
            self._fail_run(run_id, e)
            raise

        result.finished_at = datetime.utcnow()
        self._finish_run(
            run_id,
            RunStatus.COMPLETED,
            items_seen=result.selected,
            items_succeeded=result.succeeded,
            items_failed=result.failed,
        )
        log.info(
            "Scrape cycle done: %d ok, %d failed (%d rate limited) in %.1fs",
            result.succeeded,
            result.failed,
            result.rate_limited,
            result.duration_seconds or 0.0,
        )
        return result

    async def _process_notice(self, notice: PendingNotice, result: ScrapeCycleResult, log) -> bool:
        """Scrape one notice and persist the outcome.

        Returns:
            True if the upstream throttled the request
        """
        item_log = log.with_context(notice=notice.identifier)
        attempted_at = self.clock()

        if not notice.source_link:
            self._record_failure(notice, "Notice has no detail link", attempted_at, result)
            item_log.warning("No detail link")
            return False

        try:
            detail = await self.scraper.scrape(notice.source_link)
        except RateLimitError as e:
            self._record_failure(notice, f"Rate limited: {e}", attempted_at, result)
            result.rate_limited += 1
            item_log.warning("Rate limited, backing off: %s", e)
            return True
        except PersistenceError:
            raise
        except Exception as e:
            self._record_failure(notice, str(e) or type(e).__name__, attempted_at, result)
            item_log.warning("Scrape failed: %s", e)
            return False

        category = self.classifier.classify(self.classifier_texts(notice, detail))

        with self.scope() as session:
            updated = NoticeRepository(session).mark_scraped(
                notice.id,
                detail.to_dict(),
                category,
                attempted_at,
            )

        if updated:
            result.succeeded += 1
            item_log.info("Scraped: %d fields, category %s", detail.populated_count, category)
        else:
            item_log.warning("Already scraped elsewhere, update skipped")
        return False

    def _record_failure(
        self,
        notice: PendingNotice,
        error: str,
        attempted_at: datetime,
        result: ScrapeCycleResult,
    ) -> None:
        with self.scope() as session:
            NoticeRepository(session).mark_failed(notice.id, error, attempted_at)
        result.failed += 1
        result.errors.append(f"{notice.identifier}: {error}")

    def classifier_texts(self, notice: PendingNotice, detail: NoticeDetail) -> list[str | None]:
        """Title, description and the configured detail text fields."""
        return [notice.title, notice.description, *detail.text_fields(self.classifier_fields)]

    # -------------------------------------------------------------------------
    # Composite and background triggers
    # -------------------------------------------------------------------------

    async def sync_and_scrape(self) -> tuple[SyncResult, ScrapeCycleResult | None]:
        """Sync, then run a scrape cycle if the sync found new notices."""
        sync_result = await self.run_feed_sync()

        cycle = None
        if self.scrape_after_sync and sync_result.newly_inserted > 0:
            cycle = await self.run_scrape_cycle()
        return sync_result, cycle

    def _spawn(self, coro: Any, name: str) -> asyncio.Task[Any]:
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)
        return task

    def _on_task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Background %s failed: %s", task.get_name(), exc, exc_info=exc)

    def trigger_sync(self) -> asyncio.Task[Any]:
        """Start a sync (and follow-up scrape) in the background."""
        return self._spawn(self.sync_and_scrape(), "sync")

    def trigger_scrape(self, batch_size: int | None = None) -> asyncio.Task[Any]:
        """Start a scrape cycle in the background."""
        return self._spawn(self.run_scrape_cycle(batch_size), "scrape")

    async def wait_background(self) -> None:
        """Wait for every triggered task to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # -------------------------------------------------------------------------
    # Status queries
    # -------------------------------------------------------------------------

    def status(self) -> dict[str, Any]:
        """Sync status plus whether a scrape cycle is running."""
        return {
            **asdict(self.sync_status),
            "scrape_in_progress": self.scrape_in_progress,
        }

    def new_since_last_sync(self, limit: int | None = None) -> list[Notice]:
        """Notices first stored by the most recent successful sync or later."""
        since = self.sync_status.last_sync_started_at
        if since is None:
            return []
        with self.scope() as session:
            return list(NoticeRepository(session).list_created_since(since, limit=limit))

    async def close(self) -> None:
        """Close the backends used by the fetcher and the scraper."""
        backends: list[Backend] = []
        for backend in (self.feed_fetcher.backend, self.scraper.backend):
            if all(backend is not seen for seen in backends):
                backends.append(backend)
        for backend in backends:
            await backend.close()


def build_coordinator(
    config: AppConfig,
    *,
    scope: SessionScope = session_scope,
    backend: Backend | None = None,
    sleep: SleepFunc | None = None,
) -> IngestionCoordinator:
    """Wire a coordinator from application configuration.

    Args:
        config: Application configuration
        scope: Session scope factory (global engine by default)
        backend: Shared fetch backend (an HttpBackend from config if None)
        sleep: Sleep function for the politeness throttle
    """
    if backend is None:
        backend = HttpBackend(
            timeout=config.http.timeout_seconds,
            max_retries=config.http.max_retries,
            retry_backoff=config.http.retry_backoff_factor,
            user_agent=config.http.user_agent,
        )

    throttle = PolitenessThrottle(
        ThrottleConfig(
            min_delay_seconds=config.politeness.min_delay_seconds,
            max_delay_seconds=config.politeness.max_delay_seconds,
            rate_limit_delay_seconds=config.politeness.rate_limit_delay_seconds,
        ),
        sleep=sleep,
    )

    return IngestionCoordinator(
        feed_fetcher=FeedFetcher(backend, config.feed, scope=scope, timeout=config.feed.timeout_seconds),
        scraper=DetailScraper(backend, DetailExtractor.from_config(config.labels)),
        throttle=throttle,
        scope=scope,
        batch_size=config.ingestion.batch_size,
        max_scrape_attempts=config.ingestion.max_scrape_attempts,
        classifier_fields=config.ingestion.classifier_fields,
        scrape_after_sync=config.scheduler.scrape_after_sync,
    )
