"""
RSS feed polling.

Fetches the upstream feed for a rolling date window, parses its items
and inserts the notices it has not seen before.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Callable

from lxml import etree
from sqlalchemy.exc import DataError, IntegrityError

from ...persistence.db import SessionScope, session_scope
from ...persistence.repo import NoticeRepository
from ..backends.base import Backend, RequestSpec
from ..config.models import DEFAULT_FEED_URL_TEMPLATE, FeedConfig
from ..normalize.parsing import clean_html_text, parse_pub_date

logger = logging.getLogger(__name__)


FEED_HEADERS = {
    "Accept": "application/xml, text/xml, */*",
}

# Already URL-encoded: "+" is a space and %3A a colon
WINDOW_START_SUFFIX = "+00%3A00%3A00"
WINDOW_END_SUFFIX = "+23%3A59%3A59"


class ParseError(Exception):
    """The feed document is malformed or has no channel."""

    def __init__(self, message: str, url: str | None = None):
        self.url = url
        super().__init__(message)


@dataclass
class FeedItem:
    """A raw feed item, before normalization."""

    guid: str | None = None
    title: str | None = None
    link: str | None = None
    pub_date: str | None = None
    description: str | None = None

    @property
    def identifier(self) -> str | None:
        """Dedup key: the guid, else the link."""
        return self.guid or self.link or None


@dataclass
class SyncResult:
    """Outcome of one feed sync."""

    total_parsed: int = 0
    newly_inserted: int = 0
    skipped: int = 0
    started_at: datetime = field(default_factory=datetime.utcnow)
    finished_at: datetime | None = None

    @property
    def duration_seconds(self) -> float | None:
        if self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()


def build_feed_url(
    template: str = DEFAULT_FEED_URL_TEMPLATE,
    lookback_days: int = 7,
    today: date | None = None,
) -> str:
    """Fill the feed URL template for ``[today - lookback_days, today]``."""
    end = today or date.today()
    start = end - timedelta(days=lookback_days)
    return template.format(
        start=f"{start.isoformat()}{WINDOW_START_SUFFIX}",
        end=f"{end.isoformat()}{WINDOW_END_SUFFIX}",
    )


def _child_text(element: etree._Element, tag: str) -> str | None:
    text = element.findtext(tag)
    if text is None:
        return None
    text = text.strip()
    return text or None


def parse_feed(xml: str | bytes, url: str | None = None) -> list[FeedItem]:
    """Parse an RSS document into raw items.

    A channel with one ``<item>`` gives a one-element list; a channel
    without items gives an empty one.

    Raises:
        ParseError: On malformed XML or a missing ``<channel>``
    """
    # Byte input is decoded per the document's XML declaration
    data = xml.encode("utf-8") if isinstance(xml, str) else xml
    if not data.strip():
        raise ParseError("Empty feed document", url=url)

    parser = etree.XMLParser(recover=False, resolve_entities=False, no_network=True)
    try:
        root = etree.fromstring(data, parser=parser)
    except etree.XMLSyntaxError as e:
        raise ParseError(f"Malformed feed XML: {e}", url=url) from e

    channel = root if root.tag == "channel" else root.find("channel")
    if channel is None:
        raise ParseError("Feed has no <channel>", url=url)

    items = []
    for node in channel.iter("item"):
        items.append(
            FeedItem(
                guid=_child_text(node, "guid"),
                title=_child_text(node, "title"),
                link=_child_text(node, "link"),
                pub_date=_child_text(node, "pubDate"),
                description=_child_text(node, "description"),
            )
        )
    return items


class FeedFetcher:
    """Pull the feed and insert-or-ignore every item.

    One bad item (no identifier, unparsable date, a row the store rejects)
    is logged and skipped in its own savepoint. Fetch and parse failures of
    the whole feed propagate, as does an unreachable store.
    """

    def __init__(
        self,
        backend: Backend,
        config: FeedConfig | None = None,
        *,
        scope: SessionScope = session_scope,
        timeout: float | None = None,
        clock: Callable[[], date] = date.today,
    ) -> None:
        self.backend = backend
        self.config = config or FeedConfig()
        self.scope = scope
        self.timeout = timeout
        self.clock = clock

    def feed_url(self, lookback_days: int | None = None, today: date | None = None) -> str:
        days = self.config.lookback_days if lookback_days is None else lookback_days
        return build_feed_url(self.config.url_template, days, today or self.clock())

    async def fetch_items(self, lookback_days: int | None = None, today: date | None = None) -> list[FeedItem]:
        url = self.feed_url(lookback_days, today)
        logger.debug("Fetching feed %s", url)

        result = await self.backend.fetch(
            RequestSpec(
                url=url,
                headers=dict(FEED_HEADERS),
                timeout=self.timeout,
                page_type="feed",
            )
        )
        return parse_feed(result.content, url=url)

    async def sync(self, lookback_days: int | None = None, today: date | None = None) -> SyncResult:
        """Fetch the feed window and store unseen notices.

        Raises:
            FetchError: Network, timeout or non-2xx failure
            ParseError: Malformed feed
            PersistenceError: Store failure
        """
        result = SyncResult()

        items = await self.fetch_items(lookback_days, today)
        result.total_parsed = len(items)

        with self.scope() as session:
            repo = NoticeRepository(session)

            for item in items:
                identifier = item.identifier
                if identifier is None:
                    logger.warning("Skipping feed item without guid or link: %r", item.title)
                    result.skipped += 1
                    continue

                published_at = parse_pub_date(item.pub_date)
                if published_at is None:
                    logger.warning("Skipping %s: unparsable pubDate %r", identifier, item.pub_date)
                    result.skipped += 1
                    continue

                try:
                    with session.begin_nested():
                        inserted = repo.insert_or_ignore(
                            identifier=identifier,
                            published_at=published_at,
                            title=clean_html_text(item.title) or None,
                            description=clean_html_text(item.description) or None,
                            source_link=item.link,
                        )
                except (DataError, IntegrityError) as e:
                    logger.warning("Skipping %s: store rejected the row: %s", identifier, e.orig)
                    result.skipped += 1
                    continue

                if inserted:
                    result.newly_inserted += 1

        result.finished_at = datetime.utcnow()
        logger.info(
            "Feed sync: %d parsed, %d new, %d skipped",
            result.total_parsed,
            result.newly_inserted,
            result.skipped,
        )
        return result
