"""Shared fixtures: in-memory store, fake backends and a recording sleep."""

from __future__ import annotations

from datetime import datetime

import pytest

from licitawatch.core.backends.base import Backend, FetchError, FetchResult, RateLimitError, RequestSpec
from licitawatch.core.fetch.throttling import PolitenessThrottle, ThrottleConfig
from licitawatch.persistence.db import create_db_engine, make_session_factory, scope_for
from licitawatch.persistence.models import Base


FEED_TEMPLATE = "https://feed.test/rss/{start}_{end}"


def rss(*items: str) -> str:
    """Wrap item snippets in an RSS document."""
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        "<rss version=\"2.0\"><channel><title>Compras</title>"
        + "".join(items)
        + "</channel></rss>"
    )


def rss_item(
    guid: str | None = "X",
    title: str = "Compra de hipoclorito",
    description: str = "Limpieza de oficinas",
    link: str | None = "https://detail.test/compra/1",
    pub_date: str = "Mon, 04 Mar 2024 10:15:00 -0300",
) -> str:
    parts = [f"<title>{title}</title>", f"<description>{description}</description>", f"<pubDate>{pub_date}</pubDate>"]
    if guid is not None:
        parts.append(f"<guid>{guid}</guid>")
    if link is not None:
        parts.append(f"<link>{link}</link>")
    return "<item>" + "".join(parts) + "</item>"


class FakeBackend(Backend):
    """Backend answering from a URL -> body table.

    A body may also be an exception instance, which is raised instead,
    or a list of bodies consumed one per request.
    """

    def __init__(self, responses: dict[str, object] | None = None, default: object = None):
        self.responses = dict(responses or {})
        self.default = default
        self.requests: list[RequestSpec] = []
        self.closed = False

    @property
    def name(self) -> str:
        return "fake"

    async def fetch(self, request: RequestSpec) -> FetchResult:
        self.requests.append(request)

        body = self.responses.get(request.url, self.default)
        if isinstance(body, list):
            body = body.pop(0)
        if body is None:
            raise FetchError("Unexpected status 404", url=request.url, status_code=404)
        if isinstance(body, Exception):
            raise body

        content = body if isinstance(body, bytes) else str(body).encode("utf-8")
        return FetchResult(
            url=request.url,
            final_url=request.url,
            status_code=200,
            text=content.decode("utf-8", errors="replace"),
            headers={},
            elapsed_ms=1.0,
            content=content,
        )

    async def close(self) -> None:
        self.closed = True

    @property
    def urls(self) -> list[str]:
        return [r.url for r in self.requests]


def rate_limited(url: str = "https://detail.test/x") -> RateLimitError:
    return RateLimitError("Upstream throttled request with status 429", url=url, retry_after=None)


class RecordingSleep:
    """Async sleep stand-in that records the requested delays."""

    def __init__(self):
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@pytest.fixture
def engine():
    engine = create_db_engine("sqlite://")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def scope(engine):
    return scope_for(make_session_factory(engine))


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def throttle(sleep):
    return PolitenessThrottle(
        ThrottleConfig(min_delay_seconds=3.0, max_delay_seconds=5.0, rate_limit_delay_seconds=60.0),
        sleep=sleep,
    )


@pytest.fixture
def fake_backend():
    return FakeBackend()


def seed_notice(scope, identifier: str, published_at: datetime, link: str | None = None, **values) -> int:
    """Insert one notice directly and return its id."""
    from licitawatch.persistence.repo import NoticeRepository

    with scope() as session:
        repo = NoticeRepository(session)
        repo.insert_or_ignore(
            identifier=identifier,
            published_at=published_at,
            title=values.pop("title", f"Notice {identifier}"),
            description=values.pop("description", None),
            source_link=link,
        )
        notice = repo.get_by_identifier(identifier)
        for key, value in values.items():
            setattr(notice, key, value)
        return notice.id
