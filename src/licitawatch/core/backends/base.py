"""
Fetching contract shared by the feed fetcher and the detail scraper.

A backend turns a :class:`RequestSpec` into a :class:`FetchResult` holding a
2xx body, or raises one of the errors below. Callers only ever need to tell
throttling (:class:`RateLimitError`, back off for a long while) apart from
everything else (:class:`FetchError`, count an attempt and move on).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


class BackendError(Exception):
    """Any failure to obtain a usable response."""

    def __init__(
        self,
        message: str,
        url: str | None = None,
        status_code: int | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.url = url
        self.status_code = status_code
        self.cause = cause


class FetchError(BackendError):
    """Transport failure, timeout or a non-2xx status other than throttling."""


class RateLimitError(BackendError):
    """The upstream answered 429 or 503."""

    def __init__(
        self,
        message: str,
        url: str | None = None,
        status_code: int = 429,
        retry_after: float | None = None,
    ):
        super().__init__(message, url, status_code=status_code)
        self.retry_after = retry_after


@dataclass
class RequestSpec:
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    params: dict[str, str] = field(default_factory=dict)
    timeout: float | None = None
    # "feed" or "detail"; only used in logs and tests
    page_type: str | None = None


@dataclass
class FetchResult:
    url: str
    final_url: str
    status_code: int
    text: str
    headers: dict[str, str]
    elapsed_ms: float
    fetched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    retry_count: int = 0
    # Undecoded body; ``encoding`` is the charset the response headers declared
    content: bytes = b""
    encoding: str | None = None

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


class Backend(ABC):
    """Something that can GET a page. Usable as an async context manager."""

    @property
    @abstractmethod
    def name(self) -> str: ...

    @abstractmethod
    async def fetch(self, request: RequestSpec) -> FetchResult:
        """Return a 2xx response for ``request``.

        Raises:
            RateLimitError: upstream throttling (429/503)
            FetchError: anything else that prevented a 2xx response
        """

    async def close(self) -> None:
        return None

    async def __aenter__(self) -> "Backend":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
