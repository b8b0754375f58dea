"""
httpx implementation of the fetching backend.

Every request carries a fixed browser-like header set because the
procurement site rejects bare clients. Transport errors are retried through
tenacity; status codes are never retried here.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime

import httpx

from ..fetch.retries import RetryConfig, build_retrying
from .base import Backend, FetchError, FetchResult, RateLimitError, RequestSpec

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

BROWSER_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "es-UY,es;q=0.9,en;q=0.8",
    "Accept-Encoding": "gzip, deflate",
    "Connection": "keep-alive",
}

THROTTLE_STATUSES = frozenset({429, 503})


def parse_retry_after(value: str | None) -> float | None:
    """Seconds requested by a ``Retry-After`` header (delta or HTTP date)."""
    if not value:
        return None
    value = value.strip()
    try:
        return max(0.0, float(value))
    except ValueError:
        pass
    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max(0.0, (when - datetime.now(timezone.utc)).total_seconds())


class HttpBackend(Backend):
    """Async GET over a shared ``httpx.AsyncClient``.

    429/503 become :class:`RateLimitError` straight away so the coordinator
    can apply its long pause; other non-2xx statuses become
    :class:`FetchError`. Connection errors and timeouts are retried up to
    ``max_retries`` attempts before surfacing as :class:`FetchError`.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        max_retries: int = 3,
        retry_backoff: float = 2.0,
        retry_min_wait: float = 1.0,
        user_agent: str | None = None,
        default_headers: dict[str, str] | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.timeout = timeout
        self.retry_config = RetryConfig(
            max_attempts=max_retries,
            min_wait=retry_min_wait,
            multiplier=retry_backoff,
        )
        self.headers = {
            "User-Agent": user_agent or DEFAULT_USER_AGENT,
            **BROWSER_HEADERS,
            **(default_headers or {}),
        }
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def name(self) -> str:
        return "http"

    def _client_for_use(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                headers=self.headers,
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
                transport=self._transport,
                limits=httpx.Limits(max_connections=5, max_keepalive_connections=2),
            )
        return self._client

    @staticmethod
    def _raise_for_status(response: httpx.Response, url: str) -> None:
        status = response.status_code
        if status in THROTTLE_STATUSES:
            raise RateLimitError(
                f"Throttled with HTTP {status}",
                url=url,
                status_code=status,
                retry_after=parse_retry_after(response.headers.get("Retry-After")),
            )
        if not response.is_success:
            raise FetchError(f"HTTP {status}", url=url, status_code=status)

    async def fetch(self, request: RequestSpec) -> FetchResult:
        client = self._client_for_use()
        headers = {**self.headers, **request.headers}
        attempts = 0

        try:
            async for attempt in build_retrying(self.retry_config):
                with attempt:
                    attempts = attempt.retry_state.attempt_number
                    started = time.perf_counter()
                    response = await client.get(
                        request.url,
                        headers=headers,
                        params=request.params or None,
                        timeout=request.timeout or self.timeout,
                    )
        except httpx.TimeoutException as e:
            raise FetchError(f"Timed out after {attempts} attempt(s): {e}", url=request.url, cause=e) from e
        except httpx.HTTPError as e:
            raise FetchError(f"Request failed after {attempts} attempt(s): {e}", url=request.url, cause=e) from e

        self._raise_for_status(response, request.url)
        logger.debug("GET %s -> %d (%s)", request.url, response.status_code, request.page_type or "page")

        return FetchResult(
            url=request.url,
            final_url=str(response.url),
            status_code=response.status_code,
            text=response.text,
            headers=dict(response.headers),
            elapsed_ms=(time.perf_counter() - started) * 1000,
            retry_count=attempts - 1,
            content=response.content,
            encoding=response.charset_encoding,
        )

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None
