"""Tests for the httpx backend's error mapping and retries."""

import httpx
import pytest

from licitawatch.core.backends import FetchError, HttpBackend, RateLimitError, RequestSpec, parse_retry_after


URL = "https://detail.test/compra/1"


def make_backend(handler, max_retries=3):
    return HttpBackend(
        max_retries=max_retries,
        retry_backoff=0.0,
        retry_min_wait=0,
        transport=httpx.MockTransport(handler),
    )


async def test_success_returns_body_and_headers():
    seen = {}

    def handler(request):
        seen["ua"] = request.headers["User-Agent"]
        seen["accept"] = request.headers["Accept"]
        return httpx.Response(200, text="<html>ok</html>")

    backend = make_backend(handler)
    result = await backend.fetch(RequestSpec(url=URL, headers={"Accept": "application/xml"}))
    await backend.close()

    assert result.ok
    assert result.text == "<html>ok</html>"
    assert result.retry_count == 0
    assert "Mozilla" in seen["ua"]
    assert seen["accept"] == "application/xml"


async def test_429_is_rate_limit_error_with_retry_after():
    backend = make_backend(lambda request: httpx.Response(429, headers={"Retry-After": "120"}))

    with pytest.raises(RateLimitError) as exc_info:
        await backend.fetch(RequestSpec(url=URL))
    await backend.close()

    assert exc_info.value.status_code == 429
    assert exc_info.value.retry_after == 120.0


async def test_503_is_rate_limit_error():
    backend = make_backend(lambda request: httpx.Response(503))

    with pytest.raises(RateLimitError):
        await backend.fetch(RequestSpec(url=URL))
    await backend.close()


async def test_other_status_is_fetch_error_without_retry():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(404)

    backend = make_backend(handler)

    with pytest.raises(FetchError) as exc_info:
        await backend.fetch(RequestSpec(url=URL))
    await backend.close()

    assert exc_info.value.status_code == 404
    assert not isinstance(exc_info.value, RateLimitError)
    assert len(calls) == 1


async def test_transport_errors_are_retried():
    calls = []

    def handler(request):
        calls.append(request)
        if len(calls) < 3:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(200, text="ok")

    backend = make_backend(handler)
    result = await backend.fetch(RequestSpec(url=URL))
    await backend.close()

    assert result.text == "ok"
    assert result.retry_count == 2


async def test_exhausted_retries_become_fetch_error():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    backend = make_backend(handler, max_retries=2)

    with pytest.raises(FetchError) as exc_info:
        await backend.fetch(RequestSpec(url=URL))
    await backend.close()

    assert isinstance(exc_info.value.cause, httpx.TimeoutException)


def test_parse_retry_after():
    assert parse_retry_after("30") == 30.0
    assert parse_retry_after(" 5 ") == 5.0
    assert parse_retry_after(None) is None
    assert parse_retry_after("soon") is None
    # A date in the past means "now"
    assert parse_retry_after("Wed, 21 Oct 2015 07:28:00 GMT") == 0.0
