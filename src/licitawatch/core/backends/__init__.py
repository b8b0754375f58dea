"""Page fetching: the backend contract and its httpx implementation."""

from .base import Backend, BackendError, FetchError, FetchResult, RateLimitError, RequestSpec
from .http_backend import HttpBackend, parse_retry_after

__all__ = [
    "Backend",
    "BackendError",
    "FetchError",
    "FetchResult",
    "HttpBackend",
    "RateLimitError",
    "RequestSpec",
    "parse_retry_after",
]
