"""Upstream RSS feed polling."""

from .fetcher import (
    FeedFetcher,
    FeedItem,
    ParseError,
    SyncResult,
    build_feed_url,
    parse_feed,
)

__all__ = [
    "FeedFetcher",
    "FeedItem",
    "ParseError",
    "SyncResult",
    "build_feed_url",
    "parse_feed",
]
