"""Fetch utilities - throttling and retries."""

from .retries import RetryConfig, build_retrying
from .throttling import PolitenessThrottle, ThrottleConfig

__all__ = [
    "PolitenessThrottle",
    "ThrottleConfig",
    "RetryConfig",
    "build_retrying",
]
