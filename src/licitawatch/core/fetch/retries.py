"""
Retry policy for transient network failures.

Only transport-level errors (refused connections, resets, timeouts) are
retried. Status-code handling belongs to the backend: a throttling
response must reach the coordinator untouched so it can back off.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_random_exponential,
)

logger = logging.getLogger(__name__)


@dataclass
class RetryConfig:
    """Attempt budget and backoff curve for a single request."""

    max_attempts: int = 3
    min_wait: float = 1.0
    max_wait: float = 30.0
    multiplier: float = 2.0
    jitter: bool = True
    retry_exceptions: tuple[type[BaseException], ...] = (httpx.TransportError,)

    def __post_init__(self) -> None:
        self.max_attempts = max(1, self.max_attempts)

    def wait_strategy(self):
        if self.jitter:
            return wait_random_exponential(multiplier=self.multiplier, min=self.min_wait, max=self.max_wait)
        return wait_exponential(multiplier=self.multiplier, min=self.min_wait, max=self.max_wait)


def _log_retry(retry_state: RetryCallState) -> None:
    error = retry_state.outcome.exception() if retry_state.outcome else None
    delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
    logger.warning(
        "Attempt %d failed (%s: %s), retrying in %.1fs",
        retry_state.attempt_number,
        type(error).__name__,
        error,
        delay,
    )


def build_retrying(config: RetryConfig | None = None) -> AsyncRetrying:
    """AsyncRetrying controller for ``config``; re-raises the last error."""
    config = config or RetryConfig()

    return AsyncRetrying(
        stop=stop_after_attempt(config.max_attempts),
        wait=config.wait_strategy(),
        retry=retry_if_exception_type(config.retry_exceptions),
        before_sleep=_log_retry,
        reraise=True,
    )
