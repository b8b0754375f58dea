"""
Politeness throttling between consecutive detail-page requests.

The upstream site blocks clients that hit it too fast, so every scrape
cycle pauses between items and backs off harder after a throttling
response.
"""

from __future__ import annotations

import asyncio
import random
from dataclasses import dataclass
from typing import Awaitable, Callable

SleepFunc = Callable[[float], Awaitable[None]]


@dataclass
class ThrottleConfig:
    """Configuration for the politeness throttle."""

    min_delay_seconds: float = 3.0
    max_delay_seconds: float = 5.0
    rate_limit_delay_seconds: float = 60.0


class PolitenessThrottle:
    """Jittered inter-request delay with a fixed rate-limit backoff.

    The sleep function is injectable so cycles can be driven without
    real waiting.
    """

    def __init__(
        self,
        config: ThrottleConfig | None = None,
        *,
        sleep: SleepFunc | None = None,
        rng: random.Random | None = None,
    ):
        self.config = config or ThrottleConfig()
        self._sleep = sleep or asyncio.sleep
        self._rng = rng or random.Random()

        self.total_slept = 0.0
        self.pauses = 0
        self.backoffs = 0

    def next_delay(self) -> float:
        """Draw a jittered politeness delay in seconds."""
        return self._rng.uniform(
            self.config.min_delay_seconds,
            self.config.max_delay_seconds,
        )

    async def pause(self) -> float:
        """Sleep the regular politeness delay. Returns seconds slept."""
        delay = self.next_delay()
        await self._sleep(delay)
        self.total_slept += delay
        self.pauses += 1
        return delay

    async def backoff(self) -> float:
        """Sleep the fixed rate-limit delay. Returns seconds slept."""
        delay = self.config.rate_limit_delay_seconds
        await self._sleep(delay)
        self.total_slept += delay
        self.backoffs += 1
        return delay
