"""Pacing for upstream classifier calls."""

import asyncio
import time
from typing import Awaitable, Callable


class IntervalRateLimiter:
    """Enforce a minimum gap between consecutive acquisitions.

    The first acquisition never waits. Clock and sleep are injectable so tests
    can run without wall-clock delay.
    """

    def __init__(
        self,
        min_interval: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep
        self._last: float | None = None

    async def acquire(self) -> None:
        if self._last is not None:
            wait = self.min_interval - (self._clock() - self._last)
            if wait > 0:
                await self._sleep(wait)
        self._last = self._clock()
