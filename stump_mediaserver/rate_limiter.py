import asyncio
import logging
import time
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)

class RateLimiter:
    """
    Async token bucket. Admits `events_per_interval` permits per `interval` seconds,
    refilling continuously. Waiters are served in arrival order.
    """

    def __init__(
        self,
        events_per_interval: int,
        interval: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if events_per_interval <= 0 or interval <= 0:
            raise ValueError("events_per_interval and interval must be positive")
        self.capacity = events_per_interval
        self.interval = interval
        self._rate = events_per_interval / interval
        self._clock = clock
        self._sleep = sleep
        self._tokens = float(events_per_interval)
        self._updated_at = clock()
        self._lock = asyncio.Lock()

    @property
    def available(self) -> float:
        self._refill()
        return self._tokens

    def _refill(self):
        now = self._clock()
        elapsed = max(0.0, now - self._updated_at)
        self._tokens = min(float(self.capacity), self._tokens + elapsed * self._rate)
        self._updated_at = now

    async def acquire(self):
        async with self._lock:
            self._refill()
            while self._tokens < 1:
                wait = (1 - self._tokens) / self._rate
                logger.debug(f"Rate limit reached, waiting {wait:.2f}s for a permit")
                await self._sleep(wait)
                self._refill()
            self._tokens -= 1
