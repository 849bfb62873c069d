"""Minimum-spacing rate limiter for a shared upstream endpoint.

Nominatim's usage policy allows one request per second per client, so every
search against it goes through one ``RateLimiter`` owned by the service
context. Waiters are served one at a time in arrival order (``asyncio.Lock``
is FIFO), and the timestamp is taken when a wait *resolves*, so back-to-back
callers are spaced by at least ``min_interval_seconds`` however many of them
are waiting.
"""

import asyncio
import logging
import time
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)


class RateLimiter:
    """Enforces a minimum interval between resolved ``wait()`` calls."""

    def __init__(
        self,
        min_interval_seconds: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        if min_interval_seconds < 0:
            raise ValueError("min_interval_seconds must be >= 0")
        self._min_interval = min_interval_seconds
        self._clock = clock
        self._sleep = sleep
        self._last_request_time: float | None = None
        self._lock = asyncio.Lock()

    @property
    def min_interval_seconds(self) -> float:
        return self._min_interval

    @property
    def last_request_time(self) -> float | None:
        return self._last_request_time

    async def wait(self) -> None:
        """Return once the caller may issue its request."""
        async with self._lock:
            if self._last_request_time is not None:
                elapsed = self._clock() - self._last_request_time
                remaining = self._min_interval - elapsed
                if remaining > 0:
                    logger.debug(f"[LIMIT] Waiting {remaining:.3f}s")
                    await self._sleep(remaining)
            self._last_request_time = self._clock()

    def reset(self) -> None:
        """Forget the last request (useful in tests)."""
        self._last_request_time = None
