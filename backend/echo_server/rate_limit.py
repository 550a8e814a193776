import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


class IntervalGate:
    """
    Fixed-interval gate for outbound calls.

    Every caller of `wait()` is let through at least `min_interval` seconds after
    the previous one. Callers queue on a lock, so concurrent requests go out one
    interval apart rather than all at once.
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
        self._lock: Optional[asyncio.Lock] = None
        self._lock_loop: Optional[asyncio.AbstractEventLoop] = None
        self.last_request_at: Optional[float] = None

    def remaining(self) -> float:
        if self.last_request_at is None:
            return 0.0
        elapsed = self._clock() - self.last_request_at
        return max(0.0, self.min_interval - elapsed)

    def _get_lock(self) -> asyncio.Lock:
        # asyncio.Lock belongs to one event loop, so a new loop gets a new lock
        loop = asyncio.get_running_loop()
        if self._lock is None or self._lock_loop is not loop:
            self._lock = asyncio.Lock()
            self._lock_loop = loop
        return self._lock

    async def wait(self) -> None:
        async with self._get_lock():
            delay = self.remaining()
            if delay > 0:
                logger.debug(f"Rate limit: waiting {delay:.2f}s before next request")
                await self._sleep(delay)
            self.last_request_at = self._clock()
