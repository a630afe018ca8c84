"""Concurrency and request-rate limits for upload submission."""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)


class ConcurrencyGate:
    """Bounded pool of upload slots.

    Every ``acquire()`` must be matched by exactly one ``release()``, made
    when the upload finishes whether it succeeded or not.
    """

    def __init__(self, capacity: int) -> None:
        """Initialize the gate.

        Args:
            capacity: Maximum number of simultaneous uploads
        """
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self.acquired = 0
        self.released = 0
        # asyncio.Semaphore wakes waiters in FIFO order
        self._semaphore = asyncio.Semaphore(capacity)

    @property
    def in_flight(self) -> int:
        """Number of permits currently held."""
        return self.acquired - self.released

    @property
    def available(self) -> int:
        """Number of permits that can be acquired without waiting."""
        return self.capacity - self.in_flight

    async def acquire(self) -> None:
        """Wait for a free slot and take it."""
        await self._semaphore.acquire()
        self.acquired += 1

    def release(self) -> None:
        """Return a slot.

        Raises:
            RuntimeError: If no slot is currently held
        """
        if self.in_flight <= 0:
            raise RuntimeError("release() called without a matching acquire()")
        self.released += 1
        self._semaphore.release()

    async def drain(self) -> None:
        """Wait until every held slot has been released.

        Takes all permits one by one, then hands them back.
        """
        for _ in range(self.capacity):
            await self.acquire()
        for _ in range(self.capacity):
            self.release()


class SubmissionRateLimiter:
    """Spaces out request submissions at a steady rate.

    Each caller reserves the next free slot, ``60 / requests_per_minute``
    seconds after the previous one, and sleeps until it arrives. The first
    request goes through immediately; idle time does not accumulate into a
    burst.
    """

    def __init__(
        self,
        requests_per_minute: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize the limiter.

        Args:
            requests_per_minute: Maximum submissions per minute
            clock: Monotonic time source, in seconds
            sleep: Coroutine function used to wait
        """
        if requests_per_minute <= 0:
            raise ValueError("requests_per_minute must be positive")
        self.requests_per_minute = requests_per_minute
        self.interval = 60.0 / requests_per_minute
        self._clock = clock
        self._sleep = sleep
        self._next_slot: float | None = None
        self._lock = asyncio.Lock()

    async def acquire(self) -> float:
        """Wait for the next submission slot.

        Returns:
            Seconds spent waiting
        """
        async with self._lock:
            now = self._clock()
            slot = now if self._next_slot is None else max(now, self._next_slot)
            self._next_slot = slot + self.interval

        wait = slot - now
        if wait > 0:
            logger.debug(f"Rate limit reached, waiting {wait:.2f}s")
            await self._sleep(wait)
        return wait
