"""Sliding-window rate limiting for secondary scorer calls."""

import asyncio
import time
from collections import deque
from contextlib import asynccontextmanager
from typing import Awaitable, Callable, Deque, Optional

import structlog

from ..config import settings


logger = structlog.get_logger(__name__)


class RateLimiter:
    """
    Admit at most `max_requests` call starts in any `window_seconds` window.

    Callers that would exceed the budget wait until the oldest start ages out.
    The clock and sleep are injectable so tests can drive time by hand.
    """

    def __init__(
        self,
        max_requests: Optional[int] = None,
        window_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if max_requests is None:
            max_requests = settings.escalation_requests_per_minute
        if window_seconds is None:
            window_seconds = settings.escalation_window_seconds
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        if self.max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if self.window_seconds <= 0:
            raise ValueError("window_seconds must be positive")

        self._clock = clock
        self._sleep = sleep
        self._starts: Deque[float] = deque()
        self._lock = asyncio.Lock()

    def _prune(self, now: float) -> None:
        # Remove starts older than the window
        while self._starts and now - self._starts[0] >= self.window_seconds:
            self._starts.popleft()

    def in_window(self) -> int:
        """Number of call starts counted against the current window."""
        self._prune(self._clock())
        return len(self._starts)

    async def acquire(self) -> None:
        """Wait for a slot, then record a call start."""
        async with self._lock:
            while True:
                now = self._clock()
                self._prune(now)
                if len(self._starts) < self.max_requests:
                    self._starts.append(now)
                    return

                wait = self.window_seconds - (now - self._starts[0])
                logger.info(
                    "rate_limit_reached",
                    wait_seconds=round(wait, 3),
                    max_requests=self.max_requests,
                    window_seconds=self.window_seconds,
                )
                await self._sleep(wait)

    @asynccontextmanager
    async def request_context(self):
        """Context manager for a rate-limited call."""
        await self.acquire()
        yield
