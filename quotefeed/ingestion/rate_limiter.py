"""Per-origin request throttling."""

import asyncio
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, Dict, Optional
from urllib.parse import urlparse


def origin_for_url(url: str) -> str:
    """Rate-limit key for a URL: its hostname without a leading www."""
    host = (urlparse(url).hostname or "").lower()
    if host.startswith("www."):
        host = host[4:]
    return host or "unknown"


class DomainRateLimiter:
    """
    Bound concurrency and spacing of requests to each origin.

    At most ``max_concurrent`` requests to one origin are in flight, and
    consecutive request starts to the same origin are at least
    ``min_interval`` seconds apart. Different origins never wait on each
    other.
    """

    def __init__(
        self,
        max_concurrent: int = 2,
        min_interval: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ) -> None:
        """Initialize rate limiter."""
        self.max_concurrent = max_concurrent
        self.min_interval = min_interval
        self._clock = clock
        self._sleep = sleep or asyncio.sleep
        self._semaphores: Dict[str, asyncio.Semaphore] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._last_start: Dict[str, float] = {}

    @asynccontextmanager
    async def slot(self, origin: str) -> AsyncIterator[None]:
        """Hold one of the origin's request slots for the duration of the block."""
        key = origin.lower()
        semaphore = self._semaphores.setdefault(key, asyncio.Semaphore(self.max_concurrent))
        async with semaphore:
            await self._wait_turn(key)
            yield

    async def _wait_turn(self, key: str) -> None:
        lock = self._locks.setdefault(key, asyncio.Lock())
        async with lock:
            now = self._clock()
            last = self._last_start.get(key)
            if last is not None:
                remaining = self.min_interval - (now - last)
                if remaining > 0:
                    await self._sleep(remaining)
                    now = self._clock()
            self._last_start[key] = now
