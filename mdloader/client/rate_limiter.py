"""Process-wide request throttling shared by every outbound API call."""

from __future__ import annotations

import asyncio
import logging
import time
from functools import lru_cache

from mdloader.types import T, Task

log = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENT = 5
DEFAULT_MIN_INTERVAL_SECONDS = 0.2


class RateLimiter:
    """
    Gate that bounds concurrency and spaces task start times.

    At most ``max_concurrent`` scheduled tasks run at once, and each task
    starts no sooner than ``min_interval`` seconds after the previous start.
    Waiting tasks are admitted in FIFO order. Task failures propagate
    unchanged; the limiter never retries.
    """

    def __init__(
        self,
        *,
        max_concurrent: int = DEFAULT_MAX_CONCURRENT,
        min_interval: float = DEFAULT_MIN_INTERVAL_SECONDS,
    ) -> None:
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        if min_interval < 0:
            raise ValueError("min_interval must not be negative")
        self.max_concurrent = max_concurrent
        self.min_interval = float(min_interval)
        self._loop: asyncio.AbstractEventLoop | None = None
        self._slots: asyncio.Semaphore | None = None
        self._start_lock: asyncio.Lock | None = None
        self._last_start: float | None = None
        self._running = 0

    @property
    def running(self) -> int:
        """Return the number of tasks currently executing."""
        return self._running

    def _bind(self) -> tuple[asyncio.Semaphore, asyncio.Lock]:
        """
        Return the gate primitives of the running event loop.

        asyncio primitives belong to one loop, so a fresh pair is created
        whenever the limiter is first used from another loop. Start spacing
        is kept on the monotonic clock and carries over between loops.
        """
        loop = asyncio.get_running_loop()
        if self._loop is not loop:
            if self._loop is not None:
                log.debug("Rebinding rate limiter to a new event loop")
            self._loop = loop
            self._slots = asyncio.Semaphore(self.max_concurrent)
            self._start_lock = asyncio.Lock()
        return self._slots, self._start_lock

    async def _wait_for_start(self, start_lock: asyncio.Lock) -> None:
        """Sleep until ``min_interval`` has passed since the previous start."""
        async with start_lock:
            if self._last_start is not None:
                delay = self._last_start + self.min_interval - time.monotonic()
                if delay > 0:
                    await asyncio.sleep(delay)
            self._last_start = time.monotonic()

    async def schedule(self, task: Task[T]) -> T:
        """Run ``task`` once a concurrency slot and a start slot are free."""
        slots, start_lock = self._bind()
        async with slots:
            await self._wait_for_start(start_lock)
            self._running += 1
            try:
                return await task()
            finally:
                self._running -= 1


@lru_cache(maxsize=1)
def get_shared_rate_limiter() -> RateLimiter:
    """Return the limiter instance shared by all clients in this process."""
    log.debug(
        "Creating shared rate limiter (max_concurrent=%s, min_interval=%ss)",
        DEFAULT_MAX_CONCURRENT,
        DEFAULT_MIN_INTERVAL_SECONDS,
    )
    return RateLimiter()
