"""
Dispatch Pool
Bounded, rate-limited fan-out for outbound call creation.

Results come back in input order regardless of completion order. A worker
that raises aborts the whole run and cancels work still in flight, so
workers are expected to turn per-item failures into values themselves.
"""
import asyncio
import logging
import time
from typing import Awaitable, Callable, List, Optional, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class DispatchPool:
    """
    Runs async work with at most ``max_concurrency`` items in flight and at
    most ``rate_limit_per_minute`` starts per minute.

    max_concurrency=1 gives strictly sequential dispatch.
    """

    def __init__(
        self,
        max_concurrency: int = 1,
        rate_limit_per_minute: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.max_concurrency = max_concurrency
        self.min_interval = 60.0 / rate_limit_per_minute if rate_limit_per_minute else 0.0
        self._clock = clock
        self._sleep = sleep
        self._start_lock = asyncio.Lock()
        self._next_start = 0.0

    async def _reserve_start(self) -> None:
        if not self.min_interval:
            return
        async with self._start_lock:
            now = self._clock()
            start_at = max(now, self._next_start)
            self._next_start = start_at + self.min_interval
        delay = start_at - now
        if delay > 0:
            await self._sleep(delay)

    async def run(self, items: Sequence[T], worker: Callable[[T], Awaitable[R]]) -> List[R]:
        """Apply ``worker`` to every item. Output order matches input order."""
        semaphore = asyncio.Semaphore(self.max_concurrency)

        async def _run_one(item: T) -> R:
            async with semaphore:
                await self._reserve_start()
                return await worker(item)

        tasks = [asyncio.ensure_future(_run_one(item)) for item in items]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
