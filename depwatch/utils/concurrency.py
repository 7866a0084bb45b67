"""
Bounded concurrency for batch work.

A counting semaphore hands out at most ``limit`` slots; each task acquires a
slot, runs, and releases it, so queued tasks start as soon as a slot frees.
"""
import asyncio
from typing import Awaitable, Callable, Iterable, List, TypeVar

T = TypeVar("T")
R = TypeVar("R")


class BoundedTaskPool:
    """
    Runs coroutines with at most ``limit`` of them in flight.

    Args:
        limit: Maximum number of concurrently running tasks (at least 1)
    """

    def __init__(self, limit: int = 10):
        self.limit = max(1, int(limit))
        self._semaphore = asyncio.Semaphore(self.limit)
        self.active = 0
        self.peak = 0

    async def run(self, coro_fn: Callable[[], Awaitable[R]]) -> R:
        """Wait for a free slot, run ``coro_fn()`` and release the slot."""
        await self._semaphore.acquire()
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            return await coro_fn()
        finally:
            self.active -= 1
            self._semaphore.release()

    async def map(self, fn: Callable[[T], Awaitable[R]], items: Iterable[T]) -> List[R]:
        """
        Apply ``fn`` to every item under the concurrency limit.

        Results are returned in completion order, not input order. If any
        call raises, the remaining calls are cancelled before the error
        propagates.
        """
        results: List[R] = []

        async def _one(item: T) -> None:
            results.append(await self.run(lambda: fn(item)))

        tasks = [asyncio.ensure_future(_one(item)) for item in items]
        try:
            await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise
        return results
