"""Single-flight guard for coroutine work that must run at most once at a time"""
import asyncio
from typing import Any, Awaitable, Callable, Optional


class SingleFlight:
    """Share one in-flight coroutine between concurrent callers

    The first caller starts the work; callers arriving before it finishes
    await the same future instead of starting a second run. The future is
    cleared once the work completes, so a failed attempt can be retried and a
    successful one is guarded by the owner's own state check.
    """

    def __init__(self):
        self._future: Optional[asyncio.Future] = None

    @property
    def in_flight(self) -> bool:
        return self._future is not None and not self._future.done()

    async def run(self, factory: Callable[[], Awaitable[Any]]) -> Any:
        if self._future is None:
            future = asyncio.ensure_future(factory())
            future.add_done_callback(self._clear)
            self._future = future
        # A cancelled waiter must not cancel the work other callers share
        return await asyncio.shield(self._future)

    def _clear(self, future: asyncio.Future) -> None:
        # Mark the failure as retrieved; every waiter may have been cancelled
        if not future.cancelled():
            future.exception()
        if self._future is future:
            self._future = None
