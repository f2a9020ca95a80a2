"""Per-key single-flight guard for bootstrap attempts."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SingleFlight:
    """Runs at most one attempt per key at a time.

    A caller arriving while an attempt for the same key is running awaits
    that attempt instead of starting another. Cancelling a caller only
    stops its wait: the shared attempt keeps running to completion so a
    write that is already in flight is never abandoned halfway.
    """

    def __init__(self) -> None:
        self._inflight: dict[str, asyncio.Task] = {}

    def in_flight(self, key: str) -> bool:
        return key in self._inflight

    async def run(self, key: str, factory: Callable[[], Awaitable[T]]) -> T:
        if self.in_flight(key):
            logger.info(f"Joining in-flight bootstrap for {key}")
        else:
            task = asyncio.ensure_future(factory())
            self._inflight[key] = task
            task.add_done_callback(lambda t: self._finished(key, t))
        return await asyncio.shield(self._inflight[key])

    def _finished(self, key: str, task: asyncio.Task) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        # Retrieve the outcome so abandoned failures are not reported as unhandled
        if not task.cancelled() and task.exception() is not None:
            logger.debug(f"Bootstrap for {key} failed: {task.exception()}")
