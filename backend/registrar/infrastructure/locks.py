"""
Per-event critical sections.

CONCURRENCY STRATEGY: Pessimistic lock per event
=================================================

Problem:
  Two participants ask for the last slot at the same time.
  Both read available_slots=1, both write CONFIRMED.
  Result: Oversold event.

Solution:
  Every read-decide-write on an event (admission, cancellation, no-show,
  check-in, capacity change, promotion) runs while holding that event's
  lock. Operations on different events never share a lock.

  Waiting is bounded by a timeout; a caller that cannot get in raises
  ContentionError instead of queueing forever, and the service retries
  the whole operation.

  Locks live in a WeakValueDictionary so an event that nobody is using
  does not keep its lock alive.
"""

import asyncio
import time
import weakref
from contextlib import asynccontextmanager
from typing import AsyncIterator

from registrar.core.exceptions import ContentionError
from registrar.core.logging import get_logger
from registrar.core.metrics import critical_section_latency

logger = get_logger(__name__)


class EventLockRegistry:
    """Hands out one asyncio.Lock per event id."""

    def __init__(self, timeout: float = 5.0) -> None:
        self.timeout = timeout
        self._locks: "weakref.WeakValueDictionary[int, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _lock_for(self, event_id: int) -> asyncio.Lock:
        lock = self._locks.get(event_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[event_id] = lock
        return lock

    def is_locked(self, event_id: int) -> bool:
        lock = self._locks.get(event_id)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def hold(self, event_id: int) -> AsyncIterator[None]:
        lock = self._lock_for(event_id)
        try:
            async with asyncio.timeout(self.timeout):
                await lock.acquire()
        except TimeoutError:
            logger.warning("event_lock_timeout", event_id=event_id, timeout=self.timeout)
            raise ContentionError(event_id, "lock_timeout") from None

        started = time.perf_counter()
        try:
            yield
        finally:
            lock.release()
            critical_section_latency.observe(time.perf_counter() - started)
