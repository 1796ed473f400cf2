"""
Deduplicating work queue for reconciliation keys.

A key is queued at most once no matter how often it is added, and a key is
never handed to two workers at the same time: adding a key while it is being
processed marks it dirty, and it is queued again when the worker calls
``done``. Distinct keys are processed in parallel.

Failed keys are re-added with per-key exponential backoff:
``min(base_delay * 2 ** failures, max_delay)``. ``forget`` resets the count.

Usage:
    >>> queue = WorkQueue()
    >>> queue.add("default/orders")
    >>> key = await queue.get()
    >>> try:
    ...     ok = await reconcile(key)
    ... finally:
    ...     queue.done(key)
    >>> queue.forget(key) if ok else queue.add_rate_limited(key)
"""

import asyncio
from typing import Dict, Optional, Set

from dbcontroller.config.logging import get_logger

logger = get_logger(__name__)


class WorkQueue:
    """In-process work queue with dedup, in-flight exclusion and backoff."""

    def __init__(self, base_delay: float = 0.005, max_delay: float = 1000.0):
        """
        Initialize work queue.

        Args:
            base_delay: Delay before the first retry of a key, in seconds
            max_delay: Upper bound for the per-key retry delay, in seconds
        """
        self.base_delay = base_delay
        self.max_delay = max_delay
        self._ready: "asyncio.Queue[Optional[str]]" = asyncio.Queue()
        self._dirty: Set[str] = set()
        self._processing: Set[str] = set()
        self._failures: Dict[str, int] = {}
        self._timers: Set[asyncio.TimerHandle] = set()
        self._waiters = 0
        self._shutting_down = False

    def __len__(self) -> int:
        return len(self._dirty) - len(self._dirty & self._processing)

    @property
    def shutting_down(self) -> bool:
        return self._shutting_down

    def add(self, key: str) -> None:
        """Queue ``key`` unless it is already waiting."""
        if self._shutting_down or key in self._dirty:
            return
        self._dirty.add(key)
        if key in self._processing:
            # re-queued by done()
            return
        self._ready.put_nowait(key)

    def add_after(self, key: str, delay: float) -> None:
        """Queue ``key`` once ``delay`` seconds have passed."""
        if self._shutting_down:
            return
        if delay <= 0:
            self.add(key)
            return
        loop = asyncio.get_running_loop()

        def fire() -> None:
            # a fired handle is not cancelled, so it drops itself here
            self._timers.discard(handle)
            self.add(key)

        handle = loop.call_later(delay, fire)
        self._timers.add(handle)

    @property
    def pending_timers(self) -> int:
        """Number of delayed adds that have not fired yet."""
        return len(self._timers)

    def add_rate_limited(self, key: str) -> float:
        """Queue ``key`` after its backoff delay and return that delay."""
        failures = self._failures.get(key, 0)
        self._failures[key] = failures + 1
        delay = min(self.base_delay * (2 ** failures), self.max_delay)
        logger.debug("work_queue_key_requeued", key=key, attempt=failures + 1, delay_seconds=delay)
        self.add_after(key, delay)
        return delay

    def forget(self, key: str) -> None:
        """Stop tracking retries of ``key``."""
        self._failures.pop(key, None)

    def num_requeues(self, key: str) -> int:
        return self._failures.get(key, 0)

    async def get(self) -> Optional[str]:
        """
        Wait for the next key.

        Returns:
            The key to process, or None once the queue is shut down
        """
        while True:
            if self._shutting_down and self._ready.empty():
                return None
            self._waiters += 1
            try:
                key = await self._ready.get()
            finally:
                self._waiters -= 1
            if key is None:
                return None
            if key not in self._dirty:
                continue
            self._dirty.discard(key)
            self._processing.add(key)
            return key

    def done(self, key: str) -> None:
        """Mark ``key`` as no longer in flight, re-queueing it if it was added meanwhile."""
        self._processing.discard(key)
        if key in self._dirty and not self._shutting_down:
            self._ready.put_nowait(key)

    def shutdown(self) -> None:
        """Stop accepting keys and wake every waiting worker."""
        if self._shutting_down:
            return
        self._shutting_down = True
        for timer in self._timers:
            timer.cancel()
        self._timers.clear()
        for _ in range(self._waiters):
            self._ready.put_nowait(None)
        logger.info("work_queue_shut_down", pending=len(self))
