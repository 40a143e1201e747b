"""Work queue of reconcile keys.

Keys are deduplicated while they wait, and a key is never handed out
twice at the same time. A key added while it is being processed is
queued again once processing is done.
"""

import asyncio
import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Dict, Hashable, Optional, Union

from topic_operator.config import WorkQueueConfig

logger = logging.getLogger(__name__)


@dataclass
class WorkQueueEntry:
    """A key scheduled for later."""

    key: Hashable
    not_before: float
    attempts: int = 0
    handle: Optional[asyncio.TimerHandle] = field(default=None, repr=False)


def _seconds(delay: Union[timedelta, float, int]) -> float:
    if isinstance(delay, timedelta):
        return delay.total_seconds()
    return float(delay)


class WorkQueue:
    """Deduplicating, single-flight work queue with delayed retries.

    All methods must be called from the event loop running the consumer.
    """

    def __init__(self, config: WorkQueueConfig = None, name="queue"):
        self.config = config or WorkQueueConfig()
        self.name = name
        self._queue = deque()
        self._dirty = set()
        self._processing = set()
        self._delayed: Dict[Hashable, WorkQueueEntry] = {}
        self._attempts: Dict[Hashable, int] = {}
        self._wakeup = asyncio.Event()
        self._shutting_down = False

    def __len__(self):
        return len(self._queue) + len(self._delayed)

    @property
    def shutting_down(self):
        return self._shutting_down

    def is_processing(self, key):
        return key in self._processing

    def is_pending(self, key):
        return key in self._dirty or key in self._delayed

    def attempts(self, key) -> int:
        return self._attempts.get(key, 0)

    def add(self, key):
        """Queue a key for immediate processing."""
        if self._shutting_down:
            logger.debug(f"[{self.name}] Shutting down, dropping key: {key}")
            return

        # an immediate run supersedes a scheduled one
        self._cancel_delayed(key)

        if key in self._dirty:
            return
        self._dirty.add(key)

        if key in self._processing:
            # queued again by done()
            return

        self._queue.append(key)
        self._wakeup.set()

    def add_after(self, key, delay: Union[timedelta, float, int]):
        """Queue a key, not to be processed before the delay expired."""
        if self._shutting_down:
            return

        seconds = _seconds(delay)
        if seconds <= 0:
            self.add(key)
            return

        if key in self._dirty:
            # will run anyway
            return

        loop = asyncio.get_running_loop()
        not_before = loop.time() + seconds

        entry = self._delayed.get(key)
        if entry is not None:
            if entry.not_before <= not_before:
                return
            entry.handle.cancel()

        logger.debug(f"[{self.name}] Scheduling {key} in {seconds:.1f}s")
        handle = loop.call_later(seconds, self._expire, key)
        self._delayed[key] = WorkQueueEntry(
            key=key,
            not_before=not_before,
            attempts=self._attempts.get(key, 0),
            handle=handle,
        )

    def retry(self, key):
        """Queue a key again, using the default backoff."""
        attempts = self._attempts.get(key, 0) + 1
        self._attempts[key] = attempts
        self.add_after(key, self.backoff(attempts))

    def backoff(self, attempts: int) -> float:
        delay = self.config.retry_delay_min * (
            self.config.retry_factor ** max(attempts - 1, 0)
        )
        return min(delay, self.config.retry_delay_max)

    def forget(self, key):
        """Reset the backoff of a key."""
        self._attempts.pop(key, None)

    async def get(self):
        """Wait for the next key, None once the queue is shut down."""
        while True:
            if self._shutting_down:
                return None

            if self._queue:
                key = self._queue.popleft()
                self._dirty.discard(key)
                self._processing.add(key)
                return key

            self._wakeup.clear()
            await self._wakeup.wait()

    def done(self, key):
        """Mark a key as processed."""
        self._processing.discard(key)
        if key in self._dirty and not self._shutting_down:
            self._queue.append(key)
            self._wakeup.set()

    def shutdown(self):
        """Stop accepting keys and wake up the consumer."""
        self._shutting_down = True
        for entry in self._delayed.values():
            entry.handle.cancel()
        self._delayed.clear()
        self._wakeup.set()

    def _expire(self, key):
        self._delayed.pop(key, None)
        self.add(key)

    def _cancel_delayed(self, key):
        entry = self._delayed.pop(key, None)
        if entry is not None:
            entry.handle.cancel()
