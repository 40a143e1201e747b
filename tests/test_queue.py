"""Tests for the work queue."""

from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from topic_operator.config import WorkQueueConfig
from topic_operator.controller.queue import WorkQueue


async def next_key(queue: WorkQueue, timeout: float = 1.0):
    return await asyncio.wait_for(queue.get(), timeout)


async def assert_empty(queue: WorkQueue, wait: float = 0.05) -> None:
    with pytest.raises(asyncio.TimeoutError):
        await asyncio.wait_for(queue.get(), wait)


class TestWorkQueue:
    """Tests for adding and taking keys."""

    @pytest.mark.asyncio
    async def test_fifo(self, queue_config) -> None:
        queue = WorkQueue(queue_config)
        queue.add("a")
        queue.add("b")

        assert await next_key(queue) == "a"
        assert await next_key(queue) == "b"

    @pytest.mark.asyncio
    async def test_deduplicates_waiting_keys(self, queue_config) -> None:
        """Test that a key added twice is handed out once."""
        queue = WorkQueue(queue_config)
        queue.add("a")
        queue.add("a")

        assert len(queue) == 1
        assert await next_key(queue) == "a"
        await assert_empty(queue)

    @pytest.mark.asyncio
    async def test_single_flight(self, queue_config) -> None:
        """Test that a key being processed is not handed out again."""
        queue = WorkQueue(queue_config)
        queue.add("a")
        assert await next_key(queue) == "a"
        assert queue.is_processing("a")

        queue.add("a")
        queue.add("a")
        assert queue.is_pending("a")
        await assert_empty(queue)

        queue.done("a")
        assert await next_key(queue) == "a"
        queue.done("a")
        await assert_empty(queue)

    @pytest.mark.asyncio
    async def test_done_without_changes(self, queue_config) -> None:
        queue = WorkQueue(queue_config)
        queue.add("a")
        await next_key(queue)

        queue.done("a")

        assert not queue.is_processing("a")
        assert len(queue) == 0

    @pytest.mark.asyncio
    async def test_wakes_up_waiting_consumer(self, queue_config) -> None:
        queue = WorkQueue(queue_config)
        waiter = asyncio.create_task(queue.get())
        await asyncio.sleep(0)

        queue.add("a")

        assert await asyncio.wait_for(waiter, 1.0) == "a"


class TestDelayedKeys:
    """Tests for keys scheduled for later."""

    @pytest.mark.asyncio
    async def test_add_after(self, queue_config) -> None:
        queue = WorkQueue(queue_config)
        queue.add_after("a", timedelta(milliseconds=100))

        assert queue.is_pending("a")
        await assert_empty(queue, 0.02)
        assert await next_key(queue) == "a"

    @pytest.mark.asyncio
    async def test_zero_delay_is_immediate(self, queue_config) -> None:
        queue = WorkQueue(queue_config)
        queue.add_after("a", 0)

        assert await next_key(queue, 0.05) == "a"

    @pytest.mark.asyncio
    async def test_add_supersedes_delayed(self, queue_config) -> None:
        """Test that an immediate add replaces a scheduled run."""
        queue = WorkQueue(queue_config)
        queue.add_after("a", 10)

        queue.add("a")

        assert await next_key(queue, 0.05) == "a"
        queue.done("a")
        assert len(queue) == 0

    @pytest.mark.asyncio
    async def test_earliest_delay_wins(self, queue_config) -> None:
        queue = WorkQueue(queue_config)
        queue.add_after("a", 10)
        queue.add_after("a", 0.05)
        queue.add_after("a", 20)

        assert len(queue) == 1
        assert await next_key(queue) == "a"
        queue.done("a")
        await assert_empty(queue)

    @pytest.mark.asyncio
    async def test_delay_ignored_while_queued(self, queue_config) -> None:
        queue = WorkQueue(queue_config)
        queue.add("a")
        queue.add_after("a", 10)

        assert len(queue) == 1
        assert await next_key(queue, 0.05) == "a"
        queue.done("a")
        assert len(queue) == 0

    @pytest.mark.asyncio
    async def test_delayed_while_processing(self, queue_config) -> None:
        """Test that a scheduled key expiring during processing waits."""
        queue = WorkQueue(queue_config)
        queue.add("a")
        await next_key(queue)

        queue.add_after("a", 0.01)
        await asyncio.sleep(0.05)
        await assert_empty(queue)

        queue.done("a")
        assert await next_key(queue) == "a"


class TestBackoff:
    """Tests for retries with the default backoff."""

    def test_backoff_grows_and_caps(self, queue_config) -> None:
        queue = WorkQueue(queue_config)

        assert [queue.backoff(n) for n in range(1, 6)] == [1.0, 2.0, 4.0, 8.0, 8.0]

    @pytest.mark.asyncio
    async def test_retry_counts_attempts(self) -> None:
        queue = WorkQueue(WorkQueueConfig(retry_delay_min=0.01, retry_delay_max=0.02))

        queue.retry("a")
        assert queue.attempts("a") == 1
        assert await next_key(queue) == "a"
        queue.done("a")

        queue.retry("a")
        assert queue.attempts("a") == 2
        assert await next_key(queue) == "a"

    @pytest.mark.asyncio
    async def test_forget_resets(self, queue_config) -> None:
        queue = WorkQueue(queue_config)
        queue.retry("a")
        queue.retry("a")

        queue.forget("a")

        assert queue.attempts("a") == 0


class TestShutdown:
    """Tests for shutting down the queue."""

    @pytest.mark.asyncio
    async def test_get_returns_none(self, queue_config) -> None:
        queue = WorkQueue(queue_config)
        queue.add("a")

        queue.shutdown()

        assert queue.shutting_down
        assert await next_key(queue) is None

    @pytest.mark.asyncio
    async def test_wakes_up_waiting_consumer(self, queue_config) -> None:
        queue = WorkQueue(queue_config)
        waiter = asyncio.create_task(queue.get())
        await asyncio.sleep(0)

        queue.shutdown()

        assert await asyncio.wait_for(waiter, 1.0) is None

    @pytest.mark.asyncio
    async def test_drops_new_and_delayed_keys(self, queue_config) -> None:
        queue = WorkQueue(queue_config)
        queue.add_after("a", 10)

        queue.shutdown()
        queue.add("b")
        queue.add_after("c", 1)

        assert len(queue) == 0
