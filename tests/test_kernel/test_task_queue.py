"""
Tests for the Task Queue.
"""

import asyncio

import pytest

from assetmint.kernel.task_queue import TaskQueue


class TestTaskQueue:
    """Detached task lifecycle."""

    @pytest.mark.asyncio
    async def test_spawn_does_not_block(self):
        queue = TaskQueue("test")
        gate = asyncio.Event()
        done = []

        async def job():
            await gate.wait()
            done.append(True)

        queue.spawn(job(), name="job")

        assert queue.pending == 1
        assert done == []

        gate.set()
        await queue.drain()

        assert done == [True]
        assert queue.pending == 0
        assert queue.get_stats()["completed"] == 1

    @pytest.mark.asyncio
    async def test_failed_task_is_counted_not_raised(self):
        queue = TaskQueue("test")

        async def job():
            raise RuntimeError("delivery failed")

        queue.spawn(job())
        await queue.drain()

        assert queue.get_stats() == {"pending": 0, "completed": 0, "failed": 1}

    @pytest.mark.asyncio
    async def test_drain_waits_for_tasks_spawned_meanwhile(self):
        queue = TaskQueue("test")
        done = []

        async def child():
            done.append("child")

        async def parent():
            await asyncio.sleep(0)
            queue.spawn(child())
            done.append("parent")

        queue.spawn(parent())
        await queue.drain()

        assert sorted(done) == ["child", "parent"]

    @pytest.mark.asyncio
    async def test_close_cancels_stragglers(self):
        queue = TaskQueue("test")

        async def forever():
            await asyncio.sleep(3600)

        task = queue.spawn(forever())
        await queue.close(timeout=0.01)

        assert task.cancelled()
        assert queue.pending == 0
        assert queue.closed

    @pytest.mark.asyncio
    async def test_spawn_after_close_raises(self):
        queue = TaskQueue("test")
        await queue.close()

        async def job():
            return None

        with pytest.raises(RuntimeError, match="closed"):
            queue.spawn(job())
