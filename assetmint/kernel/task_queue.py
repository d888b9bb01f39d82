"""
Task Queue

Holds detached background tasks (fire-and-forget notifications) so they are
neither garbage-collected mid-flight nor finish with an unobserved exception.
"""

from __future__ import annotations

import asyncio
from typing import Any, Coroutine

import structlog

logger = structlog.get_logger(__name__)


class TaskQueue:
    """
    Registry of detached asyncio tasks.

    spawn() schedules a coroutine and returns immediately. The queue keeps a
    strong reference until the task finishes; a done-callback logs any
    exception so failures surface in logs instead of being lost.
    """

    def __init__(self, name: str = "background"):
        self.name = name
        self._tasks: set[asyncio.Task[Any]] = set()
        self._closed = False
        self._completed = 0
        self._failed = 0

    @property
    def pending(self) -> int:
        return len(self._tasks)

    @property
    def closed(self) -> bool:
        return self._closed

    def spawn(self, coro: Coroutine[Any, Any, Any], name: str | None = None) -> asyncio.Task[Any]:
        """Schedule coro on the running loop without awaiting it."""
        if self._closed:
            coro.close()
            raise RuntimeError(f"Task queue {self.name} is closed")

        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            logger.debug("background_task_cancelled", queue=self.name, task=task.get_name())
            return

        error = task.exception()
        if error is not None:
            self._failed += 1
            logger.error(
                "background_task_failed",
                queue=self.name,
                task=task.get_name(),
                error=str(error),
                error_type=type(error).__name__,
            )
        else:
            self._completed += 1

    async def drain(self, timeout: float | None = None) -> None:
        """Wait for every task spawned so far, including ones spawned meanwhile."""
        while self._tasks:
            _, pending = await asyncio.wait(set(self._tasks), timeout=timeout)
            if pending:
                logger.warning(
                    "background_tasks_outstanding", queue=self.name, count=len(pending)
                )
                return

    async def close(self, timeout: float | None = 10.0) -> None:
        """Stop accepting work, wait for pending tasks, cancel stragglers."""
        self._closed = True
        await self.drain(timeout=timeout)
        stragglers = list(self._tasks)
        for task in stragglers:
            task.cancel()
        if stragglers:
            await asyncio.gather(*stragglers, return_exceptions=True)
        logger.info(
            "task_queue_closed",
            queue=self.name,
            completed=self._completed,
            failed=self._failed,
            cancelled=len(stragglers),
        )

    def get_stats(self) -> dict[str, int]:
        return {
            "pending": self.pending,
            "completed": self._completed,
            "failed": self._failed,
        }
