"""Registry of background evaluation tasks, keyed by job id."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from muve.errors import JobAlreadyRunningError

logger = logging.getLogger(__name__)


class JobRegistry:
    """Owns one asyncio.Task per running job.

    Holds strong references so un-awaited tasks are not collected, refuses a
    second concurrent run for the same id, and forgets a task once it is done.
    """

    def __init__(self):
        self._tasks: dict[str, asyncio.Task] = {}

    def start(self, job_id: str, run: Callable[[str], Awaitable[None]]) -> asyncio.Task:
        existing = self._tasks.get(job_id)
        if existing is not None and not existing.done():
            raise JobAlreadyRunningError(job_id)

        task = asyncio.create_task(run(job_id), name=f"evaluation-{job_id}")
        self._tasks[job_id] = task
        task.add_done_callback(lambda t: self._on_done(job_id, t))
        return task

    def _on_done(self, job_id: str, task: asyncio.Task) -> None:
        if self._tasks.get(job_id) is task:
            del self._tasks[job_id]
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Evaluation task {job_id} crashed", exc_info=task.exception())

    def is_running(self, job_id: str) -> bool:
        task = self._tasks.get(job_id)
        return task is not None and not task.done()

    def running(self) -> list[str]:
        return [job_id for job_id, task in self._tasks.items() if not task.done()]

    async def wait(self, job_id: str) -> None:
        """Block until the job's task finishes (returns at once if none is running)."""
        task = self._tasks.get(job_id)
        if task is not None:
            await asyncio.wait({task})

    async def shutdown(self) -> None:
        """Cancel every outstanding task and wait for them to unwind."""
        tasks = [t for t in self._tasks.values() if not t.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
