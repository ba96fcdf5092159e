"""Fire-and-forget task scheduling bound to the application lifecycle."""

import asyncio
from collections.abc import Coroutine
from typing import Any

from tenantpay.common.logging import logger
from tenantpay.common.metrics import background_tasks_in_flight


class BackgroundRunner:
    """Runs coroutines detached from the request that scheduled them.

    Results are never returned to the caller. Failures are logged when the task
    finishes. `shutdown` cancels whatever is still running and waits for the
    cancellation handlers to complete.
    """

    def __init__(self, service_name: str) -> None:
        self.service_name = service_name
        self._tasks: set[asyncio.Task] = set()

    def submit(self, coro: Coroutine[Any, Any, Any], name: str) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro, name=name)
        self._tasks.add(task)
        background_tasks_in_flight.labels(service=self.service_name).inc()
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        background_tasks_in_flight.labels(service=self.service_name).dec()
        if task.cancelled():
            logger.warning("background_task_cancelled name=%s", task.get_name())
            return
        exc = task.exception()
        if exc is not None:
            logger.error("background_task_failed name=%s error=%s", task.get_name(), exc)

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    async def shutdown(self) -> None:
        """Cancel in-flight tasks and wait for them to settle."""

        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
