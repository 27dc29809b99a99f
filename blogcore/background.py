"""Fire-and-forget work decoupled from the request/response path"""

import asyncio
from collections.abc import Coroutine, Hashable
from typing import Any

import structlog

from blogcore.metrics import BACKGROUND_TASKS

logger = structlog.get_logger(__name__)


async def _run_after(previous: asyncio.Task, coro: Coroutine[Any, Any, Any]) -> Any:
    try:
        await asyncio.wait([previous])
    except asyncio.CancelledError:
        coro.close()
        raise
    return await coro


class BackgroundTasks:
    """Runs coroutines as tasks the caller never awaits.

    Strong references are kept until a task finishes so it cannot be garbage
    collected mid-flight. Failures go to the log and the
    ``blogcore_background_tasks_total`` counter instead of the caller.

    Tasks submitted with the same ``key`` run one after another in submission
    order, whatever the outcome of the previous one.
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task] = set()
        self._chains: dict[Hashable, asyncio.Task] = {}

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def submit(
        self,
        coro: Coroutine[Any, Any, Any],
        *,
        name: str,
        key: Hashable | None = None,
        **context: Any,
    ) -> asyncio.Task:
        """Schedule a coroutine; requires a running event loop."""
        previous = self._chains.get(key) if key is not None else None
        if previous is not None and not previous.done():
            coro = _run_after(previous, coro)
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        if key is not None:
            self._chains[key] = task
        operation = context.get("operation", name)
        BACKGROUND_TASKS.labels(operation=operation, result="submitted").inc()
        task.add_done_callback(lambda t: self._finished(t, key, operation, context))
        return task

    def _finished(
        self,
        task: asyncio.Task,
        key: Hashable | None,
        operation: str,
        context: dict[str, Any],
    ) -> None:
        self._tasks.discard(task)
        if key is not None and self._chains.get(key) is task:
            del self._chains[key]
        if task.cancelled():
            BACKGROUND_TASKS.labels(operation=operation, result="cancelled").inc()
            logger.info("background_task_cancelled", task=task.get_name(), **context)
            return
        exc = task.exception()
        if exc is not None:
            BACKGROUND_TASKS.labels(operation=operation, result="failed").inc()
            logger.warning(
                "background_task_failed",
                task=task.get_name(),
                error=str(exc),
                error_type=type(exc).__name__,
                **context,
            )
            return
        BACKGROUND_TASKS.labels(operation=operation, result="completed").inc()

    async def drain(self) -> None:
        """Wait for every task in flight, including ones submitted meanwhile."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def cancel_all(self) -> None:
        for task in list(self._tasks):
            task.cancel()
        await self.drain()
