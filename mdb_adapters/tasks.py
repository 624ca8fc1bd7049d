"""
Fire-and-forget background tasks.

Side writes (activity log inserts, index builds) run as asyncio tasks that
never feed back into the operation that scheduled them. Their failures are
reported through logging and an optional ``on_error`` callback only.
"""

import asyncio
import logging
import time
from collections.abc import Callable, Coroutine
from typing import Any

from .observability import record_operation

logger = logging.getLogger(__name__)

ErrorCallback = Callable[[str, BaseException], None]


class BackgroundTasks:
    """
    Tracks background tasks until they finish.

    Holding a strong reference keeps the event loop from garbage-collecting
    a task mid-flight.

    Example:
        tasks = BackgroundTasks(on_error=lambda name, exc: sentry.capture(exc))
        tasks.spawn(collection.create_index(...), name="users.create_index")
        ...
        await tasks.drain()  # on shutdown
    """

    def __init__(self, on_error: ErrorCallback | None = None) -> None:
        self._tasks: set[asyncio.Task] = set()
        self._on_error = on_error

    @property
    def pending(self) -> int:
        """Number of tasks not yet finished."""
        return len(self._tasks)

    def spawn(
        self, coro: Coroutine[Any, Any, Any], name: str | None = None
    ) -> asyncio.Task | None:
        """
        Schedule ``coro`` on the running loop.

        Args:
            coro: Coroutine to run in the background
            name: Task name used in logs and metrics

        Returns:
            The scheduled task, or None when no event loop is running
        """
        name = name or getattr(coro, "__qualname__", "background")
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug(f"Skipping background task '{name}' - no event loop running")
            coro.close()
            return None

        task = loop.create_task(self._timed(coro, name), name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    async def drain(self) -> None:
        """Wait for every outstanding task. Failures are already reported."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _timed(self, coro: Coroutine[Any, Any, Any], name: str) -> Any:
        start_time = time.time()
        success = False
        try:
            result = await coro
            success = True
            return result
        finally:
            duration_ms = (time.time() - start_time) * 1000
            record_operation(f"background.{name}", duration_ms, success=success)

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        name = task.get_name()

        if task.cancelled():
            logger.debug(f"Background task '{name}' cancelled")
            return

        exc = task.exception()
        if exc is None:
            return

        logger.error(f"Background task '{name}' failed: {exc}", exc_info=exc)
        if self._on_error is not None:
            try:
                self._on_error(name, exc)
            except Exception:  # noqa: BLE001
                logger.exception(f"Error callback for background task '{name}' failed")
