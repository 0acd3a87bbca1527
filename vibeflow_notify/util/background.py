"""Fire-and-forget task tracking for work finished after a response is sent."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any

logger = logging.getLogger(__name__)


class BackgroundTasks:
    """Holds strong references to detached tasks until they complete.

    The event loop only keeps weak references to tasks, so a task created
    with :func:`asyncio.create_task` and then dropped can be collected
    mid-flight. Tasks are never cancelled here; :meth:`drain` waits for
    whatever is still pending at shutdown.
    """

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task[Any]] = set()

    def __len__(self) -> int:
        return len(self._tasks)

    def spawn(self, coro: Coroutine[Any, Any, Any], *, name: str | None = None) -> asyncio.Task[Any]:
        task = asyncio.create_task(coro, name=name)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(
                "[background] task %s failed: %s", task.get_name(), exc, exc_info=exc,
            )

    async def drain(self, timeout: float | None = None) -> None:
        """Wait for pending tasks; returns early after *timeout* seconds."""
        pending = list(self._tasks)
        if not pending:
            return
        logger.info("[background] waiting for %d pending task(s)", len(pending))
        await asyncio.wait(pending, timeout=timeout)
