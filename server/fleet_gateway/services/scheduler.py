"""Delayed-step scheduling for convergence polling and deferred refreshes."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Protocol

logger = logging.getLogger(__name__)

Step = Callable[[], Awaitable[None]]


class Scheduler(Protocol):
    def call_later(self, delay: float, step: Step) -> None:
        """Run ``step`` once, ``delay`` seconds from now."""
        ...


class AsyncioScheduler:
    """Scheduler backed by tasks on the running event loop."""

    def __init__(self) -> None:
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def call_later(self, delay: float, step: Step) -> None:
        task = asyncio.create_task(self._run(delay, step))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(self, delay: float, step: Step) -> None:
        await asyncio.sleep(delay)
        try:
            await step()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Scheduled step failed")

    async def shutdown(self) -> None:
        """Cancel every outstanding step (called on gateway shutdown)."""
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
