"""Cancellation handles for background asyncio loops."""

from __future__ import annotations

import asyncio
from typing import Coroutine, Optional

from gym_portal.core.logging_config import get_logger

logger = get_logger(__name__)


class TaskHandle:
    """Owns one background task; whoever started it must cancel it."""

    def __init__(self, task: Optional[asyncio.Task], name: str):
        self._task = task
        self.name = name

    @classmethod
    def spawn(cls, coro: Coroutine, name: str) -> "TaskHandle":
        return cls(asyncio.create_task(coro, name=name), name)

    @classmethod
    def finished(cls, name: str) -> "TaskHandle":
        """Handle for a loop that had nothing to do."""
        return cls(None, name)

    @property
    def done(self) -> bool:
        return self._task is None or self._task.done()

    def cancel(self) -> None:
        if self._task is not None and not self._task.done():
            logger.debug(f"Cancelling {self.name}")
            self._task.cancel()

    async def wait(self) -> None:
        """Wait for the task to finish; cancellation counts as finishing."""
        if self._task is None:
            return
        try:
            await self._task
        except asyncio.CancelledError:
            if not self._task.cancelled():
                raise

    async def aclose(self) -> None:
        self.cancel()
        await self.wait()


async def wait_or_timeout(event: asyncio.Event, seconds: float) -> bool:
    """Sleep for ``seconds`` unless ``event`` fires first; returns True if it fired."""
    try:
        await asyncio.wait_for(event.wait(), timeout=seconds)
        return True
    except asyncio.TimeoutError:
        return False
