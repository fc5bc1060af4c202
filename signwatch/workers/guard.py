"""Per-task mutual exclusion shared by scheduled ticks and manual triggers."""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class TaskGuard:
    """Ensures a task never runs concurrently with itself.

    Scheduled ticks use try_hold() and skip when the task is in flight;
    manual triggers use hold() and queue behind the running instance.
    The lock is released even when the task body raises.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._lock = asyncio.Lock()

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    @asynccontextmanager
    async def hold(self) -> AsyncIterator[None]:
        async with self._lock:
            yield

    @asynccontextmanager
    async def try_hold(self) -> AsyncIterator[bool]:
        """Yield True if the guard was free and is now held, False otherwise."""
        if self._lock.locked():
            yield False
            return
        await self._lock.acquire()
        try:
            yield True
        finally:
            self._lock.release()
