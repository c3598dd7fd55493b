"""
Per-resource refresh coordination.

Change-feed invalidations and rapid user input (search as you type) can
trigger several loads of the same resource before earlier ones finish.
RefreshCoordinator keeps at most one in-flight load per resource key,
cancels the superseded one and tags every load with a sequence number so
that a result older than the latest issued load is never delivered.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RefreshResult(Generic[T]):
    """Outcome of one refresh."""

    key: str
    sequence: int
    value: Optional[T] = None
    stale: bool = False


class RefreshCoordinator:
    """One cancellable refresh task per resource key."""

    def __init__(self):
        self._tasks: Dict[str, asyncio.Task] = {}
        self._latest: Dict[str, int] = {}

    def issue(self, key: str) -> int:
        """Reserve the next sequence number for a key."""
        sequence = self._latest.get(key, 0) + 1
        self._latest[key] = sequence
        return sequence

    def is_current(self, key: str, sequence: int) -> bool:
        return sequence == self._latest.get(key, 0)

    def cancel(self, key: str) -> None:
        """Cancel the in-flight refresh of a key, if any."""
        task = self._tasks.pop(key, None)
        if task is not None and not task.done():
            task.cancel()

    def cancel_prefix(self, prefix: str) -> None:
        """Cancel every refresh whose key starts with prefix (a closed connection)."""
        for key in [k for k in self._tasks if k.startswith(prefix)]:
            self.cancel(key)
        for key in [k for k in self._latest if k.startswith(prefix)]:
            del self._latest[key]

    async def refresh(self, key: str, loader: Callable[[], Awaitable[T]]) -> RefreshResult[T]:
        """
        Run loader as the newest refresh of key.

        A refresh that is superseded while running, either by cancellation
        or by a newer sequence number, comes back with stale=True and no
        value. Loader exceptions propagate to the caller of the current
        refresh only.

        Args:
            key: Resource key, e.g. "conversation:<id>" or "<sid>:discover"
            loader: Coroutine factory that loads the resource

        Returns:
            RefreshResult carrying the sequence number
        """
        self.cancel(key)
        sequence = self.issue(key)
        task = asyncio.ensure_future(loader())
        self._tasks[key] = task

        try:
            await asyncio.wait({task})
        except asyncio.CancelledError:
            task.cancel()
            raise
        finally:
            if self._tasks.get(key) is task:
                del self._tasks[key]

        if task.cancelled() or not self.is_current(key, sequence):
            logger.debug(f"Discarding stale refresh {key}#{sequence}")
            if not task.cancelled() and task.exception() is not None:
                logger.debug(f"Stale refresh {key}#{sequence} failed: {task.exception()}")
            return RefreshResult(key=key, sequence=sequence, stale=True)

        return RefreshResult(key=key, sequence=sequence, value=task.result())

