"""Single-flight queue for local read-modify-write cycles.

The local store rewrites the whole collection on every change. Two logical
operations that each read, suspend on network I/O, and then write would
silently drop each other's changes. Every local mutation in packlog therefore
runs inside :meth:`MutationQueue.slot`, and nothing awaits the network while
holding it.
"""

import asyncio
import contextlib
import logging
from typing import Callable, List, Optional

from packlog.types import Record

from .local import LocalStore

logger = logging.getLogger(__name__)


class MutationQueue:
    """Serializes local store mutations across asyncio tasks."""

    def __init__(self):
        self._lock: Optional[asyncio.Lock] = None
        self._current: Optional[str] = None

    def _get_lock(self) -> asyncio.Lock:
        # Created lazily so the lock belongs to the running loop.
        if self._lock is None:
            self._lock = asyncio.Lock()
        return self._lock

    @contextlib.asynccontextmanager
    async def slot(self, label: str):
        """Hold the queue for one read-modify-write cycle."""
        lock = self._get_lock()
        if lock.locked():
            logger.debug(f"Mutation '{label}' waiting for '{self._current}'")
        async with lock:
            self._current = label
            try:
                yield
            finally:
                self._current = None

    async def apply(
        self,
        store: LocalStore,
        transform: Callable[[List[Record]], List[Record]],
        label: str = "mutation",
    ) -> List[Record]:
        """Read all records, transform them, write them back, in one slot."""
        async with self.slot(label):
            records = transform(store.list())
            store.replace_all(records)
            return records
