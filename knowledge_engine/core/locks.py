"""
Keyed asyncio locks.

Serializes work on the same key (a root entry id) inside one process while
letting different keys proceed concurrently. Idle locks are dropped as soon
as no coroutine holds or waits on them.

Dependencies: asyncio
System role: Per-root serialization of re-chunking
"""

import asyncio
from collections.abc import AsyncIterator, Hashable
from contextlib import asynccontextmanager


class KeyedLock:
    """Registry of asyncio.Lock objects, one per active key."""

    def __init__(self) -> None:
        self._locks: dict[Hashable, asyncio.Lock] = {}
        self._waiters: dict[Hashable, int] = {}

    @asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncIterator[None]:
        """
        Acquire the lock for key for the duration of the block.

        Args:
            key: Lock key

        Usage:
            async with entry_locks.hold(entry_id):
                ...
        """
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._waiters[key] -= 1
            if self._waiters[key] == 0:
                del self._waiters[key]
                del self._locks[key]

    def is_locked(self, key: Hashable) -> bool:
        """Return True when some coroutine currently holds the lock for key."""
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        return len(self._locks)
