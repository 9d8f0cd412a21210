"""
Per-partition serialization of position rewrites.

A move reads a partition, recomputes it and writes it back. Two requests
interleaving at their database awaits would otherwise both compute from the
same snapshot. Locks are always taken in sorted key order so a move between
two partitions cannot deadlock against the opposite move.

A lock exists only while someone holds or waits for it.
"""

import asyncio
from contextlib import AsyncExitStack, asynccontextmanager
from typing import AsyncIterator

from sandrocket.models import TaskStatus


class PartitionLocks:
    """Registry of asyncio locks keyed by (epic_id, status)."""

    def __init__(self) -> None:
        self._locks: dict[tuple[int, str], asyncio.Lock] = {}
        # Holders plus waiters of each lock
        self._users: dict[tuple[int, str], int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @staticmethod
    def _normalize(key: tuple[int, TaskStatus]) -> tuple[int, str]:
        epic_id, status = key
        return (int(epic_id), TaskStatus(status).value)

    @asynccontextmanager
    async def _hold_one(self, key: tuple[int, str]) -> AsyncIterator[None]:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                del self._locks[key]

    @asynccontextmanager
    async def hold(self, *keys: tuple[int, TaskStatus]) -> AsyncIterator[None]:
        """Hold the locks of every given partition for the duration of the block."""
        ordered = sorted({self._normalize(key) for key in keys})
        async with AsyncExitStack() as stack:
            for key in ordered:
                await stack.enter_async_context(self._hold_one(key))
            yield

    def clear(self) -> None:
        """Forget all locks; only safe when nothing holds one."""
        self._locks.clear()
        self._users.clear()


partition_locks = PartitionLocks()
