"""Per-key asyncio locks for single-writer-per-key mutation."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Hashable
from contextlib import asynccontextmanager


class KeyedLocks:
    """Lazily created asyncio locks, one per key.

    Callers on different keys never contend. A key's lock is discarded once no
    task holds or waits on it, so idle keys do not accumulate.
    """

    def __init__(self) -> None:
        self._locks: dict[Hashable, asyncio.Lock] = {}
        self._waiters: dict[Hashable, int] = {}

    @asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncIterator[None]:
        """Hold the lock for ``key`` for the duration of the block."""
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        self._waiters[key] = self._waiters.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            remaining = self._waiters[key] - 1
            if remaining == 0:
                del self._waiters[key]
                del self._locks[key]
            else:
                self._waiters[key] = remaining

    def active_keys(self) -> frozenset[Hashable]:
        """Return keys currently held or awaited."""
        return frozenset(self._locks)
