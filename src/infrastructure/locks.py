"""
Per-key locks.

Both variants hand out one lock per key and drop it once nobody holds or
waits on it, so unrelated keys never serialize against each other and the
table does not grow with every ride ever seen.

* ``KeyedLock`` is a thread lock; it guards short critical sections with no
  awaits inside (the location store's check-and-set).
* ``AsyncKeyedLock`` is an asyncio lock; request handlers hold it across
  "read booking -> validate -> persist" for a single ride.
"""

from __future__ import annotations

import asyncio
import threading
from contextlib import asynccontextmanager, contextmanager
from typing import AsyncIterator, Iterator


class KeyedLock:
    def __init__(self) -> None:
        self._guard = threading.Lock()
        # key -> [lock, holders + waiters]
        self._slots: dict[str, list] = {}

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            slot = self._slots.get(key)
            if slot is None:
                slot = self._slots[key] = [threading.Lock(), 0]
            slot[1] += 1
        try:
            with slot[0]:
                yield
        finally:
            with self._guard:
                slot[1] -= 1
                if slot[1] == 0:
                    del self._slots[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._slots)


class AsyncKeyedLock:
    def __init__(self) -> None:
        self._slots: dict[str, list] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        # No awaits between lookup and registration: atomic on the event loop.
        slot = self._slots.get(key)
        if slot is None:
            slot = self._slots[key] = [asyncio.Lock(), 0]
        slot[1] += 1
        try:
            async with slot[0]:
                yield
        finally:
            slot[1] -= 1
            if slot[1] == 0:
                del self._slots[key]

    def locked(self, key: str) -> bool:
        slot = self._slots.get(key)
        return slot is not None and slot[0].locked()

    def __len__(self) -> int:
        return len(self._slots)
