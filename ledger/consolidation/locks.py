"""
Per-date mutual exclusion.

At most one consolidation of a given date may run its read-modify-write
sequence at a time. Different dates never share a lock.
"""

import asyncio
from contextlib import asynccontextmanager
from datetime import date
from typing import AsyncIterator, Optional


class DateHold:
    """
    Handle for a held date lock.

    Normally the lock is released when the `hold` block exits. A holder
    that leaves a write running can call release_after(write) to keep the
    date locked until that write has finished.
    """

    def __init__(self, day: date):
        self.day = day
        self.pending: Optional[asyncio.Future] = None

    def release_after(self, future: asyncio.Future) -> None:
        self.pending = future


class DateLockRegistry:
    """
    Keyed asyncio.Lock map.

    A lock exists only while someone holds or waits for it; the last user
    out removes it, so the map does not grow with every date ever seen.
    """

    def __init__(self):
        self._locks: dict[date, asyncio.Lock] = {}
        self._users: dict[date, int] = {}

    @asynccontextmanager
    async def hold(self, day: date) -> AsyncIterator[DateHold]:
        """Hold the lock for `day` for the duration of the block."""
        lock = self._locks.get(day)
        if lock is None:
            lock = self._locks[day] = asyncio.Lock()
        self._users[day] = self._users.get(day, 0) + 1

        try:
            await lock.acquire()
        except BaseException:
            self._leave(day)
            raise

        handle = DateHold(day)
        try:
            yield handle
        finally:
            pending = handle.pending
            if pending is not None and not pending.done():
                pending.add_done_callback(lambda _: self._release(day, lock))
            else:
                self._release(day, lock)

    def _release(self, day: date, lock: asyncio.Lock) -> None:
        lock.release()
        self._leave(day)

    def _leave(self, day: date) -> None:
        self._users[day] -= 1
        if self._users[day] == 0:
            del self._users[day]
            del self._locks[day]

    def is_locked(self, day: date) -> bool:
        lock = self._locks.get(day)
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        return len(self._locks)
