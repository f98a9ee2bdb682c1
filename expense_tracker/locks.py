"""
Per-user serialization.

Writes that read the current-cycle pointer and act on it (append expense,
open cycle) must not interleave for the same user. Different users never
wait on each other.
"""

import asyncio
import weakref
from contextlib import asynccontextmanager
from typing import AsyncIterator


class UserLockRegistry:
    """
    Hands out one asyncio.Lock per user id.

    Locks are held weakly: once no coroutine holds or waits on a user's
    lock it is dropped, so idle users don't accumulate.
    """

    def __init__(self):
        self._locks: "weakref.WeakValueDictionary[int, asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    def lock_for(self, user_id: int) -> asyncio.Lock:
        """Return the lock for a user, creating it on first use."""
        lock = self._locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[user_id] = lock
        return lock

    @asynccontextmanager
    async def hold(self, user_id: int) -> AsyncIterator[None]:
        """Hold the user's lock for the duration of the block."""
        lock = self.lock_for(user_id)
        async with lock:
            yield

    def __len__(self) -> int:
        return len(self._locks)
