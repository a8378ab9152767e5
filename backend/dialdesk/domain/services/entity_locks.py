"""
Entity Lock Registry
Per-entity asyncio locks so multi-step operations on the same phone number
(or the same user/phone pair) never interleave.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Optional

logger = logging.getLogger(__name__)


class EntityLockRegistry:
    """Keyed locks, created on first use and dropped when nobody holds or waits."""

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, *keys: Optional[str]) -> AsyncIterator[None]:
        """
        Hold the locks for every non-empty key.

        Keys are acquired in sorted order so two holders of overlapping
        key sets cannot deadlock.
        """
        ordered = sorted({key for key in keys if key})
        acquired = []
        for key in ordered:
            self._users[key] = self._users.get(key, 0) + 1
            self._locks.setdefault(key, asyncio.Lock())
        try:
            for key in ordered:
                await self._locks[key].acquire()
                acquired.append(key)
            yield
        finally:
            for key in reversed(acquired):
                self._locks[key].release()
            for key in ordered:
                self._users[key] -= 1
                if self._users[key] == 0:
                    del self._users[key]
                    del self._locks[key]
