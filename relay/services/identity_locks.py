import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator


class IdentityLocks:
    """One asyncio.Lock per conversation identity, created on demand.

    Events of different identities never wait on each other. A lock is dropped
    as soon as nobody holds or waits on it, so the map only grows with the
    number of identities that are busy right now.
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._locks)

    @asynccontextmanager
    async def hold(self, identity: str) -> AsyncIterator[None]:
        lock = self._locks.get(identity)
        if lock is None:
            lock = self._locks[identity] = asyncio.Lock()
        self._users[identity] = self._users.get(identity, 0) + 1
        try:
            async with lock:
                yield
        finally:
            remaining = self._users[identity] - 1
            if remaining:
                self._users[identity] = remaining
            else:
                del self._users[identity]
                del self._locks[identity]
