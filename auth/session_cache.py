from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator

from auth.errors import PersistenceError
from auth.models import Session
from auth.token_store import SessionStore


class CacheEntry:
    """Access to one identity's session while its lock is held."""

    def __init__(self, cache: "SessionCache", identity: str) -> None:
        self._cache = cache
        self.identity = identity

    async def get(self) -> Session | None:
        return await self._cache._load(self.identity)

    async def update(self, session: Session | None) -> None:
        await self._cache._persist(self.identity, session)


class SessionCache:
    """Write-through cache in front of a SessionStore.

    Entries are never evicted, and an absent session is cached as ``None`` so
    the store is consulted at most once per identity. Every read and write for
    an identity happens under that identity's lock; use ``hold`` to keep the
    lock across a read-renew-write sequence.
    """

    def __init__(self, store: SessionStore) -> None:
        self._store = store
        self._sessions: dict[str, Session | None] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    @asynccontextmanager
    async def hold(self, identity: str) -> AsyncIterator[CacheEntry]:
        async with self._lock(identity):
            yield CacheEntry(self, identity)

    async def get(self, identity: str) -> Session | None:
        async with self.hold(identity) as entry:
            return await entry.get()

    async def update(self, identity: str, session: Session | None) -> None:
        async with self.hold(identity) as entry:
            await entry.update(session)

    async def invalidate(self, identity: str) -> None:
        await self.update(identity, None)

    def _lock(self, identity: str) -> asyncio.Lock:
        lock = self._locks.get(identity)
        if lock is None:
            lock = self._locks[identity] = asyncio.Lock()
        return lock

    async def _load(self, identity: str) -> Session | None:
        if identity in self._sessions:
            return self._sessions[identity]

        try:
            session = await self._store.load(identity)
        except Exception as error:
            raise PersistenceError(f"load session for {identity}: {error}") from error

        self._sessions[identity] = session
        return session

    async def _persist(self, identity: str, session: Session | None) -> None:
        try:
            await self._store.persist(identity, session)
        except Exception as error:
            raise PersistenceError(f"persist session for {identity}: {error}") from error

        self._sessions[identity] = session
