from __future__ import annotations

import asyncio
import contextlib
import uuid
from typing import AsyncIterator, Dict, List, Protocol, Set

from .cache import IgnoreCache
from .storage.utils import RemovalResult, logger
from .store import IgnoreStore


class UserDirectory(Protocol):
    async def resolve_name(self, user_id: uuid.UUID) -> str | None: ...

    def is_online(self, user_id: uuid.UUID) -> bool: ...


class _ActorSlot:
    """Lock shared by everyone working on one actor; dropped when the last holder leaves."""

    __slots__ = ("lock", "holders", "evictions")

    def __init__(self) -> None:
        self.lock = asyncio.Lock()
        self.holders = 0
        self.evictions = 0


class IgnoreService:
    """Write-through ignore relations: the store is written first, the cache mirrors it.

    Mutations and cache loads for one actor run under that actor's lock, so a
    load can never overwrite a newer write with a stale read and ``toggle`` is
    a proper read-modify-write. Cache hits in ``is_ignoring`` never wait on
    the lock.

    Only actors the directory reports online get a cache entry, and a load
    that overlaps ``evict_on_disconnect`` does not write its result back.
    """

    def __init__(self, store: IgnoreStore, cache: IgnoreCache, directory: UserDirectory) -> None:
        self.store = store
        self.cache = cache
        self.directory = directory
        self._actor_slots: Dict[uuid.UUID, _ActorSlot] = {}

    async def is_ignoring(self, actor: uuid.UUID, target: uuid.UUID) -> bool:
        cached = self.cache.contains(actor, target)
        if cached is not None:
            return cached

        async with self._locked(actor) as seen:
            cached = self.cache.contains(actor, target)
            if cached is not None:
                return cached
            found = await self.store.exists(actor, target)
            if found:
                await self._load_locked(actor, seen, keep_empty=False)
            return found

    async def add(self, actor: uuid.UUID, target: uuid.UUID) -> bool:
        async with self._locked(actor) as seen:
            return await self._add_locked(actor, target, seen)

    async def remove(self, actor: uuid.UUID, target: uuid.UUID) -> RemovalResult:
        async with self._locked(actor):
            return await self._remove_locked(actor, target)

    async def toggle(self, actor: uuid.UUID, target: uuid.UUID) -> bool:
        """Flip the relation and return whether ``actor`` now ignores ``target``."""
        async with self._locked(actor) as seen:
            currently = self.cache.contains(actor, target)
            if currently is None:
                currently = await self.store.exists(actor, target)
            if currently:
                result = await self._remove_locked(actor, target)
                return result is RemovalResult.FAILED
            return await self._add_locked(actor, target, seen)

    async def list_targets(self, actor: uuid.UUID) -> Set[uuid.UUID]:
        cached = self.cache.get(actor)
        if cached is not None:
            return cached
        targets = await self._load(actor, keep_empty=False)
        return set(targets) if targets else set()

    async def list_formatted(self, actor: uuid.UUID) -> List[str]:
        lines: List[str] = []
        for target in await self.list_targets(actor):
            name = await self.directory.resolve_name(target)
            if not name:
                continue
            status = "Online" if self.directory.is_online(target) else "Offline"
            lines.append(f"{name} [{status}]")
        lines.sort(key=str.casefold)
        return lines

    async def count(self, actor: uuid.UUID) -> int:
        cached = self.cache.get(actor)
        if cached is not None:
            return len(cached)
        return await self.store.count(actor)

    async def load_on_connect(self, actor: uuid.UUID) -> bool:
        return await self._load(actor, keep_empty=True) is not None

    def evict_on_disconnect(self, actor: uuid.UUID) -> None:
        self.cache.evict(actor)
        slot = self._actor_slots.get(actor)
        if slot is not None:
            slot.evictions += 1

    def cache_size(self) -> int:
        return self.cache.size()

    def flush_cache(self) -> int:
        dropped = self.cache.size()
        self.cache.clear()
        return dropped

    @contextlib.asynccontextmanager
    async def _locked(self, actor: uuid.UUID) -> AsyncIterator[int]:
        # Yields the eviction count seen on entry; compare it before caching.
        slot = self._actor_slots.get(actor)
        if slot is None:
            slot = self._actor_slots[actor] = _ActorSlot()
        slot.holders += 1
        seen = slot.evictions
        try:
            async with slot.lock:
                yield seen
        finally:
            slot.holders -= 1
            if slot.holders == 0 and self._actor_slots.get(actor) is slot:
                del self._actor_slots[actor]

    def _may_cache(self, actor: uuid.UUID, seen: int) -> bool:
        slot = self._actor_slots.get(actor)
        if slot is not None and slot.evictions != seen:
            return False
        return self.directory.is_online(actor)

    async def _load(self, actor: uuid.UUID, *, keep_empty: bool) -> Set[uuid.UUID] | None:
        async with self._locked(actor) as seen:
            return await self._load_locked(actor, seen, keep_empty=keep_empty)

    async def _load_locked(self, actor: uuid.UUID, seen: int, *, keep_empty: bool) -> Set[uuid.UUID] | None:
        cached = self.cache.get(actor)
        if cached is not None:
            return cached
        targets = await self.store.fetch_targets(actor)
        if targets is None:
            logger.warning("Ignore cache load skipped for actor=%s after store failure", actor)
            return None
        if (targets or keep_empty) and self._may_cache(actor, seen):
            self.cache.put(actor, targets)
        return targets

    async def _add_locked(self, actor: uuid.UUID, target: uuid.UUID, seen: int) -> bool:
        if not await self.store.add(actor, target):
            return False
        if self.cache.get(actor) is not None:
            self.cache.add_to(actor, target)
            return True
        targets = await self.store.fetch_targets(actor)
        if targets is not None and self._may_cache(actor, seen):
            self.cache.put(actor, targets)
        return True

    async def _remove_locked(self, actor: uuid.UUID, target: uuid.UUID) -> RemovalResult:
        result = await self.store.remove(actor, target)
        if result.ok:
            self.cache.remove_from(actor, target)
        return result
