from __future__ import annotations

import threading
import uuid
from typing import Dict, Iterable, Set


class IgnoreCache:
    """In-memory ignore sets keyed by actor.

    A missing key means "not loaded"; an empty set means "loaded, ignores
    nobody". Every method takes the same lock, so callers on the event loop
    and in worker threads can share one instance.
    """

    def __init__(self) -> None:
        self._entries: Dict[uuid.UUID, Set[uuid.UUID]] = {}
        self._lock = threading.Lock()

    def get(self, actor: uuid.UUID) -> Set[uuid.UUID] | None:
        with self._lock:
            entry = self._entries.get(actor)
            return set(entry) if entry is not None else None

    def contains(self, actor: uuid.UUID, target: uuid.UUID) -> bool | None:
        with self._lock:
            entry = self._entries.get(actor)
            if entry is None:
                return None
            return target in entry

    def put(self, actor: uuid.UUID, targets: Iterable[uuid.UUID]) -> None:
        snapshot = set(targets)
        with self._lock:
            self._entries[actor] = snapshot

    def add_to(self, actor: uuid.UUID, target: uuid.UUID) -> None:
        with self._lock:
            self._entries.setdefault(actor, set()).add(target)

    def remove_from(self, actor: uuid.UUID, target: uuid.UUID) -> None:
        with self._lock:
            entry = self._entries.get(actor)
            if entry is None:
                return
            entry.discard(target)
            if not entry:
                del self._entries[actor]

    def evict(self, actor: uuid.UUID) -> None:
        with self._lock:
            self._entries.pop(actor, None)

    def size(self) -> int:
        with self._lock:
            return len(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
