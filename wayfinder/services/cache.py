from __future__ import annotations

import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Generic, Hashable, Optional, Tuple, TypeVar

T = TypeVar("T")


@dataclass
class CacheEntry(Generic[T]):
    value: T
    expires_at: float


class ResponseCache(Generic[T]):
    """In-memory TTL cache for upstream responses, least recently used evicted first.

    Only touched from the event loop, so there is no locking.
    """

    def __init__(self, *, ttl_s: float, max_size: int) -> None:
        self.ttl_s = ttl_s
        self.max_size = max_size
        self._store: "OrderedDict[Hashable, CacheEntry[T]]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._store)

    def get(self, key: Hashable) -> Optional[T]:
        entry = self._store.get(key)
        if entry is None:
            return None
        if entry.expires_at < time.monotonic():
            del self._store[key]
            return None
        self._store.move_to_end(key)
        return entry.value

    def set(self, key: Hashable, value: T) -> None:
        if self.max_size <= 0:
            return
        self._store.pop(key, None)
        while len(self._store) >= self.max_size:
            self._store.popitem(last=False)
        self._store[key] = CacheEntry(value=value, expires_at=time.monotonic() + self.ttl_s)

    def clear(self) -> None:
        self._store.clear()


def query_key(kind: str, text: str, limit: int) -> Tuple[str, str, int]:
    return kind, " ".join(text.lower().split()), limit


def area_key(lat: float, lon: float, radius_m: int) -> Tuple[str, str, str, int]:
    # ~0.1 m precision is plenty to share results for the same marker
    return "nearby", f"{lat:.6f}", f"{lon:.6f}", radius_m
