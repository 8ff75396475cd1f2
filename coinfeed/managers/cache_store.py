"""
In-memory TTL cache for normalized market data.
The façade is its only client; adapters and the cascade never see it.
"""
import asyncio
import copy
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from coinfeed.logger.logger import Logger

LISTING = "listing"
DETAIL = "detail"
HISTORY = "history"
NEWS = "news"
CAPABILITIES = (LISTING, DETAIL, HISTORY, NEWS)


def listing_key(page: int, per_page: int) -> str:
    return f"{LISTING}:{page}:{per_page}"


def detail_key(asset_id: str) -> str:
    return f"{DETAIL}:{asset_id}"


def history_key(asset_id: str, days: int) -> str:
    return f"{HISTORY}:{asset_id}:{days}"


def news_key() -> str:
    return NEWS


def capability_of(key: str) -> str:
    return key.split(":", 1)[0]


@dataclass(frozen=True)
class CacheEntry:
    key: str
    inserted_at: float
    payload: Any
    ttl: float

    def is_fresh(self, now: float) -> bool:
        return now - self.inserted_at < self.ttl


class CacheStore:
    """Key -> entry mapping with per-capability TTL, checked on read.

    Expired entries are not evicted; the next put() to the same key replaces
    them. All access is serialized by one asyncio.Lock, so a background merge
    and a foreground put never lose each other's write: whichever runs last wins.
    Payloads are deep-copied on put and get.
    """

    def __init__(self, ttls: Dict[str, float], logger: Optional[Logger] = None,
                 clock: Callable[[], float] = time.monotonic) -> None:
        self.ttls = {capability: float(ttls.get(capability, 0)) for capability in CAPABILITIES}
        self.logger = logger
        self.clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = asyncio.Lock()

    def ttl_for(self, key: str) -> float:
        return self.ttls.get(capability_of(key), 0.0)

    def is_enabled(self, key: str) -> bool:
        return self.ttl_for(key) > 0

    async def get(self, key: str) -> Optional[CacheEntry]:
        """Fresh entry for `key`, or None when absent, expired or caching is disabled."""
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None or not entry.is_fresh(self.clock()):
                if self.logger:
                    self.logger.debug(f"Cache miss for {key}")
                return None
            if self.logger:
                self.logger.debug(f"Cache hit for {key}")
            return CacheEntry(entry.key, entry.inserted_at, copy.deepcopy(entry.payload), entry.ttl)

    async def put(self, key: str, payload: Any) -> Optional[CacheEntry]:
        """Store `payload` stamped with the current time. No-op when the capability TTL is 0."""
        ttl = self.ttl_for(key)
        if ttl <= 0:
            return None
        async with self._lock:
            entry = CacheEntry(key, self.clock(), copy.deepcopy(payload), ttl)
            self._entries[key] = entry
            return entry

    async def merge(self, key: str, mutate: Callable[[Any], Any]) -> bool:
        """Atomically replace a fresh entry's payload with `mutate(payload)`.

        The insertion time is kept, so a merge never extends freshness. Returns
        False when there is no fresh entry to merge into.
        """
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None or not entry.is_fresh(self.clock()):
                return False
            updated = mutate(copy.deepcopy(entry.payload))
            self._entries[key] = CacheEntry(key, entry.inserted_at, updated, entry.ttl)
            return True

    async def invalidate(self, prefix: Optional[str] = None) -> int:
        """Drop every entry, or only those of one capability. Returns the number removed."""
        async with self._lock:
            if prefix is None:
                removed = len(self._entries)
                self._entries.clear()
            else:
                doomed: List[str] = [
                    key for key in self._entries
                    if key == prefix or key.startswith(f"{prefix}:")
                ]
                for key in doomed:
                    del self._entries[key]
                removed = len(doomed)
        if self.logger:
            self.logger.debug(f"Invalidated {removed} cache entries ({prefix or 'all'})")
        return removed

    def __len__(self) -> int:
        return len(self._entries)
