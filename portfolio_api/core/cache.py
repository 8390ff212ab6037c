"""
Process-local TTL cache for upstream responses.
Entries carry their own TTL; expired entries are dropped on read and swept on every write.
"""
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, TypeVar

from portfolio_api.core.logging_config import get_logger

logger = get_logger("cache")

T = TypeVar("T")


@dataclass
class CacheEntry:
    data: Any
    stored_at: float
    ttl: float

    def expired(self, now: float) -> bool:
        return now - self.stored_at > self.ttl


class TTLCache:
    def __init__(self, default_ttl: float = 300, clock: Callable[[], float] = time.monotonic):
        self.default_ttl = default_ttl
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    def set(self, key: str, data: Any, ttl: Optional[float] = None):
        self.cleanup()
        self._entries[key] = CacheEntry(data=data, stored_at=self._clock(), ttl=self.default_ttl if ttl is None else ttl)

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expired(self._clock()):
            del self._entries[key]
            return None
        return entry.data

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    def clear(self):
        self._entries.clear()

    def cleanup(self) -> int:
        now = self._clock()
        stale = [key for key, entry in self._entries.items() if entry.expired(now)]
        for key in stale:
            del self._entries[key]
        return len(stale)

    def size(self) -> int:
        return len(self._entries)

    async def get_or_fetch(self, key: str, fetch: Callable[[], Awaitable[T]], ttl: Optional[float] = None) -> T:
        """
        Returns the cached value for `key`, or awaits `fetch` and caches its result.
        Failures from `fetch` propagate and are never cached.
        """
        cached = self.get(key)
        if cached is not None:
            logger.debug("cache_hit", key=key)
            return cached

        logger.debug("cache_miss", key=key)
        result = await fetch()
        self.set(key, result, ttl)
        return result


def cache_key(prefix: str, params: Mapping[str, Any]) -> str:
    joined = "&".join(f"{k}={params[k]}" for k in sorted(params))
    return f"{prefix}:{joined}"
