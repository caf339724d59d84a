"""Small time-to-live cache shared by the validator, channel search and thumbnail checker."""

import time
from dataclasses import dataclass
from typing import Callable, Dict, Generic, Hashable, Optional, TypeVar

V = TypeVar("V")

DEFAULT_TTL_SECONDS = 30 * 60


@dataclass
class CacheEntry(Generic[V]):
    """A cached value with the moment it was stored and when it expires."""

    value: V
    timestamp: float
    expires_at: float


class TTLCache(Generic[V]):
    """Dictionary-backed cache whose entries expire after a fixed TTL.

    An expired entry is never returned: ``get`` drops it and reports a miss.
    There is no size bound and no eviction beyond expiry.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[Hashable, CacheEntry[V]] = {}

    def get(self, key: Hashable) -> Optional[V]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() >= entry.expires_at:
            del self._entries[key]
            return None
        return entry.value

    def set(self, key: Hashable, value: V) -> None:
        now = self._clock()
        self._entries[key] = CacheEntry(
            value=value, timestamp=now, expires_at=now + self.ttl_seconds
        )

    def evict(self, key: Hashable) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: Hashable) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return len(self._entries)

    def stats(self) -> Dict[str, int]:
        """Count entries without pruning them (total / expired / valid)."""
        now = self._clock()
        expired = sum(1 for entry in self._entries.values() if now >= entry.expires_at)
        return {
            "total": len(self._entries),
            "expired": expired,
            "valid": len(self._entries) - expired,
        }
