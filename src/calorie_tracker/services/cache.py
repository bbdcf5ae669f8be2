"""Simple cache abstractions."""

import threading
from contextlib import suppress
from dataclasses import dataclass
from typing import Protocol

from cachetools import TLRUCache


class Cache(Protocol):
    """Cache interface for simple key-value data."""

    def get(self, key: str) -> object | None:
        """Return a cached value if present and not expired."""

    def set(self, key: str, value: object, ttl_seconds: int) -> None:
        """Store a cached value with a TTL in seconds."""

    def generation(self, prefix: str) -> int:
        """Return how many times the prefix has been invalidated."""

    def set_if_generation(
        self, key: str, value: object, ttl_seconds: int, *, prefix: str, generation: int
    ) -> bool:
        """Store the value only if the prefix was not invalidated since `generation`."""

    def delete_prefix(self, prefix: str) -> None:
        """Drop every entry whose key starts with the prefix."""


@dataclass(frozen=True)
class _CacheEntry:
    value: object
    ttl_seconds: int


def _time_to_use(_key: str, entry: _CacheEntry, now: float) -> float:
    return now + entry.ttl_seconds


class InMemoryCache(Cache):
    """Bounded in-process cache with per-entry TTL eviction.

    Generations are kept outside the bounded store so eviction never resets them.
    """

    def __init__(self, max_entries: int = 1000) -> None:
        self._entries: TLRUCache[str, _CacheEntry] = TLRUCache(
            maxsize=max_entries, ttu=_time_to_use
        )
        self._generations: dict[str, int] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            self._entries.expire()
            return len(self._entries)

    def get(self, key: str) -> object | None:
        """Return a cached value if it hasn't expired."""
        with self._lock:
            entry = self._entries.get(key)
        if entry is None:
            return None
        return entry.value

    def set(self, key: str, value: object, ttl_seconds: int) -> None:
        """Store a cached value with a TTL."""
        with self._lock:
            self._entries[key] = _CacheEntry(value=value, ttl_seconds=ttl_seconds)

    def generation(self, prefix: str) -> int:
        with self._lock:
            return self._generations.get(prefix, 0)

    def set_if_generation(
        self, key: str, value: object, ttl_seconds: int, *, prefix: str, generation: int
    ) -> bool:
        """Store unless the prefix was invalidated after the caller's read began."""
        with self._lock:
            if self._generations.get(prefix, 0) != generation:
                return False
            self._entries[key] = _CacheEntry(value=value, ttl_seconds=ttl_seconds)
            return True

    def delete_prefix(self, prefix: str) -> None:
        """Drop all entries under a key prefix and bump its generation."""
        with self._lock:
            self._generations[prefix] = self._generations.get(prefix, 0) + 1
            self._entries.expire()
            for key in [key for key in self._entries if key.startswith(prefix)]:
                with suppress(KeyError):
                    del self._entries[key]
