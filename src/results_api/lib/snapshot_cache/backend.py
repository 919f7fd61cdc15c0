"""Cache backends for serialized snapshot payloads.

The backend only stores strings with a TTL. ``InMemoryCacheBackend`` keeps
entries in process memory on a monotonic clock; any other backend (for
example a shared key-value service) only needs to satisfy ``CacheBackend``.
"""

import asyncio
import time
from collections.abc import Callable
from typing import Protocol


class CacheBackend(Protocol):
    """Protocol for a string key-value cache with per-entry TTL."""

    async def get(self, key: str) -> str | None:
        """Return the stored value, or None if missing or expired."""
        ...

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        """Store ``value`` under ``key`` for ``ttl_seconds``."""
        ...

    async def delete(self, key: str) -> None:
        """Remove ``key`` if present."""
        ...


class InMemoryCacheBackend:
    """TTL-based in-process cache.

    Entries expire ``ttl_seconds`` after they are set; expired entries are
    dropped on read.

    Args:
        clock: Monotonic time source in seconds.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, tuple[str, float]] = {}
        self._lock = asyncio.Lock()

    async def get(self, key: str) -> str | None:
        async with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            value, expires_at = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return None
            return value

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        async with self._lock:
            self._entries[key] = (value, self._clock() + ttl_seconds)

    async def delete(self, key: str) -> None:
        async with self._lock:
            self._entries.pop(key, None)
