"""Read-through cache for a single serialized Pydantic result.

Holds one entry under one key. On a miss, exactly one caller loads from
the source of truth while concurrent callers wait for it and then read
the fresh entry. Entries are never invalidated by writes to the source;
staleness is bounded by the TTL alone.
"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Generic, TypeVar

from loguru import logger
from pydantic import BaseModel, ValidationError

from results_api.lib.snapshot_cache.backend import CacheBackend

ModelT = TypeVar("ModelT", bound=BaseModel)


class ReadThroughCache(Generic[ModelT]):
    """Cache-aside wrapper around an async loader.

    Backend failures are treated as misses: the cache is an optimization,
    so a broken backend degrades to reading the source every time. Errors
    raised by the loader are not caught. A loader result of None is
    returned as-is and never cached.

    Args:
        loader: Coroutine function returning the current value, or None.
        backend: Where serialized values are kept.
        model_type: Pydantic model used to deserialize cached JSON.
        ttl_seconds: How long a cached value stays fresh.
        key: Backend key for the single entry.
    """

    def __init__(
        self,
        loader: Callable[[], Awaitable[ModelT | None]],
        backend: CacheBackend,
        model_type: type[ModelT],
        ttl_seconds: int,
        *,
        key: str,
    ) -> None:
        self._loader = loader
        self._backend = backend
        self._model_type = model_type
        self._ttl_seconds = ttl_seconds
        self._key = key
        self._lock = asyncio.Lock()

    @property
    def ttl_seconds(self) -> int:
        return self._ttl_seconds

    async def get(self) -> ModelT | None:
        """Return the cached value if fresh, otherwise load, cache, and return it."""
        cached = await self._read()
        if cached is not None:
            return cached

        async with self._lock:
            # Another caller may have filled the entry while we waited
            cached = await self._read()
            if cached is not None:
                return cached

            value = await self._loader()
            if value is None:
                return None
            await self._write(value)
            return value

    async def invalidate(self) -> None:
        """Drop the cached entry so the next ``get`` reloads."""
        try:
            await self._backend.delete(self._key)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Cache invalidate failed for {}: {}", self._key, exc)

    async def _read(self) -> ModelT | None:
        try:
            payload = await self._backend.get(self._key)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Cache read failed for {}, treating as miss: {}", self._key, exc)
            return None
        if payload is None:
            return None
        try:
            return self._model_type.model_validate_json(payload)
        except ValidationError as exc:
            logger.warning("Discarding unreadable cache entry {}: {}", self._key, exc)
            return None

    async def _write(self, value: ModelT) -> None:
        try:
            await self._backend.set(self._key, value.model_dump_json(), self._ttl_seconds)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Cache write failed for {}: {}", self._key, exc)
