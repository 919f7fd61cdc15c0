"""Results service — process-wide snapshot store and latest-snapshot cache.

Read requests go through the cache; on a miss the cache reads the
snapshot store directly, independent of the refresh loop.
"""

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from results_api.lib.snapshot_cache import CacheBackend, InMemoryCacheBackend, ReadThroughCache
from results_api.schemas.results import SnapshotView
from results_api.services.snapshot_store import SnapshotStore

LATEST_SNAPSHOT_CACHE_KEY = "results:latest_snapshot"

_store: SnapshotStore | None = None
_latest_cache: ReadThroughCache[SnapshotView] | None = None


def build_latest_snapshot_cache(
    store: SnapshotStore,
    ttl_seconds: int,
    backend: CacheBackend | None = None,
) -> ReadThroughCache[SnapshotView]:
    """Create the cache-aside wrapper around ``store.latest()``.

    Args:
        store: Snapshot store used on cache misses.
        ttl_seconds: Freshness window for the cached snapshot.
        backend: Cache backend; defaults to an in-process TTL backend.

    Returns:
        A read-through cache holding at most one serialized SnapshotView.
    """
    return ReadThroughCache(
        store.latest,
        backend if backend is not None else InMemoryCacheBackend(),
        SnapshotView,
        ttl_seconds,
        key=LATEST_SNAPSHOT_CACHE_KEY,
    )


def init_results_services(
    session_factory: async_sessionmaker[AsyncSession],
    *,
    cache_ttl: int,
    cache_backend: CacheBackend | None = None,
) -> SnapshotStore:
    """Create and store the process-wide snapshot store and latest-snapshot cache.

    Returns:
        The created snapshot store.
    """
    global _store, _latest_cache  # noqa: PLW0603
    _store = SnapshotStore(session_factory)
    _latest_cache = build_latest_snapshot_cache(_store, cache_ttl, cache_backend)
    return _store


def get_snapshot_store() -> SnapshotStore:
    """Return the process-wide snapshot store.

    Raises:
        RuntimeError: If results services have not been initialized.
    """
    if _store is None:
        msg = "Snapshot store not initialized. Call init_results_services() first."
        raise RuntimeError(msg)
    return _store


def get_latest_snapshot_cache() -> ReadThroughCache[SnapshotView]:
    """Return the process-wide latest-snapshot cache.

    Raises:
        RuntimeError: If results services have not been initialized.
    """
    if _latest_cache is None:
        msg = "Latest snapshot cache not initialized. Call init_results_services() first."
        raise RuntimeError(msg)
    return _latest_cache


def reset_results_services() -> None:
    """Forget the process-wide store and cache (used on shutdown)."""
    global _store, _latest_cache  # noqa: PLW0603
    _store = None
    _latest_cache = None
