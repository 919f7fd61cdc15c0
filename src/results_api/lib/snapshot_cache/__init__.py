"""Snapshot cache library — TTL cache-aside for the latest results snapshot.

Public API:
    - ReadThroughCache: single-entry, single-flight read-through cache
    - CacheBackend: backend protocol
    - InMemoryCacheBackend: in-process TTL backend
"""

from results_api.lib.snapshot_cache.backend import CacheBackend, InMemoryCacheBackend
from results_api.lib.snapshot_cache.cache import ReadThroughCache

__all__ = [
    "CacheBackend",
    "InMemoryCacheBackend",
    "ReadThroughCache",
]
