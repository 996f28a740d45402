"""Manifest and version-list caching.

- ``ResolutionCache``: run-scoped, single-flight, in memory.
- ``ManifestStore``: persistent JSON store shared across runs.
"""

from feedsolve.cache.memory import CacheStats, ResolutionCache
from feedsolve.cache.store import ManifestStore, cache_key

__all__ = ["CacheStats", "ManifestStore", "ResolutionCache", "cache_key"]
