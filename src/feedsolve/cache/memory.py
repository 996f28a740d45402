"""Run-scoped caching in front of a package provider.

Querying a feed is the dominant cost of resolution, so every provider call
goes through a ``ResolutionCache``:

- **Version lists** are fetched at most once per package per run.
- **Manifests** are looked up in memory, then in the persistent
  ``ManifestStore``, and only then fetched from the provider; a provider
  result is written through to both tiers.

Lookups are single-flight: the first request for a key starts one
``asyncio`` task and every concurrent or later request for the same key
awaits that task, so all callers share one provider call and one result
object. Entries are never invalidated within a run.

A cache must not outlive the resolution that created it; ``aclose`` cancels
prefetches nobody consumed.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine, Iterable
from dataclasses import dataclass
from typing import Any, TypeVar

from feedsolve.cache.store import ManifestStore
from feedsolve.core.models import PackageName, ResolvedPackage
from feedsolve.core.versioning import SemanticVersion
from feedsolve.providers.base import PackageProvider

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class CacheStats:
    """Counters for one run.

    Attributes:
        version_requests: ``list_versions`` calls made by the resolver.
        version_fetches: ``list_versions`` calls forwarded to the provider.
        manifest_requests: ``fetch_manifest`` calls made by the resolver.
        memory_hits: Manifest requests answered from memory (or an
            in-flight fetch).
        disk_hits: Manifests loaded from the persistent store.
        manifest_fetches: ``fetch_manifest`` calls forwarded to the provider.
    """

    version_requests: int = 0
    version_fetches: int = 0
    manifest_requests: int = 0
    memory_hits: int = 0
    disk_hits: int = 0
    manifest_fetches: int = 0


def _retrieve_exception(task: asyncio.Task[Any]) -> None:
    # Mark failures as retrieved; prefetches may fail without ever being awaited.
    if not task.cancelled():
        task.exception()


class ResolutionCache:
    """Single-flight, two-tier cache over a ``PackageProvider``.

    Args:
        provider: Source of version lists and manifests.
        store: Optional persistent manifest store.
    """

    def __init__(self, provider: PackageProvider, store: ManifestStore | None = None) -> None:
        self._provider = provider
        self._store = store
        self._versions: dict[PackageName, asyncio.Task[tuple[SemanticVersion, ...]]] = {}
        self._manifests: dict[
            tuple[PackageName, SemanticVersion], asyncio.Task[ResolvedPackage]
        ] = {}
        self.stats = CacheStats()

    @staticmethod
    def _spawn(coro: Coroutine[Any, Any, T]) -> asyncio.Task[T]:
        task = asyncio.ensure_future(coro)
        task.add_done_callback(_retrieve_exception)
        return task

    # -- Version lists ------------------------------------------------------

    async def list_versions(self, name: PackageName) -> tuple[SemanticVersion, ...]:
        """All versions of *name*, deduplicated and sorted ascending.

        Raises:
            SourceUnavailableError: Propagated from the provider.
        """
        self.stats.version_requests += 1
        task = self._versions.get(name)
        if task is None:
            task = self._spawn(self._load_versions(name))
            self._versions[name] = task
        else:
            logger.debug("Version list cache hit: %s", name)
        return await task

    async def _load_versions(self, name: PackageName) -> tuple[SemanticVersion, ...]:
        self.stats.version_fetches += 1
        logger.debug("Listing versions of %s via %s", name, self._provider.provider_name)
        versions = await self._provider.list_versions(name)
        return tuple(sorted(set(versions)))

    # -- Manifests ----------------------------------------------------------

    async def fetch_manifest(
        self, name: PackageName, version: SemanticVersion
    ) -> ResolvedPackage:
        """The manifest of ``name`` at ``version``.

        Raises:
            PackageNotFoundError: Propagated from the provider.
            SourceUnavailableError: Propagated from the provider.
        """
        self.stats.manifest_requests += 1
        task = self._manifests.get((name, version))
        if task is None:
            task = self._start_manifest(name, version)
        else:
            self.stats.memory_hits += 1
        return await task

    def prefetch(self, name: PackageName, versions: Iterable[SemanticVersion]) -> None:
        """Start fetching manifests in the background.

        Only starts work for keys not already known. Results are consumed
        later through ``fetch_manifest``; failures surface only if the
        manifest is actually requested.
        """
        for version in versions:
            if (name, version) not in self._manifests:
                self._start_manifest(name, version)

    def _start_manifest(
        self, name: PackageName, version: SemanticVersion
    ) -> asyncio.Task[ResolvedPackage]:
        task = self._spawn(self._load_manifest(name, version))
        self._manifests[(name, version)] = task
        return task

    async def _load_manifest(
        self, name: PackageName, version: SemanticVersion
    ) -> ResolvedPackage:
        if self._store is not None:
            stored = self._store.get(name, version)
            if stored is not None:
                self.stats.disk_hits += 1
                logger.debug("Manifest cache hit on disk: %s %s", name, version)
                return stored

        self.stats.manifest_fetches += 1
        logger.debug("Fetching manifest %s %s via %s", name, version, self._provider.provider_name)
        manifest = await self._provider.fetch_manifest(name, version)
        if self._store is not None:
            self._store.put(manifest)
        return manifest

    # -- Lifecycle ----------------------------------------------------------

    async def aclose(self) -> None:
        """Cancel and reap background work that is still running."""
        pending = [
            t for t in (*self._versions.values(), *self._manifests.values()) if not t.done()
        ]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
