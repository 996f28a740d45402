"""Shared fixtures for feedsolve tests.

``CountingProvider`` wraps a ``CatalogProvider`` and records every call, so
tests can assert how often the resolver and cache reach the provider.
"""

from __future__ import annotations

import asyncio
from collections import Counter
from collections.abc import Mapping
from typing import Any

import pytest

from feedsolve.core.models import PackageName, ResolvedPackage
from feedsolve.core.versioning import SemanticVersion
from feedsolve.exceptions import PackageNotFoundError, SourceUnavailableError
from feedsolve.providers import CatalogProvider, PackageProvider


class CountingProvider(PackageProvider):
    """Catalog-backed provider that counts calls and can inject failures.

    Args:
        packages: Catalog mapping, as accepted by ``CatalogProvider``.
        delay: Seconds to sleep inside every call (exposes concurrency).
        unavailable: Package names whose version listing fails.
        missing: ``(name, version)`` pairs whose manifest fetch fails.
    """

    def __init__(
        self,
        packages: Mapping[str, Mapping[str, Any]],
        *,
        delay: float = 0.0,
        unavailable: tuple[str, ...] = (),
        missing: tuple[tuple[str, str], ...] = (),
    ) -> None:
        self._catalog = CatalogProvider(packages, name="counting")
        self._delay = delay
        self._unavailable = {n.lower() for n in unavailable}
        self._missing = {(n.lower(), SemanticVersion.parse(v)) for n, v in missing}
        self.version_calls: Counter[str] = Counter()
        self.manifest_calls: Counter[tuple[str, str]] = Counter()
        self.closed = False

    @property
    def provider_name(self) -> str:
        return "counting"

    async def list_versions(self, name: PackageName) -> list[SemanticVersion]:
        self.version_calls[name.key] += 1
        if self._delay:
            await asyncio.sleep(self._delay)
        if name.key in self._unavailable:
            raise SourceUnavailableError(f"feed down for {name}")
        return await self._catalog.list_versions(name)

    async def fetch_manifest(
        self, name: PackageName, version: SemanticVersion
    ) -> ResolvedPackage:
        self.manifest_calls[(name.key, version.normalized)] += 1
        if self._delay:
            await asyncio.sleep(self._delay)
        if (name.key, version) in self._missing:
            raise PackageNotFoundError(str(name), str(version))
        return await self._catalog.fetch_manifest(name, version)

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def counting_provider() -> type[CountingProvider]:
    """The ``CountingProvider`` class, for tests to build with their catalog."""
    return CountingProvider


@pytest.fixture
def scenario_b_catalog() -> dict[str, Any]:
    """PackageA and PackageB pin different versions of PackageC."""
    return {
        "PackageA": {"1.0": {"PackageC": "==1.0"}},
        "PackageB": {"1.0": {"PackageC": "==2.0"}},
        "PackageC": {"1.0": {}, "2.0": {}},
    }
