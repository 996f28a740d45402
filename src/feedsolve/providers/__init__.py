"""Package providers: where versions and manifests come from.

Public API::

    from feedsolve.providers import PackageProvider, CatalogProvider, NuGetFeedProvider
"""

from __future__ import annotations

from feedsolve.providers.base import PackageProvider
from feedsolve.providers.catalog import CatalogProvider
from feedsolve.providers.nuget import NuGetFeedProvider

__all__ = [
    "CatalogProvider",
    "NuGetFeedProvider",
    "PackageProvider",
]
