"""Base class for package providers.

A provider answers the two questions the resolver cannot answer itself:

* What versions of a package exist?
* Given one concrete version, what does it depend on?

Both are expensive (usually an HTTP round trip), idempotent, and safe to
retry. The resolver never calls a provider directly; every call goes
through ``feedsolve.cache.memory.ResolutionCache``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

from feedsolve.core.models import PackageName, ResolvedPackage
from feedsolve.core.versioning import SemanticVersion


class PackageProvider(ABC):
    """Abstract source of package versions and manifests.

    Subclasses must implement ``list_versions`` and ``fetch_manifest``.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Human-readable name of this provider (e.g. a feed URL)."""

    @abstractmethod
    async def list_versions(self, name: PackageName) -> Sequence[SemanticVersion]:
        """Return every known version of *name*, in any order.

        An unknown package yields an empty sequence.

        Raises:
            SourceUnavailableError: If every configured feed is unreachable.
        """

    @abstractmethod
    async def fetch_manifest(
        self, name: PackageName, version: SemanticVersion
    ) -> ResolvedPackage:
        """Return the manifest of *name* at exactly *version*.

        Dependencies in the manifest must carry
        ``FromPackage(name, version)`` as their parent.

        Raises:
            PackageNotFoundError: If the version no longer exists.
            SourceUnavailableError: On transport failure.
        """

    async def aclose(self) -> None:
        """Release network resources. The default holds none."""
