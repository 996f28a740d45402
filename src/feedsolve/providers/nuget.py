"""NuGet V3 feed provider.

Answers version and manifest queries from one or more NuGet V3 feeds using
the flat-container resource (``PackageBaseAddress/3.0.0``):

- versions: ``{base}{id-lower}/index.json``
- manifest: ``{base}{id-lower}/{version-lower}/{id-lower}.nuspec``

Every configured feed is queried; version lists are merged. A package that
is missing from one feed is not an error. ``SourceUnavailableError`` is
raised only when no feed could be reached at all, and
``PackageNotFoundError`` when every reachable feed lacks the version.

Usage::

    provider = NuGetFeedProvider(["https://api.nuget.org/v3/index.json"])
    versions = await provider.list_versions(PackageName("Newtonsoft.Json"))
    await provider.aclose()
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from xml.etree import ElementTree as ET

import httpx

from feedsolve.core.models import (
    FromPackage,
    PackageName,
    PackageRequirement,
    ResolvedPackage,
    ResolverStrategy,
)
from feedsolve.core.versioning import SemanticVersion, VersionRange
from feedsolve.exceptions import (
    PackageNotFoundError,
    RequirementParseError,
    SourceUnavailableError,
)
from feedsolve.providers.base import PackageProvider
from feedsolve.providers.http_client import DEFAULT_TIMEOUT, FeedClient

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

NUGET_ORG_FEED: str = "https://api.nuget.org/v3/index.json"

_BASE_ADDRESS_TYPE: str = "PackageBaseAddress/3.0.0"


def _local(tag: str) -> str:
    """Strip the XML namespace from *tag* (nuspec namespaces vary by year)."""
    return tag.rsplit("}", 1)[-1]


# ---------------------------------------------------------------------------
# Nuspec parsing
# ---------------------------------------------------------------------------


def parse_nuspec(
    name: PackageName,
    version: SemanticVersion,
    document: str,
    *,
    source: str,
    strategy: ResolverStrategy = ResolverStrategy.MAX,
    framework: str | None = None,
) -> ResolvedPackage:
    """Build a manifest from nuspec XML.

    Dependency groups define the framework restrictions. With *framework*
    set, only the matching group is used (falling back to the group without
    a target framework); otherwise all groups are flattened, keeping the
    first requirement seen per package.

    Raises:
        SourceUnavailableError: If the document is not valid nuspec XML or
            holds an unparseable version range.
    """
    try:
        root = ET.fromstring(document)
    except ET.ParseError as exc:
        raise SourceUnavailableError(f"Malformed nuspec for {name} {version}: {exc}") from exc

    groups: list[tuple[str, list[ET.Element]]] = []
    for elem in root.iter():
        if _local(elem.tag) != "dependencies":
            continue
        loose: list[ET.Element] = []
        for child in elem:
            tag = _local(child.tag)
            if tag == "group":
                deps = [d for d in child if _local(d.tag) == "dependency"]
                groups.append((child.get("targetFramework", ""), deps))
            elif tag == "dependency":
                loose.append(child)
        if loose:
            groups.append(("", loose))

    frameworks = tuple(sorted({tfm for tfm, _ in groups if tfm}, key=str.casefold))
    if framework:
        chosen = [g for g in groups if g[0].casefold() == framework.casefold()]
        if not chosen:
            chosen = [g for g in groups if not g[0]]
    else:
        chosen = groups

    parent = FromPackage(name, version)
    seen: set[PackageName] = set()
    dependencies: list[PackageRequirement] = []
    for _, deps in chosen:
        for dep in deps:
            dep_id = (dep.get("id") or "").strip()
            if not dep_id:
                continue
            dep_name = PackageName(dep_id)
            if dep_name in seen:
                continue
            seen.add(dep_name)
            try:
                rng = VersionRange.parse(dep.get("version") or "")
            except RequirementParseError as exc:
                raise SourceUnavailableError(
                    f"Malformed dependency {dep_id} in {name} {version}: {exc}"
                ) from exc
            dependencies.append(
                PackageRequirement(
                    name=dep_name,
                    version_range=rng,
                    strategy=strategy,
                    parent=parent,
                    sources=(source,),
                )
            )

    return ResolvedPackage(
        name=name,
        version=version,
        dependencies=tuple(dependencies),
        framework_restrictions=frameworks,
        source=source,
    )


# ---------------------------------------------------------------------------
# NuGet feed provider
# ---------------------------------------------------------------------------


class NuGetFeedProvider(PackageProvider):
    """Provider for NuGet V3 feeds.

    Args:
        feeds: Service index URLs, queried in order.
        strategy: Strategy given to every transitive requirement.
        framework: Optional target framework used to pick dependency groups.
        timeout: HTTP timeout in seconds.
        transport: Optional httpx transport (for tests).
    """

    def __init__(
        self,
        feeds: Sequence[str] = (NUGET_ORG_FEED,),
        *,
        strategy: ResolverStrategy = ResolverStrategy.MAX,
        framework: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not feeds:
            raise ValueError("At least one feed is required")
        self._feeds = list(feeds)
        self._strategy = strategy
        self._framework = framework
        self._client = FeedClient(timeout=timeout, transport=transport)
        self._base_addresses: dict[str, str | None] = {}

    @property
    def provider_name(self) -> str:
        return ", ".join(self._feeds)

    @property
    def feeds(self) -> list[str]:
        return list(self._feeds)

    async def _base_address(self, feed: str) -> str | None:
        """Resolve the flat-container base URL of *feed* (cached per feed)."""
        if feed in self._base_addresses:
            return self._base_addresses[feed]
        index = await self._client.fetch_json(feed)
        base: str | None = None
        if isinstance(index, dict):
            for resource in index.get("resources", []):
                if str(resource.get("@type", "")).startswith(_BASE_ADDRESS_TYPE):
                    base = resource.get("@id")
                    break
        if base is None:
            logger.warning("Feed %s exposes no %s resource", feed, _BASE_ADDRESS_TYPE)
        elif not base.endswith("/"):
            base += "/"
        self._base_addresses[feed] = base
        return base

    async def list_versions(self, name: PackageName) -> list[SemanticVersion]:
        versions: set[SemanticVersion] = set()
        reached = 0
        failures: list[str] = []
        for feed in self._feeds:
            try:
                base = await self._base_address(feed)
                if base is None:
                    reached += 1
                    continue
                data = await self._client.fetch_json(f"{base}{name.key}/index.json")
            except SourceUnavailableError as exc:
                failures.append(str(exc))
                continue
            reached += 1
            if not isinstance(data, dict):
                continue
            for text in data.get("versions", []):
                try:
                    versions.add(SemanticVersion.parse(str(text)))
                except RequirementParseError:
                    logger.debug("Skipping unparseable version %r of %s", text, name)

        if not reached:
            raise SourceUnavailableError(
                f"No feed reachable for {name}: " + "; ".join(failures)
            )
        return sorted(versions)

    async def fetch_manifest(
        self, name: PackageName, version: SemanticVersion
    ) -> ResolvedPackage:
        failures: list[str] = []
        ver = version.normalized.lower()
        for feed in self._feeds:
            try:
                base = await self._base_address(feed)
                if base is None:
                    continue
                document = await self._client.fetch_text(
                    f"{base}{name.key}/{ver}/{name.key}.nuspec"
                )
            except SourceUnavailableError as exc:
                failures.append(str(exc))
                continue
            if document is not None:
                return parse_nuspec(
                    name,
                    version,
                    document,
                    source=feed,
                    strategy=self._strategy,
                    framework=self._framework,
                )

        if failures and len(failures) == len(self._feeds):
            raise SourceUnavailableError(
                f"No feed reachable for {name} {version}: " + "; ".join(failures)
            )
        raise PackageNotFoundError(str(name), str(version))

    async def aclose(self) -> None:
        await self._client.aclose()
