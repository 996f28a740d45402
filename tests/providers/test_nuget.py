"""Tests for NuGetFeedProvider against mocked NuGet V3 feeds.

All HTTP traffic goes through ``httpx.MockTransport``; no network access.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable

import httpx
import pytest

from feedsolve.core.models import PackageName, parse_requirement
from feedsolve.core.resolver import Resolver
from feedsolve.core.versioning import SemanticVersion
from feedsolve.exceptions import PackageNotFoundError, SourceUnavailableError
from feedsolve.providers import NuGetFeedProvider
from feedsolve.providers.nuget import parse_nuspec

FEED_1 = "https://feed-one.test/v3/index.json"
FEED_2 = "https://feed-two.test/v3/index.json"

NUSPEC_GROUPS = """<?xml version="1.0" encoding="utf-8"?>
<package xmlns="http://schemas.microsoft.com/packaging/2013/05/nuspec.xsd">
  <metadata>
    <id>PackageA</id>
    <version>2.0.0</version>
    <dependencies>
      <group targetFramework=".NETFramework4.5">
        <dependency id="PackageC" version="[1.0, 2.0)" />
      </group>
      <group targetFramework=".NETStandard2.0">
        <dependency id="PackageC" version="1.5.0" />
        <dependency id="PackageD" />
      </group>
    </dependencies>
  </metadata>
</package>
"""

NUSPEC_FLAT = """<?xml version="1.0"?>
<package>
  <metadata>
    <id>PackageB</id>
    <version>1.0.0</version>
    <dependencies>
      <dependency id="PackageC" version="1.0" />
    </dependencies>
  </metadata>
</package>
"""


def _service_index(base: str) -> dict:
    return {
        "version": "3.0.0",
        "resources": [
            {"@id": f"{base}/query", "@type": "SearchQueryService"},
            {"@id": f"{base}/flat", "@type": "PackageBaseAddress/3.0.0"},
        ],
    }


def _feed(routes: dict[str, object]) -> Callable[[httpx.Request], httpx.Response]:
    """Build a handler serving *routes* (JSON for dicts, text for strings)."""

    def handler(request: httpx.Request) -> httpx.Response:
        body = routes.get(str(request.url))
        if body is None:
            return httpx.Response(404)
        if isinstance(body, Exception):
            raise body
        if isinstance(body, int):
            return httpx.Response(body)
        if isinstance(body, str):
            return httpx.Response(200, text=body)
        return httpx.Response(200, json=body)

    return handler


def _provider(routes: dict[str, object], feeds=(FEED_1,), **kwargs) -> NuGetFeedProvider:
    return NuGetFeedProvider(
        list(feeds), transport=httpx.MockTransport(_feed(routes)), **kwargs
    )


ONE = "https://feed-one.test"
TWO = "https://feed-two.test"


class TestListVersions:
    """Tests for version listing across feeds."""

    def test_lists_versions_from_flat_container(self) -> None:
        provider = _provider({
            FEED_1: _service_index(ONE),
            f"{ONE}/flat/packagea/index.json": {"versions": ["1.0.0", "2.0.0-beta", "2.0.0"]},
        })
        versions = asyncio.run(provider.list_versions(PackageName("PackageA")))
        assert [str(v) for v in versions] == ["1.0.0", "2.0.0-beta", "2.0.0"]

    def test_unparseable_versions_are_skipped(self) -> None:
        provider = _provider({
            FEED_1: _service_index(ONE),
            f"{ONE}/flat/packagea/index.json": {"versions": ["1.0.0", "garbage"]},
        })
        versions = asyncio.run(provider.list_versions(PackageName("PackageA")))
        assert [str(v) for v in versions] == ["1.0.0"]

    def test_versions_are_merged_across_feeds(self) -> None:
        provider = _provider(
            {
                FEED_1: _service_index(ONE),
                FEED_2: _service_index(TWO),
                f"{ONE}/flat/packagea/index.json": {"versions": ["1.0.0"]},
                f"{TWO}/flat/packagea/index.json": {"versions": ["1.0.0", "3.0.0"]},
            },
            feeds=(FEED_1, FEED_2),
        )
        versions = asyncio.run(provider.list_versions(PackageName("PackageA")))
        assert [str(v) for v in versions] == ["1.0.0", "3.0.0"]

    def test_unknown_package_is_empty(self) -> None:
        provider = _provider({FEED_1: _service_index(ONE)})
        assert asyncio.run(provider.list_versions(PackageName("Nope"))) == []

    def test_one_unreachable_feed_is_tolerated(self) -> None:
        provider = _provider(
            {
                FEED_1: httpx.ConnectError("connection refused"),
                FEED_2: _service_index(TWO),
                f"{TWO}/flat/packagea/index.json": {"versions": ["1.0.0"]},
            },
            feeds=(FEED_1, FEED_2),
        )
        versions = asyncio.run(provider.list_versions(PackageName("PackageA")))
        assert [str(v) for v in versions] == ["1.0.0"]

    def test_all_feeds_unreachable_raises(self) -> None:
        provider = _provider(
            {FEED_1: httpx.ConnectError("refused"), FEED_2: 503},
            feeds=(FEED_1, FEED_2),
        )
        with pytest.raises(SourceUnavailableError, match="No feed reachable"):
            asyncio.run(provider.list_versions(PackageName("PackageA")))

    def test_no_feeds_rejected(self) -> None:
        with pytest.raises(ValueError):
            NuGetFeedProvider([])


class TestFetchManifest:
    """Tests for nuspec retrieval."""

    def test_fetches_nuspec_with_lowercase_path(self) -> None:
        provider = _provider({
            FEED_1: _service_index(ONE),
            f"{ONE}/flat/packageb/1.0.0/packageb.nuspec": NUSPEC_FLAT,
        })
        manifest = asyncio.run(
            provider.fetch_manifest(PackageName("PackageB"), SemanticVersion.parse("1.0"))
        )
        assert [str(d) for d in manifest.dependencies] == ["PackageC >=1.0"]
        assert manifest.source == FEED_1

    def test_falls_through_to_second_feed(self) -> None:
        provider = _provider(
            {
                FEED_1: _service_index(ONE),
                FEED_2: _service_index(TWO),
                f"{TWO}/flat/packageb/1.0.0/packageb.nuspec": NUSPEC_FLAT,
            },
            feeds=(FEED_1, FEED_2),
        )
        manifest = asyncio.run(
            provider.fetch_manifest(PackageName("PackageB"), SemanticVersion.parse("1.0.0"))
        )
        assert manifest.source == FEED_2

    def test_missing_version_raises_not_found(self) -> None:
        provider = _provider({FEED_1: _service_index(ONE)})
        with pytest.raises(PackageNotFoundError):
            asyncio.run(
                provider.fetch_manifest(PackageName("PackageB"), SemanticVersion.parse("9.0"))
            )

    def test_server_error_raises_unavailable(self) -> None:
        provider = _provider({FEED_1: 500})
        with pytest.raises(SourceUnavailableError):
            asyncio.run(
                provider.fetch_manifest(PackageName("PackageB"), SemanticVersion.parse("1.0"))
            )


class TestParseNuspec:
    """Tests for dependency-group handling in ``parse_nuspec``."""

    NAME = PackageName("PackageA")
    VERSION = SemanticVersion.parse("2.0.0")

    def test_frameworks_are_recorded(self) -> None:
        manifest = parse_nuspec(self.NAME, self.VERSION, NUSPEC_GROUPS, source="feed")
        assert manifest.framework_restrictions == (".NETFramework4.5", ".NETStandard2.0")

    def test_groups_are_flattened_first_wins(self) -> None:
        manifest = parse_nuspec(self.NAME, self.VERSION, NUSPEC_GROUPS, source="feed")
        deps = {str(d.name): str(d.version_range) for d in manifest.dependencies}
        assert deps == {"PackageC": ">=1.0,<2.0", "PackageD": "*"}

    def test_framework_selects_group(self) -> None:
        manifest = parse_nuspec(
            self.NAME, self.VERSION, NUSPEC_GROUPS, source="feed",
            framework=".netstandard2.0",
        )
        deps = {str(d.name): str(d.version_range) for d in manifest.dependencies}
        assert deps == {"PackageC": ">=1.5.0", "PackageD": "*"}

    def test_unknown_framework_uses_ungrouped_dependencies(self) -> None:
        manifest = parse_nuspec(
            PackageName("PackageB"), SemanticVersion.parse("1.0"), NUSPEC_FLAT,
            source="feed", framework="net8.0",
        )
        assert [str(d.name) for d in manifest.dependencies] == ["PackageC"]

    def test_dependencies_point_back_to_package(self) -> None:
        manifest = parse_nuspec(self.NAME, self.VERSION, NUSPEC_GROUPS, source="feed")
        assert all(str(d.parent) == "PackageA 2.0.0" for d in manifest.dependencies)
        assert all(d.sources == ("feed",) for d in manifest.dependencies)

    def test_malformed_xml_raises(self) -> None:
        with pytest.raises(SourceUnavailableError):
            parse_nuspec(self.NAME, self.VERSION, "<package>", source="feed")

    def test_bad_dependency_range_raises(self) -> None:
        document = NUSPEC_FLAT.replace('version="1.0" ', 'version="[oops" ')
        with pytest.raises(SourceUnavailableError):
            parse_nuspec(PackageName("PackageB"), SemanticVersion.parse("1.0"), document, source="feed")


class TestResolveOverFeed:
    """End-to-end resolution against a mocked feed."""

    def test_resolves_transitive_dependency(self) -> None:
        provider = _provider({
            FEED_1: _service_index(ONE),
            f"{ONE}/flat/packageb/index.json": {"versions": ["1.0.0"]},
            f"{ONE}/flat/packagec/index.json": {"versions": ["0.9.0", "1.0.0", "1.2.0"]},
            f"{ONE}/flat/packageb/1.0.0/packageb.nuspec": NUSPEC_FLAT,
            f"{ONE}/flat/packagec/1.2.0/packagec.nuspec": "<package><metadata/></package>",
        })

        async def run():
            try:
                return await Resolver(provider).resolve([parse_requirement("PackageB")])
            finally:
                await provider.aclose()

        result = asyncio.run(run())
        assert result.installed == {"PackageB": "1.0.0", "PackageC": "1.2.0"}
