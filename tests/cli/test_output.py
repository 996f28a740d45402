"""Tests for CLI output formatting helpers.

Verifies:
    - Package origin attribution (root vs. transitive).
    - JSON rendering of Ok and Conflict resolutions.
    - Output functions produce the expected text without errors.
"""

from __future__ import annotations

import pytest

from feedsolve.cache.memory import CacheStats
from feedsolve.cli.output import (
    package_origins,
    print_resolution,
    print_versions,
    resolution_to_dict,
)
from feedsolve.core.models import (
    ConflictReason,
    FromPackage,
    PackageName,
    ResolvedPackage,
    Resolution,
    parse_requirement,
)
from feedsolve.core.versioning import SemanticVersion


def _v(text: str) -> SemanticVersion:
    return SemanticVersion.parse(text)


@pytest.fixture
def ok_resolution() -> tuple[Resolution, list]:
    """Root requires App; App 1.0 requires Lib >=2.0."""
    roots = [parse_requirement("App")]
    app_parent = FromPackage(PackageName("App"), _v("1.0"))
    lib_req = parse_requirement("Lib >=2.0", parent=app_parent)
    app = ResolvedPackage(PackageName("App"), _v("1.0"), (lib_req,), source="feed")
    lib = ResolvedPackage(PackageName("Lib"), _v("2.1"), (), ("net8.0",), source="feed")
    return Resolution.ok((app, lib)), roots


@pytest.fixture
def conflict_resolution() -> tuple[Resolution, list]:
    roots = [parse_requirement("App ==1.0")]
    reason = ConflictReason(roots[0], "No available version satisfies App ==1.0 (root)")
    return Resolution.conflict(frozenset(roots), (reason,)), roots


class TestPackageOrigins:
    """Tests for ``package_origins``."""

    def test_root_and_transitive(self, ok_resolution) -> None:
        resolution, roots = ok_resolution
        assert package_origins(resolution, roots) == {
            "App": ["root"],
            "Lib": ["App 1.0"],
        }


class TestResolutionToDict:
    """Tests for the ``--json`` rendering."""

    def test_ok(self, ok_resolution) -> None:
        resolution, roots = ok_resolution
        data = resolution_to_dict(resolution, roots)
        assert data["status"] == "ok"
        assert data["packages"][1] == {
            "name": "Lib",
            "version": "2.1",
            "source": "feed",
            "required_by": ["App 1.0"],
            "frameworks": ["net8.0"],
            "dependencies": {},
        }
        assert "conflicts" not in data

    def test_conflict(self, conflict_resolution) -> None:
        resolution, roots = conflict_resolution
        data = resolution_to_dict(resolution, roots)
        assert data["status"] == "conflict"
        assert data["conflicts"] == [
            "No available version satisfies App ==1.0 (root)",
            "Could not satisfy App ==1.0 (root)",
        ]
        assert data["open"] == ["App ==1.0 (root)"]
        assert "packages" not in data


class TestPrintFunctions:
    """Rendering through the shared rich console."""

    def test_print_ok(self, ok_resolution, capsys: pytest.CaptureFixture[str]) -> None:
        resolution, roots = ok_resolution
        print_resolution(resolution, roots, CacheStats(version_fetches=2, manifest_fetches=2))
        out = capsys.readouterr().out
        assert "Resolution successful" in out
        assert "Lib" in out
        assert "net8.0" in out

    def test_print_empty_ok(self, capsys: pytest.CaptureFixture[str]) -> None:
        print_resolution(Resolution.ok(()), [])
        assert "No packages to resolve" in capsys.readouterr().out

    def test_print_conflict(
        self, conflict_resolution, capsys: pytest.CaptureFixture[str]
    ) -> None:
        resolution, roots = conflict_resolution
        print_resolution(resolution, roots)
        out = capsys.readouterr().out
        assert "Resolution failed" in out
        assert "Could not satisfy" in out

    def test_print_versions(self, capsys: pytest.CaptureFixture[str]) -> None:
        print_versions("Lib", [_v("1.0"), _v("2.0-beta"), _v("1.5")])
        out = capsys.readouterr().out
        assert out.index("2.0-beta") < out.index("1.5") < out.index("1.0")
        assert "yes" in out

    def test_print_no_versions(self, capsys: pytest.CaptureFixture[str]) -> None:
        print_versions("Ghost", [])
        assert "no versions found" in capsys.readouterr().out
