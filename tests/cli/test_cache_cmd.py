"""Tests for ``feedsolve cache-clear``."""

from __future__ import annotations

from pathlib import Path

from click.testing import CliRunner

from feedsolve.cache.store import ManifestStore
from feedsolve.cli.main import cli
from feedsolve.core.models import PackageName, ResolvedPackage
from feedsolve.core.versioning import SemanticVersion


def _manifest(name: str, version: str) -> ResolvedPackage:
    return ResolvedPackage(PackageName(name), SemanticVersion.parse(version), source="feed")


class TestCacheClear:
    """Clearing the persistent manifest cache."""

    def test_removes_entries(self, runner: CliRunner, tmp_path: Path) -> None:
        store = ManifestStore(tmp_path / "cache")
        store.put(_manifest("PackageA", "1.0"))
        store.put(_manifest("PackageB", "2.0"))

        result = runner.invoke(cli, ["cache-clear", "--cache-dir", str(tmp_path / "cache")])
        assert result.exit_code == 0, result.output
        assert "Removed 2 manifest(s)" in result.output
        assert len(store) == 0

    def test_empty_cache(self, runner: CliRunner, tmp_path: Path) -> None:
        result = runner.invoke(cli, ["cache-clear", "--cache-dir", str(tmp_path / "fresh")])
        assert result.exit_code == 0, result.output
        assert "Removed 0 manifest(s)" in result.output

    def test_cache_dir_from_config(self, runner: CliRunner, tmp_path: Path) -> None:
        store = ManifestStore(tmp_path / "configured")
        store.put(_manifest("PackageA", "1.0"))
        (tmp_path / "feedsolve.yaml").write_text(
            f"cache_dir: {tmp_path / 'configured'}\n", encoding="utf-8"
        )
        result = runner.invoke(cli, ["cache-clear"])
        assert result.exit_code == 0, result.output
        assert "Removed 1 manifest(s)" in result.output

    def test_path_is_a_file(self, runner: CliRunner, tmp_path: Path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory", encoding="utf-8")
        result = runner.invoke(cli, ["cache-clear", "--cache-dir", str(blocker)])
        assert result.exit_code == 3
        assert "Error:" in result.output
