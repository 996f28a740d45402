"""Shared fixtures for CLI tests.

Provides a CliRunner, YAML package catalogs, and an isolated working
directory and environment so no user settings leak into the tests.
"""

from __future__ import annotations

import os
from pathlib import Path

import pytest
from click.testing import CliRunner

CATALOG_YAML = """\
packages:
  PackageX:
    "1.0": {}
    "1.5": {}
    "1.9": {}
    "2.0": {}
  PackageA:
    "1.0":
      PackageC: "==1.0"
  PackageB:
    "1.0":
      dependencies:
        PackageC: "==2.0"
      frameworks: [net45]
  PackageC:
    "1.0": {}
    "2.0": {}
  PackageD:
    "1.0":
      PackageX: ">=1.0,<2.0"
"""


@pytest.fixture(autouse=True)
def _isolated(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Run every CLI test in an empty directory with no FEEDSOLVE_* variables."""
    monkeypatch.chdir(tmp_path)
    for key in list(os.environ):
        if key.upper().startswith("FEEDSOLVE_"):
            monkeypatch.delenv(key)


@pytest.fixture
def runner() -> CliRunner:
    """Create a Click CliRunner for invoking commands."""
    return CliRunner()


@pytest.fixture
def catalog_file(tmp_path: Path) -> Path:
    """Write the shared test catalog and return its path."""
    path = tmp_path / "catalog.yaml"
    path.write_text(CATALOG_YAML, encoding="utf-8")
    return path
