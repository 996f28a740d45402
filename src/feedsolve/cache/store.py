"""Persistent manifest cache --- survives across resolution runs.

Manifests are stored as one JSON document per ``(package, version)``, keyed
by the SHA-256 of ``lower(name) + "/" + normalized version``. Keys are
therefore stable across runs and machines, and two spellings of the same
version (``1.0`` and ``1.0.0``) share one entry.

Layout::

    <root>/
        3f/
            3f9a...e1.json
        a0/
            a07c...42.json

Writes go to a temporary file in the target directory and are moved into
place with ``os.replace``, so concurrent readers (other resolutions, other
projects) only ever see complete documents. Entries are never modified in
place; writing the same key twice produces the same content.

Serialization is deterministic: keys are sorted and dependencies keep
their declared order.
"""

from __future__ import annotations

import hashlib
import json
import logging
import os
import shutil
import tempfile
from dataclasses import replace
from pathlib import Path
from typing import Any

from feedsolve.core.models import (
    FromPackage,
    PackageName,
    PackageRequirement,
    ResolvedPackage,
    ResolverStrategy,
)
from feedsolve.core.versioning import SemanticVersion, VersionRange
from feedsolve.exceptions import CacheError

logger = logging.getLogger(__name__)

SCHEMA_VERSION: int = 2


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------


def manifest_to_dict(manifest: ResolvedPackage) -> dict[str, Any]:
    """Serialize a manifest to a JSON-compatible dictionary."""
    return {
        "schema": SCHEMA_VERSION,
        "name": manifest.name.text,
        "version": str(manifest.version),
        "source": manifest.source,
        "frameworks": list(manifest.framework_restrictions),
        "dependencies": [
            {
                "name": dep.name.text,
                "range": str(dep.version_range),
                "prerelease": dep.version_range.allows_prerelease,
                "strategy": dep.strategy.value,
                "sources": list(dep.sources),
            }
            for dep in manifest.dependencies
        ],
    }


def manifest_from_dict(data: dict[str, Any]) -> ResolvedPackage:
    """Rebuild a manifest from ``manifest_to_dict`` output.

    Raises:
        ValueError: On schema mismatch or malformed fields.
        KeyError: If a required field is missing.
    """
    if data.get("schema") != SCHEMA_VERSION:
        raise ValueError(f"unsupported schema {data.get('schema')!r}")
    name = PackageName(data["name"])
    version = SemanticVersion.parse(data["version"])
    parent = FromPackage(name, version)
    dependencies = tuple(
        PackageRequirement(
            name=PackageName(dep["name"]),
            version_range=replace(
                VersionRange.parse(dep["range"]),
                allows_prerelease=bool(dep.get("prerelease", False)),
            ),
            strategy=ResolverStrategy.parse(dep.get("strategy", "max")),
            parent=parent,
            sources=tuple(dep.get("sources", ())),
        )
        for dep in data.get("dependencies", [])
    )
    return ResolvedPackage(
        name=name,
        version=version,
        dependencies=dependencies,
        framework_restrictions=tuple(data.get("frameworks", ())),
        source=data.get("source", ""),
    )


def cache_key(name: PackageName, version: SemanticVersion) -> str:
    """Stable content address for ``(name, version)``."""
    return hashlib.sha256(f"{name.key}/{version.normalized}".encode("utf-8")).hexdigest()


# ---------------------------------------------------------------------------
# ManifestStore
# ---------------------------------------------------------------------------


class ManifestStore:
    """Directory-backed store of serialized manifests.

    Args:
        root: Cache directory; created on first use.

    Raises:
        CacheError: If *root* exists but is not a directory, or cannot be
            created.
    """

    def __init__(self, root: Path | str) -> None:
        self._root = Path(root).expanduser()
        try:
            self._root.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise CacheError(f"Cannot use manifest cache at {self._root}: {exc}") from exc
        if not self._root.is_dir():
            raise CacheError(f"Manifest cache path {self._root} is not a directory")

    @property
    def root(self) -> Path:
        return self._root

    def path_for(self, name: PackageName, version: SemanticVersion) -> Path:
        key = cache_key(name, version)
        return self._root / key[:2] / f"{key}.json"

    def get(self, name: PackageName, version: SemanticVersion) -> ResolvedPackage | None:
        """Return the stored manifest, or None on a miss.

        Unreadable, corrupt, or mismatched entries count as misses; they are
        logged and later overwritten by ``put``.
        """
        path = self.path_for(name, version)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            logger.warning("Cannot read manifest cache entry %s: %s", path, exc)
            return None

        try:
            manifest = manifest_from_dict(json.loads(text))
        except (ValueError, KeyError, TypeError) as exc:
            logger.warning("Ignoring corrupt manifest cache entry %s: %s", path, exc)
            return None

        if manifest.name != name or manifest.version != version:
            logger.warning(
                "Ignoring manifest cache entry %s: holds %s, expected %s %s",
                path, manifest, name, version,
            )
            return None
        return manifest

    def put(self, manifest: ResolvedPackage) -> Path | None:
        """Write *manifest* atomically. Returns the entry path, or None if
        the write failed (the failure is logged; the cache is only an
        accelerator for later runs)."""
        path = self.path_for(manifest.name, manifest.version)
        payload = json.dumps(manifest_to_dict(manifest), indent=2, sort_keys=True) + "\n"
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    fh.write(payload)
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            logger.warning("Cannot write manifest cache entry %s: %s", path, exc)
            return None
        return path

    def clear(self) -> int:
        """Delete every stored manifest. Returns the number removed."""
        removed = len(self)
        for child in self._root.iterdir():
            if child.is_dir():
                shutil.rmtree(child)
            else:
                child.unlink()
        return removed

    def __len__(self) -> int:
        return sum(1 for _ in self._root.glob("*/*.json"))

    def __contains__(self, key: tuple[PackageName, SemanticVersion]) -> bool:
        name, version = key
        return self.path_for(name, version).is_file()
