"""In-memory package catalog provider.

Serves versions and manifests from a static description, either a Python
mapping or a YAML document. Used for offline resolution, reproducible bug
reports, and tests.

YAML format::

    packages:
      PackageA:
        "1.0":
          dependencies:
            PackageC: "==1.0"
          frameworks: [net45]
        "1.1":
          PackageC: ">=1.0"      # shorthand: dependencies only
        "2.0": {}                # no dependencies
      PackageC:
        "1.0": {}

Usage::

    provider = CatalogProvider.from_yaml(Path("catalog.yaml"))
    versions = await provider.list_versions(PackageName("PackageA"))
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from feedsolve.core.models import (
    FromPackage,
    PackageName,
    PackageRequirement,
    ResolvedPackage,
    ResolverStrategy,
)
from feedsolve.core.versioning import SemanticVersion, VersionRange
from feedsolve.exceptions import ConfigError, PackageNotFoundError
from feedsolve.providers.base import PackageProvider

_FULL_FORM_KEYS = frozenset({"dependencies", "frameworks"})


class CatalogProvider(PackageProvider):
    """Provider backed by a static catalog.

    Args:
        packages: ``{package: {version: entry}}`` where *entry* is None, a
            ``{dependency: range}`` mapping, or a mapping with
            ``dependencies`` and/or ``frameworks`` keys.
        strategy: Strategy given to every transitive requirement.
        name: Provider name used in diagnostics and manifests.

    Raises:
        ConfigError: If the catalog structure is malformed.
        RequirementParseError: If a version or range is malformed.
    """

    def __init__(
        self,
        packages: Mapping[str, Mapping[str, Any]],
        *,
        strategy: ResolverStrategy = ResolverStrategy.MAX,
        name: str = "catalog",
    ) -> None:
        self._name = name
        self._strategy = strategy
        self._manifests: dict[PackageName, dict[SemanticVersion, ResolvedPackage]] = {}
        if not isinstance(packages, Mapping):
            raise ConfigError("Catalog must map package names to versions")
        for pkg, versions in packages.items():
            if not isinstance(versions, Mapping):
                raise ConfigError(f"Catalog entry for {pkg!r} must map versions to manifests")
            pkg_name = PackageName(str(pkg))
            by_version = self._manifests.setdefault(pkg_name, {})
            for ver_text, entry in versions.items():
                version = SemanticVersion.parse(str(ver_text))
                by_version[version] = self._build_manifest(pkg_name, version, entry)

    @classmethod
    def from_yaml(cls, path: Path, **kwargs: Any) -> CatalogProvider:
        """Load a catalog from a YAML file with a top-level ``packages`` key.

        Raises:
            ConfigError: If the file cannot be read or parsed.
        """
        try:
            data = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigError(f"Cannot load catalog {path}: {exc}") from exc
        if not isinstance(data, Mapping) or not isinstance(data.get("packages"), Mapping):
            raise ConfigError(f"Catalog {path} must contain a 'packages' mapping")
        kwargs.setdefault("name", f"catalog:{Path(path).name}")
        return cls(data["packages"], **kwargs)

    def _build_manifest(
        self, name: PackageName, version: SemanticVersion, entry: Any
    ) -> ResolvedPackage:
        entry = entry or {}
        if not isinstance(entry, Mapping):
            raise ConfigError(f"Manifest for {name} {version} must be a mapping")
        if _FULL_FORM_KEYS.intersection(entry):
            deps = entry.get("dependencies") or {}
            frameworks = tuple(str(f) for f in entry.get("frameworks") or ())
        else:
            deps, frameworks = entry, ()
        if not isinstance(deps, Mapping):
            raise ConfigError(f"Dependencies of {name} {version} must be a mapping")

        parent = FromPackage(name, version)
        dependencies = tuple(
            PackageRequirement(
                name=PackageName(str(dep_name)),
                version_range=VersionRange.parse("" if rng is None else str(rng)),
                strategy=self._strategy,
                parent=parent,
                sources=(self._name,),
            )
            for dep_name, rng in deps.items()
        )
        return ResolvedPackage(
            name=name,
            version=version,
            dependencies=dependencies,
            framework_restrictions=frameworks,
            source=self._name,
        )

    @property
    def provider_name(self) -> str:
        return self._name

    @property
    def package_names(self) -> list[str]:
        return sorted(str(n) for n in self._manifests)

    async def list_versions(self, name: PackageName) -> list[SemanticVersion]:
        return list(self._manifests.get(name, {}))

    async def fetch_manifest(
        self, name: PackageName, version: SemanticVersion
    ) -> ResolvedPackage:
        try:
            return self._manifests[name][version]
        except KeyError:
            raise PackageNotFoundError(str(name), str(version)) from None
