"""Data model for requirement resolution.

Requirements, resolved packages, and the ``Resolution`` outcome are plain
frozen dataclasses: once created they never change. New facts enter a
search only as new values (for example, intersecting two requirements for
the same package yields a third, narrower requirement).
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from functools import total_ordering
from typing import Union

from feedsolve.core.versioning import SemanticVersion, VersionRange
from feedsolve.exceptions import IncompatibleRequirementError, RequirementParseError


# ---------------------------------------------------------------------------
# PackageName: case-insensitive identity
# ---------------------------------------------------------------------------


@total_ordering
class PackageName:
    """A package identifier that compares case-insensitively.

    The display text is kept as first written so diagnostics echo what the
    user or the feed spelled.
    """

    __slots__ = ("text", "_key")

    def __init__(self, text: str) -> None:
        stripped = text.strip()
        if not stripped:
            raise RequirementParseError("Package name must not be empty")
        self.text = stripped
        self._key = stripped.casefold()

    @property
    def key(self) -> str:
        return self._key

    def __eq__(self, other: object) -> bool:
        if isinstance(other, PackageName):
            return self._key == other._key
        if isinstance(other, str):
            return self._key == other.strip().casefold()
        return NotImplemented

    def __lt__(self, other: PackageName) -> bool:
        if not isinstance(other, PackageName):
            return NotImplemented
        return self._key < other._key

    def __hash__(self) -> int:
        return hash(self._key)

    def __str__(self) -> str:
        return self.text

    def __repr__(self) -> str:
        return f"PackageName({self.text!r})"


def package_name(value: PackageName | str) -> PackageName:
    return value if isinstance(value, PackageName) else PackageName(value)


# ---------------------------------------------------------------------------
# Strategy and requirement origin
# ---------------------------------------------------------------------------


class ResolverStrategy(enum.Enum):
    """Candidate ordering for one requirement: newest or oldest first."""

    MAX = "max"
    MIN = "min"

    @property
    def rank(self) -> int:
        return 0 if self is ResolverStrategy.MAX else 1

    @classmethod
    def parse(cls, value: str | ResolverStrategy) -> ResolverStrategy:
        if isinstance(value, ResolverStrategy):
            return value
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise RequirementParseError(
                f"Unknown resolver strategy {value!r} (expected 'max' or 'min')"
            ) from None


@dataclass(frozen=True)
class RootFile:
    """Origin of a requirement declared directly by the user."""

    is_direct = True

    def __str__(self) -> str:
        return "root"


@dataclass(frozen=True)
class FromPackage:
    """Origin of a transitive requirement: the package version that declared it."""

    name: PackageName
    version: SemanticVersion

    is_direct = False

    def __str__(self) -> str:
        return f"{self.name} {self.version}"


RequirementSource = Union[RootFile, FromPackage]

ROOT = RootFile()


# ---------------------------------------------------------------------------
# PackageRequirement
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PackageRequirement:
    """One constraint on a package: acceptable versions plus how to pick.

    Attributes:
        name: The package the constraint applies to.
        version_range: Versions the constraint accepts.
        strategy: Candidate order (newest-first or oldest-first).
        parent: Where the constraint came from.
        sources: Feed identifiers the package may be resolved against.
    """

    name: PackageName
    version_range: VersionRange = field(default_factory=VersionRange)
    strategy: ResolverStrategy = ResolverStrategy.MAX
    parent: RequirementSource = ROOT
    sources: tuple[str, ...] = ()

    @property
    def is_direct(self) -> bool:
        return self.parent.is_direct

    @property
    def is_pinned(self) -> bool:
        return self.version_range.is_pinned

    def accepts(self, version: SemanticVersion) -> bool:
        return self.version_range.matches(version)

    def intersect(self, other: PackageRequirement) -> PackageRequirement:
        """Merge two requirements for the same package into a narrower one.

        The merged requirement keeps this requirement's strategy; it counts
        as direct if either side is direct, and its sources are the ordered
        union of both.

        Raises:
            IncompatibleRequirementError: If no version satisfies both.
        """
        if self.name != other.name:
            raise ValueError(f"Cannot intersect {self.name} with {other.name}")
        merged_range = self.version_range.intersect(other.version_range)
        if merged_range is None:
            raise IncompatibleRequirementError(
                other,
                existing=self,
                detail=(
                    f"{other.describe()} is incompatible with {self.describe()}"
                ),
            )
        parent = other.parent if other.is_direct and not self.is_direct else self.parent
        sources = self.sources + tuple(s for s in other.sources if s not in self.sources)
        return PackageRequirement(
            name=self.name,
            version_range=merged_range,
            strategy=self.strategy,
            parent=parent,
            sources=sources,
        )

    def describe(self) -> str:
        """Render ``Name range (origin)`` for diagnostics."""
        origin = "root" if self.is_direct else f"required by {self.parent}"
        return f"{self.name} {self.version_range} ({origin})"

    def __str__(self) -> str:
        return f"{self.name} {self.version_range}"


def parse_requirement(
    text: str,
    *,
    strategy: ResolverStrategy | str = ResolverStrategy.MAX,
    parent: RequirementSource = ROOT,
    sources: tuple[str, ...] = (),
) -> PackageRequirement:
    """Parse ``"Name"`` or ``"Name <range>"`` into a requirement.

    Examples::

        parse_requirement("Newtonsoft.Json >=12.0,<14.0")
        parse_requirement("NUnit [3.13]", strategy="min")

    Raises:
        RequirementParseError: If the name or range is malformed.
    """
    stripped = text.strip()
    if not stripped:
        raise RequirementParseError("Empty requirement")
    name, _, range_text = stripped.partition(" ")
    return PackageRequirement(
        name=PackageName(name),
        version_range=VersionRange.parse(range_text),
        strategy=ResolverStrategy.parse(strategy),
        parent=parent,
        sources=tuple(sources),
    )


# ---------------------------------------------------------------------------
# ResolvedPackage
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ResolvedPackage:
    """A package bound to one concrete version and the requirements it adds.

    Produced only by providers (via the cache layer).

    Attributes:
        name: Package name as published.
        version: The concrete version.
        dependencies: Requirements this version introduces.
        framework_restrictions: Target frameworks the manifest declares.
        source: Feed or provider the manifest came from.
    """

    name: PackageName
    version: SemanticVersion
    dependencies: tuple[PackageRequirement, ...] = ()
    framework_restrictions: tuple[str, ...] = ()
    source: str = ""

    def __str__(self) -> str:
        return f"{self.name} {self.version}"


# ---------------------------------------------------------------------------
# Resolution: the outcome of a search
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ConflictReason:
    """One dead end met during the search, kept for diagnostics."""

    requirement: PackageRequirement
    detail: str

    def __str__(self) -> str:
        return self.detail


@dataclass(frozen=True)
class Resolution:
    """Result of resolving a requirement set.

    Either ``Ok`` (``is_ok`` true, ``packages`` holds one resolved package per
    name in selection order) or ``Conflict`` (``open_requirements`` holds the
    requirements still open where the search gave up).

    Attributes:
        is_ok: True if a full assignment was found.
        packages: Resolved packages, in the order they were selected.
        open_requirements: The unsatisfiable open set (conflicts only).
        reasons: Dead ends met along the explored paths, deduplicated.
        explored: Every ``(name, version)`` candidate tried, in order.
        boosts: Conflict boost per package at the end of the search.
    """

    is_ok: bool
    packages: tuple[ResolvedPackage, ...] = ()
    open_requirements: frozenset[PackageRequirement] = frozenset()
    reasons: tuple[ConflictReason, ...] = ()
    explored: tuple[tuple[PackageName, SemanticVersion], ...] = ()
    boosts: dict[str, int] = field(default_factory=dict, compare=False)

    @classmethod
    def ok(cls, packages: tuple[ResolvedPackage, ...]) -> Resolution:
        return cls(is_ok=True, packages=packages)

    @classmethod
    def conflict(
        cls,
        open_requirements: frozenset[PackageRequirement],
        reasons: tuple[ConflictReason, ...] = (),
    ) -> Resolution:
        return cls(is_ok=False, open_requirements=open_requirements, reasons=reasons)

    @property
    def installed(self) -> dict[str, str]:
        """Package name -> resolved version text."""
        return {str(p.name): str(p.version) for p in self.packages}

    def get(self, name: PackageName | str) -> ResolvedPackage | None:
        key = package_name(name)
        for pkg in self.packages:
            if pkg.name == key:
                return pkg
        return None

    def describe_conflicts(self) -> list[str]:
        """Human-readable lines naming unresolvable requirements and origins."""
        if self.is_ok:
            return []
        lines = [reason.detail for reason in self.reasons]
        for req in sorted(self.open_requirements, key=lambda r: (r.name, str(r))):
            lines.append(f"Could not satisfy {req.describe()}")
        if not lines:
            lines.append("Resolution failed: no satisfying assignment exists")
        return lines
