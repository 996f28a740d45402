"""Search state of the backtracking resolver.

A ``SearchState`` is the triple (selected, closed, open):

- **selected**: one ``ResolvedPackage`` per package chosen so far;
- **closed**: requirements already satisfied by those choices;
- **open**: requirements still waiting for a version.

States are immutable. Trying a candidate derives a fresh state with
``advance``; abandoning the candidate simply drops that state, so sibling
branches never observe each other's choices and no undo logic exists.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from feedsolve.core.models import (
    PackageName,
    PackageRequirement,
    ResolvedPackage,
)
from feedsolve.exceptions import IncompatibleRequirementError


def merge_requirements(
    requirements: Iterable[PackageRequirement],
) -> frozenset[PackageRequirement]:
    """Collapse requirements naming the same package into their intersection.

    Used for the root set, where the same package may be listed twice.

    Raises:
        IncompatibleRequirementError: If two entries admit no common version.
    """
    merged: dict[PackageName, PackageRequirement] = {}
    for req in requirements:
        existing = merged.get(req.name)
        merged[req.name] = existing.intersect(req) if existing else req
    return frozenset(merged.values())


@dataclass(frozen=True)
class SearchState:
    """Immutable (selected, closed, open) triple for one search branch."""

    selected: tuple[ResolvedPackage, ...] = ()
    closed: frozenset[PackageRequirement] = frozenset()
    open: frozenset[PackageRequirement] = frozenset()

    @classmethod
    def initial(cls, requirements: Iterable[PackageRequirement]) -> SearchState:
        return cls(open=merge_requirements(requirements))

    @property
    def is_complete(self) -> bool:
        return not self.open

    def selected_package(self, name: PackageName) -> ResolvedPackage | None:
        for pkg in self.selected:
            if pkg.name == name:
                return pkg
        return None

    def advance(
        self, current: PackageRequirement, manifest: ResolvedPackage
    ) -> SearchState:
        """Derive the state after choosing *manifest* for *current*.

        ``current`` moves from open to closed and ``manifest`` joins the
        selection. Each dependency of the manifest is then merged:

        - a package already selected must accept the selected version, and
          the dependency is closed immediately;
        - a package already open has its entry replaced by the intersection
          of both requirements;
        - any other package gets a new open entry.

        Raises:
            IncompatibleRequirementError: If a dependency rules out an
                already selected version, or its range does not intersect
                the open entry for the same package.
        """
        selected = self.selected + (manifest,)
        chosen = {pkg.name: pkg for pkg in selected}
        closed = set(self.closed)
        closed.add(current)
        pending = {req.name: req for req in self.open if req != current}

        for dep in manifest.dependencies:
            picked = chosen.get(dep.name)
            if picked is not None:
                if not dep.accepts(picked.version):
                    raise IncompatibleRequirementError(
                        dep,
                        detail=(
                            f"{dep.describe()} conflicts with already selected "
                            f"{picked.name} {picked.version}"
                        ),
                    )
                closed.add(dep)
                continue
            existing = pending.get(dep.name)
            pending[dep.name] = existing.intersect(dep) if existing else dep

        return SearchState(
            selected=selected,
            closed=frozenset(closed),
            open=frozenset(pending.values()),
        )
