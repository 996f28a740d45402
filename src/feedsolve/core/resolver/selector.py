"""Requirement selection heuristic.

Picks which open requirement the search settles next. Requirements with a
small version range and high conflict potential go first. The ordering keys,
most significant first:

1. Pinned (exact-version) requirements before ranged ones.
2. Direct requirements (from the root file) before transitive ones.
3. Resolver strategy (MAX before MIN), purely as a stable tie-break.
4. Conflict boost, higher first.
5. Width of the version range, narrower first.
6. Package name, case-insensitive ascending.

A final key on the rendered requirement, its origin and its sources makes
the order total, so identical inputs always select identically.

The selector has no side effects: it is a pure function of the open set and
the boost tracker's current state.
"""

from __future__ import annotations

from collections.abc import Iterable

from feedsolve.core.resolver.boost import ConflictBoostTracker
from feedsolve.core.models import PackageRequirement


def selection_key(requirement: PackageRequirement, boosts: ConflictBoostTracker) -> tuple:
    """Sort key for *requirement*; the smallest key is selected first."""
    return (
        0 if requirement.is_pinned else 1,
        0 if requirement.is_direct else 1,
        requirement.strategy.rank,
        -boosts.current_boost(requirement.name),
        requirement.version_range.width_key(),
        requirement.name.key,
        str(requirement.version_range),
        str(requirement.parent),
        requirement.sources,
    )


def order_requirements(
    requirements: Iterable[PackageRequirement], boosts: ConflictBoostTracker
) -> list[PackageRequirement]:
    """Return *requirements* in the order the selector would pick them."""
    return sorted(requirements, key=lambda r: selection_key(r, boosts))


def select_next(
    open_requirements: frozenset[PackageRequirement],
    boosts: ConflictBoostTracker,
) -> tuple[PackageRequirement, frozenset[PackageRequirement]]:
    """Pick the next requirement to resolve.

    Args:
        open_requirements: Non-empty set of requirements still open.
        boosts: Conflict boosts for the current resolution.

    Returns:
        ``(current, rest)`` where ``rest`` is the open set minus ``current``.

    Raises:
        ValueError: If *open_requirements* is empty.
    """
    if not open_requirements:
        raise ValueError("Cannot select from an empty requirement set")
    current = min(open_requirements, key=lambda r: selection_key(r, boosts))
    return current, open_requirements - {current}
