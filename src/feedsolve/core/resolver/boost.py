"""Conflict boost tracking.

Whenever a candidate version leads to a conflict, every package named in
that conflict's open set gets its boost raised by one. The selector ranks
boosted packages earlier, so the search attacks a known trouble spot before
it wanders into unrelated branches and rediscovers the same conflict deep
down.

A tracker is scoped to a single top-level resolution: it starts empty, only
grows, and is discarded when the resolution ends.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable

from feedsolve.core.models import PackageName, package_name

logger = logging.getLogger(__name__)


class ConflictBoostTracker:
    """Per-package conflict counters for one resolution run.

    Thread safety: This class is NOT thread-safe. The search is single
    threaded; updates must be visible to the next sibling attempt.
    """

    def __init__(self) -> None:
        self._boosts: Counter[PackageName] = Counter()

    def boost(self, names: Iterable[PackageName | str]) -> None:
        """Increment the boost of each distinct name by exactly one."""
        distinct = {package_name(n) for n in names}
        for name in distinct:
            self._boosts[name] += 1
        if distinct:
            logger.debug(
                "Boosted %s", ", ".join(sorted(str(n) for n in distinct))
            )

    def current_boost(self, name: PackageName | str) -> int:
        return self._boosts.get(package_name(name), 0)

    def snapshot(self) -> dict[str, int]:
        """Return ``{name: boost}`` for every boosted package, sorted by name."""
        return {str(n): self._boosts[n] for n in sorted(self._boosts)}

    def __len__(self) -> int:
        return len(self._boosts)
