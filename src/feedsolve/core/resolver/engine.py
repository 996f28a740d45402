"""Backtracking resolution engine.

Algorithm (depth-first over ``SearchState`` values, driven by an explicit
stack of frames so deep dependency chains do not hit the recursion limit):

    1. If nothing is open, the selection is a solution.
    2. Select the next open requirement (``select_next``).
    3. List its versions through the cache and keep the matching ones,
       newest first for MAX and oldest first for MIN.
    4. No candidate left: the branch is a Conflict on its open set.
    5. For each candidate: fetch its manifest, merge its dependencies into a
       fresh state and descend. The first Ok wins and ends the search. A
       Conflict boosts every package in the conflicting open set, then the
       next candidate is tried.

Merging a dependency that cannot coexist with an earlier choice is not an
error: the candidate is simply skipped after recording the reason. Only
child conflicts raise boosts.

Provider failures (``SourceUnavailableError``, ``PackageNotFoundError``) are
not conflicts. They propagate out of ``Resolver.resolve`` and abort the run.

Usage::

    resolver = Resolver(CatalogProvider(packages), prefetch=4)
    resolution = await resolver.resolve([parse_requirement("PackageA >=1.0")])
    if resolution.is_ok:
        print(resolution.installed)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, replace

from feedsolve.cache.memory import CacheStats, ResolutionCache
from feedsolve.cache.store import ManifestStore
from feedsolve.core.models import (
    ConflictReason,
    PackageName,
    PackageRequirement,
    Resolution,
    ResolverStrategy,
)
from feedsolve.core.resolver.boost import ConflictBoostTracker
from feedsolve.core.resolver.selector import select_next
from feedsolve.core.resolver.state import SearchState
from feedsolve.core.versioning import SemanticVersion
from feedsolve.exceptions import IncompatibleRequirementError
from feedsolve.providers.base import PackageProvider

logger = logging.getLogger(__name__)


@dataclass
class _Frame:
    """One level of the search: a state and the candidates left to try."""

    state: SearchState
    current: PackageRequirement
    candidates: list[SemanticVersion]
    index: int = 0

    @property
    def exhausted(self) -> bool:
        return self.index >= len(self.candidates)


class _Search:
    """Mutable bookkeeping for one resolution run.

    Holds the run-scoped cache and boost tracker plus the diagnostics
    gathered along the way. Search states themselves stay immutable.
    """

    def __init__(
        self,
        cache: ResolutionCache,
        boosts: ConflictBoostTracker,
        prefetch: int,
    ) -> None:
        self._cache = cache
        self._boosts = boosts
        self._prefetch = prefetch
        self.explored: list[tuple[PackageName, SemanticVersion]] = []
        self._reasons: dict[ConflictReason, None] = {}

    @property
    def reasons(self) -> tuple[ConflictReason, ...]:
        return tuple(self._reasons)

    def _note(self, requirement: PackageRequirement, detail: str) -> None:
        self._reasons.setdefault(ConflictReason(requirement, detail), None)

    async def candidates(self, current: PackageRequirement) -> list[SemanticVersion]:
        versions = await self._cache.list_versions(current.name)
        matching = [v for v in versions if current.accepts(v)]
        if current.strategy is ResolverStrategy.MAX:
            matching.reverse()
        return matching

    def _warm(self, name: PackageName, upcoming: Sequence[SemanticVersion]) -> None:
        if self._prefetch and upcoming:
            self._cache.prefetch(name, upcoming[: self._prefetch])

    async def _enter(self, state: SearchState, frames: list[_Frame]) -> Resolution | None:
        """Push a frame for *state*, or return its outcome if it has none."""
        if state.is_complete:
            return Resolution.ok(state.selected)

        current, _ = select_next(state.open, self._boosts)
        candidates = await self.candidates(current)
        logger.debug(
            "Selected %s; %d candidate(s): %s",
            current.describe(),
            len(candidates),
            ", ".join(str(v) for v in candidates),
        )
        if not candidates:
            self._note(current, f"No available version satisfies {current.describe()}")
            return Resolution.conflict(state.open)

        frames.append(_Frame(state, current, candidates))
        return None

    async def improve(self, initial: SearchState) -> Resolution:
        """Run the search from *initial*; return the first solution or a conflict."""
        frames: list[_Frame] = []
        outcome = await self._enter(initial, frames)
        while frames:
            frame = frames[-1]
            if outcome is not None:
                if outcome.is_ok:
                    return outcome
                logger.debug(
                    "%s %s led to a conflict",
                    frame.current.name,
                    frame.candidates[frame.index - 1],
                )
                self._boosts.boost(req.name for req in outcome.open_requirements)
                outcome = None

            if frame.exhausted:
                frames.pop()
                outcome = Resolution.conflict(frame.state.open)
                continue

            version = frame.candidates[frame.index]
            frame.index += 1
            self._warm(frame.current.name, frame.candidates[frame.index :])
            self.explored.append((frame.current.name, version))
            manifest = await self._cache.fetch_manifest(frame.current.name, version)
            try:
                next_state = frame.state.advance(frame.current, manifest)
            except IncompatibleRequirementError as exc:
                logger.debug(
                    "Skipping %s %s: %s", frame.current.name, version, exc.detail
                )
                self._note(exc.requirement, exc.detail)
                continue

            outcome = await self._enter(next_state, frames)

        return outcome if outcome is not None else Resolution.conflict(initial.open)


class Resolver:
    """Resolve root requirements against a package provider.

    Every ``resolve`` call gets its own cache and boost tracker, so runs
    never influence each other except through the persistent *store*.

    Args:
        provider: Source of version lists and manifests.
        store: Optional persistent manifest store shared across runs.
        prefetch: Number of upcoming candidates whose manifests are fetched
            concurrently ahead of the search (0 disables prefetching).
    """

    def __init__(
        self,
        provider: PackageProvider,
        *,
        store: ManifestStore | None = None,
        prefetch: int = 0,
    ) -> None:
        if prefetch < 0:
            raise ValueError(f"prefetch must be >= 0, got {prefetch}")
        self._provider = provider
        self._store = store
        self._prefetch = prefetch
        self.last_stats: CacheStats | None = None

    @property
    def provider(self) -> PackageProvider:
        return self._provider

    async def resolve(self, requirements: Iterable[PackageRequirement]) -> Resolution:
        """Resolve *requirements* and their transitive dependencies.

        Returns:
            ``Resolution`` that is either Ok (one package per name, in
            selection order) or a Conflict with diagnostics.

        Raises:
            SourceUnavailableError: If a provider could not be reached.
            PackageNotFoundError: If a listed version has no manifest.
        """
        roots = tuple(requirements)
        logger.info(
            "Resolving %d requirement(s) via %s", len(roots), self._provider.provider_name
        )
        try:
            initial = SearchState.initial(roots)
        except IncompatibleRequirementError as exc:
            logger.info("Root requirements conflict: %s", exc.detail)
            clashing = frozenset(r for r in roots if r.name == exc.requirement.name)
            return Resolution.conflict(
                clashing, (ConflictReason(exc.requirement, exc.detail),)
            )

        cache = ResolutionCache(self._provider, self._store)
        boosts = ConflictBoostTracker()
        search = _Search(cache, boosts, self._prefetch)
        try:
            outcome = await search.improve(initial)
        finally:
            await cache.aclose()
            self.last_stats = cache.stats

        result = replace(
            outcome,
            reasons=() if outcome.is_ok else search.reasons,
            explored=tuple(search.explored),
            boosts=boosts.snapshot(),
        )
        if result.is_ok:
            logger.info(
                "Resolved %d package(s) after %d candidate(s)",
                len(result.packages),
                len(result.explored),
            )
        else:
            logger.info(
                "Resolution failed after %d candidate(s); %d reason(s) recorded",
                len(result.explored),
                len(result.reasons),
            )
        return result

    def resolve_sync(self, requirements: Iterable[PackageRequirement]) -> Resolution:
        """Blocking wrapper around ``resolve`` for callers without a loop."""
        return asyncio.run(self.resolve(requirements))
