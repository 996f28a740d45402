"""feedsolve exception hierarchy.

All public exceptions inherit from FeedsolveError, giving callers a single
base class to catch when they want to handle any feedsolve-specific failure
without swallowing unrelated errors.

An unsatisfiable requirement set is *not* an exception: the resolver reports
it as a conflict ``Resolution``. Only failures that prevent the resolver from
gathering facts (unreachable feeds, vanished versions) are raised.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from feedsolve.core.models import PackageRequirement


class FeedsolveError(Exception):
    """Base exception for all feedsolve errors."""


class SourceUnavailableError(FeedsolveError):
    """Raised when no configured feed could be reached for a package.

    Fatal to the current resolution. Retry policy, if any, belongs to the
    provider, never to the resolver.
    """


class PackageNotFoundError(FeedsolveError):
    """Raised when a listed package version cannot be fetched.

    Typically a feed race: the version disappeared between listing and
    fetching its manifest. Surfaced rather than skipped.
    """

    def __init__(self, name: str, version: str) -> None:
        super().__init__(f"{name} {version} was not found on any configured feed")
        self.name = name
        self.version = version


class IncompatibleRequirementError(FeedsolveError):
    """Raised when two requirements for one package admit no common version.

    Internal to the search: the engine treats it as a failed candidate and
    moves on to the next version.
    """

    def __init__(
        self,
        requirement: PackageRequirement,
        existing: PackageRequirement | None = None,
        detail: str = "",
    ) -> None:
        self.requirement = requirement
        self.existing = existing
        self.detail = detail or "version ranges do not intersect"
        super().__init__(self.detail)


class RequirementParseError(FeedsolveError, ValueError):
    """Raised for malformed version, range, or requirement text."""


class CacheError(FeedsolveError):
    """Raised when the persistent manifest cache cannot be used at all."""


class ConfigError(FeedsolveError):
    """Raised for invalid settings files, environment values, or options."""
