"""Semantic versions as published on package feeds.

Feeds publish versions with one to four numeric release parts (``1``,
``1.0``, ``1.0.0``, ``1.0.0.0``), an optional pre-release label and optional
build metadata. All spellings of the same release compare equal: release
parts are padded to four components before comparison.

Precedence follows SemVer 2.0.0 section 11 for the pre-release part; build
metadata never affects equality or ordering.

References
----------
.. [SemVer] Preston-Werner, T. (2013). "Semantic Versioning 2.0.0."
   https://semver.org/
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import total_ordering

from feedsolve.exceptions import RequirementParseError

_VERSION_RE = re.compile(
    r"^v?(?P<release>\d+(?:\.\d+){0,3})"
    r"(?:-(?P<pre>[0-9A-Za-z\-.]+))?"
    r"(?:\+(?P<build>[0-9A-Za-z\-.]+))?$"
)

_RELEASE_PARTS = 4


def _prerelease_key(identifiers: tuple[str, ...]) -> tuple[tuple[int, int, str], ...]:
    # Numeric identifiers sort before alphanumeric ones (SemVer 11.4.3).
    return tuple(
        (0, int(ident), "") if ident.isdigit() else (1, 0, ident.lower())
        for ident in identifiers
    )


@total_ordering
@dataclass(frozen=True, eq=False)
class SemanticVersion:
    """A totally ordered package version.

    Attributes:
        release: Numeric release parts, padded to four components.
        prerelease: Dot-separated pre-release identifiers (empty for releases).
        build: Build metadata, kept for display only.
        text: The version as originally written.
    """

    release: tuple[int, int, int, int]
    prerelease: tuple[str, ...] = ()
    build: str = ""
    text: str = field(default="")

    @classmethod
    def parse(cls, text: str) -> SemanticVersion:
        """Parse a version string such as ``"1.2"``, ``"2.0.0-beta.1"``.

        Raises:
            RequirementParseError: If *text* is not a valid version.
        """
        stripped = text.strip()
        m = _VERSION_RE.match(stripped)
        if not m:
            raise RequirementParseError(f"Invalid version: {text!r}")
        parts = [int(p) for p in m.group("release").split(".")]
        parts.extend([0] * (_RELEASE_PARTS - len(parts)))
        pre = tuple(m.group("pre").split(".")) if m.group("pre") else ()
        return cls(
            release=(parts[0], parts[1], parts[2], parts[3]),
            prerelease=pre,
            build=m.group("build") or "",
            text=stripped,
        )

    @property
    def is_prerelease(self) -> bool:
        return bool(self.prerelease)

    @property
    def normalized(self) -> str:
        """Canonical text: three release parts unless the fourth is non-zero."""
        parts = self.release if self.release[3] else self.release[:3]
        out = ".".join(str(p) for p in parts)
        if self.prerelease:
            out += "-" + ".".join(self.prerelease)
        return out

    def sort_key(self) -> tuple:
        # A release (no pre-release) outranks every pre-release of itself.
        if self.prerelease:
            return (self.release, 0, _prerelease_key(self.prerelease))
        return (self.release, 1, ())

    def magnitude(self) -> int:
        """Collapse the release parts into one integer for span arithmetic."""
        value = 0
        for part in self.release:
            value = value * 100_000 + min(part, 99_999)
        return value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        return self.sort_key() == other.sort_key()

    def __lt__(self, other: SemanticVersion) -> bool:
        if not isinstance(other, SemanticVersion):
            return NotImplemented
        return self.sort_key() < other.sort_key()

    def __hash__(self) -> int:
        return hash(self.sort_key())

    def __str__(self) -> str:
        return self.text or self.normalized

    def __repr__(self) -> str:
        return f"SemanticVersion({str(self)!r})"


def parse_version(text: str | SemanticVersion) -> SemanticVersion:
    """Coerce *text* to a ``SemanticVersion`` (idempotent)."""
    if isinstance(text, SemanticVersion):
        return text
    return SemanticVersion.parse(text)
