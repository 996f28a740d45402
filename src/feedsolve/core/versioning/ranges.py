"""Version ranges: the acceptable-version predicate of a requirement.

A ``VersionRange`` is a single interval over ``SemanticVersion`` with
optional bounds, per-bound inclusivity, and a set of excluded versions.
Every supported syntax normalizes into this one shape, which makes
intersection exact and cheap.

Supported syntax:

- Wildcard (any version): ``*`` or empty text
- Exact match: ``==1.0``
- Not-equal: ``!=1.0``
- Minimum / maximum: ``>=1.0``, ``>1.0``, ``<=2.0``, ``<2.0``
- Caret: ``^1.2.0`` (same major; same major.minor when major is 0)
- Tilde: ``~1.2.0`` (same major.minor)
- Compound (comma-separated, all must hold): ``>=1.0,<2.0``
- NuGet interval notation: ``[1.0,2.0)``, ``(,2.0]``, ``[1.0,)``, ``[1.0]``
- Bare version: ``1.0`` means "1.0 or higher", as NuGet reads it
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace

from feedsolve.core.versioning.versions import SemanticVersion
from feedsolve.exceptions import RequirementParseError

_ATOM_RE = re.compile(r"^\s*(?P<op>==|!=|>=|<=|>|<|\^|~|=)?\s*(?P<ver>\S+)\s*$")

_INTERVAL_RE = re.compile(
    r"^\s*(?P<open>[\[(])\s*(?P<low>[^,\])]*?)\s*"
    r"(?:(?P<comma>,)\s*(?P<high>[^\])]*?)\s*)?(?P<close>[\])])\s*$"
)


def _bump(version: SemanticVersion, index: int) -> SemanticVersion:
    """Return the smallest release above every version sharing the first *index* parts."""
    parts = list(version.release[:index])
    parts[-1] += 1
    parts.extend([0] * (4 - len(parts)))
    return SemanticVersion(release=(parts[0], parts[1], parts[2], parts[3]))


@dataclass(frozen=True)
class VersionRange:
    """An interval of acceptable versions.

    Attributes:
        lower: Lower bound, or None for unbounded below.
        lower_inclusive: Whether ``lower`` itself is acceptable.
        upper: Upper bound, or None for unbounded above.
        upper_inclusive: Whether ``upper`` itself is acceptable.
        excluded: Individual versions ruled out by ``!=`` atoms.
        allows_prerelease: Whether pre-release versions may match. Set at
            parse time when the range text names a pre-release; an
            intersection keeps it only when both sides have it.
    """

    lower: SemanticVersion | None = None
    lower_inclusive: bool = True
    upper: SemanticVersion | None = None
    upper_inclusive: bool = False
    excluded: frozenset[SemanticVersion] = frozenset()
    allows_prerelease: bool = False

    def __post_init__(self) -> None:
        # Open-ended sides have a single canonical inclusivity.
        if self.lower is None and not self.lower_inclusive:
            object.__setattr__(self, "lower_inclusive", True)
        if self.upper is None and self.upper_inclusive:
            object.__setattr__(self, "upper_inclusive", False)

    # -- Construction -------------------------------------------------------

    @classmethod
    def unbounded(cls) -> VersionRange:
        return cls()

    @classmethod
    def exactly(cls, version: SemanticVersion | str) -> VersionRange:
        if isinstance(version, str):
            version = SemanticVersion.parse(version)
        return cls(
            lower=version,
            lower_inclusive=True,
            upper=version,
            upper_inclusive=True,
            allows_prerelease=version.is_prerelease,
        )

    @classmethod
    def at_least(cls, version: SemanticVersion | str) -> VersionRange:
        if isinstance(version, str):
            version = SemanticVersion.parse(version)
        return cls(lower=version, lower_inclusive=True, allows_prerelease=version.is_prerelease)

    @classmethod
    def parse(cls, text: str) -> VersionRange:
        """Parse range text in any of the supported syntaxes.

        Pre-releases are admitted when any version written in *text* is
        itself a pre-release (``>=1.0-beta,<2.0`` admits ``1.5-rc``).

        Raises:
            RequirementParseError: If *text* cannot be parsed, or describes
                an empty range (e.g. ``>=2.0,<1.0``).
        """
        stripped = text.strip()
        if stripped in ("", "*"):
            return cls.unbounded()
        if stripped[0] in "[(":
            result = cls._parse_interval(stripped)
        else:
            atoms = [cls._parse_atom(a) for a in stripped.split(",") if a.strip()]
            result = cls.unbounded()
            for atom in atoms:
                result = result._narrow(atom)
            result = replace(
                result, allows_prerelease=any(a.allows_prerelease for a in atoms)
            )
        if result.is_empty:
            raise RequirementParseError(f"Version range {text!r} admits no version")
        return result

    @classmethod
    def _parse_atom(cls, atom: str) -> VersionRange:
        m = _ATOM_RE.match(atom)
        if not m:
            raise RequirementParseError(f"Invalid range atom: {atom!r}")
        op = m.group("op")
        ver = SemanticVersion.parse(m.group("ver"))
        pre = ver.is_prerelease

        if op in ("==", "="):
            return cls.exactly(ver)
        if op is None:
            return cls.at_least(ver)
        if op == "!=":
            return cls(excluded=frozenset({ver}))
        if op == ">=":
            return cls(lower=ver, lower_inclusive=True, allows_prerelease=pre)
        if op == ">":
            return cls(lower=ver, lower_inclusive=False, allows_prerelease=pre)
        if op == "<=":
            return cls(upper=ver, upper_inclusive=True, allows_prerelease=pre)
        if op == "<":
            return cls(upper=ver, upper_inclusive=False, allows_prerelease=pre)
        if op == "^":
            major, minor = ver.release[0], ver.release[1]
            ceiling = _bump(ver, 1) if major != 0 else _bump(ver, 2)
            if major == 0 and minor == 0:
                ceiling = _bump(ver, 3)
            return cls(lower=ver, upper=ceiling, allows_prerelease=pre)
        # "~": same major.minor
        return cls(lower=ver, upper=_bump(ver, 2), allows_prerelease=pre)

    @classmethod
    def _parse_interval(cls, text: str) -> VersionRange:
        m = _INTERVAL_RE.match(text)
        if not m:
            raise RequirementParseError(f"Invalid interval: {text!r}")
        low, high = m.group("low"), m.group("high")
        if m.group("comma") is None:
            # "[1.0]" pins; "(1.0)" is meaningless.
            if m.group("open") != "[" or m.group("close") != "]" or not low:
                raise RequirementParseError(f"Invalid interval: {text!r}")
            return cls.exactly(low)
        lower = SemanticVersion.parse(low) if low else None
        upper = SemanticVersion.parse(high) if high else None
        return cls(
            lower=lower,
            lower_inclusive=m.group("open") == "[",
            upper=upper,
            upper_inclusive=m.group("close") == "]",
            allows_prerelease=any(b is not None and b.is_prerelease for b in (lower, upper)),
        )

    # -- Predicates ---------------------------------------------------------

    @property
    def is_pinned(self) -> bool:
        """True when exactly one version is acceptable."""
        return (
            self.lower is not None
            and self.lower == self.upper
            and self.lower_inclusive
            and self.upper_inclusive
        )

    @property
    def is_empty(self) -> bool:
        if self.lower is None or self.upper is None:
            return False
        if self.lower > self.upper:
            return True
        if self.lower == self.upper:
            if not (self.lower_inclusive and self.upper_inclusive):
                return True
            if self.lower.is_prerelease and not self.allows_prerelease:
                return True
            return self.lower in self.excluded
        return False

    def matches(self, version: SemanticVersion) -> bool:
        """Check whether *version* is acceptable.

        Pre-release versions are acceptable only when ``allows_prerelease``
        is set.
        """
        if version in self.excluded:
            return False
        if version.is_prerelease and not self.allows_prerelease:
            return False
        return self._within_bounds(version)

    # -- Algebra ------------------------------------------------------------

    def _narrow(self, other: VersionRange) -> VersionRange:
        lower, lower_inc = self.lower, self.lower_inclusive
        if other.lower is not None:
            if lower is None or other.lower > lower:
                lower, lower_inc = other.lower, other.lower_inclusive
            elif other.lower == lower:
                lower_inc = lower_inc and other.lower_inclusive

        upper, upper_inc = self.upper, self.upper_inclusive
        if other.upper is not None:
            if upper is None or other.upper < upper:
                upper, upper_inc = other.upper, other.upper_inclusive
            elif other.upper == upper:
                upper_inc = upper_inc and other.upper_inclusive

        if lower is None:
            lower_inc = True
        if upper is None:
            upper_inc = False

        excluded = self.excluded | other.excluded
        # Exclusions outside the interval carry no information.
        bounds = VersionRange(lower, lower_inc, upper, upper_inc)
        excluded = frozenset(v for v in excluded if bounds._within_bounds(v))
        return VersionRange(
            lower,
            lower_inc,
            upper,
            upper_inc,
            excluded,
            allows_prerelease=self.allows_prerelease and other.allows_prerelease,
        )

    def _within_bounds(self, version: SemanticVersion) -> bool:
        if self.lower is not None and (
            version < self.lower or (version == self.lower and not self.lower_inclusive)
        ):
            return False
        if self.upper is not None and (
            version > self.upper or (version == self.upper and not self.upper_inclusive)
        ):
            return False
        return True

    def intersect(self, other: VersionRange) -> VersionRange | None:
        """Return the range admitted by both, or None when nothing is."""
        narrowed = self._narrow(other)
        return None if narrowed.is_empty else narrowed

    # -- Ordering helpers ---------------------------------------------------

    def width_key(self) -> tuple[int, int]:
        """Sort key where narrower ranges come first.

        Pinned ranges rank first, then ranges bounded on both sides (by
        span), then lower-bounded (higher floors first), upper-bounded, and
        finally unbounded ranges.
        """
        if self.is_pinned:
            return (0, 0)
        if self.lower is not None and self.upper is not None:
            return (1, self.upper.magnitude() - self.lower.magnitude())
        if self.lower is not None:
            return (2, -self.lower.magnitude())
        if self.upper is not None:
            return (3, self.upper.magnitude())
        return (4, 0)

    # -- Rendering ----------------------------------------------------------

    def __str__(self) -> str:
        if self.is_pinned:
            return f"=={self.lower}"
        atoms: list[str] = []
        if self.lower is not None:
            atoms.append(f"{'>=' if self.lower_inclusive else '>'}{self.lower}")
        if self.upper is not None:
            atoms.append(f"{'<=' if self.upper_inclusive else '<'}{self.upper}")
        atoms.extend(f"!={v}" for v in sorted(self.excluded))
        return ",".join(atoms) if atoms else "*"
