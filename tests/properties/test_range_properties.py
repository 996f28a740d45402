"""Property-based tests for version range algebra.

Verifies over randomly combined range expressions:
- Exactness: the intersection admits exactly the versions both admit,
  pre-releases included.
- Emptiness: an empty intersection (None) shares no version with either.
- Commutativity and idempotence, as predicates over versions.
"""
from __future__ import annotations

from hypothesis import given, settings
from hypothesis import strategies as st

from feedsolve.core.versioning import SemanticVersion, VersionRange

RANGE_TEXTS = [
    "*", "==1.2", "!=1.2", ">=1.0", ">1.0", "<=2.0", "<2.0", "^1.2.0", "~1.2.0",
    ">=1.0,<2.0", ">=1.5,!=1.9", "[1.0,2.0)", "(,1.5]", "[2.0,)", "[1.2]", "1.5",
    ">=1.0-beta", "<2.0-rc", ">=1.0-beta,<2.0", "==1.5-beta", "[1.2-alpha,1.9]", "!=1.5-beta",
]

SAMPLE_VERSIONS = [
    SemanticVersion.parse(text)
    for text in [
        "0.9", "1.0", "1.0.1", "1.2", "1.2.5", "1.3", "1.5", "1.9",
        "2.0", "2.0.1", "2.5", "3.0",
        "1.0-beta", "1.2-alpha", "1.5-beta", "2.0-alpha", "2.0-rc",
    ]
]

ranges = st.sampled_from(RANGE_TEXTS).map(VersionRange.parse)


def _admits(rng: VersionRange | None, version: SemanticVersion) -> bool:
    return rng is not None and rng.matches(version)


class TestIntersection:
    """Intersection behaves as set intersection over all sampled versions."""

    @given(a=ranges, b=ranges)
    @settings(max_examples=150)
    def test_exact(self, a: VersionRange, b: VersionRange) -> None:
        both = a.intersect(b)
        for version in SAMPLE_VERSIONS:
            assert _admits(both, version) == (a.matches(version) and b.matches(version))

    @given(a=ranges, b=ranges)
    @settings(max_examples=150)
    def test_never_widens(self, a: VersionRange, b: VersionRange) -> None:
        both = a.intersect(b)
        for version in SAMPLE_VERSIONS:
            if _admits(both, version):
                assert a.matches(version)
                assert b.matches(version)

    @given(a=ranges, b=ranges)
    @settings(max_examples=150)
    def test_commutative(self, a: VersionRange, b: VersionRange) -> None:
        left, right = a.intersect(b), b.intersect(a)
        assert (left is None) == (right is None)
        for version in SAMPLE_VERSIONS:
            assert _admits(left, version) == _admits(right, version)

    @given(a=ranges)
    def test_idempotent(self, a: VersionRange) -> None:
        same = a.intersect(a)
        assert same is not None
        for version in SAMPLE_VERSIONS:
            assert same.matches(version) == a.matches(version)

    @given(a=ranges, b=ranges, c=ranges)
    @settings(max_examples=150)
    def test_associative(self, a: VersionRange, b: VersionRange, c: VersionRange) -> None:
        ab = a.intersect(b)
        bc = b.intersect(c)
        left = ab.intersect(c) if ab is not None else None
        right = a.intersect(bc) if bc is not None else None
        for version in SAMPLE_VERSIONS:
            assert _admits(left, version) == _admits(right, version)
