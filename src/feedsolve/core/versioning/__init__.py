"""Version values and version ranges.

Public API::

    from feedsolve.core.versioning import SemanticVersion, VersionRange
"""

from __future__ import annotations

from feedsolve.core.versioning.ranges import VersionRange
from feedsolve.core.versioning.versions import SemanticVersion, parse_version

__all__ = [
    "SemanticVersion",
    "VersionRange",
    "parse_version",
]
