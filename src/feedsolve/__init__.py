"""feedsolve: Backtracking dependency resolution against package feeds."""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"
