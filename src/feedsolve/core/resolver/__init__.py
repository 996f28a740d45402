"""Backtracking requirement resolver.

Components, leaves first: the conflict boost tracker, the requirement
selector, the immutable search state, and the engine tying them together.
"""

from feedsolve.core.resolver.boost import ConflictBoostTracker
from feedsolve.core.resolver.selector import (
    order_requirements,
    select_next,
    selection_key,
)
from feedsolve.core.resolver.state import SearchState, merge_requirements
from feedsolve.core.resolver.engine import Resolver

__all__ = [
    "ConflictBoostTracker",
    "Resolver",
    "SearchState",
    "merge_requirements",
    "order_requirements",
    "select_next",
    "selection_key",
]
