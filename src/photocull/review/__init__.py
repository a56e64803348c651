"""Review navigation, statistics and session management."""

from .navigation import (
    NavigationState,
    NavigationResult,
    calculate_next,
    calculate_prev,
    find_undecided_indices,
)
from .stats import (
    ReviewStats,
    calculate_review_stats,
    get_keep_photos,
    get_trash_photos,
    is_review_complete,
)
from .session import ReviewSession, ReviewAction, KeyBindings
from .finalize import Deleter, finalize_review, write_deletion_plan

__all__ = [
    "NavigationState",
    "NavigationResult",
    "calculate_next",
    "calculate_prev",
    "find_undecided_indices",
    "ReviewStats",
    "calculate_review_stats",
    "get_keep_photos",
    "get_trash_photos",
    "is_review_complete",
    "ReviewSession",
    "ReviewAction",
    "KeyBindings",
    "Deleter",
    "finalize_review",
    "write_deletion_plan",
]
