"""Aggregate review progress derived from photos and decisions."""

from dataclasses import dataclass
from typing import List, Sequence

from ..library.models import DecidedPolicy, Decision, DecisionMap, Photo
from .navigation import is_final_decision


@dataclass(frozen=True)
class ReviewStats:
    """Progress counters for a review session."""
    total: int
    decided: int
    trash_count: int
    keep_count: int
    trash_bytes: int
    keep_bytes: int
    pending: int


def _photos_with(photos: Sequence[Photo], decisions: DecisionMap, decision: Decision) -> List[Photo]:
    indices = sorted(index for index, value in decisions.items() if value == decision)
    return [photos[index] for index in indices if 0 <= index < len(photos)]


def get_trash_photos(photos: Sequence[Photo], decisions: DecisionMap) -> List[Photo]:
    """Photos marked trash, in session order; stale indices are ignored."""
    return _photos_with(photos, decisions, Decision.TRASH)


def get_keep_photos(photos: Sequence[Photo], decisions: DecisionMap) -> List[Photo]:
    """Photos marked keep, in session order; stale indices are ignored."""
    return _photos_with(photos, decisions, Decision.KEEP)


def _count_decided(photos: Sequence[Photo], decisions: DecisionMap, policy: DecidedPolicy) -> int:
    in_range = {index: value for index, value in decisions.items() if 0 <= index < len(photos)}
    if policy == DecidedPolicy.ANY_KEY:
        return len(in_range)
    if policy == DecidedPolicy.NON_NULL:
        return sum(1 for value in in_range.values() if value is not None)
    return sum(1 for value in in_range.values() if is_final_decision(value))


def calculate_review_stats(
    photos: Sequence[Photo],
    decisions: DecisionMap,
    policy: DecidedPolicy = DecidedPolicy.KEEP_OR_TRASH,
) -> ReviewStats:
    """
    Count decisions and sum file sizes.

    Args:
        photos: Photos in session order
        decisions: Decision per photo index
        policy: Which entries count as decided; keep/trash only by default

    Returns:
        ReviewStats where ``pending = total - decided``
    """
    trash = get_trash_photos(photos, decisions)
    keep = get_keep_photos(photos, decisions)
    total = len(photos)
    decided = _count_decided(photos, decisions, DecidedPolicy(policy))

    return ReviewStats(
        total=total,
        decided=decided,
        trash_count=len(trash),
        keep_count=len(keep),
        trash_bytes=sum(photo.size_bytes for photo in trash),
        keep_bytes=sum(photo.size_bytes for photo in keep),
        pending=max(0, total - decided),
    )


def is_review_complete(photos: Sequence[Photo], decisions: DecisionMap) -> bool:
    """True if every photo is marked keep or trash. An empty session is never complete."""
    if not photos:
        return False
    return all(is_final_decision(decisions.get(index)) for index in range(len(photos)))
