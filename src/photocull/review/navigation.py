"""
Two-phase navigation through a review session.

The first pass walks every photo in order. Once the last photo is reached
the session switches to a sweep that jumps to the earliest photo still
lacking a keep/trash verdict; when none remain the session is ready to
finalize. All functions are pure and operate on a snapshot.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence

from ..library.models import Decision, DecisionMap, Photo

FINAL_DECISIONS = (Decision.KEEP, Decision.TRASH)


@dataclass(frozen=True)
class NavigationState:
    """Snapshot of the session fields navigation depends on."""
    index: int
    photos: Sequence[Photo]
    decisions: DecisionMap
    tour_completed: bool


@dataclass(frozen=True)
class NavigationResult:
    """Changes to apply to the session; ``None`` means leave the field as is."""
    new_index: Optional[int] = None
    tour_completed: Optional[bool] = None
    ready_to_finalize: Optional[bool] = None

    def is_noop(self) -> bool:
        return self.new_index is None and self.tour_completed is None and self.ready_to_finalize is None


def is_final_decision(decision: Optional[Decision]) -> bool:
    return decision in FINAL_DECISIONS


def find_undecided_indices(photos: Sequence[Photo], decisions: DecisionMap) -> List[int]:
    """Indices whose decision is missing, skipped or anything but keep/trash."""
    return [i for i in range(len(photos)) if not is_final_decision(decisions.get(i))]


def calculate_next(state: NavigationState) -> NavigationResult:
    """
    Work out where the session goes next.

    Rules:
    1. First pass, before the last photo: advance by one.
    2. First pass, on the last photo: mark the tour completed and stay put.
    3. Sweep: jump to the first undecided photo.
    4. Sweep with nothing undecided: ready to finalize, index unchanged.

    An index outside the photo list during the first pass is a no-op.
    """
    last = len(state.photos) - 1

    if not state.tour_completed:
        if state.index < 0 or state.index > last:
            return NavigationResult()
        if state.index == last:
            return NavigationResult(tour_completed=True)
        return NavigationResult(new_index=state.index + 1)

    undecided = find_undecided_indices(state.photos, state.decisions)
    if undecided:
        return NavigationResult(new_index=undecided[0])
    return NavigationResult(ready_to_finalize=True)


def calculate_prev(current_index: int) -> Optional[int]:
    """Step back one photo; ``None`` when already at the start."""
    if current_index > 0:
        return current_index - 1
    return None
