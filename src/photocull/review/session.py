"""Explicit review session state and keyboard handling."""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence, Union

from ..config import Settings
from ..library.models import DecidedPolicy, Decision, DecisionMap, Photo
from ..logging import get_logger
from ..similarity.duplicates import (
    DuplicateMap,
    DuplicatePair,
    build_duplicate_map,
    reorder_for_duplicates,
)
from .navigation import NavigationResult, NavigationState, calculate_next, calculate_prev, is_final_decision
from .stats import (
    ReviewStats,
    calculate_review_stats,
    get_keep_photos,
    get_trash_photos,
    is_review_complete,
)

logger = get_logger(__name__)


class ReviewAction(Enum):
    KEEP = "keep"
    TRASH = "trash"
    SKIP = "skip"
    PREVIOUS = "previous"


@dataclass(frozen=True)
class KeyBindings:
    """Key names mapped to review actions; defaults follow browser key names."""
    keep: str = "ArrowRight"
    trash: str = "ArrowLeft"
    skip: str = " "
    previous: str = "Backspace"

    def action_for(self, key: str) -> Optional[ReviewAction]:
        mapping: Dict[str, ReviewAction] = {
            self.keep: ReviewAction.KEEP,
            self.trash: ReviewAction.TRASH,
            self.skip: ReviewAction.SKIP,
            self.previous: ReviewAction.PREVIOUS,
        }
        return mapping.get(key)


DEFAULT_BINDINGS = KeyBindings()

_ACTION_DECISIONS = {
    ReviewAction.KEEP: Decision.KEEP,
    ReviewAction.TRASH: Decision.TRASH,
    ReviewAction.SKIP: None,
}


class ReviewSession:
    """
    State of one culling session over a fixed photo ordering.

    The ordering is set by ``load`` (optionally grouping duplicates
    together) and stays fixed until the session is cleared or reloaded.
    Navigation and statistics are delegated to the pure functions in
    ``navigation`` and ``stats``. Not thread-safe.
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or Settings()
        self.photos: List[Photo] = []
        self.index = 0
        self.decisions: DecisionMap = {}
        self.tour_completed = False
        self.ready_to_finalize = False
        self.duplicate_map: DuplicateMap = {}

    def load(
        self,
        photos: Sequence[Photo],
        duplicate_pairs: Optional[Sequence[DuplicatePair]] = None,
        reorder: bool = True,
    ) -> None:
        """
        Start a new review over ``photos``.

        Args:
            photos: Photos provided by the folder provider
            duplicate_pairs: Result of duplicate detection, if it ran
            reorder: Place duplicate groups next to each other
        """
        pairs = list(duplicate_pairs or [])
        self.photos = reorder_for_duplicates(photos, pairs) if reorder else list(photos)
        self.duplicate_map = build_duplicate_map(pairs)
        self.index = 0
        self.decisions = {}
        self.tour_completed = False
        self.ready_to_finalize = False
        logger.info(f"Loaded {len(self.photos)} photos ({len(self.duplicate_map)} flagged as duplicates)")

    def clear(self) -> None:
        self.photos = []
        self.index = 0
        self.decisions = {}
        self.tour_completed = False
        self.ready_to_finalize = False
        self.duplicate_map = {}

    @property
    def current_photo(self) -> Optional[Photo]:
        if 0 <= self.index < len(self.photos):
            return self.photos[self.index]
        return None

    @property
    def current_decision(self) -> Optional[Decision]:
        return self.decisions.get(self.index)

    def set_decision(self, index: int, decision: Union[Decision, str, None]) -> None:
        """
        Record a decision; ``None`` marks the photo as skipped.

        Raises:
            IndexError: If ``index`` is outside the photo list
            ValueError: If ``decision`` is not a known decision value
        """
        if not 0 <= index < len(self.photos):
            raise IndexError(f"Photo index {index} out of range (0..{len(self.photos) - 1})")
        value = None if decision is None else Decision(decision)
        self.decisions[index] = value
        if not is_final_decision(value):
            # Re-opening a photo means the sweep is not over yet
            self.ready_to_finalize = False

    def decide(self, decision: Union[Decision, str, None]) -> None:
        self.set_decision(self.index, decision)

    def snapshot(self) -> NavigationState:
        return NavigationState(
            index=self.index,
            photos=tuple(self.photos),
            decisions=dict(self.decisions),
            tour_completed=self.tour_completed,
        )

    def next(self) -> NavigationResult:
        result = calculate_next(self.snapshot())
        if result.new_index is not None:
            self.index = result.new_index
        if result.tour_completed is not None:
            self.tour_completed = result.tour_completed
            logger.info("First pass complete, sweeping undecided photos")
        if result.ready_to_finalize is not None:
            self.ready_to_finalize = result.ready_to_finalize
            logger.info("All photos decided, ready to finalize")
        return result

    def prev(self) -> bool:
        """Step back one photo. Returns False when already at the first photo."""
        new_index = calculate_prev(self.index)
        if new_index is None:
            return False
        self.index = new_index
        return True

    def apply(self, action: ReviewAction) -> None:
        """Apply a review action to the current photo and move on."""
        if action is ReviewAction.PREVIOUS:
            self.prev()
            return
        if self.current_photo is None:
            return
        self.decide(_ACTION_DECISIONS[action])
        self.next()

    def handle_key(self, key: str, bindings: KeyBindings = DEFAULT_BINDINGS) -> Optional[ReviewAction]:
        """Translate a key press into an action; unbound keys are ignored."""
        action = bindings.action_for(key)
        if action is not None:
            self.apply(action)
        return action

    def has_duplicates(self, photo: Optional[Photo] = None) -> bool:
        photo = photo or self.current_photo
        if photo is None:
            return False
        return bool(self.duplicate_map.get(photo.id))

    def duplicates_of(self, photo: Optional[Photo] = None) -> List[str]:
        photo = photo or self.current_photo
        if photo is None:
            return []
        return list(self.duplicate_map.get(photo.id, []))

    def stats(self, policy: Optional[DecidedPolicy] = None) -> ReviewStats:
        return calculate_review_stats(self.photos, self.decisions, policy or self.settings.decided_policy)

    def is_complete(self) -> bool:
        return is_review_complete(self.photos, self.decisions)

    def trash_photos(self) -> List[Photo]:
        return get_trash_photos(self.photos, self.decisions)

    def keep_photos(self) -> List[Photo]:
        return get_keep_photos(self.photos, self.decisions)
