"""Duplicate pair detection and duplicate-aware photo ordering."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional, Sequence

from ..library.models import Photo
from ..logging import get_logger
from .distance import hamming_distance, similarity
from .hash import (
    DEFAULT_CONFIG,
    Decoder,
    HashConfig,
    HashOutcome,
    ProgressCallback,
    hash_photos,
    hash_photos_async,
)

logger = get_logger(__name__)

DuplicateMap = Dict[str, List[str]]

DEFAULT_SIMILARITY_THRESHOLD = 0.9


@dataclass(frozen=True)
class DuplicatePair:
    """Two photos whose fingerprints are within the similarity threshold."""
    photo1: Photo
    photo2: Photo
    distance: int       # Hamming distance between fingerprints
    similarity: float   # 1.0 = identical fingerprints

    @property
    def ids(self) -> FrozenSet[str]:
        return frozenset((self.photo1.id, self.photo2.id))


def _match_pairs(
    outcomes: Sequence[HashOutcome],
    threshold: float,
    config: HashConfig,
) -> List[DuplicatePair]:
    hashed = [(photo, fingerprint) for photo, fingerprint in outcomes if fingerprint is not None]
    total_bits = config.bit_count

    pairs: List[DuplicatePair] = []
    for i in range(len(hashed)):
        photo_i, fingerprint_i = hashed[i]
        for j in range(i + 1, len(hashed)):
            photo_j, fingerprint_j = hashed[j]

            distance = hamming_distance(fingerprint_i, fingerprint_j)
            score = similarity(distance, total_bits)
            if score >= threshold:
                pairs.append(DuplicatePair(
                    photo1=photo_i,
                    photo2=photo_j,
                    distance=distance,
                    similarity=score,
                ))
                logger.debug(f"Paired {photo_i.id} and {photo_j.id} (distance: {distance}, similarity: {score:.3f})")

    # Stable sort: equal scores keep enumeration order
    pairs.sort(key=lambda pair: pair.similarity, reverse=True)
    logger.info(f"Found {len(pairs)} duplicate pairs among {len(hashed)} hashed photos")
    return pairs


def detect_duplicates(
    photos: Sequence[Photo],
    threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
    on_progress: Optional[ProgressCallback] = None,
    config: Optional[HashConfig] = None,
    decoder: Optional[Decoder] = None,
) -> List[DuplicatePair]:
    """
    Detect likely duplicate photos.

    Every photo is fingerprinted (failures are logged and the photo is left
    out), then every unordered pair of hashed photos is compared once.

    Args:
        photos: Photos to check
        threshold: Minimum similarity (0-1) for a pair to count as duplicate
        on_progress: Called with (completed, total) after each hash attempt
        config: Hash grid dimensions
        decoder: Optional decode provider

    Returns:
        Duplicate pairs sorted by similarity, most similar first
    """
    config = config or DEFAULT_CONFIG
    outcomes = hash_photos(photos, config, on_progress, decoder)
    return _match_pairs(outcomes, threshold, config)


async def detect_duplicates_async(
    photos: Sequence[Photo],
    threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
    on_progress: Optional[ProgressCallback] = None,
    config: Optional[HashConfig] = None,
    decoder: Optional[Decoder] = None,
    max_workers: int = 1,
) -> List[DuplicatePair]:
    """Asynchronous ``detect_duplicates``; hashing may use up to ``max_workers`` threads."""
    config = config or DEFAULT_CONFIG
    outcomes = await hash_photos_async(photos, config, on_progress, decoder, max_workers)
    return _match_pairs(outcomes, threshold, config)


def build_duplicate_map(pairs: Sequence[DuplicatePair]) -> DuplicateMap:
    """
    Build a symmetric photo id -> duplicate ids lookup.

    Both directions of every pair are recorded and no id appears twice in
    the same list. Lists follow pair order.
    """
    duplicate_map: DuplicateMap = {}
    for pair in pairs:
        first, second = pair.photo1.id, pair.photo2.id
        if first == second:
            continue
        for source, target in ((first, second), (second, first)):
            partners = duplicate_map.setdefault(source, [])
            if target not in partners:
                partners.append(target)
    return duplicate_map


def reorder_for_duplicates(
    photos: Sequence[Photo],
    pairs: Sequence[DuplicatePair],
) -> List[Photo]:
    """
    Reorder photos so that duplicates sit next to each other.

    Photos without any duplicate come first in their original order. Each
    group of connected duplicates then follows as one contiguous block: the
    group's first photo in pair order, then its partners breadth-first.
    Nothing is dropped; the result is a permutation of ``photos``.
    """
    if not pairs:
        return list(photos)

    photos_by_id: Dict[str, List[Photo]] = {}
    for photo in photos:
        photos_by_id.setdefault(photo.id, []).append(photo)

    # Ignore relationships involving photos that are not in this list
    adjacency = {
        photo_id: [partner for partner in partners if partner in photos_by_id]
        for photo_id, partners in build_duplicate_map(pairs).items()
        if photo_id in photos_by_id
    }
    grouped = {photo_id for photo_id, partners in adjacency.items() if partners}

    reordered = [photo for photo in photos if photo.id not in grouped]

    placed = set()
    for start in adjacency:
        if start in placed or start not in grouped:
            continue
        queue = deque([start])
        placed.add(start)
        while queue:
            photo_id = queue.popleft()
            reordered.extend(photos_by_id[photo_id])
            for partner in adjacency[photo_id]:
                if partner not in placed:
                    placed.add(partner)
                    queue.append(partner)

    logger.debug(f"Reordered {len(reordered)} photos, {len(grouped)} in duplicate groups")
    return reordered
