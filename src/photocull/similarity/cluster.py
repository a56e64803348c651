"""Greedy clustering of visually similar photos."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

from ..library.models import Photo
from ..logging import get_logger
from .distance import hamming_distance
from .hash import (
    DEFAULT_CONFIG,
    Decoder,
    HashConfig,
    ProgressCallback,
    compute_photo_hash,
    hash_photos,
)

logger = get_logger(__name__)

DEFAULT_DISTANCE_THRESHOLD = 10


@dataclass(frozen=True)
class SimilarityCluster:
    """Photos grouped around an anchor photo."""
    id: str
    photos: List[Photo]
    representative: Photo


def cluster_similar_photos(
    photos: Sequence[Photo],
    threshold: int = DEFAULT_DISTANCE_THRESHOLD,
    on_progress: Optional[ProgressCallback] = None,
    config: Optional[HashConfig] = None,
    decoder: Optional[Decoder] = None,
) -> List[SimilarityCluster]:
    """
    Group photos into similarity clusters in a single greedy pass.

    Photos are visited in order. Each photo not yet assigned anchors a new
    cluster and absorbs every later unassigned photo within ``threshold``
    bits of the anchor. Membership is decided against the anchor only, so
    two members of one cluster may be farther apart than ``threshold``.
    Clusters without any match are dropped; photos that fail to hash never
    join a cluster.

    Args:
        photos: Photos to cluster
        threshold: Maximum Hamming distance to the anchor
        on_progress: Called with (completed, total) while hashing
        config: Hash grid dimensions
        decoder: Optional decode provider

    Returns:
        Clusters of two or more photos, ordered by anchor position
    """
    outcomes = hash_photos(photos, config or DEFAULT_CONFIG, on_progress, decoder)

    clusters: List[SimilarityCluster] = []
    assigned = set()

    for i, (anchor, anchor_fp) in enumerate(outcomes):
        if i in assigned or anchor_fp is None:
            continue

        members = [anchor]
        for j in range(i + 1, len(outcomes)):
            candidate, candidate_fp = outcomes[j]
            if j in assigned or candidate_fp is None:
                continue
            if hamming_distance(anchor_fp, candidate_fp) <= threshold:
                members.append(candidate)
                assigned.add(j)

        if len(members) > 1:
            assigned.add(i)
            clusters.append(SimilarityCluster(
                id=f"cluster-{anchor.id}",
                photos=members,
                representative=anchor,
            ))
            logger.debug(f"Created cluster-{anchor.id} with {len(members)} photos")

    logger.info(f"Found {len(clusters)} similarity clusters")
    return clusters


def find_similar_photos(
    target: Photo,
    candidates: Sequence[Photo],
    threshold: int = DEFAULT_DISTANCE_THRESHOLD,
    config: Optional[HashConfig] = None,
    decoder: Optional[Decoder] = None,
) -> List[Photo]:
    """
    Return candidates within ``threshold`` bits of ``target``.

    The target itself is never returned. Candidates that cannot be hashed
    are skipped.

    Raises:
        ImageLoadError: If the target photo cannot be hashed
    """
    config = config or DEFAULT_CONFIG
    target_fp = target.fingerprint
    if target_fp is None or target_fp.config != config:
        target_fp = compute_photo_hash(target, config, decoder)
        target.attach_fingerprint(target_fp)

    others = [candidate for candidate in candidates if candidate.id != target.id]
    similar = []
    for candidate, fingerprint in hash_photos(others, config, decoder=decoder):
        if fingerprint is not None and hamming_distance(target_fp, fingerprint) <= threshold:
            similar.append(candidate)
    return similar


def are_photos_similar(
    photo1: Photo,
    photo2: Photo,
    threshold: int = DEFAULT_DISTANCE_THRESHOLD,
    config: Optional[HashConfig] = None,
    decoder: Optional[Decoder] = None,
) -> bool:
    """
    Raises:
        ImageLoadError: If either photo cannot be hashed
    """
    config = config or DEFAULT_CONFIG
    fingerprints = []
    for photo in (photo1, photo2):
        fingerprint = photo.fingerprint
        if fingerprint is None or fingerprint.config != config:
            fingerprint = compute_photo_hash(photo, config, decoder)
        fingerprints.append(fingerprint)
    return hamming_distance(*fingerprints) <= threshold
