"""Perceptual duplicate detection for photos."""

from .hash import (
    ConfigurationError,
    Fingerprint,
    HashConfig,
    ImageLoadError,
    compute_hash,
    compute_photo_hash,
    hash_photos,
    hash_photos_async,
)
from .distance import hamming_distance, similarity, are_similar
from .duplicates import (
    DuplicateMap,
    DuplicatePair,
    build_duplicate_map,
    detect_duplicates,
    detect_duplicates_async,
    reorder_for_duplicates,
)
from .cluster import (
    SimilarityCluster,
    are_photos_similar,
    cluster_similar_photos,
    find_similar_photos,
)

__all__ = [
    "ConfigurationError",
    "Fingerprint",
    "HashConfig",
    "ImageLoadError",
    "compute_hash",
    "compute_photo_hash",
    "hash_photos",
    "hash_photos_async",
    "hamming_distance",
    "similarity",
    "are_similar",
    "DuplicateMap",
    "DuplicatePair",
    "build_duplicate_map",
    "detect_duplicates",
    "detect_duplicates_async",
    "reorder_for_duplicates",
    "SimilarityCluster",
    "are_photos_similar",
    "cluster_similar_photos",
    "find_similar_photos",
]
