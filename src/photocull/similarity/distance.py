"""Distance metrics for perceptual fingerprint comparison."""

from .hash import ConfigurationError, Fingerprint


def hamming_distance(a: Fingerprint, b: Fingerprint) -> int:
    """
    Calculate Hamming distance between two fingerprints.

    Args:
        a: First fingerprint
        b: Second fingerprint

    Returns:
        Hamming distance (number of differing bits)

    Raises:
        ConfigurationError: If the fingerprints were computed on different grids
    """
    if a.config != b.config:
        raise ConfigurationError(
            f"Cannot compare a {a.width}x{a.height} fingerprint with a {b.width}x{b.height} one"
        )
    return int(a.bits - b.bits)


def similarity(distance: int, total_bits: int) -> float:
    """
    Convert a Hamming distance into a similarity score.

    Returns:
        ``max(0, 1 - distance / total_bits)``; 1.0 means bit-identical
    """
    if total_bits <= 0:
        raise ValueError(f"total_bits must be positive, got {total_bits}")
    return max(0.0, 1.0 - distance / total_bits)


def are_similar(a: Fingerprint, b: Fingerprint, threshold: int = 10) -> bool:
    """Return True if the fingerprints differ in at most ``threshold`` bits."""
    return hamming_distance(a, b) <= threshold
