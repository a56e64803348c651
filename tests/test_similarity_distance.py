"""Tests for fingerprint distance metrics."""

import pytest
from hypothesis import given, strategies as st

from photocull.similarity.distance import are_similar, hamming_distance, similarity
from photocull.similarity.hash import ConfigurationError, Fingerprint

from helpers.images import bits

fingerprint_values = st.integers(min_value=0, max_value=(1 << 72) - 1)


class TestHammingDistance:
    @given(value=fingerprint_values)
    def test_distance_to_self_is_zero(self, value):
        """For any fingerprint compared to itself, distance is 0 and similarity is 1."""
        fingerprint = Fingerprint.from_int(value)

        assert hamming_distance(fingerprint, fingerprint) == 0
        assert similarity(0, fingerprint.bit_count) == 1.0

    @given(a=fingerprint_values, b=fingerprint_values)
    def test_distance_counts_differing_bits(self, a, b):
        distance = hamming_distance(Fingerprint.from_int(a), Fingerprint.from_int(b))

        assert distance == bin(a ^ b).count("1")
        assert distance == hamming_distance(Fingerprint.from_int(b), Fingerprint.from_int(a))

    def test_distance_returns_plain_int(self):
        distance = hamming_distance(Fingerprint.from_int(bits(0, 1, 2)), Fingerprint.from_int(0))
        assert distance == 3
        assert type(distance) is int

    def test_mismatched_grids_rejected(self):
        with pytest.raises(ConfigurationError):
            hamming_distance(Fingerprint.from_int(0, 9, 8), Fingerprint.from_int(0, 8, 8))

    def test_configuration_error_is_value_error(self):
        assert issubclass(ConfigurationError, ValueError)


class TestSimilarity:
    def test_known_values(self):
        assert similarity(0, 72) == 1.0
        assert similarity(72, 72) == 0.0
        assert similarity(36, 72) == pytest.approx(0.5)
        assert similarity(5, 72) == pytest.approx(0.9305, abs=1e-4)

    def test_clamped_at_zero(self):
        assert similarity(100, 72) == 0.0

    def test_rejects_empty_width(self):
        with pytest.raises(ValueError):
            similarity(0, 0)

    @given(
        total_bits=st.integers(min_value=1, max_value=256),
        d1=st.integers(min_value=0, max_value=512),
        d2=st.integers(min_value=0, max_value=512),
    )
    def test_bounded_and_non_increasing(self, total_bits, d1, d2):
        """For any distance, similarity lies in [0, 1] and never rises with distance."""
        low, high = sorted((d1, d2))

        assert 0.0 <= similarity(low, total_bits) <= 1.0
        assert 0.0 <= similarity(high, total_bits) <= 1.0
        assert similarity(low, total_bits) >= similarity(high, total_bits)


class TestAreSimilar:
    def test_threshold_is_inclusive(self):
        a = Fingerprint.from_int(0)
        b = Fingerprint.from_int(bits(*range(10)))

        assert are_similar(a, b, threshold=10)
        assert not are_similar(a, b, threshold=9)
