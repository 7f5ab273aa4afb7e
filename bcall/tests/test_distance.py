"""Tests for the voting distance module."""

import numpy as np
import pytest

from bcall.src.distance import DistanceMetric, pivot_distances, voting_distance

nan = np.nan


class TestDistanceMetric:
    """Test cases for metric parsing."""

    @pytest.mark.parametrize("value, expected", [
        (DistanceMetric.MANHATTAN, DistanceMetric.MANHATTAN),
        ('manhattan', DistanceMetric.MANHATTAN),
        ('Euclidean', DistanceMetric.EUCLIDEAN),
        ('euclidiana', DistanceMetric.EUCLIDEAN),
        (1, DistanceMetric.MANHATTAN),
        (2, DistanceMetric.EUCLIDEAN),
        ('2', DistanceMetric.EUCLIDEAN),
    ])
    def test_parse(self, value, expected):
        """Test metric resolution from names and codes."""
        assert DistanceMetric.parse(value) is expected

    @pytest.mark.parametrize("value", ['cosine', 3, 0, True, None])
    def test_parse_unknown(self, value):
        """Unknown metrics are rejected."""
        with pytest.raises(ValueError):
            DistanceMetric.parse(value)


class TestVotingDistance:
    """Test cases for voting_distance."""

    def test_manhattan(self):
        """Manhattan distance sums absolute differences."""
        assert voting_distance([1, 1, 1], [-1, -1, 0], 'manhattan') == pytest.approx(5.0)

    def test_euclidean(self):
        """Euclidean distance over all shared votes."""
        assert voting_distance([1, 1, 1], [-1, -1, 0], 'euclidean') == pytest.approx(3.0)

    def test_pairwise_deletion(self):
        """Only votes recorded for both legislators count."""
        a = [1, -1, 0, nan]
        b = [1, 1, nan, 1]

        assert voting_distance(a, b, DistanceMetric.MANHATTAN) == pytest.approx(2.0)
        assert voting_distance(a, b, DistanceMetric.EUCLIDEAN) == pytest.approx(2.0)

    def test_normalize(self):
        """Normalization divides by the number of shared votes."""
        a = [1, 1, 1, nan]
        b = [-1, -1, 0, 1]

        assert voting_distance(a, b, 'manhattan', normalize=True) == pytest.approx(5.0 / 3)
        assert voting_distance(a, b, 'euclidean', normalize=True) == pytest.approx(1.0)

    def test_no_overlap_is_unknown(self):
        """Vectors without shared votes have an unknown distance, not zero."""
        assert np.isnan(voting_distance([1, nan], [nan, 1]))

    def test_identical_vectors(self):
        """Identical voting records are at distance zero."""
        assert voting_distance([1, 0, -1], [1, 0, -1], 'euclidean') == 0.0

    def test_symmetric(self):
        """Distance does not depend on argument order."""
        a = [1, -1, nan, 0, 1]
        b = [0, -1, 1, nan, -1]
        for metric in DistanceMetric:
            assert voting_distance(a, b, metric) == voting_distance(b, a, metric)

    def test_length_mismatch(self):
        """Vectors of different length are rejected."""
        with pytest.raises(ValueError):
            voting_distance([1, 1], [1, 1, 1])


class TestPivotDistances:
    """Test cases for pivot_distances."""

    def test_distances_to_pivot(self, scenario_matrix):
        """Pivot is at zero, its ally too, its opponent far away."""
        distances = pivot_distances(scenario_matrix, 'P', 'manhattan')

        assert distances['P'] == 0.0
        assert distances['R'] == 0.0
        assert distances['Q'] == pytest.approx(8.0)
        assert list(distances.index) == ['P', 'R', 'Q']

    def test_unknown_pivot(self, scenario_matrix):
        """An unknown pivot raises KeyError."""
        with pytest.raises(KeyError):
            pivot_distances(scenario_matrix, 'nobody')
