"""Tests for participation filtering."""

import numpy as np
import pytest

from bcall.src.errors import InsufficientDataError
from bcall.src.participation import filter_by_participation
from bcall.src.rollcall import RollcallMatrix

nan = np.nan


@pytest.fixture
def sparse_matrix():
    """Legislator 'd' cast one of ten votes."""
    values = [
        [1] * 10,
        [1] * 9 + [-1],
        [-1] * 10,
        [-1] + [nan] * 9,
    ]
    votes = [f'v{i}' for i in range(10)]
    return RollcallMatrix(values, ['a', 'b', 'c', 'd'], votes)


class TestFilterByParticipation:
    """Test cases for filter_by_participation."""

    def test_low_participation_excluded(self, sparse_matrix):
        """A legislator below the threshold is dropped."""
        filtered = filter_by_participation(sparse_matrix, 0.3)

        assert filtered.legislators == ('a', 'b', 'c')
        assert filtered.votes == sparse_matrix.votes

    def test_original_untouched(self, sparse_matrix):
        """Filtering returns a new matrix."""
        filtered = filter_by_participation(sparse_matrix, 0.3)

        assert filtered is not sparse_matrix
        assert sparse_matrix.n_legislators == 4

    def test_threshold_is_inclusive(self, sparse_matrix):
        """Participation equal to the threshold is retained."""
        assert 'd' in filter_by_participation(sparse_matrix, 0.1)

    def test_zero_threshold_keeps_everyone(self, sparse_matrix):
        """Every legislator has at least one vote."""
        assert filter_by_participation(sparse_matrix, 0.0).n_legislators == 4

    def test_monotonic(self, random_matrix):
        """Raising the threshold never retains more legislators."""
        matrix = random_matrix(n_legislators=20, missing=0.4, seed=3)
        counts = []
        for threshold in np.linspace(0.0, 1.0, 11):
            try:
                counts.append(filter_by_participation(matrix, threshold).n_legislators)
            except InsufficientDataError:
                counts.append(0)

        assert counts == sorted(counts, reverse=True)

    def test_nothing_retained(self):
        """No legislator reaching the threshold is an error."""
        matrix = RollcallMatrix([[1, nan], [nan, -1]], ['a', 'b'], ['v1', 'v2'])
        with pytest.raises(InsufficientDataError):
            filter_by_participation(matrix, 1.0)

    def test_pivot_filtered_out(self, sparse_matrix):
        """Losing the pivot to the filter is an error."""
        with pytest.raises(InsufficientDataError, match="Pivot 'd'"):
            filter_by_participation(sparse_matrix, 0.3, pivot='d')

    @pytest.mark.parametrize("threshold", [-0.1, 1.5])
    def test_invalid_threshold(self, sparse_matrix, threshold):
        """Thresholds outside [0, 1] are rejected."""
        with pytest.raises(ValueError):
            filter_by_participation(sparse_matrix, threshold)
