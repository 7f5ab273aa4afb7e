"""Tests for pivot-anchored bloc partitioning."""

from unittest.mock import patch

import numpy as np
import pandas as pd
import pytest

from bcall.src.clustering import (
    LEFT,
    RIGHT,
    ClusterAssignment,
    partition,
    rank_by_distance,
)
from bcall.src.errors import ClusteringError
from bcall.src.rollcall import RollcallMatrix

nan = np.nan


class TestClusterAssignment:
    """Test cases for ClusterAssignment."""

    def test_two_labels_required(self):
        """Exactly two distinct labels form a valid assignment."""
        with pytest.raises(ClusteringError):
            ClusterAssignment({'a': 'x', 'b': 'x'})
        with pytest.raises(ClusteringError):
            ClusterAssignment({'a': 'x', 'b': 'y', 'c': 'z'})

    def test_accessors(self):
        """Test label lookups and bloc sizes."""
        blocs = ClusterAssignment({'a': RIGHT, 'b': LEFT, 'c': RIGHT})

        assert blocs.labels == (LEFT, RIGHT)
        assert blocs.label_of('b') == LEFT
        assert blocs.other_label(RIGHT) == LEFT
        assert blocs.members(RIGHT) == ['a', 'c']
        assert blocs.bloc_sizes() == {LEFT: 1, RIGHT: 2}
        assert blocs.covers(['a', 'b'])
        assert not blocs.covers(['a', 'd'])

    def test_label_of_unknown(self):
        """Looking up an unassigned legislator fails."""
        blocs = ClusterAssignment({'a': RIGHT, 'b': LEFT})
        with pytest.raises(ClusteringError):
            blocs.label_of('z')

    def test_from_series(self):
        """Assignments can be built from a label Series."""
        blocs = ClusterAssignment.from_series(pd.Series({'a': 'PS', 'b': 'RN'}))
        assert blocs.label_of('a') == 'PS'

        with pytest.raises(ClusteringError):
            ClusterAssignment.from_series(pd.Series({'a': 'PS', 'b': None, 'c': 'RN'}))


class TestRankByDistance:
    """Test cases for rank_by_distance."""

    def test_pivot_first_ties_by_identifier(self):
        """Pivot leads; equal distances are ordered by identifier."""
        distances = pd.Series({'p': 0.0, 'b': 2.0, 'a': 2.0, 'c': 4.0, 'd': nan})
        assert rank_by_distance(distances, 'p') == ['p', 'a', 'b', 'c', 'd']


class TestPartition:
    """Test cases for partition."""

    def test_median_split(self, scenario_matrix):
        """The closer half joins the pivot's bloc."""
        blocs = partition(scenario_matrix, 'manhattan', 'P')

        assert blocs.label_of('P') == RIGHT
        assert blocs.label_of('R') == RIGHT
        assert blocs.label_of('Q') == LEFT

    def test_every_legislator_assigned(self, random_matrix):
        """Every row gets exactly one of the two labels."""
        matrix = random_matrix(n_legislators=15)
        blocs = partition(matrix, 'euclidean', 'leg_03')

        assert len(blocs) == matrix.n_legislators
        assert blocs.covers(matrix.legislators)
        assert set(blocs.labels) == {RIGHT, LEFT}
        assert blocs.bloc_sizes()[RIGHT] == 8

    def test_deterministic(self, random_matrix):
        """Repeated runs and reordered rows give the same assignment."""
        matrix = random_matrix(seed=7)
        reordered = RollcallMatrix(
            matrix.values[::-1], matrix.legislators[::-1], matrix.votes
        )

        first = partition(matrix, 'manhattan', 'leg_05')
        second = partition(matrix, 'manhattan', 'leg_05')
        third = partition(reordered, 'manhattan', 'leg_05')

        assert first == second
        assert first == third

    def test_tie_break(self):
        """Equidistant legislators are split by identifier."""
        matrix = RollcallMatrix(
            [[1, 1], [1, -1], [-1, 1], [-1, -1]],
            ['p', 'b', 'a', 'c'],
            ['v1', 'v2']
        )
        blocs = partition(matrix, 'manhattan', 'p')

        assert blocs.members(RIGHT) == ['p', 'a']
        assert blocs.members(LEFT) == ['b', 'c']

    def test_tie_break_normalized_euclidean(self):
        """Distances equal in exact arithmetic tie regardless of rounding noise."""
        matrix = RollcallMatrix(
            [
                [1, 1, 1, 1, 1, 1, 1, 1],
                [0, 0, nan, nan, nan, nan, nan, nan],      # sqrt(2) / 2
                [nan, nan, -1, -1, -1, -1, 0, 0],          # sqrt(18) / 6
                [-1, nan, nan, nan, nan, nan, nan, nan],   # 2 / 1
            ],
            ['p', 'a', 'b', 'c'],
            [f'v{i}' for i in range(8)]
        )
        blocs = partition(matrix, 'euclidean', 'p', normalize=True)

        assert blocs.members(RIGHT) == ['p', 'a']
        assert blocs.members(LEFT) == ['b', 'c']

    def test_single_other_legislator(self):
        """With two legislators the other one forms the opposite bloc."""
        matrix = RollcallMatrix([[1, -1], [1, 1]], ['p', 'q'], ['v1', 'v2'])
        blocs = partition(matrix, 'manhattan', 'p')

        assert blocs.label_of('p') == RIGHT
        assert blocs.label_of('q') == LEFT

    def test_unknown_distances_join_other_bloc(self):
        """Legislators sharing no vote with the pivot go to the opposite bloc."""
        matrix = RollcallMatrix(
            [[1, 1, nan], [1, 1, nan], [-1, -1, nan], [nan, nan, 1]],
            ['p', 'a', 'b', 'c'],
            ['v1', 'v2', 'v3']
        )
        blocs = partition(matrix, 'manhattan', 'p')

        assert blocs.members(RIGHT) == ['p', 'a']
        assert blocs.members(LEFT) == ['b', 'c']

    def test_no_comparable_legislator(self):
        """A pivot sharing no vote with anyone cannot anchor a partition."""
        matrix = RollcallMatrix([[1, nan], [nan, 1]], ['p', 'q'], ['v1', 'v2'])
        with pytest.raises(ClusteringError, match="Insufficient comparable votes"):
            partition(matrix, 'manhattan', 'p')

    def test_single_legislator(self):
        """A lone pivot cannot form two blocs."""
        matrix = RollcallMatrix([[1, -1]], ['p'], ['v1', 'v2'])
        with pytest.raises(ClusteringError):
            partition(matrix, 'manhattan', 'p')

    def test_unknown_pivot_fails_before_distances(self, scenario_matrix):
        """An unknown pivot fails without computing any distance."""
        with patch('bcall.src.clustering.pivot_distances') as mock_distances:
            with pytest.raises(ClusteringError, match="not found"):
                partition(scenario_matrix, 'manhattan', 'Z')
            mock_distances.assert_not_called()

    def test_custom_labels(self, scenario_matrix):
        """Bloc labels can be renamed; they must differ."""
        blocs = partition(scenario_matrix, 'manhattan', 'P', anchor_label='gov', other_label='opp')
        assert blocs.label_of('Q') == 'opp'

        with pytest.raises(ClusteringError):
            partition(scenario_matrix, 'manhattan', 'P', anchor_label='x', other_label='x')
