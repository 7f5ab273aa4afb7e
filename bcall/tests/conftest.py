"""Shared fixtures for the B-Call test suite."""

import numpy as np
import pytest

from bcall.src.rollcall import RollcallMatrix

nan = np.nan


@pytest.fixture
def scenario_matrix():
    """Pivot P votes like R and against Q on every vote (3 x 4)."""
    values = [
        [1, 1, 1, 1],
        [1, 1, 1, 1],
        [-1, -1, -1, -1],
    ]
    return RollcallMatrix(values, ['P', 'R', 'Q'], ['v1', 'v2', 'v3', 'v4'])


@pytest.fixture
def bloc_matrix():
    """
    Two voting blocs of three legislators over 6 votes.

    alice, bob, carol vote together; dave, erin, frank vote against them.
    erin is listed first so she is the provisional pivot; dave has the
    highest participation in her bloc.
    """
    values = [
        [-1, -1, -1, 1, 1, nan],    # erin
        [1, 1, 1, -1, -1, 1],       # alice
        [1, 1, 1, -1, -1, nan],     # bob
        [1, 1, 1, -1, nan, nan],    # carol
        [-1, -1, -1, 1, 1, -1],     # dave
        [-1, -1, nan, 1, 1, -1],    # frank
    ]
    legislators = ['erin', 'alice', 'bob', 'carol', 'dave', 'frank']
    votes = [f'v{i}' for i in range(1, 7)]
    return RollcallMatrix(values, legislators, votes)


@pytest.fixture
def random_matrix():
    """Factory for reproducible random roll-call matrices with missing votes."""

    def _make(n_legislators=12, n_votes=20, missing=0.2, seed=0):
        rng = np.random.default_rng(seed)
        values = rng.choice([-1.0, 0.0, 1.0], size=(n_legislators, n_votes))
        mask = rng.random((n_legislators, n_votes)) < missing
        mask[:, 0] = False  # every legislator keeps at least one vote
        values[mask] = nan
        legislators = [f'leg_{i:02d}' for i in range(n_legislators)]
        votes = [f'vote_{j:03d}' for j in range(n_votes)]
        return RollcallMatrix(values, legislators, votes)

    return _make
