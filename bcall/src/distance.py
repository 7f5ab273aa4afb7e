"""
Voting distance between legislators.

Distances are computed with pairwise deletion: only votes where both
legislators have a recorded position count. Pairs without any shared vote
have an unknown (NaN) distance rather than a distance of zero.
"""

import logging
from enum import Enum
from typing import Union

import numpy as np
import pandas as pd
from scipy.spatial import distance as scipy_distance

from .rollcall import RollcallMatrix

logger = logging.getLogger(__name__)


class DistanceMetric(Enum):
    """Supported voting distance metrics, keyed by their numeric code."""

    MANHATTAN = 1
    EUCLIDEAN = 2

    @classmethod
    def parse(cls, value: Union['DistanceMetric', str, int]) -> 'DistanceMetric':
        """
        Resolve a metric from an enum member, a name or a numeric code.

        Accepts "manhattan", "euclidean" (also "euclidiana"), case-insensitive,
        and the codes 1 and 2.
        """
        if isinstance(value, cls):
            return value

        if isinstance(value, str):
            key = value.strip().lower()
            aliases = {
                'manhattan': cls.MANHATTAN,
                'cityblock': cls.MANHATTAN,
                'euclidean': cls.EUCLIDEAN,
                'euclidiana': cls.EUCLIDEAN,
            }
            if key in aliases:
                return aliases[key]
            if key.lstrip('-').isdigit():
                value = int(key)
            else:
                raise ValueError(f"Unknown distance metric: {value}")

        if isinstance(value, (int, np.integer)) and not isinstance(value, bool):
            try:
                return cls(int(value))
            except ValueError:
                pass

        raise ValueError(f"Unknown distance metric: {value}")

    @property
    def label(self) -> str:
        return self.name.capitalize()


def voting_distance(
    vector_a: np.ndarray,
    vector_b: np.ndarray,
    metric: Union[DistanceMetric, str, int] = DistanceMetric.MANHATTAN,
    normalize: bool = False
) -> float:
    """
    Compute the distance between two vote vectors.

    Args:
        vector_a: Vote vector (+1, 0, -1, NaN for missing).
        vector_b: Vote vector over the same vote ordering.
        metric: Manhattan or Euclidean.
        normalize: If True, divide by the number of shared votes so pairs
            with different overlaps stay comparable.

    Returns:
        Non-negative distance, or NaN when the vectors share no vote.
    """
    metric = DistanceMetric.parse(metric)
    a = np.asarray(vector_a, dtype=float)
    b = np.asarray(vector_b, dtype=float)

    if a.shape != b.shape or a.ndim != 1:
        raise ValueError(f"Vote vectors must be 1-D and of equal length, got {a.shape} and {b.shape}")

    overlap = ~np.isnan(a) & ~np.isnan(b)
    n_shared = int(overlap.sum())
    if n_shared == 0:
        return float('nan')

    if metric is DistanceMetric.MANHATTAN:
        dist = scipy_distance.cityblock(a[overlap], b[overlap])
    else:
        dist = scipy_distance.euclidean(a[overlap], b[overlap])

    if normalize:
        dist = dist / n_shared

    return float(dist)


def pivot_distances(
    matrix: RollcallMatrix,
    pivot: str,
    metric: Union[DistanceMetric, str, int] = DistanceMetric.MANHATTAN,
    normalize: bool = False
) -> pd.Series:
    """
    Distance from every legislator to the pivot.

    Args:
        matrix: Roll-call matrix.
        pivot: Legislator used as the anchor.
        metric: Distance metric.
        normalize: Divide each distance by its overlap size.

    Returns:
        Series indexed by legislator (matrix row order); the pivot itself is
        0.0 and legislators with no shared vote are NaN.
    """
    metric = DistanceMetric.parse(metric)
    pivot_votes = matrix.row(pivot)

    distances = {}
    for legislator in matrix.legislators:
        if legislator == pivot:
            distances[legislator] = 0.0
        else:
            distances[legislator] = voting_distance(
                matrix.row(legislator), pivot_votes, metric, normalize
            )

    series = pd.Series(distances, name='distance', dtype=float)
    series.index.name = 'legislator'
    logger.debug(f"Computed {metric.label} distances to {pivot} for {len(series)} legislators")
    return series
