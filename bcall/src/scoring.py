"""
B-Call scoring.

Computes two scores per legislator from a roll-call matrix:

- d1: mean standardized vote, the ideological position. Oriented so that
  the pivot legislator scores non-negative.
- d2: standard deviation of the standardized votes, the voting dispersion
  (low values mean a cohesive, predictable voter). Never sign-flipped.

Standardization uses one global mean and standard deviation over every
recorded vote of the matrix; missing votes are ignored throughout.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Tuple

import numpy as np
import pandas as pd

from .clustering import ClusterAssignment
from .errors import ClusteringError, DegenerateInputError, PivotUnscorableError
from .rollcall import RollcallMatrix

logger = logging.getLogger(__name__)

# Sample standard deviation, matching R's sd()
DDOF = 1


@dataclass(frozen=True)
class BCallResult:
    """Per-legislator B-Call scores of one analysis run."""

    d1: Mapping[str, float]
    d2: Mapping[str, float]
    blocs: Mapping[str, str]
    retained: Tuple[str, ...]
    pivot: str
    sign: int
    mu: float
    sigma: float
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def to_frame(self) -> pd.DataFrame:
        """
        Scores as a DataFrame indexed by legislator.

        Returns:
            DataFrame with columns d1, d2 and bloc, in retained order.
        """
        df = pd.DataFrame({
            'd1': [self.d1[leg] for leg in self.retained],
            'd2': [self.d2[leg] for leg in self.retained],
            'bloc': [self.blocs[leg] for leg in self.retained],
        }, index=pd.Index(self.retained, name='legislator'))
        return df

    def score_of(self, legislator: str) -> Tuple[float, float]:
        """Return the (d1, d2) pair of a retained legislator."""
        return self.d1[legislator], self.d2[legislator]


def standardize(matrix: RollcallMatrix) -> Tuple[np.ndarray, float, float]:
    """
    Standardize all recorded votes with a single global mean and deviation.

    Args:
        matrix: Roll-call matrix.

    Returns:
        Tuple of (z-value array with NaN for missing votes, mu, sigma).

    Raises:
        DegenerateInputError: If the recorded votes have no dispersion.
    """
    values = matrix.values
    observed = values[~np.isnan(values)]

    if observed.size <= DDOF:
        raise DegenerateInputError(
            f"Cannot standardize {observed.size} recorded vote(s); at least {DDOF + 1} needed"
        )

    mu = float(observed.mean())
    sigma = float(observed.std(ddof=DDOF))
    if sigma == 0 or not np.isfinite(sigma):
        raise DegenerateInputError(
            f"All {observed.size} retained votes are identical ({mu:+.0f}); nothing to standardize"
        )

    z = (values - mu) / sigma
    return z, mu, sigma


def _row_scores(z: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Mean and sample deviation of each row, ignoring NaN cells."""
    observed = ~np.isnan(z)
    counts = observed.sum(axis=1)
    filled = np.where(observed, z, 0.0)

    with np.errstate(invalid='ignore', divide='ignore'):
        means = filled.sum(axis=1) / counts
        squares = np.where(observed, (z - means[:, None]) ** 2, 0.0).sum(axis=1)
        deviations = np.sqrt(squares / (counts - DDOF))

    means[counts == 0] = np.nan
    deviations[counts <= DDOF] = np.nan
    return means, deviations


def score(
    matrix: RollcallMatrix,
    clustering: ClusterAssignment,
    pivot: str
) -> BCallResult:
    """
    Compute oriented B-Call scores for every legislator of the matrix.

    Args:
        matrix: (Filtered) roll-call matrix.
        clustering: Bloc assignment covering every row of the matrix.
        pivot: Legislator whose d1 is forced non-negative.

    Returns:
        BCallResult with d1, d2 and bloc per legislator.

    Raises:
        PivotUnscorableError: If the pivot is absent or has no usable votes.
        ClusteringError: If the clustering does not cover the matrix.
        DegenerateInputError: If all retained votes are identical.
    """
    if pivot not in matrix:
        raise PivotUnscorableError(f"Pivot '{pivot}' is not in the scored roll-call matrix")
    if pivot not in clustering:
        raise ClusteringError(f"Pivot '{pivot}' has no bloc assignment")
    if not clustering.covers(matrix.legislators):
        uncovered = [leg for leg in matrix.legislators if leg not in clustering]
        raise ClusteringError(f"Legislators without a bloc assignment: {uncovered[:5]}")

    z, mu, sigma = standardize(matrix)
    d1_raw, d2_raw = _row_scores(z)

    pivot_d1 = d1_raw[matrix.index_of(pivot)]
    if np.isnan(pivot_d1):
        raise PivotUnscorableError(f"Pivot '{pivot}' has no usable votes after filtering")

    sign = -1 if pivot_d1 < 0 else 1
    d1 = sign * d1_raw

    legislators = matrix.legislators
    result = BCallResult(
        d1={leg: float(v) for leg, v in zip(legislators, d1)},
        d2={leg: float(v) for leg, v in zip(legislators, d2_raw)},
        blocs=clustering.restrict(legislators),
        retained=legislators,
        pivot=pivot,
        sign=sign,
        mu=mu,
        sigma=sigma,
        metadata=_score_metadata(matrix, clustering, pivot, sign),
    )

    logger.info(
        f"Scored {len(legislators)} legislators (mu={mu:.4f}, sigma={sigma:.4f}, "
        f"orientation {'flipped' if sign < 0 else 'kept'})"
    )
    return result


def _score_metadata(
    matrix: RollcallMatrix,
    clustering: ClusterAssignment,
    pivot: str,
    sign: int
) -> Dict[str, Any]:
    anchor = clustering.label_of(pivot)
    blocs = clustering.restrict(matrix.legislators)
    return {
        'pivot': pivot,
        'pivot_bloc': anchor,
        'n_retained': matrix.n_legislators,
        'n_votes': matrix.n_votes,
        'orientation_flipped': sign < 0,
        'retained_bloc_sizes': {
            label: sum(1 for lab in blocs.values() if lab == label)
            for label in clustering.labels
        },
    }
