"""
Two-bloc partitioning anchored on a pivot legislator.

Legislators are ranked by their voting distance to the pivot and the ranked
list is split at its median: the closer half joins the pivot's bloc, the
farther half the opposite bloc.
"""

import logging
import math
from typing import Dict, Iterable, List, Mapping, Tuple, Union

import numpy as np
import pandas as pd

from .distance import DistanceMetric, pivot_distances
from .errors import ClusteringError
from .rollcall import RollcallMatrix

logger = logging.getLogger(__name__)

RIGHT = "right"
LEFT = "left"

# Distances equal up to this many decimals rank as ties
DISTANCE_DECIMALS = 12


class ClusterAssignment:
    """
    Immutable mapping from legislator to one of exactly two bloc labels.
    """

    def __init__(self, labels: Mapping[str, str]):
        """
        Args:
            labels: Mapping of legislator identifier to bloc label.

        Raises:
            ClusteringError: If the labels do not form exactly two blocs.
        """
        labels = {str(leg): str(label) for leg, label in labels.items()}
        distinct = set(labels.values())
        if len(distinct) != 2:
            raise ClusteringError(
                f"A bloc partition needs exactly 2 distinct labels, got {len(distinct)}: "
                f"{sorted(distinct)}"
            )
        self._labels = labels

    @classmethod
    def from_series(cls, series: pd.Series) -> 'ClusterAssignment':
        """Build an assignment from a Series of labels indexed by legislator."""
        missing = series.isna()
        if missing.any():
            raise ClusteringError(
                f"Legislators without a bloc label: {list(series.index[missing])[:5]}"
            )
        return cls(series.to_dict())

    @property
    def labels(self) -> Tuple[str, str]:
        """The two bloc labels, sorted."""
        return tuple(sorted(set(self._labels.values())))

    @property
    def legislators(self) -> Tuple[str, ...]:
        return tuple(self._labels)

    def __contains__(self, legislator: object) -> bool:
        return legislator in self._labels

    def __len__(self) -> int:
        return len(self._labels)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ClusterAssignment):
            return NotImplemented
        return self._labels == other._labels

    def __repr__(self) -> str:
        return f"ClusterAssignment({self.bloc_sizes()})"

    def label_of(self, legislator: str) -> str:
        """Return the bloc label of a legislator."""
        if legislator not in self._labels:
            raise ClusteringError(f"Legislator has no bloc assignment: {legislator}")
        return self._labels[legislator]

    def other_label(self, label: str) -> str:
        """Return the label of the bloc opposite to `label`."""
        if label not in self.labels:
            raise ClusteringError(f"Unknown bloc label: {label}")
        first, second = self.labels
        return second if label == first else first

    def members(self, label: str) -> List[str]:
        """Legislators carrying the given label, in assignment order."""
        return [leg for leg, lab in self._labels.items() if lab == label]

    def bloc_sizes(self) -> Dict[str, int]:
        sizes = {label: 0 for label in self.labels}
        for label in self._labels.values():
            sizes[label] += 1
        return sizes

    def covers(self, legislators: Iterable[str]) -> bool:
        """True if every given legislator has an assignment."""
        return all(leg in self._labels for leg in legislators)

    def restrict(self, legislators: Iterable[str]) -> Dict[str, str]:
        """
        Labels for a subset of legislators.

        Returns a plain dict because a subset may hold a single bloc.
        """
        return {leg: self.label_of(leg) for leg in legislators}

    def to_series(self) -> pd.Series:
        series = pd.Series(self._labels, name='bloc', dtype=object)
        series.index.name = 'legislator'
        return series


def rank_by_distance(distances: pd.Series, pivot: str) -> List[str]:
    """
    Order legislators from most to least similar to the pivot.

    The pivot comes first, then ascending distance with ties broken by
    identifier. Distances are compared rounded to DISTANCE_DECIMALS places.
    Legislators with an unknown distance come last, by identifier.
    """
    known = [
        (round(float(dist), DISTANCE_DECIMALS), leg) for leg, dist in distances.items()
        if leg != pivot and not np.isnan(dist)
    ]
    unknown = sorted(
        leg for leg, dist in distances.items()
        if leg != pivot and np.isnan(dist)
    )
    return [pivot] + [leg for _, leg in sorted(known)] + unknown


def partition(
    matrix: RollcallMatrix,
    metric: Union[DistanceMetric, str, int],
    pivot: str,
    normalize: bool = False,
    anchor_label: str = RIGHT,
    other_label: str = LEFT
) -> ClusterAssignment:
    """
    Split legislators into two blocs around a pivot.

    Args:
        matrix: Roll-call matrix.
        metric: Distance metric used to compare each legislator to the pivot.
        pivot: Legislator anchoring the partition; always in `anchor_label`.
        normalize: Divide distances by their overlap size.
        anchor_label: Label of the pivot's bloc.
        other_label: Label of the opposite bloc.

    Returns:
        ClusterAssignment covering every row of the matrix.

    Raises:
        ClusteringError: If the pivot is unknown, stands alone, or shares no
            vote with any other legislator.
    """
    metric = DistanceMetric.parse(metric)

    if anchor_label == other_label:
        raise ClusteringError(f"Bloc labels must differ, got '{anchor_label}' twice")
    if pivot not in matrix:
        raise ClusteringError(f"Pivot '{pivot}' not found in roll-call matrix")
    if matrix.n_legislators < 2:
        raise ClusteringError("At least two legislators are needed to form two blocs")

    distances = pivot_distances(matrix, pivot, metric, normalize)
    others = distances.drop(pivot)
    if others.isna().all():
        raise ClusteringError(
            f"Insufficient comparable votes to anchor partition on pivot '{pivot}'"
        )

    n_unknown = int(others.isna().sum())
    if n_unknown:
        logger.warning(
            f"{n_unknown} legislators share no vote with pivot '{pivot}'; "
            f"assigning them to the '{other_label}' bloc"
        )

    # Median split over comparable legislators; unknown distances rank last
    ranked = rank_by_distance(distances, pivot)
    n_anchor = math.ceil((matrix.n_legislators - n_unknown) / 2)

    labels = {leg: other_label for leg in matrix.legislators}
    for leg in ranked[:n_anchor]:
        labels[leg] = anchor_label

    assignment = ClusterAssignment(labels)
    logger.info(
        f"Partitioned {matrix.n_legislators} legislators on pivot '{pivot}' "
        f"({metric.label}): {assignment.bloc_sizes()}"
    )
    return assignment
