"""
Participation filtering.

Participation is the fraction of votes a legislator cast (any non-missing
cell, abstentions included) out of all votes in the matrix.
"""

import logging
from typing import Optional

from .errors import InsufficientDataError
from .rollcall import RollcallMatrix

logger = logging.getLogger(__name__)


def filter_by_participation(
    matrix: RollcallMatrix,
    threshold: float,
    pivot: Optional[str] = None
) -> RollcallMatrix:
    """
    Keep legislators whose participation is at least `threshold`.

    Args:
        matrix: Roll-call matrix to filter; left untouched.
        threshold: Minimum participation in [0, 1].
        pivot: If given, the pivot must survive the filter.

    Returns:
        New RollcallMatrix with the retained rows and all columns.

    Raises:
        ValueError: If the threshold lies outside [0, 1].
        InsufficientDataError: If no legislator, or not the pivot, is retained.
    """
    if not 0.0 <= threshold <= 1.0:
        raise ValueError(f"Participation threshold must be within [0, 1], got {threshold}")

    participation = matrix.participation()
    retained = participation[participation >= threshold]

    if retained.empty:
        raise InsufficientDataError(
            f"No legislator reaches participation threshold {threshold:.2f} "
            f"(maximum {participation.max():.2f})"
        )

    if pivot is not None and pivot not in retained.index:
        if pivot in participation.index:
            reason = f"participation {participation[pivot]:.2f} below threshold {threshold:.2f}"
        else:
            reason = "not in roll-call matrix"
        raise InsufficientDataError(f"Pivot '{pivot}' was filtered out: {reason}")

    n_dropped = matrix.n_legislators - len(retained)
    if n_dropped:
        logger.info(
            f"Participation filter {threshold:.2f}: kept {len(retained)}, "
            f"dropped {n_dropped} legislators"
        )

    return matrix.subset(retained.index)
