"""
Roll-call matrix container.

A legislator x vote table whose cells are +1 (yea), -1 (nay), 0 (abstain)
or NaN (missing). The matrix is immutable: filtering and subsetting always
return a new object.
"""

import logging
from typing import Dict, Iterable, Sequence, Tuple

import numpy as np
import pandas as pd

from .errors import RollcallError

logger = logging.getLogger(__name__)

VALID_VOTES = (-1.0, 0.0, 1.0)


class RollcallMatrix:
    """
    Immutable legislator x vote matrix with missing-vote support.

    Rows are legislators and columns are votes, both identified by unique
    string identifiers kept in their original order.
    """

    def __init__(
        self,
        values: np.ndarray,
        legislators: Sequence[str],
        votes: Sequence[str]
    ):
        """
        Build and validate a roll-call matrix.

        Args:
            values: 2-D array of vote values (+1, 0, -1 or NaN).
            legislators: Row identifiers, one per row.
            votes: Column identifiers, one per column.

        Raises:
            RollcallError: If any invariant of the matrix is violated.
        """
        legislators = tuple(str(leg) for leg in legislators)
        votes = tuple(str(v) for v in votes)

        try:
            array = np.array(values, dtype=float)
        except (TypeError, ValueError) as e:
            raise RollcallError(f"Vote values must be numeric: {e}") from e

        if array.ndim != 2:
            raise RollcallError(f"Vote values must be 2-dimensional, got {array.ndim} dimensions")
        if array.shape != (len(legislators), len(votes)):
            raise RollcallError(
                f"Shape {array.shape} does not match {len(legislators)} legislators "
                f"x {len(votes)} votes"
            )
        if array.shape[0] == 0 or array.shape[1] == 0:
            raise RollcallError("Roll-call matrix needs at least one legislator and one vote")
        if len(set(legislators)) != len(legislators):
            raise RollcallError("Legislator identifiers must be unique")
        if len(set(votes)) != len(votes):
            raise RollcallError("Vote identifiers must be unique")

        observed = ~np.isnan(array)
        if not np.isin(array[observed], VALID_VOTES).all():
            bad = sorted(set(array[observed][~np.isin(array[observed], VALID_VOTES)].tolist()))
            raise RollcallError(f"Vote values must be +1, 0, -1 or missing, found {bad[:5]}")

        empty_rows = ~observed.any(axis=1)
        if empty_rows.any():
            empty = [legislators[i] for i in np.flatnonzero(empty_rows)]
            raise RollcallError(f"Legislators with no recorded votes: {empty[:5]}")

        array.setflags(write=False)
        self._values = array
        self._legislators = legislators
        self._votes = votes
        self._index = {leg: i for i, leg in enumerate(legislators)}

    @classmethod
    def from_frame(cls, df: pd.DataFrame, drop_empty: bool = False) -> 'RollcallMatrix':
        """
        Build a matrix from a wide DataFrame indexed by legislator.

        Args:
            df: DataFrame with legislators as index and votes as columns.
            drop_empty: If True, drop legislators without any recorded vote
                instead of rejecting the frame.

        Returns:
            RollcallMatrix with the frame's row and column order.
        """
        numeric = df.apply(pd.to_numeric, errors='coerce')

        if drop_empty:
            empty = numeric.isna().all(axis=1)
            if empty.any():
                logger.warning(f"Dropping {int(empty.sum())} legislators with no recorded votes")
                numeric = numeric[~empty]

        return cls(numeric.to_numpy(dtype=float), numeric.index, numeric.columns)

    # ==================== Accessors ====================

    @property
    def values(self) -> np.ndarray:
        """Read-only vote array (NaN marks a missing vote)."""
        return self._values

    @property
    def legislators(self) -> Tuple[str, ...]:
        return self._legislators

    @property
    def votes(self) -> Tuple[str, ...]:
        return self._votes

    @property
    def n_legislators(self) -> int:
        return len(self._legislators)

    @property
    def n_votes(self) -> int:
        return len(self._votes)

    @property
    def shape(self) -> Tuple[int, int]:
        return self._values.shape

    def __contains__(self, legislator: object) -> bool:
        return legislator in self._index

    def __len__(self) -> int:
        return self.n_legislators

    def __repr__(self) -> str:
        return f"RollcallMatrix({self.n_legislators} legislators x {self.n_votes} votes)"

    def index_of(self, legislator: str) -> int:
        """Return the row position of a legislator."""
        if legislator not in self._index:
            raise KeyError(f"Legislator not in roll-call matrix: {legislator}")
        return self._index[legislator]

    def row(self, legislator: str) -> np.ndarray:
        """Return the (read-only) vote vector of a legislator."""
        return self._values[self.index_of(legislator)]

    # ==================== Derived data ====================

    def participation(self) -> pd.Series:
        """
        Fraction of votes each legislator cast (non-missing cells / columns).

        Returns:
            Series indexed by legislator, in row order.
        """
        observed = (~np.isnan(self._values)).sum(axis=1)
        return pd.Series(
            observed / self.n_votes,
            index=pd.Index(self._legislators, name='legislator'),
            name='participation'
        )

    def completeness(self) -> float:
        """Percentage of non-missing cells in the whole matrix."""
        observed = int((~np.isnan(self._values)).sum())
        return round(observed / self._values.size * 100, 1)

    def value_counts(self) -> Dict[str, int]:
        """Count cells by vote value, including missing ones."""
        flat = self._values.ravel()
        return {
            'yea': int((flat == 1).sum()),
            'nay': int((flat == -1).sum()),
            'abstain': int((flat == 0).sum()),
            'missing': int(np.isnan(flat).sum()),
        }

    def subset(self, legislators: Iterable[str]) -> 'RollcallMatrix':
        """
        Return a new matrix holding only the given legislators.

        Row order follows this matrix, not the argument order.
        """
        keep = set(legislators)
        unknown = keep - set(self._legislators)
        if unknown:
            raise KeyError(f"Legislators not in roll-call matrix: {sorted(unknown)[:5]}")

        rows = [i for i, leg in enumerate(self._legislators) if leg in keep]
        return RollcallMatrix(
            self._values[rows],
            [self._legislators[i] for i in rows],
            self._votes
        )

    def to_frame(self) -> pd.DataFrame:
        """Return a copy of the matrix as a wide DataFrame."""
        return pd.DataFrame(
            self._values.copy(),
            index=pd.Index(self._legislators, name='legislator'),
            columns=list(self._votes)
        )
