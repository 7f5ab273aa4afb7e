"""
Data Preprocessing Module for B-Call analyses.

Cleans legislator names, maps vote vocabularies onto the ternary scale
(+1 yea, -1 nay, 0 abstain, missing otherwise) and reshapes long vote
records into a roll-call matrix.
"""

import logging
import re
from typing import Dict, Optional

import numpy as np
import pandas as pd

from .rollcall import RollcallMatrix

logger = logging.getLogger(__name__)

# Characters kept in legislator identifiers: letters (accented included),
# digits, whitespace, underscore, dot and hyphen
_NAME_DISALLOWED = re.compile(r"[^\w\s.\-]", re.UNICODE)
_WHITESPACE = re.compile(r"\s+")


def clean_legislator_name(name) -> Optional[str]:
    """
    Turn a legislator name into a stable identifier.

    Args:
        name: Raw name, e.g. "Becker Alvear, Gonzalo".

    Returns:
        Cleaned identifier, e.g. "Becker_Alvear_Gonzalo", or None for a
        missing name.
    """
    if name is None or (not isinstance(name, str) and pd.isna(name)):
        return None
    cleaned = _NAME_DISALLOWED.sub("", str(name)).strip()
    cleaned = _WHITESPACE.sub("_", cleaned)
    return cleaned or None


class RollcallPreprocessor:
    """
    Builds a roll-call matrix from long-format vote records.

    Vote records need the columns `nm_y_apellidos` (legislator name),
    `votacion_id` (vote identifier) and `voto` (vote text). An optional
    legislator table with `nm_y_apellidos` supplies party metadata and
    restricts the matrix to legislators present in both tables.
    """

    NAME_COLUMN = 'nm_y_apellidos'
    VOTE_ID_COLUMN = 'votacion_id'
    VOTE_COLUMN = 'voto'

    # Vote vocabulary mapped to the ternary scale; anything else is missing
    VOTE_CODES = {
        # Yea
        'Afirmativo': 1, 'Sí': 1, 'Si': 1, 'YES': 1, 'Yes': 1, 'Yea': 1,
        'A favor': 1, 'Afavor': 1, '1': 1,
        # Nay
        'En Contra': -1, 'En contra': -1, 'Encontra': -1, 'No': -1, 'NO': -1,
        'Nay': -1, '-1': -1,
        # Abstain / present without voting
        'Abstención': 0, 'Abstencion': 0, 'Dispensado': 0, 'No Vota': 0,
        'Present': 0, '0': 0,
    }

    # Minimum share of legislators with votes before warning
    MIN_COVERAGE = 0.8

    def __init__(
        self,
        votes_df: pd.DataFrame,
        legislators_df: Optional[pd.DataFrame] = None
    ):
        """
        Initialize preprocessor with raw data.

        Args:
            votes_df: Long-format vote records.
            legislators_df: Optional legislator metadata.

        Raises:
            ValueError: If required columns are missing.
        """
        self._require(votes_df, [self.NAME_COLUMN, self.VOTE_ID_COLUMN, self.VOTE_COLUMN], 'votes')
        if legislators_df is not None:
            self._require(legislators_df, [self.NAME_COLUMN], 'legislators')

        self.votes_raw = votes_df.copy()
        self.legislators_raw = legislators_df.copy() if legislators_df is not None else None

    @staticmethod
    def _require(df: pd.DataFrame, columns, table: str):
        missing = [col for col in columns if col not in df.columns]
        if missing:
            raise ValueError(f"Missing columns in {table}: {', '.join(missing)}")

    @classmethod
    def map_vote(cls, value) -> float:
        """Map a raw vote value onto +1, -1, 0 or NaN."""
        if value is None or (not isinstance(value, str) and pd.isna(value)):
            return np.nan
        if isinstance(value, (int, float, np.integer, np.floating)) and value in (-1, 0, 1):
            return float(value)
        return float(cls.VOTE_CODES.get(str(value).strip(), np.nan))

    def preprocess_votes(self) -> pd.DataFrame:
        """
        Clean names and map vote values.

        Returns:
            Vote records with cleaned names and a `vote_value` column,
            restricted to legislators listed in the legislator table if any.
        """
        df = self.votes_raw.copy()
        df[self.NAME_COLUMN] = df[self.NAME_COLUMN].map(clean_legislator_name)
        df = df.dropna(subset=[self.NAME_COLUMN, self.VOTE_ID_COLUMN])
        df['vote_value'] = df[self.VOTE_COLUMN].map(self.map_vote)

        unmapped = df.loc[df['vote_value'].isna() & df[self.VOTE_COLUMN].notna(), self.VOTE_COLUMN]
        if not unmapped.empty:
            logger.info(
                f"{len(unmapped)} vote records treated as missing: "
                f"{sorted(unmapped.astype(str).unique())[:10]}"
            )

        legislators = self.preprocess_legislators()
        if legislators is not None:
            listed = set(legislators[self.NAME_COLUMN])
            voting = set(df[self.NAME_COLUMN])
            common = listed & voting
            coverage = len(common) / len(listed) if listed else 0.0
            logger.info(f"Legislators with votes: {len(common)} of {len(listed)} ({coverage:.1%})")
            if coverage < self.MIN_COVERAGE:
                without_votes = sorted(listed - voting)
                logger.warning(
                    f"Fewer than {self.MIN_COVERAGE:.0%} of legislators have votes; "
                    f"missing (first 5): {without_votes[:5]}"
                )
            df = df[df[self.NAME_COLUMN].isin(common)]

        logger.info(f"Preprocessed {len(df)} vote records")
        return df

    def preprocess_legislators(self) -> Optional[pd.DataFrame]:
        """Legislator table with cleaned names, or None when not given."""
        if self.legislators_raw is None:
            return None
        df = self.legislators_raw.copy()
        df[self.NAME_COLUMN] = df[self.NAME_COLUMN].map(clean_legislator_name)
        df = df.dropna(subset=[self.NAME_COLUMN])
        return df.drop_duplicates(subset=[self.NAME_COLUMN], keep='first')

    def create_rollcall_matrix(self) -> RollcallMatrix:
        """
        Reshape vote records into a legislator x vote matrix.

        Duplicate legislator/vote records keep the last one. Legislators
        without any recorded vote are dropped.

        Returns:
            RollcallMatrix in order of first appearance.
        """
        votes = self.preprocess_votes()
        if votes.empty:
            raise ValueError("No vote records left after preprocessing")

        votes = votes.drop_duplicates(subset=[self.NAME_COLUMN, self.VOTE_ID_COLUMN], keep='last')
        legislator_order = list(dict.fromkeys(votes[self.NAME_COLUMN]))
        vote_order = list(dict.fromkeys(votes[self.VOTE_ID_COLUMN].astype(str)))

        wide = votes.assign(**{self.VOTE_ID_COLUMN: votes[self.VOTE_ID_COLUMN].astype(str)}).pivot(
            index=self.NAME_COLUMN,
            columns=self.VOTE_ID_COLUMN,
            values='vote_value'
        )
        wide = wide.reindex(index=legislator_order, columns=vote_order)

        matrix = RollcallMatrix.from_frame(wide, drop_empty=True)
        logger.info(
            f"Created roll-call matrix: {matrix.n_legislators} legislators x "
            f"{matrix.n_votes} votes ({matrix.completeness()}% complete)"
        )
        return matrix

    def legislator_info(self) -> pd.DataFrame:
        """
        Legislator metadata indexed by cleaned name.

        Without a legislator table, only the names found in the votes.
        """
        legislators = self.preprocess_legislators()
        if legislators is None:
            names = self.preprocess_votes()[self.NAME_COLUMN].unique()
            return pd.DataFrame(index=pd.Index(names, name=self.NAME_COLUMN))
        return legislators.set_index(self.NAME_COLUMN)

    def votes_summary(self) -> Dict[str, object]:
        """Counts describing the preprocessed vote records."""
        votes = self.preprocess_votes()
        distribution = votes['vote_value'].value_counts(dropna=False)
        return {
            'total_votes': len(votes),
            'unique_legislators': int(votes[self.NAME_COLUMN].nunique()),
            'unique_votes': int(votes[self.VOTE_ID_COLUMN].nunique()),
            'vote_distribution': {
                ('missing' if pd.isna(k) else int(k)): int(v) for k, v in distribution.items()
            },
        }


# Voteview cast codes mapped to the ternary scale; 8, 9 and 0 are missing
VOTEVIEW_CAST_CODES = {
    1: 1,   # Yea
    2: 1,   # Paired Yea
    3: 1,   # Announced Yea
    4: -1,  # Nay
    5: -1,  # Paired Nay
    6: -1,  # Announced Nay
    7: 0,   # Present (not voting)
}


def rollcall_from_voteview(
    votes_df: pd.DataFrame,
    members_df: Optional[pd.DataFrame] = None,
    chamber: Optional[str] = None
) -> RollcallMatrix:
    """
    Build a roll-call matrix from Voteview vote records.

    Args:
        votes_df: Voteview votes (`icpsr`, `rollnumber`, `cast_code`, and
            `congress`/`chamber` when several are mixed).
        members_df: Optional Voteview members; when given, rows are keyed by
            cleaned `bioname` instead of `icpsr`.
        chamber: Optional "House" or "Senate" filter.

    Returns:
        RollcallMatrix with one column per roll call.
    """
    df = votes_df.copy()
    if chamber is not None and 'chamber' in df.columns:
        df = df[df['chamber'] == chamber]
    if df.empty:
        raise ValueError("No Voteview vote records match the filter criteria")

    df['vote_value'] = df['cast_code'].map(VOTEVIEW_CAST_CODES).astype(float)

    parts = [df[col].astype(str) for col in ('congress', 'chamber') if col in df.columns]
    parts.append(df['rollnumber'].astype(str))
    rollcall_id = parts[0]
    for part in parts[1:]:
        rollcall_id = rollcall_id + '_' + part
    df['rollcall_id'] = rollcall_id

    df['legislator'] = df['icpsr'].astype(str)
    if members_df is not None:
        names = members_df.drop_duplicates(subset=['icpsr']).set_index('icpsr')['bioname']
        names = names.map(clean_legislator_name).dropna()
        # Members sharing a cleaned name keep their icpsr key
        shared = names[names.duplicated(keep=False)]
        if not shared.empty:
            logger.warning(
                f"{len(shared)} members share a name with another member; keyed by icpsr: "
                f"{sorted(shared.unique())[:5]}"
            )
            names = names.drop(shared.index)
        mapped = df['icpsr'].map(names)
        df['legislator'] = mapped.fillna(df['legislator'])

    df = df.drop_duplicates(subset=['legislator', 'rollcall_id'], keep='last')
    wide = df.pivot(index='legislator', columns='rollcall_id', values='vote_value')
    wide = wide.reindex(
        index=list(dict.fromkeys(df['legislator'])),
        columns=list(dict.fromkeys(df['rollcall_id']))
    )

    matrix = RollcallMatrix.from_frame(wide, drop_empty=True)
    logger.info(f"Created Voteview roll-call matrix: {matrix.n_legislators} x {matrix.n_votes}")
    return matrix
