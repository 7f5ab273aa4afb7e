"""
Analysis orchestration for B-Call runs.

Sequences bloc partitioning, participation filtering and scoring into a
single run, and provides the summaries built on top of a run: bloc
statistics, extreme positions, comparison with party labels, threshold
sensitivity sweeps, a text report and CSV export.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd
from sklearn.metrics import adjusted_rand_score, normalized_mutual_info_score

from .clustering import LEFT, RIGHT, ClusterAssignment, partition
from .distance import DistanceMetric
from .errors import BCallError, ClusteringError, ConfigurationError
from .participation import filter_by_participation
from .rollcall import RollcallMatrix
from .scoring import BCallResult, score

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.1


@dataclass(frozen=True)
class AnalysisConfig:
    """
    Parameters of one analysis run, validated on construction.

    Attributes:
        metric: Distance metric for partitioning (enum, name or code).
        pivot: Reference legislator; None to select one automatically.
        threshold: Minimum participation in [0, 1] to be scored.
        auto_pivot: Select a pivot from the anchor bloc when none is given.
        normalize: Divide distances by the number of shared votes.
        anchor_label: Bloc label of the pivot (positive d1 direction).
        other_label: Label of the opposite bloc.
    """

    metric: Union[DistanceMetric, str, int] = DistanceMetric.MANHATTAN
    pivot: Optional[str] = None
    threshold: float = DEFAULT_THRESHOLD
    auto_pivot: bool = True
    normalize: bool = False
    anchor_label: str = RIGHT
    other_label: str = LEFT

    def __post_init__(self):
        try:
            object.__setattr__(self, 'metric', DistanceMetric.parse(self.metric))
        except ValueError as e:
            raise ConfigurationError(str(e)) from e

        try:
            threshold = float(self.threshold)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Threshold must be a number, got {self.threshold!r}") from e
        if np.isnan(threshold) or not 0.0 <= threshold <= 1.0:
            raise ConfigurationError(f"Threshold must be within [0, 1], got {self.threshold}")
        object.__setattr__(self, 'threshold', threshold)

        if self.pivot is not None:
            pivot = str(self.pivot).strip()
            if not pivot:
                raise ConfigurationError("Pivot must be a non-empty legislator identifier")
            object.__setattr__(self, 'pivot', pivot)
        elif not self.auto_pivot:
            raise ConfigurationError("Specify a pivot or enable automatic pivot selection")

        if not self.anchor_label or not self.other_label:
            raise ConfigurationError("Bloc labels must be non-empty")
        if self.anchor_label == self.other_label:
            raise ConfigurationError(f"Bloc labels must differ, got '{self.anchor_label}' twice")


@dataclass(frozen=True)
class AnalysisResult:
    """Outcome of a full run: scores, blocs over the whole matrix, metadata."""

    scores: BCallResult
    clustering: ClusterAssignment
    participation: Mapping[str, float]
    metadata: Mapping[str, Any] = field(default_factory=dict)

    @property
    def pivot(self) -> str:
        return self.scores.pivot

    def to_frame(self) -> pd.DataFrame:
        """
        One row per legislator of the input matrix.

        Returns:
            DataFrame with d1, d2 (NaN when excluded), auto bloc,
            participation and a retained flag.
        """
        blocs = self.clustering.to_series()
        df = pd.DataFrame({
            'bloc': blocs,
            'participation': pd.Series(self.participation, dtype=float),
        })
        df.index.name = 'legislator'
        scores = self.scores.to_frame()[['d1', 'd2']]
        df = df.join(scores, how='left')
        df['retained'] = df.index.isin(self.scores.retained)
        return df[['d1', 'd2', 'bloc', 'participation', 'retained']]


def select_pivot(matrix: RollcallMatrix, candidates: Iterable[str]) -> str:
    """
    Pick the candidate with the highest participation, ties by identifier.

    Raises:
        ClusteringError: If there is no candidate in the matrix.
    """
    participation = matrix.participation()
    ranked = sorted(
        (-participation[leg], leg) for leg in candidates if leg in matrix
    )
    if not ranked:
        raise ClusteringError("No candidate legislator available to serve as pivot")
    return ranked[0][1]


def provisional_pivot(matrix: RollcallMatrix) -> str:
    """
    First legislator, in row order, sharing a vote with another legislator.

    Falls back to the first row when nobody does, so that partitioning
    reports the failure.
    """
    observed = (~np.isnan(matrix.values)).astype(int)
    overlaps = observed @ observed.T
    np.fill_diagonal(overlaps, 0)
    comparable = np.flatnonzero(overlaps.any(axis=1))
    if comparable.size == 0:
        return matrix.legislators[0]
    return matrix.legislators[comparable[0]]


class BCallAnalysis:
    """
    Runs partition -> participation filter -> scoring for one configuration.

    The analysis keeps no state between runs; `run` is a pure function of
    the matrix, the configuration and the optional bloc assignment.
    """

    def __init__(self, config: Optional[AnalysisConfig] = None):
        self.config = config if config is not None else AnalysisConfig()

    def run(
        self,
        matrix: RollcallMatrix,
        clustering: Optional[ClusterAssignment] = None
    ) -> AnalysisResult:
        """
        Run a complete analysis.

        Args:
            matrix: Roll-call matrix.
            clustering: Optional precomputed bloc assignment (for example
                party labels). When omitted, blocs are derived by
                partitioning around the pivot.

        Returns:
            AnalysisResult with scores, blocs and run metadata.

        Raises:
            BCallError: Any stage failure, propagated unmodified.
        """
        config = self.config
        logger.info(
            f"Running B-Call analysis on {matrix.n_legislators} legislators x "
            f"{matrix.n_votes} votes ({config.metric.label}, threshold {config.threshold:.2f})"
        )

        if clustering is not None:
            clustering = self._check_clustering(matrix, clustering)
            pivot, provisional = self._pivot_from_clustering(matrix, clustering), None
            source = 'supplied'
        else:
            clustering, pivot, provisional = self._partition(matrix)
            source = 'partition'

        filtered = filter_by_participation(matrix, config.threshold, pivot=pivot)
        scores = score(filtered, clustering, pivot)

        participation = matrix.participation()
        excluded = [leg for leg in matrix.legislators if leg not in filtered]
        metadata = {
            'metric': config.metric.label,
            'pivot': pivot,
            'pivot_auto_selected': config.pivot is None,
            'provisional_pivot': provisional,
            'clustering_source': source,
            'threshold': config.threshold,
            'normalize': config.normalize,
            'n_legislators': matrix.n_legislators,
            'n_votes': matrix.n_votes,
            'n_retained': filtered.n_legislators,
            'n_excluded': len(excluded),
            'excluded': excluded,
            'bloc_sizes': clustering.bloc_sizes(),
            'retained_bloc_sizes': scores.metadata['retained_bloc_sizes'],
            'orientation_flipped': scores.sign < 0,
            'completeness_percent': matrix.completeness(),
        }

        logger.info(
            f"Analysis complete: pivot '{pivot}', {filtered.n_legislators} scored, "
            f"{len(excluded)} excluded"
        )
        return AnalysisResult(
            scores=scores,
            clustering=clustering,
            participation=participation.to_dict(),
            metadata=metadata,
        )

    def _check_clustering(
        self,
        matrix: RollcallMatrix,
        clustering: ClusterAssignment
    ) -> ClusterAssignment:
        if not clustering.covers(matrix.legislators):
            uncovered = [leg for leg in matrix.legislators if leg not in clustering]
            raise ClusteringError(f"Supplied blocs miss legislators: {uncovered[:5]}")
        return ClusterAssignment(clustering.restrict(matrix.legislators))

    def _pivot_from_clustering(
        self,
        matrix: RollcallMatrix,
        clustering: ClusterAssignment
    ) -> str:
        config = self.config
        if config.pivot is not None:
            if config.pivot not in matrix:
                raise ClusteringError(f"Pivot '{config.pivot}' not found in roll-call matrix")
            return config.pivot

        anchor_members = clustering.members(config.anchor_label)
        if not anchor_members:
            raise ClusteringError(
                f"No legislator in bloc '{config.anchor_label}' to select a pivot from"
            )
        pivot = select_pivot(matrix, anchor_members)
        logger.info(f"Pivot selected automatically from bloc '{config.anchor_label}': {pivot}")
        return pivot

    def _partition(
        self,
        matrix: RollcallMatrix
    ) -> Tuple[ClusterAssignment, str, Optional[str]]:
        config = self.config
        labels = dict(anchor_label=config.anchor_label, other_label=config.other_label)

        if config.pivot is not None:
            clustering = partition(matrix, config.metric, config.pivot, config.normalize, **labels)
            return clustering, config.pivot, None

        # Partitioning needs a pivot and pivot selection needs blocs:
        # discover blocs with a provisional pivot, then re-anchor.
        provisional = provisional_pivot(matrix)
        logger.info(f"Provisional pivot for bloc discovery: {provisional}")
        discovery = partition(matrix, config.metric, provisional, config.normalize, **labels)

        pivot = select_pivot(matrix, discovery.members(config.anchor_label))
        logger.info(f"Pivot selected automatically from bloc '{config.anchor_label}': {pivot}")

        if pivot == provisional:
            return discovery, pivot, provisional
        clustering = partition(matrix, config.metric, pivot, config.normalize, **labels)
        return clustering, pivot, provisional


def run_analysis(
    matrix: RollcallMatrix,
    metric: Union[DistanceMetric, str, int] = DistanceMetric.MANHATTAN,
    pivot: Optional[str] = None,
    threshold: float = DEFAULT_THRESHOLD,
    auto_pivot: bool = True,
    normalize: bool = False,
    clustering: Optional[ClusterAssignment] = None
) -> AnalysisResult:
    """
    Convenience function to configure and run a B-Call analysis.

    Args:
        matrix: Roll-call matrix.
        metric: Distance metric for partitioning.
        pivot: Reference legislator, or None for automatic selection.
        threshold: Minimum participation to be scored.
        auto_pivot: Select a pivot automatically when none is given.
        normalize: Divide distances by overlap size.
        clustering: Optional precomputed bloc assignment.

    Returns:
        AnalysisResult.
    """
    config = AnalysisConfig(
        metric=metric,
        pivot=pivot,
        threshold=threshold,
        auto_pivot=auto_pivot,
        normalize=normalize,
    )
    return BCallAnalysis(config).run(matrix, clustering)


# ==================== Summaries ====================

def summarize_blocs(result: AnalysisResult) -> pd.DataFrame:
    """
    Score statistics per bloc over the retained legislators.

    Returns:
        DataFrame indexed by bloc with size and d1/d2 mean, std, min, max.
    """
    df = result.scores.to_frame()
    summary = df.groupby('bloc').agg(
        size=('d1', 'size'),
        d1_mean=('d1', 'mean'),
        d1_std=('d1', 'std'),
        d1_min=('d1', 'min'),
        d1_max=('d1', 'max'),
        d2_mean=('d2', 'mean'),
        d2_std=('d2', 'std'),
        d2_min=('d2', 'min'),
        d2_max=('d2', 'max'),
    )
    return summary


def extreme_positions(result: AnalysisResult) -> Dict[str, Dict[str, Any]]:
    """
    Legislators at the ends of both score axes.

    Returns:
        Dictionary with 'lowest_d1', 'highest_d1', 'lowest_d2' and
        'highest_d2', each holding legislator, d1, d2 and bloc.
    """
    df = result.scores.to_frame()
    extremes = {}
    for key, column, pick in [
        ('lowest_d1', 'd1', 'idxmin'),
        ('highest_d1', 'd1', 'idxmax'),
        ('lowest_d2', 'd2', 'idxmin'),
        ('highest_d2', 'd2', 'idxmax'),
    ]:
        values = df[column].dropna()
        if values.empty:
            continue
        legislator = getattr(values, pick)()
        row = df.loc[legislator]
        extremes[key] = {
            'legislator': legislator,
            'd1': float(row['d1']),
            'd2': float(row['d2']),
            'bloc': row['bloc'],
        }
    return extremes


def compare_blocs_to_parties(
    result: AnalysisResult,
    party_labels: Union[Mapping[str, str], pd.Series]
) -> Dict[str, Any]:
    """
    Compare automatic blocs with party affiliations.

    Args:
        result: Analysis result.
        party_labels: Party label per legislator; legislators without one
            are skipped.

    Returns:
        Dictionary with NMI, adjusted Rand index, the number of compared
        legislators and a bloc x party contingency table.
    """
    parties = pd.Series(party_labels, dtype=object).dropna()
    blocs = result.clustering.to_series()
    common = [leg for leg in blocs.index if leg in parties.index]

    if len(common) < 2:
        raise ValueError("At least two legislators with a party label are needed for comparison")

    bloc_list = [blocs[leg] for leg in common]
    party_list = [str(parties[leg]) for leg in common]

    return {
        'nmi': float(normalized_mutual_info_score(party_list, bloc_list)),
        'ari': float(adjusted_rand_score(party_list, bloc_list)),
        'n_compared': len(common),
        'contingency': pd.crosstab(
            pd.Series(bloc_list, name='bloc'),
            pd.Series(party_list, name='party')
        ),
    }


def run_sensitivity(
    matrix: RollcallMatrix,
    thresholds: Sequence[float],
    config: Optional[AnalysisConfig] = None,
    max_workers: int = 1
) -> Tuple[pd.DataFrame, Dict[float, AnalysisResult]]:
    """
    Re-run the analysis at several participation thresholds.

    Each threshold is an independent run; a failing run is recorded with
    its error message instead of aborting the sweep.

    Args:
        matrix: Roll-call matrix.
        thresholds: Participation thresholds to test.
        config: Base configuration; its threshold is replaced per run.
        max_workers: Runs dispatched concurrently when greater than 1.

    Returns:
        Tuple of (summary DataFrame in threshold order, successful results
        keyed by threshold).
    """
    base = config if config is not None else AnalysisConfig()
    configs = [replace(base, threshold=t) for t in thresholds]

    def _run(cfg: AnalysisConfig) -> Union[AnalysisResult, BCallError]:
        try:
            return BCallAnalysis(cfg).run(matrix)
        except BCallError as e:
            logger.warning(f"Threshold {cfg.threshold:.2f} failed: {e}")
            return e

    if max_workers > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            outcomes = list(executor.map(_run, configs))
    else:
        outcomes = [_run(cfg) for cfg in configs]

    rows = []
    results = {}
    for cfg, outcome in zip(configs, outcomes):
        if isinstance(outcome, BCallError):
            rows.append({'threshold': cfg.threshold, 'n_retained': 0, 'error': str(outcome)})
            continue

        results[cfg.threshold] = outcome
        df = outcome.scores.to_frame()
        rows.append({
            'threshold': cfg.threshold,
            'n_retained': len(df),
            'd1_mean': df['d1'].mean(),
            'd2_mean': df['d2'].mean(),
            'd1_sd': df['d1'].std(),
            'd2_sd': df['d2'].std(),
            'error': None,
        })

    columns = ['threshold', 'n_retained', 'd1_mean', 'd2_mean', 'd1_sd', 'd2_sd', 'error']
    return pd.DataFrame(rows, columns=columns), results


# ==================== Reporting ====================

def generate_report(result: AnalysisResult) -> str:
    """
    Generate text report of an analysis run.

    Returns:
        Formatted report string.
    """
    meta = result.metadata
    df = result.scores.to_frame()

    report = []
    report.append("=" * 60)
    report.append("B-CALL ANALYSIS REPORT")
    report.append("=" * 60)

    report.append("\n## Run")
    report.append(f"  Distance Metric: {meta.get('metric')}")
    pivot_mode = "automatic" if meta.get('pivot_auto_selected') else "manual"
    report.append(f"  Pivot: {result.pivot} ({pivot_mode})")
    report.append(f"  Participation Threshold: {meta.get('threshold', 0.0):.2f}")
    report.append(f"  Legislators: {meta.get('n_legislators')} "
                  f"({meta.get('n_retained')} scored, {meta.get('n_excluded')} excluded)")
    report.append(f"  Votes: {meta.get('n_votes')}")
    report.append(f"  Completeness: {meta.get('completeness_percent')}%")

    report.append("\n## Scores")
    report.append(f"  d1 (ideological position): [{df['d1'].min():.3f}, {df['d1'].max():.3f}]")
    report.append(f"  d2 (voting dispersion): [{df['d2'].min():.3f}, {df['d2'].max():.3f}]")

    report.append("\n## Blocs")
    summary = summarize_blocs(result)
    for bloc, row in summary.iterrows():
        report.append(
            f"  {bloc}: {int(row['size'])} legislators, "
            f"mean d1 {row['d1_mean']:.3f}, mean d2 {row['d2_mean']:.3f}"
        )

    report.append("\n## Extreme Positions")
    for key, info in extreme_positions(result).items():
        label = key.replace('_', ' ').capitalize()
        report.append(
            f"  {label}: {info['legislator']} "
            f"(d1={info['d1']:.3f}, d2={info['d2']:.3f}, bloc={info['bloc']})"
        )

    return "\n".join(report)


def export_results(
    result: AnalysisResult,
    output_dir: Union[str, Path] = "output",
    prefix: str = "bcall"
) -> Dict[str, Path]:
    """
    Write the result tables to CSV files.

    Args:
        result: Analysis result.
        output_dir: Directory for the files (created if missing).
        prefix: File name prefix.

    Returns:
        Dictionary mapping table names to written paths.
    """
    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)

    paths = {
        'results': output_path / f"{prefix}_results.csv",
        'blocs': output_path / f"{prefix}_blocs.csv",
        'metadata': output_path / f"{prefix}_metadata.csv",
    }

    result.to_frame().to_csv(paths['results'])
    summarize_blocs(result).to_csv(paths['blocs'])
    metadata = pd.DataFrame(
        [(key, _format_meta(value)) for key, value in result.metadata.items()],
        columns=['key', 'value']
    )
    metadata.to_csv(paths['metadata'], index=False)

    for name, path in paths.items():
        logger.info(f"Saved {name} to {path}")
    return paths


def _format_meta(value: Any) -> str:
    if isinstance(value, dict):
        return "; ".join(f"{k}={v}" for k, v in value.items())
    if isinstance(value, (list, tuple)):
        return "; ".join(str(v) for v in value)
    return "" if value is None else str(value)
