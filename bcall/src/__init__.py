"""
B-Call Voting Blocs Analysis Package.

Scores legislators on ideological position (d1) and voting dispersion (d2)
from roll-call records, and splits them into two voting blocs anchored on a
pivot legislator.
"""

from .rollcall import RollcallMatrix
from .distance import DistanceMetric, voting_distance, pivot_distances
from .clustering import ClusterAssignment, partition
from .participation import filter_by_participation
from .scoring import BCallResult, score, standardize
from .analysis import (
    AnalysisConfig,
    AnalysisResult,
    BCallAnalysis,
    run_analysis,
    run_sensitivity,
)
from .errors import (
    BCallError,
    ClusteringError,
    ConfigurationError,
    DegenerateInputError,
    InsufficientDataError,
    PivotUnscorableError,
    RollcallError,
)

__version__ = "1.0.0"
__all__ = [
    "RollcallMatrix",
    "DistanceMetric",
    "voting_distance",
    "pivot_distances",
    "ClusterAssignment",
    "partition",
    "filter_by_participation",
    "BCallResult",
    "score",
    "standardize",
    "AnalysisConfig",
    "AnalysisResult",
    "BCallAnalysis",
    "run_analysis",
    "run_sensitivity",
    "BCallError",
    "ClusteringError",
    "ConfigurationError",
    "DegenerateInputError",
    "InsufficientDataError",
    "PivotUnscorableError",
    "RollcallError",
]
