"""
Error taxonomy for B-Call analyses.

Every error names the stage that detected it so callers (the CLI in
particular) can report where a run stopped.
"""


class BCallError(ValueError):
    """Base class for data-quality failures raised by the analysis core."""

    stage = "analysis"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"[{self.stage}] {self.message}"


class RollcallError(BCallError):
    """A roll-call matrix violates its construction invariants."""

    stage = "matrix"


class ConfigurationError(BCallError):
    """An analysis configuration value is invalid."""

    stage = "config"


class ClusteringError(BCallError):
    """A two-bloc partition cannot be formed or is invalid."""

    stage = "partition"


class InsufficientDataError(BCallError):
    """Participation filtering removed too much data."""

    stage = "filter"


class DegenerateInputError(BCallError):
    """Retained votes have no dispersion to standardize."""

    stage = "score"


class PivotUnscorableError(BCallError):
    """The pivot legislator has no usable votes to orient scores."""

    stage = "score"
