"""Exceptions raised by the simulation harness."""
from typing import Any, List, Optional, Sequence, Tuple


class LabelNoiseError(Exception):
    pass


class InvalidParameters(LabelNoiseError, ValueError):
    """Bad sample size, noise level, dataset layout or sweep definition."""


class TrialFailure(LabelNoiseError):
    """A single trial could not produce a result."""

    def __init__(self, params: Any, message: str):
        self.params = params
        super().__init__(f"{message} ({params})")


class FitFailure(TrialFailure):
    """Classifier fitting raised a numerical error or failed to converge."""

    def __init__(self, params: Any, classifier: str, cause: BaseException):
        self.classifier = classifier
        self.cause = cause
        super().__init__(params, f"{classifier} fit failed: {type(cause).__name__}: {cause}")


class InsufficientData(LabelNoiseError):
    """One or more strata finished with zero successful trials."""

    def __init__(self, strata: Sequence[Tuple[int, float]], result: Any = None):
        self.strata = list(strata)
        self.result = result
        cells = ", ".join(f"(m={m}, noise={p})" for m, p in self.strata)
        super().__init__(f"no successful trials for {cells}")


class PersistenceFailure(LabelNoiseError):
    """Writing the result table failed; `table` is kept so the save can be retried."""

    def __init__(self, path: Any, table: Any, cause: Optional[BaseException] = None):
        self.path = path
        self.table = table
        self.cause = cause
        super().__init__(f"could not write results to {path}: {cause}")


class SweepInterrupted(LabelNoiseError):
    """The sweep was cancelled; `result` holds whatever finished before that."""

    def __init__(self, result: Any, reason: str = "interrupted"):
        self.result = result
        self.reason = reason
        super().__init__(f"sweep {reason} after {len(result.table)} successful trials")


__all__: List[str] = [
    "LabelNoiseError",
    "InvalidParameters",
    "TrialFailure",
    "FitFailure",
    "InsufficientData",
    "PersistenceFailure",
    "SweepInterrupted",
]
