"""One Monte Carlo trial: draw train/validation/generalization sets, fit, score."""
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Mapping, Optional
import numpy as np
import pandas as pd
from sklearn.exceptions import ConvergenceWarning

from .config import ClassifierConfig, DataConfig, default_classifiers
from .data import GaussianSampleGenerator, check_noise, make_noisy_dataset
from .errors import FitFailure, InvalidParameters
from .models import create_classifier

KEY_COLUMNS = ['trial', 'seed', 'sample_size', 'noise']
VAL_SUFFIX = '_accuracy'
GEN_SUFFIX = '_generalization_accuracy'


@dataclass(frozen=True)
class TrialParameters:
    sample_size: int
    noise: float

    def __post_init__(self):
        if isinstance(self.sample_size, bool) or int(self.sample_size) != self.sample_size \
                or self.sample_size < 1:
            raise InvalidParameters(f"sample_size must be a positive integer, got {self.sample_size!r}")
        object.__setattr__(self, 'sample_size', int(self.sample_size))
        object.__setattr__(self, 'noise', check_noise(self.noise))

    @property
    def stratum(self):
        return (self.sample_size, self.noise)


@dataclass(frozen=True)
class ClassifierAccuracy:
    validation: float
    generalization: float


@dataclass(frozen=True)
class TrialResult:
    sample_size: int
    noise: float
    accuracies: Dict[str, ClassifierAccuracy]
    trial: int = -1
    seed: Optional[int] = None

    def to_row(self) -> Dict[str, object]:
        row = {'trial': self.trial, 'seed': self.seed,
               'sample_size': self.sample_size, 'noise': self.noise}
        for name, acc in self.accuracies.items():
            row[name + VAL_SUFFIX] = acc.validation
            row[name + GEN_SUFFIX] = acc.generalization
        return row

    @classmethod
    def from_row(cls, row: Mapping[str, object], classifiers: Iterable[str]) -> "TrialResult":
        seed = row.get('seed')
        return cls(
            sample_size=int(row['sample_size']),
            noise=float(row['noise']),
            accuracies={
                name: ClassifierAccuracy(float(row[name + VAL_SUFFIX]), float(row[name + GEN_SUFFIX]))
                for name in classifiers
            },
            trial=int(row.get('trial', -1)),
            seed=None if seed is None or pd.isna(seed) else int(seed),
        )


class ResultTable:
    """Successful trial rows, one per trial, in insertion order."""

    def __init__(self, rows: Optional[Iterable[TrialResult]] = None):
        self.rows: List[TrialResult] = list(rows or [])

    def append(self, row: TrialResult) -> None:
        self.rows.append(row)

    def sorted(self) -> "ResultTable":
        return ResultTable(sorted(self.rows, key=lambda r: r.trial))

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[TrialResult]:
        return iter(self.rows)

    def __getitem__(self, i) -> TrialResult:
        return self.rows[i]

    def __eq__(self, other) -> bool:
        if not isinstance(other, ResultTable):
            return NotImplemented
        return self.rows == other.rows

    def __repr__(self) -> str:
        return f"ResultTable({len(self.rows)} rows)"

    @property
    def classifiers(self) -> List[str]:
        return list(self.rows[0].accuracies) if self.rows else []

    def accuracy_columns(self) -> List[str]:
        cols = []
        for name in self.classifiers:
            cols += [name + VAL_SUFFIX, name + GEN_SUFFIX]
        return cols

    def to_frame(self) -> pd.DataFrame:
        df = pd.DataFrame([r.to_row() for r in self.rows],
                          columns=KEY_COLUMNS + self.accuracy_columns())
        return df.astype({'trial': 'int64', 'sample_size': 'int64', 'noise': 'float64'})

    @classmethod
    def from_frame(cls, df: pd.DataFrame) -> "ResultTable":
        for col in ['sample_size', 'noise']:
            if col not in df.columns:
                raise ValueError(f"Missing required column: {col}")
        names = [c[:-len(GEN_SUFFIX)] for c in df.columns if c.endswith(GEN_SUFFIX)]
        for name in names:
            if name + VAL_SUFFIX not in df.columns:
                raise ValueError(f"Missing required column: {name + VAL_SUFFIX}")
        return cls(TrialResult.from_row(row, names) for row in df.to_dict('records'))


class TrialEvaluator:
    """Runs one (sample_size, noise) trial for every configured classifier."""

    def __init__(self,
                 data: Optional[DataConfig] = None,
                 classifiers: Optional[Mapping[str, ClassifierConfig]] = None,
                 convergence_warnings_as_errors: bool = True):
        self.data = data or DataConfig()
        self.classifiers = default_classifiers() if classifiers is None else dict(classifiers)
        if not self.classifiers:
            raise InvalidParameters("at least one classifier must be configured")
        if self.data.generalization_size < 1:
            raise InvalidParameters("generalization_size must be >= 1")
        self.convergence_warnings_as_errors = convergence_warnings_as_errors

    def generator(self, rng: np.random.Generator) -> GaussianSampleGenerator:
        return GaussianSampleGenerator(self.data.mean_a, self.data.mean_b, self.data.cov, rng=rng)

    def _fit(self, params: TrialParameters, name: str, clf_cfg: ClassifierConfig,
             X: np.ndarray, y: np.ndarray, random_state: int):
        clf = create_classifier(clf_cfg.kind, random_state=random_state, **clf_cfg.params)
        try:
            clf.fit(X, y)
        except (ValueError, ArithmeticError) as e:
            raise FitFailure(params, name, e) from e
        if self.convergence_warnings_as_errors and not clf.converged():
            raise FitFailure(params, name, ConvergenceWarning("stopped at max_iter without converging"))
        return clf

    def evaluate(self, params: TrialParameters, rng=None,
                 trial: int = -1, seed: Optional[int] = None) -> TrialResult:
        """`rng` may be a Generator or anything `np.random.default_rng` accepts."""
        if not isinstance(params, TrialParameters):
            params = TrialParameters(*params)
        rng = np.random.default_rng(rng)
        gen = self.generator(rng)

        train = make_noisy_dataset(gen, params.sample_size, params.noise)
        val = make_noisy_dataset(gen, params.sample_size, params.noise)
        reference = gen.generate(self.data.generalization_size)   # noise-free

        accuracies = {}
        for name, clf_cfg in self.classifiers.items():
            clf = self._fit(params, name, clf_cfg, train.X, train.y,
                            random_state=int(rng.integers(2**31 - 1)))
            accuracies[name] = ClassifierAccuracy(
                validation=clf.accuracy(val.X, val.y),
                generalization=clf.accuracy(reference.X, reference.y),
            )

        return TrialResult(sample_size=params.sample_size, noise=params.noise,
                           accuracies=accuracies, trial=trial, seed=seed)
