"""Synthetic two-Gaussian datasets and symmetric label noise."""
from dataclasses import dataclass
from enum import IntEnum
from typing import Iterator, NamedTuple, Optional, Sequence
import math
import numpy as np

from .errors import InvalidParameters

MAX_NOISE = 0.5
_FLOOR_TOL = 1e-9


class Label(IntEnum):
    CLASS_A = 0
    CLASS_B = 1


class LabeledPoint(NamedTuple):
    feature1: float
    feature2: float
    label: Label


@dataclass(frozen=True, eq=False)
class Dataset:
    """Two equal class blocks: rows [0, n) drawn as ClassA, rows [n, 2n) as ClassB.

    `y` holds the (possibly noisy) labels; the block layout records where each
    point was drawn from, which is what noise injection works against.
    """
    X: np.ndarray
    y: np.ndarray
    block_size: int

    def __post_init__(self):
        if self.X.shape != (2 * self.block_size, 2) or self.y.shape != (2 * self.block_size,):
            raise InvalidParameters(
                f"expected X (2n, 2) and y (2n,) with n={self.block_size}, "
                f"got {self.X.shape} and {self.y.shape}"
            )
        self.X.setflags(write=False)
        self.y.setflags(write=False)

    def __len__(self) -> int:
        return len(self.y)

    def points(self) -> Iterator[LabeledPoint]:
        for (f1, f2), lab in zip(self.X, self.y):
            yield LabeledPoint(float(f1), float(f2), Label(int(lab)))

    def with_labels(self, y: np.ndarray) -> "Dataset":
        return Dataset(X=self.X, y=y, block_size=self.block_size)


def flip_count(p: float, n: int) -> int:
    """k = floor(p * n), tolerant of products like 0.57 * 100 = 56.99999999999999."""
    return int(math.floor(p * n + _FLOOR_TOL))


class GaussianSampleGenerator:
    """Draws balanced labeled 2D samples from two bivariate normals sharing one covariance."""

    def __init__(
        self,
        mean_a: Sequence[float] = (1.0, 1.0),
        mean_b: Sequence[float] = (2.0, 2.0),
        cov: Sequence[Sequence[float]] = ((0.5, 0.0), (0.0, 0.5)),
        rng: Optional[np.random.Generator] = None,
    ):
        self.mean_a = np.asarray(mean_a, dtype=np.float64)
        self.mean_b = np.asarray(mean_b, dtype=np.float64)
        self.cov = np.asarray(cov, dtype=np.float64)
        if self.mean_a.shape != (2,) or self.mean_b.shape != (2,) or self.cov.shape != (2, 2):
            raise InvalidParameters("means must be length 2 and cov must be 2x2")
        self.rng = rng if rng is not None else np.random.default_rng()

    def reseed(self, seed) -> None:
        self.rng = np.random.default_rng(seed)

    def generate(self, n: int) -> Dataset:
        if int(n) != n or n < 1:
            raise InvalidParameters(f"sample size must be a positive integer, got {n!r}")
        n = int(n)
        X_a = self.rng.multivariate_normal(self.mean_a, self.cov, size=n)
        X_b = self.rng.multivariate_normal(self.mean_b, self.cov, size=n)
        y = np.concatenate([
            np.full(n, Label.CLASS_A, dtype=np.int64),
            np.full(n, Label.CLASS_B, dtype=np.int64),
        ])
        return Dataset(X=np.vstack([X_a, X_b]), y=y, block_size=n)


def check_noise(p: float) -> float:
    p = float(p)
    if not (0.0 <= p <= MAX_NOISE):
        raise InvalidParameters(f"noise probability must be in [0, {MAX_NOISE}], got {p}")
    return p


def apply_noise(dataset: Dataset, p: float, rng: np.random.Generator) -> Dataset:
    """Relabel floor(p*n) points of each class block to the other class.

    The two blocks are corrupted independently, each by sampling k distinct
    indices without replacement, so A->B and B->A errors are symmetric.
    """
    p = check_noise(p)
    n = dataset.block_size
    k = flip_count(p, n)
    if k == 0:
        return dataset
    if k > n:
        raise InvalidParameters(f"cannot flip {k} labels in a block of {n}")

    y = np.array(dataset.y, copy=True)
    idx_a = rng.choice(n, size=k, replace=False)
    idx_b = n + rng.choice(n, size=k, replace=False)
    y[idx_a] = Label.CLASS_B
    y[idx_b] = Label.CLASS_A
    return dataset.with_labels(y)


def make_noisy_dataset(generator: GaussianSampleGenerator, n: int, p: float) -> Dataset:
    return apply_noise(generator.generate(n), p, generator.rng)
