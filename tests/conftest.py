"""Shared fixtures. Puts the project root on sys.path so 'import labelnoise' works uninstalled."""

from __future__ import annotations

import sys
from pathlib import Path

import numpy as np
import pytest

_root = Path(__file__).resolve().parents[1]
if str(_root) not in sys.path:
    sys.path.insert(0, str(_root))

from labelnoise.config import ClassifierConfig, DataConfig  # noqa: E402
from labelnoise.trial import TrialEvaluator  # noqa: E402


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(1234)


@pytest.fixture
def small_evaluator() -> TrialEvaluator:
    """All three classifiers, smaller noise-free reference set."""
    return TrialEvaluator(data=DataConfig(generalization_size=500))


@pytest.fixture
def cheap_evaluator() -> TrialEvaluator:
    """Logistic regression only; for sweeps with many trials."""
    return TrialEvaluator(
        data=DataConfig(generalization_size=100),
        classifiers={"logistic_regression": ClassifierConfig("logistic_regression")},
    )
