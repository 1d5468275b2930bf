"""
Monte Carlo harness: how training-sample size and label noise shape the
measured accuracy of binary classifiers on two overlapping 2D Gaussians.
"""

from .config import SweepConfig, DataConfig, ClassifierConfig, load_config
from .data import Label, LabeledPoint, Dataset, GaussianSampleGenerator, apply_noise
from .models import Classifier, create_classifier
from .trial import TrialParameters, TrialResult, ClassifierAccuracy, ResultTable, TrialEvaluator
from .driver import ExperimentDriver, SweepResult, FailedTrial, expand_sweep
from .store import save_results, load_results
from .metrics import summarize
from .errors import (
    InvalidParameters, TrialFailure, FitFailure, InsufficientData,
    PersistenceFailure, SweepInterrupted,
)

__version__ = '0.1.0'

__all__ = [
    'SweepConfig',
    'DataConfig',
    'ClassifierConfig',
    'load_config',
    'Label',
    'LabeledPoint',
    'Dataset',
    'GaussianSampleGenerator',
    'apply_noise',
    'Classifier',
    'create_classifier',
    'TrialParameters',
    'TrialResult',
    'ClassifierAccuracy',
    'ResultTable',
    'TrialEvaluator',
    'ExperimentDriver',
    'SweepResult',
    'FailedTrial',
    'expand_sweep',
    'save_results',
    'load_results',
    'summarize',
    'InvalidParameters',
    'TrialFailure',
    'FitFailure',
    'InsufficientData',
    'PersistenceFailure',
    'SweepInterrupted',
]
