"""Tests for the parallel sweep driver."""

from __future__ import annotations

import time
import warnings

import pytest
from sklearn.exceptions import ConvergenceWarning

from labelnoise.config import DataConfig
from labelnoise.driver import (
    ExperimentDriver,
    FailedTrial,
    expand_sweep,
    resolve_n_jobs,
    run_trial,
)
from labelnoise.errors import (
    FitFailure,
    InsufficientData,
    InvalidParameters,
    SweepInterrupted,
)
from labelnoise.trial import TrialEvaluator, TrialParameters, TrialResult
from labelnoise.utils import derived_seed


class FailingOddTrials(TrialEvaluator):
    def evaluate(self, params, rng=None, trial=-1, seed=None):
        if trial % 2:
            raise FitFailure(params, "stub", ValueError("boom"))
        return super().evaluate(params, rng, trial=trial, seed=seed)


class FailingNoise(TrialEvaluator):
    def evaluate(self, params, rng=None, trial=-1, seed=None):
        if params.noise == 0.2:
            raise FitFailure(params, "stub", ArithmeticError("overflow"))
        return super().evaluate(params, rng, trial=trial, seed=seed)


class InterruptAt(TrialEvaluator):
    def evaluate(self, params, rng=None, trial=-1, seed=None):
        if trial == 3:
            raise KeyboardInterrupt
        return super().evaluate(params, rng, trial=trial, seed=seed)


class SlowAt(TrialEvaluator):
    def evaluate(self, params, rng=None, trial=-1, seed=None):
        if trial == 2:
            time.sleep(3)
        return super().evaluate(params, rng, trial=trial, seed=seed)


def _lr_only():
    from labelnoise.config import ClassifierConfig
    return {"logistic_regression": ClassifierConfig("logistic_regression")}


def test_expand_sweep_order_and_size():
    plan = expand_sweep([20, 10, 10], [0.1, 0.0], 3)
    assert len(plan) == 2 * 2 * 3
    assert [p.stratum for p in plan[::3]] == [(10, 0.0), (10, 0.1), (20, 0.0), (20, 0.1)]
    assert all(isinstance(p, TrialParameters) for p in plan)


@pytest.mark.parametrize(
    "sizes, levels, reps",
    [([10], [0.0], 0), ([10], [0.0], 1.5), ([], [0.0], 1), ([10], [], 1), ([0], [0.0], 1), ([10], [0.7], 1)],
)
def test_expand_sweep_rejects_bad_definitions(sizes, levels, reps):
    with pytest.raises(InvalidParameters):
        expand_sweep(sizes, levels, reps)


def test_reference_plan_has_40000_trials():
    plan = expand_sweep([10, 20, 30, 40, 50, 100, 500, 1000], [0, 0.1, 0.2, 0.3, 0.4], 1000)
    assert len(plan) == 40000


def test_resolve_n_jobs():
    assert resolve_n_jobs(3) == 3
    assert resolve_n_jobs(None) >= 1
    with pytest.raises(InvalidParameters):
        resolve_n_jobs(0)


def test_run_trial_stamps_index_and_seed(cheap_evaluator):
    out = run_trial(cheap_evaluator, TrialParameters(10, 0.1), 7, 42)
    assert isinstance(out, TrialResult)
    assert out.trial == 7
    assert out.seed == derived_seed(42, 7)


def test_row_seed_replays_the_trial(cheap_evaluator):
    out = run_trial(cheap_evaluator, TrialParameters(10, 0.1), 7, 42)
    replay = cheap_evaluator.evaluate(TrialParameters(10, 0.1), rng=out.seed, trial=7, seed=out.seed)
    assert replay == out


def test_single_stratum_sweep_row_count(cheap_evaluator):
    result = ExperimentDriver(cheap_evaluator).run([100], [0], 1000, n_jobs=1, seed=1)
    assert len(result.table) == 1000
    assert all(r.sample_size == 100 and r.noise == 0.0 for r in result.table)
    assert [r.trial for r in result.table] == list(range(1000))
    assert len({r.seed for r in result.table}) == 1000
    assert result.failures == []


def test_same_seed_same_table_regardless_of_pool_size(cheap_evaluator):
    driver = ExperimentDriver(cheap_evaluator)
    serial = driver.run([10, 20], [0.0, 0.3], 3, n_jobs=1, seed=77)
    parallel = driver.run([10, 20], [0.0, 0.3], 3, n_jobs=2, seed=77)
    assert len(serial.table) == 12
    assert serial.table == parallel.table

    other = driver.run([10, 20], [0.0, 0.3], 3, n_jobs=1, seed=78)
    assert other.table != serial.table


def test_thread_backend_matches_process_backend(cheap_evaluator):
    loky = ExperimentDriver(cheap_evaluator).run([10], [0.1], 4, n_jobs=2, seed=5)
    threads = ExperimentDriver(cheap_evaluator, backend="threading").run([10], [0.1], 4, n_jobs=2, seed=5)
    assert loky.table == threads.table


def test_failed_trials_are_dropped_and_counted():
    evaluator = FailingOddTrials(data=DataConfig(generalization_size=50), classifiers=_lr_only())
    result = ExperimentDriver(evaluator).run([10], [0.0, 0.1], 4, n_jobs=1, seed=3)

    assert len(result.table) == 4
    assert [f.trial for f in result.failures] == [1, 3, 5, 7]
    assert all(isinstance(f, FailedTrial) and "boom" in f.error for f in result.failures)

    counts = result.stratum_counts()
    assert counts["succeeded"].tolist() == [2, 2]
    assert counts["failed"].tolist() == [2, 2]
    assert len(result.failures_frame()) == 4


def test_empty_stratum_raises_insufficient_data():
    evaluator = FailingNoise(data=DataConfig(generalization_size=50), classifiers=_lr_only())
    with pytest.raises(InsufficientData) as info:
        ExperimentDriver(evaluator).run([10], [0.0, 0.2], 2, n_jobs=1, seed=3)
    assert info.value.strata == [(10, 0.2)]
    partial = info.value.result
    assert len(partial.table) == 2
    assert len(partial.failures) == 2


def test_interrupt_keeps_finished_trials():
    evaluator = InterruptAt(data=DataConfig(generalization_size=50), classifiers=_lr_only())
    with pytest.raises(SweepInterrupted) as info:
        ExperimentDriver(evaluator).run([10], [0.0], 10, n_jobs=1, seed=3)
    assert info.value.reason == "interrupted"
    assert [r.trial for r in info.value.result.table] == [0, 1, 2]


def test_invalid_sweep_fails_before_any_trial_runs(monkeypatch):
    calls = []
    monkeypatch.setattr(TrialEvaluator, "evaluate", lambda self, *a, **kw: calls.append(a))
    with pytest.raises(InvalidParameters):
        ExperimentDriver().run([10, 0], [0.0], 2, n_jobs=1)
    assert calls == []


@pytest.mark.parametrize("backend", ["threading", None])
def test_timeout_cancels_sweep_and_keeps_finished_trials(backend):
    evaluator = SlowAt(data=DataConfig(generalization_size=50), classifiers=_lr_only())
    driver = ExperimentDriver(evaluator, backend=backend, timeout=0.5)
    with pytest.raises(SweepInterrupted) as info:
        driver.run([10], [0.0], 6, n_jobs=2, seed=3)
    assert info.value.reason == "timed out"
    trials = [r.trial for r in info.value.result.table]
    assert 2 not in trials
    assert len(trials) < 6


def test_strict_threaded_sweep_leaves_warning_filters_alone():
    from labelnoise.config import ClassifierConfig
    capped = {"logistic_regression": ClassifierConfig("logistic_regression", {"max_iter": 3})}
    evaluator = TrialEvaluator(data=DataConfig(generalization_size=50), classifiers=capped)
    before = list(warnings.filters)
    with warnings.catch_warnings():
        # sklearn still emits its own warning
        warnings.simplefilter("ignore", ConvergenceWarning)
        inner = list(warnings.filters)
        try:
            ExperimentDriver(evaluator, backend="threading").run([40, 200], [0.0, 0.3], 10, n_jobs=4, seed=8)
        except InsufficientData:
            pass
        assert list(warnings.filters) == inner
    assert list(warnings.filters) == before
