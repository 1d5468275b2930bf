"""Parallel sweep over sample sizes x noise levels x repetitions."""
import concurrent.futures
import logging
import multiprocessing
from dataclasses import dataclass, field
from itertools import product
from typing import Iterable, List, Optional, Tuple

import joblib
from joblib import Parallel, delayed
import pandas as pd

from .config import SweepConfig
from .errors import InsufficientData, InvalidParameters, SweepInterrupted, TrialFailure
from .trial import ResultTable, TrialEvaluator, TrialParameters, TrialResult
from .utils import derived_seed, trial_rng

logger = logging.getLogger(__name__)

Stratum = Tuple[int, float]


@dataclass(frozen=True)
class FailedTrial:
    trial: int
    sample_size: int
    noise: float
    seed: int
    error: str


@dataclass
class SweepResult:
    table: ResultTable
    failures: List[FailedTrial] = field(default_factory=list)
    strata: List[Stratum] = field(default_factory=list)
    repetitions: int = 0
    seed: Optional[int] = None

    def stratum_counts(self) -> pd.DataFrame:
        """Successful and dropped trials per (sample_size, noise)."""
        ok = {s: 0 for s in self.strata}
        failed = {s: 0 for s in self.strata}
        for r in self.table:
            ok[(r.sample_size, r.noise)] = ok.get((r.sample_size, r.noise), 0) + 1
        for f in self.failures:
            failed[(f.sample_size, f.noise)] = failed.get((f.sample_size, f.noise), 0) + 1
        keys = sorted(set(ok) | set(failed))
        return pd.DataFrame({
            'sample_size': [k[0] for k in keys],
            'noise': [k[1] for k in keys],
            'succeeded': [ok.get(k, 0) for k in keys],
            'failed': [failed.get(k, 0) for k in keys],
        })

    def failures_frame(self) -> pd.DataFrame:
        return pd.DataFrame([vars(f) for f in self.failures],
                            columns=['trial', 'sample_size', 'noise', 'seed', 'error'])

    def empty_strata(self) -> List[Stratum]:
        counts = self.stratum_counts()
        empty = counts[counts['succeeded'] == 0]
        return [(int(m), float(p)) for m, p in zip(empty['sample_size'], empty['noise'])]


def expand_sweep(sample_sizes: Iterable[int], noise_levels: Iterable[float],
                 repetitions: int) -> List[TrialParameters]:
    """Trial parameters in trial-index order: sample size, then noise, then repetition.

    Duplicate sizes/levels collapse, so the order only depends on the sets.
    """
    if isinstance(repetitions, bool) or int(repetitions) != repetitions or repetitions < 1:
        raise InvalidParameters(f"repetitions must be a positive integer, got {repetitions!r}")
    sizes = sorted(set(sample_sizes))
    levels = sorted(set(float(p) for p in noise_levels))
    if not sizes or not levels:
        raise InvalidParameters("sample_sizes and noise_levels must both be non-empty")
    # validates every combination before any randomness is drawn
    cells = [TrialParameters(m, p) for m, p in product(sizes, levels)]
    return [params for params in cells for _ in range(int(repetitions))]


def run_trial(evaluator: TrialEvaluator, params: TrialParameters, trial: int, global_seed: int):
    """Worker body: a pure function of (params, trial index, global seed)."""
    seed = derived_seed(global_seed, trial)
    try:
        return evaluator.evaluate(params, trial_rng(global_seed, trial), trial=trial, seed=seed)
    except TrialFailure as e:
        return FailedTrial(trial=trial, sample_size=params.sample_size, noise=params.noise,
                           seed=seed, error=str(e))


def resolve_n_jobs(n_jobs: Optional[int]) -> int:
    if n_jobs is None:
        return joblib.cpu_count()
    if isinstance(n_jobs, bool) or int(n_jobs) != n_jobs or n_jobs < 1:
        raise InvalidParameters(f"n_jobs must be a positive integer, got {n_jobs!r}")
    return int(n_jobs)


class ExperimentDriver:
    """Fans trials out over a bounded joblib pool and joins them into one table.

    `backend` is any joblib backend name ('loky' processes by default).
    `timeout` bounds each task's wait; hitting it cancels the sweep.
    """

    def __init__(self, evaluator: Optional[TrialEvaluator] = None,
                 backend: Optional[str] = None, timeout: Optional[float] = None,
                 progress_every: float = 0.1):
        self.evaluator = evaluator or TrialEvaluator()
        self.backend = backend
        self.timeout = timeout
        self.progress_every = progress_every

    @classmethod
    def from_config(cls, cfg: SweepConfig, **kwargs) -> "ExperimentDriver":
        evaluator = TrialEvaluator(cfg.data, cfg.classifiers, cfg.convergence_warnings_as_errors)
        return cls(evaluator, **kwargs)

    def run_config(self, cfg: SweepConfig) -> SweepResult:
        return self.run(cfg.sample_sizes, cfg.noise_levels, cfg.repetitions,
                        n_jobs=cfg.n_jobs, seed=cfg.seed)

    def run(self, sample_sizes: Iterable[int], noise_levels: Iterable[float],
            repetitions: int, n_jobs: Optional[int] = None, seed: int = 0) -> SweepResult:
        plan = expand_sweep(sample_sizes, noise_levels, repetitions)
        n_jobs = resolve_n_jobs(n_jobs)
        strata = list(dict.fromkeys(p.stratum for p in plan))
        total = len(plan)
        logger.info(f"Sweep: {len(strata)} strata x {repetitions} repetitions = "
                    f"{total} trials on {n_jobs} workers (seed={seed})")

        result = SweepResult(table=ResultTable(), strata=strata,
                             repetitions=int(repetitions), seed=seed)
        step = max(1, int(total * self.progress_every))

        parallel = Parallel(n_jobs=n_jobs, backend=self.backend,
                            return_as='generator_unordered', timeout=self.timeout)
        outputs = parallel(delayed(run_trial)(self.evaluator, params, i, seed)
                           for i, params in enumerate(plan))
        done = 0
        try:
            for out in outputs:
                self._collect(result, out)
                done += 1
                if done % step == 0 or done == total:
                    logger.info(f"Completed {done}/{total} trials "
                                f"({len(result.failures)} dropped)")
        except KeyboardInterrupt:
            logger.warning(f"Sweep interrupted after {done}/{total} trials")
            raise SweepInterrupted(self._finish(result), reason="interrupted") from None
        except (TimeoutError, concurrent.futures.TimeoutError, multiprocessing.TimeoutError) as e:
            logger.error(f"Sweep timed out after {done}/{total} trials")
            raise SweepInterrupted(self._finish(result), reason="timed out") from e

        self._finish(result)
        empty = result.empty_strata()
        if empty:
            logger.error(f"No successful trials for strata: {empty}")
            raise InsufficientData(empty, result)
        return result

    def _collect(self, result: SweepResult, out) -> None:
        if isinstance(out, TrialResult):
            result.table.append(out)
        else:
            logger.warning(f"Dropping trial {out.trial} (m={out.sample_size}, "
                           f"noise={out.noise}, seed={out.seed}): {out.error}")
            result.failures.append(out)

    @staticmethod
    def _finish(result: SweepResult) -> SweepResult:
        result.table = result.table.sorted()
        result.failures.sort(key=lambda f: f.trial)
        return result
