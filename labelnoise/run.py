#!/usr/bin/env python3
"""
Label-noise / sample-size sweep runner.

- Expands sample_sizes x noise_levels x repetitions into independent trials
- Fits kernel SVM, linear SVM and logistic regression per trial (joblib pool)
- Saves the full result table once, after every trial has finished
- Aggregates per (sample_size, noise) and records dropped trials

Usage:
  python -m labelnoise.run --config configs/default.yaml --output-dir results
  python -m labelnoise.run --sample-sizes 40 --noise-levels 0 --repetitions 3 --n-jobs 2
"""
import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from .config import SweepConfig, dump_config, load_config
from .driver import ExperimentDriver, SweepResult
from .errors import InsufficientData, PersistenceFailure, SweepInterrupted
from .metrics import noise_gap, summarize
from .store import load_results, save_results
from .utils import setup_logging

logger = logging.getLogger("labelnoise")


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description=__doc__.split("\n\n")[0].strip())
    ap.add_argument('--config', type=str, default=None,
                    help='YAML config; defaults to the reference sweep')
    ap.add_argument('--output-dir', type=str, default='results')
    ap.add_argument('--sample-sizes', type=int, nargs='+', default=None)
    ap.add_argument('--noise-levels', type=float, nargs='+', default=None)
    ap.add_argument('--repetitions', type=int, default=None)
    ap.add_argument('--n-jobs', type=int, default=None)
    ap.add_argument('--seed', type=int, default=None)
    ap.add_argument('--results-file', type=str, default=None,
                    help='artifact name inside output dir (.csv, .joblib or .pkl)')
    ap.add_argument('--timeout', type=float, default=None,
                    help='seconds to wait on any one trial before cancelling the sweep')
    ap.add_argument('--aggregate-only', action='store_true',
                    help='re-summarize an existing results artifact without running trials')
    return ap


def resolve_config(args: argparse.Namespace) -> SweepConfig:
    cfg = load_config(args.config) if args.config else SweepConfig()
    if args.sample_sizes is not None:
        cfg.sample_sizes = list(args.sample_sizes)
    if args.noise_levels is not None:
        cfg.noise_levels = list(args.noise_levels)
    if args.repetitions is not None:
        cfg.repetitions = args.repetitions
    if args.n_jobs is not None:
        cfg.n_jobs = args.n_jobs
    if args.seed is not None:
        cfg.seed = args.seed
    if args.results_file is not None:
        cfg.results_file = args.results_file
    return cfg


def write_outputs(result: SweepResult, cfg: SweepConfig, output_dir: Path) -> Path:
    """Persist the table, then the per-stratum summary and the dropped-trial log."""
    metadata = {'config': cfg.to_dict(), 'seed': cfg.seed,
                'failures': [vars(f) for f in result.failures]}
    path = save_results(result.table, output_dir / cfg.results_file, metadata=metadata)

    counts = result.stratum_counts()
    counts.to_csv(output_dir / 'strata.csv', index=False)
    result.failures_frame().to_csv(output_dir / 'failures.csv', index=False)
    if result.failures:
        logger.warning(f"{len(result.failures)} trials dropped; per-stratum counts:\n"
                       f"{counts[counts['failed'] > 0].to_string(index=False)}")
    return path


def persist(result: SweepResult, cfg: SweepConfig, output_dir: Path) -> bool:
    try:
        write_outputs(result, cfg, output_dir)
    except PersistenceFailure as e:
        logger.error(f"Could not persist results: {e}")
        return False
    return True


def write_summary(table, output_dir: Path) -> None:
    summary = summarize(table)
    summary.to_csv(output_dir / 'summary.csv', index=False)
    logger.info(f"Saved {output_dir / 'summary.csv'}")
    for name, gaps in noise_gap(summary).items():
        worst = max(gaps.items(), key=lambda kv: kv[1])
        logger.info(f"{name}: largest generalization-validation gap {worst[1]:.4f} "
                    f"at m={worst[0][0]}, noise={worst[0][1]}")


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging()

    cfg = resolve_config(args)
    output_dir = Path(args.output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    if args.aggregate_only:
        table = load_results(output_dir / cfg.results_file)
        logger.info(f"Loaded {len(table)} rows from {output_dir / cfg.results_file}")
        write_summary(table, output_dir)
        return 0

    # Save config for provenance
    dump_config(cfg, output_dir / 'config.yaml')

    driver = ExperimentDriver.from_config(cfg, timeout=args.timeout)
    try:
        result = driver.run_config(cfg)
    except SweepInterrupted as e:
        # keep what finished; the artifact name marks it as partial
        cfg.results_file = 'partial_' + cfg.results_file
        if not persist(e.result, cfg, output_dir):
            return 2
        logger.error(f"Sweep {e.reason}; saved {len(e.result.table)} partial rows")
        return 130
    except InsufficientData as e:
        logger.error(str(e))
        if e.result is not None and len(e.result.table):
            if not persist(e.result, cfg, output_dir):
                return 2
        return 1

    if not persist(result, cfg, output_dir):
        return 2

    try:
        write_summary(result.table, output_dir)
    except Exception as e:
        logger.error(f"Aggregation failed: {e}", exc_info=True)
        raise
    return 0


if __name__ == '__main__':
    sys.exit(main())
