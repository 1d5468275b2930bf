from __future__ import annotations
import logging
from typing import Optional
import numpy as np


def derived_seed(global_seed: int, trial_index: int) -> int:
    """Per-trial 32-bit seed, a hash of (global_seed, trial_index)."""
    ss = np.random.SeedSequence([int(global_seed), int(trial_index)])
    return int(ss.generate_state(1)[0])


def trial_rng(global_seed: int, trial_index: int) -> np.random.Generator:
    # rows record derived_seed, so any single trial can be replayed from its row
    return np.random.default_rng(derived_seed(global_seed, trial_index))


def setup_logging(level: int = logging.INFO, log_file: Optional[str] = None) -> None:
    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=handlers,
        force=True,
    )
