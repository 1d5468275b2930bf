"""Per-stratum summaries of a result table."""
import logging
from typing import Dict, List
import numpy as np
import pandas as pd

from .trial import GEN_SUFFIX, VAL_SUFFIX, ResultTable

logger = logging.getLogger(__name__)

GROUP_COLS = ['sample_size', 'noise']
GAP_SUFFIX = '_gap_mean'


def q025(s: pd.Series) -> float:
    return float(s.quantile(0.025))


def q975(s: pd.Series) -> float:
    return float(s.quantile(0.975))


def accuracy_columns(df: pd.DataFrame) -> List[str]:
    # both '<clf>_accuracy' and '<clf>_generalization_accuracy'
    return [c for c in df.columns if c.endswith(VAL_SUFFIX)]


def classifier_names(df: pd.DataFrame) -> List[str]:
    return [c[:-len(GEN_SUFFIX)] for c in df.columns if c.endswith(GEN_SUFFIX)]


def summarize(results) -> pd.DataFrame:
    """
    Aggregate accuracies per (sample_size, noise).

    Accepts a ResultTable or its DataFrame. For every accuracy column emits
    mean, std, median, sem and the 2.5% / 97.5% quantiles, plus one `count`
    column and `<classifier>_gap_mean` = generalization mean - validation mean.
    """
    df = results.to_frame() if isinstance(results, ResultTable) else results
    cols = accuracy_columns(df)
    if df.empty or not cols:
        raise ValueError("No result rows to summarize")

    agg = df.groupby(GROUP_COLS).agg({c: ['mean', 'std', 'median', q025, q975] for c in cols})
    agg.columns = ['_'.join(c) for c in agg.columns.values]
    agg = agg.reset_index()

    counts = df.groupby(GROUP_COLS).size().reset_index(name='count')
    agg = counts.merge(agg, on=GROUP_COLS, how='left')

    for c in cols:
        agg[f'{c}_sem'] = agg[f'{c}_std'] / np.sqrt(agg['count'].clip(lower=1))

    for name in classifier_names(df):
        agg[name + GAP_SUFFIX] = agg[f'{name}{GEN_SUFFIX}_mean'] - agg[f'{name}{VAL_SUFFIX}_mean']
    logger.debug(f"Summarized {len(df)} rows into {len(agg)} strata")
    return agg.sort_values(GROUP_COLS).reset_index(drop=True)


def noise_gap(summary: pd.DataFrame) -> Dict[str, Dict]:
    """
    Per classifier, (sample_size, noise) -> generalization minus validation mean.

    Positive gaps mean the noisy validation set under-reports clean-set accuracy.
    """
    out = {}
    for col in [c for c in summary.columns if c.endswith(GAP_SUFFIX)]:
        out[col[:-len(GAP_SUFFIX)]] = {
            (int(m), float(p)): float(g)
            for m, p, g in zip(summary['sample_size'], summary['noise'], summary[col])
        }
    return out
