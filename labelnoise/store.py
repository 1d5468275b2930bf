"""Single-artifact persistence for result tables.

`.csv` writes a header-described table; `.joblib` / `.pkl` bundles the rows
with run metadata (config, seed, failures) in one joblib dump.
"""
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

import joblib
import pandas as pd

from .errors import PersistenceFailure
from .trial import ResultTable

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]
JOBLIB_SUFFIXES = ('.joblib', '.pkl')


def _is_joblib(path: Path) -> bool:
    return path.suffix.lower() in JOBLIB_SUFFIXES


def save_results(table: ResultTable, path: PathLike,
                 metadata: Optional[Dict[str, Any]] = None) -> Path:
    path = Path(path)
    df = table.to_frame()
    tmp = path.with_name(path.name + '.tmp')
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        if _is_joblib(path):
            joblib.dump({'rows': df, 'metadata': dict(metadata or {})}, tmp)
        else:
            # repr-precision floats; read back with float_precision='round_trip'
            df.to_csv(tmp, index=False)
        os.replace(tmp, path)
    except OSError as e:
        if tmp.exists():
            tmp.unlink()
        logger.error(f"Failed to save results to {path}", exc_info=True)
        raise PersistenceFailure(path, table, e) from e
    logger.info(f"Saved {len(table)} rows to {path}")
    return path


def load_frame(path: PathLike) -> pd.DataFrame:
    path = Path(path)
    if _is_joblib(path):
        return joblib.load(path)['rows']
    return pd.read_csv(path, float_precision='round_trip')


def load_metadata(path: PathLike) -> Dict[str, Any]:
    path = Path(path)
    if not _is_joblib(path):
        return {}
    return joblib.load(path).get('metadata', {})


def load_results(path: PathLike) -> ResultTable:
    return ResultTable.from_frame(load_frame(path))
