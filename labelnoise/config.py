from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional, Tuple
import yaml

from .errors import InvalidParameters

REFERENCE_SAMPLE_SIZES = (10, 20, 30, 40, 50, 100, 500, 1000)
REFERENCE_NOISE_LEVELS = (0.0, 0.1, 0.2, 0.3, 0.4)


@dataclass
class DataConfig:
    mean_a: Tuple[float, float] = (1.0, 1.0)
    mean_b: Tuple[float, float] = (2.0, 2.0)
    cov: Tuple[Tuple[float, float], Tuple[float, float]] = ((0.5, 0.0), (0.0, 0.5))
    generalization_size: int = 10000   # per class, noise-free


@dataclass
class ClassifierConfig:
    kind: str                          # 'kernel_svm' | 'linear_svm' | 'logistic_regression'
    params: Dict[str, Any] = field(default_factory=dict)


def default_classifiers() -> Dict[str, ClassifierConfig]:
    return {
        "kernel_svm": ClassifierConfig("kernel_svm", {"C": 1.0, "gamma": "scale"}),
        "linear_svm": ClassifierConfig("linear_svm", {"C": 1.0, "max_iter": 5000}),
        "logistic_regression": ClassifierConfig("logistic_regression", {"C": 1.0, "max_iter": 2000}),
    }


@dataclass
class SweepConfig:
    sample_sizes: List[int] = field(default_factory=lambda: list(REFERENCE_SAMPLE_SIZES))
    noise_levels: List[float] = field(default_factory=lambda: list(REFERENCE_NOISE_LEVELS))
    repetitions: int = 1000
    n_jobs: Optional[int] = None       # None -> joblib.cpu_count()
    seed: int = 20240501
    data: DataConfig = field(default_factory=DataConfig)
    classifiers: Dict[str, ClassifierConfig] = field(default_factory=default_classifiers)
    convergence_warnings_as_errors: bool = True
    results_file: str = "results.csv"

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        data = d.pop("data")
        d.update({
            "mean_a": list(data["mean_a"]),
            "mean_b": list(data["mean_b"]),
            "cov": [list(r) for r in data["cov"]],
            "generalization_size": data["generalization_size"],
        })
        return d


def _pair(value: Any, name: str) -> Tuple[float, float]:
    vals = tuple(float(v) for v in value)
    if len(vals) != 2:
        raise InvalidParameters(f"{name} must have exactly two entries, got {value!r}")
    return vals


def config_from_dict(raw: Dict[str, Any]) -> SweepConfig:
    raw = dict(raw or {})
    data = DataConfig()
    if "mean_a" in raw:
        data.mean_a = _pair(raw.pop("mean_a"), "mean_a")
    if "mean_b" in raw:
        data.mean_b = _pair(raw.pop("mean_b"), "mean_b")
    if "cov" in raw:
        rows = raw.pop("cov")
        if len(rows) != 2:
            raise InvalidParameters(f"cov must be 2x2, got {rows!r}")
        data.cov = (_pair(rows[0], "cov[0]"), _pair(rows[1], "cov[1]"))
    if "generalization_size" in raw:
        data.generalization_size = int(raw.pop("generalization_size"))

    cfg = SweepConfig(data=data)
    if "classifiers" in raw:
        clfs = raw.pop("classifiers") or {}
        cfg.classifiers = {
            name: ClassifierConfig(kind=entry.get("kind", name), params=dict(entry.get("params") or {}))
            for name, entry in clfs.items()
        }
    # Ensure numeric values are properly typed (YAML reads 1e-3 as a string)
    if "sample_sizes" in raw:
        cfg.sample_sizes = [int(m) for m in raw.pop("sample_sizes")]
    if "noise_levels" in raw:
        cfg.noise_levels = [float(p) for p in raw.pop("noise_levels")]
    if "repetitions" in raw:
        cfg.repetitions = int(raw.pop("repetitions"))
    if "n_jobs" in raw:
        n_jobs = raw.pop("n_jobs")
        cfg.n_jobs = None if n_jobs is None else int(n_jobs)
    if "seed" in raw:
        cfg.seed = int(raw.pop("seed"))
    if "convergence_warnings_as_errors" in raw:
        cfg.convergence_warnings_as_errors = bool(raw.pop("convergence_warnings_as_errors"))
    if "results_file" in raw:
        cfg.results_file = str(raw.pop("results_file"))
    if raw:
        raise InvalidParameters(f"unrecognized config options: {sorted(raw)}")
    return cfg


def load_config(config_path: str) -> SweepConfig:
    with open(config_path, 'r') as f:
        raw = yaml.safe_load(f)
    return config_from_dict(raw)


def dump_config(cfg: SweepConfig, path) -> None:
    with open(path, 'w') as f:
        yaml.safe_dump(cfg.to_dict(), f, sort_keys=False)
