from __future__ import annotations

import copy
from pathlib import Path
from typing import Any, Dict, Mapping

import yaml

DEFAULT_PARAMS_PATH = "config/params.yaml"

DEFAULTS: Dict[str, Any] = {
    "logging": {"level": "INFO", "metrics_file": "logs/metrics.jsonl"},
    "matching": {
        "ratio_threshold": 0.75,
        "reprojection_threshold_px": 5.0,
        "min_match_count": 10,
        "min_inlier_ratio": 0.3,
        "ransac_max_iters": 2000,
        "ransac_confidence": 0.995,
    },
    "features": {"method": "orb", "nfeatures": 1000, "fast_threshold": 20},
    "paper": {"preset": "A4"},
    "server": {"host": "0.0.0.0", "port": 8000},
}


def _merge(base: Dict[str, Any], over: Mapping[str, Any]) -> Dict[str, Any]:
    out = copy.deepcopy(base)
    for k, v in over.items():
        if isinstance(v, Mapping) and isinstance(out.get(k), dict):
            out[k] = _merge(out[k], v)
        else:
            out[k] = v
    return out


def load_params(path: str = DEFAULT_PARAMS_PATH) -> Dict[str, Any]:
    """
    Load config/params.yaml deep-merged over built-in defaults.
    A missing file yields the defaults.
    """
    if not Path(path).exists():
        return copy.deepcopy(DEFAULTS)
    with open(path, "r") as f:
        raw = yaml.safe_load(f) or {}
    if not isinstance(raw, Mapping):
        raise ValueError(f"{path}: top level must be a mapping")
    return _merge(DEFAULTS, raw)
