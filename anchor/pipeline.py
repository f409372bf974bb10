from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Dict

import cv2

from anchor.features import FeatureExtractor
from anchor.match import MatchParams, find_anchor
from api.boundary import anchor_report
from common.config import load_params
from common.logging_setup import log_result, setup_from_params
from common.types import result_to_dict
from common.utils import iso_now_ms, timer_ms


log = logging.getLogger("anchor.pipeline")


def _write_metrics_row(path: Path, row: Dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", buffering=1) as f:
        f.write(json.dumps(row) + "\n")


@timer_ms
def _match(anchor_gray, scene_gray, oracle, params):
    return find_anchor(anchor_gray, scene_gray, oracle=oracle, params=params)


def main() -> None:
    ap = argparse.ArgumentParser(description="Anchor matcher: locate an anchor image inside a scene image")
    ap.add_argument("--config", default="config/params.yaml")
    ap.add_argument("--anchor", required=True, help="Anchor (reference) image path")
    ap.add_argument("--scene", required=True, help="Scene image path")
    ap.add_argument("--method", default=None, help="Override feature method (orb|akaze)")
    ap.add_argument("--out", default=None, help="Append a metrics row to this JSONL file (default: logging.metrics_file)")
    args = ap.parse_args()

    P = load_params(args.config)
    setup_from_params(P, stream=sys.stderr)

    features = dict(P["features"])
    if args.method:
        features["method"] = args.method
    oracle = FeatureExtractor.from_dict(features)
    params = MatchParams.from_dict(P["matching"])

    anchor_gray = cv2.imread(args.anchor, cv2.IMREAD_GRAYSCALE)
    scene_gray = cv2.imread(args.scene, cv2.IMREAD_GRAYSCALE)
    if anchor_gray is None or scene_gray is None:
        log.error("Failed to read input image", extra={"extra": {"anchor": args.anchor, "scene": args.scene}})
        sys.exit(2)

    result, dt_ms = _match(anchor_gray, scene_gray, oracle, params)
    report = anchor_report(result)
    print(json.dumps(report.to_dict(), indent=2))

    log_result(log, "Anchor match finished", result, status=int(report.status), latency_ms=dt_ms)
    out = args.out or P["logging"].get("metrics_file")
    if out:
        row = {"ts": iso_now_ms(), "anchor": args.anchor, "scene": args.scene, "latency_ms": round(dt_ms, 2)}
        row.update(result_to_dict(result))
        _write_metrics_row(Path(out), row)


if __name__ == "__main__":
    main()
