from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Dict

import cv2

from api.boundary import paper_report
from common.config import load_params
from common.logging_setup import log_result, setup_from_params
from common.types import result_to_dict
from common.utils import iso_now_ms, timer_ms
from paper.detect import detect_paper, rotate_result_90_ccw
from paper.presets import get_preset, paper_config_from_params


log = logging.getLogger("paper.pipeline")


def _write_metrics_row(path: Path, row: Dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", buffering=1) as f:
        f.write(json.dumps(row) + "\n")


@timer_ms
def _detect(gray, cfg):
    return detect_paper(gray, cfg)


def main() -> None:
    ap = argparse.ArgumentParser(description="Paper detector: find a document-like quadrilateral in an image")
    ap.add_argument("--config", default="config/params.yaml")
    ap.add_argument("--image", required=True, help="Input image path")
    ap.add_argument("--preset", default=None, help="Paper preset (A4, US Letter, Credit Card, ...)")
    ap.add_argument("--focal", type=float, default=None, help="Focal length in px; enables pose estimation")
    ap.add_argument("--rotated", action="store_true", help="Image is sensor-rotated; map corners 90 deg CCW")
    ap.add_argument("--camera", action="store_true", help="Apply live camera-frame tuning (area 10-90%%, blur 7)")
    ap.add_argument("--out", default=None, help="Append a metrics row to this JSONL file (default: logging.metrics_file)")
    args = ap.parse_args()

    P = load_params(args.config)
    setup_from_params(P, stream=sys.stderr)

    cfg = paper_config_from_params(P)
    if args.preset:
        try:
            cfg = get_preset(args.preset)
        except KeyError as e:
            ap.error(str(e))
    if args.focal is not None:
        cfg = cfg.with_camera_intrinsics(args.focal)
    if args.camera:
        cfg = cfg.for_camera()

    gray = cv2.imread(args.image, cv2.IMREAD_GRAYSCALE)
    if gray is None:
        log.error("Failed to read input image", extra={"extra": {"image": args.image}})
        sys.exit(2)

    result, dt_ms = _detect(gray, cfg)
    if args.rotated:
        h, w = gray.shape[:2]
        result = rotate_result_90_ccw(result, w, h)
    report = paper_report(result)
    print(json.dumps(report.to_dict(), indent=2))

    log_result(log, "Paper detection finished", result, status=int(report.status), latency_ms=dt_ms)
    out = args.out or P["logging"].get("metrics_file")
    if out:
        row = {"ts": iso_now_ms(), "image": args.image, "preset": args.preset, "camera": args.camera, "latency_ms": round(dt_ms, 2)}
        row.update(result_to_dict(result))
        _write_metrics_row(Path(out), row)


if __name__ == "__main__":
    main()
