from __future__ import annotations

import logging
from typing import List, Optional

import uvicorn
from fastapi import FastAPI, File, HTTPException, Query, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from anchor.features import FeatureExtractor
from anchor.match import MatchParams
from api.boundary import (
    detect_paper_encoded,
    lib_version,
    match_encoded_images,
    match_from_correspondences,
)
from common.config import load_params
from common.logging_setup import setup_from_params
from paper.config import PaperDetectionConfig
from paper.presets import PRESETS, get_preset, paper_config_from_params


P = load_params()
setup_from_params(P)
log = logging.getLogger("api.server")

MATCH_PARAMS = MatchParams.from_dict(P["matching"])
FEATURES_CFG = dict(P["features"])
PAPER_CFG = paper_config_from_params(P)

app = FastAPI(title="Homography Core API", version=lib_version())

# (Optional) CORS for local dev tools
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class PointMatch(BaseModel):
    x0: float
    y0: float
    x1: float
    y1: float


class PointMatchRequest(BaseModel):
    matches: List[PointMatch]
    anchor_width: int
    anchor_height: int


def _paper_config(preset: Optional[str], focal_length_px: Optional[float]) -> PaperDetectionConfig:
    cfg = PAPER_CFG
    if preset:
        try:
            cfg = get_preset(preset)
        except KeyError:
            raise HTTPException(status_code=400, detail=f"unknown_preset: {preset}")
    if focal_length_px is not None:
        cfg = cfg.with_camera_intrinsics(focal_length_px)
    return cfg


@app.get("/health")
def health():
    return {
        "status": "ok",
        "version": lib_version(),
        "features": FEATURES_CFG,
        "presets": sorted(PRESETS),
    }


@app.get("/paper/config")
def paper_config(preset: Optional[str] = Query(None)):
    """Configured paper defaults, or the values of a named preset."""
    return _paper_config(preset, None).to_dict()


@app.post("/match")
def match(anchor: UploadFile = File(...), scene: UploadFile = File(...)):
    """
    Locate the `anchor` upload inside the `scene` upload.
    Always 200; the report's `status` carries the outcome (1/0/-1/-2/-3).
    """
    anchor_bytes = anchor.file.read()
    scene_bytes = scene.file.read()
    report = match_encoded_images(
        anchor_bytes,
        scene_bytes,
        params=MATCH_PARAMS,
        oracle=FeatureExtractor.from_dict(FEATURES_CFG),
    )
    log.info(
        "match",
        extra={"extra": {"status": int(report.status), "num_matches": report.num_matches,
                         "anchor_bytes": len(anchor_bytes), "scene_bytes": len(scene_bytes)}},
    )
    return report.to_dict()


@app.post("/match/points")
def match_points(req: PointMatchRequest):
    report = match_from_correspondences(
        [m.x0 for m in req.matches],
        [m.y0 for m in req.matches],
        [m.x1 for m in req.matches],
        [m.y1 for m in req.matches],
        req.anchor_width,
        req.anchor_height,
        params=MATCH_PARAMS,
    )
    log.info("match_points", extra={"extra": {"status": int(report.status), "pairs": len(req.matches)}})
    return report.to_dict()


@app.post("/paper")
def paper(
    image: UploadFile = File(...),
    preset: Optional[str] = Query(None),
    focal_length_px: Optional[float] = Query(None, ge=0.0),
    camera: bool = Query(False),
):
    """Detect a sheet in an uploaded image. `camera` applies live-frame tuning."""
    cfg = _paper_config(preset, focal_length_px)
    if camera:
        cfg = cfg.for_camera()
    data = image.file.read()
    report = detect_paper_encoded(data, cfg)
    log.info("paper", extra={"extra": {"status": int(report.status), "preset": preset, "camera": camera, "bytes": len(data)}})
    return report.to_dict()


# -------- local dev entrypoint --------
if __name__ == "__main__":
    uvicorn.run(app, host=P["server"]["host"], port=int(P["server"]["port"]))
