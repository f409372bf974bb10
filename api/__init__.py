"""
API — outer surfaces of the homography core.

- boundary: status-coded adapters (1 found, 0 not found, -1 invalid input,
  -2 anchor decode failure, -3 scene decode failure) returning flat reports
- server: FastAPI service exposing matching and paper detection over HTTP

Entry point:
    python -m api.server
"""
from .boundary import (
    AnchorMatchReport,
    PaperDetectionReport,
    Status,
    default_paper_config,
    detect_paper_encoded,
    detect_paper_raw,
    lib_version,
    match_encoded_images,
    match_from_correspondences,
    match_raw_images,
)

__all__ = [
    "AnchorMatchReport",
    "PaperDetectionReport",
    "Status",
    "default_paper_config",
    "detect_paper_encoded",
    "detect_paper_raw",
    "lib_version",
    "match_encoded_images",
    "match_from_correspondences",
    "match_raw_images",
]
