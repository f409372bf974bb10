"""
Paper — rectangular document detection in a single image.

This package provides:
- PaperDetectionConfig with A4 defaults and named presets (ISO A-series,
  US Letter/Legal, cards, square, any rectangle)
- contour-based quadrilateral detection with area/shape/aspect scoring
- canonical-rectangle homography and optional planar camera pose

Entry point:
    python -m paper.pipeline --image photo.jpg --preset A4
"""
from .config import PaperDetectionConfig
from .detect import detect_paper
from .presets import PRESETS, get_preset

__all__ = ["PaperDetectionConfig", "detect_paper", "PRESETS", "get_preset"]
