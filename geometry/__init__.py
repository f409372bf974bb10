"""
Geometry — projective estimation shared by the anchor and paper pipelines.

This package provides:
- RANSAC homography estimation over normalised DLT hypotheses (homography.py)
- Quadrilateral plausibility: convexity, aspect distortion, clockwise ordering
  (validate.py)
- Planar PnP camera pose from four corners and pinhole intrinsics (pose.py)
"""
from .homography import HomographyResult, estimate_homography, is_confident
from .pose import CameraIntrinsics, solve_pose
from .validate import is_convex, order_clockwise, validate_quadrilateral

__all__ = [
    "HomographyResult",
    "estimate_homography",
    "is_confident",
    "CameraIntrinsics",
    "solve_pose",
    "is_convex",
    "order_clockwise",
    "validate_quadrilateral",
]
