"""
Anchor — locate a known planar reference image inside a scene.

This package provides:
- a pluggable feature oracle (ORB/AKAZE + Hamming kNN by default)
- Lowe ratio filtering, RANSAC homography and dual inlier-confidence gating
- projection of the anchor outline into the scene with plausibility checks
  and derived center / rotation / scale
- a CLI that matches two image files and emits a JSON report

Entry point:
    python -m anchor.pipeline --anchor anchor.png --scene scene.jpg
"""
from .match import MatchParams, find_anchor, find_anchor_from_correspondences

__all__ = ["MatchParams", "find_anchor", "find_anchor_from_correspondences"]
