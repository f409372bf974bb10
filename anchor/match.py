from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence, Tuple

import numpy as np

from anchor.features import FeatureExtractor, FeatureOracle, ratio_test
from common.imaging import InputValidationError, to_gray_u8
from common.types import (
    DetectionResult,
    Found,
    InputError,
    InputErrorKind,
    NotFound,
    Point2D,
    PointCorrespondence,
    Quadrilateral,
)
from geometry.homography import (
    MIN_CORRESPONDENCES,
    correspondences_to_arrays,
    estimate_homography_arrays,
    is_confident,
    project_points,
)
from geometry.validate import validate_quadrilateral

log = logging.getLogger("anchor.match")


@dataclass(frozen=True)
class MatchParams:
    """Tunable constants for one matching call."""
    ratio_threshold: float = 0.75
    reprojection_threshold_px: float = 5.0
    min_match_count: int = 10
    min_inlier_ratio: float = 0.3
    ransac_max_iters: int = 2000
    ransac_confidence: float = 0.995

    @classmethod
    def from_dict(cls, d: Optional[Mapping[str, Any]] = None) -> "MatchParams":
        d = dict(d or {})
        unknown = set(d) - set(cls.__dataclass_fields__)
        if unknown:
            raise ValueError(f"Unknown matching parameters: {sorted(unknown)}")
        return cls(
            ratio_threshold=float(d.get("ratio_threshold", cls.ratio_threshold)),
            reprojection_threshold_px=float(d.get("reprojection_threshold_px", cls.reprojection_threshold_px)),
            min_match_count=int(d.get("min_match_count", cls.min_match_count)),
            min_inlier_ratio=float(d.get("min_inlier_ratio", cls.min_inlier_ratio)),
            ransac_max_iters=int(d.get("ransac_max_iters", cls.ransac_max_iters)),
            ransac_confidence=float(d.get("ransac_confidence", cls.ransac_confidence)),
        )


def anchor_metrics(
    corners: Quadrilateral,
    anchor_width: float,
    anchor_height: float,
) -> Tuple[Point2D, float, float]:
    """
    (center, rotation, scale) of a projected anchor:
      center   = mean of the four corners
      rotation = atan2(dy, dx) of the top edge (radians, clockwise-positive with Y down)
      scale    = mean of top/anchor_width and left/anchor_height
    """
    tl, tr, _, _ = corners.corners
    top, _, _, left = corners.edge_lengths()
    rotation = math.atan2(tr.y - tl.y, tr.x - tl.x)
    scale = (top / float(anchor_width) + left / float(anchor_height)) / 2.0
    return corners.center(), rotation, scale


def _solve_and_validate(
    src: np.ndarray,
    dst: np.ndarray,
    anchor_width: int,
    anchor_height: int,
    match_count: int,
    params: MatchParams,
) -> DetectionResult:
    """Steps shared by both entry points: RANSAC, confidence, projection, validation, metrics."""
    hr = estimate_homography_arrays(
        src,
        dst,
        params.reprojection_threshold_px,
        max_iters=params.ransac_max_iters,
        confidence=params.ransac_confidence,
    )
    if not hr.ok:
        log.debug("homography failed", extra={"extra": {"matches": match_count}})
        return NotFound(match_count=match_count, reason="homography_failed")

    if not is_confident(
        hr.inliers,
        hr.total,
        min_inliers=params.min_match_count,
        min_inlier_ratio=params.min_inlier_ratio,
    ):
        log.debug(
            "low-confidence homography",
            extra={"extra": {"inliers": hr.inliers, "matches": hr.total, "rmse_px": hr.rmse_px}},
        )
        return NotFound(match_count=match_count, reason="low_confidence")

    anchor_corners = np.array(
        [[0.0, 0.0], [anchor_width, 0.0], [anchor_width, anchor_height], [0.0, anchor_height]],
        dtype=float,
    )
    projected = project_points(hr.H, anchor_corners)
    if not np.all(np.isfinite(projected)):
        return NotFound(match_count=match_count, reason="implausible_quadrilateral")
    corners = Quadrilateral.from_array(projected)

    if not validate_quadrilateral(corners, anchor_width / float(anchor_height)):
        log.debug("projected anchor rejected", extra={"extra": {"corners": list(corners.flatten())}})
        return NotFound(match_count=match_count, reason="implausible_quadrilateral")

    center, rotation, scale = anchor_metrics(corners, anchor_width, anchor_height)
    log.debug(
        "anchor found",
        extra={"extra": {"inliers": hr.inliers, "matches": match_count, "rmse_px": hr.rmse_px, "scale": scale}},
    )
    return Found(
        homography=hr.H,
        corners=corners,
        center=center,
        rotation=rotation,
        scale=scale,
        inlier_count=hr.inliers,
        match_count=match_count,
    )


def find_anchor(
    anchor_image: np.ndarray,
    scene_image: np.ndarray,
    *,
    oracle: Optional[FeatureOracle] = None,
    params: Optional[MatchParams] = None,
) -> DetectionResult:
    """
    Locate the anchor image inside the scene image.

    Args:
        anchor_image, scene_image: numpy images, grayscale or RGB/RGBA
        oracle: feature detector/matcher (ORB + Hamming brute force by default)
        params: matching constants (MatchParams defaults if omitted)

    Returns:
        Found with scene-space corners, center, rotation and scale;
        NotFound(match_count) when the evidence is insufficient;
        InputError for malformed images.
    """
    params = params or MatchParams()
    try:
        anchor_gray = to_gray_u8(anchor_image)
        scene_gray = to_gray_u8(scene_image)
    except InputValidationError as e:
        return InputError(e.kind, str(e))
    oracle = oracle or FeatureExtractor()

    # 1) keypoints + descriptors
    kps_a, des_a = oracle.detect_and_describe(anchor_gray)
    kps_s, des_s = oracle.detect_and_describe(scene_gray)
    if len(kps_a) < MIN_CORRESPONDENCES or len(kps_s) < MIN_CORRESPONDENCES or len(des_a) == 0 or len(des_s) == 0:
        log.debug("too few keypoints", extra={"extra": {"anchor": len(kps_a), "scene": len(kps_s)}})
        return NotFound(match_count=0, reason="too_few_keypoints")

    # 2) kNN + Lowe ratio
    good = ratio_test(oracle.knn_match(des_a, des_s, 2), params.ratio_threshold)
    match_count = len(good)
    if match_count < params.min_match_count:
        log.debug("too few matches", extra={"extra": {"matches": match_count}})
        return NotFound(match_count=match_count, reason="too_few_matches")

    # 3) RANSAC + validation
    src = np.float64([kps_a[m.queryIdx].pt for m in good]).reshape(-1, 2)
    dst = np.float64([kps_s[m.trainIdx].pt for m in good]).reshape(-1, 2)
    h, w = anchor_gray.shape[:2]
    return _solve_and_validate(src, dst, w, h, match_count, params)


def find_anchor_from_correspondences(
    correspondences: Sequence[PointCorrespondence],
    anchor_width: int,
    anchor_height: int,
    *,
    params: Optional[MatchParams] = None,
) -> DetectionResult:
    """
    Same estimation and validation as find_anchor, for correspondences produced
    by an external matcher (anchor-space source -> scene-space target).
    """
    params = params or MatchParams()
    n = len(correspondences)
    if n < MIN_CORRESPONDENCES:
        return NotFound(match_count=n, reason="too_few_correspondences")
    if anchor_width <= 0 or anchor_height <= 0:
        return InputError(InputErrorKind.INVALID_DIMENSIONS, f"invalid anchor size {anchor_width}x{anchor_height}")
    src, dst = correspondences_to_arrays(correspondences)
    return _solve_and_validate(src, dst, int(anchor_width), int(anchor_height), n, params)
