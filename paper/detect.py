from __future__ import annotations
"""
Contour-based paper/document detection:
blur -> Canny -> dilate -> external contours -> 4-vertex polygon
approximation -> geometric filtering and scoring -> canonical-rectangle
homography (+ optional planar PnP pose).
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

import cv2
import numpy as np

from common.imaging import InputValidationError, to_gray_u8
from common.types import DetectionResult, InputError, NotFound, PaperFound, Quadrilateral
from geometry.homography import is_degenerate
from geometry.pose import CameraIntrinsics, solve_pose
from geometry.validate import is_convex, order_clockwise
from paper.config import PaperDetectionConfig

log = logging.getLogger("paper.detect")

APPROX_EPSILON_FRACTION = 0.035   # of contour perimeter
MIN_EDGE_FRACTION = 0.05          # of min(image width, height)
DEFAULT_PAPER_MM = (210.0, 297.0)


@dataclass(frozen=True)
class PaperCandidate:
    quad: Quadrilateral
    area: float
    aspect_ratio: float
    score: float


def _relative_aspect_error(aspect_ratio: float, expected: float) -> float:
    return abs(aspect_ratio - expected) / expected


def _observed_aspect(quad: Quadrilateral) -> Tuple[float, float, float]:
    """(width, height, min/max ratio) from averaged opposite edges."""
    top, right, bottom, left = quad.edge_lengths()
    width = (top + bottom) / 2.0
    height = (left + right) / 2.0
    long_side = max(width, height)
    return width, height, (min(width, height) / long_side) if long_side > 0 else 0.0


def _edge_map(gray: np.ndarray, cfg: PaperDetectionConfig) -> np.ndarray:
    k = int(cfg.blur_kernel_size)
    blurred = cv2.GaussianBlur(gray, (k, k), 0) if k > 0 and k % 2 == 1 else gray
    edges = cv2.Canny(blurred, int(cfg.edge_threshold_low), int(cfg.edge_threshold_high))
    kernel = cv2.getStructuringElement(cv2.MORPH_RECT, (3, 3))
    return cv2.dilate(edges, kernel)


def find_paper_candidates(gray: np.ndarray, cfg: PaperDetectionConfig) -> List[PaperCandidate]:
    """All contours that survive the area, shape, convexity, edge and aspect filters."""
    h, w = gray.shape[:2]
    image_area = float(w * h)
    min_area = image_area * cfg.min_area_ratio
    max_area = image_area * cfg.max_area_ratio
    min_edge = min(w, h) * MIN_EDGE_FRACTION

    contours, _ = cv2.findContours(_edge_map(gray, cfg), cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)

    out: List[PaperCandidate] = []
    for contour in contours:
        area = float(cv2.contourArea(contour))
        if area < min_area or area > max_area:
            continue

        peri = cv2.arcLength(contour, True)
        approx = cv2.approxPolyDP(contour, APPROX_EPSILON_FRACTION * peri, True)
        if len(approx) != 4:
            continue

        quad = order_clockwise(approx.reshape(4, 2).astype(float))
        if not is_convex(quad):
            continue
        if min(quad.edge_lengths()) < min_edge:
            continue

        _, _, aspect = _observed_aspect(quad)
        aspect_score = 1.0
        if cfg.expected_aspect_ratio > 0:
            err = _relative_aspect_error(aspect, cfg.expected_aspect_ratio)
            if err > cfg.aspect_tolerance:
                continue
            aspect_score = 1.0 - err

        # absolute area: larger documents win at equal aspect fit
        out.append(PaperCandidate(quad=quad, area=area, aspect_ratio=aspect, score=area * aspect_score))
    return out


def canonical_rectangle(cfg: PaperDetectionConfig, landscape: bool = False) -> np.ndarray:
    """
    [0,0]-[W,0]-[W,H]-[0,H] in millimetres. The long side runs along X for
    landscape detections and along Y otherwise, whatever the orientation of
    the configured paper size.

    This differs from swapping width and height whenever the quad is wider
    than tall: that swap keys off the configured orientation, so a landscape
    preset (297x210) on a landscape sheet would flip back to 210x297 and a
    portrait sheet would get a 297-wide rectangle. Ordering by short/long side
    gives the same result for portrait presets and the right one for both.
    """
    pw = cfg.paper_width_mm if cfg.paper_width_mm > 0 else DEFAULT_PAPER_MM[0]
    ph = cfg.paper_height_mm if cfg.paper_height_mm > 0 else DEFAULT_PAPER_MM[1]
    short, long_ = min(pw, ph), max(pw, ph)
    pw, ph = (long_, short) if landscape else (short, long_)
    return np.array([[0.0, 0.0], [pw, 0.0], [pw, ph], [0.0, ph]], dtype=float)


def detect_paper(image: np.ndarray, config: Optional[PaperDetectionConfig] = None) -> DetectionResult:
    """
    Detect the best paper-like quadrilateral in an image.

    Args:
        image: numpy image, grayscale or RGB/RGBA
        config: detection options (A4 defaults if omitted)

    Returns:
        PaperFound with corners (clockwise from top-left), center, contour area,
        perimeter, aspect ratio, canonical->image homography and, when a focal
        length is configured, the camera pose; NotFound when no quadrilateral
        survives; InputError for malformed images.
    """
    cfg = config or PaperDetectionConfig.default()
    try:
        gray = to_gray_u8(image)
    except InputValidationError as e:
        return InputError(e.kind, str(e))

    candidates = find_paper_candidates(gray, cfg)
    if not candidates:
        log.debug("no paper candidate", extra={"extra": {"shape": list(gray.shape)}})
        return NotFound(match_count=0, reason="no_candidate")
    best = max(candidates, key=lambda c: c.score)

    quad = best.quad
    width, height, _ = _observed_aspect(quad)
    canonical = canonical_rectangle(cfg, landscape=width > height)
    H = cv2.getPerspectiveTransform(np.float32(canonical), np.float32(quad.to_array()))
    if is_degenerate(H):
        return NotFound(match_count=0, reason="homography_failed")

    pose = None
    if cfg.focal_length_px > 0:
        h, w = gray.shape[:2]
        intrinsics = CameraIntrinsics.from_focal_length(
            cfg.focal_length_px, (w, h), cfg.principal_point_x, cfg.principal_point_y
        )
        object_points = np.hstack([canonical, np.zeros((4, 1))])
        pose = solve_pose(object_points, quad.to_array(), intrinsics)
        if pose is None:
            log.debug("pose solve failed", extra={"extra": {"corners": list(quad.flatten())}})

    log.debug(
        "paper found",
        extra={"extra": {"candidates": len(candidates), "area": best.area, "aspect": best.aspect_ratio}},
    )
    return PaperFound(
        homography=H,
        corners=quad,
        center=quad.center(),
        inlier_count=4,
        match_count=4,
        area=best.area,
        perimeter=quad.perimeter(),
        aspect_ratio=best.aspect_ratio,
        pose=pose,
    )


def rotate_result_90_ccw(result: DetectionResult, image_width: int, image_height: int) -> DetectionResult:
    """
    Map a paper detection made on a frame delivered rotated by the sensor back
    to display orientation: (x, y) -> (image_height - y, x). The homography is
    composed with the same transform so it still maps onto the rotated corners.
    Corner order is preserved; non-Found results pass through unchanged.
    """
    if not isinstance(result, PaperFound):
        return result
    R = np.array([[0.0, -1.0, float(image_height)],
                  [1.0, 0.0, 0.0],
                  [0.0, 0.0, 1.0]])
    pts = result.corners.to_array()
    rotated = np.stack([image_height - pts[:, 1], pts[:, 0]], axis=1)
    corners = Quadrilateral.from_array(rotated)
    return PaperFound(
        homography=R @ result.homography,
        corners=corners,
        center=corners.center(),
        rotation=result.rotation,
        scale=result.scale,
        inlier_count=result.inlier_count,
        match_count=result.match_count,
        area=result.area,
        perimeter=result.perimeter,
        aspect_ratio=result.aspect_ratio,
        pose=result.pose,
    )
