from __future__ import annotations
"""
Status-coded entry points.

Each call validates its buffers, runs the matching/detection pipeline and
flattens the DetectionResult into a fixed-layout report:

    status  1  found
            0  not found (valid input, no confident result)
           -1  invalid input (null/empty buffers, bad sizes/channels, decode
               failure for paper detection)
           -2  anchor image failed to decode
           -3  scene image failed to decode
"""

import enum
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Optional, Sequence, Tuple

from anchor.features import FeatureOracle
from anchor.match import MatchParams, find_anchor, find_anchor_from_correspondences
from common import __version__
from common.imaging import InputValidationError, decode_gray, gray_from_raw
from common.types import (
    DetectionResult,
    Found,
    InputError,
    InputErrorKind,
    NotFound,
    PaperFound,
    PointCorrespondence,
)
from paper.config import PaperDetectionConfig
from paper.detect import detect_paper, rotate_result_90_ccw


class Status(enum.IntEnum):
    FOUND = 1
    NOT_FOUND = 0
    INVALID_INPUT = -1
    ANCHOR_DECODE_FAILED = -2
    SCENE_DECODE_FAILED = -3


_ERROR_STATUS = {
    InputErrorKind.ANCHOR_DECODE_FAILED: Status.ANCHOR_DECODE_FAILED,
    InputErrorKind.SCENE_DECODE_FAILED: Status.SCENE_DECODE_FAILED,
}


def _zeros(n: int) -> Tuple[float, ...]:
    return (0.0,) * n


@dataclass
class AnchorMatchReport:
    center_x: float = 0.0
    center_y: float = 0.0
    rotation: float = 0.0
    scale: float = 0.0
    homography: Tuple[float, ...] = field(default_factory=lambda: _zeros(9))
    corners: Tuple[float, ...] = field(default_factory=lambda: _zeros(8))
    num_matches: int = 0
    status: int = Status.NOT_FOUND

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["homography"] = list(self.homography)
        d["corners"] = list(self.corners)
        d["status"] = int(self.status)
        return d


@dataclass
class PaperDetectionReport:
    corners: Tuple[float, ...] = field(default_factory=lambda: _zeros(8))
    center_x: float = 0.0
    center_y: float = 0.0
    homography: Tuple[float, ...] = field(default_factory=lambda: _zeros(9))
    rvec: Tuple[float, ...] = field(default_factory=lambda: _zeros(3))
    tvec: Tuple[float, ...] = field(default_factory=lambda: _zeros(3))
    area: float = 0.0
    perimeter: float = 0.0
    aspect_ratio: float = 0.0
    status: int = Status.NOT_FOUND

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        for k in ("corners", "homography", "rvec", "tvec"):
            d[k] = list(getattr(self, k))
        d["status"] = int(self.status)
        return d


def anchor_report(result: DetectionResult) -> AnchorMatchReport:
    """Flatten a matcher result. num_matches is the inlier count on success."""
    if isinstance(result, InputError):
        return AnchorMatchReport(status=_ERROR_STATUS.get(result.kind, Status.INVALID_INPUT))
    if isinstance(result, NotFound):
        return AnchorMatchReport(num_matches=result.match_count, status=Status.NOT_FOUND)
    assert isinstance(result, Found)
    return AnchorMatchReport(
        center_x=result.center.x,
        center_y=result.center.y,
        rotation=float(result.rotation or 0.0),
        scale=float(result.scale or 0.0),
        homography=tuple(float(v) for v in result.homography.reshape(-1)),
        corners=result.corners.flatten(),
        num_matches=result.inlier_count,
        status=Status.FOUND,
    )


def paper_report(result: DetectionResult) -> PaperDetectionReport:
    if isinstance(result, InputError):
        return PaperDetectionReport(status=Status.INVALID_INPUT)
    if not isinstance(result, PaperFound):
        return PaperDetectionReport(status=Status.NOT_FOUND)
    rep = PaperDetectionReport(
        corners=result.corners.flatten(),
        center_x=result.center.x,
        center_y=result.center.y,
        homography=tuple(float(v) for v in result.homography.reshape(-1)),
        area=result.area,
        perimeter=result.perimeter,
        aspect_ratio=result.aspect_ratio,
        status=Status.FOUND,
    )
    if result.pose is not None:
        rep.rvec = tuple(float(v) for v in result.pose.rotation_vector)
        rep.tvec = tuple(float(v) for v in result.pose.translation_vector)
    return rep


# -----------------------------
# Anchor matching
# -----------------------------

def match_encoded_images(
    anchor_bytes: Optional[bytes],
    scene_bytes: Optional[bytes],
    params: Optional[MatchParams] = None,
    oracle: Optional[FeatureOracle] = None,
) -> AnchorMatchReport:
    """Match two JPEG/PNG buffers."""
    if anchor_bytes is None or scene_bytes is None or len(anchor_bytes) == 0 or len(scene_bytes) == 0:
        return AnchorMatchReport(status=Status.INVALID_INPUT)
    try:
        anchor = decode_gray(anchor_bytes, InputErrorKind.ANCHOR_DECODE_FAILED)
        scene = decode_gray(scene_bytes, InputErrorKind.SCENE_DECODE_FAILED)
    except InputValidationError as e:
        return anchor_report(InputError(e.kind, str(e)))
    return anchor_report(find_anchor(anchor, scene, oracle=oracle, params=params))


def match_raw_images(
    anchor_data: Optional[Any],
    anchor_width: int,
    anchor_height: int,
    anchor_channels: int,
    scene_data: Optional[Any],
    scene_width: int,
    scene_height: int,
    scene_channels: int,
    params: Optional[MatchParams] = None,
    oracle: Optional[FeatureOracle] = None,
    anchor_row_stride: Optional[int] = None,
    scene_row_stride: Optional[int] = None,
) -> AnchorMatchReport:
    """
    Match two raw interleaved pixel buffers (1 = gray, 3 = RGB, 4 = RGBA).
    Row strides describe padded rows; None means tightly packed.
    """
    try:
        anchor = gray_from_raw(anchor_data, anchor_width, anchor_height, anchor_channels, anchor_row_stride)
        scene = gray_from_raw(scene_data, scene_width, scene_height, scene_channels, scene_row_stride)
    except InputValidationError:
        return AnchorMatchReport(status=Status.INVALID_INPUT)
    return anchor_report(find_anchor(anchor, scene, oracle=oracle, params=params))


def match_from_correspondences(
    pts0_x: Optional[Sequence[float]],
    pts0_y: Optional[Sequence[float]],
    pts1_x: Optional[Sequence[float]],
    pts1_y: Optional[Sequence[float]],
    anchor_width: int,
    anchor_height: int,
    params: Optional[MatchParams] = None,
) -> AnchorMatchReport:
    """
    Homography from externally matched points: (pts0_x[i], pts0_y[i]) in the
    anchor corresponds to (pts1_x[i], pts1_y[i]) in the scene.
    Fewer than 4 pairs yields status 0 with the pair count echoed.
    """
    arrays = (pts0_x, pts0_y, pts1_x, pts1_y)
    if any(a is None for a in arrays):
        return AnchorMatchReport(status=Status.INVALID_INPUT)
    n = len(pts0_x)
    if any(len(a) != n for a in arrays):
        return AnchorMatchReport(status=Status.INVALID_INPUT)
    correspondences = [
        PointCorrespondence.from_coords(pts0_x[i], pts0_y[i], pts1_x[i], pts1_y[i]) for i in range(n)
    ]
    result = find_anchor_from_correspondences(correspondences, anchor_width, anchor_height, params=params)
    return anchor_report(result)


# -----------------------------
# Paper detection
# -----------------------------

def detect_paper_raw(
    image_data: Optional[Any],
    image_width: int,
    image_height: int,
    image_channels: int,
    config: Optional[PaperDetectionConfig] = None,
    row_stride: Optional[int] = None,
) -> PaperDetectionReport:
    try:
        gray = gray_from_raw(image_data, image_width, image_height, image_channels, row_stride)
    except InputValidationError:
        return PaperDetectionReport(status=Status.INVALID_INPUT)
    return paper_report(detect_paper(gray, config))


def detect_paper_camera_frame(
    luma_plane: Optional[Any],
    width: int,
    height: int,
    row_stride: Optional[int] = None,
    config: Optional[PaperDetectionConfig] = None,
    *,
    adjust_for_camera: bool = True,
    sensor_rotated: bool = False,
) -> PaperDetectionReport:
    """
    Paper detection on the Y plane of a YUV camera frame.

    Args:
        luma_plane: 8-bit luminance bytes, possibly with padded rows
        row_stride: bytes per row in luma_plane (None = width)
        config: base options; camera tuning is applied on top unless
            adjust_for_camera is False
        sensor_rotated: the sensor delivers frames rotated 90 deg clockwise;
            corners are mapped back with rotate_result_90_ccw
    """
    try:
        gray = gray_from_raw(luma_plane, width, height, 1, row_stride)
    except InputValidationError:
        return PaperDetectionReport(status=Status.INVALID_INPUT)
    cfg = config or PaperDetectionConfig.default()
    if adjust_for_camera:
        cfg = cfg.for_camera()
    result = detect_paper(gray, cfg)
    if sensor_rotated:
        result = rotate_result_90_ccw(result, width, height)
    return paper_report(result)


def detect_paper_encoded(
    image_bytes: Optional[bytes],
    config: Optional[PaperDetectionConfig] = None,
) -> PaperDetectionReport:
    try:
        gray = decode_gray(image_bytes)
    except InputValidationError:
        return PaperDetectionReport(status=Status.INVALID_INPUT)
    return paper_report(detect_paper(gray, config))


def default_paper_config() -> PaperDetectionConfig:
    return PaperDetectionConfig.default()


def lib_version() -> str:
    return __version__
