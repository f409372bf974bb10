from __future__ import annotations

import enum
import math
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Mapping, Optional, Sequence, Tuple, Union

import cv2
import numpy as np

from common.utils import to_numpy_3x3


@dataclass(frozen=True, slots=True)
class Point2D:
    """Image-plane coordinate (pixels unless stated otherwise)."""
    x: float
    y: float

    def as_tuple(self) -> Tuple[float, float]:
        return (self.x, self.y)


@dataclass(frozen=True, slots=True)
class PointCorrespondence:
    """
    A match between two coordinate spaces: source (anchor) -> target (scene).
    """
    source: Point2D
    target: Point2D

    @classmethod
    def from_coords(cls, x0: float, y0: float, x1: float, y1: float) -> "PointCorrespondence":
        return cls(Point2D(float(x0), float(y0)), Point2D(float(x1), float(y1)))

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "PointCorrespondence":
        """Build from the matched-point JSON shape {"x0", "y0", "x1", "y1"}."""
        return cls.from_coords(d["x0"], d["y0"], d["x1"], d["y1"])


def _distance(a: Point2D, b: Point2D) -> float:
    return math.hypot(b.x - a.x, b.y - a.y)


@dataclass(frozen=True, slots=True)
class Quadrilateral:
    """
    Exactly four corners, canonically ordered clockwise (on screen, Y down)
    starting at top-left: TL, TR, BR, BL.
    """
    corners: Tuple[Point2D, Point2D, Point2D, Point2D]

    def __post_init__(self) -> None:
        pts = tuple(self.corners)
        if len(pts) != 4:
            raise ValueError(f"Quadrilateral needs exactly 4 corners, got {len(pts)}")
        object.__setattr__(self, "corners", pts)

    @classmethod
    def from_array(cls, pts: Iterable[Sequence[float]]) -> "Quadrilateral":
        a = np.asarray(list(pts), dtype=float).reshape(-1, 2)
        return cls(tuple(Point2D(float(x), float(y)) for x, y in a))

    def to_array(self) -> np.ndarray:
        return np.array([p.as_tuple() for p in self.corners], dtype=float)

    def flatten(self) -> Tuple[float, ...]:
        """[x0, y0, x1, y1, x2, y2, x3, y3]"""
        return tuple(v for p in self.corners for v in p.as_tuple())

    def edge_lengths(self) -> Tuple[float, float, float, float]:
        """(top, right, bottom, left)"""
        tl, tr, br, bl = self.corners
        return (_distance(tl, tr), _distance(tr, br), _distance(br, bl), _distance(bl, tl))

    def perimeter(self) -> float:
        return float(sum(self.edge_lengths()))

    def center(self) -> Point2D:
        return Point2D(
            sum(p.x for p in self.corners) / 4.0,
            sum(p.y for p in self.corners) / 4.0,
        )


@dataclass(frozen=True, slots=True, eq=False)
class CameraPose:
    """
    Rotation (Rodrigues axis-angle) and translation placing the target plane
    (Z=0 in object coordinates) in the camera frame.
    """
    rotation_vector: np.ndarray
    translation_vector: np.ndarray
    reprojection_rmse_px: float = 0.0

    def __post_init__(self) -> None:
        for name in ("rotation_vector", "translation_vector"):
            v = np.asarray(getattr(self, name), dtype=float).reshape(-1).copy()
            if v.shape != (3,):
                raise ValueError(f"{name} must have 3 elements")
            v.setflags(write=False)
            object.__setattr__(self, name, v)

    @property
    def rotation_matrix(self) -> np.ndarray:
        R, _ = cv2.Rodrigues(self.rotation_vector.reshape(3, 1).copy())
        return R

    @property
    def distance(self) -> float:
        return float(np.linalg.norm(self.translation_vector))


class InputErrorKind(str, enum.Enum):
    NULL_BUFFER = "null_buffer"
    EMPTY_BUFFER = "empty_buffer"
    INVALID_DIMENSIONS = "invalid_dimensions"
    INVALID_CHANNELS = "invalid_channels"
    DECODE_FAILED = "decode_failed"
    ANCHOR_DECODE_FAILED = "anchor_decode_failed"
    SCENE_DECODE_FAILED = "scene_decode_failed"
    INVALID_POINTS = "invalid_points"


def _frozen_matrix(H: Any) -> np.ndarray:
    m = to_numpy_3x3(H)
    m.setflags(write=False)
    return m


@dataclass(frozen=True, slots=True, eq=False)
class Found:
    """
    Confident detection.

    Attributes:
        homography: 3x3 matrix mapping source (anchor or canonical paper) to image.
        corners: detected quadrilateral in image coordinates.
        center: mean of the four corners.
        rotation: top-edge angle (radians, clockwise-positive with Y down), if derived.
        scale: mean edge scale relative to the source, if derived.
        inlier_count: correspondences consistent with the homography.
        match_count: correspondences fed to estimation.
    """
    homography: np.ndarray = field(repr=False)
    corners: Quadrilateral
    center: Point2D
    rotation: Optional[float] = None
    scale: Optional[float] = None
    inlier_count: int = 0
    match_count: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "homography", _frozen_matrix(self.homography))

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True, slots=True, eq=False)
class PaperFound(Found):
    """Paper detection: adds contour measurements and the optional camera pose."""
    area: float = 0.0
    perimeter: float = 0.0
    aspect_ratio: float = 0.0
    pose: Optional[CameraPose] = None

    @property
    def has_pose(self) -> bool:
        return self.pose is not None

    @property
    def width(self) -> float:
        top, _, bottom, _ = self.corners.edge_lengths()
        return (top + bottom) / 2.0

    @property
    def height(self) -> float:
        _, right, _, left = self.corners.edge_lengths()
        return (left + right) / 2.0


@dataclass(frozen=True, slots=True)
class NotFound:
    """Valid input but no confident geometric result. Not an error."""
    match_count: int = 0
    reason: str = ""

    @property
    def ok(self) -> bool:
        return False


@dataclass(frozen=True, slots=True)
class InputError:
    """Malformed call (null/empty buffers, bad dimensions or channels, undecodable bytes)."""
    kind: InputErrorKind
    message: str = ""

    @property
    def ok(self) -> bool:
        return False


DetectionResult = Union[Found, NotFound, InputError]


def result_to_dict(result: DetectionResult) -> Dict[str, Any]:
    """Loggable summary of a DetectionResult (no image data)."""
    if isinstance(result, InputError):
        return {"result": "input_error", "kind": result.kind.value, "message": result.message}
    if isinstance(result, NotFound):
        return {"result": "not_found", "match_count": result.match_count, "reason": result.reason}
    d: Dict[str, Any] = {
        "result": "found",
        "homography": result.homography.tolist(),
        "corners": list(result.corners.flatten()),
        "center": list(result.center.as_tuple()),
        "rotation": result.rotation,
        "scale": result.scale,
        "inlier_count": result.inlier_count,
        "match_count": result.match_count,
    }
    if isinstance(result, PaperFound):
        d.update(
            area=result.area,
            perimeter=result.perimeter,
            aspect_ratio=result.aspect_ratio,
            rvec=None if result.pose is None else result.pose.rotation_vector.tolist(),
            tvec=None if result.pose is None else result.pose.translation_vector.tolist(),
        )
    return d
