from __future__ import annotations
"""
Planar perspective-n-point pose: rotation/translation that places a Z=0
object plane in the camera frame, from 2D projections and pinhole intrinsics.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

import cv2
import numpy as np

from common.types import CameraPose
from geometry.homography import points_collinear


@dataclass(frozen=True)
class CameraIntrinsics:
    fx: float
    fy: float
    cx: float
    cy: float

    @classmethod
    def from_focal_length(
        cls,
        focal_length_px: float,
        image_size: Tuple[int, int],
        cx: float = 0.0,
        cy: float = 0.0,
    ) -> "CameraIntrinsics":
        """
        Square-pixel intrinsics. A principal point given as 0 (or less) means
        the image centre. `image_size` is (width, height).
        """
        w, h = image_size
        return cls(
            fx=float(focal_length_px),
            fy=float(focal_length_px),
            cx=float(cx) if cx > 0 else w / 2.0,
            cy=float(cy) if cy > 0 else h / 2.0,
        )

    def matrix(self) -> np.ndarray:
        return np.array([[self.fx, 0.0, self.cx],
                         [0.0, self.fy, self.cy],
                         [0.0, 0.0, 1.0]], dtype=np.float64)


def reprojection_rmse(
    rvec: np.ndarray,
    tvec: np.ndarray,
    object_points: np.ndarray,
    image_points: np.ndarray,
    intrinsics: CameraIntrinsics,
    dist_coeffs: Optional[np.ndarray] = None,
) -> float:
    dist = np.zeros((4, 1)) if dist_coeffs is None else np.asarray(dist_coeffs, dtype=np.float64)
    proj, _ = cv2.projectPoints(
        np.asarray(object_points, dtype=np.float64).reshape(-1, 1, 3),
        np.asarray(rvec, dtype=np.float64).reshape(3, 1),
        np.asarray(tvec, dtype=np.float64).reshape(3, 1),
        intrinsics.matrix(),
        dist,
    )
    err = np.linalg.norm(proj.reshape(-1, 2) - np.asarray(image_points, dtype=np.float64).reshape(-1, 2), axis=1)
    return float(np.sqrt(np.mean(err ** 2)))


def solve_pose(
    object_points: np.ndarray,
    image_points: np.ndarray,
    intrinsics: CameraIntrinsics,
    dist_coeffs: Optional[np.ndarray] = None,
) -> Optional[CameraPose]:
    """
    Solve the camera pose for planar object points (N>=4, Z=0) and their
    image projections. Returns None for degenerate configurations or when the
    solver does not converge.
    """
    obj = np.asarray(object_points, dtype=np.float64).reshape(-1, 3)
    img = np.asarray(image_points, dtype=np.float64).reshape(-1, 2)
    if len(obj) < 4 or len(obj) != len(img):
        return None
    if not (np.all(np.isfinite(obj)) and np.all(np.isfinite(img))):
        return None
    if intrinsics.fx <= 0 or intrinsics.fy <= 0:
        return None
    if points_collinear(obj[:, :2]) or points_collinear(img):
        return None

    K = intrinsics.matrix()
    dist = np.zeros((4, 1)) if dist_coeffs is None else np.asarray(dist_coeffs, dtype=np.float64)

    rvec = tvec = None
    for flag in (cv2.SOLVEPNP_IPPE, cv2.SOLVEPNP_ITERATIVE):
        try:
            ok, r, t = cv2.solvePnP(obj.reshape(-1, 1, 3), img.reshape(-1, 1, 2), K, dist, flags=flag)
        except cv2.error:
            continue
        if ok and np.all(np.isfinite(r)) and np.all(np.isfinite(t)):
            rvec, tvec = r, t
            break
    if rvec is None:
        return None

    rmse = reprojection_rmse(rvec, tvec, obj, img, intrinsics, dist)
    return CameraPose(rotation_vector=rvec, translation_vector=tvec, reprojection_rmse_px=rmse)
