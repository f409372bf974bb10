from __future__ import annotations
"""
Homography estimation from point correspondences.

- RANSAC through cv2.findHomography with a bounded iteration budget; OpenCV
  refines the winning model on its inliers (Levenberg-Marquardt)
- Plain least-squares fit (method 0) for exactly-determined problems such as
  the canonical-rectangle -> paper-quad mapping
- Projection helpers and the dual inlier-confidence policy applied by callers
"""

from dataclasses import dataclass
from typing import FrozenSet, Optional, Sequence, Tuple

import cv2
import numpy as np

from common.types import PointCorrespondence

MIN_CORRESPONDENCES = 4
DEFAULT_REPROJ_THRESHOLD_PX = 5.0
DEFAULT_MAX_ITERS = 2000
DEFAULT_CONFIDENCE = 0.995

# smallest / largest singular value below this means numerically singular
_SINGULAR_RATIO = 1e-10


@dataclass
class HomographyResult:
    H: Optional[np.ndarray]
    inlier_mask: np.ndarray
    inliers: int
    total: int
    rmse_px: float

    @property
    def ok(self) -> bool:
        return self.H is not None

    @property
    def inlier_indices(self) -> FrozenSet[int]:
        return frozenset(int(i) for i in np.flatnonzero(self.inlier_mask))

    @property
    def inlier_ratio(self) -> float:
        return self.inliers / float(self.total) if self.total else 0.0


def _failed(total: int) -> HomographyResult:
    return HomographyResult(None, np.zeros(total, dtype=bool), 0, total, float("inf"))


def is_confident(inliers: int, total: int, *, min_inliers: int = 10, min_inlier_ratio: float = 0.3) -> bool:
    """
    Dual acceptance policy: enough inliers in absolute terms AND as a share of
    all correspondences.
    """
    return inliers >= min_inliers and inliers >= min_inlier_ratio * total


def is_degenerate(H: Optional[np.ndarray]) -> bool:
    if H is None:
        return True
    H = np.asarray(H, dtype=float)
    if H.shape != (3, 3) or not np.all(np.isfinite(H)):
        return True
    s = np.linalg.svd(H, compute_uv=False)
    return s[0] <= 0.0 or s[-1] <= s[0] * _SINGULAR_RATIO


def points_collinear(pts: np.ndarray, tol: float = 1e-9) -> bool:
    """True when all points lie on one line (rank of the centred set < 2)."""
    pts = np.asarray(pts, dtype=float).reshape(-1, 2)
    c = pts - pts.mean(axis=0)
    s = np.linalg.svd(c, compute_uv=False)
    return s[0] <= 0.0 or s[1] <= tol * s[0]


def _normalized(H: np.ndarray) -> np.ndarray:
    H = np.asarray(H, dtype=np.float64)
    if abs(H[2, 2]) > 1e-12:
        H = H / H[2, 2]
    return H


def solve_dlt(src: np.ndarray, dst: np.ndarray) -> Optional[np.ndarray]:
    """
    Solve H with dst ~ H @ src from N >= 4 correspondences, no RANSAC
    (exact for four points, least squares above). None when degenerate.
    """
    src = np.asarray(src, dtype=float).reshape(-1, 2)
    dst = np.asarray(dst, dtype=float).reshape(-1, 2)
    if len(src) < MIN_CORRESPONDENCES or len(src) != len(dst):
        return None
    if not (np.all(np.isfinite(src)) and np.all(np.isfinite(dst))):
        return None
    if points_collinear(src) or points_collinear(dst):
        return None
    H, _ = cv2.findHomography(np.float32(src).reshape(-1, 1, 2), np.float32(dst).reshape(-1, 1, 2), 0)
    if is_degenerate(H):
        return None
    return _normalized(H)


def project_points(H: np.ndarray, pts: np.ndarray) -> np.ndarray:
    """Map (N,2) points through H. Points sent to infinity come back as inf."""
    H = np.asarray(H, dtype=np.float64)
    pts = np.asarray(pts, dtype=np.float64).reshape(-1, 2)
    if len(pts) == 0:
        return np.zeros((0, 2))
    out = cv2.perspectiveTransform(pts.reshape(-1, 1, 2), H).reshape(-1, 2)
    # OpenCV writes 0 where w vanishes; flag those explicitly
    w = pts @ H[2, :2] + H[2, 2]
    out[np.abs(w) < 1e-12] = np.inf
    return out


def reprojection_errors(H: np.ndarray, src: np.ndarray, dst: np.ndarray) -> np.ndarray:
    """Euclidean distance between H(src) and dst, per correspondence (non-finite -> inf)."""
    with np.errstate(invalid="ignore", over="ignore"):
        err = np.linalg.norm(project_points(H, src) - np.asarray(dst, dtype=float).reshape(-1, 2), axis=1)
    err[~np.isfinite(err)] = np.inf
    return err


def invert_homography(H: np.ndarray) -> np.ndarray:
    return _normalized(np.linalg.inv(np.asarray(H, dtype=float)))


def _rmse(err: np.ndarray, mask: np.ndarray) -> float:
    if not mask.any():
        return float("inf")
    return float(np.sqrt(np.mean(err[mask] ** 2)))


def estimate_homography_arrays(
    src: np.ndarray,
    dst: np.ndarray,
    reprojection_threshold: float = DEFAULT_REPROJ_THRESHOLD_PX,
    *,
    max_iters: int = DEFAULT_MAX_ITERS,
    confidence: float = DEFAULT_CONFIDENCE,
) -> HomographyResult:
    """
    Estimate H: src -> dst with RANSAC. `src`, `dst` are (N,2) arrays.
    Returns a result with H=None when N < 4 or no non-degenerate model is found.
    Non-finite rows never count as inliers.
    """
    src = np.asarray(src, dtype=float).reshape(-1, 2)
    dst = np.asarray(dst, dtype=float).reshape(-1, 2)
    n = len(src)
    if n != len(dst):
        raise ValueError("src and dst must have the same length")
    if n < MIN_CORRESPONDENCES:
        return _failed(n)
    finite = np.all(np.isfinite(src), axis=1) & np.all(np.isfinite(dst), axis=1)
    if int(finite.sum()) < MIN_CORRESPONDENCES:
        return _failed(n)

    pts1 = np.float32(src[finite]).reshape(-1, 1, 2)
    pts2 = np.float32(dst[finite]).reshape(-1, 1, 2)
    H, mask = cv2.findHomography(
        pts1,
        pts2,
        cv2.RANSAC,
        ransacReprojThreshold=float(reprojection_threshold),
        maxIters=int(max_iters),
        confidence=float(confidence),
    )
    if H is None or mask is None or is_degenerate(H):
        return _failed(n)
    H = _normalized(H)

    inlier_mask = np.zeros(n, dtype=bool)
    inlier_mask[np.flatnonzero(finite)] = mask.ravel().astype(bool)
    err = reprojection_errors(H, src, dst)
    return HomographyResult(H, inlier_mask, int(inlier_mask.sum()), n, _rmse(err, inlier_mask))


def correspondences_to_arrays(
    correspondences: Sequence[PointCorrespondence],
) -> Tuple[np.ndarray, np.ndarray]:
    src = np.array([c.source.as_tuple() for c in correspondences], dtype=float).reshape(-1, 2)
    dst = np.array([c.target.as_tuple() for c in correspondences], dtype=float).reshape(-1, 2)
    return src, dst


def estimate_homography(
    correspondences: Sequence[PointCorrespondence],
    reprojection_threshold: float = DEFAULT_REPROJ_THRESHOLD_PX,
    *,
    max_iters: int = DEFAULT_MAX_ITERS,
    confidence: float = DEFAULT_CONFIDENCE,
) -> HomographyResult:
    """RANSAC homography over PointCorrespondence objects (source -> target)."""
    src, dst = correspondences_to_arrays(correspondences)
    return estimate_homography_arrays(src, dst, reprojection_threshold, max_iters=max_iters, confidence=confidence)
