"""
Unit tests for planar pose estimation
"""

import os
import sys

import cv2
import numpy as np
import pytest

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.append(project_root)

from common.types import CameraPose
from geometry.pose import CameraIntrinsics, reprojection_rmse, solve_pose

INTRINSICS = CameraIntrinsics(fx=800.0, fy=800.0, cx=320.0, cy=240.0)
SHEET = np.array([[0, 0, 0], [210, 0, 0], [210, 297, 0], [0, 297, 0]], dtype=np.float64)


def _project(rvec, tvec, obj=SHEET):
    img, _ = cv2.projectPoints(obj, rvec, tvec, INTRINSICS.matrix(), np.zeros((4, 1)))
    return img.reshape(-1, 2)


class TestIntrinsics:
    """Pinhole intrinsics"""

    def test_principal_point_defaults_to_center(self):
        k = CameraIntrinsics.from_focal_length(800.0, (640, 480))
        assert (k.cx, k.cy) == (320.0, 240.0)
        assert k.matrix()[0, 0] == 800.0 and k.matrix()[1, 1] == 800.0

    def test_explicit_principal_point(self):
        k = CameraIntrinsics.from_focal_length(900.0, (640, 480), cx=300.0, cy=250.0)
        assert (k.cx, k.cy) == (300.0, 250.0)


class TestSolvePose:
    """PnP on a planar target"""

    def test_round_trip(self):
        """Projected sheet corners recover the generating pose"""
        rvec = np.array([0.3, -0.2, 0.1])
        tvec = np.array([-105.0, -148.0, 600.0])
        pose = solve_pose(SHEET, _project(rvec, tvec), INTRINSICS)

        assert isinstance(pose, CameraPose)
        assert pose.reprojection_rmse_px < 1e-2
        assert np.allclose(pose.translation_vector, tvec, atol=1.0)
        assert np.allclose(pose.rotation_vector, rvec, atol=1e-2)
        assert pose.distance == pytest.approx(np.linalg.norm(tvec), rel=1e-3)
        assert pose.rotation_matrix.shape == (3, 3)

    def test_vectors_are_read_only(self):
        pose = solve_pose(SHEET, _project(np.zeros(3), np.array([-105.0, -148.0, 500.0])), INTRINSICS)
        assert pose is not None
        with pytest.raises(ValueError):
            pose.translation_vector[0] = 1.0

    def test_rmse_helper_zero_for_exact_projection(self):
        rvec = np.array([0.1, 0.0, 0.0])
        tvec = np.array([0.0, 0.0, 400.0])
        assert reprojection_rmse(rvec, tvec, SHEET, _project(rvec, tvec), INTRINSICS) < 1e-9

    def test_collinear_points_rejected(self):
        obj = np.array([[0, 0, 0], [1, 0, 0], [2, 0, 0], [3, 0, 0]], dtype=float)
        img = np.array([[10, 10], [20, 10], [30, 10], [40, 10]], dtype=float)
        assert solve_pose(obj, img, INTRINSICS) is None

    def test_bad_inputs_rejected(self):
        img = _project(np.zeros(3), np.array([0.0, 0.0, 500.0]))
        assert solve_pose(SHEET[:3], img[:3], INTRINSICS) is None
        bad = img.copy()
        bad[0, 0] = np.nan
        assert solve_pose(SHEET, bad, INTRINSICS) is None
        assert solve_pose(SHEET, img, CameraIntrinsics(0.0, 0.0, 320.0, 240.0)) is None
