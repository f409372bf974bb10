"""
Unit tests for the status-coded boundary adapters
"""

import os
import sys

import cv2
import numpy as np
import pytest

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.append(project_root)

from api.boundary import (
    AnchorMatchReport,
    Status,
    anchor_report,
    default_paper_config,
    detect_paper_camera_frame,
    detect_paper_encoded,
    detect_paper_raw,
    lib_version,
    match_encoded_images,
    match_from_correspondences,
    match_raw_images,
)
from common.types import InputError, InputErrorKind, NotFound
from paper.config import PaperDetectionConfig
from tests.fixtures.images import encode_png, paper_image, textured_image


def _pad_rows(img, pad, fill=255):
    """Row-padded plane as delivered by camera buffers; the last row carries no padding."""
    h, w = img.shape
    padded = np.hstack([img, np.full((h, pad), fill, dtype=np.uint8)])
    return padded.tobytes()[:-pad], w + pad


def _grid_points():
    """Anchor grid and its image under a 90 deg clockwise rotation with 2x scale."""
    xs, ys = np.meshgrid(np.linspace(5, 95, 5), np.linspace(5, 45, 4))
    x0, y0 = xs.ravel().tolist(), ys.ravel().tolist()
    x1 = [300.0 - 2.0 * y for y in y0]
    y1 = [100.0 + 2.0 * x for x in x0]
    return x0, y0, x1, y1


class TestStatusCodes:
    """Status values are part of the external contract"""

    def test_values(self):
        assert [int(s) for s in Status] == [1, 0, -1, -2, -3]

    def test_error_kinds_map_to_status(self):
        assert anchor_report(InputError(InputErrorKind.ANCHOR_DECODE_FAILED)).status == -2
        assert anchor_report(InputError(InputErrorKind.SCENE_DECODE_FAILED)).status == -3
        assert anchor_report(InputError(InputErrorKind.INVALID_CHANNELS)).status == -1
        rep = anchor_report(NotFound(match_count=7, reason="too_few_matches"))
        assert (rep.status, rep.num_matches) == (0, 7)

    def test_default_report_is_zeroed(self):
        d = AnchorMatchReport().to_dict()
        assert d["homography"] == [0.0] * 9
        assert d["corners"] == [0.0] * 8
        assert d["status"] == 0


class TestMatchEncoded:
    """JPEG/PNG buffers"""

    def test_found(self):
        png = encode_png(textured_image())
        rep = match_encoded_images(png, png)
        assert rep.status == Status.FOUND
        assert rep.scale == pytest.approx(1.0, abs=0.02)
        assert rep.num_matches >= 10
        assert len(rep.homography) == 9 and len(rep.corners) == 8

    def test_empty_or_missing(self):
        png = encode_png(textured_image())
        assert match_encoded_images(None, png).status == Status.INVALID_INPUT
        assert match_encoded_images(png, b"").status == Status.INVALID_INPUT

    def test_decode_failures(self):
        png = encode_png(textured_image())
        assert match_encoded_images(b"not an image", png).status == Status.ANCHOR_DECODE_FAILED
        assert match_encoded_images(png, b"not an image").status == Status.SCENE_DECODE_FAILED


class TestMatchRaw:
    """Raw pixel buffers"""

    def test_rgb_buffers(self):
        img = textured_image()
        rgb = cv2.cvtColor(img, cv2.COLOR_GRAY2RGB)
        h, w = img.shape
        rep = match_raw_images(rgb.tobytes(), w, h, 3, img.tobytes(), w, h, 1)
        assert rep.status == Status.FOUND

    def test_short_buffer(self):
        img = textured_image()
        h, w = img.shape
        rep = match_raw_images(img.tobytes()[:-1], w, h, 1, img.tobytes(), w, h, 1)
        assert rep.status == Status.INVALID_INPUT

    def test_bad_channels_and_sizes(self):
        img = textured_image()
        h, w = img.shape
        assert match_raw_images(img.tobytes(), w, h, 2, img.tobytes(), w, h, 1).status == Status.INVALID_INPUT
        assert match_raw_images(img.tobytes(), 0, h, 1, img.tobytes(), w, h, 1).status == Status.INVALID_INPUT
        assert match_raw_images(None, w, h, 1, img.tobytes(), w, h, 1).status == Status.INVALID_INPUT

    def test_padded_scene_rows(self):
        """Row padding is stripped before matching"""
        img = textured_image()
        h, w = img.shape
        scene, stride = _pad_rows(img, 64)
        rep = match_raw_images(img.tobytes(), w, h, 1, scene, w, h, 1, scene_row_stride=stride)
        assert rep.status == Status.FOUND
        assert rep.scale == pytest.approx(1.0, abs=0.02)
        assert rep.center_x == pytest.approx(w / 2.0, abs=1.0)

    def test_stride_shorter_than_row(self):
        img = textured_image()
        h, w = img.shape
        rep = match_raw_images(img.tobytes(), w, h, 1, img.tobytes(), w, h, 1, anchor_row_stride=w - 1)
        assert rep.status == Status.INVALID_INPUT


class TestMatchCorrespondences:
    """Parallel point arrays"""

    def test_found(self):
        x0, y0, x1, y1 = _grid_points()
        rep = match_from_correspondences(x0, y0, x1, y1, 100, 50)
        assert rep.status == Status.FOUND
        assert rep.num_matches == 20
        assert rep.scale == pytest.approx(2.0, abs=1e-4)
        assert (rep.center_x, rep.center_y) == (pytest.approx(250.0, abs=1e-4), pytest.approx(200.0, abs=1e-4))

    def test_fewer_than_four_echoes_count(self):
        x0, y0, x1, y1 = (a[:3] for a in _grid_points())
        rep = match_from_correspondences(x0, y0, x1, y1, 100, 50)
        assert rep.status == Status.NOT_FOUND
        assert rep.num_matches == 3

    def test_invalid(self):
        x0, y0, x1, y1 = _grid_points()
        assert match_from_correspondences(None, y0, x1, y1, 100, 50).status == Status.INVALID_INPUT
        assert match_from_correspondences(x0, y0[:-1], x1, y1, 100, 50).status == Status.INVALID_INPUT
        assert match_from_correspondences(x0, y0, x1, y1, 100, -1).status == Status.INVALID_INPUT


class TestPaperBoundary:
    """Paper detection adapters"""

    def test_raw_found(self):
        img = paper_image()
        h, w = img.shape
        rep = detect_paper_raw(img.tobytes(), w, h, 1)
        assert rep.status == Status.FOUND
        assert rep.area > 0 and rep.perimeter > 0
        assert rep.rvec == (0.0, 0.0, 0.0)

    def test_encoded_with_pose(self):
        cfg = default_paper_config().with_camera_intrinsics(800.0)
        rep = detect_paper_encoded(encode_png(paper_image()), cfg)
        assert rep.status == Status.FOUND
        assert rep.tvec[2] > 0
        assert rep.to_dict()["status"] == 1

    def test_not_found_and_invalid(self):
        blank = np.full((120, 160), 50, dtype=np.uint8)
        assert detect_paper_raw(blank.tobytes(), 160, 120, 1).status == Status.NOT_FOUND
        assert detect_paper_raw(blank.tobytes(), 160, 120, 3).status == Status.INVALID_INPUT
        assert detect_paper_encoded(b"\x89PNG garbage").status == Status.INVALID_INPUT
        assert detect_paper_encoded(None).status == Status.INVALID_INPUT

    def test_raw_padded_rows(self):
        """A padded plane gives the same detection as the packed image"""
        img = paper_image()
        h, w = img.shape
        packed = detect_paper_raw(img.tobytes(), w, h, 1)
        plane, stride = _pad_rows(img, 32)
        padded = detect_paper_raw(plane, w, h, 1, row_stride=stride)
        assert padded.status == Status.FOUND
        assert padded.corners == packed.corners
        assert detect_paper_raw(plane[:-1], w, h, 1, row_stride=stride).status == Status.INVALID_INPUT

    def test_camera_frame(self):
        """Camera tuning on a padded luma plane, with and without sensor rotation"""
        img = paper_image()
        h, w = img.shape
        plane, stride = _pad_rows(img, 48, fill=0)
        rep = detect_paper_camera_frame(plane, w, h, stride)
        assert rep.status == Status.FOUND

        rotated = detect_paper_camera_frame(plane, w, h, stride, sensor_rotated=True)
        assert rotated.status == Status.FOUND
        x, y = rep.corners[0], rep.corners[1]
        assert (rotated.corners[0], rotated.corners[1]) == (pytest.approx(h - y), pytest.approx(x))

    def test_camera_frame_rejects_small_sheet(self):
        """Camera tuning requires the sheet to fill at least 10% of the frame"""
        img = paper_image(rect=(258, 150, 123, 174))  # ~7% of the frame
        h, w = img.shape
        assert detect_paper_raw(img.tobytes(), w, h, 1).status == Status.FOUND
        assert detect_paper_camera_frame(img.tobytes(), w, h).status == Status.NOT_FOUND
        assert detect_paper_camera_frame(img.tobytes(), w, h, adjust_for_camera=False).status == Status.FOUND


class TestLibraryInfo:
    def test_defaults_and_version(self):
        assert default_paper_config() == PaperDetectionConfig()
        assert lib_version() == "1.0.0"
