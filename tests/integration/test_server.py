"""
Integration tests for the HTTP service
"""

import inspect
import os
import sys

import pytest
from fastapi.testclient import TestClient

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.append(project_root)

from api.server import app
from tests.fixtures.images import encode_png, paper_image, textured_image


@pytest.fixture(scope="module")
def client():
    return TestClient(app)


class TestServer:
    """End-to-end requests against the FastAPI app"""

    def test_health(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        body = r.json()
        assert body["status"] == "ok"
        assert body["version"] == "1.0.0"
        assert "A4" in body["presets"]

    def test_paper_config(self, client):
        r = client.get("/paper/config")
        assert r.status_code == 200
        assert r.json()["paper_width_mm"] == 210.0

        r = client.get("/paper/config", params={"preset": "Square"})
        assert r.status_code == 200
        assert r.json()["expected_aspect_ratio"] == 1.0

    def test_unknown_preset(self, client):
        assert client.get("/paper/config", params={"preset": "A9"}).status_code == 400
        files = {"image": ("sheet.png", encode_png(paper_image()), "image/png")}
        assert client.post("/paper", params={"preset": "A9"}, files=files).status_code == 400

    def test_match_uploads(self, client):
        png = encode_png(textured_image())
        files = {
            "anchor": ("anchor.png", png, "image/png"),
            "scene": ("scene.png", png, "image/png"),
        }
        r = client.post("/match", files=files)
        assert r.status_code == 200
        body = r.json()
        assert body["status"] == 1
        assert body["scale"] == pytest.approx(1.0, abs=0.02)

    def test_match_undecodable_scene(self, client):
        files = {
            "anchor": ("anchor.png", encode_png(textured_image()), "image/png"),
            "scene": ("scene.png", b"garbage", "image/png"),
        }
        r = client.post("/match", files=files)
        assert r.status_code == 200
        assert r.json()["status"] == -3

    def test_match_points(self, client):
        matches = [
            {"x0": x, "y0": y, "x1": 300.0 - 2.0 * y, "y1": 100.0 + 2.0 * x}
            for x in (5.0, 27.5, 50.0, 72.5, 95.0)
            for y in (5.0, 18.0, 31.0, 45.0)
        ]
        r = client.post("/match/points", json={"matches": matches, "anchor_width": 100, "anchor_height": 50})
        assert r.status_code == 200
        body = r.json()
        assert body["status"] == 1
        assert body["scale"] == pytest.approx(2.0, abs=1e-4)

        r = client.post("/match/points", json={"matches": matches[:2], "anchor_width": 100, "anchor_height": 50})
        assert r.json()["status"] == 0
        assert r.json()["num_matches"] == 2

    def test_paper_upload(self, client):
        files = {"image": ("sheet.png", encode_png(paper_image()), "image/png")}
        r = client.post("/paper", params={"focal_length_px": 800.0}, files=files)
        assert r.status_code == 200
        body = r.json()
        assert body["status"] == 1
        assert body["tvec"][2] > 0
        assert len(body["corners"]) == 8

    def test_paper_upload_camera_tuning(self, client):
        """A sheet under 10% of the frame is rejected with camera tuning only"""
        png = encode_png(paper_image(rect=(258, 150, 123, 174)))
        assert client.post("/paper", files={"image": ("s.png", png, "image/png")}).json()["status"] == 1
        r = client.post("/paper", params={"camera": True}, files={"image": ("s.png", png, "image/png")})
        assert r.status_code == 200
        assert r.json()["status"] == 0


class TestRouteHandlers:
    """Blocking image routes are plain functions"""

    def test_upload_routes_not_coroutines(self):
        for path in ("/match", "/paper"):
            route = next(r for r in app.routes if getattr(r, "path", None) == path)
            assert not inspect.iscoroutinefunction(route.endpoint), path
