"""
Deterministic synthetic images for matcher and detector tests.
"""

import cv2
import numpy as np

# A4 sheet placed on a dark 640x480 frame (portrait, ~0.707 short/long)
PAPER_FRAME_SIZE = (640, 480)
PAPER_RECT = (172, 31, 295, 417)  # x, y, w, h


def textured_image(width=320, height=240, seed=7):
    """Mid-gray canvas with random filled rectangles, circles and lines."""
    rng = np.random.default_rng(seed)
    img = np.full((height, width), 128, dtype=np.uint8)
    for _ in range(60):
        x0, y0 = int(rng.integers(0, width)), int(rng.integers(0, height))
        x1, y1 = int(rng.integers(0, width)), int(rng.integers(0, height))
        color = int(rng.integers(0, 256))
        kind = int(rng.integers(0, 3))
        if kind == 0:
            cv2.rectangle(img, (x0, y0), (x1, y1), color, -1)
        elif kind == 1:
            cv2.circle(img, (x0, y0), int(rng.integers(4, 30)), color, -1)
        else:
            cv2.line(img, (x0, y0), (x1, y1), color, int(rng.integers(1, 4)))
    return img


def paper_image(rect=PAPER_RECT, size=PAPER_FRAME_SIZE, background=30, paper=230):
    """Bright axis-aligned sheet on a dark background (grayscale)."""
    w, h = size
    x, y, rw, rh = rect
    img = np.full((h, w), background, dtype=np.uint8)
    cv2.rectangle(img, (x, y), (x + rw, y + rh), paper, -1)
    return img


def paper_rect_corners(rect=PAPER_RECT):
    """TL, TR, BR, BL of the drawn sheet."""
    x, y, rw, rh = rect
    return np.array([[x, y], [x + rw, y], [x + rw, y + rh], [x, y + rh]], dtype=float)


def encode_png(img):
    ok, buf = cv2.imencode(".png", img)
    assert ok
    return buf.tobytes()
