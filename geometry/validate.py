from __future__ import annotations
"""
Quadrilateral plausibility checks shared by the anchor matcher and the paper
detector.

Coordinate convention: image coordinates, X to the right, Y pointing down.
A quad ordered clockwise on screen (TL -> TR -> BR -> BL) has all four
vertex cross products positive.
"""

from typing import Iterable, Sequence, Tuple

import numpy as np

from common.types import Point2D, Quadrilateral

MIN_ASPECT_DISTORTION = 0.3
MAX_ASPECT_DISTORTION = 3.0


def _cross(o: Point2D, a: Point2D, b: Point2D) -> float:
    return (a.x - o.x) * (b.y - o.y) - (a.y - o.y) * (b.x - o.x)


def cross_products(quad: Quadrilateral) -> Tuple[float, float, float, float]:
    """Signed cross product at each vertex, walking the quad cyclically."""
    p = quad.corners
    return tuple(_cross(p[i], p[(i + 1) % 4], p[(i + 2) % 4]) for i in range(4))  # type: ignore[return-value]


def is_convex(quad: Quadrilateral) -> bool:
    """True only when all four cross products are strictly positive or strictly negative."""
    cps = cross_products(quad)
    return all(c > 0 for c in cps) or all(c < 0 for c in cps)


def aspect_distortion(quad: Quadrilateral, reference_aspect_ratio: float) -> float:
    """(top edge / left edge) relative to the reference width/height ratio."""
    top, _, _, left = quad.edge_lengths()
    if left <= 0.0 or reference_aspect_ratio <= 0.0:
        return float("inf")
    return (top / left) / reference_aspect_ratio


def validate_quadrilateral(
    quad: Quadrilateral,
    reference_aspect_ratio: float,
    *,
    min_distortion: float = MIN_ASPECT_DISTORTION,
    max_distortion: float = MAX_ASPECT_DISTORTION,
) -> bool:
    """
    Accept a projected quad only if it is convex and its perspective
    foreshortening stays within [min_distortion, max_distortion].
    """
    if not is_convex(quad):
        return False
    d = aspect_distortion(quad, reference_aspect_ratio)
    return min_distortion <= d <= max_distortion


def order_clockwise(points: Iterable[Sequence[float]]) -> Quadrilateral:
    """
    Order 4 points TL, TR, BR, BL:
      TL minimises x+y, TR minimises y-x, BR maximises x+y, BL maximises y-x.
    Degenerate inputs may select the same point twice; the convexity check
    rejects those.
    """
    pts = np.asarray([(p.x, p.y) if isinstance(p, Point2D) else p for p in points], dtype=float).reshape(-1, 2)
    if len(pts) != 4:
        raise ValueError(f"order_clockwise needs 4 points, got {len(pts)}")
    s = pts.sum(axis=1)
    d = pts[:, 1] - pts[:, 0]
    ordered = pts[[int(np.argmin(s)), int(np.argmin(d)), int(np.argmax(s)), int(np.argmax(d))]]
    return Quadrilateral.from_array(ordered)
