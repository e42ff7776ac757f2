"""
Pure planar geometry over pixel coordinates.

All functions accept a sequence of Point2D (or (x, y) pairs) and return
plain floats; nothing here knows about page scale or detection classes.
Rings are implicitly closed, paths are open.
"""

import math
from typing import Iterable, Sequence, Union

import numpy as np

from takeoff_editor.domain.models import (
    BoundingBox,
    Detection,
    Point2D,
    PolygonWithHoles,
    Polyline,
    SimplePolygon,
)

PointLike = Union[Point2D, tuple[float, float], list[float]]
GeometryLike = Union[SimplePolygon, PolygonWithHoles, Polyline]


def to_array(points: Iterable[PointLike]) -> np.ndarray:
    """(n, 2) float array from Point2D objects or (x, y) pairs."""
    coords = [(p.x, p.y) if isinstance(p, Point2D) else (p[0], p[1]) for p in points]
    if not coords:
        return np.zeros((0, 2), dtype=float)
    return np.asarray(coords, dtype=float)


def to_points(coords: Iterable[Sequence[float]]) -> list[Point2D]:
    return [Point2D(x=float(c[0]), y=float(c[1])) for c in coords]


# ---------------------------------------------------------------------------
# Rings and paths
# ---------------------------------------------------------------------------
def signed_ring_area(points: Sequence[PointLike]) -> float:
    """Shoelace area; positive when the ring winds clockwise on screen (y down)."""
    pts = to_array(points)
    if len(pts) < 3:
        return 0.0
    x, y = pts[:, 0], pts[:, 1]
    return float(0.5 * np.sum(x * np.roll(y, -1) - np.roll(x, -1) * y))


def ring_area(points: Sequence[PointLike]) -> float:
    """Unsigned shoelace area of a closed ring, in square pixels."""
    return abs(signed_ring_area(points))


def ring_perimeter(points: Sequence[PointLike]) -> float:
    """Length of a closed ring including the closing edge."""
    pts = to_array(points)
    if len(pts) < 2:
        return 0.0
    deltas = np.roll(pts, -1, axis=0) - pts
    return float(np.sum(np.hypot(deltas[:, 0], deltas[:, 1])))


def path_length(points: Sequence[PointLike]) -> float:
    """Length of an open path (no closing edge)."""
    pts = to_array(points)
    if len(pts) < 2:
        return 0.0
    deltas = np.diff(pts, axis=0)
    return float(np.sum(np.hypot(deltas[:, 0], deltas[:, 1])))


def edges(points: Sequence[PointLike], closed: bool = True) -> list[tuple[np.ndarray, np.ndarray]]:
    """Consecutive vertex pairs; the closing edge is included for rings."""
    pts = to_array(points)
    pairs = [(pts[i], pts[i + 1]) for i in range(len(pts) - 1)]
    if closed and len(pts) > 2:
        pairs.append((pts[-1], pts[0]))
    return pairs


def edge_angle_deg(a: np.ndarray, b: np.ndarray) -> float:
    """Angle of an edge from the horizontal, folded into [0, 90]."""
    dx, dy = abs(b[0] - a[0]), abs(b[1] - a[1])
    if dx == 0 and dy == 0:
        return 0.0
    return math.degrees(math.atan2(dy, dx))


def bounding_box(points: Sequence[PointLike]) -> BoundingBox:
    """Axis-aligned bounding box with (x, y) at the center."""
    pts = to_array(points)
    if len(pts) == 0:
        return BoundingBox(x=0.0, y=0.0, width=0.0, height=0.0)
    min_x, min_y = pts.min(axis=0)
    max_x, max_y = pts.max(axis=0)
    return BoundingBox(
        x=float((min_x + max_x) / 2),
        y=float((min_y + max_y) / 2),
        width=float(max_x - min_x),
        height=float(max_y - min_y),
    )


def rect_to_ring(x: float, y: float, width: float, height: float) -> list[Point2D]:
    """Center box -> 4 corners, clockwise on screen from the top-left."""
    left, right = x - width / 2, x + width / 2
    top, bottom = y - height / 2, y + height / 2
    return [
        Point2D(x=left, y=top),
        Point2D(x=right, y=top),
        Point2D(x=right, y=bottom),
        Point2D(x=left, y=bottom),
    ]


def ring_centroid(points: Sequence[PointLike]) -> Point2D:
    """Area centroid of a ring; falls back to the vertex mean for degenerate rings."""
    pts = to_array(points)
    if len(pts) == 0:
        return Point2D(x=0.0, y=0.0)
    signed = signed_ring_area(pts)
    if len(pts) < 3 or abs(signed) < 1e-12:
        mean = pts.mean(axis=0)
        return Point2D(x=float(mean[0]), y=float(mean[1]))
    x, y = pts[:, 0], pts[:, 1]
    x1, y1 = np.roll(x, -1), np.roll(y, -1)
    cross = x * y1 - x1 * y
    cx = np.sum((x + x1) * cross) / (6 * signed)
    cy = np.sum((y + y1) * cross) / (6 * signed)
    return Point2D(x=float(cx), y=float(cy))


def point_segment_distance(p: PointLike, a: PointLike, b: PointLike) -> float:
    """Shortest distance from p to the segment ab."""
    pt, start, end = to_array([p, a, b])
    seg = end - start
    seg_len_sq = float(np.dot(seg, seg))
    if seg_len_sq == 0:
        return float(np.hypot(*(pt - start)))
    t = max(0.0, min(1.0, float(np.dot(pt - start, seg)) / seg_len_sq))
    proj = start + t * seg
    return float(np.hypot(*(pt - proj)))


def closest_edge(points: Sequence[PointLike], point: PointLike, closed: bool = True) -> tuple[int, float]:
    """
    Edge of a ring (or path) closest to a point.

    Returns (index, distance) where the edge runs from vertex index to
    vertex index + 1 (wrapping for rings). Inserting a vertex on that edge
    means inserting at index + 1.
    """
    best_index, best_dist = -1, math.inf
    for i, (a, b) in enumerate(edges(points, closed=closed)):
        dist = point_segment_distance(point, a, b)
        if dist < best_dist:
            best_index, best_dist = i, dist
    return best_index, best_dist


# ---------------------------------------------------------------------------
# Geometry variants
# ---------------------------------------------------------------------------
def geometry_area(geometry: GeometryLike) -> float:
    """Outer area minus hole areas; zero for open paths."""
    if isinstance(geometry, Polyline):
        return 0.0
    area = ring_area(geometry.outer) - sum(ring_area(h) for h in geometry.holes)
    return max(0.0, area)


def geometry_perimeter(geometry: GeometryLike) -> float:
    """Outer ring plus hole rings; path length for open paths."""
    if isinstance(geometry, Polyline):
        return path_length(geometry.points)
    return ring_perimeter(geometry.outer) + sum(ring_perimeter(h) for h in geometry.holes)


def detection_rings(detection: Detection) -> tuple[list[Point2D], list[list[Point2D]]]:
    """
    (outer, holes) of a detection.

    Detections without geometry are measured as their 4-corner box.
    """
    if detection.geometry is None:
        ring = rect_to_ring(
            detection.pixel_x, detection.pixel_y, detection.pixel_width, detection.pixel_height
        )
        return ring, []
    return list(detection.geometry.outer), [list(h) for h in detection.geometry.holes]
