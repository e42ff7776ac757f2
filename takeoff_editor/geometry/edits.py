"""
Pure geometry edits used by the edit session.

Every function returns a new geometry and leaves its input untouched.
Rings are addressed by index: 0 is the outer ring (or the path of a
polyline), k >= 1 is hole k - 1.
"""

from typing import Union

from takeoff_editor.domain.models import (
    BoundingBox,
    Point2D,
    PolygonWithHoles,
    Polyline,
    SimplePolygon,
)
from takeoff_editor.errors import DegenerateGeometryError
from takeoff_editor.geometry.primitives import closest_edge

GeometryLike = Union[SimplePolygon, PolygonWithHoles, Polyline]


def _rings(geometry: GeometryLike) -> list[list[Point2D]]:
    return [list(geometry.outer)] + [list(h) for h in geometry.holes]


def _rebuild(geometry: GeometryLike, rings: list[list[Point2D]]) -> GeometryLike:
    if isinstance(geometry, Polyline):
        if len(rings[0]) < 2:
            raise DegenerateGeometryError("A line needs at least 2 vertices")
        return Polyline(points=rings[0])
    for ring in rings:
        if len(ring) < 3:
            raise DegenerateGeometryError("A ring needs at least 3 vertices")
    if isinstance(geometry, PolygonWithHoles):
        return PolygonWithHoles(outer=rings[0], holes=rings[1:])
    return SimplePolygon(points=rings[0])


def _ring(rings: list[list[Point2D]], ring: int) -> list[Point2D]:
    if not 0 <= ring < len(rings):
        raise IndexError(f"Ring {ring} does not exist")
    return rings[ring]


def translate(geometry: GeometryLike, dx: float, dy: float) -> GeometryLike:
    rings = [[Point2D(x=p.x + dx, y=p.y + dy) for p in ring] for ring in _rings(geometry)]
    return _rebuild(geometry, rings)


def fit_to_box(geometry: GeometryLike, old: BoundingBox, new: BoundingBox) -> GeometryLike:
    """Map every vertex from the old box onto the new box (independent x/y scaling)."""
    sx = new.width / old.width if old.width else 1.0
    sy = new.height / old.height if old.height else 1.0

    def _map(p: Point2D) -> Point2D:
        return Point2D(
            x=new.left + (p.x - old.left) * sx if old.width else new.x,
            y=new.top + (p.y - old.top) * sy if old.height else new.y,
        )

    rings = [[_map(p) for p in ring] for ring in _rings(geometry)]
    return _rebuild(geometry, rings)


def move_vertex(geometry: GeometryLike, index: int, point: Point2D, ring: int = 0) -> GeometryLike:
    rings = _rings(geometry)
    target = _ring(rings, ring)
    if not 0 <= index < len(target):
        raise IndexError(f"Vertex {index} does not exist on ring {ring}")
    target[index] = point
    return _rebuild(geometry, rings)


def insert_vertex(
    geometry: GeometryLike,
    point: Point2D,
    index: int | None = None,
    ring: int = 0,
) -> GeometryLike:
    """
    Insert a vertex into a ring.

    Without an explicit index the vertex goes onto the edge closest to it.
    """
    rings = _rings(geometry)
    target = _ring(rings, ring)
    if index is None:
        edge, _ = closest_edge(target, point, closed=not isinstance(geometry, Polyline))
        index = edge + 1
    if not 0 <= index <= len(target):
        raise IndexError(f"Cannot insert at {index} on ring {ring}")
    target.insert(index, point)
    return _rebuild(geometry, rings)


def remove_vertex(geometry: GeometryLike, index: int, ring: int = 0) -> GeometryLike:
    """Remove a vertex; refuses to leave a ring below 3 vertices (2 for lines)."""
    rings = _rings(geometry)
    target = _ring(rings, ring)
    if not 0 <= index < len(target):
        raise IndexError(f"Vertex {index} does not exist on ring {ring}")
    del target[index]
    return _rebuild(geometry, rings)
