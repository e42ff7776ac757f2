"""
Pixel-space geometry: ring measures and pure vertex edits.

Polygon splitting lives in ``takeoff_editor.geometry.boolean`` and is not
imported here, since it depends on the measurement engine.
"""

from takeoff_editor.geometry.primitives import (
    bounding_box,
    path_length,
    rect_to_ring,
    ring_area,
    ring_centroid,
    ring_perimeter,
)

__all__ = [
    "bounding_box",
    "path_length",
    "rect_to_ring",
    "ring_area",
    "ring_centroid",
    "ring_perimeter",
]
