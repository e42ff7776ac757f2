"""
Domain model for takeoff annotations: pages, detections, geometry variants,
the detection class catalogue and shared constants.

Re-exports the key types so consumers can write:
    from takeoff_editor.domain import Detection, Page, SimplePolygon, ...
"""

from takeoff_editor.domain.classes import MarkupType, MeasurementKind, normalize_class
from takeoff_editor.domain.models import (
    BoundingBox,
    Detection,
    DetectionStatus,
    Job,
    Page,
    PageType,
    Point2D,
    PolygonWithHoles,
    Polyline,
    SimplePolygon,
    load_job,
    parse_geometry,
)

__all__ = [
    "MarkupType",
    "MeasurementKind",
    "normalize_class",
    "BoundingBox",
    "Detection",
    "DetectionStatus",
    "Job",
    "Page",
    "PageType",
    "Point2D",
    "PolygonWithHoles",
    "Polyline",
    "SimplePolygon",
    "load_job",
    "parse_geometry",
]
