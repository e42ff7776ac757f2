"""
Measurement engine: pixel geometry + page scale -> real-world quantities.

    length_ft = length_px / scale
    area_sf   = area_px / scale²

Each detection class has a measurement policy:
  facade (siding, building)     area, perimeter, level starter
  openings (window/door/garage) area, perimeter, head, jambs, sill (windows)
  gable                         area, rake
  soffit, roof, unknown         area, perimeter
  corners and linear classes    length
  count classes, point markups  count of 1
"""

import math
from dataclasses import dataclass
from typing import Optional

from takeoff_editor.domain.classes import (
    FACADE_CLASSES,
    MarkupType,
    MeasurementKind,
    OPENING_CLASSES,
    measurement_kind,
)
from takeoff_editor.domain.constants import (
    BASELINE_TOLERANCE_PX,
    HORIZONTAL_EDGE_TOLERANCE_DEG,
    VERTICAL_EDGE_TOLERANCE_DEG,
)
from takeoff_editor.domain.models import Detection, Polyline
from takeoff_editor.geometry.primitives import (
    detection_rings,
    edge_angle_deg,
    edges,
    path_length,
    ring_area,
    ring_perimeter,
)


@dataclass
class DetectionMeasurement:
    """Real-world quantities of one detection at one page scale."""
    detection_id: str
    detection_class: str
    kind: MeasurementKind
    area_sf: float = 0.0
    perimeter_lf: float = 0.0
    length_lf: float = 0.0
    count: int = 0
    real_width_ft: float = 0.0
    real_height_ft: float = 0.0
    # Opening trim
    head_lf: float = 0.0
    jamb_lf: float = 0.0
    sill_lf: float = 0.0
    # Gable
    rake_lf: float = 0.0
    # Facade
    level_starter_lf: float = 0.0


def is_valid_scale(scale_ratio: Optional[float]) -> bool:
    return scale_ratio is not None and math.isfinite(scale_ratio) and scale_ratio > 0


# ---------------------------------------------------------------------------
# Edge-based quantities (pixels)
# ---------------------------------------------------------------------------
def horizontal_run_px(ring, level_y: float) -> float:
    """Summed length of the horizontal edges lying on `level_y`."""
    total = 0.0
    for a, b in edges(ring, closed=True):
        if edge_angle_deg(a, b) > HORIZONTAL_EDGE_TOLERANCE_DEG:
            continue
        if abs(a[1] - level_y) <= BASELINE_TOLERANCE_PX and abs(b[1] - level_y) <= BASELINE_TOLERANCE_PX:
            total += math.hypot(b[0] - a[0], b[1] - a[1])
    return total


def level_starter_px(detection: Detection) -> float:
    """
    Length of the bottom-most horizontal run of the outer ring.

    Horizontal edges whose endpoints both sit on the lowest y (within
    BASELINE_TOLERANCE_PX) are summed; falls back to the box width.
    """
    outer, _ = detection_rings(detection)
    if len(outer) < 3:
        return detection.pixel_width
    total = horizontal_run_px(outer, max(p.y for p in outer))
    return total if total > 0 else detection.pixel_width


def opening_trim_px(detection: Detection) -> tuple[float, float, float]:
    """
    (head, jamb, sill) of an opening's outer ring, in pixels.

    Head is the horizontal run along the top of the ring and sill the run
    along the bottom. Every other outer edge is a side edge and counts
    toward the jambs. An opening with no flat top or bottom gets 0 there.
    """
    outer, _ = detection_rings(detection)
    if len(outer) < 3:
        return 0.0, 0.0, 0.0
    top = min(p.y for p in outer)
    bottom = max(p.y for p in outer)
    head = horizontal_run_px(outer, top)
    sill = horizontal_run_px(outer, bottom) if bottom - top > BASELINE_TOLERANCE_PX else 0.0
    jamb = max(0.0, ring_perimeter(outer) - head - sill)
    return head, jamb, sill


def rake_px(detection: Detection) -> float:
    """
    Sum of the sloped edges of a gable.

    Without sloped edges (or without geometry) the gable is taken as an
    isosceles triangle inscribed in its box: 2 * sqrt((w/2)² + h²).
    """
    total = 0.0
    if detection.geometry is not None and not isinstance(detection.geometry, Polyline):
        for a, b in edges(detection.geometry.outer, closed=True):
            angle = edge_angle_deg(a, b)
            if HORIZONTAL_EDGE_TOLERANCE_DEG < angle < 90.0 - VERTICAL_EDGE_TOLERANCE_DEG:
                total += math.hypot(b[0] - a[0], b[1] - a[1])
    if total > 0:
        return total
    half_width = detection.pixel_width / 2
    return 2 * math.hypot(half_width, detection.pixel_height)


def linear_length_px(detection: Detection) -> float:
    """Open path length of a line markup; longer box side otherwise."""
    if isinstance(detection.geometry, Polyline):
        return path_length(detection.geometry.points)
    return max(detection.pixel_width, detection.pixel_height)


# ---------------------------------------------------------------------------
# Measurement
# ---------------------------------------------------------------------------
def measure_detection(detection: Detection, scale_ratio: Optional[float]) -> Optional[DetectionMeasurement]:
    """
    Measure a detection at a page scale.

    Returns None when the scale is missing or not positive.
    """
    if not is_valid_scale(scale_ratio):
        return None

    s = scale_ratio
    cls = detection.detection_class
    kind = measurement_kind(cls)
    width_ft = detection.pixel_width / s
    height_ft = detection.pixel_height / s

    if detection.markup_type == MarkupType.POINT or kind == MeasurementKind.COUNT:
        return DetectionMeasurement(
            detection_id=detection.id,
            detection_class=cls,
            kind=MeasurementKind.COUNT,
            count=1,
            real_width_ft=width_ft,
            real_height_ft=height_ft,
        )

    if isinstance(detection.geometry, Polyline) or kind == MeasurementKind.LINEAR:
        length_ft = linear_length_px(detection) / s
        return DetectionMeasurement(
            detection_id=detection.id,
            detection_class=cls,
            kind=MeasurementKind.LINEAR,
            length_lf=length_ft,
            perimeter_lf=length_ft,
            real_width_ft=width_ft,
            real_height_ft=height_ft,
        )

    outer, holes = detection_rings(detection)
    area_px = max(0.0, ring_area(outer) - sum(ring_area(h) for h in holes))
    perimeter_px = ring_perimeter(outer) + sum(ring_perimeter(h) for h in holes)

    result = DetectionMeasurement(
        detection_id=detection.id,
        detection_class=cls,
        kind=MeasurementKind.AREA,
        area_sf=area_px / (s * s),
        perimeter_lf=perimeter_px / s,
        real_width_ft=width_ft,
        real_height_ft=height_ft,
    )

    if cls in FACADE_CLASSES:
        result.level_starter_lf = level_starter_px(detection) / s
    elif cls in OPENING_CLASSES:
        head_px, jamb_px, sill_px = opening_trim_px(detection)
        result.head_lf = head_px / s
        result.jamb_lf = jamb_px / s
        result.sill_lf = sill_px / s if cls == "window" else 0.0
    elif cls == "gable":
        result.rake_lf = rake_px(detection) / s

    return result


def refresh_cache(detection: Detection, scale_ratio: Optional[float]) -> Detection:
    """
    Return a copy of the detection with its measurement cache recomputed.

    Area detections cache area and perimeter, linear detections cache their
    length as perimeter, count detections cache neither. With no usable scale
    every cache field is None.
    """
    m = measure_detection(detection, scale_ratio)
    if m is None:
        cache = dict(area_sf=None, perimeter_lf=None, real_width_ft=None, real_height_ft=None)
    elif m.kind == MeasurementKind.AREA:
        cache = dict(
            area_sf=m.area_sf,
            perimeter_lf=m.perimeter_lf,
            real_width_ft=m.real_width_ft,
            real_height_ft=m.real_height_ft,
        )
    elif m.kind == MeasurementKind.LINEAR:
        cache = dict(
            area_sf=None,
            perimeter_lf=m.length_lf,
            real_width_ft=m.real_width_ft,
            real_height_ft=m.real_height_ft,
        )
    else:
        cache = dict(
            area_sf=None,
            perimeter_lf=None,
            real_width_ft=m.real_width_ft,
            real_height_ft=m.real_height_ft,
        )

    if all(getattr(detection, k) == v for k, v in cache.items()):
        return detection
    return detection.with_changes(**cache)
