"""
Corner inference from facade polygons.

Walls drawn on an elevation are grouped into horizontal rows by their
vertical center. Within each row:
  - the left edge of the leftmost wall and the right edge of the rightmost
    wall are outside corners (a lone wall contributes both sides)
  - a horizontal gap between neighbouring walls gives two inside corners,
    the right edge of the left wall and the left edge of the right wall

A corner's length is the vertical extent between the two extreme vertices
on that side of the wall. Inferred corners are reported separately from
explicitly drawn corner lines; callers decide whether to add them.
"""

from dataclasses import dataclass, field
from typing import Iterable, Optional

from takeoff_editor.domain.classes import FACADE_CLASSES
from takeoff_editor.domain.constants import CORNER_GAP_THRESHOLD_PX, CORNER_ROW_TOLERANCE_PX
from takeoff_editor.domain.models import Detection, Point2D
from takeoff_editor.geometry.primitives import detection_rings
from takeoff_editor.measurement.engine import is_valid_scale


@dataclass
class InferredCorner:
    """One corner derived from a wall edge."""
    kind: str           # "inside" | "outside"
    detection_id: str
    side: str           # "left" | "right"
    x: float            # pixel x of the edge
    length_px: float
    length_lf: float


@dataclass
class CornerTotals:
    """Inferred corner counts and lengths for one page."""
    inside_count: int = 0
    inside_lf: float = 0.0
    outside_count: int = 0
    outside_lf: float = 0.0
    corners: list[InferredCorner] = field(default_factory=list)

    def add(self, corner: InferredCorner) -> None:
        self.corners.append(corner)
        if corner.kind == "inside":
            self.inside_count += 1
            self.inside_lf += corner.length_lf
        else:
            self.outside_count += 1
            self.outside_lf += corner.length_lf


@dataclass
class _Wall:
    detection_id: str
    points: list[Point2D]
    min_x: float
    max_x: float
    center_y: float

    def edge(self, side: str) -> tuple[float, float]:
        """(x, vertical extent) of the two extreme vertices on one side."""
        ordered = sorted(self.points, key=lambda p: p.x, reverse=(side == "right"))
        a, b = ordered[0], ordered[1]
        return a.x, abs(b.y - a.y)


def _walls(detections: Iterable[Detection]) -> list[_Wall]:
    walls = []
    for det in detections:
        if det.is_deleted or det.detection_class not in FACADE_CLASSES:
            continue
        outer, _ = detection_rings(det)
        if len(outer) < 3:
            continue
        xs = [p.x for p in outer]
        ys = [p.y for p in outer]
        walls.append(_Wall(
            detection_id=det.id,
            points=outer,
            min_x=min(xs),
            max_x=max(xs),
            center_y=(min(ys) + max(ys)) / 2,
        ))
    return walls


def group_rows(walls: list[_Wall], tolerance: float = CORNER_ROW_TOLERANCE_PX) -> list[list[_Wall]]:
    """Chain walls sorted by center y into rows; each wall joins the row if within tolerance of the last one."""
    rows: list[list[_Wall]] = []
    current: list[_Wall] = []
    for wall in sorted(walls, key=lambda w: w.center_y):
        if current and abs(wall.center_y - current[-1].center_y) >= tolerance:
            rows.append(current)
            current = []
        current.append(wall)
    if current:
        rows.append(current)
    return rows


def infer_corners(
    detections: Iterable[Detection],
    scale_ratio: Optional[float],
    row_tolerance: float = CORNER_ROW_TOLERANCE_PX,
    gap_threshold: float = CORNER_GAP_THRESHOLD_PX,
) -> CornerTotals:
    """
    Infer inside and outside corners from the facade detections of one page.

    Non-facade and deleted detections are ignored. Returns empty totals when
    the scale is not usable.
    """
    totals = CornerTotals()
    if not is_valid_scale(scale_ratio):
        return totals

    def _corner(kind: str, wall: _Wall, side: str) -> InferredCorner:
        x, length_px = wall.edge(side)
        return InferredCorner(
            kind=kind,
            detection_id=wall.detection_id,
            side=side,
            x=x,
            length_px=length_px,
            length_lf=length_px / scale_ratio,
        )

    for row in group_rows(_walls(detections), row_tolerance):
        leftmost = min(row, key=lambda w: w.min_x)
        rightmost = max(row, key=lambda w: w.max_x)
        totals.add(_corner("outside", leftmost, "left"))
        totals.add(_corner("outside", rightmost, "right"))

        ordered = sorted(row, key=lambda w: w.min_x)
        for left, right in zip(ordered, ordered[1:]):
            if right.min_x > left.max_x + gap_threshold:
                totals.add(_corner("inside", left, "right"))
                totals.add(_corner("inside", right, "left"))

    return totals
