"""
Boolean split of an area detection by a cut polygon.

The operator draws a polygon over an existing detection (for example a gable
drawn over a siding wall). The detection is replaced by:
  - carved pieces:    detection ∩ cut
  - remaining pieces: detection − cut (may be several pieces, may have holes)

The original is soft-deleted and every piece becomes a new detection with the
same class. Pieces partition the original, so their areas sum to its area.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Sequence

from shapely.geometry import GeometryCollection, MultiPolygon, Polygon
from shapely.validation import explain_validity

from takeoff_editor.domain.classes import MarkupType
from takeoff_editor.domain.constants import SPLIT_AREA_RELATIVE_TOLERANCE
from takeoff_editor.domain.models import (
    Detection,
    DetectionStatus,
    PolygonWithHoles,
    Polyline,
    SimplePolygon,
    new_id,
    utcnow,
)
from takeoff_editor.errors import DegenerateGeometryError, NothingToSplitError
from takeoff_editor.geometry.primitives import PointLike, detection_rings, to_array, to_points
from takeoff_editor.measurement.engine import refresh_cache

logger = logging.getLogger(__name__)


@dataclass
class SplitResult:
    """Outcome of a split: the tombstoned original and the new pieces."""
    original: Detection
    carved: list[Detection] = field(default_factory=list)
    remaining: list[Detection] = field(default_factory=list)

    @property
    def pieces(self) -> list[Detection]:
        return self.carved + self.remaining


# ---------------------------------------------------------------------------
# shapely helpers
# ---------------------------------------------------------------------------
def to_shapely(
    outer: Sequence[PointLike],
    holes: Sequence[Sequence[PointLike]] = (),
    label: str = "polygon",
) -> Polygon:
    """
    Build a shapely polygon from pixel rings.

    Invalid rings (self-intersections, holes crossing the shell) raise
    DegenerateGeometryError; they are never repaired here.
    """
    shell = [tuple(c) for c in to_array(outer)]
    interiors = [[tuple(c) for c in to_array(h)] for h in holes if len(h) >= 3]
    poly = Polygon(shell, interiors)
    if not poly.is_valid:
        raise DegenerateGeometryError(f"Invalid {label}: {explain_validity(poly)}")
    return poly


def polygon_parts(geom) -> list[Polygon]:
    """Flatten a shapely result into its polygons with positive area."""
    if geom is None or geom.is_empty:
        return []
    if isinstance(geom, Polygon):
        return [geom] if geom.area > 0 else []
    if isinstance(geom, (MultiPolygon, GeometryCollection)):
        parts: list[Polygon] = []
        for sub in geom.geoms:
            parts.extend(polygon_parts(sub))
        return parts
    # Points and lines left over from touching boundaries carry no area
    return []


def polygon_to_geometry(poly: Polygon) -> SimplePolygon | PolygonWithHoles:
    """shapely polygon -> SimplePolygon, or PolygonWithHoles when it has interiors."""
    outer = to_points(list(poly.exterior.coords)[:-1])
    holes = [to_points(list(ring.coords)[:-1]) for ring in poly.interiors]
    holes = [h for h in holes if len(h) >= 3]
    if holes:
        return PolygonWithHoles(outer=outer, holes=holes)
    return SimplePolygon(points=outer)


# ---------------------------------------------------------------------------
# Split
# ---------------------------------------------------------------------------
def split_detection(
    original: Detection,
    cut_points: Sequence[PointLike],
    scale_ratio: Optional[float],
    start_index: Optional[int] = None,
    now: Optional[datetime] = None,
) -> SplitResult:
    """
    Split an area detection by a cut polygon.

    Args:
        original: Detection to split (polygon, polygon with holes, or box)
        cut_points: Vertices of the cut polygon in page pixels
        scale_ratio: Page pixels per foot, used to measure the new pieces
        start_index: detection_index for the first piece (defaults to the original's)
        now: Timestamp for created_at / edited_at

    Raises:
        DegenerateGeometryError: cut has fewer than 3 vertices, either polygon
            is invalid (self-intersecting), the target is an open path or has
            zero area, or the pieces would not add up to the original area
        NothingToSplitError: the cut does not overlap the detection
    """
    if len(cut_points) < 3:
        raise DegenerateGeometryError(
            f"Cut polygon needs at least 3 vertices, got {len(cut_points)}"
        )
    if isinstance(original.geometry, Polyline) or original.markup_type != MarkupType.POLYGON:
        raise DegenerateGeometryError(f"Detection {original.id} is not an area and cannot be split")

    outer, holes = detection_rings(original)
    target = to_shapely(outer, holes, label=f"detection {original.id}")
    if target.area <= 0:
        raise DegenerateGeometryError(f"Detection {original.id} has zero area")

    cut = to_shapely(cut_points, label="cut polygon")
    if cut.area <= 0:
        raise DegenerateGeometryError("Cut polygon has zero area")

    carved_parts = polygon_parts(target.intersection(cut))
    if not carved_parts:
        raise NothingToSplitError(f"Cut does not intersect detection {original.id}")
    remaining_parts = polygon_parts(target.difference(cut))

    pieces_area = sum(p.area for p in carved_parts + remaining_parts)
    if abs(pieces_area - target.area) > SPLIT_AREA_RELATIVE_TOLERANCE * target.area:
        raise DegenerateGeometryError(
            f"Split of {original.id} does not conserve area: "
            f"{target.area:.4f} px² -> {pieces_area:.4f} px²"
        )

    now = now or utcnow()
    index = original.detection_index if start_index is None else start_index
    short_id = original.id[:8]

    def _piece(poly: Polygon, note: str) -> Detection:
        nonlocal index
        geometry = polygon_to_geometry(poly)
        if isinstance(geometry, PolygonWithHoles):
            note = f"{note} (with hole)"
        piece = Detection(
            id=new_id(),
            page_id=original.page_id,
            job_id=original.job_id,
            detection_class=original.detection_class,
            detection_index=index,
            markup_type=MarkupType.POLYGON,
            geometry=geometry,
            status=DetectionStatus.EDITED,
            confidence=1.0,
            created_at=now,
            edited_at=now,
            notes=note,
        )
        index += 1
        return refresh_cache(piece, scale_ratio)

    carved = [_piece(p, f"Carved from {short_id}") for p in carved_parts]
    remaining = [_piece(p, f"Remaining from {short_id}") for p in remaining_parts]

    logger.info(
        f"Split {original.id}: {len(carved)} carved, {len(remaining)} remaining piece(s)"
    )
    deleted = original.with_changes(status=DetectionStatus.DELETED, edited_at=now)
    return SplitResult(original=deleted, carved=carved, remaining=remaining)
