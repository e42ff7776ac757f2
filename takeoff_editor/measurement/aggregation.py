"""
Aggregation of detection measurements into page and job totals.

Totals are always derived from geometry and page scale at call time; nothing
is cached between calls.

Page totals
    Every non-deleted detection on the page is measured at the page scale and
    folded into named quantities (facade, openings, gables, roofline, ...)
    plus a per-class breakdown. Net siding = max(0, facade - openings).
    Roof detections belong to roof plans: they never feed named totals but
    still show up in the per-class breakdown.

Job totals
    Per-page totals for every page with a usable scale, plus an all-pages
    roll-up restricted to elevation pages whose scale is calibrated (not
    missing, not non-positive, not the uncalibrated default).
"""

from typing import Iterable, Optional

from pydantic import BaseModel, Field

from takeoff_editor.domain.classes import FACADE_CLASSES, OPENING_CLASSES, MeasurementKind
from takeoff_editor.domain.models import Detection, Page
from takeoff_editor.measurement.corners import infer_corners
from takeoff_editor.measurement.engine import DetectionMeasurement, is_valid_scale, measure_detection


class ClassTotals(BaseModel):
    """Per-class roll-up."""
    detection_class: str
    kind: MeasurementKind
    count: int = 0
    area_sf: float = 0.0
    perimeter_lf: float = 0.0
    length_lf: float = 0.0


class PageTotals(BaseModel):
    """Named takeoff quantities for one page (or a roll-up of several)."""
    page_ids: list[str] = Field(default_factory=list)

    # Facade
    building_count: int = 0
    building_area_sf: float = 0.0
    building_perimeter_lf: float = 0.0
    building_level_starter_lf: float = 0.0
    # Windows
    window_count: int = 0
    window_area_sf: float = 0.0
    window_perimeter_lf: float = 0.0
    window_head_lf: float = 0.0
    window_jamb_lf: float = 0.0
    window_sill_lf: float = 0.0
    # Doors
    door_count: int = 0
    door_area_sf: float = 0.0
    door_perimeter_lf: float = 0.0
    door_head_lf: float = 0.0
    door_jamb_lf: float = 0.0
    # Garages
    garage_count: int = 0
    garage_area_sf: float = 0.0
    garage_perimeter_lf: float = 0.0
    garage_head_lf: float = 0.0
    garage_jamb_lf: float = 0.0
    # Gables
    gable_count: int = 0
    gable_area_sf: float = 0.0
    gable_rake_lf: float = 0.0
    # Corners drawn as lines
    inside_corner_count: int = 0
    inside_corner_lf: float = 0.0
    outside_corner_count: int = 0
    outside_corner_lf: float = 0.0
    # Corners inferred from facade polygons
    inferred_inside_corner_count: int = 0
    inferred_inside_corner_lf: float = 0.0
    inferred_outside_corner_count: int = 0
    inferred_outside_corner_lf: float = 0.0
    # Roofline and trim lines
    eave_count: int = 0
    eave_lf: float = 0.0
    rake_count: int = 0
    rake_lf: float = 0.0
    ridge_count: int = 0
    ridge_lf: float = 0.0
    valley_count: int = 0
    valley_lf: float = 0.0
    fascia_count: int = 0
    fascia_lf: float = 0.0
    belly_band_count: int = 0
    belly_band_lf: float = 0.0
    trim_count: int = 0
    trim_lf: float = 0.0
    gutter_count: int = 0
    gutter_lf: float = 0.0
    downspout_count: int = 0
    # Soffit
    soffit_count: int = 0
    soffit_area_sf: float = 0.0
    # Siding
    openings_area_sf: float = 0.0
    siding_net_sf: float = 0.0
    # Counts
    counts_by_class: dict[str, int] = Field(default_factory=dict)
    total_count: int = 0
    by_class: dict[str, ClassTotals] = Field(default_factory=dict)

    @property
    def total_inside_corner_lf(self) -> float:
        return self.inside_corner_lf + self.inferred_inside_corner_lf

    @property
    def total_outside_corner_lf(self) -> float:
        return self.outside_corner_lf + self.inferred_outside_corner_lf

    @property
    def total_inside_corner_count(self) -> int:
        return self.inside_corner_count + self.inferred_inside_corner_count

    @property
    def total_outside_corner_count(self) -> int:
        return self.outside_corner_count + self.inferred_outside_corner_count


class JobTotals(BaseModel):
    """Per-page totals plus the calibrated elevation roll-up."""
    pages: dict[str, PageTotals] = Field(default_factory=dict)
    all_pages: Optional[PageTotals] = None
    included_page_ids: list[str] = Field(default_factory=list)
    excluded_page_ids: list[str] = Field(default_factory=list)


# Line classes whose length feeds a "<name>_count" / "<name>_lf" pair
_LINE_TOTALS = {
    "corner_inside": "inside_corner",
    "corner_outside": "outside_corner",
    "eave": "eave",
    "rake": "rake",
    "ridge": "ridge",
    "valley": "valley",
    "fascia": "fascia",
    "belly_band": "belly_band",
    "trim": "trim",
    "gutter": "gutter",
}

_OPENING_TOTALS = {"window": "window", "door": "door", "garage": "garage"}

_NUMERIC_FIELDS = [
    name for name, info in PageTotals.model_fields.items()
    if info.annotation in (int, float)
]


def _bump(totals: PageTotals, name: str, amount: float) -> None:
    setattr(totals, name, getattr(totals, name) + amount)


def _add_to_class(totals: PageTotals, m: DetectionMeasurement) -> None:
    key = m.detection_class or "unclassified"
    entry = totals.by_class.get(key)
    if entry is None:
        entry = ClassTotals(detection_class=key, kind=m.kind)
        totals.by_class[key] = entry
    entry.count += 1
    entry.area_sf += m.area_sf
    entry.perimeter_lf += m.perimeter_lf
    entry.length_lf += m.length_lf


def _add_measurement(totals: PageTotals, m: DetectionMeasurement) -> None:
    cls = m.detection_class

    if m.kind == MeasurementKind.COUNT:
        label = cls or "count"
        totals.counts_by_class[label] = totals.counts_by_class.get(label, 0) + 1
        totals.total_count += 1
        if cls == "downspout":
            totals.downspout_count += 1
        return

    if m.kind == MeasurementKind.LINEAR:
        prefix = _LINE_TOTALS.get(cls)
        if prefix:
            _bump(totals, f"{prefix}_count", 1)
            _bump(totals, f"{prefix}_lf", m.length_lf)
        return

    if cls in FACADE_CLASSES:
        totals.building_count += 1
        totals.building_area_sf += m.area_sf
        totals.building_perimeter_lf += m.perimeter_lf
        totals.building_level_starter_lf += m.level_starter_lf
    elif cls in OPENING_CLASSES:
        prefix = _OPENING_TOTALS[cls]
        _bump(totals, f"{prefix}_count", 1)
        _bump(totals, f"{prefix}_area_sf", m.area_sf)
        _bump(totals, f"{prefix}_perimeter_lf", m.perimeter_lf)
        _bump(totals, f"{prefix}_head_lf", m.head_lf)
        _bump(totals, f"{prefix}_jamb_lf", m.jamb_lf)
        if cls == "window":
            totals.window_sill_lf += m.sill_lf
        totals.openings_area_sf += m.area_sf
    elif cls == "gable":
        totals.gable_count += 1
        totals.gable_area_sf += m.area_sf
        totals.gable_rake_lf += m.rake_lf
    elif cls == "soffit":
        totals.soffit_count += 1
        totals.soffit_area_sf += m.area_sf


def aggregate_page(page: Page, detections: Iterable[Detection]) -> Optional[PageTotals]:
    """
    Totals for one page.

    Only detections whose page_id matches the page and that are not deleted
    count. Returns None when the page has no usable scale.
    """
    if not is_valid_scale(page.scale_ratio):
        return None

    scale = page.scale_ratio
    live = [d for d in detections if d.page_id == page.id and not d.is_deleted]
    totals = PageTotals(page_ids=[page.id])

    for det in live:
        m = measure_detection(det, scale)
        _add_to_class(totals, m)
        if page.is_elevation and det.detection_class == "roof":
            continue
        _add_measurement(totals, m)

    totals.siding_net_sf = max(0.0, totals.building_area_sf - totals.openings_area_sf)

    corners = infer_corners(live, scale)
    totals.inferred_inside_corner_count = corners.inside_count
    totals.inferred_inside_corner_lf = corners.inside_lf
    totals.inferred_outside_corner_count = corners.outside_count
    totals.inferred_outside_corner_lf = corners.outside_lf
    return totals


def combine_totals(parts: Iterable[PageTotals]) -> PageTotals:
    """Sum page totals field by field (net siding is summed, not recomputed)."""
    combined = PageTotals()
    for part in parts:
        combined.page_ids.extend(part.page_ids)
        for name in _NUMERIC_FIELDS:
            _bump(combined, name, getattr(part, name))
        for label, count in part.counts_by_class.items():
            combined.counts_by_class[label] = combined.counts_by_class.get(label, 0) + count
        for key, entry in part.by_class.items():
            target = combined.by_class.get(key)
            if target is None:
                combined.by_class[key] = entry.model_copy()
                continue
            target.count += entry.count
            target.area_sf += entry.area_sf
            target.perimeter_lf += entry.perimeter_lf
            target.length_lf += entry.length_lf
    return combined


def aggregate_job(pages: Iterable[Page], detections: Iterable[Detection]) -> JobTotals:
    """
    Totals for every page plus the calibrated elevation roll-up.

    all_pages is None when no elevation page is calibrated.
    """
    detections = list(detections)
    by_page: dict[str, list[Detection]] = {}
    for det in detections:
        by_page.setdefault(det.page_id, []).append(det)

    result = JobTotals()
    included: list[PageTotals] = []
    for page in pages:
        totals = aggregate_page(page, by_page.get(page.id, []))
        if totals is not None:
            result.pages[page.id] = totals
        if totals is not None and page.is_elevation and page.is_calibrated:
            result.included_page_ids.append(page.id)
            included.append(totals)
        else:
            result.excluded_page_ids.append(page.id)

    if included:
        result.all_pages = combine_totals(included)
    return result
