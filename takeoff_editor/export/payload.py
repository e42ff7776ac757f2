"""
Pricing / export payload builder.

Turns job totals and the detection set into the "approve" payload consumed
by the pricing webhook:
  - facade, openings, trim, corners and gables sections from the totals
  - per-class counts for accessories and roofline lines
  - one material assignment per detection with an assigned material,
    quantity measured in the unit of its class (SF / LF / EA)

Only the data model's own fields are used; pricing itself happens elsewhere.
"""

import logging
from typing import Iterable, Literal, Optional

from pydantic import BaseModel, Field

from takeoff_editor.domain.classes import MeasurementKind, display_label, measurement_kind
from takeoff_editor.domain.models import Detection, Page
from takeoff_editor.measurement.aggregation import PageTotals
from takeoff_editor.measurement.engine import measure_detection

logger = logging.getLogger(__name__)

Unit = Literal["SF", "LF", "EA"]

_UNITS: dict[MeasurementKind, Unit] = {
    MeasurementKind.AREA: "SF",
    MeasurementKind.LINEAR: "LF",
    MeasurementKind.COUNT: "EA",
}

# Trades other than siding, switched on by assigning a material to these classes
_CLASS_TRADES = {
    "window": "windows",
    "gutter": "gutters",
    "downspout": "gutters",
}


class FacadeSection(BaseModel):
    gross_area_sf: float
    net_siding_sf: float
    perimeter_lf: float
    level_starter_lf: float


class OpeningSection(BaseModel):
    count: int
    area_sf: float
    perimeter_lf: float
    head_lf: float
    jamb_lf: float
    sill_lf: Optional[float] = None


class TrimSection(BaseModel):
    total_head_lf: float
    total_jamb_lf: float
    total_sill_lf: float
    total_trim_lf: float


class CornerSection(BaseModel):
    outside_count: int
    outside_lf: float
    inside_count: int
    inside_lf: float


class GableSection(BaseModel):
    count: int
    area_sf: float
    rake_lf: float


class ProductSection(BaseModel):
    color: Optional[str] = None
    profile: str = "cedarmill"


class DetectionCount(BaseModel):
    count: int
    display_name: str
    measurement_type: Literal["count", "area", "linear"]
    unit: Unit
    total_lf: Optional[float] = None
    total_sf: Optional[float] = None


class MaterialAssignment(BaseModel):
    detection_id: str
    detection_class: str
    pricing_item_id: str
    quantity: float
    unit: Unit
    area_sf: Optional[float] = None
    perimeter_lf: Optional[float] = None
    material_cost_override: Optional[float] = None
    labor_cost_override: Optional[float] = None


class ApprovePayload(BaseModel):
    """Body of the approve-and-price webhook call."""
    job_id: str
    project_id: Optional[str] = None
    project_name: Optional[str] = None
    client_name: Optional[str] = None
    address: Optional[str] = None
    selected_trades: list[str] = Field(default_factory=lambda: ["siding"])
    facade: FacadeSection
    windows: OpeningSection
    doors: OpeningSection
    garages: OpeningSection
    trim: TrimSection
    corners: CornerSection
    gables: GableSection
    products: ProductSection = Field(default_factory=ProductSection)
    material_assignments: list[MaterialAssignment] = Field(default_factory=list)
    detection_counts: dict[str, DetectionCount] = Field(default_factory=dict)
    total_point_count: int = 0
    organization_id: Optional[str] = None


def unit_for_class(detection_class: str) -> Unit:
    return _UNITS[measurement_kind(detection_class)]


def material_assignments(detections: Iterable[Detection], pages: Iterable[Page]) -> list[MaterialAssignment]:
    """
    One assignment per live detection with an assigned material.

    Quantities are measured at the detection's page scale: area for SF,
    length (or perimeter for area classes) for LF, 1 for EA. Detections on
    pages without a usable scale get a zero quantity.
    """
    scales = {p.id: p.scale_ratio for p in pages}
    assignments = []
    for det in detections:
        if det.is_deleted or not det.assigned_material_id:
            continue
        unit = unit_for_class(det.detection_class)
        m = measure_detection(det, scales.get(det.page_id))
        if m is None:
            logger.warning(f"No usable scale for detection {det.id} on page {det.page_id}; quantity 0")
            quantity = 0.0
        elif unit == "SF":
            quantity = m.area_sf
        elif unit == "LF":
            quantity = m.length_lf or m.perimeter_lf
        else:
            quantity = float(max(m.count, 1))
        assignments.append(MaterialAssignment(
            detection_id=det.id,
            detection_class=det.detection_class,
            pricing_item_id=det.assigned_material_id,
            quantity=quantity,
            unit=unit,
            area_sf=det.area_sf,
            perimeter_lf=det.perimeter_lf,
            material_cost_override=det.material_cost_override,
            labor_cost_override=det.labor_cost_override,
        ))
    return assignments


def selected_trades(assignments: Iterable[MaterialAssignment]) -> list[str]:
    """Siding always; windows / gutters when a material is assigned to those classes."""
    trades = ["siding"]
    for a in assignments:
        trade = _CLASS_TRADES.get(a.detection_class)
        if trade and trade not in trades:
            trades.append(trade)
    return trades


def detection_counts(totals: PageTotals) -> dict[str, DetectionCount]:
    """Accessory counts, roofline lines and soffit area keyed by class."""
    counts: dict[str, DetectionCount] = {}
    for cls, count in totals.counts_by_class.items():
        if count > 0:
            counts[cls] = DetectionCount(
                count=count,
                display_name=display_label(cls),
                measurement_type="count",
                unit="EA",
            )
    for cls in ("belly_band", "fascia", "gutter", "eave", "rake", "ridge", "valley"):
        count = getattr(totals, f"{cls}_count")
        if count > 0:
            counts[cls] = DetectionCount(
                count=count,
                display_name=display_label(cls),
                measurement_type="linear",
                unit="LF",
                total_lf=getattr(totals, f"{cls}_lf"),
            )
    if totals.soffit_count > 0:
        counts["soffit"] = DetectionCount(
            count=totals.soffit_count,
            display_name="Soffit",
            measurement_type="area",
            unit="SF",
            total_sf=totals.soffit_area_sf,
        )
    return counts


def build_approve_payload(
    job_id: str,
    totals: PageTotals,
    detections: Iterable[Detection],
    pages: Iterable[Page],
    product_color: Optional[str] = None,
    profile: str = "cedarmill",
    **project: Optional[str],
) -> ApprovePayload:
    """
    Assemble the approve payload.

    Args:
        job_id: Job being priced.
        totals: Usually JobTotals.all_pages (calibrated elevations only).
        detections: Full detection set; only live ones with materials are assigned.
        pages: Pages of the job, for per-page scales.
        product_color: Siding color, if chosen.
        profile: Siding profile.
        **project: project_id, project_name, client_name, address, organization_id.
    """
    assignments = material_assignments(detections, pages)
    head = totals.window_head_lf + totals.door_head_lf + totals.garage_head_lf
    jamb = totals.window_jamb_lf + totals.door_jamb_lf + totals.garage_jamb_lf
    sill = totals.window_sill_lf

    return ApprovePayload(
        job_id=job_id,
        selected_trades=selected_trades(assignments),
        facade=FacadeSection(
            gross_area_sf=totals.building_area_sf,
            net_siding_sf=totals.siding_net_sf,
            perimeter_lf=totals.building_perimeter_lf,
            level_starter_lf=totals.building_level_starter_lf,
        ),
        windows=OpeningSection(
            count=totals.window_count,
            area_sf=totals.window_area_sf,
            perimeter_lf=totals.window_perimeter_lf,
            head_lf=totals.window_head_lf,
            jamb_lf=totals.window_jamb_lf,
            sill_lf=totals.window_sill_lf,
        ),
        doors=OpeningSection(
            count=totals.door_count,
            area_sf=totals.door_area_sf,
            perimeter_lf=totals.door_perimeter_lf,
            head_lf=totals.door_head_lf,
            jamb_lf=totals.door_jamb_lf,
        ),
        garages=OpeningSection(
            count=totals.garage_count,
            area_sf=totals.garage_area_sf,
            perimeter_lf=totals.garage_perimeter_lf,
            head_lf=totals.garage_head_lf,
            jamb_lf=totals.garage_jamb_lf,
        ),
        trim=TrimSection(
            total_head_lf=head,
            total_jamb_lf=jamb,
            total_sill_lf=sill,
            total_trim_lf=head + jamb + sill,
        ),
        corners=CornerSection(
            outside_count=totals.total_outside_corner_count,
            outside_lf=totals.total_outside_corner_lf,
            inside_count=totals.total_inside_corner_count,
            inside_lf=totals.total_inside_corner_lf,
        ),
        gables=GableSection(
            count=totals.gable_count,
            area_sf=totals.gable_area_sf,
            rake_lf=totals.gable_rake_lf,
        ),
        products=ProductSection(color=product_color, profile=profile),
        material_assignments=assignments,
        detection_counts=detection_counts(totals),
        total_point_count=totals.total_count,
        **project,
    )
