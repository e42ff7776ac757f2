"""
Pydantic models for takeoff annotations.

These models define:
1. The page (drawing image) a set of annotations is drawn on
2. The annotation geometry, a tagged union of simple polygon,
   polygon with holes and open polyline
3. The detection record that carries geometry, class, lifecycle,
   measurement cache and operator overrides
4. The job container loaded from the extraction pipeline

Coordinate system: image pixels
- (0, 0) = top-left corner of the page image
- y grows downwards
"""

import json
import uuid
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    field_validator,
    model_validator,
)

from takeoff_editor.domain.classes import MarkupType, normalize_class
from takeoff_editor.domain.constants import UNCALIBRATED_SCALE_RATIO


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


class PageType(str, Enum):
    """Kind of drawing sheet."""
    ELEVATION = "elevation"
    ROOF_PLAN = "roof_plan"
    FLOOR_PLAN = "floor_plan"
    SCHEDULE = "schedule"
    COVER = "cover"
    DETAIL = "detail"
    SECTION = "section"
    SITE_PLAN = "site_plan"
    OTHER = "other"


class DetectionStatus(str, Enum):
    """Lifecycle of a detection. DELETED is a soft tombstone kept until commit."""
    AUTO = "auto"
    EDITED = "edited"
    VERIFIED = "verified"
    DELETED = "deleted"


# ---------------------------------------------------------------------------
# Geometry
# ---------------------------------------------------------------------------
class Point2D(BaseModel):
    """2D point in page pixel space."""
    model_config = ConfigDict(frozen=True)

    x: float
    y: float

    @model_validator(mode="before")
    @classmethod
    def _accept_pairs(cls, data: Any) -> Any:
        """Allow [x, y] / (x, y) pairs in addition to {"x": .., "y": ..}."""
        if isinstance(data, (list, tuple)) and len(data) == 2:
            return {"x": data[0], "y": data[1]}
        return data

    def as_tuple(self) -> tuple[float, float]:
        return (self.x, self.y)


Ring = list[Point2D]


class SimplePolygon(BaseModel):
    """Closed ring (the closing edge is implicit)."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["simple"] = "simple"
    points: Ring = Field(..., min_length=3, description="Ring vertices, implicitly closed")

    @property
    def outer(self) -> Ring:
        return self.points

    @property
    def holes(self) -> list[Ring]:
        return []

    @property
    def closed(self) -> bool:
        return True


class PolygonWithHoles(BaseModel):
    """Outer ring with zero or more interior rings."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["with_holes"] = "with_holes"
    outer: Ring = Field(..., min_length=3, description="Outer boundary")
    holes: list[Ring] = Field(default_factory=list, description="Interior rings")

    @field_validator("holes")
    @classmethod
    def validate_holes(cls, v: list[Ring]) -> list[Ring]:
        for i, hole in enumerate(v):
            if len(hole) < 3:
                raise ValueError(f"hole {i} has {len(hole)} vertices; a ring needs at least 3")
        return v

    @property
    def points(self) -> Ring:
        return self.outer

    @property
    def closed(self) -> bool:
        return True


class Polyline(BaseModel):
    """Open path, used by line markups (trim, fascia, corners, ...)."""
    model_config = ConfigDict(frozen=True)

    kind: Literal["line"] = "line"
    points: list[Point2D] = Field(..., min_length=2, description="Ordered path vertices")

    @property
    def outer(self) -> list[Point2D]:
        return self.points

    @property
    def holes(self) -> list[Ring]:
        return []

    @property
    def closed(self) -> bool:
        return False


Geometry = Annotated[
    Union[SimplePolygon, PolygonWithHoles, Polyline],
    Field(discriminator="kind"),
]

_geometry_adapter = TypeAdapter(Geometry)


def parse_geometry(data: Any) -> Union[SimplePolygon, PolygonWithHoles, Polyline]:
    """Validate a raw geometry dict (or model) into one of the geometry variants."""
    return _geometry_adapter.validate_python(data)


class BoundingBox(BaseModel):
    """Axis-aligned box in pixels, (x, y) is the center."""
    model_config = ConfigDict(frozen=True)

    x: float
    y: float
    width: Annotated[float, Field(ge=0.0)]
    height: Annotated[float, Field(ge=0.0)]

    @property
    def left(self) -> float:
        return self.x - self.width / 2

    @property
    def right(self) -> float:
        return self.x + self.width / 2

    @property
    def top(self) -> float:
        return self.y - self.height / 2

    @property
    def bottom(self) -> float:
        return self.y + self.height / 2


# ---------------------------------------------------------------------------
# Page
# ---------------------------------------------------------------------------
class Page(BaseModel):
    """
    One drawing sheet image.

    scale_ratio is pixels per real foot. None (or a non-positive value) means
    no usable scale; UNCALIBRATED_SCALE_RATIO means the extraction pipeline's
    default that nobody confirmed.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    job_id: Optional[str] = None
    page_number: int = 1
    width: Annotated[int, Field(ge=0, description="Image width in pixels")] = 0
    height: Annotated[int, Field(ge=0, description="Image height in pixels")] = 0
    scale_ratio: Optional[float] = Field(default=None, description="Pixels per foot")
    page_type: PageType = PageType.ELEVATION
    elevation_name: Optional[str] = None
    dpi: Optional[int] = None

    @field_validator("page_type", mode="before")
    @classmethod
    def coerce_page_type(cls, v: Any) -> Any:
        if v is None:
            return PageType.OTHER
        if isinstance(v, str) and v not in PageType._value2member_map_:
            return PageType.OTHER
        return v

    @property
    def has_usable_scale(self) -> bool:
        return self.scale_ratio is not None and self.scale_ratio > 0

    @property
    def is_calibrated(self) -> bool:
        """Usable scale that is not the uncalibrated default."""
        return self.has_usable_scale and self.scale_ratio != UNCALIBRATED_SCALE_RATIO

    @property
    def is_elevation(self) -> bool:
        return self.page_type == PageType.ELEVATION


# ---------------------------------------------------------------------------
# Detection
# ---------------------------------------------------------------------------
class Detection(BaseModel):
    """
    One annotation on a page.

    Instances are immutable: edits go through with_changes(), which builds a
    validated copy. When geometry is present the bounding box fields are
    derived from it; without geometry the box is authoritative (legacy
    rectangle mode) and is measured as its 4-corner rectangle.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    # Identity
    id: str = Field(default_factory=new_id)
    page_id: str
    job_id: Optional[str] = None
    detection_class: str = Field(default="", alias="class")
    detection_index: int = 0
    markup_type: MarkupType = MarkupType.POLYGON

    # Geometry
    geometry: Optional[Geometry] = None
    pixel_x: float = Field(default=0.0, description="Box center x")
    pixel_y: float = Field(default=0.0, description="Box center y")
    pixel_width: Annotated[float, Field(ge=0.0)] = 0.0
    pixel_height: Annotated[float, Field(ge=0.0)] = 0.0

    # Measurement cache, always recomputed from (geometry, page scale)
    area_sf: Optional[float] = None
    perimeter_lf: Optional[float] = None
    real_width_ft: Optional[float] = None
    real_height_ft: Optional[float] = None

    # Lifecycle
    status: DetectionStatus = DetectionStatus.AUTO
    confidence: Annotated[float, Field(ge=0.0, le=1.0)] = 1.0
    created_at: datetime = Field(default_factory=utcnow)
    edited_at: Optional[datetime] = None
    original_bbox: Optional[BoundingBox] = None

    # Overrides
    assigned_material_id: Optional[str] = None
    material_cost_override: Optional[float] = None
    labor_cost_override: Optional[float] = None
    notes: Optional[str] = None
    color_override: Optional[str] = None
    matched_tag: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _normalize_input(cls, data: Any) -> Any:
        """
        Accept the extraction pipeline's legacy layout and derive the box.

        - polygon_points as a list of points becomes a simple polygon
          (or a polyline for line markups)
        - polygon_points as {"outer": [...], "holes": [...]} becomes a
          polygon with holes
        - when geometry is present the bounding box is recomputed from it
        """
        if not isinstance(data, dict):
            return data
        data = dict(data)

        legacy = data.pop("polygon_points", None)
        if data.get("geometry") is None and legacy:
            data["geometry"] = _legacy_geometry(legacy, data.get("markup_type"))

        if data.get("geometry") is not None:
            geometry = parse_geometry(data["geometry"])
            data["geometry"] = geometry
            xs = [p.x for p in geometry.outer]
            ys = [p.y for p in geometry.outer]
            min_x, max_x = min(xs), max(xs)
            min_y, max_y = min(ys), max(ys)
            data["pixel_x"] = (min_x + max_x) / 2
            data["pixel_y"] = (min_y + max_y) / 2
            data["pixel_width"] = max_x - min_x
            data["pixel_height"] = max_y - min_y
        return data

    @field_validator("detection_class", mode="before")
    @classmethod
    def normalize_detection_class(cls, v: Any) -> str:
        return normalize_class(v)

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower()
        return v

    # ------------------------------------------------------------------
    # Convenience
    # ------------------------------------------------------------------
    @property
    def is_deleted(self) -> bool:
        return self.status == DetectionStatus.DELETED

    @property
    def bbox(self) -> BoundingBox:
        return BoundingBox(
            x=self.pixel_x,
            y=self.pixel_y,
            width=self.pixel_width,
            height=self.pixel_height,
        )

    def with_changes(self, **changes: Any) -> "Detection":
        """Return a validated copy with the given fields replaced."""
        data = self.model_dump()
        data.update(changes)
        return Detection.model_validate(data)

    def to_record(self) -> dict:
        """JSON-safe dict using the wire names ("class", ISO datetimes)."""
        return self.model_dump(mode="json", by_alias=True)


def _legacy_geometry(legacy: Any, markup_type: Any) -> Optional[dict]:
    if isinstance(legacy, dict) and "outer" in legacy:
        holes = [h for h in legacy.get("holes") or [] if h]
        if holes:
            return {"kind": "with_holes", "outer": legacy["outer"], "holes": holes}
        return {"kind": "simple", "points": legacy["outer"]}
    if isinstance(legacy, list):
        markup = markup_type.value if isinstance(markup_type, MarkupType) else markup_type
        if markup == MarkupType.POINT.value:
            return None
        if markup == MarkupType.LINE.value:
            return {"kind": "line", "points": legacy}
        return {"kind": "simple", "points": legacy}
    return None


# ---------------------------------------------------------------------------
# Job
# ---------------------------------------------------------------------------
class Job(BaseModel):
    """
    Pages plus detections for one estimating job.

    This is the shape the extraction pipeline hands over and what the CLI
    reads from a JSON file.
    """
    id: str
    pages: list[Page] = Field(default_factory=list)
    detections: list[Detection] = Field(default_factory=list)

    @classmethod
    def from_file(cls, path: str | Path) -> "Job":
        with open(path, "r", encoding="utf-8") as f:
            return load_job(json.load(f))

    def get_page(self, page_id: str) -> Optional[Page]:
        for page in self.pages:
            if page.id == page_id:
                return page
        return None

    def detections_for_page(self, page_id: str) -> list[Detection]:
        return [d for d in self.detections if d.page_id == page_id]


def load_job(data: dict) -> Job:
    """
    Build a Job from the extraction pipeline's JSON.

    Pages and detections that omit job_id inherit the job's id.
    """
    data = dict(data)
    job_id = data.get("id") or data.get("job_id")
    if not job_id:
        raise ValueError("job data must carry an 'id'")
    data["id"] = job_id
    data.pop("job_id", None)
    data["pages"] = [
        {**page, "job_id": page.get("job_id") or job_id} if isinstance(page, dict) else page
        for page in data.get("pages", [])
    ]
    data["detections"] = [
        {**det, "job_id": det.get("job_id") or job_id} if isinstance(det, dict) else det
        for det in data.get("detections", [])
    ]
    return Job.model_validate(data)
