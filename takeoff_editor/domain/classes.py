"""
Closed set of detection classes and their measurement policy.

Every class is tagged with a measurement kind (area, linear or count). Raw
class names coming from the extraction pipeline or older data are mapped onto
the canonical names with normalize_class().
"""

from enum import Enum


class MeasurementKind(str, Enum):
    """How a detection class is quantified."""
    AREA = "area"        # square feet
    LINEAR = "linear"    # linear feet
    COUNT = "count"      # each


class MarkupType(str, Enum):
    """Shape the operator drew."""
    POLYGON = "polygon"
    LINE = "line"
    POINT = "point"


# Facade / wall classes. "building" is produced by the extraction pipeline,
# "siding" is what operators pick.
FACADE_CLASSES = frozenset({"siding", "building"})

# Openings subtracted from the facade for net siding
OPENING_CLASSES = frozenset({"window", "door", "garage"})

CORNER_CLASSES = frozenset({"corner_inside", "corner_outside"})

LINEAR_CLASSES = frozenset({
    "trim",
    "fascia",
    "gutter",
    "eave",
    "rake",
    "ridge",
    "valley",
    "belly_band",
})

COUNT_CLASSES = frozenset({
    "vent",
    "gable_vent",
    "roof_vent",
    "flashing",
    "downspout",
    "outlet",
    "hose_bib",
    "light_fixture",
    "corbel",
    "shutter",
    "post",
    "column",
    "bracket",
    "louver",
    "address_block",
})

CLASS_MEASUREMENT_KINDS: dict[str, MeasurementKind] = {
    "siding": MeasurementKind.AREA,
    "building": MeasurementKind.AREA,
    "window": MeasurementKind.AREA,
    "door": MeasurementKind.AREA,
    "garage": MeasurementKind.AREA,
    "roof": MeasurementKind.AREA,
    "gable": MeasurementKind.AREA,
    "soffit": MeasurementKind.AREA,
    "corner_inside": MeasurementKind.LINEAR,
    "corner_outside": MeasurementKind.LINEAR,
    **{cls: MeasurementKind.LINEAR for cls in LINEAR_CLASSES},
    **{cls: MeasurementKind.COUNT for cls in COUNT_CLASSES},
}

KNOWN_CLASSES = frozenset(CLASS_MEASUREMENT_KINDS)

CLASS_COLORS: dict[str, str] = {
    "window": "#3B82F6",
    "door": "#F59E0B",
    "garage": "#6366F1",
    "siding": "#6B7280",
    "building": "#8B5CF6",
    "roof": "#EF4444",
    "gable": "#EC4899",
    "trim": "#8B5CF6",
    "fascia": "#F97316",
    "gutter": "#06B6D4",
    "eave": "#84CC16",
    "rake": "#EC4899",
    "ridge": "#EF4444",
    "soffit": "#14B8A6",
    "valley": "#7C3AED",
    "belly_band": "#DC2626",
    "corner_inside": "#059669",
    "corner_outside": "#0D9488",
    "vent": "#0EA5E9",
    "flashing": "#F97316",
    "downspout": "#06B6D4",
    "outlet": "#FACC15",
    "hose_bib": "#22C55E",
    "light_fixture": "#FBBF24",
    "corbel": "#D97706",
    "gable_vent": "#7C3AED",
    "shutter": "#4F46E5",
    "post": "#9333EA",
    "column": "#2563EB",
    "bracket": "#CA8A04",
}
UNCLASSIFIED_COLOR = "#6B7280"

# Backend / ML / legacy names -> canonical class
CLASS_ALIASES: dict[str, str] = {
    "exterior wall": "siding",
    "exterior_wall": "siding",
    "wall": "siding",
    "facade": "siding",
    "cladding": "siding",
    "gable end": "gable",
    "gable_end": "gable",
    "gable wall": "gable",
    "gable_wall": "gable",
    "windows": "window",
    "doors": "door",
    "entry door": "door",
    "entry_door": "door",
    "garage door": "garage",
    "garage_door": "garage",
    "roofing": "roof",
    "roof area": "roof",
    "roof_area": "roof",
    "window trim": "trim",
    "window_trim": "trim",
    "door trim": "trim",
    "door_trim": "trim",
    "fascia board": "fascia",
    "fascia_board": "fascia",
    "gutters": "gutter",
    "rain gutter": "gutter",
    "rain_gutter": "gutter",
    "eaves": "eave",
    "roof eave": "eave",
    "roof_eave": "eave",
    "rakes": "rake",
    "gable rake": "rake",
    "gable_rake": "rake",
    "roof rake": "rake",
    "roof_rake": "rake",
    "ridges": "ridge",
    "roof ridge": "ridge",
    "roof_ridge": "ridge",
    "soffits": "soffit",
    "eave soffit": "soffit",
    "eave_soffit": "soffit",
    "valleys": "valley",
    "roof valley": "valley",
    "roof_valley": "valley",
    "vents": "vent",
    "roof vent": "roof_vent",
    "flashings": "flashing",
    "step flashing": "flashing",
    "step_flashing": "flashing",
    "downspouts": "downspout",
    "down spout": "downspout",
    "down_spout": "downspout",
    "outlets": "outlet",
    "electrical outlet": "outlet",
    "electrical_outlet": "outlet",
    "hose bib": "hose_bib",
    "hosebib": "hose_bib",
    "hose bibb": "hose_bib",
    "spigot": "hose_bib",
    "light fixture": "light_fixture",
    "light": "light_fixture",
    "exterior light": "light_fixture",
    "exterior_light": "light_fixture",
    "corbels": "corbel",
    "gable vent": "gable_vent",
    "gable_vents": "gable_vent",
    "gable vents": "gable_vent",
    "belly band": "belly_band",
    "bellyband": "belly_band",
    "band board": "belly_band",
    "band_board": "belly_band",
    "corner inside": "corner_inside",
    "inside corner": "corner_inside",
    "inside_corner": "corner_inside",
    "interior corner": "corner_inside",
    "interior_corner": "corner_inside",
    "corner outside": "corner_outside",
    "outside corner": "corner_outside",
    "outside_corner": "corner_outside",
    "exterior corner": "corner_outside",
    "exterior_corner": "corner_outside",
    "shutters": "shutter",
    "window shutter": "shutter",
    "window_shutter": "shutter",
    "posts": "post",
    "porch post": "post",
    "porch_post": "post",
    "columns": "column",
    "porch column": "column",
    "porch_column": "column",
    "brackets": "bracket",
    "decorative bracket": "bracket",
    "decorative_bracket": "bracket",
}


def normalize_class(name: str | None) -> str:
    """
    Map a raw class name onto a canonical class.

    Unknown names are kept (lowercased, trimmed) so that they can still be
    measured with the default area policy; empty input yields "".
    """
    if not name:
        return ""
    cleaned = name.strip().lower()
    if cleaned in CLASS_ALIASES:
        return CLASS_ALIASES[cleaned]
    return cleaned


def measurement_kind(detection_class: str) -> MeasurementKind:
    """Measurement kind of a class; anything outside the table is area-based."""
    return CLASS_MEASUREMENT_KINDS.get(detection_class, MeasurementKind.AREA)


def is_known_class(detection_class: str) -> bool:
    return detection_class in KNOWN_CLASSES


def display_label(detection_class: str | None) -> str:
    """Human-readable label, e.g. "light_fixture" -> "Light Fixture"."""
    normalized = normalize_class(detection_class)
    if not normalized:
        return "Unclassified"
    return " ".join(word.capitalize() for word in normalized.split("_"))


def class_color(detection_class: str | None) -> str:
    return CLASS_COLORS.get(normalize_class(detection_class), UNCLASSIFIED_COLOR)
