"""
Confidence-based review helpers for the annotation renderer.

Detections from the extraction pipeline carry a confidence in [0, 1].
Two views are provided:
  - ConfidenceFilter: splits detections into visible / dimmed / hidden
    against an operator-chosen minimum confidence
  - confidence_level(): fixed high / medium / low / very_low buckets

Also provides the style hints (opacity, stroke dash, colour, label anchor)
the renderer needs for each detection.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional

from takeoff_editor.domain.classes import class_color, display_label
from takeoff_editor.domain.constants import CONFIDENCE_HIGH, CONFIDENCE_LOW, CONFIDENCE_MEDIUM
from takeoff_editor.domain.models import Detection, DetectionStatus, Point2D
from takeoff_editor.geometry.primitives import detection_rings, ring_centroid


def confidence_level(confidence: float) -> str:
    """Return one of ``"high"``, ``"medium"``, ``"low"`` or ``"very_low"``."""
    if confidence >= CONFIDENCE_HIGH:
        return "high"
    if confidence >= CONFIDENCE_MEDIUM:
        return "medium"
    if confidence >= CONFIDENCE_LOW:
        return "low"
    return "very_low"


def needs_review(detection: Detection) -> bool:
    """Untouched pipeline output below the medium threshold."""
    return detection.status == DetectionStatus.AUTO and detection.confidence < CONFIDENCE_MEDIUM


@dataclass
class FilteredDetections:
    visible: list[Detection] = field(default_factory=list)
    dimmed: list[Detection] = field(default_factory=list)
    hidden: list[Detection] = field(default_factory=list)

    @property
    def above_threshold_count(self) -> int:
        return len(self.visible)

    @property
    def below_threshold_count(self) -> int:
        return len(self.dimmed) + len(self.hidden)


@dataclass
class RenderHint:
    """How the renderer should draw one detection."""
    detection_id: str
    level: str          # "visible" | "dimmed" | "hidden"
    opacity: float
    stroke_dash: Optional[list[int]]
    color: str
    label: str
    label_position: Point2D


class ConfidenceFilter:
    """Threshold filter with renderer style helpers."""

    def __init__(self, min_confidence: float = 0.0, show_low_confidence: bool = True):
        self.min_confidence = min_confidence
        self.show_low_confidence = show_low_confidence

    @property
    def is_active(self) -> bool:
        return self.min_confidence > 0

    # ------------------------------------------------------------------
    # Filtering
    # ------------------------------------------------------------------
    def level(self, detection: Detection) -> str:
        """Return ``"visible"``, ``"dimmed"`` or ``"hidden"`` for a detection."""
        if detection.confidence >= self.min_confidence:
            return "visible"
        if self.show_low_confidence:
            return "dimmed"
        return "hidden"

    def passes(self, detection: Detection) -> bool:
        return detection.confidence >= self.min_confidence

    def filter(self, detections: Iterable[Detection]) -> FilteredDetections:
        """Split non-deleted detections by level; deleted ones are never rendered."""
        result = FilteredDetections()
        for det in detections:
            if det.is_deleted:
                continue
            getattr(result, self.level(det)).append(det)
        return result

    # ------------------------------------------------------------------
    # Style helpers
    # ------------------------------------------------------------------
    @staticmethod
    def opacity(level: str) -> float:
        return {"visible": 1.0, "dimmed": 0.3, "hidden": 0.0}[level]

    @staticmethod
    def stroke_dash(level: str) -> Optional[list[int]]:
        """Dimmed detections get dashed outlines."""
        return [5, 5] if level == "dimmed" else None

    def render_hint(self, detection: Detection) -> RenderHint:
        level = self.level(detection)
        outer, _ = detection_rings(detection)
        return RenderHint(
            detection_id=detection.id,
            level=level,
            opacity=self.opacity(level),
            stroke_dash=self.stroke_dash(level),
            color=detection.color_override or class_color(detection.detection_class),
            label=display_label(detection.detection_class),
            label_position=ring_centroid(outer),
        )

    def __repr__(self) -> str:
        return (
            f"ConfidenceFilter(min={self.min_confidence}, "
            f"show_low={self.show_low_confidence})"
        )


def visible_detections(
    detections: Iterable[Detection],
    min_confidence: float = 0.0,
    show_low_confidence: bool = True,
) -> FilteredDetections:
    """Shortcut for ConfidenceFilter(min_confidence, show_low_confidence).filter(detections)."""
    return ConfidenceFilter(min_confidence, show_low_confidence).filter(detections)
