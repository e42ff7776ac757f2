"""
Scale calibration for takeoff pages.

The operator draws a line over a dimension printed on the drawing and enters
its real length. The page scale becomes pixels per foot:

    pixels_per_foot = pixel_distance / real_length_ft

A nearest architectural notation (e.g. 1/4" = 1'-0") is reported when one is
close enough. Calibration never partially applies: invalid input yields None
and the page keeps its existing scale.
"""

import logging
from typing import Optional

from pydantic import BaseModel, Field

from takeoff_editor.calibration import imperial
from takeoff_editor.domain.constants import (
    ARCHITECTURAL_SCALES,
    SCALE_NOTATION_TOLERANCE,
)
from takeoff_editor.domain.models import Page

logger = logging.getLogger(__name__)


class CalibrationResult(BaseModel):
    """Result of a calibration measurement."""
    pixels_per_foot: float = Field(..., gt=0.0, description="New page scale ratio")
    real_length_ft: float = Field(..., gt=0.0, description="Real length entered by the operator")
    pixel_distance: float = Field(..., gt=0.0, description="Length of the drawn line in pixels")
    notation: Optional[str] = Field(
        default=None, description="Nearest architectural scale, if within tolerance"
    )


def estimate_scale_notation(pixels_per_foot: float) -> Optional[str]:
    """
    Nearest architectural scale notation for a pixels-per-foot ratio.

    The closest table entry is accepted only when its relative error is below
    SCALE_NOTATION_TOLERANCE; otherwise None.
    """
    if pixels_per_foot <= 0:
        return None
    notation, ratio = min(ARCHITECTURAL_SCALES, key=lambda s: abs(pixels_per_foot - s[1]))
    if abs(pixels_per_foot - ratio) / ratio < SCALE_NOTATION_TOLERANCE:
        return notation
    return None


def calibrate(
    pixel_distance: float,
    feet: float = 0.0,
    inches: float = 0.0,
) -> Optional[CalibrationResult]:
    """
    Compute a page scale from a drawn line and its real length.

    Returns None when the pixel distance or the real length is not positive.
    """
    real_length_ft = (feet or 0.0) + (inches or 0.0) / 12.0
    if pixel_distance <= 0 or real_length_ft <= 0:
        logger.debug(
            f"Rejected calibration: pixel_distance={pixel_distance}, real_length_ft={real_length_ft}"
        )
        return None

    pixels_per_foot = pixel_distance / real_length_ft
    return CalibrationResult(
        pixels_per_foot=pixels_per_foot,
        real_length_ft=real_length_ft,
        pixel_distance=pixel_distance,
        notation=estimate_scale_notation(pixels_per_foot),
    )


def calibrate_from_text(pixel_distance: float, length_text: str) -> Optional[CalibrationResult]:
    """Calibrate against a typed length such as 8'6" or 3ft 6in."""
    length = imperial.parse(length_text)
    if length is None:
        return None
    return calibrate(pixel_distance, inches=length.total_inches)


def apply_calibration(page: Page, result: Optional[CalibrationResult]) -> Page:
    """
    Return a copy of the page with the calibrated scale ratio.

    A missing result leaves the page unchanged.
    """
    if result is None:
        return page
    logger.info(
        f"Page {page.id}: scale {page.scale_ratio} -> {result.pixels_per_foot:.3f} px/ft"
        + (f" ({result.notation})" if result.notation else "")
    )
    return page.model_copy(update={"scale_ratio": result.pixels_per_foot})


def pixel_distance(x1: float, y1: float, x2: float, y2: float) -> float:
    """Euclidean distance between the two endpoints of a calibration line."""
    return ((x2 - x1) ** 2 + (y2 - y1) ** 2) ** 0.5
