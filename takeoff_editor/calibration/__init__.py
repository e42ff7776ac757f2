"""
Page scale calibration from a drawn reference line and a typed imperial length.
"""

from takeoff_editor.calibration.imperial import ImperialLength
from takeoff_editor.calibration.scale import (
    CalibrationResult,
    apply_calibration,
    calibrate,
    calibrate_from_text,
    estimate_scale_notation,
)

__all__ = [
    "ImperialLength",
    "CalibrationResult",
    "apply_calibration",
    "calibrate",
    "calibrate_from_text",
    "estimate_scale_notation",
]
