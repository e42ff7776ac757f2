"""
Measurement subsystem: per-detection quantities, inferred corners and
page / job totals.

Re-exports the key entry points so consumers can write:
    from takeoff_editor.measurement import measure_detection, aggregate_job
"""

from takeoff_editor.measurement.aggregation import JobTotals, PageTotals, aggregate_job, aggregate_page
from takeoff_editor.measurement.corners import infer_corners
from takeoff_editor.measurement.engine import DetectionMeasurement, measure_detection, refresh_cache

__all__ = [
    "JobTotals",
    "PageTotals",
    "aggregate_job",
    "aggregate_page",
    "infer_corners",
    "DetectionMeasurement",
    "measure_detection",
    "refresh_cache",
]
