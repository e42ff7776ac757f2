"""
Exception hierarchy for the takeoff editor.

Geometry and session errors are raised at the point of the failed operation;
the caller's state is left exactly as it was before the call.
"""

from typing import Optional


class TakeoffError(Exception):
    """Base class for all takeoff editor errors."""
    pass


class GeometryError(TakeoffError):
    """A geometric operation could not be performed."""
    pass


class DegenerateGeometryError(GeometryError):
    """Ring with fewer than 3 vertices, or an operation target with zero area."""
    pass


class NothingToSplitError(GeometryError):
    """The cut polygon does not intersect the detection being split."""
    pass


class CalibrationError(TakeoffError):
    """A calibration input could not be interpreted."""
    pass


class UnknownDetectionError(TakeoffError, KeyError):
    """No detection with the given id exists in the session."""

    def __init__(self, detection_id: str):
        super().__init__(detection_id)
        self.detection_id = detection_id

    def __str__(self) -> str:
        return f"Unknown detection: {self.detection_id}"


class UnknownPageError(TakeoffError, KeyError):
    """No page with the given id belongs to the session's job."""

    def __init__(self, page_id: str):
        super().__init__(page_id)
        self.page_id = page_id

    def __str__(self) -> str:
        return f"Unknown page: {self.page_id}"


class SessionStateError(TakeoffError):
    """The requested operation is not allowed in the session's current state."""
    pass


class DraftCorruptError(TakeoffError):
    """A stored draft could not be decoded."""
    pass


class CommitError(TakeoffError):
    """The durable store rejected a commit, fully or for some detections."""

    def __init__(self, message: str, failed_ids: Optional[list[str]] = None):
        super().__init__(message)
        self.failed_ids = list(failed_ids or [])
