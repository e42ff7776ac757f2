"""
Commit ("validate") boundary between an edit session and durable storage.

Provides a common interface and implementations:
- CommitBackend: commit(job_id, detections) -> CommitResult
- HttpCommitBackend: POSTs the full detection set as JSON with requests
- InMemoryCommitBackend: keeps committed sets in memory (tests, offline use)

The full set is always sent, tombstones included, so the store can apply
deletions. Transport failures raise CommitError; per-detection rejections
come back as failures on the CommitResult.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable, Optional

import requests
from pydantic import BaseModel, Field, ValidationError

from takeoff_editor import config
from takeoff_editor.domain.models import Detection, utcnow
from takeoff_editor.errors import CommitError

logger = logging.getLogger(__name__)


class CommitFailure(BaseModel):
    """A detection the store refused."""
    source_detection_id: str
    error: str = ""


class CommitResult(BaseModel):
    """Outcome reported by the durable store."""
    success: bool
    message: Optional[str] = None
    error: Optional[str] = None
    updated_count: int = 0
    deleted_count: int = 0
    created_count: int = 0
    failures: list[CommitFailure] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=utcnow)

    @property
    def failed_ids(self) -> list[str]:
        return [f.source_detection_id for f in self.failures]

    @property
    def ok(self) -> bool:
        return self.success and not self.failures


def detection_payload(detection: Detection) -> dict:
    """Wire layout of one detection for the validate endpoint."""
    geometry = detection.geometry
    polygon_points = None
    if geometry is not None:
        polygon_points = [{"x": p.x, "y": p.y} for p in geometry.outer]
    return {
        "page_id": detection.page_id,
        "class": detection.detection_class,
        "pixel_x": detection.pixel_x,
        "pixel_y": detection.pixel_y,
        "pixel_width": detection.pixel_width,
        "pixel_height": detection.pixel_height,
        "confidence": detection.confidence,
        "source_detection_id": detection.id,
        "is_deleted": detection.is_deleted,
        "status": detection.status.value,
        "detection_index": detection.detection_index,
        "matched_tag": detection.matched_tag,
        "polygon_points": polygon_points,
        "geometry": geometry.model_dump(mode="json") if geometry is not None else None,
        "markup_type": detection.markup_type.value,
        "area_sf": detection.area_sf,
        "perimeter_lf": detection.perimeter_lf,
        "assigned_material_id": detection.assigned_material_id,
        "material_cost_override": detection.material_cost_override,
        "labor_cost_override": detection.labor_cost_override,
        "notes": detection.notes,
    }


def build_commit_request(job_id: str, detections: Iterable[Detection]) -> dict:
    return {
        "job_id": job_id,
        "detections": [detection_payload(d) for d in detections],
    }


class CommitBackend(ABC):
    """
    Abstract durable store for committed detection sets.
    """

    @abstractmethod
    def commit(self, job_id: str, detections: list[Detection]) -> CommitResult:
        """
        Persist the full detection set of a job.

        Args:
            job_id: Job the detections belong to.
            detections: Every detection of the job, including soft-deleted ones.

        Returns:
            CommitResult; per-detection rejections are listed in failures.

        Raises:
            CommitError: the store could not be reached or rejected the request.
        """
        ...


class HttpCommitBackend(CommitBackend):
    """
    POSTs the detection set to an HTTP validate endpoint.

    No retry: a failed commit leaves the session in its error state and the
    operator decides when to try again.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        timeout: float = config.COMMIT_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        """
        Args:
            url: Endpoint URL. Defaults to TAKEOFF_COMMIT_URL.
            timeout: Request timeout in seconds.
            session: requests.Session to reuse (a new one by default).
        """
        self.url = url or config.COMMIT_URL
        if not self.url:
            raise CommitError("No commit URL configured (set TAKEOFF_COMMIT_URL)")
        self.timeout = timeout
        self.session = session or requests.Session()

    def commit(self, job_id: str, detections: list[Detection]) -> CommitResult:
        body = build_commit_request(job_id, detections)
        deleted = sum(1 for d in body["detections"] if d["is_deleted"])
        logger.info(
            f"Committing job {job_id}: {len(detections)} detections ({deleted} deleted) to {self.url}"
        )

        try:
            response = self.session.post(self.url, json=body, timeout=self.timeout)
        except requests.RequestException as e:
            raise CommitError(f"Commit request failed: {e}") from e

        if not response.ok:
            raise CommitError(f"HTTP {response.status_code}: {response.reason}")

        try:
            data = response.json()
        except ValueError as e:
            raise CommitError(f"Invalid response from server: {response.text[:100]!r}") from e

        try:
            result = CommitResult.model_validate(data)
        except ValidationError as e:
            raise CommitError(f"Unexpected response from server: {e}") from e

        logger.info(
            f"Commit response: success={result.success}, updated={result.updated_count}, "
            f"deleted={result.deleted_count}, created={result.created_count}, "
            f"failures={len(result.failures)}"
        )
        return result


class InMemoryCommitBackend(CommitBackend):
    """
    Keeps every committed set in memory.

    fail_ids makes the backend reject those detections; raise_error makes
    every commit raise CommitError with that message.
    """

    def __init__(
        self,
        fail_ids: Optional[Iterable[str]] = None,
        raise_error: Optional[str] = None,
    ):
        self.fail_ids = set(fail_ids or [])
        self.raise_error = raise_error
        self.commits: list[tuple[str, list[Detection]]] = []
        self.stored: dict[str, dict[str, Detection]] = {}

    def commit(self, job_id: str, detections: list[Detection]) -> CommitResult:
        if self.raise_error:
            raise CommitError(self.raise_error)

        failures = [
            CommitFailure(source_detection_id=d.id, error="rejected")
            for d in detections if d.id in self.fail_ids
        ]
        if failures:
            return CommitResult(success=False, error="Some detections were rejected", failures=failures)

        self.commits.append((job_id, list(detections)))
        previous = self.stored.get(job_id, {})
        stored: dict[str, Detection] = {}
        result = CommitResult(success=True, message="Committed")
        for det in detections:
            if det.is_deleted:
                if det.id in previous:
                    result.deleted_count += 1
                continue
            if det.id in previous:
                result.updated_count += 1
            else:
                result.created_count += 1
            stored[det.id] = det
        self.stored[job_id] = stored
        return result
