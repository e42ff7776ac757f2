"""
Edit session: local-first, undoable editing of one job's detections.

State machine:
  CLEAN      -> DIRTY       any mutation
  DIRTY      -> VALIDATING  commit()
  VALIDATING -> CLEAN       commit succeeded and nothing changed meanwhile
  VALIDATING -> DIRTY       commit succeeded but edits were made meanwhile
  VALIDATING -> ERROR       commit failed (local state untouched)
  ERROR      -> DIRTY       keep editing, or commit() again
  any        -> CLEAN       reset() restores the last committed snapshot

Every mutation pushes one EditRecord (before/after snapshots of the touched
detections) onto the undo stack and clears the redo stack. Measurement
caches are recomputed from the page scale whenever a detection is written.
Drafts are autosaved to a DraftStore for crash recovery; draft failures are
logged and never interrupt editing.
"""

import logging
import sqlite3
import threading
from collections import deque
from concurrent.futures import Executor, Future
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Iterable, Optional, Sequence, Union

from takeoff_editor import config
from takeoff_editor.calibration.scale import CalibrationResult
from takeoff_editor.calibration.scale import apply_calibration as calibrate_page
from takeoff_editor.domain.classes import MarkupType, normalize_class
from takeoff_editor.domain.models import (
    BoundingBox,
    Detection,
    DetectionStatus,
    Job,
    Page,
    Point2D,
    Polyline,
    SimplePolygon,
    utcnow,
)
from takeoff_editor.errors import (
    CommitError,
    DegenerateGeometryError,
    DraftCorruptError,
    GeometryError,
    SessionStateError,
    UnknownDetectionError,
    UnknownPageError,
)
from takeoff_editor.geometry import edits
from takeoff_editor.geometry.boolean import SplitResult, split_detection
from takeoff_editor.geometry.primitives import PointLike, rect_to_ring
from takeoff_editor.measurement.aggregation import JobTotals, PageTotals, aggregate_job, aggregate_page
from takeoff_editor.measurement.engine import refresh_cache
from takeoff_editor.session.commit import CommitBackend, CommitResult
from takeoff_editor.session.draft_store import Draft, DraftStore
from takeoff_editor.session.records import EditKind, EditRecord

logger = logging.getLogger(__name__)

_GEOMETRY_FIELDS = {"geometry", "pixel_x", "pixel_y", "pixel_width", "pixel_height"}


class SessionState(str, Enum):
    CLEAN = "clean"
    DIRTY = "dirty"
    VALIDATING = "validating"
    ERROR = "error"


class EditSession:
    """
    Single-writer edit session over the full detection set of one job.

    Args:
        job_id: Job being edited.
        pages: Pages of the job (scale ratios are read from here).
        detections: Last committed detections; this is the reset baseline.
        backend: Durable store used by commit().
        draft_store: Crash recovery store; drafts are disabled without one.
        max_undo: Undo stack capacity; the oldest record is dropped beyond it.
        autosave_interval_seconds: Period of autosave_tick(); every edit also
            writes the draft immediately.
        draft_max_age_minutes: Drafts older than this are discarded on start.
        clock: Returns the current UTC time (injectable for tests).
    """

    def __init__(
        self,
        job_id: str,
        pages: Iterable[Page],
        detections: Iterable[Detection],
        backend: Optional[CommitBackend] = None,
        draft_store: Optional[DraftStore] = None,
        max_undo: int = config.MAX_UNDO_STACK_SIZE,
        autosave_interval_seconds: float = config.AUTOSAVE_INTERVAL_SECONDS,
        draft_max_age_minutes: float = config.DRAFT_MAX_AGE_MINUTES,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.job_id = job_id
        self.backend = backend
        self.draft_store = draft_store
        self.autosave_interval = timedelta(seconds=autosave_interval_seconds)
        self.draft_max_age_minutes = draft_max_age_minutes
        self._clock = clock
        self._lock = threading.RLock()

        self._pages: dict[str, Page] = {p.id: p for p in pages}
        self._detections: dict[str, Detection] = {}
        for det in detections:
            self._detections[det.id] = self._measured(det)
        self._baseline = dict(self._detections)
        self._baseline_pages = dict(self._pages)

        self._undo: deque[EditRecord] = deque(maxlen=max_undo)
        self._redo: list[EditRecord] = []
        self._state = SessionState.CLEAN
        self._revision = 0
        self._edited = False
        self._closed = False
        self._last_draft_save: Optional[datetime] = None

        self.last_commit_error: Optional[str] = None
        self.last_commit_result: Optional[CommitResult] = None
        self.failed_ids: list[str] = []

    @classmethod
    def from_job(cls, job: Job, **kwargs: Any) -> "EditSession":
        return cls(job.id, job.pages, job.detections, **kwargs)

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------
    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_dirty(self) -> bool:
        return self._state != SessionState.CLEAN

    @property
    def revision(self) -> int:
        """Incremented by every change to the detection set or page scales."""
        return self._revision

    @property
    def can_undo(self) -> bool:
        return bool(self._undo)

    @property
    def can_redo(self) -> bool:
        return bool(self._redo)

    @property
    def undo_depth(self) -> int:
        return len(self._undo)

    @property
    def redo_depth(self) -> int:
        return len(self._redo)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pages(self) -> list[Page]:
        return list(self._pages.values())

    @property
    def detections(self) -> list[Detection]:
        """Every detection, soft-deleted ones included."""
        return list(self._detections.values())

    def live_detections(self, page_id: Optional[str] = None) -> list[Detection]:
        return [
            d for d in self._detections.values()
            if not d.is_deleted and (page_id is None or d.page_id == page_id)
        ]

    def get(self, detection_id: str) -> Detection:
        try:
            return self._detections[detection_id]
        except KeyError:
            raise UnknownDetectionError(detection_id) from None

    def get_page(self, page_id: str) -> Page:
        try:
            return self._pages[page_id]
        except KeyError:
            raise UnknownPageError(page_id) from None

    def page_totals(self, page_id: str) -> Optional[PageTotals]:
        return aggregate_page(self.get_page(page_id), self._detections.values())

    def job_totals(self) -> JobTotals:
        return aggregate_job(self._pages.values(), self._detections.values())

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _measured(self, detection: Detection) -> Detection:
        page = self._pages.get(detection.page_id)
        return refresh_cache(detection, page.scale_ratio if page else None)

    def _require_open(self):
        if self._closed:
            raise SessionStateError(f"Session for job {self.job_id} was discarded")

    def _require_live(self, detection_id: str) -> Detection:
        det = self.get(detection_id)
        if det.is_deleted:
            raise SessionStateError(f"Detection {detection_id} is deleted")
        return det

    def _next_index(self, page_id: str) -> int:
        indices = [d.detection_index for d in self._detections.values() if d.page_id == page_id]
        return max(indices) + 1 if indices else 0

    def _changed(self, det: Detection, mark_edited: bool = True, **changes: Any) -> Detection:
        """Copy of det with changes, stamped with edited_at (and status/original box on edits)."""
        changes["edited_at"] = self._clock()
        if mark_edited and det.status != DetectionStatus.DELETED:
            changes.setdefault("status", DetectionStatus.EDITED)
        if det.original_bbox is None and _GEOMETRY_FIELDS & changes.keys():
            changes["original_bbox"] = det.bbox
        return det.with_changes(**changes)

    def _write(self, changes: dict[str, Optional[Detection]]):
        for det_id, det in changes.items():
            if det is None:
                self._detections.pop(det_id, None)
            else:
                self._detections[det_id] = self._measured(det)

    def _mark_mutated(self):
        self._revision += 1
        self._edited = True
        if self._state != SessionState.VALIDATING:
            self._state = SessionState.DIRTY

    def _matches_baseline(self) -> bool:
        return self._detections == self._baseline and self._pages == self._baseline_pages

    def _apply(self, kind: EditKind, after: dict[str, Optional[Detection]], description: str) -> EditRecord:
        with self._lock:
            self._require_open()
            measured = {i: (self._measured(d) if d is not None else None) for i, d in after.items()}
            before = {i: self._detections.get(i) for i in measured}
            record = EditRecord(
                kind=kind,
                before=before,
                after=measured,
                description=description,
                timestamp=self._clock(),
            )
            self._write(measured)
            self._undo.append(record)
            self._redo.clear()
            self._mark_mutated()
            logger.debug(f"[{self.job_id}] {description}")
            self._autosave()
            return record

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def add(self, detection: Detection) -> Detection:
        """Add a fully built detection (e.g. pasted from another page)."""
        self.get_page(detection.page_id)
        if detection.id in self._detections:
            raise SessionStateError(f"Detection {detection.id} already exists")
        self._apply(EditKind.CREATE, {detection.id: detection}, f"create {detection.detection_class}")
        return self._detections[detection.id]

    def create(
        self,
        page_id: str,
        detection_class: str,
        geometry: Optional[Union[SimplePolygon, Polyline, Any]] = None,
        bbox: Optional[BoundingBox] = None,
        markup_type: Optional[MarkupType] = None,
        **fields: Any,
    ) -> Detection:
        """
        Create an operator-drawn detection.

        Pass a geometry for polygons and lines, or a bbox for rectangle and
        point markups. New detections start as edited with confidence 1.0.
        """
        page = self.get_page(page_id)
        if markup_type is None:
            markup_type = MarkupType.LINE if isinstance(geometry, Polyline) else MarkupType.POLYGON
        now = self._clock()
        data: dict[str, Any] = dict(
            page_id=page.id,
            job_id=self.job_id,
            detection_class=detection_class,
            detection_index=self._next_index(page.id),
            markup_type=markup_type,
            geometry=geometry,
            status=DetectionStatus.EDITED,
            confidence=1.0,
            created_at=now,
            edited_at=now,
        )
        if bbox is not None:
            data.update(
                pixel_x=bbox.x,
                pixel_y=bbox.y,
                pixel_width=bbox.width,
                pixel_height=bbox.height,
            )
        data.update(fields)
        return self.add(Detection(**data))

    def update(self, detection_id: str, **changes: Any) -> Detection:
        """Generic property edit (notes, overrides, color, geometry, ...)."""
        if "id" in changes or "page_id" in changes:
            raise ValueError("id and page_id cannot be edited")
        det = self.get(detection_id)
        mark_edited = bool((_GEOMETRY_FIELDS | {"detection_class"}) & changes.keys())
        updated = self._changed(det, mark_edited=mark_edited, **changes)
        self._apply(EditKind.UPDATE, {det.id: updated}, f"update {det.id[:8]}: {', '.join(changes)}")
        return self._detections[det.id]

    def move(self, detection_id: str, dx: float, dy: float) -> Detection:
        det = self._require_live(detection_id)
        if det.geometry is not None:
            updated = self._changed(det, geometry=edits.translate(det.geometry, dx, dy))
        else:
            updated = self._changed(det, pixel_x=det.pixel_x + dx, pixel_y=det.pixel_y + dy)
        self._apply(EditKind.MOVE, {det.id: updated}, f"move {det.id[:8]} by ({dx}, {dy})")
        return self._detections[det.id]

    def resize(self, detection_id: str, x: float, y: float, width: float, height: float) -> Detection:
        """Fit the detection to a new box (center x, y)."""
        det = self._require_live(detection_id)
        is_line = isinstance(det.geometry, Polyline) or det.markup_type != MarkupType.POLYGON
        if width < 0 or height < 0 or (not is_line and (width == 0 or height == 0)):
            raise DegenerateGeometryError(f"Cannot resize {det.id} to {width} x {height}")
        box = BoundingBox(x=x, y=y, width=width, height=height)
        if det.geometry is not None:
            updated = self._changed(det, geometry=edits.fit_to_box(det.geometry, det.bbox, box))
        else:
            updated = self._changed(det, pixel_x=x, pixel_y=y, pixel_width=width, pixel_height=height)
        self._apply(EditKind.RESIZE, {det.id: updated}, f"resize {det.id[:8]}")
        return self._detections[det.id]

    def _editable_geometry(self, det: Detection):
        if det.geometry is not None:
            return det.geometry
        if det.markup_type != MarkupType.POLYGON:
            raise GeometryError(f"Detection {det.id} has no vertices to edit")
        return SimplePolygon(
            points=rect_to_ring(det.pixel_x, det.pixel_y, det.pixel_width, det.pixel_height)
        )

    def move_vertex(self, detection_id: str, index: int, x: float, y: float, ring: int = 0) -> Detection:
        det = self._require_live(detection_id)
        geometry = edits.move_vertex(self._editable_geometry(det), index, Point2D(x=x, y=y), ring=ring)
        updated = self._changed(det, geometry=geometry)
        self._apply(EditKind.VERTEX, {det.id: updated}, f"move vertex {ring}:{index} of {det.id[:8]}")
        return self._detections[det.id]

    def insert_vertex(
        self,
        detection_id: str,
        x: float,
        y: float,
        index: Optional[int] = None,
        ring: int = 0,
    ) -> Detection:
        """Insert a vertex; without an index it lands on the closest edge."""
        det = self._require_live(detection_id)
        geometry = edits.insert_vertex(self._editable_geometry(det), Point2D(x=x, y=y), index=index, ring=ring)
        updated = self._changed(det, geometry=geometry)
        self._apply(EditKind.VERTEX, {det.id: updated}, f"insert vertex on {det.id[:8]}")
        return self._detections[det.id]

    def remove_vertex(self, detection_id: str, index: int, ring: int = 0) -> Detection:
        det = self._require_live(detection_id)
        geometry = edits.remove_vertex(self._editable_geometry(det), index, ring=ring)
        updated = self._changed(det, geometry=geometry)
        self._apply(EditKind.VERTEX, {det.id: updated}, f"remove vertex {ring}:{index} of {det.id[:8]}")
        return self._detections[det.id]

    def reclassify(self, detection_id: str, new_class: str) -> Detection:
        det = self._require_live(detection_id)
        cls = normalize_class(new_class)
        if not cls:
            raise ValueError("Class cannot be empty")
        updated = self._changed(det, detection_class=cls)
        self._apply(
            EditKind.RECLASSIFY,
            {det.id: updated},
            f"reclassify {det.id[:8]} {det.detection_class} -> {cls}",
        )
        return self._detections[det.id]

    def set_status(self, detection_id: str, status: Union[DetectionStatus, str]) -> Detection:
        """Change lifecycle status; setting DELETED is the same as delete()."""
        status = DetectionStatus(status)
        if status == DetectionStatus.DELETED:
            self.delete(detection_id)
            return self._detections[detection_id]
        det = self.get(detection_id)
        updated = self._changed(det, mark_edited=False, status=status)
        self._apply(EditKind.STATUS, {det.id: updated}, f"status {det.id[:8]} -> {status.value}")
        return self._detections[det.id]

    def verify(self, detection_id: str) -> Detection:
        return self.set_status(detection_id, DetectionStatus.VERIFIED)

    def delete(self, *detection_ids: str) -> list[Detection]:
        """Soft-delete one or more detections as a single undoable edit."""
        if not detection_ids:
            return []
        after = {}
        for det_id in detection_ids:
            det = self._require_live(det_id)
            after[det.id] = self._changed(det, mark_edited=False, status=DetectionStatus.DELETED)
        self._apply(EditKind.DELETE, after, f"delete {len(after)} detection(s)")
        return [self._detections[i] for i in after]

    def split(self, detection_id: str, cut_points: Sequence[PointLike]) -> SplitResult:
        """
        Split a detection by a cut polygon (see geometry.boolean).

        The original is soft-deleted and the pieces are added in one edit.
        """
        det = self._require_live(detection_id)
        page = self.get_page(det.page_id)
        result = split_detection(
            det,
            cut_points,
            page.scale_ratio,
            start_index=self._next_index(page.id),
            now=self._clock(),
        )
        after: dict[str, Optional[Detection]] = {det.id: result.original}
        after.update({p.id: p for p in result.pieces})
        self._apply(
            EditKind.SPLIT,
            after,
            f"split {det.id[:8]} into {len(result.carved)} + {len(result.remaining)}",
        )
        return result

    def assign_material(
        self,
        detection_ids: Union[str, Sequence[str]],
        material_id: Optional[str],
        material_cost_override: Optional[float] = None,
        labor_cost_override: Optional[float] = None,
    ) -> list[Detection]:
        """Assign (or clear, with None) a material and its price overrides."""
        if isinstance(detection_ids, str):
            detection_ids = [detection_ids]
        after = {}
        for det_id in detection_ids:
            det = self._require_live(det_id)
            after[det.id] = self._changed(
                det,
                mark_edited=False,
                assigned_material_id=material_id,
                material_cost_override=material_cost_override,
                labor_cost_override=labor_cost_override,
            )
        if not after:
            return []
        self._apply(EditKind.MATERIAL, after, f"assign material {material_id} to {len(after)} detection(s)")
        return [self._detections[i] for i in after]

    def apply_calibration(self, page_id: str, result: Optional[CalibrationResult]) -> Page:
        """
        Set a page's scale and re-measure its detections.

        A missing result leaves the page untouched. Calibration is not part
        of the undo history; reset() restores the committed scale.
        """
        with self._lock:
            self._require_open()
            page = self.get_page(page_id)
            if result is None:
                return page
            updated = calibrate_page(page, result)
            self._pages[page_id] = updated
            for det_id, det in list(self._detections.items()):
                if det.page_id == page_id:
                    self._detections[det_id] = self._measured(det)
            self._mark_mutated()
            self._autosave()
            return updated

    # ------------------------------------------------------------------
    # Undo / redo
    # ------------------------------------------------------------------
    def _after_history_move(self):
        self._revision += 1
        self._edited = True
        if self._state == SessionState.VALIDATING:
            return
        if self._matches_baseline():
            self._state = SessionState.CLEAN
            self._delete_draft()
        else:
            self._state = SessionState.DIRTY
            self._autosave()

    def undo(self) -> Optional[EditRecord]:
        with self._lock:
            self._require_open()
            if not self._undo:
                return None
            record = self._undo.pop()
            self._write(record.before)
            self._redo.append(record)
            self._after_history_move()
            logger.debug(f"[{self.job_id}] undo {record.description}")
            return record

    def redo(self) -> Optional[EditRecord]:
        with self._lock:
            self._require_open()
            if not self._redo:
                return None
            record = self._redo.pop()
            self._write(record.after)
            self._undo.append(record)
            self._after_history_move()
            logger.debug(f"[{self.job_id}] redo {record.description}")
            return record

    # ------------------------------------------------------------------
    # Commit
    # ------------------------------------------------------------------
    def commit(self) -> Optional[CommitResult]:
        """
        Send the full detection set (tombstones included) to the backend.

        Returns None when there is nothing to commit. On failure the session
        moves to ERROR, keeps every local edit, records the failed ids and
        raises CommitError (or the backend's exception).
        """
        pending = self._begin_commit()
        if pending is None:
            return None
        return self._run_commit(*pending)

    def commit_async(self, executor: Executor) -> Future:
        """
        Start a commit on an executor.

        The snapshot is taken now; edits made while it runs keep the
        session DIRTY after it succeeds.
        """
        pending = self._begin_commit()
        if pending is None:
            future: Future = Future()
            future.set_result(None)
            return future
        return executor.submit(self._run_commit, *pending)

    def _begin_commit(self) -> Optional[tuple[list[Detection], dict[str, Page], int]]:
        with self._lock:
            self._require_open()
            if self.backend is None:
                raise SessionStateError("No commit backend configured")
            if self._state == SessionState.VALIDATING:
                raise SessionStateError("A commit is already in progress")
            if self._state == SessionState.CLEAN:
                logger.info(f"[{self.job_id}] Nothing to commit")
                return None
            self._state = SessionState.VALIDATING
            return list(self._detections.values()), dict(self._pages), self._revision

    def _run_commit(self, snapshot: list[Detection], pages: dict[str, Page], revision: int) -> CommitResult:
        try:
            result = self.backend.commit(self.job_id, snapshot)
        except Exception as e:
            self._commit_failed(str(e), getattr(e, "failed_ids", []))
            raise

        if not result.ok:
            message = result.error or result.message or "Commit rejected"
            self._commit_failed(message, result.failed_ids, result)
            raise CommitError(message, result.failed_ids)

        self._commit_succeeded(snapshot, pages, revision, result)
        return result

    def _commit_succeeded(
        self,
        snapshot: list[Detection],
        pages: dict[str, Page],
        revision: int,
        result: CommitResult,
    ):
        with self._lock:
            self._baseline_pages = pages
            self.last_commit_result = result
            self.last_commit_error = None
            self.failed_ids = []
            if self._revision == revision:
                self._detections = {i: d for i, d in self._detections.items() if not d.is_deleted}
                self._baseline = dict(self._detections)
                self._undo.clear()
                self._redo.clear()
                self._state = SessionState.CLEAN
                self._delete_draft()
                logger.info(f"[{self.job_id}] Committed {len(snapshot)} detections")
            else:
                # Tombstones stay on both sides until a commit of the live revision
                self._baseline = {d.id: d for d in snapshot}
                self._state = SessionState.DIRTY
                logger.info(
                    f"[{self.job_id}] Committed revision {revision}; "
                    f"edits since then keep the session dirty (now {self._revision})"
                )

    def _commit_failed(self, message: str, failed_ids: list[str], result: Optional[CommitResult] = None):
        with self._lock:
            self._state = SessionState.ERROR
            self.last_commit_error = message
            self.failed_ids = list(failed_ids)
            self.last_commit_result = result
        logger.warning(f"[{self.job_id}] Commit failed: {message} ({len(failed_ids)} failed detections)")

    # ------------------------------------------------------------------
    # Reset / discard
    # ------------------------------------------------------------------
    def reset(self):
        """Drop every local edit and return to the last committed snapshot."""
        with self._lock:
            self._require_open()
            if self._state == SessionState.VALIDATING:
                raise SessionStateError("Cannot reset while a commit is in progress")
            self._pages = dict(self._baseline_pages)
            self._detections = {i: self._measured(d) for i, d in self._baseline.items()}
            self._undo.clear()
            self._redo.clear()
            self._revision += 1
            self._state = SessionState.CLEAN
            self.last_commit_error = None
            self.failed_ids = []
            self._delete_draft()
            logger.info(f"[{self.job_id}] Session reset to last committed state")

    def discard(self):
        """Reset and close the session; further edits are refused."""
        with self._lock:
            self.reset()
            self._closed = True

    # ------------------------------------------------------------------
    # Drafts
    # ------------------------------------------------------------------
    def check_draft(self) -> Optional[Draft]:
        """
        Return a recoverable draft for this job, if any.

        Drafts older than the maximum age, or unreadable ones, are deleted
        and not offered.
        """
        if self.draft_store is None:
            return None
        try:
            draft = self.draft_store.load(self.job_id)
        except DraftCorruptError as e:
            logger.warning(f"[{self.job_id}] Discarding unreadable draft: {e}")
            self._delete_draft()
            return None
        except sqlite3.Error as e:
            logger.warning(f"[{self.job_id}] Draft lookup failed: {e}")
            return None
        if draft is None:
            return None
        if draft.is_expired(self.draft_max_age_minutes, now=self._clock()):
            logger.info(f"[{self.job_id}] Discarding draft saved at {draft.saved_at.isoformat()}")
            self._delete_draft()
            return None
        return draft

    def restore_draft(self, draft: Optional[Draft] = None) -> bool:
        """
        Replace the detection set with a draft's content.

        Only allowed before any edit was made in this session. Returns False
        when there is no usable draft.
        """
        with self._lock:
            self._require_open()
            if self._edited or self._state != SessionState.CLEAN:
                raise SessionStateError("A draft can only be restored before any edits")
            if draft is None:
                draft = self.check_draft()
            if draft is None:
                return False
            if draft.job_id != self.job_id:
                raise SessionStateError(f"Draft belongs to job {draft.job_id}, not {self.job_id}")

            for page_id, scale in draft.page_scales.items():
                page = self._pages.get(page_id)
                if page is not None and page.scale_ratio != scale:
                    self._pages[page_id] = page.model_copy(update={"scale_ratio": scale})
            self._detections = {d.id: self._measured(d) for d in draft.detections}
            self._undo.clear()
            self._redo.clear()
            self._revision += 1
            self._edited = True
            self._state = SessionState.CLEAN if self._matches_baseline() else SessionState.DIRTY
            self._last_draft_save = draft.saved_at
            logger.info(f"[{self.job_id}] Restored draft with {len(draft.detections)} detections")
            return True

    def discard_draft(self):
        self._delete_draft()

    def save_draft(self) -> Optional[Draft]:
        """Write a draft now. Store failures are logged, never raised."""
        if self.draft_store is None:
            return None
        with self._lock:
            draft = Draft(
                job_id=self.job_id,
                saved_at=self._clock(),
                detections=list(self._detections.values()),
                page_scales={pid: p.scale_ratio for pid, p in self._pages.items()},
            )
        try:
            self.draft_store.save(draft)
        except (sqlite3.Error, OSError) as e:
            logger.warning(f"[{self.job_id}] Draft save failed: {e}")
            return None
        self._last_draft_save = draft.saved_at
        return draft

    def autosave_tick(self) -> Optional[Draft]:
        """
        Periodic draft write for a timer to call.

        Rewrites the draft of a session with unsaved edits once the autosave
        interval has passed since the last write (or after a failed write).
        """
        with self._lock:
            if self.draft_store is None or self._closed or self._state == SessionState.CLEAN:
                return None
            last = self._last_draft_save
            if last is not None and self._clock() - last < self.autosave_interval:
                return None
        return self.save_draft()

    def _autosave(self):
        if self.draft_store is None or self._state == SessionState.CLEAN:
            return
        if self.save_draft() is None:
            self._last_draft_save = None

    def _delete_draft(self):
        self._last_draft_save = None
        if self.draft_store is None:
            return
        try:
            self.draft_store.delete(self.job_id)
        except sqlite3.Error as e:
            logger.warning(f"[{self.job_id}] Draft delete failed: {e}")
