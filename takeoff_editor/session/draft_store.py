"""
Draft Store: SQLite-backed crash recovery for edit sessions.

One row per job holds the latest uncommitted detection set:
  drafts(job_id PRIMARY KEY, saved_at, payload)

payload is the JSON of a Draft (detections in their wire layout plus any
page scales changed by calibration). WAL mode is enabled so that an editor
process can keep writing while another process inspects the file.
"""

import json
import logging
import os
import sqlite3
from datetime import datetime, timedelta, timezone
from typing import Optional

from pydantic import BaseModel, Field, ValidationError

from takeoff_editor import config
from takeoff_editor.domain.models import Detection, utcnow
from takeoff_editor.errors import DraftCorruptError

logger = logging.getLogger(__name__)


class Draft(BaseModel):
    """Snapshot of a session's uncommitted state."""
    job_id: str
    saved_at: datetime = Field(default_factory=utcnow)
    detections: list[Detection] = Field(default_factory=list)
    page_scales: dict[str, Optional[float]] = Field(default_factory=dict)

    def age(self, now: Optional[datetime] = None) -> timedelta:
        now = now or utcnow()
        saved_at = self.saved_at
        if saved_at.tzinfo is None:
            saved_at = saved_at.replace(tzinfo=timezone.utc)
        return now - saved_at

    def is_expired(self, max_age_minutes: float, now: Optional[datetime] = None) -> bool:
        return self.age(now) > timedelta(minutes=max_age_minutes)

    def to_json(self) -> str:
        return json.dumps(self.model_dump(mode="json", by_alias=True))


class DraftStore:
    """Persistent draft store backed by SQLite with WAL mode."""

    def __init__(self, db_path: str = config.DRAFT_DB_PATH):
        if db_path != ":memory:":
            directory = os.path.dirname(db_path)
            if directory:
                os.makedirs(directory, exist_ok=True)
        self.db_path = db_path
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._create_tables()

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------
    def _create_tables(self):
        self._conn.execute(
            """CREATE TABLE IF NOT EXISTS drafts (
                job_id TEXT PRIMARY KEY,
                saved_at TEXT NOT NULL,
                payload TEXT NOT NULL
            )"""
        )
        self._conn.commit()

    # ------------------------------------------------------------------
    # Drafts
    # ------------------------------------------------------------------
    def save(self, draft: Draft):
        """Insert or replace the draft for its job."""
        self._conn.execute(
            "INSERT OR REPLACE INTO drafts (job_id, saved_at, payload) VALUES (?, ?, ?)",
            (draft.job_id, draft.saved_at.isoformat(), draft.to_json()),
        )
        self._conn.commit()
        logger.debug(f"Saved draft for job {draft.job_id} ({len(draft.detections)} detections)")

    def load(self, job_id: str) -> Optional[Draft]:
        """
        Return the stored draft for a job, or None if there is none.

        Raises DraftCorruptError when the stored payload cannot be decoded.
        """
        row = self._conn.execute(
            "SELECT job_id, saved_at, payload FROM drafts WHERE job_id = ?",
            (job_id,),
        ).fetchone()
        if row is None:
            return None
        try:
            return Draft.model_validate_json(row["payload"])
        except ValidationError as e:
            raise DraftCorruptError(f"Draft for job {job_id} is unreadable: {e}") from e

    def saved_at(self, job_id: str) -> Optional[datetime]:
        row = self._conn.execute(
            "SELECT saved_at FROM drafts WHERE job_id = ?", (job_id,)
        ).fetchone()
        if row is None:
            return None
        return datetime.fromisoformat(row["saved_at"])

    def delete(self, job_id: str):
        self._conn.execute("DELETE FROM drafts WHERE job_id = ?", (job_id,))
        self._conn.commit()

    def job_ids(self) -> list[str]:
        rows = self._conn.execute("SELECT job_id FROM drafts ORDER BY saved_at DESC").fetchall()
        return [r["job_id"] for r in rows]

    def close(self):
        self._conn.close()
