from datetime import datetime, timedelta, timezone

import pytest

from takeoff_editor.errors import DraftCorruptError
from takeoff_editor.session.draft_store import Draft, DraftStore

SAVED_AT = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def test_save_and_load(draft_store, make_rect, make_line):
    detections = [make_rect(0, 0, 64, 64, "window"), make_line([(0, 0), (10, 0)], "fascia")]
    draft = Draft(job_id="job-1", saved_at=SAVED_AT, detections=detections, page_scales={"p1": 64.0})

    draft_store.save(draft)
    loaded = draft_store.load("job-1")

    assert [d.to_record() for d in loaded.detections] == [d.to_record() for d in detections]
    assert loaded.page_scales == {"p1": 64.0}
    assert draft_store.saved_at("job-1") == SAVED_AT


def test_one_draft_per_job(draft_store):
    draft_store.save(Draft(job_id="job-1", saved_at=SAVED_AT))
    draft_store.save(Draft(job_id="job-1", saved_at=SAVED_AT + timedelta(minutes=5)))
    draft_store.save(Draft(job_id="job-2", saved_at=SAVED_AT + timedelta(minutes=1)))

    assert draft_store.job_ids() == ["job-1", "job-2"]
    assert draft_store.saved_at("job-1") == SAVED_AT + timedelta(minutes=5)


def test_missing_and_deleted(draft_store):
    assert draft_store.load("nope") is None
    assert draft_store.saved_at("nope") is None

    draft_store.save(Draft(job_id="job-1"))
    draft_store.delete("job-1")
    assert draft_store.load("job-1") is None


def test_corrupt_payload_raises(draft_store):
    draft_store._conn.execute(
        "INSERT INTO drafts (job_id, saved_at, payload) VALUES (?, ?, ?)",
        ("job-1", SAVED_AT.isoformat(), '{"job_id": "job-1", "detections": [{"class": "window"}]}'),
    )
    with pytest.raises(DraftCorruptError):
        draft_store.load("job-1")


def test_draft_age():
    draft = Draft(job_id="job-1", saved_at=SAVED_AT)
    assert draft.age(SAVED_AT + timedelta(minutes=30)) == timedelta(minutes=30)
    assert not draft.is_expired(60, now=SAVED_AT + timedelta(minutes=60))
    assert draft.is_expired(60, now=SAVED_AT + timedelta(minutes=61))


def test_creates_parent_directory(tmp_path):
    store = DraftStore(str(tmp_path / "nested" / "dir" / "drafts.db"))
    store.save(Draft(job_id="job-1"))
    assert (tmp_path / "nested" / "dir" / "drafts.db").exists()
    store.close()


def test_in_memory_store():
    store = DraftStore(":memory:")
    store.save(Draft(job_id="job-1"))
    assert store.job_ids() == ["job-1"]
    store.close()
