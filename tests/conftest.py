from datetime import datetime, timedelta, timezone

import pytest

from takeoff_editor.domain.models import Detection, Page, PageType, Polyline, SimplePolygon
from takeoff_editor.geometry.primitives import rect_to_ring
from takeoff_editor.session.commit import InMemoryCommitBackend
from takeoff_editor.session.draft_store import DraftStore
from takeoff_editor.session.edit_session import EditSession


class FakeClock:
    """Deterministic UTC clock that tests advance by hand."""

    def __init__(self, start: datetime = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


def box_polygon(left: float, top: float, width: float, height: float) -> SimplePolygon:
    return SimplePolygon(points=rect_to_ring(left + width / 2, top + height / 2, width, height))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_rect():
    """Factory for a rectangular polygon detection given its top-left corner and size."""

    def _make(left, top, width, height, detection_class="siding", page_id="p1", **fields):
        return Detection(
            page_id=page_id,
            job_id="job-1",
            detection_class=detection_class,
            geometry=box_polygon(left, top, width, height),
            **fields,
        )

    return _make


@pytest.fixture
def make_line():
    def _make(points, detection_class="trim", page_id="p1", **fields):
        return Detection(
            page_id=page_id,
            job_id="job-1",
            detection_class=detection_class,
            markup_type="line",
            geometry=Polyline(points=points),
            **fields,
        )

    return _make


@pytest.fixture
def elevation_page():
    return Page(id="p1", job_id="job-1", width=2000, height=1500, scale_ratio=64.0,
                page_type=PageType.ELEVATION, elevation_name="front")


@pytest.fixture
def backend():
    return InMemoryCommitBackend()


@pytest.fixture
def draft_store(tmp_path):
    store = DraftStore(str(tmp_path / "drafts.db"))
    yield store
    store.close()


@pytest.fixture
def session_factory(elevation_page, make_rect, backend, draft_store, clock):
    """Builds sessions over one calibrated elevation with a wall and a window."""

    def _make(**kwargs):
        wall = make_rect(0, 0, 640, 320, "siding", id="wall-1")
        window = make_rect(100, 100, 64, 128, "window", id="win-1", confidence=0.6)
        options = dict(backend=backend, draft_store=draft_store, autosave_interval_seconds=0, clock=clock)
        options.update(kwargs)
        return EditSession("job-1", [elevation_page], [wall, window], **options)

    return _make


@pytest.fixture
def session(session_factory):
    return session_factory()
