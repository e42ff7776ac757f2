import pytest

from takeoff_editor.domain.models import DetectionStatus
from takeoff_editor.measurement.corners import infer_corners

SCALE = 10.0


def test_two_walls_with_gap(make_rect):
    left = make_rect(0, 0, 200, 300, "siding", id="left")
    right = make_rect(250, 0, 200, 300, "siding", id="right")

    totals = infer_corners([left, right], SCALE)

    assert totals.outside_count == 2
    assert totals.inside_count == 2
    assert totals.outside_lf == pytest.approx(60)
    assert totals.inside_lf == pytest.approx(60)
    outside = {(c.detection_id, c.side) for c in totals.corners if c.kind == "outside"}
    inside = {(c.detection_id, c.side) for c in totals.corners if c.kind == "inside"}
    assert outside == {("left", "left"), ("right", "right")}
    assert inside == {("left", "right"), ("right", "left")}


def test_lone_wall_has_two_outside_corners(make_rect):
    totals = infer_corners([make_rect(0, 0, 200, 300, "building")], SCALE)
    assert totals.outside_count == 2
    assert totals.inside_count == 0
    assert totals.outside_lf == pytest.approx(60)


def test_small_gap_is_not_an_inside_corner(make_rect):
    walls = [make_rect(0, 0, 200, 300), make_rect(205, 0, 200, 300)]
    totals = infer_corners(walls, SCALE)
    assert totals.inside_count == 0
    assert totals.outside_count == 2


def test_walls_in_separate_rows(make_rect):
    walls = [make_rect(0, 0, 200, 100), make_rect(0, 400, 200, 100)]
    totals = infer_corners(walls, SCALE)
    assert totals.outside_count == 4
    assert totals.inside_count == 0


def test_rows_chain_by_neighbouring_centers(make_rect):
    # centers at 50, 90, 130: each within 50 px of the previous one
    walls = [
        make_rect(0, 0, 100, 100),
        make_rect(150, 40, 100, 100),
        make_rect(300, 80, 100, 100),
    ]
    totals = infer_corners(walls, SCALE)
    assert totals.outside_count == 2
    assert totals.inside_count == 4


def test_ignores_non_facade_and_deleted(make_rect):
    detections = [
        make_rect(0, 0, 200, 300, "window"),
        make_rect(0, 0, 200, 300, "siding", status=DetectionStatus.DELETED),
    ]
    totals = infer_corners(detections, SCALE)
    assert totals.outside_count == 0
    assert totals.corners == []


def test_no_corners_without_scale(make_rect):
    totals = infer_corners([make_rect(0, 0, 200, 300)], None)
    assert totals.outside_count == 0
