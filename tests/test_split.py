from datetime import datetime, timezone

import pytest

from takeoff_editor.domain.models import Detection, DetectionStatus, PolygonWithHoles, SimplePolygon
from takeoff_editor.errors import DegenerateGeometryError, NothingToSplitError
from takeoff_editor.geometry.boolean import split_detection
from takeoff_editor.geometry.primitives import geometry_area
from takeoff_editor.measurement.engine import refresh_cache

SCALE = 10.0


def _total_area(result):
    return sum(geometry_area(p.geometry) for p in result.pieces)


def test_split_conserves_area(make_rect):
    wall = refresh_cache(make_rect(0, 0, 100, 100, "siding", id="wall-1"), SCALE)
    result = split_detection(wall, [(50, -10), (150, -10), (150, 110), (50, 110)], SCALE)

    assert len(result.carved) == 1
    assert len(result.remaining) == 1
    assert _total_area(result) == pytest.approx(10000, rel=1e-6)
    assert result.carved[0].area_sf == pytest.approx(50)
    assert result.remaining[0].area_sf == pytest.approx(50)
    assert sum(p.area_sf for p in result.pieces) == pytest.approx(wall.area_sf)


def test_split_marks_original_deleted_and_stamps_pieces(make_rect):
    wall = make_rect(0, 0, 100, 100, "siding", id="abcdef1234")
    now = datetime(2024, 3, 1, tzinfo=timezone.utc)
    result = split_detection(wall, [(0, 0), (50, 0), (50, 100), (0, 100)], SCALE, start_index=7, now=now)

    assert result.original.id == wall.id
    assert result.original.status == DetectionStatus.DELETED
    for piece in result.pieces:
        assert piece.id != wall.id
        assert piece.detection_class == "siding"
        assert piece.status == DetectionStatus.EDITED
        assert piece.confidence == 1.0
        assert piece.created_at == now
    assert result.carved[0].notes == "Carved from abcdef12"
    assert result.remaining[0].notes == "Remaining from abcdef12"
    assert [p.detection_index for p in result.pieces] == [7, 8]


def test_cut_inside_leaves_a_hole(make_rect):
    wall = make_rect(0, 0, 100, 100)
    result = split_detection(wall, [(25, 25), (75, 25), (75, 75), (25, 75)], SCALE)

    remaining = result.remaining[0]
    assert isinstance(remaining.geometry, PolygonWithHoles)
    assert remaining.notes.endswith("(with hole)")
    assert remaining.area_sf == pytest.approx(75)
    assert result.carved[0].area_sf == pytest.approx(25)


def test_strip_cut_leaves_two_remaining_pieces(make_rect):
    wall = make_rect(0, 0, 100, 100)
    result = split_detection(wall, [(40, -10), (60, -10), (60, 110), (40, 110)], SCALE)

    assert len(result.carved) == 1
    assert len(result.remaining) == 2
    assert _total_area(result) == pytest.approx(10000)


def test_cut_covering_everything_leaves_no_remainder(make_rect):
    wall = make_rect(0, 0, 100, 100)
    result = split_detection(wall, [(-10, -10), (110, -10), (110, 110), (-10, 110)], SCALE)

    assert len(result.carved) == 1
    assert result.remaining == []


def test_box_mode_detection_can_be_split():
    box = Detection(page_id="p1", detection_class="siding", pixel_x=50, pixel_y=50, pixel_width=100, pixel_height=100)
    result = split_detection(box, [(0, 0), (50, 0), (50, 100), (0, 100)], SCALE)
    assert _total_area(result) == pytest.approx(10000)


def test_disjoint_cut_raises(make_rect):
    wall = make_rect(0, 0, 100, 100)
    with pytest.raises(NothingToSplitError):
        split_detection(wall, [(200, 200), (300, 200), (300, 300)], SCALE)


def test_degenerate_cuts_raise(make_rect, make_line):
    wall = make_rect(0, 0, 100, 100)
    with pytest.raises(DegenerateGeometryError):
        split_detection(wall, [(0, 0), (50, 50)], SCALE)
    with pytest.raises(DegenerateGeometryError):
        split_detection(wall, [(0, 0), (50, 50), (100, 100)], SCALE)
    with pytest.raises(DegenerateGeometryError):
        split_detection(make_line([(0, 0), (100, 0)]), [(0, 0), (50, 0), (50, 50)], SCALE)


def test_zero_area_target_raises(make_rect):
    flat = make_rect(0, 0, 100, 0)
    with pytest.raises(DegenerateGeometryError):
        split_detection(flat, [(0, -10), (50, -10), (50, 10)], SCALE)


def test_oblique_cut_through_l_shaped_wall_conserves_area():
    wall = refresh_cache(Detection(
        page_id="p1",
        detection_class="siding",
        geometry=SimplePolygon(points=[(0, 0), (100, 0), (100, 50), (200, 50), (200, 100), (0, 100)]),
    ), SCALE)
    result = split_detection(wall, [(30, -20), (230, 130), (-40, 90)], SCALE)

    assert len(result.carved) >= 1
    assert len(result.remaining) >= 1
    assert _total_area(result) == pytest.approx(15000, rel=1e-6)
    assert sum(p.area_sf for p in result.pieces) == pytest.approx(wall.area_sf, rel=1e-6)


def test_self_intersecting_target_is_rejected():
    bow_tie = Detection(
        page_id="p1",
        detection_class="siding",
        geometry=SimplePolygon(points=[(0, 0), (10, 10), (10, 0), (0, 10)]),
    )
    with pytest.raises(DegenerateGeometryError, match="Invalid detection"):
        split_detection(bow_tie, [(0, -1), (5, -1), (5, 11), (0, 11)], SCALE)


def test_self_intersecting_cut_is_rejected(make_rect):
    wall = make_rect(0, 0, 100, 100)
    with pytest.raises(DegenerateGeometryError, match="Invalid cut polygon"):
        split_detection(wall, [(0, 0), (50, 50), (50, 0), (0, 50)], SCALE)
