import math

import pytest

from takeoff_editor.domain.classes import MeasurementKind
from takeoff_editor.domain.models import Detection, PolygonWithHoles, SimplePolygon
from takeoff_editor.measurement.engine import measure_detection, refresh_cache
from takeoff_editor.measurement.formatting import format_area, format_feet_inches, format_length, to_squares


def test_rectangle_area_and_perimeter_at_scale(make_rect):
    det = make_rect(0, 0, 120, 100, "siding")
    m = measure_detection(det, 64)

    assert m.kind == MeasurementKind.AREA
    assert m.area_sf == pytest.approx(12000 / 4096)
    assert round(m.area_sf, 2) == 2.93
    assert m.perimeter_lf == pytest.approx(6.875)


def test_refresh_cache_is_idempotent(make_rect):
    det = refresh_cache(make_rect(0, 0, 120, 100), 64)
    again = refresh_cache(det, 64)

    assert again is det
    assert det.area_sf == pytest.approx(2.9296875)
    assert det.real_width_ft == pytest.approx(120 / 64)


def test_invalid_scale_yields_no_measurement(make_rect):
    det = make_rect(0, 0, 120, 100)
    assert measure_detection(det, None) is None
    assert measure_detection(det, 0) is None
    assert measure_detection(det, -64) is None
    assert measure_detection(det, math.nan) is None

    cleared = refresh_cache(refresh_cache(det, 64), None)
    assert cleared.area_sf is None
    assert cleared.perimeter_lf is None


def test_window_trim_quantities(make_rect):
    m = measure_detection(make_rect(0, 0, 120, 100, "window"), 64)
    assert m.head_lf == pytest.approx(1.875)
    assert m.jamb_lf == pytest.approx(3.125)
    assert m.sill_lf == pytest.approx(1.875)


def test_door_has_no_sill(make_rect):
    m = measure_detection(make_rect(0, 0, 60, 140, "door"), 10)
    assert m.head_lf == pytest.approx(6)
    assert m.jamb_lf == pytest.approx(28)
    assert m.sill_lf == 0


def test_skewed_window_trim_follows_edges():
    det = Detection(
        page_id="p1",
        detection_class="window",
        geometry=SimplePolygon(points=[(0, 0), (100, 0), (120, 100), (-20, 100)]),
    )
    m = measure_detection(det, 1)
    assert m.head_lf == pytest.approx(100)
    assert m.sill_lf == pytest.approx(140)
    assert m.jamb_lf == pytest.approx(2 * math.hypot(20, 100))


def test_door_head_spans_split_top_edge():
    # extra vertex on the top edge after a vertex insert
    det = Detection(
        page_id="p1",
        detection_class="door",
        geometry=SimplePolygon(points=[(0, 0), (30, 0), (60, 0), (60, 140), (0, 140)]),
    )
    m = measure_detection(det, 10)
    assert m.head_lf == pytest.approx(6)
    assert m.jamb_lf == pytest.approx(28)
    assert m.sill_lf == 0


def test_level_starter_uses_bottom_run():
    # L-shaped wall; the bottom edge runs the full 200 px
    det = Detection(
        page_id="p1",
        detection_class="building",
        geometry=SimplePolygon(points=[(0, 0), (100, 0), (100, 50), (200, 50), (200, 100), (0, 100)]),
    )
    m = measure_detection(det, 10)
    assert m.level_starter_lf == pytest.approx(20)
    assert m.area_sf == pytest.approx(150)


def test_gable_rake_sums_sloped_edges():
    det = Detection(
        page_id="p1",
        detection_class="gable",
        geometry=SimplePolygon(points=[(0, 100), (50, 0), (100, 100)]),
    )
    m = measure_detection(det, 10)
    assert m.area_sf == pytest.approx(50)
    assert m.rake_lf == pytest.approx(2 * math.hypot(50, 100) / 10)


def test_gable_box_falls_back_to_inscribed_triangle():
    det = Detection(page_id="p1", detection_class="gable", pixel_x=50, pixel_y=25, pixel_width=100, pixel_height=50)
    m = measure_detection(det, 10)
    assert m.rake_lf == pytest.approx(2 * math.hypot(50, 50) / 10)


def test_polygon_with_hole(make_rect):
    det = Detection(
        page_id="p1",
        detection_class="siding",
        geometry=PolygonWithHoles(
            outer=[(0, 0), (100, 0), (100, 100), (0, 100)],
            holes=[[(40, 40), (60, 40), (60, 60), (40, 60)]],
        ),
    )
    m = measure_detection(det, 10)
    assert m.area_sf == pytest.approx(96)
    assert m.perimeter_lf == pytest.approx(48)


def test_line_markup_measures_path_length(make_line):
    det = make_line([(0, 0), (30, 40), (30, 100)], "trim")
    m = measure_detection(det, 10)

    assert m.kind == MeasurementKind.LINEAR
    assert m.length_lf == pytest.approx(11)
    cached = refresh_cache(det, 10)
    assert cached.area_sf is None
    assert cached.perimeter_lf == pytest.approx(11)


def test_linear_class_drawn_as_box_uses_longer_side():
    det = Detection(page_id="p1", detection_class="gutter", pixel_x=100, pixel_y=10, pixel_width=200, pixel_height=8)
    m = measure_detection(det, 10)
    assert m.kind == MeasurementKind.LINEAR
    assert m.length_lf == pytest.approx(20)


def test_count_classes_and_point_markups():
    vent = Detection(page_id="p1", detection_class="vent", markup_type="point", pixel_x=5, pixel_y=5)
    m = measure_detection(vent, 10)
    assert m.kind == MeasurementKind.COUNT
    assert m.count == 1
    assert m.area_sf == 0

    cached = refresh_cache(vent, 10)
    assert cached.area_sf is None
    assert cached.perimeter_lf is None

    marker = Detection(page_id="p1", detection_class="window", markup_type="point")
    assert measure_detection(marker, 10).kind == MeasurementKind.COUNT


def test_unknown_class_is_measured_as_area(make_rect):
    m = measure_detection(make_rect(0, 0, 100, 100, "pergola"), 10)
    assert m.kind == MeasurementKind.AREA
    assert m.area_sf == pytest.approx(100)


def test_formatting():
    assert format_feet_inches(12.5) == "12' 6\""
    assert format_feet_inches(0.5) == '6"'
    assert format_feet_inches(3) == "3'"
    assert format_feet_inches(None) == "-"
    assert format_area(1234.56) == "1,234.6 SF"
    assert format_length(10) == "10.0 LF"
    assert to_squares(250) == 2.5
