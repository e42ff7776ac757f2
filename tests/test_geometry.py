import pytest

from takeoff_editor.domain.models import BoundingBox, Detection, Point2D, PolygonWithHoles, Polyline, SimplePolygon
from takeoff_editor.errors import DegenerateGeometryError
from takeoff_editor.geometry import edits
from takeoff_editor.geometry.primitives import (
    bounding_box,
    closest_edge,
    detection_rings,
    geometry_area,
    geometry_perimeter,
    path_length,
    rect_to_ring,
    ring_area,
    ring_centroid,
    ring_perimeter,
)

SQUARE = [(0, 0), (100, 0), (100, 100), (0, 100)]
HOLE = [(40, 40), (60, 40), (60, 60), (40, 60)]


# ---------------------------------------------------------------------------
# Primitives
# ---------------------------------------------------------------------------
def test_ring_area_is_unsigned():
    assert ring_area(SQUARE) == 10000
    assert ring_area(list(reversed(SQUARE))) == 10000


def test_ring_perimeter_includes_closing_edge():
    assert ring_perimeter(SQUARE) == 400


def test_path_length_is_open():
    assert path_length([(0, 0), (30, 40), (30, 100)]) == pytest.approx(110)


def test_degenerate_inputs_measure_zero():
    assert ring_area([(0, 0), (1, 1)]) == 0
    assert path_length([(3, 3)]) == 0


def test_rect_to_ring_is_clockwise_from_top_left():
    ring = rect_to_ring(50, 25, 100, 50)
    assert [p.as_tuple() for p in ring] == [(0, 0), (100, 0), (100, 50), (0, 50)]


def test_bounding_box_center_and_size():
    box = bounding_box([(10, 20), (50, 20), (30, 80)])
    assert (box.x, box.y, box.width, box.height) == (30, 50, 40, 60)
    assert (box.left, box.top, box.right, box.bottom) == (10, 20, 50, 80)


def test_ring_centroid_of_square():
    c = ring_centroid(SQUARE)
    assert c.x == pytest.approx(50)
    assert c.y == pytest.approx(50)


def test_geometry_area_subtracts_holes_and_perimeter_adds_them():
    geometry = PolygonWithHoles(outer=SQUARE, holes=[HOLE])
    assert geometry_area(geometry) == 9600
    assert geometry_perimeter(geometry) == 480


def test_polyline_has_no_area():
    line = Polyline(points=[(0, 0), (10, 0)])
    assert geometry_area(line) == 0
    assert geometry_perimeter(line) == 10


def test_closest_edge_wraps_for_rings():
    index, dist = closest_edge(SQUARE, (-5, 50))
    assert index == 3
    assert dist == pytest.approx(5)


def test_detection_rings_falls_back_to_box():
    det = Detection(page_id="p1", pixel_x=50, pixel_y=50, pixel_width=20, pixel_height=10)
    outer, holes = detection_rings(det)
    assert [p.as_tuple() for p in outer] == [(40, 45), (60, 45), (60, 55), (40, 55)]
    assert holes == []


# ---------------------------------------------------------------------------
# Edits
# ---------------------------------------------------------------------------
def test_translate_moves_every_ring():
    moved = edits.translate(PolygonWithHoles(outer=SQUARE, holes=[HOLE]), 10, -5)
    assert moved.outer[0].as_tuple() == (10, -5)
    assert moved.holes[0][0].as_tuple() == (50, 35)


def test_fit_to_box_scales_axes_independently():
    geometry = SimplePolygon(points=SQUARE)
    old = BoundingBox(x=50, y=50, width=100, height=100)
    new = BoundingBox(x=100, y=100, width=200, height=50)

    fitted = edits.fit_to_box(geometry, old, new)

    assert [p.as_tuple() for p in fitted.points] == [(0, 75), (200, 75), (200, 125), (0, 125)]


def test_move_vertex_replaces_one_point():
    geometry = edits.move_vertex(SimplePolygon(points=SQUARE), 2, Point2D(x=120, y=130))
    assert geometry.points[2].as_tuple() == (120, 130)
    assert len(geometry.points) == 4


def test_move_vertex_on_hole():
    geometry = edits.move_vertex(PolygonWithHoles(outer=SQUARE, holes=[HOLE]), 0, Point2D(x=35, y=35), ring=1)
    assert geometry.holes[0][0].as_tuple() == (35, 35)
    assert geometry.outer[0].as_tuple() == (0, 0)


def test_insert_vertex_lands_on_closest_edge():
    geometry = edits.insert_vertex(SimplePolygon(points=SQUARE), Point2D(x=50, y=-5))
    assert [p.as_tuple() for p in geometry.points] == [(0, 0), (50, -5), (100, 0), (100, 100), (0, 100)]


def test_insert_vertex_at_explicit_index():
    geometry = edits.insert_vertex(SimplePolygon(points=SQUARE), Point2D(x=0, y=50), index=4)
    assert geometry.points[-1].as_tuple() == (0, 50)


def test_remove_vertex_refuses_to_leave_fewer_than_three():
    triangle = SimplePolygon(points=[(0, 0), (10, 0), (0, 10)])
    with pytest.raises(DegenerateGeometryError):
        edits.remove_vertex(triangle, 0)
    line = Polyline(points=[(0, 0), (10, 0)])
    with pytest.raises(DegenerateGeometryError):
        edits.remove_vertex(line, 1)


def test_remove_vertex_keeps_input_untouched():
    square = SimplePolygon(points=SQUARE)
    triangle = edits.remove_vertex(square, 1)
    assert len(triangle.points) == 3
    assert len(square.points) == 4


def test_bad_indices_raise_index_error():
    square = SimplePolygon(points=SQUARE)
    with pytest.raises(IndexError):
        edits.move_vertex(square, 9, Point2D(x=0, y=0))
    with pytest.raises(IndexError):
        edits.remove_vertex(square, 0, ring=1)
