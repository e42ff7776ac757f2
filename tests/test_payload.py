import pytest

from takeoff_editor.domain.models import Detection, DetectionStatus, Page
from takeoff_editor.export.payload import build_approve_payload, material_assignments, selected_trades
from takeoff_editor.measurement.aggregation import aggregate_job


@pytest.fixture
def detections(make_rect, make_line):
    return [
        make_rect(0, 0, 640, 320, "siding", id="wall", assigned_material_id="lap-siding"),
        make_rect(100, 100, 64, 128, "window", id="win", assigned_material_id="vinyl-window",
                  material_cost_override=120.0),
        make_line([(0, 0), (640, 0)], "gutter", id="gutter", assigned_material_id="k-gutter"),
        Detection(page_id="p1", id="vent", detection_class="vent", markup_type="point",
                  pixel_x=5, pixel_y=5, assigned_material_id="vent-box"),
        make_rect(0, 0, 64, 64, "door", id="gone", assigned_material_id="door",
                  status=DetectionStatus.DELETED),
        make_rect(0, 0, 64, 64, "door", id="plain"),
    ]


def test_material_assignments_units_and_quantities(elevation_page, detections):
    assignments = {a.detection_id: a for a in material_assignments(detections, [elevation_page])}

    assert set(assignments) == {"wall", "win", "gutter", "vent"}
    assert (assignments["wall"].unit, assignments["wall"].quantity) == ("SF", pytest.approx(50))
    assert (assignments["gutter"].unit, assignments["gutter"].quantity) == ("LF", pytest.approx(10))
    assert (assignments["vent"].unit, assignments["vent"].quantity) == ("EA", 1)
    assert assignments["win"].pricing_item_id == "vinyl-window"
    assert assignments["win"].material_cost_override == 120.0


def test_assignment_without_page_scale_has_zero_quantity(make_rect):
    page = Page(id="p1", scale_ratio=None)
    det = make_rect(0, 0, 64, 64, "siding", assigned_material_id="lap")
    [assignment] = material_assignments([det], [page])
    assert assignment.quantity == 0


def test_selected_trades(elevation_page, detections):
    trades = selected_trades(material_assignments(detections, [elevation_page]))
    assert trades == ["siding", "windows", "gutters"]
    assert selected_trades([]) == ["siding"]


def test_approve_payload_sections(elevation_page, detections):
    totals = aggregate_job([elevation_page], detections).all_pages

    payload = build_approve_payload(
        "job-1", totals, detections, [elevation_page],
        product_color="arctic white", project_name="Maple St",
    )

    assert payload.job_id == "job-1"
    assert payload.project_name == "Maple St"
    assert payload.facade.gross_area_sf == pytest.approx(50)
    assert payload.facade.net_siding_sf == pytest.approx(47)
    assert payload.windows.count == 1
    assert payload.windows.sill_lf == pytest.approx(1)
    assert payload.doors.count == 1
    assert payload.doors.sill_lf is None
    assert payload.trim.total_head_lf == pytest.approx(2)
    assert payload.trim.total_jamb_lf == pytest.approx(6)
    assert payload.trim.total_trim_lf == pytest.approx(9)
    assert payload.corners.outside_count == 2
    assert payload.corners.outside_lf == pytest.approx(10)
    assert payload.products.color == "arctic white"
    assert payload.products.profile == "cedarmill"
    assert payload.detection_counts["vent"].unit == "EA"
    assert payload.detection_counts["gutter"].total_lf == pytest.approx(10)
    assert payload.total_point_count == 1
    assert len(payload.material_assignments) == 4

    body = payload.model_dump(mode="json")
    assert body["selected_trades"] == ["siding", "windows", "gutters"]
