import pytest

from takeoff_editor.domain.models import DetectionStatus
from takeoff_editor.review.confidence import (
    ConfidenceFilter,
    confidence_level,
    needs_review,
    visible_detections,
)


@pytest.mark.parametrize("confidence,level", [
    (0.95, "high"),
    (0.85, "high"),
    (0.7, "medium"),
    (0.5, "low"),
    (0.2, "very_low"),
])
def test_confidence_levels(confidence, level):
    assert confidence_level(confidence) == level


def test_needs_review_only_for_untouched_low_confidence(make_rect):
    assert needs_review(make_rect(0, 0, 10, 10, confidence=0.6))
    assert not needs_review(make_rect(0, 0, 10, 10, confidence=0.6, status=DetectionStatus.VERIFIED))
    assert not needs_review(make_rect(0, 0, 10, 10, confidence=0.9))


def test_filter_splits_by_threshold(make_rect):
    sure = make_rect(0, 0, 10, 10, confidence=0.9)
    unsure = make_rect(0, 0, 10, 10, confidence=0.4)
    gone = make_rect(0, 0, 10, 10, confidence=0.9, status=DetectionStatus.DELETED)

    shown = visible_detections([sure, unsure, gone], min_confidence=0.5)
    assert shown.visible == [sure]
    assert shown.dimmed == [unsure]
    assert shown.hidden == []
    assert shown.below_threshold_count == 1

    strict = visible_detections([sure, unsure, gone], min_confidence=0.5, show_low_confidence=False)
    assert strict.hidden == [unsure]
    assert strict.above_threshold_count == 1


def test_inactive_filter_shows_everything(make_rect):
    f = ConfidenceFilter()
    assert not f.is_active
    assert f.passes(make_rect(0, 0, 10, 10, confidence=0.0))


def test_render_hint(make_rect):
    f = ConfidenceFilter(min_confidence=0.5)
    window = make_rect(0, 0, 100, 50, "window", confidence=0.3)

    hint = f.render_hint(window)

    assert hint.level == "dimmed"
    assert hint.opacity == 0.3
    assert hint.stroke_dash == [5, 5]
    assert hint.color == "#3B82F6"
    assert hint.label == "Window"
    assert hint.label_position.x == pytest.approx(50)
    assert hint.label_position.y == pytest.approx(25)


def test_color_override_wins(make_rect):
    hint = ConfidenceFilter().render_hint(make_rect(0, 0, 10, 10, "window", color_override="#123456"))
    assert hint.color == "#123456"
    assert hint.stroke_dash is None
    assert hint.opacity == 1.0
