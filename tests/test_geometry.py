import pytest
from pydantic import ValidationError

from vision_server.models.geometry import (
    BoundingBox,
    bounding_box_of_points,
    clamp_unit,
    normalize_point,
    normalize_rect,
)


def test_clamp_unit():
    assert clamp_unit(-0.5) == 0.0
    assert clamp_unit(0.25) == 0.25
    assert clamp_unit(3) == 1.0


def test_normalize_point_flips_y_axis():
    point = normalize_point(50, 25, 100, 100)
    assert point.x == pytest.approx(0.5)
    assert point.y == pytest.approx(0.75)


def test_normalize_rect_uses_bottom_left_origin():
    box = normalize_rect(10, 20, 30, 40, 100, 200)
    assert box.x == pytest.approx(0.1)
    assert box.y == pytest.approx(0.7)
    assert box.width == pytest.approx(0.3)
    assert box.height == pytest.approx(0.2)
    assert box.top == pytest.approx(0.9)


def test_normalize_rect_clips_outside_parts():
    box = normalize_rect(-20, -10, 60, 60, 100, 100)
    assert box.x == 0.0
    assert box.width == pytest.approx(0.4)
    assert box.top == pytest.approx(1.0)
    assert box.height == pytest.approx(0.5)


def test_bounding_box_of_quad():
    box = bounding_box_of_points([[10, 10], [50, 12], [52, 30], [8, 28]], 100, 100)
    assert box.x == pytest.approx(0.08)
    assert box.right == pytest.approx(0.52)
    assert box.y == pytest.approx(0.70)
    assert box.top == pytest.approx(0.90)


def test_bounding_box_of_empty_polygon():
    with pytest.raises(ValueError):
        bounding_box_of_points([], 100, 100)


def test_bounding_box_rejects_out_of_range():
    with pytest.raises(ValidationError):
        BoundingBox(x=1.2, y=0.0, width=0.1, height=0.1)


def test_camel_case_serialization():
    box = BoundingBox(x=0.1, y=0.2, width=0.3, height=0.4)
    assert box.model_dump(by_alias=True) == {"x": 0.1, "y": 0.2, "width": 0.3, "height": 0.4}
