from osm_extract.geometry import BoundingBox
from osm_extract.ql import bbox_clause, format_coord, tag_filter

import pytest


@pytest.mark.xdist_group(name="fast")
@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (-74.0, "-74.00"),
        (-74.01, "-74.01"),
        (40.7, "40.70"),
        (0.0, "0.00"),
        (13.3777041, "13.3777041"),
        (13.37770414, "13.3777041"),
        (10.123, "10.123"),
    ],
)
def test_format_coord(value, expected):
    assert format_coord(value) == expected


@pytest.mark.xdist_group(name="fast")
def test_bbox_clause():
    bbox = BoundingBox(min_lon=-74.01, min_lat=40.71, max_lon=-74.00, max_lat=40.72)
    actual = bbox_clause(bbox)
    expected = "40.71,-74.01,40.72,-74.00"
    assert actual == expected


@pytest.mark.xdist_group(name="fast")
def test_tag_filter():
    actual = tag_filter("key")
    expected = '["key"]'
    assert actual == expected

    actual = tag_filter("key", "value1")
    expected = '["key"="value1"]'
    assert actual == expected

    actual = tag_filter("key", "value1", "value2")
    expected = '["key"~"^value1$|^value2$"]'
    assert actual == expected

    actual = tag_filter("key", "value1", "value2", "value3")
    expected = '["key"~"^value1$|^value2$|^value3$"]'
    assert actual == expected


@pytest.mark.xdist_group(name="fast")
def test_tag_filter_unanchored():
    assert tag_filter("key", exact=False) == '["key"]'
    assert tag_filter("key", "value1", exact=False) == '["key"~"value1"]'
    assert tag_filter("key", "value1", "value2", exact=False) == '["key"~"value1|value2"]'
