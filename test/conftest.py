import json
import logging

from osm_extract.client import Client, Endpoint
from osm_extract.feature import FeatureCollection

import geojson
import pytest
import shapely.geometry
from aioresponses import aioresponses


MOCK_ENDPOINTS = (
    Endpoint(url="https://one.overpass.test/api/interpreter", name="one"),
    Endpoint(url="https://two.overpass.test/api/interpreter", name="two"),
    Endpoint(url="https://three.overpass.test/api/interpreter", name="three"),
)

RING = [
    (-74.01, 40.71),
    (-74.00, 40.71),
    (-74.00, 40.72),
    (-74.01, 40.72),
    (-74.01, 40.71),
]
"""A small rectangle in Lower Manhattan."""


@pytest.fixture
def mock_response():
    with aioresponses() as m:
        yield m


@pytest.fixture
def endpoints() -> tuple[Endpoint, ...]:
    return MOCK_ENDPOINTS


@pytest.fixture
def ring() -> list[tuple[float, float]]:
    return list(RING)


@pytest.fixture
def test_logger() -> logging.Logger:
    logger = logging.getLogger("osm_extract.test")
    logger.setLevel(logging.DEBUG)
    return logger


@pytest.fixture
def client(endpoints, test_logger) -> Client:
    return Client(endpoints=endpoints, attempt_timeout_secs=1.0, logger=test_logger)


@pytest.fixture
def verify_collection():
    return _verify_collection


def _verify_collection(collection: FeatureCollection) -> None:
    """Assert that a collection is consistent, and that it has valid GeoJSON."""
    msg = repr(collection)

    assert len(collection) == collection.metadata["featureCount"], msg
    assert collection.metadata["source"] == "OpenStreetMap", msg
    assert collection.timestamp.endswith("Z"), msg

    obj = geojson.loads(json.dumps(collection.geojson))
    assert obj.is_valid, msg

    for feature in collection:
        assert feature.osm_type in {"node", "way"}, repr(feature)
        assert feature.properties["id"] == feature.id, repr(feature)
        assert feature.tag("osm_type") == feature.osm_type, repr(feature)

    for spatial_dict in collection.geo_interfaces:
        shape = shapely.geometry.shape(spatial_dict)
        assert shape.geom_type in {"Point", "LineString", "Polygon"}, msg

    assert str(collection)  # just test this doesn't raise
    assert repr(collection)  # just test this doesn't raise


def element_response(*elements: dict) -> dict:
    """A JSON body with the given elements."""
    return {
        "version": 0.6,
        "generator": "Overpass API 0.7.62",
        "osm3s": {
            "timestamp_osm_base": "2024-01-31T12:00:00Z",
            "copyright": "The data included in this document is from www.openstreetmap.org.",
        },
        "elements": list(elements),
    }


@pytest.fixture
def make_response():
    return element_response
