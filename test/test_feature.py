import logging

from osm_extract.feature import Feature, FeatureCollection, process_elements, summarize

import pytest
import shapely.geometry


RING = [(0.0, 0.0), (1.0, 0.0), (1.0, 1.0), (0.0, 1.0), (0.0, 0.0)]


def node(id_, lon, lat, **tags):
    elem = {"type": "node", "id": id_, "lon": lon, "lat": lat}
    if tags:
        elem["tags"] = tags
    return elem


def way(id_, *nodes, **tags):
    elem = {"type": "way", "id": id_, "nodes": list(nodes)}
    if tags:
        elem["tags"] = tags
    return elem


SQUARE_NODES = [
    node(1, 0.2, 0.2),
    node(2, 0.4, 0.2),
    node(3, 0.4, 0.4),
    node(4, 0.2, 0.4),
]


def _process(*elements, ring=RING) -> FeatureCollection:
    return process_elements({"elements": list(elements)}, ring)


@pytest.mark.xdist_group(name="fast")
def test_closed_building_is_polygon(verify_collection):
    collection = _process(*SQUARE_NODES, way(10, 1, 2, 3, 4, 1, building="yes"))
    verify_collection(collection)

    [feature] = collection.features
    assert feature.geometry_type == "Polygon"
    assert feature.osm_type == "way"
    assert feature.id == 10
    assert feature.properties == {"id": 10, "osm_type": "way", "building": "yes"}
    assert feature.geometry == {
        "type": "Polygon",
        "coordinates": [[[0.2, 0.2], [0.4, 0.2], [0.4, 0.4], [0.2, 0.4], [0.2, 0.2]]],
    }


@pytest.mark.xdist_group(name="fast")
@pytest.mark.parametrize("key", ["building", "landuse", "natural", "leisure"])
def test_area_keys(key):
    [feature] = _process(*SQUARE_NODES, way(10, 1, 2, 3, 4, 1, **{key: "something"}))
    assert feature.geometry_type == "Polygon"


@pytest.mark.xdist_group(name="fast")
def test_closed_highway_is_line(verify_collection):
    collection = _process(*SQUARE_NODES, way(10, 1, 2, 3, 4, 1, highway="residential"))
    verify_collection(collection)

    [feature] = collection.features
    assert feature.geometry_type == "LineString"
    assert feature.geometry["coordinates"][0] == feature.geometry["coordinates"][-1]


@pytest.mark.xdist_group(name="fast")
def test_open_building_is_line():
    [feature] = _process(*SQUARE_NODES, way(10, 1, 2, 3, 4, building="yes"))
    assert feature.geometry_type == "LineString"
    assert len(feature.coordinates) == 4


@pytest.mark.xdist_group(name="fast")
def test_tagged_node_is_point(verify_collection):
    collection = _process(node(1, 0.5, 0.5, amenity="cafe", name="Café Größe"))
    verify_collection(collection)

    [feature] = collection.features
    assert feature.geometry == {"type": "Point", "coordinates": [0.5, 0.5]}
    assert feature.tag("name") == "Café Größe"
    assert feature.tag("missing") is None
    assert feature.tag("missing", "default") == "default"


@pytest.mark.xdist_group(name="fast")
def test_untagged_elements_are_dropped():
    collection = _process(
        *SQUARE_NODES,
        way(10, 1, 2, 3, 4, 1),
        {"type": "node", "id": 5, "lon": 0.5, "lat": 0.5, "tags": {}},
    )
    assert len(collection) == 0


@pytest.mark.xdist_group(name="fast")
def test_outside_node_is_dropped():
    collection = _process(node(1, 1.5, 0.5, amenity="cafe"), node(2, 0.5, 0.5, amenity="bank"))
    assert [f.id for f in collection] == [2]


@pytest.mark.xdist_group(name="fast")
def test_boundary_node_is_kept():
    collection = _process(node(1, 0.0, 0.5, amenity="cafe"), node(2, 1.0, 1.0, amenity="bank"))
    assert [f.id for f in collection] == [1, 2]


@pytest.mark.xdist_group(name="fast")
def test_way_is_included_by_middle_coordinate():
    nodes = [
        node(1, -0.5, 0.5),  # outside
        node(2, 0.5, 0.5),  # inside
        node(3, 1.5, 0.5),  # outside
    ]

    # the middle coordinate is inside: the whole way is kept, even the parts outside
    [feature] = _process(*nodes, way(10, 1, 2, 3, highway="primary"))
    assert feature.coordinates == ((-0.5, 0.5), (0.5, 0.5), (1.5, 0.5))

    # the middle coordinate is outside: the whole way is dropped
    assert len(_process(*nodes, way(10, 2, 3, 1, highway="primary"))) == 0


@pytest.mark.xdist_group(name="fast")
def test_unresolved_node_refs_are_skipped():
    [feature] = _process(*SQUARE_NODES, way(10, 1, 99, 2, "x", 3, highway="service"))
    assert feature.coordinates == ((0.2, 0.2), (0.4, 0.2), (0.4, 0.4))


@pytest.mark.xdist_group(name="fast")
def test_way_with_single_node_is_dropped():
    assert len(_process(*SQUARE_NODES, way(10, 1, 99, highway="service"))) == 0
    assert len(_process(*SQUARE_NODES, way(10, highway="service"))) == 0


@pytest.mark.xdist_group(name="fast")
def test_order_is_preserved():
    collection = _process(
        node(30, 0.3, 0.3, amenity="cafe"),
        *SQUARE_NODES,
        way(10, 1, 2, 3, highway="service"),
        node(40, 0.1, 0.1, amenity="bank"),
    )
    assert [(f.osm_type, f.id) for f in collection] == [("node", 30), ("way", 10), ("node", 40)]


@pytest.mark.xdist_group(name="fast")
def test_tag_values_are_strings():
    elem = {"type": "node", "id": 1, "lon": 0.5, "lat": 0.5, "tags": {"level": 2, "note": None}}
    [feature] = _process(elem)
    assert feature.properties["level"] == "2"
    assert feature.properties["note"] == ""


@pytest.mark.xdist_group(name="fast")
@pytest.mark.parametrize(
    "raw",
    [
        None,
        [],
        "elements",
        {},
        {"elements": None},
        {"elements": {"type": "node"}},
    ],
)
def test_malformed_response(raw):
    collection = process_elements(raw, RING)
    assert isinstance(collection, FeatureCollection)
    assert len(collection) == 0


@pytest.mark.xdist_group(name="fast")
def test_malformed_elements():
    collection = _process(
        None,
        "node",
        {"type": "node", "id": 1, "tags": {"amenity": "cafe"}},
        {"type": "node", "id": "2", "lon": 0.5, "lat": 0.5, "tags": {"amenity": "cafe"}},
        {"type": "node", "id": 3, "lon": "0.5", "lat": 0.5, "tags": {"amenity": "cafe"}},
        {"type": "node", "id": 4, "lon": float("nan"), "lat": 0.5, "tags": {"amenity": "x"}},
        {"type": "node", "id": True, "lon": 0.5, "lat": 0.5, "tags": {"amenity": "cafe"}},
        {"type": "way", "id": 5, "nodes": "1,2", "tags": {"highway": "path"}},
        {"type": "way", "id": 6, "tags": {"highway": "path"}},
        {"type": "relation", "id": 7, "members": [], "tags": {"type": "multipolygon"}},
        {"type": "node", "id": 8, "lon": 0.5, "lat": 0.5, "tags": ["amenity"]},
        node(9, 0.5, 0.5, amenity="cafe"),
    )
    assert [f.id for f in collection] == [9]


@pytest.mark.xdist_group(name="fast")
@pytest.mark.parametrize("ring", [None, [], RING[:3]])
def test_missing_ring(ring):
    assert len(_process(node(1, 0.5, 0.5, amenity="cafe"), ring=ring)) == 0


@pytest.mark.xdist_group(name="fast")
def test_logging(caplog, test_logger):
    raw = {"elements": [node(1, 0.5, 0.5, amenity="cafe"), node(2, 5.0, 5.0, amenity="x")]}

    with caplog.at_level(logging.DEBUG, logger="osm_extract.test"):
        _ = process_elements(raw, RING, logger=test_logger)

    assert "'outside': 1" in caplog.text
    assert "kept 1 of 2 elements" in caplog.text


@pytest.mark.xdist_group(name="fast")
def test_collection_geojson():
    collection = _process(*SQUARE_NODES, way(10, 1, 2, 3, 4, 1, building="yes"))
    geojson = collection.geojson

    assert geojson["type"] == "FeatureCollection"
    assert geojson["metadata"] == {
        "timestamp": collection.timestamp,
        "featureCount": 1,
        "source": "OpenStreetMap",
        "extractor": "OSM Boundary Extractor",
    }
    assert geojson["features"] == [f.geojson for f in collection]

    [spatial_dict] = collection.geo_interfaces
    shape = shapely.geometry.shape(spatial_dict)
    assert shape.area == pytest.approx(0.04)


@pytest.mark.xdist_group(name="fast")
def test_feature_geo_interface():
    feature = Feature(
        id=1,
        osm_type="node",
        geometry_type="Point",
        coordinates=((13.4, 52.5),),
        properties={"id": 1, "osm_type": "node", "amenity": "cafe"},
    )
    [spatial_dict] = feature.geo_interfaces
    assert shapely.geometry.shape(spatial_dict).equals(shapely.geometry.Point(13.4, 52.5))
    assert repr(feature) == "Feature(node/1, Point)"


@pytest.mark.xdist_group(name="fast")
def test_feature_properties_read_only():
    tags = {"id": 1, "osm_type": "node", "amenity": "cafe"}
    feature = Feature(
        id=1,
        osm_type="node",
        geometry_type="Point",
        coordinates=((13.4, 52.5),),
        properties=tags,
    )

    with pytest.raises(TypeError):
        feature.properties["amenity"] = "bar"  # type: ignore[index]

    tags["amenity"] = "bar"
    assert feature.tag("amenity") == "cafe"

    geojson = feature.geojson
    geojson["properties"]["amenity"] = "pub"
    assert feature.properties == {"id": 1, "osm_type": "node", "amenity": "cafe"}


@pytest.mark.xdist_group(name="fast")
def test_empty_collection():
    collection = FeatureCollection()
    assert len(collection) == 0
    assert collection.geojson["features"] == []
    assert collection.metadata["featureCount"] == 0


@pytest.mark.xdist_group(name="fast")
def test_summarize():
    collection = _process(
        *SQUARE_NODES,
        way(10, 1, 2, 3, 4, 1, building="yes"),
        way(11, 1, 2, highway="residential"),
        way(12, 2, 3, highway="footway"),
        node(5, 0.5, 0.5, amenity="cafe", building="yes"),
        node(6, 0.6, 0.6, shop="bakery"),
    )

    summary = summarize(collection, RING)

    assert summary.total == 5
    assert summary.roads == 2
    assert summary.buildings == 2
    assert summary.pois == 1
    assert summary.area_km2 == pytest.approx(12_364, rel=0.01)


@pytest.mark.xdist_group(name="fast")
def test_summarize_empty():
    summary = summarize(FeatureCollection(), None)
    assert (summary.total, summary.roads, summary.buildings, summary.pois) == (0, 0, 0, 0)
    assert summary.area_km2 == 0.0
