"""Features extracted from a raw result set."""

import logging
import math
from collections import Counter
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Literal, TypeAlias

from osm_extract._clock import utc_timestamp
from osm_extract._log import DEFAULT_LOGGER
from osm_extract.geometry import Coordinate, Ring, area_km2, contains_point, is_closed, ring_polygon
from osm_extract.spatial import GeoJsonDict, Spatial


__docformat__ = "google"
__all__ = (
    "Feature",
    "FeatureCollection",
    "GeometryType",
    "Summary",
    "process_elements",
    "summarize",
    "SOURCE",
    "EXTRACTOR",
)


GeometryType: TypeAlias = Literal["Point", "LineString", "Polygon"]
"""The GeoJSON geometry types that features can have."""

SOURCE = "OpenStreetMap"
"""Source label in the metadata of every collection."""

EXTRACTOR = "OSM Boundary Extractor"
"""Extractor label in the metadata of every collection."""

_AREA_KEYS = ("building", "landuse", "natural", "leisure")
"""Closed ways with any of these tags are areas."""


@dataclass(kw_only=True, slots=True, frozen=True, repr=False, eq=False)
class Feature(Spatial):
    """
    A single map feature, made from exactly one node or way.

    Attributes:
        id: the ID of the source element
        osm_type: the type of the source element, ``"node"`` or ``"way"``
        geometry_type: ``"Point"`` for nodes; ``"Polygon"`` for closed ways that are tagged
                       as areas; ``"LineString"`` for all other ways
        coordinates: a single coordinate for points, all coordinates in order otherwise
        properties: ``id`` and ``osm_type``, followed by all tags of the source element;
                    a read-only copy of the mapping passed in
    """

    id: int
    osm_type: str
    geometry_type: GeometryType
    coordinates: tuple[Coordinate, ...]
    properties: Mapping[str, Any]

    def __post_init__(self) -> None:
        object.__setattr__(self, "properties", MappingProxyType(dict(self.properties)))

    def tag(self, key: str, default: str | None = None) -> str | None:
        """Get the property value for the given key, or ``default`` if there is none."""
        value = self.properties.get(key)
        return default if value is None else str(value)

    @property
    def geometry(self) -> GeoJsonDict:
        """The GeoJSON geometry of this feature."""
        coords = [list(c) for c in self.coordinates]
        match self.geometry_type:
            case "Point":
                return {"type": "Point", "coordinates": coords[0]}
            case "LineString":
                return {"type": "LineString", "coordinates": coords}
            case "Polygon":
                return {"type": "Polygon", "coordinates": [coords]}
            case _:
                raise AssertionError(self.geometry_type)

    @property
    def geojson(self) -> GeoJsonDict:
        """A GeoJSON ``Feature`` with this feature's properties and geometry."""
        return {
            "type": "Feature",
            "properties": dict(self.properties),
            "geometry": self.geometry,
        }

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.osm_type}/{self.id}, {self.geometry_type})"


@dataclass(kw_only=True, slots=True, frozen=True, repr=False, eq=False)
class FeatureCollection(Spatial):
    """
    The features of a single extraction.

    Attributes:
        features: the features, in the order of the result set
        timestamp: ISO 8601 time of extraction (UTC)
        source: where the data came from
        extractor: what extracted the data
    """

    features: tuple[Feature, ...] = ()
    timestamp: str = field(default_factory=utc_timestamp)
    source: str = SOURCE
    extractor: str = EXTRACTOR

    @property
    def metadata(self) -> dict[str, Any]:
        """Metadata as included in ``geojson``."""
        return {
            "timestamp": self.timestamp,
            "featureCount": len(self.features),
            "source": self.source,
            "extractor": self.extractor,
        }

    @property
    def geojson(self) -> GeoJsonDict:
        """
        A GeoJSON ``FeatureCollection``.

        Next to the standard members, there is a non-standard ``metadata`` member.
        """
        return {
            "type": "FeatureCollection",
            "features": [feature.geojson for feature in self.features],
            "metadata": self.metadata,
        }

    def __len__(self) -> int:
        return len(self.features)

    def __iter__(self) -> Iterator[Feature]:
        return iter(self.features)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({len(self.features)} features, {self.timestamp})"


@dataclass(kw_only=True, slots=True, frozen=True)
class Summary:
    """
    Statistics of an extraction.

    Attributes:
        area_km2: the area of the extraction boundary in square kilometers
        total: the number of features
        roads: the number of features with a ``highway`` tag
        buildings: the number of features with a ``building`` tag
        pois: the number of features with an ``amenity`` tag
    """

    area_km2: float
    total: int
    roads: int
    buildings: int
    pois: int


def summarize(collection: FeatureCollection, ring: Ring | None) -> Summary:
    """Count the features of a collection by kind, next to the area of its boundary."""

    def count(key: str) -> int:
        return sum(1 for feature in collection.features if feature.properties.get(key))

    return Summary(
        area_km2=area_km2(ring),
        total=len(collection.features),
        roads=count("highway"),
        buildings=count("building"),
        pois=count("amenity"),
    )


def process_elements(
    raw: Any,
    ring: Ring | None,
    logger: logging.Logger = DEFAULT_LOGGER,
) -> FeatureCollection:
    """
    Turn the raw result set of a query into features inside a ring.

    Only tagged nodes and ways become features. Ways are resolved through the nodes in the
    result set; references to nodes that are not in the result set are skipped, and ways
    with fewer than two resolved nodes are dropped.

    Whether a feature is inside the ring is decided by a single point: the node itself, or
    the middle coordinate of a way. A way that crosses the boundary is therefore either
    kept or dropped as a whole.

    This function does not raise for malformed input. Elements that cannot be processed
    are dropped, and a response without an ``elements`` list results in an empty
    collection.

    Args:
        raw: the decoded JSON body of a response
        ring: the extraction boundary
        logger: the logger to use for all logging output

    Returns:
        the features that are inside the ring, in the order of the result set
    """
    polygon = ring_polygon(ring)
    elements = raw.get("elements") if isinstance(raw, Mapping) else None

    if polygon is None:
        logger.warning("no features: the ring has fewer than four points")
        return FeatureCollection()

    if not isinstance(elements, list):
        logger.warning("no features: the response has no 'elements' list")
        return FeatureCollection()

    nodes = _index_nodes(elements)
    features: list[Feature] = []
    dropped: Counter[str] = Counter()

    for elem in elements:
        if not isinstance(elem, Mapping):
            dropped["malformed"] += 1
            continue

        tags = _tags(elem)
        if tags is None:
            dropped["untagged"] += 1
            continue

        match elem.get("type"):
            case "node":
                candidate = _node_feature(elem, tags)
            case "way":
                candidate = _way_feature(elem, tags, nodes)
            case _:
                candidate = None

        if candidate is None:
            dropped["unresolved"] += 1
            continue

        feature, inclusion_point = candidate

        if not contains_point(inclusion_point, polygon):
            dropped["outside"] += 1
            continue

        features.append(feature)

    if dropped:
        logger.debug(f"dropped elements: {dict(dropped)}")
    logger.info(f"kept {len(features)} of {len(elements)} elements")

    return FeatureCollection(features=tuple(features))


def _index_nodes(elements: list) -> dict[int, Coordinate]:
    """Coordinates of all nodes in the result set, by ID."""
    nodes: dict[int, Coordinate] = {}
    for elem in elements:
        if not isinstance(elem, Mapping) or elem.get("type") != "node":
            continue
        elem_id = elem.get("id")
        coord = _coordinate(elem)
        if _is_id(elem_id) and coord is not None:
            nodes[elem_id] = coord
    return nodes


def _is_id(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return (
        isinstance(value, int | float)
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def _coordinate(elem: Mapping) -> Coordinate | None:
    lon, lat = elem.get("lon"), elem.get("lat")
    if _is_number(lon) and _is_number(lat):
        return float(lon), float(lat)
    return None


def _tags(elem: Mapping) -> dict[str, str] | None:
    """String tags of an element, or ``None`` if it has none."""
    tags = elem.get("tags")
    if not isinstance(tags, Mapping) or not tags:
        return None
    return {str(k): "" if v is None else str(v) for k, v in tags.items()}


def _properties(elem_id: int, elem_type: str, tags: dict[str, str]) -> dict[str, Any]:
    # tags win over 'id' and 'osm_type' if they have the same key
    return {"id": elem_id, "osm_type": elem_type, **tags}


def _node_feature(elem: Mapping, tags: dict[str, str]) -> tuple[Feature, Coordinate] | None:
    elem_id = elem.get("id")
    coord = _coordinate(elem)
    if not _is_id(elem_id) or coord is None:
        return None

    feature = Feature(
        id=elem_id,
        osm_type="node",
        geometry_type="Point",
        coordinates=(coord,),
        properties=_properties(elem_id, "node", tags),
    )
    return feature, coord


def _way_feature(
    elem: Mapping,
    tags: dict[str, str],
    nodes: dict[int, Coordinate],
) -> tuple[Feature, Coordinate] | None:
    elem_id = elem.get("id")
    node_ids = elem.get("nodes")
    if not _is_id(elem_id) or not isinstance(node_ids, list):
        return None

    coords = tuple(nodes[ref] for ref in node_ids if _is_id(ref) and ref in nodes)
    if len(coords) < 2:
        return None

    is_area = is_closed(coords) and any(tags.get(key) for key in _AREA_KEYS)

    feature = Feature(
        id=elem_id,
        osm_type="way",
        geometry_type="Polygon" if is_area else "LineString",
        coordinates=coords,
        properties=_properties(elem_id, "way", tags),
    )

    # middle coordinate, not the centroid
    return feature, coords[len(coords) // 2]
