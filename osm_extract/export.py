"""
Export formats.

All exporters take either a ``FeatureCollection`` or its GeoJSON mapping, so that
collections that were stored as GeoJSON can be converted later on.
"""

import csv
import io
import itertools
import json
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, TypeAlias
from xml.sax.saxutils import escape

from osm_extract._clock import utc_timestamp
from osm_extract.feature import FeatureCollection
from osm_extract.geometry import Coordinate
from osm_extract.spatial import GeoJsonDict


__docformat__ = "google"
__all__ = (
    "ExportFile",
    "filter_tags",
    "escape_xml",
    "to_osm_xml",
    "to_csv",
    "to_geojson",
    "geojson_file",
    "osm_file",
    "csv_file",
    "NODE_ID_BASE",
    "WAY_ID_BASE",
    "SYSTEM_KEYS",
    "PLACEHOLDER_TAG",
)


NODE_ID_BASE = 900_000_000
"""First ID of exported nodes; far above the IDs of real OSM nodes in use."""

WAY_ID_BASE = 950_000_000
"""First ID of exported ways."""

SYSTEM_KEYS = frozenset(
    {"id", "type", "timestamp", "version", "changeset", "user", "uid", "osm_type"}
)
"""Feature properties that are not tags, and are not exported as such."""

PLACEHOLDER_TAG = ("note", "Extracted from OSM Boundary Extractor")
"""The only tag of exported elements that have no tags of their own."""

GENERATOR = "OSM Boundary Extractor"
"""The ``generator`` attribute of exported OSM XML documents."""

USER = "OSM_Extractor"
"""The ``user`` attribute of exported OSM XML elements."""

CSV_HEADER = ("id", "type", "name", "lat", "lon", "category", "geometry_type", "all_tags")
"""Columns of CSV exports."""

_CSV_CATEGORY_KEYS = ("highway", "building", "amenity", "natural", "landuse", "waterway")
_CSV_NAME_KEYS = ("name", "amenity", "highway", "building", "natural")

_XML_ENTITIES = {"'": "&apos;", '"': "&quot;"}

Exportable: TypeAlias = FeatureCollection | GeoJsonDict
"""A collection, or a GeoJSON ``FeatureCollection`` mapping."""


@dataclass(kw_only=True, slots=True, frozen=True)
class ExportFile:
    """
    An export, ready to be written or shared.

    Attributes:
        content: the file content
        filename: a suggested file name
        mime_type: the media type of the content
    """

    content: str
    filename: str
    mime_type: str


def filter_tags(properties: Mapping[str, Any] | None) -> dict[str, Any]:
    """All properties except ``SYSTEM_KEYS``, in their original order."""
    return {k: v for k, v in (properties or {}).items() if k not in SYSTEM_KEYS}


def escape_xml(value: Any) -> str:
    """Escape ``< > & ' "`` in a value; ``None`` becomes an empty string."""
    if value is None:
        return ""
    return escape(str(value), _XML_ENTITIES)


def _geojson(collection: Exportable) -> GeoJsonDict:
    if isinstance(collection, FeatureCollection):
        return collection.geojson
    return collection


def _features(collection: Exportable) -> list[Mapping]:
    features = _geojson(collection).get("features")
    if not isinstance(features, list):
        return []
    return [feature for feature in features if isinstance(feature, Mapping)]


def _geometry(feature: Mapping) -> tuple[str | None, list[Coordinate]]:
    """The geometry type of a feature, and all of its coordinates (outer ring for polygons)."""
    geometry = feature.get("geometry")
    if not isinstance(geometry, Mapping):
        return None, []

    geom_type = geometry.get("type")
    coordinates = geometry.get("coordinates")

    match geom_type:
        case "Point":
            coords = [coordinates] if coordinates else []
        case "LineString":
            coords = coordinates or []
        case "Polygon":
            coords = coordinates[0] if coordinates else []
        case _:
            return None, []

    return geom_type, [(float(c[0]), float(c[1])) for c in coords]


def to_osm_xml(collection: Exportable) -> str:
    """
    Convert a collection to an OSM XML document.

    Every ``Point`` feature becomes a tagged node. Every ``LineString`` and ``Polygon``
    feature becomes a way, with an untagged node for each of its coordinates. Ways that
    share a coordinate share the node; there is one node per distinct ``(lon, lat)`` pair,
    unless that pair is also the coordinate of a ``Point`` feature that comes later.

    Elements get new IDs, counting up from ``NODE_ID_BASE`` and ``WAY_ID_BASE``. The IDs
    and the attribution metadata of all elements are made up, which means that the document
    is meant for editing software like JOSM, and not for uploads.

    Returns:
        the document, or an empty string if there is no feature with a usable geometry

    References:
        - https://wiki.openstreetmap.org/wiki/OSM_XML
    """
    features = [
        (geom_type, coords, feature.get("properties"))
        for feature in _features(collection)
        for geom_type, coords in (_geometry(feature),)
        if geom_type and coords
    ]

    if not features:
        return ""

    all_coords = [coord for _, coords, _ in features for coord in coords]
    min_lon = min(lon for lon, _ in all_coords)
    max_lon = max(lon for lon, _ in all_coords)
    min_lat = min(lat for _, lat in all_coords)
    max_lat = max(lat for _, lat in all_coords)

    # all of this is local, so that concurrent exports never share IDs
    timestamp = utc_timestamp()
    node_ids = itertools.count(NODE_ID_BASE)
    way_ids = itertools.count(WAY_ID_BASE)
    node_refs: dict[Coordinate, int] = {}
    ways: list[tuple[list[int], dict[str, Any]]] = []

    lines = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        f'<osm version="0.6" generator="{GENERATOR}" copyright="OpenStreetMap and contributors"'
        ' attribution="http://www.openstreetmap.org/copyright"'
        ' license="http://opendatacommons.org/licenses/odbl/1-0/">',
        f'  <bounds minlat="{min_lat:.7f}" minlon="{min_lon:.7f}"'
        f' maxlat="{max_lat:.7f}" maxlon="{max_lon:.7f}"/>',
        "",
    ]

    for geom_type, coords, properties in features:
        tags = _osm_tags(properties)

        if geom_type == "Point":
            coord = coords[0]
            node_id = next(node_ids)
            node_refs[coord] = node_id
            lines.append(f"  <node {_attrs(node_id, timestamp)} {_lat_lon(coord)}>")
            lines.extend(_tag_lines(tags))
            lines.append("  </node>")
            continue

        refs = []
        for coord in coords:
            if coord not in node_refs:
                node_refs[coord] = next(node_ids)
                lines.append(f"  <node {_attrs(node_refs[coord], timestamp)} {_lat_lon(coord)}/>")
            refs.append(node_refs[coord])
        ways.append((refs, tags))

    lines.append("")

    for refs, tags in ways:
        lines.append(f"  <way {_attrs(next(way_ids), timestamp)}>")
        lines.extend(f'    <nd ref="{ref}"/>' for ref in refs)
        lines.extend(_tag_lines(tags))
        lines.append("  </way>")

    lines.append("</osm>")
    return "\n".join(lines) + "\n"


def _osm_tags(properties: Mapping[str, Any] | None) -> dict[str, Any]:
    tags = filter_tags(properties)
    if not tags:
        key, value = PLACEHOLDER_TAG
        tags[key] = value
    return tags


def _attrs(element_id: int, timestamp: str) -> str:
    return (
        f'id="{element_id}" visible="true" version="1" changeset="1"'
        f' timestamp="{timestamp}" user="{USER}" uid="1"'
    )


def _lat_lon(coord: Coordinate) -> str:
    lon, lat = coord
    return f'lat="{lat:.7f}" lon="{lon:.7f}"'


def _tag_lines(tags: Mapping[str, Any]) -> list[str]:
    return [f'    <tag k="{escape_xml(k)}" v="{escape_xml(v)}"/>' for k, v in tags.items()]


def to_csv(collection: Exportable) -> str:
    """
    Convert a collection to CSV, with one row per feature.

    ``lat`` and ``lon`` are a single representative coordinate: the point itself, the middle
    coordinate of a line, or the vertex average of a polygon. ``category`` is the first of
    ``highway``, ``building``, ``amenity``, ``natural``, ``landuse`` and ``waterway`` that the
    feature is tagged with, or ``"other"``. ``all_tags`` are all properties except ``id``,
    as a JSON object.

    Returns:
        the CSV text with a header row, or an empty string if there are no features
    """
    features = _features(collection)
    if not features:
        return ""

    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADER)

    for feature in features:
        properties = feature.get("properties") or {}
        geom_type, coords = _geometry(feature)
        lon, lat = _representative_point(geom_type, coords)

        category = next((key for key in _CSV_CATEGORY_KEYS if properties.get(key)), "other")
        name = next((str(properties[key]) for key in _CSV_NAME_KEYS if properties.get(key)), "")
        all_tags = {k: v for k, v in properties.items() if k != "id"}

        writer.writerow(
            (
                properties.get("id", ""),
                geom_type or "",
                name,
                lat,
                lon,
                category,
                geom_type or "",
                json.dumps(all_tags, ensure_ascii=False),
            )
        )

    return buffer.getvalue()


def _representative_point(geom_type: str | None, coords: list[Coordinate]) -> Coordinate:
    if not coords:
        return 0.0, 0.0

    match geom_type:
        case "LineString":
            return coords[len(coords) // 2]
        case "Polygon" if len(coords) > 1:
            vertices = coords[:-1]  # without the closing coordinate
            lon = sum(lon for lon, _ in vertices) / len(vertices)
            lat = sum(lat for _, lat in vertices) / len(vertices)
            return lon, lat
        case _:
            return coords[0]


def to_geojson(collection: Exportable, indent: int | None = 2) -> str:
    """Convert a collection to GeoJSON text."""
    return json.dumps(_geojson(collection), indent=indent, ensure_ascii=False)


def geojson_file(collection: Exportable) -> ExportFile:
    """A GeoJSON export of the collection."""
    return ExportFile(
        content=to_geojson(collection),
        filename="osm_data.geojson",
        mime_type="application/geo+json",
    )


def osm_file(collection: Exportable) -> ExportFile | None:
    """An OSM XML export of the collection, or ``None`` if there is nothing to export."""
    content = to_osm_xml(collection)
    if not content:
        return None
    return ExportFile(content=content, filename="osm_data.osm", mime_type="application/xml")


def csv_file(collection: Exportable) -> ExportFile | None:
    """A CSV export of the collection, or ``None`` if there is nothing to export."""
    content = to_csv(collection)
    if not content:
        return None
    return ExportFile(content=content, filename="osm_data.csv", mime_type="text/csv")
