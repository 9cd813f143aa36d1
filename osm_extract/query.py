"""Overpass QL queries for categories of map features."""

from collections.abc import Iterable
from enum import Enum

from osm_extract.geometry import BoundingBox
from osm_extract.ql import bbox_clause, tag_filter


__docformat__ = "google"
__all__ = (
    "Category",
    "build_query",
    "category_clauses",
    "QUERY_TIMEOUT_SECS",
)


QUERY_TIMEOUT_SECS = 90
"""The ``[timeout:*]`` setting of every query."""


class Category(Enum):
    """Categories of map features that can be extracted."""

    HIGHWAY = "highway"
    """Roads, streets and paths."""

    BUILDING = "building"
    """Buildings of any kind."""

    AMENITY = "amenity"
    """Facilities like restaurants, banks, schools or hospitals."""

    NATURAL = "natural"
    """Natural features like trees, peaks, water and woods."""

    LANDUSE = "landuse"
    """Primary use of land, f.e. residential or farmland."""

    WATERWAY = "waterway"
    """Rivers, streams, canals and drains."""

    SHOP = "shop"
    """Shops of any kind."""

    LEISURE = "leisure"
    """Parks, playgrounds, pitches and gardens."""

    def __str__(self) -> str:
        return self.value


_AMENITIES = (
    "restaurant",
    "cafe",
    "bank",
    "hospital",
    "school",
    "pharmacy",
    "library",
    "post_office",
    "police",
    "fire_station",
)

_HIGHWAYS = (
    "motorway",
    "trunk",
    "primary",
    "secondary",
    "tertiary",
    "residential",
    "service",
    "footway",
    "cycleway",
    "path",
)

_LANDUSES = ("residential", "commercial", "industrial", "retail", "forest", "farmland", "grass")

_WATERWAYS = ("river", "stream", "canal", "drain")

_LEISURES = ("park", "playground", "sports_centre", "pitch", "garden")

_CATEGORY_FILTERS: dict[Category, tuple[tuple[str, str], ...]] = {
    Category.HIGHWAY: (("way", tag_filter("highway", *_HIGHWAYS, exact=False)),),
    Category.BUILDING: (
        ("way", tag_filter("building")),
        ("relation", tag_filter("building")),
    ),
    Category.AMENITY: (
        ("node", tag_filter("amenity", *_AMENITIES, exact=False)),
        ("way", tag_filter("amenity", *_AMENITIES, exact=False)),
    ),
    Category.NATURAL: (
        ("node", tag_filter("natural", "tree", "peak", "water", "wood", exact=False)),
        ("way", tag_filter("natural", "water", "wood", "grassland", "scrub", exact=False)),
    ),
    Category.LANDUSE: (("way", tag_filter("landuse", *_LANDUSES, exact=False)),),
    Category.WATERWAY: (("way", tag_filter("waterway", *_WATERWAYS, exact=False)),),
    Category.SHOP: (
        ("node", tag_filter("shop")),
        ("way", tag_filter("shop")),
    ),
    Category.LEISURE: (
        ("way", tag_filter("leisure", *_LEISURES, exact=False)),
        ("node", tag_filter("leisure", "playground", exact=False)),
    ),
}
"""
Element types and tag filters that make up the statements for each category.

Value filters are unanchored, so ``"primary"`` also selects ``"primary_link"``.
"""

_DEFAULT_FILTER = ("way", tag_filter("highway"))
"""Statement used if there are no categories to query."""


def category_clauses(category: Category | str, bbox: BoundingBox) -> list[str]:
    """
    The query statements of a single category.

    Raises:
        ValueError: if ``category`` is not a known category name
    """
    bounds = bbox_clause(bbox)
    return [
        f"{elem_type}{filter_}({bounds});"
        for elem_type, filter_ in _CATEGORY_FILTERS[Category(category)]
    ]


def build_query(bbox: BoundingBox, categories: Iterable[Category | str]) -> str:
    """
    Build a query for all elements of the given categories inside a bounding box.

    The union of all category statements is followed by a recursion down to the nodes
    of any way in the result set, so that the geometry of ways can be resolved.

    Statements are always written in the order of ``Category``, so that the same input
    produces the same code no matter the order of ``categories``. Unknown category names
    are ignored. If no statement remains, the query falls back to selecting all ways
    with a ``highway`` tag, so that it is never empty.

    References:
        - https://wiki.openstreetmap.org/wiki/Overpass_API/Overpass_QL#Recurse_down_.28.3E.29
    """
    requested: set[Category] = set()
    for category in categories:
        try:
            requested.add(Category(category))
        except ValueError:
            continue

    statements = [
        clause
        for category in Category
        if category in requested
        for clause in category_clauses(category, bbox)
    ]

    bounds = bbox_clause(bbox)

    if not statements:
        elem_type, filter_ = _DEFAULT_FILTER
        statements.append(f"{elem_type}{filter_}({bounds});")

    union = "\n  ".join(statements)

    return f"""[out:json][timeout:{QUERY_TIMEOUT_SECS}][bbox:{bounds}];
(
  {union}
);
out body;
>;
out skel qt;"""
