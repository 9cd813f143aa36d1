"""Overpass QL helpers."""

from osm_extract.geometry import BoundingBox


__docformat__ = "google"
__all__ = (
    "format_coord",
    "bbox_clause",
    "tag_filter",
)


def format_coord(value: float) -> str:
    """
    Format a coordinate value for QL code.

    Values are rounded to seven decimals, which is the precision of OSM coordinates.
    Trailing zeros are dropped, but at least two decimals are kept (``-74.0`` → ``"-74.00"``).
    """
    whole, _, decimals = f"{value:.7f}".partition(".")
    decimals = decimals.rstrip("0").ljust(2, "0")
    return f"{whole}.{decimals}"


def bbox_clause(bbox: BoundingBox) -> str:
    """
    Bounding box in the order that Overpass expects: ``"south,west,north,east"``.

    The result can be used both in ``(...)`` filters and in the global ``[bbox:...]`` setting.

    References:
        - https://wiki.openstreetmap.org/wiki/Overpass_API/Overpass_QL#Bounding_box
    """
    return ",".join(
        map(format_coord, (bbox.min_lat, bbox.min_lon, bbox.max_lat, bbox.max_lon))
    )


def tag_filter(key: str, *values: str, exact: bool = True) -> str:
    """
    Tag filter that requires elements to have the given key, and optionally one of the values.

    * returns a ``["key"]`` filter if ``values`` is empty
    * returns a simple ``["key"="value1"]`` filter if ``values`` has one item
    * returns a regex filter ``["key"~"^value1$|^value2$|..."]`` filter
      if ``values`` has multiple items

    With ``exact=False``, values are not anchored, and any non-empty ``values`` give a
    regex filter ``["key"~"value1|value2|..."]``. Such a filter also matches values that
    contain one of the given values, f.e. ``"primary"`` matches ``"primary_link"``.

    References:
      - https://wiki.openstreetmap.org/wiki/Overpass_API/Language_Guide#Tag_request_clauses_(or_%22tag_filters%22)
    """
    if not values:
        return f'["{key}"]'

    if not exact:
        return f'["{key}"~"{"|".join(values)}"]'

    if len(values) == 1:
        return f'["{key}"="{values[0]}"]'

    regex = "|".join(f"^{v}$" for v in values)
    return f'["{key}"~"{regex}"]'
