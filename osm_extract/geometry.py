"""
Geometry of extraction boundaries.

All coordinates are ``(longitude, latitude)`` tuples, which is the GeoJSON order.
Shapely geometries created here use the same order, so that ``x`` is the longitude.
"""

import logging
import math
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass
from typing import TypeAlias

from osm_extract._log import DEFAULT_LOGGER
from osm_extract.error import InvalidGeometryError

import shapely
from shapely.geometry import Polygon


__docformat__ = "google"
__all__ = (
    "Coordinate",
    "Ring",
    "BoundingBox",
    "order_ring",
    "is_closed",
    "bounding_box",
    "area_km2",
    "ring_polygon",
    "contains_point",
    "CLOSURE_TOLERANCE",
    "EARTH_RADIUS_M",
)


Coordinate: TypeAlias = tuple[float, float]
"""A ``(longitude, latitude)`` pair."""

Ring: TypeAlias = Sequence[Coordinate]
"""
A closed polygon boundary.

Rings have at least four coordinates, and the first coordinate is repeated at the end.
"""

CLOSURE_TOLERANCE = 1e-10
"""Maximum difference per axis for the first and last coordinate of a closed ring."""

EARTH_RADIUS_M = 6_378_137.0
"""WGS 84 equatorial radius in meters."""


@dataclass(kw_only=True, slots=True, frozen=True)
class BoundingBox:
    """
    Axis-aligned rectangle that encloses a ring.

    Attributes:
        min_lon: western edge
        min_lat: southern edge
        max_lon: eastern edge
        max_lat: northern edge

    Raises:
        InvalidGeometryError: if the box is inverted or degenerate
    """

    min_lon: float
    min_lat: float
    max_lon: float
    max_lat: float

    def __post_init__(self) -> None:
        # written so that NaN fails as well
        if not self.min_lon < self.max_lon:
            msg = f"degenerate bounding box: min_lon={self.min_lon} max_lon={self.max_lon}"
            raise InvalidGeometryError(msg)
        if not self.min_lat < self.max_lat:
            msg = f"degenerate bounding box: min_lat={self.min_lat} max_lat={self.max_lat}"
            raise InvalidGeometryError(msg)

    def contains(self, coord: Coordinate) -> bool:
        """``True`` if the coordinate is inside or on the edge of this box."""
        lon, lat = coord
        return self.min_lon <= lon <= self.max_lon and self.min_lat <= lat <= self.max_lat

    def __iter__(self) -> Iterator[float]:
        """Iterates over ``(min_lon, min_lat, max_lon, max_lat)``."""
        yield from (self.min_lon, self.min_lat, self.max_lon, self.max_lat)


def order_ring(points: Iterable[Coordinate]) -> list[Coordinate] | None:
    """
    Connect unordered boundary points to a closed ring.

    Points are sorted by their polar angle around the arithmetic centroid, and the first
    point is appended again to close the ring. Duplicate points are dropped.

    This is not a convex hull: the ring may self-intersect if the points are not in
    convex position.

    Returns:
        the closed ring, or ``None`` if there are fewer than three distinct points
    """
    distinct = list(dict.fromkeys((float(lon), float(lat)) for lon, lat in points))
    if len(distinct) < 3:
        return None

    cx = sum(lon for lon, _ in distinct) / len(distinct)
    cy = sum(lat for _, lat in distinct) / len(distinct)

    ordered = sorted(distinct, key=lambda p: math.atan2(p[1] - cy, p[0] - cx))
    return [*ordered, ordered[0]]


def is_closed(coords: Sequence[Coordinate], tolerance: float = CLOSURE_TOLERANCE) -> bool:
    """``True`` if there are at least four coordinates, and the first equals the last."""
    if len(coords) < 4:
        return False
    (first_lon, first_lat), (last_lon, last_lat) = coords[0], coords[-1]
    return abs(first_lon - last_lon) < tolerance and abs(first_lat - last_lat) < tolerance


def bounding_box(
    ring: Ring | None,
    logger: logging.Logger = DEFAULT_LOGGER,
) -> BoundingBox | None:
    """
    The bounding box of a ring.

    Coordinates outside of the WGS 84 range are not rejected, but logged as suspect.

    Returns:
        the box, or ``None`` if the ring has fewer than four points

    Raises:
        InvalidGeometryError: if the box is degenerate, f.e. if all points are on a line
    """
    if not ring or len(ring) < 4:
        return None

    for i, (lon, lat) in enumerate(ring):
        if not (-180.0 <= lon <= 180.0 and -90.0 <= lat <= 90.0):
            logger.warning(f"suspect coordinate at index {i}: lon={lon} lat={lat}")

    lons = [lon for lon, _ in ring]
    lats = [lat for _, lat in ring]

    return BoundingBox(
        min_lon=min(lons),
        min_lat=min(lats),
        max_lon=max(lons),
        max_lat=max(lats),
    )


def area_km2(ring: Ring | None) -> float:
    """
    Geodesic area of a ring in square kilometers.

    The area is computed on a sphere with the WGS 84 equatorial radius, which is what
    most web map libraries do. Returns zero for rings with fewer than four points.

    References:
        - Chamberlain & Duquette, "Some Algorithms for Polygons on a Sphere" (2007)
        - https://trs.jpl.nasa.gov/handle/2014/41271
    """
    if not ring or len(ring) < 4:
        return 0.0

    total = 0.0
    for (lon1, lat1), (lon2, lat2) in zip(ring, [*ring[1:], ring[0]]):
        total += math.radians(lon2 - lon1) * (
            2.0 + math.sin(math.radians(lat1)) + math.sin(math.radians(lat2))
        )

    return abs(total * EARTH_RADIUS_M * EARTH_RADIUS_M / 2.0) / 1_000_000.0


def ring_polygon(ring: Ring | None) -> Polygon | None:
    """
    A prepared Shapely polygon for the given ring.

    Use this over passing the ring itself when testing many points with
    ``contains_point()``.

    Returns:
        the polygon, or ``None`` if the ring has fewer than four points
    """
    if not ring or len(ring) < 4:
        return None
    polygon = Polygon(ring)
    shapely.prepare(polygon)
    return polygon


def contains_point(point: Coordinate, ring: Ring | Polygon | None) -> bool:
    """
    Point-in-polygon test.

    A point on the boundary, either on an edge or a vertex, counts as inside.

    Args:
        point: the ``(lon, lat)`` coordinate to test
        ring: a ring, or a polygon returned by ``ring_polygon()``

    Returns:
        ``True`` if the point is inside or on the boundary; ``False`` if it is outside,
        or if the ring has fewer than four points
    """
    polygon = ring if isinstance(ring, Polygon) else ring_polygon(ring)
    if polygon is None:
        return False
    lon, lat = point
    return bool(shapely.intersects_xy(polygon, lon, lat))
