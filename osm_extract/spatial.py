"""Basic definitions for (groups of) geospatial objects."""

from abc import ABC, abstractmethod
from collections.abc import Iterator
from dataclasses import dataclass
from typing import Any, TypeAlias


__docformat__ = "google"
__all__ = (
    "GeoJsonDict",
    "SpatialDict",
    "Spatial",
)


GeoJsonDict: TypeAlias = dict[str, Any]
"""A dictionary representing a GeoJSON object."""


@dataclass(kw_only=True, slots=True)
class SpatialDict:
    """
    Mapping of spatial objects with the ``__geo_interface__`` property.

    Objects of this class have the ``__geo_interface__`` property following a protocol
    [proposed](https://gist.github.com/sgillies/2217756) by Sean Gillies. Shapely's
    ``shape()`` f.e. builds geometries from any object with this property.

    Attributes:
        __geo_interface__: this is the proposed property that contains the spatial data
    """

    __geo_interface__: dict


class Spatial(ABC):
    """
    Base class for (groups of) extracted features.

    Subclasses implement the ``geojson`` property. Exporting in the GeoJSON format is
    the main interchange format of extractions; every other export format is derived
    from it.
    """

    __slots__ = ()

    @property
    @abstractmethod
    def geojson(self) -> GeoJsonDict:
        """
        A mapping of this object, using the GeoJSON format.

        The coordinate reference system for all GeoJSON coordinates is ``CRS:84``,
        which means every coordinate is a tuple of longitude and latitude (in that order)
        on the WGS 84 ellipsoid. The same order is used for all Shapely geometries
        in this package.

        References:
            - https://tools.ietf.org/html/rfc7946#section-4
        """
        raise NotImplementedError

    @property
    def geo_interfaces(self) -> Iterator[SpatialDict]:
        """The GeoJSON geometries of this object as ``SpatialDict``s."""
        geojson = self.geojson
        match geojson["type"]:
            case "FeatureCollection":
                for feature in geojson["features"]:
                    yield SpatialDict(__geo_interface__=feature["geometry"])
            case "Feature":
                yield SpatialDict(__geo_interface__=geojson["geometry"])
            case _:
                yield SpatialDict(__geo_interface__=geojson)
