"""Extract features inside a ring, from boundary to feature collection."""

import logging
from collections.abc import Iterable

from osm_extract._log import DEFAULT_LOGGER
from osm_extract.client import Client, ProgressCallback, _report
from osm_extract.error import InvalidGeometryError
from osm_extract.feature import FeatureCollection, process_elements
from osm_extract.geometry import Ring, bounding_box, is_closed
from osm_extract.query import Category, build_query


__docformat__ = "google"
__all__ = ("extract",)


async def extract(
    ring: Ring,
    categories: Iterable[Category | str],
    *,
    client: Client | None = None,
    on_progress: ProgressCallback | None = None,
    logger: logging.Logger = DEFAULT_LOGGER,
) -> FeatureCollection:
    """
    Extract all features of the given categories inside a ring.

    The query covers the bounding box of the ring. Features are then filtered down to
    those inside the ring itself.

    Args:
        ring: the closed extraction boundary; use ``geometry.order_ring()`` to get one
              from unordered points
        categories: the categories of features to extract
        client: the client used to fetch data; defaults to a client with
                ``DEFAULT_ENDPOINTS``
        on_progress: called with a status message before each step, and before each
                     request; may be a coroutine function
        logger: the logger to use for all logging output

    Returns:
        the extracted features

    Raises:
        InvalidGeometryError: if the ring has fewer than four points, if it is not closed,
                              or if its bounding box is degenerate
        AllEndpointsFailedError: if no endpoint could provide the data
    """
    if len(ring) < 4:
        msg = f"ring must have at least 4 points, not {len(ring)}"
        raise InvalidGeometryError(msg)

    if not is_closed(ring):
        msg = "ring must be closed: the first point must equal the last point"
        raise InvalidGeometryError(msg)

    if client is None:
        client = Client(logger=logger)

    await _report(on_progress, "Building query...")

    bbox = bounding_box(ring, logger=logger)
    if bbox is None:
        msg = f"ring must have at least 4 points, not {len(ring)}"
        raise InvalidGeometryError(msg)

    query = build_query(bbox, categories)
    logger.debug(f"query:\n{query}")

    await _report(on_progress, "Fetching OSM data...")

    raw = await client.fetch(query, on_progress=on_progress)

    await _report(on_progress, "Processing...")

    collection = process_elements(raw, ring, logger=logger)
    logger.info(f"extracted {len(collection)} features")

    return collection
