import asyncio
import logging
import time

from osm_extract import Category, Client, extract
from osm_extract.export import to_csv, to_geojson, to_osm_xml
from osm_extract.feature import summarize
from osm_extract.geometry import order_ring


assert __name__ == "__main__"

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("extract_lower_manhattan")

ring = order_ring(
    [
        (-74.01, 40.71),
        (-74.00, 40.72),
        (-74.00, 40.71),
        (-74.01, 40.72),
    ]
)

client = Client(
    user_agent="osm-extract automated test query",
    logger=logger,
)

collection = asyncio.run(
    extract(
        ring,
        [Category.HIGHWAY, Category.BUILDING, Category.AMENITY],
        client=client,
        on_progress=print,
        logger=logger,
    )
)

summary = summarize(collection, ring)
print(f"Extracted {summary.total} features from {summary.area_km2:.2f} km²")
print(f"  {summary.roads} roads, {summary.buildings} buildings, {summary.pois} POIs")

for name, exporter in (("GeoJSON", to_geojson), ("OSM XML", to_osm_xml), ("CSV", to_csv)):
    start = time.perf_counter()
    content = exporter(collection)
    end = time.perf_counter()
    print(f"Produced {len(content)} characters of {name} in {end - start:.02f}s")
