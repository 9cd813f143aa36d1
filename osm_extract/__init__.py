"""
Extract OpenStreetMap features inside a polygon, and export them.

```python
from osm_extract import Category, extract
from osm_extract.export import to_osm_xml

ring = [
    (-74.01, 40.71),
    (-74.00, 40.71),
    (-74.00, 40.72),
    (-74.01, 40.72),
    (-74.01, 40.71),
]

collection = await extract(ring, [Category.HIGHWAY, Category.BUILDING])

print(f"{len(collection)} features")

with open("osm_data.osm", "w") as f:
    f.write(to_osm_xml(collection))
```

Data is fetched from public Overpass API instances, which are tried one after another
until one succeeds. Use a `Client` to choose other instances, or to change timeouts:

```python
from osm_extract import Client, extract

client = Client(
    endpoints=["https://overpass.example.org/api/interpreter"],
    attempt_timeout_secs=60.0,
)

collection = await extract(ring, ["amenity"], client=client)
```

Every module logs to the ``"osm_extract"`` logger by default, which has no handler
other than a ``NullHandler``. Pass your own ``logging.Logger`` to ``Client`` and
``extract()`` to see what is going on.
"""

import importlib.metadata


__version__: str = importlib.metadata.version("osm-extract")

# we add this to all modules for pdoc;
# see https://pdoc.dev/docs/pdoc.html#use-numpydoc-or-google-docstrings
__docformat__ = "google"

# we also use __all__ in all modules for pdoc; this lets us control the order
__all__ = (
    "__version__",
    "extract",
    "Category",
    "Client",
    "ClientError",
    "ExtractError",
    "FeatureCollection",
    "InvalidGeometryError",
    "client",
    "error",
    "export",
    "feature",
    "geometry",
    "ql",
    "query",
    "spatial",
)

from .client import Client
from .error import ClientError, ExtractError, InvalidGeometryError
from .extract import extract
from .feature import FeatureCollection
from .query import Category
