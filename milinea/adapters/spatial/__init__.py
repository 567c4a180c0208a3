"""Spatial adapters - line catalog and spatial stores.

Available implementations:
- GeoJSONLineCatalog: Line directions from a GeoJSON FeatureCollection
- ShapelySpatialStore: In-memory candidate query (shapely + geopy)
- PostGISSpatialStore: Candidate query in PostGIS (SQLAlchemy)
"""

from .geojson_catalog import GeoJSONLineCatalog
from .postgis_store import PostGISSpatialStore
from .shapely_store import ShapelySpatialStore

__all__ = ["GeoJSONLineCatalog", "PostGISSpatialStore", "ShapelySpatialStore"]
