"""Adapters layer - Concrete implementations of ports.

This module contains implementations of the port interfaces,
connecting the application to external systems like:
- Trip extraction (offline patterns, Gemini)
- Geocoding services (Mapbox, Nominatim)
- Persistent stores (place cache, unresolved terms, sessions)
- Spatial stores (shapely over a GeoJSON catalog, PostGIS)
- Rendering engines (Folium)
"""
