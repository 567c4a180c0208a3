"""Geocoding adapters - Implementations of GeocoderPort.

Available implementations:
- MapBoxGeocoderAdapter: Mapbox forward geocoding (needs a token)
- NominatimGeocoderAdapter: OpenStreetMap Nominatim geocoding
"""

from .mapbox_adapter import MapBoxGeocoderAdapter
from .nominatim_adapter import NominatimGeocoderAdapter

__all__ = ["MapBoxGeocoderAdapter", "NominatimGeocoderAdapter"]
