"""Geocoding port - Abstraction for place name to coordinates lookup.

This protocol defines the contract for geocoding services, allowing
different implementations (Mapbox, Nominatim, ...) to be used.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Protocol

if TYPE_CHECKING:
    from ..domain.models import GeocodeHit


class GeocoderPort(Protocol):
    """Port for geocoding services.

    Implementations:
    - adapters/geocoding/mapbox_adapter.py (MapBoxGeocoderAdapter)
    - adapters/geocoding/nominatim_adapter.py (NominatimGeocoderAdapter)

    Results are biased toward the service city but are NOT guaranteed
    to be inside it: bounds validation is the caller's job.
    """

    def geocode(self, query: str) -> Optional[GeocodeHit]:
        """Geocode a free-text query to its single best match.

        Args:
            query: The place text (e.g., "UMSS", "plaza principal Cochabamba").

        Returns:
            GeocodeHit with coordinates and display name, or None if
            nothing matched.

        Raises:
            GeocodingError: If the geocoding service fails.
        """
        ...
