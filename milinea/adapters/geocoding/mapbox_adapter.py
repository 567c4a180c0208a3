"""Mapbox geocoder adapter.

Primary geocoder when a token is configured. Queries are biased toward
the city center (``proximity``), but the returned point is still
validated against the bounds by the resolver.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from geopy.exc import GeocoderServiceError
from geopy.geocoders import MapBox

from ...config import CityConfig, GeocodingConfig, get_config
from ...domain.errors import ConfigurationError, GeocodingError
from ...domain.models import GeocodeHit


@dataclass
class MapBoxGeocoderAdapter:
    """Mapbox geocoder adapter implementing GeocoderPort.

    Attributes:
        config: Geocoding configuration (token, language, timeout)
        city: Service-area configuration (proximity bias)
    """

    config: GeocodingConfig = field(default_factory=lambda: get_config().geocoding)
    city: CityConfig = field(default_factory=lambda: get_config().city)

    _geolocator: Optional[MapBox] = field(default=None, repr=False)
    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)
        if not self.config.mapbox_token:
            raise ConfigurationError(
                "Mapbox geocoder requires a token", setting_name="MILINEA_GEO_MAPBOX_TOKEN"
            )

    def _get_geocoder(self) -> MapBox:
        if self._geolocator is None:
            self._geolocator = MapBox(
                api_key=self.config.mapbox_token,
                timeout=self.config.timeout_seconds,
                user_agent=self.config.user_agent,
            )
        return self._geolocator

    def geocode(self, query: str) -> Optional[GeocodeHit]:
        """Geocode a place query to its single best match.

        Args:
            query: The place text to geocode.

        Returns:
            GeocodeHit, or None if nothing matched.

        Raises:
            GeocodingError: If the geocoding service fails.
        """
        if not query or not query.strip():
            return None

        try:
            location = self._get_geocoder().geocode(
                query,
                exactly_one=True,
                proximity=(self.city.center_lat, self.city.center_lng),
                language=self.config.language,
            )
        except GeocoderServiceError as e:
            self._logger.warning(
                "Geocode service error",
                extra={"query": query, "error": str(e)},
            )
            raise GeocodingError(f"Mapbox geocoding failed: {e}", query=query, cause=e)

        if location is None:
            self._logger.debug("Geocode returned no result", extra={"query": query})
            return None

        return GeocodeHit(
            lng=float(location.longitude),
            lat=float(location.latitude),
            display_name=str(location.address or ""),
        )
