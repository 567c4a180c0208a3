"""Nominatim geocoder adapter.

OpenStreetMap fallback used when no Mapbox token is configured:
- Results restricted to a viewbox around the service city
- Rate limiting (Nominatim usage policy allows about 1 request/second)
- Service errors raised as GeocodingError
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

from geopy.exc import GeocoderServiceError
from geopy.extra.rate_limiter import RateLimiter
from geopy.geocoders import Nominatim

from ...config import CityConfig, GeocodingConfig, get_config
from ...domain.errors import GeocodingError
from ...domain.models import GeocodeHit


@dataclass
class NominatimGeocoderAdapter:
    """Nominatim geocoder adapter with rate limiting.

    This adapter implements GeocoderPort using OpenStreetMap's Nominatim
    geocoding service.

    Attributes:
        config: Geocoding configuration
        city: Service-area configuration (viewbox bias)
    """

    config: GeocodingConfig = field(default_factory=lambda: get_config().geocoding)
    city: CityConfig = field(default_factory=lambda: get_config().city)

    _geolocator: Optional[Nominatim] = field(default=None, repr=False)
    _geocode_fn: Optional[Any] = field(default=None, repr=False)
    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    def _get_geocoder(self) -> Any:
        """Get or initialize the geocoder with rate limiting."""
        if self._geocode_fn is not None:
            return self._geocode_fn

        self._logger.debug(
            "Initializing Nominatim geocoder",
            extra={
                "user_agent": self.config.user_agent,
                "timeout": self.config.timeout_seconds,
            },
        )

        self._geolocator = Nominatim(
            user_agent=self.config.user_agent,
            timeout=self.config.timeout_seconds,
        )

        self._geocode_fn = RateLimiter(
            self._geolocator.geocode,
            min_delay_seconds=self.config.rate_limit_delay,
            max_retries=self.config.max_retries,
            error_wait_seconds=self.config.error_wait_seconds,
            swallow_exceptions=False,
        )

        return self._geocode_fn

    def geocode(self, query: str) -> Optional[GeocodeHit]:
        """Geocode a place query to its best match near the city.

        Args:
            query: The place text to geocode.

        Returns:
            GeocodeHit, or None if nothing matched.

        Raises:
            GeocodingError: If the geocoding service fails.
        """
        if not query or not query.strip():
            return None

        # Nominatim viewbox takes (lat, lon) corner pairs.
        viewbox = [
            (self.city.min_lat, self.city.min_lng),
            (self.city.max_lat, self.city.max_lng),
        ]

        try:
            geocode_fn = self._get_geocoder()
            location = geocode_fn(
                query,
                exactly_one=True,
                language=self.config.language,
                viewbox=viewbox,
                bounded=False,
            )
        except GeocoderServiceError as e:
            self._logger.warning(
                "Geocode service error",
                extra={"query": query, "error": str(e)},
            )
            raise GeocodingError(f"Nominatim geocoding failed: {e}", query=query, cause=e)

        if location is None:
            self._logger.debug("Geocode returned no result", extra={"query": query})
            return None

        hit = GeocodeHit(
            lng=float(location.longitude),
            lat=float(location.latitude),
            display_name=str(location.address or ""),
        )
        self._logger.debug(
            "Geocode success",
            extra={"query": query, "lng": hit.lng, "lat": hit.lat},
        )
        return hit
