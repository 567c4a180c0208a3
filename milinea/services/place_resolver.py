"""Place resolver - multi-strategy geocoding of rider labels.

A label is resolved to coordinates only if they fall inside the city
bounds. Strategies are tried in a fixed order and the first in-bounds
hit wins:

1. cache lookup on the raw label
2. direct geocode of the label
3. geocode of the sanitized label with the city context appended
4. geocode of the raw label with the city context appended, only when
   step 2 found something outside the city

Successful lookups are written back to the place cache. Misses are
returned as ``None``; registering them for curation is the caller's job.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from ..config import CityConfig, get_config
from ..domain.errors import GeocodingError
from ..domain.models import Coordinates, GeocodeHit, PlaceSource, ResolvedPlace
from ..nlp.text import sanitize_place_text
from ..ports.cache import PlaceCachePort
from ..ports.geocoding import GeocoderPort


@dataclass
class PlaceResolver:
    """Resolve free-text place labels to in-bounds coordinates.

    Attributes:
        cache: Persistent place cache
        geocoder: External geocoder (None disables live lookups)
        city: Service-area configuration (bounds and context string)
    """

    cache: PlaceCachePort
    geocoder: Optional[GeocoderPort] = None
    city: CityConfig = field(default_factory=lambda: get_config().city)

    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    def resolve(self, label_raw: Optional[str]) -> Optional[ResolvedPlace]:
        """Resolve a label.

        Args:
            label_raw: The label as written by the rider.

        Returns:
            ResolvedPlace labelled with the trimmed original text, or None.
        """
        if not label_raw or not label_raw.strip():
            return None
        original = label_raw.strip()
        bounds = self.city.bounds

        cached = self.cache.get(original)
        if cached is not None and bounds.contains_point(cached):
            self._logger.debug("Resolved from cache", extra={"label": original})
            return self._place(cached.lng, cached.lat, original, PlaceSource.CACHE)
        if cached is not None:
            self._logger.debug(
                "Ignoring out-of-bounds cache entry",
                extra={"label": original, "lng": cached.lng, "lat": cached.lat},
            )

        direct = self._geocode(original)
        if direct is not None and bounds.contains(direct.lng, direct.lat):
            self._remember(original, direct)
            return self._place(direct.lng, direct.lat, original, PlaceSource.GEOCODE)

        sanitized = sanitize_place_text(original)
        if sanitized and sanitized != original:
            with_context = self._geocode(f"{sanitized} {self.city.context}")
            if with_context is not None and bounds.contains(with_context.lng, with_context.lat):
                self._remember(original, with_context)
                self._remember(sanitized, with_context)
                return self._place(
                    with_context.lng,
                    with_context.lat,
                    original,
                    PlaceSource.SANITIZED_CONTEXT,
                )

        if direct is not None:
            retry = self._geocode(f"{original} {self.city.context}")
            if retry is not None and bounds.contains(retry.lng, retry.lat):
                self._remember(original, retry)
                return self._place(
                    retry.lng, retry.lat, original, PlaceSource.CONTEXT_APPENDED
                )

        self._logger.info("Place unresolved", extra={"label": original})
        return None

    def _geocode(self, query: str) -> Optional[GeocodeHit]:
        if self.geocoder is None:
            return None
        try:
            hit = self.geocoder.geocode(query)
        except GeocodingError as e:
            self._logger.warning(
                "Geocoder failed, treating as a miss",
                extra={"query": query, "error": str(e)},
            )
            return None
        self._logger.debug(
            "Geocode attempt",
            extra={
                "query": query,
                "found": hit is not None,
                "lng": hit.lng if hit else None,
                "lat": hit.lat if hit else None,
            },
        )
        return hit

    def _remember(self, label: str, hit: GeocodeHit) -> None:
        self.cache.set(label, Coordinates(lng=hit.lng, lat=hit.lat))

    @staticmethod
    def _place(lng: float, lat: float, label: str, source: PlaceSource) -> ResolvedPlace:
        return ResolvedPlace(lng=lng, lat=lat, label=label, source=source)
