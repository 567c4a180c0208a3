"""Domain layer - Core business models and errors.

This module contains the domain models and typed errors used
throughout the application. No external dependencies.
"""

from .errors import (
    CatalogError,
    ConfigurationError,
    ExtractionError,
    GeocodingError,
    InvalidRequestError,
    MilineaError,
    RenderingError,
    SpatialStoreError,
)
from .models import (
    CacheEntry,
    CandidateMeasure,
    CandidateRoute,
    CityBounds,
    Coordinates,
    GeocodeHit,
    PlaceSource,
    ResolvedPlace,
    RouteOption,
    RouteSearchResult,
    Session,
    TripIntent,
    TripIntentKind,
    TripRequest,
    UnresolvedEntry,
)

__all__ = [
    # Models
    "Coordinates",
    "CityBounds",
    "PlaceSource",
    "ResolvedPlace",
    "GeocodeHit",
    "CacheEntry",
    "UnresolvedEntry",
    "Session",
    "TripIntent",
    "TripIntentKind",
    "TripRequest",
    "CandidateRoute",
    "CandidateMeasure",
    "RouteOption",
    "RouteSearchResult",
    # Errors
    "MilineaError",
    "InvalidRequestError",
    "ExtractionError",
    "GeocodingError",
    "SpatialStoreError",
    "CatalogError",
    "ConfigurationError",
    "RenderingError",
]
