"""Ports layer - Abstract interfaces (Protocols) for the application.

Ports define the contracts between the application core and external
adapters. They enable dependency injection and make the system testable.

This module follows the Hexagonal Architecture pattern:
- Input ports: How the application is driven (services)
- Output ports: How the application drives external systems (adapters)
"""

from .cache import PlaceCachePort, UnresolvedTermsPort
from .geocoding import GeocoderPort
from .nlp import TripExtractorPort
from .rendering import MapRendererPort
from .sessions import SessionStorePort
from .spatial import CostModelPort, LineCatalogPort, SpatialStorePort

__all__ = [
    # NLP
    "TripExtractorPort",
    # Geocoding
    "GeocoderPort",
    # Persistent stores
    "PlaceCachePort",
    "UnresolvedTermsPort",
    "SessionStorePort",
    # Spatial
    "LineCatalogPort",
    "SpatialStorePort",
    "CostModelPort",
    # Rendering
    "MapRendererPort",
]
