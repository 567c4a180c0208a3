"""Centralized configuration using Pydantic Settings.

This module is the single source of truth for the service settings:
city envelope, routing defaults, external extractor and geocoder
credentials, persisted state locations and maintenance periods.

Configuration can be overridden via environment variables:
- MILINEA_ROUTING_THRESHOLD_M=150
- MILINEA_GEMINI_API_KEY=...
- MILINEA_GEO_MAPBOX_TOKEN=...
- MILINEA_STORAGE_VAR_DIR=/var/lib/milinea
- etc.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional, Tuple

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .domain.models import CityBounds, Coordinates


class CityConfig(BaseSettings):
    """Service-area configuration.

    Environment variables prefixed with MILINEA_CITY_.
    """

    model_config = SettingsConfigDict(env_prefix="MILINEA_CITY_")

    name: str = "Cochabamba"
    context: str = "Cochabamba Bolivia"
    min_lng: float = -66.25
    max_lng: float = -66.05
    min_lat: float = -17.50
    max_lat: float = -17.25
    center_lng: float = -66.157
    center_lat: float = -17.39

    @property
    def bounds(self) -> CityBounds:
        """Bounding box every trusted coordinate must fall into."""
        return CityBounds(
            min_lng=self.min_lng,
            max_lng=self.max_lng,
            min_lat=self.min_lat,
            max_lat=self.max_lat,
        )

    @property
    def center(self) -> Coordinates:
        """Point used to bias geocoder results."""
        return Coordinates(lng=self.center_lng, lat=self.center_lat)


class RoutingConfig(BaseSettings):
    """Route matching defaults.

    Environment variables prefixed with MILINEA_ROUTING_.
    """

    model_config = SettingsConfigDict(env_prefix="MILINEA_ROUTING_")

    threshold_m: float = 100.0
    walk_kmh: float = 4.8
    bus_kmh: float = 18.0
    max_results: int = 5
    cost_model: Literal["global_speed", "per_line_speed"] = "global_speed"


class ExtractionConfig(BaseSettings):
    """Model-based trip extraction (Gemini).

    Environment variables prefixed with MILINEA_GEMINI_.
    """

    model_config = SettingsConfigDict(env_prefix="MILINEA_GEMINI_")

    api_key: str = ""
    models: Tuple[str, ...] = ("gemini-1.5-flash", "gemini-1.5-flash-latest")
    timeout_seconds: int = 15

    @property
    def enabled(self) -> bool:
        """Whether an external extraction key is configured."""
        return bool(self.api_key.strip())


class GeocodingConfig(BaseSettings):
    """Geocoding configuration.

    Environment variables prefixed with MILINEA_GEO_.
    """

    model_config = SettingsConfigDict(env_prefix="MILINEA_GEO_")

    mapbox_token: str = ""
    language: str = "es"
    user_agent: str = "milinea-backend"
    timeout_seconds: int = 10
    rate_limit_delay: float = 1.0
    max_retries: int = 2
    error_wait_seconds: float = 2.0


class StorageConfig(BaseSettings):
    """Persisted state (place cache and unresolved terms).

    Environment variables prefixed with MILINEA_STORAGE_.
    """

    model_config = SettingsConfigDict(env_prefix="MILINEA_STORAGE_")

    var_dir: Path = Field(
        default_factory=lambda: Path(__file__).resolve().parent.parent / "var"
    )
    place_cache_file: str = "data_place_cache.json"
    unresolved_file: str = "data_unresolved_terms.json"
    place_cache_flush_seconds: float = 20.0
    unresolved_flush_seconds: float = 25.0
    unresolved_purge_seconds: float = 24 * 60 * 60
    unresolved_max_age_days: float = 30.0

    @property
    def place_cache_path(self) -> Path:
        """Full path to the place cache snapshot."""
        return self.var_dir / self.place_cache_file

    @property
    def unresolved_path(self) -> Path:
        """Full path to the unresolved terms snapshot."""
        return self.var_dir / self.unresolved_file


class SessionConfig(BaseSettings):
    """Conversation session expiry.

    Environment variables prefixed with MILINEA_SESSION_.
    """

    model_config = SettingsConfigDict(env_prefix="MILINEA_SESSION_")

    idle_seconds: float = 30 * 60
    sweep_seconds: float = 15 * 60


class SpatialConfig(BaseSettings):
    """Spatial store and line catalog.

    Environment variables prefixed with MILINEA_SPATIAL_.
    """

    model_config = SettingsConfigDict(env_prefix="MILINEA_SPATIAL_")

    backend: Literal["memory", "postgis"] = "memory"
    catalog_path: Path = Field(
        default_factory=lambda: Path(__file__).resolve().parent.parent
        / "data"
        / "line_routes.geojson"
    )
    database_url: Optional[str] = None


class ObservabilityConfig(BaseSettings):
    """Logging and observability configuration.

    Environment variables prefixed with MILINEA_LOG_.
    """

    model_config = SettingsConfigDict(env_prefix="MILINEA_LOG_")

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    structured: bool = False  # Set True for JSON logging


class AppConfig(BaseSettings):
    """Main application configuration aggregating all sub-configs.

    Sub-configurations are accessed via attributes:

        config = get_config()
        print(config.routing.threshold_m)
        print(config.storage.place_cache_path)

    Environment variables prefixed with MILINEA_.
    """

    model_config = SettingsConfigDict(env_prefix="MILINEA_")

    city: CityConfig = Field(default_factory=CityConfig)
    routing: RoutingConfig = Field(default_factory=RoutingConfig)
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    geocoding: GeocodingConfig = Field(default_factory=GeocodingConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    spatial: SpatialConfig = Field(default_factory=SpatialConfig)
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)

    @property
    def project_root(self) -> Path:
        """Return the project root directory."""
        return Path(__file__).resolve().parent.parent


@lru_cache(maxsize=1)
def get_config() -> AppConfig:
    """Get the singleton application configuration.

    Configuration is loaded once and cached. To reload configuration
    (e.g., in tests), use reset_config() first.

    Returns:
        The application configuration instance.
    """
    return AppConfig()


def reset_config() -> None:
    """Reset the configuration cache.

    Call this in tests to ensure a fresh configuration is loaded.
    """
    get_config.cache_clear()
