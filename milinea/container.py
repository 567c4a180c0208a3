"""Dependency injection container.

This module provides a simple DI container without external frameworks.
It allows registering and resolving dependencies for the application,
and owns the lifecycle of the background maintenance tasks.

Design principles:
1. No magic - explicit registration and resolution
2. Testable - easy to swap implementations
3. Lazy loading - adapters instantiated on first use
4. Thread-safe - for web server contexts
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from .config import AppConfig, get_config
from .scheduling import PeriodicTask


@dataclass
class Container:
    """Dependency injection container.

    Usage:
        # Production
        container = Container.create_default()
        container.start_maintenance()
        service = container.resolve(ConversationService)

        # Testing
        container = Container()
        container.register(GeocoderPort, lambda: FakeGeocoder())
        geocoder = container.resolve(GeocoderPort)

    Attributes:
        config: Application configuration
    """

    config: AppConfig = field(default_factory=get_config)

    _factories: Dict[type[Any], Callable[[], Any]] = field(
        default_factory=dict, repr=False
    )
    _singletons: Dict[type[Any], Any] = field(default_factory=dict, repr=False)
    _singleton_types: set[type[Any]] = field(default_factory=set, repr=False)
    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False)
    _maintenance_started: bool = field(default=False, repr=False)
    _purge_task: Optional[PeriodicTask] = field(default=None, repr=False)
    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    def register(
        self,
        port_type: type[Any],
        factory: Callable[[], Any],
        singleton: bool = True,
    ) -> None:
        """Register a factory for a port type.

        Args:
            port_type: The type (usually a Protocol) to register.
            factory: A callable that creates instances of the type.
            singleton: If True, only one instance is created.
        """
        with self._lock:
            self._factories[port_type] = factory
            if singleton:
                self._singleton_types.add(port_type)

    def resolve(self, port_type: type[Any]) -> Any:
        """Resolve an instance of a port type.

        Args:
            port_type: The type to resolve.

        Returns:
            An instance of the requested type.

        Raises:
            KeyError: If the type is not registered.
        """
        with self._lock:
            if port_type not in self._factories:
                raise KeyError(f"Type not registered: {port_type}")

            if port_type in self._singleton_types:
                if port_type not in self._singletons:
                    self._singletons[port_type] = self._factories[port_type]()
                return self._singletons[port_type]

            return self._factories[port_type]()

    @classmethod
    def create_default(cls, config: Optional[AppConfig] = None) -> Container:
        """Create a container with default production bindings.

        This creates a fully configured container with all adapters
        registered and ready to use. Nothing touches the disk or the
        network until a binding is first resolved.

        Args:
            config: Optional configuration override.

        Returns:
            A configured Container instance.
        """
        from .adapters.cache import JsonPlaceCache, JsonUnresolvedTerms
        from .adapters.nlp import GeminiTripExtractor, PatternTripExtractor
        from .adapters.rendering import FoliumMapRenderer
        from .adapters.sessions import InMemorySessionStore
        from .adapters.spatial import GeoJSONLineCatalog
        from .ports.cache import PlaceCachePort, UnresolvedTermsPort
        from .ports.geocoding import GeocoderPort
        from .ports.rendering import MapRendererPort
        from .ports.sessions import SessionStorePort
        from .ports.spatial import LineCatalogPort, SpatialStorePort
        from .services import (
            ConversationService,
            PlaceResolver,
            RouteMatchingEngine,
            TripIntentService,
        )

        config = config or get_config()
        container = cls(config=config)

        # Persistent stores
        container.register(
            PlaceCachePort,
            lambda: JsonPlaceCache(
                path=config.storage.place_cache_path,
                bounds=config.city.bounds,
                flush_seconds=config.storage.place_cache_flush_seconds,
            ),
        )
        container.register(
            UnresolvedTermsPort,
            lambda: JsonUnresolvedTerms(
                path=config.storage.unresolved_path,
                flush_seconds=config.storage.unresolved_flush_seconds,
            ),
        )
        container.register(
            SessionStorePort,
            lambda: InMemorySessionStore(
                idle_seconds=config.session.idle_seconds,
                sweep_seconds=config.session.sweep_seconds,
            ),
        )

        # Geocoding: Mapbox when a token is configured
        def create_geocoder() -> GeocoderPort:
            if config.geocoding.mapbox_token:
                from .adapters.geocoding import MapBoxGeocoderAdapter

                return MapBoxGeocoderAdapter(config.geocoding, config.city)
            from .adapters.geocoding import NominatimGeocoderAdapter

            return NominatimGeocoderAdapter(config.geocoding, config.city)

        container.register(GeocoderPort, create_geocoder)

        # Spatial
        container.register(LineCatalogPort, lambda: GeoJSONLineCatalog(config.spatial))

        def create_spatial_store() -> SpatialStorePort:
            if config.spatial.backend == "postgis":
                from .adapters.spatial import PostGISSpatialStore

                return PostGISSpatialStore(config.spatial)
            from .adapters.spatial import ShapelySpatialStore

            return ShapelySpatialStore(catalog=container.resolve(LineCatalogPort))

        container.register(SpatialStorePort, create_spatial_store)

        # Rendering
        container.register(MapRendererPort, lambda: FoliumMapRenderer())

        # Services
        container.register(
            TripIntentService,
            lambda: TripIntentService(
                pattern_extractor=PatternTripExtractor(),
                model_extractor=(
                    GeminiTripExtractor(config.extraction)
                    if config.extraction.enabled
                    else None
                ),
            ),
        )
        container.register(
            PlaceResolver,
            lambda: PlaceResolver(
                cache=container.resolve(PlaceCachePort),
                geocoder=container.resolve(GeocoderPort),
                city=config.city,
            ),
        )
        container.register(
            RouteMatchingEngine,
            lambda: RouteMatchingEngine(
                spatial_store=container.resolve(SpatialStorePort),
                config=config.routing,
            ),
        )

        def create_conversation_service() -> ConversationService:
            return ConversationService(
                intents=container.resolve(TripIntentService),
                resolver=container.resolve(PlaceResolver),
                engine=container.resolve(RouteMatchingEngine),
                sessions=container.resolve(SessionStorePort),
                unresolved=container.resolve(UnresolvedTermsPort),
                place_cache=container.resolve(PlaceCachePort),
                spatial_store=container.resolve(SpatialStorePort),
                city=config.city,
                routing=config.routing,
            )

        container.register(ConversationService, create_conversation_service)

        return container

    def start_maintenance(self) -> None:
        """Restore persisted state and start the background tasks.

        Loads both snapshots, drops out-of-bounds cache entries and old
        unresolved terms, then schedules the flushes, the session sweep
        and the daily unresolved purge. Safe to call more than once.
        """
        from .ports.cache import PlaceCachePort, UnresolvedTermsPort
        from .ports.sessions import SessionStorePort

        storage = self.config.storage
        cache = self.resolve(PlaceCachePort)
        unresolved = self.resolve(UnresolvedTermsPort)
        sessions = self.resolve(SessionStorePort)

        with self._lock:
            if self._maintenance_started:
                return
            self._maintenance_started = True

        cache.load()
        cache.purge_out_of_bounds()
        cache.schedule_persist()

        unresolved.load()
        unresolved.purge_old(storage.unresolved_max_age_days)
        unresolved.schedule_persist()

        sessions.schedule_sweep()

        self._purge_task = PeriodicTask(
            name="unresolved-purge",
            period_seconds=storage.unresolved_purge_seconds,
            action=lambda: unresolved.purge_old(storage.unresolved_max_age_days),
        )
        self._purge_task.start()
        self._logger.info(
            "Maintenance started",
            extra={"place_cache": cache.size(), "unresolved": unresolved.size()},
        )

    def shutdown(self) -> None:
        """Stop every background task and flush the persistent stores."""
        from .ports.cache import PlaceCachePort, UnresolvedTermsPort
        from .ports.sessions import SessionStorePort

        with self._lock:
            if not self._maintenance_started:
                return
            self._maintenance_started = False
            task, self._purge_task = self._purge_task, None

        if task is not None:
            task.stop()
        self.resolve(SessionStorePort).close()
        self.resolve(UnresolvedTermsPort).close()
        self.resolve(PlaceCachePort).close()
        self._logger.info("Maintenance stopped")

