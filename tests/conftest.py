"""Shared fixtures: a small line catalog, fake geocoder and fake stores."""

import json
from pathlib import Path
from typing import Callable, Dict, List, Optional

import pytest

from milinea.adapters.cache import JsonPlaceCache, JsonUnresolvedTerms
from milinea.adapters.nlp import PatternTripExtractor
from milinea.adapters.sessions import InMemorySessionStore
from milinea.adapters.spatial import GeoJSONLineCatalog, ShapelySpatialStore
from milinea.config import CityConfig, RoutingConfig, SpatialConfig
from milinea.domain.models import (
    CandidateMeasure,
    CandidateRoute,
    Coordinates,
    GeocodeHit,
)
from milinea.services import (
    ConversationService,
    PlaceResolver,
    RouteMatchingEngine,
    TripIntentService,
)

# Two points about 55 m south of line 230, 0.02 degrees (~2.1 km) apart.
UMSS = GeocodeHit(lng=-66.17, lat=-17.3905, display_name="UMSS")
PLAZA = GeocodeHit(lng=-66.15, lat=-17.3905, display_name="Plaza principal")
# A bare geocode that lands in another country.
ELSEWHERE = GeocodeHit(lng=-3.70, lat=40.41, display_name="Madrid")


def _feature(fid, code, direction, coordinates, **properties):
    props = {
        "line_direction_id": fid,
        "line_id": fid // 10 + 1,
        "code": code,
        "line_name": f"Linea {code}",
        "color_hex": "#e6194b",
        "direction": direction,
        "is_active": True,
    }
    props.update(properties)
    return {
        "type": "Feature",
        "id": fid,
        "properties": props,
        "geometry": {"type": "LineString", "coordinates": coordinates},
    }


LINE_230 = [[-66.18, -17.39], [-66.16, -17.39], [-66.14, -17.39]]
LINE_E = [[-66.157, -17.365], [-66.157, -17.385], [-66.157, -17.405]]

CATALOG = {
    "type": "FeatureCollection",
    "features": [
        _feature(1, "230", "outbound", LINE_230, avg_speed_kmh=16, wait_minutes=4),
        _feature(2, "230", "inbound", list(reversed(LINE_230))),
        _feature(11, "E", "outbound", LINE_E),
        _feature(12, "E", "inbound", list(reversed(LINE_E)), is_active=False),
    ],
}


class FakeGeocoder:
    """GeocoderPort double answering from a dictionary (case-insensitive)."""

    def __init__(self, hits: Optional[Dict[str, GeocodeHit]] = None, error=None):
        self.hits = {query.lower(): hit for query, hit in (hits or {}).items()}
        self.error = error
        self.calls: List[str] = []

    def geocode(self, query: str) -> Optional[GeocodeHit]:
        self.calls.append(query)
        if self.error is not None:
            raise self.error
        return self.hits.get(query.lower())


class FakeSpatialStore:
    """SpatialStorePort double returning canned measures per threshold."""

    def __init__(self, by_threshold: Optional[Dict[float, list]] = None, default=None):
        self.by_threshold = by_threshold or {}
        self.default = default or []
        self.calls: List[float] = []

    def find_candidates(self, origin, destination, threshold_m):
        self.calls.append(threshold_m)
        return self.by_threshold.get(threshold_m, self.default)

    def health(self):
        return {"backend": "fake", "ready": True}


@pytest.fixture
def city() -> CityConfig:
    return CityConfig()


@pytest.fixture
def routing() -> RoutingConfig:
    return RoutingConfig(
        threshold_m=100,
        walk_kmh=4.8,
        bus_kmh=18,
        max_results=5,
        cost_model="global_speed",
    )


@pytest.fixture
def catalog_path(tmp_path) -> Path:
    path = tmp_path / "line_routes.geojson"
    path.write_text(json.dumps(CATALOG), encoding="utf-8")
    return path


@pytest.fixture
def spatial_store(catalog_path) -> ShapelySpatialStore:
    catalog = GeoJSONLineCatalog(SpatialConfig(catalog_path=catalog_path))
    return ShapelySpatialStore(catalog=catalog)


@pytest.fixture
def place_cache(tmp_path, city) -> JsonPlaceCache:
    return JsonPlaceCache(path=tmp_path / "var" / "data_place_cache.json", bounds=city.bounds)


@pytest.fixture
def unresolved(tmp_path) -> JsonUnresolvedTerms:
    return JsonUnresolvedTerms(path=tmp_path / "var" / "data_unresolved_terms.json")


@pytest.fixture
def geocoder() -> FakeGeocoder:
    return FakeGeocoder({"UMSS": UMSS, "plaza principal": PLAZA})


@pytest.fixture
def make_service(place_cache, unresolved, spatial_store, geocoder, city, routing):
    """Factory for a ConversationService over the test catalog."""

    def factory(model_extractor=None, geocoder_override=None) -> ConversationService:
        return ConversationService(
            intents=TripIntentService(
                pattern_extractor=PatternTripExtractor(),
                model_extractor=model_extractor,
            ),
            resolver=PlaceResolver(
                cache=place_cache,
                geocoder=geocoder_override or geocoder,
                city=city,
            ),
            engine=RouteMatchingEngine(spatial_store=spatial_store, config=routing),
            sessions=InMemorySessionStore(),
            unresolved=unresolved,
            place_cache=place_cache,
            spatial_store=spatial_store,
            city=city,
            routing=routing,
        )

    return factory


@pytest.fixture
def service(make_service) -> ConversationService:
    return make_service()


@pytest.fixture
def make_measure() -> Callable[..., CandidateMeasure]:
    """Build a CandidateMeasure with sensible defaults."""

    def factory(
        code: str = "230",
        direction: str = "outbound",
        walk_to: float = 80.0,
        walk_from: float = 160.0,
        ride: Optional[float] = 3000.0,
        loc_o: float = 0.2,
        loc_d: float = 0.8,
        line_direction_id: int = 1,
        **route_fields,
    ) -> CandidateMeasure:
        route = CandidateRoute(
            line_direction_id=line_direction_id,
            line_id=line_direction_id,
            code=code,
            direction=direction,
            **route_fields,
        )
        forward = loc_o < loc_d
        return CandidateMeasure(
            route=route,
            loc_origin=loc_o,
            loc_destination=loc_d,
            snap_origin=Coordinates(lng=-66.17, lat=-17.39),
            snap_destination=Coordinates(lng=-66.15, lat=-17.39),
            walk_to_m=walk_to,
            walk_from_m=walk_from,
            ride_m=ride if forward else None,
            segment=(
                {"type": "LineString", "coordinates": [[-66.17, -17.39], [-66.15, -17.39]]}
                if forward
                else None
            ),
        )

    return factory
