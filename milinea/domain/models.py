"""Immutable domain models for the trip resolution engine.

Most models are frozen dataclasses with slots. The conversation
``Session`` is the exception: it is owned and mutated by the session
store. These models have no external dependencies.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional, Tuple

GeoJSON = Mapping[str, Any]


class TripIntentKind(str, Enum):
    """High-level intent of a rider message."""

    ROUTE = "route"
    SMALLTALK = "smalltalk"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Any) -> "TripIntentKind":
        """Map free-form extractor output to a known intent."""
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.UNKNOWN


class PlaceSource(str, Enum):
    """Which resolution strategy produced a coordinate."""

    CACHE = "cache"
    GEOCODE = "geocode"
    SANITIZED_CONTEXT = "sanitized+context"
    CONTEXT_APPENDED = "context-appended"
    GPS = "gps"


@dataclass(frozen=True, slots=True)
class Coordinates:
    """A WGS84 longitude/latitude pair."""

    lng: float
    lat: float

    def __post_init__(self) -> None:
        """Validate coordinate ranges."""
        if not (math.isfinite(self.lng) and math.isfinite(self.lat)):
            raise ValueError(f"Coordinates must be finite, got {self.lng}, {self.lat}")
        if not -180 <= self.lng <= 180:
            raise ValueError(f"Longitude must be between -180 and 180, got {self.lng}")
        if not -90 <= self.lat <= 90:
            raise ValueError(f"Latitude must be between -90 and 90, got {self.lat}")

    def as_dict(self) -> dict[str, float]:
        return {"lng": self.lng, "lat": self.lat}


@dataclass(frozen=True, slots=True)
class CityBounds:
    """Rectangular envelope over the service area (inclusive edges)."""

    min_lng: float
    max_lng: float
    min_lat: float
    max_lat: float

    def contains(self, lng: float, lat: float) -> bool:
        """Check that both longitude and latitude fall inside the envelope."""
        try:
            lng_f = float(lng)
            lat_f = float(lat)
        except (TypeError, ValueError):
            return False
        return (
            self.min_lng <= lng_f <= self.max_lng
            and self.min_lat <= lat_f <= self.max_lat
        )

    def contains_point(self, point: Coordinates) -> bool:
        return self.contains(point.lng, point.lat)


@dataclass(frozen=True, slots=True)
class ResolvedPlace:
    """A place label resolved to trusted in-bounds coordinates.

    Attributes:
        lng: Longitude
        lat: Latitude
        label: The label the rider used (or "Tu ubicación" for GPS)
        source: Strategy that produced the coordinates
    """

    lng: float
    lat: float
    label: str
    source: PlaceSource

    @property
    def coordinates(self) -> Coordinates:
        return Coordinates(lng=self.lng, lat=self.lat)

    def as_dict(self) -> dict[str, Any]:
        return {
            "lng": self.lng,
            "lat": self.lat,
            "label": self.label,
            "source": self.source.value,
        }


@dataclass(frozen=True, slots=True)
class GeocodeHit:
    """Single best match returned by a geocoder."""

    lng: float
    lat: float
    display_name: str = ""


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """A persisted place cache record."""

    key: str
    lng: float
    lat: float
    hits: int
    first_seen: float
    last_seen: float


@dataclass(frozen=True, slots=True)
class UnresolvedEntry:
    """A label that failed resolution, kept for curation."""

    key: str
    hits: int
    last_seen: float
    original_samples: Tuple[str, ...] = field(default_factory=tuple)

    def as_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "hits": self.hits,
            "last_seen": self.last_seen,
            "original_samples": list(self.original_samples),
        }


@dataclass
class Session:
    """Per-conversation slot-filling memory.

    Attributes:
        id: Session identifier sent back to the client
        origin: Last resolved origin, if any
        destination: Last resolved destination, if any
        updated_at: Epoch seconds of the last interaction
    """

    id: str
    origin: Optional[ResolvedPlace] = None
    destination: Optional[ResolvedPlace] = None
    updated_at: float = 0.0

    @property
    def is_ready(self) -> bool:
        """Both slots are filled."""
        return self.origin is not None and self.destination is not None


@dataclass(frozen=True, slots=True)
class TripRequest:
    """A validated chat turn payload.

    ``None`` speeds and threshold fall back to the routing defaults.
    An empty ``session_id`` asks for a new session.
    """

    message: str
    origin_hint: Optional[Coordinates] = None
    session_id: str = ""
    threshold_m: Optional[float] = None
    walk_kmh: Optional[float] = None
    bus_kmh: Optional[float] = None


@dataclass(frozen=True, slots=True)
class TripIntent:
    """Origin/destination intent extracted from a rider message.

    Attributes:
        origin_text: Origin label as written by the rider ("" if absent)
        destination_text: Destination label ("" if absent)
        intent: Detected intent
        language: Language code of the message
        source: Which extractor/pattern produced the slots
        used: Arbitration outcome tag (e.g. "gemini", "fallback-only")
        model_used: External model that answered, if any
        raw: Raw external output kept for diagnostics
        error: External failure message, if any
    """

    origin_text: str = ""
    destination_text: str = ""
    intent: TripIntentKind = TripIntentKind.UNKNOWN
    language: str = "es"
    source: str = ""
    used: str = ""
    model_used: Optional[str] = None
    raw: Optional[Mapping[str, Any]] = None
    error: Optional[str] = None

    @property
    def has_slots(self) -> bool:
        """At least one of origin/destination text is present."""
        return bool(self.origin_text or self.destination_text)

    @property
    def is_route(self) -> bool:
        """A route intent with at least one slot filled."""
        return self.intent is TripIntentKind.ROUTE and self.has_slots

    def as_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "origin_text": self.origin_text,
            "destination_text": self.destination_text,
            "intent": self.intent.value,
            "language": self.language,
            "source": self.source,
            "used": self.used,
        }
        if self.model_used:
            data["model_used"] = self.model_used
        if self.raw is not None:
            data["gemini_raw"] = dict(self.raw)
        if self.error:
            data["gemini_error"] = self.error
        return data


@dataclass(frozen=True, slots=True)
class CandidateRoute:
    """A transit line's directional geometry from the catalog.

    Attributes:
        line_direction_id: Identifier of the line direction
        line_id: Identifier of the line
        line_name: Human-readable line name
        code: Public line code (e.g. "230")
        color: Display colour (hex)
        direction: "outbound" or "inbound"
        geometry: LineString coordinates as (lng, lat) pairs
        avg_speed_kmh: Optional per-line average speed
        wait_minutes: Optional per-line wait/dwell time
    """

    line_direction_id: int
    line_id: int
    code: str
    direction: str
    geometry: Tuple[Tuple[float, float], ...] = field(default_factory=tuple)
    line_name: str = ""
    color: str = ""
    avg_speed_kmh: Optional[float] = None
    wait_minutes: Optional[float] = None

    @property
    def headsign(self) -> str:
        return "Ida" if self.direction == "outbound" else "Vuelta"

    def as_dict(self) -> dict[str, Any]:
        return {
            "line_direction_id": self.line_direction_id,
            "line_id": self.line_id,
            "line_name": self.line_name,
            "code": self.code,
            "color_hex": self.color,
            "direction": self.direction,
            "headsign": self.headsign,
        }


@dataclass(frozen=True, slots=True)
class CandidateMeasure:
    """Geometric measures of one candidate route for an origin/destination.

    Produced atomically by a spatial store. ``segment`` and ``ride_m`` are
    only present when the origin projects strictly before the destination.
    """

    route: CandidateRoute
    loc_origin: float
    loc_destination: float
    snap_origin: Coordinates
    snap_destination: Coordinates
    walk_to_m: float
    walk_from_m: float
    ride_m: Optional[float] = None
    segment: Optional[GeoJSON] = None

    @property
    def is_forward(self) -> bool:
        """The ride respects the direction of the geometry."""
        return self.loc_origin < self.loc_destination


@dataclass(frozen=True, slots=True)
class RouteOption:
    """A ranked single-line trip option."""

    route: CandidateRoute
    ride_m: float
    walk_to_m: float
    walk_from_m: float
    eta_minutes: float
    segment: Optional[GeoJSON] = None
    snap_origin: Optional[GeoJSON] = None
    snap_destination: Optional[GeoJSON] = None
    walk_to: Optional[GeoJSON] = None
    walk_from: Optional[GeoJSON] = None

    @property
    def walk_m(self) -> float:
        """Total walking distance."""
        return self.walk_to_m + self.walk_from_m

    @property
    def rank_key(self) -> Tuple[float, float, float]:
        return (self.eta_minutes, self.walk_m, self.ride_m)

    def as_dict(self) -> dict[str, Any]:
        data = self.route.as_dict()
        data.update(
            {
                "ride_m": self.ride_m,
                "walk_to_m": self.walk_to_m,
                "walk_from_m": self.walk_from_m,
                "eta_minutes": self.eta_minutes,
                "seg_geom_geojson": self.segment,
                "snap_o_geojson": self.snap_origin,
                "snap_d_geojson": self.snap_destination,
                "walk_to_geojson": self.walk_to,
                "walk_from_geojson": self.walk_from,
            }
        )
        return data


@dataclass(frozen=True, slots=True)
class RouteSearchResult:
    """Outcome of a route search, including the threshold actually used."""

    options: Tuple[RouteOption, ...]
    threshold_initial: float
    threshold_used: float
    thresholds_tried: Tuple[float, ...] = field(default_factory=tuple)

    @property
    def is_empty(self) -> bool:
        return len(self.options) == 0

    @property
    def best(self) -> Optional[RouteOption]:
        return self.options[0] if self.options else None
