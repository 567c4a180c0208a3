"""Conversation service - one chat turn end to end.

This service orchestrates a conversational turn:
1. Request validation (before any side effect)
2. Session lookup/creation
3. Trip intent extraction (pattern + model, arbitrated)
4. Origin/destination resolution, merged with the session slots
5. Route search with threshold escalation
6. Spanish reply

It also serves the direct coordinate search, the unresolved term
listing for curators and the health report.
"""

from __future__ import annotations

import logging
import math
import secrets
import time
from dataclasses import dataclass, field
from numbers import Real
from typing import Any, Callable, Dict, Mapping, Optional

from ..config import CityConfig, RoutingConfig, get_config
from ..domain.errors import InvalidRequestError
from ..domain.models import (
    Coordinates,
    PlaceSource,
    ResolvedPlace,
    RouteSearchResult,
    TripIntentKind,
    TripRequest,
)
from ..ports.cache import PlaceCachePort, UnresolvedTermsPort
from ..ports.sessions import SessionStorePort
from ..ports.spatial import SpatialStorePort
from . import reply_formatter as replies
from .intent_service import TripIntentService
from .place_resolver import PlaceResolver
from .route_matcher import RouteMatchingEngine

ChatReply = Dict[str, Any]


@dataclass(frozen=True)
class ChatTurn:
    """A conversation reply with the typed objects behind it."""

    reply: ChatReply
    origin: Optional[ResolvedPlace] = None
    destination: Optional[ResolvedPlace] = None
    result: Optional[RouteSearchResult] = None


def new_session_id() -> str:
    """Generate ``s_<hex millis><hex random>``."""
    return f"s_{int(time.time() * 1000):x}{secrets.token_hex(3)}"


def _number(value: Any, field_name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (Real, str)):
        raise InvalidRequestError(f"{field_name} must be a number", field_name=field_name)
    try:
        number = float(value)
    except ValueError:
        raise InvalidRequestError(f"{field_name} must be a number", field_name=field_name)
    if not math.isfinite(number):
        raise InvalidRequestError(f"{field_name} must be finite", field_name=field_name)
    return number


def parse_point(value: Any, field_name: str) -> Coordinates:
    """Parse a ``{lng, lat}`` payload object.

    Raises:
        InvalidRequestError: If the object or its coordinates are malformed.
    """
    if not isinstance(value, Mapping):
        raise InvalidRequestError(
            f"{field_name} must be an object {{lng, lat}}", field_name=field_name
        )
    lng = _number(value.get("lng"), f"{field_name}.lng")
    lat = _number(value.get("lat"), f"{field_name}.lat")
    try:
        return Coordinates(lng=lng, lat=lat)
    except ValueError as e:
        raise InvalidRequestError(str(e), field_name=field_name, cause=e)


def parse_positive(payload: Mapping[str, Any], key: str) -> Optional[float]:
    """Parse an optional strictly positive number."""
    value = payload.get(key)
    if value is None:
        return None
    number = _number(value, key)
    if number <= 0:
        raise InvalidRequestError(f"{key} must be positive", field_name=key)
    return number


def parse_trip_request(payload: Any) -> TripRequest:
    """Validate a chat payload into a ``TripRequest``.

    Raises:
        InvalidRequestError: If the payload is malformed.
    """
    if not isinstance(payload, Mapping):
        raise InvalidRequestError("payload must be an object")

    message = payload.get("message")
    if not isinstance(message, str) or not message.strip():
        raise InvalidRequestError("message requerido", field_name="message")

    origin_hint = None
    if payload.get("origin") is not None:
        origin_hint = parse_point(payload["origin"], "origin")

    session_id = payload.get("session_id")
    return TripRequest(
        message=message,
        origin_hint=origin_hint,
        session_id=session_id.strip() if isinstance(session_id, str) else "",
        threshold_m=parse_positive(payload, "threshold_m"),
        walk_kmh=parse_positive(payload, "walk_kmh"),
        bus_kmh=parse_positive(payload, "bus_kmh"),
    )


@dataclass
class ConversationService:
    """Conversational trip resolution.

    Attributes:
        intents: Trip intent extraction
        resolver: Place label resolution
        engine: Route matching engine
        sessions: Conversation session store
        unresolved: Tracker of labels that failed resolution
        place_cache: Place cache (health counts)
        spatial_store: Spatial store (health report)
        city: Service-area configuration
        routing: Routing defaults echoed in replies
        session_id_factory: Generator for new session ids
    """

    intents: TripIntentService
    resolver: PlaceResolver
    engine: RouteMatchingEngine
    sessions: SessionStorePort
    unresolved: UnresolvedTermsPort
    place_cache: Optional[PlaceCachePort] = None
    spatial_store: Optional[SpatialStorePort] = None
    city: CityConfig = field(default_factory=lambda: get_config().city)
    routing: RoutingConfig = field(default_factory=lambda: get_config().routing)
    session_id_factory: Callable[[], str] = new_session_id

    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    def handle(self, payload: Mapping[str, Any]) -> ChatReply:
        """Run one conversation turn.

        Args:
            payload: ``{message, origin?: {lng, lat}, session_id?,
                threshold_m?, walk_kmh?, bus_kmh?}``

        Returns:
            Reply dictionary (``ok``, ``session_id``, ``intent``, ``reply``
            and, depending on the turn, ``origin``, ``destination``,
            ``needs``, ``params``, ``fastest``, ``meta``).

        Raises:
            InvalidRequestError: If the payload is malformed.
            SpatialStoreError: If the route search fails.
        """
        return self.turn(payload).reply

    def turn(self, payload: Mapping[str, Any]) -> ChatTurn:
        """Run one conversation turn, keeping the typed results.

        Same as ``handle`` but also returns the resolved places and the
        route search result (used by the CLI to draw maps).
        """
        started = time.perf_counter()
        request = parse_trip_request(payload)
        gps = request.origin_hint

        session_id = request.session_id or self.session_id_factory()
        session = self.sessions.ensure(session_id)

        intent = self.intents.extract(request.message)
        base: ChatReply = {
            "ok": True,
            "session_id": session_id,
            "intent": intent.as_dict(),
        }

        def finish(**fields: Any) -> ChatReply:
            reply = dict(base, **fields)
            reply["meta"] = {"elapsed_ms": round((time.perf_counter() - started) * 1000)}
            return reply

        if intent.intent is TripIntentKind.SMALLTALK:
            return ChatTurn(finish(reply=replies.SMALLTALK_REPLY))

        origin: Optional[ResolvedPlace] = None
        if gps is not None:
            if self.city.bounds.contains_point(gps):
                origin = ResolvedPlace(
                    lng=gps.lng, lat=gps.lat, label=replies.GPS_LABEL, source=PlaceSource.GPS
                )
                session.origin = origin
            else:
                self._logger.info(
                    "GPS origin outside city bounds, ignored",
                    extra={"session_id": session_id, "lng": gps.lng, "lat": gps.lat},
                )

        if origin is None and intent.origin_text:
            origin = self.resolver.resolve(intent.origin_text)
            if origin is not None:
                session.origin = origin
            else:
                self.unresolved.register(intent.origin_text)

        if not intent.destination_text and session.destination is None:
            self.sessions.save(session)
            return ChatTurn(
                finish(needs={"destination": True}, reply=replies.NEEDS_DESTINATION_REPLY)
            )

        destination: Optional[ResolvedPlace] = None
        if intent.destination_text:
            destination = self.resolver.resolve(intent.destination_text)
            if destination is None:
                self.unresolved.register(intent.destination_text)
                self.sessions.save(session)
                return ChatTurn(
                    finish(
                        needs={"destination": True},
                        reply=replies.unresolved_destination_reply(intent.destination_text),
                    )
                )
            session.destination = destination
        else:
            destination = session.destination

        if origin is None and session.origin is not None:
            origin = session.origin
        self.sessions.save(session)

        if destination is not None and origin is None:
            return ChatTurn(
                finish(
                    destination=destination.as_dict(),
                    needs={"origin": True},
                    reply=replies.needs_origin_reply(destination.label),
                ),
                destination=destination,
            )

        if origin is None or destination is None:
            return ChatTurn(
                finish(
                    needs={"origin": origin is None, "destination": destination is None},
                    reply=replies.NEEDS_BOTH_REPLY,
                )
            )

        self._logger.info(
            "Searching routes",
            extra={
                "session_id": session_id,
                "origin_source": origin.source.value,
                "destination_source": destination.source.value,
            },
        )
        result = self.engine.search(
            origin.coordinates,
            destination.coordinates,
            threshold_m=request.threshold_m,
            walk_kmh=request.walk_kmh,
            bus_kmh=request.bus_kmh,
        )
        reply = finish(
            origin=origin.as_dict(),
            destination=destination.as_dict(),
            params=self._params(result, request.walk_kmh, request.bus_kmh),
            fastest=self._fastest(result),
            reply=replies.format_route_reply(result.options),
        )
        return ChatTurn(reply, origin=origin, destination=destination, result=result)

    def fastest(self, payload: Mapping[str, Any]) -> ChatReply:
        """Direct search between two coordinates (no session).

        Args:
            payload: ``{origin: {lng, lat}, destination: {lng, lat},
                threshold_m?, walk_kmh?, bus_kmh?}``

        Raises:
            InvalidRequestError: If the payload is malformed.
            SpatialStoreError: If the route search fails.
        """
        started = time.perf_counter()
        if not isinstance(payload, Mapping):
            raise InvalidRequestError("payload must be an object")
        if payload.get("origin") is None or payload.get("destination") is None:
            raise InvalidRequestError(
                "origin and destination required. "
                "Format: {origin:{lng,lat}, destination:{lng,lat}}",
                field_name="origin" if payload.get("origin") is None else "destination",
            )
        origin = parse_point(payload["origin"], "origin")
        destination = parse_point(payload["destination"], "destination")
        walk_kmh = parse_positive(payload, "walk_kmh")
        bus_kmh = parse_positive(payload, "bus_kmh")

        result = self.engine.search(
            origin,
            destination,
            threshold_m=parse_positive(payload, "threshold_m"),
            walk_kmh=walk_kmh,
            bus_kmh=bus_kmh,
        )
        reply: ChatReply = {"ok": True, "params": self._params(result, walk_kmh, bus_kmh)}
        reply.update(self._fastest(result))
        reply["meta"] = {"elapsed_ms": round((time.perf_counter() - started) * 1000)}
        return reply

    def list_unresolved(self, min_hits: int = 2) -> ChatReply:
        """Unresolved labels with at least ``min_hits`` failures."""
        entries = self.unresolved.list(min_hits=min_hits)
        return {
            "ok": True,
            "min_hits": min_hits,
            "count": len(entries),
            "data": [entry.as_dict() for entry in entries],
        }

    def health(self) -> ChatReply:
        """Readiness of the spatial store and component counts."""
        spatial: Mapping[str, object] = {}
        if self.spatial_store is not None:
            spatial = self.spatial_store.health()
        return {
            "ok": bool(spatial.get("ready", True)),
            "spatial": dict(spatial),
            "place_cache": self.place_cache.size() if self.place_cache else 0,
            "unresolved": self.unresolved.size(),
            "sessions": self.sessions.size(),
            "cost_model": self.engine.cost_model.name,
        }

    def _params(
        self,
        result: RouteSearchResult,
        walk_kmh: Optional[float],
        bus_kmh: Optional[float],
    ) -> Dict[str, Any]:
        return {
            "threshold_m_initial": result.threshold_initial,
            "threshold_m_used": result.threshold_used,
            "walk_kmh": self.routing.walk_kmh if walk_kmh is None else walk_kmh,
            "bus_kmh": self.routing.bus_kmh if bus_kmh is None else bus_kmh,
        }

    @staticmethod
    def _fastest(result: RouteSearchResult) -> Dict[str, Any]:
        results = [option.as_dict() for option in result.options]
        return {"results": results, "best": results[0] if results else None}
