"""End-to-end conversation tests over the test line catalog."""

from unittest.mock import MagicMock

import pytest

from milinea.domain.errors import InvalidRequestError
from milinea.domain.models import GeocodeHit, TripIntent, TripIntentKind
from milinea.services import reply_formatter as replies
from milinea.services.chat_service import new_session_id, parse_point, parse_trip_request

GPS_NEAR_UMSS = {"lng": -66.17, "lat": -17.3905}


class TestConversationService:
    """Test suite for ConversationService.handle."""

    def test_full_trip_in_one_message(self, service, place_cache):
        reply = service.handle({"message": "desde la UMSS a la plaza principal"})

        assert reply["ok"] is True
        assert reply["session_id"].startswith("s_")
        assert reply["intent"]["used"] == "fallback-only"
        assert reply["intent"]["source"] == "fallback-pattern"
        assert reply["origin"]["label"] == "UMSS"
        assert reply["origin"]["source"] == "geocode"
        assert reply["destination"]["label"] == "plaza principal"
        assert reply["params"] == {
            "threshold_m_initial": 100.0,
            "threshold_m_used": 100.0,
            "walk_kmh": 4.8,
            "bus_kmh": 18.0,
        }
        best = reply["fastest"]["best"]
        assert best["code"] == "230"
        assert best["direction"] == "outbound"
        assert reply["fastest"]["results"][0] == best
        assert reply["reply"].startswith("Toma la línea 230 (Ida).")
        assert reply["meta"]["elapsed_ms"] >= 0
        assert place_cache.get("umss") is not None

    def test_second_request_hits_the_cache(self, service, geocoder):
        service.handle({"message": "desde la UMSS a la plaza principal"})
        calls = len(geocoder.calls)

        reply = service.handle({"message": "desde la UMSS a la plaza principal"})

        assert reply["origin"]["source"] == "cache"
        assert reply["destination"]["source"] == "cache"
        assert len(geocoder.calls) == calls

    def test_destination_then_gps_origin(self, service):
        first = service.handle({"message": "quiero ir a la plaza principal"})

        assert first["needs"] == {"origin": True}
        assert first["destination"]["label"] == "plaza principal"
        assert first["reply"] == replies.needs_origin_reply("plaza principal")
        assert "fastest" not in first

        second = service.handle(
            {"message": "estoy aquí", "session_id": first["session_id"], "origin": GPS_NEAR_UMSS}
        )

        assert second["session_id"] == first["session_id"]
        assert second["origin"]["source"] == "gps"
        assert second["origin"]["label"] == "Tu ubicación"
        assert second["destination"]["label"] == "plaza principal"
        assert second["fastest"]["best"]["code"] == "230"

    def test_unresolvable_destination(self, service, unresolved, geocoder, city):
        reply = service.handle({"message": "quiero ir a Narnia"})

        assert reply["needs"] == {"destination": True}
        assert reply["reply"] == replies.unresolved_destination_reply("Narnia")
        assert unresolved.get("narnia").hits == 1
        assert geocoder.calls == ["Narnia", f"narnia {city.context}"]

        listing = service.list_unresolved(min_hits=1)
        assert listing["count"] == 1
        assert listing["data"][0]["key"] == "narnia"
        assert service.list_unresolved()["count"] == 0

    def test_unresolved_origin_is_registered(self, service, unresolved):
        reply = service.handle({"message": "desde Narnia a la plaza principal"})

        assert reply["needs"] == {"origin": True}
        assert unresolved.get("narnia").hits == 1

    def test_no_destination_yet(self, service):
        reply = service.handle({"message": "hola"})
        assert reply["needs"] == {"destination": True}
        assert reply["reply"] == replies.NEEDS_DESTINATION_REPLY

    def test_gps_outside_city_is_ignored(self, service):
        reply = service.handle(
            {"message": "quiero ir a la plaza principal", "origin": {"lng": 2.35, "lat": 48.85}}
        )
        assert reply["needs"] == {"origin": True}

    def test_client_session_id_is_kept(self, service):
        reply = service.handle({"message": "hola", "session_id": "s_mine"})
        assert reply["session_id"] == "s_mine"
        assert service.sessions.get("s_mine") is not None

    def test_smalltalk(self, make_service):
        model = MagicMock()
        model.extract.return_value = TripIntent(
            intent=TripIntentKind.SMALLTALK, source="gemini", model_used="primary", raw={}
        )
        reply = make_service(model_extractor=model).handle({"message": "hola, ¿qué tal?"})

        assert reply["reply"] == replies.SMALLTALK_REPLY
        assert reply["intent"]["used"] == "gemini"
        assert "needs" not in reply

    def test_no_lines_found(self, service, geocoder):
        geocoder.hits["cristo"] = GeocodeHit(lng=-66.13, lat=-17.38)

        reply = service.handle({"message": "desde la UMSS hasta el Cristo"})

        assert reply["fastest"] == {"results": [], "best": None}
        assert reply["params"]["threshold_m_used"] == 400.0
        assert reply["reply"] == replies.NO_ROUTES_REPLY

    def test_request_overrides(self, service):
        reply = service.handle(
            {
                "message": "desde la UMSS a la plaza principal",
                "threshold_m": 300,
                "walk_kmh": 5,
                "bus_kmh": 20,
            }
        )
        assert reply["params"] == {
            "threshold_m_initial": 300.0,
            "threshold_m_used": 300.0,
            "walk_kmh": 5.0,
            "bus_kmh": 20.0,
        }

    @pytest.mark.parametrize(
        "payload",
        [
            None,
            [],
            {},
            {"message": "   "},
            {"message": 42},
            {"message": "hola", "origin": {"lng": "abc", "lat": -17.39}},
            {"message": "hola", "origin": {"lng": -66.15}},
            {"message": "hola", "origin": {"lng": True, "lat": -17.39}},
            {"message": "hola", "origin": {"lng": -200, "lat": -17.39}},
            {"message": "hola", "origin": [-66.15, -17.39]},
            {"message": "hola", "threshold_m": -5},
            {"message": "hola", "walk_kmh": 0},
            {"message": "hola", "bus_kmh": "fast"},
        ],
    )
    def test_invalid_payload_has_no_side_effect(self, service, payload):
        with pytest.raises(InvalidRequestError):
            service.handle(payload)
        assert service.sessions.size() == 0

    def test_message_required_text(self, service):
        with pytest.raises(InvalidRequestError) as exc_info:
            service.handle({"origin": GPS_NEAR_UMSS})
        assert exc_info.value.message == "message requerido"


class TestFastest:
    """Test suite for ConversationService.fastest."""

    def test_direct_search(self, service):
        reply = service.fastest(
            {
                "origin": {"lng": -66.17, "lat": -17.3905},
                "destination": {"lng": -66.15, "lat": -17.3905},
            }
        )
        assert reply["ok"] is True
        assert reply["best"]["code"] == "230"
        assert len(reply["results"]) == 1
        assert reply["params"]["threshold_m_used"] == 100.0
        assert "elapsed_ms" in reply["meta"]

    @pytest.mark.parametrize(
        "payload",
        [
            {"origin": {"lng": -66.17, "lat": -17.39}},
            {"destination": {"lng": -66.17, "lat": -17.39}},
            {"origin": {"lng": -66.17, "lat": -17.39}, "destination": {"lng": "x", "lat": 1}},
            "not an object",
        ],
    )
    def test_invalid(self, service, payload):
        with pytest.raises(InvalidRequestError):
            service.fastest(payload)


def test_health(service):
    report = service.health()
    assert report["ok"] is True
    assert report["spatial"] == {"backend": "memory", "ready": True, "directions": 3}
    assert report["cost_model"] == "global_speed"
    assert report["sessions"] == 0


def test_new_session_id_format():
    first, second = new_session_id(), new_session_id()
    assert first.startswith("s_")
    assert first != second


def test_parse_point_accepts_numeric_strings():
    point = parse_point({"lng": "-66.15", "lat": "-17.39"}, "origin")
    assert (point.lng, point.lat) == (-66.15, -17.39)


def test_parse_trip_request_defaults():
    request = parse_trip_request({"message": "hola", "session_id": "  s_abc  ", "bus_kmh": 20})
    assert request.message == "hola"
    assert request.session_id == "s_abc"
    assert request.origin_hint is None
    assert request.threshold_m is None
    assert request.bus_kmh == 20.0
