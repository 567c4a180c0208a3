"""Tests for label normalization and the Spanish trip patterns."""

import pytest

from milinea.adapters.nlp import PatternTripExtractor
from milinea.domain.models import TripIntentKind
from milinea.nlp import extract_trip, normalize_label, sanitize_place_text


@pytest.mark.parametrize(
    "label",
    ["  Plaza   Colón ", "UMSS", "San Martín y Aroma", "\tla  CANCHA\n", ""],
)
def test_normalize_label_is_idempotent(label):
    once = normalize_label(label)
    assert normalize_label(once) == once


def test_normalize_label_collapses_case_and_spaces():
    assert normalize_label("  Plaza   Colón ") == "plaza colón"


@pytest.mark.parametrize(
    "text, expected",
    [
        ("De la Cancha", "cancha"),
        ("la UMSS", "umss"),
        ("Plaza Colón", "plaza colón"),
        ("", ""),
    ],
)
def test_sanitize_place_text(text, expected):
    assert sanitize_place_text(text) == expected


@pytest.mark.parametrize(
    "message, origin, destination, source",
    [
        ("desde la UMSS a la plaza principal", "UMSS", "plaza principal", "fallback-pattern"),
        ("Desde Plaza Colón hasta el Cristo", "Plaza Colón", "Cristo", "fallback-pattern"),
        ("des UMSS hacia la Cancha", "UMSS", "Cancha", "fallback-pattern"),
        ("quiero ir a San Martín y Aroma", "", "San Martín y Aroma", "fallback-destination-only"),
        ('voy a "Plaza 14 de Septiembre"', "", "Plaza 14 de Septiembre", "fallback-destination-only"),
        ("¿Qué línea me lleva a la Cancha?", "", "Cancha", "fallback-line-to"),
        ("que linea me lleva al Prado", "", "Prado", "fallback-line-to"),
    ],
)
def test_extract_trip_routes(message, origin, destination, source):
    match = extract_trip(message)
    assert match.intent == "route"
    assert match.origin_text == origin
    assert match.destination_text == destination
    assert match.source == source


@pytest.mark.parametrize("message", ["hola, buenos días", "gracias"])
def test_extract_trip_no_match(message):
    match = extract_trip(message)
    assert match.intent == "unknown"
    assert match.source == "fallback-none"
    assert match.origin_text == match.destination_text == ""


def test_extract_trip_empty_message():
    match = extract_trip("   ")
    assert match.intent == "unknown"
    assert match.destination_text == ""


class TestPatternTripExtractor:
    """Test suite for PatternTripExtractor."""

    def test_full_trip(self):
        result = PatternTripExtractor().extract("desde la UMSS a la plaza principal")
        assert result.intent is TripIntentKind.ROUTE
        assert result.is_route
        assert result.origin_text == "UMSS"
        assert result.destination_text == "plaza principal"
        assert result.source == "fallback-pattern"
        assert result.language == "es"

    def test_unknown_message_has_no_slots(self):
        result = PatternTripExtractor().extract("hola")
        assert result.intent is TripIntentKind.UNKNOWN
        assert not result.has_slots
