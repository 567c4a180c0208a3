"""Spanish reply texts for the conversation service."""

from __future__ import annotations

from typing import Sequence

from ..domain.models import RouteOption

SMALLTALK_REPLY = "Soy tu asistente de líneas. ¿A dónde quieres ir?"
NEEDS_DESTINATION_REPLY = '¿A dónde quieres ir? (ej: "UMSS", "San Martín y Aroma")'
NEEDS_BOTH_REPLY = "Necesito origen y destino para calcular."
NO_LINES_REPLY = "No encontré líneas cercanas para ese trayecto."
NO_ROUTES_REPLY = (
    "No encontré líneas cercanas para ese trayecto. "
    "Verifica que los puntos estén en la ciudad o da otra referencia."
)
GPS_LABEL = "Tu ubicación"
MAX_EXTRA_OPTIONS = 3


def _minutes(eta: float) -> str:
    return f"{eta:.0f}"


def format_lines_reply(options: Sequence[RouteOption]) -> str:
    """Summarize ranked options in one sentence.

    >>> format_lines_reply([])
    'No encontré líneas cercanas para ese trayecto.'
    """
    if not options:
        return NO_LINES_REPLY

    best = options[0]
    if len(options) == 1:
        return (
            f"Toma la línea {best.route.code} ({best.route.headsign}). "
            f"Tiempo estimado {_minutes(best.eta_minutes)} min."
        )

    extras = ", ".join(
        f"{option.route.code} {option.route.headsign} ~{_minutes(option.eta_minutes)}m"
        for option in options[1 : 1 + MAX_EXTRA_OPTIONS]
    )
    return (
        f"La más rápida: {best.route.code} ({best.route.headsign}) "
        f"~{_minutes(best.eta_minutes)} min. Otras: {extras}."
    )


def format_route_reply(options: Sequence[RouteOption]) -> str:
    """Reply for a completed search, with a hint when nothing was found."""
    if not options:
        return NO_ROUTES_REPLY
    return format_lines_reply(options)


def unresolved_destination_reply(destination_text: str) -> str:
    return (
        f"No pude ubicar “{destination_text}”. "
        "Dame otra referencia cercana o un cruce."
    )


def needs_origin_reply(destination_label: str) -> str:
    return (
        "Envíame tu ubicación actual para calcular la mejor línea hacia "
        f"{destination_label}."
    )
