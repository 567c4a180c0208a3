"""Deterministic extraction of origin/destination from Spanish requests.

This module recognizes three sentence shapes that cover most rider
messages without any external call:

- "desde X a/hasta/hacia Y" (full trip);
- "ir/llegar/voy a X" and similar (destination only);
- "qué línea me lleva a X" (destination only).

It does not try to be exhaustive: anything else yields an ``unknown``
intent and is left to the model-based extractor.

Example
-------
    >>> extract_trip("desde la UMSS a la plaza principal")
    PatternMatch(origin_text='UMSS', destination_text='plaza principal', intent='route', source='fallback-pattern')
    >>> extract_trip("quiero ir a San Martín y Aroma").destination_text
    'San Martín y Aroma'
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from .text import clean_spaces, remove_leading_article, strip_outer_quotes

FULL_TRIP_RE = re.compile(r"\bdes(?:de)?\s+(.+?)\s+(?:a|hasta|hacia)\s+(.+)", re.IGNORECASE)
DESTINATION_ONLY_RE = re.compile(
    r"\b(?:ir|llegar|llevar|llego|voy|quiero ir|como llego|cómo llego)\s+(?:a|al|a la)\s+(.+)",
    re.IGNORECASE,
)
LINE_TO_RE = re.compile(
    r"\b(?:que|qué)\s+l[ií]nea\s+me\s+lleva\s+(?:a|al|a la)\s+(.+)",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class PatternMatch:
    """Result of the pattern-based extraction.

    Attributes
    ----------
    origin_text:
        Origin label, "" when the sentence only names a destination.
    destination_text:
        Destination label, "" when nothing matched.
    intent:
        "route" when a pattern matched, "unknown" otherwise.
    source:
        Which pattern matched (``fallback-pattern``,
        ``fallback-destination-only``, ``fallback-line-to``) or
        ``fallback-none``.
    """

    origin_text: str
    destination_text: str
    intent: str
    source: str


_EDGE_PUNCTUATION_RE = re.compile(r"^[¿¡\s]+|[?!.,;:\s]+$")


def _clean_slot(captured: str) -> str:
    cleaned = _EDGE_PUNCTUATION_RE.sub("", clean_spaces(captured))
    return remove_leading_article(strip_outer_quotes(cleaned))


def extract_trip(text: str) -> PatternMatch:
    """Extract origin/destination text from a rider message.

    Parameters
    ----------
    text : str
        The raw rider message.

    Returns
    -------
    PatternMatch
        The matched slots, or an ``unknown`` match with empty slots.
    """
    if not text or not text.strip():
        return PatternMatch("", "", "unknown", "fallback")

    match = FULL_TRIP_RE.search(text)
    if match:
        origin = _clean_slot(match.group(1))
        destination = _clean_slot(match.group(2))
        if origin and destination:
            return PatternMatch(origin, destination, "route", "fallback-pattern")

    match = DESTINATION_ONLY_RE.search(text)
    if match:
        return PatternMatch(
            "", _clean_slot(match.group(1)), "route", "fallback-destination-only"
        )

    match = LINE_TO_RE.search(text)
    if match:
        return PatternMatch("", _clean_slot(match.group(1)), "route", "fallback-line-to")

    return PatternMatch("", "", "unknown", "fallback-none")
