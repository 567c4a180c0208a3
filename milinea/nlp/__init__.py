"""Natural language helpers for trip requests.

This subpackage groups the offline pieces of message understanding:
label normalization/sanitizing and the deterministic Spanish trip
patterns used as a fallback extractor.
"""

from .text import normalize_label, sanitize_place_text
from .trip_patterns import PatternMatch, extract_trip

__all__ = [
    "normalize_label",
    "sanitize_place_text",
    "PatternMatch",
    "extract_trip",
]
