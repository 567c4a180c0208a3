"""NLP adapters - Implementations of TripExtractorPort.

Available implementations:
- PatternTripExtractor: Deterministic Spanish patterns (offline)
- GeminiTripExtractor: Gemini JSON extraction (google-genai)
"""

from .gemini_extractor import GeminiTripExtractor
from .pattern_extractor import PatternTripExtractor

__all__ = ["GeminiTripExtractor", "PatternTripExtractor"]
