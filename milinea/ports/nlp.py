"""NLP port - Abstraction for trip intent extraction.

Both the deterministic pattern extractor and the model-based extractor
implement this protocol and return the same result shape, so they can
be tested independently and combined by an explicit precedence
function (see services/intent_service.py).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from ..domain.models import TripIntent


class TripExtractorPort(Protocol):
    """Port for origin/destination extraction from a rider message.

    Implementations:
    - adapters/nlp/pattern_extractor.py (PatternTripExtractor) - offline
    - adapters/nlp/gemini_extractor.py (GeminiTripExtractor) - model-based
    """

    def extract(self, message: str) -> TripIntent:
        """Extract origin/destination text and intent.

        Args:
            message: The raw rider message.

        Returns:
            TripIntent with slots and the detected intent.

        Raises:
            ExtractionError: If a model-based extractor fails.
        """
        ...
