"""Pattern-based trip extractor adapter.

Wraps the deterministic Spanish patterns from nlp/trip_patterns.py with
the TripExtractorPort interface. It never calls out of process and
never fails, which makes it the baseline every request gets.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ...domain.models import TripIntent, TripIntentKind
from ...nlp.trip_patterns import extract_trip


@dataclass
class PatternTripExtractor:
    """Offline extractor implementing TripExtractorPort.

    Attributes:
        default_language: Language reported for every pattern result
    """

    default_language: str = "es"

    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    def extract(self, message: str) -> TripIntent:
        """Extract origin/destination using the fixed patterns.

        Args:
            message: The raw rider message.

        Returns:
            TripIntent whose ``source`` names the pattern that matched.
        """
        match = extract_trip(message)
        result = TripIntent(
            origin_text=match.origin_text,
            destination_text=match.destination_text,
            intent=TripIntentKind.parse(match.intent),
            language=self.default_language,
            source=match.source,
        )

        self._logger.debug(
            "Pattern extraction",
            extra={
                "source": result.source,
                "intent": result.intent.value,
                "has_origin": bool(result.origin_text),
                "has_destination": bool(result.destination_text),
            },
        )
        return result
