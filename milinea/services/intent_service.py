"""Trip intent service - dual extraction with explicit arbitration.

The pattern extractor always runs first (offline, cannot fail). When a
model-based extractor is configured it runs next, and ``arbitrate``
decides which of the two results the conversation uses. Every result is
tagged with ``used`` so replies can be traced back to their extractor.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Optional

from ..domain.errors import ExtractionError
from ..domain.models import TripIntent, TripIntentKind
from ..ports.nlp import TripExtractorPort


def arbitrate(pattern: TripIntent, external: TripIntent) -> TripIntent:
    """Combine the pattern and model results.

    Precedence:
    1. model route with at least one slot -> model result (``gemini``)
    2. pattern route with at least one slot -> pattern result
       (``fallback-after-gemini``), model output attached as ``raw``
    3. model smalltalk -> empty smalltalk result (``gemini``)
    4. otherwise -> empty ``unknown`` result (``none``)

    Args:
        pattern: Result of the deterministic extractor.
        external: Result of the model-based extractor.

    Returns:
        The arbitrated TripIntent.
    """
    if external.is_route:
        return replace(external, used="gemini")

    if pattern.is_route:
        return replace(pattern, used="fallback-after-gemini", raw=external.raw)

    if external.intent is TripIntentKind.SMALLTALK:
        return TripIntent(
            intent=TripIntentKind.SMALLTALK,
            language=external.language,
            source=external.source,
            used="gemini",
            model_used=external.model_used,
            raw=external.raw,
        )

    return TripIntent(
        intent=TripIntentKind.UNKNOWN,
        language=pattern.language,
        source="none",
        used="none",
        raw=external.raw,
    )


@dataclass
class TripIntentService:
    """Extract trip intent from rider messages.

    Attributes:
        pattern_extractor: Deterministic extractor (always available)
        model_extractor: Optional model-based extractor
    """

    pattern_extractor: TripExtractorPort
    model_extractor: Optional[TripExtractorPort] = None

    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    def extract(self, message: str) -> TripIntent:
        """Run both extractors and arbitrate.

        Args:
            message: The raw rider message.

        Returns:
            TripIntent tagged with ``used``.
        """
        pattern = self.pattern_extractor.extract(message)

        if self.model_extractor is None:
            result = replace(pattern, used="fallback-only")
            self._log_result(result)
            return result

        try:
            external = self.model_extractor.extract(message)
        except ExtractionError as e:
            self._logger.warning(
                "Model extraction failed, using pattern result",
                extra={"reason": e.reason, "model": e.model, "error": str(e)},
            )
            result = replace(pattern, used=f"fallback-error-{e.reason}", error=str(e))
            self._log_result(result)
            return result

        result = arbitrate(pattern, external)
        self._log_result(result)
        return result

    def _log_result(self, result: TripIntent) -> None:
        self._logger.debug(
            "Trip intent extracted",
            extra={
                "intent": result.intent.value,
                "used": result.used,
                "source": result.source,
                "has_origin": bool(result.origin_text),
                "has_destination": bool(result.destination_text),
            },
        )
