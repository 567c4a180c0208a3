"""Gemini trip extractor adapter.

Asks a Gemini model for a strict JSON description of the rider message.
The primary model is tried first; the next one is only tried when the
previous answered 404 (model not found). Every other failure aborts the
attempt with an ExtractionError whose ``reason`` feeds the
``fallback-error-<reason>`` tag.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

from google import genai
from google.genai import errors as genai_errors
from google.genai import types as genai_types

from ...config import ExtractionConfig, get_config
from ...domain.errors import ConfigurationError, ExtractionError
from ...domain.models import TripIntent, TripIntentKind

PROMPT_TEMPLATE = '''
Eres un asistente de movilidad urbana en Cochabamba.
Devuelve SOLO JSON con origen/destino si el usuario pide una ruta.

Formato JSON EXACTO:
{{
 "origin_text": "...",
 "destination_text": "...",
 "places_detected": ["..."],
 "intent": "route" | "smalltalk" | "unknown",
 "language": "es"
}}

Mensaje:
"""{message}"""
'''


def build_prompt(message: str) -> str:
    """Render the fixed extraction prompt for one message."""
    return PROMPT_TEMPLATE.format(message=message)


def parse_response(text: Optional[str]) -> Mapping[str, Any]:
    """Decode the model's JSON answer.

    Raises:
        ExtractionError: ``invalid-response`` if the text is not a JSON object.
    """
    try:
        payload = json.loads(text or "")
    except ValueError as e:
        raise ExtractionError(
            "Gemini returned non-JSON output", cause=e, reason="invalid-response"
        )
    if not isinstance(payload, dict):
        raise ExtractionError(
            "Gemini returned a non-object JSON value", reason="invalid-response"
        )
    return payload


def _text_field(payload: Mapping[str, Any], key: str) -> str:
    value = payload.get(key)
    return value.strip() if isinstance(value, str) else ""


@dataclass
class GeminiTripExtractor:
    """Model-based extractor implementing TripExtractorPort.

    The google-genai client is created lazily on first use.

    Attributes:
        config: Extraction configuration (key, model list, timeout)
    """

    config: ExtractionConfig = field(default_factory=lambda: get_config().extraction)

    _client: Optional[Any] = field(default=None, repr=False)
    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    def _get_client(self) -> Any:
        if self._client is None:
            if not self.config.enabled:
                raise ConfigurationError(
                    "Gemini extraction requires an API key",
                    setting_name="MILINEA_GEMINI_API_KEY",
                )
            self._client = genai.Client(
                api_key=self.config.api_key,
                http_options={"timeout": self.config.timeout_seconds * 1000},
            )
        return self._client

    def _call(self, model: str, message: str) -> TripIntent:
        response = self._get_client().models.generate_content(
            model=model,
            contents=build_prompt(message),
            config=genai_types.GenerateContentConfig(
                response_mime_type="application/json",
            ),
        )
        payload = parse_response(response.text)
        language = _text_field(payload, "language") or "es"
        return TripIntent(
            origin_text=_text_field(payload, "origin_text"),
            destination_text=_text_field(payload, "destination_text"),
            intent=TripIntentKind.parse(payload.get("intent", "unknown")),
            language=language,
            source="gemini",
            model_used=model,
            raw=dict(payload),
        )

    def extract(self, message: str) -> TripIntent:
        """Extract origin/destination with the configured models.

        Args:
            message: The raw rider message.

        Returns:
            TripIntent from the first model that answered.

        Raises:
            ExtractionError: On any failure, with ``reason`` set to
                ``not-found``, ``http-<status>``, ``invalid-response`` or
                ``unavailable``.
        """
        last_error: Optional[Exception] = None

        for model in self.config.models:
            try:
                result = self._call(model, message)
            except genai_errors.APIError as e:
                if e.code == 404:
                    self._logger.info(
                        "Gemini model not found, trying next",
                        extra={"model": model},
                    )
                    last_error = e
                    continue
                raise ExtractionError(
                    f"Gemini error {e.code}",
                    cause=e,
                    reason=f"http-{e.code}",
                    model=model,
                    status=e.code,
                )
            except ExtractionError as e:
                e.model = model
                raise
            except ConfigurationError:
                raise
            except Exception as e:
                raise ExtractionError(
                    "Gemini request failed", cause=e, reason="unavailable", model=model
                )

            self._logger.debug(
                "Gemini extraction",
                extra={"model": model, "intent": result.intent.value},
            )
            return result

        raise ExtractionError(
            "No Gemini model available",
            cause=last_error,
            reason="not-found",
            status=404,
        )
