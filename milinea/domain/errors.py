"""Typed domain errors for the trip resolution engine.

All errors inherit from MilineaError and can optionally wrap a root
cause exception for debugging. Resolution misses are not errors: they
are represented as ``None`` results and "needs" flags.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional


@dataclass
class MilineaError(Exception):
    """Base error for the trip resolution domain.

    Attributes:
        message: Human-readable error description
        cause: Optional underlying exception that caused this error
    """

    message: str
    cause: Optional[Exception] = field(default=None, repr=False)

    def __str__(self) -> str:
        if self.cause:
            return f"{self.message}: {self.cause}"
        return self.message

    def __post_init__(self) -> None:
        super().__init__(self.message)


@dataclass
class InvalidRequestError(MilineaError):
    """Inbound payload failed validation (rejected before side effects).

    Attributes:
        field_name: The offending field, if known
    """

    field_name: str = ""


@dataclass
class ExtractionError(MilineaError):
    """The model-based extractor failed.

    Attributes:
        reason: Short slug used in the ``fallback-error-<reason>`` tag
        model: The model that was being called
        status: HTTP status reported by the upstream, if any
    """

    reason: str = "unavailable"
    model: str = ""
    status: Optional[int] = None


@dataclass
class GeocodingError(MilineaError):
    """Failed to geocode a location.

    Attributes:
        query: The location query that failed
    """

    query: str = ""


@dataclass
class SpatialStoreError(MilineaError):
    """The spatial store query failed; fatal to the current request."""

    threshold_m: Optional[float] = None


@dataclass
class CatalogError(MilineaError):
    """Line catalog loading or data integrity error.

    Attributes:
        file_path: Path to the catalog file if relevant
    """

    file_path: Optional[str] = None


@dataclass
class ConfigurationError(MilineaError):
    """Invalid or missing configuration.

    Attributes:
        setting_name: Name of the problematic setting
    """

    setting_name: str = ""


@dataclass
class RenderingError(MilineaError):
    """Map rendering failed.

    Attributes:
        output_path: Path where rendering was attempted
    """

    output_path: Optional[str] = None
