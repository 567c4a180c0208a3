"""GeoJSON line catalog adapter.

Reads the transit line directions from a GeoJSON FeatureCollection.
Each feature is one line direction:

- geometry: LineString of [lng, lat] positions ordered in the direction
  of travel
- properties: line_direction_id, line_id, code, line_name, color_hex,
  direction ("outbound" | "inbound"), is_active, and optionally
  avg_speed_kmh and wait_minutes
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Mapping, Optional, Sequence

from ...config import SpatialConfig, get_config
from ...domain.errors import CatalogError
from ...domain.models import CandidateRoute

DIRECTIONS = ("outbound", "inbound")


@dataclass
class GeoJSONLineCatalog:
    """Line catalog implementing LineCatalogPort.

    The file is read once and cached; call ``clear_cache`` to reload.

    Attributes:
        config: Spatial configuration (catalog path)
    """

    config: SpatialConfig = field(default_factory=lambda: get_config().spatial)
    _logger: logging.Logger = field(init=False, repr=False)

    _routes: Optional[List[CandidateRoute]] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    @property
    def path(self) -> Path:
        return Path(self.config.catalog_path)

    def list_active_directions(self) -> Sequence[CandidateRoute]:
        """List active line directions.

        Returns:
            Candidate routes with their geometry.

        Raises:
            CatalogError: If the file is missing or malformed.
        """
        if self._routes is not None:
            return list(self._routes)

        self._logger.debug("Loading line catalog", extra={"path": str(self.path)})

        try:
            with self.path.open(encoding="utf-8") as f:
                collection = json.load(f)
        except (OSError, ValueError) as e:
            raise CatalogError(
                f"Failed to read line catalog: {e}",
                file_path=str(self.path),
                cause=e,
            )

        if not isinstance(collection, dict) or collection.get("type") != "FeatureCollection":
            raise CatalogError(
                "Line catalog is not a FeatureCollection", file_path=str(self.path)
            )

        routes: List[CandidateRoute] = []
        for index, feature in enumerate(collection.get("features") or []):
            properties = feature.get("properties") or {}
            if not properties.get("is_active", True):
                continue
            try:
                routes.append(self._to_route(feature, properties))
            except (KeyError, TypeError, ValueError) as e:
                raise CatalogError(
                    f"Invalid line feature #{index}: {e}",
                    file_path=str(self.path),
                    cause=e,
                )

        self._routes = routes
        self._logger.info(
            "Line catalog loaded",
            extra={"directions": len(routes), "path": str(self.path)},
        )
        return list(routes)

    @staticmethod
    def _to_route(feature: Mapping[str, Any], properties: Mapping[str, Any]) -> CandidateRoute:
        geometry = feature.get("geometry") or {}
        if geometry.get("type") != "LineString":
            raise ValueError("geometry must be a LineString")

        coordinates = tuple(
            (float(position[0]), float(position[1]))
            for position in geometry["coordinates"]
        )
        if len(coordinates) < 2:
            raise ValueError("LineString needs at least 2 positions")

        direction = str(properties["direction"])
        if direction not in DIRECTIONS:
            raise ValueError(f"unknown direction {direction!r}")

        avg_speed = properties.get("avg_speed_kmh")
        wait = properties.get("wait_minutes")
        return CandidateRoute(
            line_direction_id=int(properties.get("line_direction_id", feature.get("id"))),
            line_id=int(properties["line_id"]),
            code=str(properties["code"]),
            direction=direction,
            geometry=coordinates,
            line_name=str(properties.get("line_name", "")),
            color=str(properties.get("color_hex", "")),
            avg_speed_kmh=float(avg_speed) if avg_speed is not None else None,
            wait_minutes=float(wait) if wait is not None else None,
        )

    def clear_cache(self) -> None:
        self._routes = None
