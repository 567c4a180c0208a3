"""Folium map renderer adapter.

Draws the ranked route options of one search on an interactive HTML map:
- origin and destination markers
- the ride segment of each option, best option highlighted
- dashed walk legs to and from the line
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Mapping, Optional, Sequence

import folium

from ...domain.errors import RenderingError
from ...domain.models import ResolvedPlace, RouteOption

DEFAULT_LINE_COLOR = "#3388ff"


def _latlng_path(geometry: Optional[Mapping[str, Any]]) -> List[List[float]]:
    """GeoJSON LineString ([lng, lat]) to a folium path ([lat, lng])."""
    if not geometry or geometry.get("type") != "LineString":
        return []
    return [[lat, lng] for lng, lat in geometry.get("coordinates", [])]


def _color(option: RouteOption) -> str:
    color = option.route.color or DEFAULT_LINE_COLOR
    return color if color.startswith("#") else f"#{color}"


@dataclass
class FoliumMapRenderer:
    """Folium-based interactive map renderer.

    This adapter implements MapRendererPort using Folium for
    generating interactive HTML maps.

    Attributes:
        zoom_start: Initial zoom level
    """

    zoom_start: int = 14

    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    def render(
        self,
        origin: ResolvedPlace,
        destination: ResolvedPlace,
        options: Sequence[RouteOption],
        output_path: Path,
        title: Optional[str] = None,
    ) -> Path:
        """Render route options on a map and save to file.

        Args:
            origin: Resolved trip origin.
            destination: Resolved trip destination.
            options: Ranked options (best first); may be empty.
            output_path: Where to save the rendered map.
            title: Optional map title (shown as the origin popup header).

        Returns:
            Path to the generated map file.

        Raises:
            RenderingError: If rendering fails.
        """
        self._logger.info(
            "Rendering route options map",
            extra={"options": len(options), "output_path": str(output_path)},
        )

        try:
            center = [(origin.lat + destination.lat) / 2, (origin.lng + destination.lng) / 2]
            m = folium.Map(location=center, zoom_start=self.zoom_start)

            origin_popup = f"{title}<br>{origin.label}" if title else origin.label
            folium.Marker(
                location=[origin.lat, origin.lng],
                popup=origin_popup,
                tooltip="Origen",
                icon=folium.Icon(color="green"),
            ).add_to(m)
            folium.Marker(
                location=[destination.lat, destination.lng],
                popup=destination.label,
                tooltip="Destino",
                icon=folium.Icon(color="red"),
            ).add_to(m)

            # Draw worst first so the best option ends up on top.
            for rank, option in reversed(list(enumerate(options))):
                best = rank == 0
                tooltip = (
                    f"{option.route.code} ({option.route.headsign}) "
                    f"~{option.eta_minutes:.0f} min"
                )
                ride = _latlng_path(option.segment)
                if ride:
                    folium.PolyLine(
                        ride,
                        weight=6 if best else 3,
                        color=_color(option),
                        opacity=0.9 if best else 0.5,
                        tooltip=tooltip,
                    ).add_to(m)
                for walk in (option.walk_to, option.walk_from):
                    path = _latlng_path(walk)
                    if path:
                        folium.PolyLine(
                            path, weight=2, color="gray", dash_array="5, 8"
                        ).add_to(m)

            output_path.parent.mkdir(parents=True, exist_ok=True)
            m.save(str(output_path))

            self._logger.info(
                "Map rendered successfully",
                extra={"output_path": str(output_path)},
            )

            return output_path

        except Exception as e:
            self._logger.error(
                "Map rendering failed",
                extra={"error": str(e), "output_path": str(output_path)},
            )
            raise RenderingError(
                f"Map rendering failed: {e}",
                output_path=str(output_path),
                cause=e,
            )
