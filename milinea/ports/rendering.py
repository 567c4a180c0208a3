"""Rendering port - Abstraction for route option maps.

This protocol defines the contract for map rendering, allowing
different implementations (Folium, ...) to be used.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Optional, Protocol, Sequence

if TYPE_CHECKING:
    from ..domain.models import ResolvedPlace, RouteOption


class MapRendererPort(Protocol):
    """Port for map rendering.

    Implementation: adapters/rendering/folium_adapter.py

    Map renderers draw the ranked options (walk legs and ride segment)
    between the resolved origin and destination.
    """

    def render(
        self,
        origin: ResolvedPlace,
        destination: ResolvedPlace,
        options: Sequence[RouteOption],
        output_path: Path,
        title: Optional[str] = None,
    ) -> Path:
        """Render the options on a map and save it to a file.

        Args:
            origin: Resolved trip origin.
            destination: Resolved trip destination.
            options: Ranked route options (best first).
            output_path: Where to save the rendered map.
            title: Optional map title.

        Returns:
            Path to the generated map file.
        """
        ...
