"""Spatial ports - line catalog, spatial store and cost models.

The core never implements geometry itself: it consumes an atomic
candidate query from a spatial store, which in turn reads line
geometries from a read-only catalog.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Mapping, Optional, Protocol, Sequence

if TYPE_CHECKING:
    from ..domain.models import CandidateMeasure, CandidateRoute, Coordinates


class LineCatalogPort(Protocol):
    """Port for the read-only transit line catalog.

    Implementation: adapters/spatial/geojson_catalog.py (GeoJSONLineCatalog)
    """

    def list_active_directions(self) -> Sequence[CandidateRoute]:
        """List every active line direction with its geometry.

        Returns:
            Sequence of candidate routes.

        Raises:
            CatalogError: If the catalog cannot be read.
        """
        ...

    def clear_cache(self) -> None:
        """Forget any parsed catalog so the next listing reads the source."""
        ...


class SpatialStorePort(Protocol):
    """Port for the spatial candidate query.

    Implementations:
    - adapters/spatial/shapely_store.py (ShapelySpatialStore) - in memory
    - adapters/spatial/postgis_store.py (PostGISSpatialStore) - database

    The query is atomic: every returned row already carries its
    projected positions, snap points and real-world lengths.
    """

    def find_candidates(
        self,
        origin: Coordinates,
        destination: Coordinates,
        threshold_m: float,
    ) -> Sequence[CandidateMeasure]:
        """Find line directions within ``threshold_m`` of both points.

        Args:
            origin: Trip origin.
            destination: Trip destination.
            threshold_m: Maximum geodesic distance (meters) to each point.

        Returns:
            One measure per candidate, including backward ones.

        Raises:
            SpatialStoreError: If the query fails.
        """
        ...

    def health(self) -> Mapping[str, object]:
        """Report readiness details (for the health endpoint)."""
        ...


class CostModelPort(Protocol):
    """Port for ETA computation (pluggable cost function).

    Implementations: services/cost_models.py
    """

    name: str

    def eta_minutes(
        self,
        measure: CandidateMeasure,
        walk_m_per_min: float,
        bus_m_per_min: float,
    ) -> Optional[float]:
        """Estimate door-to-door minutes for a forward candidate.

        Returns:
            Minutes, or None if the measure has no ride segment.
        """
        ...
