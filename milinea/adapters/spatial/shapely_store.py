"""In-memory spatial store backed by shapely and geopy.

Line geometries come from the line catalog and are kept in lon/lat
(EPSG:4326). Projections and substrings are computed on the planar
geometry, exactly as a PostGIS ``geometry`` column would, while every
length reported in meters is geodesic (WGS84 ellipsoid).
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from geopy.distance import geodesic
from shapely.geometry import LineString, Point
from shapely.ops import substring

from ...domain.errors import CatalogError, SpatialStoreError
from ...domain.models import CandidateMeasure, CandidateRoute, Coordinates
from ...ports.spatial import LineCatalogPort


def geodesic_m(a: Coordinates, b: Coordinates) -> float:
    """Geodesic distance in meters between two lon/lat points."""
    return geodesic((a.lat, a.lng), (b.lat, b.lng)).meters


def line_length_m(coords: Sequence[Tuple[float, float]]) -> float:
    """Geodesic length in meters of a lon/lat polyline."""
    total = 0.0
    for (lng1, lat1), (lng2, lat2) in zip(coords, coords[1:]):
        total += geodesic((lat1, lng1), (lat2, lng2)).meters
    return total


def line_geojson(line: LineString) -> Dict[str, Any]:
    return {
        "type": "LineString",
        "coordinates": [[x, y] for x, y in line.coords],
    }


@dataclass
class ShapelySpatialStore:
    """Spatial store implementing SpatialStorePort over a line catalog.

    Attributes:
        catalog: Source of the active line directions
    """

    catalog: LineCatalogPort

    _lines: Optional[List[Tuple[CandidateRoute, LineString]]] = field(
        default=None, repr=False
    )
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    def _load_lines(self) -> List[Tuple[CandidateRoute, LineString]]:
        with self._lock:
            if self._lines is None:
                routes = self.catalog.list_active_directions()
                self._lines = [(route, LineString(route.geometry)) for route in routes]
            return self._lines

    def find_candidates(
        self,
        origin: Coordinates,
        destination: Coordinates,
        threshold_m: float,
    ) -> Sequence[CandidateMeasure]:
        """Measure every line direction within ``threshold_m`` of both points.

        Args:
            origin: Trip origin.
            destination: Trip destination.
            threshold_m: Maximum walking distance to the line, in meters.

        Returns:
            One measure per candidate, backward ones included.

        Raises:
            SpatialStoreError: If the catalog cannot be loaded.
        """
        try:
            lines = self._load_lines()
        except CatalogError as e:
            raise SpatialStoreError(
                "Line catalog unavailable", cause=e, threshold_m=threshold_m
            )

        o_point = Point(origin.lng, origin.lat)
        d_point = Point(destination.lng, destination.lat)
        measures: List[CandidateMeasure] = []

        for route, line in lines:
            loc_o = line.project(o_point, normalized=True)
            snap_o = self._snap(line, loc_o)
            walk_to_m = geodesic_m(origin, snap_o)
            if walk_to_m > threshold_m:
                continue

            loc_d = line.project(d_point, normalized=True)
            snap_d = self._snap(line, loc_d)
            walk_from_m = geodesic_m(snap_d, destination)
            if walk_from_m > threshold_m:
                continue

            ride_m: Optional[float] = None
            segment: Optional[Dict[str, Any]] = None
            if loc_o < loc_d:
                seg = substring(line, loc_o, loc_d, normalized=True)
                segment = line_geojson(seg)
                ride_m = line_length_m(list(seg.coords))

            measures.append(
                CandidateMeasure(
                    route=route,
                    loc_origin=loc_o,
                    loc_destination=loc_d,
                    snap_origin=snap_o,
                    snap_destination=snap_d,
                    walk_to_m=walk_to_m,
                    walk_from_m=walk_from_m,
                    ride_m=ride_m,
                    segment=segment,
                )
            )

        self._logger.debug(
            "Spatial candidates",
            extra={"threshold_m": threshold_m, "candidates": len(measures)},
        )
        return measures

    @staticmethod
    def _snap(line: LineString, loc: float) -> Coordinates:
        point = line.interpolate(loc, normalized=True)
        return Coordinates(lng=point.x, lat=point.y)

    def health(self) -> Mapping[str, object]:
        try:
            directions = len(self._load_lines())
        except CatalogError as e:
            return {"backend": "memory", "ready": False, "error": str(e)}
        return {"backend": "memory", "ready": True, "directions": directions}

    def reload(self) -> None:
        """Drop the cached geometries; the next query reads the catalog again."""
        with self._lock:
            self.catalog.clear_cache()
            self._lines = None
