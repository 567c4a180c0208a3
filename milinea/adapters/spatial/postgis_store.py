"""PostGIS spatial store.

Runs the candidate query as one SQL statement per threshold. Expected
schema (EPSG:4326):

    lines(id, name, code, color_hex, is_active)
    line_routes(id, line_id -> lines.id, direction, geom LineString,
                avg_speed_kmh NULL, wait_minutes NULL)

Projection and substring use the planar geometry; distances and lengths
are computed on ``geography`` (meters).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Sequence

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from ...config import SpatialConfig, get_config
from ...domain.errors import ConfigurationError, SpatialStoreError
from ...domain.models import CandidateMeasure, CandidateRoute, Coordinates

CANDIDATES_SQL = text(
    """
    WITH
    params AS (
      SELECT
        ST_SetSRID(ST_MakePoint(:o_lng, :o_lat), 4326) AS o_geom,
        ST_SetSRID(ST_MakePoint(:d_lng, :d_lat), 4326) AS d_geom,
        CAST(:threshold_m AS double precision) AS threshold_m
    ),
    candidates AS (
      SELECT
        lr.id AS line_direction_id,
        l.id AS line_id,
        l.name AS line_name,
        l.code,
        l.color_hex,
        lr.direction,
        lr.avg_speed_kmh,
        lr.wait_minutes,
        lr.geom
      FROM line_routes lr
      JOIN lines l ON l.id = lr.line_id
      CROSS JOIN params p
      WHERE l.is_active
        AND ST_DWithin(lr.geom::geography, p.o_geom::geography, p.threshold_m)
        AND ST_DWithin(lr.geom::geography, p.d_geom::geography, p.threshold_m)
    ),
    measures AS (
      SELECT
        c.*,
        ST_LineLocatePoint(c.geom, p.o_geom) AS loc_o,
        ST_LineLocatePoint(c.geom, p.d_geom) AS loc_d,
        ST_ClosestPoint(c.geom, p.o_geom) AS snap_o,
        ST_ClosestPoint(c.geom, p.d_geom) AS snap_d
      FROM candidates c
      CROSS JOIN params p
    ),
    segments AS (
      SELECT
        m.*,
        CASE WHEN m.loc_o < m.loc_d
          THEN ST_LineSubstring(m.geom, m.loc_o, m.loc_d)
        END AS seg_geom
      FROM measures m
    )
    SELECT
      s.line_direction_id,
      s.line_id,
      s.line_name,
      s.code,
      s.color_hex,
      s.direction,
      s.avg_speed_kmh,
      s.wait_minutes,
      s.loc_o,
      s.loc_d,
      ST_X(s.snap_o) AS snap_o_lng,
      ST_Y(s.snap_o) AS snap_o_lat,
      ST_X(s.snap_d) AS snap_d_lng,
      ST_Y(s.snap_d) AS snap_d_lat,
      ST_Distance(s.snap_o::geography, p.o_geom::geography) AS walk_to_m,
      ST_Distance(s.snap_d::geography, p.d_geom::geography) AS walk_from_m,
      ST_Length(s.seg_geom::geography) AS ride_m,
      ST_AsGeoJSON(s.seg_geom)::json AS seg_geom_geojson
    FROM segments s
    CROSS JOIN params p
    """
)

HEALTH_SQL = text(
    "SELECT count(*) FROM line_routes lr JOIN lines l ON l.id = lr.line_id WHERE l.is_active"
)


@dataclass
class PostGISSpatialStore:
    """Spatial store implementing SpatialStorePort with PostGIS.

    The SQLAlchemy engine is created lazily from ``config.database_url``
    unless one is injected.

    Attributes:
        config: Spatial configuration (database URL)
        engine: Optional pre-built engine (tests, shared pools)
    """

    config: SpatialConfig = field(default_factory=lambda: get_config().spatial)
    engine: Optional[Engine] = None

    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    def _get_engine(self) -> Engine:
        if self.engine is None:
            if not self.config.database_url:
                raise ConfigurationError(
                    "PostGIS backend requires a database URL",
                    setting_name="MILINEA_SPATIAL_DATABASE_URL",
                )
            self.engine = create_engine(self.config.database_url, pool_pre_ping=True)
        return self.engine

    def find_candidates(
        self,
        origin: Coordinates,
        destination: Coordinates,
        threshold_m: float,
    ) -> Sequence[CandidateMeasure]:
        """Run the candidate query for one threshold.

        Raises:
            SpatialStoreError: If the database query fails.
        """
        params = {
            "o_lng": origin.lng,
            "o_lat": origin.lat,
            "d_lng": destination.lng,
            "d_lat": destination.lat,
            "threshold_m": threshold_m,
        }
        try:
            with self._get_engine().connect() as conn:
                rows = conn.execute(CANDIDATES_SQL, params).mappings().all()
        except SQLAlchemyError as e:
            self._logger.error(
                "Spatial query failed",
                extra={"threshold_m": threshold_m, "error": str(e)},
            )
            raise SpatialStoreError(
                "Spatial query failed", cause=e, threshold_m=threshold_m
            )

        measures = [self._to_measure(row) for row in rows]
        self._logger.debug(
            "Spatial candidates",
            extra={"threshold_m": threshold_m, "candidates": len(measures)},
        )
        return measures

    @staticmethod
    def _to_measure(row: Mapping[str, Any]) -> CandidateMeasure:
        route = CandidateRoute(
            line_direction_id=int(row["line_direction_id"]),
            line_id=int(row["line_id"]),
            code=str(row["code"]),
            direction=str(row["direction"]),
            line_name=row["line_name"] or "",
            color=row["color_hex"] or "",
            avg_speed_kmh=_optional_float(row["avg_speed_kmh"]),
            wait_minutes=_optional_float(row["wait_minutes"]),
        )
        return CandidateMeasure(
            route=route,
            loc_origin=float(row["loc_o"]),
            loc_destination=float(row["loc_d"]),
            snap_origin=Coordinates(lng=float(row["snap_o_lng"]), lat=float(row["snap_o_lat"])),
            snap_destination=Coordinates(
                lng=float(row["snap_d_lng"]), lat=float(row["snap_d_lat"])
            ),
            walk_to_m=float(row["walk_to_m"]),
            walk_from_m=float(row["walk_from_m"]),
            ride_m=_optional_float(row["ride_m"]),
            segment=row["seg_geom_geojson"],
        )

    def health(self) -> Mapping[str, object]:
        try:
            with self._get_engine().connect() as conn:
                directions = conn.execute(HEALTH_SQL).scalar_one()
        except (SQLAlchemyError, ConfigurationError) as e:
            return {"backend": "postgis", "ready": False, "error": str(e)}
        return {"backend": "postgis", "ready": True, "directions": int(directions)}


def _optional_float(value: Any) -> Optional[float]:
    return float(value) if value is not None else None
