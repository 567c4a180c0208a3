"""Route matching engine - single-line trip search.

For an origin/destination pair the engine asks the spatial store for the
line directions passing near both points, keeps the ones whose ride goes
in the direction of travel, prices them with the configured cost model
and ranks them. When nothing is found at a small walking threshold, the
search is retried with wider thresholds.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from ..config import RoutingConfig, get_config
from ..domain.errors import InvalidRequestError
from ..domain.models import (
    CandidateMeasure,
    Coordinates,
    RouteOption,
    RouteSearchResult,
)
from ..ports.spatial import CostModelPort, SpatialStorePort
from .cost_models import get_cost_model, kmh_to_m_per_min

ESCALATION_LIMIT_M = 250.0
ESCALATION_STEP_M = 80.0
ESCALATION_FIXED_M = (300.0, 400.0)


def threshold_schedule(threshold_m: float) -> List[float]:
    """Thresholds to try, in order.

    >>> threshold_schedule(100)
    [100.0, 180.0, 300.0, 400.0]
    >>> threshold_schedule(250)
    [250.0]
    """
    base = float(threshold_m)
    if base < ESCALATION_LIMIT_M:
        return [base, base + ESCALATION_STEP_M, *ESCALATION_FIXED_M]
    return [base]


def point_geojson(point: Coordinates) -> Dict[str, Any]:
    return {"type": "Point", "coordinates": [point.lng, point.lat]}


def walk_geojson(start: Coordinates, end: Coordinates) -> Dict[str, Any]:
    return {
        "type": "LineString",
        "coordinates": [[start.lng, start.lat], [end.lng, end.lat]],
    }


def _positive(value: Any, field_name: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidRequestError(f"{field_name} must be a number", field_name=field_name)
    if not math.isfinite(number) or number <= 0:
        raise InvalidRequestError(f"{field_name} must be positive", field_name=field_name)
    return number


@dataclass
class RouteMatchingEngine:
    """Rank single-line trip options between two points.

    Attributes:
        spatial_store: Source of candidate measures
        config: Routing defaults (threshold, speeds, result cap)
        cost_model: ETA function; defaults to ``config.cost_model``
    """

    spatial_store: SpatialStorePort
    config: RoutingConfig = field(default_factory=lambda: get_config().routing)
    cost_model: Optional[CostModelPort] = None

    _logger: logging.Logger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._logger = logging.getLogger(__name__)
        if self.cost_model is None:
            self.cost_model = get_cost_model(self.config.cost_model)

    def search(
        self,
        origin: Coordinates,
        destination: Coordinates,
        threshold_m: Optional[float] = None,
        walk_kmh: Optional[float] = None,
        bus_kmh: Optional[float] = None,
    ) -> RouteSearchResult:
        """Search with threshold escalation.

        Args:
            origin: Trip origin.
            destination: Trip destination.
            threshold_m: Initial walking threshold (meters); config default.
            walk_kmh: Walking speed; config default.
            bus_kmh: Bus speed; config default.

        Returns:
            RouteSearchResult with at most ``max_results`` options, best first.

        Raises:
            InvalidRequestError: If a threshold or speed is not positive.
            SpatialStoreError: If the spatial store fails.
        """
        initial = _positive(
            self.config.threshold_m if threshold_m is None else threshold_m, "threshold_m"
        )
        walk_rate = kmh_to_m_per_min(
            _positive(self.config.walk_kmh if walk_kmh is None else walk_kmh, "walk_kmh")
        )
        bus_rate = kmh_to_m_per_min(
            _positive(self.config.bus_kmh if bus_kmh is None else bus_kmh, "bus_kmh")
        )

        schedule = threshold_schedule(initial)
        tried: List[float] = []
        options: List[RouteOption] = []

        for threshold in schedule:
            tried.append(threshold)
            measures = self.spatial_store.find_candidates(origin, destination, threshold)
            options = self.rank(origin, destination, measures, walk_rate, bus_rate)
            self._logger.debug(
                "Route search attempt",
                extra={"threshold_m": threshold, "options": len(options)},
            )
            if options:
                break

        result = RouteSearchResult(
            options=tuple(options),
            threshold_initial=initial,
            threshold_used=tried[-1],
            thresholds_tried=tuple(tried),
        )
        self._logger.info(
            "Route search done",
            extra={
                "options": len(result.options),
                "threshold_initial": initial,
                "threshold_used": result.threshold_used,
                "cost_model": self.cost_model.name,
            },
        )
        return result

    def rank(
        self,
        origin: Coordinates,
        destination: Coordinates,
        measures: Sequence[CandidateMeasure],
        walk_m_per_min: float,
        bus_m_per_min: float,
    ) -> List[RouteOption]:
        """Price forward candidates and keep the best ``max_results``.

        Candidates whose origin projects at or after the destination would
        ride against the line direction and are dropped.
        """
        options: List[RouteOption] = []
        for measure in measures:
            if not measure.is_forward or measure.ride_m is None:
                continue
            eta = self.cost_model.eta_minutes(measure, walk_m_per_min, bus_m_per_min)
            if eta is None:
                continue
            options.append(
                RouteOption(
                    route=measure.route,
                    ride_m=measure.ride_m,
                    walk_to_m=measure.walk_to_m,
                    walk_from_m=measure.walk_from_m,
                    eta_minutes=eta,
                    segment=measure.segment,
                    snap_origin=point_geojson(measure.snap_origin),
                    snap_destination=point_geojson(measure.snap_destination),
                    walk_to=walk_geojson(origin, measure.snap_origin),
                    walk_from=walk_geojson(measure.snap_destination, destination),
                )
            )

        options.sort(key=lambda option: option.rank_key)
        return options[: self.config.max_results]
