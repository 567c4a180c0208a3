"""ETA cost models for single-line trips.

Both models price the same three legs (walk to the line, ride, walk from
the line); they only differ in how the ride is priced.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Type

from ..domain.errors import ConfigurationError
from ..domain.models import CandidateMeasure


def kmh_to_m_per_min(kmh: float) -> float:
    return kmh * 1000.0 / 60.0


@dataclass(frozen=True)
class GlobalSpeedCostModel:
    """One walking speed and one bus speed for every line.

    eta = walk_to / walk_rate + ride / bus_rate + walk_from / walk_rate
    """

    name: str = "global_speed"

    def eta_minutes(
        self,
        measure: CandidateMeasure,
        walk_m_per_min: float,
        bus_m_per_min: float,
    ) -> Optional[float]:
        if measure.ride_m is None:
            return None
        return (
            measure.walk_to_m / walk_m_per_min
            + measure.ride_m / bus_m_per_min
            + measure.walk_from_m / walk_m_per_min
        )


@dataclass(frozen=True)
class PerLineSpeedCostModel:
    """Ride priced with each line's own average speed plus its wait time.

    Lines without ``avg_speed_kmh`` fall back to the global bus speed;
    a missing ``wait_minutes`` counts as 0.
    """

    name: str = "per_line_speed"

    def eta_minutes(
        self,
        measure: CandidateMeasure,
        walk_m_per_min: float,
        bus_m_per_min: float,
    ) -> Optional[float]:
        if measure.ride_m is None:
            return None

        route = measure.route
        ride_rate = bus_m_per_min
        if route.avg_speed_kmh is not None and route.avg_speed_kmh > 0:
            ride_rate = kmh_to_m_per_min(route.avg_speed_kmh)

        return (
            measure.walk_to_m / walk_m_per_min
            + measure.ride_m / ride_rate
            + measure.walk_from_m / walk_m_per_min
            + (route.wait_minutes or 0.0)
        )


COST_MODELS: Dict[str, Type] = {
    GlobalSpeedCostModel.name: GlobalSpeedCostModel,
    PerLineSpeedCostModel.name: PerLineSpeedCostModel,
}


def get_cost_model(name: str):
    """Instantiate a cost model by its configured name.

    Raises:
        ConfigurationError: If the name is unknown.
    """
    try:
        return COST_MODELS[name]()
    except KeyError:
        raise ConfigurationError(
            f"Unknown cost model: {name}", setting_name="MILINEA_ROUTING_COST_MODEL"
        )
