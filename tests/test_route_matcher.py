"""Tests for the cost models and the route matching engine."""

import pytest

from milinea.config import RoutingConfig
from milinea.domain.errors import ConfigurationError, InvalidRequestError
from milinea.domain.models import Coordinates
from milinea.services import (
    GlobalSpeedCostModel,
    PerLineSpeedCostModel,
    RouteMatchingEngine,
    get_cost_model,
    threshold_schedule,
)
from milinea.services.cost_models import kmh_to_m_per_min

from conftest import FakeSpatialStore

ORIGIN = Coordinates(lng=-66.17, lat=-17.3905)
DESTINATION = Coordinates(lng=-66.15, lat=-17.3905)
WALK = kmh_to_m_per_min(4.8)  # 80 m/min
BUS = kmh_to_m_per_min(18)  # 300 m/min


class TestCostModels:
    """Test suite for the ETA cost models."""

    def test_speed_conversion(self):
        assert WALK == pytest.approx(80.0)
        assert BUS == pytest.approx(300.0)

    def test_global_speed(self, make_measure):
        measure = make_measure(walk_to=80, ride=3000, walk_from=160)
        eta = GlobalSpeedCostModel().eta_minutes(measure, WALK, BUS)
        assert eta == pytest.approx(13.0)

    def test_per_line_speed_uses_line_speed_and_wait(self, make_measure):
        measure = make_measure(
            walk_to=80, ride=3000, walk_from=160, avg_speed_kmh=24, wait_minutes=4
        )
        eta = PerLineSpeedCostModel().eta_minutes(measure, WALK, BUS)
        assert eta == pytest.approx(1 + 7.5 + 2 + 4)

    @pytest.mark.parametrize("avg_speed_kmh", [None, 0])
    def test_per_line_speed_falls_back_to_global_speed(self, make_measure, avg_speed_kmh):
        measure = make_measure(walk_to=80, ride=3000, walk_from=160, avg_speed_kmh=avg_speed_kmh)
        eta = PerLineSpeedCostModel().eta_minutes(measure, WALK, BUS)
        assert eta == pytest.approx(13.0)

    @pytest.mark.parametrize("model", [GlobalSpeedCostModel(), PerLineSpeedCostModel()])
    def test_backward_candidate_has_no_eta(self, make_measure, model):
        measure = make_measure(loc_o=0.8, loc_d=0.2)
        assert model.eta_minutes(measure, WALK, BUS) is None

    def test_get_cost_model(self):
        assert get_cost_model("global_speed").name == "global_speed"
        assert get_cost_model("per_line_speed").name == "per_line_speed"
        with pytest.raises(ConfigurationError):
            get_cost_model("teleport")


@pytest.mark.parametrize(
    "threshold, expected",
    [
        (100, [100.0, 180.0, 300.0, 400.0]),
        (50, [50.0, 130.0, 300.0, 400.0]),
        (249, [249.0, 329.0, 300.0, 400.0]),
        (250, [250.0]),
        (500, [500.0]),
    ],
)
def test_threshold_schedule(threshold, expected):
    assert threshold_schedule(threshold) == expected


class TestRouteMatchingEngine:
    """Test suite for RouteMatchingEngine."""

    @pytest.fixture
    def config(self):
        return RoutingConfig(
            threshold_m=100, walk_kmh=4.8, bus_kmh=18, max_results=5, cost_model="global_speed"
        )

    def test_backward_rides_are_dropped(self, config, make_measure):
        store = FakeSpatialStore(
            default=[
                make_measure(direction="inbound", loc_o=0.8, loc_d=0.2, line_direction_id=2),
                make_measure(direction="outbound", line_direction_id=1),
            ]
        )
        result = RouteMatchingEngine(store, config).search(ORIGIN, DESTINATION)

        assert [o.route.direction for o in result.options] == ["outbound"]
        assert result.threshold_used == 100.0
        assert store.calls == [100.0]

    def test_ranking_by_eta_then_walk_then_ride(self, config, make_measure):
        slow = make_measure(code="slow", ride=6000, line_direction_id=1)
        fast = make_measure(code="fast", ride=1500, line_direction_id=2)
        # Same ETA as ``fast``: 40 + 110 m walk vs 80 + 160 m with the longer ride.
        walk_light = make_measure(
            code="walk-light", walk_to=40, walk_from=110, ride=1500 + 90 * 300 / 80, line_direction_id=3
        )
        store = FakeSpatialStore(default=[slow, fast, walk_light])

        options = RouteMatchingEngine(store, config).search(ORIGIN, DESTINATION).options

        assert [o.route.code for o in options] == ["walk-light", "fast", "slow"]
        assert options[0].eta_minutes == pytest.approx(options[1].eta_minutes)

    def test_results_are_capped(self, config, make_measure):
        measures = [
            make_measure(code=str(i), ride=1000 + 100 * i, line_direction_id=i) for i in range(8)
        ]
        store = FakeSpatialStore(default=list(reversed(measures)))

        options = RouteMatchingEngine(store, config).search(ORIGIN, DESTINATION).options

        assert [o.route.code for o in options] == ["0", "1", "2", "3", "4"]

    def test_escalation_stops_at_first_hit(self, config, make_measure):
        store = FakeSpatialStore({300.0: [make_measure()]})

        result = RouteMatchingEngine(store, config).search(ORIGIN, DESTINATION)

        assert store.calls == [100.0, 180.0, 300.0]
        assert result.threshold_initial == 100.0
        assert result.threshold_used == 300.0
        assert len(result.options) == 1

    def test_backward_only_counts_as_empty(self, config, make_measure):
        store = FakeSpatialStore(
            {100.0: [make_measure(loc_o=0.9, loc_d=0.1)], 180.0: [make_measure()]}
        )
        result = RouteMatchingEngine(store, config).search(ORIGIN, DESTINATION)
        assert result.threshold_used == 180.0

    def test_nothing_found_reports_last_threshold(self, config):
        store = FakeSpatialStore()
        result = RouteMatchingEngine(store, config).search(ORIGIN, DESTINATION)

        assert result.is_empty
        assert result.best is None
        assert result.thresholds_tried == (100.0, 180.0, 300.0, 400.0)
        assert result.threshold_used == 400.0

    def test_large_threshold_is_tried_once(self, config):
        store = FakeSpatialStore()
        result = RouteMatchingEngine(store, config).search(ORIGIN, DESTINATION, threshold_m=250)
        assert store.calls == [250.0]
        assert result.threshold_used == 250.0

    def test_option_geometry(self, config, make_measure):
        store = FakeSpatialStore(default=[make_measure()])
        option = RouteMatchingEngine(store, config).search(ORIGIN, DESTINATION).best

        assert option.snap_origin == {"type": "Point", "coordinates": [-66.17, -17.39]}
        assert option.walk_to["coordinates"] == [[ORIGIN.lng, ORIGIN.lat], [-66.17, -17.39]]
        assert option.walk_from["coordinates"] == [[-66.15, -17.39], [DESTINATION.lng, DESTINATION.lat]]
        data = option.as_dict()
        assert data["headsign"] == "Ida"
        assert data["seg_geom_geojson"]["type"] == "LineString"

    def test_speed_overrides(self, config, make_measure):
        store = FakeSpatialStore(default=[make_measure(walk_to=0, walk_from=0, ride=3000)])
        engine = RouteMatchingEngine(store, config)

        default_eta = engine.search(ORIGIN, DESTINATION).best.eta_minutes
        faster_eta = engine.search(ORIGIN, DESTINATION, bus_kmh=36).best.eta_minutes

        assert default_eta == pytest.approx(10.0)
        assert faster_eta == pytest.approx(5.0)

    def test_configured_cost_model(self, make_measure):
        config = RoutingConfig(cost_model="per_line_speed")
        engine = RouteMatchingEngine(FakeSpatialStore(), config)
        assert engine.cost_model.name == "per_line_speed"

    @pytest.mark.parametrize(
        "overrides",
        [{"threshold_m": 0}, {"threshold_m": -10}, {"walk_kmh": 0}, {"bus_kmh": float("nan")}],
    )
    def test_non_positive_parameters_are_rejected(self, config, overrides):
        store = FakeSpatialStore()
        with pytest.raises(InvalidRequestError):
            RouteMatchingEngine(store, config).search(ORIGIN, DESTINATION, **overrides)
        assert store.calls == []

    def test_end_to_end_escalation_with_shapely(self, spatial_store, config):
        # ~150 m from line 230: found at 180 m, not at 100 m.
        origin = Coordinates(lng=-66.17, lat=-17.39136)
        result = RouteMatchingEngine(spatial_store, config).search(origin, DESTINATION)

        assert result.thresholds_tried == (100.0, 180.0)
        assert result.best.route.code == "230"
        assert result.best.route.direction == "outbound"
        assert 140 < result.best.walk_to_m < 160
