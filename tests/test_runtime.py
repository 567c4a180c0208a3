"""Tests for logging setup, the container lifecycle, the CLI and map rendering."""

import json
import logging

import pytest

from milinea import cli
from milinea.adapters.cache import JsonPlaceCache
from milinea.adapters.geocoding import NominatimGeocoderAdapter
from milinea.adapters.rendering import FoliumMapRenderer
from milinea.adapters.spatial import ShapelySpatialStore
from milinea.config import (
    AppConfig,
    ExtractionConfig,
    GeocodingConfig,
    ObservabilityConfig,
    SpatialConfig,
    StorageConfig,
)
from milinea.container import Container
from milinea.domain.errors import RenderingError
from milinea.domain.models import Coordinates, PlaceSource, ResolvedPlace
from milinea.logging_setup import JsonFormatter, build_logging_config
from milinea.ports.cache import PlaceCachePort, UnresolvedTermsPort
from milinea.ports.geocoding import GeocoderPort
from milinea.ports.rendering import MapRendererPort
from milinea.ports.sessions import SessionStorePort
from milinea.ports.spatial import SpatialStorePort
from milinea.services import ConversationService, RouteMatchingEngine

from test_api import build_container


class TestLogging:
    """Test suite for the logging configuration."""

    def test_json_formatter_includes_extra(self):
        logger = logging.getLogger("milinea.test")
        record = logger.makeRecord(
            "milinea.test", logging.INFO, __file__, 1, "Route search done", (), None,
            extra={"options": 2, "threshold_used": 180.0},
        )
        payload = json.loads(JsonFormatter().format(record))
        assert payload["message"] == "Route search done"
        assert payload["level"] == "INFO"
        assert payload["options"] == 2
        assert payload["threshold_used"] == 180.0
        assert "lineno" not in payload

    def test_build_logging_config(self):
        plain = build_logging_config(ObservabilityConfig(level="debug", structured=False))
        assert plain["root"]["level"] == "DEBUG"
        assert "format" in plain["formatters"]["default"]

        structured = build_logging_config(ObservabilityConfig(structured=True))
        assert structured["formatters"]["default"]["()"] is JsonFormatter


@pytest.fixture
def app_config(tmp_path, catalog_path):
    return AppConfig(
        storage=StorageConfig(var_dir=tmp_path / "var"),
        spatial=SpatialConfig(backend="memory", catalog_path=catalog_path),
        geocoding=GeocodingConfig(mapbox_token=""),
        extraction=ExtractionConfig(api_key=""),
    )


class TestContainer:
    """Test suite for the default container wiring and maintenance."""

    def test_default_bindings(self, app_config):
        container = Container.create_default(app_config)

        assert isinstance(container.resolve(GeocoderPort), NominatimGeocoderAdapter)
        assert isinstance(container.resolve(SpatialStorePort), ShapelySpatialStore)
        assert isinstance(container.resolve(PlaceCachePort), JsonPlaceCache)
        assert isinstance(container.resolve(MapRendererPort), FoliumMapRenderer)
        service = container.resolve(ConversationService)
        assert service is container.resolve(ConversationService)
        assert service.intents.model_extractor is None

    def test_maintenance_restores_and_flushes(self, app_config):
        snapshot = {
            "umss": {"lng": -66.145, "lat": -17.394, "hits": 2},
            "madrid": {"lng": -3.70, "lat": 40.41, "hits": 5},
        }
        cache_path = app_config.storage.place_cache_path
        cache_path.parent.mkdir(parents=True)
        cache_path.write_text(json.dumps(snapshot), encoding="utf-8")

        container = Container.create_default(app_config)
        container.start_maintenance()
        container.start_maintenance()
        try:
            assert container.resolve(PlaceCachePort).keys() == ["umss"]
            container.resolve(UnresolvedTermsPort).register("Narnia")
        finally:
            container.shutdown()
        container.shutdown()

        assert "madrid" not in json.loads(cache_path.read_text(encoding="utf-8"))
        unresolved = json.loads(app_config.storage.unresolved_path.read_text(encoding="utf-8"))
        assert unresolved["narnia"]["hits"] == 1

    def test_containers_own_their_instances(self, app_config):
        first = Container.create_default(app_config)
        second = Container.create_default(app_config)

        assert first.resolve(ConversationService) is not second.resolve(ConversationService)
        assert first.resolve(SessionStorePort) is not second.resolve(SessionStorePort)

    def test_transient_registration(self):
        container = Container()
        container.register(SessionStorePort, lambda: object(), singleton=False)
        assert container.resolve(SessionStorePort) is not container.resolve(SessionStorePort)

    def test_unregistered_type(self):
        with pytest.raises(KeyError):
            Container().resolve(SessionStorePort)


def _place(lng, lat, label):
    return ResolvedPlace(lng=lng, lat=lat, label=label, source=PlaceSource.GEOCODE)


class TestFoliumMapRenderer:
    """Test suite for FoliumMapRenderer."""

    def test_render_options(self, tmp_path, spatial_store, routing):
        origin = _place(-66.17, -17.3905, "UMSS")
        destination = _place(-66.15, -17.3905, "plaza principal")
        result = RouteMatchingEngine(spatial_store, routing).search(
            origin.coordinates, destination.coordinates
        )

        output = FoliumMapRenderer().render(
            origin, destination, result.options, tmp_path / "maps" / "trip.html", title="UMSS"
        )

        html = output.read_text(encoding="utf-8")
        assert output == tmp_path / "maps" / "trip.html"
        assert "Origen" in html
        assert "230 (Ida)" in html

    def test_render_without_options(self, tmp_path):
        output = FoliumMapRenderer().render(
            _place(-66.17, -17.39, "A"), _place(-66.15, -17.39, "B"), [], tmp_path / "empty.html"
        )
        assert output.exists()

    def test_unwritable_destination(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")
        with pytest.raises(RenderingError):
            FoliumMapRenderer().render(
                _place(-66.17, -17.39, "A"),
                _place(-66.15, -17.39, "B"),
                [],
                blocker / "map.html",
            )


class TestCli:
    """Test suite for the command-line front-end."""

    @pytest.fixture
    def container(self, service):
        container = build_container(service)
        container.register(MapRendererPort, lambda: FoliumMapRenderer())
        return container

    def test_trip(self, container, capsys):
        code = cli.main(["desde la UMSS a la plaza principal"], container=container)
        assert code == 0
        assert capsys.readouterr().out.startswith("Toma la línea 230 (Ida).")

    def test_json_output_with_gps(self, container, capsys):
        code = cli.main(
            ["quiero ir a la plaza principal", "--lng", "-66.17", "--lat", "-17.3905", "--json"],
            container=container,
        )
        reply = json.loads(capsys.readouterr().out)
        assert code == 0
        assert reply["origin"]["source"] == "gps"

    def test_map(self, container, tmp_path, capsys):
        target = tmp_path / "trip.html"
        code = cli.main(
            ["desde la UMSS a la plaza principal", "--map", str(target)], container=container
        )
        assert code == 0
        assert target.exists()
        assert "Map saved to" in capsys.readouterr().out

    def test_map_without_search(self, container, tmp_path, capsys):
        target = tmp_path / "trip.html"
        code = cli.main(["hola", "--map", str(target)], container=container)
        assert code == 0
        assert not target.exists()
        assert "no map written" in capsys.readouterr().err

    def test_lng_requires_lat(self, container):
        with pytest.raises(SystemExit):
            cli.main(["hola", "--lng", "-66.17"], container=container)

    def test_invalid_request(self, container, capsys):
        code = cli.main(["   "], container=container)
        assert code == 1
        assert "message requerido" in capsys.readouterr().err


def test_coordinates_reject_out_of_range():
    with pytest.raises(ValueError):
        Coordinates(lng=-66.15, lat=95)
