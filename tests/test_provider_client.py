import json

import httpx
import pytest

from src.ecoroute.config import Settings
from src.ecoroute.exceptions import ProviderUnavailable
from src.ecoroute.models.domain import Point
from src.ecoroute.services.routing.provider_client import (
    OpenRouteServiceClient,
    OSRMClient,
    build_provider,
    decode_polyline,
)

# Reference polyline: (38.5, -120.2), (40.7, -120.95), (43.252, -126.453)
ENCODED = "_p~iF~ps|U_ulLnnqC_mqNvxq`@"
ORIGIN = Point(52.0, 13.0)
DESTINATION = Point(52.1, 13.1)


def _osrm(handler, **kwargs) -> OSRMClient:
    return OSRMClient("http://osrm.test", transport=httpx.MockTransport(handler), backoff_seconds=0.0, **kwargs)


def _ors(handler, **kwargs) -> OpenRouteServiceClient:
    return OpenRouteServiceClient(
        "https://ors.test", api_key="secret", transport=httpx.MockTransport(handler), backoff_seconds=0.0, **kwargs
    )


def test_decode_polyline_reference_string():
    points = decode_polyline(ENCODED)
    assert points == [Point(38.5, -120.2), Point(40.7, -120.95), Point(43.252, -126.453)]


def test_decode_polyline_rejects_truncated_input():
    with pytest.raises(ValueError):
        decode_polyline(ENCODED[:-1])


def test_osrm_route_parses_distance_duration_and_geometry():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        return httpx.Response(
            200,
            json={"code": "Ok", "routes": [{"distance": 1500.0, "duration": 120.0, "geometry": ENCODED}]},
        )

    route = _osrm(handler).route(ORIGIN, DESTINATION, "truck")

    assert seen["path"] == "/route/v1/driving/13.0,52.0;13.1,52.1"
    assert seen["params"]["geometries"] == "polyline"
    assert route.distance_km == pytest.approx(1.5)
    assert route.duration_hours == pytest.approx(120.0 / 3600.0)
    assert route.polyline[0] == Point(38.5, -120.2)


def test_osrm_no_route_code_is_unavailable():
    def handler(request):
        return httpx.Response(200, json={"code": "NoRoute", "message": "Impossible route"})

    with pytest.raises(ProviderUnavailable):
        _osrm(handler).route(ORIGIN, DESTINATION, "truck")


def test_openrouteservice_posts_lng_lat_with_bearer_key():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["path"] = request.url.path
        seen["auth"] = request.headers.get("Authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={"routes": [{"summary": {"distance": 2000.0, "duration": 300.0}, "geometry": ENCODED}]},
        )

    route = _ors(handler).route(ORIGIN, DESTINATION, "bike")

    assert seen["method"] == "POST"
    assert seen["path"] == "/v2/directions/cycling-regular"
    assert seen["auth"] == "Bearer secret"
    assert seen["body"]["coordinates"] == [[13.0, 52.0], [13.1, 52.1]]
    assert route.distance_km == pytest.approx(2.0)
    assert route.duration_hours == pytest.approx(300.0 / 3600.0)
    assert len(route.polyline) == 3


def test_openrouteservice_accepts_geojson_geometry():
    def handler(request):
        return httpx.Response(
            200,
            json={
                "routes": [
                    {
                        "summary": {"distance": 100.0, "duration": 10.0},
                        "geometry": {"type": "LineString", "coordinates": [[13.0, 52.0], [13.1, 52.1]]},
                    }
                ]
            },
        )

    route = _ors(handler).route(ORIGIN, DESTINATION, "truck")
    assert route.polyline == (ORIGIN, DESTINATION)


def test_server_errors_are_retried_then_raised():
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(503, json={"error": "busy"})

    with pytest.raises(ProviderUnavailable):
        _osrm(handler, max_retries=1).route(ORIGIN, DESTINATION, "truck")
    assert len(calls) == 2


def test_timeouts_become_provider_unavailable():
    def handler(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    with pytest.raises(ProviderUnavailable):
        _osrm(handler).route(ORIGIN, DESTINATION, "truck")


def test_malformed_body_becomes_provider_unavailable():
    def handler(request):
        return httpx.Response(200, content=b"<html>oops</html>")

    with pytest.raises(ProviderUnavailable):
        _ors(handler).route(ORIGIN, DESTINATION, "truck")


@pytest.mark.parametrize(
    "route_body",
    [
        {"distance": 100.0, "duration": 10.0, "geometry": "_"},
        {"distance": "far", "duration": 10.0, "geometry": ENCODED},
        {"distance": 100.0, "duration": None, "geometry": ENCODED},
    ],
)
def test_osrm_malformed_route_becomes_provider_unavailable(route_body):
    def handler(request):
        return httpx.Response(200, json={"code": "Ok", "routes": [route_body]})

    with pytest.raises(ProviderUnavailable):
        _osrm(handler).route(ORIGIN, DESTINATION, "truck")


def test_openrouteservice_bad_coordinates_become_provider_unavailable():
    def handler(request):
        return httpx.Response(
            200,
            json={"routes": [{"summary": {"distance": 100.0}, "geometry": {"coordinates": [[13.0], "x"]}}]},
        )

    with pytest.raises(ProviderUnavailable):
        _ors(handler).route(ORIGIN, DESTINATION, "truck")


def test_check_health_reports_failures():
    def handler(request):
        return httpx.Response(500)

    assert _osrm(handler).check_health() is False


def test_build_provider_from_settings():
    assert build_provider(Settings(routing_provider="none")) is None
    assert build_provider(Settings(routing_provider="osrm")) is None
    assert build_provider(Settings(routing_provider="openrouteservice")) is None

    osrm = build_provider(Settings(routing_provider="osrm", routing_provider_base_url="http://osrm.test/"))
    assert isinstance(osrm, OSRMClient)
    assert osrm.base_url == "http://osrm.test"
    assert osrm.timeout == pytest.approx(8.0)

    ors = build_provider(
        Settings(routing_provider="openrouteservice", routing_provider_api_key="key"),
        timeout_ms=2500,
    )
    assert isinstance(ors, OpenRouteServiceClient)
    assert ors.base_url == "https://api.openrouteservice.org"
    assert ors.timeout == pytest.approx(2.5)


def test_clients_require_configuration():
    with pytest.raises(ValueError):
        OSRMClient("")
    with pytest.raises(ValueError):
        OpenRouteServiceClient(api_key=None)
