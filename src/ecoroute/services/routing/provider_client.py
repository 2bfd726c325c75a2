"""HTTP clients for external road-routing providers."""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional, Protocol

import httpx

from ...config import Settings, settings
from ...exceptions import ProviderUnavailable
from ...models.domain import Point
from .models import ProviderRoute

logger = logging.getLogger(__name__)

OPENROUTESERVICE_BASE_URL = "https://api.openrouteservice.org"
CONNECT_TIMEOUT_SECONDS = 5.0


class RoutingProvider(Protocol):
    """Road routing between two points for a vehicle class."""

    def route(self, origin: Point, destination: Point, vehicle_type: str) -> ProviderRoute:
        ...


class _HttpRoutingClient(ABC):
    """Shared request/retry plumbing for provider clients.

    Subclasses fetch the raw JSON body and parse it; any malformed body surfaces as
    ``ProviderUnavailable`` so the leg falls back to the next tier.
    """

    provider_name = "provider"

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 8.0,
        max_retries: int = 0,
        backoff_seconds: float = 0.5,
        config: Optional[Settings] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        if not base_url:
            raise ValueError(f"{self.provider_name} base URL is not configured.")
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff_seconds = backoff_seconds
        self.config = config or settings
        self._transport = transport

    def _get_client(self) -> httpx.Client:
        """Fresh client per call; legs are resolved from several threads."""
        return httpx.Client(
            timeout=httpx.Timeout(self.timeout, connect=min(self.timeout, CONNECT_TIMEOUT_SECONDS)),
            limits=httpx.Limits(max_connections=1, max_keepalive_connections=0),
            transport=self._transport,
        )

    def _request_json(self, send: Callable[[httpx.Client], httpx.Response]) -> dict:
        client = self._get_client()
        try:
            attempt = 0
            while True:
                try:
                    response = send(client)
                    response.raise_for_status()
                    data = response.json()
                    if not isinstance(data, dict):
                        raise ValueError(f"{self.provider_name} returned a non-object body.")
                    return data
                except httpx.HTTPStatusError as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise ProviderUnavailable(
                            f"{self.provider_name} returned HTTP {e.response.status_code}"
                        ) from e
                    time.sleep(self.backoff_seconds * attempt)
                except httpx.TimeoutException as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        logger.warning(f"{self.provider_name} request timed out after {attempt} attempt(s): {e}")
                        raise ProviderUnavailable(f"{self.provider_name} request timed out") from e
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"{self.provider_name} timeout, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries})")
                    time.sleep(wait_time)
                except (httpx.TransportError, OSError) as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise ProviderUnavailable(
                            f"Failed to connect to {self.provider_name} at {self.base_url}: {e}"
                        ) from e
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"{self.provider_name} network error, retrying in {wait_time:.1f}s: {e}")
                    time.sleep(wait_time)
                except ValueError as e:
                    raise ProviderUnavailable(f"{self.provider_name} returned an unreadable body: {e}") from e
        finally:
            client.close()

    @abstractmethod
    def _fetch(self, origin: Point, destination: Point, vehicle_type: str) -> dict:
        raise NotImplementedError

    @abstractmethod
    def _parse(self, data: dict) -> ProviderRoute:
        raise NotImplementedError

    def route(self, origin: Point, destination: Point, vehicle_type: str) -> ProviderRoute:
        data = self._fetch(origin, destination, vehicle_type)
        try:
            return self._parse(data)
        except (ValueError, TypeError, KeyError, IndexError, AttributeError) as e:
            raise ProviderUnavailable(f"{self.provider_name} returned a malformed route: {e}") from e

    def check_health(self) -> bool:
        """Route a short sample leg and report whether the provider answered."""
        sample_origin = Point(52.5200, 13.4050)
        sample_destination = Point(52.5210, 13.4060)
        try:
            self.route(sample_origin, sample_destination, "truck")
        except ProviderUnavailable as exc:
            logger.warning(f"{self.provider_name} health check failed: {exc}")
            return False
        return True


class OpenRouteServiceClient(_HttpRoutingClient):
    provider_name = "OpenRouteService"

    def __init__(self, base_url: Optional[str] = None, *, api_key: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(base_url or OPENROUTESERVICE_BASE_URL, **kwargs)
        self.api_key = api_key
        if not self.api_key:
            raise ValueError("OpenRouteService API key is not configured.")

    def _fetch(self, origin: Point, destination: Point, vehicle_type: str) -> dict:
        profile = self.config.vehicle_profile(vehicle_type).openrouteservice_profile
        url = f"{self.base_url}/v2/directions/{profile}"
        body = {
            "coordinates": [[origin.longitude, origin.latitude], [destination.longitude, destination.latitude]],
            "geometry": True,
            "instructions": False,
            "elevation": False,
        }
        headers = {"Authorization": f"Bearer {self.api_key}", "Accept": "application/json"}
        return self._request_json(lambda client: client.post(url, json=body, headers=headers))

    def _parse(self, data: dict) -> ProviderRoute:
        return _parse_openrouteservice(data)


class OSRMClient(_HttpRoutingClient):
    provider_name = "OSRM"

    def _fetch(self, origin: Point, destination: Point, vehicle_type: str) -> dict:
        profile = self.config.vehicle_profile(vehicle_type).osrm_profile
        coordinate_str = f"{origin.longitude},{origin.latitude};{destination.longitude},{destination.latitude}"
        url = f"{self.base_url}/route/v1/{profile}/{coordinate_str}"
        params = {"overview": "full", "geometries": "polyline", "steps": "false"}
        return self._request_json(lambda client: client.get(url, params=params))

    def _parse(self, data: dict) -> ProviderRoute:
        if data.get("code") != "Ok":
            raise ProviderUnavailable(f"OSRM route request failed: {data.get('message', data.get('code'))}")
        return _parse_osrm(data)


def _parse_openrouteservice(data: dict) -> ProviderRoute:
    routes = data.get("routes") or []
    if not routes:
        raise ProviderUnavailable("OpenRouteService response contained no routes.")
    route = routes[0]
    summary = route.get("summary") or {}
    geometry = route.get("geometry")
    if isinstance(geometry, str):
        polyline = tuple(decode_polyline(geometry))
    elif isinstance(geometry, dict) and geometry.get("coordinates"):
        polyline = tuple(Point(float(lat), float(lng)) for lng, lat, *_ in geometry["coordinates"])
    else:
        raise ProviderUnavailable("OpenRouteService response has no route geometry.")
    return ProviderRoute(
        distance_km=float(summary.get("distance", 0.0)) / 1000.0,
        duration_hours=float(summary.get("duration", 0.0)) / 3600.0,
        polyline=polyline,
    )


def _parse_osrm(data: dict) -> ProviderRoute:
    routes = data.get("routes") or []
    if not routes or not routes[0].get("geometry"):
        raise ProviderUnavailable("OSRM response contained no route geometry.")
    route = routes[0]
    return ProviderRoute(
        distance_km=float(route.get("distance", 0.0)) / 1000.0,
        duration_hours=float(route.get("duration", 0.0)) / 3600.0,
        polyline=tuple(decode_polyline(route["geometry"])),
    )


def decode_polyline(polyline: str, precision: int = 5) -> list[Point]:
    """Decode an encoded polyline string (Google format) into points.

    Both OSRM and OpenRouteService use precision 5 by default.
    """
    coordinates: list[Point] = []
    factor = 10 ** precision
    index = 0
    lat = 0
    lon = 0

    while index < len(polyline):
        deltas = []
        for _ in range(2):
            shift = 0
            result = 0
            while True:
                if index >= len(polyline):
                    raise ValueError("Truncated polyline string.")
                b = ord(polyline[index]) - 63
                index += 1
                result |= (b & 0x1F) << shift
                shift += 5
                if b < 0x20:
                    break
            deltas.append(~(result >> 1) if (result & 1) else (result >> 1))
        lat += deltas[0]
        lon += deltas[1]
        coordinates.append(Point(lat / factor, lon / factor))

    return coordinates


def build_provider(config: Optional[Settings] = None, *, timeout_ms: Optional[int] = None) -> Optional[RoutingProvider]:
    """Create the configured provider client, or ``None`` when no provider is configured."""

    config = config or settings
    timeout = (timeout_ms if timeout_ms is not None else config.routing_provider_timeout_ms) / 1000.0
    common = {
        "timeout": timeout,
        "max_retries": config.routing_provider_max_retries,
        "backoff_seconds": config.routing_provider_backoff_seconds,
        "config": config,
    }
    match config.routing_provider:
        case "openrouteservice":
            if not config.routing_provider_api_key:
                logger.info("OpenRouteService selected but no API key configured; provider tier disabled")
                return None
            return OpenRouteServiceClient(
                config.routing_provider_base_url,
                api_key=config.routing_provider_api_key,
                **common,
            )
        case "osrm":
            if not config.routing_provider_base_url:
                logger.info("OSRM selected but no base URL configured; provider tier disabled")
                return None
            return OSRMClient(config.routing_provider_base_url, **common)
        case _:
            return None
