#!/usr/bin/env python3
"""Verify connectivity to the configured road-routing provider."""

import sys
from pathlib import Path

# Add src to path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root / "src"))

from ecoroute.config import settings
from ecoroute.exceptions import ProviderUnavailable
from ecoroute.models.domain import Point
from ecoroute.services.routing.provider_client import build_provider


def main():
    print("=" * 60)
    print("Routing Provider Connection Test")
    print("=" * 60)
    print()

    print("1. Checking provider configuration...")
    if settings.routing_provider == "none":
        print("   [ERROR] No routing provider configured")
        print("   Set ECOROUTE_ROUTING_PROVIDER to 'openrouteservice' or 'osrm' in your .env file")
        return 1
    provider = build_provider(settings)
    if provider is None:
        print(f"   [ERROR] {settings.routing_provider} is selected but incomplete")
        print("   Set ECOROUTE_ROUTING_PROVIDER_BASE_URL (OSRM) or ECOROUTE_ROUTING_PROVIDER_API_KEY (OpenRouteService)")
        return 1
    print(f"   [OK] Provider: {settings.routing_provider}")
    print(f"   [OK] Base URL: {provider.base_url}")
    print(f"   [OK] Timeout: {settings.routing_provider_timeout_ms} ms")
    print()

    print("2. Testing provider health check...")
    if not provider.check_health():
        print("   [ERROR] Provider is not responding")
        return 1
    print("   [OK] Provider is healthy and accessible!")
    print()

    print("3. Testing a single leg for each vehicle type...")
    origin = Point(52.517037, 13.388860)
    destination = Point(52.496891, 13.385983)
    for vehicle_type in settings.vehicle_profiles:
        try:
            route = provider.route(origin, destination, vehicle_type)
        except ProviderUnavailable as e:
            print(f"   [ERROR] {vehicle_type}: {e}")
            return 1
        print(
            f"   [OK] {vehicle_type}: {route.distance_km:.2f} km, "
            f"{route.duration_hours * 60:.1f} min, {len(route.polyline)} points"
        )
    print()

    print("=" * 60)
    print("[SUCCESS] Routing provider is reachable")
    print("=" * 60)
    return 0


if __name__ == "__main__":
    sys.exit(main())
