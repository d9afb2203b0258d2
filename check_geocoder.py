#!/usr/bin/env python3
"""Manual script to verify connectivity to the geocoding provider."""

import asyncio
import sys
from pathlib import Path

import httpx

# Add src to path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root / "src"))

from geotrack.config import settings
from geotrack.models.domain import Coordinate
from geotrack.services.geocoding import AddressResolver, check_health


async def run() -> int:
    print("=" * 60)
    print("Geocoder Connection Test")
    print("=" * 60)
    print()

    print("1. Checking geocoder configuration...")
    print(f"   [OK] Base URL: {settings.geocoder_base_url}")
    print(f"   [OK] User-Agent: {settings.geocoder_user_agent}")
    print(f"   [OK] Country bias: {settings.country_name} ({settings.country_code})")
    print()

    async with httpx.AsyncClient() as client:
        resolver = AddressResolver.from_settings(client)

        print("2. Testing reverse lookup health check...")
        if not await check_health(resolver):
            print("   [ERROR] Geocoding provider is not responding")
            return 1
        print("   [OK] Geocoding provider is reachable")
        print()

        print("3. Testing forward lookup...")
        coordinate = await resolver.resolve_forward("Anna Salai, Chennai")
        if coordinate is None:
            print("   [ERROR] Forward lookup returned no coordinate")
            return 1
        print(f"   [OK] Anna Salai, Chennai -> {coordinate.latitude:.6f}, {coordinate.longitude:.6f}")
        bengaluru = Coordinate(12.9716, 77.5946)
        print(f"   [OK] Distance to Bengaluru: {resolver.distance(coordinate, bengaluru)} km")
        print()

    print("=" * 60)
    print("[SUCCESS] Geocoder is connected and working!")
    print("=" * 60)
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(run()))
