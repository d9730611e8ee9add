from __future__ import annotations

import asyncio
import math

import pytest

from geolive.config.settings import Settings, get_settings
from geolive.core.geo import EARTH_RADIUS_KM
from geolive.store.memory import InMemoryDocumentStore


@pytest.fixture
def settings() -> Settings:
    # Packaged defaults without env/.env influence.
    return Settings()


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def settle():
    async def _settle(rounds: int = 5) -> None:
        # Store deliveries are `call_soon` callbacks; a few loop turns flush them all.
        for _ in range(rounds):
            await asyncio.sleep(0)

    return _settle


@pytest.fixture
def clear_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def destination(lat: float, lon: float, distance_km: float, bearing_deg: float) -> tuple[float, float]:
    """Point reached from (lat, lon) after `distance_km` on the initial bearing."""
    delta = distance_km / EARTH_RADIUS_KM
    theta = math.radians(bearing_deg)
    phi1 = math.radians(lat)
    lmb1 = math.radians(lon)
    phi2 = math.asin(math.sin(phi1) * math.cos(delta) + math.cos(phi1) * math.sin(delta) * math.cos(theta))
    lmb2 = lmb1 + math.atan2(
        math.sin(theta) * math.sin(delta) * math.cos(phi1),
        math.cos(delta) - math.sin(phi1) * math.sin(phi2),
    )
    lon2 = (math.degrees(lmb2) + 540.0) % 360.0 - 180.0
    return math.degrees(phi2), lon2
