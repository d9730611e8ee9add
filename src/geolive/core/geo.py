from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from math import asin, atan2, cos, degrees, radians, sin, sqrt
from typing import Any

from geolive.core import geohash
from geolive.core.errors import InvalidCoordinate

"""
Geospatial value types.

`GeoPoint` is the immutable coordinate every other layer passes around. It knows how to
spell itself as a geohash, which cells surround it, and the persisted shape a
geo-indexed document field must have (`data`).
"""

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in kilometers on a sphere of mean Earth radius."""
    phi1 = radians(lat1)
    phi2 = radians(lat2)
    dphi = radians(lat2 - lat1)
    dlmb = radians(lon2 - lon1)

    h = sin(dphi / 2) ** 2 + cos(phi1) * cos(phi2) * sin(dlmb / 2) ** 2
    return 2 * EARTH_RADIUS_KM * asin(min(1.0, sqrt(h)))


def initial_bearing_deg(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Forward azimuth from point 1 to point 2 in degrees, range (-180, 180].

    0 is due north, 90 due east, west is negative.
    """
    phi1 = radians(lat1)
    phi2 = radians(lat2)
    dlmb = radians(lon2 - lon1)

    y = sin(dlmb) * cos(phi2)
    x = cos(phi1) * sin(phi2) - sin(phi1) * cos(phi2) * cos(dlmb)
    bearing = degrees(atan2(y, x))
    return 180.0 if bearing == -180.0 else bearing


@dataclass(frozen=True)
class GeoPoint:
    """A latitude/longitude pair in decimal degrees."""

    latitude: float
    longitude: float
    precision: int = field(default=geohash.DEFAULT_PRECISION, compare=False)

    def __post_init__(self) -> None:
        lat, lon = geohash.validate_coordinates(self.latitude, self.longitude)
        object.__setattr__(self, "latitude", lat)
        object.__setattr__(self, "longitude", lon)
        if not 1 <= self.precision <= geohash.MAX_PRECISION:
            raise ValueError(f"precision must be within [1, {geohash.MAX_PRECISION}], got {self.precision!r}")

    @classmethod
    def from_data(cls, data: Any) -> GeoPoint:
        """Decode a persisted geo field (`{"geohash": ..., "geopoint": {...}}`).

        A bare `{"latitude": ..., "longitude": ...}` mapping is accepted as well.
        """
        if isinstance(data, GeoPoint):
            return data
        if not isinstance(data, Mapping):
            raise InvalidCoordinate(f"Geo field must be a mapping, got {type(data).__name__}.")
        raw = data.get("geopoint", data)
        if isinstance(raw, GeoPoint):
            return raw
        if not isinstance(raw, Mapping) or "latitude" not in raw or "longitude" not in raw:
            raise InvalidCoordinate("Geo field is missing geopoint.latitude/geopoint.longitude.")
        return cls(raw["latitude"], raw["longitude"])

    @classmethod
    def from_hash(cls, value: str) -> GeoPoint:
        """Point at the center of a geohash cell, keeping the hash length as precision."""
        lat, lon = geohash.decode(value)
        return cls(lat, lon, precision=len(value))

    @property
    def coords(self) -> tuple[float, float]:
        return self.latitude, self.longitude

    def hash(self, precision: int | None = None) -> str:
        return geohash.encode(self.latitude, self.longitude, self.precision if precision is None else precision)

    def neighbors(self, precision: int | None = None) -> list[str]:
        """The 8 cells around this point's cell (N, NE, E, SE, S, SW, W, NW)."""
        return geohash.neighbors(self.hash(precision))

    @property
    def data(self) -> dict[str, Any]:
        """The shape persisted as a geo-indexed document field."""
        return {
            "geohash": self.hash(),
            "geopoint": {"latitude": self.latitude, "longitude": self.longitude},
        }

    def distance(self, latitude: float, longitude: float) -> float:
        """Great-circle distance in km to (latitude, longitude)."""
        return haversine_km(self.latitude, self.longitude, float(latitude), float(longitude))

    def bearing(self, latitude: float, longitude: float) -> float:
        """Initial bearing in degrees to (latitude, longitude)."""
        return initial_bearing_deg(self.latitude, self.longitude, float(latitude), float(longitude))

    def distance_to(self, other: GeoPoint) -> float:
        return self.distance(other.latitude, other.longitude)
