"""
Radius -> geohash range planner.

A store can only answer 1-D range queries, so a disk on the sphere is covered by the
cell containing its center plus that cell's 8 neighbours, at the finest precision whose
cells are still at least as large as the radius:

- cell sizes come from a fixed table (km at the equator, per precision);
- the cell width is scaled by the cosine of the most poleward latitude the disk reaches,
  so the 3x3 block stays a superset of the disk away from the equator;
- when no precision qualifies (huge radius, disk touching a pole) the plan is a single
  range over every hash.

Each cell prefix `p` becomes the closed range `[p, p + "~"]`: `~` sorts after every
base-32 character, so the range holds exactly the hashes that start with `p`.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from geolive.core import geohash
from geolive.core.errors import InvalidRadius
from geolive.core.geo import EARTH_RADIUS_KM, GeoPoint

logger = logging.getLogger(__name__)

RANGE_END = "~"

KM_PER_DEGREE = math.pi / 180.0 * EARTH_RADIUS_KM

# precision -> (width_km, height_km) of one cell at the equator.
CELL_SIZE_KM: dict[int, tuple[float, float]] = {
    p: (lon_deg * KM_PER_DEGREE, lat_deg * KM_PER_DEGREE)
    for p in range(1, geohash.MAX_PRECISION + 1)
    for lat_deg, lon_deg in [geohash.cell_size_degrees(p)]
}


@dataclass(frozen=True, order=True)
class HashRange:
    """Closed interval [lower, upper] over persisted geohash strings."""

    lower: str
    upper: str

    @classmethod
    def for_prefix(cls, prefix: str) -> HashRange:
        return cls(prefix, prefix + RANGE_END)

    @classmethod
    def everything(cls) -> HashRange:
        return cls("", RANGE_END)

    def contains(self, value: str) -> bool:
        return self.lower <= value <= self.upper


def check_radius(radius_km: float) -> float:
    try:
        radius = float(radius_km)
    except (TypeError, ValueError) as exc:
        raise InvalidRadius(f"Radius must be a number of kilometers, got {radius_km!r}.") from exc
    if math.isnan(radius) or radius < 0:
        raise InvalidRadius(f"Radius must be >= 0 km, got {radius_km!r}.")
    return radius


def precision_for_radius(
    radius_km: float,
    latitude: float = 0.0,
    *,
    max_precision: int = geohash.DEFAULT_PRECISION,
) -> int | None:
    """Finest precision whose 3x3 cell block covers the disk, or None if none does."""
    radius = check_radius(radius_km)
    if not 1 <= max_precision <= geohash.MAX_PRECISION:
        raise ValueError(f"max_precision must be within [1, {geohash.MAX_PRECISION}], got {max_precision!r}")
    poleward = min(90.0, abs(float(latitude)) + math.degrees(radius / EARTH_RADIUS_KM))
    shrink = math.cos(math.radians(poleward))
    for precision in range(max_precision, 0, -1):
        width, height = CELL_SIZE_KM[precision]
        if min(width * shrink, height) >= radius:
            return precision
    return None


def plan_ranges(
    center: GeoPoint,
    radius_km: float,
    *,
    max_precision: int = geohash.DEFAULT_PRECISION,
    merge_adjacent: bool = True,
) -> list[HashRange]:
    """Return 1..9 disjoint hash ranges whose union covers the disk around `center`."""
    precision = precision_for_radius(radius_km, center.latitude, max_precision=max_precision)
    if precision is None:
        logger.debug("radius %.3f km at lat %.4f needs a full scan", float(radius_km), center.latitude)
        return [HashRange.everything()]

    middle = center.hash(precision)
    prefixes = sorted({middle, *geohash.neighbors(middle)})

    if not merge_adjacent:
        ranges = [HashRange.for_prefix(p) for p in prefixes]
    else:
        ranges = []
        first = last = prefixes[0]
        for prefix in prefixes[1:]:
            if geohash.successor(last) == prefix:
                last = prefix
                continue
            ranges.append(HashRange(first, last + RANGE_END))
            first = last = prefix
        ranges.append(HashRange(first, last + RANGE_END))

    logger.debug(
        "planned %s range(s) at precision %s for %.3f km around %s",
        len(ranges),
        precision,
        float(radius_km),
        middle,
    )
    return ranges
