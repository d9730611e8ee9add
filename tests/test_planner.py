import math

import pytest

from conftest import destination
from geolive.core import geohash
from geolive.core.errors import InvalidRadius
from geolive.core.geo import GeoPoint
from geolive.query.planner import CELL_SIZE_KM, HashRange, plan_ranges, precision_for_radius


def test_cell_size_table_matches_known_magnitudes():
    width, height = CELL_SIZE_KM[5]
    assert width == pytest.approx(4.89, abs=0.01)
    assert height == pytest.approx(4.89, abs=0.01)
    assert set(CELL_SIZE_KM) == set(range(1, 13))


def test_precision_for_radius_picks_finest_covering_cell():
    assert precision_for_radius(10, 40.5) == 4
    assert precision_for_radius(0.5, 40.5) == 6
    assert precision_for_radius(0) == 9
    assert precision_for_radius(0, max_precision=7) == 7


def test_precision_for_radius_none_when_disk_reaches_pole():
    assert precision_for_radius(50, 89.9) is None
    assert precision_for_radius(30_000) is None


@pytest.mark.parametrize("radius", [-1, float("nan"), "far"])
def test_invalid_radius(radius):
    with pytest.raises(InvalidRadius):
        plan_ranges(GeoPoint(0.0, 0.0), radius)


def test_full_scan_fallback():
    assert plan_ranges(GeoPoint(89.9, 0.0), 50) == [HashRange.everything()]
    assert HashRange.everything().contains("zzzzzzzzz")


def test_unmerged_plan_is_center_plus_neighbors():
    center = GeoPoint(40.5, -80.0)
    ranges = plan_ranges(center, 10, merge_adjacent=False)
    middle = center.hash(4)
    assert [r.lower for r in ranges] == sorted({middle, *geohash.neighbors(middle)})
    assert all(r.upper == r.lower + "~" for r in ranges)
    assert len(ranges) == 9


@pytest.mark.parametrize("merge", [True, False])
def test_ranges_are_sorted_and_disjoint(merge):
    ranges = plan_ranges(GeoPoint(40.5, -80.0), 0.5, merge_adjacent=merge)
    assert 1 <= len(ranges) <= 9
    for a, b in zip(ranges, ranges[1:]):
        assert a.upper < b.lower


@pytest.mark.parametrize(
    "lat,lon",
    [(40.5, -80.0), (0.0, 0.0), (10.0, 179.995), (-33.9, 151.2), (70.0, 20.0)],
)
@pytest.mark.parametrize("radius", [0.1, 1.0, 5.0, 25.0, 120.0])
def test_ranges_cover_the_disk(lat, lon, radius):
    center = GeoPoint(lat, lon)
    ranges = plan_ranges(center, radius)
    for bearing in range(0, 360, 15):
        for fraction in (0.5, 0.999):
            p_lat, p_lon = destination(lat, lon, radius * fraction, bearing)
            h = geohash.encode(p_lat, p_lon, 9)
            assert any(r.contains(h) for r in ranges), (bearing, fraction, h)


def test_merged_ranges_cover_same_hashes_as_unmerged():
    center = GeoPoint(-33.9, 151.2)
    merged = plan_ranges(center, 2.0)
    unmerged = plan_ranges(center, 2.0, merge_adjacent=False)
    assert len(merged) <= len(unmerged)
    for r in unmerged:
        assert any(m.contains(r.lower) for m in merged)


def test_radius_upper_bound_is_superset_at_high_latitude():
    # Cells get narrower towards the poles; the planner has to step down a precision.
    assert precision_for_radius(2.0, 70.0) <= precision_for_radius(2.0, 0.0)
    assert math.isfinite(CELL_SIZE_KM[precision_for_radius(2.0, 70.0)][0])
