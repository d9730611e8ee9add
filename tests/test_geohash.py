import pytest

from geolive.core import geohash
from geolive.core.errors import InvalidCoordinate, InvalidGeohash


def test_encode_known_vector():
    assert geohash.encode(57.64911, 10.40744, 11) == "u4pruydqqvj"


def test_encode_default_precision_is_nine():
    assert len(geohash.encode(38.0, -119.0)) == 9


def test_encode_prefix_matches_coarser_encoding():
    fine = geohash.encode(40.5, -80.0, 9)
    for p in range(1, 9):
        assert geohash.encode(40.5, -80.0, p) == fine[:p]


def test_decode_bbox_contains_source_point():
    box = geohash.decode_bbox("ezs42")
    assert box.contains(42.6, -5.6)
    lat, lon = geohash.decode("ezs42")
    assert box.south < lat < box.north
    assert box.west < lon < box.east


def test_neighbors_order_and_values():
    assert geohash.neighbors("dqcjq") == [
        "dqcjw",
        "dqcjx",
        "dqcjr",
        "dqcjp",
        "dqcjn",
        "dqcjj",
        "dqcjm",
        "dqcjt",
    ]
    assert geohash.neighbor("dqcjq", "e") == "dqcjr"


def test_neighbor_wraps_at_antimeridian():
    east_edge = geohash.encode(1.0, 179.99, 5)
    west_edge = geohash.encode(1.0, -179.99, 5)
    assert geohash.neighbor(east_edge, "e") == west_edge
    assert geohash.neighbor(west_edge, "w") == east_edge


def test_neighbor_clamps_at_pole():
    top = geohash.encode(89.99, 10.0, 5)
    # No cell exists across the pole; north degenerates to the cell itself.
    assert geohash.neighbor(top, "n") == top
    assert geohash.neighbor(top, "ne") == geohash.neighbor(top, "e")
    assert geohash.neighbor(top, "s") != top


def test_invalid_inputs():
    with pytest.raises(InvalidCoordinate):
        geohash.encode(91.0, 0.0)
    with pytest.raises(InvalidCoordinate):
        geohash.encode(0.0, float("nan"))
    with pytest.raises(InvalidGeohash):
        geohash.neighbors("")
    with pytest.raises(InvalidGeohash):
        geohash.decode("abc")  # 'a' is not in the alphabet
    with pytest.raises(ValueError):
        geohash.neighbor("dqcjq", "up")


def test_successor_walks_base32_order():
    assert geohash.successor("9q") == "9r"
    assert geohash.successor("bz") == "c0"
    assert geohash.successor("zz") is None


def test_cell_size_degrees_halves_alternately():
    assert geohash.cell_size_degrees(1) == (45.0, 45.0)
    lat2, lon2 = geohash.cell_size_degrees(2)
    assert lat2 == pytest.approx(5.625)
    assert lon2 == pytest.approx(11.25)
