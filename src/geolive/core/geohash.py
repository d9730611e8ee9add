"""
Geohash primitives.

A geohash interleaves longitude and latitude bisection bits (longitude first) and packs
every 5 bits into one base-32 character. Shared prefixes mean shared parent cells, which
is what lets a document store answer "which points are near here" with a string range.

Everything in this module is a pure function over numbers and strings:
- `encode` walks the lat/lon intervals directly.
- `neighbor` / `neighbors` work on the integer (row, column) cell indices a hash spells,
  so wraparound at the antimeridian is a modulo and the poles are a clamp.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from geolive.core.errors import InvalidCoordinate, InvalidGeohash

BASE32 = "0123456789bcdefghjkmnpqrstuvwxyz"
BITS_PER_CHAR = 5
DEFAULT_PRECISION = 9
MAX_PRECISION = 12

_DECODE_MAP = {ch: i for i, ch in enumerate(BASE32)}

Direction = Literal["n", "ne", "e", "se", "s", "sw", "w", "nw"]
DIRECTIONS: tuple[Direction, ...] = ("n", "ne", "e", "se", "s", "sw", "w", "nw")

# (row delta, column delta); rows grow northwards, columns eastwards.
_OFFSETS: dict[str, tuple[int, int]] = {
    "n": (1, 0),
    "ne": (1, 1),
    "e": (0, 1),
    "se": (-1, 1),
    "s": (-1, 0),
    "sw": (-1, -1),
    "w": (0, -1),
    "nw": (1, -1),
}


@dataclass(frozen=True)
class BoundingBox:
    """Cell bounds in decimal degrees."""

    south: float
    west: float
    north: float
    east: float

    @property
    def center(self) -> tuple[float, float]:
        return (self.south + self.north) / 2, (self.west + self.east) / 2

    def contains(self, lat: float, lon: float) -> bool:
        return self.south <= lat <= self.north and self.west <= lon <= self.east


def validate_coordinates(lat: float, lon: float) -> tuple[float, float]:
    """Return (lat, lon) as floats or raise `InvalidCoordinate`. Values are never clamped."""
    try:
        lat_f = float(lat)
        lon_f = float(lon)
    except (TypeError, ValueError) as exc:
        raise InvalidCoordinate(f"Coordinates must be numbers, got ({lat!r}, {lon!r}).") from exc
    # NaN fails both comparisons, so it is rejected here too.
    if not -90.0 <= lat_f <= 90.0:
        raise InvalidCoordinate(f"Latitude must be within [-90, 90], got {lat!r}.")
    if not -180.0 <= lon_f <= 180.0:
        raise InvalidCoordinate(f"Longitude must be within [-180, 180], got {lon!r}.")
    return lat_f, lon_f


def _check_precision(precision: int) -> int:
    p = int(precision)
    if not 1 <= p <= MAX_PRECISION:
        raise ValueError(f"precision must be within [1, {MAX_PRECISION}], got {precision!r}")
    return p


def encode(lat: float, lon: float, precision: int = DEFAULT_PRECISION) -> str:
    """Encode a coordinate into a geohash of exactly `precision` characters."""
    lat, lon = validate_coordinates(lat, lon)
    precision = _check_precision(precision)

    lat_lo, lat_hi = -90.0, 90.0
    lon_lo, lon_hi = -180.0, 180.0
    chars: list[str] = []
    value = 0
    bit_count = 0
    even = True

    while len(chars) < precision:
        if even:
            mid = (lon_lo + lon_hi) / 2
            if lon > mid:
                value = (value << 1) | 1
                lon_lo = mid
            else:
                value <<= 1
                lon_hi = mid
        else:
            mid = (lat_lo + lat_hi) / 2
            if lat > mid:
                value = (value << 1) | 1
                lat_lo = mid
            else:
                value <<= 1
                lat_hi = mid
        even = not even
        bit_count += 1
        if bit_count == BITS_PER_CHAR:
            chars.append(BASE32[value])
            value = 0
            bit_count = 0

    return "".join(chars)


def _cell_indices(geohash: str) -> tuple[int, int, int, int]:
    """Split a geohash into (row, row_bits, column, column_bits)."""
    if not isinstance(geohash, str) or not geohash:
        raise InvalidGeohash(f"Geohash must be a non-empty string, got {geohash!r}.")
    if len(geohash) > MAX_PRECISION:
        raise InvalidGeohash(f"Geohash longer than {MAX_PRECISION} characters: {geohash!r}.")

    row = col = 0
    row_bits = col_bits = 0
    even = True
    for ch in geohash.lower():
        value = _DECODE_MAP.get(ch)
        if value is None:
            raise InvalidGeohash(f"Invalid geohash character {ch!r} in {geohash!r}.")
        for shift in range(BITS_PER_CHAR - 1, -1, -1):
            bit = (value >> shift) & 1
            if even:
                col = (col << 1) | bit
                col_bits += 1
            else:
                row = (row << 1) | bit
                row_bits += 1
            even = not even
    return row, row_bits, col, col_bits


def _from_cell_indices(row: int, row_bits: int, col: int, col_bits: int) -> str:
    """Interleave (row, column) back into a geohash; inverse of `_cell_indices`."""
    chars: list[str] = []
    value = 0
    row_shift = row_bits
    col_shift = col_bits
    for k in range(row_bits + col_bits):
        if k % 2 == 0:
            col_shift -= 1
            bit = (col >> col_shift) & 1
        else:
            row_shift -= 1
            bit = (row >> row_shift) & 1
        value = (value << 1) | bit
        if k % BITS_PER_CHAR == BITS_PER_CHAR - 1:
            chars.append(BASE32[value])
            value = 0
    return "".join(chars)


def _shift(row: int, row_bits: int, col: int, col_bits: int, direction: str) -> str:
    try:
        d_row, d_col = _OFFSETS[direction]
    except KeyError:
        raise ValueError(f"Unknown direction {direction!r}; expected one of {DIRECTIONS}") from None
    # Columns wrap around the antimeridian; rows stop at the poles.
    new_row = min(max(row + d_row, 0), (1 << row_bits) - 1)
    new_col = (col + d_col) % (1 << col_bits)
    return _from_cell_indices(new_row, row_bits, new_col, col_bits)


def neighbor(geohash: str, direction: Direction) -> str:
    """Return the adjacent cell in `direction` at the same precision."""
    row, row_bits, col, col_bits = _cell_indices(geohash)
    return _shift(row, row_bits, col, col_bits, direction)


def neighbors(geohash: str) -> list[str]:
    """Return the 8 adjacent cells in N, NE, E, SE, S, SW, W, NW order.

    Cells on the top/bottom row have no neighbour across the pole; those entries
    degenerate to the cell's own row (so N may equal the cell itself).
    """
    row, row_bits, col, col_bits = _cell_indices(geohash)
    return [_shift(row, row_bits, col, col_bits, d) for d in DIRECTIONS]


def cell_size_degrees(precision: int) -> tuple[float, float]:
    """Return (lat_degrees, lon_degrees) spanned by one cell at `precision`."""
    precision = _check_precision(precision)
    total_bits = precision * BITS_PER_CHAR
    row_bits = total_bits // 2
    col_bits = total_bits - row_bits
    return 180.0 / (1 << row_bits), 360.0 / (1 << col_bits)


def decode_bbox(geohash: str) -> BoundingBox:
    """Return the bounds of the cell a geohash names."""
    row, row_bits, col, col_bits = _cell_indices(geohash)
    lat_span = 180.0 / (1 << row_bits)
    lon_span = 360.0 / (1 << col_bits)
    south = -90.0 + row * lat_span
    west = -180.0 + col * lon_span
    return BoundingBox(south=south, west=west, north=south + lat_span, east=west + lon_span)


def decode(geohash: str) -> tuple[float, float]:
    """Return the (lat, lon) center of the cell a geohash names."""
    return decode_bbox(geohash).center


def successor(prefix: str) -> str | None:
    """Return the next prefix of the same length in base-32 order (None after 'zzz...')."""
    chars = list(prefix)
    for i in range(len(chars) - 1, -1, -1):
        idx = _DECODE_MAP[chars[i]]
        if idx + 1 < len(BASE32):
            chars[i] = BASE32[idx + 1]
            return "".join(chars)
        chars[i] = BASE32[0]
    return None
