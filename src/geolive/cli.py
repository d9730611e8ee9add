"""
geolive CLI entrypoint.

Small offline tools for inspecting geohashes and radius plans, plus a one-shot radius
query over a JSON seed file loaded into an in-memory store.
"""

from __future__ import annotations

import argparse
import asyncio
import json
from typing import Any

from geolive.client import GeoClient
from geolive.config.settings import get_settings
from geolive.core import geohash
from geolive.core.geo import GeoPoint
from geolive.core.live import get
from geolive.core.logging import configure_logging
from geolive.query.planner import CELL_SIZE_KM, plan_ranges, precision_for_radius
from geolive.store.loader import load_documents, seed_store
from geolive.store.memory import InMemoryDocumentStore


def _cmd_hash(args: argparse.Namespace) -> int:
    print(geohash.encode(args.lat, args.lon, int(args.precision)))
    return 0


def _cmd_neighbors(args: argparse.Namespace) -> int:
    cells = geohash.neighbors(args.geohash)
    for direction, cell in zip(geohash.DIRECTIONS, cells):
        print(f"{direction:>2} {cell}")
    return 0


def _cmd_distance(args: argparse.Namespace) -> int:
    origin = GeoPoint(args.lat1, args.lon1)
    print(f"distance_km={origin.distance(args.lat2, args.lon2):.6f}")
    print(f"bearing_deg={origin.bearing(args.lat2, args.lon2):.6f}")
    return 0


def _cmd_plan(args: argparse.Namespace) -> int:
    settings = get_settings()
    center = GeoPoint(args.lat, args.lon)
    max_precision = settings.effective_max_precision
    precision = precision_for_radius(args.radius_km, center.latitude, max_precision=max_precision)
    ranges = plan_ranges(
        center,
        args.radius_km,
        max_precision=max_precision,
        merge_adjacent=settings.planner.merge_adjacent_ranges,
    )
    if precision is None:
        print("precision=none (full scan)")
    else:
        width, height = CELL_SIZE_KM[precision]
        print(f"precision={precision} cell={width:.3f}x{height:.3f}km")
    for r in ranges:
        print(f"[{r.lower!r}, {r.upper!r}]")
    return 0


async def _run_within(args: argparse.Namespace) -> list[dict[str, Any]]:
    settings = get_settings()
    store = InMemoryDocumentStore()
    await seed_store(store, load_documents(args.documents), precision=settings.geo.hash_precision)

    client = GeoClient(store, settings=settings)
    ref = client.collection(args.collection)
    stream = ref.within(
        client.point(args.lat, args.lon),
        args.radius_km,
        args.field,
        order_by_distance=True,
    )
    docs = await get(stream)
    return [
        d.to_dict(settings.query.id_field, include_metadata=settings.query.include_metadata) for d in docs
    ]


def _cmd_within(args: argparse.Namespace) -> int:
    rows = asyncio.run(_run_within(args))

    if args.json:
        print(json.dumps(rows, ensure_ascii=False, indent=2))
        return 0

    print(f"{len(rows)} document(s) within {args.radius_km} km")
    id_field = get_settings().query.id_field
    for i, row in enumerate(rows, start=1):
        meta = row.get("queryMetadata") or {}
        if meta:
            print(f"{i:>3}. {row[id_field]}  {meta['distance']:.3f} km  bearing {meta['bearing']:.1f}")
        else:
            print(f"{i:>3}. {row[id_field]}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the geolive CLI."""
    parser = argparse.ArgumentParser(prog="geolive")
    sub = parser.add_subparsers(dest="command", required=True)

    h = sub.add_parser("hash", help="Encode a coordinate as a geohash.")
    h.add_argument("lat", type=float)
    h.add_argument("lon", type=float)
    h.add_argument("--precision", type=int, default=geohash.DEFAULT_PRECISION)
    h.set_defaults(func=_cmd_hash)

    n = sub.add_parser("neighbors", help="List the 8 cells around a geohash.")
    n.add_argument("geohash")
    n.set_defaults(func=_cmd_neighbors)

    d = sub.add_parser("distance", help="Great-circle distance and initial bearing between two points.")
    d.add_argument("lat1", type=float)
    d.add_argument("lon1", type=float)
    d.add_argument("lat2", type=float)
    d.add_argument("lon2", type=float)
    d.set_defaults(func=_cmd_distance)

    p = sub.add_parser("plan", help="Show the geohash ranges that cover a radius query.")
    p.add_argument("lat", type=float)
    p.add_argument("lon", type=float)
    p.add_argument("radius_km", type=float)
    p.set_defaults(func=_cmd_plan)

    w = sub.add_parser("within", help="Run a one-shot radius query over a JSON seed file.")
    w.add_argument("--documents", required=True, help="Seed JSON: {collection: [{id, fields, geo}]}")
    w.add_argument("--collection", required=True)
    w.add_argument("--field", required=True, help="Geo field name (e.g. pos)")
    w.add_argument("lat", type=float)
    w.add_argument("lon", type=float)
    w.add_argument("radius_km", type=float)
    w.add_argument("--json", action="store_true", help="Output machine-readable JSON")
    w.set_defaults(func=_cmd_within)

    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint callable used by `python -m geolive.cli`."""
    configure_logging()
    parser = build_parser()
    args = parser.parse_args(argv)
    func: Any = getattr(args, "func")
    return int(func(args))


if __name__ == "__main__":
    raise SystemExit(main())
