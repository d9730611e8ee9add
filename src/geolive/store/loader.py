"""
Seed file loader.

A seed file is a local JSON object mapping collection names to document lists:

    {"cities": [{"id": "phoenix", "fields": {"name": "Phoenix"},
                 "geo": {"pos": {"latitude": 33.45, "longitude": -112.07}}}]}

Entries are validated into `SeedDocument` models; each `geo` entry is expanded into the
persisted geo field shape (`GeoPoint.data`) before it is written.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import TypeAdapter

from geolive.core import geohash
from geolive.core.env import resolve_project_path
from geolive.core.geo import GeoPoint
from geolive.domain.models import SeedDocument
from geolive.store.base import DocumentStore

_SEED_ADAPTER = TypeAdapter(dict[str, list[SeedDocument]])


def load_documents(path: str | Path) -> dict[str, list[SeedDocument]]:
    """Load and validate a seed JSON file."""
    resolved = resolve_project_path(path)
    payload = json.loads(resolved.read_text(encoding="utf-8"))
    return _SEED_ADAPTER.validate_python(payload)


def seed_fields(seed: SeedDocument, *, precision: int | None = None) -> dict[str, Any]:
    if precision is None:
        precision = geohash.DEFAULT_PRECISION
    fields = dict(seed.fields)
    for name, geo in seed.geo.items():
        fields[name] = GeoPoint(geo.latitude, geo.longitude, precision=precision).data
    return fields


async def seed_store(
    store: DocumentStore,
    seeds: dict[str, list[SeedDocument]],
    *,
    precision: int | None = None,
) -> int:
    """Write every seed document into `store`; returns the number written."""
    count = 0
    for collection, docs in seeds.items():
        for seed in docs:
            await store.set_doc(collection, seed.id, seed_fields(seed, precision=precision))
            count += 1
    return count
