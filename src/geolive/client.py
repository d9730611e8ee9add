"""
geolive entry point.

`GeoClient` wraps a document store and hands out the two things callers need:
points (`point()`) and collection references with radius queries (`collection()`).
"""

from __future__ import annotations

from geolive.config.settings import Settings, get_settings
from geolive.core.geo import GeoPoint
from geolive.query.collection import CollectionRef, QueryFn
from geolive.store.base import DocumentStore


class GeoClient:
    def __init__(self, store: DocumentStore, *, settings: Settings | None = None) -> None:
        self._store = store
        self._settings = settings or get_settings()

    @property
    def store(self) -> DocumentStore:
        return self._store

    @property
    def settings(self) -> Settings:
        return self._settings

    def point(self, latitude: float, longitude: float) -> GeoPoint:
        """Create a point hashed at the configured precision; raises `InvalidCoordinate`."""
        return GeoPoint(latitude, longitude, precision=self._settings.geo.hash_precision)

    def collection(self, name: str, query_fn: QueryFn | None = None) -> CollectionRef:
        return CollectionRef(self._store, name, query_fn, settings=self._settings)
