"""Live radius queries over realtime document stores."""

from geolive.client import GeoClient
from geolive.core.errors import (
    DocumentNotFound,
    GeoLiveError,
    InvalidCoordinate,
    InvalidGeohash,
    InvalidRadius,
    StoreError,
)
from geolive.core.geo import GeoPoint
from geolive.core.live import LiveStream, LiveValue, get, take
from geolive.domain.models import Document
from geolive.query.collection import CollectionRef
from geolive.store.memory import InMemoryDocumentStore
from geolive.store.query import Query

__all__ = [
    "CollectionRef",
    "Document",
    "DocumentNotFound",
    "GeoClient",
    "GeoLiveError",
    "GeoPoint",
    "InMemoryDocumentStore",
    "InvalidCoordinate",
    "InvalidGeohash",
    "InvalidRadius",
    "LiveStream",
    "LiveValue",
    "Query",
    "StoreError",
    "get",
    "take",
]
