"""
Collection references with a replaceable query.

A `CollectionRef` pairs a collection name with the current `Query` definition and
publishes that query's result as one shared `LiveStream` (`data()`):

- the store listener is attached on the first observer and detached on the last;
- `change_query()` swaps the definition as a whole: the generation counter is bumped,
  the current listener is cancelled synchronously and a new one is opened while
  observers stay attached;
- snapshots delivered for an older generation are dropped, so observers never see a
  result of a definition that has already been replaced.

`within()` layers a radius query (`RadiusAggregator`) on top of the current definition.
"""

from __future__ import annotations

import logging
import uuid
import weakref
from collections.abc import Callable
from typing import Any

from geolive.config.settings import Settings, get_settings
from geolive.core.geo import GeoPoint
from geolive.core.live import Dispose, Emit, Fail, LiveStream
from geolive.domain.models import Document
from geolive.query.aggregator import RadiusAggregator
from geolive.store.base import DocumentStore
from geolive.store.query import Query

logger = logging.getLogger(__name__)

QueryFn = Callable[[Query], Query]


class CollectionRef:
    def __init__(
        self,
        store: DocumentStore,
        name: str,
        query_fn: QueryFn | None = None,
        *,
        settings: Settings | None = None,
    ) -> None:
        if not name:
            raise ValueError("collection name must be non-empty")
        self._store = store
        self._name = name
        self._settings = settings or get_settings()
        self._query = self._build(query_fn)
        self._generation = 0
        self._stream: LiveStream[list[Document]] = LiveStream(self._listen, name=f"collection:{name}")
        self._aggregators: weakref.WeakSet[RadiusAggregator] = weakref.WeakSet()

    def __repr__(self) -> str:
        return f"<CollectionRef {self._name} generation={self._generation}>"

    @property
    def name(self) -> str:
        return self._name

    @property
    def store(self) -> DocumentStore:
        return self._store

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def query(self) -> Query:
        return self._query

    @property
    def generation(self) -> int:
        return self._generation

    def data(self) -> LiveStream[list[Document]]:
        """Live result of the current query definition."""
        return self._stream

    def change_query(self, query_fn: QueryFn) -> None:
        """Replace the query definition; current observers switch to the new result."""
        query = self._build(query_fn)
        self._query = query
        self._generation += 1
        logger.debug("%s: query replaced (generation %s)", self._name, self._generation)
        self._stream.restart()
        for aggregator in list(self._aggregators):
            aggregator.refresh()

    def scoped(self, extra_fn: QueryFn) -> CollectionRef:
        """A private ref whose definition is `extra_fn` applied to the current one."""
        base = self._query
        return CollectionRef(self._store, self._name, lambda _: extra_fn(base), settings=self._settings)

    def within(
        self,
        center: GeoPoint,
        radius_km: float,
        field: str,
        *,
        order_by_distance: bool | None = None,
    ) -> LiveStream[list[Document]]:
        """Live list of documents whose `field` lies within `radius_km` of `center`."""
        return RadiusAggregator(self, center, radius_km, field, order_by_distance=order_by_distance).stream

    async def set_doc(self, doc_id: str, fields: dict[str, Any]) -> None:
        await self._store.set_doc(self._name, doc_id, fields)

    async def add(self, fields: dict[str, Any]) -> str:
        """Create a document under a generated id and return that id."""
        doc_id = uuid.uuid4().hex
        await self._store.set_doc(self._name, doc_id, fields)
        return doc_id

    async def delete(self, doc_id: str, *, missing_ok: bool = True) -> None:
        await self._store.delete(self._name, doc_id, missing_ok=missing_ok)

    def _register(self, aggregator: RadiusAggregator) -> None:
        self._aggregators.add(aggregator)

    def _build(self, query_fn: QueryFn | None) -> Query:
        base = Query(self._name)
        query = query_fn(base) if query_fn is not None else base
        if not isinstance(query, Query):
            raise TypeError(f"query_fn must return a Query, got {type(query).__name__}")
        if query.collection != self._name:
            raise ValueError(f"query_fn returned a query on '{query.collection}', expected '{self._name}'")
        return query

    def _listen(self, emit: Emit, fail: Fail) -> Dispose:
        generation = self._generation
        query = self._query

        def on_snapshot(docs: list[Document]) -> None:
            if generation != self._generation:
                logger.debug("%s: dropping snapshot of stale generation %s", self._name, generation)
                return
            emit(docs)

        def on_error(exc: Exception) -> None:
            if generation != self._generation:
                return
            logger.debug("%s: listener failed: %s", self._name, exc)
            fail(exc)

        return self._store.listen(query, on_snapshot, on_error)
