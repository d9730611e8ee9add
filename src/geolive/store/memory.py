"""
In-process document store.

`InMemoryDocumentStore` implements the `DocumentStore` contract on plain dicts:
- listeners receive the full, filtered and ordered result of their query;
- deliveries are scheduled on the event loop (`call_soon`), never run inside the writer;
- a listener is only called again when its result actually changed.

It backs the test-suite and the CLI, and is a reasonable store for single-process apps.
"""

from __future__ import annotations

import asyncio
import copy
import logging
from collections.abc import Callable
from typing import Any

from geolive.core.errors import DocumentNotFound, StoreError
from geolive.domain.models import Document
from geolive.store.base import ErrorCallback, SnapshotCallback, Unsubscribe
from geolive.store.query import Query

logger = logging.getLogger(__name__)


class _Listener:
    __slots__ = ("key", "query", "on_snapshot", "on_error", "active", "pending", "last")

    def __init__(self, key: int, query: Query, on_snapshot: SnapshotCallback, on_error: ErrorCallback):
        self.key = key
        self.query = query
        self.on_snapshot = on_snapshot
        self.on_error = on_error
        self.active = True
        self.pending = False
        self.last: list[Document] | None = None


class InMemoryDocumentStore:
    def __init__(self, *, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._listeners: dict[int, _Listener] = {}
        self._next_key = 0

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def snapshot(self, query: Query) -> list[Document]:
        """Evaluate `query` against the current contents (copies, never live dicts)."""
        docs = self._collections.get(query.collection, {})
        return query.apply(Document(id=doc_id, fields=copy.deepcopy(fields)) for doc_id, fields in docs.items())

    def listen(self, query: Query, on_snapshot: SnapshotCallback, on_error: ErrorCallback) -> Unsubscribe:
        # Raises outside a running loop before anything is registered.
        self._get_loop()
        self._next_key += 1
        listener = _Listener(self._next_key, query, on_snapshot, on_error)
        self._listeners[listener.key] = listener
        logger.debug("listener %s attached to %s", listener.key, query.collection)
        self._schedule(listener)

        def unsubscribe() -> None:
            if not listener.active:
                return
            listener.active = False
            self._listeners.pop(listener.key, None)
            logger.debug("listener %s detached from %s", listener.key, query.collection)

        return unsubscribe

    async def set_doc(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        if not collection or not doc_id:
            raise ValueError("collection and document id must be non-empty")
        if not isinstance(fields, dict):
            raise TypeError(f"Document fields must be a dict, got {type(fields).__name__}")
        self._collections.setdefault(collection, {})[doc_id] = copy.deepcopy(fields)
        self._notify(collection)

    async def get_doc(self, collection: str, doc_id: str) -> Document | None:
        fields = self._collections.get(collection, {}).get(doc_id)
        if fields is None:
            return None
        return Document(id=doc_id, fields=copy.deepcopy(fields))

    async def delete(self, collection: str, doc_id: str, *, missing_ok: bool = True) -> None:
        docs = self._collections.get(collection, {})
        if doc_id not in docs:
            if missing_ok:
                return
            raise DocumentNotFound(collection, doc_id)
        del docs[doc_id]
        self._notify(collection)

    def fail_listeners(self, exc: Exception | None = None, *, collection: str | None = None) -> int:
        """Deliver a terminal error to every (matching) listener and drop them.

        Simulates a backend subscription failure; returns the number of listeners failed.
        """
        error = exc if exc is not None else StoreError("listener failed")
        failed = [
            listener
            for listener in list(self._listeners.values())
            if collection is None or listener.query.collection == collection
        ]
        for listener in failed:
            listener.active = False
            self._listeners.pop(listener.key, None)
        for listener in failed:
            logger.debug("failing listener %s: %s", listener.key, error)
            self._call_soon(listener.on_error, error)
        return len(failed)

    def _notify(self, collection: str) -> None:
        for listener in list(self._listeners.values()):
            if listener.query.collection == collection:
                self._schedule(listener)

    def _schedule(self, listener: _Listener) -> None:
        if listener.pending:
            return
        listener.pending = True
        self._call_soon(self._deliver, listener)

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        return self._loop or asyncio.get_running_loop()

    def _call_soon(self, fn: Callable[..., Any], *args: Any) -> None:
        self._get_loop().call_soon(fn, *args)

    def _deliver(self, listener: _Listener) -> None:
        listener.pending = False
        if not listener.active:
            return
        result = self.snapshot(listener.query)
        if result == listener.last:
            return
        listener.last = result
        listener.on_snapshot(list(result))
