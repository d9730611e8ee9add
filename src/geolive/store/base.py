"""
Document store contract.

geolive never talks to a concrete database directly; it needs exactly three things
from the store it augments:
- `listen`: push the *full* result array of a query now and after every change
  (snapshots, not deltas) until the returned callable is invoked;
- `set_doc` / `delete`: asynchronous writes.

Adapters for a real realtime store implement this protocol; `InMemoryDocumentStore`
is the in-process implementation used by tests and the CLI.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol

from geolive.domain.models import Document
from geolive.store.query import Query

SnapshotCallback = Callable[[list[Document]], None]
ErrorCallback = Callable[[Exception], None]
Unsubscribe = Callable[[], None]


class DocumentStore(Protocol):
    def listen(self, query: Query, on_snapshot: SnapshotCallback, on_error: ErrorCallback) -> Unsubscribe:
        """Subscribe to the result array of `query`. Errors are terminal for the listener."""
        ...

    async def set_doc(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        ...

    async def delete(self, collection: str, doc_id: str, *, missing_ok: bool = True) -> None:
        ...
