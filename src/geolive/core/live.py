"""
Push-driven live streams.

A `LiveStream` is a multicast sequence of snapshots fed by a *producer*: a callable that
receives `emit`/`fail` callbacks, starts delivering values, and returns a disposer.

Semantics (single event loop, no locks):
- The producer is connected lazily on the first observer and disposed when the last
  observer leaves. All observers share that one connection.
- A late observer immediately receives the latest snapshot.
- An error is terminal: every observer gets it, the connection is disposed, and the next
  `subscribe()` starts from scratch.
- `restart()` swaps in a fresh connection while observers stay attached. Each connection
  carries a generation number; values from a superseded connection are dropped.

`get()` / `take()` resolve a stream to its first value(s) for callers that want a one-shot
result instead of a subscription.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
U = TypeVar("U")

Dispose = Callable[[], None]
Emit = Callable[[Any], None]
Fail = Callable[[Exception], None]
Producer = Callable[[Emit, Fail], Dispose]

_MISSING: Any = object()


class Subscription:
    """Handle returned by `LiveStream.subscribe`; `cancel()` detaches the observer."""

    def __init__(self, dispose: Dispose) -> None:
        self._dispose: Dispose | None = dispose

    @property
    def closed(self) -> bool:
        return self._dispose is None

    def cancel(self) -> None:
        dispose, self._dispose = self._dispose, None
        if dispose is not None:
            dispose()


class _Observer:
    __slots__ = ("on_next", "on_error")

    def __init__(self, on_next: Callable[[Any], None], on_error: Fail | None) -> None:
        self.on_next = on_next
        self.on_error = on_error


class LiveStream(Generic[T]):
    def __init__(self, producer: Producer, *, name: str = "stream") -> None:
        self._producer = producer
        self._name = name
        self._observers: list[_Observer] = []
        self._connected = False
        self._dispose: Dispose | None = None
        self._latest: Any = _MISSING
        self._generation = 0

    def __repr__(self) -> str:
        return f"<LiveStream {self._name} observers={len(self._observers)} connected={self._connected}>"

    @property
    def name(self) -> str:
        return self._name

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def observer_count(self) -> int:
        return len(self._observers)

    def subscribe(
        self,
        on_next: Callable[[T], None],
        on_error: Callable[[Exception], None] | None = None,
    ) -> Subscription:
        observer = _Observer(on_next, on_error)
        self._observers.append(observer)
        if not self._connected:
            try:
                self._connect()
            except Exception:
                if observer in self._observers:
                    self._observers.remove(observer)
                raise
        elif self._latest is not _MISSING:
            observer.on_next(self._latest)
        return Subscription(lambda: self._detach(observer))

    def restart(self) -> None:
        """Drop the current connection (and its cached snapshot) and reconnect if observed."""
        if not self._connected:
            return
        logger.debug("%s: restarting source", self._name)
        self._disconnect()
        if self._observers:
            try:
                self._connect()
            except Exception as exc:
                self._fail(exc)

    def map(self, fn: Callable[[T], U]) -> LiveStream[U]:
        def producer(emit: Emit, fail: Fail) -> Dispose:
            return self.subscribe(lambda value: emit(fn(value)), fail).cancel

        return LiveStream(producer, name=f"{self._name}.map")

    def switch_map(self, fn: Callable[[T], LiveStream[U]]) -> LiveStream[U]:
        """Map each value to an inner stream, following only the most recent one.

        The previous inner subscription is cancelled before the next one is opened, and
        anything it still delivers afterwards is discarded.
        """

        def producer(emit: Emit, fail: Fail) -> Dispose:
            state: dict[str, Any] = {"inner": None, "token": 0}

            def on_outer(value: T) -> None:
                previous = state["inner"]
                state["inner"] = None
                if previous is not None:
                    previous.cancel()
                state["token"] += 1
                token = state["token"]

                def on_inner(inner_value: U) -> None:
                    if token == state["token"]:
                        emit(inner_value)

                def on_inner_error(exc: Exception) -> None:
                    if token == state["token"]:
                        fail(exc)

                inner = fn(value).subscribe(on_inner, on_inner_error)
                if token == state["token"]:
                    state["inner"] = inner
                else:
                    inner.cancel()

            outer = self.subscribe(on_outer, fail)

            def dispose() -> None:
                state["token"] += 1
                outer.cancel()
                inner = state["inner"]
                state["inner"] = None
                if inner is not None:
                    inner.cancel()

            return dispose

        return LiveStream(producer, name=f"{self._name}.switch_map")

    async def __aiter__(self) -> AsyncIterator[T]:
        queue: asyncio.Queue[tuple[bool, Any]] = asyncio.Queue()
        subscription = self.subscribe(
            lambda value: queue.put_nowait((True, value)),
            lambda exc: queue.put_nowait((False, exc)),
        )
        try:
            while True:
                ok, item = await queue.get()
                if not ok:
                    raise item
                yield item
        finally:
            subscription.cancel()

    def _connect(self) -> None:
        self._generation += 1
        generation = self._generation
        self._connected = True
        logger.debug("%s: connecting source (generation %s)", self._name, generation)

        def emit(value: Any) -> None:
            if generation != self._generation:
                logger.debug("%s: dropping value from superseded generation %s", self._name, generation)
                return
            self._emit(value)

        def fail(exc: Exception) -> None:
            if generation != self._generation:
                logger.debug("%s: dropping error from superseded generation %s", self._name, generation)
                return
            self._fail(exc)

        try:
            dispose = self._producer(emit, fail)
        except Exception:
            logger.debug("%s: source failed to start (generation %s)", self._name, generation)
            if generation == self._generation:
                self._disconnect()
            raise
        if generation == self._generation and self._connected:
            self._dispose = dispose
        else:
            # Failed or was detached while the producer was still starting.
            dispose()

    def _disconnect(self) -> None:
        self._generation += 1
        self._connected = False
        self._latest = _MISSING
        dispose, self._dispose = self._dispose, None
        if dispose is not None:
            dispose()

    def _emit(self, value: Any) -> None:
        self._latest = value
        for observer in list(self._observers):
            if observer in self._observers:
                observer.on_next(value)

    def _fail(self, exc: Exception) -> None:
        observers, self._observers = self._observers, []
        self._disconnect()
        unhandled = [o for o in observers if o.on_error is None]
        for observer in observers:
            if observer.on_error is not None:
                observer.on_error(exc)
        if unhandled:
            raise exc

    def _detach(self, observer: _Observer) -> None:
        if observer not in self._observers:
            return
        self._observers.remove(observer)
        if not self._observers and self._connected:
            logger.debug("%s: last observer left; disposing source", self._name)
            self._disconnect()


class LiveValue(Generic[T]):
    """A settable value exposed as a live stream that replays the current value."""

    def __init__(self, value: T, *, name: str = "value") -> None:
        self._value = value
        self._emitters: list[Emit] = []
        self.stream: LiveStream[T] = LiveStream(self._produce, name=name)

    @property
    def value(self) -> T:
        return self._value

    def set(self, value: T) -> None:
        self._value = value
        for emit in list(self._emitters):
            emit(value)

    def _produce(self, emit: Emit, fail: Fail) -> Dispose:
        self._emitters.append(emit)
        emit(self._value)
        return lambda: self._emitters.remove(emit)


async def take(stream: LiveStream[T], count: int) -> list[T]:
    """Collect the next `count` values from `stream`, then unsubscribe.

    Raises the stream's error if it fails first. Stays pending while the stream is silent.
    """
    if count < 1:
        raise ValueError("count must be >= 1")
    loop = asyncio.get_running_loop()
    done: asyncio.Future[list[T]] = loop.create_future()
    values: list[T] = []

    def on_next(value: T) -> None:
        if done.done():
            return
        values.append(value)
        if len(values) >= count:
            done.set_result(list(values))

    def on_error(exc: Exception) -> None:
        if not done.done():
            done.set_exception(exc)

    subscription = stream.subscribe(on_next, on_error)
    try:
        return await done
    finally:
        subscription.cancel()


async def get(stream: LiveStream[T]) -> T:
    """Resolve the first value a stream emits."""
    values = await take(stream, 1)
    return values[0]
