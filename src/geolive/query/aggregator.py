"""
Radius query aggregation.

`RadiusAggregator` turns one radius query into a live list of documents:

1. plan the geohash ranges covering the disk (`plan_ranges`);
2. open one private, range-scoped `CollectionRef` per range on top of the source's
   current definition (`range("<field>.geohash", lower, upper)`);
3. keep the latest snapshot of every range and, once each range has reported at least
   once, concatenate them in plan order, drop duplicate ids (first wins) and keep only
   documents whose exact distance is within the radius.

Cell ranges over-approximate the disk, so the exact filter is what makes the result
correct; the ranges only bound how much the store has to send.
"""

from __future__ import annotations

import logging
from functools import partial
from typing import TYPE_CHECKING

from geolive.config.settings import Settings
from geolive.core.geo import GeoPoint
from geolive.core.live import Dispose, Emit, Fail, LiveStream, Subscription
from geolive.domain.models import Document
from geolive.query.planner import HashRange, check_radius, plan_ranges

if TYPE_CHECKING:
    from geolive.query.collection import CollectionRef

logger = logging.getLogger(__name__)


class RadiusAggregator:
    def __init__(
        self,
        source: CollectionRef,
        center: GeoPoint,
        radius_km: float,
        field: str,
        *,
        settings: Settings | None = None,
        order_by_distance: bool | None = None,
    ) -> None:
        if not field:
            raise ValueError("geo field name must be non-empty")
        self._source = source
        self._center = GeoPoint.from_data(center)
        self._radius = check_radius(radius_km)
        self._field = field
        self._settings = settings or source.settings
        self._order_by_distance = (
            self._settings.query.order_by_distance if order_by_distance is None else bool(order_by_distance)
        )
        self._ranges: list[HashRange] = []
        self.stream: LiveStream[list[Document]] = LiveStream(
            self._connect, name=f"within:{source.name}.{field}"
        )
        source._register(self)

    def __repr__(self) -> str:
        return f"<RadiusAggregator {self._source.name}.{self._field} {self._center.coords} r={self._radius}km>"

    @property
    def center(self) -> GeoPoint:
        return self._center

    @property
    def radius(self) -> float:
        return self._radius

    @property
    def field(self) -> str:
        return self._field

    @property
    def ranges(self) -> list[HashRange]:
        """Ranges of the current connection (empty until first subscribed)."""
        return list(self._ranges)

    def update(self, *, center: GeoPoint | None = None, radius: float | None = None) -> None:
        """Re-target the query; range subscriptions are rebuilt if the stream is observed."""
        if center is not None:
            self._center = GeoPoint.from_data(center)
        if radius is not None:
            self._radius = check_radius(radius)
        self.refresh()

    def refresh(self) -> None:
        self.stream.restart()

    def _connect(self, emit: Emit, fail: Fail) -> Dispose:
        settings = self._settings
        ranges = plan_ranges(
            self._center,
            self._radius,
            max_precision=settings.effective_max_precision,
            merge_adjacent=settings.planner.merge_adjacent_ranges,
        )
        self._ranges = ranges
        path = f"{self._field}.geohash"
        latest: dict[int, list[Document]] = {}
        state = {"closed": False}

        def on_range(index: int, docs: list[Document]) -> None:
            if state["closed"]:
                return
            latest[index] = docs
            if len(latest) == len(ranges):
                emit(self._merge([latest[i] for i in range(len(ranges))]))

        def on_error(exc: Exception) -> None:
            if not state["closed"]:
                fail(exc)

        subscriptions: list[Subscription] = []

        def dispose() -> None:
            state["closed"] = True
            for subscription in subscriptions:
                subscription.cancel()

        try:
            for index, hash_range in enumerate(ranges):
                ref = self._source.scoped(
                    lambda q, r=hash_range: q.range(path, r.lower, r.upper)
                )
                subscriptions.append(ref.data().subscribe(partial(on_range, index), on_error))
        except Exception:
            dispose()
            raise

        return dispose

    def _merge(self, snapshots: list[list[Document]]) -> list[Document]:
        query_settings = self._settings.query
        limit = self._radius + query_settings.distance_tolerance_km
        seen: set[str] = set()
        matches: list[tuple[float, Document]] = []

        for docs in snapshots:
            for doc in docs:
                if doc.id in seen:
                    continue
                seen.add(doc.id)
                try:
                    point = GeoPoint.from_data(doc.get(self._field))
                except (KeyError, TypeError, ValueError) as exc:
                    logger.debug("skipping %s: unreadable geo field %r (%s)", doc.id, self._field, exc)
                    continue
                distance = self._center.distance_to(point)
                if distance > limit:
                    continue
                if query_settings.include_metadata:
                    doc = doc.with_metadata(
                        distance=distance,
                        bearing=self._center.bearing(point.latitude, point.longitude),
                    )
                matches.append((distance, doc))

        if self._order_by_distance:
            matches.sort(key=lambda item: (item[0], item[1].id))
        return [doc for _, doc in matches]
