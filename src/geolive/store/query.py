"""
Query definitions.

A `Query` is an immutable description of "which documents of a collection, in what
order, how many". Builder methods return new values, so a definition can be shared,
compared and swapped as a whole but never patched in place.

`matches()` / `apply()` evaluate a query against plain field mappings; the in-memory
store uses them, and they document the semantics a real store adapter must provide:
- a filter on a missing field never matches;
- comparing values of incompatible types never matches;
- documents without an `order_by` field are excluded from the result.
"""

from __future__ import annotations

import operator
from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace
from typing import Any, Literal

from geolive.domain.models import Document, get_path

Operator = Literal["==", "!=", "<", "<=", ">", ">=", "in", "not-in", "array-contains"]

_MISSING: Any = object()

_COMPARATORS: dict[str, Callable[[Any, Any], bool]] = {
    "==": operator.eq,
    "!=": operator.ne,
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "in": lambda value, options: value in options,
    "not-in": lambda value, options: value not in options,
    "array-contains": lambda value, item: isinstance(value, (list, tuple)) and item in value,
}


@dataclass(frozen=True)
class FieldFilter:
    field: str
    op: Operator
    value: Any

    def __post_init__(self) -> None:
        if not self.field:
            raise ValueError("filter field must be a non-empty path")
        if self.op not in _COMPARATORS:
            raise ValueError(f"Unsupported operator {self.op!r}; expected one of {sorted(_COMPARATORS)}")
        if self.op in {"in", "not-in"} and not isinstance(self.value, (list, tuple, set, frozenset)):
            raise ValueError(f"'{self.op}' filters need a list of values")

    def matches(self, fields: dict[str, Any]) -> bool:
        actual = get_path(fields, self.field, _MISSING)
        if actual is _MISSING:
            return False
        try:
            return bool(_COMPARATORS[self.op](actual, self.value))
        except TypeError:
            return False


@dataclass(frozen=True)
class OrderBy:
    field: str
    descending: bool = False


@dataclass(frozen=True)
class Query:
    collection: str
    filters: tuple[FieldFilter, ...] = ()
    orders: tuple[OrderBy, ...] = ()
    limit_count: int | None = None

    def __post_init__(self) -> None:
        if not self.collection:
            raise ValueError("collection name must be non-empty")

    def where(self, field: str, op: Operator, value: Any) -> Query:
        return replace(self, filters=(*self.filters, FieldFilter(field, op, value)))

    def order_by(self, field: str, *, descending: bool = False) -> Query:
        return replace(self, orders=(*self.orders, OrderBy(field, descending)))

    def limit(self, count: int) -> Query:
        if int(count) < 1:
            raise ValueError("limit must be >= 1")
        return replace(self, limit_count=int(count))

    def range(self, field: str, lower: str, upper: str) -> Query:
        """Order by `field` and keep values in the closed interval [lower, upper]."""
        return self.order_by(field).where(field, ">=", lower).where(field, "<=", upper)

    def matches(self, fields: dict[str, Any]) -> bool:
        if not all(f.matches(fields) for f in self.filters):
            return False
        return all(get_path(fields, o.field, _MISSING) is not _MISSING for o in self.orders)

    def apply(self, documents: Iterable[Document]) -> list[Document]:
        """Filter, order (ties broken by id) and limit `documents`."""
        selected = sorted((d for d in documents if self.matches(d.fields)), key=lambda d: d.id)
        # Stable sorts applied from the last clause to the first give multi-key ordering.
        for order in reversed(self.orders):
            selected.sort(key=lambda d, f=order.field: _sort_key(d.get(f)), reverse=order.descending)
        if self.limit_count is not None:
            selected = selected[: self.limit_count]
        return selected


def _sort_key(value: Any) -> tuple[int, Any]:
    # Group by type first so mixed-type fields still sort deterministically.
    if isinstance(value, bool):
        return (1, value)
    if isinstance(value, (int, float)):
        return (2, value)
    if isinstance(value, str):
        return (3, value)
    return (4, repr(value))
