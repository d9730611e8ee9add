"""
Exception types raised by geolive.

Every concrete error also derives from the closest builtin (`ValueError` for bad input,
`RuntimeError` for store failures) so callers that only know the builtins still catch them.
"""

from __future__ import annotations


class GeoLiveError(Exception):
    """Base class for all geolive errors."""


class InvalidCoordinate(GeoLiveError, ValueError):
    """Latitude outside [-90, 90] or longitude outside [-180, 180] (or not a number)."""


class InvalidRadius(GeoLiveError, ValueError):
    """Negative or non-numeric search radius."""


class InvalidGeohash(GeoLiveError, ValueError):
    """Empty geohash or a character outside the base-32 alphabet."""


class StoreError(GeoLiveError, RuntimeError):
    """A document store operation or subscription failed."""


class DocumentNotFound(StoreError):
    """A write targeted a document that does not exist."""

    def __init__(self, collection: str, doc_id: str) -> None:
        super().__init__(f"Document '{doc_id}' not found in collection '{collection}'.")
        self.collection = collection
        self.doc_id = doc_id
