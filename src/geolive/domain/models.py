"""
Domain models (Pydantic).

These types are the contract between the store, the query layer and callers:
- `Document`: one stored record as observed through a snapshot (id + fields).
- `SeedDocument` / `GeoInput`: the JSON shape the CLI loads into an in-memory store.

Documents are frozen: the query layer never mutates what the store hands out; it derives
new copies (e.g. `with_metadata`) instead.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def get_path(fields: dict[str, Any], path: str, default: Any = None) -> Any:
    """Look up a dotted path (`"pos.geohash"`) in nested mappings."""
    current: Any = fields
    for part in path.split("."):
        if not isinstance(current, dict) or part not in current:
            return default
        current = current[part]
    return current


class Document(BaseModel):
    """A stored record: unique id within its collection plus arbitrary fields."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    fields: dict[str, Any] = Field(default_factory=dict)
    metadata: dict[str, Any] = Field(default_factory=dict)

    def get(self, path: str, default: Any = None) -> Any:
        return get_path(self.fields, path, default)

    def with_metadata(self, **values: Any) -> Document:
        return self.model_copy(update={"metadata": {**self.metadata, **values}})

    def to_dict(self, id_field: str = "id", *, include_metadata: bool = True) -> dict[str, Any]:
        """Flatten to `{id_field: id, **fields}` (plus `queryMetadata` when present)."""
        out: dict[str, Any] = {id_field: self.id, **self.fields}
        if include_metadata and self.metadata:
            out["queryMetadata"] = dict(self.metadata)
        return out


class GeoInput(BaseModel):
    """A coordinate in a seed file; expanded into the persisted geo field shape on load."""

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class SeedDocument(BaseModel):
    """One document in a JSON seed file."""

    id: str = Field(..., min_length=1)
    fields: dict[str, Any] = Field(default_factory=dict)
    geo: dict[str, GeoInput] = Field(default_factory=dict)
