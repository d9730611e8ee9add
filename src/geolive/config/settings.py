"""
Application settings (Pydantic).

Settings are loaded from `src/geolive/config/defaults.yaml`, then optionally overridden by:
- an external YAML file via `GEOLIVE_CONFIG_PATH` (replaces the packaged defaults)
- environment variables (`GEOLIVE_LOG_LEVEL`, `GEOLIVE_HASH_PRECISION`, `GEOLIVE_MAX_PRECISION`)

Design rule:
- Tuning knobs (precision caps, tolerances, output shape) live in YAML, not in query code.
"""

from __future__ import annotations

import os
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field

from geolive.core.env import load_dotenv_if_present


def _read_package_yaml(filename: str) -> dict[str, Any]:
    """Read a YAML file packaged inside `geolive.config`."""
    text = resources.files("geolive.config").joinpath(filename).read_text(encoding="utf-8")
    data = yaml.safe_load(text) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {filename}; expected a mapping.")
    return data


def _read_yaml_file(path: str | Path) -> dict[str, Any]:
    """Read a YAML file from disk and return its mapping root."""
    data = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid YAML root object for {path}; expected a mapping.")
    return data


class AppSettings(BaseModel):
    name: str = "geolive"
    log_level: str = "INFO"


class GeoSettings(BaseModel):
    hash_precision: int = Field(9, ge=1, le=12)


class PlannerSettings(BaseModel):
    max_precision: int = Field(9, ge=1, le=12)
    merge_adjacent_ranges: bool = True


class QuerySettings(BaseModel):
    id_field: str = "id"
    distance_tolerance_km: float = Field(1e-9, ge=0)
    order_by_distance: bool = False
    include_metadata: bool = True


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    geo: GeoSettings = Field(default_factory=GeoSettings)
    planner: PlannerSettings = Field(default_factory=PlannerSettings)
    query: QuerySettings = Field(default_factory=QuerySettings)

    @property
    def effective_max_precision(self) -> int:
        """Planner precision cap; never finer than the hashes persisted on documents."""
        return min(self.planner.max_precision, self.geo.hash_precision)


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay selected environment variables onto raw settings payload.

    The whitelist is intentionally small; everything else goes through YAML.
    """
    load_dotenv_if_present()
    data = dict(data)

    log_level = os.getenv("GEOLIVE_LOG_LEVEL")
    if log_level:
        data.setdefault("app", {})["log_level"] = log_level

    hash_precision = os.getenv("GEOLIVE_HASH_PRECISION")
    if hash_precision:
        data.setdefault("geo", {})["hash_precision"] = int(hash_precision)

    max_precision = os.getenv("GEOLIVE_MAX_PRECISION")
    if max_precision:
        data.setdefault("planner", {})["max_precision"] = int(max_precision)

    return data


@lru_cache
def get_settings() -> Settings:
    """Load and validate settings (cached)."""
    load_dotenv_if_present()
    config_path = os.getenv("GEOLIVE_CONFIG_PATH")
    raw = _read_yaml_file(config_path) if config_path else _read_package_yaml("defaults.yaml")
    raw = _apply_env_overrides(raw)
    return Settings.model_validate(raw)


@lru_cache
def get_logging_config() -> dict[str, Any]:
    """Load logging configuration (cached)."""
    return _read_package_yaml("logging.yaml")
