# src/noticeboard/config/settings.py
"""
Application settings (Pydantic).

Settings are loaded from `src/noticeboard/config/defaults.yaml`, then optionally overridden by:
- environment variables (e.g., `FIREBASE_DATABASE_URL`, `NOTICEBOARD_BACKEND`)
- an external YAML file via `NOTICEBOARD_CONFIG_PATH`

Design rule:
- Tuning knobs (radius defaults, alert keywords, timeouts) live in YAML, not in business logic.
"""

from __future__ import annotations

import os
from functools import lru_cache
from importlib import resources
from pathlib import Path
from typing import Any, Literal
from noticeboard.core.env import load_dotenv_if_present

import yaml
from pydantic import BaseModel, Field


def _read_package_yaml(filename: str) -> dict[str, Any]:
    """Read a YAML file packaged inside `noticeboard.config`."""
    text = resources.files("noticeboard.config").joinpath(filename).read_text(encoding="utf-8")
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
    name: str = "Noticeboard"
    http_timeout_seconds: float = 15
    log_level: str = "INFO"


class BackendSettings(BaseModel):
    kind: Literal["memory", "firebase"] = "memory"
    database_url: str | None = None
    auth_token: str | None = None


class StorageSettings(BaseModel):
    kind: Literal["local", "firebase"] = "local"
    bucket: str | None = None
    local_dir: str = ".cache/noticeboard/blobs"
    public_base_url: str | None = None
    upload_base_url: str = "https://firebasestorage.googleapis.com/v0/b"


class ProximitySettings(BaseModel):
    default_radius_km: float = Field(10.0, gt=0)


class CacheSettings(BaseModel):
    enabled: bool = True
    dir: str = ".cache/noticeboard"
    default_ttl_seconds: int = 60 * 60


class WeatherAlertPriorities(BaseModel):
    emergency: list[str] = Field(default_factory=lambda: ["tornado", "hurricane", "flood", "wildfire"])
    high: list[str] = Field(default_factory=lambda: ["severe thunderstorm", "winter storm", "heat wave"])
    medium: list[str] = Field(default_factory=lambda: ["rain", "snow", "wind"])


class WeatherSettings(BaseModel):
    base_url: str = "https://api.openweathermap.org/data/3.0"
    current_base_url: str = "https://api.openweathermap.org/data/2.5"
    api_key: str | None = None
    cache_ttl_seconds: int = 15 * 60
    author_id: str = "weather-system"
    author_name: str = "Weather Alert System"
    address_label: str = "Your Area"
    priorities: WeatherAlertPriorities = Field(default_factory=WeatherAlertPriorities)


class ApiSettings(BaseModel):
    stream_keepalive_seconds: float = Field(15.0, gt=0)


class Settings(BaseModel):
    app: AppSettings = Field(default_factory=AppSettings)
    backend: BackendSettings = Field(default_factory=BackendSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    proximity: ProximitySettings = Field(default_factory=ProximitySettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    weather: WeatherSettings = Field(default_factory=WeatherSettings)
    api: ApiSettings = Field(default_factory=ApiSettings)


def _apply_env_overrides(data: dict[str, Any]) -> dict[str, Any]:
    """Overlay selected environment variables onto raw settings payload.

    Note: We intentionally keep this whitelist small to avoid exposing unsafe overrides.
    """
    load_dotenv_if_present()
    data = dict(data)

    log_level = os.getenv("NOTICEBOARD_LOG_LEVEL")
    if log_level:
        data.setdefault("app", {})["log_level"] = log_level

    backend_kind = os.getenv("NOTICEBOARD_BACKEND")
    if backend_kind:
        data.setdefault("backend", {})["kind"] = backend_kind

    database_url = os.getenv("FIREBASE_DATABASE_URL")
    if database_url:
        data.setdefault("backend", {})["database_url"] = database_url

    auth_token = os.getenv("FIREBASE_AUTH_TOKEN")
    if auth_token:
        data.setdefault("backend", {})["auth_token"] = auth_token

    bucket = os.getenv("FIREBASE_STORAGE_BUCKET")
    if bucket:
        storage = data.setdefault("storage", {})
        storage["bucket"] = bucket
        storage["kind"] = "firebase"

    blob_dir = os.getenv("NOTICEBOARD_BLOB_DIR")
    if blob_dir:
        data.setdefault("storage", {})["local_dir"] = blob_dir

    cache_dir = os.getenv("NOTICEBOARD_CACHE_DIR")
    if cache_dir:
        data.setdefault("cache", {})["dir"] = cache_dir

    weather_key = os.getenv("WEATHER_API_KEY")
    if weather_key:
        data.setdefault("weather", {})["api_key"] = weather_key

    return data


@lru_cache
def get_settings() -> Settings:
    """Load and validate settings (cached)."""
    load_dotenv_if_present()
    config_path = os.getenv("NOTICEBOARD_CONFIG_PATH")
    raw = _read_yaml_file(config_path) if config_path else _read_package_yaml("defaults.yaml")
    raw = _apply_env_overrides(raw)
    return Settings.model_validate(raw)


@lru_cache
def get_logging_config() -> dict[str, Any]:
    """Load logging configuration (cached)."""
    return _read_package_yaml("logging.yaml")
