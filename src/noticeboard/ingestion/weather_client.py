"""
Weather ingestion client (OpenWeather).

This module fetches, for one coordinate:
- active government weather alerts (One Call `alerts` block)
- current conditions (`/weather`, metric units)

It does not decide what an alert means for the community; see
`noticeboard.services.weather_alerts` for turning alerts into notices.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from noticeboard.config.settings import Settings
from noticeboard.core.cache import FileCache
from noticeboard.core.http import get_json

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WeatherAlert:
    """One active alert for a location."""

    event: str
    description: str
    sender_name: str | None = None
    start_unix: int | None = None
    end_unix: int | None = None


def _int_or_none(value: Any) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def parse_alerts(payload: Any) -> list[WeatherAlert]:
    """Parse the `alerts` array of a One Call response; malformed entries are skipped."""
    if not isinstance(payload, dict):
        return []
    raw_alerts = payload.get("alerts") or []
    if not isinstance(raw_alerts, list):
        return []
    out: list[WeatherAlert] = []
    for raw in raw_alerts:
        if not isinstance(raw, dict):
            continue
        event = str(raw.get("event") or "").strip()
        if not event:
            continue
        out.append(
            WeatherAlert(
                event=event,
                description=str(raw.get("description") or "").strip(),
                sender_name=raw.get("sender_name") or None,
                start_unix=_int_or_none(raw.get("start")),
                end_unix=_int_or_none(raw.get("end")),
            )
        )
    return out


class WeatherClient:
    """Fetches and caches OpenWeather data."""

    def __init__(self, settings: Settings, cache: FileCache):
        self._settings = settings
        self._cache = cache

    def _require_api_key(self) -> str:
        api_key = self._settings.weather.api_key
        if not api_key:
            raise RuntimeError("Weather API key is not configured. Set WEATHER_API_KEY.")
        return api_key

    def _fetch_onecall(self, lat: float, lon: float) -> dict[str, Any]:
        return get_json(
            f"{self._settings.weather.base_url.rstrip('/')}/onecall",
            params={
                "lat": lat,
                "lon": lon,
                "appid": self._require_api_key(),
                "exclude": "minutely,hourly,daily",
            },
            timeout_seconds=self._settings.app.http_timeout_seconds,
        )

    def get_alerts(self, *, lat: float, lon: float) -> list[WeatherAlert]:
        """Return active alerts near (lat, lon); upstream failures yield an empty list."""
        cache_key = f"onecall:{lat:.3f}:{lon:.3f}"
        self._require_api_key()

        def builder() -> dict[str, Any]:
            logger.info("Fetching weather alerts for lat=%.4f lon=%.4f", lat, lon)
            return self._fetch_onecall(lat, lon)

        try:
            payload = self._cache.get_or_set(
                "weather",
                cache_key,
                builder,
                ttl_seconds=int(self._settings.weather.cache_ttl_seconds),
                stale_if_error=True,
            )
        except (httpx.HTTPError, ValueError):
            logger.exception("Error fetching weather alerts for lat=%.4f lon=%.4f", lat, lon)
            return []
        return parse_alerts(payload)

    def get_current(self, *, lat: float, lon: float) -> dict[str, Any] | None:
        """Return current conditions (metric), or None when the upstream call fails."""
        try:
            return get_json(
                f"{self._settings.weather.current_base_url.rstrip('/')}/weather",
                params={"lat": lat, "lon": lon, "appid": self._require_api_key(), "units": "metric"},
                timeout_seconds=self._settings.app.http_timeout_seconds,
            )
        except (httpx.HTTPError, ValueError):
            logger.exception("Error fetching weather info for lat=%.4f lon=%.4f", lat, lon)
            return None
