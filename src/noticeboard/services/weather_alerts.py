"""
Weather alerts -> community notices.

For a user's location, every active weather alert is published as an `alert` notice
authored by the weather system account, with a priority derived from the alert's event
name (keyword lists live in `weather.priorities` in the settings YAML).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from noticeboard.config.settings import Settings, WeatherAlertPriorities
from noticeboard.domain.models import Location, Notice, NoticeCreate, Priority
from noticeboard.ingestion.weather_client import WeatherAlert, WeatherClient
from noticeboard.services.community import CommunityService
from noticeboard.services.notifications import NotificationPayload, notice_notification

logger = logging.getLogger(__name__)


def alert_priority(event: str, priorities: WeatherAlertPriorities) -> Priority:
    """Map an alert event name to a notice priority (first matching tier wins)."""
    event_lower = event.lower()
    if any(k in event_lower for k in priorities.emergency):
        return "emergency"
    if any(k in event_lower for k in priorities.high):
        return "high"
    if any(k in event_lower for k in priorities.medium):
        return "medium"
    return "low"


def alert_notice(alert: WeatherAlert, *, latitude: float, longitude: float, settings: Settings) -> NoticeCreate:
    cfg = settings.weather
    return NoticeCreate(
        author_id=cfg.author_id,
        author_name=cfg.author_name,
        type="alert",
        title=f"Weather Alert: {alert.event}",
        description=alert.description,
        location=Location(latitude=latitude, longitude=longitude, address=cfg.address_label),
        priority=alert_priority(alert.event, cfg.priorities),
    )


@dataclass(frozen=True)
class PublishedAlert:
    notice: Notice
    notification: NotificationPayload


class WeatherAlertPublisher:
    def __init__(self, service: CommunityService, client: WeatherClient, settings: Settings):
        self._service = service
        self._client = client
        self._settings = settings

    def publish(self, *, latitude: float, longitude: float) -> list[PublishedAlert]:
        """Create one notice per active alert at (latitude, longitude)."""
        alerts = self._client.get_alerts(lat=latitude, lon=longitude)
        published: list[PublishedAlert] = []
        for alert in alerts:
            notice = self._service.create_notice(
                alert_notice(alert, latitude=latitude, longitude=longitude, settings=self._settings)
            )
            published.append(PublishedAlert(notice=notice, notification=notice_notification(notice)))
        if published:
            logger.info("Published %d weather alert notice(s) at %.4f,%.4f", len(published), latitude, longitude)
        return published
