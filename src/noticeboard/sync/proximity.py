"""
Proximity filter.

One rule, used by every notice/room read and by every live-feed recomputation:
- no origin (or an origin with NaN/non-numeric coordinates) means "show everything",
- otherwise keep only items that have a location within `radius_km` of the origin
  (boundary inclusive); items without a location are dropped.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, TypeVar

from noticeboard.core.geo import GeoPoint, is_valid_point, is_within_radius

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_RADIUS_KM = 10.0


def location_point(item: object) -> GeoPoint | None:
    """Default location accessor for entities carrying an optional `Location`."""
    location = getattr(item, "location", None)
    if location is None:
        return None
    return GeoPoint(lat=location.latitude, lon=location.longitude)


def filter_by_proximity(
    items: Iterable[T],
    origin: GeoPoint | None = None,
    radius_km: float | None = None,
    *,
    location_of: Callable[[T], GeoPoint | None] = location_point,
) -> list[T]:
    """Return the items within `radius_km` of `origin`, or all items when origin is absent."""
    items = list(items)
    if origin is None:
        return items
    if not is_valid_point(origin):
        logger.debug("Ignoring malformed origin %r; returning unfiltered items", origin)
        return items

    radius = DEFAULT_RADIUS_KM if radius_km is None else float(radius_km)
    kept: list[T] = []
    for item in items:
        point = location_of(item)
        if not is_valid_point(point):
            continue
        if is_within_radius(origin, point, radius):
            kept.append(item)
    return kept
