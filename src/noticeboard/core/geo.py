from __future__ import annotations
from dataclasses import dataclass
from math import asin, cos, isnan, radians, sin, sqrt
from typing import Any

"""
Geospatial helpers.

We keep a tiny geometry layer here so the proximity filter can do distance calculations
without pulling in heavier GIS dependencies.
"""

EARTH_RADIUS_KM = 6371.0


@dataclass(frozen=True)
class GeoPoint:
    """A latitude/longitude pair in decimal degrees."""

    lat: float
    lon: float


def distance_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute great-circle (Haversine) distance in kilometers.

    NaN in any coordinate propagates to a NaN result; callers guard with `is_valid_point`.
    """
    phi1 = radians(lat1)
    phi2 = radians(lat2)
    dlat = radians(lat2 - lat1)
    dlon = radians(lon2 - lon1)

    h = sin(dlat / 2) ** 2 + cos(phi1) * cos(phi2) * sin(dlon / 2) ** 2
    # Rounding can push h a hair above 1 for antipodal points.
    return 2 * EARTH_RADIUS_KM * asin(sqrt(min(1.0, h)))


def haversine_km(a: GeoPoint, b: GeoPoint) -> float:
    return distance_km(a.lat, a.lon, b.lat, b.lon)


def is_within_radius(center: GeoPoint, target: GeoPoint, radius_km: float) -> bool:
    """True when `target` lies within `radius_km` of `center` (boundary inclusive)."""
    return haversine_km(center, target) <= radius_km


def is_valid_point(point: Any) -> bool:
    """True for a GeoPoint-like value whose coordinates are real, non-NaN numbers."""
    if point is None:
        return False
    try:
        lat = float(point.lat)
        lon = float(point.lon)
    except (AttributeError, TypeError, ValueError):
        return False
    return not (isnan(lat) or isnan(lon))
