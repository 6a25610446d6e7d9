import math

import pytest

from noticeboard.core.geo import EARTH_RADIUS_KM, GeoPoint, distance_km, haversine_km, is_valid_point, is_within_radius


def test_distance_is_zero_for_same_point():
    assert distance_km(40.0, -74.0, 40.0, -74.0) == 0.0


def test_distance_is_symmetric():
    a = GeoPoint(lat=25.0478, lon=121.5170)
    b = GeoPoint(lat=24.1477, lon=120.6736)
    assert haversine_km(a, b) == pytest.approx(haversine_km(b, a))


def test_distance_for_nearby_points_is_about_one_point_four_km():
    d = distance_km(40.0, -74.0, 40.01, -74.01)
    assert 1.35 < d < 1.45


def test_one_degree_of_latitude():
    assert distance_km(0.0, 0.0, 1.0, 0.0) == pytest.approx(111.19, abs=0.05)


def test_antipodal_points_do_not_raise():
    assert distance_km(0.0, 0.0, 0.0, 180.0) == pytest.approx(math.pi * EARTH_RADIUS_KM, rel=1e-9)


def test_radius_boundary_is_inclusive():
    center = GeoPoint(lat=40.0, lon=-74.0)
    target = GeoPoint(lat=40.01, lon=-74.01)
    exact = haversine_km(center, target)
    assert is_within_radius(center, target, exact)
    assert not is_within_radius(center, target, exact - 1e-6)


def test_is_valid_point():
    assert is_valid_point(GeoPoint(lat=1.0, lon=2.0))
    assert not is_valid_point(None)
    assert not is_valid_point(GeoPoint(lat=float("nan"), lon=2.0))
    assert not is_valid_point(GeoPoint(lat="north", lon=2.0))  # type: ignore[arg-type]
