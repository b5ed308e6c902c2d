"""Tests for the great-circle leg estimator."""

import pytest

from route_timeline.adapters.routing import estimate_leg, haversine_m
from route_timeline.models.common import Geo

BERLIN = Geo(lat=52.52, lon=13.405)
DRESDEN = Geo(lat=51.0504, lon=13.7373)


def test_haversine_same_point_is_zero() -> None:
    assert haversine_m(52.52, 13.405, 52.52, 13.405) == 0.0


def test_haversine_berlin_dresden() -> None:
    distance = haversine_m(BERLIN.lat, BERLIN.lon, DRESDEN.lat, DRESDEN.lon)

    assert distance == pytest.approx(165_000, rel=0.02)


def test_estimate_uses_average_speed() -> None:
    estimate = estimate_leg(BERLIN, DRESDEN, avg_speed_kmh=100)

    assert estimate.distance_meters == pytest.approx(165_000, rel=0.02)
    # 100 km/h covers 1 km in 36 s
    assert estimate.duration_seconds == pytest.approx(estimate.distance_meters * 0.036, abs=1)


def test_estimate_defaults_to_configured_speed() -> None:
    fast = estimate_leg(BERLIN, DRESDEN, avg_speed_kmh=140)
    default = estimate_leg(BERLIN, DRESDEN)

    assert default.duration_seconds == pytest.approx(2 * fast.duration_seconds, abs=2)


@pytest.mark.parametrize("a,b", [(None, DRESDEN), (BERLIN, None), (None, None)])
def test_unknown_position_gives_zero(a: Geo | None, b: Geo | None) -> None:
    estimate = estimate_leg(a, b)

    assert (estimate.distance_meters, estimate.duration_seconds) == (0, 0)
