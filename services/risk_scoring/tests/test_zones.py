# pytest services/risk_scoring/tests/test_zones.py -q

from datetime import datetime

import pytest

from libs.geo import Coordinate, compute_distance_km
from services.risk_scoring.zones import RISK_ZONES, find_zones, summarize_zones

pytestmark = pytest.mark.unit

DOWNTOWN = Coordinate(40.7589, -73.9851)


def test_no_center_returns_every_zone():
    assert find_zones() == RISK_ZONES


def test_radius_filter_is_inclusive():
    assert [z.name for z in find_zones(DOWNTOWN, 0)] == ["Downtown Intersection"]


def test_radius_filter_excludes_beyond():
    highway = RISK_ZONES[1]
    radius_m = int(compute_distance_km(DOWNTOWN, highway.coordinates) * 1000) - 1
    names = [z.name for z in find_zones(DOWNTOWN, radius_m)]
    assert "Downtown Intersection" in names
    assert highway.name not in names


def test_far_center_matches_nothing():
    assert find_zones(Coordinate(51.5, -0.12), 50000) == []


def test_summary_counts_levels():
    summary = summarize_zones(RISK_ZONES)
    assert summary["total"] == 5
    assert summary["highRisk"] + summary["mediumRisk"] + summary["lowRisk"] == 5
    assert summary["averageRiskScore"] == pytest.approx(61.6)


def test_summary_of_nothing():
    assert summarize_zones([]) == {
        "total": 0,
        "highRisk": 0,
        "mediumRisk": 0,
        "lowRisk": 0,
        "averageRiskScore": 0,
    }


def test_last_update_is_relative_to_now():
    now = datetime(2025, 1, 15, 12, 0)
    zone = RISK_ZONES[0].to_dict(now)
    assert zone["lastUpdate"] < now.isoformat()
    assert zone["risk"] == "high"
