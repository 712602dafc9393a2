# pytest services/maps/tests/test_traffic.py -q

import pytest

from libs.geo import Coordinate
from services.maps.traffic import simulate_traffic

pytestmark = pytest.mark.unit

CENTER = Coordinate(40.7, -73.9)


@pytest.mark.parametrize(
    "draws,level",
    [
        ((0.9, 0.0, 0.0, 0.0, 0.0), "heavy"),
        ((0.5, 0.31, 0.0, 0.0, 0.0), "moderate"),
        ((0.2, 0.3, 0.0, 0.0, 0.0), "light"),
    ],
)
def test_level_draws(sequence_random, draws, level):
    assert simulate_traffic(CENTER, 1000, sequence_random(*draws))["trafficLevel"] == level


def test_heavy_skips_second_level_draw(sequence_random):
    # heavy consumes one draw, so the next three feed the metrics
    snapshot = simulate_traffic(CENTER, 1000, sequence_random(0.9, 0.99, 0.0, 0.5))
    assert snapshot["congestionScore"] == 99
    assert snapshot["averageSpeed"] == 20
    assert snapshot["incidents"] == 2


def test_ranges_at_extremes():
    high = simulate_traffic(CENTER, 1000, lambda: 0.999999)
    assert high["congestionScore"] == 99
    assert high["averageSpeed"] == 79
    assert high["incidents"] == 4

    low = simulate_traffic(CENTER, 1000, lambda: 0.0)
    assert low["trafficLevel"] == "light"
    assert low["congestionScore"] == 0
    assert low["averageSpeed"] == 20
    assert low["incidents"] == 0


def test_echoes_area():
    snapshot = simulate_traffic(CENTER, 2500, lambda: 0.5)
    assert snapshot["coordinates"] == {"lat": 40.7, "lng": -73.9}
    assert snapshot["radius"] == 2500
