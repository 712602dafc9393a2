"""
Simulated area traffic.

There is no live traffic feed; congestion is drawn from an injectable random
source so callers and tests control it.
"""

import random
from datetime import datetime
from typing import Any, Callable, Dict

from libs.geo import Coordinate


def simulate_traffic(
    coordinate: Coordinate,
    radius: int,
    random_source: Callable[[], float] = random.random,
) -> Dict[str, Any]:
    """
    Produce a traffic snapshot for an area.

    Level draw: heavy with p=0.5, otherwise moderate with p=0.7, else light.

    Args:
        coordinate: Area center
        radius: Area radius in meters
        random_source: Callable returning floats in [0, 1)

    Returns:
        Dict with trafficLevel, congestionScore (0-99), averageSpeed (20-79 km/h)
        and incidents (0-4)
    """
    if random_source() > 0.5:
        level = "heavy"
    elif random_source() > 0.3:
        level = "moderate"
    else:
        level = "light"

    return {
        "coordinates": coordinate.to_dict(),
        "radius": radius,
        "trafficLevel": level,
        "congestionScore": int(random_source() * 100),
        "averageSpeed": int(random_source() * 60) + 20,
        "incidents": int(random_source() * 5),
        "timestamp": datetime.utcnow().isoformat(),
    }
