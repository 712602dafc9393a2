"""
Geospatial helpers: great-circle distance and proximity filtering.
"""

import math
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, TypeVar

from common.constants import EARTH_RADIUS_KM, NEAREST_PLACES_LIMIT

T = TypeVar("T")


@dataclass(frozen=True)
class Coordinate:
    """A WGS84 point. Construct through libs.validation.validate_coordinates."""

    lat: float
    lng: float

    def to_dict(self) -> dict:
        return {"lat": self.lat, "lng": self.lng}


def compute_distance_km(a: Coordinate, b: Coordinate) -> float:
    """
    Great-circle distance between two coordinates using the Haversine formula.

    Args:
        a: First coordinate
        b: Second coordinate

    Returns:
        Distance in kilometers (Earth radius 6371 km)
    """
    d_lat = math.radians(b.lat - a.lat)
    d_lng = math.radians(b.lng - a.lng)
    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(a.lat))
        * math.cos(math.radians(b.lat))
        * math.sin(d_lng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return EARTH_RADIUS_KM * c


def filter_within_radius(
    items: Iterable[T],
    center: Coordinate,
    radius_km: float,
    key: Callable[[T], Coordinate],
) -> List[T]:
    """Keep items whose coordinate lies within radius_km of center (inclusive)."""
    return [item for item in items if compute_distance_km(center, key(item)) <= radius_km]


def nearest(
    items: Iterable[T],
    center: Coordinate,
    key: Callable[[T], Optional[Coordinate]],
    limit: int = NEAREST_PLACES_LIMIT,
) -> List[tuple]:
    """
    Rank items by distance to center.

    Items whose key returns None are dropped. Ties keep input order.

    Returns:
        List of (item, distance_km) tuples, closest first, at most `limit` long
    """
    ranked = []
    for item in items:
        coord = key(item)
        if coord is None:
            continue
        ranked.append((item, compute_distance_km(center, coord)))
    ranked.sort(key=lambda pair: pair[1])
    return ranked[:limit]
