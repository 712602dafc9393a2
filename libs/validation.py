"""
Request input validators.

Every validator raises common.errors.ValidationError with a message that can be
shown to the caller as-is.
"""

import math
from datetime import datetime
from typing import Any, Optional

from common.constants import MAX_PREDICTION_HOURS
from common.errors import ValidationError
from libs.geo import Coordinate


def _to_float(value: Any, field: str, label: str) -> float:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{label} is required", field=field)
    if isinstance(value, bool):
        raise ValidationError(f"{label} must be a number", field=field)
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{label} must be a number", field=field)
    if not math.isfinite(number):
        raise ValidationError(f"{label} must be a number", field=field)
    return number


def validate_coordinates(lat: Any, lng: Any) -> Coordinate:
    """
    Validate a latitude/longitude pair.

    Args:
        lat: Latitude (number or numeric string), must be within [-90, 90]
        lng: Longitude (number or numeric string), must be within [-180, 180]

    Returns:
        Coordinate

    Raises:
        ValidationError: If either value is missing, not numeric or out of range
    """
    latitude = _to_float(lat, "lat", "Latitude")
    longitude = _to_float(lng, "lng", "Longitude")
    if not -90 <= latitude <= 90:
        raise ValidationError("Latitude must be between -90 and 90", field="lat")
    if not -180 <= longitude <= 180:
        raise ValidationError("Longitude must be between -180 and 180", field="lng")
    return Coordinate(lat=latitude, lng=longitude)


def parse_coordinate_pair(value: str) -> Coordinate:
    """Parse and validate a 'lat,lng' string."""
    parts = (value or "").split(",")
    if len(parts) != 2:
        raise ValidationError(
            "Invalid coordinate format. Expected 'lat,lng'", field="coordinates"
        )
    return validate_coordinates(parts[0].strip(), parts[1].strip())


def _validate_length(value: Optional[str], field: str, label: str, low: int, high: int) -> str:
    if value is None:
        raise ValidationError(f"{label} is required", field=field)
    text = value.strip()
    if len(text) < low:
        raise ValidationError(f"{label} must be at least {low} characters", field=field)
    if len(text) > high:
        raise ValidationError(f"{label} must not exceed {high} characters", field=field)
    return text


def validate_city(city: Optional[str]) -> str:
    return _validate_length(city, "city", "City name", 2, 100)


def validate_address(address: Optional[str]) -> str:
    return _validate_length(address, "address", "Address", 5, 200)


def validate_radius(radius: Any) -> int:
    """Radius in meters, 100..50000."""
    meters = _to_float(radius, "radius", "Radius")
    if meters < 100:
        raise ValidationError("Radius must be at least 100 meters", field="radius")
    if meters > 50000:
        raise ValidationError("Radius must not exceed 50000 meters", field="radius")
    return int(meters)


def validate_date(value: Optional[str]) -> datetime:
    if not value:
        raise ValidationError("Date is required", field="date")
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise ValidationError("Date must be in ISO format", field="date")


def validate_hours(hours: Any) -> int:
    value = _to_float(hours, "hours", "Hours")
    if value != int(value) or not 1 <= value <= MAX_PREDICTION_HOURS:
        raise ValidationError(
            f"Hours must be an integer between 1 and {MAX_PREDICTION_HOURS}",
            field="hours",
        )
    return int(value)
