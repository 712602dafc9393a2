"""
Risk Scoring Engine - heuristic accident-risk score for a location.

The score is the sum of four independent, individually capped contributions:

    weather      0-40   condition severity + wind/visibility penalties
    traffic      0-30   congestion level
    time of day  0-25   rush hours and night
    situational  0-10   construction, school zone, hospital, shopping area

The sum is clamped to [0, 100] and bucketed into high (>=70), medium (>=40)
or low. Any input may be absent; an absent input contributes nothing and
lowers the reported confidence.

This module is pure: no I/O, no caching, no ambient randomness. Prediction
takes its random source as a parameter.
"""

import math
import random
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional

from common.constants import HIGH_RISK_THRESHOLD, MEDIUM_RISK_THRESHOLD
from common.errors import ValidationError
from common.weather_codes import describe_weather_code
from libs.geo import Coordinate
from libs.validation import validate_coordinates


class _ParsableEnum(str, Enum):
    @classmethod
    def parse(cls, value: Any):
        """Case-insensitive lookup; unrecognised labels map to UNKNOWN."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.UNKNOWN


class WeatherCondition(_ParsableEnum):
    CLEAR = "clear"
    CLOUDS = "clouds"
    RAIN = "rain"
    SNOW = "snow"
    FOG = "fog"
    THUNDERSTORM = "thunderstorm"
    UNKNOWN = "unknown"


class CongestionLevel(_ParsableEnum):
    LIGHT = "light"
    MODERATE = "moderate"
    HEAVY = "heavy"
    SEVERE = "severe"
    UNKNOWN = "unknown"


class TimeOfDay(_ParsableEnum):
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"
    NIGHT = "night"
    UNKNOWN = "unknown"


class RiskLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# ========= Weight tables =========

WEATHER_SEVERITY: Dict[WeatherCondition, int] = {
    WeatherCondition.CLEAR: 5,
    WeatherCondition.CLOUDS: 10,
    WeatherCondition.RAIN: 25,
    WeatherCondition.SNOW: 35,
    WeatherCondition.FOG: 30,
    WeatherCondition.THUNDERSTORM: 40,
    WeatherCondition.UNKNOWN: 15,
}

CONGESTION_WEIGHTS: Dict[CongestionLevel, int] = {
    CongestionLevel.LIGHT: 5,
    CongestionLevel.MODERATE: 15,
    CongestionLevel.HEAVY: 25,
    CongestionLevel.SEVERE: 30,
    CongestionLevel.UNKNOWN: 10,
}

# Night (25) is above the nominal 20-point ceiling of this table. Kept as-is.
TIME_OF_DAY_WEIGHTS: Dict[TimeOfDay, int] = {
    TimeOfDay.MORNING: 15,  # Rush hour
    TimeOfDay.AFTERNOON: 10,
    TimeOfDay.EVENING: 18,  # Peak rush hour
    TimeOfDay.NIGHT: 25,  # Reduced visibility
    TimeOfDay.UNKNOWN: 10,
}

FACTOR_WEIGHTS: Dict[str, int] = {
    "construction": 5,
    "school_zone": -3,  # Lower speed limits
    "hospital_nearby": 2,  # Emergency vehicles
    "shopping_area": 4,  # Pedestrians
}

WEATHER_CAP = 40
FACTORS_CAP = 10
WIND_SPEED_THRESHOLD_MS = 15
WIND_PENALTY = 10
VISIBILITY_THRESHOLD_M = 1000
VISIBILITY_PENALTY = 15

BASE_CONFIDENCE = 50
MAX_CONFIDENCE = 95


def _check_exhaustive(table: Mapping, enum_cls) -> None:
    missing = set(enum_cls) - set(table)
    if missing:
        raise RuntimeError(
            f"{enum_cls.__name__} weight table missing: {sorted(m.value for m in missing)}"
        )


_check_exhaustive(WEATHER_SEVERITY, WeatherCondition)
_check_exhaustive(CONGESTION_WEIGHTS, CongestionLevel)
_check_exhaustive(TIME_OF_DAY_WEIGHTS, TimeOfDay)


# ========= Inputs =========


@dataclass
class WeatherObservation:
    """Current weather at the location. wind_speed in m/s, visibility in meters."""

    condition: Optional[WeatherCondition] = None
    wind_speed: Optional[float] = None
    visibility: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "WeatherObservation":
        condition = data.get("condition")
        return cls(
            condition=WeatherCondition.parse(condition) if condition else None,
            wind_speed=data.get("windSpeed", data.get("wind_speed")),
            visibility=data.get("visibility"),
        )

    @classmethod
    def from_openweather(cls, payload: Mapping[str, Any]) -> "WeatherObservation":
        """Build from an OpenWeatherMap /weather response (metric units)."""
        weather = (payload.get("weather") or [{}])[0]
        main = weather.get("main")
        return cls(
            condition=WeatherCondition.parse(main) if main else None,
            wind_speed=(payload.get("wind") or {}).get("speed"),
            visibility=payload.get("visibility"),
        )

    @classmethod
    def from_open_meteo(cls, current_weather: Mapping[str, Any]) -> "WeatherObservation":
        """Build from Open-Meteo `current_weather` (wind in km/h, no visibility)."""
        if not isinstance(current_weather, Mapping):
            raise ValueError(f"Open-Meteo current_weather is not an object: {current_weather!r}")
        code = current_weather.get("weathercode")
        windspeed = current_weather.get("windspeed")
        return cls(
            condition=(
                WeatherCondition.parse(describe_weather_code(code)["main"])
                if code is not None
                else None
            ),
            wind_speed=windspeed / 3.6 if windspeed is not None else None,
        )


@dataclass
class TrafficObservation:
    congestion_level: Optional[CongestionLevel] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "TrafficObservation":
        level = data.get("congestionLevel", data.get("congestion_level"))
        return cls(congestion_level=CongestionLevel.parse(level) if level else None)


@dataclass
class SituationalFactors:
    construction: bool = False
    school_zone: bool = False
    hospital_nearby: bool = False
    shopping_area: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SituationalFactors":
        return cls(
            construction=bool(data.get("construction")),
            school_zone=bool(data.get("schoolZone", data.get("school_zone"))),
            hospital_nearby=bool(data.get("hospitalNearby", data.get("hospital_nearby"))),
            shopping_area=bool(data.get("shoppingArea", data.get("shopping_area"))),
        )

    def to_dict(self) -> Dict[str, bool]:
        return {
            "construction": self.construction,
            "schoolZone": self.school_zone,
            "hospitalNearby": self.hospital_nearby,
            "shoppingArea": self.shopping_area,
        }


# ========= Outputs =========


@dataclass
class Contribution:
    """Points from one input: `raw` before capping, `points` added to the total."""

    raw: int
    points: int
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"score": self.raw, "contribution": self.points, **self.details}


@dataclass
class RiskAssessment:
    coordinates: Coordinate
    risk_score: int
    risk_level: RiskLevel
    risk_factors: Dict[str, Contribution]
    recommendations: List[str]
    confidence: int
    timestamp: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "coordinates": self.coordinates.to_dict(),
            "riskScore": self.risk_score,
            "riskLevel": self.risk_level.value,
            "riskFactors": {k: v.to_dict() for k, v in self.risk_factors.items()},
            "recommendations": list(self.recommendations),
            "confidence": self.confidence,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class RiskPrediction:
    time: datetime
    risk_score: int
    risk_level: RiskLevel
    factors: Dict[str, str]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "time": self.time.isoformat(),
            "riskScore": self.risk_score,
            "riskLevel": self.risk_level.value,
            "factors": dict(self.factors),
        }


# ========= Contributions =========


def weather_contribution(weather: WeatherObservation) -> Contribution:
    raw = WEATHER_SEVERITY[weather.condition] if weather.condition is not None else 0
    if weather.wind_speed is not None and weather.wind_speed > WIND_SPEED_THRESHOLD_MS:
        raw += WIND_PENALTY
    if weather.visibility is not None and weather.visibility < VISIBILITY_THRESHOLD_M:
        raw += VISIBILITY_PENALTY
    details = {
        "condition": weather.condition.value if weather.condition else None,
        "impact": "high",
    }
    return Contribution(raw=raw, points=min(raw, WEATHER_CAP), details=details)


def traffic_contribution(traffic: TrafficObservation) -> Contribution:
    level = traffic.congestion_level
    raw = CONGESTION_WEIGHTS[level] if level is not None else 0
    return Contribution(raw=raw, points=raw, details={"level": level.value if level else None})


def time_of_day_contribution(time_of_day: TimeOfDay) -> Contribution:
    raw = TIME_OF_DAY_WEIGHTS[time_of_day]
    return Contribution(raw=raw, points=raw, details={"period": time_of_day.value})


def situational_contribution(factors: SituationalFactors) -> Contribution:
    raw = sum(
        weight for name, weight in FACTOR_WEIGHTS.items() if getattr(factors, name)
    )
    points = max(0, min(raw, FACTORS_CAP))
    return Contribution(raw=raw, points=points, details={"factors": factors.to_dict()})


def risk_level_for(score: float) -> RiskLevel:
    if score >= HIGH_RISK_THRESHOLD:
        return RiskLevel.HIGH
    if score >= MEDIUM_RISK_THRESHOLD:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def generate_recommendations(
    risk_score: int, risk_factors: Mapping[str, Contribution]
) -> List[str]:
    recommendations = []

    if risk_score >= HIGH_RISK_THRESHOLD:
        recommendations.append("Avoid this area if possible")
        recommendations.append("Use alternative routes")

    weather = risk_factors.get("weather")
    if weather and weather.points > 20:
        recommendations.append("Reduce speed due to weather conditions")
        recommendations.append("Increase following distance")

    traffic = risk_factors.get("traffic")
    if traffic and traffic.points > 20:
        recommendations.append("Expect delays and heavy traffic")
        recommendations.append("Consider using public transportation")

    time_of_day = risk_factors.get("timeOfDay")
    if time_of_day and time_of_day.points > 15:
        recommendations.append("Exercise extra caution during peak hours")

    if not recommendations:
        recommendations.append("Normal driving conditions expected")

    return recommendations


def calculate_confidence(
    weather: Optional[WeatherObservation],
    traffic: Optional[TrafficObservation],
    factors: Optional[SituationalFactors],
) -> int:
    confidence = BASE_CONFIDENCE
    if weather is not None:
        confidence += 20
    if traffic is not None:
        confidence += 20
    if factors is not None:
        confidence += 10
    return min(confidence, MAX_CONFIDENCE)


def assess_risk(
    coordinates: Optional[Coordinate],
    weather: Optional[WeatherObservation] = None,
    traffic: Optional[TrafficObservation] = None,
    time_of_day: Optional[TimeOfDay] = None,
    factors: Optional[SituationalFactors] = None,
    now: Optional[datetime] = None,
) -> RiskAssessment:
    """
    Score the accident risk at a location.

    Args:
        coordinates: Location being assessed (required)
        weather: Current weather, if known
        traffic: Current congestion, if known
        time_of_day: Time-of-day bucket, if known
        factors: Situational flags, if known
        now: Timestamp to stamp on the assessment (defaults to utcnow)

    Returns:
        RiskAssessment with score in [0, 100]

    Raises:
        ValidationError: If coordinates are missing or out of range
    """
    if coordinates is None:
        raise ValidationError("Coordinates are required", field="coordinates")
    validate_coordinates(coordinates.lat, coordinates.lng)

    risk_factors: Dict[str, Contribution] = {}
    if weather is not None:
        risk_factors["weather"] = weather_contribution(weather)
    if traffic is not None:
        risk_factors["traffic"] = traffic_contribution(traffic)
    if time_of_day is not None:
        risk_factors["timeOfDay"] = time_of_day_contribution(time_of_day)
    if factors is not None:
        risk_factors["additional"] = situational_contribution(factors)

    total = sum(c.points for c in risk_factors.values())
    risk_score = max(0, min(total, 100))

    return RiskAssessment(
        coordinates=coordinates,
        risk_score=risk_score,
        risk_level=risk_level_for(risk_score),
        risk_factors=risk_factors,
        recommendations=generate_recommendations(risk_score, risk_factors),
        confidence=calculate_confidence(weather, traffic, factors),
        timestamp=now or datetime.utcnow(),
    )


# ========= Time-windowed prediction =========


def base_risk_for_hour(hour: int) -> int:
    if 7 <= hour <= 9:
        return 70  # Morning rush
    if 17 <= hour <= 19:
        return 80  # Evening rush
    if hour >= 22 or hour <= 5:
        return 45  # Night
    return 30


def time_of_day_for_hour(hour: int) -> TimeOfDay:
    if 5 <= hour <= 11:
        return TimeOfDay.MORNING
    if 12 <= hour <= 16:
        return TimeOfDay.AFTERNOON
    if 17 <= hour <= 20:
        return TimeOfDay.EVENING
    return TimeOfDay.NIGHT


def _prediction_factors(hour: int) -> Dict[str, str]:
    rush = 7 <= hour <= 9 or 17 <= hour <= 19
    return {
        "traffic": "heavy" if rush else "moderate",
        "weather": "clear",
        "visibility": "reduced" if hour >= 22 or hour <= 6 else "good",
    }


def predict_risk_window(
    coordinates: Optional[Coordinate],
    hours: int,
    random_source: Callable[[], float] = random.random,
    start: Optional[datetime] = None,
) -> List[RiskPrediction]:
    """
    Predict risk for each of the next `hours` hours.

    Each hour gets the base risk for its hour of day, shifted by
    (random_source() - 0.5) * 20, i.e. uniformly within [-10, +10] when the
    source is uniform on [0, 1). A source that always returns 0.5 yields the
    bare base table.

    Args:
        coordinates: Location being predicted (required)
        hours: Number of hourly predictions, starting one hour after `start`
        random_source: Callable returning floats in [0, 1)
        start: Reference time (defaults to local now)

    Returns:
        List of RiskPrediction, one per hour
    """
    if coordinates is None:
        raise ValidationError("Coordinates are required", field="coordinates")
    validate_coordinates(coordinates.lat, coordinates.lng)

    start = start or datetime.now()
    predictions = []
    for i in range(1, hours + 1):
        at = start + timedelta(hours=i)
        variation = (random_source() - 0.5) * 20
        score = max(0.0, min(100.0, base_risk_for_hour(at.hour) + variation))
        risk_score = int(math.floor(score + 0.5))
        predictions.append(
            RiskPrediction(
                time=at,
                risk_score=risk_score,
                risk_level=risk_level_for(risk_score),
                factors=_prediction_factors(at.hour),
            )
        )
    return predictions


def summarize_predictions(predictions: List[RiskPrediction]) -> Dict[str, Any]:
    if not predictions:
        return {"averageRisk": 0, "peakRiskTime": None, "safestTime": None}
    peak = max(predictions, key=lambda p: p.risk_score)
    safest = min(predictions, key=lambda p: p.risk_score)
    return {
        "averageRisk": sum(p.risk_score for p in predictions) / len(predictions),
        "peakRiskTime": peak.to_dict(),
        "safestTime": safest.to_dict(),
    }
