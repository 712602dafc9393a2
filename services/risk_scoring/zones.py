"""
Pre-seeded risk zones shown on the dashboard map.

Zones are static fixture data: the scoring engine never creates or mutates
them. They are filtered by distance at query time.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from libs.geo import Coordinate, filter_within_radius


@dataclass(frozen=True)
class RiskZone:
    id: int
    name: str
    coordinates: Coordinate
    risk: str
    risk_score: int
    accidents: int
    description: str
    factors: Dict[str, Dict[str, Any]]
    weather_impact: Dict[str, int]
    traffic_patterns: Dict[str, int]
    recommendations: List[str]
    # Minutes since the zone was last refreshed
    updated_minutes_ago: int = 0

    def to_dict(self, now: datetime) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "coordinates": self.coordinates.to_dict(),
            "risk": self.risk,
            "riskScore": self.risk_score,
            "accidents": self.accidents,
            "description": self.description,
            "factors": self.factors,
            "weatherImpact": self.weather_impact,
            "trafficPatterns": self.traffic_patterns,
            "lastUpdate": (now - timedelta(minutes=self.updated_minutes_ago)).isoformat(),
            "recommendations": list(self.recommendations),
        }


RISK_ZONES: List[RiskZone] = [
    RiskZone(
        id=1,
        name="Downtown Intersection",
        coordinates=Coordinate(lat=40.7589, lng=-73.9851),
        risk="high",
        risk_score=85,
        accidents=23,
        description="High traffic intersection with poor visibility during rain",
        factors={
            "traffic": {"level": "heavy", "score": 90},
            "weather": {"condition": "rain", "impact": 80},
            "infrastructure": {"quality": "poor", "score": 70},
            "lighting": {"quality": "poor", "score": 60},
            "visibility": {"level": "low", "score": 50},
        },
        weather_impact={"rain": 85, "snow": 90, "fog": 95, "clear": 60},
        traffic_patterns={"morning": 95, "afternoon": 85, "evening": 90, "night": 40},
        recommendations=[
            "Install additional traffic lights",
            "Improve street lighting",
            "Add weather-responsive signage",
        ],
        updated_minutes_ago=2,
    ),
    RiskZone(
        id=2,
        name="Highway 101 Exit",
        coordinates=Coordinate(lat=40.7505, lng=-73.9934),
        risk="medium",
        risk_score=65,
        accidents=12,
        description="Construction zone with frequent lane changes",
        factors={
            "traffic": {"level": "moderate", "score": 70},
            "weather": {"condition": "clear", "impact": 30},
            "infrastructure": {"quality": "construction", "score": 80},
            "lighting": {"quality": "good", "score": 85},
            "visibility": {"level": "good", "score": 80},
        },
        weather_impact={"rain": 75, "snow": 85, "fog": 70, "clear": 50},
        traffic_patterns={"morning": 80, "afternoon": 70, "evening": 75, "night": 30},
        recommendations=[
            "Improve construction zone signage",
            "Add merge warning systems",
            "Implement speed monitoring",
        ],
        updated_minutes_ago=5,
    ),
    RiskZone(
        id=3,
        name="School District Area",
        coordinates=Coordinate(lat=40.7614, lng=-73.9776),
        risk="low",
        risk_score=25,
        accidents=3,
        description="Residential area with effective traffic calming measures",
        factors={
            "traffic": {"level": "light", "score": 30},
            "weather": {"condition": "clear", "impact": 20},
            "infrastructure": {"quality": "excellent", "score": 95},
            "lighting": {"quality": "excellent", "score": 90},
            "visibility": {"level": "excellent", "score": 95},
        },
        weather_impact={"rain": 35, "snow": 45, "fog": 40, "clear": 20},
        traffic_patterns={"morning": 40, "afternoon": 45, "evening": 35, "night": 15},
        recommendations=[
            "Maintain current safety measures",
            "Regular crosswalk maintenance",
            "Continue speed monitoring",
        ],
        updated_minutes_ago=12,
    ),
    RiskZone(
        id=4,
        name="Shopping Mall Entrance",
        coordinates=Coordinate(lat=40.7282, lng=-73.9942),
        risk="high",
        risk_score=78,
        accidents=18,
        description="Busy commercial area with complex traffic patterns",
        factors={
            "traffic": {"level": "heavy", "score": 85},
            "weather": {"condition": "clear", "impact": 40},
            "infrastructure": {"quality": "fair", "score": 60},
            "lighting": {"quality": "good", "score": 75},
            "visibility": {"level": "moderate", "score": 65},
        },
        weather_impact={"rain": 85, "snow": 90, "fog": 80, "clear": 65},
        traffic_patterns={"morning": 70, "afternoon": 90, "evening": 95, "night": 45},
        recommendations=[
            "Redesign parking lot entrances",
            "Add pedestrian crossing signals",
            "Implement traffic flow optimization",
        ],
        updated_minutes_ago=1,
    ),
    RiskZone(
        id=5,
        name="Bridge Approach",
        coordinates=Coordinate(lat=40.7831, lng=-73.9712),
        risk="medium",
        risk_score=55,
        accidents=8,
        description="Bridge entrance susceptible to weather conditions",
        factors={
            "traffic": {"level": "moderate", "score": 60},
            "weather": {"condition": "windy", "impact": 70},
            "infrastructure": {"quality": "good", "score": 80},
            "lighting": {"quality": "good", "score": 80},
            "visibility": {"level": "variable", "score": 60},
        },
        weather_impact={"rain": 70, "snow": 85, "fog": 90, "clear": 40},
        traffic_patterns={"morning": 75, "afternoon": 65, "evening": 70, "night": 25},
        recommendations=[
            "Install wind speed monitoring",
            "Add weather warning systems",
            "Improve bridge lighting",
        ],
        updated_minutes_ago=8,
    ),
]


def find_zones(
    center: Optional[Coordinate] = None,
    radius_m: int = 5000,
    zones: Optional[List[RiskZone]] = None,
) -> List[RiskZone]:
    """All zones, or those within radius_m meters of center (inclusive)."""
    zones = RISK_ZONES if zones is None else zones
    if center is None:
        return list(zones)
    return filter_within_radius(zones, center, radius_m / 1000, key=lambda z: z.coordinates)


def summarize_zones(zones: List[RiskZone]) -> Dict[str, Any]:
    total = len(zones)
    return {
        "total": total,
        "highRisk": sum(1 for z in zones if z.risk == "high"),
        "mediumRisk": sum(1 for z in zones if z.risk == "medium"),
        "lowRisk": sum(1 for z in zones if z.risk == "low"),
        "averageRiskScore": (sum(z.risk_score for z in zones) / total) if total else 0,
    }
