"""
Converters from raw OpenWeatherMap payloads to dashboard weather documents.
"""

from collections import Counter, OrderedDict
from datetime import datetime, timezone
from typing import Any, Dict, List

AQI_DESCRIPTIONS = ["Good", "Fair", "Moderate", "Poor", "Very Poor"]


def unit_labels(units: str, include_visibility: bool = False) -> Dict[str, str]:
    labels = {
        "temperature": "°C" if units == "metric" else "°F",
        "windSpeed": "m/s" if units == "metric" else "mph",
        "pressure": "hPa",
    }
    if include_visibility:
        labels["visibility"] = "m"
    return labels


def _iso(ts: int) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


def _condition(weather: List[Dict[str, Any]]) -> Dict[str, Any]:
    first = weather[0] if weather else {}
    return {
        "main": first.get("main"),
        "description": first.get("description"),
        "icon": first.get("icon"),
    }


def build_current_weather(payload: Dict[str, Any], units: str) -> Dict[str, Any]:
    main = payload.get("main", {})
    wind = payload.get("wind", {})
    sys_info = payload.get("sys", {})
    return {
        "location": {
            "name": payload.get("name"),
            "country": sys_info.get("country"),
            "coordinates": payload.get("coord"),
        },
        "current": {
            "temperature": main.get("temp"),
            "feelsLike": main.get("feels_like"),
            "humidity": main.get("humidity"),
            "pressure": main.get("pressure"),
            "visibility": payload.get("visibility"),
            "uvIndex": None,  # Not available in current weather endpoint
            "windSpeed": wind.get("speed"),
            "windDirection": wind.get("deg"),
            "cloudCover": payload.get("clouds", {}).get("all"),
            "condition": _condition(payload.get("weather", [])),
        },
        "sun": {
            "sunrise": _iso(sys_info["sunrise"]) if "sunrise" in sys_info else None,
            "sunset": _iso(sys_info["sunset"]) if "sunset" in sys_info else None,
        },
        "timestamp": datetime.utcnow().isoformat(),
        "units": unit_labels(units, include_visibility=True),
    }


def _hourly_entry(item: Dict[str, Any]) -> Dict[str, Any]:
    main = item.get("main", {})
    wind = item.get("wind", {})
    return {
        "time": _iso(item["dt"]),
        "temperature": main.get("temp"),
        "feelsLike": main.get("feels_like"),
        "humidity": main.get("humidity"),
        "pressure": main.get("pressure"),
        "windSpeed": wind.get("speed"),
        "windDirection": wind.get("deg"),
        "cloudCover": item.get("clouds", {}).get("all"),
        "condition": _condition(item.get("weather", [])),
        "precipitationProbability": item.get("pop", 0) * 100,
    }


def summarize_day(date: str, hourly: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Daily summary of 3-hourly forecast entries (entries must be non-empty)."""
    temps = [h["temperature"] for h in hourly]
    conditions = Counter(h["condition"]["main"] for h in hourly)
    most_common = conditions.most_common(1)[0][0]
    description = next(
        (h["condition"]["description"] for h in hourly if h["condition"]["main"] == most_common),
        None,
    )
    return {
        "date": date,
        "temperature": {
            "min": min(temps),
            "max": max(temps),
            "average": sum(temps) / len(temps),
        },
        "condition": {"main": most_common, "description": description},
        "humidity": sum(h["humidity"] for h in hourly) / len(hourly),
        "windSpeed": sum(h["windSpeed"] for h in hourly) / len(hourly),
        "precipitationProbability": max(h["precipitationProbability"] for h in hourly),
        "hourlyData": hourly,
    }


def build_forecast(payload: Dict[str, Any], units: str, days: int) -> Dict[str, Any]:
    """Group the 3-hourly list by UTC calendar day and keep the first `days` days."""
    by_day: "OrderedDict[str, List[Dict[str, Any]]]" = OrderedDict()
    for item in payload.get("list", []):
        day = datetime.fromtimestamp(item["dt"], tz=timezone.utc).date().isoformat()
        by_day.setdefault(day, []).append(_hourly_entry(item))

    city = payload.get("city", {})
    return {
        "location": {
            "name": city.get("name"),
            "country": city.get("country"),
            "coordinates": city.get("coord"),
        },
        "forecast": [summarize_day(d, h) for d, h in list(by_day.items())[:days]],
        "timestamp": datetime.utcnow().isoformat(),
        "units": unit_labels(units),
    }


def build_alerts(payload: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "location": {"coordinates": {"lat": payload.get("lat"), "lng": payload.get("lon")}},
        "alerts": [
            {
                "event": a.get("event"),
                "start": _iso(a["start"]),
                "end": _iso(a["end"]),
                "description": a.get("description"),
                "sender": a.get("sender_name"),
                "tags": a.get("tags"),
            }
            for a in payload.get("alerts") or []
        ],
        "timestamp": datetime.utcnow().isoformat(),
    }


def build_historical(
    payload: Dict[str, Any], lat: float, lng: float, dt: int, units: str
) -> Dict[str, Any]:
    entry = payload["data"][0]
    return {
        "location": {"coordinates": {"lat": lat, "lng": lng}},
        "date": _iso(dt),
        "data": {
            "temperature": entry.get("temp"),
            "feelsLike": entry.get("feels_like"),
            "humidity": entry.get("humidity"),
            "pressure": entry.get("pressure"),
            "windSpeed": entry.get("wind_speed"),
            "windDirection": entry.get("wind_deg"),
            "cloudCover": entry.get("clouds"),
            "condition": _condition(entry.get("weather", [])),
        },
        "timestamp": datetime.utcnow().isoformat(),
        "units": unit_labels(units),
    }


def build_air_quality(payload: Dict[str, Any], lat: float, lng: float) -> Dict[str, Any]:
    entry = payload["list"][0]
    aqi = entry["main"]["aqi"]
    return {
        "location": {"coordinates": {"lat": lat, "lng": lng}},
        "airQuality": {
            "index": aqi,
            "indexDescription": AQI_DESCRIPTIONS[aqi - 1] if 1 <= aqi <= 5 else None,
            "components": entry.get("components"),
        },
        "timestamp": _iso(entry["dt"]),
    }
