"""
WMO weather interpretation codes as returned by Open-Meteo.
"""

from typing import Dict

WMO_WEATHER_CODES: Dict[int, Dict[str, str]] = {
    0: {"main": "Clear", "description": "Clear sky"},
    1: {"main": "Clouds", "description": "Mainly clear"},
    2: {"main": "Clouds", "description": "Partly cloudy"},
    3: {"main": "Clouds", "description": "Overcast"},
    45: {"main": "Fog", "description": "Fog"},
    48: {"main": "Fog", "description": "Depositing rime fog"},
    51: {"main": "Drizzle", "description": "Light drizzle"},
    53: {"main": "Drizzle", "description": "Moderate drizzle"},
    55: {"main": "Drizzle", "description": "Dense drizzle"},
    61: {"main": "Rain", "description": "Slight rain"},
    63: {"main": "Rain", "description": "Moderate rain"},
    65: {"main": "Rain", "description": "Heavy rain"},
    71: {"main": "Snow", "description": "Slight snow fall"},
    73: {"main": "Snow", "description": "Moderate snow fall"},
    75: {"main": "Snow", "description": "Heavy snow fall"},
    95: {"main": "Thunderstorm", "description": "Thunderstorm"},
}

UNKNOWN_WEATHER = {"main": "Unknown", "description": "Unknown weather condition"}


def describe_weather_code(code) -> Dict[str, str]:
    """Map a WMO code to {main, description}; unknown codes get a fallback."""
    try:
        return dict(WMO_WEATHER_CODES.get(int(code), UNKNOWN_WEATHER))
    except (TypeError, ValueError):
        return dict(UNKNOWN_WEATHER)
