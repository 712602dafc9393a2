"""
Application-wide constants for SafeCity backend.

This module contains all shared constants used across the application.
"""

# ========= Service Configuration =========
# Service configuration: service_name -> (module_path, port)
SERVICES = {
    "weather": ("services.weather.main", 20001),
    "maps": ("services.maps.main", 20002),
    "risk_scoring": ("services.risk_scoring.main", 20003),
    "free_apis": ("services.free_apis.main", 20004),
}

# ========= Upstream Providers =========
GOOGLE_MAPS_BASE_URL = "https://maps.googleapis.com/maps/api"
OPEN_METEO_BASE_URL = "https://api.open-meteo.com/v1"
OPEN_METEO_GEOCODING_URL = "https://geocoding-api.open-meteo.com/v1"
NOMINATIM_BASE_URL = "https://nominatim.openstreetmap.org"
OVERPASS_URL = "https://overpass-api.de/api/interpreter"

# Nominatim usage policy requires an identifying User-Agent
NOMINATIM_USER_AGENT = "SmartCityDashboard/1.0"

# Upstream request timeout (seconds)
UPSTREAM_TIMEOUT = 10.0

# ========= Cache Configuration =========
# Default TTLs in seconds
RISK_CACHE_TTL = 300  # 5 minutes
WEATHER_ALERTS_TTL = 300
WEATHER_HISTORICAL_TTL = 86400  # 24 hours
TRAFFIC_CACHE_TTL = 300
FREE_APIS_CACHE_TTL = 600

# ========= Geo Configuration =========
EARTH_RADIUS_KM = 6371.0
NEAREST_PLACES_LIMIT = 20

# ========= Risk Scoring =========
HIGH_RISK_THRESHOLD = 70
MEDIUM_RISK_THRESHOLD = 40
DEFAULT_PREDICTION_HOURS = 6
MAX_PREDICTION_HOURS = 48
