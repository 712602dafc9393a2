# Run:
# uvicorn services.weather.main:app --host 0.0.0.0 --port 20001 --reload
# Docs: http://127.0.0.1:20001/docs

import logging
from datetime import datetime
from typing import Literal, Optional, Tuple

from fastapi import Depends, HTTPException, Query, status

from common.constants import WEATHER_ALERTS_TTL, WEATHER_HISTORICAL_TTL
from common.errors import SafeCityError, UpstreamUnavailableError
from libs.cache import TTLCache, build_cache, cache_key
from libs.config import Config
from libs.fastapi_service import FastAPIServiceFactory, ServiceAppConfig
from libs.validation import validate_city, validate_coordinates, validate_date
from services.weather.forecast import (
    build_air_quality,
    build_alerts,
    build_current_weather,
    build_forecast,
    build_historical,
)
from services.weather.openweather_client import OpenWeatherClient, get_openweather_client

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def _health_details():
    enabled = get_openweather_client()._is_enabled()
    return {"openweathermap": "enabled" if enabled else "disabled"}


factory = FastAPIServiceFactory(
    ServiceAppConfig(
        title="Weather Service",
        description="OpenWeatherMap proxy: current, forecast, alerts, history, air quality.",
        service_name="weather",
        health_details=_health_details,
    )
)
app = factory.create_app()

WEATHER_CACHE_HITS_TOTAL = factory.add_business_metric(
    "weather_cache_hits_total",
    "Weather responses served from cache",
    ["endpoint"],
)

_cache = build_cache("weather", Config.WEATHER_CACHE_TTL)

Units = Literal["metric", "imperial", "standard"]


def get_cache() -> TTLCache:
    return _cache


def _cached(cache: TTLCache, key: str, endpoint: str) -> Optional[dict]:
    value = cache.get(key)
    if value is None:
        return None
    WEATHER_CACHE_HITS_TOTAL.labels(endpoint=endpoint).inc()
    return {**value, "cached": True}


def _require_enabled(client: OpenWeatherClient):
    if not client._is_enabled():
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="OpenWeatherMap is not configured. Please set OPENWEATHER_API_KEY environment variable.",
        )


def _resolve_location(
    lat: Optional[str], lng: Optional[str], city: Optional[str]
) -> Tuple[dict, str]:
    """
    Turn lat/lng or city query params into OpenWeatherMap location params.

    Returns:
        (params, cache key fragment)
    """
    if lat and lng:
        coord = validate_coordinates(lat, lng)
        return {"lat": coord.lat, "lon": coord.lng}, f"{coord.lat}_{coord.lng}"
    if city:
        name = validate_city(city)
        return {"q": name}, name
    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail="Either coordinates (lat, lng) or city parameter is required",
    )


def _require_coordinates(lat: Optional[str], lng: Optional[str]):
    if not lat or not lng:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Latitude and longitude parameters are required",
        )
    return validate_coordinates(lat, lng)


@app.get("/v1/weather/current")
async def current_weather(
    lat: Optional[str] = Query(None),
    lng: Optional[str] = Query(None),
    city: Optional[str] = Query(None),
    units: Units = Query("metric"),
    cache: TTLCache = Depends(get_cache),
    client: OpenWeatherClient = Depends(get_openweather_client),
):
    try:
        location, fragment = _resolve_location(lat, lng, city)
        key = cache_key("current_weather", fragment, units)
        cached = _cached(cache, key, "current")
        if cached:
            return cached

        _require_enabled(client)
        payload = await client.get_current(location, units=units)
        result = build_current_weather(payload, units)
        cache.set(key, result)
        return result

    except (HTTPException, SafeCityError):
        raise
    except Exception as e:
        logger.error(f"Current weather error: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch current weather data",
        )


@app.get("/v1/weather/forecast")
async def weather_forecast(
    lat: Optional[str] = Query(None),
    lng: Optional[str] = Query(None),
    city: Optional[str] = Query(None),
    units: Units = Query("metric"),
    days: int = Query(5, ge=1, le=5),
    cache: TTLCache = Depends(get_cache),
    client: OpenWeatherClient = Depends(get_openweather_client),
):
    """Daily summaries built from the 3-hourly forecast."""
    try:
        location, fragment = _resolve_location(lat, lng, city)
        key = cache_key("forecast", fragment, units, days)
        cached = _cached(cache, key, "forecast")
        if cached:
            return cached

        _require_enabled(client)
        payload = await client.get_forecast(location, units=units)
        result = build_forecast(payload, units, days)
        cache.set(key, result)
        return result

    except (HTTPException, SafeCityError):
        raise
    except Exception as e:
        logger.error(f"Forecast error: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch weather forecast",
        )


@app.get("/v1/weather/alerts")
async def weather_alerts(
    lat: Optional[str] = Query(None),
    lng: Optional[str] = Query(None),
    city: Optional[str] = Query(None),
    cache: TTLCache = Depends(get_cache),
    client: OpenWeatherClient = Depends(get_openweather_client),
):
    """
    Active weather alerts (One Call 3.0).

    One Call needs a separate subscription, so any failure other than 404
    degrades to an empty alert list with a note.
    """
    location, fragment = _resolve_location(lat, lng, city)
    key = cache_key("alerts", fragment)
    cached = _cached(cache, key, "alerts")
    if cached:
        return cached

    _require_enabled(client)
    try:
        payload = await client.get_onecall(location)
    except UpstreamUnavailableError as e:
        if e.is_not_found:
            raise
        logger.warning(f"Weather alerts unavailable: {e}")
        return {
            "location": {"coordinates": {"lat": location.get("lat"), "lng": location.get("lon")}},
            "alerts": [],
            "timestamp": datetime.utcnow().isoformat(),
            "note": "Weather alerts require One Call API subscription",
        }

    result = build_alerts(payload)
    cache.set(key, result, ttl=WEATHER_ALERTS_TTL)
    return result


@app.get("/v1/weather/historical")
async def weather_historical(
    lat: Optional[str] = Query(None),
    lng: Optional[str] = Query(None),
    date: Optional[str] = Query(None, description="ISO-8601 date or datetime"),
    units: Units = Query("metric"),
    cache: TTLCache = Depends(get_cache),
    client: OpenWeatherClient = Depends(get_openweather_client),
):
    try:
        if not lat or not lng or not date:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Latitude, longitude, and date parameters are required",
            )
        coord = validate_coordinates(lat, lng)
        timestamp = int(validate_date(date).timestamp())

        key = cache_key("historical", coord.lat, coord.lng, timestamp, units)
        cached = _cached(cache, key, "historical")
        if cached:
            return cached

        _require_enabled(client)
        payload = await client.get_timemachine(coord.lat, coord.lng, timestamp, units=units)
        result = build_historical(payload, coord.lat, coord.lng, timestamp, units)
        cache.set(key, result, ttl=WEATHER_HISTORICAL_TTL)
        return result

    except (HTTPException, SafeCityError):
        raise
    except Exception as e:
        logger.error(f"Historical weather error: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch historical weather data",
        )


@app.get("/v1/weather/air-quality")
async def air_quality(
    lat: Optional[str] = Query(None),
    lng: Optional[str] = Query(None),
    cache: TTLCache = Depends(get_cache),
    client: OpenWeatherClient = Depends(get_openweather_client),
):
    try:
        coord = _require_coordinates(lat, lng)
        key = cache_key("air_quality", coord.lat, coord.lng)
        cached = _cached(cache, key, "air_quality")
        if cached:
            return cached

        _require_enabled(client)
        payload = await client.get_air_pollution(coord.lat, coord.lng)
        result = build_air_quality(payload, coord.lat, coord.lng)
        cache.set(key, result)
        return result

    except (HTTPException, SafeCityError):
        raise
    except Exception as e:
        logger.error(f"Air quality error: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch air quality data",
        )
