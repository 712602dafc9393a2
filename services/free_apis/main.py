# Run:
# uvicorn services.free_apis.main:app --host 0.0.0.0 --port 20004 --reload
# Docs: http://127.0.0.1:20004/docs

import logging
from datetime import datetime
from typing import Optional

from fastapi import Depends, HTTPException, Query, status

from common.constants import FREE_APIS_CACHE_TTL
from common.errors import SafeCityError
from common.weather_codes import describe_weather_code
from libs.cache import TTLCache, build_cache, cache_key
from libs.fastapi_service import FastAPIServiceFactory, ServiceAppConfig
from libs.geo import Coordinate, nearest
from libs.validation import (
    validate_address,
    validate_city,
    validate_coordinates,
    validate_radius,
)
from services.free_apis.open_meteo_client import OpenMeteoClient, get_open_meteo_client
from services.free_apis.osm_client import (
    NominatimClient,
    OverpassClient,
    get_nominatim_client,
    get_overpass_client,
)

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

factory = FastAPIServiceFactory(
    ServiceAppConfig(
        title="Free APIs Service",
        description="Key-less weather, geocoding and places APIs (Open-Meteo, OpenStreetMap).",
        service_name="free_apis",
    )
)
app = factory.create_app()

FREE_APIS_CACHE_HITS_TOTAL = factory.add_business_metric(
    "free_apis_cache_hits_total",
    "Responses served from cache",
    ["endpoint"],
)

_cache = build_cache("free_apis", FREE_APIS_CACHE_TTL)


def get_cache() -> TTLCache:
    return _cache


def _cached(cache: TTLCache, key: str, endpoint: str) -> Optional[dict]:
    value = cache.get(key)
    if value is None:
        return None
    FREE_APIS_CACHE_HITS_TOTAL.labels(endpoint=endpoint).inc()
    return {**value, "cached": True}


@app.get("/v1/free/weather/current")
async def free_weather_current(
    lat: Optional[str] = Query(None),
    lng: Optional[str] = Query(None),
    city: Optional[str] = Query(None),
    cache: TTLCache = Depends(get_cache),
    client: OpenMeteoClient = Depends(get_open_meteo_client),
):
    """Current weather from Open-Meteo for coordinates or a city name."""
    try:
        if lat and lng:
            coord = validate_coordinates(lat, lng)
        elif city:
            results = await client.search_locations(validate_city(city), count=1)
            if not results:
                raise HTTPException(
                    status_code=status.HTTP_404_NOT_FOUND, detail="City not found"
                )
            coord = Coordinate(lat=results[0]["latitude"], lng=results[0]["longitude"])
        else:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Either coordinates (lat, lng) or city parameter is required",
            )

        key = cache_key("free_weather", coord.lat, coord.lng)
        cached = _cached(cache, key, "weather_current")
        if cached:
            return cached

        data = await client.get_forecast(coord.lat, coord.lng)
        current = data["current_weather"]
        hourly = data.get("hourly", {})

        result = {
            "location": {
                "name": city or f"{coord.lat}, {coord.lng}",
                "coordinates": coord.to_dict(),
            },
            "current": {
                "temperature": current.get("temperature"),
                "windSpeed": current.get("windspeed"),
                "windDirection": current.get("winddirection"),
                "weatherCode": current.get("weathercode"),
                "condition": describe_weather_code(current.get("weathercode")),
                "time": current.get("time"),
            },
            "hourly": {
                "temperature": hourly.get("temperature_2m", [])[:24],
                "humidity": hourly.get("relative_humidity_2m", [])[:24],
                "windSpeed": hourly.get("wind_speed_10m", [])[:24],
                "windDirection": hourly.get("wind_direction_10m", [])[:24],
            },
            "timestamp": datetime.utcnow().isoformat(),
            "source": "Open-Meteo (Free)",
            "units": {"temperature": "°C", "windSpeed": "km/h"},
        }
        cache.set(key, result)
        return result

    except (HTTPException, SafeCityError):
        raise
    except Exception as e:
        logger.error(f"Free weather API error: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch weather data",
        )


@app.get("/v1/free/geocode")
async def free_geocode(
    address: Optional[str] = Query(None),
    cache: TTLCache = Depends(get_cache),
    client: OpenMeteoClient = Depends(get_open_meteo_client),
):
    """Forward geocoding through Open-Meteo (up to 5 matches)."""
    try:
        if not address:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Address parameter is required",
            )
        query = validate_address(address)

        key = cache_key("free_geocode", query)
        cached = _cached(cache, key, "geocode")
        if cached:
            return cached

        results = await client.search_locations(query, count=5)
        if not results:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="Address not found"
            )

        result = {
            "query": query,
            "results": [
                {
                    "name": r.get("name"),
                    "country": r.get("country"),
                    "coordinates": {"lat": r.get("latitude"), "lng": r.get("longitude")},
                    "admin1": r.get("admin1"),
                    "admin2": r.get("admin2"),
                    "timezone": r.get("timezone"),
                }
                for r in results
            ],
            "source": "Open-Meteo Geocoding (Free)",
            "timestamp": datetime.utcnow().isoformat(),
        }
        cache.set(key, result)
        return result

    except (HTTPException, SafeCityError):
        raise
    except Exception as e:
        logger.error(f"Free geocoding error: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to geocode address",
        )


@app.get("/v1/free/reverse-geocode")
async def free_reverse_geocode(
    lat: Optional[str] = Query(None),
    lng: Optional[str] = Query(None),
    cache: TTLCache = Depends(get_cache),
    client: NominatimClient = Depends(get_nominatim_client),
):
    """Reverse geocoding through Nominatim."""
    try:
        if not lat or not lng:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Latitude and longitude parameters are required",
            )
        coord = validate_coordinates(lat, lng)

        key = cache_key("free_reverse", coord.lat, coord.lng)
        cached = _cached(cache, key, "reverse_geocode")
        if cached:
            return cached

        data = await client.reverse(coord.lat, coord.lng)
        address = data.get("address") or {}

        result = {
            "coordinates": coord.to_dict(),
            "address": data.get("display_name"),
            "details": {
                "house_number": address.get("house_number"),
                "road": address.get("road"),
                "city": address.get("city") or address.get("town") or address.get("village"),
                "state": address.get("state"),
                "country": address.get("country"),
                "postcode": address.get("postcode"),
            },
            "source": "Nominatim (OpenStreetMap - Free)",
            "timestamp": datetime.utcnow().isoformat(),
        }
        cache.set(key, result)
        return result

    except (HTTPException, SafeCityError):
        raise
    except Exception as e:
        logger.error(f"Free reverse geocoding error: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to reverse geocode coordinates",
        )


def _element_coordinate(element: dict) -> Optional[Coordinate]:
    center = element.get("center") or {}
    lat = element.get("lat", center.get("lat"))
    lng = element.get("lon", center.get("lon"))
    if lat is None or lng is None:
        return None
    return Coordinate(lat=lat, lng=lng)


@app.get("/v1/free/places/nearby")
async def free_places_nearby(
    lat: Optional[str] = Query(None),
    lng: Optional[str] = Query(None),
    radius: str = Query("1000"),
    type: str = Query("amenity", description="OSM tag key, e.g. amenity, shop"),
    cache: TTLCache = Depends(get_cache),
    client: OverpassClient = Depends(get_overpass_client),
):
    """Nearby OSM places, closest first, at most 20."""
    try:
        if not lat or not lng:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Latitude and longitude parameters are required",
            )
        coord = validate_coordinates(lat, lng)
        radius_m = validate_radius(radius)

        key = cache_key("free_places", coord.lat, coord.lng, radius_m, type)
        cached = _cached(cache, key, "places_nearby")
        if cached:
            return cached

        elements = await client.find_nearby(coord.lat, coord.lng, radius_m, type)
        ranked = nearest(elements, coord, key=_element_coordinate)

        places = []
        for element, distance in ranked:
            tags = element.get("tags") or {}
            places.append(
                {
                    "id": element.get("id"),
                    "name": tags.get("name", "Unnamed"),
                    "type": tags.get(type),
                    "coordinates": _element_coordinate(element).to_dict(),
                    "tags": tags,
                    "distance": distance,
                }
            )

        result = {
            "query": {"lat": coord.lat, "lng": coord.lng, "radius": radius_m, "type": type},
            "places": places,
            "source": "Overpass API (OpenStreetMap - Free)",
            "timestamp": datetime.utcnow().isoformat(),
        }
        cache.set(key, result)
        return result

    except (HTTPException, SafeCityError):
        raise
    except Exception as e:
        logger.error(f"Free places search error: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to search nearby places",
        )
