# Run:
# uvicorn services.maps.main:app --host 0.0.0.0 --port 20002 --reload
# Docs: http://127.0.0.1:20002/docs

import logging
import random
import re
from typing import Any, Callable, Dict, Optional

from fastapi import Depends, HTTPException, Query, status

from common.constants import TRAFFIC_CACHE_TTL
from common.errors import SafeCityError
from libs.cache import TTLCache, build_cache, cache_key
from libs.config import Config
from libs.fastapi_service import FastAPIServiceFactory, ServiceAppConfig
from libs.validation import validate_address, validate_coordinates, validate_radius
from services.maps.google_maps_client import GoogleMapsClient, get_google_maps_client
from services.maps.traffic import simulate_traffic

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

HTML_TAG_RE = re.compile(r"<[^>]*>")


def _health_details():
    enabled = get_google_maps_client()._is_enabled()
    return {"google_maps": "enabled" if enabled else "disabled"}


factory = FastAPIServiceFactory(
    ServiceAppConfig(
        title="Maps Service",
        description="Google Maps proxy: geocoding, places, directions, traffic, static maps.",
        service_name="maps",
        health_details=_health_details,
    )
)
app = factory.create_app()

MAPS_CACHE_HITS_TOTAL = factory.add_business_metric(
    "maps_cache_hits_total",
    "Maps responses served from cache",
    ["endpoint"],
)

_cache = build_cache("maps", Config.MAPS_CACHE_TTL)


def get_cache() -> TTLCache:
    return _cache


def get_random_source() -> Callable[[], float]:
    return random.random


def _cached(cache: TTLCache, key: str, endpoint: str) -> Optional[dict]:
    value = cache.get(key)
    if value is None:
        return None
    MAPS_CACHE_HITS_TOTAL.labels(endpoint=endpoint).inc()
    return {**value, "cached": True}


def _require_enabled(client: GoogleMapsClient):
    if not client._is_enabled():
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Google Maps is not configured. Please set GOOGLE_MAPS_API_KEY environment variable.",
        )


def _require_ok(payload: Dict[str, Any], error: str):
    """Google reports failures in the body; anything but OK is a client error."""
    if payload.get("status") != "OK":
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": error, "details": payload.get("status")},
        )


def _require_coordinates(lat: Optional[str], lng: Optional[str]):
    if not lat or not lng:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Latitude and longitude parameters are required",
        )
    return validate_coordinates(lat, lng)


def strip_html(text: str) -> str:
    return HTML_TAG_RE.sub("", text or "")


@app.get("/v1/maps/geocode")
async def geocode(
    address: Optional[str] = Query(None),
    cache: TTLCache = Depends(get_cache),
    client: GoogleMapsClient = Depends(get_google_maps_client),
):
    try:
        if not address:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Address parameter is required",
            )
        query = validate_address(address)

        key = cache_key("geocode", query)
        cached = _cached(cache, key, "geocode")
        if cached:
            return cached

        _require_enabled(client)
        payload = await client.geocode(query)
        _require_ok(payload, "Geocoding failed")

        first = payload["results"][0]
        result = {
            "address": first.get("formatted_address"),
            "coordinates": first["geometry"]["location"],
            "placeId": first.get("place_id"),
            "types": first.get("types", []),
        }
        cache.set(key, result)
        return result

    except (HTTPException, SafeCityError):
        raise
    except Exception as e:
        logger.error(f"Geocoding error: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to geocode address",
        )


@app.get("/v1/maps/reverse-geocode")
async def reverse_geocode(
    lat: Optional[str] = Query(None),
    lng: Optional[str] = Query(None),
    cache: TTLCache = Depends(get_cache),
    client: GoogleMapsClient = Depends(get_google_maps_client),
):
    try:
        coord = _require_coordinates(lat, lng)

        key = cache_key("reverse_geocode", coord.lat, coord.lng)
        cached = _cached(cache, key, "reverse_geocode")
        if cached:
            return cached

        _require_enabled(client)
        payload = await client.reverse_geocode(coord.lat, coord.lng)
        _require_ok(payload, "Reverse geocoding failed")

        first = payload["results"][0]
        result = {
            "coordinates": coord.to_dict(),
            "address": first.get("formatted_address"),
            "placeId": first.get("place_id"),
            "addressComponents": first.get("address_components", []),
        }
        cache.set(key, result)
        return result

    except (HTTPException, SafeCityError):
        raise
    except Exception as e:
        logger.error(f"Reverse geocoding error: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to reverse geocode coordinates",
        )


@app.get("/v1/maps/places/nearby")
async def places_nearby(
    lat: Optional[str] = Query(None),
    lng: Optional[str] = Query(None),
    radius: str = Query("1000"),
    type: str = Query("point_of_interest"),
    cache: TTLCache = Depends(get_cache),
    client: GoogleMapsClient = Depends(get_google_maps_client),
):
    try:
        coord = _require_coordinates(lat, lng)
        radius_m = validate_radius(radius)

        key = cache_key("nearby", coord.lat, coord.lng, radius_m, type)
        cached = _cached(cache, key, "places_nearby")
        if cached:
            return cached

        _require_enabled(client)
        payload = await client.nearby_places(coord.lat, coord.lng, radius_m, type)
        _require_ok(payload, "Places search failed")

        result = {
            "places": [
                {
                    "placeId": place.get("place_id"),
                    "name": place.get("name"),
                    "coordinates": place.get("geometry", {}).get("location"),
                    "rating": place.get("rating"),
                    "types": place.get("types", []),
                    "vicinity": place.get("vicinity"),
                    "priceLevel": place.get("price_level"),
                    "openNow": (place.get("opening_hours") or {}).get("open_now"),
                }
                for place in payload.get("results", [])
            ],
            "nextPageToken": payload.get("next_page_token"),
        }
        cache.set(key, result)
        return result

    except (HTTPException, SafeCityError):
        raise
    except Exception as e:
        logger.error(f"Places search error: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to search nearby places",
        )


@app.get("/v1/maps/directions")
async def directions(
    origin: Optional[str] = Query(None),
    destination: Optional[str] = Query(None),
    mode: str = Query("driving"),
    cache: TTLCache = Depends(get_cache),
    client: GoogleMapsClient = Depends(get_google_maps_client),
):
    """First route, first leg; step instructions with HTML removed."""
    try:
        if not origin or not destination:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Origin and destination parameters are required",
            )

        key = cache_key("directions", origin, destination, mode)
        cached = _cached(cache, key, "directions")
        if cached:
            return cached

        _require_enabled(client)
        payload = await client.directions(origin, destination, mode)
        _require_ok(payload, "Directions request failed")

        route = payload["routes"][0]
        leg = route["legs"][0]
        result = {
            "distance": leg.get("distance"),
            "duration": leg.get("duration"),
            "startAddress": leg.get("start_address"),
            "endAddress": leg.get("end_address"),
            "steps": [
                {
                    "instruction": strip_html(step.get("html_instructions")),
                    "distance": step.get("distance"),
                    "duration": step.get("duration"),
                    "startLocation": step.get("start_location"),
                    "endLocation": step.get("end_location"),
                }
                for step in leg.get("steps", [])
            ],
            "polyline": route.get("overview_polyline", {}).get("points"),
        }
        cache.set(key, result)
        return result

    except (HTTPException, SafeCityError):
        raise
    except Exception as e:
        logger.error(f"Directions error: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get directions",
        )


@app.get("/v1/maps/traffic")
async def traffic(
    lat: Optional[str] = Query(None),
    lng: Optional[str] = Query(None),
    radius: str = Query("5000"),
    cache: TTLCache = Depends(get_cache),
    random_source: Callable[[], float] = Depends(get_random_source),
):
    """Simulated traffic snapshot for an area."""
    try:
        coord = _require_coordinates(lat, lng)
        radius_m = validate_radius(radius)

        key = cache_key("traffic", coord.lat, coord.lng, radius_m)
        cached = _cached(cache, key, "traffic")
        if cached:
            return cached

        result = simulate_traffic(coord, radius_m, random_source)
        cache.set(key, result, ttl=TRAFFIC_CACHE_TTL)
        return result

    except (HTTPException, SafeCityError):
        raise
    except Exception as e:
        logger.error(f"Traffic data error: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to get traffic information",
        )


@app.get("/v1/maps/static-map")
async def static_map(
    center: Optional[str] = Query(None),
    zoom: int = Query(13, ge=0, le=21),
    size: str = Query("600x400"),
    maptype: str = Query("roadmap"),
    markers: Optional[str] = Query(None),
    client: GoogleMapsClient = Depends(get_google_maps_client),
):
    if not center:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Center parameter is required",
        )

    parameters = {
        "center": center,
        "zoom": zoom,
        "size": size,
        "maptype": maptype,
        "markers": markers,
    }
    return {"url": client.static_map_url(parameters), "parameters": parameters}
