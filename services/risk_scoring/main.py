# Run:
# uvicorn services.risk_scoring.main:app --host 0.0.0.0 --port 20003 --reload
# Docs: http://127.0.0.1:20003/docs

import logging
import random
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from fastapi import Depends, HTTPException, Query, status
from pydantic import BaseModel

from common.constants import DEFAULT_PREDICTION_HOURS, RISK_CACHE_TTL
from common.errors import SafeCityError, UpstreamUnavailableError, ValidationError
from libs.cache import TTLCache, build_cache, cache_key
from libs.fastapi_service import FastAPIServiceFactory, ServiceAppConfig
from libs.geo import Coordinate
from libs.validation import validate_coordinates, validate_hours, validate_radius
from services.free_apis.open_meteo_client import OpenMeteoClient, get_open_meteo_client
from services.maps.traffic import simulate_traffic
from services.risk_scoring.scoring import (
    CongestionLevel,
    RiskAssessment,
    SituationalFactors,
    TimeOfDay,
    TrafficObservation,
    WeatherObservation,
    assess_risk,
    predict_risk_window,
    summarize_predictions,
    time_of_day_for_hour,
)
from services.risk_scoring.zones import find_zones, summarize_zones

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

factory = FastAPIServiceFactory(
    ServiceAppConfig(
        title="Risk Scoring Service",
        description="Accident-risk zones, on-demand assessments and hourly predictions.",
        service_name="risk_scoring",
    )
)
app = factory.create_app()

RISK_ASSESSMENTS_TOTAL = factory.add_business_metric(
    "risk_assessments_total",
    "Risk assessments produced, by level",
    ["level"],
)
RISK_CACHE_HITS_TOTAL = factory.add_business_metric(
    "risk_cache_hits_total",
    "Risk responses served from cache",
    ["endpoint"],
)

_cache = build_cache("risk", RISK_CACHE_TTL)


def get_cache() -> TTLCache:
    return _cache


def get_random_source() -> Callable[[], float]:
    return random.random


def get_clock() -> Callable[[], datetime]:
    return datetime.now


# ========= Request Models =========


class CoordinatesIn(BaseModel):
    lat: Optional[float] = None
    lng: Optional[float] = None


class RiskAnalyzeRequest(BaseModel):
    coordinates: Optional[CoordinatesIn] = None
    weatherData: Optional[Dict[str, Any]] = None
    trafficData: Optional[Dict[str, Any]] = None
    timeOfDay: Optional[str] = None
    factors: Optional[Dict[str, Any]] = None


class LiveRiskAnalyzeRequest(BaseModel):
    coordinates: Optional[CoordinatesIn] = None
    timeOfDay: Optional[str] = None
    factors: Optional[Dict[str, Any]] = None


# ========= Helpers =========


def _cached(cache: TTLCache, key: str, endpoint: str) -> Optional[dict]:
    value = cache.get(key)
    if value is None:
        return None
    RISK_CACHE_HITS_TOTAL.labels(endpoint=endpoint).inc()
    return {**value, "cached": True}


def _coordinate(body_coordinates: Optional[CoordinatesIn]) -> Optional[Coordinate]:
    if body_coordinates is None:
        return None
    return validate_coordinates(body_coordinates.lat, body_coordinates.lng)


def _record(assessment: RiskAssessment) -> Dict[str, Any]:
    RISK_ASSESSMENTS_TOTAL.labels(level=assessment.risk_level.value).inc()
    logger.info(
        f"Risk assessed at ({assessment.coordinates.lat}, {assessment.coordinates.lng}): "
        f"score={assessment.risk_score}, level={assessment.risk_level.value}"
    )
    return assessment.to_dict()


# ========= Endpoints =========


@app.get("/v1/risk/zones")
async def risk_zones(
    lat: Optional[str] = Query(None),
    lng: Optional[str] = Query(None),
    radius: str = Query("5000"),
    cache: TTLCache = Depends(get_cache),
):
    """Fixture risk zones, optionally limited to `radius` meters around lat/lng."""
    try:
        center = validate_coordinates(lat, lng) if lat and lng else None
        radius_m = validate_radius(radius)

        key = cache_key(
            "risk_zones",
            center.lat if center else None,
            center.lng if center else None,
            radius_m,
        )
        cached = _cached(cache, key, "zones")
        if cached:
            return cached

        zones = find_zones(center, radius_m)
        now = datetime.utcnow()
        result = {
            "zones": [zone.to_dict(now) for zone in zones],
            "summary": summarize_zones(zones),
            "timestamp": now.isoformat(),
        }
        cache.set(key, result)
        return result

    except (HTTPException, SafeCityError):
        raise
    except Exception as e:
        logger.error(f"Risk zones error: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch risk zones",
        )


@app.post("/v1/risk/analyze")
async def analyze_risk(request: RiskAnalyzeRequest):
    """Score a location from caller-supplied weather, traffic and situational inputs."""
    try:
        assessment = assess_risk(
            _coordinate(request.coordinates),
            weather=(
                WeatherObservation.from_dict(request.weatherData)
                if request.weatherData is not None
                else None
            ),
            traffic=(
                TrafficObservation.from_dict(request.trafficData)
                if request.trafficData is not None
                else None
            ),
            time_of_day=TimeOfDay.parse(request.timeOfDay) if request.timeOfDay else None,
            factors=(
                SituationalFactors.from_dict(request.factors)
                if request.factors is not None
                else None
            ),
        )
        return _record(assessment)

    except (HTTPException, SafeCityError):
        raise
    except Exception as e:
        logger.error(f"Risk analysis error: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to analyze risk",
        )


@app.post("/v1/risk/analyze/live")
async def analyze_risk_live(
    request: LiveRiskAnalyzeRequest,
    client: OpenMeteoClient = Depends(get_open_meteo_client),
    random_source: Callable[[], float] = Depends(get_random_source),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """
    Score a location using live Open-Meteo weather and simulated traffic.

    A failing provider leaves its input out of the score; `sources` reports
    which inputs were used.
    """
    try:
        coordinate = _coordinate(request.coordinates)
        if coordinate is None:
            raise ValidationError("Coordinates are required", field="coordinates")

        sources = {"weather": "unavailable", "traffic": "unavailable"}

        weather = None
        try:
            forecast = await client.get_forecast(coordinate.lat, coordinate.lng)
            weather = WeatherObservation.from_open_meteo(forecast["current_weather"])
            sources["weather"] = "open-meteo"
        except (UpstreamUnavailableError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Live weather unavailable for risk analysis: {e}")

        snapshot = simulate_traffic(coordinate, 5000, random_source)
        traffic = TrafficObservation(
            congestion_level=CongestionLevel.parse(snapshot["trafficLevel"])
        )
        sources["traffic"] = "simulated"

        time_of_day = (
            TimeOfDay.parse(request.timeOfDay)
            if request.timeOfDay
            else time_of_day_for_hour(clock().hour)
        )

        assessment = assess_risk(
            coordinate,
            weather=weather,
            traffic=traffic,
            time_of_day=time_of_day,
            factors=(
                SituationalFactors.from_dict(request.factors)
                if request.factors is not None
                else None
            ),
        )
        return {**_record(assessment), "sources": sources}

    except (HTTPException, SafeCityError):
        raise
    except Exception as e:
        logger.error(f"Live risk analysis error: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to analyze risk",
        )


@app.get("/v1/risk/predictions")
async def risk_predictions(
    lat: Optional[str] = Query(None),
    lng: Optional[str] = Query(None),
    hours: str = Query(str(DEFAULT_PREDICTION_HOURS)),
    cache: TTLCache = Depends(get_cache),
    random_source: Callable[[], float] = Depends(get_random_source),
    clock: Callable[[], datetime] = Depends(get_clock),
):
    """Hourly risk for the next `hours` hours, with peak and safest hour."""
    try:
        if not lat or not lng:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Latitude and longitude parameters are required",
            )
        coordinate = validate_coordinates(lat, lng)
        window = validate_hours(hours)

        key = cache_key("predictions", coordinate.lat, coordinate.lng, window)
        cached = _cached(cache, key, "predictions")
        if cached:
            return cached

        predictions = predict_risk_window(
            coordinate, window, random_source=random_source, start=clock()
        )
        result = {
            "location": coordinate.to_dict(),
            "predictions": [p.to_dict() for p in predictions],
            "summary": summarize_predictions(predictions),
            "timestamp": datetime.utcnow().isoformat(),
        }
        cache.set(key, result)
        return result

    except (HTTPException, SafeCityError):
        raise
    except Exception as e:
        logger.error(f"Risk predictions error: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate risk predictions",
        )
