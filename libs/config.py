"""
Configuration module for loading environment variables
"""

import os
from typing import Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Config:
    """Application configuration"""

    # OpenWeatherMap Configuration
    OPENWEATHER_API_KEY: Optional[str] = os.getenv("OPENWEATHER_API_KEY")
    OPENWEATHER_BASE_URL: str = os.getenv(
        "OPENWEATHER_BASE_URL", "https://api.openweathermap.org/data/2.5"
    )

    # Google Maps Configuration
    GOOGLE_MAPS_API_KEY: Optional[str] = os.getenv("GOOGLE_MAPS_API_KEY")

    # Cache Configuration
    CACHE_BACKEND: str = os.getenv("CACHE_BACKEND", "memory")  # memory or redis
    WEATHER_CACHE_TTL: int = int(os.getenv("WEATHER_CACHE_TTL", "600"))
    MAPS_CACHE_TTL: int = int(os.getenv("MAPS_CACHE_TTL", "3600"))
    MEMORY_CACHE_MAXSIZE: int = int(os.getenv("MEMORY_CACHE_MAXSIZE", "10000"))

    # Redis Configuration (only used when CACHE_BACKEND=redis)
    REDIS_HOST: str = os.getenv("REDIS_HOST", "localhost")
    REDIS_PORT: int = int(os.getenv("REDIS_PORT", "6379"))
    REDIS_DB: int = int(os.getenv("REDIS_DB", "0"))
    REDIS_PASSWORD: Optional[str] = os.getenv("REDIS_PASSWORD")

    # CORS
    CORS_ORIGINS: str = os.getenv("CORS_ORIGINS", "*")

    @classmethod
    def cors_origins(cls) -> list:
        return [o.strip() for o in cls.CORS_ORIGINS.split(",") if o.strip()]

