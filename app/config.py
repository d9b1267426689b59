"""
Configuration management for the MedTrack Analytics service.
Uses pydantic-settings for type-safe environment variable handling.
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "MedTrack Analytics"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Security
    ANALYTICS_API_KEY: str = ""
    FRONTEND_ORIGIN: str = "http://localhost:5173"

    # Storage collaborator, chosen once at startup
    DATA_SOURCE: Literal["memory", "redis"] = "memory"
    SEED_DATA_PATH: Optional[str] = None
    REDIS_URL: str = "redis://localhost:6379"
    STORAGE_TIMEOUT_SECONDS: float = 10.0

    # Correlation policy
    POST_DOSE_WINDOW_HOURS: int = 24
    TREND_THRESHOLD: float = 0.3

    # Dashboard
    RECENT_WINDOW_DAYS: int = 7
    WEEKLY_SUMMARY_WEEKS: int = 8
    WEEKLY_SUMMARY_BREAKDOWNS: bool = False

    # Derived metrics
    BMI_MIN_HEIGHT_CM: float = 30.0
    BMI_MAX_HEIGHT_CM: float = 300.0
    EFFECTIVENESS_DIVISOR: float = 10.0

    # Rate limiting
    RATE_LIMIT_REQUESTS: int = 100
    RATE_LIMIT_WINDOW: int = 60  # seconds

    class Config:
        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
