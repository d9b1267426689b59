"""
FastAPI dependency injection utilities.
"""

from typing import Optional

from app.config import Settings, get_settings
from app.core.auth import verify_api_key
from app.core.logging import get_logger
from app.services.analytics_service import AnalyticsService
from app.storage import create_record_store

logger = get_logger(__name__)

# Built once in the application lifespan
_analytics_service: Optional[AnalyticsService] = None


async def init_analytics_service(settings: Optional[Settings] = None) -> AnalyticsService:
    """Create the record store and the analytics service over it."""
    global _analytics_service
    settings = settings or get_settings()

    if _analytics_service is None:
        store = await create_record_store(settings)
        _analytics_service = AnalyticsService(store, settings)
        logger.info("Analytics service initialized", extra={"data_source": store.name})

    return _analytics_service


async def close_analytics_service() -> None:
    """Close the record store on shutdown."""
    global _analytics_service
    if _analytics_service is not None:
        await _analytics_service.close()
        _analytics_service = None


async def get_analytics_service() -> AnalyticsService:
    """Get the analytics service instance."""
    if _analytics_service is None:
        return await init_analytics_service()
    return _analytics_service


__all__ = [
    "verify_api_key",
    "init_analytics_service",
    "close_analytics_service",
    "get_analytics_service",
]
