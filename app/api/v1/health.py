"""
Health check and monitoring endpoints.
"""

import time

from fastapi import APIRouter, Depends
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from app.config import get_settings
from app.core.timeutils import utc_now
from app.dependencies import get_analytics_service
from app.schemas.common import HealthResponse
from app.services.analytics_service import AnalyticsService

router = APIRouter()

# Track startup time
_startup_time = time.time()


@router.get("/health", response_model=HealthResponse)
async def health_check(service: AnalyticsService = Depends(get_analytics_service)):
    """
    Check service health and storage reachability.

    No authentication required for health checks.
    """
    settings = get_settings()
    reachable = await service.store.ping()

    return HealthResponse(
        service=settings.APP_NAME,
        version=settings.APP_VERSION,
        status="healthy" if reachable else "degraded",
        timestamp=utc_now(),
        data_source=service.store.name,
        storage=reachable,
        uptime_seconds=time.time() - _startup_time
    )


@router.get("/metrics")
async def prometheus_metrics():
    """
    Expose Prometheus metrics.

    No authentication for metrics endpoint.
    """
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )
