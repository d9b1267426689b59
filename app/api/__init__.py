"""API routes for MedTrack Analytics."""

from fastapi import APIRouter

from app.api.v1 import analytics, health

# Create main API router
api_router = APIRouter()

# Include all v1 routes
api_router.include_router(health.router, tags=["health"])
api_router.include_router(analytics.router)

__all__ = ["api_router"]
