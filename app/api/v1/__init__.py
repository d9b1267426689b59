"""API v1 routes."""

from app.api.v1 import analytics, health

__all__ = ["analytics", "health"]
