"""
Common schemas used across multiple endpoints.
"""

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Optional

from pydantic import BaseModel, Field, PlainSerializer

from app.core.timeutils import utc_now

# Decimals stay exact in Python and are emitted as JSON numbers.
JsonDecimal = Annotated[
    Decimal,
    PlainSerializer(float, return_type=float, when_used="json"),
]


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str = Field(..., description="Error type")
    message: str = Field(..., description="Error message")
    field: Optional[str] = Field(None, description="Offending request field")
    timestamp: datetime = Field(default_factory=utc_now)

    class Config:
        json_schema_extra = {
            "example": {
                "error": "InvalidRangeError",
                "message": "Start date must be before end date",
                "field": "start_date",
                "timestamp": "2024-01-15T10:30:00"
            }
        }


class HealthResponse(BaseModel):
    """Health check response."""

    service: str = Field(..., description="Service name")
    version: str = Field(..., description="Service version")
    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(default_factory=utc_now)
    data_source: str = Field(..., description="Configured storage collaborator")
    storage: bool = Field(default=False, description="Storage reachability")
    uptime_seconds: float = Field(default=0, description="Service uptime")

    class Config:
        json_schema_extra = {
            "example": {
                "service": "MedTrack Analytics",
                "version": "1.0.0",
                "status": "healthy",
                "timestamp": "2024-01-15T10:30:00",
                "data_source": "memory",
                "storage": True,
                "uptime_seconds": 3600.5
            }
        }
