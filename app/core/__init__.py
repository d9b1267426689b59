"""Core modules for MedTrack Analytics."""

from app.core.auth import verify_api_key
from app.core.exceptions import (
    AnalyticsError,
    AnalyticsValidationError,
    InvalidMedicationIdError,
    InvalidPatientIdError,
    InvalidRangeError,
)
from app.core.logging import get_logger, setup_logging
from app.core.rate_limit import limiter, get_remote_address

__all__ = [
    "verify_api_key",
    "AnalyticsError",
    "AnalyticsValidationError",
    "InvalidMedicationIdError",
    "InvalidPatientIdError",
    "InvalidRangeError",
    "get_logger",
    "setup_logging",
    "limiter",
    "get_remote_address",
]
