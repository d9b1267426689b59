"""
Exception hierarchy for the analytics core.

Malformed requests fail fast with an `AnalyticsValidationError` naming the
offending field. Legitimate absence of data is never an error.
"""

from datetime import datetime
from typing import Any, Optional


class AnalyticsError(Exception):
    """Base class for all analytics errors."""

    def __init__(self, message: str, context: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}


class AnalyticsValidationError(AnalyticsError):
    """A request argument was missing or malformed."""

    field: str = "request"

    def __init__(self, message: str, field: Optional[str] = None, **context: Any):
        super().__init__(message, context)
        if field is not None:
            self.field = field


class InvalidPatientIdError(AnalyticsValidationError):
    field = "patient_id"

    def __init__(self, message: str = "Patient ID cannot be null"):
        super().__init__(message)


class InvalidMedicationIdError(AnalyticsValidationError):
    field = "medication_id"

    def __init__(self, message: str = "Medication ID cannot be null"):
        super().__init__(message)


class InvalidRangeError(AnalyticsValidationError):
    """Start of a date window lies after its end, or a bound is missing."""

    field = "start_date"

    def __init__(
        self,
        start: Optional[datetime],
        end: Optional[datetime],
        message: Optional[str] = None,
    ):
        if message is None:
            if start is None or end is None:
                message = "Start and end dates cannot be null"
            else:
                message = "Start date must be before end date"
        super().__init__(message, start=start, end=end)
        self.start = start
        self.end = end
