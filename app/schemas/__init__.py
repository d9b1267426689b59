"""Pydantic schemas for source records and analytics responses."""

from app.schemas.common import (
    ErrorResponse,
    HealthResponse,
    JsonDecimal,
)
from app.schemas.records import (
    ClinicalEvent,
    DosageRecord,
    DosageSchedule,
    EventCategory,
    EventSeverity,
    Medication,
)
from app.schemas.analytics import (
    AdherenceCorrelation,
    AdherenceDay,
    AdherenceTrend,
    AnalyticsOverview,
    CorrelationAnalysis,
    DashboardSummary,
    DataPointType,
    ImpactAnalysis,
    TimelineAnalysis,
    TimelineDataPoint,
    TimelineStatistics,
    WeeklyTrendBucket,
)

__all__ = [
    # Common
    "ErrorResponse",
    "HealthResponse",
    "JsonDecimal",
    # Records
    "ClinicalEvent",
    "DosageRecord",
    "DosageSchedule",
    "EventCategory",
    "EventSeverity",
    "Medication",
    # Analytics
    "AdherenceCorrelation",
    "AdherenceDay",
    "AdherenceTrend",
    "AnalyticsOverview",
    "CorrelationAnalysis",
    "DashboardSummary",
    "DataPointType",
    "ImpactAnalysis",
    "TimelineAnalysis",
    "TimelineDataPoint",
    "TimelineStatistics",
    "WeeklyTrendBucket",
]
