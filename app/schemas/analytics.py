"""
Analytics Schemas - Derived Response Models

Every model here is created fresh per request and never persisted.
"""

from datetime import date, datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, computed_field

from app.core.timeutils import utc_now
from app.schemas.common import JsonDecimal
from app.schemas.records import EventCategory, EventSeverity


class DataPointType(str, Enum):
    """Kind of record a timeline point was built from."""
    EVENT = "EVENT"
    DOSAGE = "DOSAGE"


class AdherenceTrend(str, Enum):
    """Qualitative reading of an adherence/event correlation."""
    POSITIVE = "positive"
    NEGATIVE = "negative"
    NEUTRAL = "neutral"
    INSUFFICIENT_DATA = "insufficient_data"


# ============================================================================
# TIMELINE
# ============================================================================

class TimelineDataPoint(BaseModel):
    """One entry of a merged patient timeline."""
    timestamp: datetime
    point_type: DataPointType
    description: str
    value: Optional[JsonDecimal] = Field(None, description="Dosage amount for DOSAGE points")
    unit: Optional[str] = None
    severity: Optional[EventSeverity] = Field(None, description="EVENT points only")
    bmi: Optional[JsonDecimal] = Field(None, description="EVENT points only, null when inputs are invalid")

    @property
    def is_dosage(self) -> bool:
        return self.point_type is DataPointType.DOSAGE

    @property
    def is_event(self) -> bool:
        return self.point_type is DataPointType.EVENT

    @property
    def is_high_severity(self) -> bool:
        return self.severity is not None and self.severity.is_high

    @property
    def formatted_value(self) -> str:
        if self.value is None:
            return ""
        if self.unit and self.unit.strip():
            return f"{self.value} {self.unit}"
        return str(self.value)


class TimelineStatistics(BaseModel):
    """Counts describing a timeline."""
    total_data_points: int = 0
    medical_events: int = 0
    medication_dosages: int = 0
    time_span_days: Optional[int] = None


class TimelineAnalysis(BaseModel):
    """A patient timeline over a closed window, with summary statistics."""
    patient_id: UUID
    medication_id: Optional[UUID] = None
    period_start: datetime
    period_end: datetime
    data_points: list[TimelineDataPoint] = Field(default_factory=list)
    statistics: TimelineStatistics = Field(default_factory=TimelineStatistics)
    patterns: list[str] = Field(default_factory=list)
    generated_at: datetime = Field(default_factory=utc_now)

    @computed_field
    @property
    def has_data(self) -> bool:
        return bool(self.data_points)

    def high_severity_events(self) -> list[TimelineDataPoint]:
        return [point for point in self.data_points if point.is_high_severity]


# ============================================================================
# CORRELATION
# ============================================================================

class CorrelationAnalysis(BaseModel):
    """How often clinical events follow doses of one medication."""
    medication_id: UUID
    patient_id: UUID
    medication_name: str
    total_dosages: int = Field(..., ge=0)
    total_events_after_dosage: int = Field(..., ge=0)
    correlation_percentage: float = Field(..., ge=0, le=100)
    correlation_strength: float = Field(..., ge=0, le=1)
    events_by_category: dict[EventCategory, int] = Field(default_factory=dict)
    events_by_severity: dict[EventSeverity, int] = Field(default_factory=dict)
    generated_at: datetime = Field(default_factory=utc_now)

    @computed_field
    @property
    def has_strong_correlation(self) -> bool:
        return self.correlation_strength >= 0.7

    @computed_field
    @property
    def has_concerning_adverse_reactions(self) -> bool:
        if self.total_events_after_dosage == 0:
            return False
        adverse = self.events_by_category.get(EventCategory.ADVERSE_REACTION, 0)
        return adverse / self.total_events_after_dosage > 0.2

    @computed_field
    @property
    def risk_level(self) -> str:
        if self.correlation_strength >= 0.8:
            return "CRITICAL"
        if self.correlation_strength >= 0.6:
            return "HIGH"
        if self.correlation_strength >= 0.4:
            return "MODERATE"
        return "LOW"

    @property
    def most_common_category(self) -> Optional[EventCategory]:
        return _most_common(self.events_by_category)

    @property
    def most_common_severity(self) -> Optional[EventSeverity]:
        return _most_common(self.events_by_severity)

    class Config:
        json_schema_extra = {
            "example": {
                "medication_id": "9b2f7c1e-0000-4000-8000-000000000001",
                "patient_id": "3d6e8a4b-0000-4000-8000-000000000002",
                "medication_name": "Levetiracetam",
                "total_dosages": 3,
                "total_events_after_dosage": 2,
                "correlation_percentage": 66.67,
                "correlation_strength": 0.8,
                "events_by_category": {"SYMPTOM": 2},
                "events_by_severity": {"MODERATE": 1, "SEVERE": 1},
                "generated_at": "2024-01-15T10:30:00"
            }
        }


class AdherenceDay(BaseModel):
    """One day of the adherence/event series."""
    day: date
    scheduled_doses: int = 0
    administered_doses: int = 0
    adherence_percentage: float = Field(100.0, ge=0, le=100)
    event_count: int = 0
    average_severity: float = 0.0


class AdherenceCorrelation(BaseModel):
    """Pearson correlation between daily adherence and daily symptom burden."""
    patient_id: UUID
    medication_id: Optional[UUID] = None
    period_start: datetime
    period_end: datetime
    days: list[AdherenceDay] = Field(default_factory=list)
    sample_size: int = Field(0, description="Informative days used for the coefficients")
    event_count_coefficient: float = Field(0.0, ge=-1, le=1)
    severity_coefficient: float = Field(0.0, ge=-1, le=1)
    trend: AdherenceTrend = AdherenceTrend.INSUFFICIENT_DATA
    interpretation: str = ""
    generated_at: datetime = Field(default_factory=utc_now)


# ============================================================================
# DASHBOARD
# ============================================================================

class DashboardSummary(BaseModel):
    """Rolled-up counts for a patient."""
    patient_id: UUID
    total_events: int = Field(..., ge=0)
    total_dosages: int = Field(..., ge=0)
    events_by_category: dict[EventCategory, int] = Field(default_factory=dict)
    events_by_severity: dict[EventSeverity, int] = Field(default_factory=dict)
    recent_events: int = Field(..., ge=0)
    recent_window_days: int = 7
    generated_at: datetime = Field(default_factory=utc_now)

    @property
    def most_common_category(self) -> Optional[EventCategory]:
        return _most_common(self.events_by_category)

    @property
    def most_common_severity(self) -> Optional[EventSeverity]:
        return _most_common(self.events_by_severity)

    @computed_field
    @property
    def high_severity_percentage(self) -> float:
        if self.total_events == 0:
            return 0.0
        high = sum(
            count for severity, count in self.events_by_severity.items()
            if severity.is_high
        )
        return high / self.total_events * 100.0

    @computed_field
    @property
    def has_increased_recent_activity(self) -> bool:
        if self.total_events == 0:
            return False
        return self.recent_events / self.total_events > 0.3


# ============================================================================
# IMPACT
# ============================================================================

class WeeklyTrendBucket(BaseModel):
    """Event and dosage counts for one week of an impact window."""
    label: str
    start: datetime
    end: datetime
    events: int = 0
    dosages: int = 0


class ImpactAnalysis(BaseModel):
    """Effectiveness-oriented statistics for a medication over a window."""
    medication_id: UUID
    patient_id: UUID
    medication_name: str
    period_start: datetime
    period_end: datetime
    total_dosages: int = Field(..., ge=0)
    total_events: int = Field(..., ge=0)
    average_events_per_day: float = Field(..., ge=0)
    symptom_events: int = Field(..., ge=0)
    adverse_reaction_events: int = Field(..., ge=0)
    symptom_reduction_percentage: float = Field(..., ge=0, le=100)
    effectiveness_score: float = Field(..., ge=0, le=1)
    weekly_trends: dict[str, WeeklyTrendBucket] = Field(default_factory=dict)
    generated_at: datetime = Field(default_factory=utc_now)

    @computed_field
    @property
    def effectiveness_category(self) -> str:
        if self.effectiveness_score >= 0.8:
            return "EXCELLENT"
        if self.effectiveness_score >= 0.6:
            return "GOOD"
        if self.effectiveness_score >= 0.4:
            return "MODERATE"
        if self.effectiveness_score >= 0.2:
            return "POOR"
        return "INEFFECTIVE"

    @computed_field
    @property
    def adverse_reaction_rate(self) -> float:
        if self.total_events == 0:
            return 0.0
        return self.adverse_reaction_events / self.total_events * 100.0

    @computed_field
    @property
    def symptom_event_rate(self) -> float:
        if self.total_events == 0:
            return 0.0
        return self.symptom_events / self.total_events * 100.0

    @property
    def is_highly_effective(self) -> bool:
        return self.effectiveness_score >= 0.7

    @property
    def has_concerning_side_effects(self) -> bool:
        return self.adverse_reaction_rate > 25.0

    @property
    def shows_good_symptom_control(self) -> bool:
        return self.symptom_reduction_percentage >= 50.0


class AnalyticsOverview(BaseModel):
    """Dashboard summary combined with every medication's correlation."""
    dashboard_summary: DashboardSummary
    medication_correlations: list[CorrelationAnalysis] = Field(default_factory=list)
    generated_at: datetime = Field(default_factory=utc_now)


def _most_common(counts: dict):
    if not counts:
        return None
    return max(counts.items(), key=lambda item: item[1])[0]
