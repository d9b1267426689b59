"""
Source record schemas.

Clinical events, dosage records and medications are owned by the storage
collaborator. The analytics core only reads them, so every model is frozen.
Unknown enum values are rejected here, at ingestion.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.core.timeutils import to_naive_utc


# ============================================================================
# ENUMS
# ============================================================================

class EventSeverity(str, Enum):
    """Ordered severity levels of a clinical event."""
    MILD = "MILD"
    MODERATE = "MODERATE"
    SEVERE = "SEVERE"
    CRITICAL = "CRITICAL"

    @property
    def weight(self) -> int:
        """Ordinal weight, MILD=1 through CRITICAL=4."""
        return _SEVERITY_WEIGHTS[self]

    @property
    def is_high(self) -> bool:
        return self in (EventSeverity.SEVERE, EventSeverity.CRITICAL)


_SEVERITY_WEIGHTS = {
    EventSeverity.MILD: 1,
    EventSeverity.MODERATE: 2,
    EventSeverity.SEVERE: 3,
    EventSeverity.CRITICAL: 4,
}


class EventCategory(str, Enum):
    """Classification of a clinical event."""
    SYMPTOM = "SYMPTOM"
    MEDICATION = "MEDICATION"
    APPOINTMENT = "APPOINTMENT"
    TEST = "TEST"
    EMERGENCY = "EMERGENCY"
    OBSERVATION = "OBSERVATION"
    ADVERSE_REACTION = "ADVERSE_REACTION"


class DosageSchedule(str, Enum):
    """Schedule slot of a dosage."""
    AM = "AM"
    PM = "PM"
    MIDDAY = "MIDDAY"
    BEDTIME = "BEDTIME"
    AS_NEEDED = "AS_NEEDED"
    EVERY_4_HOURS = "EVERY_4_HOURS"
    EVERY_6_HOURS = "EVERY_6_HOURS"
    EVERY_8_HOURS = "EVERY_8_HOURS"
    EVERY_12_HOURS = "EVERY_12_HOURS"
    CUSTOM = "CUSTOM"


# ============================================================================
# RECORDS
# ============================================================================

class _SourceRecord(BaseModel):
    model_config = ConfigDict(frozen=True)


class ClinicalEvent(_SourceRecord):
    """
    A clinical event recorded for a patient.

    Weight, height and dosage are the measurements captured at the time of
    the event, not the patient's current values.
    """
    id: UUID = Field(default_factory=uuid4)
    patient_id: UUID
    medication_id: Optional[UUID] = None
    event_time: datetime
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=2000)
    severity: EventSeverity
    category: EventCategory
    weight_kg: Optional[Decimal] = None
    height_cm: Optional[Decimal] = None
    dosage_given: Optional[Decimal] = None

    @field_validator("event_time")
    @classmethod
    def normalize_event_time(cls, v: datetime) -> datetime:
        return to_naive_utc(v)


class DosageRecord(_SourceRecord):
    """A scheduled or administered dose of a medication."""
    id: UUID = Field(default_factory=uuid4)
    patient_id: UUID
    medication_id: UUID
    administration_time: datetime
    dosage_amount: Decimal = Field(..., ge=0)
    dosage_unit: str = "mg"
    schedule: DosageSchedule
    administered: bool = False
    notes: Optional[str] = None

    @field_validator("administration_time")
    @classmethod
    def normalize_administration_time(cls, v: datetime) -> datetime:
        return to_naive_utc(v)


class Medication(_SourceRecord):
    """Medication catalogue entry, used to resolve display names."""
    id: UUID = Field(default_factory=uuid4)
    name: str = Field(..., min_length=1)
    generic_name: Optional[str] = None
    strength: Optional[Decimal] = None
    unit: Optional[str] = None
    active: bool = True
