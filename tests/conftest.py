"""
Pytest fixtures for MedTrack Analytics tests.
"""

from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable, Optional
from uuid import UUID, uuid4

import pytest
from fastapi.testclient import TestClient

# Set environment variables before imports
import os
os.environ["ANALYTICS_API_KEY"] = "test-api-key-12345"
os.environ["DATA_SOURCE"] = "memory"
os.environ["DEBUG"] = "true"

from app.config import get_settings
from app.core.rate_limit import limiter
from app.dependencies import get_analytics_service
from app.main import app
from app.schemas.records import (
    ClinicalEvent,
    DosageRecord,
    DosageSchedule,
    EventCategory,
    EventSeverity,
    Medication,
)
from app.services.analytics_service import AnalyticsService
from app.storage.memory import InMemoryRecordStore

NOW = datetime(2024, 3, 15, 12, 0, 0)


@pytest.fixture
def now() -> datetime:
    """Fixed evaluation instant."""
    return NOW


@pytest.fixture
def clock() -> Callable[[], datetime]:
    """Clock pinned to NOW."""
    return lambda: NOW


@pytest.fixture
def patient_id() -> UUID:
    return uuid4()


@pytest.fixture
def medication() -> Medication:
    return Medication(name="Levetiracetam", generic_name="levetiracetam", strength=Decimal("500"), unit="mg")


@pytest.fixture
def store(medication: Medication) -> InMemoryRecordStore:
    """Empty in-memory store with one catalogue medication."""
    return InMemoryRecordStore(medications=[medication])


@pytest.fixture
def make_event(patient_id: UUID) -> Callable[..., ClinicalEvent]:
    """Factory for clinical events of the fixture patient."""
    def _make(
        event_time: datetime,
        category: EventCategory = EventCategory.SYMPTOM,
        severity: EventSeverity = EventSeverity.MODERATE,
        medication_id: Optional[UUID] = None,
        **kwargs,
    ) -> ClinicalEvent:
        return ClinicalEvent(
            patient_id=kwargs.pop("patient_id", patient_id),
            medication_id=medication_id,
            event_time=event_time,
            title=kwargs.pop("title", category.value.title()),
            severity=severity,
            category=category,
            **kwargs,
        )
    return _make


@pytest.fixture
def make_dosage(patient_id: UUID, medication: Medication) -> Callable[..., DosageRecord]:
    """Factory for dosage records of the fixture patient and medication."""
    def _make(
        administration_time: datetime,
        administered: bool = True,
        amount: str = "500",
        **kwargs,
    ) -> DosageRecord:
        return DosageRecord(
            patient_id=kwargs.pop("patient_id", patient_id),
            medication_id=kwargs.pop("medication_id", medication.id),
            administration_time=administration_time,
            dosage_amount=Decimal(amount),
            schedule=kwargs.pop("schedule", DosageSchedule.AM),
            administered=administered,
            **kwargs,
        )
    return _make


@pytest.fixture
def analytics_service(store: InMemoryRecordStore, clock) -> AnalyticsService:
    """Analytics service over the in-memory store with the fixed clock."""
    return AnalyticsService(store, get_settings(), clock)


@pytest.fixture
def test_client(analytics_service: AnalyticsService):
    """Synchronous test client wired to the fixture service."""
    app.dependency_overrides[get_analytics_service] = lambda: analytics_service
    limiter.enabled = False
    yield TestClient(app)
    limiter.enabled = True
    app.dependency_overrides.clear()


@pytest.fixture
def api_key_headers():
    """Headers with valid API key."""
    return {"X-API-Key": "test-api-key-12345"}


@pytest.fixture
def correlation_scenario(store, make_event, make_dosage, now):
    """
    Doses 18h, 12h and 6h ago with symptoms 8h and 4h ago.

    The post-dose windows overlap, so the 4h symptom lies inside all three
    and the 8h symptom inside two.
    """
    for hours in (18, 12, 6):
        store.add_dosage(make_dosage(now - timedelta(hours=hours)))
    store.add_event(make_event(now - timedelta(hours=8), severity=EventSeverity.MODERATE))
    store.add_event(make_event(now - timedelta(hours=4), severity=EventSeverity.SEVERE))
    return store
