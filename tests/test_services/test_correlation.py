"""
Tests for the correlation engine.
"""

import asyncio
from datetime import timedelta
from uuid import uuid4

import pytest

from app.config import get_settings
from app.core.exceptions import InvalidMedicationIdError, InvalidPatientIdError
from app.schemas.analytics import AdherenceTrend
from app.schemas.records import EventCategory, EventSeverity, Medication
from app.services.correlation_engine import (
    CorrelationEngine,
    correlation_percentage,
    correlation_strength,
    pearson,
)
from app.storage.memory import InMemoryRecordStore


@pytest.fixture
def engine(store, clock):
    """Create correlation engine instance."""
    return CorrelationEngine(store, clock=clock)


def test_correlation_percentage():
    """Test percentage is events per dose, clamped at 100."""
    assert correlation_percentage(0, 5) == 0.0
    assert correlation_percentage(4, 1) == 25.0
    assert correlation_percentage(3, 2) == pytest.approx(66.6667, abs=1e-3)
    assert correlation_percentage(2, 7) == 100.0


def test_correlation_strength_steps():
    """Test strength thresholds."""
    assert correlation_strength(100) == 1.0
    assert correlation_strength(80) == 1.0
    assert correlation_strength(79.9) == 0.8
    assert correlation_strength(60) == 0.8
    assert correlation_strength(45) == 0.6
    assert correlation_strength(20) == 0.4
    assert correlation_strength(0.1) == 0.2
    assert correlation_strength(0) == 0.0


def test_pearson_perfect_correlations():
    """Test perfectly linear series give +1 and -1."""
    assert pearson([1, 2, 3, 4], [2, 4, 6, 8]) == pytest.approx(1.0)
    assert pearson([1, 2, 3, 4], [8, 6, 4, 2]) == pytest.approx(-1.0)


def test_pearson_degenerate_inputs():
    """Test empty and zero-variance series give 0 instead of NaN."""
    assert pearson([], []) == 0.0
    assert pearson([5, 5, 5], [1, 2, 3]) == 0.0
    assert pearson([1, 2, 3], [0, 0, 0]) == 0.0
    assert pearson([0.1, 0.1, 0.1], [0.3, 0.7, 0.2]) == 0.0


def test_pearson_rejects_mismatched_lengths():
    """Test series of different length are rejected."""
    with pytest.raises(ValueError):
        pearson([1, 2, 3], [1, 2])


def test_classify_trend(engine):
    """Test trend thresholds around the configured value."""
    assert engine.classify_trend(-0.8) is AdherenceTrend.POSITIVE
    assert engine.classify_trend(-0.3) is AdherenceTrend.POSITIVE
    assert engine.classify_trend(-0.29) is AdherenceTrend.NEUTRAL
    assert engine.classify_trend(0.0) is AdherenceTrend.NEUTRAL
    assert engine.classify_trend(0.3) is AdherenceTrend.NEGATIVE
    assert "fewer events" in engine.interpret(AdherenceTrend.POSITIVE)


@pytest.mark.asyncio
async def test_analyze_medication_scenario(engine, correlation_scenario, patient_id, medication, now):
    """Test three overlapping dose windows with two distinct events give 66.67% and strength 0.8."""
    analysis = await engine.analyze_medication(patient_id, medication.id)

    assert analysis.medication_name == "Levetiracetam"
    assert analysis.total_dosages == 3
    assert analysis.total_events_after_dosage == 2
    assert analysis.correlation_percentage == pytest.approx(66.67, abs=0.01)
    assert analysis.correlation_strength == 0.8
    assert analysis.risk_level == "CRITICAL"
    assert analysis.has_strong_correlation is True
    assert analysis.events_by_category == {EventCategory.SYMPTOM: 2}
    assert analysis.events_by_severity == {EventSeverity.MODERATE: 1, EventSeverity.SEVERE: 1}
    assert analysis.generated_at == now


@pytest.mark.asyncio
async def test_analyze_medication_without_dosages(engine, patient_id):
    """Test a medication with no dosages yields a zero analysis."""
    medication_id = uuid4()
    analysis = await engine.analyze_medication(patient_id, medication_id)

    assert analysis.total_dosages == 0
    assert analysis.total_events_after_dosage == 0
    assert analysis.correlation_percentage == 0.0
    assert analysis.correlation_strength == 0.0
    assert analysis.events_by_category == {}
    assert analysis.events_by_severity == {}
    assert analysis.medication_name == f"Medication {str(medication_id)[:8]}"
    assert analysis.risk_level == "LOW"


@pytest.mark.asyncio
async def test_post_dose_window_is_inclusive(engine, store, make_event, make_dosage, patient_id, medication, now):
    """Test events exactly at the dose and at dose + 24h are counted, later ones not."""
    dose = now - timedelta(days=3)
    store.add_dosage(make_dosage(dose))
    store.add_event(make_event(dose))
    store.add_event(make_event(dose + timedelta(hours=24)))
    store.add_event(make_event(dose + timedelta(hours=24, seconds=1)))
    store.add_event(make_event(dose - timedelta(seconds=1)))

    analysis = await engine.analyze_medication(patient_id, medication.id)

    assert analysis.total_events_after_dosage == 2
    assert analysis.correlation_percentage == 100.0


@pytest.mark.asyncio
async def test_overlapping_windows_count_event_once(engine, store, make_event, make_dosage, patient_id, medication, now):
    """Test an event inside two dose windows is counted once."""
    dose = now - timedelta(days=2)
    store.add_dosage(make_dosage(dose))
    store.add_dosage(make_dosage(dose + timedelta(hours=12)))
    store.add_event(make_event(dose + timedelta(hours=13)))

    analysis = await engine.analyze_medication(patient_id, medication.id)

    assert analysis.total_events_after_dosage == 1
    assert analysis.correlation_percentage == 50.0
    assert analysis.correlation_strength == 0.6


@pytest.mark.asyncio
async def test_breakdowns_count_distinct_events(engine, store, make_event, make_dosage, patient_id, medication, now):
    """Test breakdown maps sum to the distinct event count when windows overlap."""
    for hours in (18, 12, 6):
        store.add_dosage(make_dosage(now - timedelta(hours=hours)))
    store.add_event(make_event(now - timedelta(hours=8), category=EventCategory.ADVERSE_REACTION))
    store.add_event(make_event(now - timedelta(hours=4)))

    analysis = await engine.analyze_medication(patient_id, medication.id)

    assert analysis.total_events_after_dosage == 2
    assert analysis.correlation_percentage == pytest.approx(66.67, abs=0.01)
    assert analysis.events_by_category == {EventCategory.SYMPTOM: 1, EventCategory.ADVERSE_REACTION: 1}
    assert analysis.events_by_severity == {EventSeverity.MODERATE: 2}
    assert sum(analysis.events_by_category.values()) == analysis.total_events_after_dosage
    assert analysis.has_concerning_adverse_reactions is True


@pytest.mark.asyncio
async def test_analyze_medication_rejects_missing_ids(engine, patient_id):
    """Test identifiers are validated."""
    with pytest.raises(InvalidPatientIdError):
        await engine.analyze_medication(None, uuid4())

    with pytest.raises(InvalidMedicationIdError):
        await engine.analyze_medication(patient_id, None)


@pytest.mark.asyncio
async def test_analyze_all_medications(engine, store, make_dosage, patient_id, medication, now):
    """Test one analysis per distinct medication, in a stable order."""
    other = Medication(name="Lamotrigine")
    store.add_medication(other)
    store.add_dosage(make_dosage(now - timedelta(days=1)))
    store.add_dosage(make_dosage(now - timedelta(days=2)))
    store.add_dosage(make_dosage(now - timedelta(days=1), medication_id=other.id))

    analyses = await engine.analyze_all_medications(patient_id)

    assert [a.medication_id for a in analyses] == sorted([medication.id, other.id], key=str)
    totals = {a.medication_name: a.total_dosages for a in analyses}
    assert totals == {"Levetiracetam": 2, "Lamotrigine": 1}


@pytest.mark.asyncio
async def test_analyze_all_medications_empty(engine, patient_id):
    """Test a patient without dosage history has no correlations."""
    assert await engine.analyze_all_medications(patient_id) == []


@pytest.mark.asyncio
async def test_analyze_medication_is_idempotent(engine, correlation_scenario, patient_id, medication):
    """Test repeated analysis over unchanged data gives equal results."""
    first = await engine.analyze_medication(patient_id, medication.id)
    second = await engine.analyze_medication(patient_id, medication.id)

    assert first == second


@pytest.mark.asyncio
async def test_storage_timeout_propagates(patient_id, clock):
    """Test a storage query past the deadline raises instead of returning partial data."""

    class SlowStore(InMemoryRecordStore):
        async def find_dosages(self, *args, **kwargs):
            await asyncio.sleep(1)
            return []

    settings = get_settings().model_copy(update={"STORAGE_TIMEOUT_SECONDS": 0.01})
    engine = CorrelationEngine(SlowStore(), settings, clock)

    with pytest.raises(asyncio.TimeoutError):
        await engine.analyze_medication(patient_id, uuid4())


@pytest.mark.asyncio
async def test_adherence_positive_trend(engine, store, make_event, make_dosage, patient_id, now):
    """Test missed doses on high-symptom days give a positive trend."""
    start = (now - timedelta(days=5)).replace(hour=0)
    day1, day2, day3 = (start + timedelta(days=i, hours=8) for i in range(3))

    # Day 1: 1 of 2 doses, 2 symptoms
    store.add_dosage(make_dosage(day1, administered=True))
    store.add_dosage(make_dosage(day1 + timedelta(hours=10), administered=False))
    store.add_event(make_event(day1 + timedelta(hours=1)))
    store.add_event(make_event(day1 + timedelta(hours=2)))
    # Day 2: full adherence, 1 symptom
    store.add_dosage(make_dosage(day2, administered=True))
    store.add_event(make_event(day2 + timedelta(hours=1), severity=EventSeverity.MILD))
    # Day 3: missed, 3 symptoms
    store.add_dosage(make_dosage(day3, administered=False))
    for hours in (1, 2, 3):
        store.add_event(make_event(day3 + timedelta(hours=hours), severity=EventSeverity.SEVERE))
    # Non-symptom events do not count towards the daily burden
    store.add_event(make_event(day2 + timedelta(hours=4), category=EventCategory.APPOINTMENT))

    result = await engine.analyze_adherence(patient_id, start, now)

    assert result.sample_size == 3
    assert result.event_count_coefficient == pytest.approx(-1.0)
    assert result.severity_coefficient < 0
    assert result.trend is AdherenceTrend.POSITIVE

    by_day = {d.day: d for d in result.days}
    assert by_day[day1.date()].adherence_percentage == 50.0
    assert by_day[day1.date()].event_count == 2
    assert by_day[day3.date()].average_severity == 3.0
    assert by_day[(start + timedelta(days=4)).date()].adherence_percentage == 100.0


@pytest.mark.asyncio
async def test_adherence_insufficient_data(engine, patient_id, now):
    """Test a history without informative days reports insufficient data."""
    result = await engine.analyze_adherence(patient_id, now - timedelta(days=7), now)

    assert result.trend is AdherenceTrend.INSUFFICIENT_DATA
    assert result.event_count_coefficient == 0.0
    assert result.severity_coefficient == 0.0
    assert result.sample_size == 0
    assert len(result.days) == 8
    assert result.interpretation == "Not enough data for analysis"
