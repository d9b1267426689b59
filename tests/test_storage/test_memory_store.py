"""
Tests for the in-memory record store.
"""

import json
from datetime import timedelta
from uuid import uuid4

import pytest
from pydantic import ValidationError

from app.schemas.records import EventCategory, EventSeverity
from app.storage.memory import InMemoryRecordStore


@pytest.mark.asyncio
async def test_find_events_filters(store, make_event, patient_id, medication, now):
    """Test patient, medication and closed-window filters."""
    start, end = now - timedelta(days=2), now
    store.add_event(make_event(start, medication_id=medication.id))
    store.add_event(make_event(end))
    store.add_event(make_event(start - timedelta(seconds=1)))
    store.add_event(make_event(now, patient_id=uuid4()))

    assert len(await store.find_events(patient_id)) == 3
    assert len(await store.find_events(patient_id, start=start, end=end)) == 2
    assert len(await store.find_events(patient_id, medication_id=medication.id)) == 1


@pytest.mark.asyncio
async def test_counts_and_groupings(store, make_event, make_dosage, patient_id, now):
    """Test count queries and grouped counts."""
    store.add_event(make_event(now - timedelta(days=1), severity=EventSeverity.SEVERE))
    store.add_event(make_event(now - timedelta(days=3), category=EventCategory.EMERGENCY))
    store.add_dosage(make_dosage(now - timedelta(days=1)))

    assert await store.count_events(patient_id) == 2
    assert await store.count_events(patient_id, since=now - timedelta(days=1)) == 0
    assert await store.count_events(patient_id, since=now - timedelta(days=2)) == 1
    assert await store.count_dosages(patient_id) == 1
    assert await store.count_events_by_category(patient_id) == {
        EventCategory.SYMPTOM: 1,
        EventCategory.EMERGENCY: 1,
    }
    assert await store.count_events_by_severity(patient_id) == {
        EventSeverity.SEVERE: 1,
        EventSeverity.MODERATE: 1,
    }


@pytest.mark.asyncio
async def test_find_medication_ids_sorted(store, make_dosage, patient_id, now):
    """Test distinct medication ids come back sorted."""
    ids = [uuid4() for _ in range(3)]
    for medication_id in ids + ids[:1]:
        store.add_dosage(make_dosage(now, medication_id=medication_id))

    assert await store.find_medication_ids(patient_id) == sorted(ids, key=str)


@pytest.mark.asyncio
async def test_seed_file(tmp_path, patient_id, medication):
    """Test a JSON seed file is loaded and validated."""
    seed = tmp_path / "seed.json"
    seed.write_text(json.dumps({
        "medications": [{"id": str(medication.id), "name": "Levetiracetam"}],
        "events": [{
            "patient_id": str(patient_id),
            "event_time": "2024-03-10T08:00:00+01:00",
            "title": "Headache",
            "severity": "MILD",
            "category": "SYMPTOM",
            "weight_kg": "70.5",
            "height_cm": "175",
        }],
        "dosages": [{
            "patient_id": str(patient_id),
            "medication_id": str(medication.id),
            "administration_time": "2024-03-10T07:00:00",
            "dosage_amount": "500",
            "schedule": "AM",
            "administered": True,
        }],
    }))

    store = InMemoryRecordStore.from_seed_file(seed)

    events = await store.find_events(patient_id)
    assert len(events) == 1
    # Offsets are normalized to naive UTC
    assert events[0].event_time.hour == 7
    assert events[0].event_time.tzinfo is None
    assert len(await store.find_dosages(patient_id)) == 1
    assert (await store.get_medication(medication.id)).name == "Levetiracetam"
    assert await store.ping() is True


def test_seed_file_rejects_unknown_severity(tmp_path, patient_id):
    """Test malformed seed records fail on load."""
    seed = tmp_path / "seed.json"
    seed.write_text(json.dumps({
        "events": [{
            "patient_id": str(patient_id),
            "event_time": "2024-03-10T08:00:00",
            "title": "Headache",
            "severity": "EXTREME",
            "category": "SYMPTOM",
        }],
    }))

    with pytest.raises(ValidationError):
        InMemoryRecordStore.from_seed_file(seed)
