"""
Tests for the Redis record store against a mocked client.
"""

from datetime import timedelta
from unittest.mock import AsyncMock

import pytest
import redis.asyncio as redis

from app.storage.redis_store import RedisRecordStore


@pytest.fixture
def client():
    """Mocked async Redis client."""
    return AsyncMock()


@pytest.fixture
def redis_store(client):
    return RedisRecordStore(client=client)


@pytest.mark.asyncio
async def test_find_events_reads_patient_list(redis_store, client, make_event, patient_id, now):
    """Test events are decoded from the patient's list and window-filtered."""
    inside = make_event(now - timedelta(hours=1))
    outside = make_event(now - timedelta(days=5))
    client.lrange.return_value = [inside.model_dump_json(), outside.model_dump_json()]

    events = await redis_store.find_events(patient_id, start=now - timedelta(days=1), end=now)

    assert events == [inside]
    client.lrange.assert_awaited_once_with(f"medtrack:events:{patient_id}", 0, -1)


@pytest.mark.asyncio
async def test_add_dosage_appends_json(redis_store, client, make_dosage, patient_id, now):
    """Test dosages are appended as JSON documents."""
    dosage = make_dosage(now)

    await redis_store.add_dosage(dosage)

    client.rpush.assert_awaited_once_with(f"medtrack:dosages:{patient_id}", dosage.model_dump_json())


@pytest.mark.asyncio
async def test_get_medication(redis_store, client, medication):
    """Test medication lookup from the catalogue hash."""
    client.hget.return_value = medication.model_dump_json()
    assert await redis_store.get_medication(medication.id) == medication

    client.hget.return_value = None
    assert await redis_store.get_medication(medication.id) is None


@pytest.mark.asyncio
async def test_ping_failure_reports_unreachable(redis_store, client):
    """Test a failing ping reports the store unreachable."""
    client.ping.side_effect = redis.ConnectionError("refused")

    assert await redis_store.ping() is False


@pytest.mark.asyncio
async def test_storage_errors_propagate(redis_store, client, patient_id):
    """Test read failures are not swallowed."""
    client.lrange.side_effect = redis.ConnectionError("refused")

    with pytest.raises(redis.ConnectionError):
        await redis_store.find_dosages(patient_id)


@pytest.mark.asyncio
async def test_unconnected_store_raises():
    """Test reads before connect fail loudly."""
    store = RedisRecordStore()

    with pytest.raises(RuntimeError):
        await store.find_events(None)
    assert await store.ping() is False
