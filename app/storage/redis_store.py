"""
Redis-backed record store.

Records are kept as JSON documents in per-patient Redis lists; medications
live in a single hash keyed by id. Filtering happens after the fetch, so a
query costs one round trip per patient list.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool

from app.core.logging import get_logger
from app.schemas.records import ClinicalEvent, DosageRecord, Medication
from app.storage.base import RecordStore, filter_dosages, filter_events

logger = get_logger(__name__)

KEY_PREFIX = "medtrack"


class RedisRecordStore(RecordStore):
    """Record store over a Redis connection pool."""

    name = "redis"

    def __init__(
        self,
        url: str = "redis://localhost:6379",
        client: Optional[redis.Redis] = None,
        max_connections: int = 50,
    ) -> None:
        self._url = url
        self._max_connections = max_connections
        self._pool: Optional[ConnectionPool] = None
        self._client: Optional[redis.Redis] = client

    @staticmethod
    def _key(kind: str, patient_id: Optional[UUID] = None) -> str:
        if patient_id is None:
            return f"{KEY_PREFIX}:{kind}"
        return f"{KEY_PREFIX}:{kind}:{patient_id}"

    async def connect(self) -> None:
        """Establish the connection pool and verify the server answers."""
        if self._client is None:
            self._pool = ConnectionPool.from_url(
                self._url,
                max_connections=self._max_connections,
                decode_responses=True
            )
            self._client = redis.Redis(connection_pool=self._pool)
        await self._client.ping()
        logger.info("Connected to Redis record store", extra={"url": self._url})

    async def close(self) -> None:
        """Close the Redis connection."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
        if self._pool is not None:
            await self._pool.disconnect()
            self._pool = None
        logger.info("Disconnected from Redis record store")

    @property
    def client(self) -> redis.Redis:
        if self._client is None:
            raise RuntimeError("RedisRecordStore is not connected")
        return self._client

    # ------------------------------------------------------------------
    # Writes, used by seeding scripts and tests
    # ------------------------------------------------------------------

    async def add_event(self, event: ClinicalEvent) -> None:
        await self.client.rpush(self._key("events", event.patient_id), event.model_dump_json())

    async def add_dosage(self, dosage: DosageRecord) -> None:
        await self.client.rpush(self._key("dosages", dosage.patient_id), dosage.model_dump_json())

    async def add_medication(self, medication: Medication) -> None:
        await self.client.hset(self._key("medications"), str(medication.id), medication.model_dump_json())

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def find_events(
        self,
        patient_id: UUID,
        *,
        medication_id: Optional[UUID] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[ClinicalEvent]:
        raw = await self.client.lrange(self._key("events", patient_id), 0, -1)
        events = [ClinicalEvent.model_validate_json(item) for item in raw]
        return filter_events(events, patient_id, medication_id, start, end)

    async def find_dosages(
        self,
        patient_id: UUID,
        *,
        medication_id: Optional[UUID] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[DosageRecord]:
        raw = await self.client.lrange(self._key("dosages", patient_id), 0, -1)
        dosages = [DosageRecord.model_validate_json(item) for item in raw]
        return filter_dosages(dosages, patient_id, medication_id, start, end)

    async def get_medication(self, medication_id: UUID) -> Optional[Medication]:
        raw = await self.client.hget(self._key("medications"), str(medication_id))
        if raw is None:
            return None
        return Medication.model_validate_json(raw)

    async def ping(self) -> bool:
        if self._client is None:
            return False
        try:
            return bool(await self._client.ping())
        except redis.RedisError as e:
            logger.warning(f"Redis ping failed: {e}")
            return False
