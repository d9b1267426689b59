"""
Shared plumbing for the analytics components.
"""

import asyncio
from datetime import datetime
from typing import Awaitable, Optional, TypeVar
from uuid import UUID

from app.config import Settings, get_settings
from app.core.exceptions import (
    InvalidMedicationIdError,
    InvalidPatientIdError,
    InvalidRangeError,
)
from app.core.timeutils import Clock, utc_now
from app.storage.base import RecordStore

T = TypeVar("T")


def require_patient_id(patient_id: Optional[UUID]) -> UUID:
    if patient_id is None:
        raise InvalidPatientIdError()
    return patient_id


def require_medication_id(medication_id: Optional[UUID]) -> UUID:
    if medication_id is None:
        raise InvalidMedicationIdError()
    return medication_id


def require_range(start: Optional[datetime], end: Optional[datetime]) -> None:
    if start is None or end is None or start > end:
        raise InvalidRangeError(start, end)


class AnalyticsComponent:
    """
    Base for the read-only analytics components.

    Holds the injected record store, settings and clock. Components keep no
    per-request state, so one instance can serve concurrent requests.
    """

    def __init__(
        self,
        store: RecordStore,
        settings: Optional[Settings] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._store = store
        self._settings = settings or get_settings()
        self._clock = clock or utc_now

    @property
    def store(self) -> RecordStore:
        return self._store

    @property
    def settings(self) -> Settings:
        return self._settings

    def now(self) -> datetime:
        """Evaluation instant for the current computation."""
        return self._clock()

    async def _fetch(self, query: Awaitable[T]) -> T:
        """
        Await one storage query under the configured deadline.

        Storage errors and timeouts propagate unchanged; retries belong to
        the storage collaborator.
        """
        return await asyncio.wait_for(query, timeout=self._settings.STORAGE_TIMEOUT_SECONDS)
