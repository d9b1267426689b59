"""
Process-local record store.

Backs development, demos and tests. Records can be seeded from a JSON file
shaped as ``{"medications": [...], "events": [...], "dosages": [...]}``; each
entry is validated on load, so malformed or unknown enum values fail here.
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional, Union
from uuid import UUID

from app.core.logging import get_logger
from app.schemas.records import ClinicalEvent, DosageRecord, Medication
from app.storage.base import RecordStore, filter_dosages, filter_events

logger = get_logger(__name__)


class InMemoryRecordStore(RecordStore):
    """Record store holding everything in lists."""

    name = "memory"

    def __init__(
        self,
        events: Optional[Iterable[ClinicalEvent]] = None,
        dosages: Optional[Iterable[DosageRecord]] = None,
        medications: Optional[Iterable[Medication]] = None,
    ) -> None:
        self._events: list[ClinicalEvent] = list(events or [])
        self._dosages: list[DosageRecord] = list(dosages or [])
        self._medications: dict[UUID, Medication] = {
            medication.id: medication for medication in medications or []
        }

    @classmethod
    def from_seed_file(cls, path: Union[str, Path]) -> "InMemoryRecordStore":
        """Build a store from a JSON seed file."""
        payload = json.loads(Path(path).read_text(encoding="utf-8"))

        store = cls(
            events=[ClinicalEvent.model_validate(item) for item in payload.get("events", [])],
            dosages=[DosageRecord.model_validate(item) for item in payload.get("dosages", [])],
            medications=[Medication.model_validate(item) for item in payload.get("medications", [])],
        )
        logger.info(
            "Seeded in-memory record store",
            extra={
                "path": str(path),
                "events": len(store._events),
                "dosages": len(store._dosages),
                "medications": len(store._medications),
            }
        )
        return store

    def add_event(self, event: ClinicalEvent) -> None:
        self._events.append(event)

    def add_dosage(self, dosage: DosageRecord) -> None:
        self._dosages.append(dosage)

    def add_medication(self, medication: Medication) -> None:
        self._medications[medication.id] = medication

    async def find_events(
        self,
        patient_id: UUID,
        *,
        medication_id: Optional[UUID] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[ClinicalEvent]:
        return filter_events(self._events, patient_id, medication_id, start, end)

    async def find_dosages(
        self,
        patient_id: UUID,
        *,
        medication_id: Optional[UUID] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[DosageRecord]:
        return filter_dosages(self._dosages, patient_id, medication_id, start, end)

    async def get_medication(self, medication_id: UUID) -> Optional[Medication]:
        return self._medications.get(medication_id)

    async def ping(self) -> bool:
        return True
