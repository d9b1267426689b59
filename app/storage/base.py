"""
Read contract of the storage collaborator.

The analytics core only ever reads through this interface. Concrete stores
implement the two record queries plus the medication lookup; the count and
grouping queries default to single passes over those results and may be
overridden by stores that can push them down.
"""

from abc import ABC, abstractmethod
from collections import Counter
from datetime import datetime
from typing import Iterable, Optional
from uuid import UUID

from app.schemas.records import (
    ClinicalEvent,
    DosageRecord,
    EventCategory,
    EventSeverity,
    Medication,
)


def in_window(
    timestamp: datetime,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    since: Optional[datetime] = None,
) -> bool:
    """Closed-interval check on [start, end]; `since` is an exclusive lower bound."""
    if start is not None and timestamp < start:
        return False
    if end is not None and timestamp > end:
        return False
    if since is not None and timestamp <= since:
        return False
    return True


def filter_events(
    events: Iterable[ClinicalEvent],
    patient_id: UUID,
    medication_id: Optional[UUID] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    since: Optional[datetime] = None,
) -> list[ClinicalEvent]:
    return [
        event for event in events
        if event.patient_id == patient_id
        and (medication_id is None or event.medication_id == medication_id)
        and in_window(event.event_time, start, end, since)
    ]


def filter_dosages(
    dosages: Iterable[DosageRecord],
    patient_id: UUID,
    medication_id: Optional[UUID] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    since: Optional[datetime] = None,
) -> list[DosageRecord]:
    return [
        dosage for dosage in dosages
        if dosage.patient_id == patient_id
        and (medication_id is None or dosage.medication_id == medication_id)
        and in_window(dosage.administration_time, start, end, since)
    ]


class RecordStore(ABC):
    """Async read queries over clinical events, dosages and medications."""

    name: str = "abstract"

    @abstractmethod
    async def find_events(
        self,
        patient_id: UUID,
        *,
        medication_id: Optional[UUID] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[ClinicalEvent]:
        """Events for a patient, optionally scoped to a medication and a closed window."""

    @abstractmethod
    async def find_dosages(
        self,
        patient_id: UUID,
        *,
        medication_id: Optional[UUID] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[DosageRecord]:
        """Dosage records for a patient, optionally scoped to a medication and a closed window."""

    @abstractmethod
    async def get_medication(self, medication_id: UUID) -> Optional[Medication]:
        """Catalogue entry for a medication, or None when unknown."""

    @abstractmethod
    async def ping(self) -> bool:
        """Whether the backing store is reachable."""

    async def close(self) -> None:
        """Release any held resources."""

    async def find_medication_ids(self, patient_id: UUID) -> list[UUID]:
        """Distinct medications in the patient's dosage history, in a stable order."""
        dosages = await self.find_dosages(patient_id)
        return sorted({dosage.medication_id for dosage in dosages}, key=str)

    async def count_events(
        self,
        patient_id: UUID,
        *,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        since: Optional[datetime] = None,
    ) -> int:
        events = await self.find_events(patient_id, start=start, end=end)
        if since is None:
            return len(events)
        return sum(1 for event in events if in_window(event.event_time, since=since))

    async def count_dosages(
        self,
        patient_id: UUID,
        *,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        since: Optional[datetime] = None,
    ) -> int:
        dosages = await self.find_dosages(patient_id, start=start, end=end)
        if since is None:
            return len(dosages)
        return sum(1 for dosage in dosages if in_window(dosage.administration_time, since=since))

    async def count_events_by_category(
        self,
        patient_id: UUID,
        *,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> dict[EventCategory, int]:
        events = await self.find_events(patient_id, start=start, end=end)
        return dict(Counter(event.category for event in events))

    async def count_events_by_severity(
        self,
        patient_id: UUID,
        *,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> dict[EventSeverity, int]:
        events = await self.find_events(patient_id, start=start, end=end)
        return dict(Counter(event.severity for event in events))
