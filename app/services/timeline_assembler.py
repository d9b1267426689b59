"""
Timeline assembly.

Merges a patient's clinical events and dosage records into one
chronological sequence of typed data points, deriving BMI for each event
from the weight and height captured when it happened.
"""

import asyncio
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from operator import attrgetter
from typing import Optional, Union
from uuid import UUID

from app.core.logging import get_logger
from app.schemas.analytics import (
    DataPointType,
    TimelineAnalysis,
    TimelineDataPoint,
    TimelineStatistics,
)
from app.schemas.records import ClinicalEvent, DosageRecord
from app.services.base import (
    AnalyticsComponent,
    require_medication_id,
    require_patient_id,
    require_range,
)

logger = get_logger(__name__)

Number = Union[Decimal, float, int]

_HUNDRED = Decimal("100")
_METRE_PRECISION = Decimal("0.0001")
_BMI_PRECISION = Decimal("0.1")

DOSAGE_DESCRIPTION = "Medication Administration"


def _to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def calculate_bmi(
    weight_kg: Optional[Number],
    height_cm: Optional[Number],
    min_height_cm: Number = 30,
    max_height_cm: Number = 300,
) -> Optional[Decimal]:
    """
    Body-mass index from weight (kg) and height (cm), one decimal, half-up.

    Returns None when either measurement is missing, weight is not positive,
    or height falls outside [min_height_cm, max_height_cm].

    >>> calculate_bmi(Decimal("70.5"), Decimal("175"))
    Decimal('23.0')
    """
    if weight_kg is None or height_cm is None:
        return None

    weight = _to_decimal(weight_kg)
    height = _to_decimal(height_cm)

    if weight <= 0:
        return None
    if height <= 0 or height < _to_decimal(min_height_cm) or height > _to_decimal(max_height_cm):
        return None

    height_m = (height / _HUNDRED).quantize(_METRE_PRECISION, rounding=ROUND_HALF_UP)
    return (weight / (height_m * height_m)).quantize(_BMI_PRECISION, rounding=ROUND_HALF_UP)


class TimelineAssembler(AnalyticsComponent):
    """Builds merged event/dosage timelines for a patient."""

    def event_point(self, event: ClinicalEvent) -> TimelineDataPoint:
        return TimelineDataPoint(
            timestamp=event.event_time,
            point_type=DataPointType.EVENT,
            description=event.title,
            severity=event.severity,
            bmi=calculate_bmi(
                event.weight_kg,
                event.height_cm,
                self.settings.BMI_MIN_HEIGHT_CM,
                self.settings.BMI_MAX_HEIGHT_CM,
            ),
        )

    @staticmethod
    def dosage_point(dosage: DosageRecord) -> TimelineDataPoint:
        return TimelineDataPoint(
            timestamp=dosage.administration_time,
            point_type=DataPointType.DOSAGE,
            description=DOSAGE_DESCRIPTION,
            value=dosage.dosage_amount,
            unit=dosage.dosage_unit,
        )

    def merge(
        self,
        events: list[ClinicalEvent],
        dosages: list[DosageRecord],
    ) -> list[TimelineDataPoint]:
        """Convert and stable-sort both record sets by timestamp."""
        points = [self.event_point(event) for event in events]
        points.extend(self.dosage_point(dosage) for dosage in dosages)
        # Stable: on equal timestamps events stay ahead of dosages
        return sorted(points, key=attrgetter("timestamp"))

    async def assemble(
        self,
        patient_id: UUID,
        start: datetime,
        end: datetime,
    ) -> list[TimelineDataPoint]:
        """
        Merged timeline for a patient over the closed window [start, end].

        Raises:
            InvalidPatientIdError: patient_id is missing.
            InvalidRangeError: start is after end.
        """
        require_patient_id(patient_id)
        require_range(start, end)

        events, dosages = await asyncio.gather(
            self._fetch(self.store.find_events(patient_id, start=start, end=end)),
            self._fetch(self.store.find_dosages(patient_id, start=start, end=end)),
        )
        points = self.merge(events, dosages)

        logger.debug(
            "Assembled timeline",
            extra={"patient_id": str(patient_id), "events": len(events), "dosages": len(dosages)}
        )
        return points

    async def assemble_for_medication(
        self,
        patient_id: UUID,
        medication_id: UUID,
        start: datetime,
        end: datetime,
    ) -> list[TimelineDataPoint]:
        """Merged timeline restricted to events and dosages of one medication."""
        require_patient_id(patient_id)
        require_medication_id(medication_id)
        require_range(start, end)

        events, dosages = await asyncio.gather(
            self._fetch(self.store.find_events(
                patient_id, medication_id=medication_id, start=start, end=end
            )),
            self._fetch(self.store.find_dosages(
                patient_id, medication_id=medication_id, start=start, end=end
            )),
        )
        return self.merge(events, dosages)

    async def build_analysis(
        self,
        patient_id: UUID,
        start: datetime,
        end: datetime,
        medication_id: Optional[UUID] = None,
    ) -> TimelineAnalysis:
        """Timeline wrapped with statistics and detected activity patterns."""
        if medication_id is None:
            points = await self.assemble(patient_id, start, end)
        else:
            points = await self.assemble_for_medication(patient_id, medication_id, start, end)

        return TimelineAnalysis(
            patient_id=patient_id,
            medication_id=medication_id,
            period_start=start,
            period_end=end,
            data_points=points,
            statistics=self.statistics(points),
            patterns=self.identify_patterns(points),
            generated_at=self.now(),
        )

    @staticmethod
    def statistics(points: list[TimelineDataPoint]) -> TimelineStatistics:
        events = sum(1 for point in points if point.is_event)
        time_span_days = None
        if points:
            time_span_days = (points[-1].timestamp - points[0].timestamp).days

        return TimelineStatistics(
            total_data_points=len(points),
            medical_events=events,
            medication_dosages=len(points) - events,
            time_span_days=time_span_days,
        )

    @staticmethod
    def identify_patterns(points: list[TimelineDataPoint]) -> list[str]:
        patterns: list[str] = []
        if not points:
            return patterns

        events = sum(1 for point in points if point.is_event)
        dosages = len(points) - events

        if events > dosages * 1.5:
            patterns.append("High event frequency relative to medication dosages")
        elif dosages > events * 2:
            patterns.append("Consistent medication administration with low event frequency")

        if len(points) > 10:
            patterns.append("Dense activity period with multiple data points")

        return patterns
