"""
Medication correlation engine.

Relates a medication's dosing history to the clinical events that follow it:
a dose-to-event temporal correlation, Pearson correlation between daily
adherence and daily symptom burden, and the windowed impact analysis.
"""

import asyncio
import math
from bisect import bisect_left, bisect_right
from collections import Counter
from datetime import datetime, timedelta
from typing import Optional, Sequence
from uuid import UUID

import numpy as np
import pandas as pd

from app.core.logging import get_logger
from app.schemas.analytics import (
    AdherenceCorrelation,
    AdherenceDay,
    AdherenceTrend,
    CorrelationAnalysis,
    ImpactAnalysis,
    WeeklyTrendBucket,
)
from app.schemas.records import ClinicalEvent, DosageRecord, EventCategory
from app.services.base import (
    AnalyticsComponent,
    require_medication_id,
    require_patient_id,
    require_range,
)

logger = get_logger(__name__)

WEEK = timedelta(weeks=1)

# Below this relative size a sum of squares is treated as zero variance.
_VARIANCE_EPSILON = 1e-12


def correlation_percentage(dosage_count: int, event_count: int) -> float:
    """Events per dose as a percentage, capped at 100; 0 when there are no doses."""
    if dosage_count <= 0:
        return 0.0
    return min(100.0, event_count * 100.0 / dosage_count)


def correlation_strength(percentage: float) -> float:
    """Discretize a correlation percentage into a 0.0-1.0 strength score."""
    if percentage >= 80:
        return 1.0
    if percentage >= 60:
        return 0.8
    if percentage >= 40:
        return 0.6
    if percentage >= 20:
        return 0.4
    if percentage > 0:
        return 0.2
    return 0.0


def pearson(x: Sequence[float], y: Sequence[float]) -> float:
    """
    Pearson product-moment correlation of two equal-length series.

    r = (nΣXY − ΣXΣY) / sqrt((nΣX² − (ΣX)²)(nΣY² − (ΣY)²))

    Returns 0.0 for empty input and whenever either series has zero
    variance, instead of NaN.

    Raises:
        ValueError: the series differ in length.
    """
    xs = np.asarray(x, dtype=float)
    ys = np.asarray(y, dtype=float)

    if xs.shape != ys.shape:
        raise ValueError(f"Series length mismatch: {xs.size} != {ys.size}")

    n = xs.size
    if n == 0:
        return 0.0

    sum_x = xs.sum()
    sum_y = ys.sum()
    sum_xx = np.dot(xs, xs)
    sum_yy = np.dot(ys, ys)
    sum_xy = np.dot(xs, ys)

    var_x = n * sum_xx - sum_x * sum_x
    var_y = n * sum_yy - sum_y * sum_y

    if var_x <= _VARIANCE_EPSILON * n * sum_xx or var_y <= _VARIANCE_EPSILON * n * sum_yy:
        return 0.0

    denominator = math.sqrt(var_x * var_y)
    if denominator == 0 or not math.isfinite(denominator):
        return 0.0

    r = (n * sum_xy - sum_x * sum_y) / denominator
    return float(np.clip(r, -1.0, 1.0))


class CorrelationEngine(AnalyticsComponent):
    """Correlation and impact analytics for one patient's medications."""

    @property
    def post_dose_window(self) -> timedelta:
        return timedelta(hours=self.settings.POST_DOSE_WINDOW_HOURS)

    async def medication_name(self, medication_id: UUID) -> str:
        medication = await self._fetch(self.store.get_medication(medication_id))
        if medication is not None:
            return medication.name
        return f"Medication {str(medication_id)[:8]}"

    # ------------------------------------------------------------------
    # Dose -> event correlation
    # ------------------------------------------------------------------

    def events_following_dosages(
        self,
        dosages: list[DosageRecord],
        events: list[ClinicalEvent],
    ) -> list[ClinicalEvent]:
        """
        Distinct events inside any dose's post-dose window [t, t + window].

        An event covered by several overlapping windows is returned once.
        """
        ordered = sorted(events, key=lambda event: event.event_time)
        times = [event.event_time for event in ordered]
        window = self.post_dose_window

        seen: set[UUID] = set()
        following: list[ClinicalEvent] = []
        for dosage in sorted(dosages, key=lambda d: d.administration_time):
            lo = bisect_left(times, dosage.administration_time)
            hi = bisect_right(times, dosage.administration_time + window)
            for event in ordered[lo:hi]:
                if event.id not in seen:
                    seen.add(event.id)
                    following.append(event)
        return following

    async def analyze_medication(
        self,
        patient_id: UUID,
        medication_id: UUID,
    ) -> CorrelationAnalysis:
        """
        Correlate a medication's doses with the events that follow them.

        A medication with no dosage history yields a zero-valued analysis.

        Raises:
            InvalidPatientIdError, InvalidMedicationIdError
        """
        require_patient_id(patient_id)
        require_medication_id(medication_id)

        dosages, name = await asyncio.gather(
            self._fetch(self.store.find_dosages(patient_id, medication_id=medication_id)),
            self.medication_name(medication_id),
        )

        if not dosages:
            return CorrelationAnalysis(
                medication_id=medication_id,
                patient_id=patient_id,
                medication_name=name,
                total_dosages=0,
                total_events_after_dosage=0,
                correlation_percentage=0.0,
                correlation_strength=0.0,
                generated_at=self.now(),
            )

        first_dose = min(d.administration_time for d in dosages)
        last_dose = max(d.administration_time for d in dosages)
        events = await self._fetch(self.store.find_events(
            patient_id, start=first_dose, end=last_dose + self.post_dose_window
        ))
        following = self.events_following_dosages(dosages, events)

        percentage = correlation_percentage(len(dosages), len(following))
        by_category: Counter = Counter()
        by_severity: Counter = Counter()
        for event in following:
            by_category[event.category] += 1
            by_severity[event.severity] += 1

        logger.debug(
            "Computed medication correlation",
            extra={
                "patient_id": str(patient_id),
                "medication_id": str(medication_id),
                "dosages": len(dosages),
                "events_after_dosage": len(following),
            }
        )

        return CorrelationAnalysis(
            medication_id=medication_id,
            patient_id=patient_id,
            medication_name=name,
            total_dosages=len(dosages),
            total_events_after_dosage=len(following),
            correlation_percentage=percentage,
            correlation_strength=correlation_strength(percentage),
            events_by_category=dict(by_category),
            events_by_severity=dict(by_severity),
            generated_at=self.now(),
        )

    async def analyze_all_medications(self, patient_id: UUID) -> list[CorrelationAnalysis]:
        """One correlation analysis per medication in the patient's dosage history."""
        require_patient_id(patient_id)

        medication_ids = await self._fetch(self.store.find_medication_ids(patient_id))
        return list(await asyncio.gather(*(
            self.analyze_medication(patient_id, medication_id)
            for medication_id in medication_ids
        )))

    # ------------------------------------------------------------------
    # Impact analysis
    # ------------------------------------------------------------------

    async def analyze_impact(
        self,
        patient_id: UUID,
        medication_id: UUID,
        start: datetime,
        end: datetime,
    ) -> ImpactAnalysis:
        """
        Effectiveness-oriented statistics for a medication over [start, end].

        Dosages are those of the medication; events are all of the patient's
        events in the window.

        Raises:
            InvalidPatientIdError, InvalidMedicationIdError, InvalidRangeError
        """
        require_patient_id(patient_id)
        require_medication_id(medication_id)
        require_range(start, end)

        dosages, events, name = await asyncio.gather(
            self._fetch(self.store.find_dosages(
                patient_id, medication_id=medication_id, start=start, end=end
            )),
            self._fetch(self.store.find_events(patient_id, start=start, end=end)),
            self.medication_name(medication_id),
        )

        days = max(1, (end.date() - start.date()).days)
        symptom_events = sum(1 for event in events if "SYMPTOM" in event.category.name)
        adverse_events = sum(1 for event in events if "ADVERSE" in event.category.name)

        return ImpactAnalysis(
            medication_id=medication_id,
            patient_id=patient_id,
            medication_name=name,
            period_start=start,
            period_end=end,
            total_dosages=len(dosages),
            total_events=len(events),
            average_events_per_day=len(events) / days,
            symptom_events=symptom_events,
            adverse_reaction_events=adverse_events,
            symptom_reduction_percentage=self.symptom_reduction(len(events), symptom_events),
            effectiveness_score=self.effectiveness(len(dosages), len(events)),
            weekly_trends=self.weekly_trends(events, dosages, start, end),
            generated_at=self.now(),
        )

    def effectiveness(self, dosage_count: int, event_count: int) -> float:
        """More events per dose lowers effectiveness linearly, floored at 0."""
        if dosage_count == 0:
            return 0.0
        events_per_dosage = event_count / dosage_count
        return max(0.0, 1.0 - events_per_dosage / self.settings.EFFECTIVENESS_DIVISOR)

    @staticmethod
    def symptom_reduction(total_events: int, symptom_events: int) -> float:
        # Share of non-symptom events; no baseline period is compared
        if total_events == 0:
            return 0.0
        return max(0.0, (1.0 - symptom_events / total_events) * 100.0)

    @staticmethod
    def weekly_trends(
        events: list[ClinicalEvent],
        dosages: list[DosageRecord],
        start: datetime,
        end: datetime,
    ) -> dict[str, WeeklyTrendBucket]:
        """Seven-day buckets from start; the last bucket is cut at end."""
        bucket_count = max(1, math.ceil((end - start) / WEEK))
        buckets = [
            WeeklyTrendBucket(
                label=f"Week {index + 1}",
                start=start + index * WEEK,
                end=min(start + (index + 1) * WEEK, end),
            )
            for index in range(bucket_count)
        ]

        def bucket_for(timestamp: datetime) -> WeeklyTrendBucket:
            return buckets[min(int((timestamp - start) / WEEK), bucket_count - 1)]

        for event in events:
            bucket_for(event.event_time).events += 1
        for dosage in dosages:
            bucket_for(dosage.administration_time).dosages += 1

        return {bucket.label: bucket for bucket in buckets}

    # ------------------------------------------------------------------
    # Adherence vs. symptom burden
    # ------------------------------------------------------------------

    def classify_trend(self, r: float) -> AdherenceTrend:
        threshold = self.settings.TREND_THRESHOLD
        if abs(r) < threshold:
            return AdherenceTrend.NEUTRAL
        if r < 0:
            return AdherenceTrend.POSITIVE
        return AdherenceTrend.NEGATIVE

    @staticmethod
    def interpret(trend: AdherenceTrend) -> str:
        return {
            AdherenceTrend.POSITIVE: "Better medication adherence appears to correlate with fewer events",
            AdherenceTrend.NEGATIVE: "Higher medication adherence correlates with more events (review medication effectiveness)",
            AdherenceTrend.NEUTRAL: "No significant correlation between medication adherence and event frequency",
            AdherenceTrend.INSUFFICIENT_DATA: "Not enough data for analysis",
        }[trend]

    @staticmethod
    def daily_series(
        events: list[ClinicalEvent],
        dosages: list[DosageRecord],
        start: datetime,
        end: datetime,
    ) -> pd.DataFrame:
        """
        Per-day adherence and symptom burden over the window.

        Columns: scheduled, administered, adherence, event_count,
        average_severity. Days without scheduled doses count as fully
        adherent.
        """
        days = pd.date_range(
            pd.Timestamp(start).normalize(),
            pd.Timestamp(end).normalize(),
            freq="D",
        )

        doses = pd.Series(
            [1 if dosage.administered else 0 for dosage in dosages],
            index=pd.DatetimeIndex([dosage.administration_time for dosage in dosages]),
            dtype="int64",
        )
        dose_days = doses.groupby(doses.index.normalize())

        symptoms = [event for event in events if event.category is EventCategory.SYMPTOM]
        severities = pd.Series(
            [event.severity.weight for event in symptoms],
            index=pd.DatetimeIndex([event.event_time for event in symptoms]),
            dtype="float64",
        )
        severity_days = severities.groupby(severities.index.normalize())

        frame = pd.DataFrame(index=days)
        frame["scheduled"] = dose_days.count().reindex(days, fill_value=0).astype("int64")
        frame["administered"] = dose_days.sum().reindex(days, fill_value=0).astype("int64")
        frame["event_count"] = severity_days.count().reindex(days, fill_value=0).astype("int64")
        frame["average_severity"] = severity_days.mean().reindex(days, fill_value=0.0).astype("float64")

        adherence = frame["administered"] / frame["scheduled"].where(frame["scheduled"] > 0) * 100.0
        frame["adherence"] = adherence.fillna(100.0).round(2)
        return frame

    async def analyze_adherence(
        self,
        patient_id: UUID,
        start: datetime,
        end: datetime,
        medication_id: Optional[UUID] = None,
    ) -> AdherenceCorrelation:
        """
        Pearson correlation of daily adherence against daily symptom events
        and their mean severity.

        Only days with symptom events or missed doses are informative; with
        fewer than two such days the result is INSUFFICIENT_DATA.
        """
        require_patient_id(patient_id)
        require_range(start, end)

        dosages, events = await asyncio.gather(
            self._fetch(self.store.find_dosages(
                patient_id, medication_id=medication_id, start=start, end=end
            )),
            self._fetch(self.store.find_events(patient_id, start=start, end=end)),
        )

        frame = self.daily_series(events, dosages, start, end)
        informative = frame[(frame["event_count"] > 0) | (frame["adherence"] < 100.0)]

        days = [
            AdherenceDay(
                day=timestamp.date(),
                scheduled_doses=int(row.scheduled),
                administered_doses=int(row.administered),
                adherence_percentage=float(row.adherence),
                event_count=int(row.event_count),
                average_severity=round(float(row.average_severity), 2),
            )
            for timestamp, row in frame.iterrows()
        ]

        if len(informative) < 2:
            trend = AdherenceTrend.INSUFFICIENT_DATA
            count_r = severity_r = 0.0
        else:
            count_r = pearson(informative["adherence"], informative["event_count"])
            severity_r = pearson(informative["adherence"], informative["average_severity"])
            trend = self.classify_trend(count_r)

        return AdherenceCorrelation(
            patient_id=patient_id,
            medication_id=medication_id,
            period_start=start,
            period_end=end,
            days=days,
            sample_size=len(informative),
            event_count_coefficient=count_r,
            severity_coefficient=severity_r,
            trend=trend,
            interpretation=self.interpret(trend),
            generated_at=self.now(),
        )
