"""
Dashboard aggregation.

Rolls a patient's history up into summary counts, both over the whole
history and in consecutive weeks counted back from now.
"""

import asyncio
from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

from app.core.logging import get_logger
from app.schemas.analytics import DashboardSummary
from app.services.base import AnalyticsComponent, require_patient_id

logger = get_logger(__name__)

WEEK = timedelta(weeks=1)


class DashboardAggregator(AnalyticsComponent):
    """Summary counts for the patient dashboard."""

    async def summarize(
        self,
        patient_id: UUID,
        recent_days: Optional[int] = None,
    ) -> DashboardSummary:
        """
        Summary over the patient's whole history.

        Args:
            patient_id: Patient to summarize
            recent_days: Size of the recent-activity window, defaults to
                RECENT_WINDOW_DAYS

        Returns:
            DashboardSummary with totals, breakdowns and the count of events
            strictly after now - recent_days
        """
        require_patient_id(patient_id)
        if recent_days is None:
            recent_days = self.settings.RECENT_WINDOW_DAYS
        now = self.now()
        since = now - timedelta(days=recent_days)

        total_events, total_dosages, by_category, by_severity, recent = await asyncio.gather(
            self._fetch(self.store.count_events(patient_id)),
            self._fetch(self.store.count_dosages(patient_id)),
            self._fetch(self.store.count_events_by_category(patient_id)),
            self._fetch(self.store.count_events_by_severity(patient_id)),
            self._fetch(self.store.count_events(patient_id, since=since)),
        )

        logger.debug(
            "Computed dashboard summary",
            extra={"patient_id": str(patient_id), "events": total_events, "dosages": total_dosages}
        )

        return DashboardSummary(
            patient_id=patient_id,
            total_events=total_events,
            total_dosages=total_dosages,
            events_by_category=by_category,
            events_by_severity=by_severity,
            recent_events=recent,
            recent_window_days=recent_days,
            generated_at=now,
        )

    async def week_summary(self, patient_id: UUID, weeks_back: int, now: datetime) -> DashboardSummary:
        """Summary for [now - k weeks, now - (k-1) weeks], both ends included."""
        start = now - weeks_back * WEEK
        end = now - (weeks_back - 1) * WEEK

        queries = [
            self._fetch(self.store.count_events(patient_id, start=start, end=end)),
            self._fetch(self.store.count_dosages(patient_id, start=start, end=end)),
        ]
        if self.settings.WEEKLY_SUMMARY_BREAKDOWNS:
            queries.append(self._fetch(self.store.count_events_by_category(patient_id, start=start, end=end)))
            queries.append(self._fetch(self.store.count_events_by_severity(patient_id, start=start, end=end)))

        results = await asyncio.gather(*queries)
        events, dosages = results[0], results[1]
        by_category, by_severity = (results[2], results[3]) if len(results) == 4 else ({}, {})

        return DashboardSummary(
            patient_id=patient_id,
            total_events=events,
            total_dosages=dosages,
            events_by_category=by_category,
            events_by_severity=by_severity,
            recent_events=events,
            recent_window_days=WEEK.days,
            generated_at=now,
        )

    async def weekly_summaries(self, patient_id: UUID) -> dict[str, DashboardSummary]:
        """Per-week summaries keyed "Week 1" (most recent) to "Week N", all anchored at one instant."""
        require_patient_id(patient_id)

        now = self.now()
        weeks = range(1, self.settings.WEEKLY_SUMMARY_WEEKS + 1)
        summaries = await asyncio.gather(*(self.week_summary(patient_id, k, now) for k in weeks))
        return {f"Week {k}": summary for k, summary in zip(weeks, summaries)}
