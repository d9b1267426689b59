"""
Analytics service facade.

Owns the record store and the analytics components built over it, and is
the single entry point the API layer calls into.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from app.config import Settings, get_settings
from app.core.metrics import track_operation
from app.core.timeutils import Clock, utc_now
from app.schemas.analytics import (
    AdherenceCorrelation,
    AnalyticsOverview,
    CorrelationAnalysis,
    DashboardSummary,
    ImpactAnalysis,
    TimelineAnalysis,
    TimelineDataPoint,
)
from app.services.correlation_engine import CorrelationEngine
from app.services.dashboard_aggregator import DashboardAggregator
from app.services.impact_analyzer import ImpactAnalyzer
from app.services.timeline_assembler import TimelineAssembler
from app.storage.base import RecordStore


class AnalyticsService:
    """
    Read-only analytics over one record store.

    Every method validates its inputs, computes a fresh result and keeps
    no state between calls, so one instance serves concurrent requests.
    """

    def __init__(
        self,
        store: RecordStore,
        settings: Optional[Settings] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self.store = store
        self.settings = settings or get_settings()
        clock = clock or utc_now

        self.timeline = TimelineAssembler(store, self.settings, clock)
        self.correlation = CorrelationEngine(store, self.settings, clock)
        self.dashboard = DashboardAggregator(store, self.settings, clock)
        self.impact = ImpactAnalyzer(
            store,
            self.settings,
            clock,
            correlation_engine=self.correlation,
            dashboard_aggregator=self.dashboard,
        )

    async def close(self) -> None:
        await self.store.close()

    # ========================================================================
    # TIMELINE
    # ========================================================================

    async def get_timeline(
        self,
        patient_id: UUID,
        start: datetime,
        end: datetime,
    ) -> list[TimelineDataPoint]:
        with track_operation("timeline"):
            return await self.timeline.assemble(patient_id, start, end)

    async def get_medication_timeline(
        self,
        patient_id: UUID,
        medication_id: UUID,
        start: datetime,
        end: datetime,
    ) -> list[TimelineDataPoint]:
        with track_operation("medication_timeline"):
            return await self.timeline.assemble_for_medication(patient_id, medication_id, start, end)

    async def get_timeline_analysis(
        self,
        patient_id: UUID,
        start: datetime,
        end: datetime,
        medication_id: Optional[UUID] = None,
    ) -> TimelineAnalysis:
        with track_operation("timeline_analysis"):
            return await self.timeline.build_analysis(patient_id, start, end, medication_id)

    # ========================================================================
    # CORRELATION
    # ========================================================================

    async def get_medication_correlation(
        self,
        patient_id: UUID,
        medication_id: UUID,
    ) -> CorrelationAnalysis:
        with track_operation("medication_correlation"):
            return await self.correlation.analyze_medication(patient_id, medication_id)

    async def get_all_medication_correlations(self, patient_id: UUID) -> list[CorrelationAnalysis]:
        with track_operation("all_medication_correlations"):
            return await self.correlation.analyze_all_medications(patient_id)

    async def get_adherence_correlation(
        self,
        patient_id: UUID,
        start: datetime,
        end: datetime,
        medication_id: Optional[UUID] = None,
    ) -> AdherenceCorrelation:
        with track_operation("adherence_correlation"):
            return await self.correlation.analyze_adherence(patient_id, start, end, medication_id)

    # ========================================================================
    # IMPACT & DASHBOARD
    # ========================================================================

    async def get_medication_impact(
        self,
        patient_id: UUID,
        medication_id: UUID,
        start: datetime,
        end: datetime,
    ) -> ImpactAnalysis:
        with track_operation("medication_impact"):
            return await self.impact.analyze(patient_id, medication_id, start, end)

    async def get_dashboard_summary(
        self,
        patient_id: UUID,
        recent_days: Optional[int] = None,
    ) -> DashboardSummary:
        with track_operation("dashboard_summary"):
            return await self.dashboard.summarize(patient_id, recent_days)

    async def get_weekly_summaries(self, patient_id: UUID) -> dict[str, DashboardSummary]:
        with track_operation("weekly_summaries"):
            return await self.dashboard.weekly_summaries(patient_id)

    async def get_overview(self, patient_id: UUID) -> AnalyticsOverview:
        with track_operation("overview"):
            return await self.impact.overview(patient_id)
