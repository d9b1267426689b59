"""
Medication impact analysis.
"""

import asyncio
from datetime import datetime
from typing import Optional
from uuid import UUID

from app.config import Settings
from app.core.timeutils import Clock
from app.schemas.analytics import AnalyticsOverview, ImpactAnalysis
from app.services.base import AnalyticsComponent, require_patient_id
from app.services.correlation_engine import CorrelationEngine
from app.services.dashboard_aggregator import DashboardAggregator
from app.storage.base import RecordStore


class ImpactAnalyzer(AnalyticsComponent):
    """Thin layer over the correlation engine and dashboard aggregator."""

    def __init__(
        self,
        store: RecordStore,
        settings: Optional[Settings] = None,
        clock: Optional[Clock] = None,
        correlation_engine: Optional[CorrelationEngine] = None,
        dashboard_aggregator: Optional[DashboardAggregator] = None,
    ) -> None:
        super().__init__(store, settings, clock)
        self.correlation_engine = correlation_engine or CorrelationEngine(store, self.settings, self._clock)
        self.dashboard_aggregator = dashboard_aggregator or DashboardAggregator(store, self.settings, self._clock)

    async def analyze(
        self,
        patient_id: UUID,
        medication_id: UUID,
        start: datetime,
        end: datetime,
    ) -> ImpactAnalysis:
        return await self.correlation_engine.analyze_impact(patient_id, medication_id, start, end)

    async def overview(self, patient_id: UUID) -> AnalyticsOverview:
        """Dashboard summary together with every medication's correlation."""
        require_patient_id(patient_id)

        summary, correlations = await asyncio.gather(
            self.dashboard_aggregator.summarize(patient_id),
            self.correlation_engine.analyze_all_medications(patient_id),
        )
        return AnalyticsOverview(
            dashboard_summary=summary,
            medication_correlations=correlations,
            generated_at=self.now(),
        )
