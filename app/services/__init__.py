"""Analytics services for MedTrack."""

from app.services.analytics_service import AnalyticsService
from app.services.correlation_engine import CorrelationEngine
from app.services.dashboard_aggregator import DashboardAggregator
from app.services.impact_analyzer import ImpactAnalyzer
from app.services.timeline_assembler import TimelineAssembler, calculate_bmi

__all__ = [
    "AnalyticsService",
    "CorrelationEngine",
    "DashboardAggregator",
    "ImpactAnalyzer",
    "TimelineAssembler",
    "calculate_bmi",
]
