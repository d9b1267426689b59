"""
Patient analytics endpoints.

Timelines, medication correlations, impact analysis and dashboard
summaries. Validation errors raised by the services are mapped to 400 by
the application's exception handlers.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from starlette.requests import Request

from app.core.auth import verify_api_key
from app.core.logging import get_logger
from app.core.rate_limit import ANALYTICS_LIMIT, HEAVY_ANALYTICS_LIMIT, limiter
from app.core.timeutils import to_naive_utc
from app.dependencies import get_analytics_service
from app.schemas.analytics import (
    AdherenceCorrelation,
    AnalyticsOverview,
    CorrelationAnalysis,
    DashboardSummary,
    ImpactAnalysis,
    TimelineAnalysis,
)
from app.services.analytics_service import AnalyticsService

logger = get_logger(__name__)

router = APIRouter(
    prefix="/analytics",
    tags=["analytics"],
    dependencies=[Depends(verify_api_key)]
)

START_DATE = Query(..., description="Window start (inclusive), ISO-8601")
END_DATE = Query(..., description="Window end (inclusive), ISO-8601")


# ============================================================================
# TIMELINE ENDPOINTS
# ============================================================================

@router.get("/timeline/{patient_id}", response_model=TimelineAnalysis)
@limiter.limit(ANALYTICS_LIMIT)
async def get_timeline_analysis(
    request: Request,
    patient_id: UUID,
    start_date: datetime = START_DATE,
    end_date: datetime = END_DATE,
    service: AnalyticsService = Depends(get_analytics_service),
):
    """
    Merged event and dosage timeline for a patient over a closed window.

    Events carry severity and BMI; dosages carry amount and unit.
    """
    logger.info("Timeline requested", extra={"patient_id": str(patient_id)})
    return await service.get_timeline_analysis(
        patient_id, to_naive_utc(start_date), to_naive_utc(end_date)
    )


@router.get("/timeline/{patient_id}/medication/{medication_id}", response_model=TimelineAnalysis)
@limiter.limit(ANALYTICS_LIMIT)
async def get_medication_timeline_analysis(
    request: Request,
    patient_id: UUID,
    medication_id: UUID,
    start_date: datetime = START_DATE,
    end_date: datetime = END_DATE,
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Timeline restricted to one medication's events and dosages."""
    logger.info(
        "Medication timeline requested",
        extra={"patient_id": str(patient_id), "medication_id": str(medication_id)}
    )
    return await service.get_timeline_analysis(
        patient_id, to_naive_utc(start_date), to_naive_utc(end_date), medication_id
    )


# ============================================================================
# CORRELATION ENDPOINTS
# ============================================================================

@router.get(
    "/correlation/{patient_id}/medication/{medication_id}",
    response_model=CorrelationAnalysis
)
@limiter.limit(ANALYTICS_LIMIT)
async def get_medication_correlation(
    request: Request,
    patient_id: UUID,
    medication_id: UUID,
    service: AnalyticsService = Depends(get_analytics_service),
):
    """How often events follow doses of a medication within the post-dose window."""
    logger.info(
        "Medication correlation requested",
        extra={"patient_id": str(patient_id), "medication_id": str(medication_id)}
    )
    return await service.get_medication_correlation(patient_id, medication_id)


@router.get(
    "/correlation/{patient_id}/all-medications",
    response_model=list[CorrelationAnalysis]
)
@limiter.limit(HEAVY_ANALYTICS_LIMIT)
async def get_all_medication_correlations(
    request: Request,
    patient_id: UUID,
    service: AnalyticsService = Depends(get_analytics_service),
):
    """One correlation per medication in the patient's dosage history."""
    logger.info("All-medication correlations requested", extra={"patient_id": str(patient_id)})
    return await service.get_all_medication_correlations(patient_id)


@router.get("/adherence/{patient_id}", response_model=AdherenceCorrelation)
@limiter.limit(HEAVY_ANALYTICS_LIMIT)
async def get_adherence_correlation(
    request: Request,
    patient_id: UUID,
    start_date: datetime = START_DATE,
    end_date: datetime = END_DATE,
    medication_id: Optional[UUID] = Query(None, description="Restrict dosages to one medication"),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Correlation between daily adherence and daily symptom burden."""
    logger.info("Adherence correlation requested", extra={"patient_id": str(patient_id)})
    return await service.get_adherence_correlation(
        patient_id, to_naive_utc(start_date), to_naive_utc(end_date), medication_id
    )


# ============================================================================
# IMPACT & DASHBOARD ENDPOINTS
# ============================================================================

@router.get("/impact/{patient_id}/medication/{medication_id}", response_model=ImpactAnalysis)
@limiter.limit(ANALYTICS_LIMIT)
async def get_medication_impact(
    request: Request,
    patient_id: UUID,
    medication_id: UUID,
    start_date: datetime = START_DATE,
    end_date: datetime = END_DATE,
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Effectiveness score, symptom share and weekly trend buckets for a medication."""
    logger.info(
        "Medication impact requested",
        extra={"patient_id": str(patient_id), "medication_id": str(medication_id)}
    )
    return await service.get_medication_impact(
        patient_id, medication_id, to_naive_utc(start_date), to_naive_utc(end_date)
    )


@router.get("/dashboard/{patient_id}", response_model=DashboardSummary)
@limiter.limit(ANALYTICS_LIMIT)
async def get_dashboard_summary(
    request: Request,
    patient_id: UUID,
    recent_days: Optional[int] = Query(None, ge=1, le=365),
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Totals and breakdowns over the patient's whole history."""
    logger.info("Dashboard summary requested", extra={"patient_id": str(patient_id)})
    return await service.get_dashboard_summary(patient_id, recent_days)


@router.get("/weekly-trends/{patient_id}", response_model=dict[str, DashboardSummary])
@limiter.limit(ANALYTICS_LIMIT)
async def get_weekly_trends(
    request: Request,
    patient_id: UUID,
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Per-week summaries counted back from now, "Week 1" being the latest."""
    logger.info("Weekly trends requested", extra={"patient_id": str(patient_id)})
    return await service.get_weekly_summaries(patient_id)


@router.get("/overview/{patient_id}", response_model=AnalyticsOverview)
@limiter.limit(HEAVY_ANALYTICS_LIMIT)
async def get_analytics_overview(
    request: Request,
    patient_id: UUID,
    service: AnalyticsService = Depends(get_analytics_service),
):
    """Dashboard summary together with every medication's correlation."""
    logger.info("Analytics overview requested", extra={"patient_id": str(patient_id)})
    return await service.get_overview(patient_id)
