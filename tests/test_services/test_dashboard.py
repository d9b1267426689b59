"""
Tests for dashboard aggregation.
"""

import itertools
from datetime import timedelta

import pytest

from app.config import get_settings
from app.core.exceptions import InvalidPatientIdError
from app.schemas.records import EventCategory, EventSeverity
from app.services.dashboard_aggregator import DashboardAggregator


@pytest.fixture
def aggregator(store, clock):
    """Create dashboard aggregator instance."""
    return DashboardAggregator(store, clock=clock)


@pytest.fixture
def history(store, make_event, make_dosage, now):
    """Events at 1, 10 and 20 days ago plus two dosages."""
    store.add_event(make_event(now - timedelta(days=1), severity=EventSeverity.SEVERE))
    store.add_event(make_event(
        now - timedelta(days=10),
        category=EventCategory.ADVERSE_REACTION,
        severity=EventSeverity.CRITICAL,
    ))
    store.add_event(make_event(now - timedelta(days=20), severity=EventSeverity.MILD))
    store.add_dosage(make_dosage(now - timedelta(days=2)))
    store.add_dosage(make_dosage(now - timedelta(days=9)))
    return store


@pytest.mark.asyncio
async def test_summarize_counts(aggregator, history, patient_id, now):
    """Test totals, breakdowns and recent activity."""
    summary = await aggregator.summarize(patient_id)

    assert summary.total_events == 3
    assert summary.total_dosages == 2
    assert summary.events_by_category == {EventCategory.SYMPTOM: 2, EventCategory.ADVERSE_REACTION: 1}
    assert summary.events_by_severity == {
        EventSeverity.SEVERE: 1,
        EventSeverity.CRITICAL: 1,
        EventSeverity.MILD: 1,
    }
    assert summary.recent_events == 1
    assert summary.recent_window_days == 7
    assert summary.most_common_category is EventCategory.SYMPTOM
    assert summary.high_severity_percentage == pytest.approx(66.67, abs=0.01)
    assert summary.has_increased_recent_activity is True
    assert summary.generated_at == now


@pytest.mark.asyncio
async def test_summarize_custom_recent_window(aggregator, history, patient_id):
    """Test a wider recent window picks up older events."""
    summary = await aggregator.summarize(patient_id, recent_days=14)

    assert summary.recent_events == 2
    assert summary.recent_window_days == 14


@pytest.mark.asyncio
async def test_summarize_recent_bound_is_exclusive(aggregator, store, make_event, patient_id, now):
    """Test an event exactly at now - 7 days is not recent."""
    store.add_event(make_event(now - timedelta(days=7)))

    summary = await aggregator.summarize(patient_id)

    assert summary.total_events == 1
    assert summary.recent_events == 0


@pytest.mark.asyncio
async def test_summarize_empty_history(aggregator, patient_id):
    """Test a patient without history gets zeros."""
    summary = await aggregator.summarize(patient_id)

    assert summary.total_events == 0
    assert summary.total_dosages == 0
    assert summary.events_by_category == {}
    assert summary.high_severity_percentage == 0.0
    assert summary.has_increased_recent_activity is False
    assert summary.most_common_severity is None


@pytest.mark.asyncio
async def test_summarize_rejects_missing_patient(aggregator):
    """Test patient id is required."""
    with pytest.raises(InvalidPatientIdError):
        await aggregator.summarize(None)


@pytest.mark.asyncio
async def test_weekly_summaries_empty_history(aggregator, patient_id):
    """Test eight zero-valued weeks for a patient without history."""
    weeks = await aggregator.weekly_summaries(patient_id)

    assert list(weeks) == [f"Week {k}" for k in range(1, 9)]
    for summary in weeks.values():
        assert summary.total_events == 0
        assert summary.total_dosages == 0
        assert summary.recent_events == 0


@pytest.mark.asyncio
async def test_weekly_summaries_buckets(aggregator, history, patient_id):
    """Test events and dosages land in the week they happened."""
    weeks = await aggregator.weekly_summaries(patient_id)

    assert weeks["Week 1"].total_events == 1
    assert weeks["Week 1"].total_dosages == 1
    assert weeks["Week 2"].total_events == 1
    assert weeks["Week 2"].total_dosages == 1
    assert weeks["Week 3"].total_events == 1
    assert weeks["Week 3"].recent_events == 1
    assert weeks["Week 4"].total_events == 0
    assert weeks["Week 1"].events_by_category == {}


@pytest.mark.asyncio
async def test_weekly_summaries_with_breakdowns(store, history, clock, patient_id):
    """Test breakdown maps are filled when enabled."""
    settings = get_settings().model_copy(update={"WEEKLY_SUMMARY_BREAKDOWNS": True})
    aggregator = DashboardAggregator(store, settings, clock)

    weeks = await aggregator.weekly_summaries(patient_id)

    assert weeks["Week 2"].events_by_category == {EventCategory.ADVERSE_REACTION: 1}
    assert weeks["Week 2"].events_by_severity == {EventSeverity.CRITICAL: 1}


@pytest.fixture
def ticking_clock(now):
    """Clock that moves forward one minute on every read, starting at now."""
    ticks = itertools.count()
    return lambda: now + timedelta(minutes=next(ticks))


@pytest.mark.asyncio
async def test_summarize_reads_clock_once(store, history, ticking_clock, patient_id, now):
    """Test the recent window and generated_at share a single clock reading."""
    aggregator = DashboardAggregator(store, clock=ticking_clock)

    summary = await aggregator.summarize(patient_id)

    assert summary.generated_at == now
    assert summary.recent_events == 1


@pytest.mark.asyncio
async def test_weekly_summaries_share_one_instant(store, history, ticking_clock, patient_id, now):
    """Test every week is anchored at the same instant, so the windows tile without gaps."""
    aggregator = DashboardAggregator(store, clock=ticking_clock)

    weeks = await aggregator.weekly_summaries(patient_id)

    assert {summary.generated_at for summary in weeks.values()} == {now}
    assert all(summary.recent_window_days == 7 for summary in weeks.values())
    assert weeks["Week 1"].total_events == 1
    assert weeks["Week 2"].total_events == 1
    assert weeks["Week 3"].total_events == 1


@pytest.mark.asyncio
async def test_summarize_is_idempotent(aggregator, history, patient_id):
    """Test repeated summaries over unchanged data are equal."""
    first = await aggregator.summarize(patient_id)
    second = await aggregator.summarize(patient_id)

    assert first == second


@pytest.mark.asyncio
async def test_weekly_summaries_are_idempotent(aggregator, history, patient_id):
    """Test repeated weekly summaries over unchanged data are equal."""
    first = await aggregator.weekly_summaries(patient_id)
    second = await aggregator.weekly_summaries(patient_id)

    assert first == second
