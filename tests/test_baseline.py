"""Tests for personal baselines and health snapshot building."""
from datetime import date, datetime, timedelta

import pytest

from bac_insights.baseline import linear_trend_slope, percentile, stats
from bac_insights.health import (
    DailySnapshot,
    HealthMetric,
    SessionHealthContext,
    SleepSegment,
    SleepStage,
    baseline_set,
    build_snapshot,
    summarize_sleep,
)

ANCHOR = date(2024, 5, 10)


def days_back(values, metric_field="steps"):
    """Snapshots ending at ANCHOR, oldest first."""
    n = len(values)
    return [
        DailySnapshot(day=ANCHOR - timedelta(days=n - 1 - i), **{metric_field: v})
        for i, v in enumerate(values)
    ]


def test_stats_for_one_to_five():
    result = stats(HealthMetric.STEPS, days_back([1, 2, 3, 4, 5]), ANCHOR)
    assert result.median == 3
    assert result.p25 == 2
    assert result.p75 == 4
    assert result.iqr == 2
    assert result.sample_count == 5
    assert result.trend_slope == pytest.approx(1.0)


def test_stats_needs_three_samples():
    assert stats(HealthMetric.STEPS, days_back([1000, 2000]), ANCHOR) is None
    # days without the metric do not count
    snapshots = days_back([1000, 2000]) + [DailySnapshot(day=ANCHOR - timedelta(days=5))]
    assert stats(HealthMetric.STEPS, snapshots, ANCHOR) is None


def test_stats_window_is_inclusive_by_day():
    snapshots = days_back([10, 20, 30, 40])  # ANCHOR-3 .. ANCHOR
    assert stats(HealthMetric.STEPS, snapshots, ANCHOR, window_days=3).sample_count == 3
    assert stats(HealthMetric.STEPS, snapshots, ANCHOR, window_days=4).sample_count == 4
    assert stats(HealthMetric.STEPS, snapshots, ANCHOR, window_days=0) is None
    # a datetime anchor is reduced to its day
    assert stats(HealthMetric.STEPS, snapshots, datetime(2024, 5, 10, 23, 59), window_days=4).sample_count == 4


def test_trend_follows_dates_not_input_order():
    snapshots = list(reversed(days_back([50, 40, 30, 20], metric_field="resting_heart_rate")))
    result = stats(HealthMetric.RESTING_HEART_RATE, snapshots, ANCHOR)
    assert result.trend_slope == pytest.approx(-10.0)


def test_percentile_interpolates():
    assert percentile([10, 20], 50) == 15
    assert percentile([], 50) == 0
    assert linear_trend_slope([7]) == 0


def test_summarize_sleep_and_efficiency():
    start = datetime(2024, 5, 9, 23, 0)
    segments = [
        SleepSegment(SleepStage.CORE, start, start + timedelta(hours=3)),
        SleepSegment(SleepStage.AWAKE, start + timedelta(hours=3), start + timedelta(hours=3, minutes=30)),
        SleepSegment(SleepStage.DEEP, start + timedelta(hours=3, minutes=30), start + timedelta(hours=5)),
        SleepSegment(SleepStage.REM, start + timedelta(hours=5), start + timedelta(hours=6)),
    ]
    summary = summarize_sleep(segments)
    assert summary.total_minutes == 330
    assert summary.deep_minutes == 90
    assert summary.rem_minutes == 60
    assert summary.awake_minutes == 30
    assert summary.efficiency == pytest.approx(330 / 360)

    snapshot = build_snapshot(ANCHOR, steps=8000, sleep_segments=segments)
    context = SessionHealthContext.from_snapshot(snapshot)
    assert context.sleep_hours == pytest.approx(5.5)
    assert context.step_count == 8000
    assert SessionHealthContext.from_snapshot(None) is None


def test_baseline_set_per_metric():
    snapshots = [
        DailySnapshot(day=ANCHOR - timedelta(days=i), steps=6000 + i * 100, resting_heart_rate=60 + i)
        for i in range(5)
    ]
    baselines = baseline_set(snapshots, ANCHOR)
    assert baselines.steps.median == 6200
    assert baselines.resting_heart_rate.median == 62
    assert baselines.hrv is None
    assert baselines.sleep is None
