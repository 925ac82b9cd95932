"""Tests for personal calibration and personalized patterns."""
from datetime import datetime, timedelta

import pytest

from bac_insights.calibration import (
    LearningFeatures,
    TrendDirection,
    learning_snapshot,
    personalized_patterns,
    score_delta,
    streak_count,
    trend_direction,
)
from bac_insights.models import MealSize, Session
from bac_insights.risk import PERSONAL_LEARNING_REASON, InsightLevel, assess

from conftest import build_session

NOW = datetime(2024, 6, 1, 23, 0)


def features(**flags):
    values = dict(
        high_peak=False, fast_pace=False, low_hydration=False,
        long_session=False, no_water=False, no_meal=False,
    )
    values.update(flags)
    return LearningFeatures(**values)


def rough_history(count=6):
    """Short evenings on earlier days, each followed by a rough morning."""
    return [
        build_session(
            start=NOW - timedelta(days=day + 1),
            hours=1.5,
            waters=[(20, 300)],
            meals=[(0, MealSize.REGULAR)],
            wellbeing=1,
            peak=0.08,
        )
        for day in range(count)
    ]


def current_evening():
    return Session(
        start_at=NOW - timedelta(hours=3),
        end_at=NOW - timedelta(hours=1),
        is_active=True,
        cached_peak_bac=0.09,
    )


def test_history_with_rough_mornings_raises_probability():
    session = current_evening()
    base = assess(session, None, at=NOW)
    learned = assess(session, None, at=NOW, history=rough_history())

    assert learned.morning_probability_percent >= base.morning_probability_percent + 10
    assert PERSONAL_LEARNING_REASON in learned.morning_reasons
    assert PERSONAL_LEARNING_REASON not in base.morning_reasons


def test_probability_bias_is_clamped():
    snapshot = learning_snapshot(current_evening(), rough_history(), None, NOW)
    assert snapshot.probability_bias == 20
    assert snapshot.score_delta == 0


def test_too_little_history_learns_nothing():
    session = current_evening()
    assert learning_snapshot(session, rough_history(3), None, NOW) is None
    assert assess(session, None, at=NOW, history=rough_history(3)) == assess(session, None, at=NOW)


def test_sessions_without_check_in_are_not_training_data():
    unchecked = [build_session(start=NOW - timedelta(days=d + 1), hours=1.5) for d in range(6)]
    assert learning_snapshot(current_evening(), unchecked, None, NOW) is None


def test_checked_in_session_ignores_learning():
    session = build_session(start=NOW - timedelta(hours=3), wellbeing=4)
    result = assess(session, None, at=NOW, history=rough_history())
    assert PERSONAL_LEARNING_REASON not in result.morning_reasons
    assert result.morning_risk == InsightLevel.LOW


def test_score_delta_follows_feature_rates():
    window = [build_session(wellbeing=1) for _ in range(3)] + [build_session(wellbeing=5) for _ in range(3)]
    window_features = [features(high_peak=True)] * 3 + [features()] * 3

    assert score_delta(features(high_peak=True), window, window_features) == 1
    assert score_delta(features(), window, window_features) == 0
    # the feature tends to come with good mornings
    flipped = [features()] * 3 + [features(high_peak=True)] * 3
    assert score_delta(features(high_peak=True), window, flipped) == -1


def test_score_delta_needs_support():
    window = [build_session(wellbeing=1) for _ in range(2)] + [build_session(wellbeing=5) for _ in range(4)]
    window_features = [features(no_meal=True)] * 2 + [features()] * 4
    assert score_delta(features(no_meal=True), window, window_features) == 0


def test_trend_direction():
    assert trend_direction([0.1, 0.1, 0.1], lower_is_better=True) == TrendDirection.STABLE
    assert trend_direction([0.20, 0.20, 0.10, 0.10], lower_is_better=True) == TrendDirection.IMPROVING
    assert trend_direction([0.20, 0.20, 0.10, 0.10], lower_is_better=False) == TrendDirection.WORSENING
    assert trend_direction([0.10, 0.12, 0.11, 0.13], lower_is_better=True) == TrendDirection.STABLE


def test_streak_stops_at_first_miss():
    values = [3, 2, 0, 5]
    assert streak_count(values, lambda v: v > 0) == 2
    assert streak_count([], lambda v: True) == 0


def test_patterns_defaults_without_history():
    session = build_session(active=True)
    patterns = personalized_patterns(session, [], at=session.start_at + timedelta(hours=1))

    assert patterns.peak_risk_threshold == pytest.approx(0.114)
    assert patterns.memory_risk_threshold == pytest.approx(0.144)
    assert patterns.pace_risk_threshold == pytest.approx(1.61)
    assert patterns.hydration_goal_progress == pytest.approx(0.75)
    assert patterns.peak_trend == TrendDirection.STABLE
    assert patterns.wellbeing_trend is None
    assert patterns.water_streak == 0
    assert patterns.meal_streak == 0
    assert len(patterns.notes) <= 4
    assert len(patterns.actions) <= 4


def test_patterns_thresholds_are_clamped():
    history = [build_session(start=NOW - timedelta(days=d + 1), peak=0.30, wellbeing=2) for d in range(5)]
    session = build_session(start=NOW, active=True, peak=0.25)
    patterns = personalized_patterns(session, history, at=NOW + timedelta(hours=1))

    assert patterns.peak_risk_threshold == 0.16
    assert patterns.memory_risk_threshold == 0.22
    assert patterns.wellbeing_trend == TrendDirection.STABLE
    assert any("below 3/5" in note for note in patterns.notes)
    assert any("stop alcohol" in action for action in patterns.actions)
