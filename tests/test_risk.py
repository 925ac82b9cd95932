"""Tests for the evening risk assessment."""
from datetime import timedelta

import pytest

from bac_insights.health import SessionHealthContext
from bac_insights.models import BiologicalSex, DrinkCategory, MealSize, Profile
from bac_insights.risk import (
    InsightLevel,
    assess,
    level_for_calibrated_probability,
    level_for_morning_score,
    meal_mitigation,
    observed_morning_probability,
    risk_percent,
)

from conftest import T0, build_session

MALE_70 = Profile(weight=70, sex=BiologicalSex.MALE)


def four_shots():
    """Four 50 ml shots of 40% spirit, ten minutes apart, session still open."""
    shots = [(m, 50, 40, DrinkCategory.SPIRITS) for m in (0, 10, 20, 30)]
    return build_session(drinks=shots, active=True)


def test_score_levels():
    assert level_for_morning_score(0) == InsightLevel.LOW
    assert level_for_morning_score(1) == InsightLevel.LOW
    assert level_for_morning_score(2) == InsightLevel.MEDIUM
    assert level_for_morning_score(4) == InsightLevel.MEDIUM
    assert level_for_morning_score(5) == InsightLevel.HIGH


def test_calibrated_probability_levels():
    assert level_for_calibrated_probability(29) == InsightLevel.LOW
    assert level_for_calibrated_probability(30) == InsightLevel.MEDIUM
    assert level_for_calibrated_probability(64) == InsightLevel.MEDIUM
    assert level_for_calibrated_probability(65) == InsightLevel.HIGH


def test_risk_percent_rounds_half_up():
    assert risk_percent(5, 11) == 45
    assert risk_percent(6, 11) == 55
    assert risk_percent(20, 11) == 100
    assert risk_percent(3, 0) == 0
    assert observed_morning_probability(9) == 10
    assert observed_morning_probability(-1) == 95


def test_shots_evening():
    at = T0 + timedelta(hours=1)
    result = assess(four_shots(), MALE_70, at=at)

    assert result.peak_bac == pytest.approx(0.1176, abs=0.0005)
    assert result.current_bac == pytest.approx(0.0876, abs=0.0005)
    assert result.morning_score == 6
    assert result.morning_risk == InsightLevel.HIGH
    assert result.morning_probability_percent == 55
    assert result.memory_score == 2
    assert result.memory_risk == InsightLevel.MEDIUM
    assert result.memory_probability_percent == 20
    assert result.morning_reasons[-1] == "no meal logged"
    assert len(result.actions_now) <= 3


def test_risk_events_are_capped_and_newest_first():
    at = T0 + timedelta(hours=1)
    events = assess(four_shots(), MALE_70, at=at).risk_events

    assert len(events) == 7
    assert [e.id for e in events[:3]] == ["late-water", "water-deficit", "morning-high"]
    dates = [e.date for e in events]
    assert dates == sorted(dates, reverse=True)
    assert len({e.id for e in events}) == len(events)
    assert events[3].id == "pace-high"


def test_assessment_is_deterministic():
    at = T0 + timedelta(hours=1)
    session = four_shots()
    assert assess(session, MALE_70, at=at) == assess(session, MALE_70, at=at)


def test_without_profile_uses_cached_values():
    session = build_session(drinks=[(0, 500, 5)], peak=0.11)
    result = assess(session, None, at=T0 + timedelta(hours=3))
    assert result.current_bac is None
    assert result.peak_bac == 0.11


def test_confidence_drops_without_data():
    session = build_session(drinks=[(0, 500, 5)])
    confidence = assess(session, None, at=T0 + timedelta(hours=3)).confidence
    assert confidence.score_percent == 47
    assert confidence.level == InsightLevel.MEDIUM
    assert len(confidence.reasons) == 3


def test_confidence_with_full_data():
    session = build_session(
        drinks=[(0, 500, 5), (60, 500, 5)],
        waters=[(30, 300)],
        meals=[(0, MealSize.REGULAR)],
    )
    confidence = assess(session, MALE_70, at=T0 + timedelta(hours=3)).confidence
    assert confidence.score_percent == 98
    assert confidence.level == InsightLevel.LOW
    assert confidence.reasons == ("Enough data, the estimate is better than average",)


def test_meal_mitigation():
    timed = build_session(drinks=[(30, 500, 5)], meals=[(0, MealSize.REGULAR)])
    mitigation = meal_mitigation(timed, T0 + timedelta(hours=2))
    assert mitigation.score_reduction == 1
    assert mitigation.timing_bonus

    feast = build_session(meals=[(0, MealSize.HEAVY), (30, MealSize.HEAVY)])
    assert meal_mitigation(feast, T0 + timedelta(hours=1)).score_reduction == 2

    stale = build_session(meals=[(0, MealSize.HEAVY)])
    assert meal_mitigation(stale, T0 + timedelta(hours=7)).score_reduction == 0
    assert meal_mitigation(build_session(), T0).reason == "no meal logged"


def test_short_sleep_raises_both_scores():
    at = T0 + timedelta(hours=1)
    base = assess(four_shots(), MALE_70, at=at)
    tired = assess(four_shots(), MALE_70, at=at, health=SessionHealthContext(sleep_hours=4.5))
    assert tired.morning_score == base.morning_score + 2
    assert tired.memory_score == base.memory_score + 1


@pytest.mark.parametrize("steps, change", [
    (4999, 0), (5000, -1), (9000, -1), (9001, 0), (11999, 0), (12000, 1),
])
def test_step_count_adjusts_morning_score(steps, change):
    result = assess(
        four_shots(), MALE_70, at=T0 + timedelta(hours=1), health=SessionHealthContext(step_count=steps),
    )
    assert result.morning_score == 6 + change
    assert result.memory_score == 2


def test_moderate_steps_never_push_score_below_zero():
    calm = build_session(active=True, waters=[(0, 1000)])
    at = T0 + timedelta(minutes=30)
    assert assess(calm, MALE_70, at=at).morning_score == 0

    result = assess(calm, MALE_70, at=at, health=SessionHealthContext(step_count=7000))
    assert result.morning_score == 0
    assert "moderate activity usually helps recovery" in result.morning_reasons


@pytest.mark.parametrize("resting_hr, morning_change, memory_change", [
    (74, 0, 0), (75, 1, 0), (79, 1, 0), (80, 2, 1),
])
def test_resting_heart_rate_raises_scores(resting_hr, morning_change, memory_change):
    result = assess(
        four_shots(), MALE_70, at=T0 + timedelta(hours=1),
        health=SessionHealthContext(resting_heart_rate=resting_hr),
    )
    assert result.morning_score == 6 + morning_change
    assert result.memory_score == 2 + memory_change


@pytest.mark.parametrize("beers, memory_score", [(3, 0), (4, 1), (6, 2)])
def test_total_standard_drinks_raise_memory_score(beers, memory_score):
    # 500 ml lagers two hours apart: peak stays low, only the total grows.
    session = build_session(hours=10, drinks=[(120 * i, 500, 5) for i in range(beers)])
    result = assess(session, MALE_70, at=T0 + timedelta(hours=10))
    assert result.peak_bac < 0.14
    assert result.memory_score == memory_score


@pytest.mark.parametrize("abv, memory_score", [(34.9, 0), (35, 1), (40, 1)])
def test_strong_drink_raises_memory_score(abv, memory_score):
    session = build_session(drinks=[(0, 20, abv, DrinkCategory.SPIRITS)])
    result = assess(session, MALE_70, at=T0 + timedelta(hours=3))
    assert result.memory_score == memory_score


def test_check_in_replaces_morning_estimate():
    session = build_session(drinks=[(0, 500, 5)], wellbeing=4)
    at = T0 + timedelta(hours=3)
    result = assess(session, MALE_70, at=at)
    assert result.morning_probability_percent == 25
    assert result.morning_risk == InsightLevel.LOW
    assert result.morning_reasons[0] == "Wellbeing: 4/5"

    blind = assess(session, MALE_70, at=at, use_observed_check_in=False)
    assert "Wellbeing: 4/5" not in blind.morning_reasons
