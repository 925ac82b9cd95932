"""Tests for the hydration balance."""
from bac_insights.models import Profile
from bac_insights.water import WaterBalanceStatus, hydration_progress, status_for_deficit, water_balance


def test_minimum_target_for_empty_evening(make_session):
    balance = water_balance(make_session(), Profile(weight=70), duration_hours=0, standard_drinks_total=0)
    assert balance.target_ml == 600
    assert balance.consumed_ml == 0
    assert balance.deficit_ml == 600
    assert balance.status == WaterBalanceStatus.HIGH_DEFICIT
    assert balance.suggested_top_up_ml == 300
    assert balance.progress == 0


def test_target_grows_with_drinks_and_hours(make_session):
    # 560 + int(3 * 250 + 2 * 120) = 1550
    balance = water_balance(make_session(), Profile(weight=70), duration_hours=3, standard_drinks_total=3)
    assert balance.target_ml == 1550


def test_unknown_marks_are_counted_not_added(make_session):
    s = make_session(waters=[(10, 250), (20, None), (30, None)])
    balance = water_balance(s, None, duration_hours=0, standard_drinks_total=0)
    assert balance.consumed_ml == 250
    assert balance.unknown_marks_count == 2
    assert balance.deficit_ml == 350
    assert balance.status == WaterBalanceStatus.MILD_DEFICIT
    assert balance.suggested_top_up_ml == 200


def test_met_target_is_balanced(make_session):
    s = make_session(waters=[(10, 500), (60, 500)])
    balance = water_balance(s, Profile(weight=70), duration_hours=0, standard_drinks_total=0)
    assert balance.deficit_ml == 0
    assert balance.suggested_top_up_ml == 0
    assert balance.status == WaterBalanceStatus.BALANCED
    assert balance.progress == 1.0


def test_status_bands():
    assert status_for_deficit(149) == WaterBalanceStatus.BALANCED
    assert status_for_deficit(150) == WaterBalanceStatus.MILD_DEFICIT
    assert status_for_deficit(449) == WaterBalanceStatus.MILD_DEFICIT
    assert status_for_deficit(450) == WaterBalanceStatus.HIGH_DEFICIT


def test_top_up_capped(make_session):
    balance = water_balance(make_session(), Profile(weight=120), duration_hours=6, standard_drinks_total=8)
    assert balance.suggested_top_up_ml == 350


def test_hydration_progress_uses_session_duration(make_session):
    s = make_session(hours=1, waters=[(10, 300)])
    assert hydration_progress(s, Profile(weight=70), s.start_at) == 0.5
