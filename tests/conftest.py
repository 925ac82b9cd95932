"""Shared builders for sessions used across the test modules."""

from datetime import datetime, timedelta

import pytest

from bac_insights.models import (
    DrinkCategory,
    DrinkEntry,
    MealEntry,
    MorningCheckIn,
    Session,
    WaterEntry,
)

T0 = datetime(2024, 5, 10, 20, 0, 0)


def build_session(
    start=T0,
    hours=3.0,
    drinks=(),
    waters=(),
    meals=(),
    wellbeing=None,
    active=False,
    peak=0.0,
):
    """drinks: (minutes_from_start, volume_ml, abv[, category]); waters: (minutes, ml|None); meals: (minutes, size)."""
    drink_entries = tuple(
        DrinkEntry(
            created_at=start + timedelta(minutes=d[0]),
            volume_ml=d[1],
            abv_percent=d[2],
            category=d[3] if len(d) > 3 else DrinkCategory.BEER,
        )
        for d in drinks
    )
    water_entries = tuple(WaterEntry(created_at=start + timedelta(minutes=m), volume_ml=ml) for m, ml in waters)
    meal_entries = tuple(MealEntry(created_at=start + timedelta(minutes=m), size=size) for m, size in meals)
    check_in = MorningCheckIn(wellbeing_score=wellbeing) if wellbeing is not None else None
    return Session(
        start_at=start,
        end_at=None if active else start + timedelta(hours=hours),
        is_active=active,
        drinks=drink_entries,
        waters=water_entries,
        meals=meal_entries,
        morning_check_in=check_in,
        cached_peak_bac=peak,
    )


@pytest.fixture
def make_session():
    return build_session
