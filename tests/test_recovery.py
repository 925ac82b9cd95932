"""Tests for the recovery index."""
from datetime import timedelta

from bac_insights.baseline import BaselineStats
from bac_insights.health import HealthBaselineSet, SessionHealthContext
from bac_insights.models import BiologicalSex, DrinkCategory, MealSize, Profile
from bac_insights.recovery import recovery_index
from bac_insights.risk import InsightLevel, assess

from conftest import T0, build_session

MALE_70 = Profile(weight=70, sex=BiologicalSex.MALE)
AT = T0 + timedelta(hours=1)


def shots_session():
    return build_session(drinks=[(m, 50, 40, DrinkCategory.SPIRITS) for m in (0, 10, 20, 30)], active=True)


def test_heavy_evening_needs_gentle_recovery():
    session = shots_session()
    result = recovery_index(session, assess(session, MALE_70, at=AT))
    # 100 - 25 (morning 55%) - 6 (memory 20%) - 18 (deficit) - 6 (no food)
    assert result.score == 45
    assert result.level == InsightLevel.HIGH
    assert result.headline == "a gentle recovery routine is needed"
    assert result.reasons[0] == "a water deficit of ~1700 ml lowers the recovery index"
    assert result.reasons[1] == "no food slows recovery"


def test_good_biometrics_lift_the_index():
    session = shots_session()
    health = SessionHealthContext(sleep_hours=8, step_count=7000, resting_heart_rate=60)
    result = recovery_index(session, assess(session, MALE_70, at=AT), health=health)
    assert result.score == 54
    assert result.level == InsightLevel.MEDIUM
    assert len(result.reasons) == 3


def test_personal_baseline_overrides_fixed_cut_points():
    session = build_session(
        drinks=[(0, 500, 5)],
        waters=[(10, 500), (60, 500)],
        meals=[(0, MealSize.REGULAR)],
    )
    assessment = assess(session, MALE_70, at=T0 + timedelta(hours=3))
    sleep = BaselineStats(median=480, p25=450, p75=510, iqr=60, trend_slope=0, sample_count=10)

    fixed = recovery_index(session, assessment, health=SessionHealthContext(sleep_hours=6.5))
    personal = recovery_index(
        session, assessment,
        health=SessionHealthContext(sleep_hours=6.5),
        baselines=HealthBaselineSet(sleep=sleep),
    )
    # 6.5h is neutral in general, but below this user's 25th percentile
    assert fixed.score == 100
    assert personal.score == 88
    assert personal.reasons[-1] == "sleep below your personal range slows recovery"


def test_hrv_without_baseline_is_ignored():
    session = shots_session()
    assessment = assess(session, MALE_70, at=AT)
    plain = recovery_index(session, assessment)
    with_hrv = recovery_index(session, assessment, health=SessionHealthContext(hrv_sdnn=20))
    assert with_hrv.score == plain.score
