"""Recovery index: a 0-100 score of how well the body is set up to recover.

Starts from 100, takes off a share of both risk probabilities, then adjusts
for water, food and whatever biometrics are available. Biometric cut points
come from the user's own baseline when one exists, else fixed fallbacks.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

from bac_insights.health import HealthBaselineSet, SessionHealthContext
from bac_insights.models import Session
from bac_insights.risk import EveningInsightAssessment, InsightLevel
from bac_insights.rounding import clamp, round_half_up

MAX_RECOVERY_REASONS = 3


@dataclass(frozen=True)
class RecoveryIndexSnapshot:
    score: int
    level: InsightLevel
    headline: str
    reasons: Tuple[str, ...]


def _sleep_adjustment(hours: float, baselines: Optional[HealthBaselineSet]) -> Tuple[int, Optional[str]]:
    baseline = baselines.sleep if baselines else None
    if baseline is not None:
        minutes = hours * 60
        if minutes < baseline.p25:
            return -12, "sleep below your personal range slows recovery"
        if minutes < baseline.median:
            return -6, "sleep slightly below usual"
        return 4, "sleep at or above your personal norm"
    if hours < 5:
        return -14, "sleep under 5h strongly hurts recovery"
    if hours < 6:
        return -8, "sleep under 6h hurts recovery"
    if hours >= 7:
        return 4, "7h+ of sleep improves recovery"
    return 0, None


def _steps_adjustment(steps: int, baselines: Optional[HealthBaselineSet]) -> Tuple[int, Optional[str]]:
    baseline = baselines.steps if baselines else None
    if baseline is not None:
        if steps > baseline.p75:
            return -6, "activity above usual adds recovery load"
        if baseline.p25 <= steps <= baseline.p75:
            return 3, "movement within your usual range supports recovery"
        return -2, "very low activity slows circulation and recovery"
    if steps >= 12_000:
        return -7, "high activity plus alcohol adds recovery load"
    if 5_000 <= steps <= 9_000:
        return 3, "moderate activity supports recovery"
    return 0, None


def _heart_rate_adjustment(rhr: int, baselines: Optional[HealthBaselineSet]) -> Tuple[int, Optional[str]]:
    baseline = baselines.resting_heart_rate if baselines else None
    if baseline is not None:
        if rhr > baseline.p75:
            return -9, "heart rate above your usual level, possible recovery stress"
        if rhr > baseline.median:
            return -4, "heart rate slightly above norm"
        if rhr < baseline.p25:
            return 3, "heart rate below usual, recovery is going easier"
        return 0, None
    if rhr >= 80:
        return -9, "resting heart rate of 80+ may mean high recovery stress"
    if rhr >= 75:
        return -5, "resting heart rate above norm slightly lowers the index"
    if rhr <= 62:
        return 2, "a low resting heart rate usually goes with a softer recovery"
    return 0, None


def _hrv_adjustment(hrv: float, baselines: Optional[HealthBaselineSet]) -> Tuple[int, Optional[str]]:
    # No fixed fallback: HRV is only meaningful against the user's own range.
    baseline = baselines.hrv if baselines else None
    if baseline is None:
        return 0, None
    if hrv < baseline.p25:
        return -8, "HRV below usual, recovery is slowed"
    if hrv > baseline.p75:
        return 5, "HRV above norm supports recovery"
    return 0, None


def recovery_index(
    session: Session,
    assessment: EveningInsightAssessment,
    health: Optional[SessionHealthContext] = None,
    baselines: Optional[HealthBaselineSet] = None,
) -> RecoveryIndexSnapshot:
    score = 100
    reasons: List[str] = []

    score -= round_half_up(assessment.morning_probability_percent * 0.45)
    score -= round_half_up(assessment.memory_probability_percent * 0.30)

    deficit = assessment.water_balance.deficit_ml
    if deficit > 0:
        score -= min(18, round_half_up(deficit / 80))
        reasons.append(f"a water deficit of ~{deficit} ml lowers the recovery index")
    else:
        score += 4
        reasons.append("a normal water balance supports recovery")

    if not session.meals:
        score -= 6
        reasons.append("no food slows recovery")
    else:
        score += 2
        reasons.append("food improves recovery potential")

    adjustments = []
    if health is not None:
        if health.sleep_hours is not None:
            adjustments.append(_sleep_adjustment(health.sleep_hours, baselines))
        if health.step_count is not None:
            adjustments.append(_steps_adjustment(health.step_count, baselines))
        if health.resting_heart_rate is not None:
            adjustments.append(_heart_rate_adjustment(health.resting_heart_rate, baselines))
        if health.hrv_sdnn is not None:
            adjustments.append(_hrv_adjustment(health.hrv_sdnn, baselines))
    for points, reason in adjustments:
        score += points
        if reason:
            reasons.append(reason)

    final = int(clamp(score, 0, 100))
    if final >= 75:
        level, headline = InsightLevel.LOW, "recovery potential is high"
    elif final >= 50:
        level, headline = InsightLevel.MEDIUM, "recovery potential is medium"
    else:
        level, headline = InsightLevel.HIGH, "a gentle recovery routine is needed"

    return RecoveryIndexSnapshot(
        score=final,
        level=level,
        headline=headline,
        reasons=tuple(reasons[:MAX_RECOVERY_REASONS]),
    )
