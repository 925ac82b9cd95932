"""Evening risk assessment.

Heavy-morning and memory-gap risk are additive point scores, not a trained
model. Each signal adds or removes points and leaves a short reason so the
result can always be explained. Scores map to a level and a rough
probability; an observed morning check-in replaces the modelled morning
estimate, and personal calibration (bac_insights.calibration) can shift it
for sessions that have not been checked in yet.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from bac_insights import calculations
from bac_insights.health import SessionHealthContext
from bac_insights.models import Profile, Session, BiologicalSex
from bac_insights.rounding import clamp, round_half_up
from bac_insights.water import WaterBalance, WaterBalanceStatus, water_balance

MORNING_MAX_SCORE = 11
MEMORY_MAX_SCORE = 10
MAX_RISK_EVENTS = 7
MAX_ACTIONS = 3
MAX_CONFIDENCE_REASONS = 3

MEAL_WINDOW = timedelta(hours=6)
MEAL_TIMING_BONUS = 0.7

PERSONAL_LEARNING_REASON = "Personal risk baseline calculated from your previous sessions."

# Observed wellbeing (0-5) -> morning probability percent.
OBSERVED_MORNING_PROBABILITY = {5: 10, 4: 25, 3: 50, 2: 70, 1: 85, 0: 95}


class InsightLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class InsightConfidence:
    # Named like a risk band: LOW here means the estimate is trustworthy.
    level: InsightLevel
    score_percent: int
    reasons: Tuple[str, ...]


@dataclass(frozen=True)
class RiskEvent:
    id: str
    date: datetime
    severity: InsightLevel
    title: str
    detail: str


@dataclass(frozen=True)
class MealMitigation:
    score_reduction: int
    reason: str
    summary: str
    timing_bonus: bool = False


@dataclass(frozen=True)
class EveningInsightAssessment:
    morning_risk: InsightLevel
    memory_risk: InsightLevel
    morning_probability_percent: int
    memory_probability_percent: int
    confidence: InsightConfidence
    morning_reasons: Tuple[str, ...]
    memory_reasons: Tuple[str, ...]
    risk_events: Tuple[RiskEvent, ...]
    meal_impact: str
    water_balance: WaterBalance
    actions_now: Tuple[str, ...]
    morning_score: int
    memory_score: int
    peak_bac: float
    current_bac: Optional[float]
    estimated_sober_at: Optional[datetime]
    drinks_per_hour: float


def _band(score: int) -> InsightLevel:
    if score < 2:
        return InsightLevel.LOW
    if score <= 4:
        return InsightLevel.MEDIUM
    return InsightLevel.HIGH


def level_for_morning_score(score: int) -> InsightLevel:
    return _band(score)


def level_for_memory_score(score: int) -> InsightLevel:
    return _band(score)


def level_for_calibrated_probability(probability: int) -> InsightLevel:
    if probability < 30:
        return InsightLevel.LOW
    if probability <= 64:
        return InsightLevel.MEDIUM
    return InsightLevel.HIGH


def observed_morning_risk(wellbeing_score: int) -> InsightLevel:
    if wellbeing_score <= 2:
        return InsightLevel.HIGH
    if wellbeing_score == 3:
        return InsightLevel.MEDIUM
    return InsightLevel.LOW


def observed_morning_probability(wellbeing_score: int) -> int:
    return OBSERVED_MORNING_PROBABILITY[max(0, min(5, wellbeing_score))]


def risk_percent(score: int, max_score: int) -> int:
    if max_score <= 0:
        return 0
    return round_half_up(clamp(score / max_score, 0.0, 1.0) * 100)


def meal_mitigation(session: Session, at: datetime) -> MealMitigation:
    """How much logged food softens both scores (0, 1 or 2 points)."""
    if not session.meals:
        return MealMitigation(0, "no meal logged", "No food logged")

    relevant = [m for m in session.ordered_meals() if abs(m.created_at - at) <= MEAL_WINDOW]
    if not relevant:
        return MealMitigation(0, "the last meal was a while ago", "The last meal was a while ago")

    points = sum(m.size.mitigation_weight for m in relevant)
    drinks = session.ordered_drinks()
    timing_bonus = False
    if drinks:
        first_drink = drinks[0].created_at
        timing_bonus = any(
            -90 <= (m.created_at - first_drink).total_seconds() / 60.0 <= 30 for m in relevant
        )
    if timing_bonus:
        points += MEAL_TIMING_BONUS

    if points < 1:
        reduction = 0
    elif points < 2.5:
        reduction = 1
    else:
        reduction = 2

    if reduction > 0 and timing_bonus:
        summary = "Food was well timed and lowers the risk"
        reason = "the meal was well timed and may soften how you feel"
    elif reduction > 0:
        summary = "Food partly lowers the risk"
        reason = "the meal may soften how you feel"
    else:
        summary = "Food has minimal effect"
        reason = "food has little effect on the risk so far"
    return MealMitigation(reduction, reason, summary, timing_bonus)


def assess_confidence(
    session: Session,
    profile: Optional[Profile],
    balance: WaterBalance,
    duration_hours: float,
) -> InsightConfidence:
    score = 100
    reasons: List[str] = []

    if profile is None:
        score -= 35
        reasons.append("Profile is incomplete, so the estimate is less precise")
    elif profile.sex == BiologicalSex.UNSPECIFIED:
        score -= 10
        reasons.append("Sex not set, an averaged distribution ratio is used")

    if len(session.drinks) < 2:
        score -= 10
        reasons.append("Too little data in the current session")

    if balance.unknown_marks_count > 0:
        score -= min(20, balance.unknown_marks_count * 6)
        reasons.append("Some water marks have no volume")

    if not session.meals:
        score -= 8
        reasons.append("No meals logged")

    if duration_hours >= 8:
        score -= 6
        reasons.append("Long sessions reduce the accuracy of a simple model")

    percent = int(clamp(score, 15, 98))
    if percent >= 75:
        level = InsightLevel.LOW
    elif percent >= 45:
        level = InsightLevel.MEDIUM
    else:
        level = InsightLevel.HIGH

    if not reasons:
        reasons.append("Enough data, the estimate is better than average")
    return InsightConfidence(level=level, score_percent=percent, reasons=tuple(reasons[:MAX_CONFIDENCE_REASONS]))


def _morning_signals(
    session: Session,
    at: datetime,
    peak_bac: float,
    current_bac: Optional[float],
    estimated_sober_at: Optional[datetime],
    duration_hours: float,
    drinks_per_hour: float,
    balance: WaterBalance,
    health: Optional[SessionHealthContext],
) -> Tuple[int, List[str]]:
    score = 0
    reasons: List[str] = []

    if peak_bac >= 0.10:
        score += 2
        reasons.append("peak BAC above 0.10 is often linked to a heavy morning")
    if peak_bac >= 0.16:
        score += 2
        reasons.append("peak BAC above 0.16 raises the risk of feeling clearly unwell")
    if current_bac is not None and current_bac >= 0.08:
        score += 1
        reasons.append("current BAC is still high")
    if duration_hours >= 4:
        score += 1
        reasons.append("a long session can make the morning worse")
    if not session.waters:
        score += 1
        reasons.append("no water logged in this session yet")
    if balance.status == WaterBalanceStatus.HIGH_DEFICIT:
        score += 1
        reasons.append("water balance is in a marked deficit")
    if drinks_per_hour >= 1.5:
        score += 1
        reasons.append("a fast drinking pace increases the load")
    if estimated_sober_at is not None and estimated_sober_at - at > timedelta(hours=6):
        score += 1
        reasons.append("more than 6 hours left until 0.00")

    if health is None:
        return score, reasons

    if health.sleep_hours is not None:
        if health.sleep_hours < 5:
            score += 2
            reasons.append("sleep under 5h noticeably raises morning risk")
        elif health.sleep_hours < 6:
            score += 1
            reasons.append("sleep under 6h raises the risk of a heavy morning")
        elif health.sleep_hours >= 7.5:
            score = max(0, score - 1)
            reasons.append("good sleep partly lowers the risk of a heavy morning")
    if health.step_count is not None:
        if health.step_count >= 12_000:
            score += 1
            reasons.append("high activity today can add to fatigue and water deficit")
        elif 5_000 <= health.step_count <= 9_000:
            score = max(0, score - 1)
            reasons.append("moderate activity usually helps recovery")
    if health.resting_heart_rate is not None:
        if health.resting_heart_rate >= 80:
            score += 2
            reasons.append("resting heart rate is well above usual, recovery may be harder")
        elif health.resting_heart_rate >= 75:
            score += 1
            reasons.append("resting heart rate is above usual")
    return score, reasons


def _memory_signals(
    session: Session,
    peak_bac: float,
    current_bac: Optional[float],
    standard_drinks_total: float,
    drinks_per_hour: float,
    health: Optional[SessionHealthContext],
) -> Tuple[int, List[str]]:
    score = 0
    reasons: List[str] = []

    if peak_bac >= 0.14:
        score += 1
        reasons.append("at this peak BAC the risk of memory gaps grows")
    if peak_bac >= 0.18:
        score += 2
        reasons.append("peak BAC above 0.18 is linked to a notable risk of blackouts")
    if peak_bac >= 0.24:
        score += 2
        reasons.append("a very high peak BAC strongly raises the risk of gaps")
    if current_bac is not None and current_bac >= 0.12:
        score += 1
        reasons.append("current BAC remains high")
    if standard_drinks_total >= 5:
        score += 1
        reasons.append("large total amount of alcohol")
    if standard_drinks_total >= 8:
        score += 1
        reasons.append("very large total amount of alcohol")
    if drinks_per_hour >= 2:
        score += 1
        reasons.append("a fast pace raises the risk of memory gaps")
    if session.strongest_abv >= 35:
        score += 1
        reasons.append("mostly strong drinks")
    if health is not None and health.sleep_hours is not None and health.sleep_hours < 5:
        score += 1
        reasons.append("short sleep raises the risk of memory fragments")
    if health is not None and health.resting_heart_rate is not None and health.resting_heart_rate >= 80:
        score += 1
        reasons.append("elevated resting heart rate points to a high load")
    return score, reasons


def risk_events(
    session: Session,
    balance: WaterBalance,
    drinks_per_hour: float,
    morning_risk: InsightLevel,
    memory_risk: InsightLevel,
    at: datetime,
) -> Tuple[RiskEvent, ...]:
    """Discrete moments worth flagging, newest first."""
    events: List[RiskEvent] = []
    drinks = session.ordered_drinks()
    waters = session.ordered_waters()
    last_drink_at = drinks[-1].created_at if drinks else at

    if drinks_per_hour >= 1.7:
        events.append(RiskEvent(
            "pace-high", last_drink_at, InsightLevel.HIGH, "High pace",
            f"Pace around {drinks_per_hour:.1f} standard drinks/hour raises morning and memory risk.",
        ))
    elif drinks_per_hour >= 1.2:
        events.append(RiskEvent(
            "pace-medium", last_drink_at, InsightLevel.MEDIUM, "Pace above moderate",
            "A faster pace adds load, a pause would help.",
        ))

    for index, drink in enumerate(drinks):
        if drink.abv_percent >= 30:
            events.append(RiskEvent(
                f"strong-{index}",
                drink.created_at,
                InsightLevel.HIGH if drink.abv_percent >= 40 else InsightLevel.MEDIUM,
                "Strong drink",
                f"{drink.display_name}, {int(drink.abv_percent)}% ABV",
            ))

    for previous, current in zip(drinks, drinks[1:]):
        if (current.created_at - previous.created_at).total_seconds() / 60.0 <= 20:
            events.append(RiskEvent(
                f"burst-{current.id}", current.created_at, InsightLevel.HIGH, "Back-to-back drinks",
                "Two alcoholic drinks in a row with a short gap.",
            ))

    if drinks:
        first_water = waters[0].created_at if waters else None
        late = first_water is None or (first_water - drinks[0].created_at).total_seconds() / 60.0 > 90
        if late:
            events.append(RiskEvent(
                "late-water", first_water or at, InsightLevel.MEDIUM, "Late start on water",
                "Water started well after the first alcoholic drink.",
            ))

    if balance.status == WaterBalanceStatus.HIGH_DEFICIT:
        events.append(RiskEvent(
            "water-deficit", at, InsightLevel.HIGH, "High water deficit",
            f"About {balance.deficit_ml} ml left to reach the target.",
        ))

    if not session.meals and len(drinks) >= 3:
        events.append(RiskEvent(
            "no-meal", last_drink_at, InsightLevel.MEDIUM, "No food",
            "Without food the load is usually felt more strongly.",
        ))

    if memory_risk == InsightLevel.HIGH:
        events.append(RiskEvent(
            "memory-high", at, InsightLevel.HIGH, "High risk of memory fragments",
            "Better to stop alcohol and switch to water and recovery.",
        ))

    if morning_risk == InsightLevel.HIGH:
        events.append(RiskEvent(
            "morning-high", at, InsightLevel.MEDIUM, "High risk of a heavy morning",
            "More alcohol now will noticeably slow recovery.",
        ))

    seen = set()
    unique: List[RiskEvent] = []
    for event in events:
        if event.id not in seen:
            seen.add(event.id)
            unique.append(event)
    unique.sort(key=lambda e: e.date, reverse=True)
    return tuple(unique[:MAX_RISK_EVENTS])


def actions_now(
    morning_risk: InsightLevel,
    memory_risk: InsightLevel,
    balance: WaterBalance,
    current_bac: Optional[float],
    drinks_per_hour: float,
    mitigation: MealMitigation,
) -> Tuple[str, ...]:
    actions: List[str] = []
    if balance.deficit_ml > 0:
        actions.append(f"Drink about {balance.suggested_top_up_ml} ml of water now")
    if drinks_per_hour >= 1.5:
        actions.append("Take a 20-30 minute break from alcohol")
    if current_bac is not None and current_bac >= 0.10:
        actions.append("Switch to water and food, the pace is high right now")
    if mitigation.score_reduction == 0:
        actions.append("Eat something, it may soften how you feel")
    if memory_risk == InsightLevel.HIGH:
        actions.append("Stay close to someone you trust")
    if morning_risk == InsightLevel.HIGH:
        actions.append("Plan a gentle morning with extra time to recover")
    if not actions:
        actions.append("Keep the current moderate pace")
    return tuple(actions[:MAX_ACTIONS])


def assess(
    session: Session,
    profile: Optional[Profile] = None,
    at: Optional[datetime] = None,
    health: Optional[SessionHealthContext] = None,
    history: Optional[Sequence[Session]] = None,
    use_observed_check_in: bool = True,
) -> EveningInsightAssessment:
    """Score heavy-morning and memory-gap risk for one session."""
    at = at or datetime.now()
    duration_hours = session.duration_hours(at)
    standard_drinks_total = session.total_standard_drinks
    drinks_per_hour = standard_drinks_total / duration_hours if duration_hours > 0.5 else standard_drinks_total
    mitigation = meal_mitigation(session, at)

    if profile is not None:
        timeline = calculations.compute(session, profile, at)
        peak_bac = max(timeline.peak_bac, session.cached_peak_bac)
        current_bac: Optional[float] = timeline.current_bac
        estimated_sober_at = timeline.estimated_sober_at
    else:
        peak_bac = session.cached_peak_bac
        current_bac = None
        estimated_sober_at = session.cached_sober_at

    balance = water_balance(session, profile, duration_hours, standard_drinks_total)
    confidence = assess_confidence(session, profile, balance, duration_hours)

    morning_score, morning_reasons = _morning_signals(
        session, at, peak_bac, current_bac, estimated_sober_at,
        duration_hours, drinks_per_hour, balance, health,
    )
    morning_score = max(0, morning_score - mitigation.score_reduction)
    morning_reasons.append(mitigation.reason)

    learning = None
    if use_observed_check_in and session.morning_check_in is None:
        from bac_insights.calibration import learning_snapshot

        learning = learning_snapshot(session, history or (), profile, at)
    calibrate = learning is not None

    if calibrate and learning.score_delta != 0:
        morning_score = max(0, morning_score + learning.score_delta)
        morning_reasons.append(PERSONAL_LEARNING_REASON)

    memory_score, memory_reasons = _memory_signals(
        session, peak_bac, current_bac, standard_drinks_total, drinks_per_hour, health,
    )
    memory_score = max(0, memory_score - mitigation.score_reduction)
    if mitigation.score_reduction == 0:
        memory_reasons.append("no meal logged, or it was a while ago")

    if not morning_reasons:
        morning_reasons = ["based on current data the heavy-morning risk is moderate so far"]
    if not memory_reasons:
        memory_reasons = ["based on current data the risk of memory gaps is low"]

    morning_risk = level_for_morning_score(morning_score)
    morning_probability = risk_percent(morning_score, MORNING_MAX_SCORE)
    if calibrate and learning.probability_bias != 0:
        adjusted = clamp(morning_probability + learning.probability_bias, 1, 99)
        morning_probability = round_half_up(adjusted)
        morning_risk = level_for_calibrated_probability(morning_probability)
        if PERSONAL_LEARNING_REASON not in morning_reasons:
            morning_reasons.append(PERSONAL_LEARNING_REASON)

    check_in = session.morning_check_in
    if use_observed_check_in and check_in is not None:
        observed = check_in.clamped_score
        morning_risk = observed_morning_risk(observed)
        morning_probability = observed_morning_probability(observed)
        morning_reasons.insert(0, f"Wellbeing: {observed}/5")

    memory_risk = level_for_memory_score(memory_score)
    return EveningInsightAssessment(
        morning_risk=morning_risk,
        memory_risk=memory_risk,
        morning_probability_percent=morning_probability,
        memory_probability_percent=risk_percent(memory_score, MEMORY_MAX_SCORE),
        confidence=confidence,
        morning_reasons=tuple(morning_reasons),
        memory_reasons=tuple(memory_reasons),
        risk_events=risk_events(session, balance, drinks_per_hour, morning_risk, memory_risk, at),
        meal_impact=mitigation.summary,
        water_balance=balance,
        actions_now=actions_now(morning_risk, memory_risk, balance, current_bac, drinks_per_hour, mitigation),
        morning_score=morning_score,
        memory_score=memory_score,
        peak_bac=peak_bac,
        current_bac=current_bac,
        estimated_sober_at=estimated_sober_at,
        drinks_per_hour=drinks_per_hour,
    )
