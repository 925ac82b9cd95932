"""
Personal calibration from the user's own check-in history.

Two read-only passes over completed sessions:
- score delta: which evening features went with rough mornings (wellbeing <= 2)
  more or less often than usual;
- probability bias: how far the blind model's morning probability sat from
  what the user actually reported.

Plus personalized thresholds and trends for the pattern view. Nothing here
mutates the history it reads.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple

from bac_insights.models import Profile, Session
from bac_insights.rounding import clamp, round_half_up
from bac_insights.water import hydration_progress

logger = logging.getLogger(__name__)

TRAINING_WINDOW = 14
MIN_TRAINING_SESSIONS = 4
MIN_FEATURE_SUPPORT = 3
RATE_DIFF_THRESHOLD = 0.15
MAX_SCORE_DELTA = 2
MAX_PROBABILITY_BIAS = 20

PATTERN_WINDOW = 10
TREND_DEAD_ZONE = 0.05

FEATURE_NAMES = ("high_peak", "fast_pace", "low_hydration", "long_session", "no_water", "no_meal")


class TrendDirection(str, Enum):
    IMPROVING = "improving"
    WORSENING = "worsening"
    STABLE = "stable"


@dataclass(frozen=True)
class PersonalLearning:
    score_delta: int
    probability_bias: int


@dataclass(frozen=True)
class LearningFeatures:
    high_peak: bool
    fast_pace: bool
    low_hydration: bool
    long_session: bool
    no_water: bool
    no_meal: bool


@dataclass(frozen=True)
class PersonalizedPatterns:
    peak_risk_threshold: float
    memory_risk_threshold: float
    pace_risk_threshold: float
    hydration_goal_progress: float
    peak_trend: TrendDirection
    hydration_trend: TrendDirection
    wellbeing_trend: Optional[TrendDirection]
    water_streak: int
    meal_streak: int
    notes: Tuple[str, ...]
    actions: Tuple[str, ...]


def completed_history(current: Session, history: Sequence[Session]) -> List[Session]:
    """Finished sessions other than `current`, newest first."""
    past = [s for s in history if not s.is_active and s.id != current.id]
    return sorted(past, key=lambda s: s.start_at, reverse=True)


def learning_features(session: Session, profile: Optional[Profile], at: datetime) -> LearningFeatures:
    pace = session.average_pace(at) or 0.0
    return LearningFeatures(
        high_peak=session.cached_peak_bac >= 0.16,
        fast_pace=pace >= 1.5,
        low_hydration=hydration_progress(session, profile, at) < 0.75,
        long_session=session.duration_hours(at) >= 4,
        no_water=not session.waters,
        no_meal=not session.meals,
    )


def _rough(session: Session) -> bool:
    score = session.wellbeing_score
    return (score if score is not None else 5) <= 2


def score_delta(
    current: LearningFeatures,
    window: Sequence[Session],
    window_features: Sequence[LearningFeatures],
) -> int:
    overall_rate = sum(1 for s in window if _rough(s)) / len(window)
    total = 0
    for name in FEATURE_NAMES:
        if not getattr(current, name):
            continue
        matching = [s for s, f in zip(window, window_features) if getattr(f, name)]
        if len(matching) < MIN_FEATURE_SUPPORT:
            continue
        rate = sum(1 for s in matching if _rough(s)) / len(matching)
        diff = rate - overall_rate
        if diff >= RATE_DIFF_THRESHOLD:
            total += 1
        elif diff <= -RATE_DIFF_THRESHOLD:
            total -= 1
    return int(clamp(total, -MAX_SCORE_DELTA, MAX_SCORE_DELTA))


def probability_bias(window: Sequence[Session], profile: Optional[Profile], at: datetime) -> int:
    """Mean (observed - blind model) morning probability over past sessions."""
    from bac_insights.risk import assess, observed_morning_probability

    diffs = []
    for past in window:
        blind = assess(
            past,
            profile,
            at=past.end_at or at,
            history=None,
            use_observed_check_in=False,
        ).morning_probability_percent
        observed = observed_morning_probability(past.morning_check_in.clamped_score)
        diffs.append(observed - blind)
    average = sum(diffs) / len(diffs)
    return int(clamp(round_half_up(average), -MAX_PROBABILITY_BIAS, MAX_PROBABILITY_BIAS))


def learning_snapshot(
    session: Session,
    history: Sequence[Session],
    profile: Optional[Profile],
    at: datetime,
) -> Optional[PersonalLearning]:
    """Calibration learned from past check-ins, or None without enough of them."""
    training = [s for s in completed_history(session, history) if s.morning_check_in is not None]
    window = training[:TRAINING_WINDOW]
    if len(window) < MIN_TRAINING_SESSIONS:
        return None

    current = learning_features(session, profile, at)
    window_features = [learning_features(s, profile, s.end_at or at) for s in window]
    delta = score_delta(current, window, window_features)
    bias = probability_bias(window, profile, at)
    logger.debug("calibration over %d sessions: score_delta=%d bias=%d", len(window), delta, bias)

    if delta == 0 and bias == 0:
        return None
    return PersonalLearning(score_delta=delta, probability_bias=bias)


def trend_direction(values: Sequence[float], lower_is_better: bool) -> TrendDirection:
    """Compare the mean of the first half against the second half."""
    if len(values) < 4:
        return TrendDirection.STABLE
    half = len(values) // 2
    first, second = values[:half], values[half:]
    delta = sum(second) / len(second) - sum(first) / len(first)
    if abs(delta) < TREND_DEAD_ZONE:
        return TrendDirection.STABLE
    if lower_is_better:
        return TrendDirection.IMPROVING if delta < 0 else TrendDirection.WORSENING
    return TrendDirection.IMPROVING if delta > 0 else TrendDirection.WORSENING


def streak_count(sessions: Sequence[Session], condition: Callable[[Session], bool]) -> int:
    count = 0
    for session in sessions:
        if not condition(session):
            break
        count += 1
    return count


def _mean(values: Sequence[float], default: float) -> float:
    return sum(values) / len(values) if values else default


def personalized_patterns(
    session: Session,
    history: Sequence[Session],
    profile: Optional[Profile] = None,
    at: Optional[datetime] = None,
) -> PersonalizedPatterns:
    """Thresholds and habits derived from the last ten finished sessions."""
    at = at or datetime.now()
    window = completed_history(session, history)[:PATTERN_WINDOW]

    peak_values = [s.cached_peak_bac for s in window if s.cached_peak_bac > 0]
    pace_values = [p for p in (s.average_pace(at) for s in window) if p is not None]
    hydration_values = [hydration_progress(s, profile, at) for s in window]
    wellbeing_values = [s.wellbeing_score for s in window if s.wellbeing_score is not None]

    peak_average = _mean(peak_values, 0.12)
    pace_average = _mean(pace_values, 1.4)
    hydration_average = _mean(hydration_values, 0.75)
    wellbeing_average = _mean(wellbeing_values, 0.0) if wellbeing_values else None

    good_hydration = [hydration_progress(s, profile, at) for s in window if (s.wellbeing_score or 0) >= 4]
    if good_hydration:
        goal = _mean(good_hydration, 0.75)
    else:
        goal = max(0.75, hydration_average)
    hydration_goal = clamp(goal, 0.65, 1.0)

    peak_threshold = clamp(peak_average * 0.95, 0.10, 0.16)
    memory_threshold = clamp(peak_average * 1.20, 0.14, 0.22)
    pace_threshold = clamp(pace_average * 1.15, 1.2, 2.2)

    # Trend series run oldest to newest.
    peak_trend = trend_direction(peak_values[::-1], lower_is_better=True)
    hydration_trend = trend_direction(hydration_values[::-1], lower_is_better=False)
    wellbeing_trend = None
    if wellbeing_values:
        wellbeing_trend = trend_direction([float(v) for v in wellbeing_values[::-1]], lower_is_better=False)

    timeline = [session] + window
    water_streak = streak_count(timeline, lambda s: hydration_progress(s, profile, at) >= hydration_goal)
    meal_streak = streak_count(timeline, lambda s: bool(s.meals))

    current_pace = session.average_pace(at)
    if current_pace is None:
        current_pace = pace_threshold
    current_hydration = hydration_progress(session, profile, at)

    notes: List[str] = []
    if session.cached_peak_bac >= peak_threshold:
        notes.append(f"Your personal peak BAC threshold (~{peak_threshold:.3f}) has been reached.")
    if current_pace >= pace_threshold:
        notes.append(f"Pace is above your usual risk threshold ({pace_threshold:.1f} std drinks/h).")
    if current_hydration < hydration_goal:
        notes.append(f"Hydration is below your personal target ({round_half_up(hydration_goal * 100)}%).")
    if wellbeing_average is not None and wellbeing_average < 3:
        notes.append("Your average morning wellbeing in history is below 3/5.")
    if not notes:
        notes.append("This session is within your usual patterns so far.")

    actions: List[str] = []
    if current_hydration < hydration_goal:
        gap_ml = round_half_up((hydration_goal - current_hydration) * 1000)
        actions.append(f"Close the gap to your personal water target: +{gap_ml} ml, gradually.")
    if current_pace >= pace_threshold:
        actions.append("Slow down to 25-30 minute breaks between alcoholic drinks.")
    if session.cached_peak_bac >= memory_threshold:
        actions.append("Memory-gap risk is above your norm: better to stop alcohol for today.")
    if water_streak < 2:
        actions.append("Build a water streak of at least 2 sessions in a row.")
    if meal_streak < 2:
        actions.append("Eat at the start of the session for a steadier evening.")
    if not actions:
        actions.append("Keep the current approach: pace and water are better than your recent sessions.")

    return PersonalizedPatterns(
        peak_risk_threshold=peak_threshold,
        memory_risk_threshold=memory_threshold,
        pace_risk_threshold=pace_threshold,
        hydration_goal_progress=hydration_goal,
        peak_trend=peak_trend,
        hydration_trend=hydration_trend,
        wellbeing_trend=wellbeing_trend,
        water_streak=water_streak,
        meal_streak=meal_streak,
        notes=tuple(notes[:4]),
        actions=tuple(actions[:4]),
    )
