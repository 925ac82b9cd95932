"""
Weekly report and trigger patterns over completed sessions.

The weekly view looks at the last 7 days (or the latest 7 sessions when the
week is empty). Trigger patterns look at the 20 most recent sessions and
count when risky evenings start, on which weekday, and with which drinks.
"""

import calendar
import logging
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional, Sequence, Tuple

from bac_insights.models import Profile, Session
from bac_insights.risk import InsightLevel, assess
from bac_insights.rounding import round_half_up
from bac_insights.water import session_water_balance

logger = logging.getLogger(__name__)

WEEK = timedelta(days=7)
WEEKLY_FALLBACK_SESSIONS = 7
TRIGGER_SAMPLE_SESSIONS = 20
HYDRATION_HIT_PROGRESS = 0.85
DEFAULT_PACE_THRESHOLD = 1.6


@dataclass(frozen=True)
class WeeklyInsightSnapshot:
    sessions_count: int
    heavy_morning_count: int
    high_memory_risk_count: int
    hydration_hit_rate_percent: int
    meal_coverage_percent: int
    average_peak_bac: float
    average_wellbeing_score: Optional[float]
    headline: str


@dataclass(frozen=True)
class TriggerPatternHit:
    id: str
    title: str
    value: str
    impact: str


@dataclass(frozen=True)
class TriggerPatternsSummary:
    weekday_hotspot: Optional[str]
    start_hour_hotspot: Optional[str]
    drink_category_hotspot: Optional[str]
    hits: Tuple[TriggerPatternHit, ...]


@dataclass(frozen=True)
class WeeklyLimits:
    heavy_mornings: int = 2
    high_memory_risk: int = 2
    hydration_hit_target_percent: int = 70


@dataclass(frozen=True)
class WeeklyReport:
    snapshot: WeeklyInsightSnapshot
    recovery_load_score: int
    process_quality_score: int
    focus: str
    summary: str


def completed_sessions(history: Sequence[Session]) -> List[Session]:
    return sorted((s for s in history if not s.is_active), key=lambda s: s.start_at, reverse=True)


def week_window(history: Sequence[Session], at: datetime) -> List[Session]:
    completed = completed_sessions(history)
    this_week = [s for s in completed if s.start_at >= at - WEEK]
    return this_week or completed[:WEEKLY_FALLBACK_SESSIONS]


def _percent(count: int, total: int) -> int:
    return round_half_up(count / max(1, total) * 100)


def weekly_headline(heavy_mornings: int, high_memory: int, hydration_hit_rate: int) -> str:
    if high_memory >= 3:
        return "A week with raised memory-gap risk: lower the pace and the strength of drinks."
    if heavy_mornings >= 3:
        return "Many heavy mornings this week: stopping earlier will help."
    if hydration_hit_rate >= 70:
        return "Hydration is steady, which lowers the risk of a heavy morning."
    return "There is room to improve your evenings: water, breaks and food will pay off."


def weekly_snapshot(
    history: Sequence[Session],
    profile: Optional[Profile] = None,
    at: Optional[datetime] = None,
) -> WeeklyInsightSnapshot:
    at = at or datetime.now()
    window = week_window(history, at)
    assessments = [assess(s, profile, at=s.end_at or at, history=window) for s in window]

    heavy = sum(1 for a in assessments if a.morning_risk == InsightLevel.HIGH)
    high_memory = sum(1 for a in assessments if a.memory_risk == InsightLevel.HIGH)
    hydration_hits = sum(1 for a in assessments if a.water_balance.progress >= HYDRATION_HIT_PROGRESS)
    meal_hits = sum(1 for s in window if s.meals)
    peaks = [s.cached_peak_bac for s in window if s.cached_peak_bac > 0]
    wellbeing = [s.wellbeing_score for s in window if s.wellbeing_score is not None]

    hydration_rate = _percent(hydration_hits, len(window))
    return WeeklyInsightSnapshot(
        sessions_count=len(window),
        heavy_morning_count=heavy,
        high_memory_risk_count=high_memory,
        hydration_hit_rate_percent=hydration_rate,
        meal_coverage_percent=_percent(meal_hits, len(window)),
        average_peak_bac=sum(peaks) / len(peaks) if peaks else 0.0,
        average_wellbeing_score=sum(wellbeing) / len(wellbeing) if wellbeing else None,
        headline=weekly_headline(heavy, high_memory, hydration_rate),
    )


def meal_near_first_drink(session: Session) -> bool:
    """A meal between 90 minutes before and 30 minutes after the first drink."""
    drinks = session.ordered_drinks()
    if not drinks:
        return False
    first = drinks[0].created_at
    return any(-90 <= (m.created_at - first).total_seconds() / 60.0 <= 30 for m in session.meals)


def recovery_load_score(snapshot: WeeklyInsightSnapshot, average_deficit_ml: int) -> int:
    heavy_penalty = snapshot.heavy_morning_count * 20
    memory_penalty = snapshot.high_memory_risk_count * 18
    hydration_penalty = min(24, average_deficit_ml // 25)
    return max(0, 100 - heavy_penalty - memory_penalty - hydration_penalty)


def process_quality_score(
    snapshot: WeeklyInsightSnapshot,
    meal_timing_hits: int,
    trend_count: int,
    pace_hits: int,
    week_count: int,
) -> int:
    if week_count == 0:
        return 0
    hydration_part = round_half_up(snapshot.hydration_hit_rate_percent * 0.45)
    meal_part = round_half_up(meal_timing_hits / max(1, trend_count) * 35)
    pace_part = round_half_up(pace_hits / max(1, week_count) * 20)
    return min(100, hydration_part + meal_part + pace_part)


def weekly_focus(
    snapshot: WeeklyInsightSnapshot,
    meal_timing_hits: int,
    trend_count: int,
    limits: WeeklyLimits = WeeklyLimits(),
) -> str:
    if snapshot.high_memory_risk_count > limits.high_memory_risk:
        return ("Focus of the week: fewer high memory-risk sessions. "
                "Lower the pace and strength after the middle of the evening.")
    if snapshot.hydration_hit_rate_percent < limits.hydration_hit_target_percent:
        return ("Focus of the week: hydration. "
                "Add water earlier and more often to reach the target rate.")
    if meal_timing_hits < max(2, trend_count // 2):
        return ("Focus of the week: meal timing. "
                "Try to eat before the first drink or within its first 30 minutes.")
    if snapshot.heavy_morning_count > limits.heavy_mornings:
        return "Focus of the week: fewer heavy mornings. Plan to finish sessions earlier."
    return "Focus of the week: keep the current routine. Your trend looks stable."


def weekly_summary(snapshot: WeeklyInsightSnapshot, process_quality: int, recovery_load: int) -> str:
    return (
        f"Weekly summary: heavy mornings {snapshot.heavy_morning_count}, "
        f"high memory-risk {snapshot.high_memory_risk_count}, "
        f"hydration {snapshot.hydration_hit_rate_percent}%, "
        f"process quality {process_quality}/100, recovery load {recovery_load}/100."
    )


def weekly_report(
    history: Sequence[Session],
    profile: Optional[Profile] = None,
    at: Optional[datetime] = None,
    limits: WeeklyLimits = WeeklyLimits(),
    pace_threshold: float = DEFAULT_PACE_THRESHOLD,
) -> WeeklyReport:
    """Weekly snapshot plus the derived scores, focus line and summary sentence."""
    at = at or datetime.now()
    snapshot = weekly_snapshot(history, profile, at)
    completed = completed_sessions(history)
    trend = completed[:WEEKLY_FALLBACK_SESSIONS]
    this_week = [s for s in completed if s.start_at >= at - WEEK]

    deficits = [session_water_balance(s, profile, s.end_at or at).deficit_ml for s in trend]
    average_deficit = round_half_up(sum(deficits) / len(deficits)) if deficits else 0
    meal_timing_hits = sum(1 for s in trend if meal_near_first_drink(s))
    # Sessions with no alcohol count as paced.
    pace_hits = sum(1 for s in this_week if (s.average_pace(at) or 0.0) <= pace_threshold)

    recovery_load = recovery_load_score(snapshot, average_deficit)
    process_quality = process_quality_score(snapshot, meal_timing_hits, len(trend), pace_hits, len(this_week))
    return WeeklyReport(
        snapshot=snapshot,
        recovery_load_score=recovery_load,
        process_quality_score=process_quality,
        focus=weekly_focus(snapshot, meal_timing_hits, len(trend), limits),
        summary=weekly_summary(snapshot, process_quality, recovery_load),
    )


def start_hour_label(hour: int) -> str:
    return "%02d:00-%02d:00" % (hour, (hour + 2) % 24)


def trigger_patterns(
    history: Sequence[Session],
    profile: Optional[Profile] = None,
    at: Optional[datetime] = None,
) -> TriggerPatternsSummary:
    """Weekday, start hour and drink type that show up most in risky sessions."""
    at = at or datetime.now()
    sample = completed_sessions(history)[:TRIGGER_SAMPLE_SESSIONS]
    if not sample:
        return TriggerPatternsSummary(None, None, None, ())

    weekdays: Counter = Counter()
    hours: Counter = Counter()
    categories: Counter = Counter()
    risky = 0
    for session in sample:
        assessment = assess(session, profile, at=session.end_at or at, history=sample)
        rough_morning = (session.wellbeing_score if session.wellbeing_score is not None else 5) <= 2
        if not (assessment.morning_risk == InsightLevel.HIGH
                or assessment.memory_risk == InsightLevel.HIGH
                or rough_morning):
            continue
        risky += 1
        weekdays[session.start_at.weekday()] += 1
        hours[session.start_at.hour] += 1
        dominant = session.dominant_category
        if dominant is not None:
            categories[dominant] += 1
    logger.debug("trigger patterns: %d risky of %d sessions", risky, len(sample))

    # Ties go to the most recent session's value (Counter keeps insertion order).
    hits = []
    weekday_hotspot = hour_hotspot = category_hotspot = None
    if weekdays:
        day, count = weekdays.most_common(1)[0]
        weekday_hotspot = calendar.day_name[day]
        hits.append(TriggerPatternHit("weekday", "Weekday", weekday_hotspot,
                                      f"In {count} of {max(1, risky)} risky sessions."))
    if hours:
        hour, count = hours.most_common(1)[0]
        hour_hotspot = start_hour_label(hour)
        hits.append(TriggerPatternHit("hour", "Start time", hour_hotspot,
                                      f"Most often leads to a heavy morning or memory risk ({count} times)."))
    if categories:
        category, count = categories.most_common(1)[0]
        category_hotspot = category.label
        hits.append(TriggerPatternHit("category", "Drink type", category_hotspot,
                                      f"Shows up most often in risky sessions ({count} times)."))

    return TriggerPatternsSummary(
        weekday_hotspot=weekday_hotspot,
        start_hour_hotspot=hour_hotspot,
        drink_category_hotspot=category_hotspot,
        hits=tuple(hits),
    )
