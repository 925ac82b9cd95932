"""What-if projections for the rest of the evening.

Each scenario nudges the current assessment by fixed amounts, scaled by the
user's personalized thresholds. These are illustrations, not simulations:
nothing re-runs the BAC model for hypothetical drinks.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Sequence

from bac_insights.calibration import PersonalizedPatterns, personalized_patterns
from bac_insights.models import Profile, Session
from bac_insights.risk import EveningInsightAssessment, assess
from bac_insights.rounding import capped_percent
from bac_insights.water import hydration_progress


@dataclass(frozen=True)
class EveningScenario:
    id: str
    title: str
    subtitle: str
    morning_probability_percent: int
    memory_probability_percent: int
    recommendation: str

    @property
    def impact_text(self) -> str:
        return (
            f"Morning risk ~{self.morning_probability_percent}%, "
            f"memory-gap risk ~{self.memory_probability_percent}%"
        )


@dataclass(frozen=True)
class MemoryProjection:
    id: str
    horizon_minutes: int
    memory_probability_percent: int
    comment: str


def _context(session, profile, history, at):
    at = at or datetime.now()
    baseline = assess(session, profile, at=at, history=history)
    patterns = personalized_patterns(session, history, profile, at)
    pace = session.average_pace(at)
    if pace is None:
        pace = patterns.pace_risk_threshold
    return baseline, patterns, pace, hydration_progress(session, profile, at)


def evening_scenarios(
    session: Session,
    profile: Optional[Profile] = None,
    history: Sequence[Session] = (),
    at: Optional[datetime] = None,
) -> List[EveningScenario]:
    baseline, patterns, pace, hydration = _context(session, profile, history, at)
    return [
        _continue_pace(session, baseline, patterns, pace, hydration),
        _pause_water(session, baseline, patterns, hydration),
        _strong_cocktail(session, baseline, patterns),
    ]


def _continue_pace(
    session: Session,
    baseline: EveningInsightAssessment,
    patterns: PersonalizedPatterns,
    pace: float,
    hydration: float,
) -> EveningScenario:
    fast = pace >= patterns.pace_risk_threshold
    morning = baseline.morning_probability_percent + (12 if fast else 6)
    memory = baseline.memory_probability_percent + (10 if fast else 5)
    if hydration < patterns.hydration_goal_progress:
        morning += 8
    if session.cached_peak_bac >= patterns.peak_risk_threshold:
        morning += 6
    return EveningScenario(
        id="continue-pace",
        title="If you keep the same pace",
        subtitle="About one more hour without slowing down",
        morning_probability_percent=capped_percent(morning),
        memory_probability_percent=capped_percent(memory),
        recommendation="Slow down and add water to stay out of your higher-risk zone.",
    )


def _pause_water(
    session: Session,
    baseline: EveningInsightAssessment,
    patterns: PersonalizedPatterns,
    hydration: float,
) -> EveningScenario:
    morning = baseline.morning_probability_percent
    morning -= 14 if hydration < patterns.hydration_goal_progress else 8
    memory = baseline.memory_probability_percent - 6
    if not session.meals:
        morning -= 4
    return EveningScenario(
        id="pause-water",
        title="If you pause and drink water",
        subtitle="A 45-60 minute break plus water",
        morning_probability_percent=capped_percent(morning),
        memory_probability_percent=capped_percent(memory),
        recommendation="Going by your history this is usually the way to a softer morning.",
    )


def _strong_cocktail(
    session: Session,
    baseline: EveningInsightAssessment,
    patterns: PersonalizedPatterns,
) -> EveningScenario:
    morning = baseline.morning_probability_percent + 10
    memory = baseline.memory_probability_percent + 18
    if session.cached_peak_bac >= patterns.memory_risk_threshold:
        memory += 8
    return EveningScenario(
        id="strong-cocktail",
        title="If you add a strong cocktail now",
        subtitle="One more strong drink",
        morning_probability_percent=capped_percent(morning),
        memory_probability_percent=capped_percent(memory),
        recommendation="In this case it is wiser to finish with alcohol and switch to water and food.",
    )


def memory_projections(
    session: Session,
    profile: Optional[Profile] = None,
    history: Sequence[Session] = (),
    at: Optional[datetime] = None,
    horizons: Sequence[int] = (30, 60),
) -> List[MemoryProjection]:
    """Memory-gap probability if the evening carries on for each horizon (minutes)."""
    baseline, patterns, pace, hydration = _context(session, profile, history, at)

    pace_factor = 10 if pace >= patterns.pace_risk_threshold else 5
    hydration_factor = 6 if hydration < patterns.hydration_goal_progress else 2
    peak_factor = 8 if session.cached_peak_bac >= patterns.memory_risk_threshold else 3

    projections = []
    for horizon in horizons:
        horizon_factor = 8 if horizon >= 60 else 4
        projected = capped_percent(
            baseline.memory_probability_percent + pace_factor + horizon_factor + hydration_factor + peak_factor
        )
        if projected >= 70:
            comment = "Better to stop at water and food."
        elif projected >= 45:
            comment = "Slow down and take a break."
        else:
            comment = "Risk is moderate for now, keep a careful pace."
        projections.append(MemoryProjection(
            id=f"memory-{horizon}",
            horizon_minutes=horizon,
            memory_probability_percent=projected,
            comment=comment,
        ))
    return projections
