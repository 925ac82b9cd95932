"""BAC calculations using Widmark-style rise and linear elimination.

Model:
- Rise: BAC = [grams / (body_weight_g * r)] * 100
- r = 0.68 (male), 0.55 (female), 0.615 (unspecified)
- Elimination: 0.015 BAC percentage points per hour, per drink
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Tuple

from bac_insights.models import DrinkEntry, Profile, Session

# Elimination rate (% BAC per hour)
ELIMINATION_PER_HOUR = 0.015

# Below this the curve is treated as sober.
SOBER_EPSILON = 0.0001


@dataclass(frozen=True)
class BACTimeline:
    current_bac: float
    peak_bac: float
    estimated_sober_at: Optional[datetime]


def bac_rise(drink: DrinkEntry, weight_grams: float, distribution: float) -> float:
    """Immediate BAC rise (%) from a single drink."""
    return drink.alcohol_grams / (weight_grams * distribution) * 100.0


def _hours_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 3600.0


def _adjusted(drink: DrinkEntry, at: datetime, weight_grams: float, distribution: float) -> float:
    if drink.created_at > at:
        return 0.0
    elapsed = _hours_between(drink.created_at, at)
    return max(0.0, bac_rise(drink, weight_grams, distribution) - ELIMINATION_PER_HOUR * elapsed)


def bac_at(drinks: Iterable[DrinkEntry], profile: Profile, at: datetime) -> float:
    """BAC (%) at `at` from every drink, each decaying from its own timestamp."""
    weight_grams = profile.weight_grams
    if weight_grams <= 0:
        return 0.0
    distribution = profile.sex.distribution_ratio
    return sum(_adjusted(d, at, weight_grams, distribution) for d in drinks)


def compute(session: Session, profile: Profile, at: Optional[datetime] = None) -> BACTimeline:
    """Current and peak BAC plus the estimated time BAC returns to zero."""
    at = at or datetime.now()
    if profile.weight_grams <= 0:
        return BACTimeline(current_bac=0.0, peak_bac=0.0, estimated_sober_at=at)

    drinks = session.ordered_drinks()
    current = bac_at(drinks, profile, at)

    # Earlier drinks have already decayed when a later one lands, so the whole
    # sum is re-evaluated at each drink time.
    peak = 0.0
    for drink in drinks:
        peak = max(peak, bac_at(drinks, profile, drink.created_at))

    if current <= SOBER_EPSILON:
        return BACTimeline(current_bac=0.0, peak_bac=peak, estimated_sober_at=at)
    hours_to_sober = current / ELIMINATION_PER_HOUR
    return BACTimeline(
        current_bac=current,
        peak_bac=peak,
        estimated_sober_at=at + timedelta(hours=hours_to_sober),
    )


def bac_curve(
    session: Session,
    profile: Profile,
    step_hours: float = 0.25,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> List[Tuple[datetime, float]]:
    """Return (time, bac_percent) pairs for graphing."""
    drinks = session.ordered_drinks()
    if not drinks:
        return []
    if step_hours <= 0:
        raise ValueError("step_hours must be > 0")

    start = start or session.start_at
    if end is None:
        weight_grams = profile.weight_grams
        if weight_grams <= 0:
            return []
        distribution = profile.sex.distribution_ratio
        end = max(
            d.created_at + timedelta(hours=bac_rise(d, weight_grams, distribution) / ELIMINATION_PER_HOUR)
            for d in drinks
        )
    end = max(end, start)

    points: List[Tuple[datetime, float]] = []
    step = timedelta(hours=step_hours)
    t = start
    while t <= end:
        points.append((t, round(bac_at(drinks, profile, t), 4)))
        t += step
    return points
