"""
Session editing: start, log entries, end and check in.

Sessions are immutable values, so every operation returns a new Session.
When a profile is known the cached peak BAC and sober time are refreshed
on the returned value, measured at `at` (now by default) and never at the
entry's own timestamp. Without a profile the caches are left as they were.
"""

import logging
from dataclasses import replace
from datetime import datetime
from typing import Iterable, List, Optional, Sequence

from bac_insights import calculations
from bac_insights.models import (
    DrinkCategory,
    DrinkEntry,
    MealEntry,
    MealSize,
    MorningCheckIn,
    Profile,
    Session,
    Symptom,
    WaterEntry,
)

logger = logging.getLogger(__name__)


def recompute(session: Session, profile: Optional[Profile], at: Optional[datetime] = None) -> Session:
    """Refresh cached_peak_bac / cached_sober_at from the drink log."""
    if profile is None:
        return session
    timeline = calculations.compute(session, profile, at or datetime.now())
    return replace(session, cached_peak_bac=timeline.peak_bac, cached_sober_at=timeline.estimated_sober_at)


def recompute_all(sessions: Iterable[Session], profile: Optional[Profile], at: Optional[datetime] = None) -> List[Session]:
    if profile is None:
        return list(sessions)
    return [recompute(s, profile, at) for s in sessions]


def active_session(sessions: Sequence[Session]) -> Optional[Session]:
    """Most recently started session that is still open."""
    active = [s for s in sessions if s.is_active]
    return max(active, key=lambda s: s.start_at) if active else None


def start_session(sessions: Sequence[Session] = (), at: Optional[datetime] = None) -> Session:
    """Return the open session if there is one, else a new one."""
    existing = active_session(sessions)
    if existing is not None:
        return existing
    session = Session(start_at=at or datetime.now())
    logger.info("started session %s", session.id)
    return session


def end_session(session: Session, profile: Optional[Profile], at: Optional[datetime] = None) -> Session:
    at = at or datetime.now()
    ended = replace(session, end_at=at, is_active=False)
    return recompute(ended, profile, at)


def is_empty(session: Session) -> bool:
    return not (session.drinks or session.waters or session.meals)


def add_drink(
    session: Session,
    profile: Optional[Profile],
    volume_ml: float,
    abv_percent: float,
    created_at: Optional[datetime] = None,
    title: Optional[str] = None,
    category: DrinkCategory = DrinkCategory.BEER,
    at: Optional[datetime] = None,
) -> Session:
    drink = DrinkEntry(
        created_at=created_at or datetime.now(),
        volume_ml=volume_ml,
        abv_percent=abv_percent,
        category=category,
        title=title,
    )
    return recompute(replace(session, drinks=session.drinks + (drink,)), profile, at)


def update_drink(
    session: Session,
    profile: Optional[Profile],
    drink_id: str,
    created_at: datetime,
    volume_ml: float,
    abv_percent: float,
    title: Optional[str] = None,
    category: DrinkCategory = DrinkCategory.BEER,
    at: Optional[datetime] = None,
) -> Session:
    drinks = tuple(
        replace(d, created_at=created_at, volume_ml=volume_ml, abv_percent=abv_percent, title=title, category=category)
        if d.id == drink_id else d
        for d in session.drinks
    )
    return recompute(replace(session, drinks=drinks), profile, at)


def add_water(
    session: Session,
    profile: Optional[Profile],
    volume_ml: Optional[float] = None,
    created_at: Optional[datetime] = None,
    at: Optional[datetime] = None,
) -> Session:
    water = WaterEntry(created_at=created_at or datetime.now(), volume_ml=volume_ml)
    return recompute(replace(session, waters=session.waters + (water,)), profile, at)


def add_meal(
    session: Session,
    profile: Optional[Profile],
    size: MealSize = MealSize.REGULAR,
    title: Optional[str] = None,
    created_at: Optional[datetime] = None,
    at: Optional[datetime] = None,
) -> Session:
    meal = MealEntry(created_at=created_at or datetime.now(), size=size, title=title)
    return recompute(replace(session, meals=session.meals + (meal,)), profile, at)


def delete_entry(
    session: Session, profile: Optional[Profile], entry_id: str, at: Optional[datetime] = None,
) -> Session:
    """Remove a drink, water or meal entry by id; unknown ids are a no-op."""
    updated = replace(
        session,
        drinks=tuple(d for d in session.drinks if d.id != entry_id),
        waters=tuple(w for w in session.waters if w.id != entry_id),
        meals=tuple(m for m in session.meals if m.id != entry_id),
    )
    if updated == session:
        return session
    return recompute(updated, profile, at)


def check_in(
    session: Session,
    wellbeing_score: int,
    symptoms: Iterable[Symptom] = (),
    sleep_hours: Optional[float] = None,
    had_water: Optional[bool] = None,
    at: Optional[datetime] = None,
) -> Session:
    """Attach the morning check-in. A checked-in session is always closed."""
    if not 0 <= wellbeing_score <= 5:
        raise ValueError("wellbeing_score must be between 0 and 5")
    entry = MorningCheckIn(
        wellbeing_score=wellbeing_score,
        created_at=at or datetime.now(),
        symptoms=tuple(symptoms),
        sleep_hours=sleep_hours,
        had_water=had_water,
    )
    end_at = session.end_at or entry.created_at
    return replace(session, morning_check_in=entry, is_active=False, end_at=end_at)
