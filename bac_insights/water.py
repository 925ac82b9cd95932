"""Hydration balance: water logged against a target that grows with the evening."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from bac_insights.models import Profile, Session, weight_kg_or_default
from bac_insights.rounding import round_to_50

MIN_TARGET_ML = 600
ML_PER_KG = 8.0
ML_PER_STANDARD_DRINK = 250
ML_PER_EXTRA_HOUR = 120

MILD_DEFICIT_ML = 150
HIGH_DEFICIT_ML = 450
MIN_TOP_UP_ML = 150
MAX_TOP_UP_ML = 350


class WaterBalanceStatus(str, Enum):
    BALANCED = "balanced"
    MILD_DEFICIT = "mild_deficit"
    HIGH_DEFICIT = "high_deficit"


@dataclass(frozen=True)
class WaterBalance:
    consumed_ml: int
    target_ml: int
    deficit_ml: int
    status: WaterBalanceStatus
    unknown_marks_count: int
    suggested_top_up_ml: int

    @property
    def progress(self) -> float:
        if self.target_ml <= 0:
            return 1.0
        return min(1.0, self.consumed_ml / self.target_ml)


def status_for_deficit(deficit_ml: int) -> WaterBalanceStatus:
    if deficit_ml < MILD_DEFICIT_ML:
        return WaterBalanceStatus.BALANCED
    if deficit_ml < HIGH_DEFICIT_ML:
        return WaterBalanceStatus.MILD_DEFICIT
    return WaterBalanceStatus.HIGH_DEFICIT


def water_balance(
    session: Session,
    profile: Optional[Profile],
    duration_hours: float,
    standard_drinks_total: float,
) -> WaterBalance:
    consumed_ml = int(sum(w.volume_ml for w in session.waters if w.volume_ml is not None))
    unknown_marks = sum(1 for w in session.waters if w.volume_ml is None)

    weight_part = int(weight_kg_or_default(profile) * ML_PER_KG)
    dynamic_part = standard_drinks_total * ML_PER_STANDARD_DRINK + max(0.0, duration_hours - 1) * ML_PER_EXTRA_HOUR
    target_ml = round_to_50(max(MIN_TARGET_ML, weight_part + int(dynamic_part)))
    deficit_ml = max(0, target_ml - consumed_ml)

    top_up = 0
    if deficit_ml > 0:
        top_up = min(MAX_TOP_UP_ML, max(MIN_TOP_UP_ML, round_to_50(deficit_ml // 2)))

    return WaterBalance(
        consumed_ml=consumed_ml,
        target_ml=target_ml,
        deficit_ml=deficit_ml,
        status=status_for_deficit(deficit_ml),
        unknown_marks_count=unknown_marks,
        suggested_top_up_ml=top_up,
    )


def session_water_balance(session: Session, profile: Optional[Profile], at: datetime) -> WaterBalance:
    return water_balance(
        session,
        profile,
        duration_hours=session.duration_hours(at),
        standard_drinks_total=session.total_standard_drinks,
    )


def hydration_progress(session: Session, profile: Optional[Profile], at: datetime) -> float:
    return session_water_balance(session, profile, at).progress
