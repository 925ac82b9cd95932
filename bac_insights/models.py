"""
Timeline model: profile, session and the entries logged during an evening.

Every record is an immutable value. Entries belong to the Session that holds
them; editing goes through bac_insights.session, which returns new values.
"""

import uuid
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple

from bac_insights.drinks import grams_from_volume_abv, standard_drinks

POUND_GRAMS = 453.592
DEFAULT_WEIGHT_KG = 70.0
MIN_WEIGHT_KG = 40.0


def _new_id() -> str:
    return uuid.uuid4().hex


class BiologicalSex(str, Enum):
    MALE = "male"
    FEMALE = "female"
    UNSPECIFIED = "unspecified"

    @property
    def distribution_ratio(self) -> float:
        """Widmark r: fraction of body mass that holds water."""
        return {
            BiologicalSex.MALE: 0.68,
            BiologicalSex.FEMALE: 0.55,
            BiologicalSex.UNSPECIFIED: 0.615,
        }[self]


class UnitSystem(str, Enum):
    METRIC = "metric"
    IMPERIAL = "imperial"


class DrinkCategory(str, Enum):
    BEER = "beer"
    WINE = "wine"
    SPIRITS = "spirits"
    COCKTAIL = "cocktail"
    CIDER = "cider"
    SELTZER = "seltzer"
    LIQUEUR = "liqueur"
    OTHER = "other"

    @property
    def label(self) -> str:
        return _CATEGORY_LABELS[self]


_CATEGORY_LABELS = {
    DrinkCategory.BEER: "Beer",
    DrinkCategory.WINE: "Wine",
    DrinkCategory.SPIRITS: "Spirits",
    DrinkCategory.COCKTAIL: "Cocktail",
    DrinkCategory.CIDER: "Cider",
    DrinkCategory.SELTZER: "Seltzer",
    DrinkCategory.LIQUEUR: "Liqueur",
    DrinkCategory.OTHER: "Other",
}


class MealSize(str, Enum):
    SNACK = "snack"
    REGULAR = "regular"
    HEAVY = "heavy"

    @property
    def mitigation_weight(self) -> float:
        return {MealSize.SNACK: 0.5, MealSize.REGULAR: 1.0, MealSize.HEAVY: 1.5}[self]


class Symptom(str, Enum):
    HEADACHE = "headache"
    NAUSEA = "nausea"
    FATIGUE = "fatigue"
    THIRST = "thirst"
    ANXIETY = "anxiety"
    NONE = "none"


@dataclass(frozen=True)
class Profile:
    weight: float = DEFAULT_WEIGHT_KG
    sex: BiologicalSex = BiologicalSex.UNSPECIFIED
    unit_system: UnitSystem = UnitSystem.METRIC
    notifications_enabled: bool = False
    hide_bac_in_sharing: bool = True

    @property
    def weight_grams(self) -> float:
        if self.unit_system == UnitSystem.IMPERIAL:
            return self.weight * POUND_GRAMS
        return self.weight * 1000.0

    @property
    def weight_kg(self) -> float:
        """Body weight in kg, floored at 40 for hydration targets."""
        if self.unit_system == UnitSystem.IMPERIAL:
            return max(MIN_WEIGHT_KG, self.weight * POUND_GRAMS / 1000.0)
        return max(MIN_WEIGHT_KG, self.weight)


def weight_kg_or_default(profile: Optional[Profile]) -> float:
    return profile.weight_kg if profile is not None else DEFAULT_WEIGHT_KG


@dataclass(frozen=True)
class DrinkEntry:
    created_at: datetime
    volume_ml: float
    abv_percent: float
    category: DrinkCategory = DrinkCategory.BEER
    title: Optional[str] = None
    id: str = field(default_factory=_new_id)

    @property
    def alcohol_grams(self) -> float:
        return grams_from_volume_abv(self.volume_ml, self.abv_percent)

    @property
    def standard_drinks(self) -> float:
        return standard_drinks(self.volume_ml, self.abv_percent)

    @property
    def display_name(self) -> str:
        return self.title or self.category.label


@dataclass(frozen=True)
class WaterEntry:
    created_at: datetime
    volume_ml: Optional[float] = None  # None: marked, amount unknown
    id: str = field(default_factory=_new_id)


@dataclass(frozen=True)
class MealEntry:
    created_at: datetime
    size: MealSize = MealSize.REGULAR
    title: Optional[str] = None
    id: str = field(default_factory=_new_id)


@dataclass(frozen=True)
class MorningCheckIn:
    wellbeing_score: int
    created_at: Optional[datetime] = None
    symptoms: Tuple[Symptom, ...] = ()
    sleep_hours: Optional[float] = None
    had_water: Optional[bool] = None
    id: str = field(default_factory=_new_id)

    @property
    def clamped_score(self) -> int:
        return max(0, min(5, self.wellbeing_score))

    @property
    def is_rough(self) -> bool:
        return self.wellbeing_score <= 2


@dataclass(frozen=True)
class Session:
    start_at: datetime
    end_at: Optional[datetime] = None
    is_active: bool = True
    drinks: Tuple[DrinkEntry, ...] = ()
    waters: Tuple[WaterEntry, ...] = ()
    meals: Tuple[MealEntry, ...] = ()
    morning_check_in: Optional[MorningCheckIn] = None
    cached_peak_bac: float = 0.0
    cached_sober_at: Optional[datetime] = None
    id: str = field(default_factory=_new_id)

    def ordered_drinks(self) -> Tuple[DrinkEntry, ...]:
        return tuple(sorted(self.drinks, key=lambda d: d.created_at))

    def ordered_waters(self) -> Tuple[WaterEntry, ...]:
        return tuple(sorted(self.waters, key=lambda w: w.created_at))

    def ordered_meals(self) -> Tuple[MealEntry, ...]:
        return tuple(sorted(self.meals, key=lambda m: m.created_at))

    def duration_hours(self, at: datetime) -> float:
        """Hours from start to end (or to `at` while the session is open)."""
        end = self.end_at if self.end_at is not None else at
        return max(0.0, (end - self.start_at).total_seconds() / 3600.0)

    @property
    def total_standard_drinks(self) -> float:
        return sum(d.standard_drinks for d in self.drinks)

    @property
    def strongest_abv(self) -> float:
        return max((d.abv_percent for d in self.drinks), default=0.0)

    @property
    def dominant_category(self) -> Optional[DrinkCategory]:
        if not self.drinks:
            return None
        # Ties go to the category of the most recent drink.
        counts = Counter(d.category for d in reversed(self.ordered_drinks()))
        return counts.most_common(1)[0][0]

    @property
    def wellbeing_score(self) -> Optional[int]:
        return self.morning_check_in.wellbeing_score if self.morning_check_in else None

    def average_pace(self, at: datetime) -> Optional[float]:
        """Standard drinks per hour; None when nothing alcoholic was logged."""
        total = self.total_standard_drinks
        if total <= 0:
            return None
        return total / max(0.1, self.duration_hours(at))
