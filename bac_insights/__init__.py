"""
Evening insights: Widmark BAC timeline, heavy-morning and memory-gap risk,
hydration balance and personal calibration from morning check-ins.
Use from project root: python -m bac_insights.main
"""

from bac_insights.models import (
    BiologicalSex,
    DrinkCategory,
    DrinkEntry,
    MealEntry,
    MealSize,
    MorningCheckIn,
    Profile,
    Session,
    Symptom,
    UnitSystem,
    WaterEntry,
)
from bac_insights.calculations import BACTimeline, bac_at, bac_curve, compute
from bac_insights.risk import EveningInsightAssessment, InsightLevel, assess
from bac_insights.calibration import learning_snapshot, personalized_patterns, trend_direction
from bac_insights.recovery import recovery_index
from bac_insights.scenarios import evening_scenarios, memory_projections
from bac_insights.reports import trigger_patterns, weekly_report, weekly_snapshot
from bac_insights.graph import curve_data, save_bac_graph

__all__ = [
    "BiologicalSex",
    "DrinkCategory",
    "DrinkEntry",
    "MealEntry",
    "MealSize",
    "MorningCheckIn",
    "Profile",
    "Session",
    "Symptom",
    "UnitSystem",
    "WaterEntry",
    "BACTimeline",
    "bac_at",
    "bac_curve",
    "compute",
    "EveningInsightAssessment",
    "InsightLevel",
    "assess",
    "learning_snapshot",
    "personalized_patterns",
    "trend_direction",
    "recovery_index",
    "evening_scenarios",
    "memory_projections",
    "trigger_patterns",
    "weekly_report",
    "weekly_snapshot",
    "curve_data",
    "save_bac_graph",
]
