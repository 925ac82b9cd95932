"""
Daily biometric snapshots and the per-session health context.

Every field is optional: a missing metric only removes the adjustment that
would have used it.
"""

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Iterable, Optional, Union

from bac_insights.baseline import DEFAULT_WINDOW_DAYS, BaselineStats, stats


class HealthMetric(str, Enum):
    STEPS = "steps"
    RESTING_HEART_RATE = "resting_heart_rate"
    HRV = "hrv"
    SLEEP_DURATION = "sleep_duration"
    SLEEP_DEEP = "sleep_deep"
    SLEEP_REM = "sleep_rem"
    SLEEP_AWAKE = "sleep_awake"


class SleepStage(str, Enum):
    DEEP = "deep"
    REM = "rem"
    CORE = "core"
    UNSPECIFIED = "unspecified"
    IN_BED = "in_bed"
    AWAKE = "awake"


@dataclass(frozen=True)
class SleepSegment:
    stage: SleepStage
    start: datetime
    end: datetime

    @property
    def minutes(self) -> float:
        return max(0.0, (self.end - self.start).total_seconds() / 60.0)


@dataclass(frozen=True)
class SleepSummary:
    total_minutes: float = 0.0
    deep_minutes: float = 0.0
    rem_minutes: float = 0.0
    core_minutes: float = 0.0
    awake_minutes: float = 0.0
    efficiency: Optional[float] = None


@dataclass(frozen=True)
class DailySnapshot:
    day: date
    steps: Optional[int] = None
    resting_heart_rate: Optional[int] = None
    hrv_sdnn: Optional[float] = None  # ms
    sleep_minutes: Optional[float] = None  # asleep only
    sleep_deep_minutes: Optional[float] = None
    sleep_rem_minutes: Optional[float] = None
    sleep_awake_minutes: Optional[float] = None
    sleep_efficiency: Optional[float] = None  # asleep / in bed, 0-1

    def value(self, metric: HealthMetric) -> Optional[float]:
        raw = {
            HealthMetric.STEPS: self.steps,
            HealthMetric.RESTING_HEART_RATE: self.resting_heart_rate,
            HealthMetric.HRV: self.hrv_sdnn,
            HealthMetric.SLEEP_DURATION: self.sleep_minutes,
            HealthMetric.SLEEP_DEEP: self.sleep_deep_minutes,
            HealthMetric.SLEEP_REM: self.sleep_rem_minutes,
            HealthMetric.SLEEP_AWAKE: self.sleep_awake_minutes,
        }[metric]
        return float(raw) if raw is not None else None


@dataclass(frozen=True)
class SessionHealthContext:
    sleep_hours: Optional[float] = None
    step_count: Optional[int] = None
    resting_heart_rate: Optional[int] = None
    hrv_sdnn: Optional[float] = None
    sleep_efficiency: Optional[float] = None

    @classmethod
    def from_snapshot(cls, snapshot: Optional[DailySnapshot]) -> Optional["SessionHealthContext"]:
        if snapshot is None:
            return None
        sleep_hours = snapshot.sleep_minutes / 60.0 if snapshot.sleep_minutes is not None else None
        return cls(
            sleep_hours=sleep_hours,
            step_count=snapshot.steps,
            resting_heart_rate=snapshot.resting_heart_rate,
            hrv_sdnn=snapshot.hrv_sdnn,
            sleep_efficiency=snapshot.sleep_efficiency,
        )


@dataclass(frozen=True)
class HealthBaselineSet:
    steps: Optional[BaselineStats] = None
    resting_heart_rate: Optional[BaselineStats] = None
    hrv: Optional[BaselineStats] = None
    sleep: Optional[BaselineStats] = None


def summarize_sleep(segments: Iterable[SleepSegment]) -> SleepSummary:
    """Fold sleep-stage segments into minutes per stage and efficiency."""
    total = deep = rem = core = awake = 0.0
    for segment in segments:
        minutes = segment.minutes
        if segment.stage == SleepStage.AWAKE:
            awake += minutes
            continue
        total += minutes
        if segment.stage == SleepStage.DEEP:
            deep += minutes
        elif segment.stage == SleepStage.REM:
            rem += minutes
        elif segment.stage == SleepStage.CORE:
            core += minutes

    efficiency = None
    if total > 0:
        efficiency = total / max(1.0, total + awake)
    return SleepSummary(
        total_minutes=total,
        deep_minutes=deep,
        rem_minutes=rem,
        core_minutes=core,
        awake_minutes=awake,
        efficiency=efficiency,
    )


def build_snapshot(
    day: date,
    steps: Optional[int] = None,
    resting_heart_rate: Optional[int] = None,
    hrv_sdnn: Optional[float] = None,
    sleep_segments: Optional[Iterable[SleepSegment]] = None,
) -> DailySnapshot:
    summary = summarize_sleep(sleep_segments) if sleep_segments is not None else None
    return DailySnapshot(
        day=day,
        steps=steps,
        resting_heart_rate=resting_heart_rate,
        hrv_sdnn=hrv_sdnn,
        sleep_minutes=summary.total_minutes if summary else None,
        sleep_deep_minutes=summary.deep_minutes if summary else None,
        sleep_rem_minutes=summary.rem_minutes if summary else None,
        sleep_awake_minutes=summary.awake_minutes if summary else None,
        sleep_efficiency=summary.efficiency if summary else None,
    )


def snapshot_for_day(snapshots: Iterable[DailySnapshot], day: date) -> Optional[DailySnapshot]:
    for snapshot in snapshots:
        if snapshot.day == day:
            return snapshot
    return None


def baseline_set(
    snapshots: Iterable[DailySnapshot],
    anchor_day: Union[date, datetime, None] = None,
    window_days: int = DEFAULT_WINDOW_DAYS,
) -> HealthBaselineSet:
    """Personal baselines for the metrics the recovery index reads."""
    snapshots = list(snapshots)
    return HealthBaselineSet(
        steps=stats(HealthMetric.STEPS, snapshots, anchor_day, window_days),
        resting_heart_rate=stats(HealthMetric.RESTING_HEART_RATE, snapshots, anchor_day, window_days),
        hrv=stats(HealthMetric.HRV, snapshots, anchor_day, window_days),
        sleep=stats(HealthMetric.SLEEP_DURATION, snapshots, anchor_day, window_days),
    )
