"""Robust personal baselines (median / IQR / trend) over sliding day windows."""

import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import TYPE_CHECKING, Iterable, List, Optional, Sequence, Union

if TYPE_CHECKING:
    from bac_insights.health import DailySnapshot, HealthMetric

DEFAULT_WINDOW_DAYS = 28
MIN_SAMPLES = 3


@dataclass(frozen=True)
class BaselineStats:
    median: float
    p25: float
    p75: float
    iqr: float
    trend_slope: float  # per sample in date order
    sample_count: int


def percentile(sorted_values: Sequence[float], p: float) -> float:
    """Linear interpolation between order statistics (R-7)."""
    if not sorted_values:
        return 0.0
    rank = (p / 100.0) * (len(sorted_values) - 1)
    lower = int(math.floor(rank))
    upper = int(math.ceil(rank))
    if lower == upper:
        return sorted_values[lower]
    fraction = rank - lower
    return sorted_values[lower] + fraction * (sorted_values[upper] - sorted_values[lower])


def linear_trend_slope(values: Sequence[float]) -> float:
    """Least-squares slope of value against sample index."""
    n = len(values)
    if n < 2:
        return 0.0
    mean_x = (n - 1) / 2.0
    mean_y = sum(values) / n
    num = 0.0
    den = 0.0
    for i, y in enumerate(values):
        dx = i - mean_x
        num += dx * (y - mean_y)
        den += dx * dx
    return num / den if den else 0.0


def _as_day(value: Union[date, datetime]) -> date:
    return value.date() if isinstance(value, datetime) else value


def stats(
    metric: "HealthMetric",
    snapshots: Iterable["DailySnapshot"],
    anchor_day: Union[date, datetime, None] = None,
    window_days: int = DEFAULT_WINDOW_DAYS,
) -> Optional[BaselineStats]:
    """Baseline for one metric, or None when fewer than 3 days have a value."""
    if window_days <= 0:
        return None
    anchor = _as_day(anchor_day or date.today())
    start = anchor - timedelta(days=window_days - 1)

    in_window = sorted(
        (s for s in snapshots if start <= s.day <= anchor),
        key=lambda s: s.day,
    )
    values: List[float] = []
    for snapshot in in_window:
        value = snapshot.value(metric)
        if value is not None:
            values.append(value)

    if len(values) < MIN_SAMPLES:
        return None
    ordered = sorted(values)
    p25 = percentile(ordered, 25)
    p75 = percentile(ordered, 75)
    return BaselineStats(
        median=percentile(ordered, 50),
        p25=p25,
        p75=p75,
        iqr=p75 - p25,
        trend_slope=linear_trend_slope(values),
        sample_count=len(values),
    )

