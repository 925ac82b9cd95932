"""
Evening timeline chart: the BAC curve with drink, water and meal marks.
`curve_data` feeds the API; `save_bac_graph` renders a PNG (plot extra).
"""

from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple

from bac_insights import calculations
from bac_insights.models import Profile, Session

# Reference lines: the usual driving limit and the memory-gap zone.
DRIVING_LIMIT_BAC = 0.08
MEMORY_RISK_BAC = 0.14


def _hours(session: Session, moment: datetime) -> float:
    return (moment - session.start_at).total_seconds() / 3600.0


def curve_data(
    session: Session,
    profile: Profile,
    step_hours: float = 0.25,
    end: Optional[datetime] = None,
) -> List[Tuple[float, float]]:
    """(hours_from_session_start, bac_percent) pairs."""
    points = calculations.bac_curve(session, profile, step_hours=step_hours, end=end)
    return [(_hours(session, t), bac) for t, bac in points]


def save_bac_graph(
    session: Session,
    profile: Profile,
    output_path: str = "bac_graph.png",
    step_hours: float = 0.25,
    title: str = "Evening BAC timeline",
    at: Optional[datetime] = None,
) -> str:
    """
    Render the session chart and save it to `output_path`.
    Needs matplotlib (pip install bac-insights[plot]).
    """
    try:
        import matplotlib
        matplotlib.use("Agg")
        import matplotlib.pyplot as plt
    except ImportError:
        raise ImportError("matplotlib is required for save_bac_graph. pip install matplotlib")

    points = curve_data(session, profile, step_hours=step_hours)
    hours = [h for h, _ in points] or [0.0]
    bacs = [b for _, b in points] or [0.0]

    fig, ax = plt.subplots(figsize=(10, 5))
    ax.plot(hours, bacs, color="#7c3aed", linewidth=2, label="Estimated BAC")
    ax.axhspan(MEMORY_RISK_BAC, max(MEMORY_RISK_BAC, max(bacs)) + 0.02, color="#f97316", alpha=0.08,
               label="Memory-gap zone")
    ax.axhline(y=DRIVING_LIMIT_BAC, color="#dc2626", linestyle=":", linewidth=1, label="0.08%")

    for drink in session.ordered_drinks():
        ax.axvline(x=_hours(session, drink.created_at), color="#7c3aed", linewidth=0.6, alpha=0.35)
    water_hours = [_hours(session, w.created_at) for w in session.ordered_waters()]
    if water_hours:
        ax.scatter(water_hours, [0.0] * len(water_hours), marker="v", color="#0ea5e9", zorder=3, label="Water")
    meal_hours = [_hours(session, m.created_at) for m in session.ordered_meals()]
    if meal_hours:
        ax.scatter(meal_hours, [0.0] * len(meal_hours), marker="s", color="#16a34a", zorder=3, label="Meal")

    if points:
        peak_hour, peak_bac = max(points, key=lambda p: p[1])
        ax.annotate(f"peak {peak_bac:.3f}%", xy=(peak_hour, peak_bac), xytext=(6, 6), textcoords="offset points")
    if at is not None:
        ax.axvline(x=_hours(session, at), color="#111827", linestyle="--", linewidth=1, label="Now")

    ax.set_xlabel("Hours since the session started")
    ax.set_ylabel("BAC (%)")
    ax.set_title(title)
    ax.set_ylim(bottom=0)
    ax.grid(True, alpha=0.25)
    ax.legend(loc="upper right")
    fig.tight_layout()
    Path(output_path).parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(output_path, dpi=150)
    plt.close(fig)
    return output_path
