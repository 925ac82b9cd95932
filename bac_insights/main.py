"""
Evening insights CLI. Run from project root: python -m bac_insights.main
Loads an evening from YAML (or builds a demo one), prints the BAC timeline,
risk assessment, recovery index and what-if scenarios, and optionally saves a graph.

YAML layout:

    profile: {weight: 70, sex: male, unit_system: metric}
    at: 2024-05-10 23:30:00
    session:
      start_at: 2024-05-10 20:00:00
      drinks:
        - {created_at: 2024-05-10 20:10:00, volume_ml: 500, abv_percent: 5, category: beer}
      waters:
        - {created_at: 2024-05-10 21:00:00, volume_ml: 250}
    history: []        # past sessions, same shape as `session`
    health: {sleep_hours: 6.5, step_count: 8000}
"""

import argparse
import logging
import sys
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

import yaml

from bac_insights import calculations, risk, session as session_ops
from bac_insights.graph import curve_data, save_bac_graph
from bac_insights.health import SessionHealthContext
from bac_insights.models import BiologicalSex, DrinkCategory, MealSize, Profile, Session, UnitSystem
from bac_insights.recovery import recovery_index
from bac_insights.scenarios import evening_scenarios, memory_projections
from bac_insights.store import profile_from_payload, session_from_payload

logger = logging.getLogger(__name__)


def demo_session(profile: Profile, at: datetime) -> Session:
    """Two beers and a cocktail over three hours, one glass of water, a snack."""
    start = at - timedelta(hours=3)
    s = session_ops.start_session(at=start)
    s = session_ops.add_drink(s, profile, 500, 5.0, created_at=start + timedelta(minutes=10), at=at)
    s = session_ops.add_meal(s, profile, MealSize.SNACK, created_at=start + timedelta(minutes=30), at=at)
    s = session_ops.add_drink(s, profile, 500, 5.0, created_at=start + timedelta(hours=1), at=at)
    s = session_ops.add_water(s, profile, 250, created_at=start + timedelta(hours=1, minutes=30), at=at)
    return session_ops.add_drink(
        s, profile, 250, 12.0, created_at=start + timedelta(hours=2), title="Cuba Libre", category=DrinkCategory.COCKTAIL,
        at=at,
    )


def load_evening(path: str) -> Dict[str, Any]:
    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict) or "session" not in data:
        raise ValueError(f"{path}: expected a mapping with a 'session' key")
    return data


def _health(raw: Optional[Dict[str, Any]]) -> Optional[SessionHealthContext]:
    if not raw:
        return None
    return SessionHealthContext(
        sleep_hours=raw.get("sleep_hours"),
        step_count=raw.get("step_count"),
        resting_heart_rate=raw.get("resting_heart_rate"),
        hrv_sdnn=raw.get("hrv_sdnn"),
    )


def main(argv=None):
    parser = argparse.ArgumentParser(description="Evening insights: BAC timeline, morning and memory-gap risk")
    parser.add_argument("--session", type=str, metavar="FILE", help="Load the evening from a YAML file")
    parser.add_argument("--weight", type=float, default=70.0, help="Body weight (kg, or lb with --imperial)")
    parser.add_argument("--sex", choices=[s.value for s in BiologicalSex], default=BiologicalSex.UNSPECIFIED.value)
    parser.add_argument("--imperial", action="store_true", help="Weight is in pounds")
    parser.add_argument("--graph", type=str, metavar="FILE", help="Save BAC graph to FILE (e.g. bac_graph.png)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING, format="%(levelname)s %(name)s: %(message)s")

    profile = Profile(
        weight=args.weight,
        sex=BiologicalSex(args.sex),
        unit_system=UnitSystem.IMPERIAL if args.imperial else UnitSystem.METRIC,
    )
    history = []
    health = None
    at = datetime.now()

    if args.session:
        try:
            data = load_evening(args.session)
            if data.get("profile"):
                profile = profile_from_payload(data["profile"])
            if data.get("at"):
                at = data["at"] if isinstance(data["at"], datetime) else datetime.fromisoformat(str(data["at"]))
            session = session_ops.recompute(session_from_payload(data["session"]), profile, at)
            history = [session_ops.recompute(session_from_payload(h), profile) for h in data.get("history") or []]
            health = _health(data.get("health"))
        except (OSError, ValueError, KeyError, yaml.YAMLError) as e:
            print(f"Could not load {args.session}: {e}", file=sys.stderr)
            return 1
    else:
        session = demo_session(profile, at)
        print("Demo session: 2 beers, 1 cocktail, 250 ml water, a snack over 3h")

    timeline = calculations.compute(session, profile, at)
    print(f"Drinks: {len(session.drinks)} ({session.total_standard_drinks:.1f} std)")
    print(f"BAC now: {timeline.current_bac:.3f}%  peak: {timeline.peak_bac:.3f}%")
    if timeline.estimated_sober_at:
        print(f"Estimated 0.00 at: {timeline.estimated_sober_at:%H:%M}")

    assessment = risk.assess(session, profile, at=at, health=health, history=history)
    print(f"Morning risk: {assessment.morning_risk.value} ({assessment.morning_probability_percent}%)")
    print(f"Memory-gap risk: {assessment.memory_risk.value} ({assessment.memory_probability_percent}%)")
    print(f"Confidence: {assessment.confidence.score_percent}%")
    balance = assessment.water_balance
    print(f"Water: {balance.consumed_ml}/{balance.target_ml} ml ({balance.status.value})")
    for action in assessment.actions_now:
        print(f"  - {action}")

    recovery = recovery_index(session, assessment, health)
    print(f"Recovery index: {recovery.score}/100, {recovery.headline}")

    for scenario in evening_scenarios(session, profile, history, at):
        print(f"{scenario.title}: {scenario.impact_text}")
    for projection in memory_projections(session, profile, history, at):
        print(f"Memory risk in {projection.horizon_minutes} min: {projection.memory_probability_percent}%")

    curve = curve_data(session, profile)
    print(f"Curve points: {len(curve)}")

    if args.graph:
        try:
            path = save_bac_graph(session, profile, output_path=args.graph, at=at)
            print(f"Graph saved: {path}")
        except ImportError:
            print("matplotlib not installed. pip install matplotlib", file=sys.stderr)
            return 1

    return 0


if __name__ == "__main__":
    sys.exit(main() or 0)
