"""Evening insights Flask API.

Run from project root:
    python app.py
"""

import logging
import os
from dataclasses import asdict, is_dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from pathlib import Path
from typing import Any

from flask import Flask, jsonify, request

from bac_insights import calculations, model_runs, risk, store
from bac_insights import session as session_ops
from bac_insights.calibration import personalized_patterns
from bac_insights.catalog import drink_from_preset, list_by_group
from bac_insights.config import Settings, load_settings
from bac_insights.health import SessionHealthContext, baseline_set, snapshot_for_day
from bac_insights.models import (
    BiologicalSex,
    DrinkCategory,
    MealSize,
    Profile,
    Session,
    Symptom,
    UnitSystem,
)
from bac_insights.recovery import recovery_index
from bac_insights.reports import trigger_patterns, weekly_report
from bac_insights.scenarios import evening_scenarios, memory_projections

logger = logging.getLogger(__name__)

app = Flask(__name__)
app.config["SECRET_KEY"] = load_settings().secret_key

MIN_WEIGHT = 30.0
MAX_WEIGHT = 450.0
MAX_VOLUME_ML = 2000.0
MAX_MINUTES_AGO = 24 * 60
CURVE_STEP_HOURS = 0.25


def _settings() -> Settings:
    return load_settings()


def _db_path() -> str:
    db_path = Path(_settings().db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    store.init_db(str(db_path))
    model_runs.init_db(str(db_path))
    return str(db_path)


def _parse_bool(value: Any, default: bool = False) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "1", "yes", "y"}:
            return True
        if lowered in {"false", "0", "no", "n"}:
            return False
    if isinstance(value, (int, float)):
        return bool(value)
    return default


def _clamp_float(value: Any, default: float, min_value: float, max_value: float) -> float:
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        parsed = default
    return max(min_value, min(max_value, parsed))


def _parse_enum(enum_cls, value: Any, default):
    try:
        return enum_cls(value)
    except (TypeError, ValueError):
        return default


def _entry_time(data: dict[str, Any], now: datetime) -> datetime:
    minutes_ago = _clamp_float(data.get("minutes_ago"), 0.0, 0.0, MAX_MINUTES_AGO)
    return now - timedelta(minutes=minutes_ago)


def _jsonable(value: Any) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        return _jsonable(asdict(value))
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def _history(db_path: str) -> list[Session]:
    return store.list_sessions(db_path, limit=_settings().history_limit)


def _current_session(db_path: str) -> Session | None:
    """The open session, else the most recent one."""
    active = store.get_active_session(db_path)
    if active is not None:
        return active
    recent = store.list_sessions(db_path, limit=1)
    return recent[0] if recent else None


def _health_context(db_path: str, day: date) -> tuple[SessionHealthContext | None, Any]:
    snapshots = store.list_snapshots(db_path, limit=_settings().baseline_window_days + 7)
    health = SessionHealthContext.from_snapshot(snapshot_for_day(snapshots, day))
    baselines = baseline_set(snapshots, day, _settings().baseline_window_days)
    return health, baselines


def _no_active_session_error():
    return jsonify({"error": "Start a session first"}), 400


@app.route("/healthz")
def healthz():
    return jsonify({"ok": True})


@app.route("/api/profile", methods=["GET"])
def api_profile_get():
    profile = store.get_profile(_db_path())
    return jsonify({"configured": profile is not None, "profile": _jsonable(profile)})


@app.route("/api/profile", methods=["POST"])
def api_profile_set():
    data = request.get_json(silent=True) or {}
    profile = Profile(
        weight=_clamp_float(data.get("weight"), 70.0, MIN_WEIGHT, MAX_WEIGHT),
        sex=_parse_enum(BiologicalSex, data.get("sex"), BiologicalSex.UNSPECIFIED),
        unit_system=_parse_enum(UnitSystem, data.get("unit_system"), UnitSystem.METRIC),
        notifications_enabled=_parse_bool(data.get("notifications_enabled"), default=False),
        hide_bac_in_sharing=_parse_bool(data.get("hide_bac_in_sharing"), default=True),
    )
    db_path = _db_path()
    store.save_profile(db_path, profile)
    # Cached peaks depend on weight and sex.
    for s in session_ops.recompute_all(_history(db_path), profile):
        store.save_session(db_path, s)
    logger.info("profile updated")
    return jsonify({"ok": True, "profile": _jsonable(profile)})


@app.route("/api/session/start", methods=["POST"])
def api_session_start():
    db_path = _db_path()
    existing = store.get_active_session(db_path)
    s = session_ops.start_session([existing] if existing else [])
    if existing is None:
        store.save_session(db_path, s)
    return jsonify({"ok": True, "session_id": s.id, "start_at": s.start_at.isoformat()})


@app.route("/api/drink", methods=["POST"])
def api_drink():
    db_path = _db_path()
    active = store.get_active_session(db_path)
    if active is None:
        return _no_active_session_error()

    data = request.get_json(silent=True) or {}
    now = datetime.now()
    created_at = _entry_time(data, now)
    profile = store.get_profile(db_path)

    if data.get("preset_id"):
        drink = drink_from_preset(str(data["preset_id"]), created_at)
        if drink is None:
            return jsonify({"error": "unknown preset_id"}), 404
        updated = session_ops.add_drink(
            active, profile, drink.volume_ml, drink.abv_percent,
            created_at=created_at, title=drink.title, category=drink.category, at=now,
        )
    else:
        if data.get("volume_ml") is None or data.get("abv_percent") is None:
            return jsonify({"error": "volume_ml and abv_percent are required"}), 400
        updated = session_ops.add_drink(
            active,
            profile,
            _clamp_float(data.get("volume_ml"), 0.0, 1.0, MAX_VOLUME_ML),
            _clamp_float(data.get("abv_percent"), 0.0, 0.0, 96.0),
            created_at=created_at,
            title=(str(data.get("title") or "").strip()[:80] or None),
            category=_parse_enum(DrinkCategory, data.get("category"), DrinkCategory.OTHER),
            at=now,
        )
    store.save_session(db_path, updated)
    return jsonify({"ok": True, "drink_count": len(updated.drinks)})


@app.route("/api/water", methods=["POST"])
def api_water():
    db_path = _db_path()
    active = store.get_active_session(db_path)
    if active is None:
        return _no_active_session_error()

    data = request.get_json(silent=True) or {}
    volume = None
    if data.get("volume_ml") not in (None, ""):
        volume = _clamp_float(data.get("volume_ml"), 250.0, 1.0, MAX_VOLUME_ML)
    now = datetime.now()
    updated = session_ops.add_water(active, store.get_profile(db_path), volume, created_at=_entry_time(data, now), at=now)
    store.save_session(db_path, updated)
    return jsonify({"ok": True, "water_count": len(updated.waters)})


@app.route("/api/meal", methods=["POST"])
def api_meal():
    db_path = _db_path()
    active = store.get_active_session(db_path)
    if active is None:
        return _no_active_session_error()

    data = request.get_json(silent=True) or {}
    now = datetime.now()
    updated = session_ops.add_meal(
        active,
        store.get_profile(db_path),
        _parse_enum(MealSize, data.get("size"), MealSize.REGULAR),
        title=(str(data.get("title") or "").strip()[:80] or None),
        created_at=_entry_time(data, now),
        at=now,
    )
    store.save_session(db_path, updated)
    return jsonify({"ok": True, "meal_count": len(updated.meals)})


@app.route("/api/entry/delete", methods=["POST"])
def api_entry_delete():
    db_path = _db_path()
    active = store.get_active_session(db_path)
    if active is None:
        return _no_active_session_error()

    entry_id = str((request.get_json(silent=True) or {}).get("entry_id", ""))
    updated = session_ops.delete_entry(active, store.get_profile(db_path), entry_id, at=datetime.now())
    if updated is active:
        return jsonify({"error": "entry not found"}), 404
    store.save_session(db_path, updated)
    return jsonify({"ok": True})


@app.route("/api/session/end", methods=["POST"])
def api_session_end():
    db_path = _db_path()
    active = store.get_active_session(db_path)
    if active is None:
        return _no_active_session_error()

    if session_ops.is_empty(active):
        store.delete_session(db_path, active.id)
        return jsonify({"ok": True, "deleted": True})
    ended = session_ops.end_session(active, store.get_profile(db_path))
    store.save_session(db_path, ended)
    return jsonify({"ok": True, "session_id": ended.id, "peak_bac": round(ended.cached_peak_bac, 4)})


@app.route("/api/checkin", methods=["POST"])
def api_checkin():
    db_path = _db_path()
    data = request.get_json(silent=True) or {}

    session_id = data.get("session_id")
    target = store.get_session(db_path, str(session_id)) if session_id else _current_session(db_path)
    if target is None:
        return jsonify({"error": "session not found"}), 404

    try:
        score = int(data.get("wellbeing_score"))
    except (TypeError, ValueError):
        return jsonify({"error": "wellbeing_score must be an integer 0-5"}), 400
    if score < 0 or score > 5:
        return jsonify({"error": "wellbeing_score must be between 0 and 5"}), 400

    symptoms = []
    for raw in data.get("symptoms") or []:
        symptom = _parse_enum(Symptom, raw, None)
        if symptom is not None:
            symptoms.append(symptom)
    sleep_hours = None
    if data.get("sleep_hours") not in (None, ""):
        sleep_hours = _clamp_float(data.get("sleep_hours"), 0.0, 0.0, 24.0)
    had_water = _parse_bool(data["had_water"]) if "had_water" in data else None

    checked = session_ops.check_in(target, score, symptoms, sleep_hours=sleep_hours, had_water=had_water)
    store.save_session(db_path, checked)
    model_runs.update_quality_metrics(db_path, [checked])
    return jsonify({"ok": True, "session_id": checked.id})


@app.route("/api/health/snapshot", methods=["POST"])
def api_health_snapshot():
    data = request.get_json(silent=True) or {}
    raw_day = data.get("day") or date.today().isoformat()
    try:
        day = date.fromisoformat(str(raw_day))
    except ValueError:
        return jsonify({"error": "day must be YYYY-MM-DD"}), 400
    try:
        snapshot = store.snapshot_from_payload({
            "day": day,
            **{k: data[k] for k in store.SNAPSHOT_INT_FIELDS + store.SNAPSHOT_FLOAT_FIELDS
               if data.get(k) is not None},
        })
    except (TypeError, ValueError) as exc:
        return jsonify({"error": f"invalid snapshot fields: {exc}"}), 400
    store.save_snapshot(_db_path(), snapshot)
    return jsonify({"ok": True, "day": day.isoformat()})


@app.route("/api/state")
def api_state():
    db_path = _db_path()
    s = _current_session(db_path)
    profile = store.get_profile(db_path)
    if s is None:
        return jsonify({"configured": profile is not None, "session": None})

    now = datetime.now()
    at = s.end_at if not s.is_active and s.end_at else now
    history = _history(db_path)
    health, baselines = _health_context(db_path, at.date())

    assessment = risk.assess(s, profile, at=at, health=health, history=history)
    recovery = recovery_index(s, assessment, health, baselines)
    patterns = personalized_patterns(s, history, profile, at)

    timeline = None
    curve = []
    if profile is not None:
        timeline = calculations.compute(s, profile, at)
        curve = calculations.bac_curve(s, profile, step_hours=CURVE_STEP_HOURS)
    if profile is not None and s.is_active:
        # Open sessions only; a checked-in session reports the observed value.
        model_runs.record_run(db_path, assessment, day=now, variant=_settings().risk_model_variant)

    return jsonify({
        "configured": profile is not None,
        "session": _jsonable(store.session_to_payload(s)),
        "timeline": _jsonable(timeline),
        "curve": [{"t": t.isoformat(), "bac": bac} for t, bac in curve],
        "assessment": _jsonable(assessment),
        "recovery": _jsonable(recovery),
        "patterns": _jsonable(patterns),
    })


@app.route("/api/scenarios")
def api_scenarios():
    db_path = _db_path()
    s = _current_session(db_path)
    if s is None:
        return _no_active_session_error()
    profile = store.get_profile(db_path)
    history = _history(db_path)
    at = datetime.now()
    horizons = [h for h in request.args.getlist("horizon", type=int) if 0 < h <= 240] or [30, 60]
    return jsonify({
        "scenarios": [
            {**_jsonable(sc), "impact_text": sc.impact_text}
            for sc in evening_scenarios(s, profile, history, at)
        ],
        "memory_projections": _jsonable(memory_projections(s, profile, history, at, horizons=horizons)),
    })


@app.route("/api/weekly")
def api_weekly():
    db_path = _db_path()
    report = weekly_report(_history(db_path), store.get_profile(db_path), datetime.now())
    return jsonify(_jsonable(report))


@app.route("/api/patterns")
def api_patterns():
    db_path = _db_path()
    history = _history(db_path)
    profile = store.get_profile(db_path)
    at = datetime.now()
    s = _current_session(db_path)
    return jsonify({
        "triggers": _jsonable(trigger_patterns(history, profile, at)),
        "personal": _jsonable(personalized_patterns(s, history, profile, at)) if s is not None else None,
    })


@app.route("/api/catalog")
def api_catalog():
    return jsonify({"by_group": list_by_group()})


@app.route("/api/model-runs")
def api_model_runs():
    token = request.args.get("token", "")
    admin_token = _settings().admin_token
    if not admin_token or token != admin_token:
        return jsonify({"error": "forbidden"}), 403

    db_path = _db_path()
    limit = request.args.get("limit", type=int) or 30
    return jsonify({
        "items": _jsonable(model_runs.list_runs(db_path, limit=limit)),
        "quality": model_runs.quality_summary(db_path),
    })


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    port = int(os.environ.get("PORT", 5000))
    app.run(host="0.0.0.0", port=port, debug=os.environ.get("FLASK_DEBUG", "0") == "1")
