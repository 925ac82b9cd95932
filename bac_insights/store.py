"""SQLite-backed storage for the profile, sessions and daily health snapshots.

Sessions are stored whole as a JSON payload keyed by session id; the payload
helpers here are also what the API and CLI use to read sessions from JSON or
YAML.
"""

from __future__ import annotations

import json
import logging
import math
import sqlite3
from dataclasses import asdict
from datetime import date, datetime
from typing import Any

from bac_insights.health import DailySnapshot
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

logger = logging.getLogger(__name__)


def init_db(db_path: str) -> None:
    with sqlite3.connect(db_path) as conn:
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS profile (
                id INTEGER PRIMARY KEY CHECK (id = 1),
                payload_json TEXT NOT NULL,
                updated_at TEXT NOT NULL DEFAULT (datetime('now'))
            )
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS sessions (
                id TEXT PRIMARY KEY,
                start_at TEXT NOT NULL,
                is_active INTEGER NOT NULL,
                payload_json TEXT NOT NULL,
                updated_at TEXT NOT NULL DEFAULT (datetime('now'))
            )
            """
        )
        conn.execute("CREATE INDEX IF NOT EXISTS idx_sessions_start_at ON sessions(start_at)")
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS health_snapshots (
                day TEXT PRIMARY KEY,
                payload_json TEXT NOT NULL,
                updated_at TEXT NOT NULL DEFAULT (datetime('now'))
            )
            """
        )
        conn.commit()


def _dumps(payload: dict[str, Any]) -> str:
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=True)


def _dt(value: Any) -> datetime | None:
    # YAML loaders already hand back datetime objects for timestamps.
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def profile_to_payload(profile: Profile) -> dict[str, Any]:
    return {
        "weight": profile.weight,
        "sex": profile.sex.value,
        "unit_system": profile.unit_system.value,
        "notifications_enabled": profile.notifications_enabled,
        "hide_bac_in_sharing": profile.hide_bac_in_sharing,
    }


def profile_from_payload(payload: dict[str, Any]) -> Profile:
    return Profile(
        weight=float(payload.get("weight", 70.0)),
        sex=BiologicalSex(payload.get("sex", BiologicalSex.UNSPECIFIED.value)),
        unit_system=UnitSystem(payload.get("unit_system", UnitSystem.METRIC.value)),
        notifications_enabled=bool(payload.get("notifications_enabled", False)),
        hide_bac_in_sharing=bool(payload.get("hide_bac_in_sharing", True)),
    )


def session_to_payload(session: Session) -> dict[str, Any]:
    check_in = session.morning_check_in
    return {
        "id": session.id,
        "start_at": _iso(session.start_at),
        "end_at": _iso(session.end_at),
        "is_active": session.is_active,
        "cached_peak_bac": session.cached_peak_bac,
        "cached_sober_at": _iso(session.cached_sober_at),
        "drinks": [
            {
                "id": d.id,
                "created_at": _iso(d.created_at),
                "volume_ml": d.volume_ml,
                "abv_percent": d.abv_percent,
                "category": d.category.value,
                "title": d.title,
            }
            for d in session.drinks
        ],
        "waters": [{"id": w.id, "created_at": _iso(w.created_at), "volume_ml": w.volume_ml} for w in session.waters],
        "meals": [
            {"id": m.id, "created_at": _iso(m.created_at), "size": m.size.value, "title": m.title}
            for m in session.meals
        ],
        "morning_check_in": None if check_in is None else {
            "id": check_in.id,
            "wellbeing_score": check_in.wellbeing_score,
            "created_at": _iso(check_in.created_at),
            "symptoms": [s.value for s in check_in.symptoms],
            "sleep_hours": check_in.sleep_hours,
            "had_water": check_in.had_water,
        },
    }


def _with_id(payload: dict[str, Any]) -> dict[str, Any]:
    return {"id": payload["id"]} if payload.get("id") else {}


def session_from_payload(payload: dict[str, Any]) -> Session:
    """Build a Session from a JSON/YAML mapping. Missing ids are generated."""
    drinks = tuple(
        DrinkEntry(
            created_at=_dt(d["created_at"]),
            volume_ml=float(d["volume_ml"]),
            abv_percent=float(d["abv_percent"]),
            category=DrinkCategory(d.get("category", DrinkCategory.BEER.value)),
            title=d.get("title"),
            **_with_id(d),
        )
        for d in payload.get("drinks") or []
    )
    waters = tuple(
        WaterEntry(
            created_at=_dt(w["created_at"]),
            volume_ml=float(w["volume_ml"]) if w.get("volume_ml") is not None else None,
            **_with_id(w),
        )
        for w in payload.get("waters") or []
    )
    meals = tuple(
        MealEntry(
            created_at=_dt(m["created_at"]),
            size=MealSize(m.get("size", MealSize.REGULAR.value)),
            title=m.get("title"),
            **_with_id(m),
        )
        for m in payload.get("meals") or []
    )
    raw_check_in = payload.get("morning_check_in")
    check_in = None
    if raw_check_in:
        check_in = MorningCheckIn(
            wellbeing_score=int(raw_check_in["wellbeing_score"]),
            created_at=_dt(raw_check_in.get("created_at")),
            symptoms=tuple(Symptom(s) for s in raw_check_in.get("symptoms") or []),
            sleep_hours=raw_check_in.get("sleep_hours"),
            had_water=raw_check_in.get("had_water"),
            **_with_id(raw_check_in),
        )
    return Session(
        start_at=_dt(payload["start_at"]),
        end_at=_dt(payload.get("end_at")),
        is_active=bool(payload.get("is_active", payload.get("end_at") is None)),
        drinks=drinks,
        waters=waters,
        meals=meals,
        morning_check_in=check_in,
        cached_peak_bac=float(payload.get("cached_peak_bac") or 0.0),
        cached_sober_at=_dt(payload.get("cached_sober_at")),
        **_with_id(payload),
    )


def snapshot_to_payload(snapshot: DailySnapshot) -> dict[str, Any]:
    payload = asdict(snapshot)
    payload["day"] = snapshot.day.isoformat()
    return payload


SNAPSHOT_INT_FIELDS = ("steps", "resting_heart_rate")
SNAPSHOT_FLOAT_FIELDS = (
    "hrv_sdnn", "sleep_minutes", "sleep_deep_minutes",
    "sleep_rem_minutes", "sleep_awake_minutes", "sleep_efficiency",
)


def _metric(name: str, raw: Any) -> float | None:
    if raw is None:
        return None
    if isinstance(raw, bool):
        raise ValueError(f"{name} must be a number")
    try:
        value = float(raw)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be a number") from None
    if not math.isfinite(value) or value < 0:
        raise ValueError(f"{name} must be a non-negative number")
    return value


def snapshot_from_payload(payload: dict[str, Any]) -> DailySnapshot:
    """Build a snapshot, raising ValueError for non-numeric metric values."""
    values = dict(payload)
    day = values.pop("day")
    if not isinstance(day, date):
        day = date.fromisoformat(str(day))
    for name in SNAPSHOT_INT_FIELDS:
        value = _metric(name, values.get(name))
        values[name] = int(round(value)) if value is not None else None
    for name in SNAPSHOT_FLOAT_FIELDS:
        values[name] = _metric(name, values.get(name))
    return DailySnapshot(day=day, **values)


def save_profile(db_path: str, profile: Profile) -> None:
    with sqlite3.connect(db_path) as conn:
        conn.execute(
            """
            INSERT INTO profile (id, payload_json, updated_at) VALUES (1, ?, datetime('now'))
            ON CONFLICT(id) DO UPDATE SET payload_json = excluded.payload_json, updated_at = datetime('now')
            """,
            (_dumps(profile_to_payload(profile)),),
        )
        conn.commit()


def get_profile(db_path: str) -> Profile | None:
    with sqlite3.connect(db_path) as conn:
        conn.row_factory = sqlite3.Row
        row = conn.execute("SELECT payload_json FROM profile WHERE id = 1").fetchone()
    if row is None:
        return None
    try:
        return profile_from_payload(json.loads(row["payload_json"] or "{}"))
    except (json.JSONDecodeError, ValueError):
        logger.warning("stored profile is unreadable, ignoring it")
        return None


def save_session(db_path: str, session: Session) -> None:
    with sqlite3.connect(db_path) as conn:
        conn.execute(
            """
            INSERT INTO sessions (id, start_at, is_active, payload_json, updated_at)
            VALUES (?, ?, ?, ?, datetime('now'))
            ON CONFLICT(id) DO UPDATE SET
                start_at = excluded.start_at,
                is_active = excluded.is_active,
                payload_json = excluded.payload_json,
                updated_at = datetime('now')
            """,
            (session.id, session.start_at.isoformat(), int(session.is_active), _dumps(session_to_payload(session))),
        )
        conn.commit()


def delete_session(db_path: str, session_id: str) -> bool:
    with sqlite3.connect(db_path) as conn:
        cur = conn.execute("DELETE FROM sessions WHERE id = ?", (session_id,))
        conn.commit()
        return cur.rowcount > 0


def _load_sessions(rows: list[sqlite3.Row]) -> list[Session]:
    out: list[Session] = []
    for row in rows:
        try:
            out.append(session_from_payload(json.loads(row["payload_json"] or "{}")))
        except (json.JSONDecodeError, KeyError, ValueError):
            logger.warning("skipping unreadable session %s", row["id"])
    return out


def get_session(db_path: str, session_id: str) -> Session | None:
    with sqlite3.connect(db_path) as conn:
        conn.row_factory = sqlite3.Row
        rows = conn.execute("SELECT id, payload_json FROM sessions WHERE id = ?", (session_id,)).fetchall()
    sessions = _load_sessions(rows)
    return sessions[0] if sessions else None


def get_active_session(db_path: str) -> Session | None:
    with sqlite3.connect(db_path) as conn:
        conn.row_factory = sqlite3.Row
        rows = conn.execute(
            "SELECT id, payload_json FROM sessions WHERE is_active = 1 ORDER BY start_at DESC LIMIT 1"
        ).fetchall()
    sessions = _load_sessions(rows)
    return sessions[0] if sessions else None


def list_sessions(db_path: str, limit: int = 60) -> list[Session]:
    """Most recent sessions first."""
    with sqlite3.connect(db_path) as conn:
        conn.row_factory = sqlite3.Row
        rows = conn.execute(
            "SELECT id, payload_json FROM sessions ORDER BY start_at DESC LIMIT ?",
            (max(1, min(limit, 500)),),
        ).fetchall()
    return _load_sessions(rows)


def save_snapshot(db_path: str, snapshot: DailySnapshot) -> None:
    with sqlite3.connect(db_path) as conn:
        conn.execute(
            """
            INSERT INTO health_snapshots (day, payload_json, updated_at) VALUES (?, ?, datetime('now'))
            ON CONFLICT(day) DO UPDATE SET payload_json = excluded.payload_json, updated_at = datetime('now')
            """,
            (snapshot.day.isoformat(), _dumps(snapshot_to_payload(snapshot))),
        )
        conn.commit()


def list_snapshots(db_path: str, limit: int = 60) -> list[DailySnapshot]:
    with sqlite3.connect(db_path) as conn:
        conn.row_factory = sqlite3.Row
        rows = conn.execute(
            "SELECT day, payload_json FROM health_snapshots ORDER BY day DESC LIMIT ?",
            (max(1, min(limit, 366)),),
        ).fetchall()
    out: list[DailySnapshot] = []
    for row in rows:
        try:
            out.append(snapshot_from_payload(json.loads(row["payload_json"] or "{}")))
        except (json.JSONDecodeError, TypeError, ValueError):
            logger.warning("skipping unreadable health snapshot for %s", row["day"])
    return out
