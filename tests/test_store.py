"""Tests for SQLite storage and the model run log."""
import sqlite3
from datetime import date, timedelta

import pytest

from bac_insights import model_runs, store
from bac_insights.health import DailySnapshot
from bac_insights.models import BiologicalSex, MealSize, Profile, Symptom, UnitSystem
from bac_insights.risk import assess
from bac_insights.session import check_in

from conftest import T0, build_session


@pytest.fixture
def db_path(tmp_path):
    path = str(tmp_path / "insights.db")
    store.init_db(path)
    model_runs.init_db(path)
    return path


def test_profile_round_trip(db_path):
    assert store.get_profile(db_path) is None
    profile = Profile(weight=165, sex=BiologicalSex.FEMALE, unit_system=UnitSystem.IMPERIAL)
    store.save_profile(db_path, profile)
    store.save_profile(db_path, profile)
    assert store.get_profile(db_path) == profile


def test_session_is_stored_whole(db_path):
    session = build_session(
        drinks=[(0, 500, 5)],
        waters=[(10, 250), (20, None)],
        meals=[(0, MealSize.SNACK)],
        peak=0.05,
    )
    session = check_in(session, 3, symptoms=[Symptom.THIRST], at=T0 + timedelta(hours=12))
    store.save_session(db_path, session)
    assert store.get_session(db_path, session.id) == session
    assert store.get_session(db_path, "missing") is None


def test_sessions_newest_first_and_active_lookup(db_path):
    old = build_session(start=T0 - timedelta(days=2))
    open_one = build_session(active=True)
    store.save_session(db_path, old)
    store.save_session(db_path, open_one)

    assert [s.id for s in store.list_sessions(db_path)] == [open_one.id, old.id]
    assert store.get_active_session(db_path).id == open_one.id

    assert store.delete_session(db_path, open_one.id)
    assert not store.delete_session(db_path, open_one.id)
    assert store.get_active_session(db_path) is None


def test_unreadable_rows_are_skipped(db_path):
    store.save_session(db_path, build_session())
    with sqlite3.connect(db_path) as conn:
        conn.execute(
            "INSERT INTO sessions (id, start_at, is_active, payload_json) VALUES ('bad', '2024-01-01', 0, '{oops')"
        )
        conn.commit()
    assert len(store.list_sessions(db_path)) == 1


def test_payload_accepts_missing_ids_and_plain_values():
    session = store.session_from_payload({
        "start_at": "2024-05-10T20:00:00",
        "drinks": [{"created_at": T0, "volume_ml": 330, "abv_percent": 4.5}],
    })
    assert session.is_active
    assert session.drinks[0].volume_ml == 330
    assert session.drinks[0].id


def test_health_snapshots(db_path):
    store.save_snapshot(db_path, DailySnapshot(day=date(2024, 5, 9), steps=5000))
    store.save_snapshot(db_path, DailySnapshot(day=date(2024, 5, 10), steps=8000, sleep_minutes=420))
    store.save_snapshot(db_path, DailySnapshot(day=date(2024, 5, 10), steps=9000))
    snapshots = store.list_snapshots(db_path)
    assert [s.day for s in snapshots] == [date(2024, 5, 10), date(2024, 5, 9)]
    assert snapshots[0].steps == 9000
    assert snapshots[0].sleep_minutes is None


def test_snapshot_metrics_must_be_numbers(db_path):
    parsed = store.snapshot_from_payload({"day": "2024-05-10", "steps": "8000", "hrv_sdnn": 42})
    assert parsed.steps == 8000
    assert parsed.hrv_sdnn == 42.0
    for bad in ({"steps": "lots"}, {"sleep_minutes": -5}, {"resting_heart_rate": True}, {"hrv_sdnn": [1]}):
        with pytest.raises(ValueError):
            store.snapshot_from_payload({"day": "2024-05-10", **bad})

    store.save_snapshot(db_path, parsed)
    with sqlite3.connect(db_path) as conn:
        conn.execute(
            "INSERT INTO health_snapshots (day, payload_json, updated_at) "
            "VALUES ('2024-05-11', '{\"day\": \"2024-05-11\", \"steps\": \"lots\"}', datetime('now'))"
        )
        conn.commit()
    assert [s.day for s in store.list_snapshots(db_path)] == [date(2024, 5, 10)]


def shots_assessment():
    session = build_session(drinks=[(m, 50, 40) for m in (0, 10, 20, 30)], active=True)
    return assess(session, Profile(weight=70, sex=BiologicalSex.MALE), at=T0 + timedelta(hours=1))


def test_record_run_upserts_per_day_and_variant(db_path):
    assessment = shots_assessment()
    model_runs.record_run(db_path, assessment, day=T0)
    model_runs.record_run(db_path, assessment, day=T0)
    model_runs.record_run(db_path, assessment, day=T0, variant="B")
    runs = model_runs.list_runs(db_path)
    assert [(r.day, r.variant) for r in runs] == [(T0.date(), "A"), (T0.date(), "B")]
    assert runs[0].morning_probability == 55
    assert runs[0].brier_score is None


def test_score_run():
    run = model_runs.RiskModelRun(
        day=T0.date(), variant="A", confidence_percent=90, morning_probability=55, memory_probability=20,
    )
    scored = model_runs.score_run(run, 1)
    assert scored.observed_morning_probability == 85
    assert scored.absolute_error_percent == 30
    assert scored.brier_score == pytest.approx(0.09)


def test_quality_metrics_follow_check_ins(db_path):
    model_runs.record_run(db_path, shots_assessment(), day=T0)
    checked = build_session(wellbeing=1)

    assert model_runs.update_quality_metrics(db_path, [build_session()]) == 0
    assert model_runs.update_quality_metrics(db_path, [checked]) == 1
    assert model_runs.update_quality_metrics(db_path, [checked]) == 0

    summary = model_runs.quality_summary(db_path)
    assert summary == [{"variant": "A", "runs": 1, "mean_absolute_error": 30, "mean_brier_score": 0.09}]
