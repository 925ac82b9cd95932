"""SQLite-backed log of daily risk model runs and how well they matched check-ins."""

from __future__ import annotations

import logging
import sqlite3
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Iterable

from bac_insights.models import Session
from bac_insights.risk import EveningInsightAssessment, observed_morning_probability

logger = logging.getLogger(__name__)

DEFAULT_VARIANT = "A"


@dataclass(frozen=True)
class RiskModelRun:
    day: date
    variant: str
    confidence_percent: int
    morning_probability: int
    memory_probability: int
    observed_wellbeing_score: int | None = None
    observed_morning_probability: int | None = None
    absolute_error_percent: int | None = None
    brier_score: float | None = None


def init_db(db_path: str) -> None:
    with sqlite3.connect(db_path) as conn:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS risk_model_runs (
                day TEXT NOT NULL,
                variant TEXT NOT NULL,
                confidence_percent INTEGER NOT NULL,
                morning_probability INTEGER NOT NULL,
                memory_probability INTEGER NOT NULL,
                observed_wellbeing_score INTEGER,
                observed_morning_probability INTEGER,
                absolute_error_percent INTEGER,
                brier_score REAL,
                updated_at TEXT NOT NULL DEFAULT (datetime('now')),
                PRIMARY KEY (day, variant)
            )
            """
        )
        conn.commit()


def record_run(
    db_path: str,
    assessment: EveningInsightAssessment,
    *,
    day: date | datetime,
    variant: str = DEFAULT_VARIANT,
) -> RiskModelRun:
    """Upsert today's prediction for a variant. Observed fields are kept."""
    if isinstance(day, datetime):
        day = day.date()
    run = RiskModelRun(
        day=day,
        variant=variant,
        confidence_percent=assessment.confidence.score_percent,
        morning_probability=assessment.morning_probability_percent,
        memory_probability=assessment.memory_probability_percent,
    )
    with sqlite3.connect(db_path) as conn:
        conn.execute(
            """
            INSERT INTO risk_model_runs (day, variant, confidence_percent, morning_probability, memory_probability)
            VALUES (?, ?, ?, ?, ?)
            ON CONFLICT(day, variant) DO UPDATE SET
                confidence_percent = excluded.confidence_percent,
                morning_probability = excluded.morning_probability,
                memory_probability = excluded.memory_probability,
                updated_at = datetime('now')
            """,
            (run.day.isoformat(), run.variant, run.confidence_percent, run.morning_probability, run.memory_probability),
        )
        conn.commit()
    return run


def score_run(run: RiskModelRun, wellbeing_score: int) -> RiskModelRun:
    """Fill the observed fields from a morning wellbeing score (0-5)."""
    wellbeing = max(0, min(5, wellbeing_score))
    observed = observed_morning_probability(wellbeing)
    predicted = run.morning_probability / 100.0
    brier = (predicted - observed / 100.0) ** 2
    return RiskModelRun(
        day=run.day,
        variant=run.variant,
        confidence_percent=run.confidence_percent,
        morning_probability=run.morning_probability,
        memory_probability=run.memory_probability,
        observed_wellbeing_score=wellbeing,
        observed_morning_probability=observed,
        absolute_error_percent=abs(run.morning_probability - observed),
        brier_score=brier,
    )


def _row_to_run(row: sqlite3.Row) -> RiskModelRun:
    return RiskModelRun(
        day=date.fromisoformat(row["day"]),
        variant=row["variant"],
        confidence_percent=row["confidence_percent"],
        morning_probability=row["morning_probability"],
        memory_probability=row["memory_probability"],
        observed_wellbeing_score=row["observed_wellbeing_score"],
        observed_morning_probability=row["observed_morning_probability"],
        absolute_error_percent=row["absolute_error_percent"],
        brier_score=row["brier_score"],
    )


def list_runs(db_path: str, limit: int = 60) -> list[RiskModelRun]:
    with sqlite3.connect(db_path) as conn:
        conn.row_factory = sqlite3.Row
        rows = conn.execute(
            "SELECT * FROM risk_model_runs ORDER BY day DESC, variant LIMIT ?",
            (max(1, min(limit, 500)),),
        ).fetchall()
    return [_row_to_run(row) for row in rows]


def update_quality_metrics(db_path: str, sessions: Iterable[Session]) -> int:
    """Score every stored run whose day has a checked-in session. Returns rows changed."""
    observed_by_day: dict[str, int] = {}
    for session in sessions:
        if session.morning_check_in is not None:
            observed_by_day[session.start_at.date().isoformat()] = session.morning_check_in.clamped_score
    if not observed_by_day:
        return 0

    changed = 0
    with sqlite3.connect(db_path) as conn:
        conn.row_factory = sqlite3.Row
        placeholders = ",".join("?" for _ in observed_by_day)
        rows = conn.execute(
            f"SELECT * FROM risk_model_runs WHERE day IN ({placeholders})",
            tuple(observed_by_day),
        ).fetchall()
        for row in rows:
            current = _row_to_run(row)
            scored = score_run(current, observed_by_day[row["day"]])
            if scored == current:
                continue
            conn.execute(
                """
                UPDATE risk_model_runs
                SET observed_wellbeing_score = ?, observed_morning_probability = ?,
                    absolute_error_percent = ?, brier_score = ?, updated_at = datetime('now')
                WHERE day = ? AND variant = ?
                """,
                (
                    scored.observed_wellbeing_score,
                    scored.observed_morning_probability,
                    scored.absolute_error_percent,
                    scored.brier_score,
                    row["day"],
                    row["variant"],
                ),
            )
            changed += 1
        conn.commit()
    if changed:
        logger.info("scored %d risk model runs against check-ins", changed)
    return changed


def quality_summary(db_path: str) -> list[dict[str, Any]]:
    """Mean absolute error and Brier score per variant over scored runs."""
    with sqlite3.connect(db_path) as conn:
        conn.row_factory = sqlite3.Row
        rows = conn.execute(
            """
            SELECT variant, COUNT(*) AS runs, AVG(absolute_error_percent) AS mae, AVG(brier_score) AS brier
            FROM risk_model_runs
            WHERE brier_score IS NOT NULL
            GROUP BY variant
            ORDER BY variant
            """
        ).fetchall()
    return [
        {
            "variant": row["variant"],
            "runs": row["runs"],
            "mean_absolute_error": round(row["mae"], 2),
            "mean_brier_score": round(row["brier"], 4),
        }
        for row in rows
    ]
