from __future__ import annotations

import logging
import os
import sqlite3
import time
from dataclasses import dataclass
from pathlib import Path

from .results import ShiftResult

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1
DB_PATH_ENV = "ENDOCRINE_ER_DB_PATH"


@dataclass(frozen=True, slots=True)
class ShiftRecord:
    shift_id: int
    completed_at_utc: str
    outcome: str
    cases_answered: int
    correct: int
    final_health: int
    best_streak: int


def default_db_path() -> Path:
    explicit = os.environ.get(DB_PATH_ENV)
    if explicit:
        return Path(explicit).expanduser()
    return Path.home() / ".endocrine_er_shifts.sqlite3"


def open_db(path: Path) -> sqlite3.Connection:
    conn = sqlite3.connect(path)
    conn.execute("PRAGMA foreign_keys=ON;")
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA synchronous=NORMAL;")
    _migrate(conn)
    return conn


def _utc_now_iso() -> str:
    return time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime(time.time()))


def _migrate(conn: sqlite3.Connection) -> None:
    row = conn.execute("PRAGMA user_version;").fetchone()
    ver = int(row[0]) if row else 0
    if ver >= SCHEMA_VERSION:
        return

    with conn:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS shift (
                id INTEGER PRIMARY KEY,
                app_version TEXT NOT NULL,
                rng_seed INTEGER NOT NULL,
                outcome TEXT NOT NULL,
                cases_total INTEGER NOT NULL,
                cases_answered INTEGER NOT NULL,
                correct INTEGER NOT NULL,
                accuracy REAL NOT NULL,
                best_streak INTEGER NOT NULL,
                final_health INTEGER NOT NULL,
                mean_rt_ms REAL,
                median_rt_ms REAL,
                completed_at_utc TEXT NOT NULL
            );
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS answer_event (
                id INTEGER PRIMARY KEY,
                shift_id INTEGER NOT NULL REFERENCES shift(id) ON DELETE CASCADE,
                seq INTEGER NOT NULL,
                scenario_id INTEGER NOT NULL,
                outcome TEXT NOT NULL,
                selected TEXT,
                expected TEXT NOT NULL,
                health_before INTEGER NOT NULL,
                health_after INTEGER NOT NULL,
                presented_at_ms INTEGER NOT NULL,
                answered_at_ms INTEGER NOT NULL,
                rt_ms INTEGER NOT NULL
            );
            """
        )
        conn.execute("CREATE INDEX IF NOT EXISTS idx_answer_event_shift_seq ON answer_event(shift_id, seq);")
        conn.execute(f"PRAGMA user_version={SCHEMA_VERSION};")


def record_shift(*, db_path: Path, result: ShiftResult, app_version: str) -> int:
    """Insert a finished shift and its answer events in one transaction.

    Creates the database file (and parent directory) if needed and returns
    the new shift row id.
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = open_db(db_path)
    try:
        shift_id = _insert_shift(conn=conn, result=result, app_version=app_version)
    finally:
        conn.close()
    logger.info("Recorded shift %d (%s) to %s", shift_id, result.outcome.value, db_path)
    return shift_id


def load_recent_shifts(*, db_path: Path, limit: int = 10) -> list[ShiftRecord]:
    if limit <= 0:
        return []
    conn = open_db(db_path)
    try:
        rows = conn.execute(
            """
            SELECT id, completed_at_utc, outcome, cases_answered, correct, final_health, best_streak
            FROM shift
            ORDER BY id DESC
            LIMIT ?
            """,
            (int(limit),),
        ).fetchall()
    finally:
        conn.close()
    return [
        ShiftRecord(
            shift_id=int(r[0]),
            completed_at_utc=str(r[1]),
            outcome=str(r[2]),
            cases_answered=int(r[3]),
            correct=int(r[4]),
            final_health=int(r[5]),
            best_streak=int(r[6]),
        )
        for r in rows
    ]


def _insert_shift(*, conn: sqlite3.Connection, result: ShiftResult, app_version: str) -> int:
    with conn:
        cur = conn.execute(
            """
            INSERT INTO shift(
                app_version, rng_seed, outcome,
                cases_total, cases_answered, correct, accuracy,
                best_streak, final_health, mean_rt_ms, median_rt_ms,
                completed_at_utc
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                app_version,
                int(result.seed),
                str(result.outcome.value),
                int(result.cases_total),
                int(result.cases_answered),
                int(result.correct),
                float(result.accuracy),
                int(result.best_streak),
                int(result.final_health),
                result.mean_rt_ms,
                result.median_rt_ms,
                _utc_now_iso(),
            ),
        )
        shift_id = int(cur.lastrowid)

        for e in result.events:
            conn.execute(
                """
                INSERT INTO answer_event(
                    shift_id, seq, scenario_id, outcome, selected, expected,
                    health_before, health_after,
                    presented_at_ms, answered_at_ms, rt_ms
                )
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    shift_id,
                    int(e.index),
                    int(e.scenario_id),
                    str(e.outcome.value),
                    e.selected,
                    str(e.correct_option),
                    int(e.health_before),
                    int(e.health_after),
                    int(round(e.presented_at_s * 1000.0)),
                    int(round(e.answered_at_s * 1000.0)),
                    int(round(e.response_time_s * 1000.0)),
                ),
            )

    return shift_id
