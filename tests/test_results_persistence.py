from __future__ import annotations

from pathlib import Path

import pytest

from endocrine_er.clock import VirtualClock
from endocrine_er.persistence import (
    DB_PATH_ENV,
    SCHEMA_VERSION,
    default_db_path,
    load_recent_shifts,
    open_db,
    record_shift,
)
from endocrine_er.results import shift_result_from_session
from endocrine_er.shift_core import Phase, ShiftSession, build_shift_session


def _lost_shift(seed: int) -> ShiftSession:
    clock = VirtualClock()
    session = build_shift_session(clock=clock, seed=seed)
    session.start()
    response_times = [1.0, 2.0, 4.0]
    for rt in response_times:
        clock.advance(rt)
        session.update()
        scenario = session.current_scenario()
        assert scenario is not None
        wrong = next(o for o in session.option_order if o != scenario.correct)
        session.submit_answer(wrong)
        clock.advance(4.0)
        session.update()
    assert session.phase is Phase.LOST
    return session


def test_result_requires_a_finished_shift() -> None:
    session = build_shift_session(clock=VirtualClock(), seed=1)
    with pytest.raises(ValueError):
        shift_result_from_session(session, seed=1)
    session.start()
    with pytest.raises(ValueError):
        shift_result_from_session(session, seed=1)


def test_result_summarises_response_times() -> None:
    result = shift_result_from_session(_lost_shift(77), seed=77)
    assert result.outcome is Phase.LOST
    assert result.seed == 77
    assert result.cases_answered == 3
    assert result.correct == 0
    assert result.final_health == -5
    assert result.mean_rt_ms == pytest.approx(7000.0 / 3.0)
    assert result.median_rt_ms == pytest.approx(2000.0)
    assert len(result.events) == 3


def test_record_and_load_roundtrip(tmp_path: Path) -> None:
    db_path = tmp_path / "nested" / "shifts.sqlite3"
    result = shift_result_from_session(_lost_shift(5), seed=5)

    first = record_shift(db_path=db_path, result=result, app_version="test")
    second = record_shift(db_path=db_path, result=result, app_version="test")
    assert second > first

    rows = load_recent_shifts(db_path=db_path, limit=5)
    assert [r.shift_id for r in rows] == [second, first]
    assert rows[0].outcome == "lost"
    assert rows[0].cases_answered == 3
    assert rows[0].final_health == -5

    conn = open_db(db_path)
    try:
        assert conn.execute("PRAGMA user_version;").fetchone()[0] == SCHEMA_VERSION
        count = conn.execute("SELECT COUNT(*) FROM answer_event WHERE shift_id = ?", (first,)).fetchone()[0]
        outcomes = [
            r[0]
            for r in conn.execute(
                "SELECT outcome FROM answer_event WHERE shift_id = ? ORDER BY seq", (first,)
            ).fetchall()
        ]
    finally:
        conn.close()
    assert count == 3
    assert outcomes == ["incorrect", "incorrect", "incorrect"]

    assert load_recent_shifts(db_path=db_path, limit=0) == []


def test_default_db_path_honours_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    target = tmp_path / "custom.sqlite3"
    monkeypatch.setenv(DB_PATH_ENV, str(target))
    assert default_db_path() == target

    monkeypatch.delenv(DB_PATH_ENV)
    assert default_db_path().name == ".endocrine_er_shifts.sqlite3"
