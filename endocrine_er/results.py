from __future__ import annotations

from dataclasses import dataclass

from .shift_core import AnswerEvent, Phase, ShiftSession


@dataclass(frozen=True, slots=True)
class ShiftResult:
    """Persistable summary + answer log for a finished shift."""

    seed: int
    outcome: Phase
    cases_total: int
    cases_answered: int
    correct: int
    accuracy: float
    best_streak: int
    final_health: int
    mean_rt_ms: float | None
    median_rt_ms: float | None

    events: list[AnswerEvent]


def shift_result_from_session(session: ShiftSession, *, seed: int) -> ShiftResult:
    """Build a ShiftResult from a won or lost ShiftSession."""

    if session.phase not in (Phase.WON, Phase.LOST):
        raise ValueError(f"shift is not finished (phase={session.phase.value})")

    summary = session.summary()
    events = session.events()
    rts_ms = sorted(int(round(e.response_time_s * 1000.0)) for e in events)

    mean_ms: float | None
    median_ms: float | None
    if not rts_ms:
        mean_ms = None
        median_ms = None
    else:
        mean_ms = float(sum(rts_ms)) / float(len(rts_ms))
        mid = len(rts_ms) // 2
        if len(rts_ms) % 2 == 1:
            median_ms = float(rts_ms[mid])
        else:
            median_ms = float(rts_ms[mid - 1] + rts_ms[mid]) / 2.0

    return ShiftResult(
        seed=int(seed),
        outcome=session.phase,
        cases_total=int(summary.cases_total),
        cases_answered=int(summary.cases_answered),
        correct=int(summary.correct),
        accuracy=float(summary.accuracy),
        best_streak=int(summary.best_streak),
        final_health=int(summary.final_health),
        mean_rt_ms=mean_ms,
        median_rt_ms=median_ms,
        events=events,
    )
