from __future__ import annotations

from collections.abc import Sequence
from typing import TypeVar

import pytest

from endocrine_er.clock import VirtualClock
from endocrine_er.scenarios import SCENARIOS
from endocrine_er.shift_core import (
    Outcome,
    Phase,
    SeededRng,
    ShiftConfig,
    ShiftSession,
    build_shift_session,
    clamp_health,
)

T = TypeVar("T")


class IdentityRng:
    """Keeps every list in its given order."""

    def shuffled(self, items: Sequence[T]) -> list[T]:
        return list(items)


def _session(clock: VirtualClock, **cfg: object) -> ShiftSession:
    return ShiftSession(
        scenarios=SCENARIOS,
        clock=clock,
        rng=IdentityRng(),
        config=ShiftConfig(**cfg) if cfg else None,  # type: ignore[arg-type]
    )


def _step(clock: VirtualClock, session: ShiftSession, dt: float) -> None:
    clock.advance(dt)
    session.update()


def _wrong_option(session: ShiftSession) -> str:
    scenario = session.current_scenario()
    assert scenario is not None
    return next(o for o in session.option_order if o != scenario.correct)


def _correct_option(session: ShiftSession) -> str:
    scenario = session.current_scenario()
    assert scenario is not None
    return scenario.correct


def _answer_and_advance(clock: VirtualClock, session: ShiftSession, option: str | None) -> None:
    assert session.submit_answer(option) is True
    _step(clock, session, session.config.advance_delay_s)


def test_new_session_waits_for_start() -> None:
    session = _session(VirtualClock())
    snap = session.snapshot()
    assert snap.phase is Phase.NOT_STARTED
    assert snap.scenario is None
    assert session.submit_answer("anything") is False
    assert session.events() == []


def test_start_resets_state_and_permutes_all_scenarios() -> None:
    clock = VirtualClock()
    session = build_shift_session(clock=clock, seed=42)
    session.start()

    assert session.phase is Phase.IN_PROGRESS
    assert session.health == 100
    assert session.streak == 0
    assert session.feedback is None
    assert session.current_index == 0
    assert session.time_remaining_s == 20.0
    assert session.countdown_running
    assert sorted(s.scenario_id for s in session.scenario_order) == list(range(1, 11))

    scenario = session.current_scenario()
    assert scenario is not None
    assert sorted(session.option_order) == sorted(scenario.options)


def test_same_seed_gives_same_shift_order() -> None:
    a = build_shift_session(clock=VirtualClock(), seed=2024)
    b = build_shift_session(clock=VirtualClock(), seed=2024)
    a.start()
    b.start()
    assert [s.scenario_id for s in a.scenario_order] == [s.scenario_id for s in b.scenario_order]
    assert a.option_order == b.option_order


def test_correct_answer_at_full_health_is_capped_and_advances() -> None:
    clock = VirtualClock()
    session = _session(clock)
    session.start()

    _step(clock, session, 1.0)
    assert session.submit_answer(_correct_option(session)) is True
    assert session.health == 100
    assert session.streak == 1
    assert session.feedback is not None
    assert session.feedback.outcome is Outcome.CORRECT
    assert session.feedback.title == "Diagnosis Correct"
    assert not session.countdown_running

    _step(clock, session, 3.9)
    assert session.current_index == 0

    _step(clock, session, 0.1)
    assert session.phase is Phase.IN_PROGRESS
    assert session.current_index == 1
    assert session.feedback is None
    assert session.time_remaining_s == 20.0
    assert session.countdown_running


def test_wrong_answer_from_40_leaves_5_and_keeps_playing() -> None:
    clock = VirtualClock()
    session = _session(clock)
    session.start()

    _answer_and_advance(clock, session, _wrong_option(session))  # 65
    _answer_and_advance(clock, session, _wrong_option(session))  # 30
    _answer_and_advance(clock, session, _correct_option(session))  # 40
    assert session.health == 40
    assert session.streak == 1

    correct = _correct_option(session)
    assert session.submit_answer(_wrong_option(session)) is True
    assert session.health == 5
    assert session.streak == 0
    assert session.feedback is not None
    assert session.feedback.outcome is Outcome.INCORRECT
    assert session.feedback.title == "Medical Error"
    assert correct in session.feedback.message

    _step(clock, session, 4.0)
    assert session.phase is Phase.IN_PROGRESS
    assert session.current_index == 4


def test_timeout_at_30_goes_negative_and_loses_after_delay() -> None:
    clock = VirtualClock()
    session = _session(clock)
    session.start()

    _answer_and_advance(clock, session, _wrong_option(session))
    _answer_and_advance(clock, session, _wrong_option(session))
    assert session.health == 30

    correct = _correct_option(session)
    _step(clock, session, 20.0)
    assert session.feedback is not None
    assert session.feedback.outcome is Outcome.TIMEOUT
    assert session.feedback.title == "Resuscitation Failed (Timeout)"
    assert correct in session.feedback.message
    assert session.health == -5
    assert session.snapshot().display_health == 0
    assert session.time_remaining_s == 0.0

    _step(clock, session, 3.4)
    assert session.phase is Phase.IN_PROGRESS

    _step(clock, session, 0.1)
    assert session.phase is Phase.LOST
    assert session.current_index == 2
    assert session.snapshot().case_number == 3

    # No advance was scheduled alongside the loss.
    _step(clock, session, 10.0)
    assert session.phase is Phase.LOST
    assert session.current_index == 2


def test_correct_on_last_case_wins_instead_of_advancing() -> None:
    clock = VirtualClock()
    session = _session(clock)
    session.start()

    for _ in range(9):
        _answer_and_advance(clock, session, _correct_option(session))
    assert session.current_index == 9

    assert session.submit_answer(_correct_option(session)) is True
    _step(clock, session, 3.9)
    assert session.phase is Phase.IN_PROGRESS
    _step(clock, session, 0.1)
    assert session.phase is Phase.WON
    assert session.current_index == 9
    assert session.streak == 10
    assert session.summary().best_streak == 10


def test_second_answer_for_the_same_case_is_ignored() -> None:
    clock = VirtualClock()
    session = _session(clock)
    session.start()

    assert session.submit_answer(_wrong_option(session)) is True
    before = session.snapshot()
    assert session.submit_answer(_correct_option(session)) is False
    session.timeout()

    after = session.snapshot()
    assert after == before
    assert len(session.events()) == 1


def test_unknown_option_counts_as_incorrect() -> None:
    session = _session(VirtualClock())
    session.start()
    assert session.submit_answer("Aspirin") is True
    assert session.feedback is not None
    assert session.feedback.outcome is Outcome.INCORRECT
    assert session.health == 65


def test_restart_mid_delay_drops_the_stale_transition() -> None:
    clock = VirtualClock()
    session = _session(clock)
    session.start()

    session.submit_answer(_wrong_option(session))
    assert session.transition_pending
    _step(clock, session, 1.0)

    session.start()
    assert not session.transition_pending
    assert session.health == 100
    assert session.feedback is None

    _step(clock, session, 4.0)
    assert session.current_index == 0
    assert session.phase is Phase.IN_PROGRESS
    assert session.time_remaining_s == pytest.approx(16.0)


def test_restart_after_loss_starts_a_fresh_shift() -> None:
    clock = VirtualClock()
    session = _session(clock)
    session.start()
    for _ in range(3):
        session.submit_answer(None)
        _step(clock, session, 4.0)
    assert session.phase is Phase.LOST

    session.start()
    assert session.phase is Phase.IN_PROGRESS
    assert session.health == 100
    assert session.current_index == 0
    assert session.events() == []


def test_close_stops_ticks_and_pending_transitions() -> None:
    clock = VirtualClock()
    session = _session(clock)
    session.start()
    _step(clock, session, 2.0)
    session.submit_answer(_correct_option(session))
    session.close()

    _step(clock, session, 30.0)
    assert session.current_index == 0
    assert session.time_remaining_s == pytest.approx(18.0)
    assert not session.countdown_running
    assert not session.transition_pending


def test_large_clock_jump_is_replayed_in_logical_order() -> None:
    clock = VirtualClock()
    session = _session(clock)
    session.start()

    # Timeout at 20.0, advance at 24.0, then 60 ticks of the next case.
    _step(clock, session, 30.0)
    assert session.current_index == 1
    assert session.health == 65
    assert session.feedback is None
    assert session.time_remaining_s == pytest.approx(14.0)

    events = session.events()
    assert len(events) == 1
    assert events[0].outcome is Outcome.TIMEOUT
    assert events[0].answered_at_s == pytest.approx(20.0)
    assert events[0].response_time_s == pytest.approx(20.0)


@pytest.mark.parametrize("seed", [1, 7, 99])
def test_health_and_streak_rules_hold_for_every_answer(seed: int) -> None:
    clock = VirtualClock()
    session = build_shift_session(clock=clock, seed=seed)
    session.start()

    pattern = [True, False, True, True, None, True]
    i = 0
    while session.phase is Phase.IN_PROGRESS:
        choice = pattern[i % len(pattern)]
        i += 1
        if choice is None:
            option = None
        elif choice:
            option = _correct_option(session)
        else:
            option = _wrong_option(session)
        _step(clock, session, 1.0)
        streak_before = session.streak
        session.submit_answer(option)
        event = session.events()[-1]
        if event.is_correct:
            assert event.health_after == min(100, event.health_before + 10)
            assert session.streak == streak_before + 1
        else:
            assert event.health_after == event.health_before - 35
            assert session.streak == 0
        _step(clock, session, 4.0)

    assert session.phase in (Phase.WON, Phase.LOST)


def test_config_validation() -> None:
    with pytest.raises(ValueError):
        _session(VirtualClock(), max_health=0)
    with pytest.raises(ValueError):
        _session(VirtualClock(), damage_amount=0)
    with pytest.raises(ValueError):
        _session(VirtualClock(), advance_delay_s=-1.0)
    with pytest.raises(ValueError):
        ShiftSession(scenarios=[], clock=VirtualClock(), rng=SeededRng(1))


def test_clamp_health() -> None:
    assert clamp_health(-30) == 0
    assert clamp_health(0) == 0
    assert clamp_health(55) == 55
    assert clamp_health(140) == 100
