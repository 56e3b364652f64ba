from __future__ import annotations

import logging
import random
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum, StrEnum
from typing import Protocol, TypeVar

from .clock import Clock
from .countdown import CountdownTimer
from .scenarios import SCENARIOS, ScenarioRecord, validate_scenarios
from .scheduler import ScheduledTask, Scheduler

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Shuffler(Protocol):
    """Source of uniform random permutations."""

    def shuffled(self, items: Sequence[T]) -> list[T]:
        ...


class Phase(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    WON = "won"
    LOST = "lost"


class Outcome(StrEnum):
    CORRECT = "correct"
    INCORRECT = "incorrect"
    TIMEOUT = "timeout"


@dataclass(frozen=True, slots=True)
class ShiftConfig:
    question_time_s: float = 20.0
    tick_s: float = 0.1
    max_health: int = 100
    heal_amount: int = 10
    damage_amount: int = 35
    advance_delay_s: float = 4.0  # time to read the explanation
    loss_delay_s: float = 3.5


@dataclass(frozen=True, slots=True)
class Feedback:
    outcome: Outcome
    title: str
    message: str
    correct_option: str


@dataclass(frozen=True, slots=True)
class AnswerEvent:
    index: int
    scenario_id: int
    selected: str | None
    correct_option: str
    outcome: Outcome
    health_before: int
    health_after: int
    streak_after: int
    presented_at_s: float
    answered_at_s: float
    response_time_s: float

    @property
    def is_correct(self) -> bool:
        return self.outcome is Outcome.CORRECT


@dataclass(frozen=True, slots=True)
class ShiftSummary:
    cases_total: int
    cases_answered: int
    correct: int
    accuracy: float
    best_streak: int
    final_health: int
    display_health: int
    mean_response_time_s: float | None


@dataclass(frozen=True, slots=True)
class ShiftSnapshot:
    """View model for the UI (pure data)."""

    phase: Phase
    case_number: int
    case_count: int
    scenario: ScenarioRecord | None
    options: tuple[str, ...]
    health: int
    display_health: int
    max_health: int
    time_remaining_s: float
    feedback: Feedback | None
    streak: int
    best_streak: int
    correct_count: int
    answered_count: int


class SeededRng:
    """Seeded RNG wrapper; permutations come from random.Random.shuffle (Fisher-Yates)."""

    def __init__(self, seed: int) -> None:
        self._rng = random.Random(int(seed))

    def shuffled(self, items: Sequence[T]) -> list[T]:
        out = list(items)
        self._rng.shuffle(out)
        return out


def clamp_health(value: int, max_health: int = 100) -> int:
    return 0 if value <= 0 else max_health if value >= max_health else int(value)


class ShiftSession:
    """One shift: start -> cases under a countdown -> won or lost.

    - All randomness comes from the injected shuffler.
    - All time comes from the injected clock, read through a Scheduler that is
      only advanced by update().
    - At most one delayed transition (advance or loss) is pending at a time,
      and it is cancelled whenever the shift restarts or is closed.
    """

    def __init__(
        self,
        *,
        scenarios: Sequence[ScenarioRecord],
        clock: Clock,
        rng: Shuffler,
        config: ShiftConfig | None = None,
    ) -> None:
        cfg = config or ShiftConfig()
        if cfg.max_health <= 0:
            raise ValueError("max_health must be > 0")
        if cfg.heal_amount < 0 or cfg.damage_amount <= 0:
            raise ValueError("heal_amount must be >= 0 and damage_amount > 0")
        if cfg.advance_delay_s < 0 or cfg.loss_delay_s < 0:
            raise ValueError("transition delays must be >= 0")
        if not scenarios:
            raise ValueError("at least one scenario is required")

        self._cfg = cfg
        self._scenarios = tuple(scenarios)
        self._rng = rng
        self._scheduler = Scheduler(clock)
        self._countdown = CountdownTimer(
            self._scheduler,
            on_expire=self.timeout,
            duration_s=cfg.question_time_s,
            tick_s=cfg.tick_s,
        )

        self._phase: Phase = Phase.NOT_STARTED
        self._order: tuple[ScenarioRecord, ...] = ()
        self._index = 0
        self._health = cfg.max_health
        self._options: tuple[str, ...] = ()
        self._feedback: Feedback | None = None
        self._streak = 0
        self._best_streak = 0
        self._events: list[AnswerEvent] = []
        self._presented_at_s = 0.0
        self._pending: ScheduledTask | None = None

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def config(self) -> ShiftConfig:
        return self._cfg

    @property
    def health(self) -> int:
        return self._health

    @property
    def streak(self) -> int:
        return self._streak

    @property
    def feedback(self) -> Feedback | None:
        return self._feedback

    @property
    def current_index(self) -> int:
        return self._index

    @property
    def scenario_order(self) -> tuple[ScenarioRecord, ...]:
        return self._order

    @property
    def option_order(self) -> tuple[str, ...]:
        return self._options

    @property
    def time_remaining_s(self) -> float:
        return self._countdown.remaining_s

    @property
    def countdown_running(self) -> bool:
        return self._countdown.running

    @property
    def transition_pending(self) -> bool:
        return self._pending is not None and self._pending.active

    def current_scenario(self) -> ScenarioRecord | None:
        if not self._order:
            return None
        return self._order[self._index]

    def start(self) -> None:
        self._cancel_pending()
        self._countdown.stop()

        self._order = tuple(self._rng.shuffled(self._scenarios))
        self._phase = Phase.IN_PROGRESS
        self._index = 0
        self._health = self._cfg.max_health
        self._streak = 0
        self._best_streak = 0
        self._feedback = None
        self._events = []
        logger.info("Shift started with %d cases", len(self._order))
        self.prepare_question(0)

    def prepare_question(self, index: int) -> None:
        if self._phase is not Phase.IN_PROGRESS:
            return
        if not (0 <= index < len(self._order)):
            raise IndexError(f"case index {index} out of range")
        self._index = index
        self._options = tuple(self._rng.shuffled(self._order[index].options))
        self._presented_at_s = self._scheduler.now()
        self._countdown.restart()

    def submit_answer(self, selected: str | None) -> bool:
        """Score one answer for the current case. Returns True if it was accepted."""

        if self._phase is not Phase.IN_PROGRESS or self._feedback is not None:
            return False
        scenario = self._order[self._index]
        self._countdown.stop()

        answered_at_s = self._scheduler.now()
        health_before = self._health
        is_correct = selected is not None and selected == scenario.correct

        if is_correct:
            self._streak += 1
            self._best_streak = max(self._best_streak, self._streak)
            self._health = min(self._cfg.max_health, self._health + self._cfg.heal_amount)
            self._feedback = Feedback(
                outcome=Outcome.CORRECT,
                title="Diagnosis Correct",
                message=scenario.reason,
                correct_option=scenario.correct,
            )
        else:
            self._streak = 0
            # Not clamped here: the loss check runs on the raw value.
            self._health -= self._cfg.damage_amount
            if selected is None:
                self._feedback = Feedback(
                    outcome=Outcome.TIMEOUT,
                    title="Resuscitation Failed (Timeout)",
                    message=(
                        f"Patient vital signs lost. Correct treatment was: {scenario.correct}. "
                        f"{scenario.reason}"
                    ),
                    correct_option=scenario.correct,
                )
            else:
                self._feedback = Feedback(
                    outcome=Outcome.INCORRECT,
                    title="Medical Error",
                    message=f"Wrong choice! Correct treatment was: {scenario.correct}. {scenario.reason}",
                    correct_option=scenario.correct,
                )

        self._events.append(
            AnswerEvent(
                index=self._index,
                scenario_id=scenario.scenario_id,
                selected=selected,
                correct_option=scenario.correct,
                outcome=self._feedback.outcome,
                health_before=health_before,
                health_after=self._health,
                streak_after=self._streak,
                presented_at_s=self._presented_at_s,
                answered_at_s=answered_at_s,
                response_time_s=max(0.0, answered_at_s - self._presented_at_s),
            )
        )
        logger.debug(
            "Case %d/%d (%s): %s, health %d -> %d",
            self._index + 1,
            len(self._order),
            scenario.title,
            self._feedback.outcome.value,
            health_before,
            self._health,
        )

        if self._health <= 0:
            self._pending = self._scheduler.call_later(self._cfg.loss_delay_s, self._finish_lost)
        else:
            self._pending = self._scheduler.call_later(self._cfg.advance_delay_s, self._advance)
        return True

    def timeout(self) -> None:
        self.submit_answer(None)

    def update(self) -> None:
        self._scheduler.run_due()

    def close(self) -> None:
        """Tear down: no tick or delayed transition may fire after this."""

        self._cancel_pending()
        self._countdown.stop()
        self._scheduler.cancel_all()

    def events(self) -> list[AnswerEvent]:
        return list(self._events)

    def summary(self) -> ShiftSummary:
        answered = len(self._events)
        correct = sum(1 for e in self._events if e.is_correct)
        accuracy = 0.0 if answered == 0 else correct / answered
        rts = [e.response_time_s for e in self._events]
        mean_rt = None if not rts else sum(rts) / len(rts)
        return ShiftSummary(
            cases_total=len(self._order) if self._order else len(self._scenarios),
            cases_answered=answered,
            correct=correct,
            accuracy=accuracy,
            best_streak=self._best_streak,
            final_health=self._health,
            display_health=clamp_health(self._health, self._cfg.max_health),
            mean_response_time_s=mean_rt,
        )

    def snapshot(self) -> ShiftSnapshot:
        scenario = self.current_scenario() if self._phase is not Phase.NOT_STARTED else None
        case_count = len(self._order) if self._order else len(self._scenarios)
        return ShiftSnapshot(
            phase=self._phase,
            case_number=self._index + 1,
            case_count=case_count,
            scenario=scenario,
            options=self._options,
            health=self._health,
            display_health=clamp_health(self._health, self._cfg.max_health),
            max_health=self._cfg.max_health,
            time_remaining_s=self._countdown.remaining_s,
            feedback=self._feedback,
            streak=self._streak,
            best_streak=self._best_streak,
            correct_count=sum(1 for e in self._events if e.is_correct),
            answered_count=len(self._events),
        )

    def _advance(self) -> None:
        self._pending = None
        if self._phase is not Phase.IN_PROGRESS:
            return
        if self._index + 1 >= len(self._order):
            self._phase = Phase.WON
            logger.info("Shift won: all %d patients saved", len(self._order))
            return
        self._feedback = None
        self.prepare_question(self._index + 1)

    def _finish_lost(self) -> None:
        self._pending = None
        if self._phase is not Phase.IN_PROGRESS:
            return
        self._phase = Phase.LOST
        logger.info("Shift lost on case %d/%d", self._index + 1, len(self._order))

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None


def build_shift_session(
    *,
    clock: Clock,
    seed: int,
    config: ShiftConfig | None = None,
    scenarios: Sequence[ScenarioRecord] = SCENARIOS,
) -> ShiftSession:
    """Factory for a shift over the given cases."""

    validate_scenarios(scenarios)
    return ShiftSession(
        scenarios=scenarios,
        clock=clock,
        rng=SeededRng(seed),
        config=config,
    )
