from __future__ import annotations

from collections.abc import Callable

from .scheduler import ScheduledTask, Scheduler


class CountdownTimer:
    """Per-case countdown built on a single repeating scheduler task.

    Remaining time is held as a whole number of ticks, so a 20.0 s countdown
    with 0.1 s ticks reaches exactly 0.0 on tick 200. The tick that reaches
    zero stops the timer and calls on_expire once.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        *,
        on_expire: Callable[[], None],
        duration_s: float = 20.0,
        tick_s: float = 0.1,
    ) -> None:
        if duration_s <= 0:
            raise ValueError("duration_s must be > 0")
        if tick_s <= 0:
            raise ValueError("tick_s must be > 0")
        if tick_s > duration_s:
            raise ValueError("tick_s must not exceed duration_s")

        self._scheduler = scheduler
        self._on_expire = on_expire
        self._tick_s = float(tick_s)
        self._total_ticks = max(1, int(round(duration_s / tick_s)))
        self._remaining_ticks = self._total_ticks
        self._task: ScheduledTask | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and self._task.active

    @property
    def remaining_s(self) -> float:
        return round(self._remaining_ticks * self._tick_s, 6)

    @property
    def ticks_elapsed(self) -> int:
        return self._total_ticks - self._remaining_ticks

    def restart(self) -> None:
        self.stop()
        self._remaining_ticks = self._total_ticks
        self._task = self._scheduler.call_every(self._tick_s, self._tick)

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    def _tick(self) -> None:
        if self._remaining_ticks > 0:
            self._remaining_ticks -= 1
        if self._remaining_ticks <= 0:
            self._remaining_ticks = 0
            self.stop()
            self._on_expire()
