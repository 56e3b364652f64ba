from __future__ import annotations

import heapq
import itertools
from collections.abc import Callable

from .clock import Clock

# Float sums of small steps (e.g. 200 x 0.1) land a hair short of the exact value.
_DUE_EPSILON_S = 1e-9


class ScheduledTask:
    """Handle for a pending one-shot or repeating callback."""

    __slots__ = ("_callback", "_interval_s", "_anchor_s", "_runs", "_due_at_s", "_cancelled")

    def __init__(
        self,
        *,
        callback: Callable[[], None],
        due_at_s: float,
        interval_s: float | None,
    ) -> None:
        self._callback = callback
        self._interval_s = interval_s
        self._anchor_s = due_at_s
        self._runs = 0
        self._due_at_s = due_at_s
        self._cancelled = False

    @property
    def active(self) -> bool:
        return not self._cancelled

    @property
    def repeating(self) -> bool:
        return self._interval_s is not None

    @property
    def due_at_s(self) -> float:
        return self._due_at_s

    def cancel(self) -> None:
        self._cancelled = True

    def _fire(self) -> None:
        if self._interval_s is None:
            # One-shot tasks are spent once they have run.
            self._cancelled = True
        else:
            self._runs += 1
            self._due_at_s = self._anchor_s + self._runs * self._interval_s
        self._callback()


class Scheduler:
    """Cooperative timer queue polled from the frame loop.

    Nothing runs in the background: callbacks only fire inside run_due(), in
    due-time order. While a callback runs, now() reports that callback's due
    time, so follow-up work scheduled from it is anchored to when the event
    logically happened rather than to when the queue was polled.
    """

    def __init__(self, clock: Clock) -> None:
        self._clock = clock
        self._queue: list[tuple[float, int, ScheduledTask]] = []
        self._seq = itertools.count()
        self._logical_now_s: float | None = None

    def now(self) -> float:
        if self._logical_now_s is not None:
            return self._logical_now_s
        return self._clock.now()

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> ScheduledTask:
        due = self.now() + max(0.0, float(delay_s))
        task = ScheduledTask(callback=callback, due_at_s=due, interval_s=None)
        self._push(task)
        return task

    def call_every(self, interval_s: float, callback: Callable[[], None]) -> ScheduledTask:
        if interval_s <= 0:
            raise ValueError("interval_s must be > 0")
        interval = float(interval_s)
        task = ScheduledTask(callback=callback, due_at_s=self.now() + interval, interval_s=interval)
        self._push(task)
        return task

    def run_due(self) -> int:
        """Run every callback that is due. Returns the number of callbacks run."""

        now = self._clock.now()
        ran = 0
        while self._queue:
            due, _, task = self._queue[0]
            if not task.active:
                heapq.heappop(self._queue)
                continue
            if due > now + _DUE_EPSILON_S:
                break
            heapq.heappop(self._queue)

            self._logical_now_s = due
            try:
                task._fire()
            finally:
                self._logical_now_s = None
            ran += 1

            if task.active and task.repeating:
                self._push(task)
        return ran

    def cancel_all(self) -> None:
        for _, _, task in self._queue:
            task.cancel()
        self._queue.clear()

    def pending_count(self) -> int:
        return sum(1 for _, _, task in self._queue if task.active)

    def _push(self, task: ScheduledTask) -> None:
        heapq.heappush(self._queue, (task.due_at_s, next(self._seq), task))
