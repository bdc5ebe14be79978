"""Timer registry: a simulated clock with cancellable one-shot and interval timers."""

from __future__ import annotations

import heapq
import itertools
import logging
from collections.abc import Callable
from datetime import datetime, timedelta

logger = logging.getLogger(__name__)

TimerCallback = Callable[[], None]


class Timer:
    """Handle for a registered timer."""

    def __init__(
        self,
        name: str,
        deadline: datetime,
        callback: TimerCallback,
        interval: timedelta | None = None,
    ) -> None:
        self.name = name
        self.deadline = deadline
        self.callback = callback
        self.interval = interval
        self.cancelled = False
        self.fired = False

    @property
    def active(self) -> bool:
        if self.cancelled:
            return False
        return self.interval is not None or not self.fired

    def __repr__(self) -> str:
        return f"Timer({self.name!r}, deadline={self.deadline.isoformat()}, active={self.active})"


class TimerRegistry:
    """Owns simulated time. Nothing happens between advances.

    Timers due within an advance fire in deadline order, ties in the
    order they were armed. The clock reads each timer's deadline while its
    callback runs, so callbacks see the time they were scheduled for.
    """

    def __init__(self, start: datetime) -> None:
        self._now = start
        self._heap: list[tuple[datetime, int, Timer]] = []
        self._sequence = itertools.count()

    @property
    def now(self) -> datetime:
        return self._now

    @property
    def pending(self) -> list[Timer]:
        """Active timers, soonest first."""
        return [t for _, _, t in sorted(self._heap) if t.active]

    def call_later(self, delay: float, callback: TimerCallback, name: str = "") -> Timer:
        """Run callback once, delay simulated seconds from now."""
        timer = Timer(name, self._now + timedelta(seconds=delay), callback)
        self._push(timer)
        logger.debug("Armed %s in %.1fs", name or "timer", delay)
        return timer

    def call_every(self, interval: float, callback: TimerCallback, name: str = "") -> Timer:
        """Run callback every interval simulated seconds, first run one interval from now."""
        if interval <= 0:
            raise ValueError("interval must be positive")
        step = timedelta(seconds=interval)
        timer = Timer(name, self._now + step, callback, interval=step)
        self._push(timer)
        logger.debug("Armed %s every %.1fs", name or "timer", interval)
        return timer

    def cancel(self, timer: Timer | None) -> None:
        if timer is not None and not timer.cancelled:
            timer.cancelled = True
            logger.debug("Cancelled %s", timer.name or "timer")

    def cancel_all(self) -> None:
        for _, _, timer in self._heap:
            timer.cancelled = True
        self._heap.clear()

    def advance(self, seconds: float) -> None:
        """Move the clock forward, firing every timer that falls due."""
        if seconds < 0:
            raise ValueError("cannot move the clock backwards")
        self.advance_to(self._now + timedelta(seconds=seconds))

    def advance_to(self, moment: datetime) -> None:
        if moment < self._now:
            raise ValueError("cannot move the clock backwards")
        while self._heap and self._heap[0][0] <= moment:
            deadline, _, timer = heapq.heappop(self._heap)
            if not timer.active:
                continue
            self._now = deadline
            if timer.interval is None:
                timer.fired = True
            timer.callback()
            if timer.interval is not None and not timer.cancelled:
                timer.deadline = deadline + timer.interval
                self._push(timer)
        self._now = moment

    def _push(self, timer: Timer) -> None:
        heapq.heappush(self._heap, (timer.deadline, next(self._sequence), timer))
