"""
Clock / Timer Sources

The simulation driver only needs two things from a clock:
- now_ms(): monotonic time in milliseconds
- call_every(interval_ms, callback): periodic callback, cancelable

Two implementations:
- AsyncioClock: real time, one asyncio task per periodic timer
- ManualClock: deterministic FIXED-step clock, advanced explicitly (tests, profiling)

CRITICAL: Both run callbacks on a single logical thread.
A cancelled timer never fires again, even if cancelled from inside its own callback.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Callable, List

logger = logging.getLogger("Clock")

TimerCallback = Callable[[], None]


class TimerHandle(ABC):
    """Handle to a periodic timer."""

    def __init__(self, interval_ms: float, callback: TimerCallback):
        if interval_ms <= 0:
            raise ValueError("interval_ms must be > 0")
        self.interval_ms = float(interval_ms)
        self.callback = callback
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        self._cancelled = True


class Clock(ABC):
    """Time + periodic timer source."""

    @abstractmethod
    def now_ms(self) -> float:
        pass

    @abstractmethod
    def call_every(self, interval_ms: float, callback: TimerCallback) -> TimerHandle:
        pass


# ============================================================
# REAL TIME (asyncio)
# ============================================================

class _AsyncioTimer(TimerHandle):
    def __init__(self, interval_ms: float, callback: TimerCallback):
        super().__init__(interval_ms, callback)
        # Requires a running loop: timers are only created from loop callbacks
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def _run(self):
        period = self.interval_ms / 1000.0
        next_at = time.monotonic() + period
        try:
            while not self._cancelled:
                # Fixed cadence: sleep the remainder of the period
                await asyncio.sleep(max(0.0, next_at - time.monotonic()))
                if self._cancelled:
                    break
                self.callback()
                next_at += period
        except Exception:
            logger.critical("Timer callback crash", exc_info=True)
            raise

    def cancel(self) -> None:
        super().cancel()
        self._task.cancel()


class AsyncioClock(Clock):
    """Real-time clock backed by the running asyncio event loop."""

    def now_ms(self) -> float:
        return time.monotonic() * 1000.0

    def call_every(self, interval_ms: float, callback: TimerCallback) -> TimerHandle:
        return _AsyncioTimer(interval_ms, callback)


# ============================================================
# DETERMINISTIC (manual)
# ============================================================

class _ManualTimer(TimerHandle):
    def __init__(self, interval_ms: float, callback: TimerCallback, next_fire: float, seq: int):
        super().__init__(interval_ms, callback)
        self.next_fire = next_fire
        self.seq = seq


class ManualClock(Clock):
    """
    Deterministic clock with FIXED time steps.

    Time only moves inside advance(). Due timers fire in (deadline, creation)
    order and the clock reads exactly the deadline while a callback runs.
    """

    def __init__(self, start_ms: float = 0.0):
        self._now = float(start_ms)
        self._timers: List[_ManualTimer] = []
        self._seq = 0

    def now_ms(self) -> float:
        return self._now

    def call_every(self, interval_ms: float, callback: TimerCallback) -> TimerHandle:
        timer = _ManualTimer(interval_ms, callback, self._now + interval_ms, self._seq)
        self._seq += 1
        self._timers.append(timer)
        return timer

    @property
    def active_timers(self) -> int:
        return sum(1 for t in self._timers if not t.cancelled)

    def advance(self, ms: float) -> None:
        """Advance time by `ms`, firing every timer that falls due on the way."""
        if ms < 0:
            raise ValueError("cannot advance a clock backwards")
        target = self._now + ms

        while True:
            due = [t for t in self._timers if not t.cancelled and t.next_fire <= target]
            if not due:
                break
            timer = min(due, key=lambda t: (t.next_fire, t.seq))
            self._now = timer.next_fire
            timer.next_fire += timer.interval_ms
            timer.callback()

        self._now = target
        self._timers = [t for t in self._timers if not t.cancelled]
