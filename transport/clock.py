# transport/clock.py
import logging
import time
from typing import Callable, Optional

class AudioClock:
    """Audio-domain time: monotonic seconds since the clock was created."""
    def __init__(self):
        self._origin = time.perf_counter()

    def now(self) -> float:
        return time.perf_counter() - self._origin

class RepeatingLoop:
    """Fires `callback(t)` once per `interval()` seconds, ahead of real time.

    Nothing runs on its own: the owner calls `pump(now)` every frame and every
    tick whose scheduled time falls inside `now + lookahead` is fired with its
    exact scheduled time, so audio can be queued before it is due.
    """
    def __init__(self, callback: Callable[[float], None], interval: Callable[[], float],
                 lookahead: float = 0.1):
        self._callback = callback
        self._interval = interval
        self.lookahead = lookahead
        self._next: Optional[float] = None
        self._last: Optional[float] = None
        self.ticks = 0

    @property
    def active(self) -> bool:
        return self._next is not None

    @property
    def next_time(self) -> Optional[float]:
        return self._next

    def start(self, at: float):
        self._next = at
        self._last = None
        self.ticks = 0

    def stop(self):
        # 取消所有尚未觸發的 tick
        self._next = None
        self._last = None

    def retime(self, now: float):
        """Re-space the pending tick after a tempo change, keeping the phase."""
        if self._next is None or self._last is None:
            return
        anchor = max(now, self._last)
        remaining = (self._next - anchor) / (self._next - self._last)
        self._next = anchor + remaining * self._interval()
        logging.debug("Loop retimed: next tick at %.3f", self._next)

    def pump(self, now: float) -> int:
        fired = 0
        while self._next is not None and self._next <= now + self.lookahead:
            t = self._next
            # next time is fixed before the callback so the callback may stop() us
            self._last, self._next = t, t + self._interval()
            self.ticks += 1
            self._callback(t)
            fired += 1
        return fired
