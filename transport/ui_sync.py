# transport/ui_sync.py
import heapq
import itertools
import logging
from typing import Callable, Hashable, List, Optional, Tuple

class UISync:
    """Defers UI-state mutations until the audio clock reaches their time.

    Ticks run ahead of real time (lookahead), so touching UI state from inside
    a tick would light up a step before it is heard. Closures queued here are
    applied by the frame loop's `flush(now)`, ordered by time then by insertion.
    """
    def __init__(self):
        self._queue: List[Tuple[float, int, Optional[Hashable], Callable[[], None]]] = []
        self._seq = itertools.count()

    def schedule(self, time: float, closure: Callable[[], None], owner: Optional[Hashable] = None):
        heapq.heappush(self._queue, (time, next(self._seq), owner, closure))

    def cancel(self, owner: Hashable) -> int:
        before = len(self._queue)
        self._queue = [item for item in self._queue if item[2] != owner]
        heapq.heapify(self._queue)
        dropped = before - len(self._queue)
        if dropped:
            logging.debug("UI sync: dropped %d pending update(s) for %r", dropped, owner)
        return dropped

    def flush(self, now: float) -> int:
        ran = 0
        while self._queue and self._queue[0][0] <= now:
            _, _, _, closure = heapq.heappop(self._queue)
            closure()
            ran += 1
        return ran

    def __len__(self) -> int:
        return len(self._queue)
