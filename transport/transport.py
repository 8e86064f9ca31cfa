# transport/transport.py
import itertools
import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from config import TransportConfig
from transport.clock import RepeatingLoop
from transport.ui_sync import UISync

BEATS_PER_MEASURE = 4

_session_ids = itertools.count(1)

@dataclass(eq=False)
class PlaybackSession:
    """One start→stop lifetime: its own loop and cursor, never reused."""
    loop: Optional[RepeatingLoop] = None
    cursor: int = 0
    id: int = field(default_factory=lambda: next(_session_ids))

class Transport:
    """Play/stop state, tempo and the per-measure loop.

    `on_tick(session, t)` is called once per measure with the measure's exact
    start time on the audio clock. UI-visible fields (`current_step_index`,
    and `is_playing` when the timeline runs out) are only changed through
    closures flushed by `UISync`.
    """
    def __init__(self, clock, ui_sync: UISync, cfg: Optional[TransportConfig] = None,
                 ensure_ready: Optional[Callable[[], None]] = None):
        self.cfg = cfg or TransportConfig()
        self.clock = clock
        self.ui_sync = ui_sync
        self._ensure_ready = ensure_ready or (lambda: None)
        self.on_tick: Optional[Callable[[PlaybackSession, float], None]] = None

        self._bpm = self._clamp(self.cfg.bpm)
        self.is_looping = self.cfg.looping
        self.is_playing = False
        self.current_step_index = -1
        self.session: Optional[PlaybackSession] = None
        self._listeners: List[Callable[["Transport"], None]] = []

    # ---------- observers ----------
    def subscribe(self, callback: Callable[["Transport"], None]):
        self._listeners.append(callback)

    def _notify(self):
        for cb in list(self._listeners):
            cb(self)

    # ---------- tempo ----------
    def _clamp(self, bpm) -> int:
        return int(max(self.cfg.bpm_min, min(self.cfg.bpm_max, round(bpm))))

    @property
    def bpm(self) -> int:
        return self._bpm

    @bpm.setter
    def bpm(self, value):
        bpm = self._clamp(value)
        if bpm == self._bpm:
            return
        self._bpm = bpm
        logging.debug("BPM -> %d", bpm)
        # 播放中即時生效：只改變之後的 tick 間距，不重設游標
        if self.session is not None and self.session.loop is not None:
            self.session.loop.retime(self.clock.now())

    @property
    def measure_seconds(self) -> float:
        return BEATS_PER_MEASURE * 60.0 / self._bpm

    # ---------- play / stop ----------
    def start(self) -> bool:
        if self.is_playing:
            return False
        if self.on_tick is None:
            raise RuntimeError("Transport has no tick handler")
        # may raise; nothing has changed yet if it does
        self._ensure_ready()

        session = PlaybackSession()
        session.loop = RepeatingLoop(
            lambda t: self.on_tick(session, t),
            lambda: self.measure_seconds,
            lookahead=self.cfg.lookahead,
        )
        self.session = session
        self.is_playing = True
        session.loop.start(self.clock.now())
        logging.info("Playback started (session %d, %d bpm, loop=%s)",
                     session.id, self._bpm, self.is_looping)
        self._notify()
        return True

    def stop(self):
        session, self.session = self.session, None
        if session is not None:
            session.loop.stop()
            self.ui_sync.cancel(session.id)
        was_playing = self.is_playing
        self.is_playing = False
        self.current_step_index = -1
        if was_playing:
            logging.info("Playback stopped")
            self._notify()

    def pump(self, now: float) -> int:
        if self.session is None:
            return 0
        return self.session.loop.pump(now)

    # ---------- UI-side effects (called from UISync closures) ----------
    def set_step(self, session: PlaybackSession, index: int):
        if session is not self.session:
            return
        self.current_step_index = index
        self._notify()

    def finish(self, session: PlaybackSession):
        """Terminal stop of a one-shot run; ignored if that run already ended."""
        if session is not self.session:
            return
        logging.info("Timeline finished (session %d)", session.id)
        self.stop()
