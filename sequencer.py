# sequencer.py
import logging
from typing import Callable, Optional, Tuple

from config import AppConfig
from music.chords import ChordTable, NOTE_NAMES, SCALES
from music.model import Chord, Measure, Rhythm
from timeline.scheduler import StepScheduler, Voice, strum
from timeline.store import TimelineStore
from transport.clock import AudioClock
from transport.transport import Transport
from transport.ui_sync import UISync

PREVIEW_RHYTHM = Rhythm.HALF

class Sequencer:
    """Editing/UI surface over the timeline, chord table and transport.

    Everything runs on the UI thread. The owner calls `pump(now)` every frame;
    ticks, note triggers and step updates happen from there.
    """
    def __init__(self, cfg: AppConfig, voice: Voice,
                 ensure_ready: Optional[Callable[[], None]] = None,
                 clock=None, new_id: Optional[Callable[[], str]] = None):
        self.cfg = cfg
        self.voice = voice
        self.clock = clock or AudioClock()
        self._ensure_ready = ensure_ready or (lambda: None)

        self.ui_sync = UISync()
        self.store = TimelineStore(new_id)
        self.chords = ChordTable(cfg.key.root, cfg.key.mode)
        self.transport = Transport(self.clock, self.ui_sync, cfg.transport,
                                   ensure_ready=self._ensure_ready)
        self.scheduler = StepScheduler(self.store, self.chords, voice, self.transport,
                                       self.ui_sync, strum_offset=cfg.audio.strum_offset)
        self.transport.on_tick = self.scheduler.on_tick
        self.transport.subscribe(self._on_transport)

    def _on_transport(self, transport: Transport):
        # 任何停止路徑（手動、刪除、清除、播完）都要丟掉已排入的音
        if not transport.is_playing:
            dropped = self.voice.cancel_pending()
            if dropped:
                logging.debug("Cancelled %d queued note(s)", dropped)

    # ---------- read ----------
    @property
    def measures(self) -> Tuple[Measure, ...]:
        return self.store.snapshot()

    @property
    def current_chords(self) -> Tuple[Chord, ...]:
        return self.chords.chords

    @property
    def current_step_index(self) -> int:
        return self.transport.current_step_index

    @property
    def is_playing(self) -> bool:
        return self.transport.is_playing

    @property
    def bpm(self) -> int:
        return self.transport.bpm

    @property
    def is_looping(self) -> bool:
        return self.transport.is_looping

    # ---------- timeline edits ----------
    def add_measure(self) -> Measure:
        return self.store.append()

    def remove_measure(self, measure_id: str) -> bool:
        removed = self.store.remove(measure_id)
        # 播放中刪除會讓游標指到錯位的小節：先停
        if removed and self.transport.is_playing:
            self.transport.stop()
        return removed

    def update_measure(self, measure_id: str, field: str, value) -> Optional[Measure]:
        return self.store.update(measure_id, field, value)

    def reset_timeline(self):
        if self.transport.is_playing:
            self.transport.stop()
        self.store.reset()

    # ---------- key / tempo ----------
    def set_root(self, root: str):
        self.chords.set_root(root)

    def set_scale(self, mode: str):
        self.chords.set_mode(mode)

    def cycle_root(self, step: int = 1):
        i = NOTE_NAMES.index(self.chords.root)
        self.set_root(NOTE_NAMES[(i + step) % len(NOTE_NAMES)])

    def toggle_scale(self):
        modes = list(SCALES)
        self.set_scale(modes[(modes.index(self.chords.mode) + 1) % len(modes)])

    def set_bpm(self, bpm: int):
        self.transport.bpm = bpm

    def set_looping(self, looping: bool):
        self.transport.is_looping = bool(looping)
        logging.debug("Looping -> %s", self.transport.is_looping)

    # ---------- playback ----------
    def toggle_play(self) -> bool:
        """Stop if playing, else start. Audio readiness errors propagate."""
        if self.transport.is_playing:
            self.transport.stop()
        else:
            self.transport.start()
        return self.transport.is_playing

    def stop(self):
        self.transport.stop()

    def preview_chord(self, chord: Chord):
        self._ensure_ready()
        duration = PREVIEW_RHYTHM.seconds(self.transport.bpm)
        strum(self.voice, chord, self.clock.now(), duration, self.cfg.audio.strum_offset)

    def pump(self, now: Optional[float] = None) -> float:
        now = self.clock.now() if now is None else now
        self.transport.pump(now)
        self.ui_sync.flush(now)
        return now
