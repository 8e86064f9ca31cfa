# timeline/scheduler.py
import logging
from typing import List, Protocol

from music.chords import ChordTable
from music.model import Chord, Rhythm
from timeline.store import TimelineStore
from transport.transport import PlaybackSession, Transport
from transport.ui_sync import UISync

class Voice(Protocol):
    def trigger(self, pitch: str, duration: float, time: float) -> None: ...
    def cancel_pending(self) -> int: ...

def strum_offsets(rhythm: Rhythm, measure_seconds: float) -> List[float]:
    """Start offsets of each strum inside one measure: k * D / count."""
    count = rhythm.strums
    step = measure_seconds / count
    return [k * step for k in range(count)]

def strum(voice: Voice, chord: Chord, time: float, duration: float, offset: float):
    # 每個音依序錯開，模擬刷弦
    for j, note in enumerate(chord.notes):
        voice.trigger(note, duration, time + j * offset)

class StepScheduler:
    """Per-measure tick handler driven by the Transport loop.

    Reads the live timeline snapshot and chord table on every tick, so edits
    and key changes made during playback are picked up on the next measure.
    """
    def __init__(self, store: TimelineStore, chords: ChordTable, voice: Voice,
                 transport: Transport, ui_sync: UISync, strum_offset: float = 0.03):
        self.store = store
        self.chords = chords
        self.voice = voice
        self.transport = transport
        self.ui_sync = ui_sync
        self.strum_offset = strum_offset

    def on_tick(self, session: PlaybackSession, t: float):
        measures = self.store.snapshot()
        i = session.cursor

        if i >= len(measures):
            if not self.transport.is_looping:
                session.loop.stop()
                self.ui_sync.schedule(t, lambda: self.transport.finish(session), owner=session.id)
                logging.debug("Tick @%.3f: end of timeline, stop scheduled", t)
                return
            i = 0

        measure = measures[i]
        chord = self.chords.get(measure.chord_index)
        if chord is not None:
            measure_seconds = self.transport.measure_seconds
            duration = measure.rhythm.seconds(self.transport.bpm)
            for offset in strum_offsets(measure.rhythm, measure_seconds):
                strum(self.voice, chord, t + offset, duration, self.strum_offset)
            logging.debug("Tick @%.3f: step %d %s x%d", t, i, chord.name, measure.rhythm.strums)
        else:
            logging.debug("Tick @%.3f: step %d rest", t, i)

        self.ui_sync.schedule(t, lambda: self.transport.set_step(session, i), owner=session.id)
        session.cursor = i + 1
