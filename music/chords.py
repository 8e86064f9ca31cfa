# music/chords.py
import logging
import math
from functools import lru_cache
from typing import Optional, Tuple

from music.model import Chord, REST

NOTE_NAMES = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]

SCALES = {
    "major": (0, 2, 4, 5, 7, 9, 11),
    "minor": (0, 2, 3, 5, 7, 8, 10),   # natural minor
}

# 依級數（0 起算）決定三和弦性質
_MINOR_DEGREES = {"major": {1, 2, 5}, "minor": {0, 3, 4}}
_DIM_DEGREE = {"major": 6, "minor": 1}
_SUFFIX = {"major": "", "minor": "m", "dim": "dim"}

REFERENCE_OCTAVE = 4

def _quality(mode: str, degree: int) -> str:
    if degree == _DIM_DEGREE[mode]:
        return "dim"
    return "minor" if degree in _MINOR_DEGREES[mode] else "major"

def _pitch(pc_offset: int) -> str:
    """pc_offset counts semitones above C of the reference octave."""
    return f"{NOTE_NAMES[pc_offset % 12]}{REFERENCE_OCTAVE + pc_offset // 12}"

@lru_cache(maxsize=None)
def derive_chords(root: str, mode: str) -> Tuple[Chord, ...]:
    """Diatonic triads for every degree of `root` `mode`, in scale order."""
    if root not in NOTE_NAMES:
        raise ValueError(f"Unknown root: {root!r}")
    if mode not in SCALES:
        raise ValueError(f"Unknown scale mode: {mode!r} (expected one of {sorted(SCALES)})")

    root_pc = NOTE_NAMES.index(root)
    chords = []
    for degree, interval in enumerate(SCALES[mode]):
        base = root_pc + interval
        quality = _quality(mode, degree)
        third = 4 if quality == "major" else 3
        fifth = 6 if quality == "dim" else 7
        name = NOTE_NAMES[base % 12]
        chords.append(Chord(
            name=name + _SUFFIX[quality],
            notes=(_pitch(base), _pitch(base + third), _pitch(base + fifth)),
            root=name,
        ))
    return tuple(chords)

class ChordTable:
    """Current (root, mode) and its derived chords; read live by the scheduler."""
    def __init__(self, root: str = "C", mode: str = "major"):
        self._root = root
        self._mode = mode
        self._chords = derive_chords(root, mode)

    @property
    def root(self) -> str:
        return self._root

    @property
    def mode(self) -> str:
        return self._mode

    @property
    def chords(self) -> Tuple[Chord, ...]:
        return self._chords

    def set_root(self, root: str):
        self._chords = derive_chords(root, self._mode)
        self._root = root
        logging.debug("Chord table -> %s %s", self._root, self._mode)

    def set_mode(self, mode: str):
        self._chords = derive_chords(self._root, mode)
        self._mode = mode
        logging.debug("Chord table -> %s %s", self._root, self._mode)

    def get(self, index: int) -> Optional[Chord]:
        # 換調後舊索引可能越界：一律當休止
        if index == REST or not 0 <= index < len(self._chords):
            return None
        return self._chords[index]

    def __len__(self) -> int:
        return len(self._chords)

# ---------- pitch helpers (voice engine) ----------
def note_to_midi(name: str) -> int:
    """'C4' -> 60, 'A#3' -> 58."""
    name = name.strip()
    i = len(name)
    while i > 0 and (name[i - 1].isdigit() or name[i - 1] == "-"):
        i -= 1
    pc, octave = name[:i].upper(), name[i:]
    if pc not in NOTE_NAMES or not octave:
        raise ValueError(f"Invalid note name: {name!r}")
    return (int(octave) + 1) * 12 + NOTE_NAMES.index(pc)

def midi_to_frequency(midi: int) -> float:
    return 440.0 * math.pow(2.0, (midi - 69) / 12.0)
