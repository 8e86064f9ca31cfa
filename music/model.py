# music/model.py
from dataclasses import dataclass
from enum import Enum
from typing import Tuple

REST = -1

class Rhythm(str, Enum):
    """每小節的刷弦細分；值沿用 "1n"/"2n"... 記法。"""
    WHOLE = "1n"
    HALF = "2n"
    QUARTER = "4n"
    EIGHTH = "8n"
    SIXTEENTH = "16n"

    @property
    def strums(self) -> int:
        return int(self.value[:-1])

    @property
    def beats(self) -> float:
        return 4.0 / self.strums

    def seconds(self, bpm: float) -> float:
        return self.beats * 60.0 / bpm

    @property
    def label(self) -> str:
        return f"1/{self.strums}" if self is not Rhythm.WHOLE else "1"

DEFAULT_RHYTHM = Rhythm.QUARTER

@dataclass(frozen=True)
class Measure:
    id: str
    chord_index: int = REST     # -1 = rest, else index into the chord table
    rhythm: Rhythm = DEFAULT_RHYTHM

    @property
    def is_rest(self) -> bool:
        return self.chord_index == REST

@dataclass(frozen=True)
class Chord:
    name: str                   # "C", "Dm", "Bdim"
    notes: Tuple[str, str, str] # root / third / fifth, e.g. ("C4", "E4", "G4")
    root: str                   # pitch class
