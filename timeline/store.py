# timeline/store.py
import dataclasses
import logging
import uuid
from typing import Callable, Iterator, Optional, Tuple

from music.model import Measure, Rhythm, REST, DEFAULT_RHYTHM

EDITABLE_FIELDS = ("chord_index", "rhythm")

def uuid_ids() -> Callable[[], str]:
    return lambda: uuid.uuid4().hex

class TimelineStore:
    """Ordered measures, edited copy-on-write.

    Every edit swaps in a new tuple, so a reader holding `snapshot()` never
    sees a half-applied change. The scheduler re-reads the snapshot on every
    tick instead of keeping the one it saw at playback start.
    """
    def __init__(self, new_id: Optional[Callable[[], str]] = None):
        self._new_id = new_id or uuid_ids()
        self._measures: Tuple[Measure, ...] = (self._default(),)
        self.version = 0

    def _default(self) -> Measure:
        return Measure(id=self._new_id(), chord_index=REST, rhythm=DEFAULT_RHYTHM)

    def _commit(self, measures: Tuple[Measure, ...]):
        self._measures = measures
        self.version += 1

    # ---------- read ----------
    def snapshot(self) -> Tuple[Measure, ...]:
        return self._measures

    def __len__(self) -> int:
        return len(self._measures)

    def __iter__(self) -> Iterator[Measure]:
        return iter(self._measures)

    def __getitem__(self, i: int) -> Measure:
        return self._measures[i]

    def find(self, measure_id: str) -> Optional[Measure]:
        for m in self._measures:
            if m.id == measure_id:
                return m
        return None

    def index_of(self, measure_id: str) -> int:
        for i, m in enumerate(self._measures):
            if m.id == measure_id:
                return i
        return -1

    # ---------- edit ----------
    def append(self) -> Measure:
        m = self._default()
        self._commit(self._measures + (m,))
        logging.debug("Measure appended: %s (total %d)", m.id, len(self._measures))
        return m

    def remove(self, measure_id: str) -> bool:
        if len(self._measures) <= 1:
            return False    # 至少保留一個小節
        kept = tuple(m for m in self._measures if m.id != measure_id)
        if len(kept) == len(self._measures):
            return False
        self._commit(kept)
        logging.debug("Measure removed: %s (total %d)", measure_id, len(kept))
        return True

    def update(self, measure_id: str, field: str, value) -> Optional[Measure]:
        if field not in EDITABLE_FIELDS:
            raise ValueError(f"Measure field not editable: {field!r}")
        if field == "rhythm":
            value = Rhythm(value)
        else:
            value = int(value)

        updated = None
        out = []
        for m in self._measures:
            if m.id == measure_id:
                m = updated = dataclasses.replace(m, **{field: value})
            out.append(m)
        if updated is not None:
            self._commit(tuple(out))
        return updated

    def reset(self):
        self._commit((self._default(),))
        logging.debug("Timeline reset")
