import itertools
import typing

import pytest

from config import AppConfig
from sequencer import Sequencer


class FakeClock:

    """Audio clock the test moves by hand."""

    def __init__(self, t: float = 0.0) -> None:
        self.t = t

    def now(self) -> float:
        return self.t


class RecordingVoice:

    """Voice engine stand-in that records every trigger and cancel call."""

    def __init__(self) -> None:
        self.calls: typing.List[typing.Tuple[str, float, float]] = []
        self.cancels = 0

    def trigger(self, pitch: str, duration: float, time: float) -> None:
        self.calls.append((pitch, duration, time))

    def cancel_pending(self) -> int:
        self.cancels += 1
        return 0


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def voice() -> RecordingVoice:
    return RecordingVoice()


@pytest.fixture
def ids() -> typing.Callable[[], str]:
    counter = itertools.count(1)
    return lambda: f"m{next(counter)}"


@pytest.fixture
def make_sequencer(clock: FakeClock, voice: RecordingVoice, ids: typing.Callable[[], str]) -> typing.Callable[..., Sequencer]:

    def _make(cfg: typing.Optional[AppConfig] = None, ensure_ready: typing.Optional[typing.Callable[[], None]] = None) -> Sequencer:
        return Sequencer(cfg or AppConfig(), voice, ensure_ready=ensure_ready, clock=clock, new_id=ids)

    return _make


@pytest.fixture
def seq(make_sequencer: typing.Callable[..., Sequencer]) -> Sequencer:
    return make_sequencer()


@pytest.fixture
def pump_at(clock: FakeClock) -> typing.Callable[[Sequencer, float], None]:

    """Move the fake clock to t and run one frame of scheduling."""

    def _pump(seq: Sequencer, t: float) -> None:
        clock.t = t
        seq.pump()

    return _pump
