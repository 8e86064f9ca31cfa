import typing

import pytest

from config import AppConfig, TransportConfig
from music.model import Rhythm
from sequencer import Sequencer
from timeline.scheduler import strum_offsets

Pump = typing.Callable[[Sequencer, float], None]

# 80 bpm -> one measure (4 beats) lasts 3 seconds
MEASURE = 3.0


def _timeline(seq: Sequencer, chord_indices: typing.Sequence[int], rhythm: str = "1n") -> None:

    """Shape the timeline into len(chord_indices) measures."""

    first = seq.measures[0].id
    seq.update_measure(first, "chord_index", chord_indices[0])
    seq.update_measure(first, "rhythm", rhythm)
    for index in chord_indices[1:]:
        m = seq.add_measure()
        seq.update_measure(m.id, "chord_index", index)
        seq.update_measure(m.id, "rhythm", rhythm)


def _play_ticks(seq: Sequencer, pump_at: Pump, count: int) -> typing.List[int]:

    """Start playback and return the highlighted step after each measure."""

    seq.toggle_play()
    steps = []
    for k in range(count):
        pump_at(seq, k * MEASURE)
        steps.append(seq.current_step_index)
    return steps


@pytest.mark.parametrize("rhythm", list(Rhythm))
def test_strum_offsets_are_evenly_spaced(rhythm: Rhythm) -> None:

    offsets = strum_offsets(rhythm, 3.0)

    assert len(offsets) == rhythm.strums
    assert offsets[0] == 0.0
    for k, offset in enumerate(offsets):
        assert offset == pytest.approx(k * 3.0 / rhythm.strums)
    gaps = [b - a for a, b in zip(offsets, offsets[1:])]
    assert all(g == pytest.approx(3.0 / rhythm.strums) for g in gaps)


def test_loop_wraps_cursor(seq: Sequencer, pump_at: Pump) -> None:

    """Three measures, looping: the step sequence over 7 ticks is 0,1,2,0,1,2,0."""

    _timeline(seq, [0, 3, 4])

    assert _play_ticks(seq, pump_at, 7) == [0, 1, 2, 0, 1, 2, 0]
    assert seq.is_playing


def test_one_shot_stops_after_last_measure(seq: Sequencer, voice, pump_at: Pump) -> None:

    """Looping off: after step 2 the next tick ends playback and nothing else fires."""

    _timeline(seq, [0, 3, 4])
    seq.set_looping(False)

    assert _play_ticks(seq, pump_at, 3) == [0, 1, 2]
    played = len(voice.calls)

    pump_at(seq, 3 * MEASURE)

    assert not seq.is_playing
    assert seq.current_step_index == -1
    assert seq.transport.session is None

    pump_at(seq, 4 * MEASURE)
    pump_at(seq, 5 * MEASURE)

    assert len(voice.calls) == played
    assert seq.current_step_index == -1


def test_terminal_tick_plays_nothing_before_stop_lands(seq: Sequencer, voice, pump_at: Pump) -> None:

    """The end-of-timeline tick fires early but the stop waits for its time."""

    _timeline(seq, [0])
    seq.set_looping(False)
    seq.toggle_play()
    pump_at(seq, 0.0)
    played = len(voice.calls)

    pump_at(seq, MEASURE - 0.05)

    assert len(voice.calls) == played
    assert seq.is_playing
    assert seq.current_step_index == 0

    pump_at(seq, MEASURE)

    assert not seq.is_playing


def test_strums_follow_rhythm(seq: Sequencer, voice, pump_at: Pump) -> None:

    """A quarter-note C chord strums four times, notes staggered by 30ms."""

    _timeline(seq, [0], rhythm="4n")
    seq.toggle_play()
    pump_at(seq, 0.0)

    assert len(voice.calls) == 4 * 3
    for k in range(4):
        for j, note in enumerate(("C4", "E4", "G4")):
            pitch, duration, time = voice.calls[k * 3 + j]
            assert pitch == note
            assert duration == pytest.approx(0.75)   # a quarter note at 80 bpm
            assert time == pytest.approx(k * 0.75 + j * 0.03)


def test_sixteenths_fill_measure(seq: Sequencer, voice, pump_at: Pump) -> None:

    _timeline(seq, [4], rhythm="16n")
    seq.toggle_play()
    pump_at(seq, 0.0)

    starts = sorted({round(time, 6) for pitch, _, time in voice.calls if pitch == "G4"})

    assert len(voice.calls) == 16 * 3
    assert starts == pytest.approx([k * MEASURE / 16 for k in range(16)])


def test_rest_is_silent_but_advances_step(seq: Sequencer, voice, pump_at: Pump) -> None:

    _timeline(seq, [-1, -1])

    assert _play_ticks(seq, pump_at, 2) == [0, 1]
    assert voice.calls == []


def test_step_update_waits_for_its_time(seq: Sequencer, voice, pump_at: Pump) -> None:

    """Ticks are scheduled ahead; the highlighted step changes only at the measure start."""

    _timeline(seq, [0, 1])
    seq.toggle_play()
    pump_at(seq, 0.0)
    before = len(voice.calls)

    pump_at(seq, MEASURE - 0.05)

    assert len(voice.calls) > before
    assert seq.current_step_index == 0

    pump_at(seq, MEASURE)

    assert seq.current_step_index == 1


def test_stale_chord_index_plays_as_rest(seq: Sequencer, voice, pump_at: Pump) -> None:

    _timeline(seq, [9, 0])

    assert _play_ticks(seq, pump_at, 2) == [0, 1]
    assert {pitch for pitch, _, _ in voice.calls} == {"C4", "E4", "G4"}


def test_scale_switch_applies_on_next_lookup(seq: Sequencer, voice, pump_at: Pump) -> None:

    """Index 6 is Bdim in C major and A# major in C minor; no restart needed."""

    _timeline(seq, [6, 6])
    seq.toggle_play()
    pump_at(seq, 0.0)

    assert voice.calls[0][0] == "B4"

    seq.set_scale("minor")
    voice.calls.clear()
    pump_at(seq, MEASURE)

    assert seq.current_step_index == 1
    assert [pitch for pitch, _, _ in voice.calls[:3]] == ["A#4", "D5", "F5"]


def test_edits_during_playback_show_up_next_tick(seq: Sequencer, voice, pump_at: Pump) -> None:

    _timeline(seq, [-1, -1])
    seq.toggle_play()
    pump_at(seq, 0.0)

    second = seq.measures[1].id
    seq.update_measure(second, "chord_index", 0)
    pump_at(seq, MEASURE)

    assert [pitch for pitch, _, _ in voice.calls[:3]] == ["C4", "E4", "G4"]


def test_appending_during_playback_extends_the_pass(seq: Sequencer, pump_at: Pump) -> None:

    seq.toggle_play()
    pump_at(seq, 0.0)
    seq.add_measure()
    pump_at(seq, MEASURE)

    assert seq.current_step_index == 1


def test_shrunken_timeline_wraps_instead_of_crashing(make_sequencer, pump_at: Pump) -> None:

    """Removing measures directly from the store past the cursor is bounds-checked."""

    seq = make_sequencer()
    _timeline(seq, [0, 1, 2])
    seq.toggle_play()
    pump_at(seq, 0.0)
    pump_at(seq, MEASURE)
    pump_at(seq, 2 * MEASURE - 0.5)

    for m in seq.measures[1:]:
        seq.store.remove(m.id)
    pump_at(seq, 2 * MEASURE)

    assert seq.is_playing
    assert seq.current_step_index == 0


def test_live_bpm_change_keeps_cursor(seq: Sequencer, pump_at: Pump) -> None:

    """80 -> 160 bpm halfway through measure 0: measure 1 comes next, sooner."""

    _timeline(seq, [0, 1, 2])
    seq.toggle_play()
    pump_at(seq, 0.0)
    pump_at(seq, 1.5)

    seq.set_bpm(160)

    assert seq.transport.session.loop.next_time == pytest.approx(2.25)

    pump_at(seq, 2.25)

    assert seq.current_step_index == 1
    assert seq.transport.session.loop.next_time == pytest.approx(3.75)


def test_bpm_is_clamped(seq: Sequencer) -> None:

    seq.set_bpm(10)
    assert seq.bpm == 40

    seq.set_bpm(500)
    assert seq.bpm == 220

    seq.set_bpm(120)
    assert seq.transport.measure_seconds == pytest.approx(2.0)


def test_looping_flag_is_read_live(seq: Sequencer, pump_at: Pump) -> None:

    _timeline(seq, [0, 1])
    seq.toggle_play()
    pump_at(seq, 0.0)
    seq.set_looping(False)
    pump_at(seq, MEASURE)
    pump_at(seq, 2 * MEASURE)

    assert not seq.is_playing


def test_custom_default_tempo(make_sequencer, voice, pump_at: Pump) -> None:

    seq = make_sequencer(AppConfig(transport=TransportConfig(bpm=120)))
    _timeline(seq, [0], rhythm="2n")
    seq.toggle_play()
    pump_at(seq, 0.0)

    times = sorted({round(time, 6) for pitch, _, time in voice.calls if pitch == "C4"})

    assert times == pytest.approx([0.0, 1.0])
