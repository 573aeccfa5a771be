import numpy as np
import pytest

from jarvice_interview.voice.audio_io import AudioIOConfig, SpeakerOutput
from jarvice_interview.voice.errors import DecodeError
from jarvice_interview.voice.playback import PlaybackScheduler, PlaybackUnit


class FakeClock:
    def __init__(self) -> None:
        self.current_time = 0.0
        self.played: list[PlaybackUnit] = []
        self.stopped: list[PlaybackUnit] = []
        self.callbacks = []

    def play(self, unit, on_ended) -> None:
        self.played.append(unit)
        self.callbacks.append(on_ended)

    def stop(self, unit) -> None:
        self.stopped.append(unit)


def _pcm(seconds: float, rate: int = 24000) -> bytes:
    return b"\x00\x00" * int(seconds * rate)


def test_units_are_queued_back_to_back():
    clock = FakeClock()
    scheduler = PlaybackScheduler(clock, sample_rate=24000)

    first = scheduler.schedule(_pcm(0.5))
    second = scheduler.schedule(_pcm(0.25))

    assert first.start_time == 0.0
    assert second.start_time == pytest.approx(first.start_time + first.duration)
    assert scheduler.next_start_time == pytest.approx(0.75)
    assert scheduler.active_units == {first, second}


def test_cursor_jumps_to_clock_after_a_gap():
    clock = FakeClock()
    scheduler = PlaybackScheduler(clock, sample_rate=24000)
    scheduler.schedule(_pcm(0.1))

    clock.current_time = 2.0
    unit = scheduler.schedule(_pcm(0.1))

    assert unit.start_time == 2.0
    assert scheduler.next_start_time == pytest.approx(2.1)


def test_cursor_never_moves_backwards():
    clock = FakeClock()
    scheduler = PlaybackScheduler(clock, sample_rate=24000)
    starts = []
    for t in (0.0, 0.05, 0.4, 0.3, 1.0):
        clock.current_time = t
        starts.append(scheduler.schedule(_pcm(0.2)).start_time)

    assert starts == sorted(starts)
    for a, b in zip(starts, starts[1:]):
        assert b >= a + 0.2 - 1e-9


def test_completion_removes_unit_from_active_set():
    clock = FakeClock()
    scheduler = PlaybackScheduler(clock, sample_rate=24000)
    unit = scheduler.schedule(_pcm(0.1))

    clock.callbacks[0](unit)

    assert scheduler.active_units == frozenset()


def test_on_ended_hook_is_used_when_given():
    seen = []
    clock = FakeClock()
    scheduler = PlaybackScheduler(clock, on_ended=seen.append)
    unit = scheduler.schedule(_pcm(0.1))

    clock.callbacks[0](unit)

    assert seen == [unit]
    # The hook owns routing; the unit stays active until on_unit_ended runs.
    assert unit in scheduler.active_units


def test_empty_payload_is_ignored_and_partial_frames_fail():
    clock = FakeClock()
    scheduler = PlaybackScheduler(clock)

    assert scheduler.schedule(b"") is None
    with pytest.raises(DecodeError):
        scheduler.schedule(b"\x00")
    assert clock.played == []
    assert scheduler.next_start_time == 0.0


def test_stop_all_stops_every_unit_and_rewinds():
    clock = FakeClock()
    scheduler = PlaybackScheduler(clock)
    units = [scheduler.schedule(_pcm(0.1)) for _ in range(3)]

    scheduler.stop_all()

    assert set(clock.stopped) == set(units)
    assert scheduler.active_units == frozenset()
    assert scheduler.next_start_time == 0.0


def test_speaker_output_mixes_units_on_its_own_clock():
    speaker = SpeakerOutput(AudioIOConfig(sample_rate=4, channels=1))
    ended = []
    unit = PlaybackUnit(samples=np.full((5, 1), 0.5, dtype=np.float32), sample_rate=4, start_time=0.25)
    speaker.play(unit, ended.append)

    block = np.zeros((4, 1), dtype=np.float32)
    speaker._callback(block, 4, None, None)
    assert block[:, 0].tolist() == [0.0, 0.5, 0.5, 0.5]
    assert speaker.current_time == pytest.approx(1.0)

    block = np.zeros((4, 1), dtype=np.float32)
    speaker._callback(block, 4, None, None)
    assert block[:, 0].tolist() == [0.5, 0.5, 0.0, 0.0]
    assert speaker.current_time == pytest.approx(2.0)


def test_speaker_output_clips_overlapping_units():
    speaker = SpeakerOutput(AudioIOConfig(sample_rate=4, channels=1))
    for _ in range(3):
        unit = PlaybackUnit(samples=np.full((2, 1), 0.6, dtype=np.float32), sample_rate=4, start_time=0.0)
        speaker.play(unit, lambda u: None)

    block = np.zeros((2, 1), dtype=np.float32)
    speaker._callback(block, 2, None, None)

    assert block[:, 0].tolist() == [1.0, 1.0]


def test_speaker_output_never_schedules_into_rendered_frames():
    speaker = SpeakerOutput(AudioIOConfig(sample_rate=4, channels=1))
    speaker._callback(np.zeros((4, 1), dtype=np.float32), 4, None, None)

    # Requested start lies in frames the callback has already rendered.
    unit = PlaybackUnit(samples=np.full((2, 1), 0.5, dtype=np.float32), sample_rate=4, start_time=0.0)
    speaker.play(unit, lambda u: None)

    block = np.zeros((4, 1), dtype=np.float32)
    speaker._callback(block, 4, None, None)
    assert block[:, 0].tolist() == [0.5, 0.5, 0.0, 0.0]
