"""Gapless playback scheduling for streamed model audio.

Incoming audio chunks are queued back to back on the output device's own
clock, so network jitter never causes overlap and only causes gaps when the
device has already caught up with everything queued.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from typing import Callable, Protocol

import numpy as np

from jarvice_interview.voice.pcm import pcm16_to_float_frames

logger = logging.getLogger(__name__)

_unit_ids = itertools.count(1)


@dataclass(eq=False)
class PlaybackUnit:
    """A decoded chunk of audio and its start offset on the output clock."""

    samples: np.ndarray  # (frames, channels) float32
    sample_rate: int
    start_time: float
    unit_id: int = field(default_factory=lambda: next(_unit_ids))

    @property
    def num_frames(self) -> int:
        return int(self.samples.shape[0])

    @property
    def duration(self) -> float:
        return self.num_frames / float(self.sample_rate)

    @property
    def end_time(self) -> float:
        return self.start_time + self.duration


class OutputClock(Protocol):
    @property
    def current_time(self) -> float: ...

    def play(self, unit: PlaybackUnit, on_ended: Callable[[PlaybackUnit], None]) -> None: ...

    def stop(self, unit: PlaybackUnit) -> None: ...


class PlaybackScheduler:
    def __init__(
        self,
        output: OutputClock,
        *,
        sample_rate: int = 24000,
        channels: int = 1,
        on_ended: Callable[[PlaybackUnit], None] | None = None,
    ) -> None:
        """
        Args:
            output: Device (or fake) that owns the virtual output clock.
            sample_rate: Sample rate of inbound PCM.
            channels: Interleaved channel count of inbound PCM.
            on_ended: Optional hook the output's completion is routed through.
                When unset, completions go straight to ``on_unit_ended``.
        """
        self._output = output
        self._sample_rate = sample_rate
        self._channels = channels
        self._on_ended = on_ended
        self._next_start_time: float = 0.0
        self._active: set[PlaybackUnit] = set()

    @property
    def next_start_time(self) -> float:
        return self._next_start_time

    @property
    def active_units(self) -> frozenset[PlaybackUnit]:
        return frozenset(self._active)

    def decode(self, data: bytes) -> np.ndarray:
        return pcm16_to_float_frames(data, self._channels)

    def schedule(self, data: bytes) -> PlaybackUnit | None:
        """
        Decode a PCM16 payload and queue it right after the previous unit.

        Raises:
            DecodeError: If the payload is not whole PCM16 frames.
        """
        samples = self.decode(data)
        if samples.shape[0] == 0:
            logger.debug("[VOICE][PLAYBACK] ignoring empty audio payload")
            return None

        start = max(self._next_start_time, self._output.current_time)
        unit = PlaybackUnit(samples=samples, sample_rate=self._sample_rate, start_time=start)
        self._active.add(unit)
        self._output.play(unit, self._on_ended or self.on_unit_ended)
        self._next_start_time = start + unit.duration
        logger.debug(
            f"[VOICE][PLAYBACK] unit={unit.unit_id} start={start:.3f}s dur={unit.duration:.3f}s "
            f"active={len(self._active)}"
        )
        return unit

    def on_unit_ended(self, unit: PlaybackUnit) -> None:
        self._active.discard(unit)

    def stop_all(self) -> None:
        """Force-stop every active unit and rewind the cursor to 0."""
        units = list(self._active)
        self._active.clear()
        self._next_start_time = 0.0
        for unit in units:
            try:
                self._output.stop(unit)
            except Exception as e:
                logger.warning(f"[VOICE][PLAYBACK] failed to stop unit={unit.unit_id}: {e}")
